"""Immutable client configuration plus environment loading."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any, Final

from dotenv import dotenv_values

ENV_FILE: Final = ".env.capitalcom"

ENV_DEFAULTS: Final = dict(
    CAPITALCOM_DEMO="0",
    CAPITALCOM_TIMEOUT="30",
    CAPITALCOM_CONNECT_TIMEOUT="10",
    CAPITALCOM_VERIFY="1",
    CAPITALCOM_DEBUG="0",
)

# accept the snake_case option names too
OPTION_ALIASES: Final = dict(connect_timeout="connectTimeout")


def envbool(value: str | None) -> bool:
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def envconfig(envfile: str | None = ENV_FILE) -> dict[str, str]:
    """Merge defaults, the dotenv file (if any), then the live environment.

    Later sources win, so exported variables override the file."""
    fromfile = dotenv_values(envfile) if envfile else {}
    return {**ENV_DEFAULTS, **fromfile, **os.environ}  # type: ignore


@dataclasses.dataclass(frozen=True, slots=True)
class TransportOptions:
    """Fixed set of transport settings."""

    timeout: float = 30
    connectTimeout: float = 10
    verify: bool = True
    debug: bool = False

    @classmethod
    def fromMapping(cls, options: Mapping[str, Any]) -> TransportOptions:
        known = {f.name for f in dataclasses.fields(cls)}
        values = {}
        for key, value in options.items():
            name = OPTION_ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown transport option: {key}")

            values[name] = value

        return cls(**values)


@dataclasses.dataclass(frozen=True, slots=True)
class Configuration:
    apiKey: str
    demo: bool = False
    options: TransportOptions = dataclasses.field(default_factory=TransportOptions)

    def __post_init__(self) -> None:
        if not self.apiKey:
            raise ValueError("An API key is required")

    def isDemo(self) -> bool:
        return self.demo

    def option(self, name: str, default: Any = None) -> Any:
        return getattr(self.options, OPTION_ALIASES.get(name, name), default)

    @classmethod
    def fromEnv(cls, envfile: str | None = ENV_FILE) -> Configuration:
        """Build configuration from CAPITALCOM_* variables."""
        config = envconfig(envfile)

        return cls(
            apiKey=config.get("CAPITALCOM_API_KEY", ""),
            demo=envbool(config["CAPITALCOM_DEMO"]),
            options=TransportOptions(
                timeout=float(config["CAPITALCOM_TIMEOUT"]),
                connectTimeout=float(config["CAPITALCOM_CONNECT_TIMEOUT"]),
                verify=envbool(config["CAPITALCOM_VERIFY"]),
                debug=envbool(config["CAPITALCOM_DEBUG"]),
            ),
        )


def credentialsFromEnv(envfile: str | None = ENV_FILE) -> tuple[str, str]:
    """Return (identifier, password) for logging in, or raise if unset."""
    config = envconfig(envfile)
    identifier = config.get("CAPITALCOM_IDENTIFIER")
    password = config.get("CAPITALCOM_PASSWORD")

    if not (identifier and password):
        raise ValueError("Set CAPITALCOM_IDENTIFIER and CAPITALCOM_PASSWORD to log in")

    return identifier, password
