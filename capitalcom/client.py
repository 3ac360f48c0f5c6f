"""Top-level client wiring configuration, transport, session, and endpoint facades."""
from __future__ import annotations

from functools import cached_property
from typing import Any, Final

import httpx
from loguru import logger

from capitalcom.api import AccountApi, MarketApi, TradingApi, WatchlistApi
from capitalcom.engine.clock import Clock
from capitalcom.engine.config import Configuration
from capitalcom.engine.errors import AuthenticationError
from capitalcom.engine.session import SessionManager
from capitalcom.engine.streaming import QuoteStream
from capitalcom.engine.transport import Transport

LIVE_URL: Final = "https://api-capital.backend-capital.com"
DEMO_URL: Final = "https://demo-api-capital.backend-capital.com"

LIVE_WS_URL: Final = "wss://api-streaming-capital.backend-capital.com/connect"
DEMO_WS_URL: Final = "wss://demo-api-streaming-capital.backend-capital.com/connect"

API_PREFIX: Final = "/api/v1"


class Client:
    """Capital.com API client.

    Usage:
        with Client(Configuration.fromEnv()) as client:
            client.login(identifier, password)
            client.market.markets("gold")

    Leaving the ``with`` block logs out and releases the HTTP client.
    """

    def __init__(
        self,
        config: Configuration,
        clock: Clock | None = None,
        httpClient: httpx.Client | None = None,
    ):
        self.config = config

        self.baseUrl = (DEMO_URL if config.isDemo() else LIVE_URL) + API_PREFIX
        self.transport = Transport(self.baseUrl, config.options, client=httpClient)
        self.session = SessionManager(self.transport, config, clock)

        logger.debug("Client using {} environment: {}", self.environment, self.baseUrl)

    @property
    def environment(self) -> str:
        return "demo" if self.config.isDemo() else "live"

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def login(self, identifier: str, password: str, alreadyEncrypted: bool = False) -> dict[str, Any]:
        return self.session.createSession(identifier, password, alreadyEncrypted)

    def logout(self) -> None:
        self.session.destroySession()

    def getSession(self) -> dict[str, Any]:
        return self.session.getSession()

    def switchAccount(self, accountId: str) -> None:
        self.session.switchAccount(accountId)

    def ping(self) -> dict[str, Any]:
        """Keep the server-side session alive."""
        return self.session.post("/ping")

    @property
    def cstToken(self) -> str | None:
        return self.session.cstToken

    @property
    def securityToken(self) -> str | None:
        return self.session.securityToken

    # ------------------------------------------------------------------
    # Endpoint facades
    # ------------------------------------------------------------------

    @cached_property
    def account(self) -> AccountApi:
        return AccountApi(self.session)

    @cached_property
    def market(self) -> MarketApi:
        return MarketApi(self.session)

    @cached_property
    def trading(self) -> TradingApi:
        return TradingApi(self.session)

    @cached_property
    def watchlist(self) -> WatchlistApi:
        return WatchlistApi(self.session)

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    @property
    def webSocketUrl(self) -> str:
        return DEMO_WS_URL if self.config.isDemo() else LIVE_WS_URL

    def stream(self, **kwargs) -> QuoteStream:
        """Create a quote stream bound to the current session tokens."""
        if not self.session.hasValidSession():
            raise AuthenticationError("No valid session. Please login first.")

        return QuoteStream(
            self.webSocketUrl,
            self.session.cstToken,  # type: ignore[arg-type]
            self.session.securityToken,  # type: ignore[arg-type]
            **kwargs,
        )

    # ------------------------------------------------------------------

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *exc) -> None:
        try:
            if self.session.cstToken:
                self.logout()
        finally:
            self.close()
