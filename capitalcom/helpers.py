"""Small shared helpers: JSON codec selection and log sanitizing."""

from __future__ import annotations

import platform
import types
from typing import Any, Final

ourjson: types.ModuleType
# Only use orjson under CPython, else use default json (because `json` under pypy is faster than orjson)
if platform.python_implementation() == "CPython":
    import orjson

    ourjson = orjson
else:
    import json

    ourjson = json

# headers which must never reach a log file
SENSITIVE_HEADERS: Final = ("X-CAP-API-KEY", "CST", "X-SECURITY-TOKEN")

MASK: Final = "***"


def dumps(obj: Any, pretty: bool = False) -> str:
    """Encode 'obj' as a JSON string.

    orjson returns bytes while stdlib json returns str, so normalize to str
    because websocket text frames need str. With 'pretty' the output is
    indented and values JSON cannot represent are rendered with str()."""
    if not pretty:
        encoded = ourjson.dumps(obj)
    elif ourjson.__name__ == "orjson":
        encoded = ourjson.dumps(
            obj, default=str, option=ourjson.OPT_INDENT_2 | ourjson.OPT_NON_STR_KEYS
        )
    else:
        encoded = ourjson.dumps(obj, default=str, indent=2)

    if isinstance(encoded, bytes):
        return encoded.decode()

    return encoded


def loads(data: str | bytes) -> Any:
    return ourjson.loads(data)


def sanitize(options: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of request options with credentials masked for logging."""
    sanitized = dict(options)

    if headers := sanitized.get("headers"):
        headers = dict(headers)
        for name in SENSITIVE_HEADERS:
            if name in headers:
                headers[name] = MASK

        sanitized["headers"] = headers

    body = sanitized.get("json")
    if isinstance(body, dict) and "password" in body:
        sanitized["json"] = body | {"password": MASK}

    return sanitized


def mask(token: str | None, keep: int = 10) -> str:
    """Show only the leading characters of a token (for console output)."""
    if not token:
        return "(none)"

    return f"{token[:keep]}..."
