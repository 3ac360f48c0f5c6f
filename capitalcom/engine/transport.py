"""HTTP transport: auth header injection, JSON bodies, and error mapping."""

from __future__ import annotations

from typing import Any, Final

import httpx
from loguru import logger

from capitalcom.engine.config import TransportOptions
from capitalcom.engine.errors import CapitalComError, errorFor
from capitalcom.helpers import dumps, loads, sanitize

USER_AGENT: Final = "capitalcom-python/1.0"

DEFAULT_HEADERS: Final = {
    "User-Agent": USER_AGENT,
    "Accept": "application/json",
    "Content-Type": "application/json",
}

STATUS_MESSAGES: Final = {
    400: "Bad Request - Invalid parameters",
    401: "Unauthorized - Invalid credentials or session expired",
    403: "Forbidden - Access denied",
    404: "Not Found - Endpoint or resource not found",
    429: "Rate Limit Exceeded - Too many requests",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
}


def statusMessage(status: int) -> str:
    return STATUS_MESSAGES.get(status, f"HTTP Error {status}")


def parseJson(response: httpx.Response) -> dict[str, Any]:
    """Decode a JSON response body; an empty body is an empty dict."""
    if not response.content:
        return {}

    try:
        return loads(response.content)
    except ValueError as e:
        raise CapitalComError(
            f"Invalid JSON in response: {e}", status=response.status_code
        ) from e


class Transport:
    """Issues requests against one base URL.

    Auth tokens are attached to every request once set. A failed request is
    raised immediately; nothing is retried.
    """

    def __init__(
        self,
        baseUrl: str,
        options: TransportOptions | None = None,
        client: httpx.Client | None = None,
    ):
        self.baseUrl = baseUrl.rstrip("/")
        self.options = options or TransportOptions()
        self.cstToken: str | None = None
        self.securityToken: str | None = None

        # tests provide a client already wired to a mock transport
        self.client = client or httpx.Client(
            base_url=self.baseUrl,
            timeout=httpx.Timeout(self.options.timeout, connect=self.options.connectTimeout),
            verify=self.options.verify,
            headers=DEFAULT_HEADERS,
        )

    def setAuthTokens(self, cstToken: str | None, securityToken: str | None) -> None:
        self.cstToken = cstToken
        self.securityToken = securityToken

    def buildHeaders(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = DEFAULT_HEADERS | (extra or {})

        if self.cstToken:
            headers["CST"] = self.cstToken

        if self.securityToken:
            headers["X-SECURITY-TOKEN"] = self.securityToken

        return headers

    def get(
        self,
        uri: str,
        query: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        return self.request("GET", uri, query=query, headers=headers)

    def post(
        self,
        uri: str,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        return self.request("POST", uri, data=data, headers=headers)

    def put(
        self,
        uri: str,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        return self.request("PUT", uri, data=data, headers=headers)

    def delete(
        self,
        uri: str,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        return self.request("DELETE", uri, data=data, headers=headers)

    def request(
        self,
        method: str,
        uri: str,
        *,
        query: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        requestHeaders = self.buildHeaders(headers)

        logger.debug(
            "HTTP {} {} {}",
            method,
            uri,
            sanitize(dict(query=query, json=data, headers=requestHeaders)),
        )

        try:
            response = self.client.request(
                method,
                uri,
                params=query or None,
                content=dumps(data) if data else None,
                headers=requestHeaders,
            )
        except httpx.HTTPError as e:
            logger.error("HTTP {} {} failed: {}", method, uri, e)
            raise CapitalComError(f"HTTP request failed: {e}") from e

        logger.debug("HTTP {} {} -> {}", method, uri, response.status_code)
        if self.options.debug:
            logger.debug("Response body: {}", response.text)

        if response.is_error:
            self.raiseForResponse(response)

        return response

    def raiseForResponse(self, response: httpx.Response) -> None:
        """Convert an error response into the matching typed error."""
        status = response.status_code
        body = response.text

        logger.error("HTTP error response: {} {}", status, body)

        try:
            errorData = loads(response.content) if response.content else None
        except ValueError:
            errorData = None

        if isinstance(errorData, dict) and errorData.get("errorCode"):
            raise errorFor(
                errorData.get("message") or statusMessage(status),
                status,
                errorData["errorCode"],
                context=dict(url=str(response.request.url)),
            )

        raise errorFor(statusMessage(status), status)

    def close(self) -> None:
        self.client.close()
