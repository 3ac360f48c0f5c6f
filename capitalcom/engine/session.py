"""Session lifecycle: login, sliding expiry, account switching, logout.

The session manager is also the gate every authenticated request passes
through. A request is refused locally (no network call) unless both tokens
are present and the session has not expired, and each successful
authenticated call pushes expiry out by another ``SESSION_TTL``.
"""
from __future__ import annotations

import dataclasses
import enum
from typing import Any, Final

import whenever
from loguru import logger

from capitalcom.engine.clock import Clock, SystemClock
from capitalcom.engine.config import Configuration
from capitalcom.engine.encryptor import encryptPassword
from capitalcom.engine.errors import AuthenticationError, CapitalComError
from capitalcom.engine.transport import Transport, parseJson

SESSION_TTL: Final = whenever.TimeDelta(seconds=600)


class SessionState(enum.Enum):
    NO_SESSION = "no_session"
    AUTHENTICATING = "authenticating"
    ACTIVE = "active"
    EXPIRED = "expired"
    LOGGED_OUT = "logged_out"


@dataclasses.dataclass(slots=True)
class Session:
    """Tokens and server session details for the current login."""

    cstToken: str | None = None
    securityToken: str | None = None
    sessionData: dict[str, Any] | None = None
    expiry: whenever.Instant | None = None

    def clear(self) -> None:
        self.cstToken = None
        self.securityToken = None
        self.sessionData = None
        self.expiry = None


class SessionManager:
    """Owns the Session and keeps the transport's auth headers in sync with it."""

    def __init__(self, transport: Transport, config: Configuration, clock: Clock | None = None):
        self.transport = transport
        self.config = config
        self.clock = clock or SystemClock()
        self.session = Session()

        self._authenticating = False
        self._loggedOut = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def createSession(
        self, identifier: str, password: str, alreadyEncrypted: bool = False
    ) -> dict[str, Any]:
        """Log in and capture the CST / X-SECURITY-TOKEN response headers.

        Returns the login response body (account and session details).
        Any previous session is dropped first so the handshake carries only
        the API key."""
        self.session.clear()
        self.transport.setAuthTokens(None, None)

        self._authenticating = True
        try:
            if not alreadyEncrypted:
                password = self.encryptedPassword(password)

            response = self.transport.post(
                "/session",
                dict(identifier=identifier, password=password, encryptedPassword=True),
                headers={"X-CAP-API-KEY": self.config.apiKey},
            )

            cstToken = response.headers.get("CST")
            securityToken = response.headers.get("X-SECURITY-TOKEN")

            if not (cstToken and securityToken):
                raise AuthenticationError("Session tokens not received")

            body = parseJson(response)
        finally:
            self._authenticating = False

        self.session.cstToken = cstToken
        self.session.securityToken = securityToken
        self.session.sessionData = body
        self.session.expiry = self.clock.now() + SESSION_TTL
        self._loggedOut = False

        self.transport.setAuthTokens(cstToken, securityToken)

        logger.info("Session created for account: {}", body.get("currentAccountId"))

        return body

    def getSession(self) -> dict[str, Any]:
        """Fetch current session details from the server."""
        return self.get("/session")

    def switchAccount(self, accountId: str) -> None:
        self.ensureValidSession()

        response = self.transport.put("/session", dict(accountId=accountId))

        # the old security token stays valid unless the server hands out a new one
        if securityToken := response.headers.get("X-SECURITY-TOKEN"):
            self.session.securityToken = securityToken
            self.transport.setAuthTokens(self.session.cstToken, securityToken)

        if self.session.sessionData is not None:
            self.session.sessionData["currentAccountId"] = accountId

        self.touch()

        logger.info("Switched to account: {}", accountId)

    def destroySession(self) -> None:
        """Log out. Local state is always cleared even if the server call fails."""
        if self.session.cstToken:
            try:
                self.transport.delete("/session")
            except CapitalComError as e:
                logger.warning("Error during logout: {}", e)

        self.session.clear()
        self.transport.setAuthTokens(None, None)
        self._loggedOut = True

        logger.info("Session destroyed")

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def hasValidSession(self) -> bool:
        s = self.session
        return bool(
            s.cstToken
            and s.securityToken
            and s.expiry is not None
            and self.clock.now() < s.expiry
        )

    @property
    def state(self) -> SessionState:
        if self._authenticating:
            return SessionState.AUTHENTICATING

        if self.hasValidSession():
            return SessionState.ACTIVE

        if self._loggedOut:
            return SessionState.LOGGED_OUT

        if self.session.cstToken:
            return SessionState.EXPIRED

        return SessionState.NO_SESSION

    @property
    def cstToken(self) -> str | None:
        return self.session.cstToken

    @property
    def securityToken(self) -> str | None:
        return self.session.securityToken

    @property
    def cachedSessionData(self) -> dict[str, Any] | None:
        return self.session.sessionData

    @property
    def accountId(self) -> str | None:
        if self.session.sessionData:
            return self.session.sessionData.get("currentAccountId")

        return None

    def expiresIn(self) -> float:
        """Seconds until expiry (0 if there is no live session)."""
        if self.session.expiry is None:
            return 0.0

        remaining = (self.session.expiry - self.clock.now()).in_seconds()
        return max(0.0, remaining)

    def ensureValidSession(self) -> None:
        if not self.hasValidSession():
            raise AuthenticationError("No valid session. Please login first.")

    def touch(self) -> None:
        """Slide expiry forward after successful use."""
        self.session.expiry = self.clock.now() + SESSION_TTL

    # ------------------------------------------------------------------
    # Authenticated requests
    # ------------------------------------------------------------------

    def request(
        self,
        method: str,
        uri: str,
        *,
        query: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        self.ensureValidSession()
        response = self.transport.request(method, uri, query=query, data=data)
        self.touch()

        return parseJson(response)

    def get(self, uri: str, query: dict[str, Any] | None = None) -> dict[str, Any]:
        return self.request("GET", uri, query=query)

    def post(self, uri: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
        return self.request("POST", uri, data=data)

    def put(self, uri: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
        return self.request("PUT", uri, data=data)

    def delete(self, uri: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
        return self.request("DELETE", uri, data=data)

    # ------------------------------------------------------------------

    def encryptedPassword(self, password: str) -> str:
        """Fetch a one-time encryption key and encrypt 'password' with it."""
        response = self.transport.get(
            "/session/encryptionKey", headers={"X-CAP-API-KEY": self.config.apiKey}
        )

        data = parseJson(response)
        if data.get("encryptionKey") is None or data.get("timeStamp") is None:
            raise CapitalComError("Invalid encryption key response")

        return encryptPassword(data["encryptionKey"], int(data["timeStamp"]), password)
