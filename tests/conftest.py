"""Shared test fixtures for the capitalcom test suite.

FakeCapital provides a test double for the Capital.com REST API, served
through ``httpx.MockTransport`` so no test ever touches the network.
"""

import base64
import json
from collections.abc import Callable
from typing import Any, TypeAlias

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from capitalcom.client import API_PREFIX, DEMO_URL, Client
from capitalcom.engine.clock import ManualClock
from capitalcom.engine.config import Configuration

Handler: TypeAlias = Callable[[httpx.Request], httpx.Response]


def publicKeyBase64(privateKey: rsa.RSAPrivateKey) -> str:
    """The bare base64 (no PEM armor) public key, as the server sends it."""
    der = privateKey.public_key().public_bytes(
        serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
    )
    return base64.b64encode(der).decode()


def decryptPassword(privateKey: rsa.RSAPrivateKey, encrypted: str) -> str:
    """Reverse the login encryption: returns 'password|timestamp'."""
    payload = privateKey.decrypt(base64.b64decode(encrypted), padding.PKCS1v15())
    return base64.b64decode(payload).decode()


def body(request: httpx.Request) -> Any:
    return json.loads(request.content) if request.content else None


class FakeCapital:
    """Test double for the Capital.com REST API.

    Login works for ``identifier``/``password`` only (the encrypted password is
    decrypted and checked). Other endpoints answer with canned responses
    registered through ``route()``; unknown endpoints get a vendor 404.
    Every request is recorded in ``requests``.
    """

    identifier = "trader@example.com"
    password = "correct-horse"
    timeStamp = 1_700_000_000_000

    cst = "CST-0123456789abcdef"
    securityToken = "XST-0123456789abcdef"

    def __init__(self, privateKey: rsa.RSAPrivateKey):
        self.privateKey = privateKey
        self.encryptionKey = publicKeyBase64(privateKey)
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], Handler] = {}

        self.sessionBody: dict[str, Any] = {
            "accountType": "CFD",
            "currencyIsoCode": "USD",
            "currentAccountId": "ACC-1",
            "clientId": "12345678",
            "accounts": [
                {"accountId": "ACC-1", "accountName": "Main"},
                {"accountId": "ACC-2", "accountName": "Second"},
            ],
        }

    # ── Canned responses ──

    def route(
        self,
        method: str,
        path: str,
        status: int = 200,
        json: Any = None,
        headers: dict[str, str] | None = None,
        content: bytes | None = None,
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if content is not None:
                return httpx.Response(status, content=content, headers=headers)

            return httpx.Response(status, json=json, headers=headers)

        self.routes[(method, path)] = handler

    def fail(self, method: str, path: str, exc: Exception) -> None:
        """Make 'method path' raise a network-level exception."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise exc

        self.routes[(method, path)] = handler

    # ── Request inspection ──

    def calls(self, method: str | None = None, path: str | None = None) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if (method is None or r.method == method)
            and (path is None or self.pathOf(r) == path)
        ]

    def last(self) -> httpx.Request:
        return self.requests[-1]

    @staticmethod
    def pathOf(request: httpx.Request) -> str:
        return request.url.path.removeprefix(API_PREFIX)

    # ── Dispatch ──

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, self.pathOf(request))

        if found := self.routes.get(key):
            return found(request)

        match key:
            case ("GET", "/session/encryptionKey"):
                return httpx.Response(
                    200, json=dict(encryptionKey=self.encryptionKey, timeStamp=self.timeStamp)
                )
            case ("POST", "/session"):
                return self.login(request)
            case ("GET", "/session"):
                return httpx.Response(
                    200,
                    json=dict(
                        clientId="12345678",
                        accountId=self.sessionBody["currentAccountId"],
                        currency="USD",
                    ),
                )
            case ("PUT", "/session"):
                return httpx.Response(200, json=dict(trailingStopsEnabled=False))
            case ("DELETE", "/session"):
                return httpx.Response(200, json=dict(status="SUCCESS"))
            case ("GET", "/time"):
                return httpx.Response(200, json=dict(serverTime=self.timeStamp))
            case ("POST", "/ping"):
                return httpx.Response(200, json=dict(status="OK"))

        return httpx.Response(
            404, json=dict(errorCode="error.not-found", message=f"No route: {key}")
        )

    def login(self, request: httpx.Request) -> httpx.Response:
        if request.headers.get("X-CAP-API-KEY") != "test-api-key":
            return httpx.Response(401, json=dict(errorCode="error.invalid.api.key"))

        data = body(request)
        plain = decryptPassword(self.privateKey, data["password"])

        if (
            data["identifier"] != self.identifier
            or plain != f"{self.password}|{self.timeStamp}"
        ):
            return httpx.Response(
                401,
                json=dict(errorCode="INVALID_CREDENTIALS", message="Invalid login details"),
            )

        return httpx.Response(
            200,
            json=self.sessionBody,
            headers={"CST": self.cst, "X-SECURITY-TOKEN": self.securityToken},
        )


@pytest.fixture(scope="session")
def rsaKey() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def fake(rsaKey) -> FakeCapital:
    return FakeCapital(rsaKey)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def config() -> Configuration:
    return Configuration(apiKey="test-api-key", demo=True)


@pytest.fixture
def httpClient(fake) -> httpx.Client:
    return httpx.Client(base_url=DEMO_URL + API_PREFIX, transport=httpx.MockTransport(fake.handler))


@pytest.fixture
def client(config, clock, httpClient) -> Client:
    c = Client(config, clock=clock, httpClient=httpClient)
    yield c
    c.close()


@pytest.fixture
def loggedIn(client, fake) -> Client:
    """A client with a live session (login traffic already cleared)."""
    client.login(fake.identifier, fake.password)
    fake.requests.clear()
    return client
