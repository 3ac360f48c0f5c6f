"""capitalcom engine layer: session, transport, and data handling with no CLI dependency.

This package contains the testable core of the client.
All modules use ``from __future__ import annotations`` and modern
Python typing (``str | None``, ``@dataclass(slots=True)``, etc.).

Modules
-------
errors
    Exception family and classification.
    - ``CapitalComError``: base error carrying message, HTTP status, vendor error code, context
    - ``AuthenticationError``, ``RateLimitError``, ``ValidationError``, ``EncryptionError``
    - ``ErrorKind`` / ``classify``: status+code → kind (auth > rate limit > validation > generic)
    - ``errorFor``: build the subclass matching a status/code pair

config
    Immutable configuration.
    - ``TransportOptions``: timeout, connectTimeout, verify, debug (unknown keys rejected)
    - ``Configuration``: apiKey, demo flag, options; ``fromEnv()`` reads CAPITALCOM_* values
    - ``credentialsFromEnv``: login identifier and password for the CLI

clock
    Time source for session expiry.
    - ``SystemClock``: wall clock via ``whenever.Instant.now()``
    - ``ManualClock``: only advances when told (tests)

encryptor
    RSA (PKCS#1 v1.5) password encryption for the login handshake.
    - ``encryptPassword(encryptionKey, timestamp, password)``

transport
    httpx wrapper bound to one base URL.
    - ``Transport``: header merging, JSON bodies, error response → typed error
    - ``parseJson``: response body → dict (``{}`` when empty)

session
    Login lifecycle and the authenticated request gate.
    - ``SessionManager``: createSession/getSession/switchAccount/destroySession,
      ``get/post/put/delete`` refuse locally without a valid session and slide expiry on success
    - ``Session``, ``SessionState``, ``SESSION_TTL`` (600s)

models
    Dataclasses parsed from vendor JSON.
    - ``Market``, ``Position``, ``WorkingOrder``, ``DealConfirmation``, ``PriceBar``
    - streamed ``Quote`` and ``OHLCBar``

analysis
    pandas views over price bars.
    - ``barsFrame``: bars → DataFrame indexed by snapshot time
    - ``summarizeCloses`` / ``trendOf``: current/avg/min/max/range plus half-over-half trend

streaming
    WebSocket quote stream.
    - ``QuoteStream``: subscribe/unsubscribe market data and OHLC candles, keep-alive pings,
      inbound dispatch to ``onQuote`` / ``onBar`` callbacks, time-boxed ``run()``
"""
