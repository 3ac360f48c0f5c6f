"""WebSocket quote stream for live prices and OHLC candles."""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import uuid
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any, Final

import websockets
from loguru import logger

from capitalcom.engine.errors import CapitalComError
from capitalcom.engine.models import OHLCBar, Quote
from capitalcom.helpers import dumps, loads

SUBSCRIBE_MARKET: Final = "marketData.subscribe"
UNSUBSCRIBE_MARKET: Final = "marketData.unsubscribe"
SUBSCRIBE_OHLC: Final = "OHLCMarketData.subscribe"
UNSUBSCRIBE_OHLC: Final = "OHLCMarketData.unsubscribe"
PING: Final = "ping"


@dataclass(slots=True)
class QuoteStream:
    """One streaming connection authenticated with the REST session tokens.

    Subscriptions are fire-and-forget: requests made before connecting are
    queued and sent once the connection opens, and the server's confirmations
    are only logged. Any disconnect ends the stream; there is no reconnect.
    """

    url: str
    cst: str
    securityToken: str

    # latest update per epic, and per (epic, resolution) for candles
    quotes: dict[str, Quote] = field(default_factory=dict)
    bars: dict[tuple[str, str], OHLCBar] = field(default_factory=dict)

    onQuote: Callable[[Quote], Any] | None = None
    onBar: Callable[[OHLCBar], Any] | None = None

    # active websocket connection (if any)
    activeWS: Any | None = None

    pending: list[dict[str, Any]] = field(default_factory=list)
    correlation: Iterator[int] = field(default_factory=lambda: itertools.count(1))

    def envelope(
        self,
        destination: str,
        payload: dict[str, Any] | None = None,
        correlationId: str | None = None,
    ) -> dict[str, Any]:
        msg: dict[str, Any] = dict(
            destination=destination,
            correlationId=correlationId or str(next(self.correlation)),
            cst=self.cst,
            securityToken=self.securityToken,
        )

        if payload is not None:
            msg["payload"] = payload

        return msg

    async def send(self, msg: dict[str, Any]) -> dict[str, Any]:
        """Send now if connected, else hold until the connection opens."""
        if self.activeWS is None:
            self.pending.append(msg)
            return msg

        logger.debug("[Stream] -> {} ({})", msg["destination"], msg["correlationId"])
        await self.activeWS.send(dumps(msg))
        return msg

    async def subscribeMarketData(self, epics: Iterable[str]) -> dict[str, Any]:
        return await self.send(self.envelope(SUBSCRIBE_MARKET, dict(epics=list(epics))))

    async def unsubscribeMarketData(self, epics: Iterable[str]) -> dict[str, Any]:
        return await self.send(self.envelope(UNSUBSCRIBE_MARKET, dict(epics=list(epics))))

    async def subscribeOHLC(
        self,
        epics: Iterable[str],
        resolutions: Iterable[str] = ("MINUTE",),
        type: str = "classic",
    ) -> dict[str, Any]:
        payload = dict(epics=list(epics), resolutions=list(resolutions), type=type)
        return await self.send(self.envelope(SUBSCRIBE_OHLC, payload))

    async def unsubscribeOHLC(
        self,
        epics: Iterable[str],
        resolutions: Iterable[str] = ("MINUTE",),
        type: str = "classic",
    ) -> dict[str, Any]:
        payload = dict(epics=list(epics), resolutions=list(resolutions), type=type)
        return await self.send(self.envelope(UNSUBSCRIBE_OHLC, payload))

    async def ping(self) -> dict[str, Any]:
        return await self.send(self.envelope(PING, correlationId=uuid.uuid4().hex[:13]))

    def dispatch(self, raw: str | bytes) -> Any | None:
        """Route one inbound message. Returns the parsed update (if any)."""
        try:
            data = loads(raw)
        except ValueError:
            logger.error("[Stream] Received invalid message: {!r}", raw)
            return None

        if not isinstance(data, dict):
            logger.error("[Stream] Received invalid message: {!r}", raw)
            return None

        destination = data.get("destination") or ""
        payload = data.get("payload") or {}

        match destination:
            case "quote":
                quote = Quote.fromDict(payload)
                self.quotes[quote.epic] = quote
                if self.onQuote:
                    self.onQuote(quote)

                return quote
            case "ohlc.event":
                bar = OHLCBar.fromDict(payload)
                self.bars[(bar.epic, bar.resolution)] = bar
                if self.onBar:
                    self.onBar(bar)

                return bar
            case "marketData.subscribe" | "OHLCMarketData.subscribe":
                for name, status in (payload.get("subscriptions") or {}).items():
                    logger.info("[Stream :: {}] {}: {}", destination, name, status)
            case "ping":
                logger.info("[Stream] Received ping response")
            case _:
                if data.get("status") == "OK":
                    logger.info(
                        "[Stream] OK for correlation ID: {}",
                        data.get("correlationId", "unknown"),
                    )
                else:
                    logger.warning("[Stream] Unknown message type: {}", data)

        return None

    async def consume(self, ws) -> None:
        async for msg in ws:
            self.dispatch(msg)

        logger.info("[Stream :: {}] Connection closed by server", self.url)

    async def keepalive(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            logger.info("[Stream] Sending ping to keep connection alive...")
            await self.ping()

    async def run(self, duration: float | None = 60, pingInterval: float = 300) -> None:
        """Connect, flush queued subscriptions, and consume until 'duration' elapses.

        A 'duration' of None runs until the server closes the connection.
        Failing to connect raises CapitalComError; a dropped connection is
        logged and ends the run.
        """
        logger.info("[Stream] Connecting to: {}", self.url)

        async with contextlib.AsyncExitStack() as stack:
            try:
                ws = await stack.enter_async_context(
                    websockets.connect(self.url, open_timeout=10, close_timeout=1)
                )
            except (OSError, TimeoutError, websockets.InvalidHandshake, websockets.InvalidURI) as e:
                logger.error("[Stream :: {}] Could not connect: {}", self.url, e)
                raise CapitalComError(f"Could not connect to WebSocket: {e}") from e

            self.activeWS = ws
            logger.info("[Stream :: {}] Connected!", self.url)

            pinger = asyncio.create_task(self.keepalive(pingInterval))

            try:
                queued, self.pending = self.pending, []
                for msg in queued:
                    await self.send(msg)

                await asyncio.wait_for(self.consume(ws), duration)
            except TimeoutError:
                logger.info("[Stream] Time limit reached. Closing connection...")
            except websockets.ConnectionClosed as e:
                logger.error("[Stream :: {}] Connection dropped: {}", self.url, e)
            finally:
                pinger.cancel()
                with contextlib.suppress(asyncio.CancelledError, websockets.ConnectionClosed):
                    await pinger

                self.activeWS = None
