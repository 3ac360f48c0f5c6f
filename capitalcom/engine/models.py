"""Data-transfer objects mirroring the vendor's JSON records.

Every field defaults to zero/empty when missing (or null) in the source JSON.
``fromDict()`` reads a flat record using the vendor's own field names;
``fromApi()`` reads the nested shapes the REST endpoints actually return.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Literal, TypeAlias

import whenever

Direction: TypeAlias = Literal["BUY", "SELL"]


def _num(data: dict[str, Any], key: str, default: float = 0.0) -> float:
    if (value := data.get(key)) is None:
        return default

    return float(value)


def _maybe(data: dict[str, Any], key: str) -> float | None:
    if (value := data.get(key)) is None:
        return None

    return float(value)


def _str(data: dict[str, Any], key: str) -> str:
    return data.get(key) or ""


@dataclass(slots=True)
class Market:
    epic: str = ""
    instrumentName: str = ""
    marketStatus: str = ""
    bid: float = 0.0
    offer: float = 0.0
    netChange: float = 0.0
    percentageChange: float = 0.0
    high: float = 0.0
    low: float = 0.0
    updateTime: str = ""

    @classmethod
    def fromDict(cls, data: dict[str, Any]) -> Market:
        return cls(
            epic=_str(data, "epic"),
            instrumentName=_str(data, "instrumentName"),
            marketStatus=_str(data, "marketStatus"),
            bid=_num(data, "bid"),
            offer=_num(data, "offer"),
            netChange=_num(data, "netChange"),
            percentageChange=_num(data, "percentageChange"),
            high=_num(data, "high"),
            low=_num(data, "low"),
            updateTime=_str(data, "updateTime"),
        )

    @classmethod
    def fromApi(cls, data: dict[str, Any]) -> Market:
        """Read either a flat search result or a {instrument, snapshot} detail record."""
        if "snapshot" not in data:
            return cls.fromDict(data)

        instrument = data.get("instrument") or {}
        return cls.fromDict(
            data["snapshot"]
            | dict(epic=instrument.get("epic"), instrumentName=instrument.get("name"))
        )

    @property
    def spread(self) -> float:
        return self.offer - self.bid

    @property
    def midPrice(self) -> float:
        return (self.bid + self.offer) / 2

    def isTrading(self) -> bool:
        return self.marketStatus.upper() == "TRADEABLE"

    def isRising(self) -> bool:
        return self.netChange > 0

    def toDict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass(slots=True)
class Position:
    dealId: str = ""
    epic: str = ""
    direction: str = ""
    size: float = 0.0
    level: float = 0.0
    stopLevel: float | None = None
    limitLevel: float | None = None
    currency: str = ""
    profit: float = 0.0
    status: str = ""
    createdDate: str = ""

    @classmethod
    def fromDict(cls, data: dict[str, Any]) -> Position:
        return cls(
            dealId=_str(data, "dealId"),
            epic=_str(data, "epic"),
            direction=_str(data, "direction"),
            size=_num(data, "size"),
            level=_num(data, "level"),
            stopLevel=_maybe(data, "stopLevel"),
            limitLevel=_maybe(data, "limitLevel"),
            currency=_str(data, "currency"),
            profit=_num(data, "profit"),
            status=_str(data, "status"),
            createdDate=_str(data, "createdDate"),
        )

    @classmethod
    def fromApi(cls, row: dict[str, Any]) -> Position:
        """Read a {position, market} row from GET /positions."""
        if "position" not in row:
            return cls.fromDict(row)

        position = row["position"]
        market = row.get("market") or {}

        # unrealized P&L is reported as 'upl' on live rows
        profit = position.get("profit", position.get("upl"))

        return cls.fromDict(
            position
            | dict(
                epic=position.get("epic") or market.get("epic"),
                profit=profit,
                status=position.get("status") or market.get("marketStatus"),
            )
        )

    def isProfitable(self) -> bool:
        return self.profit > 0

    def isLong(self) -> bool:
        return self.direction.upper() == "BUY"

    def isShort(self) -> bool:
        return self.direction.upper() == "SELL"

    def toDict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass(slots=True)
class WorkingOrder:
    dealId: str = ""
    epic: str = ""
    direction: str = ""
    size: float = 0.0
    level: float = 0.0
    type: str = ""
    stopLevel: float | None = None
    limitLevel: float | None = None
    timeInForce: str = ""
    goodTillDate: str | None = None
    createdDate: str = ""

    @classmethod
    def fromDict(cls, data: dict[str, Any]) -> WorkingOrder:
        return cls(
            dealId=_str(data, "dealId"),
            epic=_str(data, "epic"),
            direction=_str(data, "direction"),
            size=_num(data, "size"),
            level=_num(data, "level"),
            type=_str(data, "type"),
            stopLevel=_maybe(data, "stopLevel"),
            limitLevel=_maybe(data, "limitLevel"),
            timeInForce=_str(data, "timeInForce"),
            goodTillDate=data.get("goodTillDate"),
            createdDate=_str(data, "createdDate"),
        )

    @classmethod
    def fromApi(cls, row: dict[str, Any]) -> WorkingOrder:
        """Read a {workingOrderData, marketData} row from GET /workingorders.

        The nested record names its fields orderSize/orderLevel/orderType."""
        if "workingOrderData" not in row:
            return cls.fromDict(row)

        order = row["workingOrderData"]
        market = row.get("marketData") or {}

        return cls.fromDict(
            order
            | dict(
                epic=order.get("epic") or market.get("epic"),
                size=order.get("orderSize", order.get("size")),
                level=order.get("orderLevel", order.get("level")),
                type=order.get("orderType", order.get("type")),
            )
        )

    def isBuyOrder(self) -> bool:
        return self.direction.upper() == "BUY"

    def isSellOrder(self) -> bool:
        return self.direction.upper() == "SELL"

    def isLimitOrder(self) -> bool:
        return self.type.upper() == "LIMIT"

    def isStopOrder(self) -> bool:
        return self.type.upper() == "STOP"

    def isGoodTillCancelled(self) -> bool:
        return self.timeInForce.upper() == "GOOD_TILL_CANCELLED"

    def toDict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass(slots=True)
class DealConfirmation:
    """Resolution of a deal reference returned on order submission."""

    dealReference: str = ""
    dealId: str = ""
    dealStatus: str = ""
    status: str = ""
    epic: str = ""
    direction: str = ""
    size: float = 0.0
    level: float = 0.0
    reason: str = ""
    affectedDeals: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def fromDict(cls, data: dict[str, Any]) -> DealConfirmation:
        return cls(
            dealReference=_str(data, "dealReference"),
            dealId=_str(data, "dealId"),
            dealStatus=_str(data, "dealStatus"),
            status=_str(data, "status"),
            epic=_str(data, "epic"),
            direction=_str(data, "direction"),
            size=_num(data, "size"),
            level=_num(data, "level"),
            reason=_str(data, "reason"),
            affectedDeals=list(data.get("affectedDeals") or []),
        )

    @property
    def accepted(self) -> bool:
        return self.dealStatus.upper() == "ACCEPTED"


@dataclass(slots=True)
class PriceBar:
    """One historical bar from GET /prices/{epic}; each price has bid and ask sides."""

    snapshotTime: str = ""
    openBid: float = 0.0
    openAsk: float = 0.0
    highBid: float = 0.0
    highAsk: float = 0.0
    lowBid: float = 0.0
    lowAsk: float = 0.0
    closeBid: float = 0.0
    closeAsk: float = 0.0
    volume: float = 0.0

    @classmethod
    def fromDict(cls, data: dict[str, Any]) -> PriceBar:
        def side(name: str) -> dict[str, Any]:
            return data.get(name) or {}

        return cls(
            snapshotTime=data.get("snapshotTimeUTC") or _str(data, "snapshotTime"),
            openBid=_num(side("openPrice"), "bid"),
            openAsk=_num(side("openPrice"), "ask"),
            highBid=_num(side("highPrice"), "bid"),
            highAsk=_num(side("highPrice"), "ask"),
            lowBid=_num(side("lowPrice"), "bid"),
            lowAsk=_num(side("lowPrice"), "ask"),
            closeBid=_num(side("closePrice"), "bid"),
            closeAsk=_num(side("closePrice"), "ask"),
            volume=_num(data, "lastTradedVolume"),
        )

    @property
    def closeMid(self) -> float:
        return (self.closeBid + self.closeAsk) / 2

    @property
    def range(self) -> float:
        return self.highBid - self.lowBid


@dataclass(slots=True)
class Quote:
    """A streamed top-of-book update ('quote' destination)."""

    epic: str = ""
    bid: float = 0.0
    ofr: float = 0.0
    bidQty: float = 0.0
    ofrQty: float = 0.0
    timestamp: int = 0  # milliseconds since epoch

    @classmethod
    def fromDict(cls, data: dict[str, Any]) -> Quote:
        return cls(
            epic=_str(data, "epic"),
            bid=_num(data, "bid"),
            ofr=_num(data, "ofr"),
            bidQty=_num(data, "bidQty"),
            ofrQty=_num(data, "ofrQty"),
            timestamp=int(data.get("timestamp") or 0),
        )

    @property
    def spread(self) -> float:
        return self.ofr - self.bid

    @property
    def mid(self) -> float:
        return (self.bid + self.ofr) / 2

    @property
    def when(self) -> whenever.Instant:
        return whenever.Instant.from_timestamp_millis(self.timestamp)


@dataclass(slots=True)
class OHLCBar:
    """A streamed candle update ('ohlc.event' destination)."""

    epic: str = ""
    resolution: str = ""
    type: str = ""
    priceType: str = ""
    t: int = 0  # milliseconds since epoch
    o: float = 0.0
    h: float = 0.0
    l: float = 0.0
    c: float = 0.0

    @classmethod
    def fromDict(cls, data: dict[str, Any]) -> OHLCBar:
        return cls(
            epic=_str(data, "epic"),
            resolution=_str(data, "resolution"),
            type=_str(data, "type"),
            priceType=_str(data, "priceType"),
            t=int(data.get("t") or 0),
            o=_num(data, "o"),
            h=_num(data, "h"),
            l=_num(data, "l"),
            c=_num(data, "c"),
        )

    @property
    def when(self) -> whenever.Instant:
        return whenever.Instant.from_timestamp_millis(self.t)
