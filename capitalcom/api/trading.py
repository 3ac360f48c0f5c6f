"""Trading endpoints: positions, working orders, confirmations, history.

Order submission returns only a deal reference; resolve it with
``getDealConfirmation()`` to learn whether the deal was accepted.
"""
from __future__ import annotations

from typing import Any

from capitalcom.engine.models import DealConfirmation, Direction, Position, WorkingOrder
from capitalcom.engine.session import SessionManager


def _withOptional(data: dict[str, Any], **optional: Any) -> dict[str, Any]:
    """Add only the optional fields which were actually provided."""
    return data | {k: v for k, v in optional.items() if v is not None}


class TradingApi:
    def __init__(self, session: SessionManager):
        self.session = session

    # ------------------------------------------------------------------
    # Positions
    # ------------------------------------------------------------------

    def getPositions(self) -> dict[str, Any]:
        return self.session.get("/positions")

    def getPosition(self, dealId: str) -> dict[str, Any]:
        return self.session.get(f"/positions/{dealId}")

    def openPosition(
        self,
        epic: str,
        direction: Direction | str,
        size: float,
        orderType: str = "MARKET",
        timeInForce: str = "FILL_OR_KILL",
        level: float | None = None,
        stopLevel: float | None = None,
        limitLevel: float | None = None,
        guaranteedStop: bool = False,
        **options: Any,
    ) -> dict[str, Any]:
        """Open a position. Extra vendor fields (trailingStop, stopDistance, ...) go in 'options'."""
        data = dict(
            epic=epic,
            direction=direction.upper(),
            size=size,
            orderType=orderType,
            timeInForce=timeInForce,
            guaranteedStop=guaranteedStop,
        ) | options

        return self.session.post(
            "/positions",
            _withOptional(data, level=level, stopLevel=stopLevel, limitLevel=limitLevel),
        )

    def updatePosition(self, dealId: str, updates: dict[str, Any]) -> dict[str, Any]:
        return self.session.put(f"/positions/{dealId}", updates)

    def closePosition(
        self, dealId: str, direction: Direction | str, size: float | None = None
    ) -> dict[str, Any]:
        """Close (all of, or 'size' of) a position; 'direction' is the closing side."""
        data = _withOptional(dict(direction=direction.upper()), size=size)
        return self.session.delete(f"/positions/{dealId}", data)

    # ------------------------------------------------------------------
    # Working orders
    # ------------------------------------------------------------------

    def getWorkingOrders(self) -> dict[str, Any]:
        return self.session.get("/workingorders")

    def getWorkingOrder(self, dealId: str) -> dict[str, Any]:
        return self.session.get(f"/workingorders/{dealId}")

    def createWorkingOrder(
        self,
        epic: str,
        direction: Direction | str,
        size: float,
        level: float,
        type: str = "LIMIT",
        timeInForce: str = "GOOD_TILL_CANCELLED",
        goodTillDate: str | None = None,
        stopLevel: float | None = None,
        limitLevel: float | None = None,
        guaranteedStop: bool = False,
    ) -> dict[str, Any]:
        data = dict(
            epic=epic,
            direction=direction.upper(),
            size=size,
            level=level,
            type=type,
            timeInForce=timeInForce,
            guaranteedStop=guaranteedStop,
        )

        return self.session.post(
            "/workingorders",
            _withOptional(
                data, goodTillDate=goodTillDate, stopLevel=stopLevel, limitLevel=limitLevel
            ),
        )

    def updateWorkingOrder(self, dealId: str, updates: dict[str, Any]) -> dict[str, Any]:
        return self.session.put(f"/workingorders/{dealId}", updates)

    def cancelWorkingOrder(self, dealId: str) -> dict[str, Any]:
        return self.session.delete(f"/workingorders/{dealId}")

    # ------------------------------------------------------------------
    # Confirmations and history
    # ------------------------------------------------------------------

    def getDealConfirmation(self, dealReference: str) -> dict[str, Any]:
        return self.session.get(f"/confirms/{dealReference}")

    def getActivityHistory(
        self,
        start: str | None = None,
        end: str | None = None,
        lastPeriod: str | None = None,
        detailed: bool = False,
        dealId: str | None = None,
        filter: str | None = None,
    ) -> dict[str, Any]:
        """Account activity; 'lastPeriod' is a duration like '1d' or '600'."""
        query = _withOptional(
            dict(detailed="true" if detailed else "false"),
            lastPeriod=lastPeriod,
            dealId=dealId,
            filter=filter,
        )

        # 'from' is a keyword, so these are renamed on our side only
        query |= {k: v for k, v in (("from", start), ("to", end)) if v is not None}

        return self.session.get("/history/activity", query)

    def getTransactionHistory(
        self,
        start: str | None = None,
        end: str | None = None,
        lastPeriod: str | None = None,
        type: str | None = None,
    ) -> dict[str, Any]:
        query = _withOptional({}, lastPeriod=lastPeriod, type=type)
        query |= {k: v for k, v in (("from", start), ("to", end)) if v is not None}

        return self.session.get("/history/transactions", query)

    # ------------------------------------------------------------------
    # Typed views
    # ------------------------------------------------------------------

    def positions(self) -> list[Position]:
        return [Position.fromApi(p) for p in self.getPositions().get("positions") or []]

    def workingOrders(self) -> list[WorkingOrder]:
        found = self.getWorkingOrders().get("workingOrders") or []
        return [WorkingOrder.fromApi(o) for o in found]

    def confirmation(self, dealReference: str) -> DealConfirmation:
        return DealConfirmation.fromDict(self.getDealConfirmation(dealReference))
