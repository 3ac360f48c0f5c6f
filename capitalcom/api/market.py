"""Market data endpoints: server time, search, details, prices, navigation, sentiment."""
from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import pandas as pd

from capitalcom.engine.analysis import barsFrame
from capitalcom.engine.models import Market, PriceBar
from capitalcom.engine.session import SessionManager
from capitalcom.engine.transport import parseJson


class MarketApi:
    def __init__(self, session: SessionManager):
        self.session = session

    def getTime(self) -> dict[str, Any]:
        """Server time. This is the only endpoint which needs no session."""
        return parseJson(self.session.transport.get("/time"))

    def searchMarkets(
        self, searchTerm: str | None = None, epics: Iterable[str] | None = None
    ) -> dict[str, Any]:
        query: dict[str, Any] = {}

        if searchTerm is not None:
            query["searchTerm"] = searchTerm

        if epics is not None:
            query["epics"] = ",".join(epics)

        return self.session.get("/markets", query)

    def getMarket(self, epic: str) -> dict[str, Any]:
        return self.session.get(f"/markets/{epic}")

    def getPrices(
        self,
        epic: str,
        resolution: str = "DAY",
        max: int | None = None,
        start: str | None = None,
        end: str | None = None,
    ) -> dict[str, Any]:
        """Historical bars for 'epic'.

        'start' and 'end' are sent as the 'from' / 'to' query parameters
        (ISO timestamps like 2024-01-01T00:00:00)."""
        query: dict[str, Any] = dict(resolution=resolution)

        if max is not None:
            query["max"] = max

        if start is not None:
            query["from"] = start

        if end is not None:
            query["to"] = end

        return self.session.get(f"/prices/{epic}", query)

    def getMarketNavigation(self) -> dict[str, Any]:
        return self.session.get("/marketnavigation")

    def getMarketNavigationNode(self, nodeId: str) -> dict[str, Any]:
        return self.session.get(f"/marketnavigation/{nodeId}")

    def getClientSentiment(self, marketIds: Iterable[str] | None = None) -> dict[str, Any]:
        query = {}
        if marketIds is not None:
            query["marketIds"] = ",".join(marketIds)

        return self.session.get("/clientsentiment", query)

    def getMarketClientSentiment(self, marketId: str) -> dict[str, Any]:
        return self.session.get(f"/clientsentiment/{marketId}")

    # ------------------------------------------------------------------
    # Typed views
    # ------------------------------------------------------------------

    def markets(
        self, searchTerm: str | None = None, epics: Iterable[str] | None = None
    ) -> list[Market]:
        found = self.searchMarkets(searchTerm, epics)
        return [Market.fromApi(m) for m in found.get("markets") or []]

    def market(self, epic: str) -> Market:
        return Market.fromApi(self.getMarket(epic))

    def prices(self, epic: str, resolution: str = "DAY", max: int | None = None, **kwargs) -> list[PriceBar]:
        found = self.getPrices(epic, resolution, max, **kwargs)
        return [PriceBar.fromDict(p) for p in found.get("prices") or []]

    def pricesFrame(self, epic: str, resolution: str = "DAY", max: int | None = None, **kwargs) -> pd.DataFrame:
        return barsFrame(self.prices(epic, resolution, max, **kwargs))
