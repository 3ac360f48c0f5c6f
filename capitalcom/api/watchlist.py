"""Watchlist endpoints."""
from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from capitalcom.engine.session import SessionManager


class WatchlistApi:
    def __init__(self, session: SessionManager):
        self.session = session

    def getWatchlists(self) -> dict[str, Any]:
        return self.session.get("/watchlists")

    def getWatchlist(self, watchlistId: str) -> dict[str, Any]:
        return self.session.get(f"/watchlists/{watchlistId}")

    def createWatchlist(self, name: str, epics: Iterable[str] = ()) -> dict[str, Any]:
        return self.session.post("/watchlists", dict(name=name, epics=list(epics)))

    def updateWatchlist(self, watchlistId: str, updates: dict[str, Any]) -> dict[str, Any]:
        return self.session.put(f"/watchlists/{watchlistId}", updates)

    def deleteWatchlist(self, watchlistId: str) -> dict[str, Any]:
        return self.session.delete(f"/watchlists/{watchlistId}")

    def addInstrument(self, watchlistId: str, epic: str) -> dict[str, Any]:
        return self.session.put(f"/watchlists/{watchlistId}/{epic}")

    def removeInstrument(self, watchlistId: str, epic: str) -> dict[str, Any]:
        return self.session.delete(f"/watchlists/{watchlistId}/{epic}")
