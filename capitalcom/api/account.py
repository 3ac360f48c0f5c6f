"""Account endpoints: accounts list and trading preferences."""
from __future__ import annotations

from typing import Any

from capitalcom.engine.session import SessionManager


class AccountApi:
    def __init__(self, session: SessionManager):
        self.session = session

    def getAccounts(self) -> dict[str, Any]:
        return self.session.get("/accounts")

    def getPreferences(self) -> dict[str, Any]:
        return self.session.get("/accounts/preferences")

    def updatePreferences(self, preferences: dict[str, Any]) -> dict[str, Any]:
        return self.session.put("/accounts/preferences", preferences)

    def setHedgingMode(self, enabled: bool) -> dict[str, Any]:
        return self.updatePreferences(dict(hedgingMode=enabled))

    def updateLeverages(self, leverages: dict[str, int]) -> dict[str, Any]:
        """Set leverage per instrument type, e.g. {"SHARES": 5, "CURRENCIES": 30}."""
        return self.updatePreferences(dict(leverages=leverages))
