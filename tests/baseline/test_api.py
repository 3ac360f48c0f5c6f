"""Tests for capitalcom.api: endpoint paths, query strings, and bodies."""
import pytest

from capitalcom.engine.errors import AuthenticationError
from capitalcom.engine.models import DealConfirmation, Market, Position, PriceBar, WorkingOrder
from tests.conftest import body


def sent(fake):
    r = fake.last()
    return r.method, fake.pathOf(r), dict(r.url.params), body(r)


class TestAccountApi:
    def test_get_accounts(self, loggedIn, fake):
        fake.route("GET", "/accounts", json={"accounts": [{"accountId": "ACC-1"}]})

        assert loggedIn.account.getAccounts()["accounts"][0]["accountId"] == "ACC-1"
        assert sent(fake) == ("GET", "/accounts", {}, None)

    def test_preferences(self, loggedIn, fake):
        fake.route("GET", "/accounts/preferences", json={"hedgingMode": False})
        fake.route("PUT", "/accounts/preferences", json={"status": "SUCCESS"})

        assert loggedIn.account.getPreferences() == {"hedgingMode": False}

        loggedIn.account.setHedgingMode(True)
        assert sent(fake) == ("PUT", "/accounts/preferences", {}, {"hedgingMode": True})

        loggedIn.account.updateLeverages({"SHARES": 5})
        assert body(fake.last()) == {"leverages": {"SHARES": 5}}


class TestMarketApi:
    def test_time_needs_no_session(self, client, fake):
        assert client.market.getTime() == {"serverTime": fake.timeStamp}
        assert "CST" not in fake.last().headers

    def test_search(self, loggedIn, fake):
        fake.route("GET", "/markets", json={"markets": [{"epic": "GOLD", "bid": 1, "offer": 2}]})

        found = loggedIn.market.markets("gold")
        assert found == [Market(epic="GOLD", bid=1.0, offer=2.0)]
        assert sent(fake) == ("GET", "/markets", {"searchTerm": "gold"}, None)

        loggedIn.market.searchMarkets(epics=["GOLD", "SILVER"])
        assert sent(fake)[2] == {"epics": "GOLD,SILVER"}

    def test_market_detail(self, loggedIn, fake):
        fake.route(
            "GET",
            "/markets/GOLD",
            json={"instrument": {"epic": "GOLD", "name": "Gold"}, "snapshot": {"bid": 1, "offer": 3}},
        )

        m = loggedIn.market.market("GOLD")
        assert m.instrumentName == "Gold"
        assert m.midPrice == 2

    def test_prices(self, loggedIn, fake):
        fake.route(
            "GET",
            "/prices/GOLD",
            json={
                "prices": [
                    {
                        "snapshotTimeUTC": "2024-01-01T00:00:00",
                        "closePrice": {"bid": 1, "ask": 2},
                    }
                ]
            },
        )

        bars = loggedIn.market.prices("GOLD", "HOUR", 5, start="2024-01-01T00:00:00")
        assert bars == [PriceBar(snapshotTime="2024-01-01T00:00:00", closeBid=1, closeAsk=2)]
        assert sent(fake)[2] == {"resolution": "HOUR", "max": "5", "from": "2024-01-01T00:00:00"}

        df = loggedIn.market.pricesFrame("GOLD")
        assert len(df) == 1
        assert sent(fake)[2] == {"resolution": "DAY"}

    def test_navigation_and_sentiment(self, loggedIn, fake):
        fake.route("GET", "/marketnavigation", json={"nodes": []})
        fake.route("GET", "/marketnavigation/n1", json={"nodes": []})
        fake.route("GET", "/clientsentiment", json={"clientSentiments": []})
        fake.route("GET", "/clientsentiment/GOLD", json={"marketId": "GOLD"})

        loggedIn.market.getMarketNavigation()
        loggedIn.market.getMarketNavigationNode("n1")
        assert sent(fake)[1] == "/marketnavigation/n1"

        loggedIn.market.getClientSentiment(["GOLD", "SILVER"])
        assert sent(fake)[2] == {"marketIds": "GOLD,SILVER"}

        assert loggedIn.market.getMarketClientSentiment("GOLD") == {"marketId": "GOLD"}


class TestTradingApi:
    def test_open_position_minimal(self, loggedIn, fake):
        fake.route("POST", "/positions", json={"dealReference": "o_1"})

        assert loggedIn.trading.openPosition("GOLD", "buy", 1) == {"dealReference": "o_1"}
        assert sent(fake)[3] == {
            "epic": "GOLD",
            "direction": "BUY",
            "size": 1,
            "orderType": "MARKET",
            "timeInForce": "FILL_OR_KILL",
            "guaranteedStop": False,
        }

    def test_open_position_optional_fields(self, loggedIn, fake):
        fake.route("POST", "/positions", json={"dealReference": "o_2"})

        loggedIn.trading.openPosition("GOLD", "SELL", 2, stopLevel=2100, trailingStop=True)
        data = sent(fake)[3]
        assert data["stopLevel"] == 2100
        assert data["trailingStop"] is True
        assert "limitLevel" not in data
        assert "level" not in data

    def test_close_position_sends_body(self, loggedIn, fake):
        fake.route("DELETE", "/positions/D1", json={"dealReference": "c_1"})

        loggedIn.trading.closePosition("D1", "sell", 0.5)
        assert sent(fake) == ("DELETE", "/positions/D1", {}, {"direction": "SELL", "size": 0.5})

        loggedIn.trading.closePosition("D1", "SELL")
        assert sent(fake)[3] == {"direction": "SELL"}

    def test_update_position(self, loggedIn, fake):
        fake.route("PUT", "/positions/D1", json={"dealReference": "u_1"})

        loggedIn.trading.updatePosition("D1", {"limitLevel": 2200})
        assert sent(fake) == ("PUT", "/positions/D1", {}, {"limitLevel": 2200})

    def test_positions_typed(self, loggedIn, fake):
        fake.route(
            "GET",
            "/positions",
            json={"positions": [{"position": {"dealId": "D1", "direction": "BUY", "upl": 3}, "market": {"epic": "GOLD"}}]},
        )

        [p] = loggedIn.trading.positions()
        assert isinstance(p, Position)
        assert p.epic == "GOLD"
        assert p.profit == 3

    def test_working_orders(self, loggedIn, fake):
        fake.route("POST", "/workingorders", json={"dealReference": "w_1"})
        fake.route("DELETE", "/workingorders/W1", json={"dealReference": "w_2"})
        fake.route(
            "GET",
            "/workingorders",
            json={"workingOrders": [{"workingOrderData": {"dealId": "W1", "orderType": "LIMIT"}, "marketData": {"epic": "GOLD"}}]},
        )

        loggedIn.trading.createWorkingOrder("GOLD", "buy", 1, 1900, goodTillDate="2030-01-01T00:00:00")
        assert sent(fake)[3] == {
            "epic": "GOLD",
            "direction": "BUY",
            "size": 1,
            "level": 1900,
            "type": "LIMIT",
            "timeInForce": "GOOD_TILL_CANCELLED",
            "guaranteedStop": False,
            "goodTillDate": "2030-01-01T00:00:00",
        }

        [o] = loggedIn.trading.workingOrders()
        assert isinstance(o, WorkingOrder)
        assert o.isLimitOrder()

        loggedIn.trading.cancelWorkingOrder("W1")
        assert sent(fake)[:2] == ("DELETE", "/workingorders/W1")

    def test_confirmation(self, loggedIn, fake):
        fake.route("GET", "/confirms/o_1", json={"dealReference": "o_1", "dealStatus": "ACCEPTED"})

        c = loggedIn.trading.confirmation("o_1")
        assert isinstance(c, DealConfirmation)
        assert c.accepted

    def test_history_queries(self, loggedIn, fake):
        fake.route("GET", "/history/activity", json={"activities": []})
        fake.route("GET", "/history/transactions", json={"transactions": []})

        loggedIn.trading.getActivityHistory(lastPeriod="600", start="2024-01-01T00:00:00")
        assert sent(fake)[2] == {
            "detailed": "false",
            "lastPeriod": "600",
            "from": "2024-01-01T00:00:00",
        }

        loggedIn.trading.getActivityHistory(detailed=True, dealId="D1")
        assert sent(fake)[2] == {"detailed": "true", "dealId": "D1"}

        loggedIn.trading.getTransactionHistory(type="DEPOSIT", end="2024-02-01T00:00:00")
        assert sent(fake)[2] == {"type": "DEPOSIT", "to": "2024-02-01T00:00:00"}


class TestWatchlistApi:
    def test_crud(self, loggedIn, fake):
        for method, path in [
            ("GET", "/watchlists"),
            ("GET", "/watchlists/L1"),
            ("POST", "/watchlists"),
            ("PUT", "/watchlists/L1"),
            ("DELETE", "/watchlists/L1"),
            ("PUT", "/watchlists/L1/GOLD"),
            ("DELETE", "/watchlists/L1/GOLD"),
        ]:
            fake.route(method, path, json={"status": "SUCCESS"})

        wl = loggedIn.watchlist

        wl.createWatchlist("metals", ["GOLD"])
        assert sent(fake) == ("POST", "/watchlists", {}, {"name": "metals", "epics": ["GOLD"]})

        wl.createWatchlist("empty")
        assert sent(fake)[3] == {"name": "empty", "epics": []}

        wl.addInstrument("L1", "GOLD")
        assert sent(fake)[:2] == ("PUT", "/watchlists/L1/GOLD")

        wl.removeInstrument("L1", "GOLD")
        assert sent(fake)[:2] == ("DELETE", "/watchlists/L1/GOLD")

        wl.updateWatchlist("L1", {"name": "renamed"})
        assert sent(fake)[3] == {"name": "renamed"}

        wl.getWatchlists()
        wl.getWatchlist("L1")
        wl.deleteWatchlist("L1")
        assert sent(fake)[:2] == ("DELETE", "/watchlists/L1")


class TestGate:
    @pytest.mark.parametrize(
        "call",
        [
            lambda c: c.account.getAccounts(),
            lambda c: c.market.markets("gold"),
            lambda c: c.trading.openPosition("GOLD", "BUY", 1),
            lambda c: c.trading.closePosition("D1", "SELL"),
            lambda c: c.watchlist.getWatchlists(),
            lambda c: c.ping(),
        ],
    )
    def test_facades_require_login(self, client, fake, call):
        with pytest.raises(AuthenticationError):
            call(client)

        assert fake.requests == []

    def test_facade_calls_slide_expiry(self, loggedIn, fake, clock):
        fake.route("GET", "/accounts", json={})

        clock.advance(500)
        loggedIn.account.getAccounts()
        clock.advance(500)

        assert loggedIn.session.hasValidSession()
