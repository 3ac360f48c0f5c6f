"""REST endpoint facades. Each call goes through the session gate."""

from capitalcom.api.account import AccountApi
from capitalcom.api.market import MarketApi
from capitalcom.api.trading import TradingApi
from capitalcom.api.watchlist import WatchlistApi

__all__ = ["AccountApi", "MarketApi", "TradingApi", "WatchlistApi"]
