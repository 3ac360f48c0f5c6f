"""Tabular views and summary statistics over historical price bars."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Sequence
from typing import Literal, TypeAlias

import pandas as pd

from capitalcom.engine.models import PriceBar

Trend: TypeAlias = Literal["Upward", "Downward", "Sideways"]

BAR_COLUMNS = [
    "openBid",
    "openAsk",
    "highBid",
    "highAsk",
    "lowBid",
    "lowAsk",
    "closeBid",
    "closeAsk",
    "volume",
]


def barsFrame(bars: Iterable[PriceBar]) -> pd.DataFrame:
    """One row per bar indexed by snapshot time."""
    rows = [dataclasses.asdict(bar) for bar in bars]
    if not rows:
        return pd.DataFrame(columns=BAR_COLUMNS)

    df = pd.DataFrame(rows)
    df["snapshotTime"] = pd.to_datetime(df["snapshotTime"])
    return df.set_index("snapshotTime")[BAR_COLUMNS]


@dataclasses.dataclass(slots=True, frozen=True)
class PriceSummary:
    current: float
    average: float
    minimum: float
    maximum: float
    range: float
    trend: Trend


def trendOf(closes: Sequence[float], threshold: float = 0.01) -> Trend:
    """Compare the mean of the later half of 'closes' against the earlier half.

    Moving more than 'threshold' (fractional) in either direction is a trend."""
    half = len(closes) // 2
    if half == 0:
        return "Sideways"

    s = pd.Series(closes, dtype=float)
    firstAvg = s.iloc[:half].mean()
    secondAvg = s.iloc[half:].mean()

    if secondAvg > firstAvg * (1 + threshold):
        return "Upward"

    if secondAvg < firstAvg * (1 - threshold):
        return "Downward"

    return "Sideways"


def summarizeCloses(closes: Sequence[float], threshold: float = 0.01) -> PriceSummary:
    if not closes:
        raise ValueError("Can't summarize an empty price series")

    s = pd.Series(closes, dtype=float)
    low = float(s.min())
    high = float(s.max())

    return PriceSummary(
        current=float(s.iloc[-1]),
        average=float(s.mean()),
        minimum=low,
        maximum=high,
        range=high - low,
        trend=trendOf(closes, threshold),
    )
