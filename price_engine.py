import logging

import numpy as np

from asset import MarketAsset, Trend
from market_data import ASSETS

logger = logging.getLogger(__name__)

# 5% average move across the last few ticks reads as maximum stress
STRESS_SCALE = 20
STRESS_WINDOW = 3


class PriceEngine:
    def __init__(self, settings, rng=None):
        self.settings = settings
        self.rng = rng if rng is not None else np.random.default_rng()
        self.assets = {key: MarketAsset(spec) for key, spec in ASSETS.items()}

    def advance(self, news_impact=None):
        """
        Move every asset one tick. news_impact maps asset -> multiplier and
        only applies to the assets it names.
        Returns (prices, trends) snapshots taken after the tick.
        """
        news_impact = news_impact or {}
        for key, asset in self.assets.items():
            asset.apply_tick(self.settings, self.rng, news_impact.get(key))
        return self.prices(), self.trends()

    # ----------------------------------------------------
    # SNAPSHOTS
    # ----------------------------------------------------
    def prices(self):
        return {key: a.current_price for key, a in self.assets.items()}

    def trends(self):
        return {key: a.trend.as_dict() for key, a in self.assets.items()}

    def histories(self):
        return {key: list(a.history) for key, a in self.assets.items()}

    def price(self, key):
        return self.assets[key].current_price

    def set_trend(self, key, direction, strength):
        self.assets[key].trend.set(direction, strength)

    def price_change_pct(self, key):
        return self.assets[key].change_pct()

    def change_since_start(self, key):
        return self.assets[key].change_since_start()

    def market_stress(self):
        return market_stress(self.histories())


def advance(prices, trends, news_impact, settings, rng):
    """
    Functional form of one market tick over plain dicts.
    Inputs are left untouched; returns (new_prices, new_trends).
    """
    new_prices, new_trends = {}, {}
    news_impact = news_impact or {}
    for key, price in prices.items():
        asset = MarketAsset(ASSETS[key])
        asset.current_price = price
        asset.last_price = price
        trend = trends[key]
        asset.trend = Trend(trend["direction"], trend["strength"])
        new_prices[key] = asset.apply_tick(settings, rng, news_impact.get(key))
        new_trends[key] = asset.trend.as_dict()
    return new_prices, new_trends


def market_stress(histories):
    """0..1 stress level from the average absolute move of recent ticks."""
    total, samples = 0.0, 0
    for history in histories.values():
        if len(history) < STRESS_WINDOW:
            continue
        recent = history[-STRESS_WINDOW:]
        for prev, cur in zip(recent, recent[1:]):
            if prev:
                total += abs((cur - prev) / prev)
                samples += 1

    if samples == 0:
        return 0.0
    return min(total / samples * STRESS_SCALE, 1.0)
