import numpy as np
import pytest

from market_data import get_difficulty
from portfolio_manager import PortfolioManager
from price_engine import PriceEngine


class ScriptedRng:
    """
    Stand-in for numpy's Generator that replays queued values.
    Empty queues fall back to "nothing happens": random() -> 0.99,
    uniform(a, b) -> midpoint, integers(lo, hi) -> lo.
    """

    def __init__(self, random=(), uniform=(), integers=()):
        self._random = list(random)
        self._uniform = list(uniform)
        self._integers = list(integers)

    def random(self):
        return self._random.pop(0) if self._random else 0.99

    def uniform(self, low, high):
        return self._uniform.pop(0) if self._uniform else (low + high) / 2

    def integers(self, low, high):
        return self._integers.pop(0) if self._integers else low


@pytest.fixture
def scripted():
    return ScriptedRng


@pytest.fixture
def normal():
    return get_difficulty("normal")


@pytest.fixture
def engine(normal):
    return PriceEngine(normal, np.random.default_rng(1234))


@pytest.fixture
def set_price(engine):
    def _set(key, price):
        engine.assets[key].current_price = price
    return _set


@pytest.fixture
def ledger(engine):
    return PortfolioManager(engine, 10000)
