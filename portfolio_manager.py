import logging
from dataclasses import dataclass, asdict
from typing import Optional

import config
from amounts import Dollars, Fraction, Units, validate
from exceptions import (
    InsufficientFunds,
    InsufficientHoldings,
    InvalidAmount,
    NoActivePosition,
    ShortAlreadyActive,
    UnknownAsset,
)
from market_data import ASSET_KEYS

logger = logging.getLogger(__name__)


@dataclass
class TradeReceipt:
    action: str
    asset: str
    units: float
    price: float
    cash_delta: float
    profit: Optional[float] = None   # realized P/L; None for opening trades

    def as_dict(self):
        return asdict(self)


class Holding:
    def __init__(self):
        self.quantity = 0.0
        self.cost_basis = 0.0
        self.last_buy_price = None
        self.bought_during_crash = False

    def add(self, units, cost, price, during_crash=False):
        if units <= 0 or cost < 0:
            raise ValueError("buy must add a positive quantity")
        self.quantity += units
        self.cost_basis += cost
        self.last_buy_price = price
        self.bought_during_crash = self.bought_during_crash or during_crash

    def remove(self, units):
        """Take units out, returning the cost basis they carried."""
        if units <= 0 or units > self.quantity + config.FULL_POSITION_EPSILON:
            raise ValueError("cannot remove more than is held")

        if units >= self.quantity - config.FULL_POSITION_EPSILON:
            reduction = self.cost_basis
            self.quantity = 0.0
            self.cost_basis = 0.0
            self.last_buy_price = None
            self.bought_during_crash = False
            return reduction

        reduction = self.cost_basis * (units / self.quantity)
        self.quantity -= units
        self.cost_basis -= reduction
        return reduction

    def as_dict(self):
        return {
            "quantity": self.quantity,
            "cost_basis": self.cost_basis,
            "last_buy_price": self.last_buy_price,
        }


class ShortPosition:
    def __init__(self):
        self.entry_price = 0.0
        self.value = 0.0
        self.active = False

    def open(self, entry_price, value):
        if self.active:
            raise ValueError("short already active")
        self.entry_price = entry_price
        self.value = value
        self.active = True

    def profit_for(self, notional, price):
        """P/L of `notional` worth of this short at `price` (2x leverage)."""
        return notional * ((self.entry_price - price) / self.entry_price) * config.SHORT_LEVERAGE

    def reduce(self, notional):
        if notional >= self.value - config.FULL_POSITION_EPSILON:
            self.entry_price = 0.0
            self.value = 0.0
            self.active = False
        else:
            self.value -= notional

    def as_dict(self):
        return {"entry_price": self.entry_price, "value": self.value, "active": self.active}


class PortfolioManager:
    def __init__(self, market, starting_cash):
        """
        Holds cash, holdings and shorts and runs every trade.
        `market` is the PriceEngine; only its price(key) is used here.

        Every operation validates and computes first and mutates last, so a
        raised TradeError never leaves a half-applied trade behind.
        """
        self.market = market
        self.starting_cash = float(starting_cash)
        self.cash = float(starting_cash)

        self.holdings = {key: Holding() for key in ASSET_KEYS}
        self.shorts = {key: ShortPosition() for key in ASSET_KEYS}

        self.stats = {
            "trades_executed": 0,
            "profitable_trades": 0,
            "biggest_gain": 0.0,
            "biggest_loss": 0.0,
            "trades_this_round": 0,
            "short_profit": False,
            "crash_buy_profit": False,
        }

    # --------------- HELPERS ---------------
    def _price(self, asset):
        if asset not in self.holdings:
            raise UnknownAsset(f"Unknown asset: {asset!r}")
        return self.market.price(asset)

    def _record(self, profit=None):
        self.stats["trades_executed"] += 1
        self.stats["trades_this_round"] += 1
        if profit is None:
            return
        if profit > 0:
            self.stats["profitable_trades"] += 1
            self.stats["biggest_gain"] = max(self.stats["biggest_gain"], profit)
        elif profit < 0:
            self.stats["biggest_loss"] = max(self.stats["biggest_loss"], -profit)

    def reset_round(self):
        self.stats["trades_this_round"] = 0

    # --------------- VALUE CALCULATION ---------------
    def get_portfolio_value(self):
        total = self.cash
        for key, holding in self.holdings.items():
            if holding.quantity > 0:
                total += holding.quantity * self.market.price(key)
        for key, short in self.shorts.items():
            if short.active:
                total += short.value + short.profit_for(short.value, self.market.price(key))
        return total

    def asset_value(self, asset):
        return self.holdings[asset].quantity * self.market.price(asset)

    def asset_returns(self):
        """Percent return per asset, only for holdings that cost something."""
        returns = {}
        for key, holding in self.holdings.items():
            if holding.cost_basis > 0:
                value = holding.quantity * self.market.price(key)
                returns[key] = (value - holding.cost_basis) / holding.cost_basis * 100
        return returns

    # --------------- BUY LOGIC ---------------
    def buy(self, asset, amount, during_crash=False):
        validate(amount)
        price = self._price(asset)

        if isinstance(amount, Dollars):
            cost = amount.amount
            units = cost / price
        elif isinstance(amount, Fraction):
            cost = self.cash * amount.fraction
            units = cost / price
        else:
            units = amount.units
            cost = units * price

        if cost <= 0:
            raise InsufficientFunds("No cash available")
        if cost > self.cash:
            raise InsufficientFunds(f"Need ${cost:,.2f}, have ${self.cash:,.2f}")

        self.cash -= cost
        self.holdings[asset].add(units, cost, price, during_crash)
        self._record()

        logger.info("Bought %.4f %s @ %.2f for %.2f", units, asset, price, cost)
        return TradeReceipt("buy", asset, units, price, -cost)

    # --------------- SELL LOGIC ---------------
    def sell(self, asset, amount):
        validate(amount)
        price = self._price(asset)
        holding = self.holdings[asset]
        held = holding.quantity

        if held <= 0:
            raise InsufficientHoldings(f"No {asset} to sell")

        if isinstance(amount, Fraction):
            units = held * amount.fraction
        elif isinstance(amount, Units):
            units = amount.units
        else:
            units = amount.amount / price

        if units > held + config.FULL_POSITION_EPSILON:
            raise InsufficientHoldings(f"Requested {units:.4f} {asset}, hold {held:.4f}")
        units = min(units, held)

        proceeds = units * price
        crash_lot = holding.bought_during_crash
        basis_reduction = holding.remove(units)
        profit = proceeds - basis_reduction
        self.cash += proceeds

        if profit > 0 and crash_lot:
            self.stats["crash_buy_profit"] = True
        self._record(profit)

        logger.info("Sold %.4f %s @ %.2f, P/L %.2f", units, asset, price, profit)
        return TradeReceipt("sell", asset, units, price, proceeds, profit)

    # --------------- SHORT LOGIC ---------------
    def short(self, asset, amount):
        validate(amount)
        price = self._price(asset)
        position = self.shorts[asset]

        if position.active:
            raise ShortAlreadyActive(f"Already short {asset}")

        if isinstance(amount, Dollars):
            notional = min(amount.amount, self.cash / config.MARGIN_REQUIREMENT)
        elif isinstance(amount, Fraction):
            notional = self.cash * amount.fraction / config.MARGIN_REQUIREMENT
        else:
            notional = amount.units * price

        margin = notional * config.MARGIN_REQUIREMENT
        if margin <= 0:
            raise InsufficientFunds("No cash available for margin")
        if margin > self.cash:
            raise InsufficientFunds(f"Margin ${margin:,.2f} exceeds cash ${self.cash:,.2f}")

        self.cash -= margin
        position.open(price, notional)
        self._record()

        logger.info("Shorted %s: %.2f notional @ %.2f (margin %.2f)", asset, notional, price, margin)
        return TradeReceipt("short", asset, notional / price, price, -margin)

    # --------------- COVER LOGIC ---------------
    def cover(self, asset, amount=None):
        if amount is not None:
            validate(amount)
        price = self._price(asset)
        position = self.shorts[asset]

        if not position.active:
            raise NoActivePosition(f"No active short on {asset}")

        if amount is None:
            notional = position.value
        elif isinstance(amount, Fraction):
            notional = position.value * amount.fraction
        elif isinstance(amount, Dollars):
            notional = amount.amount
        else:
            notional = amount.units * position.entry_price

        if notional > position.value + config.FULL_POSITION_EPSILON:
            raise InsufficientHoldings(
                f"Cover of ${notional:,.2f} exceeds open short ${position.value:,.2f}")
        notional = min(notional, position.value)

        profit = position.profit_for(notional, price)
        released = notional * config.MARGIN_REQUIREMENT + profit
        units = notional / position.entry_price

        self.cash += released
        position.reduce(notional)

        if profit > 0:
            self.stats["short_profit"] = True
        self._record(profit)

        logger.info("Covered %s: %.2f notional @ %.2f, P/L %.2f", asset, notional, price, profit)
        return TradeReceipt("cover", asset, units, price, released, profit)

    # --------------- OPPORTUNITY GAMBLES ---------------
    def settle_gamble(self, asset, stake_fraction, win_probability, rng):
        if not 0 < stake_fraction <= 1:
            raise InvalidAmount(f"Stake fraction must be in (0, 1], got {stake_fraction!r}")
        price = self._price(asset)

        stake = self.cash * stake_fraction
        if stake <= 0:
            raise InsufficientFunds("No cash to stake")

        profit = stake if rng.random() < win_probability else -stake
        self.cash += profit
        self._record(profit)

        logger.info("Gamble on %s: stake %.2f, P/L %.2f", asset, stake, profit)
        return TradeReceipt("gamble", asset, 0.0, price, profit, profit)

    # --------------- SNAPSHOT ---------------
    def holdings_snapshot(self):
        return {k: h.as_dict() for k, h in self.holdings.items()}

    def snapshot(self):
        return {
            "cash": self.cash,
            "holdings": self.holdings_snapshot(),
            "shorts": {k: s.as_dict() for k, s in self.shorts.items()},
        }
