import math

import pytest

from amounts import Dollars, Fraction, Units
from exceptions import (
    InsufficientFunds,
    InsufficientHoldings,
    InvalidAmount,
    NoActivePosition,
    ShortAlreadyActive,
    UnknownAsset,
)


def state_of(ledger):
    return ledger.snapshot(), dict(ledger.stats)


# ---------------------------------------------------------
# Buy
# ---------------------------------------------------------
def test_buy_dollars_at_240(ledger):
    receipt = ledger.buy("stocks", Dollars(1000))

    assert ledger.cash == 9000
    assert ledger.holdings["stocks"].quantity == pytest.approx(4.1667, abs=1e-4)
    assert ledger.holdings["stocks"].cost_basis == 1000
    assert receipt.cash_delta == -1000
    assert receipt.profit is None


def test_buy_units_costs_units_times_price(ledger, set_price):
    set_price("oil", 65)
    ledger.buy("oil", Units(10))
    assert ledger.cash == 10000 - 650
    assert ledger.holdings["oil"].cost_basis == 650


def test_buy_fraction_of_cash(ledger):
    ledger.buy("gold", Fraction(0.25))
    assert ledger.cash == 7500
    assert ledger.holdings["gold"].quantity == pytest.approx(2500 / 1850)


def test_buy_whole_cash_is_allowed(ledger):
    ledger.buy("crypto", Fraction(1.0))
    assert ledger.cash == 0


def test_buy_more_than_cash_is_rejected(ledger):
    before = state_of(ledger)
    with pytest.raises(InsufficientFunds):
        ledger.buy("stocks", Dollars(10000.01))
    assert state_of(ledger) == before


@pytest.mark.parametrize("amount", [
    Dollars(0), Dollars(-5), Dollars(math.nan), Units(math.inf), Fraction(1.5), Fraction(0), None, 100,
])
def test_invalid_amounts_are_rejected_before_anything_else(ledger, amount):
    before = state_of(ledger)
    with pytest.raises(InvalidAmount):
        ledger.buy("not-an-asset", amount)
    assert state_of(ledger) == before


def test_unknown_asset(ledger):
    with pytest.raises(UnknownAsset):
        ledger.buy("tulips", Dollars(10))
    assert ledger.stats["trades_executed"] == 0


# ---------------------------------------------------------
# Sell
# ---------------------------------------------------------
def test_sell_half_of_ten_units(ledger, set_price):
    set_price("stocks", 200)
    ledger.buy("stocks", Units(10))
    set_price("stocks", 250)

    receipt = ledger.sell("stocks", Fraction(0.5))

    assert receipt.units == 5
    assert receipt.cash_delta == 1250
    assert receipt.profit == 250
    assert ledger.holdings["stocks"].quantity == 5
    assert ledger.holdings["stocks"].cost_basis == 1000
    assert ledger.cash == 10000 - 2000 + 1250


def test_sell_basis_reduction_is_proportional(ledger, set_price):
    set_price("gold", 1000)
    ledger.buy("gold", Units(3))
    ledger.buy("gold", Dollars(1500))          # 1.5 more units, basis 4500
    set_price("gold", 800)

    receipt = ledger.sell("gold", Units(1.5))
    assert receipt.profit == pytest.approx(1.5 * 800 - 4500 * (1.5 / 4.5))
    assert ledger.holdings["gold"].cost_basis == pytest.approx(3000)


def test_selling_everything_closes_exactly(ledger):
    ledger.buy("stocks", Dollars(1000))
    ledger.sell("stocks", Fraction(1.0))
    assert ledger.holdings["stocks"].quantity == 0
    assert ledger.holdings["stocks"].cost_basis == 0
    assert ledger.cash == pytest.approx(10000)


def test_sell_dollars_converts_to_units(ledger, set_price):
    set_price("oil", 50)
    ledger.buy("oil", Units(20))
    receipt = ledger.sell("oil", Dollars(250))
    assert receipt.units == 5


def test_sell_more_than_held(ledger):
    ledger.buy("oil", Units(2))
    before = state_of(ledger)
    with pytest.raises(InsufficientHoldings):
        ledger.sell("oil", Units(3))
    assert state_of(ledger) == before


def test_sell_with_nothing_held(ledger):
    with pytest.raises(InsufficientHoldings):
        ledger.sell("crypto", Fraction(0.5))


# ---------------------------------------------------------
# Short / cover
# ---------------------------------------------------------
def test_short_oil_and_cover_after_ten_percent_drop(ledger, set_price):
    set_price("oil", 65)
    ledger.short("oil", Dollars(2000))
    assert ledger.cash == 9000
    assert ledger.shorts["oil"].as_dict() == {"entry_price": 65, "value": 2000, "active": True}

    set_price("oil", 58.5)
    receipt = ledger.cover("oil")

    assert receipt.profit == pytest.approx(400)
    assert receipt.cash_delta == pytest.approx(1400)
    assert ledger.cash == pytest.approx(10400)
    assert ledger.shorts["oil"].as_dict() == {"entry_price": 0.0, "value": 0.0, "active": False}
    assert ledger.stats["short_profit"] is True


def test_cover_loss_when_price_rises(ledger, set_price):
    set_price("stocks", 200)
    ledger.short("stocks", Dollars(1000))
    set_price("stocks", 220)
    receipt = ledger.cover("stocks")
    assert receipt.profit == pytest.approx(-200)
    assert ledger.stats["short_profit"] is False
    assert ledger.stats["biggest_loss"] == pytest.approx(200)


def test_short_fraction_is_capped_at_twice_cash(ledger):
    ledger.short("gold", Fraction(1.0))
    assert ledger.shorts["gold"].value == 20000
    assert ledger.cash == 0


def test_dollar_short_is_capped_at_twice_cash(ledger):
    receipt = ledger.short("oil", Dollars(30000))
    assert ledger.shorts["oil"].value == 20000
    assert ledger.cash == 0
    assert receipt.cash_delta == -10000


def test_dollar_short_below_cap_is_taken_as_is(ledger):
    ledger.short("stocks", Dollars(1500))
    assert ledger.shorts["stocks"].value == 1500
    assert ledger.cash == 9250


def test_no_short_without_cash(ledger, set_price):
    set_price("crypto", 10000)
    ledger.short("crypto", Fraction(1.0))
    set_price("crypto", 20000)
    ledger.cover("crypto")
    before = state_of(ledger)
    with pytest.raises(InsufficientFunds):
        ledger.short("oil", Dollars(1000))
    with pytest.raises(InsufficientFunds):
        ledger.short("gold", Units(1))
    assert state_of(ledger) == before


def test_one_short_per_asset(ledger):
    ledger.short("crypto", Dollars(1000))
    before = state_of(ledger)
    with pytest.raises(ShortAlreadyActive):
        ledger.short("crypto", Dollars(1000))
    assert state_of(ledger) == before


def test_cover_without_short(ledger):
    with pytest.raises(NoActivePosition):
        ledger.cover("gold")


def test_partial_cover_keeps_the_rest_open(ledger, set_price):
    set_price("stocks", 100)
    ledger.short("stocks", Dollars(4000))
    set_price("stocks", 90)

    receipt = ledger.cover("stocks", Fraction(0.25))
    assert receipt.profit == pytest.approx(1000 * 0.1 * 2)
    assert ledger.shorts["stocks"].active
    assert ledger.shorts["stocks"].value == pytest.approx(3000)

    with pytest.raises(InsufficientHoldings):
        ledger.cover("stocks", Dollars(3500))


def test_cover_can_push_cash_negative(ledger, set_price):
    set_price("crypto", 10000)
    ledger.short("crypto", Fraction(1.0))
    set_price("crypto", 20000)
    ledger.cover("crypto")
    assert ledger.cash < 0


# ---------------------------------------------------------
# Valuation and stats
# ---------------------------------------------------------
def test_portfolio_value_includes_unrealized_short_pnl(ledger, set_price):
    set_price("stocks", 200)
    set_price("oil", 50)
    ledger.buy("stocks", Units(10))        # cash 8000
    ledger.short("oil", Dollars(1000))     # cash 7500
    set_price("stocks", 210)
    set_price("oil", 45)

    expected = 7500 + 10 * 210 + (1000 + 1000 * (5 / 50) * 2)
    assert ledger.get_portfolio_value() == pytest.approx(expected)


def test_stats_track_gains_and_losses(ledger, set_price):
    set_price("stocks", 100)
    ledger.buy("stocks", Units(10))
    set_price("stocks", 130)
    ledger.sell("stocks", Units(5))        # +150
    set_price("stocks", 80)
    ledger.sell("stocks", Units(5))        # -100

    assert ledger.stats["trades_executed"] == 3
    assert ledger.stats["trades_this_round"] == 3
    assert ledger.stats["profitable_trades"] == 1
    assert ledger.stats["biggest_gain"] == pytest.approx(150)
    assert ledger.stats["biggest_loss"] == pytest.approx(100)

    ledger.reset_round()
    assert ledger.stats["trades_this_round"] == 0
    assert ledger.stats["trades_executed"] == 3


def test_profit_on_a_crash_buy_is_flagged(ledger, set_price):
    set_price("gold", 1000)
    ledger.buy("gold", Units(1), during_crash=True)
    set_price("gold", 1100)
    ledger.sell("gold", Units(1))
    assert ledger.stats["crash_buy_profit"] is True


def test_asset_returns_skip_assets_never_bought(ledger, set_price):
    set_price("oil", 50)
    ledger.buy("oil", Units(10))
    set_price("oil", 60)
    assert ledger.asset_returns() == {"oil": pytest.approx(20.0)}


def test_gamble_win_and_loss(ledger, scripted):
    win = ledger.settle_gamble("crypto", 0.1, 0.5, scripted(random=[0.1]))
    assert win.profit == 1000
    assert ledger.cash == 11000

    loss = ledger.settle_gamble("crypto", 0.1, 0.5, scripted(random=[0.9]))
    assert loss.profit == pytest.approx(-1100)
    assert ledger.cash == pytest.approx(9900)
    assert ledger.stats["trades_executed"] == 2
