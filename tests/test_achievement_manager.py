import pytest

from achievement_manager import AchievementManager, check_achievement
from market_data import ACHIEVEMENTS, INITIAL_ASSET_PRICES


def make_snapshot(**overrides):
    snapshot = {
        "stats": {
            "trades_executed": 0,
            "profitable_trades": 0,
            "biggest_gain": 0,
            "biggest_loss": 0,
            "trades_this_round": 0,
            "short_profit": False,
            "crash_buy_profit": False,
        },
        "quantities": {k: 0 for k in INITIAL_ASSET_PRICES},
        "asset_values": {k: 0 for k in INITIAL_ASSET_PRICES},
        "last_buy_prices": {k: 0 for k in INITIAL_ASSET_PRICES},
        "prices": dict(INITIAL_ASSET_PRICES),
        "portfolio_value": 10000,
        "return_pct": 0.0,
        "crash_seen": False,
        "opportunities_taken": 0,
        "final": False,
    }
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(snapshot.get(key), dict):
            snapshot[key] = dict(snapshot[key], **value)
        else:
            snapshot[key] = value
    return snapshot


def test_nothing_unlocks_on_a_fresh_game():
    assert AchievementManager().evaluate(make_snapshot()) == []


@pytest.mark.parametrize("achievement_id, overrides", [
    ("first_profit", {"stats": {"profitable_trades": 1}}),
    ("gold_hoarder", {"quantities": {"gold": 5}}),
    ("risk_taker", {"asset_values": {"crypto": 6000}}),
    ("diversified", {"quantities": {"stocks": 1, "oil": 1, "gold": 0.1, "crypto": 0.01}}),
    ("ten_percent", {"return_pct": 10}),
    ("wealthy_investor", {"portfolio_value": 15000}),
    ("short_master", {"stats": {"short_profit": True}}),
    ("day_trader", {"stats": {"trades_this_round": 10}}),
    ("contrarian", {"stats": {"crash_buy_profit": True}}),
    ("opportunist", {"opportunities_taken": 3}),
])
def test_requirements(achievement_id, overrides):
    assert not check_achievement(achievement_id, make_snapshot())
    assert check_achievement(achievement_id, make_snapshot(**overrides))


def test_crypto_share_must_exceed_half():
    assert not check_achievement("risk_taker", make_snapshot(asset_values={"crypto": 5000}))


def test_perfect_timing_needs_a_held_asset_up_twenty_percent():
    snapshot = make_snapshot(
        quantities={"oil": 2},
        last_buy_prices={"oil": 50},
        prices={"oil": 60},
    )
    assert check_achievement("perfect_timing", snapshot)
    snapshot["quantities"]["oil"] = 0
    assert not check_achievement("perfect_timing", snapshot)


def test_crash_survivor_only_counts_at_the_end():
    snapshot = make_snapshot(crash_seen=True, return_pct=3.0)
    assert not check_achievement("market_crash", snapshot)
    snapshot["final"] = True
    assert check_achievement("market_crash", snapshot)
    snapshot["return_pct"] = -1
    assert not check_achievement("market_crash", snapshot)


def test_unlocks_are_permanent():
    manager = AchievementManager()
    assert manager.evaluate(make_snapshot(quantities={"gold": 5})) == ["gold_hoarder"]
    assert manager.evaluate(make_snapshot()) == []
    assert manager.unlocked["gold_hoarder"]
    assert manager.as_dict()["gold_hoarder"]["unlocked"]


def test_custom_definitions_and_unknown_types():
    definitions = {
        "rich": {"title": "Rich", "description": "", "requirement": {"type": "portfolio_value", "value": 1}},
        "odd": {"title": "Odd", "description": "", "requirement": {"type": "moon_phase"}},
    }
    manager = AchievementManager(definitions)
    assert manager.evaluate(make_snapshot()) == ["rich"]
    assert not check_achievement("odd", make_snapshot(), definitions)
    assert not check_achievement("missing", make_snapshot())
    assert manager.title("rich") == "Rich"


def test_every_catalog_entry_has_a_title():
    assert len(ACHIEVEMENTS) == 12
    assert all(d["title"] and d["requirement"]["type"] for d in ACHIEVEMENTS.values())
