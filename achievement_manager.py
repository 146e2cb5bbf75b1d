import logging
from typing import Any, Dict, List

from market_data import ACHIEVEMENTS, ASSET_KEYS

logger = logging.getLogger(__name__)


def check_achievement(achievement_id: str, snapshot: Dict[str, Any], definitions=ACHIEVEMENTS) -> bool:
    """Check if the snapshot meets an achievement's requirement."""
    achievement = definitions.get(achievement_id)
    if not achievement:
        return False

    req = achievement["requirement"]
    req_type = req["type"]
    req_value = req.get("value")

    if req.get("final_only") and not snapshot.get("final"):
        return False

    stats = snapshot["stats"]
    quantities = snapshot["quantities"]

    if req_type == "profitable_trades":
        return stats["profitable_trades"] >= req_value

    elif req_type == "asset_quantity":
        return quantities.get(req["asset"], 0) >= req_value

    elif req_type == "crypto_share":
        total = snapshot["portfolio_value"]
        return total > 0 and snapshot["asset_values"].get("crypto", 0) / total > req_value

    elif req_type == "owns_all_assets":
        return all(quantities.get(k, 0) > 0 for k in ASSET_KEYS)

    elif req_type == "portfolio_value":
        return snapshot["portfolio_value"] >= req_value

    elif req_type == "return_pct":
        return snapshot["return_pct"] >= req_value

    elif req_type == "short_profit":
        return bool(stats["short_profit"])

    elif req_type == "crash_survivor":
        return snapshot["crash_seen"] and snapshot["return_pct"] > 0

    elif req_type == "buy_gain_pct":
        for key, buy_price in snapshot["last_buy_prices"].items():
            if buy_price and quantities.get(key, 0) > 0:
                if (snapshot["prices"][key] - buy_price) / buy_price * 100 >= req_value:
                    return True
        return False

    elif req_type == "trades_in_round":
        return stats["trades_this_round"] >= req_value

    elif req_type == "crash_buy_profit":
        return bool(stats["crash_buy_profit"])

    elif req_type == "opportunities_taken":
        return snapshot["opportunities_taken"] >= req_value

    logger.warning("Unknown achievement requirement type %r", req_type)
    return False


class AchievementManager:
    def __init__(self, definitions=ACHIEVEMENTS):
        self.definitions = definitions
        self.unlocked = {achievement_id: False for achievement_id in definitions}

    def evaluate(self, snapshot: Dict[str, Any]) -> List[str]:
        """Unlock everything the snapshot satisfies. Returns newly unlocked ids."""
        newly = []
        for achievement_id, done in self.unlocked.items():
            if done:
                continue
            if check_achievement(achievement_id, snapshot, self.definitions):
                self.unlocked[achievement_id] = True
                newly.append(achievement_id)
                logger.info("Achievement unlocked: %s", self.definitions[achievement_id]["title"])
        return newly

    def title(self, achievement_id):
        return self.definitions[achievement_id]["title"]

    def as_dict(self):
        return {
            achievement_id: {
                "unlocked": self.unlocked[achievement_id],
                "title": d["title"],
                "description": d["description"],
            }
            for achievement_id, d in self.definitions.items()
        }
