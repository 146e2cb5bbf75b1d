import logging
import itertools
from dataclasses import dataclass, field

import numpy as np

import config
from market_data import ASSET_KEYS, INITIAL_ASSET_PRICES, MARKET_OPPORTUNITIES

logger = logging.getLogger(__name__)

_ids = itertools.count(1)


@dataclass
class Opportunity:
    type: str
    title: str
    description: str
    action_text: str
    asset: str
    risk: str
    action: dict = field(default_factory=dict)
    id: int = field(default_factory=lambda: next(_ids))

    def as_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "action_text": self.action_text,
            "asset": self.asset,
            "risk": self.risk,
        }


class OpportunityManager:
    def __init__(self, rng=None, templates=MARKET_OPPORTUNITIES):
        self.rng = rng if rng is not None else np.random.default_rng()
        self.templates = templates
        self.active = None
        self.expiry_task = None

    def maybe_generate(self, prices, trends, active=None):
        """
        At most one opportunity at a time; otherwise a small chance per
        market tick. Returns the new Opportunity or None.
        """
        if active is not None:
            return None
        if self.rng.random() >= config.OPPORTUNITY_CHANCE:
            return None

        template = self.templates[int(self.rng.integers(0, len(self.templates)))]
        asset = self.pick_asset(template, prices, trends)

        return Opportunity(
            type=template.type,
            title=template.title,
            description=template.description,
            action_text=template.action_text,
            asset=asset,
            risk=template.risk,
            action=dict(template.action),
        )

    def pick_asset(self, template, prices, trends):
        kind = template.type

        if kind == "contrarian":
            candidates = [k for k in ASSET_KEYS if trends[k]["direction"] == "down"]
        elif kind == "momentum":
            candidates = [k for k in ASSET_KEYS
                          if trends[k]["direction"] == "up" and trends[k]["strength"] > 1]
        elif kind == "short":
            candidates = [k for k in ASSET_KEYS
                          if prices[k] >= INITIAL_ASSET_PRICES[k] * config.SHORT_SIGNAL_RATIO]
        elif kind == "arbitrage":
            candidates = list(ASSET_KEYS)
        else:
            return template.asset

        if not candidates:
            return template.asset
        return candidates[int(self.rng.integers(0, len(candidates)))]

    # ---------------------------------------------------------
    # Lifecycle
    # ---------------------------------------------------------
    def offer(self, opportunity, scheduler, on_expire, lifetime=None):
        self.clear()
        self.active = opportunity

        def expire():
            self.expiry_task = None
            if self.active is opportunity:
                self.active = None
                on_expire(opportunity)

        lifetime = config.OPPORTUNITY_LIFETIME if lifetime is None else lifetime
        self.expiry_task = scheduler.call_later(lifetime, expire, name="opportunity_expiry")
        logger.info("Opportunity: %s on %s (%s risk)", opportunity.title, opportunity.asset, opportunity.risk)

    def clear(self):
        if self.expiry_task is not None:
            self.expiry_task.cancel()
            self.expiry_task = None
        self.active = None
