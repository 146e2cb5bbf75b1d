import logging

import config

logger = logging.getLogger(__name__)

DIRECTIONS = ("up", "down")
MIN_STRENGTH, MAX_STRENGTH = 1, 3


class Trend:
    def __init__(self, direction="up", strength=1):
        self.direction = "up"
        self.strength = 1
        self.set(direction, strength)

    def set(self, direction, strength):
        if direction not in DIRECTIONS:
            raise ValueError(f"Invalid trend direction: {direction!r}")
        strength = int(strength)
        if not MIN_STRENGTH <= strength <= MAX_STRENGTH:
            raise ValueError(f"Trend strength must be 1-3, got {strength}")
        self.direction = direction
        self.strength = strength

    @property
    def sign(self):
        return 1 if self.direction == "up" else -1

    def as_dict(self):
        return {"direction": self.direction, "strength": self.strength}

    def __eq__(self, other):
        if not isinstance(other, Trend):
            return NotImplemented
        return self.direction == other.direction and self.strength == other.strength

    def __repr__(self):
        return f"Trend({self.direction!r}, {self.strength})"


class MarketAsset:
    def __init__(self, spec):
        """
        spec comes from the catalog (market_data.AssetSpec) and is never
        mutated. Everything the market moves lives on this object.
        """
        self.key = spec.key
        self.name = spec.name

        # -----------------------
        # CATALOG FIELDS
        # -----------------------
        self.initial_price = spec.initial_price
        self.floor = spec.floor
        self.volatility = spec.volatility

        # -----------------------
        # RUNTIME FIELDS
        # -----------------------
        self.current_price = spec.initial_price
        self.last_price = spec.initial_price
        self.trend = Trend(spec.trend_direction, spec.trend_strength)

        # append-only, first entry is the opening price
        self.history = [spec.initial_price]

    # =====================================================================
    # ONE MARKET TICK
    # =====================================================================
    def apply_tick(self, settings, rng, impact=None):
        """
        Move the price one step and maybe re-roll the trend.

        settings: market_data.DifficultySettings
        rng:      numpy Generator (or anything with random/uniform/integers)
        impact:   news multiplier for this asset this tick, or None

        Draw order is fixed: jitter, noise, spike roll, [spike size],
        trend roll, [follow roll], [direction, strength].
        """
        current_price = self.current_price
        self.last_price = current_price

        # ----------------------------------------------------
        # VOLATILITY MODEL
        # ----------------------------------------------------
        jitter = rng.uniform(-config.VOL_JITTER, config.VOL_JITTER)
        sigma = self.volatility * settings.volatility_multiplier * (1 + jitter)

        # ----------------------------------------------------
        # DRIFT + NOISE + SPIKE
        # ----------------------------------------------------
        drift = self.trend.sign * self.trend.strength * config.TREND_DRIFT
        noise = rng.uniform(-config.NOISE_RANGE, config.NOISE_RANGE) * sigma

        spike = 1.0
        if rng.random() < config.SPIKE_CHANCE:
            spike = rng.uniform(*config.SPIKE_RANGE)

        # ----------------------------------------------------
        # NEWS
        # ----------------------------------------------------
        news_force = (impact - 1) if impact is not None else 0.0

        change = (drift + noise) * spike + news_force

        new_price = max(self.floor, round(current_price * (1 + change)))
        self.current_price = new_price
        self.history.append(new_price)

        self._maybe_shift_trend(rng, news_force)

        logger.debug(
            "%s %.2f -> %.2f (drift=%.4f noise=%.4f spike=%.2f news=%.4f)",
            self.key, current_price, new_price, drift, noise, spike, news_force,
        )
        return new_price

    def _maybe_shift_trend(self, rng, news_force):
        if rng.random() >= config.TREND_CHANGE_CHANCE:
            return

        if news_force != 0 and rng.random() < config.NEWS_FOLLOW_CHANCE:
            direction = "up" if news_force > 0 else "down"
            strength = round(abs(news_force) * config.NEWS_STRENGTH_SCALE)
            strength = max(MIN_STRENGTH, min(MAX_STRENGTH, strength))
        else:
            direction = "up" if rng.random() < 0.5 else "down"
            strength = int(rng.integers(MIN_STRENGTH, MAX_STRENGTH + 1))

        self.trend.set(direction, strength)

    # =====================================================================
    # DERIVED
    # =====================================================================
    def change_pct(self):
        """Percent move of the last tick."""
        if self.last_price == 0:
            return 0.0
        return (self.current_price - self.last_price) / self.last_price * 100

    def change_since_start(self):
        first = self.history[0]
        return (self.current_price - first) / first * 100
