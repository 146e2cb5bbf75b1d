# market_data.py
# Static game tables. Loaded once from game/*.json and never mutated.
import logging
from dataclasses import dataclass, field
from types import MappingProxyType

import config
import file_functions as ff

logger = logging.getLogger(__name__)

DATA_DIR = "game"


@dataclass(frozen=True)
class AssetSpec:
    key: str
    name: str
    initial_price: float
    volatility: float
    floor: float
    trend_direction: str = "up"
    trend_strength: int = 1


@dataclass(frozen=True)
class DifficultySettings:
    name: str
    volatility_multiplier: float
    starting_cash: float
    news_frequency: float
    crash_chance: float
    round_time: int


@dataclass(frozen=True)
class NewsEvent:
    title: str
    message: str
    impact: dict = field(default_factory=dict)   # asset -> multiplier
    tip: str = ""
    is_crash: bool = False


@dataclass(frozen=True)
class OpportunityTemplate:
    type: str
    title: str
    description: str
    action_text: str
    asset: str
    risk: str
    action: dict = field(default_factory=dict)


def _load_assets():
    raw = ff.get_json(DATA_DIR, "assets")
    assets = {}
    for key, info in raw.items():
        trend = info.get("trend", {})
        assets[key] = AssetSpec(
            key=key,
            name=info["name"],
            initial_price=float(info["initial_price"]),
            volatility=float(info["volatility"]),
            floor=float(info["floor"]),
            trend_direction=trend.get("direction", "up"),
            trend_strength=int(trend.get("strength", 1)),
        )
    return assets


def _load_difficulties():
    raw = ff.get_json(DATA_DIR, "difficulty")
    return {
        name: DifficultySettings(
            name=name,
            volatility_multiplier=float(d["volatility_multiplier"]),
            starting_cash=float(d["starting_cash"]),
            news_frequency=float(d["news_frequency"]),
            crash_chance=float(d["crash_chance"]),
            round_time=int(d["round_time"]),
        )
        for name, d in raw.items()
    }


def _load_news():
    events = []
    for e in ff.get_json(DATA_DIR, "news_events"):
        events.append(NewsEvent(
            title=e["title"],
            message=e["message"],
            impact=MappingProxyType(dict(e["impact"])),
            tip=e.get("tip", ""),
            is_crash=bool(e.get("is_crash", False)),
        ))
    return tuple(events)


def _load_opportunities():
    return tuple(
        OpportunityTemplate(
            type=o["type"],
            title=o["title"],
            description=o["description"],
            action_text=o["action_text"],
            asset=o["asset"],
            risk=o["risk"],
            action=MappingProxyType(dict(o.get("action", {}))),
        )
        for o in ff.get_json(DATA_DIR, "opportunities")
    )


ASSETS = MappingProxyType(_load_assets())
ASSET_KEYS = tuple(ASSETS.keys())
INITIAL_ASSET_PRICES = MappingProxyType({k: a.initial_price for k, a in ASSETS.items()})

DIFFICULTY_SETTINGS = MappingProxyType(_load_difficulties())

NEWS_EVENTS = _load_news()
REGULAR_EVENTS = tuple(e for e in NEWS_EVENTS if not e.is_crash)
CRASH_EVENTS = tuple(e for e in NEWS_EVENTS if e.is_crash)

MARKET_OPPORTUNITIES = _load_opportunities()

# definitions only; unlock state lives in AchievementManager
ACHIEVEMENTS = MappingProxyType(ff.get_json(DATA_DIR, "achievements"))


def get_difficulty(name):
    """Difficulty preset by name, falling back to the configured default."""
    settings = DIFFICULTY_SETTINGS.get(name)
    if settings is None:
        logger.warning("Unknown difficulty %r, using %r", name, config.DEFAULT_DIFFICULTY)
        settings = DIFFICULTY_SETTINGS.get(config.DEFAULT_DIFFICULTY, DIFFICULTY_SETTINGS["normal"])
    return settings
