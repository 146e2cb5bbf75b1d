import logging

import numpy as np

import config
from market_data import CRASH_EVENTS, REGULAR_EVENTS, get_difficulty

logger = logging.getLogger(__name__)


class NewsManager:
    def __init__(self, rng=None):
        self.rng = rng if rng is not None else np.random.default_rng()

        # Every announced event this session: {"round", "event"}
        self.messages = []

        # Latest announcement (None before the first one)
        self.current = None

        # One-shot scheduler task that will apply self.current's impact
        self.pending_task = None

    # ---------------------------------------------------------
    # Selection
    # ---------------------------------------------------------
    def select_event(self, difficulty, force_crash=False):
        """Crash pool with the difficulty's crash chance (or forced), else a regular event."""
        settings = get_difficulty(difficulty)
        is_crash = force_crash or self.rng.random() < settings.crash_chance

        pool = CRASH_EVENTS if is_crash and CRASH_EVENTS else REGULAR_EVENTS
        return pool[int(self.rng.integers(0, len(pool)))]

    def maybe_select_event(self, difficulty):
        """Mid-round news: most market ticks bring nothing."""
        settings = get_difficulty(difficulty)
        if self.rng.random() >= config.NEWS_CHANCE_PER_TICK * settings.news_frequency:
            return None
        return self.select_event(difficulty)

    # ---------------------------------------------------------
    # Feed
    # ---------------------------------------------------------
    def add_message(self, event, round_no):
        self.current = event
        self.messages.append({"round": round_no, "event": event})
        logger.info("News (round %s): %s%s", round_no, event.title,
                    " [CRASH]" if event.is_crash else "")

    def clear_messages(self):
        self.cancel_pending()
        self.messages.clear()
        self.current = None

    @property
    def crash_active(self):
        return self.current is not None and self.current.is_crash

    # ---------------------------------------------------------
    # Deferred impact
    # ---------------------------------------------------------
    def schedule_impact(self, scheduler, callback, delay=None):
        """
        Apply the current event's impact after `delay` seconds.
        A newer announcement replaces whatever was still pending.
        """
        self.cancel_pending()
        event = self.current
        if event is None:
            return None

        def fire():
            self.pending_task = None
            callback(dict(event.impact))

        delay = config.NEWS_IMPACT_DELAY if delay is None else delay
        self.pending_task = scheduler.call_later(delay, fire)
        return self.pending_task

    def cancel_pending(self):
        if self.pending_task is not None:
            self.pending_task.cancel()
            self.pending_task = None
