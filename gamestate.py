# ================================================
# gamestate.py (PURE GAME LOGIC - NO PYGAME)
# ================================================
import itertools
import logging
import threading
from collections import deque

import numpy as np

import config
from achievement_manager import AchievementManager
from amounts import Fraction
from exceptions import NoActivePosition, SessionInactive, TradeError, UnknownAction
from market_data import ASSETS, get_difficulty
from news_manager import NewsManager
from opportunity_manager import OpportunityManager
from portfolio_manager import PortfolioManager
from price_engine import PriceEngine
from round_manager import ROUND_END, RoundManager
from scheduler import Scheduler

logger = logging.getLogger(__name__)


def format_currency(value):
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(round(value)):,}"


def format_time(seconds):
    seconds = max(0, int(seconds))
    return f"{seconds // 60}:{seconds % 60:02d}"


class GameState:
    def __init__(self, seed=None, rng=None, total_rounds=None):
        """
        One game session. Every read goes through the properties below and
        every write goes through a command method, each holding self._lock,
        so ticks and player trades never interleave.
        """
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.total_rounds = total_rounds or config.TOTAL_ROUNDS

        self._lock = threading.RLock()
        self._notification_ids = itertools.count(1)
        self.listeners = []
        self.started = False

        self.timer_task = None
        self.market_task = None

        self._reset(config.DEFAULT_DIFFICULTY)

    # ==========================================================
    # SETUP
    # ==========================================================
    def _reset(self, difficulty):
        self.settings = get_difficulty(difficulty)
        self.difficulty = self.settings.name

        self.scheduler = Scheduler()
        self.timer_task = None
        self.market_task = None

        self.market = PriceEngine(self.settings, self.rng)
        self.portfolio_mgr = PortfolioManager(self.market, self.settings.starting_cash)
        self.news = NewsManager(self.rng)
        self.opportunities = OpportunityManager(self.rng)
        self.rounds = RoundManager(self.total_rounds, self.settings.round_time)
        self.achievements_mgr = AchievementManager()

        # crash bookkeeping
        self.crash_seen = False
        self.round_had_crash = False
        self.crashes_weathered = 0

        self.opportunities_taken = set()
        self.result = None
        self.notifications = deque(maxlen=config.NOTIFICATION_HISTORY)

    def subscribe(self, listener):
        """listener(notification) is called for every emitted observation."""
        self.listeners.append(listener)

        def unsubscribe():
            if listener in self.listeners:
                self.listeners.remove(listener)
        return unsubscribe

    def _notify(self, kind, message, **data):
        entry = {"id": next(self._notification_ids), "type": kind, "message": message}
        entry.update(data)
        self.notifications.append(entry)
        for listener in list(self.listeners):
            listener(entry)
        return entry

    # ==========================================================
    # COMMANDS
    # ==========================================================
    def start_session(self, difficulty=None):
        with self._lock:
            if self.started:
                self.scheduler.cancel_all()
            self._reset(difficulty or config.DEFAULT_DIFFICULTY)
            self.started = True

            self._start_clocks()
            self._notify("info", f"Game started on {self.difficulty} with "
                                 f"{format_currency(self.portfolio_mgr.cash)}.")
            self._announce_news(self.news.select_event(self.difficulty))
            logger.info("Session started: difficulty=%s rounds=%s", self.difficulty, self.total_rounds)

    def toggle_pause(self):
        with self._lock:
            if not self.started or self.game_over:
                return self.paused

            if not self.rounds.paused:
                self.rounds.set_paused(True)
                self._stop_clocks()
                self._notify("info", "Game paused.")
            else:
                self.rounds.set_paused(False)
                self._start_clocks()
                self._notify("info", "Game resumed.")
            return self.rounds.paused

    def trade(self, asset, action, amount=None):
        """
        Run one player trade. Returns the TradeReceipt, or None when the
        trade was rejected (an "error" notification says why).
        """
        with self._lock:
            try:
                self._require_active()
                receipt = self._execute(asset, action, amount)
            except TradeError as e:
                logger.info("Trade rejected (%s %s): %s", action, asset, e)
                self._notify("error", str(e), action=action, asset=asset)
                return None

            self._notify("trade", self._describe(receipt), receipt=receipt.as_dict())
            self._check_achievements()
            return receipt

    def accept_opportunity(self, opportunity=None):
        with self._lock:
            try:
                self._require_active()
                active = self.opportunities.active
                if active is None or (opportunity is not None and opportunity.id != active.id):
                    raise NoActivePosition("That opportunity is no longer available.")
                receipt = self._run_opportunity(active)
            except TradeError as e:
                logger.info("Opportunity rejected: %s", e)
                self._notify("error", str(e), action="opportunity")
                return None

            self.opportunities.clear()
            self.opportunities_taken.add(active.type)
            self._notify("trade", f"{active.title}: {self._describe(receipt)}",
                         receipt=receipt.as_dict(), opportunity=active.type)
            self._check_achievements()
            return receipt

    def end_session(self):
        with self._lock:
            if not self.started:
                return None
            return self._finish_game()

    def update(self, dt):
        """Feed elapsed seconds from the game loop."""
        with self._lock:
            if not self.started or self.paused or self.game_over:
                return
            self.scheduler.advance(dt)

    # ==========================================================
    # TRADE EXECUTION
    # ==========================================================
    def _require_active(self):
        if not self.started:
            raise SessionInactive("No game in progress.")
        if self.game_over:
            raise SessionInactive("The game is over.")

    def _execute(self, asset, action, amount):
        ledger = self.portfolio_mgr
        if action == "buy":
            return ledger.buy(asset, amount, during_crash=self.news.crash_active)
        elif action == "sell":
            return ledger.sell(asset, amount)
        elif action == "short":
            return ledger.short(asset, amount)
        elif action == "cover":
            return ledger.cover(asset, amount)
        raise UnknownAction(f"Unknown trade action: {action!r}")

    def _run_opportunity(self, opportunity):
        action = opportunity.action
        kind = action.get("kind", "buy")
        fraction = action.get("fraction", 0.1)

        if kind == "gamble":
            return self.portfolio_mgr.settle_gamble(
                opportunity.asset, fraction, action.get("win_probability", 0.5), self.rng)

        if kind == "short":
            return self.portfolio_mgr.short(opportunity.asset, Fraction(fraction))

        receipt = self.portfolio_mgr.buy(opportunity.asset, Fraction(fraction),
                                         during_crash=self.news.crash_active)
        trend = action.get("trend")
        if trend:
            self.market.set_trend(opportunity.asset, trend["direction"], trend["strength"])
        return receipt

    def _describe(self, receipt):
        name = ASSETS[receipt.asset].name
        if receipt.action == "buy":
            return f"Bought {receipt.units:.4f} {name} for {format_currency(-receipt.cash_delta)}"
        if receipt.action == "sell":
            return (f"Sold {receipt.units:.4f} {name} for {format_currency(receipt.cash_delta)} "
                    f"(P/L {format_currency(receipt.profit)})")
        if receipt.action == "short":
            return (f"Shorted {name} at {receipt.price:,.2f}, "
                    f"margin {format_currency(-receipt.cash_delta)}")
        if receipt.action == "cover":
            return f"Covered {name} short, P/L {format_currency(receipt.profit)}"
        if receipt.profit > 0:
            return f"Paid off: +{format_currency(receipt.profit)}"
        return f"Lost {format_currency(-receipt.profit)}"

    # ==========================================================
    # CLOCKS
    # ==========================================================
    def _start_clocks(self):
        self._stop_clocks()
        self.timer_task = self.scheduler.call_every(
            config.TIMER_TICK_SECONDS, self._on_timer_tick, name="round_timer")
        self.market_task = self.scheduler.call_every(
            config.MARKET_TICK_SECONDS, self._on_market_tick, name="market_update")

    def _stop_clocks(self):
        for task in (self.timer_task, self.market_task):
            if task is not None:
                task.cancel()
        self.timer_task = None
        self.market_task = None

    def _restart_market_clock(self):
        if self.market_task is not None:
            self.market_task.cancel()
        self.market_task = self.scheduler.call_every(
            config.MARKET_TICK_SECONDS, self._on_market_tick, name="market_update")

    def _on_timer_tick(self):
        if self.rounds.tick() == ROUND_END:
            self._end_round()

    def _on_market_tick(self):
        self._update_market()

        event = self.news.maybe_select_event(self.difficulty)
        if event is not None:
            self._announce_news(event)

        opportunity = self.opportunities.maybe_generate(
            self.market.prices(), self.market.trends(), self.opportunities.active)
        if opportunity is not None:
            self.opportunities.offer(opportunity, self.scheduler, self._on_opportunity_expired)
            self._notify("info", f"{opportunity.title} on {ASSETS[opportunity.asset].name}",
                         opportunity=opportunity.as_dict())

    def _on_opportunity_expired(self, opportunity):
        self._notify("info", f"{opportunity.title} expired.", opportunity=opportunity.as_dict())

    # ==========================================================
    # MARKET
    # ==========================================================
    def _update_market(self, news_impact=None):
        self.market.advance(news_impact)
        self._raise_market_alerts()
        self._check_achievements()

    def _announce_news(self, event):
        self.news.add_message(event, self.rounds.round)
        if event.is_crash:
            self.crash_seen = True
            self.round_had_crash = True

        self._notify("news", event.title, title=event.title, body=event.message,
                     tip=event.tip, is_crash=event.is_crash)
        self.news.schedule_impact(self.scheduler, self._apply_news_impact)

    def _apply_news_impact(self, impact):
        logger.debug("Applying news impact %s", impact)
        self._update_market(impact)

    def _raise_market_alerts(self):
        for key, asset in self.market.assets.items():
            move = asset.change_pct()
            if abs(move) >= config.ALERT_MOVE_PCT:
                verb = "SURGES" if move > 0 else "PLUNGES"
                self._notify("alert", f"{asset.name.upper()} {verb} {move:+.1f}%",
                             asset=key, change_pct=move)

        stress = self.market.market_stress()
        if stress >= config.ALERT_STRESS_LEVEL:
            self._notify("alert", "HIGH VOLATILITY: markets are moving fast.", stress=stress)

    # ==========================================================
    # ROUNDS
    # ==========================================================
    def _end_round(self):
        if self.round_had_crash:
            self.crashes_weathered += 1
            self.round_had_crash = False

        if self.rounds.is_last_round:
            self._finish_game()
            return

        self.rounds.next_round()
        self.portfolio_mgr.reset_round()
        self.opportunities.clear()
        self.news.cancel_pending()
        self._restart_market_clock()

        self._notify("info", f"Round {self.rounds.round} of {self.total_rounds} started.",
                     round=self.rounds.round)
        self._announce_news(self.news.select_event(self.difficulty))

    def _finish_game(self):
        if self.result is not None:
            return self.result

        self._stop_clocks()
        self.news.cancel_pending()
        self.opportunities.clear()
        self.scheduler.cancel_all()
        self.rounds.finish()

        final_value = self.portfolio_value()
        returns = self.portfolio_mgr.asset_returns()
        best = max(returns, key=returns.get) if returns else None
        worst = min(returns, key=returns.get) if returns else None

        self.result = {
            "final_value": final_value,
            "return_pct": self._return_pct(final_value),
            "best_asset": best,
            "worst_asset": worst,
            "best_return": returns[best] if best else 0.0,
            "worst_return": returns[worst] if worst else 0.0,
        }

        self._check_achievements(final=True)
        self._notify("info", f"Game over! Final value {format_currency(final_value)} "
                             f"({self.result['return_pct']:+.1f}%).", result=dict(self.result))
        logger.info("Game finished: %s", self.result)
        return self.result

    # ==========================================================
    # ACHIEVEMENTS
    # ==========================================================
    def _return_pct(self, value):
        start = self.portfolio_mgr.starting_cash
        return (value - start) / start * 100

    def _achievement_snapshot(self, final=False):
        ledger = self.portfolio_mgr
        value = self.portfolio_value()
        return {
            "stats": dict(ledger.stats),
            "quantities": {k: h.quantity for k, h in ledger.holdings.items()},
            "asset_values": {k: ledger.asset_value(k) for k in ledger.holdings},
            "last_buy_prices": {k: h.last_buy_price for k, h in ledger.holdings.items()},
            "prices": self.market.prices(),
            "portfolio_value": value,
            "return_pct": self._return_pct(value),
            "crash_seen": self.crash_seen,
            "opportunities_taken": len(self.opportunities_taken),
            "final": final,
        }

    def _check_achievements(self, final=False):
        for achievement_id in self.achievements_mgr.evaluate(self._achievement_snapshot(final)):
            title = self.achievements_mgr.title(achievement_id)
            self._notify("achievement", f"Achievement Unlocked: {title}!", achievement=achievement_id)

    # ==========================================================
    # QUERIES
    # ==========================================================
    def portfolio_value(self):
        with self._lock:
            return self.portfolio_mgr.get_portfolio_value()

    def market_stress(self):
        with self._lock:
            return self.market.market_stress()

    @property
    def prices(self):
        return self.market.prices()

    @property
    def trends(self):
        return self.market.trends()

    @property
    def price_history(self):
        return self.market.histories()

    @property
    def portfolio(self):
        return self.portfolio_mgr.snapshot()

    @property
    def round(self):
        return self.rounds.round

    @property
    def timer(self):
        return self.rounds.timer

    @property
    def paused(self):
        return self.rounds.paused

    @property
    def game_over(self):
        return self.rounds.game_over

    @property
    def current_news(self):
        event = self.news.current
        if event is None:
            return None
        return {"title": event.title, "message": event.message, "impact": dict(event.impact),
                "tip": event.tip, "is_crash": event.is_crash}

    @property
    def news_feed(self):
        return [{"round": m["round"], "title": m["event"].title} for m in self.news.messages]

    @property
    def opportunity(self):
        return self.opportunities.active

    @property
    def stats(self):
        s = self.portfolio_mgr.stats
        return {
            "trades_executed": s["trades_executed"],
            "profitable_trades": s["profitable_trades"],
            "biggest_gain": s["biggest_gain"],
            "biggest_loss": s["biggest_loss"],
            "trades_this_round": s["trades_this_round"],
            "crashes_weathered": self.crashes_weathered,
            "opportunities_taken": len(self.opportunities_taken),
        }

    @property
    def achievements(self):
        return self.achievements_mgr.as_dict()
