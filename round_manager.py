import logging

logger = logging.getLogger(__name__)

ACTIVE = "active"
ROUND_END = "round_end"
GAME_OVER = "game_over"


class RoundManager:
    """
    Round clock state machine:

        ACTIVE --tick--> ACTIVE | ROUND_END
        ROUND_END --next_round()--> ACTIVE          (round < total)
        ROUND_END --finish()-->     GAME_OVER       (round == total)

    Pausing is a separate flag; tick() does nothing while paused.
    """

    def __init__(self, total_rounds, round_duration):
        if total_rounds < 1:
            raise ValueError("need at least one round")
        self.total_rounds = int(total_rounds)
        self.round_duration = int(round_duration)
        self.round = 1
        self.timer = self.round_duration
        self.paused = False
        self.state = ACTIVE

    @property
    def game_over(self):
        return self.state == GAME_OVER

    @property
    def is_last_round(self):
        return self.round >= self.total_rounds

    def tick(self):
        if self.state != ACTIVE or self.paused:
            return self.state

        self.timer = max(0, self.timer - 1)
        if self.timer == 0:
            self.state = ROUND_END
            logger.info("Round %s of %s ended", self.round, self.total_rounds)
        return self.state

    def next_round(self):
        if self.state == GAME_OVER:
            raise RuntimeError("game is over")
        if self.is_last_round:
            raise RuntimeError("no rounds left")
        self.round += 1
        self.timer = self.round_duration
        self.state = ACTIVE
        return self.round

    def finish(self):
        if self.state != GAME_OVER:
            self.state = GAME_OVER
            self.paused = False
            logger.info("Game over after round %s", self.round)

    def set_paused(self, paused):
        if self.state == GAME_OVER:
            return False
        self.paused = bool(paused)
        return self.paused
