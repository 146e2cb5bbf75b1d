import pytest

from round_manager import ACTIVE, GAME_OVER, ROUND_END, RoundManager


def test_timer_counts_down_to_round_end():
    rounds = RoundManager(total_rounds=3, round_duration=3)
    assert [rounds.tick() for _ in range(3)] == [ACTIVE, ACTIVE, ROUND_END]
    assert rounds.timer == 0
    # further ticks are ignored until the round advances
    assert rounds.tick() == ROUND_END
    assert rounds.timer == 0


def test_next_round_resets_timer():
    rounds = RoundManager(3, 2)
    rounds.tick()
    rounds.tick()
    assert rounds.next_round() == 2
    assert rounds.timer == 2
    assert rounds.state == ACTIVE


def test_last_round_cannot_advance():
    rounds = RoundManager(1, 1)
    assert rounds.is_last_round
    rounds.tick()
    with pytest.raises(RuntimeError):
        rounds.next_round()
    rounds.finish()
    assert rounds.game_over
    with pytest.raises(RuntimeError):
        rounds.next_round()


def test_paused_tick_is_a_no_op():
    rounds = RoundManager(2, 5)
    rounds.set_paused(True)
    rounds.tick()
    assert rounds.timer == 5
    rounds.set_paused(False)
    rounds.tick()
    assert rounds.timer == 4


def test_finish_is_idempotent_and_blocks_pause():
    rounds = RoundManager(2, 5)
    rounds.set_paused(True)
    rounds.finish()
    rounds.finish()
    assert rounds.state == GAME_OVER
    assert not rounds.paused
    assert rounds.set_paused(True) is False


def test_needs_a_round():
    with pytest.raises(ValueError):
        RoundManager(0, 60)
