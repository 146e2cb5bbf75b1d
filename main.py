import logging
from typing import Annotated, Optional

import pygame
import typer

import config
from gamestate import GameState, format_currency, format_time

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="market-mayhem",
    help="Run a headless Market Mayhem session and print the result.",
    add_completion=False,
)


def log_notification(entry):
    kind = entry["type"]
    level = logging.WARNING if kind in ("error", "alert") else logging.INFO
    logger.log(level, "[%s] %s", kind.upper(), entry["message"])


def run(state, clock=None, fps=config.FPS, speed=1.0, max_frames=None):
    """
    Drive a started session until it ends. Each frame feeds the clock's
    delta (scaled by `speed`) into the game, like the pygame main loop.
    """
    clock = clock or pygame.time.Clock()
    frames = 0

    while not state.game_over:
        dt = clock.tick(fps) / 1000
        state.update(dt * speed)

        frames += 1
        if frames % max(1, fps) == 0:
            logger.debug("Round %s, %s left, value %s", state.round,
                         format_time(state.timer), format_currency(state.portfolio_value()))
        if max_frames is not None and frames >= max_frames:
            break

    return state.result


@app.command()
def play(
    difficulty: Annotated[str, typer.Option(help="easy, normal or hard")] = config.DEFAULT_DIFFICULTY,
    seed: Annotated[Optional[int], typer.Option(help="Seed for a reproducible market")] = None,
    fps: Annotated[int, typer.Option(help="Frames per second of the game loop")] = config.FPS,
    speed: Annotated[float, typer.Option(help="Simulated seconds per real second")] = 1.0,
) -> None:
    """Play one session with no trades and report how the market moved."""
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)

    pygame.init()
    state = GameState(seed=seed)
    state.subscribe(log_notification)
    state.start_session(difficulty)

    try:
        result = run(state, fps=fps, speed=speed)
    except KeyboardInterrupt:
        result = state.end_session()
    finally:
        pygame.quit()

    typer.echo(f"Final value: {format_currency(result['final_value'])} "
               f"({result['return_pct']:+.2f}%)")
    for key, history in state.price_history.items():
        typer.echo(f"{key:>7}: {history[0]:>10,.2f} -> {history[-1]:>10,.2f} ({len(history) - 1} ticks)")


if __name__ == "__main__":
    app()
