# cli_driver.py
# This file is intended to be run to play or watch the 2048 game on the CLI

from typing import Callable, Dict, List, Optional
import argparse
import logging
import random
import time

from core import Board, DIRECTION, SwipeResult
from models import NewGameSettings, RenderMetadata
from session import GameSession, InputHandler
from solver import AutoSolver
from storage import JsonFileStorage, MemoryStorage

logger = logging.getLogger(__name__)

DIRECTION_KEYS: Dict[str, DIRECTION] = {
    'W': DIRECTION.UP, 'A': DIRECTION.LEFT, 'S': DIRECTION.DOWN, 'D': DIRECTION.RIGHT,
    'K': DIRECTION.UP, 'H': DIRECTION.LEFT, 'J': DIRECTION.DOWN, 'L': DIRECTION.RIGHT,  # Vim keys
}

HELP_TEXT = (
    "Moves: W/A/S/D or H/J/K/L. R restart, C keep playing after a win, "
    "P toggle auto-solver, +/- solver speed, Q quit."
)


# --- Display Function ---

class TerminalRenderer:
    """Prints the board, score, and game status to the console."""

    def __init__(self, out: Callable[[str], None] = print):
        self.out = out

    def render(self, board: Board, metadata: RenderMetadata,
               last_swipe: Optional[SwipeResult] = None) -> None:
        self.out(f"\nScore: {metadata.score}    Best: {metadata.best_score}")
        if last_swipe is not None and last_swipe.score_delta:
            self.out(f"(+{last_swipe.score_delta} from {len(last_swipe.merges)} merge(s))")
        if metadata.over:
            self.out("GAME OVER!")
        elif metadata.won and metadata.terminated:
            self.out("YOU WON! Press C to keep playing or R to restart.")
        if metadata.solver_running:
            self.out(f"Auto-solver running at {metadata.solver_rate:.2f} moves/s")

        width = max(4, len(str(board.max_tile_value())))
        for row in board.values():
            self.out(" ".join(f"{value:>{width}}" if value else "." * width for value in row))
        self.out("-" * ((width + 1) * board.size - 1))


# --- Input Handling ---

def dispatch_command(command: str, handler: InputHandler) -> bool:
    """
    Routes one line of player input to the session.
    Returns:
        bool: False when the player asked to quit, True otherwise.
    """
    command = command.strip().upper()
    if command == 'Q':
        return False

    if command in DIRECTION_KEYS:
        result = handler.on_move(DIRECTION_KEYS[command])
        if result is not None and not result.moved:
            print("Move did not change the board. Try a different direction.")
    elif command == 'R':
        handler.on_restart()
    elif command == 'C':
        handler.on_keep_playing()
    elif command == 'P':
        handler.on_toggle_solver()
    elif command in ('+', '='):
        handler.on_rate_change(1)
    elif command == '-':
        handler.on_rate_change(-1)
    else:
        print(f"Invalid input. {HELP_TEXT}")
    return True


def run_autoplay(session: GameSession, max_moves: Optional[int] = None,
                 sleep: Optional[Callable[[float], None]] = None) -> int:
    """
    Lets the auto-solver play until the game ends, `max_moves` is reached or Ctrl-C.
    Returns:
        int: Number of moves that changed the board.
    """
    sleep = sleep or time.sleep
    moves = 0
    session.solver_running = True
    try:
        while session.solver_running and (max_moves is None or moves < max_moves):
            result = session.tick()
            if result is not None and result.moved:
                moves += 1
            if session.solver_running:
                sleep(session.solver.interval)
    except KeyboardInterrupt:
        print("\nAuto-solver stopped.")
    session.solver_running = False
    session.actuate()
    logger.info("Auto-play finished after %d moves with score %d", moves, session.score)
    return moves


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Play 2048 in the terminal, or watch the auto-solver play it.")
    parser.add_argument("--size", type=int, default=4, help="Board size N for an N x N board")
    parser.add_argument("--state-file", type=str, default=None,
                        help="JSON file to keep the best score and unfinished game in")
    parser.add_argument("--seed", type=int, default=None, help="RNG seed for reproducible tile spawns")
    parser.add_argument("--autoplay", action="store_true", help="Start with the auto-solver playing")
    parser.add_argument("--max-moves", type=int, default=None, help="Stop auto-play after this many moves")
    parser.add_argument("--verbose", action="store_true", help="Log engine and solver decisions")
    return parser


def main(argv: Optional[List[str]] = None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # 1. Initialize game
    storage = JsonFileStorage(args.state_file) if args.state_file else MemoryStorage()
    session = GameSession(
        settings=NewGameSettings(size=args.size),
        storage=storage,
        renderer=TerminalRenderer(),
        solver=AutoSolver(),
        rng=random.Random(args.seed),
    )

    if args.autoplay:
        run_autoplay(session, max_moves=args.max_moves)
        print_final_state(session)
        return

    # 2. Game Loop
    print(HELP_TEXT)
    while True:
        try:
            command = input("Enter command: ")
        except EOFError:
            break
        if not dispatch_command(command, session):
            print("Quitting game.")
            break
        if session.solver_running:
            run_autoplay(session, max_moves=args.max_moves)

    # 3. Game Ended
    print_final_state(session)


def print_final_state(session: GameSession) -> None:
    print("\n--- Final Board State ---")
    for row in session.board.values():
        print("\t".join(map(str, row)))
    print(f"Score: {session.score}")
    if session.won:
        print("Congratulations! You reached the 2048 tile!")
    elif session.over:
        print("No more moves possible. Better luck next time!")


if __name__ == "__main__":
    main()
