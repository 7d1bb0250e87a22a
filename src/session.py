# session.py
# The game session: holds the board, score and win/loss flags, and drives the
# board from input, the auto-solver, storage and a renderer.

from enum import Enum
from typing import Optional, Protocol, Tuple, Union
import logging
import random

from core import Board, DIRECTION, SwipeResult, parse_direction
from models import GameSnapshot, NewGameSettings, RenderMetadata
from solver import AutoSolver
from storage import MemoryStorage, StorageManager

logger = logging.getLogger(__name__)


class GameState(Enum):
    """Where the session is in the life of one game."""
    EARLY_GAME = 1  # Playing, 2048 not reached yet
    JUST_WON = 2  # 2048 reached, waiting for the player to continue or restart
    JUST_LOST = 3
    LATE_GAME = 4  # Playing on after a win


class InputHandler(Protocol):
    """The fixed set of commands an input source can send."""

    def on_move(self, direction: Union[DIRECTION, Tuple[int, int]]) -> Optional[SwipeResult]: ...

    def on_restart(self) -> None: ...

    def on_keep_playing(self) -> None: ...

    def on_toggle_solver(self) -> bool: ...

    def on_rate_change(self, step: int) -> float: ...


class Renderer(Protocol):
    def render(self, board: Board, metadata: RenderMetadata,
               last_swipe: Optional[SwipeResult]) -> None: ...


class GameSession:
    """
    Owns one game at a time.

    Every board change is followed by `actuate`, which updates the best score,
    saves (or, once lost, clears) the game in storage and hands the board to
    the renderer.
    """

    def __init__(self,
                 settings: Optional[NewGameSettings] = None,
                 storage: Optional[StorageManager] = None,
                 renderer: Optional[Renderer] = None,
                 solver: Optional[AutoSolver] = None,
                 rng: Optional[random.Random] = None):
        self.settings = settings or NewGameSettings()
        self.storage = storage if storage is not None else MemoryStorage()
        self.renderer = renderer
        self.solver = solver or AutoSolver()
        self.rng = rng or random.Random()
        self.solver_running = False
        self.last_swipe: Optional[SwipeResult] = None
        self.setup()

    def setup(self) -> None:
        """Reloads the saved game if there is one, otherwise starts a fresh board."""
        previous = self.storage.get_game_state()
        if previous is not None:
            self.board = Board.deserialize(previous.grid)
            self.score = previous.score
            self.over = previous.over
            self.won = previous.won
            self.keep_playing = previous.keep_playing
            logger.info("Restored saved game (size=%d, score=%d)", self.board.size, self.score)
        else:
            self.board = Board(self.settings.size)
            self.score = 0
            self.over = False
            self.won = False
            self.keep_playing = False
            self.add_start_tiles()
            logger.info("Started new %dx%d game", self.board.size, self.board.size)

        self.last_swipe = None
        self.actuate()

    def add_start_tiles(self) -> None:
        for _ in range(self.settings.start_tiles):
            self.board.spawn_random_tile(self.rng)

    # --- Commands ---

    def move(self, direction: Union[DIRECTION, Tuple[int, int], str]) -> Optional[SwipeResult]:
        """
        Applies one swipe, then spawns a tile if anything moved.
        Args:
            direction: The direction to move.
        Returns:
            Optional[SwipeResult]: The swipe outcome, or None if the game is over.
        Raises:
            ValueError: If an invalid direction is specified.
        """
        direction = parse_direction(direction)
        if self.is_terminated():
            return None

        result = self.board.swipe(direction)
        if not result.moved:
            return result

        self.last_swipe = result
        self.score += result.score_delta
        if result.reached_2048:
            self.won = True
            logger.info("Reached the 2048 tile with score %d", self.score)

        self.board.spawn_random_tile(self.rng)
        if not self.board.has_available_moves():
            self.over = True
            logger.info("Game over with score %d", self.score)

        self.actuate()
        return result

    def tick(self) -> Optional[SwipeResult]:
        """Plays one auto-solver move. Stops the solver once the game ends."""
        if self.is_terminated():
            self.solver_running = False
            return None
        result = self.move(self.solver.choose_direction(self.board))
        if self.is_terminated():
            self.solver_running = False
        return result

    def restart(self) -> None:
        self.storage.clear_game_state()
        self.solver_running = False
        self.setup()

    def continue_after_win(self) -> None:
        """Keep playing past 2048."""
        self.keep_playing = True
        self.actuate()

    def toggle_solver(self) -> bool:
        self.solver_running = not self.solver_running and not self.is_terminated()
        logger.info("Auto-solver %s", "started" if self.solver_running else "stopped")
        return self.solver_running

    def change_rate(self, step: int) -> float:
        if step > 0:
            rate = self.solver.increase_rate()
        elif step < 0:
            rate = self.solver.decrease_rate()
        else:
            rate = self.solver.rate
        logger.debug("Auto-solver rate is now %.2f moves/s", rate)
        return rate

    # --- InputHandler ---

    def on_move(self, direction: Union[DIRECTION, Tuple[int, int]]) -> Optional[SwipeResult]:
        return self.move(direction)

    def on_restart(self) -> None:
        self.restart()

    def on_keep_playing(self) -> None:
        self.continue_after_win()

    def on_toggle_solver(self) -> bool:
        return self.toggle_solver()

    def on_rate_change(self, step: int) -> float:
        return self.change_rate(step)

    # --- State ---

    @property
    def state(self) -> GameState:
        if self.over:
            return GameState.JUST_LOST
        if self.won and not self.keep_playing:
            return GameState.JUST_WON
        if self.keep_playing:
            return GameState.LATE_GAME
        return GameState.EARLY_GAME

    def is_terminated(self) -> bool:
        """True when lost, or won and the player has not chosen to keep playing."""
        return self.over or (self.won and not self.keep_playing)

    def serialize(self) -> GameSnapshot:
        return GameSnapshot(
            grid=self.board.serialize(),
            score=self.score,
            over=self.over,
            won=self.won,
            keep_playing=self.keep_playing,
        )

    def metadata(self) -> RenderMetadata:
        return RenderMetadata(
            score=self.score,
            best_score=self.storage.get_best_score(),
            won=self.won,
            over=self.over,
            terminated=self.is_terminated(),
            solver_running=self.solver_running,
            solver_rate=self.solver.rate,
        )

    def actuate(self) -> None:
        if self.storage.get_best_score() < self.score:
            self.storage.set_best_score(self.score)

        # Only a lost game is dropped from storage; a won game can still be continued
        if self.over:
            self.storage.clear_game_state()
        else:
            self.storage.set_game_state(self.serialize())

        if self.renderer is not None:
            self.renderer.render(self.board, self.metadata(), self.last_swipe)
