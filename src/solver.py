# solver.py
# Corner-anchored "snake" heuristic that picks the next swipe for the auto-player.

from typing import Iterable, NamedTuple, Optional, Set
import logging

from core import Axis, Board, DIRECTION, Position, Tile
from models import Corner, SolverSettings

logger = logging.getLogger(__name__)

# Unit step pointing from each corner into the board
_INWARD = {
    Corner.TOP_LEFT: (1, 1),
    Corner.TOP_RIGHT: (-1, 1),
    Corner.BOTTOM_RIGHT: (-1, -1),
    Corner.BOTTOM_LEFT: (1, -1),
}

# (corner, grow axis) -> normal vector
NORMAL_VECTORS = {
    (Corner.TOP_LEFT, Axis.HORIZONTAL): DIRECTION.DOWN,
    (Corner.TOP_LEFT, Axis.VERTICAL): DIRECTION.RIGHT,
    (Corner.TOP_RIGHT, Axis.HORIZONTAL): DIRECTION.DOWN,
    (Corner.TOP_RIGHT, Axis.VERTICAL): DIRECTION.LEFT,
    (Corner.BOTTOM_RIGHT, Axis.HORIZONTAL): DIRECTION.UP,
    (Corner.BOTTOM_RIGHT, Axis.VERTICAL): DIRECTION.LEFT,
    (Corner.BOTTOM_LEFT, Axis.HORIZONTAL): DIRECTION.UP,
    (Corner.BOTTOM_LEFT, Axis.VERTICAL): DIRECTION.RIGHT,
}


class Frame(NamedTuple):
    """The right-angle frame the snake is laid out in."""
    corner: Position
    grow: DIRECTION
    normal: DIRECTION


def corner_position(corner: Corner, size: int) -> Position:
    dx, dy = _INWARD[corner]
    return Position(0 if dx == 1 else size - 1, 0 if dy == 1 else size - 1)


def grow_vector(corner: Corner, axis: Axis) -> DIRECTION:
    """The direction along `axis` that points from `corner` into the board."""
    dx, dy = _INWARD[corner]
    return DIRECTION((dx, 0)) if axis is Axis.HORIZONTAL else DIRECTION((0, dy))


def normal_vector(corner: Corner, grow: DIRECTION) -> DIRECTION:
    """
    Completes the corner frame for a grow vector.
    Args:
        corner (Corner): The anchor corner.
        grow (DIRECTION): The grow vector; it must point into the board from `corner`.
    Returns:
        DIRECTION: The normal vector, on the other axis and also pointing inward.
    Raises:
        ValueError: If `grow` points off the board from `corner`.
    """
    if grow is not grow_vector(corner, grow.axis):
        raise ValueError(f"Grow vector {grow.name} points off the board from {corner.value}.")
    return NORMAL_VECTORS[(corner, grow.axis)]


def merge_score(line: Iterable[Optional[Tile]]) -> int:
    """
    Score gained by collapsing a single line once.
    Empty cells are skipped and each tile pairs with at most one equal neighbor.
    """
    values = [tile.value for tile in line if tile is not None]
    score = 0
    index = 0
    while index < len(values):
        if index + 1 < len(values) and values[index] == values[index + 1]:
            score += values[index] * 2
            index += 2  # Skip the tile that was merged
        else:
            index += 1
    return score


def axis_merge_score(board: Board, axis: Axis) -> int:
    """Total score a swipe along `axis` would produce."""
    if axis is Axis.HORIZONTAL:
        lines = ([board.cells[x][y] for x in range(board.size)] for y in range(board.size))
    else:
        lines = (board.cells[x] for x in range(board.size))
    return sum(merge_score(line) for line in lines)


class AutoSolver:
    """
    Chooses swipes that keep the biggest tiles in one corner.

    Starting at the corner, the solver walks the board in a serpentine order
    and swipes toward the first merge it finds. When the walk runs out it
    falls back to the direction that merges least, preferring swipes that
    press tiles back into the corner.
    """

    def __init__(self, settings: Optional[SolverSettings] = None):
        self.settings = settings or SolverSettings()
        self.corner = self.settings.corner
        self.grow_axis = Axis(self.settings.grow_axis)
        self.rate = self.settings.initial_rate

    # --- Rate ---

    def increase_rate(self) -> float:
        self.rate = min(self.rate * self.settings.rate_factor, self.settings.max_rate)
        return self.rate

    def decrease_rate(self) -> float:
        self.rate = max(self.rate / self.settings.rate_factor, self.settings.min_rate)
        return self.rate

    @property
    def interval(self) -> float:
        """Seconds between auto-play moves."""
        return 1.0 / self.rate

    # --- Direction Choice ---

    def frame_for(self, board: Board) -> Frame:
        grow = grow_vector(self.corner, self.grow_axis)
        return Frame(corner_position(self.corner, board.size), grow, normal_vector(self.corner, grow))

    def choose_direction(self, board: Board) -> DIRECTION:
        """
        Picks the next swipe for a board.
        Args:
            board (Board): The board to play. It is not modified.
        Returns:
            DIRECTION: One of the four directions. When the board has a legal
                       move, the returned direction moves it.
        """
        frame = self.frame_for(board)
        if not board.has_available_moves():
            logger.warning("Solver asked to move on a board with no available moves.")
            return frame.normal.reverse

        direction = self._best_direction(board, frame.corner, frame.grow, frame, None)
        if not board.can_move(direction):
            direction = self._default_direction(board, frame, None)
        logger.debug("Solver chose %s", direction.name)
        return direction

    def _best_direction(self, board: Board, position: Position, grow: DIRECTION,
                        frame: Frame, merge_vector: Optional[DIRECTION]) -> DIRECTION:
        tile = board.tile_at(position)
        if tile is None:
            if position == frame.corner:
                return frame.grow.reverse  # pull tiles into the anchor
            return self._default_direction(board, frame, merge_vector)

        normal = frame.normal
        normal_cell = position.shifted(normal.vector)
        grow_cell = position.shifted(grow.vector)
        normal_tile = board.tile_at(normal_cell)
        grow_tile = board.tile_at(grow_cell)

        # Merge across the short axis first, then along the growth axis
        if normal_tile is not None and normal_tile.value == tile.value:
            return normal.reverse
        if grow_tile is not None and grow_tile.value == tile.value:
            return grow.reverse

        if merge_vector is None:
            merge_vector = self._distant_merge(board, tile, normal) \
                or self._distant_merge(board, tile, grow)

        if board.within_bounds(grow_cell):
            if board.within_bounds(normal_cell) and _value(normal_tile) < _value(grow_tile):
                return self._best_direction(board, normal_cell, grow, frame, merge_vector)
            return self._best_direction(board, grow_cell, grow, frame, merge_vector)
        if board.within_bounds(normal_cell):
            # Wrap around the edge so the walk snakes back the other way
            return self._best_direction(board, normal_cell, grow.reverse, frame, merge_vector)
        return self._default_direction(board, frame, merge_vector)

    @staticmethod
    def _distant_merge(board: Board, tile: Tile, direction: DIRECTION) -> Optional[DIRECTION]:
        """The swipe that merges `tile` with an equal tile across empty cells, if any."""
        steps = 2
        neighbor = tile.position.shifted(direction.vector)
        if not board.within_bounds(neighbor) or not board.is_cell_available(neighbor):
            return None
        while True:
            neighbor = tile.position.shifted(direction.vector, steps)
            if not board.within_bounds(neighbor):
                return None
            other = board.tile_at(neighbor)
            if other is not None:
                return direction.reverse if other.value == tile.value else None
            steps += 1

    def _default_direction(self, board: Board, frame: Frame,
                           merge_vector: Optional[DIRECTION]) -> DIRECTION:
        """
        Falls back to the least disruptive legal swipe.

        Directions on the axis that would merge the least are preferred, in the
        order reverse-normal, reverse-grow, grow, normal. A pending merge found
        earlier in the walk wins if the fallback would swipe across it.
        """
        preferred = [frame.normal.reverse, frame.grow.reverse, frame.grow, frame.normal]
        legal = set(board.legal_directions())
        calm_axes = self._minimum_merge_axes(board)

        candidates = [d for d in preferred if d in legal and d.axis in calm_axes] \
            or [d for d in preferred if d in legal]
        if not candidates:
            return preferred[0]

        direction = candidates[0]
        if merge_vector is not None and merge_vector in legal and merge_vector.axis is not direction.axis:
            return merge_vector
        return direction

    @staticmethod
    def _minimum_merge_axes(board: Board) -> Set[Axis]:
        scores = {axis: axis_merge_score(board, axis) for axis in Axis}
        lowest = min(scores.values())
        return {axis for axis, score in scores.items() if score == lowest}


def _value(tile: Optional[Tile]) -> int:
    return tile.value if tile is not None else 0
