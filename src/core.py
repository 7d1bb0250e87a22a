# core.py
# This file holds the grid engine for the 2048 game: tiles, directions and the board.

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, NamedTuple, Optional, Tuple, Union
import logging
import random

from models import GridState

logger = logging.getLogger(__name__)

WINNING_TILE = 2048


class Position(NamedTuple):
    """An (x, y) cell coordinate. x is the column, y is the row."""
    x: int
    y: int

    def shifted(self, vector: Tuple[int, int], steps: int = 1) -> "Position":
        return Position(self.x + steps * vector[0], self.y + steps * vector[1])


class Axis(Enum):
    """The two independent axes a swipe can run along."""
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class DIRECTION(Enum):
    """Represents the possible move directions as unit vectors (dx, dy)."""
    UP = (0, -1)
    RIGHT = (1, 0)
    DOWN = (0, 1)
    LEFT = (-1, 0)

    @property
    def vector(self) -> Tuple[int, int]:
        return self.value

    @property
    def reverse(self) -> "DIRECTION":
        return DIRECTION((-self.value[0], -self.value[1]))

    @property
    def axis(self) -> Axis:
        return Axis.HORIZONTAL if self.value[1] == 0 else Axis.VERTICAL


def parse_direction(value: Union["DIRECTION", Tuple[int, int], str]) -> DIRECTION:
    """
    Converts caller input into a DIRECTION.
    Args:
        value: A DIRECTION, a (dx, dy) unit vector or a direction name.
    Returns:
        DIRECTION: The matching direction.
    Raises:
        ValueError: If the value is not one of the four unit axis vectors.
    """
    if isinstance(value, DIRECTION):
        return value
    if isinstance(value, str):
        try:
            return DIRECTION[value.strip().upper()]
        except KeyError:
            raise ValueError(f"Invalid direction name: {value!r}") from None
    try:
        return DIRECTION(tuple(value))
    except (TypeError, ValueError):
        raise ValueError(f"Invalid direction vector: {value!r}") from None


def is_valid_tile_value(value: int) -> bool:
    """True for powers of two that are at least 2."""
    return isinstance(value, int) and not isinstance(value, bool) \
        and value >= 2 and value & (value - 1) == 0


@dataclass(frozen=True)
class Tile:
    """A single board entry. Tiles never change; moving or merging makes a new one."""
    position: Position
    value: int = 2

    def __post_init__(self):
        if not is_valid_tile_value(self.value):
            raise ValueError(f"Tile value must be a power of two >= 2, got {self.value!r}.")
        object.__setattr__(self, "position", Position(*self.position))

    @property
    def x(self) -> int:
        return self.position.x

    @property
    def y(self) -> int:
        return self.position.y

    def moved_to(self, position: Position) -> "Tile":
        return Tile(position, self.value)


# --- Swipe Diff Records ---

@dataclass(frozen=True)
class TileMove:
    """A tile that slid without merging. `tile` holds its new position."""
    tile: Tile
    previous_position: Position


@dataclass(frozen=True)
class TileMerge:
    """A merged tile and the two pre-swipe tiles it was made from."""
    tile: Tile
    sources: Tuple[Tile, Tile]


@dataclass
class SwipeResult:
    """
    Outcome of one swipe.

    `moves` and `merges` describe where each tile came from, which is all a
    renderer needs for animation. `moved` is False when nothing changed.
    """
    direction: DIRECTION
    moved: bool = False
    score_delta: int = 0
    reached_2048: bool = False
    moves: List[TileMove] = field(default_factory=list)
    merges: List[TileMerge] = field(default_factory=list)

    def previous_positions(self) -> Dict[Position, Position]:
        """Maps each moved tile's new position to where it started."""
        return {move.tile.position: move.previous_position for move in self.moves}


# --- Board ---

class Board:
    """
    An N x N grid of optional tiles, indexed as cells[x][y].

    The board is mutated in place by `swipe`, `spawn_random_tile`,
    `insert_tile` and `remove_tile`. Every stored tile's position equals the
    indices of the cell holding it.
    """

    def __init__(self, size: int = 4, cells: Optional[List[List[Optional[Tile]]]] = None):
        if not isinstance(size, int) or isinstance(size, bool) or size <= 0:
            raise ValueError("Board size must be a positive integer.")
        self.size = size
        self.cells: List[List[Optional[Tile]]] = [[None] * size for _ in range(size)]
        if cells is not None:
            self._load_cells(cells)

    def _load_cells(self, cells: List[List[Optional[Tile]]]) -> None:
        if len(cells) != self.size or any(len(column) != self.size for column in cells):
            raise ValueError("Cells must form a size x size matrix.")
        for x, column in enumerate(cells):
            for y, tile in enumerate(column):
                if tile is None:
                    continue
                if tile.position != (x, y):
                    raise ValueError(f"Tile at {tile.position} stored in cell ({x}, {y}).")
                self.cells[x][y] = tile

    @classmethod
    def from_values(cls, rows: List[List[int]]) -> "Board":
        """
        Builds a board from a list of rows, 0 meaning empty.
        Args:
            rows (List[List[int]]): rows[y][x] values, as the board is drawn on screen.
        Returns:
            Board: A board holding those tiles.
        Raises:
            ValueError: If the rows are not a square matrix or hold invalid values.
        """
        size = len(rows)
        if size == 0 or any(len(row) != size for row in rows):
            raise ValueError("Board must be a non-empty square matrix.")
        board = cls(size)
        for y, row in enumerate(rows):
            for x, value in enumerate(row):
                if value:
                    board.insert_tile(Tile(Position(x, y), value))
        return board

    def values(self) -> List[List[int]]:
        """Returns rows[y][x] of tile values with 0 for empty cells."""
        return [
            [self.cells[x][y].value if self.cells[x][y] else 0 for x in range(self.size)]
            for y in range(self.size)
        ]

    def copy(self) -> "Board":
        return Board(self.size, [list(column) for column in self.cells])

    def __eq__(self, other) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return self.size == other.size and self.cells == other.cells

    def __repr__(self) -> str:
        return f"Board(size={self.size}, values={self.values()})"

    # --- Queries ---

    def each_cell(self) -> Iterator[Tuple[Position, Optional[Tile]]]:
        for x in range(self.size):
            for y in range(self.size):
                yield Position(x, y), self.cells[x][y]

    def tiles(self) -> List[Tile]:
        return [tile for _, tile in self.each_cell() if tile is not None]

    def available_cells(self) -> List[Position]:
        """
        Get coordinates of empty cells, in the board's cell order.
        Returns:
            List[Position]: Unoccupied positions.
        """
        return [position for position, tile in self.each_cell() if tile is None]

    def cells_available(self) -> bool:
        return bool(self.available_cells())

    def within_bounds(self, position: Tuple[int, int]) -> bool:
        return 0 <= position[0] < self.size and 0 <= position[1] < self.size

    def tile_at(self, position: Tuple[int, int]) -> Optional[Tile]:
        """Returns the tile at a position, or None when empty or off the grid."""
        if self.within_bounds(position):
            return self.cells[position[0]][position[1]]
        return None

    def is_cell_available(self, position: Tuple[int, int]) -> bool:
        return self.tile_at(position) is None

    def max_tile_value(self) -> int:
        return max((tile.value for tile in self.tiles()), default=0)

    # --- Mutation ---

    def insert_tile(self, tile: Tile) -> None:
        if not self.within_bounds(tile.position):
            raise ValueError(f"Tile position {tile.position} is outside the board.")
        self.cells[tile.x][tile.y] = tile

    def remove_tile(self, tile: Tile) -> None:
        self.cells[tile.x][tile.y] = None

    def spawn_random_tile(self, rng: Optional[random.Random] = None) -> Optional[Tile]:
        """
        Adds a new tile (90% chance of 2, 10% chance of 4) to a random empty cell.
        Args:
            rng (random.Random): Source of randomness. Defaults to the random module.
        Returns:
            Optional[Tile]: The new tile, or None if the board is full.
        """
        rng = rng or random
        empty_cells = self.available_cells()
        if not empty_cells:
            return None

        position = rng.choice(empty_cells)
        tile = Tile(position, 4 if rng.random() < 0.1 else 2)
        self.insert_tile(tile)
        return tile

    # --- Core Swipe Logic ---

    def build_traversals(self, vector: Tuple[int, int]) -> Tuple[List[int], List[int]]:
        """Column and row orders that visit the cells farthest along `vector` first."""
        xs = list(range(self.size))
        ys = list(range(self.size))
        if vector[0] == 1:
            xs.reverse()
        if vector[1] == 1:
            ys.reverse()
        return xs, ys

    def find_farthest_position(self, cell: Position,
                               vector: Tuple[int, int]) -> Tuple[Position, Position]:
        """
        Walks from `cell` along `vector` until an obstacle is found.
        Returns:
            Tuple[Position, Position]: The farthest empty position and the position
                                       just beyond it (possibly off the grid).
        """
        previous = cell
        following = cell.shifted(vector)
        while self.within_bounds(following) and self.is_cell_available(following):
            previous = following
            following = following.shifted(vector)
        return previous, following

    def swipe(self, direction: Union[DIRECTION, Tuple[int, int], str]) -> SwipeResult:
        """
        Slides and merges every tile in the given direction. No tile is spawned.
        Args:
            direction: The direction to move.
        Returns:
            SwipeResult: Whether anything moved, the score gained, whether a 2048
                         tile was made, and the per-tile moves and merges.
        Raises:
            ValueError: If an invalid direction is specified.
        """
        direction = parse_direction(direction)
        vector = direction.vector
        xs, ys = self.build_traversals(vector)
        result = SwipeResult(direction=direction)
        merged_cells = set()
        origins: Dict[Position, Tile] = {}  # current position -> tile as it was before the swipe
        moves: Dict[Position, TileMove] = {}

        for x in xs:
            for y in ys:
                cell = Position(x, y)
                tile = self.cells[x][y]
                if tile is None:
                    continue

                farthest, following = self.find_farthest_position(cell, vector)
                neighbor = self.tile_at(following)

                # Only one merge per destination cell in a swipe
                if neighbor is not None and neighbor.value == tile.value \
                        and following not in merged_cells:
                    merged = Tile(following, tile.value * 2)
                    self.remove_tile(tile)
                    self.remove_tile(neighbor)
                    self.insert_tile(merged)
                    merged_cells.add(following)

                    # A tile that slid here earlier in this swipe is now part of the merge
                    moves.pop(following, None)
                    result.merges.append(TileMerge(merged, (tile, origins.pop(following, neighbor))))
                    result.score_delta += merged.value
                    if merged.value == WINNING_TILE:
                        result.reached_2048 = True
                    destination = following
                else:
                    destination = farthest
                    if destination != cell:
                        moved_tile = tile.moved_to(destination)
                        self.remove_tile(tile)
                        self.insert_tile(moved_tile)
                        origins[destination] = tile
                        moves[destination] = TileMove(moved_tile, cell)

                if destination != cell:
                    result.moved = True

        result.moves = list(moves.values())
        logger.debug("Swipe %s: moved=%s score_delta=%d merges=%d",
                     direction.name, result.moved, result.score_delta, len(result.merges))
        return result

    # --- Game State Checks ---

    def can_move(self, direction: Union[DIRECTION, Tuple[int, int], str]) -> bool:
        """
        Check if any tile can move or merge in the given specific direction.
        Args:
            direction: The direction to check.
        Returns:
           bool: True if at least one tile can move or merge that way, False otherwise.
        """
        vector = parse_direction(direction).vector
        for position, tile in self.each_cell():
            if tile is None:
                continue  # Only non-empty tiles can initiate a move
            target = position.shifted(vector)
            if not self.within_bounds(target):
                continue
            other = self.tile_at(target)
            if other is None or other.value == tile.value:
                return True
        return False

    def legal_directions(self) -> List[DIRECTION]:
        return [direction for direction in DIRECTION if self.can_move(direction)]

    def has_available_moves(self) -> bool:
        """
        Checks whether the game can continue.
        Returns:
            bool: True if any cell is empty or two orthogonal neighbors share a value.
        """
        if self.cells_available():
            return True

        # Each horizontal pair, then each vertical pair, exactly once
        for y in range(self.size):
            for x in range(self.size - 1):
                if self.cells[x][y].value == self.cells[x + 1][y].value:
                    return True
        for x in range(self.size):
            for y in range(self.size - 1):
                if self.cells[x][y].value == self.cells[x][y + 1].value:
                    return True
        return False

    # --- Serialization ---

    def serialize(self) -> dict:
        """
        Represents the board as {size, cells}, cells[x][y] being null or
        {position: {x, y}, value}. Animation hints are not part of it.
        """
        cells = [
            [
                {"position": {"x": tile.x, "y": tile.y}, "value": tile.value} if tile else None
                for tile in column
            ]
            for column in self.cells
        ]
        return GridState.model_validate({"size": self.size, "cells": cells}).model_dump()

    @classmethod
    def deserialize(cls, data: Union[dict, GridState]) -> "Board":
        """
        Rebuilds a board from its serialized form.
        Raises:
            ValueError: If the data is not a valid grid snapshot.
        """
        state = data if isinstance(data, GridState) else GridState.model_validate(data)
        board = cls(state.size)
        for column in state.cells:
            for cell in column:
                if cell is not None:
                    board.insert_tile(Tile(Position(cell.position.x, cell.position.y), cell.value))
        return board
