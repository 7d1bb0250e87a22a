# models.py
# Pydantic schemas for the data the game exchanges with its storage and
# rendering collaborators, plus the settings objects used to configure it.

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


class Corner(str, Enum):
    """Board corners the auto-solver can anchor its largest tile in."""
    TOP_LEFT = "top_left"
    TOP_RIGHT = "top_right"
    BOTTOM_RIGHT = "bottom_right"
    BOTTOM_LEFT = "bottom_left"


# --- Serialization Models ---

class PositionState(BaseModel):
    x: int = Field(..., ge=0)
    y: int = Field(..., ge=0)


class TileState(BaseModel):
    """A serialized tile: its cell and its value."""
    position: PositionState
    value: int = Field(..., ge=2, description="Tile value, a power of two.")

    @model_validator(mode="after")
    def check_power_of_two(self) -> "TileState":
        if self.value & (self.value - 1):
            raise ValueError(f"Tile value must be a power of two, got {self.value}.")
        return self


class GridState(BaseModel):
    """The board snapshot: size and a size x size matrix of cells indexed [x][y]."""
    size: int = Field(..., gt=0, description="The dimension N of the N x N board.")
    cells: List[List[Optional[TileState]]] = Field(
        ...,
        description="cells[x][y] is null for an empty cell or the tile occupying it."
    )

    @model_validator(mode="after")
    def check_shape(self) -> "GridState":
        if len(self.cells) != self.size or any(len(column) != self.size for column in self.cells):
            raise ValueError("Cells must form a size x size matrix.")
        for x, column in enumerate(self.cells):
            for y, tile in enumerate(column):
                if tile is not None and (tile.position.x, tile.position.y) != (x, y):
                    raise ValueError(
                        f"Tile position ({tile.position.x}, {tile.position.y}) "
                        f"does not match its cell ({x}, {y})."
                    )
        return self


class GameSnapshot(BaseModel):
    """Everything the session persists between runs."""
    grid: GridState
    score: int = Field(..., ge=0, description="Current score of the game.")
    over: bool = False
    won: bool = False
    keep_playing: bool = False


class RenderMetadata(BaseModel):
    """Values handed to the renderer alongside the board."""
    score: int = Field(..., ge=0)
    best_score: int = Field(..., ge=0)
    won: bool
    over: bool
    terminated: bool
    solver_running: bool = False
    solver_rate: float = Field(default=1.0, gt=0)


# --- Settings ---

class NewGameSettings(BaseModel):
    """Settings for creating a new game."""
    size: int = Field(
        default=4,
        gt=1,  # Board size must be at least 2x2
        description="Size of the N x N game board (e.g., 4 for a 4x4 board)."
    )
    start_tiles: int = Field(
        default=2,
        ge=0,
        description="Number of random tiles placed on a fresh board."
    )


class SolverSettings(BaseModel):
    """Corner frame and auto-play rate limits for the auto-solver."""
    corner: Corner = Field(
        default=Corner.BOTTOM_LEFT,
        description="Corner the largest tile is kept in."
    )
    grow_axis: Literal["horizontal", "vertical"] = Field(
        default="vertical",
        description="Axis along which tiles cascade away from the corner."
    )
    rate_factor: float = Field(default=1.5, gt=1, description="Geometric step for rate changes.")
    min_rate: float = Field(default=0.1, gt=0, description="Slowest auto-play rate, in moves per second.")
    max_rate: float = Field(default=60.0, gt=0, description="Fastest auto-play rate, in moves per second.")
    initial_rate: float = Field(default=1.0, gt=0)

    @model_validator(mode="after")
    def check_rate_bounds(self) -> "SolverSettings":
        if self.min_rate > self.max_rate:
            raise ValueError("min_rate must not exceed max_rate.")
        if not self.min_rate <= self.initial_rate <= self.max_rate:
            raise ValueError("initial_rate must lie within [min_rate, max_rate].")
        return self
