import pytest

from conftest import make_random_board
from core import Axis, Board, DIRECTION, Position
from models import Corner, SolverSettings
from solver import (
    AutoSolver,
    axis_merge_score,
    corner_position,
    grow_vector,
    normal_vector,
)

EMPTY_ROW = [0, 0, 0, 0]


# --- Frame helpers ---

@pytest.mark.parametrize("corner, expected", [
    (Corner.TOP_LEFT, Position(0, 0)),
    (Corner.TOP_RIGHT, Position(3, 0)),
    (Corner.BOTTOM_RIGHT, Position(3, 3)),
    (Corner.BOTTOM_LEFT, Position(0, 3)),
])
def test_corner_position(corner, expected):
    assert corner_position(corner, 4) == expected


@pytest.mark.parametrize("corner, axis, grow, normal", [
    (Corner.TOP_LEFT, Axis.HORIZONTAL, DIRECTION.RIGHT, DIRECTION.DOWN),
    (Corner.TOP_LEFT, Axis.VERTICAL, DIRECTION.DOWN, DIRECTION.RIGHT),
    (Corner.TOP_RIGHT, Axis.HORIZONTAL, DIRECTION.LEFT, DIRECTION.DOWN),
    (Corner.TOP_RIGHT, Axis.VERTICAL, DIRECTION.DOWN, DIRECTION.LEFT),
    (Corner.BOTTOM_RIGHT, Axis.HORIZONTAL, DIRECTION.LEFT, DIRECTION.UP),
    (Corner.BOTTOM_RIGHT, Axis.VERTICAL, DIRECTION.UP, DIRECTION.LEFT),
    (Corner.BOTTOM_LEFT, Axis.HORIZONTAL, DIRECTION.RIGHT, DIRECTION.UP),
    (Corner.BOTTOM_LEFT, Axis.VERTICAL, DIRECTION.UP, DIRECTION.RIGHT),
])
def test_grow_and_normal_vectors(corner, axis, grow, normal):
    assert grow_vector(corner, axis) is grow
    assert normal_vector(corner, grow) is normal


def test_normal_vector_rejects_grow_pointing_off_the_board():
    with pytest.raises(ValueError):
        normal_vector(Corner.BOTTOM_LEFT, DIRECTION.DOWN)
    with pytest.raises(ValueError):
        normal_vector(Corner.TOP_RIGHT, DIRECTION.RIGHT)


def test_axis_merge_score_counts_each_tile_once():
    board = Board.from_values([
        [2, 2, 2, 0],
        [4, 0, 0, 4],
        EMPTY_ROW,
        [8, 0, 0, 0],
    ])
    assert axis_merge_score(board, Axis.HORIZONTAL) == 4 + 8
    assert axis_merge_score(board, Axis.VERTICAL) == 0


# --- Tile walk ---

def test_empty_corner_pulls_tiles_into_the_anchor():
    board = Board.from_values([
        EMPTY_ROW,
        [2, 0, 0, 0],
        EMPTY_ROW,
        EMPTY_ROW,
    ])
    assert AutoSolver().choose_direction(board) is DIRECTION.DOWN


def test_merges_across_the_normal_axis_first():
    board = Board.from_values([
        EMPTY_ROW,
        EMPTY_ROW,
        [4, 0, 0, 0],
        [4, 4, 0, 0],
    ])
    assert AutoSolver().choose_direction(board) is DIRECTION.LEFT


def test_merges_along_the_grow_axis():
    board = Board.from_values([
        EMPTY_ROW,
        EMPTY_ROW,
        [4, 0, 0, 0],
        [4, 8, 0, 0],
    ])
    assert AutoSolver().choose_direction(board) is DIRECTION.DOWN


def test_walk_snakes_into_the_next_column():
    board = Board.from_values([
        [4, 2, 2, 0],
        [8, 256, 0, 0],
        [16, 128, 0, 0],
        [32, 64, 0, 0],
    ])
    assert AutoSolver().choose_direction(board) is DIRECTION.LEFT


def test_walk_follows_the_smaller_neighbor():
    # The normal neighbor of the corner is smaller than the grow neighbor,
    # so the walk moves right and finds the vertical pair there.
    board = Board.from_values([
        EMPTY_ROW,
        EMPTY_ROW,
        [64, 2, 0, 0],
        [128, 2, 0, 0],
    ])
    assert AutoSolver().choose_direction(board) is DIRECTION.DOWN


def test_default_direction_prefers_reverse_normal_then_reverse_grow():
    board = Board.from_values([
        EMPTY_ROW,
        EMPTY_ROW,
        EMPTY_ROW,
        [2, 0, 0, 0],
    ])
    # LEFT and DOWN cannot move the lone corner tile, so UP (grow) is next.
    assert AutoSolver().choose_direction(board) is DIRECTION.UP


def test_pending_merge_beats_a_swipe_across_it():
    board = Board.from_values([
        EMPTY_ROW,
        EMPTY_ROW,
        EMPTY_ROW,
        [2, 0, 0, 2],
    ])
    assert AutoSolver().choose_direction(board) is DIRECTION.LEFT


def test_other_corner_frames():
    settings = SolverSettings(corner=Corner.TOP_RIGHT, grow_axis="horizontal")
    board = Board.from_values([
        [0, 0, 0, 4],
        [0, 0, 0, 4],
        EMPTY_ROW,
        EMPTY_ROW,
    ])
    assert AutoSolver(settings).choose_direction(board) is DIRECTION.UP


def test_stuck_board_still_returns_a_direction():
    board = Board.from_values([
        [2, 4, 2, 4],
        [4, 2, 4, 2],
        [2, 4, 2, 4],
        [4, 2, 4, 2],
    ])
    assert AutoSolver().choose_direction(board) in DIRECTION


def test_choose_direction_does_not_modify_the_board(random_board):
    board = random_board()
    before = board.copy()
    AutoSolver().choose_direction(board)
    assert board == before


def test_solver_totality(rng):
    solver = AutoSolver()
    checked = 0
    while checked < 1000:
        board = make_random_board(rng, size=4, fill=rng.random(), max_exponent=rng.randint(1, 11))
        if not board.has_available_moves():
            continue
        direction = solver.choose_direction(board)
        assert direction in DIRECTION
        if board.tiles():
            assert board.can_move(direction)
        checked += 1


@pytest.mark.parametrize("corner", list(Corner))
@pytest.mark.parametrize("grow_axis", ["horizontal", "vertical"])
def test_every_frame_returns_moving_directions(rng, corner, grow_axis):
    solver = AutoSolver(SolverSettings(corner=corner, grow_axis=grow_axis))
    for size in (2, 3, 5, 6):
        for _ in range(50):
            board = make_random_board(rng, size=size, fill=0.7, max_exponent=5)
            if not board.tiles() or not board.has_available_moves():
                continue
            assert board.can_move(solver.choose_direction(board))


def test_solver_plays_full_games(rng):
    solver = AutoSolver()
    best_tile = 0
    for _ in range(3):
        board = Board(4)
        board.spawn_random_tile(rng)
        board.spawn_random_tile(rng)
        moves = 0
        while board.has_available_moves() and moves < 5000:
            result = board.swipe(solver.choose_direction(board))
            assert result.moved
            board.spawn_random_tile(rng)
            moves += 1
        assert moves >= 14
        best_tile = max(best_tile, board.max_tile_value())
    assert best_tile >= 64


# --- Rate ---

def test_rate_scales_geometrically_and_clamps():
    solver = AutoSolver()
    assert solver.rate == 1
    assert solver.increase_rate() == pytest.approx(1.5)
    assert solver.interval == pytest.approx(1 / 1.5)
    for _ in range(50):
        solver.increase_rate()
    assert solver.rate == 60
    for _ in range(100):
        solver.decrease_rate()
    assert solver.rate == pytest.approx(0.1)


def test_solver_settings_validate_rate_bounds():
    with pytest.raises(ValueError):
        SolverSettings(min_rate=10, max_rate=5)
    with pytest.raises(ValueError):
        SolverSettings(initial_rate=100)
    with pytest.raises(ValueError):
        SolverSettings(rate_factor=1)
