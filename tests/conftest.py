import random

import pytest

from core import Board, Position, Tile


def make_random_board(rng: random.Random, size: int = 4, fill: float = 0.6, max_exponent: int = 7) -> Board:
    """A board with roughly `fill` of its cells holding random powers of two."""
    board = Board(size)
    for x in range(size):
        for y in range(size):
            if rng.random() < fill:
                board.insert_tile(Tile(Position(x, y), 2 ** rng.randint(1, max_exponent)))
    return board


@pytest.fixture
def rng():
    return random.Random(2048)


@pytest.fixture
def random_board(rng):
    def factory(size: int = 4, fill: float = 0.6, max_exponent: int = 7) -> Board:
        return make_random_board(rng, size, fill, max_exponent)
    return factory
