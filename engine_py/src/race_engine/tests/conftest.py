"""
Shared fixtures: scripted randomness and games set up at given positions.
"""

import itertools
import random

import pytest

from race_engine.engine import RaceEngine


class ScriptedRandom(random.Random):
    """Random source with queued dice rolls and choice picks.

    Once the queues run out it falls back to a fixed-seed generator.
    """

    def __init__(self, *, rolls=(), picks=()):
        super().__init__(1234)
        self.rolls = list(rolls)
        self.picks = list(picks)

    def randint(self, a, b):
        if self.rolls:
            value = self.rolls.pop(0)
            assert a <= value <= b
            return value
        return super().randint(a, b)

    def choice(self, seq):
        if self.picks:
            return seq[self.picks.pop(0)]
        return super().choice(seq)


@pytest.fixture
def rng():
    return ScriptedRandom()


@pytest.fixture
def engine(rng):
    return RaceEngine(rng=rng, clock=itertools.count(1_000).__next__)


@pytest.fixture
def make_game(engine):
    """Create and start a game with one player per position given."""
    def _make(*positions, names=None):
        names = names or ["Alice", "Bob", "Charlie", "Dana"][:len(positions)]
        game = engine.create_game()
        players = [engine.add_player(game.id, name) for name in names]
        engine.start_game(game.id)
        for player, position in zip(players, positions):
            engine.repository.update_player(player.id, position=position)
        return game.id, [p.id for p in players]
    return _make
