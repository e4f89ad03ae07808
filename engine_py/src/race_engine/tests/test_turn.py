"""
Turn resolution tests: moves, tile effects, cards, skips and wins.
"""

import itertools
import random
import threading
import time

import pytest

from race_engine.constants import GOAL_TILE, STATUS_ACTIVE, STATUS_COMPLETED
from race_engine.effects import CardEffect, TileEffect, card_names
from race_engine.engine import RaceEngine
from race_engine.errors import InternalInconsistencyError, InvalidStateError, NotFoundError
from race_engine.repository import InMemoryGameRepository
from race_engine.turn import resolve_turn


def event_kinds(engine, game_id):
    """Event kinds in the order they were recorded."""
    return [e.kind for e in reversed(engine.repository.get_events(game_id))]


def positions(engine, game_id):
    return [p.position for p in engine.repository.get_players(game_id)]


def set_deck(engine, game_id, *cards):
    engine.repository.update_game(game_id, card_deck=list(cards))


def test_plain_move_passes_turn(engine, rng, make_game):
    """Test a plain move."""
    game_id, _ = make_game(0, 0)
    rng.rolls.append(4)

    outcome = engine.roll(game_id)

    assert outcome.dice_value == 4
    assert outcome.current_card is None
    assert outcome.winner is None
    assert not outcome.extra_turn
    assert not outcome.skipped_turn
    assert positions(engine, game_id) == [4, 0]
    assert outcome.game.current_player_index == 1
    assert outcome.game.current_turn == 2
    assert event_kinds(engine, game_id) == ["special", "dice", "move"]


def test_seat_wraps_around(engine, rng, make_game):
    """Test that the seat wraps to the first player."""
    game_id, _ = make_game(0, 0)
    rng.rolls.extend([1, 1])

    engine.roll(game_id)
    outcome = engine.roll(game_id)

    assert outcome.game.current_player_index == 0
    assert outcome.game.current_turn == 3


def test_advance_two_tile(engine, rng, make_game):
    """Test the advance 2 tile."""
    game_id, _ = make_game(3, 0)
    rng.rolls.append(2)

    outcome = engine.roll(game_id)

    assert positions(engine, game_id) == [7, 0]
    assert event_kinds(engine, game_id)[-3:] == ["dice", "move", "special"]
    assert outcome.game.current_player_index == 1


def test_retreat_three_tile(engine, rng, make_game):
    """Test the retreat 3 tile."""
    game_id, _ = make_game(8, 0)
    rng.rolls.append(2)

    engine.roll(game_id)

    assert positions(engine, game_id) == [7, 0]


def test_effects_resolve_once_per_landing(engine, rng, make_game):
    """Test that a tile effect does not chain into another tile."""
    # 7 + 3 lands on 10 and goes back to 7; nothing else fires
    game_id, _ = make_game(7, 0)
    rng.rolls.append(3)

    engine.roll(game_id)

    assert positions(engine, game_id) == [7, 0]
    assert event_kinds(engine, game_id).count("special") == 2  # start + retreat


def test_skip_turn_tile_sets_flag(engine, rng, make_game):
    """Test the skip turn tile."""
    game_id, _ = make_game(12, 0)
    rng.rolls.append(3)

    outcome = engine.roll(game_id)

    alice = outcome.players[0]
    assert alice.position == 15
    assert alice.skip_next_turn
    assert outcome.game.current_player_index == 1


def test_skipped_turn(engine, rng, make_game):
    """Test a turn lost to the skip flag."""
    game_id, (alice_id, _) = make_game(4, 0)
    engine.repository.update_player(alice_id, skip_next_turn=True)
    before = engine.repository.get_game(game_id)

    outcome = engine.roll(game_id)

    assert outcome.skipped_turn
    assert outcome.dice_value is None
    assert outcome.game.current_player_index == 1
    assert outcome.game.current_turn == before.current_turn + 1
    assert not outcome.players[0].skip_next_turn
    assert outcome.players[0].position == 4
    assert "dice" not in event_kinds(engine, game_id)


def test_skip_lasts_one_turn(engine, rng, make_game):
    """Test that a skip costs only one turn."""
    game_id, _ = make_game(12, 0)
    rng.rolls.extend([3, 1, 2, 4])

    engine.roll(game_id)      # Alice lands on 15
    engine.roll(game_id)      # Bob
    skipped = engine.roll(game_id)
    assert skipped.skipped_turn
    outcome = engine.roll(game_id)  # Bob again
    assert outcome.players[1].position == 3
    outcome = engine.roll(game_id)  # Alice plays normally
    assert not outcome.skipped_turn
    assert outcome.dice_value == 4
    assert outcome.players[0].position == 19


def test_win_at_goal(engine, rng, make_game):
    """Test winning on the goal tile."""
    game_id, (alice_id, _) = make_game(27, 10)
    rng.rolls.append(3)
    before = engine.repository.get_game(game_id)

    outcome = engine.roll(game_id)

    assert outcome.winner.id == alice_id
    assert outcome.winner.position == GOAL_TILE
    assert outcome.game.status == STATUS_COMPLETED
    assert outcome.game.current_player_index == before.current_player_index
    assert outcome.game.current_turn == before.current_turn
    assert engine.repository.get_events(game_id)[0].kind == "special"


def test_completed_game_rejects_rolls(engine, rng, make_game):
    """Test rolling in a finished game."""
    game_id, _ = make_game(28, 0)
    rng.rolls.append(6)
    engine.roll(game_id)

    with pytest.raises(InvalidStateError):
        engine.roll(game_id)
    assert engine.repository.get_game(game_id).status == STATUS_COMPLETED


def test_swap_random(engine, rng, make_game):
    """Test the swap tile."""
    game_id, _ = make_game(17, 9, 12)
    rng.rolls.append(3)
    rng.picks.append(1)  # Charlie among [Bob, Charlie]

    outcome = engine.roll(game_id)

    assert positions(engine, game_id) == [12, 9, 20]
    assert "Charlie" in engine.repository.get_events(game_id)[0].message
    assert outcome.game.current_player_index == 1


def test_swap_random_alone_is_noop():
    """Test the swap tile with nobody to swap with."""
    repository = InMemoryGameRepository()
    game = repository.create_game(card_deck=card_names(), special_tiles={})
    player = repository.create_player(game.id, name="Solo", color="#2196F3", order=0, position=18)
    repository.update_game(game.id, status=STATUS_ACTIVE)

    class TwoRandom(random.Random):
        def randint(self, a, b):
            return 2

    outcome = resolve_turn(repository, game.id, rng=TwoRandom(), clock=lambda: 1)

    assert outcome.players[0].id == player.id
    assert outcome.players[0].position == 20
    assert outcome.game.current_player_index == 0


def test_card_advance_three(engine, rng, make_game):
    """Test the advance 3 card."""
    game_id, _ = make_game(22, 0)
    set_deck(engine, game_id, CardEffect.PLAY_AGAIN.value, CardEffect.ADVANCE_3.value)
    rng.rolls.append(3)

    outcome = engine.roll(game_id)

    assert outcome.current_card == "Advance 3"
    assert positions(engine, game_id) == [28, 0]
    assert outcome.game.card_deck == ["Play again"]
    assert event_kinds(engine, game_id)[-2:] == ["card", "card"]


def test_card_play_again(engine, rng, make_game):
    """Test the play again card."""
    game_id, _ = make_game(22, 0)
    set_deck(engine, game_id, CardEffect.ADVANCE_3.value, CardEffect.PLAY_AGAIN.value)
    rng.rolls.append(3)
    before = engine.repository.get_game(game_id)

    outcome = engine.roll(game_id)

    assert outcome.extra_turn
    assert outcome.dice_value == 3
    assert outcome.current_card == "Play again"
    assert outcome.game.current_player_index == before.current_player_index
    assert outcome.game.current_turn == before.current_turn
    assert outcome.game.status == STATUS_ACTIVE


def test_card_retreat_two(engine, rng, make_game):
    """Test the retreat 2 card."""
    game_id, _ = make_game(21, 0)
    set_deck(engine, game_id, CardEffect.RETREAT_2.value)
    rng.rolls.append(4)

    engine.roll(game_id)

    assert positions(engine, game_id) == [23, 0]


def test_card_swap_with_leader_prefers_lowest_seat(engine, rng, make_game):
    """Test that swap with leader breaks ties by seat."""
    game_id, _ = make_game(22, 27, 27)
    set_deck(engine, game_id, CardEffect.SWAP_WITH_LEADER.value)
    rng.rolls.append(3)

    engine.roll(game_id)

    assert positions(engine, game_id) == [27, 25, 27]
    assert "Bob" in engine.repository.get_events(game_id)[0].message


def test_card_swap_with_leader_when_leading(engine, rng, make_game):
    """Test swap with leader when the player already leads."""
    game_id, _ = make_game(20, 24)
    set_deck(engine, game_id, CardEffect.SWAP_WITH_LEADER.value)
    rng.rolls.append(5)

    engine.roll(game_id)

    assert positions(engine, game_id) == [25, 24]


def test_draw_from_empty_pile_reshuffles(engine, rng, make_game):
    """Test drawing from an empty pile during a turn."""
    game_id, _ = make_game(19, 0)
    set_deck(engine, game_id)
    rng.rolls.append(6)

    outcome = engine.roll(game_id)

    assert len(outcome.game.card_deck) == len(card_names()) - 1
    assert sorted(outcome.game.card_deck + [outcome.current_card]) == sorted(card_names())


def test_goal_reached_with_play_again_wins(engine, rng, make_game, monkeypatch):
    """Test that reaching the goal wins even with play again."""
    # A card tile on the goal: the win takes precedence over the extra turn
    monkeypatch.setattr(
        "race_engine.turn.special_tile_at",
        lambda position: TileEffect.DRAW_CARD if position == GOAL_TILE else None,
    )
    game_id, (alice_id, _) = make_game(26, 0)
    set_deck(engine, game_id, CardEffect.PLAY_AGAIN.value)
    rng.rolls.append(5)

    outcome = engine.roll(game_id)

    assert outcome.winner.id == alice_id
    assert not outcome.extra_turn
    assert outcome.game.status == STATUS_COMPLETED


def test_unknown_game():
    """Test rolling in an unknown game."""
    with pytest.raises(NotFoundError):
        resolve_turn(InMemoryGameRepository(), 42)


def test_waiting_game_cannot_roll(engine):
    """Test rolling in a waiting game."""
    game = engine.create_game()
    engine.add_player(game.id, "Alice")

    with pytest.raises(InvalidStateError):
        engine.roll(game.id)


def test_seat_out_of_range(engine, make_game):
    """Test a seat index with no player."""
    game_id, _ = make_game(0, 0)
    engine.repository.update_game(game_id, current_player_index=5)

    with pytest.raises(InternalInconsistencyError):
        engine.roll(game_id)


@pytest.mark.parametrize("seed", [1, 7, 42, 2024])
def test_full_game_invariants(make_game, engine, rng, seed):
    """Test turn and position invariants over whole seeded games."""
    rng.seed(seed)
    game_id, _ = make_game(0, 0, 0, 0)
    last_turn = engine.repository.get_game(game_id).current_turn

    for _ in range(1000):
        outcome = engine.roll(game_id)
        assert all(0 <= p.position <= GOAL_TILE for p in outcome.players)
        if outcome.winner is not None:
            assert outcome.game.status == STATUS_COMPLETED
            assert outcome.winner.position >= GOAL_TILE
            break
        assert outcome.game.status == STATUS_ACTIVE
        if outcome.extra_turn:
            assert outcome.game.current_turn == last_turn
        else:
            assert outcome.game.current_turn == last_turn + 1
        last_turn = outcome.game.current_turn
    else:
        pytest.fail("game did not finish")

    assert len(engine.repository.get_players(game_id)) == 4
    assert sum(1 for e in engine.repository.get_events(game_id) if "won" in e.message) == 1


class SlowOnes(random.Random):
    """Dice that always show 1 and pause while rolling, so concurrent requests overlap."""

    def randint(self, a, b):
        time.sleep(0.01)
        return 1


def test_concurrent_rolls_resolve_one_at_a_time():
    """Test that simultaneous rolls on one game each resolve exactly one turn."""
    rolls = 8
    engine = RaceEngine(rng=SlowOnes(), clock=itertools.count(1_000).__next__)
    game = engine.create_game()
    engine.add_player(game.id, "Alice")
    engine.add_player(game.id, "Bob")
    engine.start_game(game.id)
    start_turn = engine.repository.get_game(game.id).current_turn

    outcomes = []
    outcomes_lock = threading.Lock()

    def roll():
        outcome = engine.roll(game.id)
        with outcomes_lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=roll) for _ in range(rolls)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(outcomes) == rolls
    passed = sum(1 for o in outcomes if not o.extra_turn)
    dice_rolled = sum(1 for o in outcomes if not o.skipped_turn)
    assert engine.repository.get_game(game.id).current_turn - start_turn == passed
    dice_events = [e for e in engine.repository.get_events(game.id) if e.kind == "dice"]
    assert len(dice_events) == dice_rolled == rolls
    assert positions(engine, game.id) == [rolls // 2, rolls // 2]
