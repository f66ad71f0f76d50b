import random

import pytest
from agent_greedy_heuristic import (
    DEFAULT_WEIGHTS,
    choose_action,
    format_board,
    game_seeds,
    main,
    play_game,
    sample_action,
    summarize,
)
from eight_off import Action, Card, EightOff, Location, Number, Suit


@pytest.fixture
def stack_move_game():
    game = EightOff(seed=1)
    game.arrange(
        [
            [Card(Suit.CLUB, Number.KING), Card(Suit.DIAMOND, Number.SEVEN), Card(Suit.DIAMOND, Number.SIX)],
            [Card(Suit.DIAMOND, Number.EIGHT)],
        ],
        strict=False,
    )
    return game


def test_sample_action_requires_actions():
    with pytest.raises(ValueError):
        sample_action([])


def test_sample_action_single_choice():
    action = Action(Location.TABLEAU_1, Location.CELL_1)
    assert sample_action([action]) == action


def test_sample_action_picks_a_valid_action(stack_move_game):
    actions = stack_move_game.get_all_legal_actions()
    rng = random.Random(0)
    for _ in range(20):
        assert sample_action(actions, rng=rng) in actions


def test_sample_action_respects_weights():
    to_foundation = Action(Location.CELL_1, Location.FOUNDATION_1)
    to_cell = Action(Location.TABLEAU_1, Location.CELL_2)
    weights = dict(DEFAULT_WEIGHTS)
    weights[(to_cell.from_location.kind, to_cell.to_location.kind)] = 0

    rng = random.Random(3)
    picks = {sample_action([to_foundation, to_cell], weights=weights, rng=rng) for _ in range(20)}
    assert picks == {to_foundation}


def test_choose_action_follows_hint(stack_move_game):
    actions = stack_move_game.get_all_legal_actions()
    action = choose_action(stack_move_game, actions, "hint", random.Random(0))
    assert action == Action(Location.TABLEAU_1, Location.TABLEAU_2, change_index=1)


def test_format_board(stack_move_game):
    board = format_board(stack_move_game)
    assert "Free cells:" in board
    assert "T1: K♣ 7♦ 6♦" in board
    assert "T2: 8♦" in board


def test_play_game_returns_result():
    win, steps = play_game(seed=3, max_steps=25)
    assert isinstance(win, bool)
    assert 0 <= steps <= 25


def test_play_game_hint_strategy():
    win, steps = play_game(seed=3, max_steps=25, strategy="hint")
    assert isinstance(win, bool)
    assert 0 <= steps <= 25


def test_play_game_is_reproducible():
    assert play_game(seed=8, max_steps=50) == play_game(seed=8, max_steps=50)


def test_play_game_rejects_unknown_strategy():
    with pytest.raises(ValueError):
        play_game(seed=1, strategy="lookahead")


def test_game_seeds():
    assert game_seeds(3, 10) == [10, 11, 12]
    assert game_seeds(2, None) == [None, None]


def test_summarize():
    summary = summarize([(True, 10), (False, 30)])
    assert summary["games"] == 2
    assert summary["wins"] == 1
    assert summary["win_rate"] == 50
    assert summary["avg_steps"] == 20

    with pytest.raises(ValueError):
        summarize([])


def test_main_single_game(capsys):
    assert main(["--games", "1", "--max-steps", "5", "--seed", "1"]) == 0
    assert "Game" in capsys.readouterr().out
