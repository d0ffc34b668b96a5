from __future__ import annotations

import pytest

from flipseven.engine.ai import play_round
from flipseven.engine.session import (
    GameSession,
    advance_to_next_player,
    end_round,
    start_round,
    stay_player,
    update_settings,
)
from flipseven.engine.types import GameSettings

from builders import give, make_session, mod, num, rig, skip_to_turns


def _stay_everyone(s: GameSession) -> None:
    while s.round_phase == "player_turn":
        assert stay_player(s).ok
        assert advance_to_next_player(s).ok


def _held(s: GameSession) -> int:
    return sum(len(rs.held_cards()) for rs in s.round_states)


def test_end_round_scores_and_rotates_dealer() -> None:
    s = make_session(3)
    skip_to_turns(s, 0)
    give(s, 0, num(10))
    give(s, 1, num(3), mod("x2"))
    give(s, 2, num(7), mod("+4"))
    _stay_everyone(s)
    assert s.round_phase == "round_end"

    res = end_round(s)
    assert res.ok
    assert [e["type"] for e in res.events] == ["ROUND_ENDED"]
    assert [p.total_score for p in s.players] == [10, 6, 11]
    assert s.status == "round_summary"
    assert s.dealer_index == 1
    assert s.current_round == 2

    history = s.round_history
    assert len(history) == 1
    assert history[0].round == 1
    assert [sc.score for sc in history[0].scores] == [10, 6, 11]
    assert [sc.player_id for sc in history[0].scores] == [p.id for p in s.players]
    assert [p.total_score for p in s.leaderboard()] == [11, 10, 6]


def test_start_round_sweeps_hands_and_deals_left_of_new_dealer() -> None:
    s = make_session(3)
    skip_to_turns(s, 0)
    give(s, 0, num(10))
    give(s, 1, num(3), mod("x2"))
    give(s, 2, num(7), mod("+4"))
    _stay_everyone(s)
    end_round(s)

    res = start_round(s)
    assert res.ok
    assert "DECK_RESHUFFLED" not in [e["type"] for e in res.events]
    assert s.status == "playing"
    assert s.round_phase == "dealing"
    assert s.dealing_player_index == 2
    assert s.current_player_index == 2
    assert _held(s) == 0
    assert len(s.discard_pile) == 5
    assert len(s.deck) == 94


def test_short_deck_is_rebuilt_before_the_round() -> None:
    s = make_session(3)
    skip_to_turns(s, 0)
    rig(s, num(1), num(2))
    s.discard_pile = [num(9), num(10)]
    give(s, 0, num(4))
    _stay_everyone(s)
    end_round(s)

    res = start_round(s)
    assert "DECK_RESHUFFLED" in [e["type"] for e in res.events]
    assert s.discard_pile == []
    assert sorted(c.value for c in s.deck) == [1, 2, 4, 9, 10]


def test_reaching_target_ends_game() -> None:
    s = make_session(3, target=10)
    skip_to_turns(s, 0)
    give(s, 0, num(4))
    give(s, 1, num(12))
    _stay_everyone(s)

    res = end_round(s)
    over = [e for e in res.events if e["type"] == "GAME_OVER"]
    assert s.status == "game_over"
    assert over and over[0]["winner"] == s.players[1].id

    res = start_round(s)
    assert not res.ok
    assert res.error == "Game is over."


def test_round_lifecycle_guards() -> None:
    s = make_session(3)
    assert end_round(s).error == "Round is not over."
    assert start_round(s).error == "Round already in progress."


def test_cards_are_conserved_across_rounds() -> None:
    s = make_session(4, seed=11)
    ids = {c.id for c in s.deck}

    for _ in range(3):
        play_round(s)
        if s.status == "game_over":
            break
        assert len(s.deck) + len(s.discard_pile) + _held(s) == 94
        start_round(s)
        assert _held(s) == 0
        assert {c.id for c in [*s.deck, *s.discard_pile]} == ids


def test_update_settings() -> None:
    s = make_session(3)
    update_settings(s, GameSettings(target_score=50))
    assert s.settings.target_score == 50
    assert s.event_log[-1] == {"type": "SETTINGS_UPDATED", "target_score": 50}

    with pytest.raises(ValueError):
        GameSettings(target_score=0)
