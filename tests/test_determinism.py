from __future__ import annotations

import json

from flipseven.engine.ai import BotSpec, play_game, play_round
from flipseven.engine.serialize import action_from_dict, action_to_dict, session_from_snapshot, snapshot
from flipseven.engine.session import new_session, replay
from flipseven.engine.types import GameSettings

NAMES = ["Ada", "Bo", "Cy", "Di"]


def test_same_seed_same_game() -> None:
    settings = GameSettings(target_score=120)
    a = play_game(NAMES, seed=424242, settings=settings)
    b = play_game(NAMES, seed=424242, settings=settings)
    assert snapshot(a) == snapshot(b)


def test_replay_from_action_log() -> None:
    settings = GameSettings(target_score=120)
    state1 = play_game(NAMES, seed=424242, settings=settings, spec=BotSpec(stay_at=20))
    assert state1.status == "game_over"

    state2 = replay(NAMES, seed=424242, actions=state1.action_log, settings=settings)
    assert snapshot(state1) == snapshot(state2)


def test_replay_from_serialized_commands() -> None:
    state1 = new_session(NAMES[:3], seed=7)
    play_round(state1)

    wire = json.loads(json.dumps([action_to_dict(a) for a in state1.action_log]))
    state2 = replay(NAMES[:3], seed=7, actions=[action_from_dict(d) for d in wire])
    assert snapshot(state1) == snapshot(state2)


def test_snapshot_restores_a_live_session() -> None:
    state1 = new_session(NAMES, seed=99)
    play_round(state1)

    restored = session_from_snapshot(json.loads(json.dumps(snapshot(state1))))
    assert snapshot(restored) == snapshot(state1)

    # Both copies keep drawing the same cards from here on.
    play_round(state1)
    play_round(restored)
    assert snapshot(restored) == snapshot(state1)
