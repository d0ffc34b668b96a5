from __future__ import annotations

import random
from typing import Mapping

from .actions import (
    Action,
    AdvanceAction,
    DealNextCardAction,
    EndRoundAction,
    HitAction,
    ResolveActionCard,
    ResolveDealingAction,
    ResolveFlipThreeCardAction,
    SkipDealingAction,
    SkipFlipThreeAction,
    StartRoundAction,
    StayAction,
    UseSecondChanceAction,
)
from .session import GameSession
from .types import (
    Card,
    Dealing,
    FlipThree,
    FlipThreeState,
    GameSettings,
    PendingAction,
    Player,
    PlayerRoundState,
    PlayerTurn,
    ResolvingAction,
    RoundEnd,
    RoundPhase,
    RoundResult,
    RoundScore,
)

_SIMPLE_ACTIONS: dict[str, type] = {
    "start_round": StartRoundAction,
    "end_round": EndRoundAction,
    "deal_next_card": DealNextCardAction,
    "skip_dealing_action": SkipDealingAction,
    "hit": HitAction,
    "stay": StayAction,
    "advance": AdvanceAction,
    "resolve_flip_three_card": ResolveFlipThreeCardAction,
    "skip_flip_three_action": SkipFlipThreeAction,
}


def action_to_dict(a: Action) -> dict[str, object]:
    if isinstance(a, ResolveDealingAction):
        return {"type": "resolve_dealing_action", "target": a.target}
    if isinstance(a, ResolveActionCard):
        return {"type": "resolve_action_card", "target": a.target}
    if isinstance(a, UseSecondChanceAction):
        return {"type": "use_second_chance", "discard": a.discard}
    for name, cls in _SIMPLE_ACTIONS.items():
        if isinstance(a, cls):
            return {"type": name}
    # should be unreachable
    return {"type": "unknown"}


def action_from_dict(d: Mapping[str, object]) -> Action:
    t = d.get("type")
    if t == "resolve_dealing_action":
        return ResolveDealingAction(target=int(d["target"]))  # type: ignore[arg-type]
    if t == "resolve_action_card":
        return ResolveActionCard(target=int(d["target"]))  # type: ignore[arg-type]
    if t == "use_second_chance":
        return UseSecondChanceAction(discard=bool(d["discard"]))
    if isinstance(t, str) and t in _SIMPLE_ACTIONS:
        return _SIMPLE_ACTIONS[t]()
    raise ValueError(f"Unknown action type: {t}")


def card_to_dict(c: Card) -> dict[str, object]:
    return {"id": c.id, "kind": c.kind, "value": c.value, "modifier": c.modifier, "action": c.action}


def card_from_dict(d: Mapping[str, object]) -> Card:
    return Card(
        id=str(d["id"]),
        kind=d["kind"],  # type: ignore[arg-type]
        value=d.get("value"),  # type: ignore[arg-type]
        modifier=d.get("modifier"),  # type: ignore[arg-type]
        action=d.get("action"),  # type: ignore[arg-type]
    )


def _cards(raw: object) -> list[Card]:
    if not isinstance(raw, list):
        return []
    return [card_from_dict(c) for c in raw if isinstance(c, dict)]


def _round_state_to_dict(rs: PlayerRoundState) -> dict[str, object]:
    return {
        "player_id": rs.player_id,
        "number_cards": [card_to_dict(c) for c in rs.number_cards],
        "modifier_cards": [card_to_dict(c) for c in rs.modifier_cards],
        "action_cards": [card_to_dict(c) for c in rs.action_cards],
        "has_second_chance": rs.has_second_chance,
        "is_active": rs.is_active,
        "has_stayed": rs.has_stayed,
        "is_busted": rs.is_busted,
        "is_frozen": rs.is_frozen,
        "round_score": rs.round_score,
        "has_flip_seven": rs.has_flip_seven,
    }


def _round_state_from_dict(d: Mapping[str, object]) -> PlayerRoundState:
    return PlayerRoundState(
        player_id=str(d["player_id"]),
        number_cards=_cards(d.get("number_cards")),
        modifier_cards=_cards(d.get("modifier_cards")),
        action_cards=_cards(d.get("action_cards")),
        has_second_chance=bool(d.get("has_second_chance", False)),
        is_active=bool(d.get("is_active", True)),
        has_stayed=bool(d.get("has_stayed", False)),
        is_busted=bool(d.get("is_busted", False)),
        is_frozen=bool(d.get("is_frozen", False)),
        round_score=int(d.get("round_score", 0)),  # type: ignore[arg-type]
        has_flip_seven=bool(d.get("has_flip_seven", False)),
    )


def _dealing_to_dict(p: Dealing | None) -> dict[str, object] | None:
    if p is None:
        return None
    return {"name": p.name, "seat": p.seat, "seats_done": p.seats_done}


def _dealing_from_dict(d: object) -> Dealing | None:
    if not isinstance(d, dict):
        return None
    return Dealing(seat=int(d["seat"]), seats_done=int(d.get("seats_done", 0)))


def phase_to_dict(p: RoundPhase) -> dict[str, object]:
    if isinstance(p, Dealing):
        return _dealing_to_dict(p)  # type: ignore[return-value]
    if isinstance(p, ResolvingAction):
        return {
            "name": p.name,
            "pending": {"card": card_to_dict(p.pending.card), "source_player": p.pending.source_player},
            "resume": _dealing_to_dict(p.resume),
        }
    if isinstance(p, FlipThree):
        return {
            "name": p.name,
            "state": {
                "target_player": p.state.target_player,
                "cards_remaining": p.state.cards_remaining,
                "uncovered_actions": [card_to_dict(c) for c in p.state.uncovered_actions],
            },
            "resume": _dealing_to_dict(p.resume),
        }
    return {"name": p.name}


def phase_from_dict(d: Mapping[str, object]) -> RoundPhase:
    name = d.get("name")
    if name == "dealing":
        return _dealing_from_dict(d)  # type: ignore[return-value]
    if name == "player_turn":
        return PlayerTurn()
    if name == "round_end":
        return RoundEnd()
    if name == "resolving_action":
        pending = d["pending"]
        assert isinstance(pending, dict)
        return ResolvingAction(
            pending=PendingAction(
                card=card_from_dict(pending["card"]),
                source_player=int(pending["source_player"]),
            ),
            resume=_dealing_from_dict(d.get("resume")),
        )
    if name == "flip_three":
        raw = d["state"]
        assert isinstance(raw, dict)
        return FlipThree(
            state=FlipThreeState(
                target_player=int(raw["target_player"]),
                cards_remaining=int(raw["cards_remaining"]),
                uncovered_actions=tuple(_cards(raw.get("uncovered_actions"))),
            ),
            resume=_dealing_from_dict(d.get("resume")),
        )
    raise ValueError(f"Unknown phase: {name}")


def _rng_to_dict(rng: random.Random) -> dict[str, object]:
    version, internal, gauss_next = rng.getstate()
    return {"version": version, "internal": list(internal), "gauss_next": gauss_next}


def _rng_from_dict(d: Mapping[str, object]) -> random.Random:
    rng = random.Random()
    internal = d["internal"]
    assert isinstance(internal, list)
    rng.setstate((d["version"], tuple(internal), d.get("gauss_next")))
    return rng


def settings_to_dict(s: GameSettings) -> dict[str, object]:
    return {"target_score": s.target_score}


def settings_from_dict(d: Mapping[str, object]) -> GameSettings:
    return GameSettings(target_score=int(d.get("target_score", 200)))  # type: ignore[arg-type]


def snapshot(state: GameSession) -> dict[str, object]:
    """Return a JSON-serializable canonical snapshot of the current session."""
    return {
        "id": state.id,
        "seed": state.seed,
        "rng": _rng_to_dict(state.rng),
        "status": state.status,
        "settings": settings_to_dict(state.settings),
        "players": [{"id": p.id, "name": p.name, "total_score": p.total_score} for p in state.players],
        "deck": [card_to_dict(c) for c in state.deck],
        "discard_pile": [card_to_dict(c) for c in state.discard_pile],
        "dealer_index": state.dealer_index,
        "current_round": state.current_round,
        "round_states": [_round_state_to_dict(rs) for rs in state.round_states],
        "current_player_index": state.current_player_index,
        "phase": phase_to_dict(state.phase),
        "round_history": [
            {"round": r.round, "scores": [{"player_id": s.player_id, "score": s.score} for s in r.scores]}
            for r in state.round_history
        ],
        "action_log": [action_to_dict(a) for a in state.action_log],
    }


def session_from_snapshot(d: Mapping[str, object]) -> GameSession:
    """Rebuild a session from :func:`snapshot` output. The event log is not carried over."""
    players_raw = d["players"]
    history_raw = d.get("round_history", [])
    states_raw = d["round_states"]
    actions_raw = d.get("action_log", [])
    rng_raw = d["rng"]
    phase_raw = d["phase"]
    settings_raw = d.get("settings", {})
    assert isinstance(players_raw, list) and isinstance(states_raw, list)
    assert isinstance(history_raw, list) and isinstance(actions_raw, list)
    assert isinstance(rng_raw, dict) and isinstance(phase_raw, dict) and isinstance(settings_raw, dict)

    return GameSession(
        id=str(d["id"]),
        seed=int(d["seed"]),  # type: ignore[arg-type]
        rng=_rng_from_dict(rng_raw),
        players=[
            Player(id=str(p["id"]), name=str(p["name"]), total_score=int(p.get("total_score", 0)))
            for p in players_raw
        ],
        deck=_cards(d.get("deck")),
        discard_pile=_cards(d.get("discard_pile")),
        round_states=[_round_state_from_dict(rs) for rs in states_raw],
        settings=settings_from_dict(settings_raw),
        status=d.get("status", "playing"),  # type: ignore[arg-type]
        dealer_index=int(d.get("dealer_index", 0)),  # type: ignore[arg-type]
        current_round=int(d.get("current_round", 1)),  # type: ignore[arg-type]
        current_player_index=int(d.get("current_player_index", 0)),  # type: ignore[arg-type]
        phase=phase_from_dict(phase_raw),
        round_history=[
            RoundResult(
                round=int(r["round"]),
                scores=tuple(RoundScore(player_id=str(s["player_id"]), score=int(s["score"])) for s in r["scores"]),
            )
            for r in history_raw
        ],
        action_log=[action_from_dict(a) for a in actions_raw],
    )
