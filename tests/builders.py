from __future__ import annotations

import itertools

from flipseven.engine.session import GameSession, new_session
from flipseven.engine.types import Card, GameSettings, PlayerTurn

_ids = itertools.count()


def num(value: int) -> Card:
    return Card(id=f"t-num-{value}-{next(_ids)}", kind="number", value=value)


def mod(modifier: str) -> Card:
    return Card(id=f"t-mod-{modifier}-{next(_ids)}", kind="modifier", modifier=modifier)  # type: ignore[arg-type]


def act(action: str) -> Card:
    return Card(id=f"t-act-{action}-{next(_ids)}", kind="action", action=action)  # type: ignore[arg-type]


def make_session(players: int = 3, seed: int = 7, target: int = 200) -> GameSession:
    names = [f"P{i}" for i in range(players)]
    return new_session(names, seed=seed, settings=GameSettings(target_score=target))


def rig(state: GameSession, *draws: Card) -> None:
    """Replace the piles so the next draws come out in the given order."""
    state.deck = list(reversed(draws))
    state.discard_pile = []


def give(state: GameSession, seat: int, *cards: Card) -> None:
    rs = state.round_states[seat]
    for card in cards:
        if card.kind == "number":
            rs.number_cards.append(card)
        elif card.kind == "modifier":
            rs.modifier_cards.append(card)
        else:
            rs.action_cards.append(card)
            if card.action == "second_chance":
                rs.has_second_chance = True


def skip_to_turns(state: GameSession, current: int = 0) -> None:
    state.phase = PlayerTurn()
    state.current_player_index = current
