from __future__ import annotations

from typing import Sequence

from .types import FLIP_SEVEN_BONUS, PlayerRoundState


def _modifier_bonus(modifier: str | None) -> int:
    if modifier is None or modifier == "x2":
        return 0
    return int(modifier.lstrip("+"))


def calculate_score(state: PlayerRoundState) -> int:
    """Score a hand: numbers summed, doubled by x2, plus flat bonuses.

    The x2 modifier only doubles the number-card sum; additive modifiers and
    the Flip Seven bonus are added afterwards. A busted hand scores 0.
    """
    if state.is_busted:
        return 0

    total = sum(card.value or 0 for card in state.number_cards)

    if any(card.modifier == "x2" for card in state.modifier_cards):
        total *= 2

    for card in state.modifier_cards:
        total += _modifier_bonus(card.modifier)

    if state.has_flip_seven:
        total += FLIP_SEVEN_BONUS

    return total


def has_duplicate_number(state: PlayerRoundState, value: int) -> bool:
    return any(card.value == value for card in state.number_cards)


def eligible_targets(round_states: Sequence[PlayerRoundState]) -> list[int]:
    """Seats that may still be chosen as the target of a Freeze or Flip Three."""
    return [i for i, rs in enumerate(round_states) if rs.can_act]
