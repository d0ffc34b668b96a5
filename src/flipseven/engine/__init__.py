"""Deterministic, headless rules engine for Flip Seven.

IMPORTANT: This package must never import presentation code.
"""

from .actions import (
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
from .deck import DeckExhausted, build_deck, draw, shuffle
from .scoring import calculate_score, has_duplicate_number
from .session import GameSession, InvalidPlayerCount, StepResult, new_session, replay, step
from .types import Card, GameSettings, Player, PlayerRoundState

__all__ = [
    "AdvanceAction",
    "Card",
    "DealNextCardAction",
    "DeckExhausted",
    "EndRoundAction",
    "GameSession",
    "GameSettings",
    "HitAction",
    "InvalidPlayerCount",
    "Player",
    "PlayerRoundState",
    "ResolveActionCard",
    "ResolveDealingAction",
    "ResolveFlipThreeCardAction",
    "SkipDealingAction",
    "SkipFlipThreeAction",
    "StartRoundAction",
    "StayAction",
    "StepResult",
    "UseSecondChanceAction",
    "build_deck",
    "calculate_score",
    "draw",
    "has_duplicate_number",
    "new_session",
    "replay",
    "shuffle",
    "step",
]
