from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class StartRoundAction:
    pass


@dataclass(frozen=True)
class EndRoundAction:
    pass


@dataclass(frozen=True)
class DealNextCardAction:
    pass


@dataclass(frozen=True)
class ResolveDealingAction:
    target: int


@dataclass(frozen=True)
class SkipDealingAction:
    pass


@dataclass(frozen=True)
class HitAction:
    pass


@dataclass(frozen=True)
class StayAction:
    pass


@dataclass(frozen=True)
class AdvanceAction:
    pass


@dataclass(frozen=True)
class ResolveActionCard:
    target: int


@dataclass(frozen=True)
class ResolveFlipThreeCardAction:
    pass


@dataclass(frozen=True)
class SkipFlipThreeAction:
    pass


@dataclass(frozen=True)
class UseSecondChanceAction:
    discard: bool


Action = (
    StartRoundAction
    | EndRoundAction
    | DealNextCardAction
    | ResolveDealingAction
    | SkipDealingAction
    | HitAction
    | StayAction
    | AdvanceAction
    | ResolveActionCard
    | ResolveFlipThreeCardAction
    | SkipFlipThreeAction
    | UseSecondChanceAction
)
