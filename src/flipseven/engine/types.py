from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

CardKind = Literal["number", "modifier", "action"]
ModifierKind = Literal["x2", "+2", "+4", "+6", "+8", "+10"]
ActionKind = Literal["freeze", "flip_three", "second_chance"]
GameStatus = Literal["playing", "round_summary", "game_over"]

MODIFIER_KINDS: tuple[ModifierKind, ...] = ("x2", "+2", "+4", "+6", "+8", "+10")
ACTION_KINDS: tuple[ActionKind, ...] = ("freeze", "flip_three", "second_chance")

FLIP_SEVEN_COUNT = 7
FLIP_SEVEN_BONUS = 15
FLIP_THREE_DRAWS = 3
MIN_PLAYERS = 2
MAX_PLAYERS = 18


@dataclass(frozen=True)
class Card:
    """A single physical card. Exactly one payload field is set, matching ``kind``."""

    id: str
    kind: CardKind
    value: int | None = None
    modifier: ModifierKind | None = None
    action: ActionKind | None = None

    @property
    def is_number(self) -> bool:
        return self.kind == "number"

    def label(self) -> str:
        if self.kind == "number":
            return str(self.value)
        if self.kind == "modifier":
            return str(self.modifier)
        return str(self.action)


@dataclass
class Player:
    id: str
    name: str
    total_score: int = 0


@dataclass
class PlayerRoundState:
    player_id: str
    number_cards: list[Card] = field(default_factory=list)
    modifier_cards: list[Card] = field(default_factory=list)
    action_cards: list[Card] = field(default_factory=list)
    has_second_chance: bool = False
    is_active: bool = True
    has_stayed: bool = False
    is_busted: bool = False
    is_frozen: bool = False
    round_score: int = 0
    has_flip_seven: bool = False

    @property
    def can_act(self) -> bool:
        return self.is_active and not self.has_stayed and not self.is_busted and not self.is_frozen

    def held_cards(self) -> list[Card]:
        return [*self.number_cards, *self.modifier_cards, *self.action_cards]


@dataclass(frozen=True)
class GameSettings:
    target_score: int = 200

    def __post_init__(self) -> None:
        if self.target_score < 1:
            raise ValueError("target_score must be at least 1")


@dataclass(frozen=True)
class RoundScore:
    player_id: str
    score: int


@dataclass(frozen=True)
class RoundResult:
    round: int
    scores: tuple[RoundScore, ...]


# ---------------------------------------------------------------------------
# Round phases. Each phase is its own variant so that pending-action and
# flip-three data only exist while the round is actually in that phase.
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PendingAction:
    card: Card
    source_player: int


@dataclass(frozen=True)
class FlipThreeState:
    target_player: int
    cards_remaining: int = FLIP_THREE_DRAWS
    # Freeze/FlipThree cards turned up by the forced draws. They are banked in
    # the target's hand and never resolved.
    uncovered_actions: tuple[Card, ...] = ()


@dataclass(frozen=True)
class Dealing:
    seat: int
    seats_done: int = 0
    name: Literal["dealing"] = "dealing"


@dataclass(frozen=True)
class PlayerTurn:
    name: Literal["player_turn"] = "player_turn"


@dataclass(frozen=True)
class ResolvingAction:
    pending: PendingAction
    resume: Dealing | None = None
    name: Literal["resolving_action"] = "resolving_action"


@dataclass(frozen=True)
class FlipThree:
    state: FlipThreeState
    resume: Dealing | None = None
    name: Literal["flip_three"] = "flip_three"


@dataclass(frozen=True)
class RoundEnd:
    name: Literal["round_end"] = "round_end"


RoundPhase = Dealing | PlayerTurn | ResolvingAction | FlipThree | RoundEnd
PhaseName = Literal["dealing", "player_turn", "resolving_action", "flip_three", "round_end"]
