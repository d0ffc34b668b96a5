from __future__ import annotations

import random
from dataclasses import dataclass, field, replace
from typing import Iterable, Sequence

from . import deck as deck_mod
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
from .deck import DeckExhausted
from .scoring import calculate_score, eligible_targets, has_duplicate_number
from .types import (
    FLIP_SEVEN_COUNT,
    MAX_PLAYERS,
    MIN_PLAYERS,
    Card,
    Dealing,
    FlipThree,
    FlipThreeState,
    GameSettings,
    GameStatus,
    PendingAction,
    PhaseName,
    Player,
    PlayerRoundState,
    PlayerTurn,
    ResolvingAction,
    RoundEnd,
    RoundPhase,
    RoundResult,
    RoundScore,
)

Event = dict[str, object]


class InvalidPlayerCount(ValueError):
    pass


@dataclass
class StepResult:
    ok: bool
    events: list[Event]
    error: str | None = None
    card: Card | None = None


@dataclass
class GameSession:
    id: str
    seed: int
    rng: random.Random
    players: list[Player]
    deck: list[Card]
    discard_pile: list[Card]
    round_states: list[PlayerRoundState]
    settings: GameSettings = field(default_factory=GameSettings)
    status: GameStatus = "playing"
    dealer_index: int = 0
    current_round: int = 1
    current_player_index: int = 0
    phase: RoundPhase = field(default_factory=RoundEnd)
    round_history: list[RoundResult] = field(default_factory=list)
    action_log: list[Action] = field(default_factory=list)
    event_log: list[Event] = field(default_factory=list)

    @property
    def round_phase(self) -> PhaseName:
        return self.phase.name

    @property
    def pending_action(self) -> PendingAction | None:
        if isinstance(self.phase, ResolvingAction):
            return self.phase.pending
        return None

    @property
    def flip_three_state(self) -> FlipThreeState | None:
        if isinstance(self.phase, FlipThree):
            return self.phase.state
        return None

    @property
    def dealing_player_index(self) -> int | None:
        """Seat owed the next dealt card, also while dealing is paused."""
        phase = self.phase
        if isinstance(phase, Dealing):
            return phase.seat
        if isinstance(phase, (ResolvingAction, FlipThree)) and phase.resume is not None:
            return phase.resume.seat
        return None

    @property
    def start_seat(self) -> int:
        return (self.dealer_index + 1) % len(self.players)

    def eligible_targets(self) -> list[int]:
        return eligible_targets(self.round_states)

    def leaderboard(self) -> list[Player]:
        return sorted(self.players, key=lambda p: p.total_score, reverse=True)


def _reject(msg: str) -> StepResult:
    return StepResult(ok=False, events=[], error=msg)


def _generate_id(rng: random.Random) -> str:
    return f"{rng.getrandbits(32):08x}"


def _emit(state: GameSession, events: list[Event], event: Event) -> None:
    state.event_log.append(event)
    events.append(event)


def _draw_card(state: GameSession, events: list[Event]) -> Card:
    # Raises DeckExhausted before touching the session.
    result = deck_mod.draw(state.rng, state.deck, state.discard_pile)
    state.deck = result.deck
    state.discard_pile = result.discard
    if result.reshuffled:
        _emit(state, events, {"type": "DECK_RESHUFFLED", "deck_size": len(state.deck)})
    return result.card


def _first_eligible_from(round_states: Sequence[PlayerRoundState], start: int) -> int | None:
    n = len(round_states)
    for i in range(n):
        idx = (start + i) % n
        if round_states[idx].can_act:
            return idx
    return None


def _next_eligible_after(round_states: Sequence[PlayerRoundState], current: int) -> int | None:
    return _first_eligible_from(round_states, (current + 1) % len(round_states))


def _distinct_numbers(rs: PlayerRoundState) -> int:
    return len({card.value for card in rs.number_cards})


def _bust(state: GameSession, seat: int, card: Card, events: list[Event]) -> None:
    rs = state.round_states[seat]
    rs.number_cards.append(card)
    rs.is_busted = True
    rs.is_active = False
    rs.round_score = 0
    _emit(state, events, {"type": "PLAYER_BUSTED", "player": seat, "card_id": card.id})


def _add_number(state: GameSession, seat: int, card: Card, events: list[Event]) -> bool:
    """Append a non-duplicate number. Returns True when it completes a Flip Seven."""
    rs = state.round_states[seat]
    rs.number_cards.append(card)
    if _distinct_numbers(rs) >= FLIP_SEVEN_COUNT:
        rs.has_flip_seven = True
        rs.is_active = False
        rs.has_stayed = True
        rs.round_score = calculate_score(rs)
        _emit(state, events, {"type": "FLIP_SEVEN", "player": seat, "score": rs.round_score})
        return True
    return False


def _consume_second_chance(state: GameSession, seat: int, duplicate: Card, events: list[Event]) -> None:
    rs = state.round_states[seat]
    rs.has_second_chance = False
    for i, held in enumerate(rs.action_cards):
        if held.action == "second_chance":
            state.discard_pile.append(rs.action_cards.pop(i))
            break
    state.discard_pile.append(duplicate)
    _emit(state, events, {"type": "SECOND_CHANCE_USED", "player": seat, "card_id": duplicate.id})


def _freeze(state: GameSession, target: int, events: list[Event]) -> None:
    rs = state.round_states[target]
    rs.is_frozen = True
    rs.is_active = False
    rs.round_score = calculate_score(rs)
    _emit(state, events, {"type": "PLAYER_FROZEN", "player": target, "score": rs.round_score})


def _take_card(
    state: GameSession, seat: int, card: Card, events: list[Event], resume: Dealing | None
) -> bool:
    """Apply a dealt or hit card to ``seat``.

    Returns True when the card needs an outside decision; the session is then
    left in ResolvingAction.
    """
    rs = state.round_states[seat]

    if card.kind == "number":
        assert card.value is not None
        if has_duplicate_number(rs, card.value):
            if rs.has_second_chance:
                state.phase = ResolvingAction(PendingAction(card=card, source_player=seat), resume=resume)
                _emit(state, events, {"type": "SECOND_CHANCE_OFFERED", "player": seat, "card_id": card.id})
                return True
            _bust(state, seat, card, events)
            return False
        _add_number(state, seat, card, events)
        return False

    if card.kind == "modifier":
        rs.modifier_cards.append(card)
        return False

    rs.action_cards.append(card)
    if card.action == "second_chance":
        rs.has_second_chance = True
        return False

    if not eligible_targets(state.round_states):
        _emit(state, events, {"type": "ACTION_SKIPPED", "player": seat, "card_id": card.id})
        return False
    state.phase = ResolvingAction(PendingAction(card=card, source_player=seat), resume=resume)
    _emit(state, events, {"type": "ACTION_PENDING", "player": seat, "card_id": card.id, "action": card.action})
    return True


def _settle_dealing(state: GameSession, events: list[Event]) -> None:
    """Skip seats that can no longer act and close the deal once every seat is served."""
    phase = state.phase
    if not isinstance(phase, Dealing):
        return
    n = len(state.players)
    seat, done = phase.seat, phase.seats_done
    while done < n and not state.round_states[seat].can_act:
        seat = (seat + 1) % n
        done += 1

    if done < n:
        state.phase = Dealing(seat=seat, seats_done=done)
        return

    first = _first_eligible_from(state.round_states, state.start_seat)
    if first is None:
        state.phase = RoundEnd()
        _emit(state, events, {"type": "ROUND_OVER", "round": state.current_round})
        return
    state.current_player_index = first
    state.phase = PlayerTurn()
    _emit(state, events, {"type": "DEALING_COMPLETE", "player": first})


def _return_from_resolution(state: GameSession, resume: Dealing | None, events: list[Event]) -> None:
    if resume is not None:
        state.phase = resume
        _settle_dealing(state, events)
    else:
        state.phase = PlayerTurn()


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _start_round(state: GameSession) -> StepResult:
    if state.status == "playing":
        return _reject("Round already in progress.")
    events: list[Event] = []

    for rs in state.round_states:
        state.discard_pile.extend(rs.held_cards())

    n = len(state.players)
    if len(state.deck) < 2 * n:
        state.deck = deck_mod.shuffle(state.rng, [*state.deck, *state.discard_pile])
        state.discard_pile = []
        _emit(state, events, {"type": "DECK_RESHUFFLED", "deck_size": len(state.deck)})

    state.round_states = [PlayerRoundState(player_id=p.id) for p in state.players]
    state.status = "playing"
    state.current_player_index = state.start_seat
    state.phase = Dealing(seat=state.start_seat)
    _emit(state, events, {"type": "ROUND_STARTED", "round": state.current_round, "dealer": state.dealer_index})
    return StepResult(ok=True, events=events)


def _end_round(state: GameSession) -> StepResult:
    if state.status != "playing" or not isinstance(state.phase, RoundEnd):
        return _reject("Round is not over.")
    events: list[Event] = []

    scores: list[RoundScore] = []
    for player, rs in zip(state.players, state.round_states):
        rs.round_score = calculate_score(rs)
        player.total_score += rs.round_score
        scores.append(RoundScore(player_id=player.id, score=rs.round_score))
    state.round_history.append(RoundResult(round=state.current_round, scores=tuple(scores)))
    _emit(
        state,
        events,
        {"type": "ROUND_ENDED", "round": state.current_round, "scores": [s.score for s in scores]},
    )

    state.dealer_index = (state.dealer_index + 1) % len(state.players)
    state.current_round += 1
    if any(p.total_score >= state.settings.target_score for p in state.players):
        state.status = "game_over"
        leader = state.leaderboard()[0]
        _emit(state, events, {"type": "GAME_OVER", "winner": leader.id, "score": leader.total_score})
    else:
        state.status = "round_summary"
    return StepResult(ok=True, events=events)


def _deal_next_card(state: GameSession) -> StepResult:
    phase = state.phase
    if not isinstance(phase, Dealing):
        return _reject("Not dealing.")
    events: list[Event] = []
    n = len(state.players)
    card = _draw_card(state, events)
    _emit(state, events, {"type": "CARD_DEALT", "player": phase.seat, "card_id": card.id})

    # A number card completes this seat's deal; anything else deals it again.
    after = Dealing(seat=(phase.seat + 1) % n, seats_done=phase.seats_done + 1) if card.is_number else phase
    if not _take_card(state, phase.seat, card, events, resume=after):
        state.phase = after
        _settle_dealing(state, events)
    return StepResult(ok=True, events=events, card=card)


def _resolve_action(state: GameSession, target: int, *, dealing: bool) -> StepResult:
    phase = state.phase
    if not isinstance(phase, ResolvingAction):
        return _reject("No pending action.")
    if (phase.resume is not None) != dealing:
        return _reject("Pending action belongs to another phase.")
    card = phase.pending.card
    if card.kind != "action":
        return _reject("Pending card needs a second-chance decision.")
    if target not in eligible_targets(state.round_states):
        return _reject("Invalid target.")
    events: list[Event] = []

    if card.action == "freeze":
        _freeze(state, target, events)
        _return_from_resolution(state, phase.resume, events)
        return StepResult(ok=True, events=events)

    state.phase = FlipThree(FlipThreeState(target_player=target), resume=phase.resume)
    _emit(
        state,
        events,
        {"type": "FLIP_THREE_STARTED", "player": phase.pending.source_player, "target": target},
    )
    return StepResult(ok=True, events=events)


def _skip_dealing_action(state: GameSession) -> StepResult:
    phase = state.phase
    if not isinstance(phase, ResolvingAction) or phase.resume is None:
        return _reject("No pending action.")
    if phase.pending.card.kind != "action":
        return _reject("Pending card needs a second-chance decision.")
    events: list[Event] = []
    _emit(
        state,
        events,
        {"type": "ACTION_SKIPPED", "player": phase.pending.source_player, "card_id": phase.pending.card.id},
    )
    _return_from_resolution(state, phase.resume, events)
    return StepResult(ok=True, events=events)


def _current_can_act(state: GameSession) -> bool:
    return isinstance(state.phase, PlayerTurn) and state.round_states[state.current_player_index].can_act


def _hit(state: GameSession) -> StepResult:
    if not _current_can_act(state):
        return _reject("Current player cannot draw.")
    events: list[Event] = []
    seat = state.current_player_index
    card = _draw_card(state, events)
    _emit(state, events, {"type": "CARD_DRAWN", "player": seat, "card_id": card.id})
    _take_card(state, seat, card, events, resume=None)
    return StepResult(ok=True, events=events, card=card)


def _stay(state: GameSession) -> StepResult:
    if not _current_can_act(state):
        return _reject("Current player cannot stay.")
    events: list[Event] = []
    seat = state.current_player_index
    rs = state.round_states[seat]
    rs.has_stayed = True
    rs.is_active = False
    rs.round_score = calculate_score(rs)
    _emit(state, events, {"type": "PLAYER_STAYED", "player": seat, "score": rs.round_score})
    return StepResult(ok=True, events=events)


def _advance(state: GameSession) -> StepResult:
    if not isinstance(state.phase, PlayerTurn):
        return _reject("Cannot advance outside a player turn.")
    events: list[Event] = []
    nxt = _next_eligible_after(state.round_states, state.current_player_index)
    if nxt is None:
        state.phase = RoundEnd()
        _emit(state, events, {"type": "ROUND_OVER", "round": state.current_round})
    else:
        state.current_player_index = nxt
        _emit(state, events, {"type": "TURN_STARTED", "player": nxt})
    return StepResult(ok=True, events=events)


def _end_flip_three(state: GameSession, phase: FlipThree, reason: str, events: list[Event]) -> None:
    _emit(
        state,
        events,
        {"type": "FLIP_THREE_ENDED", "target": phase.state.target_player, "reason": reason},
    )
    _return_from_resolution(state, phase.resume, events)


def _resolve_flip_three_card(state: GameSession) -> StepResult:
    phase = state.phase
    if not isinstance(phase, FlipThree):
        return _reject("No flip three in progress.")
    events: list[Event] = []
    ft = phase.state
    seat = ft.target_player
    rs = state.round_states[seat]
    card = _draw_card(state, events)
    _emit(state, events, {"type": "CARD_FORCED", "player": seat, "card_id": card.id})
    uncovered = ft.uncovered_actions

    if card.kind == "number":
        assert card.value is not None
        if has_duplicate_number(rs, card.value):
            if not rs.has_second_chance:
                _bust(state, seat, card, events)
                _end_flip_three(state, phase, "bust", events)
                return StepResult(ok=True, events=events, card=card)
            _consume_second_chance(state, seat, card, events)
        elif _add_number(state, seat, card, events):
            _end_flip_three(state, phase, "flip_seven", events)
            return StepResult(ok=True, events=events, card=card)
    elif card.kind == "modifier":
        rs.modifier_cards.append(card)
    else:
        rs.action_cards.append(card)
        if card.action == "second_chance":
            rs.has_second_chance = True
        else:
            uncovered = (*uncovered, card)

    remaining = ft.cards_remaining - 1
    if remaining <= 0:
        _end_flip_three(state, phase, "complete", events)
    else:
        state.phase = replace(
            phase, state=replace(ft, cards_remaining=remaining, uncovered_actions=uncovered)
        )
    return StepResult(ok=True, events=events, card=card)


def _skip_flip_three(state: GameSession) -> StepResult:
    phase = state.phase
    if not isinstance(phase, FlipThree):
        return _reject("No flip three in progress.")
    events: list[Event] = []
    _end_flip_three(state, phase, "skipped", events)
    return StepResult(ok=True, events=events)


def _use_second_chance(state: GameSession, discard: bool) -> StepResult:
    phase = state.phase
    if not isinstance(phase, ResolvingAction) or phase.pending.card.kind != "number":
        return _reject("No pending second chance.")
    events: list[Event] = []
    seat = phase.pending.source_player
    if discard:
        _consume_second_chance(state, seat, phase.pending.card, events)
    else:
        _bust(state, seat, phase.pending.card, events)
    _return_from_resolution(state, phase.resume, events)
    return StepResult(ok=True, events=events)


def step(state: GameSession, action: Action) -> StepResult:
    """Apply a single command to the session.

    Mutates ``state`` in place. Rejected commands (wrong phase, bad target,
    exhausted piles) return ``ok=False`` and leave the session untouched.
    """
    if state.status == "game_over":
        return _reject("Game is over.")

    try:
        if isinstance(action, StartRoundAction):
            result = _start_round(state)
        elif isinstance(action, EndRoundAction):
            result = _end_round(state)
        elif isinstance(action, DealNextCardAction):
            result = _deal_next_card(state)
        elif isinstance(action, ResolveDealingAction):
            result = _resolve_action(state, action.target, dealing=True)
        elif isinstance(action, SkipDealingAction):
            result = _skip_dealing_action(state)
        elif isinstance(action, HitAction):
            result = _hit(state)
        elif isinstance(action, StayAction):
            result = _stay(state)
        elif isinstance(action, AdvanceAction):
            result = _advance(state)
        elif isinstance(action, ResolveActionCard):
            result = _resolve_action(state, action.target, dealing=False)
        elif isinstance(action, ResolveFlipThreeCardAction):
            result = _resolve_flip_three_card(state)
        elif isinstance(action, SkipFlipThreeAction):
            result = _skip_flip_three(state)
        elif isinstance(action, UseSecondChanceAction):
            result = _use_second_chance(state, action.discard)
        else:
            return _reject("Unknown action.")
    except DeckExhausted as e:
        return _reject(str(e))

    if result.ok:
        state.action_log.append(action)
    return result


def new_session(
    names: Sequence[str],
    seed: int | None = None,
    settings: GameSettings | None = None,
) -> GameSession:
    """Create a session and open round 1 in the dealing phase."""
    if len(names) < MIN_PLAYERS or len(names) > MAX_PLAYERS:
        raise InvalidPlayerCount(f"Need {MIN_PLAYERS}-{MAX_PLAYERS} players, got {len(names)}.")
    if seed is None:
        seed = random.randrange(1, 2**31 - 1)

    rng = random.Random(seed)
    session_id = _generate_id(rng)
    players = [Player(id=_generate_id(rng), name=name) for name in names]
    start = 1 % len(players)
    state = GameSession(
        id=session_id,
        seed=seed,
        rng=rng,
        players=players,
        deck=deck_mod.shuffle(rng, deck_mod.build_deck()),
        discard_pile=[],
        round_states=[PlayerRoundState(player_id=p.id) for p in players],
        settings=settings or GameSettings(),
        current_player_index=start,
        phase=Dealing(seat=start),
    )
    return state


def update_settings(state: GameSession, settings: GameSettings) -> None:
    state.settings = settings
    state.event_log.append({"type": "SETTINGS_UPDATED", "target_score": settings.target_score})


def replay(
    names: Sequence[str],
    seed: int,
    actions: Iterable[Action],
    settings: GameSettings | None = None,
) -> GameSession:
    state = new_session(names, seed=seed, settings=settings)
    for a in actions:
        step(state, a)
        if state.status == "game_over":
            break
    return state


# ---------------------------------------------------------------------------
# Named operations, one per command
# ---------------------------------------------------------------------------


def start_round(state: GameSession) -> StepResult:
    return step(state, StartRoundAction())


def end_round(state: GameSession) -> StepResult:
    return step(state, EndRoundAction())


def deal_next_card(state: GameSession) -> StepResult:
    return step(state, DealNextCardAction())


def resolve_dealing_action(state: GameSession, target: int) -> StepResult:
    return step(state, ResolveDealingAction(target=target))


def skip_dealing_action(state: GameSession) -> StepResult:
    return step(state, SkipDealingAction())


def hit_player(state: GameSession) -> StepResult:
    return step(state, HitAction())


def stay_player(state: GameSession) -> StepResult:
    return step(state, StayAction())


def advance_to_next_player(state: GameSession) -> StepResult:
    return step(state, AdvanceAction())


def resolve_action_card(state: GameSession, target: int) -> StepResult:
    return step(state, ResolveActionCard(target=target))


def resolve_flip_three_card(state: GameSession) -> StepResult:
    return step(state, ResolveFlipThreeCardAction())


def skip_flip_three_action(state: GameSession) -> StepResult:
    return step(state, SkipFlipThreeAction())


def use_second_chance(state: GameSession, discard: bool) -> StepResult:
    return step(state, UseSecondChanceAction(discard=discard))
