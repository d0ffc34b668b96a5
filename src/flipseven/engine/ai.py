from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence

from .actions import (
    Action,
    AdvanceAction,
    DealNextCardAction,
    EndRoundAction,
    HitAction,
    ResolveActionCard,
    ResolveDealingAction,
    ResolveFlipThreeCardAction,
    StartRoundAction,
    StayAction,
    UseSecondChanceAction,
)
from .scoring import calculate_score
from .session import GameSession, StepResult, new_session, step
from .types import Dealing, FlipThree, GameSettings, PlayerTurn, ResolvingAction, RoundEnd

# Upper bound on commands per round; a round needs far fewer.
MAX_ROUND_STEPS = 2000


@dataclass(frozen=True)
class BotSpec:
    """Simple bot tuning parameters.

    stay_at:
      live round score at which the bot stops hitting.
    """

    stay_at: int = 25


def _pick_target(state: GameSession, source: int, action: str | None) -> int:
    targets = state.eligible_targets()
    opponents = [t for t in targets if t != source] or targets
    if action == "freeze":
        # Lock in the opponent who is currently scoring the most.
        return max(opponents, key=lambda t: (calculate_score(state.round_states[t]), -t))
    # Flip Three hurts most on a short hand that still has room to bust.
    return min(opponents, key=lambda t: (len(state.round_states[t].number_cards), t))


def choose_action(state: GameSession, spec: BotSpec, *, turn_spent: bool = False) -> Action:
    """Return the bot's next command for whatever the session is waiting on.

    ``turn_spent`` tells the bot the current player already hit or stayed and
    the turn must be handed on.
    """
    phase = state.phase
    if isinstance(phase, Dealing):
        return DealNextCardAction()
    if isinstance(phase, ResolvingAction):
        card = phase.pending.card
        if card.kind == "number":
            return UseSecondChanceAction(discard=True)
        target = _pick_target(state, phase.pending.source_player, card.action)
        if phase.resume is not None:
            return ResolveDealingAction(target=target)
        return ResolveActionCard(target=target)
    if isinstance(phase, FlipThree):
        return ResolveFlipThreeCardAction()
    if isinstance(phase, RoundEnd):
        if state.status == "playing":
            return EndRoundAction()
        return StartRoundAction()

    assert isinstance(phase, PlayerTurn)
    rs = state.round_states[state.current_player_index]
    if turn_spent or not rs.can_act:
        return AdvanceAction()
    if calculate_score(rs) >= spec.stay_at:
        return StayAction()
    return HitAction()


def play_round(
    state: GameSession,
    spec: BotSpec | None = None,
    submit: Callable[[Action], StepResult | None] | None = None,
) -> list[Action]:
    """Drive the current round to settlement.

    Commands go through ``submit`` (defaults to ``step`` on ``state``) so a
    store wrapping the session can log and persist them. Returns the commands
    issued. The session ends in ``round_summary`` or ``game_over`` status.
    """
    spec = spec or BotSpec()
    send = submit or (lambda a: step(state, a))
    issued: list[Action] = []
    turn_spent = False

    for _ in range(MAX_ROUND_STEPS):
        if state.status == "game_over" or (state.status == "round_summary" and issued):
            break
        action = choose_action(state, spec, turn_spent=turn_spent)
        res = send(action)
        if res is None or not res.ok:
            raise RuntimeError(f"Bot issued a rejected command {action}: {res.error if res else 'no session'}")
        issued.append(action)

        if isinstance(action, (HitAction, StayAction)):
            turn_spent = True
        elif isinstance(action, AdvanceAction):
            turn_spent = False
    else:
        raise RuntimeError("Round did not finish.")
    return issued


def play_game(
    names: Sequence[str],
    seed: int,
    settings: GameSettings | None = None,
    spec: BotSpec | None = None,
    max_rounds: int = 100,
) -> GameSession:
    state = new_session(names, seed=seed, settings=settings)
    for _ in range(max_rounds):
        play_round(state, spec)
        if state.status == "game_over":
            break
    return state
