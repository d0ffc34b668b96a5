from __future__ import annotations

import logging
from typing import Sequence

from flipseven.engine import session as engine
from flipseven.engine.actions import (
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
from flipseven.engine.session import GameSession, StepResult
from flipseven.engine.types import Card, GameSettings, RoundResult
from flipseven.services.storage import SaveStore
from flipseven.services.telemetry import TelemetryService

logger = logging.getLogger(__name__)


class GameStore:
    """Single owner of the current session and settings.

    Callers read ``session`` for rendering and change it only through the
    command methods. Every command is logged to telemetry and, when a save
    store is attached, the whole session is persisted after it succeeds.
    """

    def __init__(
        self,
        settings: GameSettings | None = None,
        *,
        storage: SaveStore | None = None,
        telemetry: TelemetryService | None = None,
    ) -> None:
        self._settings = settings or GameSettings()
        self._session: GameSession | None = None
        self._storage = storage
        self._telemetry = telemetry

    @classmethod
    def restore(cls, storage: SaveStore, telemetry: TelemetryService | None = None) -> "GameStore":
        saved = storage.load()
        store = cls(saved.settings, storage=storage, telemetry=telemetry)
        store._session = saved.session
        return store

    # -------- Queries --------
    @property
    def session(self) -> GameSession | None:
        return self._session

    @property
    def settings(self) -> GameSettings:
        return self._settings

    @property
    def round_history(self) -> list[RoundResult]:
        if self._session is None:
            return []
        return list(self._session.round_history)

    # -------- Lifecycle --------
    def create_session(self, names: Sequence[str], seed: int | None = None) -> GameSession:
        session = engine.new_session(names, seed=seed, settings=self._settings)
        self._session = session
        if self._telemetry is not None:
            self._telemetry.log(
                "SESSION_CREATED",
                {"players": list(names), "seed": session.seed, "target_score": self._settings.target_score},
                session_id=session.id,
            )
        self._persist()
        return session

    def update_settings(self, target_score: int) -> None:
        self._settings = GameSettings(target_score=target_score)
        if self._session is not None:
            engine.update_settings(self._session, self._settings)
        self._persist()

    def reset_game(self) -> None:
        if self._session is not None and self._telemetry is not None:
            self._telemetry.log("SESSION_ABANDONED", {"round": self._session.current_round}, session_id=self._session.id)
        self._session = None
        self._persist()

    # -------- Commands --------
    def dispatch(self, action: Action) -> StepResult | None:
        if self._session is None:
            logger.debug("ignored %s: no session", type(action).__name__)
            return None
        result = engine.step(self._session, action)
        if not result.ok:
            logger.debug("rejected %s: %s", type(action).__name__, result.error)
        if self._telemetry is not None:
            self._telemetry.log_step(self._session.id, action, result)
        if result.ok:
            self._persist()
        return result

    def _ok(self, action: Action) -> bool:
        result = self.dispatch(action)
        return result is not None and result.ok

    def _card(self, action: Action) -> Card | None:
        result = self.dispatch(action)
        if result is None or not result.ok:
            return None
        return result.card

    def start_round(self) -> bool:
        return self._ok(StartRoundAction())

    def end_round(self) -> bool:
        return self._ok(EndRoundAction())

    def deal_next_card(self) -> Card | None:
        return self._card(DealNextCardAction())

    def resolve_dealing_action(self, target_index: int) -> bool:
        return self._ok(ResolveDealingAction(target=target_index))

    def skip_dealing_action(self) -> bool:
        return self._ok(SkipDealingAction())

    def hit_player(self) -> Card | None:
        return self._card(HitAction())

    def stay_player(self) -> bool:
        return self._ok(StayAction())

    def advance_to_next_player(self) -> bool:
        return self._ok(AdvanceAction())

    def resolve_action_card(self, target_index: int) -> bool:
        return self._ok(ResolveActionCard(target=target_index))

    def resolve_flip_three_card(self) -> Card | None:
        return self._card(ResolveFlipThreeCardAction())

    def skip_flip_three_action(self) -> bool:
        return self._ok(SkipFlipThreeAction())

    def use_second_chance(self, discard: bool) -> bool:
        return self._ok(UseSecondChanceAction(discard=discard))

    def _persist(self) -> None:
        if self._storage is not None:
            self._storage.save(self._settings, self._session)
