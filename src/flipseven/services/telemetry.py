from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping

from flipseven.engine.serialize import action_to_dict
from flipseven.engine.actions import Action
from flipseven.engine.session import StepResult


@dataclass
class TelemetryService:
    """Append-only JSON-lines log of commands and game events."""

    path: Path
    enabled: bool = True

    def log(self, event_type: str, payload: Mapping[str, object], *, session_id: str | None = None) -> None:
        if not self.enabled:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        rec = {
            "ts": datetime.now(tz=timezone.utc).isoformat(),
            "session": session_id,
            "type": event_type,
            "payload": dict(payload),
        }
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(rec, ensure_ascii=False) + "\n")

    def log_step(self, session_id: str, action: Action, result: StepResult) -> None:
        payload: dict[str, object] = {
            "command": action_to_dict(action),
            "ok": result.ok,
            "events": [e.get("type") for e in result.events],
        }
        if result.card is not None:
            payload["card_id"] = result.card.id
        if result.error is not None:
            payload["error"] = result.error
        self.log("COMMAND" if result.ok else "COMMAND_REJECTED", payload, session_id=session_id)

    def read_all(self) -> list[dict[str, object]]:
        if not self.path.exists():
            return []
        return [json.loads(line) for line in self.path.read_text(encoding="utf-8").splitlines() if line.strip()]
