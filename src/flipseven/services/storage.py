from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from jsonschema import Draft202012Validator

from flipseven.engine.serialize import (
    session_from_snapshot,
    settings_from_dict,
    settings_to_dict,
    snapshot,
)
from flipseven.engine.session import GameSession
from flipseven.engine.types import GameSettings

logger = logging.getLogger(__name__)

SAVE_VERSION = 1
SCHEMA_FILE = "save.schema.json"


class StorageError(RuntimeError):
    pass


def _load_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise StorageError(f"Missing file: {path}") from e
    except json.JSONDecodeError as e:
        raise StorageError(f"Invalid JSON in {path}: {e}") from e


def validate_json(instance: object, schema: object, *, context: str) -> None:
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(instance), key=lambda e: list(e.absolute_path))
    if errors:
        lines = [f"Schema validation failed for {context}:"]
        for err in errors[:10]:
            loc = "/".join(str(p) for p in err.absolute_path)
            lines.append(f"- {loc}: {err.message}")
        raise StorageError("\n".join(lines))


@dataclass
class SavedGame:
    settings: GameSettings
    session: GameSession | None


class SaveStore:
    """Whole-session key-value persistence in a single JSON file."""

    def __init__(self, path: Path, schema_dir: Path) -> None:
        self._path = path
        self._schema_dir = schema_dir
        self._schema: object | None = None

    @property
    def path(self) -> Path:
        return self._path

    def _get_schema(self) -> object:
        if self._schema is None:
            self._schema = _load_json(self._schema_dir / SCHEMA_FILE)
        return self._schema

    def to_document(self, settings: GameSettings, session: GameSession | None) -> dict[str, object]:
        return {
            "version": SAVE_VERSION,
            "settings": settings_to_dict(settings),
            "session": snapshot(session) if session is not None else None,
        }

    def save(self, settings: GameSettings, session: GameSession | None) -> None:
        doc = self.to_document(settings, session)
        validate_json(doc, self._get_schema(), context="save document")
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(doc), encoding="utf-8")
        tmp.replace(self._path)
        logger.debug("saved game to %s", self._path)

    def load(self) -> SavedGame:
        if not self._path.exists():
            return SavedGame(settings=GameSettings(), session=None)
        raw = _load_json(self._path)
        validate_json(raw, self._get_schema(), context=str(self._path))
        assert isinstance(raw, dict)

        settings = settings_from_dict(raw["settings"])
        session_raw = raw.get("session")
        session = session_from_snapshot(session_raw) if isinstance(session_raw, dict) else None
        logger.info("loaded game from %s", self._path)
        return SavedGame(settings=settings, session=session)

    def clear(self) -> None:
        if self._path.exists():
            self._path.unlink()
