"""Durable per-source state.

Maps each source name to its SourceState and rewrites the whole JSON file on
every save. The file format is::

    {
      "rules": {
        "messageId": "1234567890",
        "lastContent": "# Rules\\n..."
      }
    }

A missing file is an empty store. A malformed file is a fatal startup error.
"""

import json
import os
from pathlib import Path
from typing import Iterator

import structlog

from src.mirror.schemas import SourceState

logger = structlog.get_logger(__name__)


class StateStoreError(Exception):
    """Raised when the state file cannot be loaded or written."""


class StateStore:
    """In-memory mapping of source name to SourceState backed by a JSON file."""

    def __init__(self, path: str | Path, states: dict[str, SourceState] | None = None):
        self._path = Path(path)
        self._states: dict[str, SourceState] = dict(states or {})

    @classmethod
    def load(cls, path: str | Path) -> "StateStore":
        """Load the store from ``path``.

        Raises:
            StateStoreError: If the file exists but is not a valid state file.
        """
        state_path = Path(path)
        if not state_path.exists():
            logger.info("No state file found, starting empty", path=str(state_path))
            return cls(state_path)

        try:
            with open(state_path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StateStoreError(f"State file '{state_path}' is not valid JSON: {e}") from e
        except OSError as e:
            raise StateStoreError(f"Could not read state file '{state_path}': {e}") from e

        if not isinstance(data, dict):
            raise StateStoreError(f"State file '{state_path}' must contain a JSON object")

        states: dict[str, SourceState] = {}
        for name, entry in data.items():
            if not isinstance(entry, dict):
                raise StateStoreError(f"State entry for '{name}' must be an object")
            try:
                states[name] = SourceState.from_dict(entry)
            except ValueError as e:
                raise StateStoreError(f"Invalid state entry for '{name}': {e}") from e

        logger.info("State loaded", path=str(state_path), sources=len(states))
        return cls(state_path, states)

    @property
    def path(self) -> Path:
        return self._path

    def get(self, name: str) -> SourceState | None:
        return self._states.get(name)

    def get_or_create(self, name: str) -> SourceState:
        """Return the state for ``name``, adding an empty entry if absent.

        The new entry is not written to disk until the next save().
        """
        state = self._states.get(name)
        if state is None:
            state = SourceState()
            self._states[name] = state
        return state

    def to_dict(self) -> dict[str, dict[str, str]]:
        return {name: state.to_dict() for name, state in self._states.items()}

    def save(self) -> None:
        """Write the full mapping to disk.

        The file is written to a temporary sibling and renamed into place,
        so readers never see a partially written file.
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self._path)
        except OSError as e:
            raise StateStoreError(f"Could not write state file '{self._path}': {e}") from e

    def __contains__(self, name: object) -> bool:
        return name in self._states

    def __len__(self) -> int:
        return len(self._states)

    def __iter__(self) -> Iterator[str]:
        return iter(self._states)

    def items(self) -> Iterator[tuple[str, SourceState]]:
        return iter(self._states.items())
