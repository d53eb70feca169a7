"""Data models for the mirror module."""

from dataclasses import dataclass
from enum import Enum


@dataclass
class SourceState:
    """Persisted reconciliation state for one source.

    An empty ``message_id`` means no live remote message is known.
    ``last_content`` holds the normalized content last sent (or being sent)
    for that message; it is only the "never sent" sentinel when
    ``message_id`` is also empty.
    """

    message_id: str = ""
    last_content: str = ""

    @property
    def has_message(self) -> bool:
        return bool(self.message_id)

    def to_dict(self) -> dict[str, str]:
        """Serialize using the state file's key names."""
        return {"messageId": self.message_id, "lastContent": self.last_content}

    @classmethod
    def from_dict(cls, data: dict) -> "SourceState":
        """Build from a state file entry.

        Raises:
            ValueError: If a field has the wrong type.
        """
        message_id = data.get("messageId", "")
        last_content = data.get("lastContent", "")

        # Snowflake ids written by other tools may be numbers
        if isinstance(message_id, int) and not isinstance(message_id, bool):
            message_id = str(message_id)
        if message_id is None:
            message_id = ""
        if not isinstance(message_id, str):
            raise ValueError(f"messageId must be a string, got {type(message_id).__name__}")
        if not isinstance(last_content, str):
            raise ValueError(f"lastContent must be a string, got {type(last_content).__name__}")

        return cls(message_id=message_id, last_content=last_content)


class UpdateResult(str, Enum):
    """Result of editing an existing remote message."""

    UPDATED = "updated"
    NOT_FOUND = "not_found"
    FAILED = "failed"


class ReconcileOutcome(str, Enum):
    """What one reconciliation pass did for a source."""

    CREATED = "created"
    UPDATED = "updated"
    RECREATED = "recreated"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class SourceResult:
    """Outcome of reconciling a single source in one cycle."""

    source: str
    outcome: ReconcileOutcome
    message_id: str = ""

    @property
    def wrote_remote(self) -> bool:
        return self.outcome in (
            ReconcileOutcome.CREATED,
            ReconcileOutcome.UPDATED,
            ReconcileOutcome.RECREATED,
        )


__all__ = [
    "ReconcileOutcome",
    "SourceResult",
    "SourceState",
    "UpdateResult",
]
