"""
app/domain/history.py

Append-only audit entries emitted by imports and record CRUD.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class HistoryAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    BULK_IMPORT = "bulk-import"


@dataclass(frozen=True)
class HistoryEntry:
    action: HistoryAction
    actor_id: str
    subject_id: str | None
    before_snapshot: dict[str, Any] | None = None
    after_snapshot: dict[str, Any] | None = None
    job_id: uuid.UUID | None = None
    timestamp: datetime | None = None

    def stamped(self) -> HistoryEntry:
        """
        Return the entry with a timestamp, keeping an explicit one.
        """

        if self.timestamp is not None:
            return self
        return replace(self, timestamp=datetime.now(timezone.utc))
