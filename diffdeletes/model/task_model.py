"""Task Model Classes

Status values of the tasks handled by the service and the error records
attached to failed tasks.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class TaskStatus(str, Enum):
    """Task status concepts. ONGOING -> SUCCESS | FAILURE."""
    ONGOING = "http://redpencil.data.gift/id/concept/JobStatus/busy"
    SUCCESS = "http://redpencil.data.gift/id/concept/JobStatus/success"
    FAILURE = "http://redpencil.data.gift/id/concept/JobStatus/failed"


@dataclass
class ErrorRecord:
    """An error to persist in the error graph, optionally attached to a task."""
    message: str
    detail: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def uri(self, error_base: str) -> str:
        return f"{error_base}{self.id}"
