"""Activity session: a contiguous run of one actor's events."""

from dataclasses import dataclass
from datetime import datetime
from typing import Tuple

from audit_pipeline.domain.models.event import AuditEvent


@dataclass(frozen=True)
class Session:
    """Created by the session windower; members are sorted ascending and owned by this session only."""

    actor: str
    start_time: datetime
    end_time: datetime
    event_count: int
    events: Tuple[AuditEvent, ...]

    @property
    def duration_seconds(self) -> float:
        return (self.end_time - self.start_time).total_seconds()
