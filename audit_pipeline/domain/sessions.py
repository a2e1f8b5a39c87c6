"""
Per-actor session windowing. Events are partitioned by actor, sorted ascending, then merged
in one linear pass: a gap up to and including `gap` extends the open session.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Sequence

from audit_pipeline.domain.models.event import DEFAULT_ACTOR, AuditEvent
from audit_pipeline.domain.models.session import Session

SESSION_GAP = timedelta(minutes=10)


class _OpenSession:
    """Mutable accumulator used only while scanning; frozen into a Session when closed."""

    __slots__ = ("actor", "start_time", "end_time", "events")

    def __init__(self, actor: str, first: AuditEvent) -> None:
        self.actor = actor
        self.start_time: datetime = first.timestamp
        self.end_time: datetime = first.timestamp
        self.events: List[AuditEvent] = [first]

    def extend(self, event: AuditEvent) -> None:
        self.end_time = event.timestamp
        self.events.append(event)

    def close(self) -> Session:
        return Session(
            actor=self.actor,
            start_time=self.start_time,
            end_time=self.end_time,
            event_count=len(self.events),
            events=tuple(self.events),
        )


def _window_actor(actor: str, events: List[AuditEvent], gap: timedelta) -> List[Session]:
    ordered = sorted(events, key=lambda e: e.timestamp)  # stable for equal timestamps
    sessions: List[Session] = []
    current: _OpenSession | None = None
    for event in ordered:
        if current is None:
            current = _OpenSession(actor, event)
        elif event.timestamp - current.end_time <= gap:
            current.extend(event)
        else:
            sessions.append(current.close())
            current = _OpenSession(actor, event)
    if current is not None:
        sessions.append(current.close())
    return sessions


def compute_user_sessions(
    events: Sequence[AuditEvent],
    gap: timedelta = SESSION_GAP,
) -> Dict[str, List[Session]]:
    """Map actor (performedBy, default "System") -> sessions in chronological order."""
    by_actor: Dict[str, List[AuditEvent]] = {}
    for event in events:
        by_actor.setdefault(event.performed_by or DEFAULT_ACTOR, []).append(event)
    return {actor: _window_actor(actor, actor_events, gap) for actor, actor_events in by_actor.items()}


@dataclass(frozen=True)
class ActorActivity:
    actor: str
    session_count: int
    event_count: int
    active_seconds: float


def summarize_sessions(sessions_by_actor: Dict[str, List[Session]]) -> List[ActorActivity]:
    """Per-actor totals for the user-activity chart, most events first, then actor name."""
    summary = [
        ActorActivity(
            actor=actor,
            session_count=len(sessions),
            event_count=sum(s.event_count for s in sessions),
            active_seconds=sum(s.duration_seconds for s in sessions),
        )
        for actor, sessions in sessions_by_actor.items()
    ]
    return sorted(summary, key=lambda a: (-a.event_count, a.actor))
