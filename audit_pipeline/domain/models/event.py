"""Audit event domain model. Immutable once ingested; built from raw source records."""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_ACTOR = "System"

_SECONDS_FRACTION = re.compile(r"([T ]\d{2}:\d{2}:\d{2})\.(\d+)")


def normalize_iso(text: str) -> str:
    """
    Rewrite an ISO-8601 string into a form datetime.fromisoformat accepts on every
    supported interpreter: "Z" becomes "+00:00" and the seconds fraction is padded
    or truncated to exactly six digits (sources emit 1..9 digits).
    """
    text = text.strip().replace("Z", "+00:00")
    return _SECONDS_FRACTION.sub(lambda m: m.group(1) + "." + m.group(2)[:6].ljust(6, "0"), text, count=1)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 instant (or epoch milliseconds) into an aware UTC datetime. None if unparseable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(normalize_iso(value))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text else None


def _format_timestamp(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class AuditEvent:
    """
    One action recorded for an organization. Never mutated after ingestion;
    derived classification lives in the classifier, not on the event.
    """

    event_type: Optional[str]
    timestamp: datetime
    performed_by: str = DEFAULT_ACTOR
    sub_type: Optional[str] = None
    performed_by_display: Optional[str] = None
    org_id: Optional[str] = None
    target_id: Optional[str] = None
    target_type: Optional[str] = None
    description: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def actor_label(self) -> str:
        return self.performed_by_display or self.performed_by or DEFAULT_ACTOR

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "AuditEvent":
        """
        Build an event from a camelCase source record. Optional fields degrade to None;
        raises ValueError when no usable timestamp is present.
        """
        timestamp = parse_timestamp(raw.get("timestamp")) or parse_timestamp(raw.get("createdAt"))
        if timestamp is None:
            raise ValueError("audit event has no parseable timestamp")
        metadata = raw.get("metadata")
        return cls(
            event_type=_optional_str(raw.get("eventType")),
            sub_type=_optional_str(raw.get("subType")),
            timestamp=timestamp,
            performed_by=_optional_str(raw.get("performedBy")) or DEFAULT_ACTOR,
            performed_by_display=_optional_str(raw.get("performedByDisplay")),
            org_id=_optional_str(raw.get("orgId")),
            target_id=_optional_str(raw.get("targetId")),
            target_type=_optional_str(raw.get("targetType")),
            description=_optional_str(raw.get("description")),
            metadata=dict(metadata) if isinstance(metadata, Mapping) else {},
        )

    def to_raw(self) -> Dict[str, Any]:
        """camelCase wire shape; inverse of from_raw for persisted cache entries."""
        raw: Dict[str, Any] = {
            "eventType": self.event_type,
            "timestamp": _format_timestamp(self.timestamp),
            "performedBy": self.performed_by,
        }
        optional = {
            "subType": self.sub_type,
            "performedByDisplay": self.performed_by_display,
            "orgId": self.org_id,
            "targetId": self.target_id,
            "targetType": self.target_type,
            "description": self.description,
        }
        raw.update({k: v for k, v in optional.items() if v is not None})
        raw["metadata"] = dict(self.metadata)
        return raw


def parse_events(raw_events: Iterable[Any]) -> List[AuditEvent]:
    """
    Ingest raw records in source order. Records that are not objects or have no
    parseable timestamp cannot be placed on a time axis and are dropped with a warning.
    """
    events: List[AuditEvent] = []
    for index, raw in enumerate(raw_events):
        if not isinstance(raw, Mapping):
            logger.warning("event_dropped_not_an_object", extra={"index": index})
            continue
        try:
            events.append(AuditEvent.from_raw(raw))
        except ValueError:
            logger.warning(
                "event_dropped_invalid_timestamp",
                extra={"index": index, "event_type": raw.get("eventType")},
            )
    return events
