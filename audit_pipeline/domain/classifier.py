"""
Event classification: type keys, labels, notification detection, lifecycle categories,
icons and colours. Pure functions over a single event; never raise, missing fields
degrade to "Unknown", empty string or a default.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from audit_pipeline.domain.models.event import AuditEvent

UNKNOWN_TYPE = "Unknown"
TYPE_SEPARATOR = ":"
LABEL_SEPARATOR = " • "

NOTIFICATION_KEYWORDS: Tuple[str, ...] = (
    "email",
    "notification",
    "welcome",
    "creditslow",
    "creditlow",
    "credits low",
    "licenseexpired",
    "license expired",
    "licenseexpiringsoon",
    "expiry",
    "expiring",
)

# Shared 8-colour palette; series index i always gets PALETTE[i % 8].
PALETTE: Tuple[str, ...] = (
    "rgba(32, 107, 196, 0.8)",
    "rgba(40, 167, 69, 0.8)",
    "rgba(214, 57, 57, 0.8)",
    "rgba(245, 159, 0, 0.8)",
    "rgba(23, 162, 184, 0.8)",
    "rgba(156, 39, 176, 0.8)",
    "rgba(0, 123, 255, 0.8)",
    "rgba(255, 193, 7, 0.8)",
)

# Fixed chart colours for well-known type keys / base types on the frequency timeline.
CHART_COLORS: Dict[str, str] = {
    "CRONRUN": "rgba(75, 192, 192, 0.7)",
    "CreditConsumption": "rgba(54, 162, 235, 0.7)",
    "CreditConsumptionJobStarted": "rgba(100, 162, 235, 0.7)",
    "CreditConsumptionJobCompleted": "rgba(40, 167, 69, 0.7)",
    "CreditConsumptionJobFailed": "rgba(220, 53, 69, 0.7)",
    "Heartbeat": "rgba(255, 193, 7, 0.7)",
    "Login": "rgba(153, 102, 255, 0.7)",
    "License": "rgba(201, 203, 207, 0.7)",
    "Device": "rgba(255, 159, 64, 0.7)",
    "Audit": "rgba(255, 99, 132, 0.7)",
}

DEFAULT_ICON = "ti-circle"
DEFAULT_COLOR = "secondary"

_SPECIFIC_ICONS: Dict[str, str] = {
    "CreditConsumptionJobStarted": "ti-player-play",
    "CreditConsumptionJobCompleted": "ti-check",
    "CreditConsumptionJobFailed": "ti-x",
    "DeviceBlocked": "ti-ban",
    "DeviceDeleted": "ti-trash",
    "DeviceDisabled": "ti-device-desktop-off",
    "DeviceRegistered": "ti-device-desktop-plus",
}

_BASE_ICONS: Dict[str, str] = {
    "CREDIT": "ti-coins",
    "EMAIL": "ti-mail",
    "LICENSE": "ti-key",
    "ORG": "ti-building",
    "DEVICE": "ti-device-desktop",
    "CONFIG": "ti-settings",
    "WHATSAPP": "ti-brand-whatsapp",
    "SECURITY_REPORT": "ti-report",
    "CRONRUN": "ti-clock",
    "Credit": "ti-coins",
    "CreditConsumption": "ti-coins",
    "Email": "ti-mail",
    "Login": "ti-login",
    "Device": "ti-device-desktop",
    "License": "ti-key",
    "Org": "ti-building",
    "PersonalOrg": "ti-building",
    "OrgMember": "ti-users",
    "Member": "ti-users",
    "Session": "ti-clock",
    "Config": "ti-settings",
    "Configuration": "ti-settings",
    "ResponseCommand": "ti-terminal",
}

_COLORS: Dict[str, str] = {
    "CREDIT": "info",
    "EMAIL": "info",
    "LICENSE": "secondary",
    "ORG": "secondary",
    "DEVICE": "secondary",
    "CONFIG": "info",
    "WHATSAPP": "success",
    "SECURITY_REPORT": "info",
    "CRONRUN": "info",
    "CreditConsumptionJobStarted": "info",
    "CreditConsumptionJobCompleted": "success",
    "CreditConsumptionJobFailed": "danger",
    "Email": "info",
    "EmailSent": "success",
    "EmailFailed": "danger",
    "Device": "secondary",
    "DeviceBlocked": "warning",
    "DeviceDeleted": "danger",
    "DeviceDisabled": "warning",
    "DeviceEnabled": "info",
    "License": "secondary",
    "LicenseDisabled": "warning",
    "LicenseExpired": "danger",
    "LicenseCreditsLow": "warning",
    "LicenseExpiringSoon": "warning",
    "OrgDisabled": "danger",
    "Org": "secondary",
    "PersonalOrg": "secondary",
    "PersonalOrgCreated": "success",
    "PersonalOrgUpdated": "info",
    "OrgMember": "secondary",
    "OrgMemberAdded": "success",
    "OrgMemberRemoved": "warning",
    "OrgMemberRoleUpdated": "info",
    "Config": "info",
    "Configuration": "info",
    "ResponseCommand": "info",
    "ResponseCommandQueued": "info",
    "CreditConsumption": "info",
}

_CAMEL_BOUNDARY = re.compile(r"([a-z])([A-Z])")
_WHITESPACE = re.compile(r"\s+")
_PREFIX_SEPARATORS = re.compile(r"^[:.\-_\s]+")


def _meta(event: AuditEvent, *keys: str) -> Optional[str]:
    """First non-empty metadata value among keys, as a string."""
    metadata = event.metadata or {}
    for key in keys:
        value = metadata.get(key)
        if value not in (None, ""):
            return str(value)
    return None


def humanize(value: Any) -> str:
    """'device_blocked' / 'DeviceBlocked' -> 'device blocked' / 'Device Blocked'."""
    if value is None:
        return ""
    text = str(value).replace("_", " ")
    text = _CAMEL_BOUNDARY.sub(r"\1 \2", text)
    return _WHITESPACE.sub(" ", text).strip()


def event_name(event: AuditEvent) -> str:
    """Event name from eventType, falling back to the metadata copy some sources send."""
    return event.event_type or _meta(event, "eventType", "EventType") or ""


def sub_type_of(event: AuditEvent) -> Optional[str]:
    return event.sub_type or _meta(event, "subType", "SubType")


def base_type(event_or_type: Union[AuditEvent, str, None]) -> str:
    """Portion of the event type before the first ':'; "Unknown" when absent."""
    if event_or_type is None:
        return UNKNOWN_TYPE
    raw = event_or_type if isinstance(event_or_type, str) else event_or_type.event_type
    if not raw:
        return UNKNOWN_TYPE
    return raw.split(TYPE_SEPARATOR, 1)[0]


def type_key(event: AuditEvent) -> str:
    base = event.event_type or UNKNOWN_TYPE
    sub = sub_type_of(event)
    return f"{base}{TYPE_SEPARATOR}{sub}" if sub else base


def type_label(event: AuditEvent) -> str:
    base = event.event_type or UNKNOWN_TYPE
    sub = sub_type_of(event)
    return f"{base}{LABEL_SEPARATOR}{sub}" if sub else base


def key_to_label(key: str) -> str:
    return key.replace(TYPE_SEPARATOR, LABEL_SEPARATOR, 1)


def notification_hint(event: AuditEvent) -> str:
    return _meta(event, "emailType", "EmailType", "type", "Type") or ""


def is_notification_event(event: AuditEvent) -> bool:
    haystack = f"{event_name(event).lower()} {notification_hint(event).lower()}"
    return any(keyword in haystack for keyword in NOTIFICATION_KEYWORDS)


# ---------------------------------------------------------------------------
# Lifecycle classification
# ---------------------------------------------------------------------------


class LifecycleCategory(str, Enum):
    DEVICE = "Device"
    ORG = "Org"


@dataclass(frozen=True)
class LifecycleRule:
    """One row of the lifecycle rule table. category=None means "exclude"."""

    name: str
    matches: Callable[[AuditEvent], bool]
    category: Optional[LifecycleCategory]


def _lower_name(event: AuditEvent) -> str:
    return event_name(event).lower()


def _lower_target(event: AuditEvent) -> str:
    return (event.target_type or "").lower()


_NON_LIFECYCLE_MARKERS = ("license", "credit", "config", "responsecommand")
_MEMBER_MARKERS = ("memberadded", "memberremoved", "memberrole")

# Evaluated top-down, first match wins. Exclusions sit above the generic device/org
# checks so e.g. "LicenseDeviceAssigned" or "ConfigOrgUpdated" never count as lifecycle.
LIFECYCLE_RULES: Tuple[LifecycleRule, ...] = (
    LifecycleRule("notification", is_notification_event, None),
    LifecycleRule(
        "license_credit_config_response_command",
        lambda e: any(m in _lower_name(e) for m in _NON_LIFECYCLE_MARKERS),
        None,
    ),
    LifecycleRule(
        "device",
        lambda e: "device" in _lower_name(e) or _lower_target(e) == "device",
        LifecycleCategory.DEVICE,
    ),
    LifecycleRule(
        "org_prefix",
        lambda e: _lower_name(e).startswith(("org", "personalorg")),
        LifecycleCategory.ORG,
    ),
    LifecycleRule(
        "org_membership",
        lambda e: _lower_name(e).startswith("orgmember")
        or any(m in _lower_name(e) for m in _MEMBER_MARKERS),
        LifecycleCategory.ORG,
    ),
    LifecycleRule(
        "org_target",
        lambda e: _lower_target(e) in ("org", "organization") and "org" in _lower_name(e),
        LifecycleCategory.ORG,
    ),
)


def matching_lifecycle_rule(event: AuditEvent) -> Optional[LifecycleRule]:
    for rule in LIFECYCLE_RULES:
        if rule.matches(event):
            return rule
    return None


def classify_lifecycle_category(event: AuditEvent) -> Optional[str]:
    """'Device', 'Org', or None when the event is excluded from lifecycle grouping."""
    rule = matching_lifecycle_rule(event)
    if rule is None or rule.category is None:
        return None
    return rule.category.value


def derive_lifecycle_sub_type(event: AuditEvent, category: Optional[str]) -> str:
    explicit = sub_type_of(event)
    if explicit:
        return humanize(explicit)

    raw = event_name(event)
    if category and raw.lower().startswith(category.lower()):
        remainder = _PREFIX_SEPARATORS.sub("", raw[len(category):])
        return humanize(remainder or "Event")

    meta_type = _meta(event, "eventType", "EventType")
    if meta_type:
        return humanize(meta_type)

    return ""


# ---------------------------------------------------------------------------
# Presentation lookups
# ---------------------------------------------------------------------------


def icon_for(event: Union[AuditEvent, str]) -> str:
    name = event if isinstance(event, str) else event.event_type
    if name and name in _SPECIFIC_ICONS:
        return _SPECIFIC_ICONS[name]
    base = base_type(event)
    return _BASE_ICONS.get(base.upper()) or _BASE_ICONS.get(base) or DEFAULT_ICON


def color_for(event: Union[AuditEvent, str]) -> str:
    name = event if isinstance(event, str) else event.event_type
    if name and name in _COLORS:
        return _COLORS[name]
    base = base_type(event)
    if base == "Login":
        return "danger" if name and "failure" in name.lower() else "success"
    return _COLORS.get(base.upper()) or _COLORS.get(base) or DEFAULT_COLOR


def palette_color(index: int) -> str:
    return PALETTE[index % len(PALETTE)]


def chart_color_for(key: str, index: int) -> str:
    """Named colour for well-known types, else the palette colour for this series index."""
    if key in CHART_COLORS:
        return CHART_COLORS[key]
    return CHART_COLORS.get(base_type(key)) or palette_color(index)


def unique_event_types(events: Iterable[AuditEvent]) -> List[Dict[str, str]]:
    """Distinct type keys with display labels, sorted by label (filter dropdown options)."""
    types: Dict[str, str] = {}
    for event in events:
        types[type_key(event)] = type_label(event)
    return [
        {"value": value, "label": label}
        for value, label in sorted(types.items(), key=lambda item: item[1])
    ]
