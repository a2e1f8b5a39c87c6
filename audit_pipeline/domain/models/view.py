"""Load-state lifecycle for a cached audit view. Transitions are validated."""

from enum import Enum
from typing import Dict, FrozenSet

from audit_pipeline.domain.exceptions import InvalidStateTransitionError


class ViewState(str, Enum):
    """Where a (org, range) view is in the stale-while-revalidate cycle."""

    IDLE = "idle"
    SERVING_CACHE = "serving_cache"  # cached data delivered, refresh not yet started
    BACKGROUND_REFRESHING = "background_refreshing"
    FETCHING_FRESH = "fetching_fresh"  # no cache: blocking paginated fetch
    SETTLED = "settled"
    ERROR = "error"


_RELOAD_TARGETS = frozenset({ViewState.SERVING_CACHE, ViewState.FETCHING_FRESH})

# Allowed transitions: from_state -> set of valid next states.
# Every state can start a new load; a reload may supersede an in-flight fetch.
_STATE_TRANSITIONS: Dict[ViewState, FrozenSet[ViewState]] = {
    ViewState.IDLE: _RELOAD_TARGETS,
    ViewState.SERVING_CACHE: _RELOAD_TARGETS | {ViewState.BACKGROUND_REFRESHING},
    ViewState.BACKGROUND_REFRESHING: _RELOAD_TARGETS | {ViewState.SETTLED},
    ViewState.FETCHING_FRESH: _RELOAD_TARGETS | {ViewState.SETTLED, ViewState.ERROR},
    ViewState.SETTLED: _RELOAD_TARGETS,
    ViewState.ERROR: _RELOAD_TARGETS,
}


def validate_transition(current: ViewState, new: ViewState) -> None:
    """Raise InvalidStateTransitionError if moving from current to new is not allowed."""
    allowed = _STATE_TRANSITIONS.get(current, frozenset())
    if new not in allowed:
        raise InvalidStateTransitionError(
            f"Invalid view state transition from {current.value} to {new.value}"
        )
