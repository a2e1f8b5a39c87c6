"""ViewState transitions: allowed SWR paths and rejected ones."""

import pytest

from audit_pipeline.domain.exceptions import InvalidStateTransitionError
from audit_pipeline.domain.models.view import ViewState, validate_transition


@pytest.mark.parametrize(
    "current,new",
    [
        (ViewState.IDLE, ViewState.SERVING_CACHE),
        (ViewState.IDLE, ViewState.FETCHING_FRESH),
        (ViewState.SERVING_CACHE, ViewState.BACKGROUND_REFRESHING),
        (ViewState.BACKGROUND_REFRESHING, ViewState.SETTLED),
        (ViewState.FETCHING_FRESH, ViewState.SETTLED),
        (ViewState.FETCHING_FRESH, ViewState.ERROR),
        (ViewState.ERROR, ViewState.FETCHING_FRESH),
        (ViewState.SETTLED, ViewState.SERVING_CACHE),
        (ViewState.BACKGROUND_REFRESHING, ViewState.SERVING_CACHE),
    ],
)
def test_allowed_transitions(current, new):
    validate_transition(current, new)


@pytest.mark.parametrize(
    "current,new",
    [
        (ViewState.IDLE, ViewState.SETTLED),
        (ViewState.IDLE, ViewState.BACKGROUND_REFRESHING),
        (ViewState.SERVING_CACHE, ViewState.SETTLED),
        (ViewState.BACKGROUND_REFRESHING, ViewState.ERROR),
        (ViewState.SETTLED, ViewState.ERROR),
    ],
)
def test_rejected_transitions(current, new):
    with pytest.raises(InvalidStateTransitionError) as exc_info:
        validate_transition(current, new)
    assert current.value in exc_info.value.message
