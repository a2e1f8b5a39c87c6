"""Application-layer exceptions. Do not reuse domain exceptions."""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from audit_pipeline.application.pagination import FetchResult


class ApplicationError(Exception):
    """Base for all application-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class EventSourceError(ApplicationError):
    """Raised when the event source returns a non-success response or the request fails."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class PaginationAbortedError(ApplicationError):
    """A page fetch failed mid-loop. Carries the pages accumulated before the failure."""

    def __init__(self, message: str, partial: "FetchResult") -> None:
        self.partial = partial
        super().__init__(message)
