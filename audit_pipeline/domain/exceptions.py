"""Domain-specific exceptions. Pure domain layer, no infrastructure."""


class DomainError(Exception):
    """Base for all domain-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DomainValidationError(DomainError):
    """Raised when domain validation rules are violated."""


class InvalidFilterError(DomainValidationError):
    """Raised when a filter value cannot be interpreted (e.g. an unparseable date)."""


class InvalidRangeError(DomainValidationError):
    """Raised when a day-range window is not a positive number of days."""


class InvalidStateTransitionError(DomainError):
    """Raised when a cached view moves between load states in a disallowed order."""
