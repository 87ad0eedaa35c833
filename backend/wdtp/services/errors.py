"""Typed errors raised by the wage report pipeline.

Every error carries a machine-readable ``code`` and a ``retryable`` flag so the
API layer can map it without parsing messages:

    WageReportError
    +-- ValidationError            caller fault, rejected before persistence
    |   +-- NormalizationError
    |   +-- DuplicateSubmissionError
    +-- EntityNotFoundError        caller fault, rejected before persistence
    |   +-- LocationNotFoundError
    |   +-- WageReportNotFoundError
    +-- StatsUnavailableError      absorbed by the service (report kept pending)
    +-- CounterError               system fault, transaction rolled back, retryable
    +-- CacheBumpError             logged only
"""


class WageReportError(Exception):
    """Base class for wage report pipeline errors."""

    code = "WAGE_REPORT_ERROR"
    retryable = False

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = str(self)


class ValidationError(WageReportError):
    """Structurally invalid wage report input."""

    code = "VALIDATION_ERROR"


class NormalizationError(ValidationError):
    """Wage amount could not be converted to an hourly rate."""

    code = "NORMALIZATION_ERROR"


class DuplicateSubmissionError(ValidationError):
    """A matching report was already submitted recently."""

    code = "DUPLICATE_SUBMISSION"

    def __init__(self, user_id: int, location_id: int, window_days: int):
        self.user_id = user_id
        self.location_id = location_id
        self.window_days = window_days
        super().__init__(
            f"User {user_id} already reported this job at location {location_id} "
            f"within the last {window_days} days"
        )


class EntityNotFoundError(WageReportError):
    """A referenced entity does not exist."""

    code = "NOT_FOUND"


class LocationNotFoundError(EntityNotFoundError):
    code = "LOCATION_NOT_FOUND"

    def __init__(self, location_id: int):
        self.location_id = location_id
        super().__init__(f"Location {location_id} not found")


class WageReportNotFoundError(EntityNotFoundError):
    code = "WAGE_REPORT_NOT_FOUND"

    def __init__(self, report_id: int):
        self.report_id = report_id
        super().__init__(f"Wage report {report_id} not found")


class StatsUnavailableError(WageReportError):
    """The statistics provider could not answer."""

    code = "STATS_UNAVAILABLE"
    retryable = True


class CounterError(WageReportError):
    """A denormalized counter adjustment failed."""

    code = "COUNTER_ERROR"
    retryable = True


class CacheBumpError(WageReportError):
    """A cache version counter could not be incremented."""

    code = "CACHE_BUMP_ERROR"
    retryable = True
