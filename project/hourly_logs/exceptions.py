"""
Errors raised by the hourly log services.

Views translate these into HTTP responses; nothing here is retried.
"""


class HourlyLogError(Exception):
    """Base class for errors raised by the hourly log services."""


class InvalidArgument(HourlyLogError):
    """Malformed input to a pure function, e.g. an hour outside 0-23."""


class NotFound(HourlyLogError):
    """A referenced assignment, override or hourly log does not exist."""


class DuplicateEntry(HourlyLogError):
    """An hourly log already exists for the machine group at that hour."""

    def __init__(self, assignment_id, recorded_at, message=None):
        self.assignment_id = assignment_id
        self.recorded_at = recorded_at
        if message is None:
            # time_anchor imports this module
            from .time_anchor import format_local_hour
            message = (
                f"An entry already exists for this machine group at "
                f"{format_local_hour(recorded_at)}. Please edit the existing entry instead."
            )
        super().__init__(message)


class ValidationFailed(HourlyLogError):
    """One or more import rows failed validation; nothing was committed."""

    def __init__(self, report):
        self.report = report
        summary = report.summary
        super().__init__(
            f"{summary['invalid']} of {summary['total']} rows failed validation"
        )
