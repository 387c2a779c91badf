"""
Error taxonomy for report generation.

Caller-facing failures are raised as ``ReportError`` subclasses and abort the
request. Per-record problems are never raised; they are collected as
``RecordDefect`` values so one bad row cannot take the whole report down.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


class ReportError(Exception):
    """Base exception for failures that abort a report request."""

    kind: str = "ReportError"
    status_code: int = 500

    def __init__(self, message: str, *, cause: BaseException | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class InvalidInput(ReportError):
    """Raised when a required date parameter is missing."""

    kind = "InvalidInput"
    status_code = 400


class InvalidFormat(ReportError):
    """Raised when a date parameter does not parse to a calendar date."""

    kind = "InvalidFormat"
    status_code = 400


class InvalidRange(ReportError):
    """Raised when the end date precedes the start date."""

    kind = "InvalidRange"
    status_code = 400


class UpstreamUnavailable(ReportError):
    """Raised when the record store cannot be read. Not retried here."""

    kind = "UpstreamUnavailable"
    status_code = 500


@dataclass(frozen=True)
class RecordDefect:
    """
    A single expense or budget row that could not be used as-is.

    Attributes:
        source: Which record set the row came from
        record_id: Primary key of the row, when known
        reason: Short human readable description of the defect
    """
    source: Literal["expense", "budget"]
    record_id: int | None
    reason: str
