"""Exceptions raised by auditscore.

Scoring errors are terminal for one analysis. Persistence errors are caught
by the history store and only logged.
"""


class AuditScoreError(Exception):
    """Base class for all auditscore exceptions."""

    def __init__(self, message: str, context: dict | None = None) -> None:
        super().__init__(message)
        self.context = context or {}


class MalformedFindings(AuditScoreError):
    """Raised when a finding set violates its shape or numeric invariants."""


class AnalyzerReportedError(MalformedFindings):
    """Raised when the analyzer document carries an ``error`` field."""


class PersistenceUnavailable(AuditScoreError):
    """Raised by storage ports when the history slot cannot be read or written."""
