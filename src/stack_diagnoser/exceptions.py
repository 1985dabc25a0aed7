"""Errors raised by the stack diagnoser."""


class DiagnosisError(Exception):
    """Base class for diagnosis failures that are not AWS transport errors."""


class MissingTimestampError(DiagnosisError):
    """The stack carries no LastUpdatedTime or CreationTime to anchor the event window."""
