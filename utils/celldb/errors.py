"""Exceptions raised by the cell database."""

from __future__ import annotations


class CellDataError(RuntimeError):
    """Base class for cell database failures."""
    pass


class NotFoundError(CellDataError):
    """Raised when a requested record does not exist."""
    pass


class ValidationFailure(CellDataError):
    """Raised when a bulk dataset row cannot be parsed."""

    def __init__(self, message: str, row: int | None = None):
        super().__init__(message)
        self.row = row


class IOFailure(CellDataError):
    """Raised when a dataset or export file cannot be read or written."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path
