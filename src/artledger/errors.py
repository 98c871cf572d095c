"""Typed failures raised by the artwork workflow and its collaborators.

Each class carries the HTTP status it maps to; ``artledger.main`` renders
them as ``{"message": ...}`` bodies.
"""

from __future__ import annotations


class ArtLedgerError(Exception):
    """Base class for every expected, user-facing failure."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ArtLedgerError):
    status_code = 400


class NotFoundError(ArtLedgerError):
    status_code = 404


class ForbiddenError(ArtLedgerError):
    status_code = 403


class DuplicateArtworkError(ArtLedgerError):
    status_code = 409


class AlreadyPurchasedError(ArtLedgerError):
    status_code = 409


class NotAvailableError(ArtLedgerError):
    status_code = 409


class InsufficientFundsError(ArtLedgerError):
    status_code = 402


class PaymentError(ArtLedgerError):
    status_code = 502


class StorageError(ArtLedgerError):
    """The relational store failed; never swallowed by the workflow."""

    status_code = 503


class ConstraintViolation(StorageError):
    """A unique constraint fired on flush or commit."""

    def __init__(self, message: str, constraint: str | None = None) -> None:
        super().__init__(message)
        self.constraint = constraint


class ImageStorageError(OSError):
    """Writing an image to blob storage failed."""


class ContentReadError(OSError):
    """An uploaded stream could not be read to the end."""
