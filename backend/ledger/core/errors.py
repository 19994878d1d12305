# ledger/core/errors.py
"""
Error taxonomy of the order ledger.

Every user-visible failure is a LedgerError; the handlers registered in
`ledger.main` render it as `{"error": ...}` with `status_code`.
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError


class LedgerError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(LedgerError):
    """Missing or malformed request input."""
    status_code = 400


class InvalidRate(ValidationError):
    """A caller-supplied exchange rate that is not a positive decimal."""


class UnsupportedCurrency(ValidationError):
    pass


class StorageError(LedgerError):
    """Any failure reported by the relational store."""
    status_code = 500


class ConstraintViolation(StorageError):
    """Foreign key / not-null / unique violation."""


class RateResolutionFailure(Exception):
    """
    The rate oracle could not produce a usable rate.
    Internal only: the rate resolver always absorbs it into the fallback rate.
    """


def storage_error_from(exc: SQLAlchemyError, message: Optional[str] = None) -> StorageError:
    """
    Wraps a SQLAlchemy exception into the matching StorageError subclass.
    Without `message` the driver message itself becomes the user-visible error.
    """
    detail = str(getattr(exc, "orig", None) or exc)
    if message is None:
        message, detail = detail, None
    if isinstance(exc, IntegrityError):
        return ConstraintViolation(message, details=detail)
    return StorageError(message, details=detail)
