"""Errors raised by the record store and the entities built on it."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.catalog.core.validation import FieldError


class RecordStoreError(Exception):
    """Base class for record store failures."""


class NotFound(RecordStoreError):
    """A lookup did not match any stored record."""

    def __init__(self, model: str, record_id: object) -> None:
        super().__init__(f"Cannot find {model} with id={record_id}")
        self.model = model
        self.record_id = record_id


class ValidationFailed(RecordStoreError):
    """A record failed validation and was not written."""

    def __init__(self, errors: Sequence[FieldError]) -> None:
        self.errors = list(errors)
        summary = ", ".join(f"{error.field} {error.message}" for error in self.errors)
        super().__init__(f"Validation failed: {summary}")


class CorruptData(RecordStoreError):
    """The backing file exists but cannot be parsed into records."""


class StoreUnavailable(RecordStoreError):
    """The backing file is missing or cannot be opened."""


class LockTimeout(StoreUnavailable):
    """The file lock could not be acquired in time."""
