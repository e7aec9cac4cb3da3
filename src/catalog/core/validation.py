"""Declarative field validation.

A model declares an ordered list of ``ValidationRule`` objects; ``run_rules``
evaluates every rule against a snapshot of the record's attributes and returns
all failures instead of stopping at the first one.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

BLANK = "can't be blank"
INVALID = "is invalid"
NOT_A_NUMBER = "is not a number"


@dataclass(frozen=True)
class FieldError:
    """A single failed rule."""

    field: str
    message: str


@dataclass(frozen=True)
class ValidationRule:
    """Predicate over one attribute plus the message reported when it fails.

    ``check`` returns ``None`` when the value passes, or the failure message.
    """

    field: str
    check: Callable[[Any], str | None]

    def evaluate(self, attributes: Mapping[str, Any]) -> FieldError | None:
        message = self.check(attributes.get(self.field))
        if message is None:
            return None
        return FieldError(self.field, message)


@dataclass(frozen=True)
class SaveResult:
    """Outcome of a save; truthy when the record was written."""

    ok: bool
    errors: tuple[FieldError, ...] = ()

    def __bool__(self) -> bool:
        return self.ok

    @property
    def messages(self) -> dict[str, list[str]]:
        return group_errors(self.errors)


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def presence(field: str) -> ValidationRule:
    """The attribute must be set and, for strings, non-empty."""
    return ValidationRule(field, lambda value: BLANK if is_blank(value) else None)


def matches(field: str, pattern: str, flags: int = 0) -> ValidationRule:
    """The whole attribute must match ``pattern``; blank values are left to ``presence``."""
    compiled = re.compile(pattern, flags)

    def check(value: Any) -> str | None:
        if is_blank(value):
            return None
        if not isinstance(value, str) or compiled.fullmatch(value) is None:
            return INVALID
        return None

    return ValidationRule(field, check)


def greater_than(field: str, bound: int | float | Decimal) -> ValidationRule:
    """The attribute must be numeric and strictly above ``bound``."""

    def check(value: Any) -> str | None:
        if is_blank(value):
            return None
        if not is_number(value):
            return NOT_A_NUMBER
        if value <= bound:
            return f"must be greater than {bound}"
        return None

    return ValidationRule(field, check)


def run_rules(rules: Iterable[ValidationRule], attributes: Mapping[str, Any]) -> list[FieldError]:
    """Evaluate ``rules`` in order and collect every failure."""
    errors = []
    for rule in rules:
        error = rule.evaluate(attributes)
        if error is not None:
            errors.append(error)
    return errors


def group_errors(errors: Iterable[FieldError]) -> dict[str, list[str]]:
    """Group messages by field, preserving rule order."""
    grouped: dict[str, list[str]] = {}
    for error in errors:
        grouped.setdefault(error.field, []).append(error.message)
    return grouped
