"""Entity: Product."""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING, Annotated, Any, ClassVar

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer
from pydantic_core import PydanticCustomError

from src.catalog.core.exceptions import ValidationFailed
from src.catalog.core.validation import (
    SaveResult,
    ValidationRule,
    greater_than,
    matches,
    presence,
)
from src.catalog.entities.core._base import Entity

if TYPE_CHECKING:
    from src.catalog.entities.service.product.repository import ProductRepository

DEFAULT_ISO_CURRENCY = "USD"
SKU_PATTERN = r"\w{4}-[^\W\d]\d{3}"
ISO_CURRENCY_PATTERN = r"[A-Z]{3}"

_CENTS = Decimal("0.01")
# Amounts are stored as decimal(10, 2)
AMOUNT_MAX_DIGITS = 10
_AMOUNT_INTEGER_DIGITS = AMOUNT_MAX_DIGITS - 2


def _two_places(value: Decimal) -> Decimal:
    """Round half up to cents, rejecting amounts that do not fit decimal(10, 2)."""
    try:
        rounded = value.quantize(_CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        rounded = None
    if rounded is None or rounded.adjusted() >= _AMOUNT_INTEGER_DIGITS:
        raise PydanticCustomError(
            "decimal_max_digits",
            "Decimal input should have no more than {max_digits} digits in total",
            {"max_digits": AMOUNT_MAX_DIGITS},
        )
    return rounded


Amount = Annotated[
    Decimal,
    AfterValidator(_two_places),
    PlainSerializer(float, return_type=float, when_used="json"),
]


class Money(BaseModel):
    """An amount in a given currency."""

    model_config = ConfigDict(frozen=True)

    amount: Amount
    currency: str

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"


class Product(Entity):
    """An item for sale in the catalog.

    Every attribute may be ``None`` in memory and on disk; the validation
    rules, not the field types, decide what may be saved.
    """

    storage_suffix: ClassVar[str] = "product"

    sku: str | None = Field(default="", description="Stock keeping unit, e.g. ABCD-E123")
    name: str | None = Field(default="", description="Display name")
    description: str | None = Field(default="", description="Long description")
    price_amount: Amount | None = Field(default=Decimal("0.00"), description="Unit price")
    price_currency: str | None = Field(default=DEFAULT_ISO_CURRENCY, description="ISO 4217 code")
    tax_amount: Amount | None = Field(default=Decimal("0.00"), description="Tax per unit")
    tax_currency: str | None = Field(default=DEFAULT_ISO_CURRENCY, description="ISO 4217 code")
    stock: int | None = Field(default=0, description="Units on hand")

    validation_rules: ClassVar[tuple[ValidationRule, ...]] = (
        presence("name"),
        presence("sku"),
        matches("sku", SKU_PATTERN, re.IGNORECASE | re.ASCII),
        presence("description"),
        presence("price_amount"),
        greater_than("price_amount", 0),
        presence("price_currency"),
        matches("price_currency", ISO_CURRENCY_PATTERN),
        presence("tax_amount"),
        greater_than("tax_amount", 0),
        presence("tax_currency"),
        matches("tax_currency", ISO_CURRENCY_PATTERN),
        presence("stock"),
        greater_than("stock", 0),
    )

    @property
    def price(self) -> Money:
        return Money(amount=self.price_amount or 0, currency=self.price_currency or DEFAULT_ISO_CURRENCY)

    @property
    def tax(self) -> Money:
        return Money(amount=self.tax_amount or 0, currency=self.tax_currency or DEFAULT_ISO_CURRENCY)

    def save(self, repository: ProductRepository) -> SaveResult:
        return repository.save(self)

    def update(self, repository: ProductRepository, changes: dict[str, Any]) -> SaveResult:
        return repository.save(self, changes)

    def save_or_raise(self, repository: ProductRepository) -> None:
        result = repository.save(self)
        if not result:
            raise ValidationFailed(result.errors)

    def destroy(self, repository: ProductRepository) -> None:
        repository.destroy(self)
