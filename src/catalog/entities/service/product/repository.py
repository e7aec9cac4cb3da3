"""Product repository: ORM-style queries over a record storage."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from src.catalog.core.exceptions import CorruptData, NotFound
from src.catalog.core.storage.record_storage import (
    RecordStorage,
    Records,
    YamlRecordStorage,
    storage_sort_key,
)
from src.catalog.core.validation import (
    INVALID,
    NOT_A_NUMBER,
    FieldError,
    SaveResult,
    run_rules,
)
from src.catalog.entities.service.product.entity import Product
from src.catalog.runtime.config.config_data import StoreConfig

_NUMERIC_ERROR_PREFIXES = ("decimal", "int", "float")
_DECIMAL = TypeAdapter(Decimal)


def _coercion_errors(error: ValidationError) -> list[FieldError]:
    errors = []
    for detail in error.errors():
        field = str(detail["loc"][0]) if detail["loc"] else "base"
        numeric = detail["type"].startswith(_NUMERIC_ERROR_PREFIXES)
        errors.append(FieldError(field, NOT_A_NUMBER if numeric else INVALID))
    return errors


def _id_from_key(key: str) -> int | None:
    prefix, _, _ = key.partition("-")
    return int(prefix) if prefix.isdigit() else None


def _rounded(raw: Any, coerced: Any) -> bool:
    """Whether coercing ``raw`` to an amount changed its value."""
    if raw is None or not isinstance(coerced, Decimal):
        return False
    return _DECIMAL.validate_python(raw) != coerced


class ProductRepository:
    """Data-access layer for products.

    Every call runs in its own storage transaction and reloads the whole
    mapping; nothing is cached between calls.
    """

    model = Product

    def __init__(self, storage: RecordStorage) -> None:
        self._storage = storage

    @classmethod
    def from_config(cls, config: StoreConfig) -> ProductRepository:
        return cls(
            YamlRecordStorage(
                config.file_path,
                require_existing=config.require_existing,
                lock_timeout=config.lock_timeout_seconds,
            )
        )

    @property
    def storage(self) -> RecordStorage:
        return self._storage

    def all(self) -> list[Product]:
        """All products ordered by storage key, i.e. by id."""
        with self._storage.transaction(read_only=True) as records:
            return self._hydrate(records)

    def count(self) -> int:
        return len(self.all())

    def find(self, record_id: int | str) -> Product:
        try:
            wanted = int(str(record_id).strip())
        except ValueError:
            raise NotFound("product", record_id) from None

        found = self.where({"id": wanted})
        if not found:
            raise NotFound("product", record_id)
        return found[0]

    def where(self, filters: Mapping[str, Any] | None = None) -> list[Product]:
        """Products whose listed attributes all equal the filter values.

        Filter values go through the attribute's type first, so ``"19.99"``
        matches a stored price of 19.99. Unknown attributes, values that
        cannot be coerced and amounts that only match after rounding to cents
        match nothing.
        """
        filters = dict(filters or {})
        if set(filters) - set(self.model.model_fields):
            return []
        try:
            coerced = self.model.model_validate(filters)
        except ValidationError:
            return []

        expected = {name: getattr(coerced, name) for name in filters}
        if any(_rounded(filters[name], value) for name, value in expected.items()):
            return []
        return [
            product
            for product in self.all()
            if all(getattr(product, name) == value for name, value in expected.items())
        ]

    def max(self, attribute_name: str) -> Any:
        """Largest non-null value of ``attribute_name``, or ``None`` when there is none."""
        if attribute_name not in self.model.model_fields:
            raise ValueError(f"Unknown product attribute: {attribute_name}")
        return self._max_of(self.all(), attribute_name)

    def save(self, product: Product, changes: Mapping[str, Any] | None = None) -> SaveResult:
        """Validate ``product`` with ``changes`` applied and write it.

        On failure the product is left untouched and the errors are returned.
        On success the changes are applied to ``product``, which gets an id if
        it had none.
        """
        changes = {name: value for name, value in (changes or {}).items() if name != "id"}
        unknown = set(changes) - set(self.model.model_fields)
        if unknown:
            raise ValueError(f"Unknown product attributes: {sorted(unknown)}")

        try:
            candidate = self.model.model_validate({**product.attributes, **changes})
        except ValidationError as e:
            return SaveResult(ok=False, errors=tuple(_coercion_errors(e)))

        errors = run_rules(self.model.validation_rules, candidate.attributes)
        if errors:
            logger.info(
                "Rejected product {}: {}",
                product.id if product.persisted else "(new)",
                [f"{error.field} {error.message}" for error in errors],
            )
            return SaveResult(ok=False, errors=tuple(errors))

        with self._storage.transaction(read_only=False) as records:
            if candidate.id is None:
                candidate.id = self._next_id(records)
            records[candidate.storage_key] = candidate.attributes

        for name in self.model.model_fields:
            setattr(product, name, getattr(candidate, name))

        logger.info("Saved product {} to {}", product.id, self._storage.location)
        return SaveResult(ok=True)

    def destroy(self, product: Product) -> None:
        """Remove the product's key; a missing key is not an error."""
        if not product.persisted:
            return
        with self._storage.transaction(read_only=False) as records:
            removed = records.pop(product.storage_key, None)
        if removed is not None:
            logger.info("Destroyed product {} in {}", product.id, self._storage.location)

    def _hydrate(self, records: Records) -> list[Product]:
        products = []
        for key in sorted(records, key=storage_sort_key):
            attributes = dict(records[key])
            if attributes.get("id") is None:
                attributes["id"] = _id_from_key(key)
            if attributes["id"] is None:
                logger.warning("Skipping record {!r} without an id", key)
                continue
            try:
                products.append(self.model.model_validate(attributes))
            except ValidationError as e:
                raise CorruptData(f"Record {key!r} has invalid attributes: {e}") from e
        return products

    def _next_id(self, records: Records) -> int:
        return (self._max_of(self._hydrate(records), "id") or 0) + 1

    @staticmethod
    def _max_of(products: Iterable[Product], attribute_name: str) -> Any:
        values = [
            value
            for value in (getattr(product, attribute_name) for product in products)
            if value is not None
        ]
        return max(values) if values else None
