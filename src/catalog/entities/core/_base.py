from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict
from pydantic import Field as PydanticField


class Entity(BaseModel):
    """Base class for records kept in a record store.

    The integer id stays ``None`` until the record is first saved; the store
    then assigns it once and never reuses it.
    """

    model_config = ConfigDict(validate_assignment=True)

    storage_suffix: ClassVar[str] = "record"

    id: int | None = PydanticField(
        default=None, description="Store-assigned identifier, unset until persisted"
    )

    @property
    def persisted(self) -> bool:
        return self.id is not None

    @property
    def storage_key(self) -> str:
        """Key of this record's slot in the store, id first so keys sort by id."""
        if self.id is None:
            raise ValueError(f"Unpersisted {type(self).__name__} has no storage key")
        return self.key_for(self.id)

    @classmethod
    def key_for(cls, record_id: int) -> str:
        return f"{record_id}-{cls.storage_suffix}"

    @property
    def attributes(self) -> dict[str, Any]:
        return self.model_dump()

    def as_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
