"""Model capability contract and the common Record fields.

Hierarchy:
  Model:  what any storable entity must expose to the storage layer.
  Record: Model with the identifier/audit fields most entities embed.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Self

from pydantic import BaseModel, Field, ValidationError

from shared.helper.HelperValidation import field_errors_from
from shared.models.validation import FieldError

# document field holding the searchify() output
RAW_INDEX_FIELD = "raw_index"


class Model(BaseModel, ABC):
    """Capability set every storable entity implements.

    The storage layer only relies on these methods, never on a concrete type.
    Field constraints are declared as pydantic constraints and reported through
    validate_fields().
    """

    @classmethod
    @abstractmethod
    def collection_name(cls) -> str:
        """Returns the backend collection the entity type is stored in."""
        pass

    @abstractmethod
    def document_id(self) -> str:
        """Returns the identifier of the entity's document inside its collection."""
        pass

    @abstractmethod
    def search_terms(self) -> list[str]:
        """Returns the raw terms the entity should be findable by (names, tags, …)."""
        pass

    def validate_fields(self, translations: dict[str, str] | None = None) -> list[FieldError]:
        """Re-checks the current field values against the model's constraints.

        Subclasses add cross-field rules by extending the returned list.

        Args:
            translations (dict[str, str] | None): Message templates and field labels, see HelperValidation.

        Returns:
            list[FieldError]: Violations, empty when the entity is valid.
        """
        try:
            type(self).model_validate(self.model_dump(by_alias=True))
        except ValidationError as e:
            return field_errors_from(e, translations)
        return []

    @classmethod
    def empty(cls) -> Self:
        """Returns the zero value of the model: defaults everywhere, None for required fields."""
        values = {}
        for name, field in cls.model_fields.items():
            values[name] = None if field.is_required() else field.get_default(call_default_factory=True)
        return cls.model_construct(**values)

    def is_empty(self) -> bool:
        """True if the entity equals the zero value, e.g. after a failed lookup."""
        return dict(self) == dict(type(self).empty())


class Record(Model):
    """Common fields carried by most entities.

    raw_index is derived by the storage layer from search_terms() on every sync;
    it is excluded from normal serialization.
    """

    id: str = ""
    created: datetime | None = None
    updated: datetime | None = None
    created_by: str = ""
    updated_by: str = ""
    raw_index: list[str] = Field(default_factory=list, exclude=True)

    def document_id(self) -> str:
        return self.id

    def touch(self, actor: str = "", now: datetime | None = None) -> None:
        """Stamps the audit fields before a write.

        Args:
            actor (str): Who performs the write.
            now (datetime | None): Timestamp to use, defaults to the current UTC time.
        """
        now = now or datetime.now(timezone.utc)
        if self.created is None:
            self.created = now
            self.created_by = actor
        self.updated = now
        self.updated_by = actor
