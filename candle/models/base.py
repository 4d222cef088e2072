"""
Base Model
Shared Firestore document behaviour: camelCase field names on the wire.
"""

from typing import Any, Dict, Type, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

M = TypeVar("M", bound="FirestoreModel")


class FirestoreModel(BaseModel):
    """Document model stored with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        extra="ignore",
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary for Firestore storage."""
        return self.model_dump(by_alias=True, exclude_none=True)

    @classmethod
    def from_dict(cls: Type[M], data: Dict[str, Any]) -> M:
        """Create model from Firestore dictionary."""
        return cls.model_validate(data)
