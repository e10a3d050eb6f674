"""
Base model classes for MongoDB documents with Pydantic v2.

Typed collection handles accept these models as their document type:
- ObjectId handling with the '_id' alias
- Conversion to/from MongoDB documents
- Optional timestamp tracking
"""

from datetime import datetime, timezone
from typing import Any, Self

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field

from trade_demo_backend.validators.custom_types import PyObjectId


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


class MongoBaseModel(BaseModel):
    """
    Base model for MongoDB documents.

    Usage:
        class Notification(MongoBaseModel):
            reference: str
            status: str

        notifications = await factory.get_collection("notifications", Notification)
    """

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
        validate_assignment=True,
        arbitrary_types_allowed=True,
        str_strip_whitespace=True,
    )

    id: PyObjectId = Field(
        default_factory=ObjectId,
        alias="_id",
        description="MongoDB document ID",
    )

    @classmethod
    def from_mongo(cls, document: dict[str, Any] | None) -> Self | None:
        """Create a model instance from a raw document, passing None through."""
        if document is None:
            return None
        return cls.model_validate(document)

    def to_mongo(self, exclude_none: bool = False) -> dict[str, Any]:
        """
        Convert model to MongoDB document format.

        The id is written under '_id' and kept as an ObjectId.
        """
        return self.model_dump(exclude_none=exclude_none, by_alias=True)

    def to_json_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert model to a JSON-serializable dictionary with string ids."""
        return self.model_dump(exclude_none=exclude_none, by_alias=False, mode="json")


class TimestampedModel(MongoBaseModel):
    """Base model with created_at/updated_at fields."""

    created_at: datetime = Field(
        default_factory=utc_now,
        description="Document creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        description="Last update timestamp (UTC)",
    )

    def touch(self) -> None:
        """Update the updated_at timestamp to current time."""
        self.updated_at = utc_now()
