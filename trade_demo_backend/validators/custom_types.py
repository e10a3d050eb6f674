"""
Custom Pydantic types and validators for MongoDB integration.

Provides the PyObjectId type used by document models and the collection
name rules enforced before a collection handle is resolved.
"""

from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import GetCoreSchemaHandler, GetJsonSchemaHandler
from pydantic.json_schema import JsonSchemaValue
from pydantic_core import CoreSchema, PydanticCustomError, core_schema

from trade_demo_backend.exceptions import InvalidCollectionNameError

# MongoDB limit on "<database>.<collection>" in bytes
MAX_NAMESPACE_BYTES = 255
RESERVED_PREFIX = "system."


class PyObjectId(ObjectId):
    """
    Custom ObjectId type for Pydantic v2 integration.

    Accepts ObjectId instances or 24-character hex strings. Python-mode dumps
    keep the ObjectId so documents can be written as-is; JSON dumps use the
    hex string.

    Usage:
        class MyModel(BaseModel):
            id: PyObjectId = Field(default_factory=ObjectId, alias="_id")
    """

    @classmethod
    def __get_pydantic_core_schema__(
        cls,
        _source_type: Any,
        _handler: GetCoreSchemaHandler,
    ) -> CoreSchema:
        return core_schema.union_schema(
            [
                core_schema.is_instance_schema(ObjectId),
                core_schema.no_info_plain_validator_function(cls.validate),
            ],
            serialization=core_schema.plain_serializer_function_ser_schema(
                cls.serialize,
                info_arg=False,
                return_schema=core_schema.str_schema(),
                when_used="json",
            ),
        )

    @classmethod
    def __get_pydantic_json_schema__(
        cls,
        _core_schema: CoreSchema,
        handler: GetJsonSchemaHandler,
    ) -> JsonSchemaValue:
        return {
            "type": "string",
            "pattern": "^[0-9a-fA-F]{24}$",
            "description": "MongoDB ObjectId as 24-character hex string",
            "example": "507f1f77bcf86cd799439011",
        }

    @classmethod
    def validate(cls, value: Any) -> ObjectId:
        """Validate and convert value to ObjectId."""
        if isinstance(value, ObjectId):
            return value

        if isinstance(value, str):
            if not value:
                raise PydanticCustomError(
                    "objectid_empty",
                    "ObjectId cannot be empty string",
                )
            try:
                return ObjectId(value)
            except InvalidId as e:
                raise PydanticCustomError(
                    "objectid_invalid",
                    "Invalid ObjectId format: {value}",
                    {"value": value},
                ) from e

        raise PydanticCustomError(
            "objectid_type",
            "ObjectId must be ObjectId instance or 24-character hex string, got {type}",
            {"type": type(value).__name__},
        )

    @classmethod
    def serialize(cls, value: ObjectId) -> str:
        """Serialize ObjectId to string."""
        return str(value)


def validate_collection_name(name: Any, database: str | None = None) -> str:
    """
    Validate a MongoDB collection name.

    Rules:
    - Must be a non-blank string
    - No '$' or NUL characters
    - Cannot start or end with '.', or contain '..'
    - Cannot use the reserved 'system.' prefix
    - '<database>.<name>' must fit in 255 bytes when a database is given

    Raises:
        InvalidCollectionNameError: if any rule is broken
    """
    if not isinstance(name, str):
        raise InvalidCollectionNameError(name, f"expected str, got {type(name).__name__}")

    if not name:
        raise InvalidCollectionNameError(name, "name cannot be empty")

    if not name.strip():
        raise InvalidCollectionNameError(name, "name cannot be blank")

    if "$" in name:
        raise InvalidCollectionNameError(name, "name cannot contain '$'")

    if "\x00" in name:
        raise InvalidCollectionNameError(name, "name cannot contain the null character")

    if name.startswith(".") or name.endswith("."):
        raise InvalidCollectionNameError(name, "name cannot start or end with '.'")

    if ".." in name:
        raise InvalidCollectionNameError(name, "name cannot contain empty segments")

    if name.startswith(RESERVED_PREFIX):
        raise InvalidCollectionNameError(name, "the 'system.' prefix is reserved")

    if database is not None:
        namespace = f"{database}.{name}"
        if len(namespace.encode("utf-8")) > MAX_NAMESPACE_BYTES:
            raise InvalidCollectionNameError(
                name, f"namespace exceeds {MAX_NAMESPACE_BYTES} bytes"
            )

    return name
