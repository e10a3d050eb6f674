"""Custom validators and types."""

from trade_demo_backend.validators.custom_types import PyObjectId, validate_collection_name

__all__ = ["PyObjectId", "validate_collection_name"]
