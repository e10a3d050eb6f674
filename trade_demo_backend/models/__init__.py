"""Document model base classes."""

from trade_demo_backend.models.base import MongoBaseModel, TimestampedModel, utc_now

__all__ = ["MongoBaseModel", "TimestampedModel", "utc_now"]
