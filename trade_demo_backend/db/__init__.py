"""
Database client factories and typed collection handles.

Provides a shared MongoDB client per factory through the Motor and PyMongo
drivers, plus an in-memory factory for tests.
"""

from trade_demo_backend.db.collection import SyncTypedCollection, TypedCollection
from trade_demo_backend.db.factory import MongoDbClientFactory, MotorClientFactory
from trade_demo_backend.db.memory import InMemoryClientFactory
from trade_demo_backend.db.sync_factory import PyMongoClientFactory

__all__ = [
    "InMemoryClientFactory",
    "MongoDbClientFactory",
    "MotorClientFactory",
    "PyMongoClientFactory",
    "SyncTypedCollection",
    "TypedCollection",
]
