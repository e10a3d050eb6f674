"""
Tests for the thread-based PyMongo client factory.
"""

import base64
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import mongomock
import pytest
from pymongo.errors import ServerSelectionTimeoutError

from tests.conftest import FakeMongoClientClass, Notification
from tests.test_factory import PEM
from trade_demo_backend.config.settings import MongoSettings
from trade_demo_backend.db.collection import SyncTypedCollection
from trade_demo_backend.db.sync_factory import PyMongoClientFactory
from trade_demo_backend.exceptions import (
    ConfigurationError,
    DatabaseConnectionError,
    InvalidCollectionNameError,
)


class TestSyncGetClient:
    """Tests for lazy client creation across threads."""

    def test_missing_configuration_fails_fast(self, fake_pymongo):
        """Test construction without settings."""
        with pytest.raises(ConfigurationError):
            PyMongoClientFactory(client_class=fake_pymongo)

    def test_concurrent_threads_create_one_client(self, mongo_settings):
        """Test 100 threads released together before the first ping completes."""
        fake = FakeMongoClientClass(ping_delay=0.05)
        factory = PyMongoClientFactory(mongo_settings, client_class=fake)
        barrier = threading.Barrier(100)

        def first_call():
            barrier.wait()
            return factory.get_client()

        with ThreadPoolExecutor(max_workers=100) as pool:
            clients = list(pool.map(lambda _: first_call(), range(100)))

        assert len(fake.calls) == 1
        assert all(client is fake.created[0] for client in clients)

    def test_failure_is_wrapped_and_not_cached(self, mongo_settings):
        """Test error wrapping and a fresh attempt on the next call."""
        cause = ServerSelectionTimeoutError("down")
        fake = FakeMongoClientClass(error=cause)
        factory = PyMongoClientFactory(mongo_settings, client_class=fake)

        with pytest.raises(DatabaseConnectionError) as exc_info:
            factory.get_client()

        assert exc_info.value.__cause__ is cause
        fake.created[0].close.assert_called_once()

        fake.error = None
        assert factory.get_client() is fake.created[1]

    def test_unexpected_error_closes_client(self, mongo_settings):
        """Test that non-driver errors propagate unwrapped and dispose the client."""
        fake = FakeMongoClientClass(error=RuntimeError("interpreter shutdown"))
        factory = PyMongoClientFactory(mongo_settings, client_class=fake)

        with pytest.raises(RuntimeError, match="interpreter shutdown"):
            factory.get_client()

        fake.created[0].close.assert_called_once()
        assert factory.is_connected is False

    def test_srv_uri_reaches_driver_unchanged(self, fake_pymongo):
        """Test that a mongodb+srv:// string is passed without an added port."""
        uri = "mongodb+srv://cluster0.example.net/?retryWrites=true"
        factory = PyMongoClientFactory(
            MongoSettings(uri=uri, database="trade_demo"), client_class=fake_pymongo
        )

        factory.get_client()

        assert fake_pymongo.calls[0][0] == uri

    def test_close_removes_ca_bundle(self, fake_pymongo):
        """Test that the generated CA bundle is deleted with the client."""
        settings = MongoSettings(
            uri="mongodb://mongo.internal:27017", database="trade_demo", tls_enabled=True
        )
        environ = {"TRUSTSTORE_INTERNAL_CA": base64.b64encode(PEM).decode()}

        with PyMongoClientFactory(settings, client_class=fake_pymongo, environ=environ) as factory:
            factory.get_client()
            bundle = Path(fake_pymongo.calls[0][1]["tlsCAFile"])
            assert bundle.exists()

        assert not bundle.exists()

    def test_context_manager_closes_client(self, mongo_settings, fake_pymongo):
        """Test that leaving the block closes the client."""
        with PyMongoClientFactory(mongo_settings, client_class=fake_pymongo) as factory:
            client = factory.get_client()

        client.close.assert_called_once()
        assert factory.is_connected is False


class TestSyncGetCollection:
    """Tests for sync collection handles over mongomock."""

    @pytest.fixture
    def factory(self, mongo_settings):
        def in_memory_client(uri, **options):
            return mongomock.MongoClient(tz_aware=True)

        with PyMongoClientFactory(mongo_settings, client_class=in_memory_client) as factory:
            yield factory

    def test_invalid_name(self, factory):
        """Test that an empty name is rejected before connecting."""
        with pytest.raises(InvalidCollectionNameError):
            factory.get_collection("")
        assert factory.is_connected is False

    def test_model_documents(self, factory):
        """Test storing and reading pydantic documents."""
        notifications = factory.get_collection("notifications", Notification)
        assert isinstance(notifications, SyncTypedCollection)

        notification = Notification(reference="CHEDA.GB.2024.0000001")
        inserted_id = notifications.insert_one(notification)

        found = notifications.find_one({"reference": "CHEDA.GB.2024.0000001"})

        assert inserted_id == notification.id
        assert isinstance(found, Notification)
        assert found.id == notification.id
        assert notifications.count_documents() == 1

    def test_same_collection_identity(self, factory):
        """Test that two handles on one name see the same documents."""
        first = factory.get_collection("examples")
        second = factory.get_collection("examples")

        first.insert_one({"name": "example"})

        assert first is not second
        assert first.full_name == second.full_name == "trade_demo.examples"
        assert second.find_one({"name": "example"})["name"] == "example"
