"""
Blocking MongoDB client factory using PyMongo, for thread-based callers.
"""

import os
import threading
from collections.abc import Callable, Mapping
from typing import Self

import structlog
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from trade_demo_backend.config.settings import MongoSettings, load_mongo_settings
from trade_demo_backend.db.collection import DocumentT, SyncTypedCollection
from trade_demo_backend.db.factory import (
    build_client_options,
    resolve_tls_ca_file,
    scan_ca_bundle,
)
from trade_demo_backend.exceptions import DatabaseConnectionError
from trade_demo_backend.validators.custom_types import validate_collection_name

logger = structlog.get_logger(__name__)


class PyMongoClientFactory:
    """
    Same lifecycle as MotorClientFactory, guarded by a threading.Lock.

    Usage:
        with PyMongoClientFactory(settings) as factory:
            notifications = factory.get_collection("notifications", Notification)
            notifications.find_one({"reference": reference})
    """

    def __init__(
        self,
        settings: MongoSettings | None = None,
        *,
        client_class: Callable[..., MongoClient] = MongoClient,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._settings = settings if settings is not None else load_mongo_settings()
        self._client_class = client_class
        self._client: MongoClient | None = None
        self._lock = threading.Lock()
        self._ca_bundle = scan_ca_bundle(
            self._settings, environ if environ is not None else os.environ
        )

    @property
    def settings(self) -> MongoSettings:
        return self._settings

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    def get_client(self) -> MongoClient:
        """
        Get the shared client, connecting on first call.

        Raises:
            DatabaseConnectionError: if the endpoint is unreachable or rejects
                the credentials
        """
        client = self._client
        if client is not None:
            return client

        with self._lock:
            if self._client is None:
                self._client = self._connect()
            return self._client

    def get_collection(
        self,
        name: str,
        document_class: type[DocumentT] = dict,  # type: ignore[assignment]
    ) -> SyncTypedCollection[DocumentT]:
        """
        Resolve a typed handle on a collection of the configured database.

        Raises:
            InvalidCollectionNameError: if `name` is empty or malformed
            DatabaseConnectionError: if the shared client cannot be created
        """
        database_name = self._settings.database
        validate_collection_name(name, database_name)

        client = self.get_client()
        return SyncTypedCollection(
            client[database_name][name],
            document_class,
            name=name,
            database_name=database_name,
        )

    def close(self) -> None:
        """
        Close the shared client and remove its CA bundle.

        Safe to call more than once.
        """
        with self._lock:
            if self._client is None:
                logger.debug("No active MongoDB client to close")
                return

            logger.info("Closing MongoDB client", endpoint=self._settings.endpoint)
            client = self._client
            self._client = None
            self._release(client)
            logger.info("MongoDB client closed")

    def _release(self, client: MongoClient | None) -> None:
        if client is not None:
            client.close()
        if self._ca_bundle is not None:
            self._ca_bundle.remove()

    def _connect(self) -> MongoClient:
        endpoint = self._settings.endpoint
        logger.info("Connecting to MongoDB", endpoint=endpoint, database=self._settings.database)

        client = None
        try:
            client = self._client_class(
                self._settings.uri,
                **build_client_options(
                    self._settings, resolve_tls_ca_file(self._settings, self._ca_bundle)
                ),
            )
            client.admin.command("ping")
        except PyMongoError as e:
            logger.error("Failed to connect to MongoDB", endpoint=endpoint, error=str(e))
            self._release(client)
            raise DatabaseConnectionError(
                f"Could not connect to MongoDB at {endpoint}: {e}",
                endpoint=endpoint,
            ) from e
        except BaseException:
            self._release(client)
            raise

        logger.info("Successfully connected to MongoDB", database=self._settings.database)
        return client

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
