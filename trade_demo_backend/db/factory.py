"""
MongoDB client factory using the Motor async driver.

One factory owns at most one client. The client is created on first use,
verified with a ping and then shared by every caller until the factory is
closed. Consumers depend on MongoDbClientFactory so that an in-memory
implementation can stand in for the network-backed one.
"""

import asyncio
import os
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Self

import structlog
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError

from trade_demo_backend.config.settings import MongoSettings, load_mongo_settings
from trade_demo_backend.db.collection import DocumentT, TypedCollection
from trade_demo_backend.db.truststore import CaBundle, scan_truststore_certificates
from trade_demo_backend.exceptions import DatabaseConnectionError
from trade_demo_backend.validators.custom_types import validate_collection_name

logger = structlog.get_logger(__name__)


def scan_ca_bundle(settings: MongoSettings, environ: Mapping[str, str]) -> CaBundle | None:
    """
    Collect TRUSTSTORE_* certificates for TLS connections.

    An explicit tls_ca_file wins, in which case nothing is scanned and None
    is returned. The bundle itself is written only when a client is created.
    """
    if not settings.tls_enabled or settings.tls_ca_file is not None:
        return None
    return CaBundle(scan_truststore_certificates(environ))


def resolve_tls_ca_file(settings: MongoSettings, ca_bundle: CaBundle | None) -> Path | None:
    """
    Pick the CA file passed to the driver.

    None means the system CA store is used.
    """
    if not settings.tls_enabled:
        return None
    if ca_bundle is not None:
        return ca_bundle.open()
    return settings.tls_ca_file


def build_client_options(
    settings: MongoSettings,
    tls_ca_file: Path | None = None,
) -> dict[str, Any]:
    """Keyword options shared by the Motor and PyMongo client constructors."""
    options: dict[str, Any] = {
        "appname": settings.app_name,
        "minPoolSize": settings.min_pool_size,
        "maxPoolSize": settings.max_pool_size,
        "maxIdleTimeMS": settings.max_idle_time_ms,
        "waitQueueTimeoutMS": settings.max_wait_time_ms,
        "connectTimeoutMS": settings.connect_timeout_ms,
        "serverSelectionTimeoutMS": settings.server_selection_timeout_ms,
        "readPreference": settings.read_preference,
        "w": settings.write_concern_value,
        "tz_aware": settings.tz_aware,
    }

    if settings.username:
        options["username"] = settings.username
    if settings.password is not None:
        options["password"] = settings.password.get_secret_value()
    if settings.auth_source:
        options["authSource"] = settings.auth_source

    if settings.tls_enabled:
        options["tls"] = True
        if tls_ca_file is not None:
            options["tlsCAFile"] = str(tls_ca_file)

    return options


class MongoDbClientFactory(ABC):
    """
    Capability interface for obtaining the shared client and collections.

    Usage:
        async with MotorClientFactory(settings) as factory:
            client = await factory.get_client()
            users = await factory.get_collection("users", User)
    """

    @abstractmethod
    async def get_client(self) -> AsyncIOMotorClient:
        """Return the shared client, creating it on first call."""
        ...

    @abstractmethod
    async def get_collection(
        self,
        name: str,
        document_class: type[DocumentT] = dict,  # type: ignore[assignment]
    ) -> TypedCollection[DocumentT]:
        """Return a handle on collection `name` typed as `document_class`."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Dispose of the shared client, if one exists."""
        ...

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


class MotorClientFactory(MongoDbClientFactory):
    """
    Network-backed factory creating one AsyncIOMotorClient.

    Settings are read once here; construction raises ConfigurationError when
    they are missing or invalid, so a factory never exists half-configured.
    Creation is serialized with an asyncio.Lock, so concurrent first callers
    on the event loop share one client. The factory never retries a failed
    connection; the next call simply tries again.
    """

    def __init__(
        self,
        settings: MongoSettings | None = None,
        *,
        client_class: Callable[..., AsyncIOMotorClient] = AsyncIOMotorClient,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._settings = settings if settings is not None else load_mongo_settings()
        self._client_class = client_class
        self._client: AsyncIOMotorClient | None = None
        self._lock = asyncio.Lock()
        self._ca_bundle = scan_ca_bundle(
            self._settings, environ if environ is not None else os.environ
        )

    @property
    def settings(self) -> MongoSettings:
        return self._settings

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def get_client(self) -> AsyncIOMotorClient:
        """
        Get the shared client, connecting on first call.

        Raises:
            DatabaseConnectionError: if the endpoint is unreachable or rejects
                the credentials
        """
        client = self._client
        if client is not None:
            return client

        async with self._lock:
            if self._client is None:
                self._client = await self._connect()
            return self._client

    async def get_collection(
        self,
        name: str,
        document_class: type[DocumentT] = dict,  # type: ignore[assignment]
    ) -> TypedCollection[DocumentT]:
        """
        Resolve a typed handle on a collection of the configured database.

        Raises:
            InvalidCollectionNameError: if `name` is empty or malformed
            DatabaseConnectionError: if the shared client cannot be created
        """
        database_name = self._settings.database
        validate_collection_name(name, database_name)

        client = await self.get_client()
        return TypedCollection(
            client[database_name][name],
            document_class,
            name=name,
            database_name=database_name,
        )

    async def close(self) -> None:
        """
        Close the shared client and remove its CA bundle.

        Safe to call more than once.
        """
        async with self._lock:
            if self._client is None:
                logger.debug("No active MongoDB client to close")
                return

            logger.info("Closing MongoDB client", endpoint=self._settings.endpoint)
            client = self._client
            self._client = None
            self._release(client)
            logger.info("MongoDB client closed")

    async def health_check(self) -> dict:
        """
        Ping the server through the existing client.

        Never creates a client.

        Returns:
            dict with status and latency information
        """
        client = self._client
        if client is None:
            return {
                "status": "disconnected",
                "healthy": False,
                "error": "No active connection",
            }

        try:
            loop = asyncio.get_running_loop()
            start = loop.time()
            await client.admin.command("ping")
            latency_ms = (loop.time() - start) * 1000

            server_info = await client.server_info()

            return {
                "status": "connected",
                "healthy": True,
                "latency_ms": round(latency_ms, 2),
                "server_version": server_info.get("version", "unknown"),
            }

        except PyMongoError as e:
            logger.error("Health check failed", error=str(e))
            return {
                "status": "error",
                "healthy": False,
                "error": str(e),
            }

    def _create_client(self) -> AsyncIOMotorClient:
        return self._client_class(
            self._settings.uri,
            **build_client_options(
                self._settings, resolve_tls_ca_file(self._settings, self._ca_bundle)
            ),
        )

    async def _verify_client(self, client: AsyncIOMotorClient) -> None:
        await client.admin.command("ping")

    def _dispose_client(self, client: AsyncIOMotorClient) -> None:
        client.close()

    def _release(self, client: AsyncIOMotorClient | None) -> None:
        if client is not None:
            self._dispose_client(client)
        if self._ca_bundle is not None:
            self._ca_bundle.remove()

    async def _connect(self) -> AsyncIOMotorClient:
        endpoint = self._settings.endpoint
        logger.info(
            "Connecting to MongoDB",
            endpoint=endpoint,
            database=self._settings.database,
        )

        client = None
        try:
            client = self._create_client()
            await self._verify_client(client)
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

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__}(endpoint='{self._settings.endpoint}', "
            f"database='{self._settings.database}', connected={self.is_connected})>"
        )
