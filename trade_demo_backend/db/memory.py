"""
In-memory client factory backed by mongomock-motor.

Drop-in replacement for MotorClientFactory in tests and local experiments:
same lazy single-client lifecycle, no network and no ping.
"""

from mongomock_motor import AsyncMongoMockClient

from trade_demo_backend.config.settings import MongoSettings
from trade_demo_backend.db.factory import MotorClientFactory

IN_MEMORY_URI = "mongodb://localhost:27017"


class InMemoryClientFactory(MotorClientFactory):
    """
    Factory whose shared client is an in-memory mongomock store.

    Each client starts empty; closing the factory discards the data.
    """

    def __init__(
        self,
        database: str = "trade-demo-backend",
        settings: MongoSettings | None = None,
    ) -> None:
        if settings is None:
            settings = MongoSettings(uri=IN_MEMORY_URI, database=database)
        super().__init__(settings, environ={})

    def _create_client(self) -> AsyncMongoMockClient:
        return AsyncMongoMockClient(tz_aware=self.settings.tz_aware)

    async def _verify_client(self, client: AsyncMongoMockClient) -> None:
        return None

    def _dispose_client(self, client: AsyncMongoMockClient) -> None:
        return None

    async def health_check(self) -> dict:
        if self._client is None:
            return {
                "status": "disconnected",
                "healthy": False,
                "error": "No active connection",
            }
        return {"status": "connected", "healthy": True, "in_memory": True}
