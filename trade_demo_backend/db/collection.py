"""
Typed collection handles.

A handle is a lightweight view over one named collection. The document type
is fixed when the handle is resolved: pydantic models are encoded with
``model_dump(by_alias=True)`` and decoded with ``model_validate``; mapping
types (``dict`` by default) are passed through.
"""

from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import BaseModel
from pymongo.collection import Collection

DocumentT = TypeVar("DocumentT")


class _DocumentCodec(Generic[DocumentT]):
    """Shared state and document conversion for sync and async handles."""

    def __init__(
        self,
        collection: Any,
        document_class: type[DocumentT],
        *,
        name: str,
        database_name: str,
    ) -> None:
        self._collection = collection
        self._document_class = document_class
        self._name = name
        self._database_name = database_name
        self._is_model = isinstance(document_class, type) and issubclass(
            document_class, BaseModel
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def database_name(self) -> str:
        return self._database_name

    @property
    def full_name(self) -> str:
        """Collection identity as '<database>.<collection>'."""
        return f"{self._database_name}.{self._name}"

    @property
    def document_class(self) -> type[DocumentT]:
        return self._document_class

    def _encode(self, document: DocumentT) -> dict[str, Any]:
        if isinstance(document, BaseModel):
            return document.model_dump(by_alias=True)
        if isinstance(document, Mapping):
            return dict(document)
        raise TypeError(
            f"Cannot store {type(document).__name__} in collection '{self.full_name}'"
        )

    def _decode(self, raw: Mapping[str, Any]) -> DocumentT:
        if self._is_model:
            return self._document_class.model_validate(raw)  # type: ignore[attr-defined]
        return self._document_class(raw)  # type: ignore[call-arg]

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__}(collection='{self.full_name}', "
            f"document_class={self._document_class.__name__})>"
        )


class TypedCollection(_DocumentCodec[DocumentT]):
    """
    Async handle over a Motor collection.

    Usage:
        notifications = await factory.get_collection("notifications", Notification)
        await notifications.insert_one(Notification(reference="CHEDA.GB.2024.1"))
        found = await notifications.find_one({"reference": "CHEDA.GB.2024.1"})
    """

    @property
    def raw(self) -> AsyncIOMotorCollection:
        """The underlying Motor collection, for operations not wrapped here."""
        return self._collection

    async def insert_one(self, document: DocumentT) -> Any:
        """Insert a document and return its id."""
        result = await self._collection.insert_one(self._encode(document))
        return result.inserted_id

    async def insert_many(self, documents: list[DocumentT]) -> list[Any]:
        """Insert documents in order and return their ids."""
        if not documents:
            return []
        result = await self._collection.insert_many([self._encode(doc) for doc in documents])
        return list(result.inserted_ids)

    async def find_one(self, filter: dict[str, Any] | None = None) -> DocumentT | None:
        document = await self._collection.find_one(filter or {})
        if document is None:
            return None
        return self._decode(document)

    async def find(
        self,
        filter: dict[str, Any] | None = None,
        *,
        skip: int = 0,
        limit: int = 0,
        sort: list[tuple[str, int]] | None = None,
    ) -> list[DocumentT]:
        """
        Find documents matching the filter.

        Args:
            filter: MongoDB query filter (default: all documents)
            skip: Number of documents to skip
            limit: Maximum number of documents, 0 for no limit
            sort: List of (field, direction) tuples

        Returns:
            Decoded documents
        """
        options: dict[str, Any] = {"skip": skip, "limit": limit}
        if sort:
            options["sort"] = sort
        cursor = self._collection.find(filter or {}, **options)
        documents = await cursor.to_list(length=None)
        return [self._decode(doc) for doc in documents]

    async def replace_one(
        self,
        filter: dict[str, Any],
        document: DocumentT,
        *,
        upsert: bool = False,
    ) -> bool:
        """Replace one matching document. True if a document was replaced or upserted."""
        result = await self._collection.replace_one(filter, self._encode(document), upsert=upsert)
        return result.modified_count > 0 or result.upserted_id is not None

    async def delete_one(self, filter: dict[str, Any]) -> bool:
        result = await self._collection.delete_one(filter)
        return result.deleted_count > 0

    async def count_documents(self, filter: dict[str, Any] | None = None) -> int:
        return await self._collection.count_documents(filter or {})


class SyncTypedCollection(_DocumentCodec[DocumentT]):
    """Blocking handle over a PyMongo collection, for thread-based callers."""

    @property
    def raw(self) -> Collection:
        return self._collection

    def insert_one(self, document: DocumentT) -> Any:
        return self._collection.insert_one(self._encode(document)).inserted_id

    def insert_many(self, documents: list[DocumentT]) -> list[Any]:
        if not documents:
            return []
        result = self._collection.insert_many([self._encode(doc) for doc in documents])
        return list(result.inserted_ids)

    def find_one(self, filter: dict[str, Any] | None = None) -> DocumentT | None:
        document = self._collection.find_one(filter or {})
        if document is None:
            return None
        return self._decode(document)

    def find(
        self,
        filter: dict[str, Any] | None = None,
        *,
        skip: int = 0,
        limit: int = 0,
        sort: list[tuple[str, int]] | None = None,
    ) -> list[DocumentT]:
        options: dict[str, Any] = {"skip": skip, "limit": limit}
        if sort:
            options["sort"] = sort
        return [self._decode(doc) for doc in self._collection.find(filter or {}, **options)]

    def replace_one(
        self,
        filter: dict[str, Any],
        document: DocumentT,
        *,
        upsert: bool = False,
    ) -> bool:
        result = self._collection.replace_one(filter, self._encode(document), upsert=upsert)
        return result.modified_count > 0 or result.upserted_id is not None

    def delete_one(self, filter: dict[str, Any]) -> bool:
        return self._collection.delete_one(filter).deleted_count > 0

    def count_documents(self, filter: dict[str, Any] | None = None) -> int:
        return self._collection.count_documents(filter or {})
