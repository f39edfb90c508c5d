"""Base MongoDB repository.

Common functionality for the MongoDB repositories:
- Collection handle from an AsyncIOMotorDatabase
- Document <-> entity mapping contract
- Driver errors logged and wrapped in DatabaseError
- Timezone-aware datetime handling
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

import structlog
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from nutridecode.domain.shared.errors import DatabaseError

TEntity = TypeVar("TEntity")

logger = structlog.get_logger(__name__)


class MongoBaseRepository(ABC, Generic[TEntity]):
    """
    Abstract base class for MongoDB repositories.

    Subclasses must implement:
    - collection_name: Name of MongoDB collection
    - to_document(): Convert domain entity to MongoDB document
    - from_document(): Convert MongoDB document to domain entity

    DuplicateKeyError is re-raised unchanged so subclasses can map it to
    their own business error.

    Example:
        class MongoWaitlistRepository(MongoBaseRepository[WaitlistEntry]):
            collection_name = "waitlist"
            ...
    """

    collection_name: str = ""

    def __init__(self, db: AsyncIOMotorDatabase[Any]):
        """
        Initialize repository with a MongoDB database.

        Args:
            db: Motor AsyncIOMotorDatabase instance
        """
        self.db = db
        self.collection = db[self.collection_name]
        logger.debug("mongo_repository_initialized", collection=self.collection_name)

    @abstractmethod
    def to_document(self, entity: TEntity) -> Dict[str, Any]:
        """Convert domain entity to MongoDB document."""

    @abstractmethod
    def from_document(self, doc: Dict[str, Any]) -> TEntity:
        """
        Convert MongoDB document to domain entity.

        Raises:
            ValueError: If document is invalid or missing required fields
        """

    @staticmethod
    def ensure_utc(dt: datetime) -> datetime:
        """BSON dates come back naive; they are always UTC."""
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt

    def _fail(self, operation: str, error: Exception, **context: Any) -> DatabaseError:
        logger.error(
            "mongo_operation_failed",
            operation=operation,
            collection=self.collection_name,
            error=str(error),
            **context,
        )
        return DatabaseError(f"{operation} on {self.collection_name} failed: {error}")

    async def _find_one(self, filter_dict: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            doc: Optional[Dict[str, Any]] = await self.collection.find_one(filter_dict)
            return doc
        except PyMongoError as e:
            raise self._fail("find_one", e, filter=filter_dict) from e

    async def _find_many(
        self,
        filter_dict: Dict[str, Any],
        sort: Optional[List[Tuple[str, int]]] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        try:
            cursor = self.collection.find(filter_dict)
            if sort:
                cursor = cursor.sort(sort)
            if limit:
                cursor = cursor.limit(limit)
            documents: List[Dict[str, Any]] = await cursor.to_list(length=limit)
            return documents
        except PyMongoError as e:
            raise self._fail("find_many", e, filter=filter_dict) from e

    async def _insert_one(self, document: Dict[str, Any]) -> None:
        try:
            await self.collection.insert_one(document)
        except DuplicateKeyError:
            raise
        except PyMongoError as e:
            raise self._fail("insert_one", e) from e

    async def _replace_one(self, filter_dict: Dict[str, Any], document: Dict[str, Any]) -> int:
        """Returns the number of matched documents (0 or 1)."""
        try:
            result = await self.collection.replace_one(filter_dict, document)
            return int(result.matched_count)
        except PyMongoError as e:
            raise self._fail("replace_one", e, filter=filter_dict) from e

    async def _delete_one(self, filter_dict: Dict[str, Any]) -> int:
        """Returns the number of deleted documents (0 or 1)."""
        try:
            result = await self.collection.delete_one(filter_dict)
            return int(result.deleted_count)
        except PyMongoError as e:
            raise self._fail("delete_one", e, filter=filter_dict) from e
