"""
MongoDB saved-analysis repository.

Storage design:
- Collection: analyses
- _id is the AnalysisId string
- Index on (user_id, created_at DESC) for history queries
- Index on (user_id, product_name, created_at) for duplicate checks
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from nutridecode.domain.history.models import (
    AnalysisFilters,
    SortField,
    SortOrder,
    StoredAnalysis,
)
from nutridecode.domain.label.models import AnalysisResult
from nutridecode.infrastructure.persistence.mongodb.base import MongoBaseRepository

logger = structlog.get_logger(__name__)

_SORT_KEYS = {
    SortField.CREATED_AT: "created_at",
    SortField.HEALTH_SCORE: "health_score",
    SortField.PRODUCT_NAME: "product_name_lower",
}


class MongoAnalysisRepository(MongoBaseRepository[StoredAnalysis]):
    """
    MongoDB implementation of IAnalysisRepository.

    The owner-scoped delete filters on user_id. force_delete() runs
    against `privileged_db` (a connection with elevated rights) when one
    is configured, otherwise against the same database.

    Example:
        >>> client = AsyncIOMotorClient("mongodb://localhost:27017")
        >>> repository = MongoAnalysisRepository(client.nutridecode)
        >>> await repository.insert(stored)
    """

    collection_name = "analyses"

    def __init__(
        self,
        db: AsyncIOMotorDatabase[Any],
        privileged_db: Optional[AsyncIOMotorDatabase[Any]] = None,
    ):
        super().__init__(db)
        self._privileged_collection = (privileged_db or db)[self.collection_name]
        self._indexes_created = False

    async def ensure_indexes(self) -> None:
        if self._indexes_created:
            return
        await self.collection.create_index(
            [("user_id", 1), ("created_at", -1)], name="idx_user_recent"
        )
        await self.collection.create_index(
            [("user_id", 1), ("product_name", 1), ("created_at", -1)],
            name="idx_user_product",
        )
        self._indexes_created = True

    def to_document(self, entity: StoredAnalysis) -> Dict[str, Any]:
        return {
            "_id": entity.id,
            "user_id": entity.user_id,
            "image_url": entity.image_url,
            "health_score": entity.health_score,
            "product_name": entity.product_name,
            "product_name_lower": entity.product_name.lower(),
            "analysis": entity.analysis.to_payload(),
            "created_at": entity.created_at,
        }

    def from_document(self, doc: Dict[str, Any]) -> StoredAnalysis:
        return StoredAnalysis(
            id=doc["_id"],
            user_id=doc["user_id"],
            image_url=doc.get("image_url", ""),
            health_score=doc["health_score"],
            analysis=AnalysisResult.model_validate(doc.get("analysis") or {}),
            created_at=self.ensure_utc(doc["created_at"]),
        )

    async def insert(self, stored: StoredAnalysis) -> StoredAnalysis:
        try:
            await self._insert_one(self.to_document(stored))
        except DuplicateKeyError as e:
            raise self._fail("insert_one", e, analysis_id=stored.id) from e
        logger.info("analysis_saved", analysis_id=stored.id, user_id=stored.user_id)
        return stored

    async def get(self, analysis_id: str) -> Optional[StoredAnalysis]:
        doc = await self._find_one({"_id": analysis_id})
        return self.from_document(doc) if doc else None

    async def find_recent_by_product(
        self, user_id: str, product_name: str, since: datetime
    ) -> Optional[StoredAnalysis]:
        docs = await self._find_many(
            {"user_id": user_id, "product_name": product_name, "created_at": {"$gte": since}},
            sort=[("created_at", -1)],
            limit=1,
        )
        return self.from_document(docs[0]) if docs else None

    @staticmethod
    def build_query(user_id: str, filters: AnalysisFilters) -> Dict[str, Any]:
        """Translate AnalysisFilters to a MongoDB filter document."""
        query: Dict[str, Any] = {"user_id": user_id}

        created: Dict[str, Any] = {}
        if filters.start_date:
            created["$gte"] = filters.start_date
        if filters.end_date:
            created["$lte"] = filters.end_date
        if created:
            query["created_at"] = created

        score: Dict[str, Any] = {}
        if filters.health_score_min is not None:
            score["$gte"] = filters.health_score_min
        if filters.health_score_max is not None:
            score["$lte"] = filters.health_score_max
        if score:
            query["health_score"] = score

        if filters.product_name:
            query["product_name"] = {
                "$regex": re.escape(filters.product_name),
                "$options": "i",
            }
        return query

    async def list(self, user_id: str, filters: AnalysisFilters) -> List[StoredAnalysis]:
        direction = -1 if filters.sort_order is SortOrder.DESC else 1
        docs = await self._find_many(
            self.build_query(user_id, filters),
            sort=[(_SORT_KEYS[filters.sort_by], direction)],
        )
        return [self.from_document(doc) for doc in docs]

    async def delete(self, analysis_id: str, user_id: str) -> bool:
        deleted = await self._delete_one({"_id": analysis_id, "user_id": user_id})
        return deleted > 0

    async def force_delete(self, analysis_id: str, user_id: str) -> bool:
        try:
            result = await self._privileged_collection.delete_one(
                {"_id": analysis_id, "user_id": user_id}
            )
        except PyMongoError as e:
            raise self._fail("force_delete", e, analysis_id=analysis_id) from e
        logger.info(
            "analysis_force_deleted",
            analysis_id=analysis_id,
            deleted_count=result.deleted_count,
        )
        return bool(result.acknowledged)
