"""Repository factory.

Settings-based repository selection:
- REPOSITORY_BACKEND=inmemory (default): fast, transient, used in tests
- REPOSITORY_BACKEND=mongodb: persistent, requires MONGODB_URI

Usage:
    repositories = create_repositories(settings)
    await repositories.analyses.insert(stored)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorClient

from nutridecode.config import Settings
from nutridecode.domain.history.repository import IAnalysisRepository
from nutridecode.domain.preferences.repository import IPreferencesRepository
from nutridecode.domain.profile.repository import IProfileRepository
from nutridecode.domain.shared.errors import ConfigurationError
from nutridecode.domain.waitlist.repository import IWaitlistRepository
from nutridecode.infrastructure.persistence.in_memory.analysis_repository import (
    InMemoryAnalysisRepository,
)
from nutridecode.infrastructure.persistence.in_memory.preferences_repository import (
    InMemoryPreferencesRepository,
)
from nutridecode.infrastructure.persistence.in_memory.profile_repository import (
    InMemoryProfileRepository,
)
from nutridecode.infrastructure.persistence.in_memory.waitlist_repository import (
    InMemoryWaitlistRepository,
)
from nutridecode.infrastructure.persistence.mongodb.analysis_repository import (
    MongoAnalysisRepository,
)
from nutridecode.infrastructure.persistence.mongodb.preferences_repository import (
    MongoPreferencesRepository,
)
from nutridecode.infrastructure.persistence.mongodb.profile_repository import (
    MongoProfileRepository,
)
from nutridecode.infrastructure.persistence.mongodb.waitlist_repository import (
    MongoWaitlistRepository,
)

logger = structlog.get_logger(__name__)


@dataclass
class Repositories:
    """Every repository an application instance uses."""

    analyses: IAnalysisRepository
    preferences: IPreferencesRepository
    waitlist: IWaitlistRepository
    profiles: IProfileRepository
    client: Optional[AsyncIOMotorClient[Any]] = None

    def close(self) -> None:
        """Close the MongoDB client, if any."""
        if self.client is not None:
            self.client.close()
            self.client = None

    async def ensure_indexes(self) -> None:
        """Create MongoDB indexes; nothing to do for the in-memory backend."""
        if isinstance(self.analyses, MongoAnalysisRepository):
            await self.analyses.ensure_indexes()


def create_in_memory_repositories() -> Repositories:
    return Repositories(
        analyses=InMemoryAnalysisRepository(),
        preferences=InMemoryPreferencesRepository(),
        waitlist=InMemoryWaitlistRepository(),
        profiles=InMemoryProfileRepository(),
    )


def create_repositories(
    settings: Settings, client: Optional[AsyncIOMotorClient[Any]] = None
) -> Repositories:
    """
    Create repositories for the configured backend.

    Args:
        settings: Application settings
        client: Optional pre-built Motor client (mongodb backend only)

    Raises:
        ConfigurationError: If mongodb is selected without MONGODB_URI
    """
    if settings.repository_backend != "mongodb":
        logger.info("repositories_created", backend="inmemory")
        return create_in_memory_repositories()

    if client is None:
        if not settings.mongodb_uri:
            raise ConfigurationError(
                "REPOSITORY_BACKEND=mongodb but MONGODB_URI not set. "
                "Set MONGODB_URI in .env or use REPOSITORY_BACKEND=inmemory"
            )
        client = AsyncIOMotorClient(settings.mongodb_uri)

    db = client[settings.mongodb_database]
    logger.info("repositories_created", backend="mongodb", database=settings.mongodb_database)
    return Repositories(
        analyses=MongoAnalysisRepository(db),
        preferences=MongoPreferencesRepository(db),
        waitlist=MongoWaitlistRepository(db),
        profiles=MongoProfileRepository(db),
        client=client,
    )
