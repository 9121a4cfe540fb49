# This module stores project-scoped memory items for the assistant.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.1.0

import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field
from redis.asyncio import Redis

from hopcoder.core.errors import PersistenceError
from hopcoder.utils.logger import console


class MemoryItem(BaseModel):
    """A fact the assistant chose to remember about a project."""
    id: str = Field(default_factory=lambda: str(uuid4()))
    project_id: str
    key: str
    value: Any = None
    created_at: float = Field(default_factory=time.time)
    expires_at: Optional[float] = None

    def is_expired(self, now: Optional[float] = None) -> bool:
        return self.expires_at is not None and self.expires_at <= (now or time.time())


def _new_item(project_id: str, key: str, value: Any, ttl_seconds: Optional[int]) -> MemoryItem:
    now = time.time()
    expires_at = now + ttl_seconds if ttl_seconds else None
    return MemoryItem(project_id=project_id, key=key, value=value, created_at=now, expires_at=expires_at)


class MemoryStore(ABC):
    @abstractmethod
    async def save(self, project_id: str, key: str, value: Any, ttl_seconds: Optional[int] = None) -> str:
        """Stores an item and returns its id."""

    @abstractmethod
    async def load(self, project_id: str) -> List[MemoryItem]:
        """Returns the unexpired items of a project, oldest first."""


class InMemoryMemoryStore(MemoryStore):
    def __init__(self):
        self._items: Dict[str, List[MemoryItem]] = {}

    async def save(self, project_id: str, key: str, value: Any, ttl_seconds: Optional[int] = None) -> str:
        item = _new_item(project_id, key, value, ttl_seconds)
        self._items.setdefault(project_id, []).append(item)
        return item.id

    async def load(self, project_id: str) -> List[MemoryItem]:
        items = [item for item in self._items.get(project_id, []) if not item.is_expired()]
        self._items[project_id] = items
        return list(items)


class RedisMemoryStore(MemoryStore):
    """
    Keeps one Redis hash per project: field = item id, value = item JSON.
    Expired items are dropped lazily when a project is loaded.
    """
    def __init__(self, redis_client: Redis, prefix: str = "hopcoder:memory"):
        self._redis = redis_client
        self._prefix = prefix

    def _key(self, project_id: str) -> str:
        return f"{self._prefix}:{project_id}"

    async def save(self, project_id: str, key: str, value: Any, ttl_seconds: Optional[int] = None) -> str:
        item = _new_item(project_id, key, value, ttl_seconds)
        try:
            await self._redis.hset(self._key(project_id), item.id, item.model_dump_json())
        except Exception as e:
            console.exception(f"Failed to save memory item '{key}' for project '{project_id}'.")
            raise PersistenceError(f"Failed to save memory item: {e}") from e
        return item.id

    async def load(self, project_id: str) -> List[MemoryItem]:
        try:
            raw_items = await self._redis.hgetall(self._key(project_id))
        except Exception as e:
            console.exception(f"Failed to load memory for project '{project_id}'.")
            raise PersistenceError(f"Failed to load memory: {e}") from e

        items, expired = [], []
        for item_id, payload in raw_items.items():
            item = MemoryItem.model_validate_json(payload)
            if item.is_expired():
                expired.append(item_id)
            else:
                items.append(item)
        if expired:
            await self._redis.hdel(self._key(project_id), *expired)
        return sorted(items, key=lambda item: item.created_at)
