# This module handles the persistence of conversation history.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.2.0

import asyncio
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError

from hopcoder.models.common import Conversation, Message
from hopcoder.utils.logger import console


class HistoryStore(ABC):
    """
    Durable storage for a session's messages. Best effort: implementations
    log failures and never raise them into the conversation loop.
    """

    @abstractmethod
    async def load(self, session_id: str) -> List[Message]:
        pass

    @abstractmethod
    async def save(self, session_id: str, messages: List[Message]):
        pass


class InMemoryHistoryStore(HistoryStore):
    def __init__(self):
        self._sessions: Dict[str, List[Message]] = {}
        self.save_count = 0

    async def load(self, session_id: str) -> List[Message]:
        return [message.model_copy(deep=True) for message in self._sessions.get(session_id, [])]

    async def save(self, session_id: str, messages: List[Message]):
        self._sessions[session_id] = [message.model_copy(deep=True) for message in messages]
        self.save_count += 1


class RedisHistoryStore(HistoryStore):
    """
    Persists a session as one JSON document in Redis, refreshed with a TTL on every save.
    """
    def __init__(self, redis_client: Redis, session_ttl: int = 86400, prefix: str = "hopcoder:session"):
        self._redis_client = redis_client
        self._session_ttl = session_ttl
        self._prefix = prefix

    def _key(self, session_id: str) -> str:
        return f"{self._prefix}:{session_id}"

    async def save(self, session_id: str, messages: List[Message]):
        try:
            conversation_json = Conversation(session_id=session_id, messages=messages).model_dump_json()
            await self._redis_client.set(self._key(session_id), conversation_json, ex=self._session_ttl)
            console.debug(f"Session '{session_id}' saved to Redis.")
        except Exception:
            console.exception(f"Failed to save session '{session_id}' to Redis.")

    async def load(self, session_id: str) -> List[Message]:
        try:
            conversation_json = await self._redis_client.get(self._key(session_id))
        except RedisConnectionError:
            console.exception(f"Could not connect to Redis when getting session '{session_id}'. Please ensure Redis is running and accessible.")
            return []
        except Exception:
            console.exception(f"Failed to retrieve session '{session_id}' from Redis. Starting a new conversation.")
            return []

        if not conversation_json:
            console.info(f"Session '{session_id}' not found in Redis. Creating a new one.")
            return []
        try:
            conversation = Conversation.model_validate_json(conversation_json)
        except ValueError:
            console.exception(f"Stored session '{session_id}' is corrupt. Starting a new conversation.")
            return []
        console.info(f"Session '{session_id}' retrieved from Redis.")
        return conversation.messages


class CoalescingSaver:
    """
    Coalesces history writes: ``schedule`` arranges at most one save per
    ``interval`` seconds, ``flush`` writes immediately and cancels any timer.
    The snapshot is taken when the save runs, so it always holds the latest state.
    """
    def __init__(self, store: HistoryStore, session_id: str,
                 snapshot: Callable[[], List[Message]], interval: float = 1.0):
        self._store = store
        self._session_id = session_id
        self._snapshot = snapshot
        self._interval = interval
        self._timer: Optional[asyncio.Task] = None
        self._dirty = False

    @property
    def dirty(self) -> bool:
        return self._dirty

    def schedule(self):
        self._dirty = True
        if self._timer is not None and not self._timer.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet (e.g. during construction); the next flush writes it.
            return
        self._timer = loop.create_task(self._save_later())

    async def _save_later(self):
        await asyncio.sleep(self._interval)
        self._timer = None
        await self._write()

    async def flush(self):
        timer, self._timer = self._timer, None
        if timer is not None and not timer.done():
            timer.cancel()
            try:
                await timer
            except asyncio.CancelledError:
                pass
        if self._dirty:
            await self._write()

    async def _write(self):
        self._dirty = False
        await self._store.save(self._session_id, self._snapshot())
