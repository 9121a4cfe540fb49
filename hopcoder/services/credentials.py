# This module keeps the provider credentials a user entered.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.1.0

from abc import ABC, abstractmethod
from typing import Dict, Optional

from redis.asyncio import Redis

from hopcoder.utils.logger import console

OPENAI_KEY = "openai_key"
AZURE_ENDPOINT = "azure_endpoint"


class CredentialStore(ABC):
    """
    Opaque key/value storage for provider credentials. How they are protected
    is up to the host; the core only reads, writes and deletes them.
    """

    @abstractmethod
    async def get(self, name: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set(self, name: str, value: str):
        pass

    @abstractmethod
    async def delete(self, name: str):
        pass


class InMemoryCredentialStore(CredentialStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    async def get(self, name: str) -> Optional[str]:
        return self._values.get(name)

    async def set(self, name: str, value: str):
        self._values[name] = value

    async def delete(self, name: str):
        self._values.pop(name, None)


class RedisCredentialStore(CredentialStore):
    """Stores credentials under ``<prefix>:<name>``. Failures are logged, not raised."""

    def __init__(self, redis_client: Redis, prefix: str = "hopcoder:credentials"):
        self._redis = redis_client
        self._prefix = prefix

    def _key(self, name: str) -> str:
        return f"{self._prefix}:{name}"

    async def get(self, name: str) -> Optional[str]:
        try:
            return await self._redis.get(self._key(name))
        except Exception:
            console.exception(f"Failed to read credential '{name}' from Redis.")
            return None

    async def set(self, name: str, value: str):
        try:
            await self._redis.set(self._key(name), value)
        except Exception:
            console.exception(f"Failed to store credential '{name}' in Redis.")

    async def delete(self, name: str):
        try:
            await self._redis.delete(self._key(name))
        except Exception:
            console.exception(f"Failed to delete credential '{name}' from Redis.")
