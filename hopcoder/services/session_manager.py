# This module owns the conversations hosted by one process.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.2.0

import asyncio
from collections import OrderedDict
from typing import Dict, Optional
from uuid import uuid4

from redis.asyncio import Redis, from_url

from hopcoder.core.config import Settings
from hopcoder.core.orchestrator import HopAIOrchestrator
from hopcoder.core.tool_registry import ToolRegistry, register_workspace_tools
from hopcoder.services.credentials import CredentialStore, InMemoryCredentialStore, RedisCredentialStore
from hopcoder.services.history_store import HistoryStore, InMemoryHistoryStore, RedisHistoryStore
from hopcoder.services.memory_store import InMemoryMemoryStore, MemoryStore, RedisMemoryStore
from hopcoder.services.workspace import Workspace
from hopcoder.services.workspace_transport import LocalWorkspaceTransport, WorkspaceTransport
from hopcoder.tools.base_tool import ToolContext
from hopcoder.utils.logger import console


class SessionManager:
    """
    Builds and keeps one orchestrator per session id, all sharing the
    workspace, the tool registry and the stores of this process.
    """
    def __init__(self, settings: Settings,
                 transport: Optional[WorkspaceTransport] = None,
                 history_store: Optional[HistoryStore] = None,
                 credentials: Optional[CredentialStore] = None,
                 memory_store: Optional[MemoryStore] = None):
        self.settings = settings
        redis_client = self._connect(settings)
        if redis_client is not None:
            history_store = history_store or RedisHistoryStore(redis_client, settings.SESSION_TTL)
            credentials = credentials or RedisCredentialStore(redis_client)
            memory_store = memory_store or RedisMemoryStore(redis_client)
        self.history_store = history_store or InMemoryHistoryStore()
        self.credentials = credentials or InMemoryCredentialStore()
        self.memory_store = memory_store or InMemoryMemoryStore()

        self.workspace = Workspace(transport or LocalWorkspaceTransport(), settings.WORKSPACE_ROOT)
        self.registry = ToolRegistry()
        self._register_tools()

        # Least recently used first; bounded by MAX_SESSIONS.
        self._orchestrators: "OrderedDict[str, HopAIOrchestrator]" = OrderedDict()
        self._locks: Dict[str, asyncio.Lock] = {}
        self._create_lock: Optional[asyncio.Lock] = None

    @staticmethod
    def _connect(settings: Settings) -> Optional[Redis]:
        if not settings.REDIS_URL:
            console.info("REDIS_URL not set; sessions are kept in memory.")
            return None
        try:
            client = from_url(settings.REDIS_URL, decode_responses=True)
            console.info("Async Redis client for session management initialized.")
            return client
        except ValueError as e:
            console.error(f"Failed to initialize Redis client: {e}")
            raise

    def _register_tools(self):
        register_workspace_tools(self.registry, ToolContext(self.workspace, self.memory_store))

    @staticmethod
    def new_session_id() -> str:
        """Generates a new, unique session ID."""
        return str(uuid4())

    def lock(self, session_id: str) -> asyncio.Lock:
        """The lock callers hold while a message is processed for ``session_id``."""
        return self._locks.setdefault(session_id, asyncio.Lock())

    async def get_orchestrator(self, session_id: str) -> HopAIOrchestrator:
        """
        Returns the session's orchestrator, restoring it from the history store
        on first use. Creation is serialized so concurrent first requests share
        one instance.
        """
        orchestrator = self._orchestrators.get(session_id)
        if orchestrator is None:
            if self._create_lock is None:
                self._create_lock = asyncio.Lock()
            async with self._create_lock:
                orchestrator = self._orchestrators.get(session_id)
                if orchestrator is None:
                    orchestrator = await HopAIOrchestrator.create(
                        self.registry, self.settings, self.credentials, self.history_store, session_id,
                    )
                    self._orchestrators[session_id] = orchestrator
                    await self._evict_idle(keep=session_id)
        if session_id in self._orchestrators:
            self._orchestrators.move_to_end(session_id)
        return orchestrator

    async def _evict_idle(self, keep: str):
        """Flushes and drops least recently used sessions nobody holds a lock on."""
        while len(self._orchestrators) > max(1, self.settings.MAX_SESSIONS):
            victim = next(
                (
                    session_id for session_id in self._orchestrators
                    if session_id != keep and not (session_id in self._locks and self._locks[session_id].locked())
                ),
                None,
            )
            if victim is None:
                console.warning(f"All {len(self._orchestrators)} cached sessions are busy; none evicted.")
                return
            orchestrator = self._orchestrators.pop(victim)
            self._locks.pop(victim, None)
            await orchestrator.flush()
            console.debug(f"Evicted idle session '{victim}'.")

    async def open_workspace(self, root: str) -> str:
        opened = await self.workspace.open(root)
        # Tools are re-registered so every entry is bound to the new context.
        self._register_tools()
        return opened

    def close_workspace(self):
        self.workspace.close()

    async def shutdown(self):
        for orchestrator in self._orchestrators.values():
            await orchestrator.flush()
