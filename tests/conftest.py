"""
Test fixtures for the HopCoder agent core test suite.
"""

from typing import List

import pytest

from hopcoder.core.config import Settings
from hopcoder.core.orchestrator import HopAIOrchestrator
from hopcoder.core.tool_registry import ToolRegistry, register_workspace_tools
from hopcoder.models.common import Message, ToolCall
from hopcoder.services.credentials import InMemoryCredentialStore
from hopcoder.services.history_store import InMemoryHistoryStore
from hopcoder.services.llm_connector import ProviderChoice
from hopcoder.services.memory_store import InMemoryMemoryStore
from hopcoder.services.providers.base import LLMProvider
from hopcoder.services.workspace import Workspace
from hopcoder.services.workspace_transport import LocalWorkspaceTransport, WorkspaceTransport
from hopcoder.tools.base_tool import ToolContext


class RecordingTransport(WorkspaceTransport):
    """Local transport that remembers every operation it was asked to perform."""

    def __init__(self):
        self.ops = []
        self._inner = LocalWorkspaceTransport()

    async def send(self, op):
        self.ops.append(op)
        return await self._inner.send(op)


class ScriptedProvider(LLMProvider):
    """
    Plays back one scripted step per turn. A step is either an exception to
    raise or a list of text chunks, ToolCall objects and exceptions to
    deliver (or raise) in order.
    """

    def __init__(self, turns, name="Scripted", supports_fallback=False):
        super().__init__(None)
        self.turns = list(turns)
        self.name = name
        self.supports_fallback = supports_fallback
        self.seen: List[List[Message]] = []

    async def stream(self, history, on_chunk, on_tool_call):
        self.seen.append(list(history))
        step = self.turns.pop(0)
        if isinstance(step, Exception):
            raise step
        for item in step:
            if isinstance(item, Exception):
                raise item
            if isinstance(item, ToolCall):
                on_tool_call(item)
            else:
                on_chunk(item)


@pytest.fixture
def settings():
    """Settings isolated from the environment; timers long enough to never fire on their own."""
    return Settings(
        _env_file=None,
        HOPCODER_AI_KEY=None,
        REDIS_URL=None,
        WORKSPACE_ROOT=None,
        OPENAI_BASE_URL=None,
        MOCK_STREAM_DELAY=0.0,
        PERSIST_INTERVAL=60.0,
        MAX_TOOL_ROUNDS=25,
    )


@pytest.fixture
def workspace_dir(tmp_path):
    (tmp_path / "hello.txt").write_text("hello world\n", encoding="utf-8")
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "main.py").write_text("def main():\n    print('foo')\n", encoding="utf-8")
    (tmp_path / ".git").mkdir()
    (tmp_path / ".git" / "config").write_text("[core]\n", encoding="utf-8")
    return tmp_path


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def workspace(workspace_dir, transport):
    return Workspace(transport, str(workspace_dir))


@pytest.fixture
def memory_store():
    return InMemoryMemoryStore()


@pytest.fixture
def registry(workspace, memory_store):
    return register_workspace_tools(ToolRegistry(), ToolContext(workspace, memory_store))


@pytest.fixture
def history_store():
    return InMemoryHistoryStore()


@pytest.fixture
def credentials():
    return InMemoryCredentialStore()


@pytest.fixture
def make_orchestrator(registry, settings, credentials, history_store):
    """Builds an orchestrator around a given provider, system message already installed."""

    def _make(provider, instructions="You are a test assistant.", session_id="test-session"):
        choice = ProviderChoice(provider, instructions)
        return HopAIOrchestrator(registry, settings, credentials, history_store, session_id, choice)

    return _make
