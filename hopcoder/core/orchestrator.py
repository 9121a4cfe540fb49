# hopcoder/core/orchestrator.py
# The conversation loop: streams assistant turns, runs requested tools and feeds results back.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 4.0.0

import json
from enum import Enum
from typing import Callable, List, Optional, Union

from hopcoder.core.config import Settings
from hopcoder.core.errors import ProviderError
from hopcoder.core.tool_registry import ToolRegistry
from hopcoder.models.common import Message, ToolCall
from hopcoder.services.credentials import AZURE_ENDPOINT, OPENAI_KEY, CredentialStore
from hopcoder.services.history_store import CoalescingSaver, HistoryStore
from hopcoder.services.llm_connector import (
    ProviderChoice,
    build_azure_provider,
    build_default_provider,
    build_openai_provider,
    has_fallback,
    select_provider,
)
from hopcoder.utils.logger import console

HistoryListener = Callable[[List[Message]], None]

MAX_ROUNDS_MESSAGE = (
    "I have reached the maximum number of tool steps for this request. "
    "Please review the results so far or ask me to continue."
)


class AgentState(str, Enum):
    IDLE = "idle"
    AWAITING_ASSISTANT = "awaiting_assistant"
    EXECUTING_TOOL = "executing_tool"
    FAILED = "failed"


class HopAIOrchestrator:
    """
    Owns one conversation: its history, its active provider and its subscribers.

    Only one ``send_message`` may be in flight at a time; callers serialize
    (the HTTP layer holds a per-session lock). Every mutation notifies
    subscribers synchronously. Durable mutations schedule a coalesced save;
    streamed chunks do not, the save is flushed once a stream completes.
    """
    def __init__(self, registry: ToolRegistry, settings: Settings, credentials: CredentialStore,
                 history_store: HistoryStore, session_id: str = "default",
                 provider_choice: Optional[ProviderChoice] = None):
        self.session_id = session_id
        self.registry = registry
        self.settings = settings
        self.state = AgentState.IDLE
        self.history: List[Message] = []
        self.provider = None
        self._instructions = ""
        self._credentials = credentials
        self._history_store = history_store
        self._listeners: List[HistoryListener] = []
        self._saver = CoalescingSaver(history_store, session_id, self.get_history, settings.PERSIST_INTERVAL)
        if provider_choice is not None:
            self._use(provider_choice)
            self._install_instructions()

    @classmethod
    async def create(cls, registry: ToolRegistry, settings: Settings, credentials: CredentialStore,
                     history_store: HistoryStore, session_id: str = "default",
                     provider_choice: Optional[ProviderChoice] = None) -> "HopAIOrchestrator":
        orchestrator = cls(registry, settings, credentials, history_store, session_id, provider_choice)
        await orchestrator.restore()
        return orchestrator

    # --- History access and subscriptions ---

    def get_history(self) -> List[Message]:
        return list(self.history)

    def subscribe(self, listener: HistoryListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self):
        snapshot = self.get_history()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                console.exception("A history subscriber raised; continuing.")

    def _append(self, message: Message):
        self.history.append(message)
        self._notify()
        self._saver.schedule()

    async def flush(self):
        """Writes pending history changes now."""
        await self._saver.flush()

    # --- Provider and system message management ---

    def _use(self, choice: ProviderChoice):
        self.provider = choice.provider
        self._instructions = choice.instructions

    def _install_instructions(self):
        """Puts the active provider's instructions in the single system slot at the front."""
        instructions = Message(role="system", content=self._instructions)
        rest = [message for message in self.history if not message.is_instructions]
        self.history = [instructions] + rest

    async def restore(self):
        """Rehydrates persisted history and re-establishes the system slot."""
        if self.provider is None:
            self._use(await select_provider(self.settings, self._credentials, self.registry))
        self.history = await self._history_store.load(self.session_id)
        if self.history:
            console.info(f"Restored {len(self.history)} messages for session '{self.session_id}'.")
        self._install_instructions()
        self._notify()
        self._saver.schedule()
        await self._saver.flush()

    async def _reset(self, choice: ProviderChoice):
        self._use(choice)
        self.history = []
        self._install_instructions()
        self._notify()
        self._saver.schedule()
        await self._saver.flush()
        console.info(f"Session '{self.session_id}' now uses {self.provider.name}.")

    async def set_azure_agent(self, endpoint: str, api_key: str):
        await self._credentials.set(AZURE_ENDPOINT, endpoint)
        await self._credentials.set(OPENAI_KEY, api_key)
        await self._reset(build_azure_provider(self.settings, self.registry, endpoint, api_key))

    async def set_api_key(self, api_key: str):
        await self._credentials.set(OPENAI_KEY, api_key)
        # A plain OpenAI key replaces any Azure agent endpoint.
        await self._credentials.delete(AZURE_ENDPOINT)
        await self._reset(build_openai_provider(self.settings, self.registry, api_key))

    async def clear_api_key(self):
        await self._credentials.delete(OPENAI_KEY)
        await self._credentials.delete(AZURE_ENDPOINT)
        await self._reset(build_default_provider(self.settings, self.registry))

    async def clear_history(self):
        """Resets the conversation to exactly the system message."""
        self.history = []
        self._install_instructions()
        self._notify()
        self._saver.schedule()
        await self._saver.flush()
        console.info(f"Session '{self.session_id}' history cleared.")

    # --- The loop ---

    async def send_message(self, content: str):
        """
        Appends a user message and runs turns until the assistant answers
        without calling a tool. Failures end as an assistant error message
        or, for an auth failure with a fallback configured, a retried turn.
        """
        self._append(Message(role="user", content=content))
        try:
            await self._run_loop()
        except ProviderError as e:
            await self._handle_provider_error(e)
        except Exception as e:
            console.exception(f"Conversation turn failed for session '{self.session_id}'.")
            self._fail(e)
        finally:
            self.state = AgentState.IDLE
            await self._saver.flush()

    async def _run_loop(self):
        rounds = 0
        while True:
            tool_calls = await self._process_turn()
            if not tool_calls:
                return
            self.state = AgentState.EXECUTING_TOOL
            for tool_call in tool_calls:
                await self._execute_tool_call(tool_call)
            rounds += 1
            if rounds >= self.settings.MAX_TOOL_ROUNDS:
                console.warning(f"Stopping after {rounds} tool rounds for session '{self.session_id}'.")
                self._append(Message(role="assistant", content=MAX_ROUNDS_MESSAGE))
                return

    async def _process_turn(self) -> List[ToolCall]:
        self.state = AgentState.AWAITING_ASSISTANT
        console.rule(f"Turn with {self.provider.name}")
        history_for_provider = [message for message in self.history if not message.notice]

        placeholder = Message(role="assistant")
        self._append(placeholder)
        tool_calls: List[ToolCall] = []

        def on_chunk(chunk: str):
            placeholder.content += chunk
            self._notify()

        def on_tool_call(tool_call: ToolCall):
            tool_calls.append(tool_call)
            placeholder.tool_calls = (placeholder.tool_calls or []) + [tool_call]
            self._notify()
            self._saver.schedule()

        await self.provider.stream(history_for_provider, on_chunk, on_tool_call)
        self._saver.schedule()
        await self._saver.flush()
        return tool_calls

    async def _execute_tool_call(self, tool_call: ToolCall):
        console.info(f"Executing tool '{tool_call.name}' (call {tool_call.id}).")
        try:
            result = await self.registry.execute(tool_call.name, tool_call.arguments)
            content = json.dumps(result, default=str)
        except Exception as e:
            console.error(f"Tool '{tool_call.name}' failed: {e}")
            content = f"Error: {e}"
        self._append(Message(role="tool", content=content, tool_call_id=tool_call.id))

    # --- Failure handling ---

    def _discard_empty_placeholder(self):
        if not self.history:
            return
        last = self.history[-1]
        if last.role == "assistant" and not last.content and not last.tool_calls:
            self.history.pop()
            self._notify()
            self._saver.schedule()

    def _answer_unanswered_calls(self, reason: Union[str, Exception]):
        """Gives every delivered tool call without a result an error result, so the history stays replayable."""
        answered = {message.tool_call_id for message in self.history if message.role == "tool"}
        pending = [
            call
            for message in self.history if message.role == "assistant"
            for call in (message.tool_calls or []) if call.id not in answered
        ]
        for call in pending:
            self._append(Message(role="tool", content=f"Error: {reason}", tool_call_id=call.id))

    def _fail(self, error: Exception):
        self.state = AgentState.FAILED
        message = str(error) or "Unknown error occurred"
        console.display_error_panel(f"{self.provider.name} turn failed", message)
        self._discard_empty_placeholder()
        self._answer_unanswered_calls(error)
        self._append(Message(role="assistant", content=f"\n\n*Error: {message}*"))

    async def _handle_provider_error(self, error: ProviderError):
        console.error(f"AI Error from {error.provider or self.provider.name}: {error}")
        if self.provider.supports_fallback and error.is_auth_failure and has_fallback(self.settings):
            await self._fall_back()
            return
        self._fail(error)

    async def _fall_back(self):
        """Switches to the built-in provider and retries the turn once, keeping the conversation."""
        failed_name = self.provider.name
        self._discard_empty_placeholder()
        self._answer_unanswered_calls(f"{failed_name} failed before the tool ran.")
        await self._credentials.delete(OPENAI_KEY)
        await self._credentials.delete(AZURE_ENDPOINT)
        self._use(build_default_provider(self.settings, self.registry))
        self._install_instructions()
        console.warning(f"{failed_name} authentication failed; falling back to {self.provider.name}.")
        self._append(Message(
            role="system",
            notice=True,
            content=f"{failed_name} authentication failed. Switching to default {self.provider.name}...",
        ))
        try:
            await self._run_loop()
        except Exception as e:
            console.exception(f"Retry with {self.provider.name} failed.")
            self._fail(e)
