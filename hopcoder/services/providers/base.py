# The module defines the streaming contract shared by every chat backend.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.1.0

import json
import re
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

from hopcoder.core.errors import ProviderError
from hopcoder.models.common import Message, ToolCall, new_tool_call_id

if TYPE_CHECKING:
    from hopcoder.core.tool_registry import ToolRegistry

ChunkCallback = Callable[[str], None]
ToolCallCallback = Callable[[ToolCall], None]

_WIRE_NAME_INVALID = re.compile(r"[^a-zA-Z0-9_-]")


class LLMProvider(ABC):
    """
    A chat backend behind one streaming contract.

    ``stream`` delivers text fragments through ``on_chunk`` in arrival order
    and each tool call through ``on_tool_call`` exactly once, after its name
    and arguments are complete. Backend failures raise ProviderError.
    Attributes:
        name (str): Display name.
        supports_fallback (bool): An auth failure on this provider may switch
            the conversation to the configured fallback provider.
    """
    name: str = "provider"
    supports_fallback: bool = False

    def __init__(self, registry: Optional["ToolRegistry"] = None):
        self.registry = registry

    @abstractmethod
    async def stream(self, history: List[Message], on_chunk: ChunkCallback,
                     on_tool_call: ToolCallCallback) -> None:
        pass

    def error(self, message: str, status_code: Optional[int] = None) -> ProviderError:
        return ProviderError(message, provider=self.name, status_code=status_code)


def split_instructions(history: List[Message]):
    """Separates the instruction slot from the turns sent as conversation."""
    system = next((m for m in history if m.is_instructions), None)
    turns = [m for m in history if m.role != "system"]
    return system, turns


# --- OpenAI chat-completions wire format, shared by the OpenAI and Azure adapters ---

def wire_tool_name(name: str) -> str:
    """OpenAI function names only allow [a-zA-Z0-9_-]; 'fs.read' goes out as 'fs_read'."""
    return _WIRE_NAME_INVALID.sub("_", name)


class OpenAIToolCodec:
    """Translates registry tools and history to OpenAI chat-completions payloads."""

    def __init__(self, registry: Optional["ToolRegistry"]):
        self._tools = registry.get_all() if registry is not None else []
        self._names = {wire_tool_name(tool.name): tool.name for tool in self._tools}

    def tools(self) -> Optional[List[Dict[str, Any]]]:
        if not self._tools:
            return None
        return [
            {
                "type": "function",
                "function": {
                    "name": wire_tool_name(tool.name),
                    "description": tool.description,
                    "parameters": tool.parameter_schema,
                },
            }
            for tool in self._tools
        ]

    def tool_name(self, wire_name: str) -> str:
        return self._names.get(wire_name, wire_name)

    def messages(self, history: List[Message]) -> List[Dict[str, Any]]:
        system, turns = split_instructions(history)
        payload: List[Dict[str, Any]] = []
        if system is not None:
            payload.append({"role": "system", "content": system.content})
        for message in turns:
            if message.role == "tool":
                payload.append({"role": "tool", "tool_call_id": message.tool_call_id, "content": message.content})
            elif message.role == "assistant" and message.tool_calls:
                payload.append({
                    "role": "assistant",
                    "content": message.content or None,
                    "tool_calls": [self._encode_call(call) for call in message.tool_calls],
                })
            else:
                payload.append({"role": message.role, "content": message.content})
        return payload

    @staticmethod
    def _encode_call(call: ToolCall) -> Dict[str, Any]:
        encoded = call.to_openai()
        encoded["function"]["name"] = wire_tool_name(call.name)
        return encoded


class ToolCallAssembler:
    """
    Collects streamed ``tool_calls`` deltas by index until the backend
    signals completion; only then are arguments parsed and calls released.
    """
    def __init__(self, provider: LLMProvider, codec: OpenAIToolCodec):
        self._provider = provider
        self._codec = codec
        self._pending: Dict[int, Dict[str, Any]] = {}

    def add(self, index: Optional[int], call_id: Optional[str], name: Optional[str], arguments: Optional[str]):
        if index is None:
            # Some servers omit the index and only send the id on the first fragment.
            index = len(self._pending) - 1 if not call_id and self._pending else len(self._pending)
        slot = self._pending.setdefault(index, {"id": None, "name": "", "arguments": ""})
        if call_id:
            slot["id"] = call_id
        if name:
            slot["name"] += name
        if arguments:
            slot["arguments"] += arguments

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    def release(self) -> List[ToolCall]:
        calls = []
        for index in sorted(self._pending):
            slot = self._pending[index]
            raw_arguments = slot["arguments"].strip() or "{}"
            try:
                arguments = json.loads(raw_arguments)
            except json.JSONDecodeError as e:
                raise self._provider.error(
                    f"{self._provider.name}: failed to parse arguments for tool '{slot['name']}': {e}"
                ) from e
            if not isinstance(arguments, dict):
                raise self._provider.error(
                    f"{self._provider.name}: arguments for tool '{slot['name']}' are not an object"
                )
            calls.append(ToolCall(
                id=slot["id"] or new_tool_call_id(),
                name=self._codec.tool_name(slot["name"]),
                arguments=arguments,
            ))
        self._pending.clear()
        return calls
