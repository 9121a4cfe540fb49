# An offline provider that needs no network and no credentials.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.1.0

import asyncio
import re
import time
from typing import List, Optional

from hopcoder.models.common import Message, ToolCall
from hopcoder.services.providers.base import ChunkCallback, LLMProvider, ToolCallCallback

# Phrases the mock turns into tool calls; order matters for matching.
COMMAND_PATTERNS = [
    (re.compile(r"^read\s+(.+)$", re.IGNORECASE), "fs.read", "Reading file"),
    (re.compile(r"^list\s+(.+)$", re.IGNORECASE), "fs.list", "Listing directory"),
    (re.compile(r"^run\s+(.+)$", re.IGNORECASE), "terminal.run", "Running command"),
    (re.compile(r"^write\s+(\S+)\s+(.+)$", re.IGNORECASE | re.DOTALL), "fs.write", "Writing to file"),
]

USAGE_LINES = {
    "fs.read": "- read <path> (maps to fs.read)",
    "fs.list": "- list <path> (maps to fs.list)",
    "terminal.run": "- run <command> (maps to terminal.run)",
    "fs.write": "- write <path> <content> (maps to fs.write)",
}

RESULT_PREVIEW_CHARS = 200


class MockProvider(LLMProvider):
    """
    Deterministic local provider.

    Simple imperative phrases in the last user message become tool calls;
    a tool result is summarized; anything else is echoed back word by word
    with simulated latency.
    """
    name = "Mock AI (Local)"

    def __init__(self, registry=None, delay: float = 0.05):
        super().__init__(registry)
        self.delay = delay

    async def stream(self, history: List[Message], on_chunk: ChunkCallback,
                     on_tool_call: ToolCallCallback) -> None:
        last = next((m for m in reversed(history) if not m.notice), None)
        if last is None:
            return

        if last.role == "user":
            call = self.parse_command(last.content)
            if call is not None:
                on_chunk(f"{call[0]}: {call[1].arguments.get('path') or call[1].arguments.get('command')}...\n")
                on_tool_call(call[1])
                return

        if last.role == "tool":
            preview = last.content[:RESULT_PREVIEW_CHARS]
            ellipsis = "..." if len(last.content) > RESULT_PREVIEW_CHARS else ""
            on_chunk(f"Tool execution completed.\nResult: {preview}{ellipsis}")
            return

        reply = f'[Mock AI] I received your message: "{last.content}". I am a placeholder for the real HopCoder AI.'
        for word in reply.split(" "):
            await asyncio.sleep(self.delay)
            on_chunk(word + " ")

    @staticmethod
    def parse_command(text: str) -> Optional[tuple]:
        """Returns ``(verb, ToolCall)`` for a recognized command, else None."""
        text = text.strip()
        for pattern, tool_name, verb in COMMAND_PATTERNS:
            match = pattern.match(text)
            if not match:
                continue
            if tool_name == "terminal.run":
                arguments = {"command": match.group(1)}
            elif tool_name == "fs.write":
                arguments = {"path": match.group(1), "content": match.group(2)}
            else:
                arguments = {"path": match.group(1)}
            call_id = f"call_{int(time.time() * 1000)}"
            return verb, ToolCall(id=call_id, name=tool_name, arguments=arguments)
        return None


def build_mock_instructions(registry) -> str:
    """Lists the live registry so the mock system message never drifts from it."""
    tools = registry.get_all() if registry is not None else []
    tool_help = "\n".join(f"- {tool.name}: {tool.description}" for tool in tools)
    names = {tool.name for tool in tools}
    usage = "\n".join(line for name, line in USAGE_LINES.items() if name in names)
    return (
        "You are HopCoder AI (Mock Mode).\n"
        "Available commands:\n"
        f"{tool_help}\n\n"
        f"Usage:\n{usage}"
    )
