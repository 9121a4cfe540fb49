# Streaming adapter for an Azure AI agent / Azure OpenAI deployment endpoint.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.1.0

import json
from typing import Any, Dict, List, Optional

import httpx

from hopcoder.models.common import Message
from hopcoder.services.providers.base import (
    ChunkCallback,
    LLMProvider,
    OpenAIToolCodec,
    ToolCallAssembler,
    ToolCallCallback,
)
from hopcoder.utils.logger import console

SSE_DATA_PREFIX = "data:"
SSE_DONE = "[DONE]"


class AzureAgentProvider(LLMProvider):
    """
    Posts OpenAI-shaped requests to a user-supplied endpoint (``api-key``
    header) and parses the server-sent events it streams back.

    This is the credentialed agent backend: an authentication failure here
    may fall back to the built-in provider.
    """
    name = "Azure AI Agent"
    supports_fallback = True

    def __init__(self, endpoint: str, api_key: str, registry=None, timeout: float = 120.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(registry)
        self.endpoint = endpoint
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    async def stream(self, history: List[Message], on_chunk: ChunkCallback,
                     on_tool_call: ToolCallCallback) -> None:
        codec = OpenAIToolCodec(self.registry)
        body: Dict[str, Any] = {"messages": codec.messages(history), "stream": True}
        tools = codec.tools()
        if tools:
            body["tools"] = tools

        headers = {"Content-Type": "application/json", "api-key": self._api_key}
        assembler = ToolCallAssembler(self, codec)
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                async with client.stream("POST", self.endpoint, json=body, headers=headers) as response:
                    if response.status_code >= 400:
                        detail = (await response.aread()).decode("utf-8", errors="replace")
                        console.error(f"Azure agent returned {response.status_code}: {detail[:300]}")
                        raise self.error(
                            f"Azure Agent API Error ({response.status_code}): {detail}",
                            response.status_code,
                        )
                    async for line in response.aiter_lines():
                        payload = self._event_data(line)
                        if payload is None:
                            continue
                        if payload == SSE_DONE:
                            break
                        self._handle_event(payload, assembler, on_chunk, on_tool_call)
        except httpx.HTTPError as e:
            console.error(f"Azure agent request failed: {e}")
            raise self.error(f"Azure Agent request failed: {e}") from e

        if assembler.has_pending:
            for call in assembler.release():
                on_tool_call(call)

    @staticmethod
    def _event_data(line: str) -> Optional[str]:
        line = line.strip()
        if not line.startswith(SSE_DATA_PREFIX):
            return None
        return line[len(SSE_DATA_PREFIX):].strip()

    def _handle_event(self, payload: str, assembler: ToolCallAssembler,
                      on_chunk: ChunkCallback, on_tool_call: ToolCallCallback):
        try:
            event = json.loads(payload)
        except json.JSONDecodeError as e:
            raise self.error(f"Azure Agent stream is malformed: {e}") from e

        # Content-filter preambles arrive with an empty choices list.
        choices = event.get("choices") or []
        if not choices:
            return
        choice = choices[0]
        delta = choice.get("delta") or {}
        if delta.get("content"):
            on_chunk(delta["content"])
        for fragment in delta.get("tool_calls") or []:
            function = fragment.get("function") or {}
            assembler.add(fragment.get("index"), fragment.get("id"), function.get("name"), function.get("arguments"))
        if choice.get("finish_reason") and assembler.has_pending:
            for call in assembler.release():
                on_tool_call(call)
