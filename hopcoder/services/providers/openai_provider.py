# Streaming adapter for the OpenAI chat-completions API.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.1.0

from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, APIError, APIStatusError

from hopcoder.models.common import Message
from hopcoder.services.providers.base import (
    ChunkCallback,
    LLMProvider,
    OpenAIToolCodec,
    ToolCallAssembler,
    ToolCallCallback,
)
from hopcoder.utils.logger import console


def describe_api_error(e: APIError) -> str:
    message = str(e.body) if e.body is not None else (e.message or 'Unknown API Error')
    if isinstance(e.body, dict):
        message = e.body.get('message', message)
    return message


class OpenAIProvider(LLMProvider):
    """
    Streams completions through the official async SDK and reassembles
    ``tool_calls`` deltas before handing them to the orchestrator.
    """
    name = "OpenAI (GPT-4)"

    def __init__(self, api_key: str, model: str = "gpt-4-turbo-preview", registry=None,
                 base_url: Optional[str] = None, timeout: float = 120.0,
                 client: Optional[AsyncOpenAI] = None):
        super().__init__(registry)
        self.model = model
        self._client = client or AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    async def stream(self, history: List[Message], on_chunk: ChunkCallback,
                     on_tool_call: ToolCallCallback) -> None:
        codec = OpenAIToolCodec(self.registry)
        request_params: Dict[str, Any] = {
            "model": self.model,
            "messages": codec.messages(history),
            "stream": True,
        }
        tools = codec.tools()
        if tools:
            request_params["tools"] = tools
            request_params["tool_choice"] = "auto"

        assembler = ToolCallAssembler(self, codec)
        try:
            response = await self._client.chat.completions.create(**request_params)
            async for chunk in response:
                if not chunk.choices:
                    continue
                choice = chunk.choices[0]
                delta = choice.delta
                if delta is not None:
                    if delta.content:
                        on_chunk(delta.content)
                    for fragment in delta.tool_calls or []:
                        function = fragment.function
                        assembler.add(
                            fragment.index,
                            fragment.id,
                            function.name if function else None,
                            function.arguments if function else None,
                        )
                if choice.finish_reason and assembler.has_pending:
                    for call in assembler.release():
                        on_tool_call(call)
        except APIStatusError as e:
            message = describe_api_error(e)
            console.error(f"An API error occurred ({e.status_code}): {message}")
            raise self.error(f"OpenAI API Error ({e.status_code}): {message}", e.status_code) from e
        except APIError as e:
            message = describe_api_error(e)
            console.error(f"An API error occurred: {message}")
            raise self.error(f"OpenAI API Error: {message}") from e

        if assembler.has_pending:
            for call in assembler.release():
                on_tool_call(call)
