# Streaming adapter for the Gemini streamGenerateContent API.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.1.0

import json
from typing import Any, Dict, List, Optional

import httpx

from hopcoder.models.common import Message, ToolCall, new_tool_call_id
from hopcoder.services.providers.base import (
    ChunkCallback,
    LLMProvider,
    ToolCallCallback,
    split_instructions,
)
from hopcoder.utils.logger import console

# Gemini's function declaration schema rejects these JSON-schema keywords.
UNSUPPORTED_SCHEMA_KEYS = ("additionalProperties", "title", "default", "$defs")


def clean_schema(schema: Any) -> Any:
    """
    Rewrites a JSON schema into the subset Gemini accepts: unsupported keys are
    dropped and ``anyOf: [X, {"type": "null"}]`` (pydantic's Optional) becomes X.
    """
    if isinstance(schema, list):
        return [clean_schema(item) for item in schema]
    if not isinstance(schema, dict):
        return schema

    options = schema.get("anyOf")
    if isinstance(options, list):
        non_null = [option for option in options if option.get("type") != "null"]
        if len(non_null) == 1:
            merged = {key: value for key, value in schema.items() if key != "anyOf"}
            merged.update(non_null[0])
            return clean_schema(merged)

    cleaned = {}
    for key, value in schema.items():
        if key in UNSUPPORTED_SCHEMA_KEYS:
            continue
        if key == "properties" and isinstance(value, dict):
            cleaned[key] = {name: clean_schema(prop) for name, prop in value.items()}
        elif key in ("items", "anyOf"):
            cleaned[key] = clean_schema(value)
        else:
            cleaned[key] = value
    return cleaned


class JsonObjectFramer:
    """
    Splits a streamed JSON array into its top-level objects as soon as each
    one closes, tracking string and escape state across network reads.
    """
    def __init__(self):
        self._buffer = ""
        self._scanned = 0
        self._depth = 0
        self._start = 0
        self._in_string = False
        self._escaped = False

    @property
    def incomplete(self) -> bool:
        return self._depth > 0

    def feed(self, text: str) -> List[str]:
        self._buffer += text
        objects: List[str] = []
        i = self._scanned
        while i < len(self._buffer):
            ch = self._buffer[i]
            if self._in_string:
                if self._escaped:
                    self._escaped = False
                elif ch == "\\":
                    self._escaped = True
                elif ch == '"':
                    self._in_string = False
            elif ch == '"':
                self._in_string = True
            elif ch == "{":
                if self._depth == 0:
                    self._start = i
                self._depth += 1
            elif ch == "}":
                if self._depth == 0:
                    raise ValueError(f"unbalanced '}}' at offset {i}")
                self._depth -= 1
                if self._depth == 0:
                    objects.append(self._buffer[self._start:i + 1])
                    self._buffer = self._buffer[i + 1:]
                    i = 0
                    continue
            i += 1
        if self._depth == 0 and not self._in_string:
            # Only array punctuation and whitespace can be left over.
            self._buffer = ""
            i = 0
        self._scanned = i
        return objects


class GeminiProvider(LLMProvider):
    """
    The built-in HopCoder AI backend. Also the fallback target when a
    credentialed agent backend rejects its key.
    """
    name = "HopCoder AI"

    def __init__(self, api_key: str, model: str = "gemini-2.0-flash", registry=None,
                 base_url: str = "https://generativelanguage.googleapis.com/v1beta",
                 timeout: float = 120.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(registry)
        self.model = model
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def build_request(self, history: List[Message]) -> Dict[str, Any]:
        system, turns = split_instructions(history)
        call_names = {}
        contents = []
        for message in turns:
            if message.role == "tool":
                contents.append({
                    "role": "user",
                    "parts": [{
                        "functionResponse": {
                            "name": call_names.get(message.tool_call_id, message.tool_call_id or "tool"),
                            "response": {"result": message.content},
                        }
                    }],
                })
                continue

            parts: List[Dict[str, Any]] = []
            if message.content:
                parts.append({"text": message.content})
            for call in message.tool_calls or []:
                call_names[call.id] = call.name
                parts.append({"functionCall": {"name": call.name, "args": call.arguments}})
            if not parts:
                continue
            contents.append({"role": "model" if message.role == "assistant" else "user", "parts": parts})

        body: Dict[str, Any] = {
            "contents": contents,
            "generationConfig": {"temperature": 0.7, "maxOutputTokens": 8192},
        }
        if system is not None:
            body["systemInstruction"] = {"parts": [{"text": system.content}]}

        tools = self.registry.get_all() if self.registry is not None else []
        if tools:
            body["tools"] = [{
                "functionDeclarations": [
                    {"name": tool.name, "description": tool.description, "parameters": clean_schema(tool.parameter_schema)}
                    for tool in tools
                ]
            }]
        return body

    async def stream(self, history: List[Message], on_chunk: ChunkCallback,
                     on_tool_call: ToolCallCallback) -> None:
        url = f"{self._base_url}/models/{self.model}:streamGenerateContent"
        body = self.build_request(history)
        framer = JsonObjectFramer()
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                async with client.stream("POST", url, params={"key": self._api_key}, json=body) as response:
                    if response.status_code >= 400:
                        detail = (await response.aread()).decode("utf-8", errors="replace")
                        console.error(f"Gemini returned {response.status_code}: {detail[:300]}")
                        raise self.error(f"Gemini API Error ({response.status_code}): {detail}", response.status_code)
                    async for text in response.aiter_text():
                        try:
                            frames = framer.feed(text)
                        except ValueError as e:
                            raise self.error(f"Gemini stream is malformed: {e}") from e
                        for frame in frames:
                            self._process_frame(frame, on_chunk, on_tool_call)
        except httpx.HTTPError as e:
            console.error(f"Gemini request failed: {e}")
            raise self.error(f"Gemini request failed: {e}") from e

        if framer.incomplete:
            raise self.error("Gemini stream ended in the middle of a response object.")

    def _process_frame(self, frame: str, on_chunk: ChunkCallback, on_tool_call: ToolCallCallback):
        try:
            chunk = json.loads(frame)
        except json.JSONDecodeError as e:
            raise self.error(f"Gemini stream is malformed: {e}") from e

        if "error" in chunk:
            error = chunk["error"] or {}
            raise self.error(f"Gemini API Error ({error.get('code')}): {error.get('message')}", error.get("code"))

        candidates = chunk.get("candidates") or []
        if not candidates:
            return
        for part in (candidates[0].get("content") or {}).get("parts") or []:
            if part.get("text"):
                on_chunk(part["text"])
            function_call = part.get("functionCall")
            if function_call:
                # Gemini sends calls whole and without ids.
                on_tool_call(ToolCall(
                    id=new_tool_call_id(),
                    name=function_call.get("name", ""),
                    arguments=function_call.get("args") or {},
                ))
