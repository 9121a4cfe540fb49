"""
Tests for the provider adapters: the offline mock, OpenAI, Azure agent and Gemini.
Network backends are exercised against in-process fakes (httpx.MockTransport
or a stub SDK client); nothing here talks to the network.
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import openai
import pytest

from hopcoder.core.errors import ProviderError
from hopcoder.models.common import Message, ToolCall
from hopcoder.services.providers.azure_agent_provider import AzureAgentProvider
from hopcoder.services.providers.base import ToolCallAssembler, OpenAIToolCodec, wire_tool_name
from hopcoder.services.providers.gemini_provider import GeminiProvider, JsonObjectFramer, clean_schema
from hopcoder.services.providers.mock_provider import MockProvider, build_mock_instructions
from hopcoder.services.providers.openai_provider import OpenAIProvider


class Collector:
    """Records what a provider delivers through its callbacks."""

    def __init__(self):
        self.chunks = []
        self.calls = []

    def on_chunk(self, chunk):
        self.chunks.append(chunk)

    def on_tool_call(self, call):
        self.calls.append(call)

    @property
    def text(self):
        return "".join(self.chunks)


def _history(*messages):
    return [Message(role="system", content="Be helpful.")] + list(messages)


# --- Mock provider ---

class TestMockProvider:

    @pytest.mark.parametrize("text, name, arguments", [
        ("read src/main.py", "fs.read", {"path": "src/main.py"}),
        ("LIST .", "fs.list", {"path": "."}),
        ("run npm test", "terminal.run", {"command": "npm test"}),
        ("write notes.txt hello\nworld", "fs.write", {"path": "notes.txt", "content": "hello\nworld"}),
    ])
    def test_parse_command(self, text, name, arguments):
        _, call = MockProvider.parse_command(text)

        assert call.name == name
        assert call.arguments == arguments
        assert call.id.startswith("call_")

    def test_plain_text_is_not_a_command(self):
        assert MockProvider.parse_command("please explain this repo") is None

    @pytest.mark.asyncio
    async def test_command_yields_one_tool_call(self):
        collector = Collector()

        await MockProvider(delay=0).stream(
            _history(Message(role="user", content="read hello.txt")), collector.on_chunk, collector.on_tool_call
        )

        assert collector.text == "Reading file: hello.txt...\n"
        assert [call.name for call in collector.calls] == ["fs.read"]

    @pytest.mark.asyncio
    async def test_summarizes_tool_result(self):
        collector = Collector()
        long_result = "x" * 300

        await MockProvider(delay=0).stream(
            _history(Message(role="tool", content=long_result, tool_call_id="call_1")),
            collector.on_chunk, collector.on_tool_call,
        )

        assert collector.text == "Tool execution completed.\nResult: " + "x" * 200 + "..."
        assert collector.calls == []

    @pytest.mark.asyncio
    async def test_echoes_in_several_chunks(self):
        collector = Collector()

        await MockProvider(delay=0).stream(
            _history(Message(role="user", content="hi there")), collector.on_chunk, collector.on_tool_call
        )

        assert len(collector.chunks) > 1
        assert 'I received your message: "hi there"' in collector.text
        assert collector.calls == []

    def test_instructions_list_live_tools(self, registry):
        instructions = build_mock_instructions(registry)

        for tool in registry.get_all():
            assert f"- {tool.name}:" in instructions
        assert "read <path>" in instructions

    def test_instructions_omit_unregistered_tools(self, registry):
        instructions = build_mock_instructions(registry)

        assert registry.get("terminal.run") is None
        assert "terminal.run" not in instructions
        assert "run <command>" not in instructions
        assert "write <path> <content>" in instructions


# --- Shared OpenAI wire helpers ---

class TestOpenAIWire:

    def test_wire_names(self):
        assert wire_tool_name("fs.read") == "fs_read"
        assert wire_tool_name("memory-save_2") == "memory-save_2"

    def test_messages_put_instructions_first_and_skip_notices(self, registry):
        call = ToolCall(id="call_1", name="fs.read", arguments={"path": "a.txt"})
        history = [
            Message(role="system", content="Be helpful."),
            Message(role="user", content="read a.txt"),
            Message(role="assistant", content="", tool_calls=[call]),
            Message(role="tool", content='{"ok": true}', tool_call_id="call_1"),
            Message(role="system", content="Switched.", notice=True),
        ]

        payload = OpenAIToolCodec(registry).messages(history)

        assert [m["role"] for m in payload] == ["system", "user", "assistant", "tool"]
        assert payload[2]["content"] is None
        assert payload[2]["tool_calls"][0]["function"] == {"name": "fs_read", "arguments": '{"path": "a.txt"}'}
        assert payload[3]["tool_call_id"] == "call_1"

    def test_assembler_joins_fragments(self, registry):
        provider = MockProvider()
        assembler = ToolCallAssembler(provider, OpenAIToolCodec(registry))
        assembler.add(0, "call_9", "fs_", '{"pa')
        assembler.add(0, None, "read", 'th": "a.txt"}')

        [call] = assembler.release()

        assert call == ToolCall(id="call_9", name="fs.read", arguments={"path": "a.txt"})
        assert not assembler.has_pending

    def test_assembler_rejects_bad_arguments(self, registry):
        assembler = ToolCallAssembler(MockProvider(), OpenAIToolCodec(registry))
        assembler.add(0, "call_1", "fs_read", '{"path": ')

        with pytest.raises(ProviderError):
            assembler.release()


# --- OpenAI ---

def _openai_chunk(content=None, tool_calls=None, finish_reason=None):
    delta = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta, finish_reason=finish_reason)])


def _openai_fragment(index, call_id=None, name=None, arguments=None):
    return SimpleNamespace(index=index, id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


def _fake_openai_client(chunks=None, error=None):
    async def stream():
        for chunk in chunks or []:
            yield chunk

    create = AsyncMock(side_effect=error) if error is not None else AsyncMock(return_value=stream())
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


class TestOpenAIProvider:

    @pytest.mark.asyncio
    async def test_streams_text_and_assembled_tool_call(self, registry):
        client = _fake_openai_client([
            _openai_chunk(content="Let me "),
            _openai_chunk(content="look."),
            SimpleNamespace(choices=[]),
            _openai_chunk(tool_calls=[_openai_fragment(0, "call_abc", "fs_read", '{"path":')]),
            _openai_chunk(tool_calls=[_openai_fragment(0, arguments=' "hello.txt"}')]),
            _openai_chunk(finish_reason="tool_calls"),
        ])
        provider = OpenAIProvider("sk-test", registry=registry, client=client)
        collector = Collector()

        await provider.stream(_history(Message(role="user", content="hi")), collector.on_chunk, collector.on_tool_call)

        assert collector.chunks == ["Let me ", "look."]
        assert collector.calls == [ToolCall(id="call_abc", name="fs.read", arguments={"path": "hello.txt"})]

        request = client.chat.completions.create.call_args.kwargs
        assert request["stream"] is True
        assert request["tool_choice"] == "auto"
        assert request["messages"][0] == {"role": "system", "content": "Be helpful."}
        assert "fs_read" in [tool["function"]["name"] for tool in request["tools"]]

    @pytest.mark.asyncio
    async def test_call_released_at_stream_end_without_finish_reason(self, registry):
        client = _fake_openai_client([_openai_chunk(tool_calls=[_openai_fragment(0, "call_1", "fs_list", "{}")])])
        collector = Collector()

        await OpenAIProvider("sk-test", registry=registry, client=client).stream(
            _history(Message(role="user", content="hi")), collector.on_chunk, collector.on_tool_call
        )

        assert [call.name for call in collector.calls] == ["fs.list"]

    @pytest.mark.asyncio
    async def test_authentication_error_carries_status(self, registry):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        error = openai.AuthenticationError(
            "Incorrect API key provided",
            response=httpx.Response(401, request=request),
            body={"message": "Incorrect API key provided"},
        )
        provider = OpenAIProvider("sk-bad", registry=registry, client=_fake_openai_client(error=error))

        with pytest.raises(ProviderError) as excinfo:
            await provider.stream(_history(Message(role="user", content="hi")), lambda c: None, lambda c: None)

        assert excinfo.value.status_code == 401
        assert excinfo.value.is_auth_failure
        assert "Incorrect API key provided" in str(excinfo.value)


# --- Azure agent ---

def _sse(*events):
    lines = [f"data: {json.dumps(event)}" if not isinstance(event, str) else f"data: {event}" for event in events]
    return ("\n\n".join(lines) + "\n\n").encode("utf-8")


class TestAzureAgentProvider:

    @pytest.mark.asyncio
    async def test_streams_events(self, registry):
        seen = {}

        def handler(request):
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            body = _sse(
                {"choices": [], "prompt_filter_results": []},
                {"choices": [{"delta": {"content": "Hello"}}]},
                {"choices": [{"delta": {"content": " there"}}]},
                {"choices": [{"delta": {"tool_calls": [
                    {"index": 0, "id": "call_az", "function": {"name": "fs_search", "arguments": '{"query"'}}
                ]}}]},
                {"choices": [{"delta": {"tool_calls": [
                    {"index": 0, "function": {"arguments": ': "foo"}'}}
                ]}, "finish_reason": "tool_calls"}]},
                "[DONE]",
            )
            return httpx.Response(200, content=body, headers={"content-type": "text/event-stream"})

        provider = AzureAgentProvider(
            "https://agent.example.com/chat", "az-key", registry=registry, transport=httpx.MockTransport(handler)
        )
        collector = Collector()

        await provider.stream(_history(Message(role="user", content="find foo")), collector.on_chunk, collector.on_tool_call)

        assert collector.text == "Hello there"
        assert collector.calls == [ToolCall(id="call_az", name="fs.search", arguments={"query": "foo"})]
        assert seen["headers"]["api-key"] == "az-key"
        assert seen["body"]["stream"] is True
        assert seen["body"]["messages"][0]["role"] == "system"

    @pytest.mark.asyncio
    async def test_unauthorized(self, registry):
        transport = httpx.MockTransport(lambda request: httpx.Response(401, text="Access denied due to invalid key"))
        provider = AzureAgentProvider("https://agent.example.com/chat", "bad", registry=registry, transport=transport)

        with pytest.raises(ProviderError) as excinfo:
            await provider.stream(_history(Message(role="user", content="hi")), lambda c: None, lambda c: None)

        assert excinfo.value.status_code == 401
        assert excinfo.value.is_auth_failure
        assert str(excinfo.value).startswith("Azure Agent API Error (401)")

    @pytest.mark.asyncio
    async def test_malformed_event(self, registry):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"data: {not json\n\n"))
        provider = AzureAgentProvider("https://agent.example.com/chat", "key", registry=registry, transport=transport)

        with pytest.raises(ProviderError) as excinfo:
            await provider.stream(_history(Message(role="user", content="hi")), lambda c: None, lambda c: None)

        assert not excinfo.value.is_auth_failure


# --- Gemini ---

class TestJsonObjectFramer:

    def test_frames_objects_split_across_reads(self):
        framer = JsonObjectFramer()

        assert framer.feed('[{"text": "a\\') == []
        assert framer.incomplete
        assert framer.feed('"b}"}') == ['{"text": "a\\"b}"}']
        assert framer.feed(',\r\n{"n": {"m": 1}}') == ['{"n": {"m": 1}}']
        assert framer.feed("]") == []
        assert not framer.incomplete

    def test_unbalanced_brace(self):
        with pytest.raises(ValueError):
            JsonObjectFramer().feed("}")


class TestCleanSchema:

    def test_strips_unsupported_keys_and_optional_wrappers(self, registry):
        schema = clean_schema(registry.get("fs.read").parameter_schema)

        assert "title" not in schema
        assert schema["required"] == ["path"]
        max_bytes = schema["properties"]["max_bytes"]
        assert max_bytes["type"] == "integer"
        assert "anyOf" not in max_bytes
        assert "default" not in max_bytes
        assert "title" not in max_bytes


def _gemini_body(*frames):
    return ("[" + ",\r\n".join(json.dumps(frame) for frame in frames) + "]").encode("utf-8")


class TestGeminiProvider:

    def test_build_request(self, registry):
        call = ToolCall(id="call_1", name="fs.read", arguments={"path": "a.txt"})
        history = [
            Message(role="system", content="Be helpful."),
            Message(role="user", content="read a.txt"),
            Message(role="assistant", content="", tool_calls=[call]),
            Message(role="tool", content='{"ok": true}', tool_call_id="call_1"),
        ]

        body = GeminiProvider("key", registry=registry).build_request(history)

        assert body["systemInstruction"] == {"parts": [{"text": "Be helpful."}]}
        assert [content["role"] for content in body["contents"]] == ["user", "model", "user"]
        assert body["contents"][1]["parts"] == [{"functionCall": {"name": "fs.read", "args": {"path": "a.txt"}}}]
        assert body["contents"][2]["parts"][0]["functionResponse"] == {
            "name": "fs.read", "response": {"result": '{"ok": true}'},
        }
        declarations = body["tools"][0]["functionDeclarations"]
        assert "fs.search" in [declaration["name"] for declaration in declarations]

    @pytest.mark.asyncio
    async def test_streams_text_and_function_call(self, registry):
        seen = {}

        def handler(request):
            seen["url"] = request.url
            return httpx.Response(200, content=_gemini_body(
                {"candidates": [{"content": {"role": "model", "parts": [{"text": "Hel"}]}}]},
                {"candidates": [{"content": {"role": "model", "parts": [
                    {"text": "lo"},
                    {"functionCall": {"name": "fs.list", "args": {"path": "."}}},
                ]}}]},
            ))

        provider = GeminiProvider("gm-key", registry=registry, transport=httpx.MockTransport(handler))
        collector = Collector()

        await provider.stream(_history(Message(role="user", content="list")), collector.on_chunk, collector.on_tool_call)

        assert collector.text == "Hello"
        [call] = collector.calls
        assert call.name == "fs.list"
        assert call.arguments == {"path": "."}
        assert call.id.startswith("call_")
        assert seen["url"].path.endswith("/models/gemini-2.0-flash:streamGenerateContent")
        assert seen["url"].params["key"] == "gm-key"

    @pytest.mark.asyncio
    async def test_error_frame(self, registry):
        transport = httpx.MockTransport(lambda request: httpx.Response(
            200, content=_gemini_body({"error": {"code": 403, "message": "API key not valid"}})
        ))

        with pytest.raises(ProviderError) as excinfo:
            await GeminiProvider("bad", registry=registry, transport=transport).stream(
                _history(Message(role="user", content="hi")), lambda c: None, lambda c: None
            )

        assert excinfo.value.status_code == 403
        assert excinfo.value.is_auth_failure

    @pytest.mark.asyncio
    async def test_truncated_stream(self, registry):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b'[{"candidates": [{"content"'))

        with pytest.raises(ProviderError, match="middle of a response"):
            await GeminiProvider("key", registry=registry, transport=transport).stream(
                _history(Message(role="user", content="hi")), lambda c: None, lambda c: None
            )

    @pytest.mark.asyncio
    async def test_http_status_error(self, registry):
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="backend exploded"))

        with pytest.raises(ProviderError) as excinfo:
            await GeminiProvider("key", registry=registry, transport=transport).stream(
                _history(Message(role="user", content="hi")), lambda c: None, lambda c: None
            )

        assert excinfo.value.status_code == 500
        assert not excinfo.value.is_auth_failure
