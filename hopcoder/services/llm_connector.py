# hopcoder/services/llm_connector.py
# Chooses the chat backend for a conversation and the instructions that go with it.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.2.0

from dataclasses import dataclass
from typing import TYPE_CHECKING

from hopcoder.core.config import Settings
from hopcoder.services.credentials import AZURE_ENDPOINT, OPENAI_KEY, CredentialStore
from hopcoder.services.providers.azure_agent_provider import AzureAgentProvider
from hopcoder.services.providers.base import LLMProvider
from hopcoder.services.providers.gemini_provider import GeminiProvider
from hopcoder.services.providers.mock_provider import MockProvider, build_mock_instructions
from hopcoder.services.providers.openai_provider import OpenAIProvider
from hopcoder.utils.logger import console

if TYPE_CHECKING:
    from hopcoder.core.tool_registry import ToolRegistry

HOPCODER_INSTRUCTIONS = """You are **HopCoder AI**, the built-in AI engine of the HopCoder IDE and CLI.

You are a code-first, project-aware development agent with direct access to the user's workspace via tools.

GENERAL BEHAVIOR
- Prefer tools over speculation: if you can read or search the project, do that.
- Before large changes, propose a concrete plan and mention which tools you will use.
- For write/refactor operations, produce patch-style diffs or clearly separated BEFORE/AFTER snippets.
- Never silently perform destructive actions; explain and ask for confirmation.
- If a tool fails, show the error, explain what probably went wrong, and propose fix steps.

TOOLS
- fs.read / fs.write / fs.list / fs.search operate on workspace-relative paths (e.g. "src/main.py").
  Paths outside the workspace are refused.
- memory.save / memory.load keep project-level facts (stack, conventions, constraints) across sessions.

Call one tool at a time, read its result, then continue. Always mention which tools you used.
Assume the user wants concrete, production-ready help on their real codebase."""

OPENAI_INSTRUCTIONS = "You are HopCoder AI, connected to OpenAI.\n\n" + HOPCODER_INSTRUCTIONS


@dataclass
class ProviderChoice:
    provider: LLMProvider
    instructions: str


def build_default_provider(settings: Settings, registry: "ToolRegistry") -> ProviderChoice:
    """The built-in Gemini backend when a HopCoder key is configured, else the offline mock."""
    if settings.HOPCODER_AI_KEY:
        provider = GeminiProvider(
            settings.HOPCODER_AI_KEY,
            model=settings.GEMINI_MODEL,
            registry=registry,
            base_url=settings.GEMINI_BASE_URL,
            timeout=settings.PROVIDER_TIMEOUT,
        )
        return ProviderChoice(provider, HOPCODER_INSTRUCTIONS)
    provider = MockProvider(registry=registry, delay=settings.MOCK_STREAM_DELAY)
    return ProviderChoice(provider, build_mock_instructions(registry))


def build_openai_provider(settings: Settings, registry: "ToolRegistry", api_key: str) -> ProviderChoice:
    provider = OpenAIProvider(
        api_key,
        model=settings.OPENAI_MODEL,
        registry=registry,
        base_url=settings.OPENAI_BASE_URL,
        timeout=settings.PROVIDER_TIMEOUT,
    )
    return ProviderChoice(provider, OPENAI_INSTRUCTIONS)


def build_azure_provider(settings: Settings, registry: "ToolRegistry", endpoint: str, api_key: str) -> ProviderChoice:
    provider = AzureAgentProvider(endpoint, api_key, registry=registry, timeout=settings.PROVIDER_TIMEOUT)
    return ProviderChoice(provider, HOPCODER_INSTRUCTIONS)


def has_fallback(settings: Settings) -> bool:
    return bool(settings.HOPCODER_AI_KEY)


async def select_provider(settings: Settings, credentials: CredentialStore, registry: "ToolRegistry") -> ProviderChoice:
    """
    Acts as a factory for the provider a conversation starts with.

    Stored Azure endpoint + key wins, then a stored OpenAI key, then the
    built-in default (Gemini or the offline mock).
    """
    api_key = await credentials.get(OPENAI_KEY)
    endpoint = await credentials.get(AZURE_ENDPOINT)

    if endpoint and api_key:
        choice = build_azure_provider(settings, registry, endpoint, api_key)
    elif api_key:
        choice = build_openai_provider(settings, registry, api_key)
    else:
        choice = build_default_provider(settings, registry)
    console.info(f"Selected provider: {choice.provider.name}")
    return choice
