# The module is to define the configuration settings for the agent core.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.2.0

from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional

class Settings(BaseSettings):
    """
    The Settings class is used to define the configuration settings for the agent core.
    It inherits from BaseSettings, which loads environment variables (and an optional
    .env file) and provides type validation for the settings.
    Attributes:
        OPENAI_MODEL (str): Model name used when an OpenAI key is stored.
        OPENAI_BASE_URL (str): Optional base URL for OpenAI-compatible servers.
        HOPCODER_AI_KEY (str): Built-in Gemini key; also the auth fallback provider.
        GEMINI_MODEL (str): Model name for Gemini.
        GEMINI_BASE_URL (str): Base URL for the Gemini REST API.
        PROVIDER_TIMEOUT (float): Seconds before a provider request is abandoned.
        MOCK_STREAM_DELAY (float): Simulated latency between mock provider chunks.
        REDIS_URL (str): Redis connection URL. In-memory stores are used when unset.
        SESSION_TTL (int): Seconds persisted history and credentials are kept.
        PERSIST_INTERVAL (float): Coalescing window for history saves.
        MAX_TOOL_ROUNDS (int): Tool rounds allowed per user message.
        MAX_SESSIONS (int): Idle sessions kept in memory before the oldest is evicted.
        WORKSPACE_ROOT (str): Workspace opened at startup, if any.
        LOG_LEVEL (str): Level for the HopCoder logger.
    """
    # OpenAI
    OPENAI_MODEL: str = "gpt-4-turbo-preview"
    OPENAI_BASE_URL: Optional[str] = None

    # Gemini (built-in HopCoder AI key)
    HOPCODER_AI_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.0-flash"
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"

    # Provider behaviour
    PROVIDER_TIMEOUT: float = 120.0
    MOCK_STREAM_DELAY: float = 0.05

    # REDIS
    REDIS_URL: Optional[str] = None
    SESSION_TTL: int = 86400

    # Conversation loop
    PERSIST_INTERVAL: float = 1.0
    MAX_TOOL_ROUNDS: int = 25
    MAX_SESSIONS: int = 256

    # Workspace
    WORKSPACE_ROOT: Optional[str] = None

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = 'utf-8'
        extra = "ignore"

# lru_cache to cache the settings instance.
@lru_cache
def get_settings():
    return Settings()
