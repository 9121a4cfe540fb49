# The module is to define the API models for the agent core.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.2.0

from pydantic import BaseModel, Field
from typing import List, Optional
from hopcoder.models.common import Message, ToolCall

class ChatRequest(BaseModel):
    """
    Defines the request body for the /v1/chat endpoint.
    Attributes:
        session_id (str): The unique ID for the conversation session.
        user_input (str): The user's text input to be processed by the chat service.
    """
    session_id: str = Field(..., description="The unique ID for the conversation session.")
    user_input: str = Field(..., description="The user's text input.")

class ChatResponse(BaseModel):
    """
    Defines the response body for the /v1/chat endpoint.
    Attributes:
        session_id (str): The unique ID for the conversation session.
        role (str): The role of the last message, normally 'assistant'.
        content (str): The final assistant text for this exchange.
        tool_calls (List[ToolCall]): Tool calls made while producing the answer.
        provider (str): The provider that produced the answer.
    """
    session_id: str
    role: str
    content: str
    tool_calls: List[ToolCall] = Field(default_factory=list)
    provider: str

class NewSessionResponse(BaseModel):
    """
    Defines the response body for the /v1/session/new endpoint.
    """
    session_id: str
    message: str

class HistoryResponse(BaseModel):
    session_id: str
    provider: str
    state: str
    messages: List[Message]

class AzureAgentRequest(BaseModel):
    session_id: str
    endpoint: str = Field(..., description="Full URL of the agent's streaming chat endpoint.")
    api_key: str

class ApiKeyRequest(BaseModel):
    session_id: str
    api_key: str

class ProviderResponse(BaseModel):
    session_id: str
    provider: str

class WorkspaceOpenRequest(BaseModel):
    root: str = Field(..., description="Absolute path of the directory to open.")

class WorkspaceResponse(BaseModel):
    root: Optional[str] = None
    tools: List[str] = Field(default_factory=list)
