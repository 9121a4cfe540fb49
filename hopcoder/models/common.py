# The module is to define the common models for the agent core.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.2.0

import json
import time
from uuid import uuid4
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional, Literal

Role = Literal["system", "user",
               "assistant", "tool"]


def new_tool_call_id() -> str:
    """Synthesizes a tool call id for backends that do not assign one."""
    return f"call_{uuid4().hex[:24]}"


class ToolCall(BaseModel):
    """
    Represents a fully assembled tool call requested by the assistant.
    Attributes:
        id (str): Provider-assigned (or synthesized) id, stable until answered.
        name (str): The registered name of the tool to invoke.
        arguments (dict): Parsed call arguments.
    """
    id: str = Field(..., description="The unique ID for the tool call.")
    name: str = Field(..., description="The name of the tool to call.")
    arguments: Dict[str, Any] = Field(default_factory=dict, description="The parsed call arguments.")

    def to_openai(self) -> Dict[str, Any]:
        """Returns the call in OpenAI chat-completions wire format."""
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": json.dumps(self.arguments)},
        }


class Message(BaseModel):
    """
    Represents a message in the conversation, which can be from the system, user, assistant, or tool.
    Attributes:
        role (Role): The role of the message sender (system, user, assistant, or tool).
        content (str): The text of the message. Grows in place while an assistant reply streams.
        timestamp (float): Creation time, seconds since the epoch.
        tool_calls (Optional[List[ToolCall]]): Completed tool calls requested by the assistant.
        tool_call_id (Optional[str]): The ID of the tool call this message is a result of.
        notice (bool): True for status notices; these are never sent to a provider.
    """
    role: Role = Field(..., description="The role of the message sender.")
    content: str = Field(default="", description="The content of the message.")
    timestamp: float = Field(default_factory=time.time, description="Creation time in seconds since the epoch.")
    tool_calls: Optional[List[ToolCall]] = Field(default=None, description="A list of tool calls requested by the assistant.")
    tool_call_id: Optional[str] = Field(default=None, description="The ID of the tool call this message is a result of.")
    notice: bool = Field(default=False, description="Marks a status notice rather than instructions.")

    @property
    def is_instructions(self) -> bool:
        return self.role == "system" and not self.notice


class Conversation(BaseModel):
    """
    The persisted shape of a conversation session.
    """
    session_id: Optional[str] = None
    messages: List[Message] = Field(default_factory=list, description="The history of messages in the conversation.")
