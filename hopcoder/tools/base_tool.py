# The module is to define the base class for all workspace tools.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.2.0

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pydantic import BaseModel, ValidationError
from typing import Any, Dict, Optional, Type, TYPE_CHECKING
from hopcoder.core.errors import SandboxError
from hopcoder.utils.logger import console

if TYPE_CHECKING:
    from hopcoder.services.memory_store import MemoryStore
    from hopcoder.services.workspace import Workspace

ToolResult = Dict[str, Any]


@dataclass
class ToolContext:
    """What a tool instance is bound to when it is registered."""
    workspace: "Workspace"
    memory_store: Optional["MemoryStore"] = None


def failure(error: Any, **extra: Any) -> ToolResult:
    return {"ok": False, **extra, "error": str(error)}


class BaseTool(ABC):
    """
    Abstract Base Class for all tools.

    This class defines a standard interface that all tools must implement.
    Attributes:
        name (str): The unique name of the tool, used as the registry key.
        description (str): A brief description of what the tool does.
        args_schema (Type[BaseModel]): A Pydantic model defining the arguments
            that the tool accepts. It doubles as the advertised JSON schema.
    """
    name: str
    description: str
    args_schema: Type[BaseModel]

    def __init__(self, context: ToolContext):
        self.context = context

    @property
    def parameter_schema(self) -> Dict[str, Any]:
        return self.args_schema.model_json_schema()

    async def execute(self, args: Dict[str, Any]) -> ToolResult:
        """
        Validates ``args`` and runs the tool.

        Sandbox refusals and invalid arguments come back as
        ``{"ok": False, "error": ...}`` so the assistant can read and recover
        from them; they are never raised.
        """
        try:
            params = self.args_schema.model_validate(args)
        except ValidationError as e:
            console.warning(f"Invalid arguments for tool '{self.name}': {e.error_count()} error(s)")
            return failure(f"Invalid arguments for '{self.name}': {e}")
        try:
            return await self.run(params)
        except SandboxError as e:
            console.warning(f"Tool '{self.name}' refused: {e}")
            return self.on_error(e)

    def on_error(self, error: SandboxError) -> ToolResult:
        return failure(error)

    @abstractmethod
    async def run(self, params: BaseModel) -> ToolResult:
        """
        The core logic of the tool. This method must be implemented by all subclasses.

        Args:
            params: The validated arguments, an instance of ``args_schema``.

        Returns:
            A dict starting with ``ok``. Raise a SandboxError to refuse.
        """
        pass

    def get_definition(self) -> Dict[str, Any]:
        """
        Returns the tool's definition in a format compliant with OpenAI's
        function-calling format. This method is inherited by all tools.
        """
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameter_schema
            }
        }
