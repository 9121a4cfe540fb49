# Keeps the name-keyed directory of tools the assistant may invoke.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 2.0.0

import pkgutil
import inspect
from types import ModuleType
from typing import Any, Dict, List, Optional, TYPE_CHECKING
from hopcoder.core.errors import ToolNotFound
from hopcoder.tools.base_tool import BaseTool
from hopcoder.utils.logger import console

if TYPE_CHECKING:
    from hopcoder.tools.base_tool import ToolContext


class ToolRegistry:
    """
    A directory of tools keyed by name.

    Registration is last-write-wins: registering a tool under an existing
    name replaces the previous entry. Each conversation host builds its own
    registry; nothing here is global.
    """
    def __init__(self):
        self.tools: Dict[str, BaseTool] = {}

    def register(self, tool: BaseTool):
        if tool.name in self.tools:
            console.debug(f"Replacing registered tool: '{tool.name}'")
        self.tools[tool.name] = tool

    def get(self, tool_name: str) -> Optional[BaseTool]:
        return self.tools.get(tool_name)

    def get_all(self) -> List[BaseTool]:
        return list(self.tools.values())

    def get_definitions(self) -> List[Dict[str, Any]]:
        """Returns the list of all tool definitions for the LLM."""
        return [tool.get_definition() for tool in self.tools.values()]

    async def execute(self, tool_name: str, args: Optional[Dict[str, Any]] = None) -> Any:
        """
        Executes a tool by its name.

        Raises:
            ToolNotFound: If no tool is registered under ``tool_name``. Providers
                can hallucinate names, so callers are expected to catch this.
        """
        tool = self.tools.get(tool_name)
        if tool is None:
            console.error(f"Attempted to execute unknown tool: {tool_name}")
            raise ToolNotFound(tool_name)
        return await tool.execute(args or {})

    def discover(self, package: ModuleType, context: "ToolContext") -> int:
        """
        Scans a package, imports all modules, finds classes that inherit from
        BaseTool, and registers an instance of each bound to ``context``.
        Returns the number of tools registered.
        """
        count = 0
        for _, modname, _ in pkgutil.iter_modules(package.__path__, f"{package.__name__}."):
            if modname.startswith(f"{package.__name__}.base_tool"):
                continue
            try:
                module = __import__(modname, fromlist="dummy")
            except ImportError as e:
                console.error(f"Failed to import tool module {modname}: {e}")
                continue
            for _, obj in inspect.getmembers(module, inspect.isclass):
                if issubclass(obj, BaseTool) and not inspect.isabstract(obj) and obj.__module__ == modname:
                    self.register(obj(context))
                    count += 1
        return count


def register_workspace_tools(registry: ToolRegistry, context: "ToolContext") -> ToolRegistry:
    """Registers every tool shipped in ``hopcoder.tools`` against ``context``."""
    from hopcoder import tools as tools_package

    count = registry.discover(tools_package, context)
    console.success(f"Tool discovery complete. Registered {count} tools: {sorted(registry.tools)}")
    return registry
