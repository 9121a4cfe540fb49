# Tools that let the assistant remember project facts between sessions.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.1.0

from pydantic import BaseModel, Field
from typing import Optional, Type
from .base_tool import BaseTool, ToolResult
from hopcoder.core.errors import PersistenceError, SandboxError, WorkspaceNotOpen
from hopcoder.utils.logger import console


class MemoryUnavailable(SandboxError):
    def __init__(self, reason: str = "Project memory is not configured."):
        super().__init__(reason)


class MemorySaveInput(BaseModel):
    """Input model for the memory.save tool."""
    key: str = Field(..., description="Short name of the fact, e.g. 'test_command' or 'style'.")
    value: str = Field(..., description="The fact to remember, as plain text.")
    ttl_seconds: Optional[int] = Field(default=None, description="Forget the fact after this many seconds.")


class MemoryLoadInput(BaseModel):
    """Input model for the memory.load tool."""
    key: Optional[str] = Field(default=None, description="Only return facts stored under this key.")


class _ProjectMemoryTool(BaseTool):
    """Shared plumbing: the open workspace root is the project id."""

    def _project_id(self) -> str:
        root = self.context.workspace.root
        if not root:
            raise WorkspaceNotOpen()
        return root

    def _store(self):
        if self.context.memory_store is None:
            raise MemoryUnavailable()
        return self.context.memory_store


class MemorySaveTool(_ProjectMemoryTool):
    name: str = "memory.save"
    description: str = "Store a project-level fact (stack, conventions, constraints) for later sessions."
    args_schema: Type[BaseModel] = MemorySaveInput

    async def run(self, params: MemorySaveInput) -> ToolResult:
        store = self._store()
        project_id = self._project_id()
        try:
            item_id = await store.save(project_id, params.key, params.value, params.ttl_seconds)
        except PersistenceError as e:
            raise MemoryUnavailable(str(e)) from e
        console.info(f"Remembered '{params.key}' for project '{project_id}'.")
        return {"ok": True, "id": item_id}


class MemoryLoadTool(_ProjectMemoryTool):
    name: str = "memory.load"
    description: str = "Retrieve the project-level facts stored with memory.save."
    args_schema: Type[BaseModel] = MemoryLoadInput

    async def run(self, params: MemoryLoadInput) -> ToolResult:
        store = self._store()
        try:
            items = await store.load(self._project_id())
        except PersistenceError as e:
            raise MemoryUnavailable(str(e)) from e
        if params.key is not None:
            items = [item for item in items if item.key == params.key]
        return {
            "ok": True,
            "items": [{"key": item.key, "value": item.value, "created_at": item.created_at} for item in items],
        }
