# A tool to list workspace directory entries breadth-first.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.1.0

from collections import deque
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional, Type
from .base_tool import BaseTool, ToolResult, failure
from hopcoder.core.errors import SandboxError
from hopcoder.utils.logger import console
from hopcoder.utils.paths import base_name, is_hidden_path


class FsListInput(BaseModel):
    """Input model for the fs.list tool."""
    path: str = Field(default=".", description="Workspace-relative directory to list. Use '.' for the root.")
    recursive: bool = Field(default=False, description="Descend into subdirectories (breadth-first).")
    max_entries: Optional[int] = Field(default=None, description="Stop after this many entries.")
    include_hidden: bool = Field(default=False, description="Include entries whose path has a segment starting with '.'.")


class FsListTool(BaseTool):
    name: str = "fs.list"
    description: str = "List files and folders under a workspace path."
    args_schema: Type[BaseModel] = FsListInput

    async def run(self, params: FsListInput) -> ToolResult:
        workspace = self.context.workspace
        start = workspace.resolve(params.path)
        console.info(f"Executing tool '{self.name}' on '{params.path}' (recursive={params.recursive})")

        limit = params.max_entries if params.max_entries and params.max_entries > 0 else None
        queue = deque([start])
        entries: List[Dict[str, Any]] = []
        truncated = False

        while queue and not truncated:
            current = queue.popleft()
            for entry in await workspace.list_dir(current):
                rel = workspace.to_relative(entry["path"])
                if not params.include_hidden and is_hidden_path(rel):
                    continue
                kind = entry.get("kind", "file")
                entries.append({
                    "path": rel,
                    "name": base_name(rel),
                    "type": kind,
                    "size": entry.get("size") if kind == "file" else None,
                    "modified_ms": entry.get("modified_ms"),
                })
                if limit is not None and len(entries) >= limit:
                    truncated = True
                    break
                if params.recursive and kind == "dir":
                    queue.append(entry["path"])

        return {"ok": True, "entries": entries, "truncated": truncated}

    def on_error(self, error: SandboxError) -> ToolResult:
        return failure(error, entries=[])
