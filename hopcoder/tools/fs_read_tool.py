# A tool to read a UTF-8 file from the open workspace.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.1.0

from pydantic import BaseModel, Field
from typing import Optional, Type
from .base_tool import BaseTool, ToolResult
from hopcoder.utils.logger import console
from hopcoder.utils.paths import truncate_utf8


class FsReadInput(BaseModel):
    """Input model for the fs.read tool."""
    path: str = Field(..., description="Workspace-relative path of the file to read, e.g. 'src/main.py'.")
    max_bytes: Optional[int] = Field(default=None, description="Upper bound on returned UTF-8 bytes. Content is cut on a character boundary.")


class FsReadTool(BaseTool):
    """
    Reads a text file. With ``max_bytes`` the content is cut to the longest
    prefix of whole characters that fits and ``truncated`` is reported.
    """
    name: str = "fs.read"
    description: str = "Read a UTF-8 file from the workspace (project root-relative)."
    args_schema: Type[BaseModel] = FsReadInput

    async def run(self, params: FsReadInput) -> ToolResult:
        workspace = self.context.workspace
        abs_path = workspace.resolve(params.path)
        console.info(f"Executing tool '{self.name}' on '{params.path}'")
        content = await workspace.read_text(abs_path)
        if params.max_bytes is not None and params.max_bytes > 0:
            content, truncated = truncate_utf8(content, params.max_bytes)
            return {"ok": True, "content": content, "truncated": truncated}
        return {"ok": True, "content": content, "truncated": False}
