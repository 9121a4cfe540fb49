# A tool to create, overwrite or append to a text file in the workspace.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.1.0

from pydantic import BaseModel, Field
from typing import Type
from .base_tool import BaseTool, ToolResult
from hopcoder.core.errors import FileMissing, OverwriteRefused
from hopcoder.utils.logger import console
from hopcoder.utils.paths import utf8_length


class FsWriteInput(BaseModel):
    """Input model for the fs.write tool."""
    path: str = Field(..., description="Workspace-relative path of the file to write.")
    content: str = Field(..., description="Text to write.")
    create_if_missing: bool = Field(default=True, description="Create the file when it does not exist.")
    append: bool = Field(default=False, description="Append to the existing content instead of replacing it.")
    overwrite: bool = Field(default=True, description="Allow replacing an existing file when not appending.")


class FsWriteTool(BaseTool):
    """
    Writes text into a workspace file and reports the UTF-8 size of the final content.
    """
    name: str = "fs.write"
    description: str = "Create or update a text file in the workspace."
    args_schema: Type[BaseModel] = FsWriteInput

    async def run(self, params: FsWriteInput) -> ToolResult:
        workspace = self.context.workspace
        abs_path = workspace.resolve(params.path)
        console.info(f"Executing tool '{self.name}' on '{params.path}' (append={params.append})")

        # Existence is checked apart from readability; a binary file still exists.
        exists = await workspace.stat(abs_path) is not None

        if params.append:
            if not exists and not params.create_if_missing:
                raise FileMissing("Cannot append because the file does not exist.")
            existing = await workspace.read_text(abs_path) if exists else ""
            final_content = existing + params.content
        else:
            if exists and not params.overwrite:
                raise OverwriteRefused("File exists and overwrite is false.")
            if not exists and not params.create_if_missing:
                raise FileMissing("File does not exist and create_if_missing is false.")
            final_content = params.content

        await workspace.write_text(abs_path, final_content)
        bytes_written = utf8_length(final_content)
        console.success(f"Wrote {bytes_written} bytes to '{params.path}'.")
        return {"ok": True, "bytes_written": bytes_written}
