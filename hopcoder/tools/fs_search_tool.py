# A tool to search workspace files for a text query.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.1.0

import re
from collections import deque
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional, Pattern, Tuple, Type
from .base_tool import BaseTool, ToolResult, failure
from hopcoder.core.errors import EmptyQuery, SandboxError
from hopcoder.utils.logger import console
from hopcoder.utils.paths import compile_globs, matches_any, passes_include

_LINE_BREAK = re.compile(r"\r?\n")


class FsSearchInput(BaseModel):
    """Input model for the fs.search tool."""
    query: str = Field(..., description="Literal text to search for.")
    path: str = Field(default=".", description="Workspace-relative directory to search under.")
    max_results: int = Field(default=100, description="Stop after this many matches.")
    case_sensitive: bool = Field(default=False, description="Match case exactly.")
    include_globs: Optional[List[str]] = Field(default=None, description="Only search files matching any of these globs, e.g. 'src/**/*.py'.")
    exclude_globs: Optional[List[str]] = Field(default=None, description="Skip files and directories matching any of these globs.")


class FsSearchTool(BaseTool):
    """
    Plain substring search over every text file under ``path``.

    Directories matching an exclude glob are never descended into, files
    holding a NUL byte are treated as binary and skipped, and each
    occurrence on a line is its own match.
    """
    name: str = "fs.search"
    description: str = "Search for a text query in workspace files (optionally filtered by globs)."
    args_schema: Type[BaseModel] = FsSearchInput

    async def run(self, params: FsSearchInput) -> ToolResult:
        if not params.query or not params.query.strip():
            raise EmptyQuery()
        workspace = self.context.workspace
        start = workspace.resolve(params.path)
        console.info(f"Executing tool '{self.name}' for '{params.query}' under '{params.path}'")

        include = compile_globs(params.include_globs)
        exclude = compile_globs(params.exclude_globs)
        limit = max(1, params.max_results)
        needle = params.query if params.case_sensitive else params.query.lower()
        matches: List[Dict[str, Any]] = []

        for abs_path, rel in await self._collect_files(start, exclude):
            if not passes_include(rel, include) or matches_any(rel, exclude):
                continue
            content = await workspace.try_read_text(abs_path)
            if content is None or "\x00" in content:
                continue
            if self._scan(content, rel, needle, params.case_sensitive, matches, limit):
                break

        truncated = len(matches) >= limit
        console.info(f"Search for '{params.query}' found {len(matches)} match(es) (truncated={truncated}).")
        return {"ok": True, "matches": matches, "truncated": truncated}

    async def _collect_files(self, start: str, exclude: Optional[List[Pattern[str]]]) -> List[Tuple[str, str]]:
        workspace = self.context.workspace
        files: List[Tuple[str, str]] = []
        queue = deque([start])
        visited = set()
        while queue:
            current = queue.popleft()
            if current in visited:
                continue
            visited.add(current)
            for entry in await workspace.list_dir(current):
                rel = workspace.to_relative(entry["path"])
                if entry.get("kind") == "dir":
                    if matches_any(rel, exclude):
                        continue
                    queue.append(entry["path"])
                else:
                    files.append((entry["path"], rel))
        return files

    @staticmethod
    def _scan(content: str, rel: str, needle: str, case_sensitive: bool,
              matches: List[Dict[str, Any]], limit: int) -> bool:
        """Appends every occurrence in ``content``; returns True once ``limit`` is reached."""
        for line_idx, line_text in enumerate(_LINE_BREAK.split(content)):
            haystack = line_text if case_sensitive else line_text.lower()
            column = haystack.find(needle)
            while column != -1:
                matches.append({
                    "path": rel,
                    "line": line_idx,
                    "column": column,
                    "preview": line_text.strip(),
                })
                if len(matches) >= limit:
                    return True
                column = haystack.find(needle, column + len(needle))
        return False

    def on_error(self, error: SandboxError) -> ToolResult:
        return failure(error, matches=[])
