# The module tracks the open workspace and resolves tool paths against it.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.1.0

from typing import Any, Dict, List, Optional

from hopcoder.core.errors import SandboxError, WorkspaceNotOpen
from hopcoder.services.workspace_transport import WorkspaceTransport
from hopcoder.utils.logger import console
from hopcoder.utils.paths import normalize_slashes, sanitize_relative_path


class WorkspaceOpError(SandboxError):
    """The host reported a failed workspace operation."""


class Workspace:
    """
    The single directory every sandboxed tool call is scoped to.

    The root is written only by ``open``/``close``; tools read it on every
    call. All I/O goes through the transport, after path sanitizing.
    """
    def __init__(self, transport: WorkspaceTransport, root: Optional[str] = None):
        self.transport = transport
        self._root: Optional[str] = None
        if root:
            self.set_root(root)

    @property
    def root(self) -> Optional[str]:
        return self._root

    @property
    def is_open(self) -> bool:
        return self._root is not None

    def set_root(self, root: Optional[str]):
        self._root = root if root and root.strip() else None

    async def open(self, root: str) -> str:
        """Validates ``root`` with the host and makes it the workspace root."""
        response = await self.transport.send({"type": "workspace.open", "root": root})
        if not response.get("ok"):
            raise WorkspaceOpError(response.get("error") or "Invalid workspace")
        self.set_root(response.get("workspace_root") or root)
        console.info(f"Workspace opened at '{self._root}'.")
        return self._root

    def close(self):
        console.info(f"Workspace '{self._root}' closed.")
        self._root = None

    def _normalized_root(self) -> str:
        if not self._root:
            raise WorkspaceNotOpen()
        return normalize_slashes(self._root).rstrip("/") or "/"

    def resolve(self, rel_path: str) -> str:
        """
        Maps a workspace-relative path to an absolute host path.

        Raises:
            PathEscapeError: Before any I/O, if the path could leave the root.
            WorkspaceNotOpen: If no workspace is open.
        """
        sanitized = sanitize_relative_path(rel_path)
        root = self._normalized_root()
        if not sanitized:
            return root
        return f"{root.rstrip('/')}/{sanitized}"

    def to_relative(self, abs_path: str) -> str:
        root = self._normalized_root()
        normalized = normalize_slashes(abs_path)
        if normalized == root:
            return "."
        prefix = root.rstrip("/") + "/"
        if normalized.startswith(prefix):
            return normalized[len(prefix):]
        return normalized

    # --- Transport primitives used by the tools ---

    async def read_text(self, abs_path: str) -> str:
        response = await self.transport.send({"type": "fs.read", "path": abs_path})
        if not response.get("ok") or not isinstance(response.get("content"), str):
            raise WorkspaceOpError(response.get("error") or "Unable to read file.")
        return response["content"]

    async def try_read_text(self, abs_path: str) -> Optional[str]:
        try:
            return await self.read_text(abs_path)
        except WorkspaceOpError:
            return None

    async def write_text(self, abs_path: str, content: str):
        response = await self.transport.send({"type": "fs.write", "path": abs_path, "content": content})
        if not response.get("ok"):
            raise WorkspaceOpError(response.get("error") or "Failed to write file.")

    async def stat(self, abs_path: str) -> Optional[str]:
        """Returns the entry kind ("file", "dir", "symlink") or None when nothing is there."""
        response = await self.transport.send({"type": "fs.stat", "path": abs_path})
        if not response.get("ok"):
            raise WorkspaceOpError(response.get("error") or "Unable to inspect path.")
        return response.get("kind") if response.get("exists") else None

    async def list_dir(self, abs_path: str) -> List[Dict[str, Any]]:
        response = await self.transport.send({"type": "workspace.list", "root": abs_path})
        if not response.get("ok") or response.get("entries") is None:
            raise WorkspaceOpError(response.get("error") or "Failed to list directory.")
        return response["entries"]
