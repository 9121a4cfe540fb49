# The module defines the transport that carries workspace operations to the host.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.1.0

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict

from hopcoder.utils.logger import console

WorkspaceOp = Dict[str, Any]
WorkspaceResult = Dict[str, Any]


class WorkspaceTransport(ABC):
    """
    Carries a workspace operation to whatever process owns the disk.

    Operations are plain dicts with a ``type`` key:
        ``fs.read {path}`` -> ``{ok, content}``
        ``fs.write {path, content}`` -> ``{ok}``
        ``fs.stat {path}`` -> ``{ok, exists, kind}``
        ``workspace.list {root}`` -> ``{ok, entries: [{path, kind, size, modified_ms}]}``
        ``workspace.open {root}`` -> ``{ok, workspace_root}``
    Failures come back as ``{"ok": False, "error": str}``; implementations do not raise.
    """

    @abstractmethod
    async def send(self, op: WorkspaceOp) -> WorkspaceResult:
        pass


class LocalWorkspaceTransport(WorkspaceTransport):
    """
    Host-side transport for running the core in the same process as the files.
    Blocking disk calls run in a worker thread so the event loop keeps streaming.
    """

    async def send(self, op: WorkspaceOp) -> WorkspaceResult:
        op_type = op.get("type")
        handler = {
            "fs.read": self._read,
            "fs.write": self._write,
            "fs.stat": self._stat,
            "workspace.list": self._list,
            "workspace.open": self._open,
        }.get(op_type)
        if handler is None:
            return {"ok": False, "error": f"Unsupported workspace operation: {op_type}"}
        try:
            return await asyncio.to_thread(handler, op)
        except (OSError, UnicodeDecodeError) as e:
            console.warning(f"Workspace operation '{op_type}' failed: {e}")
            return {"ok": False, "error": str(e)}

    @staticmethod
    def _read(op: WorkspaceOp) -> WorkspaceResult:
        content = Path(op["path"]).read_text(encoding="utf-8")
        return {"ok": True, "content": content}

    @staticmethod
    def _write(op: WorkspaceOp) -> WorkspaceResult:
        target = Path(op["path"])
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(op["content"], encoding="utf-8")
        return {"ok": True}

    @staticmethod
    def _stat(op: WorkspaceOp) -> WorkspaceResult:
        target = Path(op["path"])
        if target.is_symlink():
            return {"ok": True, "exists": True, "kind": "symlink"}
        if not target.exists():
            return {"ok": True, "exists": False, "kind": None}
        return {"ok": True, "exists": True, "kind": "dir" if target.is_dir() else "file"}

    @staticmethod
    def _list(op: WorkspaceOp) -> WorkspaceResult:
        entries = []
        for child in sorted(Path(op["root"]).iterdir()):
            if child.is_symlink():
                kind = "symlink"
            elif child.is_dir():
                kind = "dir"
            else:
                kind = "file"
            try:
                stat = child.stat()
            except OSError:
                stat = None
            entries.append({
                "path": child.as_posix(),
                "kind": kind,
                "size": stat.st_size if stat is not None and kind == "file" else None,
                "modified_ms": int(stat.st_mtime * 1000) if stat is not None else None,
            })
        return {"ok": True, "entries": entries}

    @staticmethod
    def _open(op: WorkspaceOp) -> WorkspaceResult:
        root = Path(op["root"])
        if not root.is_dir():
            return {"ok": False, "error": "Invalid workspace"}
        return {"ok": True, "workspace_root": root.as_posix()}
