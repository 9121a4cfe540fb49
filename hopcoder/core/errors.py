# The module defines the error taxonomy of the agent core.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.1.0

from typing import Optional


class HopCoderError(Exception):
    """Base class for every error raised by the agent core."""


# --- Sandbox errors: recovered into {"ok": False, "error": ...} by the tools ---

class SandboxError(HopCoderError):
    """A workspace tool refused or failed an operation."""


class PathEscapeError(SandboxError):
    """A tool path is absolute or climbs out of the workspace root."""


class WorkspaceNotOpen(SandboxError):
    def __init__(self):
        super().__init__("Workspace is not open. Please open a workspace first.")


class FileMissing(SandboxError):
    """The target file does not exist and may not be created."""


class OverwriteRefused(SandboxError):
    """The target file exists and overwriting was disabled."""


class EmptyQuery(SandboxError):
    def __init__(self):
        super().__init__("Query must not be empty.")


# --- Escalated errors ---

class ToolNotFound(HopCoderError):
    def __init__(self, tool_name: str):
        super().__init__(f"Tool '{tool_name}' not found.")
        self.tool_name = tool_name


AUTH_FAILURE_STATUSES = (401, 403)
AUTH_FAILURE_MARKERS = ("401", "403", "Access denied")


class ProviderError(HopCoderError):
    """
    A chat backend failed: non-success status, transport error or malformed stream.
    Attributes:
        provider (str): Display name of the provider that failed.
        status_code (Optional[int]): HTTP status, when the backend answered.
    """
    def __init__(self, message: str, provider: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code

    @property
    def is_auth_failure(self) -> bool:
        if self.status_code in AUTH_FAILURE_STATUSES:
            return True
        text = str(self)
        return any(marker in text for marker in AUTH_FAILURE_MARKERS)


class PersistenceError(HopCoderError):
    """Saving or loading state failed. Logged, never fatal."""
