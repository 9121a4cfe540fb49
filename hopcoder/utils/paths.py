# Path, glob and text helpers shared by the workspace sandbox tools.
# Author: HopCoder Team
# Date: 2025-11-02
# Version: 0.1.0

import re
from typing import List, Optional, Pattern, Tuple

from hopcoder.core.errors import PathEscapeError

_ABSOLUTE_PREFIX = re.compile(r"^(?:[a-zA-Z]:|[/\\])")


def normalize_slashes(value: str) -> str:
    return value.replace("\\", "/")


def sanitize_relative_path(raw_path: str) -> str:
    """
    Normalizes a workspace-relative path to ``a/b/c`` form.

    Returns an empty string for the workspace root itself (``""`` or ``"."``).

    Raises:
        PathEscapeError: If the path is absolute (drive letter, leading slash,
            UNC prefix) or contains a ``..`` segment.
    """
    trimmed = (raw_path or "").strip()
    if not trimmed or trimmed == ".":
        return ""
    if _ABSOLUTE_PREFIX.match(trimmed):
        raise PathEscapeError('Paths must be workspace-relative (e.g. "src/main.py").')
    normalized = re.sub(r"^\./+", "", normalize_slashes(trimmed))
    segments = [segment for segment in normalized.split("/") if segment]
    if ".." in segments:
        raise PathEscapeError('Path traversal ("..") is not allowed.')
    return "/".join(segments)


def is_hidden_path(rel_path: str) -> bool:
    normalized = normalize_slashes(rel_path)
    if not normalized or normalized == ".":
        return False
    return any(segment.startswith(".") for segment in normalized.split("/") if segment)


def base_name(rel_path: str) -> str:
    normalized = normalize_slashes(rel_path).rstrip("/")
    if not normalized or normalized == ".":
        return "."
    return normalized.rsplit("/", 1)[-1]


def utf8_length(text: str) -> int:
    return len(text.encode("utf-8"))


def truncate_utf8(text: str, max_bytes: int) -> Tuple[str, bool]:
    """
    Cuts ``text`` to at most ``max_bytes`` UTF-8 bytes without splitting a character.
    Returns the kept text and whether anything was dropped.
    """
    if max_bytes <= 0:
        return "", bool(text)
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text, False
    # A partial trailing sequence is the only invalid UTF-8 a slice of valid text can hold.
    return encoded[:max_bytes].decode("utf-8", errors="ignore"), True


def glob_to_regex(glob: str) -> Pattern[str]:
    """
    Compiles a workspace glob.

    ``*`` matches within one path segment, ``**`` matches across segments and
    ``?`` matches a single non-separator character. The match is anchored.
    """
    pattern = normalize_slashes(glob.strip())
    if not pattern:
        return re.compile(r"^$")
    parts = ["^"]
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "*":
            if i + 1 < len(pattern) and pattern[i + 1] == "*":
                parts.append(".*")
                i += 1
            else:
                parts.append("[^/]*")
        elif ch == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(ch))
        i += 1
    parts.append("$")
    return re.compile("".join(parts))


def compile_globs(globs: Optional[List[str]]) -> Optional[List[Pattern[str]]]:
    if not globs:
        return None
    return [glob_to_regex(glob) for glob in globs]


def matches_any(rel_path: str, matchers: Optional[List[Pattern[str]]]) -> bool:
    if not matchers:
        return False
    normalized = normalize_slashes(rel_path)
    return any(matcher.match(normalized) for matcher in matchers)


def passes_include(rel_path: str, matchers: Optional[List[Pattern[str]]]) -> bool:
    """Include globs are OR'd; no include globs means everything passes."""
    if not matchers:
        return True
    return matches_any(rel_path, matchers)
