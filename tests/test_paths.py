"""
Tests for workspace path sanitizing, UTF-8 truncation and glob compiling.
"""

import pytest

from hopcoder.core.errors import PathEscapeError
from hopcoder.utils.paths import (
    base_name,
    glob_to_regex,
    is_hidden_path,
    passes_include,
    compile_globs,
    sanitize_relative_path,
    truncate_utf8,
)


class TestSanitizeRelativePath:

    @pytest.mark.parametrize("raw", ["", ".", "   ", " . "])
    def test_root_aliases(self, raw):
        assert sanitize_relative_path(raw) == ""

    def test_normalizes_separators_and_leading_dot(self):
        assert sanitize_relative_path("./src\\pkg//mod.py") == "src/pkg/mod.py"

    @pytest.mark.parametrize("raw", [
        "/etc/passwd",
        "C:\\Windows\\system32",
        "c:/temp",
        "\\\\server\\share\\file",
        "\\rooted",
    ])
    def test_absolute_paths_rejected(self, raw):
        with pytest.raises(PathEscapeError):
            sanitize_relative_path(raw)

    @pytest.mark.parametrize("raw", ["..", "../secret", "src/../../etc", "a\\..\\b"])
    def test_parent_segments_rejected(self, raw):
        with pytest.raises(PathEscapeError):
            sanitize_relative_path(raw)

    def test_dots_inside_names_are_fine(self):
        assert sanitize_relative_path("notes..txt") == "notes..txt"


class TestTruncateUtf8:

    def test_fits(self):
        assert truncate_utf8("abc", 10) == ("abc", False)

    def test_never_splits_multibyte_character(self):
        # 'é' is 2 bytes, '€' is 3 bytes
        text = "aé€b"
        for budget in range(0, 8):
            kept, truncated = truncate_utf8(text, budget)
            assert len(kept.encode("utf-8")) <= max(budget, 0)
            assert text.startswith(kept)
            assert truncated == (kept != text)

    def test_budget_inside_character_drops_it(self):
        assert truncate_utf8("a€", 3) == ("a", True)

    def test_zero_budget(self):
        assert truncate_utf8("abc", 0) == ("", True)
        assert truncate_utf8("", 0) == ("", False)


class TestGlobs:

    def test_single_star_stays_in_segment(self):
        pattern = glob_to_regex("src/*.py")
        assert pattern.match("src/main.py")
        assert not pattern.match("src/pkg/main.py")

    def test_double_star_crosses_segments(self):
        pattern = glob_to_regex("src/**.py")
        assert pattern.match("src/pkg/deep/main.py")

    def test_question_mark_is_one_non_separator(self):
        pattern = glob_to_regex("a?c")
        assert pattern.match("abc")
        assert not pattern.match("a/c")
        assert not pattern.match("abbc")

    def test_regex_characters_are_literal(self):
        assert glob_to_regex("file(1).txt").match("file(1).txt")
        assert not glob_to_regex("a.b").match("axb")

    def test_include_without_globs_passes(self):
        assert passes_include("anything", None)
        assert passes_include("x.py", compile_globs(["*.md", "*.py"]))
        assert not passes_include("x.rs", compile_globs(["*.md", "*.py"]))


class TestPathNames:

    def test_hidden(self):
        assert is_hidden_path(".git/config")
        assert is_hidden_path("src/.cache/x")
        assert not is_hidden_path("src/main.py")
        assert not is_hidden_path(".")

    def test_base_name(self):
        assert base_name("src/main.py") == "main.py"
        assert base_name("src/") == "src"
        assert base_name(".") == "."
