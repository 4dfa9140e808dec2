"""
Unit tests for module name resolution.

Module names are derived purely from paths: no directory walking, no file
contents.
"""

from pathlib import Path

import pytest

from runner.discovery.module_names import (
    candidate_module_name,
    is_upper_name,
    resolve_module_names,
)

ROOT = Path("/project")
TESTS = ROOT / "tests"
SRC = ROOT / "src"


class TestCandidateModuleName:
    """Test suite for a single (file, source directory) pair."""

    def test_top_level_file(self):
        """A file directly in the source directory maps to its stem."""
        assert candidate_module_name(TESTS / "ExampleTest.elm", TESTS) == "ExampleTest"

    def test_nested_file(self):
        """Nested directories become dotted segments."""
        path = TESTS / "Foo" / "Bar" / "BazTest.elm"
        assert candidate_module_name(path, TESTS) == "Foo.Bar.BazTest"

    def test_not_under_source_dir(self):
        """A source directory that is not a prefix yields nothing."""
        assert candidate_module_name(SRC / "Main.elm", TESTS) is None

    def test_prefix_must_be_a_whole_path_component(self):
        """``/project/tests`` is not a prefix of ``/project/tests-extra``."""
        path = ROOT / "tests-extra" / "ExampleTest.elm"
        assert candidate_module_name(path, TESTS) is None

    def test_source_dir_itself_is_not_a_file(self):
        """The source directory is not a strict prefix of itself."""
        assert candidate_module_name(TESTS, TESTS) is None

    def test_lowercase_segment_is_rejected(self):
        """Every segment must start with an upper-case letter."""
        path = TESTS / "helpers" / "Fixtures.elm"
        assert candidate_module_name(path, TESTS) is None

    @pytest.mark.parametrize(
        "segment, expected",
        [
            ("Example", True),
            ("Example_2", True),
            ("E", True),
            ("example", False),
            ("2Example", False),
            ("Ex-ample", False),
            ("", False),
        ],
    )
    def test_is_upper_name(self, segment, expected):
        """Module segments are capitalised identifiers."""
        assert is_upper_name(segment) is expected


class TestResolveModuleNames:
    """Test suite for building the module name table."""

    def test_single_file(self):
        """Scenario: one test file in tests/."""
        table = resolve_module_names([TESTS / "ExampleTest.elm"], [SRC, TESTS])
        assert table == {"ExampleTest": TESTS / "ExampleTest.elm"}

    def test_file_matching_no_source_dir_is_skipped(self):
        """Files outside every source directory do not appear."""
        table = resolve_module_names([ROOT / "other" / "Thing.elm"], [SRC, TESTS])
        assert table == {}

    def test_overlapping_source_dirs_keep_every_candidate(self):
        """Nested source directories give one file several candidate names."""
        path = TESTS / "Unit" / "ParserTest.elm"
        table = resolve_module_names([path], [TESTS, TESTS / "Unit"])
        assert table == {"Unit.ParserTest": path, "ParserTest": path}

    def test_ambiguous_names_are_dropped(self, caplog):
        """Two files producing the same name are both invalidated, with a warning."""
        first = SRC / "Shared" / "HelperTest.elm"
        second = TESTS / "HelperTest.elm"
        other = TESTS / "OtherTest.elm"

        table = resolve_module_names(
            [first, second, other], [SRC / "Shared", TESTS]
        )

        assert table == {"OtherTest": other}
        assert "HelperTest" in caplog.text

    def test_duplicate_input_files_are_not_ambiguous(self):
        """The same file listed twice is still a single module."""
        path = TESTS / "ExampleTest.elm"
        table = resolve_module_names([path, path], [TESTS, TESTS])
        assert table == {"ExampleTest": path}

    def test_no_files(self):
        """An empty file list yields an empty table."""
        assert resolve_module_names([], [TESTS]) == {}
