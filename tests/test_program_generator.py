"""
Unit tests for the generated runner program.
"""

import re

import pytest

from runner.discovery.program_generator import (
    ProgramGenerator,
    elm_string,
    render_body,
    report_code,
)
from shared.discovery_types import ReportFormat, RunOptions

OPTIONS = RunOptions(fuzz=100, seed=42, processes=4, paths=("tests",))


class TestRenderBody:
    """Test suite for the program body."""

    def test_single_module(self):
        """Scenario: one import and one group referencing ``ExampleTest.suite``."""
        body = render_body({"ExampleTest": ["suite"]}, OPTIONS)

        assert body.count("import ExampleTest\n") == 1
        assert 'Test.describe "ExampleTest"' in body
        assert "ExampleTest.suite" in body
        assert "|> Test.concat" in body

    def test_modules_and_tests_are_sorted(self):
        """Input order does not change the output."""
        first = render_body({"B": ["y", "x"], "A": ["a"]}, OPTIONS)
        second = render_body({"A": ["a"], "B": ["x", "y"]}, OPTIONS)
        assert first == second
        assert first.index("import A") < first.index("import B")
        assert first.index("B.x") < first.index("B.y")

    def test_options_are_embedded(self):
        """Run options appear as a record literal."""
        body = render_body({"ExampleTest": ["suite"]}, OPTIONS)
        assert "runs = (Just 100)" in body
        assert "seed = (Just 42)" in body
        assert "processes = 4" in body
        assert 'paths = ["tests"]' in body
        assert "report = (ConsoleReport Monochrome)" in body

    def test_missing_options_are_nothing(self):
        """Unset fuzz and seed become ``Nothing``."""
        body = render_body({"ExampleTest": ["suite"]}, RunOptions())
        assert "runs = Nothing" in body
        assert "seed = Nothing" in body
        assert "paths = []" in body

    @pytest.mark.parametrize(
        "report, use_color, expected",
        [
            (ReportFormat.CONSOLE, True, "(ConsoleReport UseColor)"),
            (ReportFormat.CONSOLE, False, "(ConsoleReport Monochrome)"),
            (ReportFormat.JSON, True, "JsonReport"),
            (ReportFormat.JUNIT, False, "JUnitReport"),
        ],
    )
    def test_report_code(self, report, use_color, expected):
        """Each report format maps to its Elm constructor."""
        assert report_code(report, use_color) == expected

    def test_elm_string_escapes(self):
        """Quotes and backslashes are escaped in string literals."""
        assert elm_string('a "b" \\c') == '"a \\"b\\" \\\\c"'

    def test_elm_string_control_characters(self):
        """Control characters use Elm escape sequences."""
        assert elm_string("a\nb\tc\r") == '"a\\nb\\tc\\r"'
        assert elm_string("x\x01y\x7f") == '"x\\u{0001}y\\u{007F}"'

    def test_elm_string_keeps_non_ascii(self):
        """Non-ASCII characters are written as-is."""
        assert elm_string("tests/Ünïcode.elm") == '"tests/Ünïcode.elm"'


class TestProgramGenerator:
    """Test suite for the content-addressed program."""

    def test_module_name_embeds_hash(self):
        """The module lives in ``Test.Generated`` and is named after its hash."""
        program = ProgramGenerator().generate({"ExampleTest": ["suite"]}, OPTIONS)

        assert re.fullmatch(r"Test\.Generated\.Main[0-9a-f]{16}", program.module_name)
        assert program.source.startswith(f"module {program.module_name} exposing (main)\n")

    def test_deterministic(self):
        """Identical inputs produce byte-identical programs."""
        generator = ProgramGenerator()
        first = generator.generate({"B": {"y", "x"}, "A": {"a"}}, OPTIONS)
        second = generator.generate({"A": ["a"], "B": ["x", "y"]}, OPTIONS)
        assert first == second

    def test_different_tests_change_name(self):
        """A different test set yields a different module name."""
        generator = ProgramGenerator()
        first = generator.generate({"ExampleTest": ["suite"]}, OPTIONS)
        second = generator.generate({"ExampleTest": ["suite", "more"]}, OPTIONS)
        assert first.module_name != second.module_name

    def test_different_options_change_name(self):
        """Run options are part of the hashed content."""
        generator = ProgramGenerator()
        first = generator.generate({"ExampleTest": ["suite"]}, OPTIONS)
        second = generator.generate({"ExampleTest": ["suite"]}, RunOptions(seed=1))
        assert first.module_name != second.module_name

    def test_seed_changes_name(self):
        """The hash seed is configurable."""
        first = ProgramGenerator(hash_seed=1).generate({"ExampleTest": ["suite"]}, OPTIONS)
        second = ProgramGenerator(hash_seed=2).generate({"ExampleTest": ["suite"]}, OPTIONS)
        assert first.module_name != second.module_name

    def test_rejects_empty_input(self):
        """Generating a program without tests is a caller error."""
        with pytest.raises(ValueError):
            ProgramGenerator().generate({}, OPTIONS)

    def test_rejects_module_without_tests(self):
        """Every module must contribute at least one test."""
        with pytest.raises(ValueError):
            ProgramGenerator().generate({"ExampleTest": []}, OPTIONS)
