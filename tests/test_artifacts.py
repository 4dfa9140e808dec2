"""
Tests for the generated-code layout under ``elm-stuff``.
"""

import json

from core.storage.artifacts import GeneratedCodeLayout


class TestGeneratedCodeLayout:
    """Test suite for GeneratedCodeLayout."""

    def test_program_path(self, tmp_path):
        """Dotted module names map to nested ``.elm`` files."""
        layout = GeneratedCodeLayout(tmp_path)
        assert layout.program_path("Test.Generated.MainAbc") == (
            tmp_path
            / "elm-stuff"
            / "generated-code"
            / "elm-community"
            / "elm-test"
            / "src"
            / "Test"
            / "Generated"
            / "MainAbc.elm"
        )

    def test_write_program_creates_directories(self, tmp_path):
        """Writing the program creates missing parent directories."""
        layout = GeneratedCodeLayout(tmp_path)
        path = layout.write_program("Test.Generated.MainAbc", "module X exposing (main)\n")
        assert path.read_text(encoding="utf-8") == "module X exposing (main)\n"

    def test_write_manifest(self, tmp_path):
        """The generated elm.json uses 4-space indentation and ends with a newline."""
        layout = GeneratedCodeLayout(tmp_path)
        path = layout.write_manifest({"type": "application", "source-directories": ["src"]})
        text = path.read_text(encoding="utf-8")

        assert path == layout.generated_code_dir / "elm.json"
        assert text.endswith("}\n")
        assert '\n    "type": "application"' in text
        assert json.loads(text)["source-directories"] == ["src"]

    def test_compiled_output_path(self, tmp_path):
        """The compiled program lives next to the generated sources."""
        layout = GeneratedCodeLayout(tmp_path)
        assert layout.compiled_output_path().parent == layout.generated_code_dir
