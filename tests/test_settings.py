"""
Unit tests for environment-driven settings.
"""

from pathlib import Path

import pytest

from runner.settings import RunnerSettings, load_settings, parse_integer
from shared.problems import InvalidIntegerError


class TestParseInteger:
    """Test suite for integer arguments."""

    @pytest.mark.parametrize("value, expected", [("42", 42), (" 7 ", 7), ("-3", -3)])
    def test_valid(self, value, expected):
        """Plain integers are accepted."""
        assert parse_integer("--seed", value) == expected

    @pytest.mark.parametrize("value", ["abc", "1.5", ""])
    def test_invalid(self, value):
        """Non-integers are rejected with the flag name in the message."""
        with pytest.raises(InvalidIntegerError) as excinfo:
            parse_integer("--seed", value)
        assert "--seed" in str(excinfo.value)

    @pytest.mark.parametrize("value", ["0", "-1"])
    def test_positive(self, value):
        """Positive-only flags reject zero and negatives."""
        with pytest.raises(InvalidIntegerError):
            parse_integer("--fuzz", value, positive=True)


class TestRunnerSettings:
    """Test suite for RunnerSettings.from_env."""

    def test_defaults(self):
        """An empty environment yields the defaults."""
        settings = RunnerSettings.from_env({})
        assert settings.compiler == "elm"
        assert settings.runtime == "node"
        assert settings.interface_dump is None
        assert settings.workers is None
        assert settings.log_file is None

    def test_overrides(self):
        """Every variable is picked up."""
        settings = RunnerSettings.from_env(
            {
                "ELM_TEST_COMPILER": "/opt/elm",
                "ELM_TEST_RUNTIME": "/opt/node",
                "ELM_TEST_INTERFACE_DUMP": "/opt/elm-interface-to-json",
                "ELM_TEST_WORKERS": "3",
                "ELM_TEST_LOG_FILE": "/tmp/elm-test.log",
            }
        )
        assert settings.compiler == "/opt/elm"
        assert settings.runtime == "/opt/node"
        assert settings.interface_dump == "/opt/elm-interface-to-json"
        assert settings.workers == 3
        assert settings.log_file == Path("/tmp/elm-test.log")

    def test_invalid_workers(self):
        """A malformed worker count is rejected like a CLI flag."""
        with pytest.raises(InvalidIntegerError):
            RunnerSettings.from_env({"ELM_TEST_WORKERS": "many"})

    def test_dotenv_file(self, tmp_path, monkeypatch):
        """Values from a ``.env`` file in the working directory are loaded."""
        (tmp_path / ".env").write_text("ELM_TEST_RUNTIME=/from/dotenv/node\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        # setenv first so teardown removes whatever load_dotenv writes
        monkeypatch.setenv("ELM_TEST_RUNTIME", "unset")
        monkeypatch.delenv("ELM_TEST_RUNTIME")

        settings = load_settings()

        assert settings.runtime == "/from/dotenv/node"
