"""
Unit tests for runtime worker fan-out / fan-in.
"""

from pathlib import Path

from runner.discovery.dispatcher import WorkerDispatcher, default_worker_count
from runner.discovery.tools import ProcessResult
from tests.helpers.fake_tools import FakeTool

COMPILED = Path("/project/elm-stuff/generated-code/elm-community/elm-test/elmTestOutput.js")


class TestWorkerDispatcher:
    """Test suite for starting and awaiting workers."""

    def test_every_worker_gets_index_and_count(self):
        """Each worker receives the compiled program, its index and the count."""
        tool = FakeTool("node")
        results = WorkerDispatcher(tool, workers=3).dispatch(COMPILED, cwd=Path("/project"))

        assert [args for args, _ in tool.calls] == [
            [str(COMPILED), "0", "3"],
            [str(COMPILED), "1", "3"],
            [str(COMPILED), "2", "3"],
        ]
        assert all(cwd == Path("/project") for _, cwd in tool.calls)
        assert [result.index for result in results] == [0, 1, 2]
        assert all(result.succeeded for result in results)

    def test_all_workers_awaited_before_returning(self):
        """Every started process has been waited on."""
        tool = FakeTool("node")
        WorkerDispatcher(tool, workers=2).dispatch(COMPILED)
        assert all(process.waited for process in tool.processes)

    def test_one_failure_does_not_cancel_others(self):
        """A failing worker is reported while the rest still run."""
        tool = FakeTool(
            "node",
            [ProcessResult(0), ProcessResult(2, "", "boom"), ProcessResult(0)],
        )
        results = WorkerDispatcher(tool, workers=3).dispatch(COMPILED)

        assert [result.exit_code for result in results] == [0, 2, 0]
        assert results[1].error == "boom"
        assert all(process.waited for process in tool.processes)

    def test_spawn_failure_is_recorded(self):
        """A worker that cannot start is recorded with exit code -1."""
        tool = FakeTool("node", [FileNotFoundError("node"), ProcessResult(0)])
        results = WorkerDispatcher(tool, workers=2).dispatch(COMPILED)

        assert results[0].exit_code == -1
        assert "node" in results[0].error
        assert results[1].succeeded
        assert len(tool.calls) == 2

    def test_default_worker_count(self):
        """The default is at least one worker."""
        assert default_worker_count() >= 1
