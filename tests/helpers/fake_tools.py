"""
Fake external tools for offline testing.

Implements the ``ExternalTool`` / ``RunningProcess`` interface without
spawning anything.  Every ``start`` call is recorded, and results are
scripted per call so tests can model a compiler, the interface dump tool
or a runtime worker.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Callable, Sequence
from pathlib import Path

from runner.discovery.tools import ExternalTool, ProcessResult, RunningProcess


class FakeProcess(RunningProcess):
    """A running process whose result is known in advance.

    ``wait`` blocks until ``release`` is called when the process was created
    with ``block=True``; ``kill`` releases it with exit code -9.
    """

    def __init__(
        self,
        result: ProcessResult,
        block: bool = False,
        error: Exception | None = None,
    ) -> None:
        self.result = result
        self.error = error
        self.killed = False
        self.waited = False
        self._released = threading.Event()
        if not block:
            self._released.set()

    def release(self) -> None:
        self._released.set()

    def wait(self) -> ProcessResult:
        if not self._released.wait(timeout=10):
            raise TimeoutError("fake process was never released")
        self.waited = True
        if self.error is not None:
            raise self.error
        if self.killed:
            return ProcessResult(exit_code=-9)
        return self.result

    def kill(self) -> None:
        if not self._released.is_set():
            self.killed = True
        self._released.set()


class FailOnWait:
    """Script entry: the process starts but ``wait`` raises ``error``."""

    def __init__(self, error: Exception) -> None:
        self.error = error


Script = ProcessResult | OSError | FailOnWait | Callable[[Sequence[str]], ProcessResult]


class FakeTool(ExternalTool):
    """Records ``start`` calls and replays scripted results.

    Usage::

        tool = FakeTool("elm", [ProcessResult(exit_code=0)])
        process = tool.start(["make", "tests/ExampleTest.elm"])
        assert tool.calls == [(["make", "tests/ExampleTest.elm"], None)]

    Each entry of ``script`` answers one call, in order; the last entry is
    reused once the script runs out.  An ``OSError`` entry is raised from
    ``start``, a ``FailOnWait`` entry is raised from ``wait``, a callable is
    invoked with the arguments.
    """

    def __init__(
        self,
        name: str = "fake",
        script: Sequence[Script] | None = None,
        block: bool = False,
    ) -> None:
        self.name = name
        self.script = list(script or [ProcessResult(exit_code=0)])
        self.block = block
        self.calls: list[tuple[list[str], Path | None]] = []
        self.processes: list[FakeProcess] = []
        self._lock = threading.Lock()

    @property
    def executable(self) -> str:
        return self.name

    def start(self, args: Sequence[str], cwd: Path | None = None) -> RunningProcess:
        with self._lock:
            index = len(self.calls)
            self.calls.append((list(args), cwd))
            entry = self.script[min(index, len(self.script) - 1)]

        if isinstance(entry, OSError):
            raise entry
        if isinstance(entry, FailOnWait):
            process = FakeProcess(ProcessResult(), block=self.block, error=entry.error)
        else:
            result = entry(args) if callable(entry) else entry
            process = FakeProcess(result, block=self.block)

        with self._lock:
            self.processes.append(process)
        return process


def interface_json(modules: dict[str, dict[str, str]]) -> str:
    """Build interface-dump output from ``{module: {name: signature}}``."""
    return json.dumps(
        [
            {
                "moduleName": module_name,
                "types": [
                    {"name": name, "signature": signature}
                    for name, signature in declarations.items()
                ],
            }
            for module_name, declarations in modules.items()
        ]
    )
