"""Runtime worker dispatch：fan-out 啟動所有 worker，再 fan-in 等待全部結束。

單一 worker 失敗不會取消其他 worker；測試如何分配到各 worker 由 runtime 決定。
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from runner.discovery.tools import ExternalTool, RunningProcess
from shared.discovery_types import WorkerResult

logger = logging.getLogger(__name__)


def default_worker_count() -> int:
    """預設 worker 數量：可用的 CPU 核心數。"""
    return os.cpu_count() or 1


@dataclass
class WorkerDispatcher:
    """啟動 runtime worker 執行編譯後的 runner 程式。

    Attributes:
        tool: runtime 的 ExternalTool（如 node）。
        workers: worker 數量。
    """

    tool: ExternalTool
    workers: int

    def dispatch(self, compiled_program: Path, cwd: Path | None = None) -> list[WorkerResult]:
        """啟動所有 worker 並等待。

        每個 worker 收到：編譯後的程式路徑、worker 編號、worker 總數。

        Args:
            compiled_program: 編譯後的 runner 程式。
            cwd: worker 的工作目錄。

        Returns:
            依 worker 編號排序的 WorkerResult。
        """
        started: dict[int, RunningProcess] = {}
        results: dict[int, WorkerResult] = {}

        for index in range(self.workers):
            args = [str(compiled_program), str(index), str(self.workers)]
            try:
                started[index] = self.tool.start(args, cwd=cwd)
            except OSError as exc:
                logger.error("Unable to start test worker %d: %s", index, exc)
                results[index] = WorkerResult(index=index, exit_code=-1, error=str(exc))

        logger.info("Started %d test worker(s)", len(started))

        for index, process in started.items():
            try:
                outcome = process.wait()
            except OSError as exc:
                logger.error("Lost test worker %d: %s", index, exc)
                results[index] = WorkerResult(index=index, exit_code=-1, error=str(exc))
                continue

            if not outcome.succeeded:
                logger.warning(
                    "Test worker %d exited with status %d", index, outcome.exit_code
                )
            results[index] = WorkerResult(
                index=index,
                exit_code=outcome.exit_code,
                error=outcome.stderr.strip() or None,
            )

        return [results[index] for index in sorted(results)]
