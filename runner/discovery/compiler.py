"""Compiler 執行：build 候選測試檔與編譯產生的 runner 程式。"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

from runner.discovery.tools import ExternalTool, ProcessResult, RunningProcess
from shared.problems import (
    CompilationFailedError,
    ReadCompilerOutputError,
    SpawnCompilerError,
)

logger = logging.getLogger(__name__)

# build 只需要 interface 檔案，不產生輸出
BUILD_ARGS: tuple[str, ...] = ("make", f"--output={os.devnull}")


@dataclass
class ElmCompiler:
    """包裝 compiler 外部工具。

    Attributes:
        tool: compiler 的 ExternalTool。
        project_root: 專案根目錄（compiler 的工作目錄）。
        build_args: build 時在檔案清單前的參數。
    """

    tool: ExternalTool
    project_root: Path
    build_args: Sequence[str] = BUILD_ARGS

    def start_build(self, test_files: Iterable[Path]) -> RunningProcess:
        """在背景啟動 build。

        Args:
            test_files: 所有候選測試檔。

        Returns:
            執行中的 compiler process。

        Raises:
            SpawnCompilerError: compiler 無法啟動。
        """
        args = [*self.build_args, *(str(path) for path in sorted(test_files))]
        try:
            return self.tool.start(args, cwd=self.project_root)
        except OSError as exc:
            raise SpawnCompilerError(self.tool.executable, exc) from exc

    def finish_build(self, process: RunningProcess) -> ProcessResult:
        """等待 build 結束。

        Raises:
            ReadCompilerOutputError: 讀取 compiler 輸出失敗。
            CompilationFailedError: compiler 非零結束（附 stdout/stderr）。
        """
        result = self._wait(process)
        logger.info("Compiled test files")
        return result

    def _wait(self, process: RunningProcess) -> ProcessResult:
        try:
            result = process.wait()
        except OSError as exc:
            raise ReadCompilerOutputError(exc) from exc
        if not result.succeeded:
            raise CompilationFailedError(result.exit_code, result.stdout, result.stderr)
        return result

    def compile_program(
        self,
        source_path: Path,
        output_path: Path,
        cwd: Path | None = None,
    ) -> Path:
        """將產生的 runner 程式編譯成 runtime 可執行的檔案。

        Args:
            source_path: 產生的原始碼路徑。
            output_path: 編譯輸出路徑。
            cwd: compiler 工作目錄（elm.json 所在處）；預設為專案根目錄。

        Returns:
            output_path。

        Raises:
            SpawnCompilerError: compiler 無法啟動。
            ReadCompilerOutputError: 讀取 compiler 輸出失敗。
            CompilationFailedError: 編譯失敗。
        """
        args = ["make", str(source_path), f"--output={output_path}"]
        try:
            process = self.tool.start(args, cwd=cwd or self.project_root)
        except OSError as exc:
            raise SpawnCompilerError(self.tool.executable, exc) from exc

        self._wait(process)
        return output_path
