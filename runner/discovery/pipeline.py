"""Discovery pipeline 的 Orchestrator。

狀態：

    START → BUILDING_AND_SCANNING → RECONCILING → GENERATING → DISPATCHING → DONE

任何步驟失敗都轉為 ABORTED 並 raise 對應的 ``ElmTestProblem``。

BUILDING_AND_SCANNING 階段 compiler 在背景 build，同時以 thread pool
掃描每個檔案的 exposing list 並建立 module 名稱對照表；兩者只在
join point 交換結果。掃描失敗時立即 kill compiler。
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from core.storage.artifacts import GeneratedCodeLayout
from runner.discovery.compiler import ElmCompiler
from runner.discovery.dispatcher import WorkerDispatcher
from runner.discovery.exposing_scanner import scan_file
from runner.discovery.interface_reader import InterfaceReader
from runner.discovery.module_names import resolve_module_names
from runner.discovery.program_generator import ProgramGenerator
from runner.discovery.reconciler import reconcile_or_raise
from shared.discovery_types import (
    ExposedSet,
    GeneratedProgram,
    PipelineResult,
    ReconciliationResult,
    RunOptions,
    WorkerResult,
)
from shared.problems import NoExposedTestsError, WriteGeneratedError

logger = logging.getLogger(__name__)

DEFAULT_SCAN_WORKERS = 8


class PipelineStage(str, Enum):
    """Pipeline 狀態。"""

    START = "start"
    BUILDING_AND_SCANNING = "building_and_scanning"
    RECONCILING = "reconciling"
    GENERATING = "generating"
    DISPATCHING = "dispatching"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class DiscoveryOutcome:
    """Discovery（到 GENERATING 為止）的結果。"""

    reconciliation: ReconciliationResult
    program: GeneratedProgram


@dataclass
class DiscoveryPipeline:
    """串接 build、掃描、interface dump、reconcile、產生程式與 dispatch。

    Attributes:
        project_root: 專案根目錄。
        source_dirs: 用於 module 名稱推導的 source directories。
        compiler: ElmCompiler。
        interface_reader: InterfaceReader。
        dispatcher: WorkerDispatcher。
        generator: ProgramGenerator。
        generated_manifest: generated-code 目錄專用的 elm.json 內容；
            None 時直接在專案根目錄編譯產生的程式。
        scan_workers: 掃描用 thread 數。
    """

    project_root: Path
    source_dirs: list[Path]
    compiler: ElmCompiler
    interface_reader: InterfaceReader
    dispatcher: WorkerDispatcher
    generator: ProgramGenerator = field(default_factory=ProgramGenerator)
    generated_manifest: dict | None = None
    scan_workers: int = DEFAULT_SCAN_WORKERS
    stage: PipelineStage = PipelineStage.START
    abort_reason: Exception | None = None

    @property
    def layout(self) -> GeneratedCodeLayout:
        return GeneratedCodeLayout(self.project_root)

    def run(
        self,
        test_files: Iterable[Path],
        options: RunOptions,
        any_args: bool,
    ) -> PipelineResult:
        """執行完整 pipeline。

        Args:
            test_files: 候選測試檔（絕對、正規化路徑）。
            options: 產生程式的執行參數。
            any_args: 使用者是否明確指定了檔案參數（影響錯誤訊息）。

        Returns:
            PipelineResult。
        """
        try:
            outcome = self._discover(test_files, options, any_args)
            program_path, workers = self._dispatch(outcome.program)
        except Exception as exc:
            self._abort(exc)
            raise

        self._transition(PipelineStage.DONE)
        return PipelineResult(
            program=outcome.program,
            program_path=program_path,
            reconciliation=outcome.reconciliation,
            workers=workers,
        )

    def discover(
        self,
        test_files: Iterable[Path],
        options: RunOptions,
        any_args: bool,
    ) -> DiscoveryOutcome:
        """只執行到 GENERATING，不寫檔也不啟動 worker。"""
        try:
            outcome = self._discover(test_files, options, any_args)
        except Exception as exc:
            self._abort(exc)
            raise
        self._transition(PipelineStage.DONE)
        return outcome

    # -----------------------------------------------------------------------
    # Stages
    # -----------------------------------------------------------------------

    def _discover(
        self,
        test_files: Iterable[Path],
        options: RunOptions,
        any_args: bool,
    ) -> DiscoveryOutcome:
        files = sorted(set(test_files))

        self._transition(PipelineStage.BUILDING_AND_SCANNING)
        module_table, exposed_by_file = self._build_and_scan(files)
        compiled = self.interface_reader.read(self.project_root, module_table)

        self._transition(PipelineStage.RECONCILING)
        reconciliation = reconcile_or_raise(compiled, exposed_by_file)
        if not reconciliation.modules:
            raise NoExposedTestsError(any_args)

        self._transition(PipelineStage.GENERATING)
        program = self.generator.generate(reconciliation.tests_by_module(), options)
        logger.info(
            "Generated %s with %d test module(s)",
            program.module_name,
            len(reconciliation.modules),
        )
        return DiscoveryOutcome(reconciliation=reconciliation, program=program)

    def _build_and_scan(
        self, files: list[Path]
    ) -> tuple[dict[str, Path], dict[Path, ExposedSet]]:
        """背景 build 的同時掃描 exposing list 與建立 module 名稱對照表。

        Returns:
            (module 名稱對照表, 檔案 → ExposedSet)。
        """
        build = self.compiler.start_build(files)

        pool = ThreadPoolExecutor(max_workers=max(1, self.scan_workers))
        try:
            build_future = pool.submit(self.compiler.finish_build, build)
            table_future = pool.submit(resolve_module_names, files, self.source_dirs)
            scan_futures: dict[Future, Path] = {
                pool.submit(scan_file, path): path for path in files
            }

            pending: set[Future] = {build_future, table_future, *scan_futures}
            while pending:
                done, pending = wait(pending, return_when=FIRST_EXCEPTION)
                failed = [future for future in done if future.exception() is not None]
                if not failed:
                    continue

                scan_failures = [future for future in failed if future in scan_futures]
                if scan_failures:
                    # build 的結果已無法 reconcile，不必等它結束
                    build.kill()
                    first = min(scan_failures, key=lambda future: scan_futures[future])
                    raise first.exception()
                raise failed[0].exception()

            exposed_by_file = {
                path: future.result() for future, path in scan_futures.items()
            }
            return table_future.result(), exposed_by_file
        except BaseException:
            build.kill()
            pool.shutdown(wait=False, cancel_futures=True)
            raise
        finally:
            pool.shutdown(wait=True)

    def _dispatch(self, program: GeneratedProgram) -> tuple[Path, list[WorkerResult]]:
        self._transition(PipelineStage.DISPATCHING)
        layout = self.layout
        compile_dir = self.project_root

        if self.generated_manifest is not None:
            try:
                layout.write_manifest(self.generated_manifest)
            except OSError as exc:
                raise WriteGeneratedError(layout.manifest_path(), exc) from exc
            compile_dir = layout.generated_code_dir

        try:
            program_path = layout.write_program(program.module_name, program.source)
        except OSError as exc:
            raise WriteGeneratedError(layout.program_path(program.module_name), exc) from exc

        compiled = self.compiler.compile_program(
            program_path, layout.compiled_output_path(), cwd=compile_dir
        )
        workers = self.dispatcher.dispatch(compiled, cwd=self.project_root)
        return program_path, workers

    # -----------------------------------------------------------------------
    # State
    # -----------------------------------------------------------------------

    def _transition(self, stage: PipelineStage) -> None:
        logger.info("Pipeline stage: %s -> %s", self.stage.value, stage.value)
        self.stage = stage

    def _abort(self, reason: Exception) -> None:
        logger.debug("Pipeline aborted during %s: %s", self.stage.value, reason)
        self.abort_reason = reason
        self.stage = PipelineStage.ABORTED
