"""elm-test-runner 命令列入口。

流程：
1. 讀取 ``.env`` / 環境變數與 CLI 參數
2. 找出專案根目錄、讀取 elm.json、收集候選測試檔
3. 執行 discovery pipeline（build、掃描、reconcile、產生程式、dispatch）

所有 ``ElmTestProblem`` 只在這裡攔截並轉為 ``Error: ...`` 與結束碼 1。
"""

from __future__ import annotations

import argparse
import logging
import os
import shutil
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import TextIO

from core.storage.artifacts import GeneratedCodeLayout
from runner.discovery import (
    DiscoveryPipeline,
    ElmCompiler,
    InterfaceReader,
    SubprocessTool,
    WorkerDispatcher,
    default_worker_count,
    locate_interface_dump,
)
from runner.project import (
    current_directory,
    enter_project_root,
    find_project_root,
    gather_test_files,
    load_project,
)
from runner.settings import RunnerSettings, load_settings, parse_integer
from shared.discovery_types import ReportFormat, RunOptions
from shared.problems import (
    ElmTestProblem,
    InvalidCompilerPathError,
    LogFileError,
    NoTestFilesError,
    WorkerFailuresError,
)

logger = logging.getLogger(__name__)

PROGRAM_NAME = "elm-test-runner"
VERSION = "0.1.0"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

EXIT_PROBLEM = 1
EXIT_WORKER_FAILURES = 2


def build_parser() -> argparse.ArgumentParser:
    """建立 CLI parser。

    整數參數以字串接收，統一由 ``parse_integer`` 產生錯誤訊息。
    """
    parser = argparse.ArgumentParser(
        prog=PROGRAM_NAME,
        description="Discover and run the exposed Elm tests of a project.",
    )
    parser.add_argument(
        "paths",
        nargs="*",
        help="測試檔、目錄或 glob（預設：tests）",
    )
    parser.add_argument("--seed", help="初始亂數種子（整數）")
    parser.add_argument("--fuzz", help="每個 fuzz test 的迭代次數（正整數）")
    parser.add_argument("--compiler", help="elm 執行檔路徑")
    parser.add_argument(
        "--report",
        choices=[report.value for report in ReportFormat],
        default=ReportFormat.CONSOLE.value,
        help="報告格式（預設：console）",
    )
    parser.add_argument("--workers", help="runtime worker 數量（正整數）")
    parser.add_argument("--no-color", action="store_true", help="console 報告不使用顏色")
    parser.add_argument("--verbose", action="store_true", help="輸出 DEBUG log")
    parser.add_argument(
        "--version", action="version", version=f"{PROGRAM_NAME} {VERSION}"
    )
    return parser


def configure_logging(verbose: bool, log_file: Path | None = None) -> None:
    """設定 console（與可選的檔案）log handler。

    Console 平時只顯示 WARNING 以上，避免干擾測試報告。
    """
    level = logging.DEBUG if verbose else logging.INFO
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console_handler.setFormatter(formatter)
    handlers: list[logging.Handler] = [console_handler]

    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as exc:
            raise LogFileError(log_file, exc) from exc
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)


def resolve_compiler_path(value: str) -> str:
    """驗證 compiler 參數。

    以目前目錄為基準指向目錄時一律拒絕。含路徑分隔字元時必須是存在的檔案；
    只有名稱時交給 PATH 搜尋。

    Raises:
        InvalidCompilerPathError: 路徑不存在或是目錄。
    """
    path = Path(value).expanduser()
    if path.is_dir():
        raise InvalidCompilerPathError(value)

    if os.sep not in value and not (os.altsep and os.altsep in value):
        return shutil.which(value) or value

    if not path.is_file():
        raise InvalidCompilerPathError(value)
    return str(path.resolve())


def print_headline(stream: TextIO | None = None) -> None:
    headline = f"{PROGRAM_NAME} {VERSION}"
    out = stream or sys.stdout
    out.write(f"\n{headline}\n{'-' * len(headline)}\n\n")
    out.flush()


def run(args: argparse.Namespace, settings: RunnerSettings) -> int:
    """依解析後的參數執行一次完整流程。

    Raises:
        ElmTestProblem: 任何步驟失敗。
    """
    fuzz = None
    if args.fuzz is not None:
        fuzz = parse_integer("--fuzz", args.fuzz, positive=True)
    seed = None
    if args.seed is not None:
        seed = parse_integer("--seed", args.seed)
    if args.workers is not None:
        workers = parse_integer("--workers", args.workers, positive=True)
    else:
        workers = settings.workers or default_worker_count()

    compiler_path = resolve_compiler_path(args.compiler or settings.compiler)
    report = ReportFormat(args.report)
    use_color = not args.no_color and sys.stdout.isatty()

    invocation_dir = current_directory()
    project_root = find_project_root(invocation_dir)
    enter_project_root(project_root)
    project = load_project(project_root)

    test_files = gather_test_files(args.paths, project_root, base_dir=invocation_dir)
    if not test_files:
        raise NoTestFilesError(args.paths)

    if not report.is_machine_readable:
        print_headline()

    interface_dump = settings.interface_dump or str(locate_interface_dump())
    pipeline = DiscoveryPipeline(
        project_root=project_root,
        source_dirs=project.source_dirs,
        compiler=ElmCompiler(SubprocessTool(compiler_path), project_root),
        interface_reader=InterfaceReader(SubprocessTool(interface_dump)),
        dispatcher=WorkerDispatcher(
            SubprocessTool(settings.runtime, capture_output=False), workers
        ),
        generated_manifest=project.generated_manifest(
            GeneratedCodeLayout(project_root)
        ),
    )
    options = RunOptions(
        fuzz=fuzz,
        seed=seed,
        processes=workers,
        report=report,
        use_color=use_color,
        paths=tuple(args.paths),
    )

    result = pipeline.run(test_files, options, any_args=bool(args.paths))
    if result.failed_workers:
        raise WorkerFailuresError(result.failed_workers, len(result.workers))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings()
        configure_logging(args.verbose, settings.log_file)
        return run(args, settings)
    except WorkerFailuresError as exc:
        logger.warning("%s", exc)
        return EXIT_WORKER_FAILURES
    except ElmTestProblem as exc:
        logger.debug("Run aborted", exc_info=True)
        sys.stderr.write(f"Error: {exc}\n")
        return EXIT_PROBLEM


if __name__ == "__main__":
    raise SystemExit(main())
