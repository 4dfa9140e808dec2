"""Interface Reader：透過 interface dump 工具取得 compiler 確認的 Test 宣告。

整個專案只呼叫一次工具（``--path <project root>``），輸出為 module record 的
JSON array。只有型別字串恰為 test-suite 型別、且 module 名稱出現在
module 名稱對照表中的 top-level 宣告會被保留。
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from runner.discovery.tools import ExternalTool
from shared.discovery_types import InterfaceModule, ModuleTests
from shared.problems import (
    CurrentExecutableError,
    InterfaceJsonNotArrayError,
    MalformedInterfaceJsonError,
    NoInterfaceOutputError,
    ReadInterfaceOutputError,
    SpawnInterfaceDumpError,
)

logger = logging.getLogger(__name__)

INTERFACE_DUMP_BINARY_NAME = "elm-interface-to-json"
TEST_SUITE_TYPE = "Test.Test"

_MODULES_ADAPTER = TypeAdapter(list[InterfaceModule])


def locate_interface_dump(
    binary_name: str = INTERFACE_DUMP_BINARY_NAME,
    current_executable: str | None = None,
) -> Path:
    """找出與目前執行檔同目錄的 interface dump 工具。

    執行檔若是 symlink 會先解析到實際位置。

    Args:
        binary_name: interface dump 工具的檔名。
        current_executable: 目前執行檔；預設為 ``sys.argv[0]``。

    Returns:
        interface dump 工具路徑。

    Raises:
        CurrentExecutableError: 無法判斷目前執行檔位置。
    """
    executable = current_executable if current_executable is not None else sys.argv[0]
    if not executable:
        raise CurrentExecutableError("empty argv[0]")

    located = executable if os.sep in executable else shutil.which(executable)
    if located is None:
        raise CurrentExecutableError(f"{executable} is not on PATH")

    try:
        resolved = Path(located).resolve(strict=True)
    except OSError as exc:
        raise CurrentExecutableError(str(exc)) from exc

    return resolved.with_name(binary_name)


def parse_interface_json(stdout: str) -> list[InterfaceModule]:
    """解析 interface dump 的 stdout。

    Raises:
        NoInterfaceOutputError: 沒有任何輸出。
        MalformedInterfaceJsonError: 不是合法 JSON，或 record 結構不符。
        InterfaceJsonNotArrayError: 最外層不是 array。
    """
    if not stdout.strip():
        raise NoInterfaceOutputError()

    try:
        payload = json.loads(stdout)
    except json.JSONDecodeError as exc:
        raise MalformedInterfaceJsonError(str(exc)) from exc

    if not isinstance(payload, list):
        raise InterfaceJsonNotArrayError(type(payload).__name__)

    try:
        return _MODULES_ADAPTER.validate_python(payload)
    except ValidationError as exc:
        raise MalformedInterfaceJsonError(
            f"{exc.error_count()} invalid module record field(s)"
        ) from exc


def collect_test_declarations(
    modules: list[InterfaceModule],
    module_table: Mapping[str, Path],
    test_type: str = TEST_SUITE_TYPE,
) -> dict[str, ModuleTests]:
    """從 module record 中挑出型別為 Test 的宣告。

    不在 module_table 的 module 直接略過（例如只要求執行某一個檔案時）。
    至少有一個 Test 的 module 才會出現在結果中。

    Args:
        modules: interface dump 的 module record。
        module_table: module 名稱 → 檔案對照表。
        test_type: test-suite 型別字串。

    Returns:
        module 名稱 → ModuleTests。
    """
    tests_by_module: dict[str, ModuleTests] = {}
    for module in modules:
        source_file = module_table.get(module.module_name)
        if source_file is None:
            continue

        names = frozenset(
            decl.name for decl in module.declarations if decl.signature == test_type
        )
        if not names:
            continue

        previous = tests_by_module.get(module.module_name)
        if previous is not None:
            names = names | previous.test_names

        tests_by_module[module.module_name] = ModuleTests(
            module_name=module.module_name,
            source_file=source_file,
            test_names=names,
        )

    return tests_by_module


@dataclass
class InterfaceReader:
    """執行 interface dump 工具並取出 Test 宣告。

    Attributes:
        tool: interface dump 的 ExternalTool。
        test_type: test-suite 型別字串。
    """

    tool: ExternalTool
    test_type: str = TEST_SUITE_TYPE

    def read(
        self,
        project_root: Path,
        module_table: Mapping[str, Path],
    ) -> dict[str, ModuleTests]:
        """對整個專案執行一次 interface dump。

        Args:
            project_root: 專案根目錄（compiler build 已完成）。
            module_table: module 名稱 → 檔案對照表。

        Returns:
            module 名稱 → ModuleTests。

        Raises:
            SpawnInterfaceDumpError: 工具無法啟動。
            ReadInterfaceOutputError: 讀取工具輸出失敗。
            NoInterfaceOutputError / MalformedInterfaceJsonError: 輸出無法使用。
        """
        try:
            process = self.tool.start(["--path", str(project_root)], cwd=project_root)
        except OSError as exc:
            raise SpawnInterfaceDumpError(self.tool.executable, exc) from exc

        try:
            result = process.wait()
        except (OSError, UnicodeDecodeError) as exc:
            raise ReadInterfaceOutputError(exc) from exc

        if not result.succeeded:
            # exit code 本身不視為失敗；輸出是否可用才是
            logger.warning(
                "%s exited with status %d: %s",
                self.tool.executable,
                result.exit_code,
                result.stderr.strip(),
            )

        modules = parse_interface_json(result.stdout)
        tests = collect_test_declarations(modules, module_table, self.test_type)
        logger.info(
            "Interface dump reported %d module(s) with top-level tests", len(tests)
        )
        return tests
