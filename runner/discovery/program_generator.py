"""Program Generator：由 reconcile 結果產生 runner 程式原始碼。

每個 module 產生一個 import 與一個 ``Test.describe`` group，
所有 group 以 ``Test.concat`` 串成單一 suite，再帶上執行參數。
Module 名稱內嵌原始碼內容的 hash：相同的 test 集合與參數一定產生
完全相同的檔案，可沿用 compiler 的 build cache。
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from shared.discovery_types import GeneratedProgram, ReportFormat, RunOptions

GENERATED_NAMESPACE = "Test.Generated"
MAIN_MODULE_PREFIX = "Main"
DEFAULT_HASH_SEED = 8675309
HASH_LENGTH = 16

_RUNNER_IMPORTS: tuple[str, ...] = (
    "import Test.Reporter.Reporter exposing (Report(..))",
    "import Console.Text exposing (UseColor(..))",
    "import Test.Runner.Node",
    "import Test",
)

# 控制字元一律使用 Elm 的 \u{XXXX} 形式
_ELM_ESCAPES: dict[int, str] = {
    **{code: f"\\u{{{code:04X}}}" for code in (*range(0x20), 0x7F)},
    ord("\\"): "\\\\",
    ord('"'): '\\"',
    ord("\n"): "\\n",
    ord("\r"): "\\r",
    ord("\t"): "\\t",
}


def elm_string(value: str) -> str:
    """轉為 Elm 字串常值（處理反斜線、引號與控制字元）。"""
    return f'"{value.translate(_ELM_ESCAPES)}"'


def _maybe_int(value: int | None) -> str:
    return "Nothing" if value is None else f"(Just {value})"


def report_code(report: ReportFormat, use_color: bool) -> str:
    """報告格式對應的 Elm 表示式。"""
    if report is ReportFormat.JSON:
        return "JsonReport"
    if report is ReportFormat.JUNIT:
        return "JUnitReport"
    return "(ConsoleReport UseColor)" if use_color else "(ConsoleReport Monochrome)"


def _render_group(module_name: str, test_names: Iterable[str]) -> str:
    references = [f"{module_name}.{name}" for name in sorted(test_names)]
    return (
        f"Test.describe {elm_string(module_name)}\n"
        "            [ " + "\n            , ".join(references) + "\n            ]"
    )


def _render_options(options: RunOptions) -> str:
    paths = ", ".join(elm_string(path) for path in options.paths)
    fields = [
        f"runs = {_maybe_int(options.fuzz)}",
        f"report = {report_code(options.report, options.use_color)}",
        f"seed = {_maybe_int(options.seed)}",
        f"processes = {options.processes}",
        f"paths = [{paths}]",
    ]
    return "{ " + "\n            , ".join(fields) + "\n            }"


def render_body(
    tests_by_module: Mapping[str, Iterable[str]],
    options: RunOptions,
) -> str:
    """產生不含 module header 的程式本體（module 與 test 名稱皆排序）。"""
    module_names = sorted(tests_by_module)
    imports = "\n".join(f"import {name}" for name in module_names)
    groups = "\n    , ".join(
        _render_group(name, tests_by_module[name]) for name in module_names
    )

    return (
        f"{imports}\n"
        "\n"
        + "\n".join(_RUNNER_IMPORTS)
        + "\n"
        "\n"
        "main : Test.Runner.Node.TestProgram\n"
        "main =\n"
        f"    [ {groups}\n"
        "    ]\n"
        "        |> Test.concat\n"
        "        |> Test.Runner.Node.runWithOptions\n"
        f"            {_render_options(options)}\n"
    )


@dataclass(frozen=True)
class ProgramGenerator:
    """產生 content-addressed 的 runner 程式。

    Attributes:
        namespace: 產生 module 所在的 namespace。
        hash_seed: hash 的種子。
        hash_length: module 名稱中 hash 的長度（hex 字元數）。
    """

    namespace: str = GENERATED_NAMESPACE
    hash_seed: int = DEFAULT_HASH_SEED
    hash_length: int = HASH_LENGTH

    def content_hash(self, body: str) -> str:
        """計算程式本體的 hash。"""
        digest = hashlib.sha256(f"{self.hash_seed}\n{body}".encode("utf-8"))
        return digest.hexdigest()[: self.hash_length]

    def generate(
        self,
        tests_by_module: Mapping[str, Iterable[str]],
        options: RunOptions,
    ) -> GeneratedProgram:
        """產生 runner 程式。

        Args:
            tests_by_module: module 名稱 → 確認的 test 名稱（不可為空）。
            options: 執行參數。

        Returns:
            GeneratedProgram。

        Raises:
            ValueError: tests_by_module 為空，或某個 module 沒有 test。
        """
        if not tests_by_module:
            raise ValueError("Cannot generate a test program without any tests")
        materialized = {name: sorted(set(tests)) for name, tests in tests_by_module.items()}
        empty = [name for name, tests in materialized.items() if not tests]
        if empty:
            raise ValueError(f"Modules without tests: {', '.join(sorted(empty))}")

        body = render_body(materialized, options)
        module_name = (
            f"{self.namespace}.{MAIN_MODULE_PREFIX}{self.content_hash(body)}"
        )
        source = f"module {module_name} exposing (main)\n\n{body}"
        return GeneratedProgram(module_name=module_name, source=source)
