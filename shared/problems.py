"""elm-test-runner 的錯誤分類。

所有錯誤皆為終止性（不重試）。各步驟直接 raise 對應的例外，
只有最外層的 CLI 會攔截 ``ElmTestProblem``，轉為人類可讀訊息與非零結束碼。

分類：
- Environment：找不到 elm.json、工作目錄無效、chdir 失敗、log 檔無法開啟
- Input：找不到測試檔、CLI 整數格式錯誤、compiler 路徑無效
- Manifest：elm.json 無法解析、source-directories 無效
- Scan：讀檔失敗、缺少 module 宣告、module header 解析失敗
- Build：compiler 無法啟動、讀取輸出失敗、compiler 非零結束
- Interface：interface dump 工具無法啟動、無輸出、JSON 格式錯誤
- Reconciliation：有未 expose 的 top-level Test
- No tests：reconcile 成功但沒有任何可執行的 Test
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path

MAKE_SURE: str = (
    "Make sure you're running elm-test-runner from your project's root directory, "
    "where its elm.json file lives.\n\nTo generate some initial tests "
    "to get things going, run `elm-test init`."
)

WHERE_TO_FILE_BUGS: str = "https://github.com/rtfeldman/node-test-runner/issues"


class ElmTestProblem(Exception):
    """所有 elm-test-runner 錯誤的基底類別。"""


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------


class EnvironmentProblem(ElmTestProblem):
    """執行環境相關錯誤。"""


class MissingManifestError(EnvironmentProblem):
    def __init__(self, start_dir: Path) -> None:
        self.start_dir = start_dir
        super().__init__(
            "elm-test-runner could not find an elm.json file in this directory "
            f"or any parent directories.\n{MAKE_SURE}"
        )


class InvalidCwdError(EnvironmentProblem):
    def __init__(self, cause: OSError) -> None:
        self.cause = cause
        super().__init__(
            "elm-test-runner was run from an invalid directory. "
            "Maybe the current directory has been deleted?"
        )


class ChdirError(EnvironmentProblem):
    def __init__(self, target: Path, cause: OSError) -> None:
        self.target = target
        self.cause = cause
        super().__init__(
            "elm-test-runner was unable to change the current working directory "
            f"to {target}."
        )


class LogFileError(EnvironmentProblem):
    def __init__(self, path: Path, cause: OSError) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"elm-test-runner was unable to open the log file {path}.")


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------


class InputProblem(ElmTestProblem):
    """使用者輸入（CLI 參數、檔案路徑）相關錯誤。"""


class ReadTestFilesError(InputProblem):
    def __init__(self, cause: OSError) -> None:
        self.cause = cause
        super().__init__("elm-test-runner was unable to read the requested .elm files.")


class NoTestFilesError(InputProblem):
    """找不到任何候選測試檔。

    Attributes:
        requested: 使用者明確指定的路徑；空 list 表示使用預設目錄。
    """

    def __init__(self, requested: Iterable[str]) -> None:
        self.requested = list(requested)
        if not self.requested:
            message = (
                "No tests found in the tests/ directory.\n\n"
                f"NOTE: {MAKE_SURE}"
            )
        else:
            message = (
                "No tests found for the file pattern "
                f'"{" ".join(self.requested)}"\n\n'
                "Maybe try running elm-test-runner with no arguments?"
            )
        super().__init__(message)


class InvalidIntegerError(InputProblem):
    def __init__(self, flag_name: str, value: str) -> None:
        self.flag_name = flag_name
        self.value = value
        super().__init__(
            f"{value} is not a valid value for argument for the {flag_name} flag"
        )


class InvalidCompilerPathError(InputProblem):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(
            "The --compiler flag must be given a valid path to an elm executable, "
            f"which this was not: {path}"
        )


# ---------------------------------------------------------------------------
# Manifest (elm.json)
# ---------------------------------------------------------------------------


class ManifestProblem(ElmTestProblem):
    """elm.json 內容相關錯誤。"""


class ReadManifestError(ManifestProblem):
    def __init__(self, path: Path, cause: OSError) -> None:
        self.path = path
        self.cause = cause
        super().__init__(
            "Unable to read your project's elm.json file. "
            "Please make sure it exists and has the right permissions!"
        )


class MalformedManifestError(ManifestProblem):
    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(
            "Your project's elm.json file appears to contain invalid JSON "
            f"({detail}). Try running it through a JSON validator and fixing "
            "any syntax errors you find!"
        )


class InvalidSourceDirectoriesError(ManifestProblem):
    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(
            "Your project's elm.json file does not have a valid source-directories "
            "array. Make sure the `source-directories` field is present, and is an "
            "array of strings!"
        )


class InvalidSourceDirectoryError(ManifestProblem):
    def __init__(self, source_dir: str) -> None:
        self.source_dir = source_dir
        super().__init__(
            "Your project's elm.json file contains an invalid source-directory: "
            f"{source_dir}"
        )


# ---------------------------------------------------------------------------
# Scan (exposing list)
# ---------------------------------------------------------------------------


class ScanProblem(ElmTestProblem):
    """掃描單一檔案 module header 時的錯誤，一律帶有檔案路徑。"""

    def __init__(self, path: Path | None, message: str) -> None:
        self.path = path
        super().__init__(message)


class ExportsReadError(ScanProblem):
    def __init__(self, path: Path | None, cause: Exception) -> None:
        self.cause = cause
        super().__init__(
            path,
            f'Could not read "{path}" when attempting to validate its exports.',
        )


class MissingModuleDeclarationError(ScanProblem):
    def __init__(self, path: Path | None) -> None:
        super().__init__(
            path, f'File "{path}" needs a `module` declaration on the first line.'
        )


class HeaderParseError(ScanProblem):
    def __init__(self, path: Path | None) -> None:
        super().__init__(
            path,
            f'File "{path}" appears to have an invalid module declaration. '
            "Please double-check it!\n"
            "If the file compiles successfully with `elm make`, then this is a "
            f"problem with elm-test-runner, so please file it at {WHERE_TO_FILE_BUGS} "
            "and show the module declaration (including exports!) that resulted "
            "in this message.",
        )


# ---------------------------------------------------------------------------
# Build (compiler)
# ---------------------------------------------------------------------------


class BuildProblem(ElmTestProblem):
    """Compiler 執行相關錯誤。"""


class SpawnCompilerError(BuildProblem):
    def __init__(self, executable: str, cause: OSError) -> None:
        self.executable = executable
        self.cause = cause
        super().__init__(
            f"Unable to execute `{executable} make`. Try using the --compiler flag "
            "to set the location of the `elm` executable explicitly."
        )


class CompilationFailedError(BuildProblem):
    def __init__(self, exit_code: int, stdout: str, stderr: str) -> None:
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        details = "\n".join(part for part in (stdout.strip(), stderr.strip()) if part)
        message = "Test compilation failed."
        if details:
            message += f"\n\n{details}"
        super().__init__(message)


class ReadCompilerOutputError(BuildProblem):
    def __init__(self, cause: OSError) -> None:
        self.cause = cause
        super().__init__("Unable to read the output of the compiler.")


# ---------------------------------------------------------------------------
# Interface dump
# ---------------------------------------------------------------------------


class InterfaceProblem(ElmTestProblem):
    """Interface dump 工具相關錯誤。"""


class CurrentExecutableError(InterfaceProblem):
    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(
            "Unable to detect current running process for elm-test-runner "
            f"({detail}). Is it running from a weird location, possibly "
            "involving symlinks?"
        )


class SpawnInterfaceDumpError(InterfaceProblem):
    def __init__(self, executable: str, cause: OSError) -> None:
        self.executable = executable
        self.cause = cause
        super().__init__(
            f"Unable to run `{executable}`. This binary should have been installed "
            "along with elm-test-runner. Maybe try reinstalling it?"
        )


class ReadInterfaceOutputError(InterfaceProblem):
    def __init__(self, cause: Exception) -> None:
        self.cause = cause
        super().__init__(
            "Unable to read stdout from the interface dump tool. "
            f"Please file a bug at {WHERE_TO_FILE_BUGS}"
        )


class NoInterfaceOutputError(InterfaceProblem):
    def __init__(self) -> None:
        super().__init__(
            "The interface dump tool did not produce any output. "
            f"Please file a bug at {WHERE_TO_FILE_BUGS}"
        )


class MalformedInterfaceJsonError(InterfaceProblem):
    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(
            "Malformed JSON when reading from the interface dump tool "
            f"({detail}). Please file a bug at {WHERE_TO_FILE_BUGS}"
        )


class InterfaceJsonNotArrayError(MalformedInterfaceJsonError):
    def __init__(self, actual_type: str) -> None:
        self.actual_type = actual_type
        super().__init__(f"expected a top-level array, got {actual_type}")


# ---------------------------------------------------------------------------
# Reconciliation / no tests
# ---------------------------------------------------------------------------


class UnexposedTestsError(ElmTestProblem):
    """有 compiler 確認的 top-level Test 沒有被 module expose。

    Attributes:
        unexposed: module 名稱 → 未 expose 的 test 名稱集合。
    """

    def __init__(self, unexposed: Mapping[str, Iterable[str]]) -> None:
        self.unexposed = {
            module_name: frozenset(names) for module_name, names in unexposed.items()
        }
        blocks: list[str] = []
        for module_name in sorted(self.unexposed):
            lines = "\n".join(
                f"{name} : Test" for name in sorted(self.unexposed[module_name])
            )
            blocks.append(
                f"`{module_name}` is a module with top-level Test values which it "
                f"does not expose:\n\n{lines}\n\n"
                "These tests will not get run. Please either expose them or move "
                "them out of the top level."
            )
        super().__init__("\n\n\n".join(blocks))


class NoExposedTestsError(ElmTestProblem):
    def __init__(self, any_args: bool) -> None:
        self.any_args = any_args
        if any_args:
            message = (
                "I couldn't find any exposed values of type Test in the requested "
                "files.\n\nMaybe try running elm-test-runner with no arguments?"
            )
        else:
            message = (
                "I couldn't find any exposed values of type Test in any *.elm files "
                "in the tests/ directory of your project's root directory.\n\n"
                "To generate some initial tests to get things going, run "
                "`elm-test init`."
            )
        super().__init__(message)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class DispatchProblem(ElmTestProblem):
    """寫出產生的程式或啟動 runtime worker 相關錯誤。"""


class WriteGeneratedError(DispatchProblem):
    def __init__(self, path: Path, cause: OSError) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Unable to write {path}")


class WorkerFailuresError(DispatchProblem):
    """至少一個 runtime worker 非零結束（所有 worker 皆已等待完畢）。"""

    def __init__(self, failed: Iterable[int], total: int) -> None:
        self.failed = sorted(failed)
        self.total = total
        super().__init__(
            f"{len(self.failed)} of {total} test worker(s) exited unsuccessfully "
            f"(workers: {', '.join(str(i) for i in self.failed)})."
        )
