"""Test discovery 流程的型別定義。

定義 discovery pipeline 各階段的資料模型，包含：
- Exposing list 掃描結果
- Interface dump 的 module record
- Compiler 確認的 Test 宣告與 reconcile 結果
- 產生的 runner 程式與執行選項
- Runtime worker 執行結果
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Exposed Set（Exposing-List Scanner 輸出）
# ---------------------------------------------------------------------------


class ExposedSet(BaseModel):
    """單一檔案 module header 所 expose 的名稱。

    ``exposes_all`` 為 True 代表 ``exposing (..)``，此時 ``names`` 為空。

    Attributes:
        exposes_all: 是否 expose 全部。
        names: 明確列出的名稱集合。
    """

    model_config = ConfigDict(frozen=True)

    exposes_all: bool = False
    names: frozenset[str] = frozenset()

    @classmethod
    def everything(cls) -> ExposedSet:
        """建立代表 ``exposing (..)`` 的 ExposedSet。"""
        return cls(exposes_all=True)

    @classmethod
    def of(cls, names: set[str] | frozenset[str] | list[str]) -> ExposedSet:
        """建立明確名稱清單的 ExposedSet。"""
        return cls(names=frozenset(names))

    def exposes(self, name: str) -> bool:
        """判斷名稱是否被 expose。"""
        return self.exposes_all or name in self.names


# ---------------------------------------------------------------------------
# Interface dump（Interface Reader 輸入）
# ---------------------------------------------------------------------------


class InterfaceDeclaration(BaseModel):
    """Interface dump 中的單一 top-level 宣告。"""

    name: str
    signature: str


class InterfaceModule(BaseModel):
    """Interface dump 中的單一 module record。

    接受 ``moduleName``/``types``（elm-interface-to-json 格式）或
    ``module_name``/``declarations`` 兩種欄位名稱。
    """

    module_name: str = Field(
        validation_alias=AliasChoices("moduleName", "module_name")
    )
    declarations: list[InterfaceDeclaration] = Field(
        default_factory=list,
        validation_alias=AliasChoices("types", "declarations"),
    )


class CompiledTestDecl(BaseModel):
    """Compiler 確認型別為 Test 的 top-level 宣告。"""

    model_config = ConfigDict(frozen=True)

    module_name: str
    name: str
    source_file: Path


class ModuleTests(BaseModel):
    """單一 module 在 interface dump 中的所有 Test 宣告。

    Attributes:
        module_name: module 名稱。
        source_file: 對應的原始碼檔案。
        test_names: 型別為 Test 的 top-level 宣告名稱。
    """

    model_config = ConfigDict(frozen=True)

    module_name: str
    source_file: Path
    test_names: frozenset[str]

    def declarations(self) -> list[CompiledTestDecl]:
        """展開為 CompiledTestDecl 清單（依名稱排序）。"""
        return [
            CompiledTestDecl(
                module_name=self.module_name, name=name, source_file=self.source_file
            )
            for name in sorted(self.test_names)
        ]


# ---------------------------------------------------------------------------
# Reconciliation（Test Reconciler 輸出）
# ---------------------------------------------------------------------------


class ReconciledModule(BaseModel):
    """Reconcile 後確認會執行的 module 與其 Test 名稱。"""

    model_config = ConfigDict(frozen=True)

    module_name: str
    source_file: Path
    confirmed: frozenset[str]


class ReconciliationResult(BaseModel):
    """Reconcile 結果。

    Attributes:
        modules: 有確認 Test 的 module（依名稱排序）。
        unexposed: module 名稱 → 未 expose 的 Test 名稱；無差異時為空。
    """

    modules: list[ReconciledModule] = Field(default_factory=list)
    unexposed: dict[str, frozenset[str]] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.unexposed

    def tests_by_module(self) -> dict[str, frozenset[str]]:
        """回傳 module 名稱 → 確認的 Test 名稱。"""
        return {module.module_name: module.confirmed for module in self.modules}


# ---------------------------------------------------------------------------
# Generated program（Program Generator 輸出）
# ---------------------------------------------------------------------------


class ReportFormat(str, Enum):
    """Runtime 報告格式。"""

    CONSOLE = "console"
    JSON = "json"
    JUNIT = "junit"

    @property
    def is_machine_readable(self) -> bool:
        return self is not ReportFormat.CONSOLE


class RunOptions(BaseModel):
    """產生的 runner 程式所帶的執行參數。

    Attributes:
        fuzz: 每個 fuzz test 的迭代次數。
        seed: 初始亂數種子。
        processes: runtime worker 數量。
        report: 報告格式。
        use_color: console 報告是否使用顏色。
        paths: 使用者傳入的檔案/目錄參數（原樣）。
    """

    model_config = ConfigDict(frozen=True)

    fuzz: int | None = None
    seed: int | None = None
    processes: int = 1
    report: ReportFormat = ReportFormat.CONSOLE
    use_color: bool = False
    paths: tuple[str, ...] = ()


class GeneratedProgram(BaseModel):
    """產生的 runner 程式。

    Attributes:
        module_name: 完整 module 名稱（如 ``Test.Generated.Main1a2b3c``）。
        source: 完整原始碼。
    """

    model_config = ConfigDict(frozen=True)

    module_name: str
    source: str


# ---------------------------------------------------------------------------
# Dispatch（Pipeline Orchestrator 輸出）
# ---------------------------------------------------------------------------


class WorkerResult(BaseModel):
    """單一 runtime worker 的執行結果。

    Attributes:
        index: worker 編號（0 起算）。
        exit_code: 結束碼；無法啟動時為 -1。
        error: 無法啟動時的錯誤訊息。
    """

    index: int
    exit_code: int
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


class PipelineResult(BaseModel):
    """一次完整 run 的結果。"""

    program: GeneratedProgram
    program_path: Path
    reconciliation: ReconciliationResult
    workers: list[WorkerResult] = Field(default_factory=list)

    @property
    def failed_workers(self) -> list[int]:
        return [worker.index for worker in self.workers if not worker.succeeded]
