"""Test Reconciler：比對 compiler 確認的 Test 與 module 實際 expose 的名稱。"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path

from shared.discovery_types import (
    CompiledTestDecl,
    ExposedSet,
    ModuleTests,
    ReconciledModule,
    ReconciliationResult,
)
from shared.problems import UnexposedTestsError


def partition_tests(
    declarations: Iterable[CompiledTestDecl],
    exposed: ExposedSet,
) -> tuple[frozenset[str], frozenset[str]]:
    """將單一 module 的 compiled test 分為已 expose 與未 expose 兩組。

    Returns:
        (confirmed, unexposed) 名稱集合；兩者互斥且聯集等於所有宣告名稱。
    """
    confirmed: set[str] = set()
    unexposed: set[str] = set()
    for declaration in declarations:
        if exposed.exposes(declaration.name):
            confirmed.add(declaration.name)
        else:
            unexposed.add(declaration.name)
    return frozenset(confirmed), frozenset(unexposed)


def reconcile(
    compiled: Mapping[str, ModuleTests],
    exposed_by_file: Mapping[Path, ExposedSet],
) -> ReconciliationResult:
    """對每個 module 做 reconcile。

    Args:
        compiled: module 名稱 → compiler 確認的 Test。
        exposed_by_file: 檔案 → ExposedSet。

    Returns:
        ReconciliationResult；``unexposed`` 非空時呼叫端不可繼續產生程式。
    """
    modules: list[ReconciledModule] = []
    unexposed: dict[str, frozenset[str]] = {}

    for module_name in sorted(compiled):
        module_tests = compiled[module_name]
        exposed = exposed_by_file[module_tests.source_file]
        confirmed, missing = partition_tests(module_tests.declarations(), exposed)

        if missing:
            unexposed[module_name] = missing
        if confirmed:
            modules.append(
                ReconciledModule(
                    module_name=module_name,
                    source_file=module_tests.source_file,
                    confirmed=confirmed,
                )
            )

    return ReconciliationResult(modules=modules, unexposed=unexposed)


def reconcile_or_raise(
    compiled: Mapping[str, ModuleTests],
    exposed_by_file: Mapping[Path, ExposedSet],
) -> ReconciliationResult:
    """reconcile，有任何未 expose 的 Test 即 raise。

    Raises:
        UnexposedTestsError: 至少一個 module 有未 expose 的 Test。
    """
    result = reconcile(compiled, exposed_by_file)
    if not result.ok:
        raise UnexposedTestsError(result.unexposed)
    return result
