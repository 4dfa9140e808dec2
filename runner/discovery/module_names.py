"""Module Name Resolver：由檔案路徑推導 module 名稱。

對每個 (檔案, source directory) 組合，若 source directory 是檔案路徑的
嚴格前綴，去除前綴與副檔名後以 ``.`` 串接路徑元件，即為候選 module 名稱。
不做任何目錄走訪；檔案清單由呼叫端提供。
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)

_UPPER_NAME_RE = re.compile(r"^[A-Z][A-Za-z0-9_]*$")


def is_upper_name(segment: str) -> bool:
    """判斷是否為合法的 module 名稱片段（大寫開頭的識別字）。"""
    return _UPPER_NAME_RE.match(segment) is not None


def candidate_module_name(source_file: Path, source_dir: Path) -> str | None:
    """由單一 source directory 推導檔案的候選 module 名稱。

    Args:
        source_file: 已正規化的絕對檔案路徑。
        source_dir: 已正規化的絕對 source directory。

    Returns:
        module 名稱；若 source_dir 不是檔案的嚴格前綴，
        或有片段不是大寫開頭的識別字，回傳 None。
    """
    if source_dir not in source_file.parents:
        return None

    parts = source_file.relative_to(source_dir).with_suffix("").parts
    if not parts:
        return None

    if not all(is_upper_name(part) for part in parts):
        logger.debug(
            "Ignoring %s under %s: %s is not a valid module name",
            source_file,
            source_dir,
            ".".join(parts),
        )
        return None

    return ".".join(parts)


def resolve_module_names(
    source_files: Iterable[Path],
    source_dirs: Iterable[Path],
) -> dict[str, Path]:
    """建立 module 名稱 → 檔案的對照表。

    同一檔案可能因多個 source directory 產生多個候選名稱，全部保留；
    interface dump 只會回報真正存在的那一個。若兩個不同檔案產生相同名稱，
    兩者皆從對照表中移除，這些 module 的 test 不會被執行。

    Args:
        source_files: 候選測試檔案（絕對、正規化路徑）。
        source_dirs: 專案宣告的 source directories（絕對、正規化路徑）。

    Returns:
        module 名稱 → 檔案路徑。
    """
    dirs = list(dict.fromkeys(source_dirs))
    table: dict[str, Path] = {}
    ambiguous: dict[str, set[Path]] = {}

    for source_file in sorted(set(source_files)):
        for source_dir in dirs:
            module_name = candidate_module_name(source_file, source_dir)
            if module_name is None:
                continue

            existing = table.get(module_name)
            if existing is None or existing == source_file:
                table[module_name] = source_file
                continue

            ambiguous.setdefault(module_name, {existing}).add(source_file)

    for module_name, files in sorted(ambiguous.items()):
        logger.warning(
            "Module name %s is declared by more than one file (%s); "
            "its tests will not be run",
            module_name,
            ", ".join(str(path) for path in sorted(files)),
        )
        table.pop(module_name, None)

    return table
