"""Elm 專案：找出專案根目錄、讀取 elm.json、收集候選測試檔。"""

from __future__ import annotations

import glob
import json
import logging
import os
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import pathspec
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.storage.artifacts import GeneratedCodeLayout
from shared.problems import (
    ChdirError,
    InvalidCwdError,
    InvalidSourceDirectoriesError,
    InvalidSourceDirectoryError,
    MalformedManifestError,
    MissingManifestError,
    ReadManifestError,
    ReadTestFilesError,
)

logger = logging.getLogger(__name__)

MANIFEST_NAME = "elm.json"
DEFAULT_TESTS_DIR = "tests"
PACKAGE_SOURCE_DIR = "src"
ELM_EXTENSION = ".elm"
IGNORE_PATTERNS = [
    "elm-stuff/",
    "node_modules/",
]

_IGNORE_SPEC = pathspec.PathSpec.from_lines("gitwildmatch", IGNORE_PATTERNS)


class ProjectType(str, Enum):
    APPLICATION = "application"
    PACKAGE = "package"


class ProjectManifest(BaseModel):
    """elm.json 中 discovery 需要的欄位。

    Attributes:
        project_type: ``application`` 或 ``package``。
        source_directories: application 的 source directories（相對於專案根目錄）。
    """

    model_config = ConfigDict(populate_by_name=True)

    project_type: ProjectType = Field(default=ProjectType.APPLICATION, alias="type")
    source_directories: list[str] | None = Field(
        default=None, alias="source-directories"
    )

    @field_validator("source_directories")
    @classmethod
    def _not_empty(cls, value: list[str] | None) -> list[str] | None:
        if value is not None and not value:
            raise ValueError("source-directories must contain at least one item")
        return value


# ---------------------------------------------------------------------------
# 專案根目錄
# ---------------------------------------------------------------------------


def current_directory() -> Path:
    """取得目前工作目錄。

    Raises:
        InvalidCwdError: 目前目錄已不存在或無法存取。
    """
    try:
        return Path.cwd().resolve()
    except OSError as exc:
        raise InvalidCwdError(exc) from exc


def find_project_root(start: Path) -> Path:
    """由 start 往上找出最近的 elm.json 所在目錄。

    Raises:
        MissingManifestError: start 與所有上層目錄都沒有 elm.json。
    """
    for candidate in (start, *start.parents):
        if (candidate / MANIFEST_NAME).is_file():
            return candidate
    raise MissingManifestError(start)


def enter_project_root(project_root: Path) -> None:
    """切換工作目錄到專案根目錄。

    Raises:
        ChdirError: chdir 失敗。
    """
    try:
        os.chdir(project_root)
    except OSError as exc:
        raise ChdirError(project_root, exc) from exc
    logger.debug("Changed working directory to %s", project_root)


# ---------------------------------------------------------------------------
# elm.json
# ---------------------------------------------------------------------------


def read_manifest(project_root: Path) -> tuple[ProjectManifest, dict]:
    """讀取並驗證 elm.json。

    Args:
        project_root: 專案根目錄。

    Returns:
        (ProjectManifest, 原始 JSON 物件)。

    Raises:
        ReadManifestError: 檔案無法讀取。
        MalformedManifestError: 不是合法 JSON、不是 object，或 ``type`` 無效。
        InvalidSourceDirectoriesError: ``source-directories`` 缺少或不是字串 array。
    """
    path = project_root / MANIFEST_NAME
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ReadManifestError(path, exc) from exc

    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedManifestError(path, str(exc)) from exc

    if not isinstance(raw, dict):
        raise MalformedManifestError(path, "expected a JSON object")

    try:
        manifest = ProjectManifest.model_validate(raw)
    except ValidationError as exc:
        if any(error["loc"][:1] == ("source-directories",) for error in exc.errors()):
            raise InvalidSourceDirectoriesError(path) from exc
        raise MalformedManifestError(
            path, f"{exc.error_count()} invalid field(s)"
        ) from exc

    if (
        manifest.project_type is ProjectType.APPLICATION
        and manifest.source_directories is None
    ):
        raise InvalidSourceDirectoriesError(path)

    return manifest, raw


def resolve_source_directories(
    project_root: Path,
    manifest: ProjectManifest,
) -> list[Path]:
    """將 source directories 解析為絕對、正規化路徑。

    Package 專案固定使用 ``src``。專案的 ``tests/`` 目錄存在時一律加入。

    Raises:
        InvalidSourceDirectoryError: 某個 source directory 不存在或不是目錄。
    """
    if manifest.project_type is ProjectType.PACKAGE:
        declared = [PACKAGE_SOURCE_DIR]
    else:
        declared = list(manifest.source_directories or [])

    resolved: list[Path] = []
    for entry in declared:
        try:
            directory = (project_root / entry).resolve(strict=True)
        except OSError as exc:
            raise InvalidSourceDirectoryError(entry) from exc
        if not directory.is_dir():
            raise InvalidSourceDirectoryError(entry)
        resolved.append(directory)

    tests_dir = project_root / DEFAULT_TESTS_DIR
    if tests_dir.is_dir():
        resolved.append(tests_dir.resolve())

    return list(dict.fromkeys(resolved))


@dataclass
class ElmProject:
    """已載入的 Elm 專案。

    Attributes:
        root: 專案根目錄。
        manifest: 驗證過的 elm.json 欄位。
        raw_manifest: 原始 elm.json 內容。
        source_dirs: 絕對、正規化的 source directories（含 tests/）。
    """

    root: Path
    manifest: ProjectManifest
    raw_manifest: dict = field(default_factory=dict)
    source_dirs: list[Path] = field(default_factory=list)

    def generated_manifest(self, layout: GeneratedCodeLayout) -> dict:
        """產生 generated-code 目錄用的 elm.json 內容。

        原 elm.json 的其他欄位保持不變，``source-directories`` 改為
        產生程式的 src 目錄加上所有專案 source directories（絕對路徑）。
        """
        contents = dict(self.raw_manifest)
        contents["source-directories"] = [
            str(layout.generated_src_dir),
            *(str(directory) for directory in self.source_dirs),
        ]
        return contents


def load_project(project_root: Path) -> ElmProject:
    """讀取 elm.json 並解析 source directories。"""
    manifest, raw = read_manifest(project_root)
    source_dirs = resolve_source_directories(project_root, manifest)
    logger.info(
        "Loaded %s project with %d source director(y/ies)",
        manifest.project_type.value,
        len(source_dirs),
    )
    return ElmProject(
        root=project_root,
        manifest=manifest,
        raw_manifest=raw,
        source_dirs=source_dirs,
    )


# ---------------------------------------------------------------------------
# 候選測試檔
# ---------------------------------------------------------------------------


def _is_ignored(path: Path, base: Path) -> bool:
    try:
        rel_path = path.relative_to(base).as_posix()
    except ValueError:
        rel_path = path.as_posix().lstrip("/")
    if path.is_dir():
        rel_path += "/"
    return _IGNORE_SPEC.match_file(rel_path)


def _elm_files_in(directory: Path) -> list[Path]:
    return [
        path.resolve()
        for path in directory.rglob(f"*{ELM_EXTENSION}")
        if path.is_file() and not _is_ignored(path, directory)
    ]


def _expand_glob(pattern: Path, project_root: Path) -> list[Path]:
    files: list[Path] = []
    for match in sorted(glob.glob(str(pattern), recursive=True)):
        path = Path(match)
        if _is_ignored(path, project_root):
            continue
        if path.is_dir():
            files.extend(_elm_files_in(path))
        elif path.is_file():
            files.append(path.resolve())
    return files


def gather_test_files(
    paths: Sequence[str],
    project_root: Path,
    base_dir: Path | None = None,
) -> list[Path]:
    """依 CLI 參數收集候選測試檔。

    每個參數可以是檔案、目錄（遞迴收集所有 ``*.elm``），或不存在時視為 glob。
    ``elm-stuff/`` 與 ``node_modules/`` 一律略過。沒有參數時使用專案根目錄的 ``tests``。

    Args:
        paths: CLI 傳入的路徑參數。
        project_root: 專案根目錄。
        base_dir: 明確參數的相對路徑基準目錄；預設為專案根目錄。

    Returns:
        去除重複並排序的絕對路徑。

    Raises:
        ReadTestFilesError: 走訪目錄時發生 I/O 錯誤。
    """
    base = base_dir or project_root
    if paths:
        candidates = [base / raw for raw in paths]
    else:
        candidates = [project_root / DEFAULT_TESTS_DIR]
    found: set[Path] = set()

    try:
        for candidate in candidates:
            if candidate.is_dir():
                found.update(_elm_files_in(candidate))
            elif candidate.is_file():
                found.add(candidate.resolve())
            else:
                found.update(_expand_glob(candidate, project_root))
    except OSError as exc:
        raise ReadTestFilesError(exc) from exc

    files = sorted(found)
    logger.info("Found %d candidate test file(s)", len(files))
    return files
