"""Exposing-List Scanner：不經 compiler 取得 module header 的 exposing list。

以逐行的有限狀態機讀取檔案開頭：

    AWAITING_MODULE_KEYWORD → AWAITING_EXPOSING_KEYWORD → AWAITING_OPEN_PAREN
        → ACCUMULATING_UNTIL_BALANCED → DONE

每一行先去除註解（追蹤巢狀 ``{- -}`` 深度），去除後為空白的行直接略過。
讀到 EOF 仍未 DONE 即為解析失敗。
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from enum import Enum
from pathlib import Path

from shared.discovery_types import ExposedSet
from shared.problems import (
    ExportsReadError,
    HeaderParseError,
    MissingModuleDeclarationError,
)

logger = logging.getLogger(__name__)

_MODULE_DECLARATION_RE = re.compile(r"^(?:port\s+|effect\s+)?module(?=\s|$)")
_EXPOSING_RE = re.compile(r"\bexposing\b")

EXPOSE_ALL = ".."


class ScanState(str, Enum):
    """Scanner 狀態。"""

    AWAITING_MODULE_KEYWORD = "awaiting_module_keyword"
    AWAITING_EXPOSING_KEYWORD = "awaiting_exposing_keyword"
    AWAITING_OPEN_PAREN = "awaiting_open_paren"
    ACCUMULATING_UNTIL_BALANCED = "accumulating_until_balanced"
    DONE = "done"


def strip_comments(line: str, block_comment_depth: int) -> tuple[str, int]:
    """去除單行中的註解。

    ``--`` 只在不處於 block comment 時有效；``{-`` / ``-}`` 可巢狀。

    Args:
        line: 原始行內容。
        block_comment_depth: 進入此行前的 block comment 深度。

    Returns:
        (去除註解後的內容, 此行結束時的 block comment 深度)。
    """
    kept: list[str] = []
    depth = block_comment_depth
    opened_on_line = False
    index = 0
    length = len(line)

    while index < length:
        if depth == 0 and line.startswith("--", index):
            break
        if line.startswith("{-", index):
            if depth == 0:
                opened_on_line = True
            depth += 1
            index += 2
            continue
        if depth > 0 and line.startswith("-}", index):
            depth -= 1
            index += 2
            # 同一行內完整移除的 block comment 以一個空白取代
            if depth == 0 and opened_on_line:
                kept.append(" ")
                opened_on_line = False
            continue
        if depth == 0:
            kept.append(line[index])
        index += 1

    return "".join(kept), depth


def split_exposing(content: str) -> ExposedSet:
    """將括號內的 exposing 內容切成名稱集合。

    只在最外層逗號切割，``Type(..)`` 之類的巢狀括號保持完整。

    Args:
        content: 括號內的內容（不含外層括號）。

    Returns:
        ExposedSet；內容為 ``..`` 時為 expose 全部。
    """
    if content.strip() == EXPOSE_ALL:
        return ExposedSet.everything()

    names: set[str] = set()
    depth = 0
    current: list[str] = []
    for char in content:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif char == "," and depth == 0:
            names.add("".join(current).strip())
            current = []
            continue
        current.append(char)
    names.add("".join(current).strip())
    names.discard("")

    return ExposedSet.of(names)


class ExposingScanner:
    """單一檔案的 exposing list 狀態機。

    以 ``feed`` 逐行餵入內容，``finish`` 取得結果。

    Attributes:
        path: 來源檔案路徑，只用於錯誤訊息。
        state: 目前狀態。
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path
        self.state = ScanState.AWAITING_MODULE_KEYWORD
        self._block_comment_depth = 0
        self._open_parens = 0
        self._closed_parens = 0
        self._buffer: list[str] = []
        self._result: ExposedSet | None = None

    @property
    def done(self) -> bool:
        return self.state is ScanState.DONE

    def feed(self, raw_line: str) -> bool:
        """處理一行內容。

        Args:
            raw_line: 原始行內容（可含換行字元）。

        Returns:
            是否已完成（DONE）。

        Raises:
            MissingModuleDeclarationError: 第一個有內容的行不是 module 宣告。
        """
        if self.done:
            return True

        line, self._block_comment_depth = strip_comments(
            raw_line.rstrip("\r\n"), self._block_comment_depth
        )
        if not line.strip():
            return False

        remaining: str | None = line
        while remaining is not None and not self.done:
            remaining = self._step(remaining)

        return self.done

    def finish(self) -> ExposedSet:
        """取得掃描結果。

        Raises:
            HeaderParseError: 尚未讀到完整的 module header（EOF 前未平衡）。
        """
        if self._result is None:
            raise HeaderParseError(self.path)
        return self._result

    def _step(self, text: str) -> str | None:
        """依目前狀態處理剩餘文字；回傳未消耗的部分，None 代表此行已用完。"""
        if self.state is ScanState.AWAITING_MODULE_KEYWORD:
            match = _MODULE_DECLARATION_RE.match(text)
            if match is None:
                raise MissingModuleDeclarationError(self.path)
            self.state = ScanState.AWAITING_EXPOSING_KEYWORD
            return text[match.end() :]

        if self.state is ScanState.AWAITING_EXPOSING_KEYWORD:
            match = _EXPOSING_RE.search(text)
            if match is None:
                return None
            self.state = ScanState.AWAITING_OPEN_PAREN
            return text[match.end() :]

        if self.state is ScanState.AWAITING_OPEN_PAREN:
            paren_index = text.find("(")
            if paren_index == -1:
                return None
            self._open_parens = 1
            self.state = ScanState.ACCUMULATING_UNTIL_BALANCED
            return text[paren_index + 1 :]

        if self.state is ScanState.ACCUMULATING_UNTIL_BALANCED:
            self._accumulate(text)
            return None

        return None

    def _accumulate(self, text: str) -> None:
        for index, char in enumerate(text):
            if char == "(":
                self._open_parens += 1
            elif char == ")":
                self._closed_parens += 1
                if self._closed_parens == self._open_parens:
                    self._buffer.append(text[:index])
                    self._result = split_exposing(" ".join(self._buffer))
                    self.state = ScanState.DONE
                    return
        self._buffer.append(text)


def scan_lines(lines: Iterable[str], path: Path | None = None) -> ExposedSet:
    """對一串行內容執行掃描。

    Args:
        lines: 行內容（通常是開啟中的檔案）。
        path: 來源檔案路徑（錯誤訊息用）。

    Returns:
        ExposedSet。
    """
    scanner = ExposingScanner(path)
    for line in lines:
        if scanner.feed(line):
            break
    return scanner.finish()


def scan_text(text: str, path: Path | None = None) -> ExposedSet:
    """掃描完整文字內容。"""
    return scan_lines(text.splitlines(), path)


def scan_file(path: Path) -> ExposedSet:
    """讀取檔案並取得其 exposing list。

    只讀到 module header 結束為止。

    Args:
        path: 來源檔案路徑。

    Returns:
        ExposedSet。

    Raises:
        ExportsReadError: 檔案無法開啟或讀取。
        MissingModuleDeclarationError: 缺少 module 宣告。
        HeaderParseError: EOF 前 header 未完整。
    """
    try:
        with path.open(encoding="utf-8") as handle:
            exposed = scan_lines(handle, path)
    except (OSError, UnicodeDecodeError) as exc:
        raise ExportsReadError(path, exc) from exc

    logger.debug(
        "Scanned %s: %s",
        path,
        "exposing (..)" if exposed.exposes_all else sorted(exposed.names),
    )
    return exposed
