"""執行環境設定：``.env`` 與環境變數。

CLI 參數優先於這裡讀到的值。
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel

from shared.problems import InvalidIntegerError

ENV_COMPILER = "ELM_TEST_COMPILER"
ENV_RUNTIME = "ELM_TEST_RUNTIME"
ENV_INTERFACE_DUMP = "ELM_TEST_INTERFACE_DUMP"
ENV_WORKERS = "ELM_TEST_WORKERS"
ENV_LOG_FILE = "ELM_TEST_LOG_FILE"

DEFAULT_COMPILER = "elm"
DEFAULT_RUNTIME = "node"


def parse_integer(flag_name: str, value: str, positive: bool = False) -> int:
    """解析整數參數。

    Args:
        flag_name: 參數名稱（錯誤訊息用）。
        value: 原始字串。
        positive: 是否必須大於 0。

    Raises:
        InvalidIntegerError: 不是整數，或 positive 時不大於 0。
    """
    try:
        number = int(value.strip())
    except ValueError as exc:
        raise InvalidIntegerError(flag_name, value) from exc
    if positive and number <= 0:
        raise InvalidIntegerError(flag_name, value)
    return number


class RunnerSettings(BaseModel):
    """由環境變數讀取的設定。

    Attributes:
        compiler: compiler 執行檔。
        runtime: runtime worker 執行檔。
        interface_dump: interface dump 工具路徑；None 時使用執行檔旁的工具。
        workers: runtime worker 數量；None 時使用 CPU 核心數。
        log_file: 額外的 log 檔路徑。
    """

    compiler: str = DEFAULT_COMPILER
    runtime: str = DEFAULT_RUNTIME
    interface_dump: str | None = None
    workers: int | None = None
    log_file: Path | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RunnerSettings:
        """由環境變數建立設定（空字串視為未設定）。

        Raises:
            InvalidIntegerError: ``ELM_TEST_WORKERS`` 不是正整數。
        """
        env = os.environ if environ is None else environ

        workers = None
        if env.get(ENV_WORKERS):
            workers = parse_integer(ENV_WORKERS, env[ENV_WORKERS], positive=True)

        log_file = env.get(ENV_LOG_FILE)
        return cls(
            compiler=env.get(ENV_COMPILER) or DEFAULT_COMPILER,
            runtime=env.get(ENV_RUNTIME) or DEFAULT_RUNTIME,
            interface_dump=env.get(ENV_INTERFACE_DUMP) or None,
            workers=workers,
            log_file=Path(log_file) if log_file else None,
        )


def load_settings() -> RunnerSettings:
    """載入目前目錄（或上層）的 ``.env`` 後讀取環境變數。"""
    load_dotenv(find_dotenv(usecwd=True))
    return RunnerSettings.from_env()
