"""External tool 抽象：compiler、interface dump 工具、runtime 皆為外部 process。

每個外部工具只透過 ``start(args) -> RunningProcess`` 暴露：
1. ``RunningProcess.wait()`` 取得 exit code / stdout / stderr
2. ``RunningProcess.kill()`` 強制終止（含整個 process group）

Orchestrator 只依賴此介面，測試可用 fake 取代真實 process。
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    """外部 process 執行結束後的結果。

    Attributes:
        exit_code: 程式結束碼。
        stdout: 標準輸出。
        stderr: 標準錯誤。
    """

    exit_code: int = -1
    stdout: str = ""
    stderr: str = ""

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


class RunningProcess(ABC):
    """執行中的外部 process handle。"""

    @abstractmethod
    def wait(self) -> ProcessResult:
        """等待 process 結束並回傳結果。

        Raises:
            OSError: 讀取 process 輸出失敗。
        """

    @abstractmethod
    def kill(self) -> None:
        """強制終止 process；已結束時不做任何事。"""


class ExternalTool(ABC):
    """外部工具抽象基底類別。"""

    @property
    @abstractmethod
    def executable(self) -> str:
        """工具執行檔路徑或名稱（錯誤訊息用）。"""

    @abstractmethod
    def start(self, args: Sequence[str], cwd: Path | None = None) -> RunningProcess:
        """啟動工具。

        Args:
            args: 命令列參數（不含執行檔本身）。
            cwd: 工作目錄。

        Returns:
            RunningProcess。

        Raises:
            OSError: 無法啟動（如找不到執行檔）。
        """

    def run(self, args: Sequence[str], cwd: Path | None = None) -> ProcessResult:
        """啟動並等待工具結束。"""
        return self.start(args, cwd).wait()


# ---------------------------------------------------------------------------
# subprocess 實作
# ---------------------------------------------------------------------------


def _terminate_process_group(proc: subprocess.Popen, sig: int) -> None:
    """對 process 所屬的 process group 送出 signal。"""
    pid = proc.pid
    if not pid or pid <= 0:
        return

    killpg = getattr(os, "killpg", None)
    if killpg is not None:
        try:
            killpg(pid, sig)
            return
        except ProcessLookupError:
            return
        except PermissionError:
            # 退回只終止 process 本身
            pass

    try:
        proc.send_signal(sig)
    except ProcessLookupError:
        pass


class _PopenProcess(RunningProcess):
    def __init__(self, proc: subprocess.Popen) -> None:
        self._proc = proc

    def wait(self) -> ProcessResult:
        stdout, stderr = self._proc.communicate()
        return ProcessResult(
            exit_code=self._proc.returncode,
            stdout=stdout or "",
            stderr=stderr or "",
        )

    def kill(self) -> None:
        if self._proc.poll() is not None:
            return
        logger.debug("Killing process %d", self._proc.pid)
        _terminate_process_group(self._proc, getattr(signal, "SIGKILL", signal.SIGTERM))
        self._proc.wait()


@dataclass
class SubprocessTool(ExternalTool):
    """以 subprocess 啟動的外部工具。

    每個 process 放在獨立的 session（process group），kill 時連同子 process 一起終止。

    Attributes:
        path: 執行檔路徑或 PATH 上的名稱。
        capture_output: 是否擷取 stdout/stderr；runtime worker 直接輸出到終端機。
        env: 額外的環境變數。
    """

    path: str
    capture_output: bool = True
    env: dict[str, str] = field(default_factory=dict)

    @property
    def executable(self) -> str:
        return self.path

    def start(self, args: Sequence[str], cwd: Path | None = None) -> RunningProcess:
        command = [self.path, *args]
        logger.debug("Starting %s", " ".join(command))

        env = None
        if self.env:
            env = os.environ.copy()
            env.update(self.env)

        pipe = subprocess.PIPE if self.capture_output else None
        proc = subprocess.Popen(
            command,
            cwd=str(cwd) if cwd is not None else None,
            stdout=pipe,
            stderr=pipe,
            text=True,
            errors="replace",
            env=env,
            start_new_session=True,
        )
        return _PopenProcess(proc)
