"""Test discovery 模組。

提供 discovery pipeline 的公開介面：
- ``DiscoveryPipeline``: 串接 build、掃描、reconcile、產生程式與 dispatch。
- ``SubprocessTool``: 以 subprocess 執行的外部工具。
- ``ElmCompiler`` / ``InterfaceReader`` / ``WorkerDispatcher``: pipeline 的外部協作者。
"""

from __future__ import annotations

from runner.discovery.compiler import ElmCompiler
from runner.discovery.dispatcher import WorkerDispatcher, default_worker_count
from runner.discovery.interface_reader import InterfaceReader, locate_interface_dump
from runner.discovery.pipeline import DiscoveryPipeline, PipelineStage
from runner.discovery.program_generator import ProgramGenerator
from runner.discovery.tools import SubprocessTool

__all__ = [
    "DiscoveryPipeline",
    "ElmCompiler",
    "InterfaceReader",
    "PipelineStage",
    "ProgramGenerator",
    "SubprocessTool",
    "WorkerDispatcher",
    "default_worker_count",
    "locate_interface_dump",
]
