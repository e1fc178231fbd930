"""
流水线模块 - 批量生成编排

子模块：
- orchestrator: 批次状态机（校验 → 背景 → 逐行渲染 → 结果校验）
"""

from .orchestrator import BatchOrchestrator, make_filename, microtime_us

__all__ = [
    "BatchOrchestrator",
    "make_filename",
    "microtime_us",
]
