"""
批次模型 - 批量生成的状态机与结果

状态流转：
    IDLE → VALIDATING_INPUT → BACKGROUND_RESOLVED → RENDERING_ROWS → COMPLETED
    任一非终态 → FAILED
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class BatchState(str, Enum):
    """批次状态"""
    IDLE = "idle"
    VALIDATING_INPUT = "validating_input"
    BACKGROUND_RESOLVED = "background_resolved"
    RENDERING_ROWS = "rendering_rows"
    COMPLETED = "completed"
    FAILED = "failed"


_TRANSITIONS: dict[BatchState, set[BatchState]] = {
    BatchState.IDLE: {BatchState.VALIDATING_INPUT, BatchState.FAILED},
    BatchState.VALIDATING_INPUT: {BatchState.BACKGROUND_RESOLVED, BatchState.FAILED},
    BatchState.BACKGROUND_RESOLVED: {BatchState.RENDERING_ROWS, BatchState.FAILED},
    BatchState.RENDERING_ROWS: {BatchState.COMPLETED, BatchState.FAILED},
    BatchState.COMPLETED: set(),
    BatchState.FAILED: set(),
}

# 告警标记
FLAG_BACKGROUND_UNAVAILABLE = "background_unavailable"
FLAG_SOURCE_MISSING = "source_document_missing"
FLAG_INVALID_OUTPUT = "invalid_output_dropped"
FLAG_EMPTY_RESULT = "empty_result"
FLAG_ROW_FAILED = "row_failed"


class GeneratedDocument(BaseModel):
    """单行生成结果"""
    filename: str
    index: int = Field(..., ge=1, description="行号（从1开始）")
    base64: str


class RowFailure(BaseModel):
    """尽力而为模式下的单行失败记录"""
    index: int = Field(..., ge=1)
    error: str


class BatchResult(BaseModel):
    """批量生成结果"""
    success: bool
    message: str = ""
    documents: list[GeneratedDocument] = Field(default_factory=list)
    failed_rows: list[RowFailure] = Field(default_factory=list)
    flags: list[str] = Field(default_factory=list)

    def to_response(self) -> dict[str, Any]:
        """接口响应结构 {success, message, pdfs}"""
        payload: dict[str, Any] = {
            "success": self.success,
            "message": self.message,
            "pdfs": [doc.model_dump() for doc in self.documents],
        }
        if self.failed_rows:
            payload["failed_rows"] = [f.model_dump() for f in self.failed_rows]
        return payload


class Batch(BaseModel):
    """批次运行记录"""
    batch_id: str
    row_count: int = 0
    state: BatchState = BatchState.IDLE
    background_kind: str | None = None

    flags: list[str] = Field(default_factory=list, description="告警标记")
    errors: list[str] = Field(default_factory=list, description="错误信息")

    started_at: datetime | None = None
    finished_at: datetime | None = None

    def transition(self, target: BatchState) -> None:
        """状态迁移（非法迁移抛 ValueError）"""
        if target not in _TRANSITIONS[self.state]:
            raise ValueError(f"非法状态迁移: {self.state.value} → {target.value}")
        self.state = target

    def mark_validating(self) -> None:
        self.started_at = datetime.now()
        self.transition(BatchState.VALIDATING_INPUT)

    def mark_background_resolved(self, kind: str) -> None:
        self.background_kind = kind
        self.transition(BatchState.BACKGROUND_RESOLVED)

    def mark_rendering(self) -> None:
        self.transition(BatchState.RENDERING_ROWS)

    def mark_completed(self) -> None:
        self.finished_at = datetime.now()
        self.transition(BatchState.COMPLETED)

    def mark_failed(self, error: str) -> None:
        self.finished_at = datetime.now()
        self.errors.append(error)
        self.transition(BatchState.FAILED)

    def add_flag(self, flag: str) -> None:
        """添加告警标记（不中断）"""
        if flag not in self.flags:
            self.flags.append(flag)
