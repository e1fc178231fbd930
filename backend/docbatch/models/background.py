"""
背景源模型 - 无背景 | 内嵌图片(data URI) | 光栅化文件

每批次解析一次，所有行共用（解析后只读）
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict


class BackgroundKind(str, Enum):
    """背景类型"""
    NONE = "none"
    EMBEDDED = "embedded"
    RASTERIZED = "rasterized"


def to_data_uri(payload: str) -> str:
    """原始 base64 包装为 data URI（已是 data URI 则原样返回）"""
    payload = payload.strip()
    if payload.startswith("data:"):
        return payload
    # JPEG 的 base64 以 /9j/ 开头，其余按 PNG 处理
    mime = "image/jpeg" if payload.startswith("/9j/") else "image/png"
    return f"data:{mime};base64,{payload}"


class BackgroundSource(BaseModel):
    """背景源"""

    model_config = ConfigDict(frozen=True)

    kind: BackgroundKind = BackgroundKind.NONE
    data_uri: str | None = None
    path: Path | None = None
    url: str | None = None

    @classmethod
    def none(cls) -> BackgroundSource:
        return cls()

    @classmethod
    def embedded(cls, payload: str) -> BackgroundSource:
        return cls(kind=BackgroundKind.EMBEDDED, data_uri=to_data_uri(payload))

    @classmethod
    def rasterized(cls, path: Path, url: str | None = None) -> BackgroundSource:
        return cls(kind=BackgroundKind.RASTERIZED, path=path, url=url)

    @property
    def is_none(self) -> bool:
        return self.kind == BackgroundKind.NONE

    @property
    def src(self) -> str | None:
        """可在HTML中引用的图片源"""
        if self.kind == BackgroundKind.EMBEDDED:
            return self.data_uri
        if self.kind == BackgroundKind.RASTERIZED:
            if self.url:
                return self.url
            return self.path.resolve().as_uri() if self.path else None
        return None
