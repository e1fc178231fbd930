"""
上传结果模型 - 源文档落盘信息
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class PageDimensions(BaseModel):
    """页面尺寸（毫米）。未从文件读取，固定返回A4"""
    width: float = 210.0
    height: float = 297.0


class StoredDocument(BaseModel):
    """已存储的源文档"""
    file_path: str = Field(..., description="相对存储根目录的路径")
    file_url: str = Field(..., description="公开访问URL")
    dimensions: PageDimensions = Field(default_factory=PageDimensions)
