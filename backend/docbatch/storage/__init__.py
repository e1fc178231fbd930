"""
存储模块 - 源文档落盘与路径解析
"""

from .document_store import DocumentStore

__all__ = ["DocumentStore"]
