"""
数据模型层 - 定义系统核心数据结构

所有模块通过这些模型交互，实现解耦：
- Template: 模板/页面/字段/样式
- Row / ImportResult: 表格行与归一化
- BackgroundSource: 批次共享的背景源
- Batch / BatchResult: 批次状态机与生成结果
- StoredDocument: 源文档落盘信息
"""

from .background import BackgroundKind, BackgroundSource, to_data_uri
from .batch import (
    FLAG_BACKGROUND_UNAVAILABLE,
    FLAG_EMPTY_RESULT,
    FLAG_INVALID_OUTPUT,
    FLAG_ROW_FAILED,
    FLAG_SOURCE_MISSING,
    Batch,
    BatchResult,
    BatchState,
    GeneratedDocument,
    RowFailure,
)
from .row import CellValue, ImportResult, Row, is_blank, normalize_cell
from .template import FieldStyle, FieldType, Template, TemplateField, TemplatePage, TextAlign
from .upload import PageDimensions, StoredDocument

__all__ = [
    "Template",
    "TemplatePage",
    "TemplateField",
    "FieldStyle",
    "FieldType",
    "TextAlign",
    "Row",
    "CellValue",
    "ImportResult",
    "normalize_cell",
    "is_blank",
    "BackgroundSource",
    "BackgroundKind",
    "to_data_uri",
    "Batch",
    "BatchState",
    "BatchResult",
    "GeneratedDocument",
    "RowFailure",
    "FLAG_BACKGROUND_UNAVAILABLE",
    "FLAG_SOURCE_MISSING",
    "FLAG_INVALID_OUTPUT",
    "FLAG_EMPTY_RESULT",
    "FLAG_ROW_FAILED",
    "StoredDocument",
    "PageDimensions",
]
