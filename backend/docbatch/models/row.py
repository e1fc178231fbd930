"""
行数据模型 - 单元格取值与显示字符串归一化

单元格取值是封闭的变体：标量 | 标量列表 | 映射，统一经 normalize_cell 转为显示字符串。
"""

from __future__ import annotations

import datetime as dt
import json
from decimal import Decimal
from typing import Any, Union

from pydantic import BaseModel, Field

Scalar = Union[str, int, float, bool, Decimal, dt.date, dt.datetime, dt.time, None]
CellValue = Union[Scalar, list[Scalar], dict[str, Any]]

# 表头 → 单元格取值（保持表头顺序）
Row = dict[str, CellValue]


def _scalar_to_str(value: Scalar) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float):
        # 整数值的浮点数去掉 .0（表格里 12 常被读成 12.0）
        return str(int(value)) if value.is_integer() else str(value)
    if isinstance(value, dt.datetime):
        if value.time() == dt.time(0, 0):
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, (dt.date, dt.time)):
        return value.isoformat()
    return str(value)


def normalize_cell(value: CellValue) -> str:
    """单元格取值 → 显示字符串"""
    if isinstance(value, (list, tuple)):
        # 嵌套结构不参与拼接
        return ", ".join(
            _scalar_to_str(item) for item in value if not isinstance(item, (list, tuple, dict))
        )
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)
    return _scalar_to_str(value)


def is_blank(value: CellValue) -> bool:
    """归一化后是否为空"""
    return not normalize_cell(value).strip()


class ImportResult(BaseModel):
    """表格导入结果"""

    rows: list[dict[str, str]] = Field(default_factory=list)
    columns: list[str] = Field(default_factory=list)
