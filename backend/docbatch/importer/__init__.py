"""
数据导入模块 - 表格 → 行序列
"""

from .spreadsheet import SpreadsheetImporter, build_headers

__all__ = ["SpreadsheetImporter", "build_headers"]
