"""
表格导入器 - 上传的表格 → 行序列

职责：
1. 读取首行表头（空表头用 Column{n} 占位）
2. 逐行构造 {表头: 显示字符串}
3. 丢弃全空行，保持原始行序（不去重不排序）

依赖：
- openpyxl: xlsx/xlsm 读取（data_only=True 取公式计算值）
- csv: 逗号分隔文本

测试要点：
- test_import_xlsx: 表头与行读取
- test_blank_header_placeholder: 空表头占位
- test_drop_empty_rows: 全空行丢弃
- test_unsupported_format: 非表格文件报错
"""

from __future__ import annotations

import csv
import io
import logging
import zipfile
from pathlib import Path
from typing import Any, BinaryIO, Iterable, Iterator

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from ..interfaces import DataImportError, IDataImporter
from ..models import ImportResult, is_blank, normalize_cell

logger = logging.getLogger(__name__)

EXCEL_EXTS = {".xlsx", ".xlsm"}
CSV_EXTS = {".csv", ".txt"}


class SpreadsheetImporter(IDataImporter):
    """表格导入器实现"""

    def import_rows(self, file: BinaryIO | Path, filename: str | None = None) -> ImportResult:
        """解析表格文件"""
        name = filename or (file.name if isinstance(file, Path) else getattr(file, "name", "")) or ""
        suffix = Path(str(name)).suffix.lower()

        if suffix in EXCEL_EXTS:
            records = self._iter_excel(file)
        elif suffix in CSV_EXTS:
            records = self._iter_csv(file)
        else:
            raise DataImportError(f"不支持的表格格式: {name or '<unknown>'}")

        try:
            result = self._build(records)
        except DataImportError:
            raise
        except (InvalidFileException, zipfile.BadZipFile, KeyError, UnicodeDecodeError, csv.Error) as e:
            raise DataImportError(f"表格解析失败: {name}: {e}") from e

        logger.info(f"表格导入完成: {name} 列={len(result.columns)} 行={len(result.rows)}")
        return result

    # ------------------------------------------------------------------
    # 读取
    # ------------------------------------------------------------------
    @staticmethod
    def _iter_excel(file: BinaryIO | Path) -> Iterator[tuple[Any, ...]]:
        source = str(file) if isinstance(file, Path) else file
        wb = load_workbook(source, read_only=True, data_only=True)
        try:
            ws = wb.active
            if ws is None:
                raise DataImportError("工作簿没有可用的工作表")
            yield from ws.iter_rows(values_only=True)
        finally:
            wb.close()

    @staticmethod
    def _iter_csv(file: BinaryIO | Path) -> Iterator[list[str]]:
        if isinstance(file, Path):
            raw = file.read_bytes()
        else:
            raw = file.read()
        # utf-8-sig 兼容 Excel 导出的 BOM
        text = raw.decode("utf-8-sig") if isinstance(raw, bytes) else raw
        yield from csv.reader(io.StringIO(text))

    # ------------------------------------------------------------------
    # 构造
    # ------------------------------------------------------------------
    @staticmethod
    def _build(records: Iterable[Iterable[Any]]) -> ImportResult:
        table = [list(record or []) for record in records]
        if not table:
            return ImportResult()

        # 有效列宽 = 任意行最后一个非空单元格的位置
        width = 0
        for record in table:
            for i in range(len(record), 0, -1):
                if not is_blank(record[i - 1]):
                    width = max(width, i)
                    break

        header_row = table[0][:width]
        header_row += [None] * (width - len(header_row))
        headers = build_headers(header_row)

        rows: list[dict[str, str]] = []
        for record in table[1:]:
            cells = record[:width]
            cells += [None] * (width - len(cells))
            if all(is_blank(c) for c in cells):
                continue
            row: dict[str, str] = {}
            for header, cell in zip(headers, cells):
                row[header] = normalize_cell(cell)
            rows.append(row)

        # 同名表头后者覆盖前者，columns 与行的键保持一致
        columns = list(dict.fromkeys(headers))
        return ImportResult(rows=rows, columns=columns)


def build_headers(header_cells: list[Any]) -> list[str]:
    """表头归一化：空单元格用 Column{n}（n从1开始）"""
    headers = []
    for i, cell in enumerate(header_cells, start=1):
        text = normalize_cell(cell).strip()
        headers.append(text or f"Column{i}")
    return headers
