"""
模块接口契约 - 定义各模块的抽象接口

设计原则：
1. 模块间通过接口通信，不直接依赖具体实现
2. 每个接口定义清晰的输入输出类型
3. 便于单元测试和mock替换（如注入假的光栅化器/渲染器）

使用方式：
    from docbatch.interfaces import IRasterizer

    class MyRasterizer(IRasterizer):
        name = "my-tool"

        def is_available(self) -> bool:
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

if TYPE_CHECKING:
    from .models import (
        BackgroundSource,
        BatchResult,
        ImportResult,
        Row,
        Template,
        TemplateField,
        TemplatePage,
    )


# ============================================================================
# 数据导入接口
# ============================================================================

class IDataImporter(ABC):
    """表格导入器接口 - 上传的表格 → 行序列"""

    @abstractmethod
    def import_rows(self, file: BinaryIO | Path, filename: str | None = None) -> ImportResult:
        """
        解析表格文件

        Args:
            file: 文件句柄或路径
            filename: 原始文件名（用于判断格式，句柄无名称时必填）

        Returns:
            ImportResult(rows=行列表, columns=表头顺序)

        Raises:
            DataImportError: 无法解析为表格数据
        """
        ...


# ============================================================================
# 渲染模块接口
# ============================================================================

class IRasterizer(ABC):
    """光栅化器接口 - 将源文档第1页转为图片"""

    name: str = "base"

    @abstractmethod
    def is_available(self) -> bool:
        """可用性探测（which/where 查找可执行文件）"""
        ...

    @abstractmethod
    def rasterize_first_page(self, pdf_path: Path, output_dir: Path) -> Path:
        """
        渲染第1页为 JPEG

        Args:
            pdf_path: 源文档路径
            output_dir: 输出目录（文件名由实现生成，保证唯一）

        Returns:
            生成的图片路径

        Raises:
            RasterizeError: 转换失败/超时
        """
        ...


class IBackgroundResolver(ABC):
    """背景解析器接口 - 决定背景策略并产出可引用的图片源"""

    @abstractmethod
    def resolve(
        self,
        source_document: Path | None,
        page_image: str | list[str] | None = None,
    ) -> BackgroundSource:
        """
        解析背景（每批次只调用一次）

        优先级：预计算页图 → 光栅化工具链 → 无背景
        任何失败都降级为无背景，不抛异常
        """
        ...


class IMarkupProjector(ABC):
    """标记投影器接口 - 字段+行数据 → 定位的HTML"""

    @abstractmethod
    def project(
        self,
        fields: list[TemplateField],
        row: Row,
        column_mapping: dict[str, str],
        background: BackgroundSource,
    ) -> str:
        """单页叠加：背景在下，字段在上（毫米坐标）"""
        ...

    @abstractmethod
    def project_pages(
        self,
        pages: list[TemplatePage],
        row: Row,
        column_mapping: dict[str, str],
    ) -> str:
        """多页模板：每个模板页对应一页输出（像素坐标）"""
        ...


class IDocumentRenderer(ABC):
    """文档渲染器接口 - HTML → PDF 字节"""

    @abstractmethod
    def render(self, markup: str, page_width_mm: float, page_height_mm: float) -> bytes:
        """
        渲染单个文档

        Raises:
            RenderError: 排版引擎抛出的任何异常
        """
        ...


# ============================================================================
# 批量编排接口
# ============================================================================

class IBatchOrchestrator(ABC):
    """批量编排器接口"""

    @abstractmethod
    def generate(
        self,
        template: Template,
        rows: list[Row],
        column_mapping: dict[str, str],
        source_document: Path | None = None,
        page_image: str | list[str] | None = None,
    ) -> BatchResult:
        """
        全有或全无：任一行渲染失败即整批失败

        Raises:
            InvalidTemplateError: 模板结构不合法（渲染前快速失败）
            BatchError: 背景解析/渲染阶段的硬失败
        """
        ...

    @abstractmethod
    def generate_best_effort(
        self,
        template: Template,
        rows: list[Row],
        column_mapping: dict[str, str],
        source_document: Path | None = None,
        page_image: str | list[str] | None = None,
    ) -> BatchResult:
        """尽力而为：单行失败记录到 failed_rows 后继续"""
        ...


# ============================================================================
# 异常定义
# ============================================================================

class DocBatchError(Exception):
    """基础异常"""
    pass


class DataImportError(DocBatchError):
    """表格导入错误"""
    pass


class InvalidTemplateError(DocBatchError):
    """模板结构错误"""
    pass


class RasterizeError(DocBatchError):
    """光栅化错误（由背景解析器吸收）"""
    pass


class RenderError(DocBatchError):
    """渲染错误"""
    pass


class BatchError(DocBatchError):
    """批量生成硬失败"""

    def __init__(self, message: str, row_index: int | None = None):
        super().__init__(message)
        self.row_index = row_index


class StorageError(DocBatchError):
    """文件存储错误"""
    pass
