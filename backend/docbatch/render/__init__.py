"""
渲染模块 - 单位换算/背景解析/标记投影/PDF渲染

子模块：
- units: 毫米 → 像素/点
- rasterizer: 源文档第1页光栅化（Ghostscript/pdftoppm）
- background: 背景策略（页图 → 光栅化链 → 无背景）
- markup: 字段投影为定位HTML
- pdf_renderer: HTML → PDF（WeasyPrint）
"""

from .background import BackgroundResolver
from .markup import MarkupProjector, build_field_style, resolve_value
from .pdf_renderer import WeasyPrintRenderer
from .rasterizer import GhostscriptRasterizer, PdftoppmRasterizer, build_rasterizers
from .units import MM_TO_PT, MM_TO_PX, font_size_pt, mm_to_pt, mm_to_px

__all__ = [
    "BackgroundResolver",
    "MarkupProjector",
    "build_field_style",
    "resolve_value",
    "WeasyPrintRenderer",
    "GhostscriptRasterizer",
    "PdftoppmRasterizer",
    "build_rasterizers",
    "MM_TO_PX",
    "MM_TO_PT",
    "mm_to_px",
    "mm_to_pt",
    "font_size_pt",
]
