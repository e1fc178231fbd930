"""
PDF渲染器 - HTML → PDF 字节

职责：
1. 按点(pt)声明固定页面尺寸（默认A4），页边距为0
2. 允许加载远程图片（URL背景），可通过配置关闭
3. 字体子集化，嵌入图片分辨率上限 200 DPI
4. 排版引擎的任何异常统一包装为 RenderError

依赖：
- weasyprint: HTML/CSS 排版（不执行脚本）

测试要点：
- test_page_stylesheet: 页面尺寸换算为点
- test_render_error_wrapped: 引擎异常包装
- test_remote_blocked: 关闭远程加载时拒绝 http(s)
"""

from __future__ import annotations

import logging
from typing import Any

from ..config import RenderConfig, get_config
from ..interfaces import IDocumentRenderer, RenderError
from .units import fmt_number, mm_to_pt

logger = logging.getLogger(__name__)

REMOTE_SCHEMES = ("http://", "https://")


class WeasyPrintRenderer(IDocumentRenderer):
    """WeasyPrint 渲染器实现"""

    def __init__(self, config: RenderConfig | None = None):
        self.config = config or get_config().render

    def render(self, markup: str, page_width_mm: float, page_height_mm: float) -> bytes:
        """渲染单个PDF"""
        try:
            from weasyprint import CSS, HTML
            from weasyprint.urls import default_url_fetcher
        except (ImportError, OSError) as e:
            raise RenderError(f"WeasyPrint不可用: {e}") from e

        allow_remote = self.config.allow_remote

        def url_fetcher(url: str, *args: Any, **kwargs: Any) -> dict:
            if not allow_remote and url.startswith(REMOTE_SCHEMES):
                raise ValueError(f"远程资源加载已禁用: {url}")
            return default_url_fetcher(url, *args, **kwargs)

        try:
            page_css = CSS(string=self.page_stylesheet(page_width_mm, page_height_mm))
            document = HTML(string=markup, base_url=self.config.base_url, url_fetcher=url_fetcher)
            pdf_bytes = document.write_pdf(
                stylesheets=[page_css],
                dpi=self.config.image_dpi,
                full_fonts=not self.config.font_subsetting,
            )
        except Exception as e:
            raise RenderError(f"PDF渲染失败: {e}") from e

        if not pdf_bytes:
            raise RenderError("PDF渲染失败: 排版引擎无输出")
        return pdf_bytes

    @staticmethod
    def page_stylesheet(page_width_mm: float, page_height_mm: float) -> str:
        """固定页面尺寸（点），页边距为0"""
        width_pt = fmt_number(mm_to_pt(page_width_mm))
        height_pt = fmt_number(mm_to_pt(page_height_mm))
        return f"@page {{ size: {width_pt}pt {height_pt}pt; margin: 0; }}"
