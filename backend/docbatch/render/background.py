"""
背景解析器 - 决定背景策略并产出可引用的图片源

决策顺序：
1. 前端已提供页图（data URI 或原始 base64）→ 内嵌图片，无需服务端光栅化
2. 否则按顺序尝试光栅化工具（Ghostscript → pdftoppm），第一个成功者生效
3. 工具都不可用或都失败 → 无背景（记录告警，不中断批次）

测试要点：
- test_page_image_wins: 页图优先，不调用光栅化器
- test_first_available_rasterizer: 跳过不可用工具
- test_fallback_to_next_on_failure: 转换失败时降级到下一个工具
- test_no_tool_available: 全部不可用 → 无背景
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..config import StorageConfig, get_config
from ..interfaces import IBackgroundResolver, IRasterizer, RasterizeError
from ..models import BackgroundSource
from .rasterizer import build_rasterizers

logger = logging.getLogger(__name__)


class BackgroundResolver(IBackgroundResolver):
    """背景解析器实现"""

    def __init__(
        self,
        rasterizers: list[IRasterizer] | None = None,
        output_dir: Path | None = None,
        storage: StorageConfig | None = None,
    ):
        config = get_config()
        self.rasterizers = rasterizers if rasterizers is not None else build_rasterizers()
        self.storage = storage or config.storage
        self.output_dir = output_dir or (self.storage.storage_dir / self.storage.documents_subdir)

    def resolve(
        self,
        source_document: Path | None,
        page_image: str | list[str] | None = None,
    ) -> BackgroundSource:
        """解析背景（每批次调用一次）"""
        payload = self._pick_page_image(page_image)
        if payload:
            logger.info("使用前端提供的页图作为背景")
            return BackgroundSource.embedded(payload)

        if source_document is None:
            return BackgroundSource.none()

        if not source_document.exists():
            logger.warning(f"源文档不存在，跳过背景: {source_document}")
            return BackgroundSource.none()

        tried = False
        for rasterizer in self.rasterizers:
            if not rasterizer.is_available():
                logger.debug(f"光栅化工具不可用: {rasterizer.name}")
                continue
            tried = True
            try:
                image_path = rasterizer.rasterize_first_page(source_document, self.output_dir)
            except (RasterizeError, OSError) as e:
                logger.warning(f"光栅化失败({rasterizer.name}): {e}")
                continue
            logger.info(f"背景光栅化完成({rasterizer.name}): {image_path.name}")
            return BackgroundSource.rasterized(image_path, self._public_url(image_path))

        if not tried:
            logger.warning("没有可用的PDF转图片工具，生成结果将不包含背景")
        else:
            logger.warning("所有PDF转图片工具均失败，生成结果将不包含背景")
        return BackgroundSource.none()

    @staticmethod
    def _pick_page_image(page_image: str | list[str] | None) -> str | None:
        """多页页图只取第1页"""
        if isinstance(page_image, (list, tuple)):
            page_image = next((p for p in page_image if isinstance(p, str) and p.strip()), None)
        if isinstance(page_image, str) and page_image.strip():
            return page_image
        return None

    def _public_url(self, image_path: Path) -> str | None:
        """配置了公开域名时返回绝对URL，否则由调用方使用 file:// 引用"""
        if not self.storage.public_base_url:
            return None
        try:
            rel = image_path.resolve().relative_to(self.storage.storage_dir.resolve())
        except ValueError:
            return None
        base = self.storage.public_base_url.rstrip("/")
        prefix = "/" + self.storage.public_url_prefix.strip("/") if self.storage.public_url_prefix.strip("/") else ""
        return f"{base}{prefix}/{rel.as_posix()}"
