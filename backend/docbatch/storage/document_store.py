"""
源文档存储 - 上传的PDF落盘

职责：
1. 保存为 pdf-templates/<uniqid>_<unix时间>.pdf
2. 生成公开访问URL
3. 返回页面尺寸（固定A4，不读取文件）

测试要点：
- test_store_document: 落盘路径与URL
- test_static_dimensions: 尺寸固定为A4
"""

from __future__ import annotations

import logging
import shutil
import time
import uuid
from pathlib import Path
from typing import BinaryIO

from ..config import StorageConfig, get_config
from ..interfaces import StorageError
from ..models import PageDimensions, StoredDocument

logger = logging.getLogger(__name__)


class DocumentStore:
    """源文档存储"""

    def __init__(self, config: StorageConfig | None = None):
        self.config = config or get_config().storage

    @property
    def root(self) -> Path:
        return self.config.storage_dir

    @property
    def documents_dir(self) -> Path:
        return self.root / self.config.documents_subdir

    def store(self, file: BinaryIO, suffix: str = ".pdf") -> StoredDocument:
        """保存源文档"""
        self.documents_dir.mkdir(parents=True, exist_ok=True)
        filename = f"{uuid.uuid4().hex[:13]}_{int(time.time())}{suffix}"
        target = self.documents_dir / filename

        try:
            with open(target, "wb") as f:
                shutil.copyfileobj(file, f)
        except OSError as e:
            raise StorageError(f"源文档保存失败: {target}: {e}") from e

        rel = target.relative_to(self.root).as_posix()
        logger.info(f"源文档已保存: {rel}")
        return StoredDocument(
            file_path=rel,
            file_url=self.public_url(rel),
            dimensions=self.page_dimensions(target),
        )

    def resolve(self, file_path: str) -> Path:
        """存储相对路径 → 绝对路径（禁止越出存储根目录）"""
        root = self.root.resolve()
        candidate = (root / file_path).resolve()
        if root != candidate and root not in candidate.parents:
            raise StorageError(f"非法的文件路径: {file_path}")
        return candidate

    def public_url(self, rel_path: str) -> str:
        prefix = "/" + self.config.public_url_prefix.strip("/") if self.config.public_url_prefix.strip("/") else ""
        url = f"{prefix}/{rel_path}"
        if self.config.public_base_url:
            return self.config.public_base_url.rstrip("/") + url
        return url

    @staticmethod
    def page_dimensions(pdf_path: Path) -> PageDimensions:
        """页面尺寸：固定返回A4，实际尺寸由前端读取"""
        return PageDimensions()
