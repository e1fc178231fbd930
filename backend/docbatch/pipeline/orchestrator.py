"""
批量编排器 - 模板 + 行数据 + 列映射 → 每行一个PDF

职责：
1. 输入校验（模板必须有 pages，渲染前快速失败）
2. 背景解析（每批次只执行一次，所有行共用同一背景）
3. 逐行投影+渲染（顺序执行，不并行）
4. 生成文件名（6位滚动时间戳，行号扰动低位保证批内唯一）
5. 结果校验（剔除空输出，全部无效时返回软失败）

失败策略：
- generate: 全有或全无，任一行失败即整批失败（不返回部分结果）
- generate_best_effort: 单行失败记录后继续

测试要点：
- test_empty_rows_soft_failure: 空数据 → 软失败，不抛异常
- test_background_resolved_once: 背景解析每批次一次
- test_filenames_distinct: 批内文件名两两不同
- test_render_error_aborts_batch: 渲染失败整批失败
- test_best_effort_skips_row: 尽力而为模式跳过失败行
"""

from __future__ import annotations

import base64
import logging
import time
import uuid
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError

from ..config import RuntimeConfig, get_config
from ..interfaces import (
    BatchError,
    IBackgroundResolver,
    IBatchOrchestrator,
    IDocumentRenderer,
    IMarkupProjector,
    InvalidTemplateError,
    RenderError,
)
from ..models import (
    FLAG_BACKGROUND_UNAVAILABLE,
    FLAG_EMPTY_RESULT,
    FLAG_INVALID_OUTPUT,
    FLAG_ROW_FAILED,
    FLAG_SOURCE_MISSING,
    BackgroundSource,
    Batch,
    BatchResult,
    GeneratedDocument,
    Row,
    RowFailure,
    Template,
)
from ..render import BackgroundResolver, MarkupProjector, WeasyPrintRenderer, build_rasterizers

logger = logging.getLogger(__name__)

TOKEN_SPACE = 1_000_000


def microtime_us() -> int:
    """当前时间（微秒）"""
    return time.time_ns() // 1000


def make_filename(base_us: int, index: int, suffix: str = ".pdf") -> str:
    """6位滚动令牌：(微秒时间 + 行号) mod 10^6，补零"""
    token = (base_us + index) % TOKEN_SPACE
    return f"{token:06d}{suffix}"


class BatchOrchestrator(IBatchOrchestrator):
    """批量编排器实现"""

    def __init__(
        self,
        background_resolver: IBackgroundResolver | None = None,
        projector: IMarkupProjector | None = None,
        renderer: IDocumentRenderer | None = None,
        config: RuntimeConfig | None = None,
        clock: Callable[[], int] | None = None,
    ):
        self.config = config or get_config()
        render_cfg = self.config.render
        self.page_width_mm = render_cfg.page_width_mm
        self.page_height_mm = render_cfg.page_height_mm

        self.background_resolver = background_resolver or BackgroundResolver(
            rasterizers=build_rasterizers(self.config.rasterizer, self.config.timeouts.rasterize_sec),
            storage=self.config.storage,
        )
        self.projector = projector or MarkupProjector(
            self.page_width_mm, self.page_height_mm, render_cfg.default_font
        )
        self.renderer = renderer or WeasyPrintRenderer(render_cfg)
        self.clock = clock or microtime_us

    def generate(
        self,
        template: Template | dict[str, Any],
        rows: list[Row],
        column_mapping: dict[str, str],
        source_document: Path | None = None,
        page_image: str | list[str] | None = None,
    ) -> BatchResult:
        """全有或全无"""
        return self._run(template, rows, column_mapping, source_document, page_image, best_effort=False)

    def generate_best_effort(
        self,
        template: Template | dict[str, Any],
        rows: list[Row],
        column_mapping: dict[str, str],
        source_document: Path | None = None,
        page_image: str | list[str] | None = None,
    ) -> BatchResult:
        """尽力而为"""
        return self._run(template, rows, column_mapping, source_document, page_image, best_effort=True)

    # ------------------------------------------------------------------
    # 状态机
    # ------------------------------------------------------------------
    def _run(
        self,
        template: Template | dict[str, Any],
        rows: list[Row],
        column_mapping: dict[str, str],
        source_document: Path | None,
        page_image: str | list[str] | None,
        best_effort: bool,
    ) -> BatchResult:
        batch = Batch(batch_id=uuid.uuid4().hex[:12], row_count=len(rows))
        started = time.perf_counter()

        # === ValidatingInput ===
        batch.mark_validating()
        try:
            tpl = self._validate_template(template)
        except InvalidTemplateError as e:
            logger.warning(f"[{batch.batch_id}] 模板校验失败: {e}")
            batch.mark_failed(str(e))
            raise

        mapping = {str(k): str(v) for k, v in (column_mapping or {}).items() if v is not None}
        source = self._check_source(batch, source_document)
        overlay = source is not None or bool(page_image)

        logger.info(
            f"[{batch.batch_id}] 开始批量生成: 行={len(rows)} 页={len(tpl.pages)} "
            f"字段={tpl.field_count} 叠加背景={overlay} 尽力而为={best_effort}"
        )

        # === BackgroundResolved ===
        try:
            background = self.background_resolver.resolve(source, page_image)
        except Exception as e:
            logger.exception(f"[{batch.batch_id}] 背景解析异常")
            batch.mark_failed(str(e))
            raise BatchError(f"背景解析失败: {e}") from e

        if overlay and background.is_none:
            batch.add_flag(FLAG_BACKGROUND_UNAVAILABLE)
        batch.mark_background_resolved(background.kind.value)

        # === RenderingRows ===
        batch.mark_rendering()
        documents, failures = self._render_rows(batch, tpl, rows, mapping, background, overlay, best_effort)

        # === 结果校验 ===
        valid = [doc for doc in documents if isinstance(doc.base64, str) and doc.base64]
        if len(valid) < len(documents):
            logger.warning(f"[{batch.batch_id}] 剔除无效输出 {len(documents) - len(valid)} 个")
            batch.add_flag(FLAG_INVALID_OUTPUT)

        batch.mark_completed()
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

        if not valid:
            batch.add_flag(FLAG_EMPTY_RESULT)
            if documents:
                message = "PDF已生成但均无效，请检查模板和数据"
            else:
                message = "未生成任何PDF，请检查模板和数据"
            logger.warning(f"[{batch.batch_id}] {message} (行={len(rows)})")
            return BatchResult(success=False, message=message, failed_rows=failures, flags=batch.flags)

        size_mb = round(sum(len(doc.base64) for doc in valid) / 1024 / 1024, 2)
        logger.info(
            f"[{batch.batch_id}] 批量生成完成: 文档={len(valid)} 失败行={len(failures)} "
            f"大小={size_mb}MB 耗时={elapsed_ms}ms"
        )
        return BatchResult(
            success=True,
            message="PDF生成成功",
            documents=valid,
            failed_rows=failures,
            flags=batch.flags,
        )

    def _render_rows(
        self,
        batch: Batch,
        tpl: Template,
        rows: list[Row],
        mapping: dict[str, str],
        background: BackgroundSource,
        overlay: bool,
        best_effort: bool,
    ) -> tuple[list[GeneratedDocument], list[RowFailure]]:
        """逐行顺序渲染"""
        documents: list[GeneratedDocument] = []
        failures: list[RowFailure] = []
        base_us = self.clock()

        for index, row in enumerate(rows):
            try:
                pdf_bytes = self._render_row(tpl, row, mapping, background, overlay)
            except RenderError as e:
                if best_effort:
                    logger.warning(f"[{batch.batch_id}] 第{index + 1}行生成失败，已跳过: {e}")
                    failures.append(RowFailure(index=index + 1, error=str(e)))
                    batch.add_flag(FLAG_ROW_FAILED)
                    continue
                raise self._abort(batch, index, e) from e
            except Exception as e:
                raise self._abort(batch, index, e) from e

            documents.append(
                GeneratedDocument(
                    filename=make_filename(base_us, index),
                    index=index + 1,
                    base64=base64.b64encode(pdf_bytes).decode("ascii"),
                )
            )
            logger.debug(f"[{batch.batch_id}] 第{index + 1}行完成 ({len(pdf_bytes)} bytes)")

        return documents, failures

    def _render_row(
        self,
        tpl: Template,
        row: Row,
        mapping: dict[str, str],
        background: BackgroundSource,
        overlay: bool,
    ) -> bytes:
        if overlay:
            # 叠加路径只使用第1页字段
            markup = self.projector.project(tpl.pages[0].fields, row, mapping, background)
        else:
            markup = self.projector.project_pages(tpl.pages, row, mapping)
        return self.renderer.render(markup, self.page_width_mm, self.page_height_mm)

    @staticmethod
    def _abort(batch: Batch, index: int, error: Exception) -> BatchError:
        logger.exception(f"[{batch.batch_id}] 第{index + 1}行生成失败，整批中止")
        batch.mark_failed(str(error))
        return BatchError(f"第{index + 1}行生成失败: {error}", row_index=index + 1)

    # ------------------------------------------------------------------
    # 输入校验
    # ------------------------------------------------------------------
    @staticmethod
    def _validate_template(template: Template | dict[str, Any]) -> Template:
        if isinstance(template, dict):
            try:
                template = Template.model_validate(template)
            except ValidationError as e:
                raise InvalidTemplateError(f"模板结构不合法: {e}") from e
        if not isinstance(template, Template):
            raise InvalidTemplateError("模板必须是对象")
        if not template.pages:
            raise InvalidTemplateError("模板必须包含 pages 数组")
        return template

    @staticmethod
    def _check_source(batch: Batch, source_document: Path | None) -> Path | None:
        """源文档不存在时退回多页HTML路径"""
        if source_document is None:
            return None
        source_document = Path(source_document)
        if not source_document.exists():
            logger.warning(f"[{batch.batch_id}] 源文档不存在，改用模板页生成: {source_document}")
            batch.add_flag(FLAG_SOURCE_MISSING)
            return None
        return source_document
