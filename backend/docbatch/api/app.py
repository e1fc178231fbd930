"""
HTTP接口 - 表格上传 / 源文档上传 / 批量生成

端点：
- POST /pdf-templates/upload-excel  表格 → {success, data, columns}
- POST /pdf-templates/upload-pdf    源文档 → {success, file_path, file_url, dimensions}
- POST /pdf-templates/generate      模板+行+映射 → {success, message, pdfs}
- GET  /health

错误映射：
- DataImportError / InvalidTemplateError → 422
- 文件超出大小限制 → 413
- BatchError / 其他 DocBatchError → 500，响应体保持 {success: false, message, pdfs: []}
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .. import __version__
from ..config import RuntimeConfig, get_config, setup_logging
from ..importer import SpreadsheetImporter
from ..interfaces import (
    DataImportError,
    DocBatchError,
    IBatchOrchestrator,
    IDataImporter,
    InvalidTemplateError,
    StorageError,
)
from ..pipeline import BatchOrchestrator
from ..storage import DocumentStore

logger = logging.getLogger(__name__)


class GenerateRequest(BaseModel):
    """批量生成请求"""
    template: dict[str, Any]
    excel_data: list[dict[str, Any]] = Field(default_factory=list)
    column_mapping: dict[str, str | None] = Field(default_factory=dict)
    pdf_file_path: str | None = None
    pdf_page_image: str | list[str] | None = None


def _check_size(upload: UploadFile, limit_mb: int) -> None:
    size = getattr(upload, "size", None)
    if size is not None and size > limit_mb * 1024 * 1024:
        raise HTTPException(status_code=413, detail=f"文件超过 {limit_mb}MB 限制: {upload.filename}")


def create_app(
    orchestrator: IBatchOrchestrator | None = None,
    importer: IDataImporter | None = None,
    store: DocumentStore | None = None,
    config: RuntimeConfig | None = None,
) -> FastAPI:
    """构造应用（依赖可注入，便于测试）"""
    config = config or get_config()
    setup_logging(config.logging)

    importer = importer or SpreadsheetImporter()
    store = store or DocumentStore(config.storage)
    orchestrator = orchestrator or BatchOrchestrator(config=config)

    app = FastAPI(title="DocBatch", version=__version__)

    @app.get("/health")
    def health():
        return {"status": "ok", "version": __version__}

    @app.post("/pdf-templates/upload-excel")
    def upload_excel(excel_file: UploadFile = File(...)):
        _check_size(excel_file, config.storage.max_spreadsheet_mb)
        try:
            result = importer.import_rows(excel_file.file, filename=excel_file.filename)
        except DataImportError as e:
            logger.warning(f"表格上传失败: {e}")
            raise HTTPException(status_code=422, detail=str(e)) from e

        columns = list(result.rows[0].keys()) if result.rows else []
        return {"success": True, "data": result.rows, "columns": columns}

    @app.post("/pdf-templates/upload-pdf")
    def upload_pdf(pdf_file: UploadFile = File(...)):
        _check_size(pdf_file, config.storage.max_document_mb)
        if Path(pdf_file.filename or "").suffix.lower() != ".pdf":
            raise HTTPException(status_code=422, detail="只支持上传PDF文件")
        try:
            stored = store.store(pdf_file.file)
        except StorageError as e:
            logger.error(f"源文档上传失败: {e}")
            raise HTTPException(status_code=500, detail=str(e)) from e

        return {"success": True, **stored.model_dump()}

    @app.post("/pdf-templates/generate")
    def generate(req: GenerateRequest):
        mapping = {k: v for k, v in req.column_mapping.items() if v}
        try:
            source = store.resolve(req.pdf_file_path) if req.pdf_file_path else None
            runner = orchestrator.generate_best_effort if config.batch.best_effort else orchestrator.generate
            result = runner(
                req.template,
                req.excel_data,
                mapping,
                source_document=source,
                page_image=req.pdf_page_image,
            )
        except InvalidTemplateError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
        except DocBatchError as e:
            logger.error(f"批量生成失败: {e}")
            return JSONResponse(
                status_code=500,
                content={"success": False, "message": f"PDF生成失败: {e}", "pdfs": []},
            )

        return result.to_response()

    return app
