"""
HTTP接口单元测试（注入替身，不依赖排版引擎与外部工具）
"""

import base64
import io
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook

from docbatch.api import create_app
from docbatch.pipeline import BatchOrchestrator
from docbatch.storage import DocumentStore

from conftest import CountingResolver, FakeRenderer


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def store(runtime_config) -> DocumentStore:
    return DocumentStore(runtime_config.storage)


@pytest.fixture
def client(runtime_config, renderer, store) -> TestClient:
    orchestrator = BatchOrchestrator(
        background_resolver=CountingResolver(),
        renderer=renderer,
        config=runtime_config,
        clock=lambda: 42,
    )
    return TestClient(create_app(orchestrator=orchestrator, store=store, config=runtime_config))


def _xlsx_bytes(rows: list[list]) -> bytes:
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


class TestHealth:
    def test_health(self, client: TestClient):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestUploadExcel:
    """表格上传测试"""

    def test_upload_xlsx(self, client: TestClient):
        content = _xlsx_bytes([["Full Name", "Course"], ["Alice", "Python"]])
        resp = client.post("/pdf-templates/upload-excel", files={"excel_file": ("data.xlsx", content)})
        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "data": [{"Full Name": "Alice", "Course": "Python"}],
            "columns": ["Full Name", "Course"],
        }

    def test_upload_header_only(self, client: TestClient):
        """测试无数据行时 columns 为空"""
        resp = client.post(
            "/pdf-templates/upload-excel", files={"excel_file": ("data.csv", b"Full Name,Course\n")}
        )
        assert resp.status_code == 200
        assert resp.json()["columns"] == []

    def test_upload_unsupported(self, client: TestClient):
        resp = client.post("/pdf-templates/upload-excel", files={"excel_file": ("data.pdf", b"%PDF")})
        assert resp.status_code == 422


class TestUploadPdf:
    """源文档上传测试"""

    def test_upload_pdf(self, client: TestClient, store: DocumentStore):
        resp = client.post("/pdf-templates/upload-pdf", files={"pdf_file": ("source.pdf", b"%PDF-1.4\n")})
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["file_path"].startswith("pdf-templates/")
        assert body["file_path"].endswith(".pdf")
        assert body["file_url"] == f"/storage/{body['file_path']}"
        assert body["dimensions"] == {"width": 210.0, "height": 297.0}
        assert store.resolve(body["file_path"]).read_bytes() == b"%PDF-1.4\n"

    def test_upload_non_pdf(self, client: TestClient):
        resp = client.post("/pdf-templates/upload-pdf", files={"pdf_file": ("image.png", b"png")})
        assert resp.status_code == 422


class TestGenerate:
    """批量生成测试"""

    def _payload(self, sample_template, sample_rows, sample_mapping, **extra):
        payload = {
            "template": sample_template.model_dump(mode="json"),
            "excel_data": sample_rows,
            "column_mapping": sample_mapping,
        }
        payload.update(extra)
        return payload

    def test_generate(self, client: TestClient, sample_template, sample_rows, sample_mapping):
        resp = client.post("/pdf-templates/generate", json=self._payload(sample_template, sample_rows, sample_mapping))
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert [p["filename"] for p in body["pdfs"]] == ["000042.pdf", "000043.pdf", "000044.pdf"]
        assert "Alice" in base64.b64decode(body["pdfs"][0]["base64"]).decode("utf-8")

    def test_generate_empty_rows(self, client: TestClient, sample_template, sample_mapping):
        """测试空数据返回软失败"""
        resp = client.post("/pdf-templates/generate", json=self._payload(sample_template, [], sample_mapping))
        assert resp.status_code == 200
        assert resp.json()["success"] is False
        assert resp.json()["pdfs"] == []

    def test_generate_invalid_template(self, client: TestClient, sample_rows, sample_mapping):
        resp = client.post(
            "/pdf-templates/generate",
            json={"template": {"name": "x"}, "excel_data": sample_rows, "column_mapping": sample_mapping},
        )
        assert resp.status_code == 422

    def test_generate_render_failure(self, client: TestClient, renderer: FakeRenderer, sample_template, sample_rows, sample_mapping):
        """测试渲染失败返回500且不含部分结果"""
        renderer.fail_on = "Bob"
        resp = client.post("/pdf-templates/generate", json=self._payload(sample_template, sample_rows, sample_mapping))
        assert resp.status_code == 500
        body = resp.json()
        assert body["success"] is False
        assert body["pdfs"] == []

    def test_generate_with_uploaded_source(self, client: TestClient, sample_template, sample_rows, sample_mapping):
        upload = client.post("/pdf-templates/upload-pdf", files={"pdf_file": ("source.pdf", b"%PDF-1.4\n")})
        file_path = upload.json()["file_path"]
        resp = client.post(
            "/pdf-templates/generate",
            json=self._payload(sample_template, sample_rows, sample_mapping, pdf_file_path=file_path),
        )
        assert resp.status_code == 200
        assert len(resp.json()["pdfs"]) == 3

    def test_generate_path_escape_rejected(self, client: TestClient, sample_template, sample_rows, sample_mapping):
        """测试越出存储目录的路径被拒绝"""
        resp = client.post(
            "/pdf-templates/generate",
            json=self._payload(sample_template, sample_rows, sample_mapping, pdf_file_path="../../etc/passwd"),
        )
        assert resp.status_code == 500
        assert resp.json()["success"] is False


class TestDocumentStore:
    """源文档存储测试"""

    def test_public_base_url(self, runtime_config):
        runtime_config.storage.public_base_url = "https://example.com"
        store = DocumentStore(runtime_config.storage)
        assert store.public_url("pdf-templates/a.pdf") == "https://example.com/storage/pdf-templates/a.pdf"

    def test_static_dimensions(self, temp_dir: Path):
        """测试尺寸固定为A4"""
        dims = DocumentStore.page_dimensions(temp_dir / "any.pdf")
        assert (dims.width, dims.height) == (210.0, 297.0)
