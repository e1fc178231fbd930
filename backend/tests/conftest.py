"""
pytest 配置与公共 fixtures

使用方式：
    def test_something(sample_template, sample_rows, sample_mapping):
        assert sample_template.field_count == 2
"""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from docbatch.config import RuntimeConfig, StorageConfig
from docbatch.config import runtime_config as runtime_config_module
from docbatch.interfaces import (
    IBackgroundResolver,
    IDocumentRenderer,
    IRasterizer,
    RasterizeError,
    RenderError,
)
from docbatch.models import BackgroundSource, Template


# ============================================================================
# 配置 Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch) -> RuntimeConfig:
    """全局配置指向临时存储目录，避免写入仓库"""
    config = RuntimeConfig(storage=StorageConfig(storage_dir=tmp_path / "storage"))
    monkeypatch.setattr(runtime_config_module, "_config", config)
    return config


@pytest.fixture
def runtime_config(isolated_config: RuntimeConfig) -> RuntimeConfig:
    """运行期配置"""
    return isolated_config


# ============================================================================
# 模板与数据 Fixtures
# ============================================================================

@pytest.fixture
def sample_template() -> Template:
    """示例模板：单页，两个字段"""
    return Template.model_validate({
        "name": "certificate",
        "pages": [
            {
                "fields": [
                    {
                        "type": "text",
                        "x": 10,
                        "y": 10,
                        "width": 50,
                        "height": 10,
                        "column": "name",
                        "fontSize": 14,
                        "fontColor": "#333333",
                        "fontWeight": "bold",
                    },
                    {
                        "type": "text",
                        "x": 10,
                        "y": 30,
                        "width": 80,
                        "height": 10,
                        "column": "course",
                        "textAlign": "center",
                    },
                ]
            }
        ],
    })


@pytest.fixture
def sample_rows() -> list[dict[str, str]]:
    """示例行数据"""
    return [
        {"Full Name": "Alice", "Course": "Python"},
        {"Full Name": "Bob", "Course": "Rust"},
        {"Full Name": "Carol", "Course": "Go"},
    ]


@pytest.fixture
def sample_mapping() -> dict[str, str]:
    """示例列映射（字段列名 → 表头）"""
    return {"name": "Full Name", "course": "Course"}


# ============================================================================
# 替身实现
# ============================================================================

class FakeRasterizer(IRasterizer):
    """可控的光栅化器替身"""

    def __init__(self, name: str = "fake", available: bool = True, fail: bool = False):
        self.name = name
        self.available = available
        self.fail = fail
        self.calls: list[Path] = []

    def is_available(self) -> bool:
        return self.available

    def rasterize_first_page(self, pdf_path: Path, output_dir: Path) -> Path:
        self.calls.append(pdf_path)
        if self.fail:
            raise RasterizeError(f"{self.name} failed")
        output_dir.mkdir(parents=True, exist_ok=True)
        image = output_dir / f"{self.name}_page1.jpg"
        image.write_bytes(b"\xff\xd8\xff\xe0fake-jpeg")
        return image


class FakeRenderer(IDocumentRenderer):
    """把标记原样编码为字节，便于断言"""

    def __init__(self, fail_on: str | None = None, empty: bool = False):
        self.fail_on = fail_on
        self.empty = empty
        self.markups: list[str] = []

    def render(self, markup: str, page_width_mm: float, page_height_mm: float) -> bytes:
        self.markups.append(markup)
        if self.fail_on and self.fail_on in markup:
            raise RenderError(f"render failed on {self.fail_on}")
        if self.empty:
            return b""
        return b"%PDF-1.7\n" + markup.encode("utf-8")


class CountingResolver(IBackgroundResolver):
    """记录调用次数的背景解析器"""

    def __init__(self, result: BackgroundSource | None = None):
        self.result = result or BackgroundSource.none()
        self.calls = 0

    def resolve(self, source_document, page_image=None) -> BackgroundSource:
        self.calls += 1
        return self.result


@pytest.fixture
def fake_renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def counting_resolver() -> CountingResolver:
    return CountingResolver()


# ============================================================================
# 文件 Fixtures
# ============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_pdf_path(temp_dir: Path) -> Path:
    """示例源文档（内容不是真实PDF，只用于存在性判断）"""
    pdf_path = temp_dir / "source.pdf"
    pdf_path.write_bytes(b"%PDF-1.4\n%%EOF\n")
    return pdf_path
