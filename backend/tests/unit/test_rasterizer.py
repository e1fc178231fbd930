"""
光栅化器单元测试（外部命令全部打桩，不依赖本机工具）
"""

import subprocess
from pathlib import Path

import pytest

from docbatch.config import RasterizerConfig
from docbatch.interfaces import RasterizeError
from docbatch.render import rasterizer as rasterizer_module
from docbatch.render.rasterizer import (
    CommandRasterizer,
    GhostscriptRasterizer,
    PdftoppmRasterizer,
    build_rasterizers,
)


@pytest.fixture
def config() -> RasterizerConfig:
    return RasterizerConfig(dpi=150, jpeg_quality=80)


class TestAvailability:
    """可用性探测测试"""

    def test_available(self, config, monkeypatch):
        monkeypatch.setattr(rasterizer_module.shutil, "which", lambda exe: f"/usr/bin/{exe}")
        assert GhostscriptRasterizer(config).is_available()

    def test_unavailable(self, config, monkeypatch):
        monkeypatch.setattr(rasterizer_module.shutil, "which", lambda exe: None)
        assert not PdftoppmRasterizer(config).is_available()


class TestGhostscript:
    """Ghostscript 测试"""

    def test_ghostscript_command(self, config):
        """测试命令行参数"""
        cmd = GhostscriptRasterizer(config).build_command(Path("in.pdf"), Path("out/x"))
        assert cmd[0] == "gs"
        assert "-sDEVICE=jpeg" in cmd
        assert "-dJPEGQ=80" in cmd
        assert "-r150" in cmd
        assert "-dFirstPage=1" in cmd and "-dLastPage=1" in cmd
        assert f"-sOutputFile={Path('out/x')}.jpg" in cmd
        assert cmd[-1] == "in.pdf"

    def test_rasterize_success(self, config, sample_pdf_path: Path, temp_dir: Path, monkeypatch):
        def fake_run(cmd, **kwargs):
            output = next(a for a in cmd if a.startswith("-sOutputFile=")).split("=", 1)[1]
            Path(output).write_bytes(b"jpeg")
            return subprocess.CompletedProcess(cmd, 0, "", "")

        monkeypatch.setattr(rasterizer_module.subprocess, "run", fake_run)
        out_dir = temp_dir / "out"
        image = GhostscriptRasterizer(config, timeout=5).rasterize_first_page(sample_pdf_path, out_dir)
        assert image.parent == out_dir
        assert image.name.endswith("_page1.jpg")
        assert image.exists()

    def test_rasterize_timeout(self, config, sample_pdf_path: Path, temp_dir: Path, monkeypatch):
        """测试超时处理"""
        def fake_run(cmd, **kwargs):
            raise subprocess.TimeoutExpired(cmd, kwargs.get("timeout"))

        monkeypatch.setattr(rasterizer_module.subprocess, "run", fake_run)
        with pytest.raises(RasterizeError, match="超时"):
            GhostscriptRasterizer(config, timeout=1).rasterize_first_page(sample_pdf_path, temp_dir)

    def test_rasterize_process_error(self, config, sample_pdf_path: Path, temp_dir: Path, monkeypatch):
        def fake_run(cmd, **kwargs):
            raise subprocess.CalledProcessError(1, cmd, output="", stderr="bad pdf")

        monkeypatch.setattr(rasterizer_module.subprocess, "run", fake_run)
        with pytest.raises(RasterizeError, match="bad pdf"):
            GhostscriptRasterizer(config).rasterize_first_page(sample_pdf_path, temp_dir)

    def test_missing_output(self, config, sample_pdf_path: Path, temp_dir: Path, monkeypatch):
        """测试命令成功但未产出文件"""
        monkeypatch.setattr(
            rasterizer_module.subprocess,
            "run",
            lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 0, "", ""),
        )
        with pytest.raises(RasterizeError):
            GhostscriptRasterizer(config).rasterize_first_page(sample_pdf_path, temp_dir)

    def test_missing_source(self, config, temp_dir: Path):
        with pytest.raises(RasterizeError):
            GhostscriptRasterizer(config).rasterize_first_page(temp_dir / "nope.pdf", temp_dir)

    def test_output_dir_unusable(self, config, sample_pdf_path: Path, temp_dir: Path):
        """测试输出目录无法创建时抛出 RasterizeError"""
        blocker = temp_dir / "blocker"
        blocker.write_text("not a directory")
        with pytest.raises(RasterizeError, match="输出目录不可用"):
            GhostscriptRasterizer(config).rasterize_first_page(sample_pdf_path, blocker / "sub")


class TestPdftoppm:
    """pdftoppm 测试"""

    def test_pdftoppm_command(self, config):
        cmd = PdftoppmRasterizer(config).build_command(Path("in.pdf"), Path("out/x"))
        assert cmd[:4] == ["pdftoppm", "-jpeg", "-jpegopt", "quality=80"]
        assert cmd[-2:] == ["in.pdf", str(Path("out/x"))]

    @pytest.mark.parametrize("suffix", ["-1", "-01", "-001"])
    def test_pdftoppm_rename_suffix(self, config, sample_pdf_path: Path, temp_dir: Path, monkeypatch, suffix):
        """测试页码后缀重命名"""
        def fake_run(cmd, **kwargs):
            Path(f"{cmd[-1]}{suffix}.jpg").write_bytes(b"jpeg")
            return subprocess.CompletedProcess(cmd, 0, "", "")

        monkeypatch.setattr(rasterizer_module.subprocess, "run", fake_run)
        image = PdftoppmRasterizer(config).rasterize_first_page(sample_pdf_path, temp_dir)
        assert image.suffix == ".jpg"
        assert image.stem.endswith("_page1")
        assert image.exists()
        assert not list(temp_dir.glob(f"*{suffix}.jpg"))


class TestCommandRasterizer:
    def test_base_requires_build_command(self, config):
        """测试未实现命令构造的基类不可实例化"""
        with pytest.raises(TypeError):
            CommandRasterizer("x", config)


class TestBuildRasterizers:
    """构造顺序测试"""

    def test_build_rasterizers_order(self):
        chain = build_rasterizers(RasterizerConfig(order=["pdftoppm", "ghostscript"]))
        assert [r.name for r in chain] == ["pdftoppm", "ghostscript"]

    def test_unknown_names_ignored(self):
        chain = build_rasterizers(RasterizerConfig(order=["imagemagick", "ghostscript"]))
        assert [r.name for r in chain] == ["ghostscript"]

    def test_default_timeout_from_config(self, runtime_config):
        chain = build_rasterizers(RasterizerConfig())
        assert all(r.timeout == runtime_config.timeouts.rasterize_sec for r in chain)
