"""
光栅化器 - 源文档第1页 → JPEG

职责：
1. 探测外部工具可用性（shutil.which）
2. 调用 Ghostscript / pdftoppm 渲染第1页（200 DPI，质量85）
3. 处理超时和错误

依赖：
- gs: Ghostscript jpeg 设备（优先）
- pdftoppm: poppler-utils（兜底）

测试要点：
- test_ghostscript_command: 命令行参数
- test_pdftoppm_rename_suffix: -1 后缀重命名
- test_rasterize_timeout: 超时处理
- test_build_rasterizers_order: 按配置顺序构造
"""

from __future__ import annotations

import shutil
import subprocess
import uuid
from abc import abstractmethod
from pathlib import Path

from ..config import RasterizerConfig, get_config
from ..interfaces import IRasterizer, RasterizeError


class CommandRasterizer(IRasterizer):
    """外部命令光栅化器基类"""

    name = "command"

    def __init__(self, exe: str, config: RasterizerConfig | None = None, timeout: int | None = None):
        runtime = get_config()
        self.exe = exe
        self.config = config or runtime.rasterizer
        self.timeout = timeout or runtime.timeouts.rasterize_sec

    def is_available(self) -> bool:
        return shutil.which(self.exe) is not None

    def rasterize_first_page(self, pdf_path: Path, output_dir: Path) -> Path:
        if not pdf_path.exists():
            raise RasterizeError(f"源文档不存在: {pdf_path}")

        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise RasterizeError(f"输出目录不可用: {output_dir}: {e}") from e
        stem = f"{uuid.uuid4().hex}_page1"
        cmd = self.build_command(pdf_path, output_dir / stem)

        try:
            subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=True,
            )
        except FileNotFoundError as e:
            raise RasterizeError(f"{self.name} 不可执行: {self.exe}") from e
        except subprocess.TimeoutExpired as e:
            raise RasterizeError(f"{self.name} 转换超时: {pdf_path}") from e
        except subprocess.CalledProcessError as e:
            detail = e.stderr or e.stdout or ""
            raise RasterizeError(f"{self.name} 转换失败: {detail}") from e

        return self.resolve_output(output_dir, stem)

    @abstractmethod
    def build_command(self, pdf_path: Path, output_prefix: Path) -> list[str]:
        """外部命令行参数"""
        ...

    def resolve_output(self, output_dir: Path, stem: str) -> Path:
        expected = output_dir / f"{stem}.jpg"
        if expected.exists():
            return expected
        raise RasterizeError(f"转换后文件不存在: {expected}")


class GhostscriptRasterizer(CommandRasterizer):
    """Ghostscript jpeg 设备"""

    name = "ghostscript"

    def __init__(self, config: RasterizerConfig | None = None, timeout: int | None = None):
        config = config or get_config().rasterizer
        super().__init__(config.ghostscript_exe, config, timeout)

    def build_command(self, pdf_path: Path, output_prefix: Path) -> list[str]:
        return [
            self.exe,
            "-dNOPAUSE",
            "-dBATCH",
            "-dSAFER",
            "-sDEVICE=jpeg",
            f"-dJPEGQ={self.config.jpeg_quality}",
            f"-r{self.config.dpi}",
            "-dFirstPage=1",
            "-dLastPage=1",
            f"-sOutputFile={output_prefix}.jpg",
            str(pdf_path),
        ]


class PdftoppmRasterizer(CommandRasterizer):
    """poppler pdftoppm"""

    name = "pdftoppm"

    def __init__(self, config: RasterizerConfig | None = None, timeout: int | None = None):
        config = config or get_config().rasterizer
        super().__init__(config.pdftoppm_exe, config, timeout)

    def build_command(self, pdf_path: Path, output_prefix: Path) -> list[str]:
        return [
            self.exe,
            "-jpeg",
            "-jpegopt",
            f"quality={self.config.jpeg_quality}",
            "-f", "1",
            "-l", "1",
            "-r", str(self.config.dpi),
            str(pdf_path),
            str(output_prefix),
        ]

    def resolve_output(self, output_dir: Path, stem: str) -> Path:
        # pdftoppm 按总页数补零输出 <prefix>-1.jpg / <prefix>-01.jpg ...
        final = output_dir / f"{stem}.jpg"
        for candidate in sorted(output_dir.glob(f"{stem}-*.jpg")):
            if candidate.stem.rsplit("-", 1)[-1].lstrip("0") == "1":
                try:
                    candidate.rename(final)
                except OSError as e:
                    raise RasterizeError(f"转换结果重命名失败: {candidate}: {e}") from e
                return final
        return super().resolve_output(output_dir, stem)


RASTERIZER_TYPES: dict[str, type[CommandRasterizer]] = {
    GhostscriptRasterizer.name: GhostscriptRasterizer,
    PdftoppmRasterizer.name: PdftoppmRasterizer,
}


def build_rasterizers(config: RasterizerConfig | None = None, timeout: int | None = None) -> list[IRasterizer]:
    """按配置顺序构造光栅化器链（未知名称忽略）"""
    config = config or get_config().rasterizer
    chain: list[IRasterizer] = []
    for name in config.order:
        cls = RASTERIZER_TYPES.get(name.lower())
        if cls is not None:
            chain.append(cls(config, timeout))
    return chain
