"""
运行期配置 - 读取 config/docbatch.yaml

职责：
- 加载渲染/光栅化/超时/存储等运行参数
- 提供环境变量覆盖机制（DOCBATCH_ 前缀，嵌套用 __）
- 类型安全的配置访问
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource


class RenderConfig(BaseModel):
    """PDF渲染配置（生成路径固定A4）"""

    page_width_mm: float = 210.0
    page_height_mm: float = 297.0
    image_dpi: int = 200
    allow_remote: bool = True
    font_subsetting: bool = True
    default_font: str = "Arial"
    base_url: str | None = None


class RasterizerConfig(BaseModel):
    """源文档光栅化配置（按顺序探测，先找到者生效）"""

    order: list[str] = Field(default_factory=lambda: ["ghostscript", "pdftoppm"])
    dpi: int = 200
    jpeg_quality: int = 85
    ghostscript_exe: str = "gs"
    pdftoppm_exe: str = "pdftoppm"


class TimeoutConfig(BaseModel):
    """超时配置"""

    rasterize_sec: int = 120


class StorageConfig(BaseModel):
    """存储配置"""

    storage_dir: Path = Path("storage/app/public")
    documents_subdir: str = "pdf-templates"
    public_url_prefix: str = "/storage"
    public_base_url: str | None = None
    max_spreadsheet_mb: int = 10
    max_document_mb: int = 50


class BatchConfig(BaseModel):
    """批量生成配置"""

    best_effort: bool = False


class LoggingConfig(BaseModel):
    """日志配置"""

    log_level: str = "INFO"
    log_format: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
    log_file: Path | None = None


# YAML runtime_options 下的配置节
SECTIONS = ("render", "rasterizer", "timeouts", "storage", "batch", "logging")


class RuntimeConfig(BaseSettings):
    """运行期配置（支持环境变量覆盖）"""

    render: RenderConfig = Field(default_factory=RenderConfig)
    rasterizer: RasterizerConfig = Field(default_factory=RasterizerConfig)
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {
        "env_prefix": "DOCBATCH_",
        "env_nested_delimiter": "__",
        "arbitrary_types_allowed": True,
    }

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """优先级：环境变量 > 构造参数（YAML） > 默认值"""
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> RuntimeConfig:
        """从YAML文件加载配置"""
        path = Path(yaml_path)
        if not path.exists():
            return cls()

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        runtime_opts = data.get("runtime_options", {})

        # 各节以字典传入，与环境变量按键深度合并（环境变量优先）
        config = cls(**{section: cls._extract(runtime_opts, section) for section in SECTIONS})

        config._resolve_paths(base_dir=path.parent)
        return config

    @staticmethod
    def _extract(data: dict[str, Any], key: str) -> dict[str, Any]:
        """提取并展平配置（支持 {default: x} 写法）"""
        section = data.get(key) or {}
        result = {}
        for k, v in section.items():
            if isinstance(v, dict) and "default" in v:
                result[k] = v["default"]
            elif not isinstance(v, dict):
                result[k] = v
        return result

    def _resolve_paths(self, base_dir: Path) -> None:
        """解析相对路径配置为绝对路径（基于配置文件所在目录）"""
        if not self.storage.storage_dir.is_absolute():
            self.storage.storage_dir = (base_dir / self.storage.storage_dir).resolve()
        if self.logging.log_file and not self.logging.log_file.is_absolute():
            self.logging.log_file = (base_dir / self.logging.log_file).resolve()

    @property
    def documents_dir(self) -> Path:
        """源文档与光栅化背景的存放目录"""
        return self.storage.storage_dir / self.storage.documents_subdir

    def ensure_dirs(self) -> None:
        """确保必要目录存在"""
        self.documents_dir.mkdir(parents=True, exist_ok=True)


# 全局配置实例
_config: RuntimeConfig | None = None

DEFAULT_CONFIG_PATH = Path("config/docbatch.yaml")


def get_config() -> RuntimeConfig:
    """获取全局配置（惰性加载）"""
    global _config
    if _config is None:
        path = Path(os.environ.get("DOCBATCH_CONFIG", DEFAULT_CONFIG_PATH))
        _config = RuntimeConfig.from_yaml(path)
    return _config


def reload_config(yaml_path: str | Path | None = None) -> RuntimeConfig:
    """重新加载配置"""
    global _config
    path = yaml_path or os.environ.get("DOCBATCH_CONFIG", DEFAULT_CONFIG_PATH)
    _config = RuntimeConfig.from_yaml(path)
    return _config
