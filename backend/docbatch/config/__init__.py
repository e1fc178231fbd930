"""
配置层 - 加载运行期配置与模板文件

职责：
- 加载 config/docbatch.yaml（运行期参数）
- 加载模板定义/列映射文件
- 提供类型安全的配置访问接口
"""

from .logging_setup import setup_logging
from .runtime_config import (
    BatchConfig,
    LoggingConfig,
    RasterizerConfig,
    RenderConfig,
    RuntimeConfig,
    StorageConfig,
    TimeoutConfig,
    get_config,
    reload_config,
)
from .template_loader import load_mapping, load_template

__all__ = [
    "RuntimeConfig",
    "RenderConfig",
    "RasterizerConfig",
    "TimeoutConfig",
    "StorageConfig",
    "BatchConfig",
    "LoggingConfig",
    "get_config",
    "reload_config",
    "setup_logging",
    "load_template",
    "load_mapping",
]
