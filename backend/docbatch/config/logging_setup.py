"""
日志初始化 - 根据 LoggingConfig 配置根 logger

各模块统一使用 logging.getLogger(__name__)，这里只负责 handler 与级别
"""

from __future__ import annotations

import logging

from .runtime_config import LoggingConfig

_configured = False


def setup_logging(config: LoggingConfig, force: bool = False) -> None:
    """配置根 logger（重复调用无副作用，除非 force）"""
    global _configured
    if _configured and not force:
        return

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.log_file:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(config.log_file, encoding="utf-8"))

    logging.basicConfig(
        level=config.log_level.upper(),
        format=config.log_format,
        handlers=handlers,
        force=True,
    )
    _configured = True
