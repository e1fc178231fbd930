"""
模板文件加载器 - 读取模板定义与列映射（JSON/YAML）

职责：
- 解析模板文件为 Template 模型
- 解析列映射文件为 {字段列名: 表头}
- 缓存加载结果（避免重复解析）

使用方式：
    template = load_template("templates/certificate.json")
    mapping = load_mapping("templates/certificate.mapping.yaml")
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..interfaces import InvalidTemplateError
from ..models import Template


def _read_structured(path: Path) -> Any:
    """按扩展名读取 JSON 或 YAML"""
    if not path.exists():
        raise FileNotFoundError(f"文件不存在: {path}")

    with open(path, "r", encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            return json.load(f)
        return yaml.safe_load(f)


@lru_cache(maxsize=32)
def _load_template_cached(path: Path, mtime: float) -> Template:
    data = _read_structured(path)
    if not isinstance(data, dict):
        raise InvalidTemplateError(f"模板文件格式错误: {path}")
    try:
        return Template.model_validate(data)
    except ValidationError as e:
        raise InvalidTemplateError(f"模板文件校验失败: {path}: {e}") from e


def load_template(template_path: str | Path) -> Template:
    """加载模板定义（文件修改后自动失效缓存）"""
    path = Path(template_path)
    if not path.exists():
        raise FileNotFoundError(f"模板文件不存在: {path}")
    return _load_template_cached(path.resolve(), path.stat().st_mtime)


def load_mapping(mapping_path: str | Path) -> dict[str, str]:
    """加载列映射（值统一转为字符串，空值剔除）"""
    data = _read_structured(Path(mapping_path))
    if not isinstance(data, dict):
        raise InvalidTemplateError(f"列映射文件格式错误: {mapping_path}")

    # 兼容 {"column_mapping": {...}} 包装
    if "column_mapping" in data and isinstance(data["column_mapping"], dict):
        data = data["column_mapping"]

    return {str(k): str(v) for k, v in data.items() if v not in (None, "")}
