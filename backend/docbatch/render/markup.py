"""
标记投影器 - 模板字段 + 行数据 + 列映射 → 定位的HTML

职责：
1. 通过列映射解析字段取值（row[mapping[field.column]]）
2. 取值为空的字段整体省略（不输出空节点）
3. 输出绝对定位的文本节点：位置/尺寸/字号(pt)/对齐/字体/颜色/粗斜体/下划线
4. 背景图作为满版图片节点放在所有字段之下

两条生成路径：
- project: 单页叠加（源文档页图作背景，毫米坐标，只取第1页字段）
- project_pages: 多页模板（无背景，像素坐标，每个模板页一页）

依赖：
- jinja2: 页面骨架渲染（autoescape 负责文本/属性转义）

测试要点：
- test_empty_value_omitted: 空值字段不产生节点
- test_escape_markup: "A&B<C>" 按字面输出
- test_background_below_fields: 背景节点在字段节点之前
- test_deterministic_output: 相同输入字节级一致
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from jinja2 import Environment, StrictUndefined

from ..interfaces import IMarkupProjector
from ..models import BackgroundSource, Row, TemplateField, TemplatePage, normalize_cell
from .units import A4_HEIGHT_MM, A4_WIDTH_MM, fmt_number, font_size_pt, mm_to_px

_COLOR_RE = re.compile(r"^(#[0-9a-fA-F]{3,8}|[a-zA-Z]{3,20}|rgba?\([0-9.,%\s]+\))$")
_FONT_UNSAFE_RE = re.compile(r"[;{}<>'\"\\]")

DEFAULT_FONT = "Arial"
DEFAULT_COLOR = "#000000"


OVERLAY_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="UTF-8">
<style>
* { margin: 0; padding: 0; box-sizing: border-box; }
body { margin: 0; padding: 0; font-family: {{ default_font }}, sans-serif; }
.page { width: {{ width }}mm; height: {{ height }}mm; position: relative; background: white; overflow: hidden; }
.pdf-background { position: absolute; top: 0; left: 0; width: 100%; height: 100%; z-index: 1; object-fit: contain; }
.field { position: absolute; display: block; z-index: 2; white-space: pre-wrap; word-wrap: break-word; overflow: visible; background: transparent; }
</style>
</head>
<body>
<div class="page">
{% if background_src %}
<img class="pdf-background" src="{{ background_src }}" alt="">
{% endif %}
{% for node in nodes %}
<div class="field" style="{{ node.style }}">{{ node.text }}</div>
{% endfor %}
</div>
</body>
</html>
"""

PAGES_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="UTF-8">
<style>
* { margin: 0; padding: 0; box-sizing: border-box; }
body { margin: 0; padding: 0; font-family: {{ default_font }}, sans-serif; background: white; }
.page { width: {{ width }}mm; height: {{ height }}mm; position: relative; page-break-after: always; background: white; overflow: hidden; }
.page:last-child { page-break-after: auto; }
.field { position: absolute; display: block; color: #000000; white-space: pre-wrap; word-wrap: break-word; overflow: visible; }
</style>
</head>
<body>
{% for page in pages %}
<div class="page">
{% for node in page %}
<div class="field" style="{{ node.style }}">{{ node.text }}</div>
{% endfor %}
</div>
{% endfor %}
</body>
</html>
"""


@dataclass(frozen=True)
class FieldNode:
    """定位的文本节点"""
    style: str
    text: str


def resolve_value(field: TemplateField, row: Row, column_mapping: dict[str, str]) -> str:
    """字段取值：映射或行中缺失时返回空串"""
    if not field.column:
        return ""
    header = column_mapping.get(field.column)
    if not header or header not in row:
        return ""
    return normalize_cell(row[header])


def _safe_font(family: str) -> str:
    family = _FONT_UNSAFE_RE.sub("", family or "").strip()
    return family or DEFAULT_FONT


def _safe_color(color: str) -> str:
    color = (color or "").strip()
    return color if _COLOR_RE.match(color) else DEFAULT_COLOR


def build_field_style(field: TemplateField, unit: str = "mm") -> str:
    """字段内联样式（unit=mm 直接使用毫米，unit=px 先换算为像素）"""
    convert = mm_to_px if unit == "px" else (lambda v: v)
    style = field.style

    parts = [
        "position: absolute",
        f"left: {fmt_number(convert(field.x))}{unit}",
        f"top: {fmt_number(convert(field.y))}{unit}",
        f"width: {fmt_number(convert(field.width))}{unit}",
        f"min-height: {fmt_number(convert(field.height))}{unit}",
        f"font-size: {fmt_number(font_size_pt(style.font_size_pt))}pt",
        f"text-align: {style.text_align.value}",
        f"font-family: '{_safe_font(style.font_family)}'",
        f"color: {_safe_color(style.color_hex)}",
        f"font-weight: {'bold' if style.bold else 'normal'}",
        f"font-style: {'italic' if style.italic else 'normal'}",
        f"text-decoration: {'underline' if style.underline else 'none'}",
        "line-height: 1.2",
    ]
    return "; ".join(parts) + ";"


class MarkupProjector(IMarkupProjector):
    """标记投影器实现"""

    def __init__(
        self,
        page_width_mm: float = A4_WIDTH_MM,
        page_height_mm: float = A4_HEIGHT_MM,
        default_font: str = DEFAULT_FONT,
    ):
        self.page_width_mm = page_width_mm
        self.page_height_mm = page_height_mm
        self.default_font = _safe_font(default_font)
        env = Environment(
            autoescape=True,
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._overlay = env.from_string(OVERLAY_TEMPLATE)
        self._pages = env.from_string(PAGES_TEMPLATE)

    def project(
        self,
        fields: list[TemplateField],
        row: Row,
        column_mapping: dict[str, str],
        background: BackgroundSource,
    ) -> str:
        """单页叠加（毫米坐标）"""
        nodes = self.build_nodes(fields, row, column_mapping, unit="mm")
        return self._overlay.render(
            width=fmt_number(self.page_width_mm),
            height=fmt_number(self.page_height_mm),
            default_font=self.default_font,
            background_src=background.src,
            nodes=nodes,
        )

    def project_pages(
        self,
        pages: list[TemplatePage],
        row: Row,
        column_mapping: dict[str, str],
    ) -> str:
        """多页模板（像素坐标）"""
        page_nodes = [self.build_nodes(page.fields, row, column_mapping, unit="px") for page in pages]
        return self._pages.render(
            width=fmt_number(self.page_width_mm),
            height=fmt_number(self.page_height_mm),
            default_font=self.default_font,
            pages=page_nodes,
        )

    @staticmethod
    def build_nodes(
        fields: list[TemplateField],
        row: Row,
        column_mapping: dict[str, str],
        unit: str = "mm",
    ) -> list[FieldNode]:
        """按字段顺序生成节点，空值字段跳过"""
        nodes = []
        for field in fields:
            value = resolve_value(field, row, column_mapping)
            if not value.strip():
                continue
            nodes.append(FieldNode(style=build_field_style(field, unit), text=value))
        return nodes
