"""
模板模型 - 页面/字段/样式

字段坐标以毫米为单位，左上角为原点。
兼容画布编辑器保存的扁平键（fontSize/fontColor/fontWeight...）与嵌套 style 两种写法。
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class FieldType(str, Enum):
    """字段类型"""
    TEXT = "text"
    IMAGE = "image"


class TextAlign(str, Enum):
    """水平对齐"""
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


# 画布扁平键 → FieldStyle 字段
_FLAT_STYLE_KEYS = {
    "fontSize": "font_size_pt",
    "fontSizePt": "font_size_pt",
    "fontFamily": "font_family",
    "fontColor": "color_hex",
    "color": "color_hex",
    "colorHex": "color_hex",
    "textAlign": "text_align",
}


class FieldStyle(BaseModel):
    """字段样式（字号按磅值直接使用，不做 px→pt 换算）"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    font_size_pt: float = Field(12.0, gt=0)
    font_family: str = "Arial"
    color_hex: str = "#000000"
    text_align: TextAlign = TextAlign.LEFT
    bold: bool = False
    italic: bool = False
    underline: bool = False

    @field_validator("text_align", mode="before")
    @classmethod
    def _lower_align(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().lower()
            # 未知对齐方式按左对齐处理
            if v not in {a.value for a in TextAlign}:
                return TextAlign.LEFT
        return v


class TemplateField(BaseModel):
    """模板字段"""

    type: FieldType = FieldType.TEXT
    x: float = Field(0.0, ge=0)
    y: float = Field(0.0, ge=0)
    width: float = Field(100.0, ge=0)
    height: float = Field(20.0, ge=0)
    column: str = Field("", description="逻辑列名（通过列映射解析到表头）")
    style: FieldStyle = Field(default_factory=FieldStyle)

    @field_validator("column", mode="before")
    @classmethod
    def _column_str(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @model_validator(mode="before")
    @classmethod
    def _fold_flat_style(cls, data: Any) -> Any:
        """把画布保存的扁平样式键合并进 style"""
        if not isinstance(data, dict):
            return data

        style = dict(data.get("style") or {})
        for key, target in _FLAT_STYLE_KEYS.items():
            if key in data and data[key] is not None:
                style.setdefault(target, data[key])
        if "fontWeight" in data:
            style.setdefault("bold", str(data["fontWeight"]).lower() in ("bold", "700", "800", "900"))
        if "fontStyle" in data:
            style.setdefault("italic", str(data["fontStyle"]).lower() == "italic")
        if "textDecoration" in data:
            style.setdefault("underline", "underline" in str(data["textDecoration"]).lower())

        folded = {k: v for k, v in data.items() if k in cls.model_fields and k != "style"}
        folded["style"] = style
        return folded


class TemplatePage(BaseModel):
    """模板页"""

    fields: list[TemplateField] = Field(default_factory=list)


class Template(BaseModel):
    """模板（width/height 仅用于画布编辑，生成路径固定A4）"""

    name: str = "template"
    width: float = 210.0
    height: float = 297.0
    pages: list[TemplatePage] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _pages_from_fields(cls, data: Any) -> Any:
        """无 pages 但有扁平 fields 时视为单页模板"""
        if isinstance(data, dict) and not data.get("pages") and data.get("fields"):
            data = dict(data)
            data["pages"] = [{"fields": data.pop("fields")}]
        return data

    @property
    def field_count(self) -> int:
        return sum(len(p.fields) for p in self.pages)
