"""
单位换算 - 毫米 → CSS像素 / PDF点

字号直接按磅值使用，不做 px→pt 换算（与桌面排版软件的用户习惯一致）
"""

from __future__ import annotations

# 96 DPI 下 1mm 的像素数
MM_TO_PX = 3.779527559
# 1mm 的点数（1pt = 1/72in）
MM_TO_PT = 2.83465

A4_WIDTH_MM = 210.0
A4_HEIGHT_MM = 297.0


def mm_to_px(mm: float) -> float:
    """毫米 → CSS像素（多页HTML生成路径使用）"""
    return mm * MM_TO_PX


def mm_to_pt(mm: float) -> float:
    """毫米 → 点（向渲染引擎声明页面尺寸时使用）"""
    return mm * MM_TO_PT


def font_size_pt(size: float) -> float:
    """模板字号 → 输出字号（原样透传）"""
    return size


def fmt_number(value: float) -> str:
    """数值格式化为CSS长度数字（去掉多余的0）"""
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    return text if text not in ("", "-0") else "0"
