#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
文字度量换算

Photoshop 的文字度量以 pt、千分之一 em 表示，目标文档模型使用像素与比例。
本模块全部为无副作用的纯函数。
"""

import math
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

from config import import_config

PX_PER_INCH = 96
PT_PER_INCH = 72

FONT_SIZE_IMPLIED = "impliedPx"
FONT_SIZE_PT_TO_PX = "ptToPx"

ALIGNMENT_MAP = {
    "left": "left",
    "center": "center",
    "centre": "center",
    "middle": "center",
    "right": "right",
    "justify": "justify",
    "justifyleft": "left",
    "justifycenter": "center",
    "justifyright": "right",
    "justifyall": "justify",
    # 旧版数字代码
    "0": "left",
    "1": "center",
    "2": "right",
    "3": "justify",
}

BLEND_MODE_MAP = {
    "normal": "normal",
    "multiply": "multiply",
    "screen": "screen",
    "overlay": "overlay",
    "softLight": "soft-light",
    "hardLight": "hard-light",
    "colorDodge": "color-dodge",
    "colorBurn": "color-burn",
    "darken": "darken",
    "lighten": "lighten",
    "difference": "difference",
    "exclusion": "exclusion",
}


def pt_to_px(pt: float) -> float:
    return pt * PX_PER_INCH / PT_PER_INCH


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def to_number(value: Any) -> Optional[float]:
    """转为有限浮点数；支持 {"value": n} 单位对象，无法转换时返回 None"""
    if isinstance(value, dict):
        value = value.get("value")
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def first_value(sources: Iterable[Optional[Dict[str, Any]]], keys: Sequence[str]) -> Any:
    """依次在每个来源中查找各个键名，返回第一个非 None 的值"""
    for source in sources:
        if not isinstance(source, dict):
            continue
        for key in keys:
            value = source.get(key)
            if value is not None:
                return value
    return None


def resolve_font_size(
    style: Dict[str, Any],
    engine_style: Optional[Dict[str, Any]] = None,
) -> Tuple[float, str, float]:
    """解析字号

    优先使用 Photoshop 记录的隐含像素字号 (ImpliedFontSize)，否则按 pt→px(96/72) 换算。

    Returns:
        (像素字号, 来源标记, 原始pt字号)
    """
    engine_style = engine_style or {}
    implied = to_number(first_value([style, engine_style], ["impliedFontSize", "ImpliedFontSize"]))
    size_pt = to_number(first_value([style], ["fontSize", "Size"])) or to_number(engine_style.get("FontSize"))
    if not size_pt:
        size_pt = import_config.DEFAULT_FONT_SIZE_PT

    if implied and implied > 0:
        base_px, source = implied, FONT_SIZE_IMPLIED
    else:
        base_px, source = pt_to_px(size_pt), FONT_SIZE_PT_TO_PX
    return max(1.0, round(base_px, 2)), source, size_pt


def letter_spacing_from_tracking(tracking: Any) -> float:
    """tracking 以千分之一 em 表示"""
    value = to_number(tracking)
    if value is None:
        return 0.0
    return clamp(
        round(value / 1000, 3),
        import_config.LETTER_SPACING_MIN,
        import_config.LETTER_SPACING_MAX,
    )


def line_height_from_leading(leading_pt: Any, font_px: float) -> float:
    """leading(pt) 换算为像素后除以字号像素，得到行高比例"""
    value = to_number(leading_pt)
    if not value or value <= 0 or font_px <= 0:
        return import_config.DEFAULT_LINE_HEIGHT
    return clamp(
        round(pt_to_px(value) / font_px, 3),
        import_config.LINE_HEIGHT_MIN,
        import_config.LINE_HEIGHT_MAX,
    )


def matrix_scale(transform: Any) -> Tuple[float, float]:
    """从 [xx, xy, yx, yy, tx, ty] 矩阵分解缩放（列向量长度），不可用时返回 (0, 0)"""
    if not isinstance(transform, (list, tuple)) or len(transform) < 4:
        return 0.0, 0.0
    xx, xy, yx, yy = (to_number(v) or 0.0 for v in transform[:4])
    return math.hypot(xx, xy), math.hypot(yx, yy)


def resolve_text_scale(
    style: Dict[str, Any],
    engine_style: Optional[Dict[str, Any]] = None,
    transform: Any = None,
) -> Tuple[float, float]:
    """合并百分比缩放与变换矩阵缩放"""
    sources = [style, engine_style or {}]
    h_pct = to_number(first_value(sources, ["horizontalScale", "HorizontalScale"]))
    v_pct = to_number(first_value(sources, ["verticalScale", "VerticalScale"]))
    scale_x = h_pct / 100 if h_pct and h_pct > 0 else 1.0
    scale_y = v_pct / 100 if v_pct and v_pct > 0 else 1.0

    calc_x, calc_y = matrix_scale(transform)
    if calc_x > 0:
        scale_x *= calc_x
    if calc_y > 0:
        scale_y *= calc_y
    return scale_x, scale_y


def map_text_alignment(value: Any) -> str:
    if value is None or value == "":
        return "left"
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return ALIGNMENT_MAP.get(str(value).strip().lower(), "left")


def map_blend_mode(value: Any) -> str:
    return BLEND_MODE_MAP.get(value, "normal") if isinstance(value, str) else "normal"


def normalize_rgb(color: Any) -> Optional[Tuple[int, int, int]]:
    """统一颜色为 0-255 整数三元组

    支持 {r,g,b}、引擎数据 {"Values": [a, r, g, b]}、(r, g, b) 序列。
    分量均 ≤ 1 时视为归一化浮点并乘以 255，否则截断到 [0, 255]。
    """
    channels = None
    if isinstance(color, dict):
        if all(color.get(k) is not None for k in ("r", "g", "b")):
            channels = [color["r"], color["g"], color["b"]]
        elif isinstance(color.get("Values"), (list, tuple)) and len(color["Values"]) >= 4:
            channels = list(color["Values"][1:4])
    elif isinstance(color, (list, tuple)) and len(color) >= 3:
        channels = list(color[:3])
    if channels is None:
        return None

    numbers = [to_number(c) for c in channels]
    if any(n is None for n in numbers):
        return None
    if all(n <= 1 for n in numbers):
        numbers = [n * 255 for n in numbers]
    r, g, b = (int(round(clamp(n, 0, 255))) for n in numbers)
    return r, g, b


def format_rgb(rgb: Tuple[int, int, int]) -> str:
    return "rgb({}, {}, {})".format(*rgb)
