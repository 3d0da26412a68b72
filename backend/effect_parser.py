#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
图层效果解析

把图层上的效果块（描边、外发光、颜色叠加、投影、内阴影、斜面浮雕）解析为统一的
EffectSet。效果块可能出现在多个字段下，按固定顺序逐个尝试，取第一个命中的结果。
"""

import logging
import math
import re
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from elements import (
    BevelEmbossEffect,
    ColorOverlayEffect,
    DropShadowEffect,
    EffectSet,
    InnerShadowEffect,
    OuterGlowEffect,
    StrokeEffect,
)
from text_metrics import format_rgb, normalize_rgb, to_number

logger = logging.getLogger(__name__)

DEFAULT_COLOR = "rgb(0, 0, 0)"
EFFECT_INFO_KEYS = ("lfx2", "leff")

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
_RGB_RE = re.compile(r"^rgba?\(\s*([\d.]+)\s*,\s*([\d.]+)\s*,\s*([\d.]+)")


def _from_field(name: str) -> Callable[[Dict[str, Any]], Any]:
    return lambda layer: layer.get(name)


def _from_additional_info(layer: Dict[str, Any]) -> Any:
    """在 additionalLayerInfo 列表中查找 lfx2/leff 效果块"""
    infos = layer.get("additionalLayerInfo")
    if not isinstance(infos, (list, tuple)):
        return None
    for info in infos:
        if not isinstance(info, dict):
            continue
        if info.get("key") in EFFECT_INFO_KEYS or info.get("signature") in EFFECT_INFO_KEYS:
            return info.get("data") or info
    return None


# 效果块来源，按优先级排列
EFFECT_BLOCK_ACCESSORS: List[Callable[[Dict[str, Any]], Any]] = [
    _from_field("effects"),
    _from_field("layerEffects"),
    _from_additional_info,
]


def find_effects_block(layer: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    for accessor in EFFECT_BLOCK_ACCESSORS:
        block = accessor(layer)
        if isinstance(block, dict) and block:
            return block
    return None


def parse_effect_color(color: Any) -> str:
    """统一效果颜色为 rgb(r, g, b)；缺失或无法识别时为黑色"""
    if color is None:
        return DEFAULT_COLOR

    if isinstance(color, str):
        text = color.strip()
        match = _HEX_RE.match(text)
        if match:
            digits = match.group(1)
            if len(digits) == 3:
                digits = "".join(ch * 2 for ch in digits)
            return format_rgb(tuple(int(digits[i:i + 2], 16) for i in (0, 2, 4)))
        match = _RGB_RE.match(text)
        if match:
            rgb = normalize_rgb([float(v) for v in match.groups()])
            return format_rgb(rgb) if rgb else DEFAULT_COLOR
        return DEFAULT_COLOR

    rgb = normalize_rgb(color)
    return format_rgb(rgb) if rgb else DEFAULT_COLOR


def _pick(block: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = block.get(key)
        if value is not None:
            return value
    return None


def _num(block: Dict[str, Any], keys: Sequence[str], default: float) -> float:
    value = to_number(_pick(block, *keys))
    return default if value is None else value


def _text(block: Dict[str, Any], keys: Sequence[str], default: str) -> str:
    value = _pick(block, *keys)
    return str(value) if value not in (None, "") else default


def _sub_block(effects_data: Dict[str, Any], names: Tuple[str, ...]) -> Optional[Dict[str, Any]]:
    """取效果子块；列表形式时取第一个未禁用的条目"""
    block = _pick(effects_data, *names)
    if isinstance(block, (list, tuple)):
        block = next((b for b in block if isinstance(b, dict) and b.get("enabled") is not False), None)
    if not isinstance(block, dict) or block.get("enabled") is False:
        return None
    return block


def _stroke(data: Dict[str, Any]) -> StrokeEffect:
    return StrokeEffect(
        size=_num(data, ("size", "strokeWidth"), 1),
        color=parse_effect_color(_pick(data, "color", "strokeColor")),
        position=_text(data, ("position", "strokePosition"), "outside"),
        opacity=_num(data, ("opacity", "strokeOpacity"), 100),
    )


def _outer_glow(data: Dict[str, Any]) -> OuterGlowEffect:
    return OuterGlowEffect(
        color=parse_effect_color(data.get("color")),
        opacity=_num(data, ("opacity",), 75),
        blur=_num(data, ("blur", "size"), 5),
        spread=_num(data, ("spread",), 0),
        blend_mode=_text(data, ("blendMode",), "normal"),
    )


def _color_overlay(data: Dict[str, Any]) -> ColorOverlayEffect:
    return ColorOverlayEffect(
        color=parse_effect_color(data.get("color")),
        opacity=_num(data, ("opacity",), 100),
        blend_mode=_text(data, ("blendMode",), "normal"),
    )


def _drop_shadow(data: Dict[str, Any]) -> DropShadowEffect:
    return DropShadowEffect(
        color=parse_effect_color(data.get("color")),
        opacity=_num(data, ("opacity",), 75),
        distance=_num(data, ("distance",), 5),
        angle=_num(data, ("angle",), 120),
        blur=_num(data, ("blur", "size"), 5),
        spread=_num(data, ("spread",), 0),
    )


def _inner_shadow(data: Dict[str, Any]) -> InnerShadowEffect:
    return InnerShadowEffect(
        color=parse_effect_color(data.get("color")),
        opacity=_num(data, ("opacity",), 75),
        distance=_num(data, ("distance",), 5),
        angle=_num(data, ("angle",), 120),
        blur=_num(data, ("blur", "size"), 5),
        choke=_num(data, ("choke",), 0),
    )


def _bevel_emboss(data: Dict[str, Any]) -> BevelEmbossEffect:
    return BevelEmbossEffect(
        style=_text(data, ("style",), "innerBevel"),
        technique=_text(data, ("technique",), "smooth"),
        depth=_num(data, ("depth",), 100),
        size=_num(data, ("size",), 5),
        soften=_num(data, ("soften",), 0),
        angle=_num(data, ("angle",), 120),
        altitude=_num(data, ("altitude",), 30),
        highlight_mode=_text(data, ("highlightMode",), "screen"),
        shadow_mode=_text(data, ("shadowMode",), "multiply"),
    )


# (EffectSet 字段, 源字段别名, 构造函数)
EFFECT_KINDS = [
    ("stroke", ("stroke", "frameFX"), _stroke),
    ("outer_glow", ("outerGlow", "outerGlowEffect"), _outer_glow),
    ("color_overlay", ("colorOverlay", "solidFill"), _color_overlay),
    ("drop_shadow", ("dropShadow",), _drop_shadow),
    ("inner_shadow", ("innerShadow",), _inner_shadow),
    ("bevel_emboss", ("bevelEmboss",), _bevel_emboss),
]


def parse_effects(layer: Dict[str, Any]) -> EffectSet:
    """解析图层效果，缺省字段一律填入默认值；解析失败时保留已解析的部分"""
    slots: Dict[str, Any] = {}
    try:
        effects_data = find_effects_block(layer)
        if not effects_data:
            return EffectSet()

        logger.debug("[EFFECT] 图层 '%s' 效果数据: %s", layer.get("name"), list(effects_data))
        for field, names, build in EFFECT_KINDS:
            block = _sub_block(effects_data, names)
            if block is not None:
                slots[field] = build(block)
    except Exception as e:
        logger.warning("[WARNING] 解析图层效果失败 '%s': %s", layer.get("name"), e)

    return EffectSet(has_effects=bool(slots), **slots)


def generate_css_effects(effects: Optional[EffectSet]) -> Optional[str]:
    """把效果转为等效 CSS 样式字符串，用于即时预览"""
    if effects is None or not effects.has_effects:
        return None

    declarations: List[str] = []
    text_shadows: List[str] = []
    filters: List[str] = []

    stroke = effects.stroke
    if stroke and stroke.enabled:
        size = stroke.size or 1
        declarations.append(f"-webkit-text-stroke: {_fmt(size)}px {stroke.color}")
        reach = max(1, int(math.ceil(size)))
        for dx in range(-reach, reach + 1):
            for dy in range(-reach, reach + 1):
                if dx or dy:
                    text_shadows.append(f"{dx}px {dy}px 0 {stroke.color}")

    glow = effects.outer_glow
    if glow and glow.enabled:
        text_shadows.append(f"0 0 {_fmt(glow.blur)}px {glow.color}")
        text_shadows.append(f"0 0 {_fmt(glow.blur * 2)}px {glow.color}")
        filters.append(f"drop-shadow(0 0 {_fmt(glow.blur)}px {glow.color})")

    overlay = effects.color_overlay
    if overlay and overlay.enabled:
        declarations.append(f"color: {overlay.color} !important")
        if overlay.opacity < 100:
            declarations.append(f"opacity: {_fmt(overlay.opacity / 100)}")

    shadow = effects.drop_shadow
    if shadow and shadow.enabled:
        offset_x, offset_y = shadow_offset(shadow.angle, shadow.distance)
        text_shadows.append(f"{_fmt(offset_x)}px {_fmt(offset_y)}px {_fmt(shadow.blur)}px {shadow.color}")
        filters.append(f"drop-shadow({_fmt(offset_x)}px {_fmt(offset_y)}px {_fmt(shadow.blur)}px {shadow.color})")

    if text_shadows:
        declarations.append("text-shadow: " + ", ".join(text_shadows))
    if filters:
        declarations.append("filter: " + " ".join(filters))
    return "; ".join(declarations) if declarations else None


def shadow_offset(angle: float, distance: float) -> Tuple[float, float]:
    radians = angle * math.pi / 180
    return math.cos(radians) * distance, math.sin(radians) * distance


def _fmt(value: float) -> str:
    return f"{round(value, 3):g}"
