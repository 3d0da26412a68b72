#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
图层 → 文档元素转换

对每个扁平化后的图层判断：
- 隐藏且无任何内容：跳过 (None)
- 文字图层：生成可编辑文字元素（或按选项位图化为图片元素，保留原文本）
- 像素图层：生成图片元素；没有可用像素时生成半透明占位矩形

单个图层转换出错只影响该图层，记录日志后返回 None。
"""

# 标准库导入
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

# 本地模块导入
from canvas_rasterizer import (
    has_pixel_data,
    image_to_data_url,
    layer_to_canvas,
    native_size,
    render_layer_pixels,
)
from config import ImportConfig, import_config
from effect_parser import generate_css_effects, parse_effects
from elements import (
    Element,
    ImageElement,
    ImportSummary,
    PlaceholderElement,
    TextElement,
    merge_custom,
)
from font_cache import SANS_FALLBACK, FontCache
from text_metrics import (
    FONT_SIZE_PT_TO_PX,
    clamp,
    first_value,
    format_rgb,
    letter_spacing_from_tracking,
    line_height_from_leading,
    map_blend_mode,
    map_text_alignment,
    normalize_rgb,
    resolve_font_size,
    resolve_text_scale,
)
from utils.strings import new_element_id, sanitize_name

logger = logging.getLogger(__name__)


# ===== 文字样式来源 =====

def engine_style_sheet(text: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """engineData.StyleRun 第一段的 StyleSheetData；StyleRun 可能是列表或带 RunArray 的字典"""
    engine = text.get("engineData")
    if not isinstance(engine, dict):
        return None
    style_run = engine.get("StyleRun")
    if isinstance(style_run, dict):
        style_run = style_run.get("RunArray")
    if not isinstance(style_run, list) or not style_run or not isinstance(style_run[0], dict):
        return None
    sheet = style_run[0].get("StyleSheet")
    if not isinstance(sheet, dict):
        return None
    data = sheet.get("StyleSheetData")
    return data if isinstance(data, dict) else None


def _from_style_range(text: Dict[str, Any]) -> Any:
    ranges = text.get("textStyleRange")
    if isinstance(ranges, list) and ranges and isinstance(ranges[0], dict):
        return ranges[0].get("textStyle")
    return None


def _from_runs(text: Dict[str, Any]) -> Any:
    runs = text.get("runs")
    if isinstance(runs, list) and runs and isinstance(runs[0], dict):
        return runs[0].get("style")
    return None


def _from_default_style(text: Dict[str, Any]) -> Any:
    return text.get("style")


# 按优先级排列：第一个返回非空字典的来源胜出
TEXT_STYLE_SOURCES: List[Tuple[str, Callable[[Dict[str, Any]], Any]]] = [
    ("textStyleRange", _from_style_range),
    ("runs", _from_runs),
    ("style", _from_default_style),
    ("engineData", engine_style_sheet),
]


def default_text_style() -> Dict[str, Any]:
    return {
        "fontSize": import_config.DEFAULT_FONT_SIZE_PT,
        "fontName": import_config.DEFAULT_FONT_NAME,
        "fillColor": {"r": 0, "g": 0, "b": 0},
    }


def resolve_text_style(text: Dict[str, Any]) -> Tuple[Dict[str, Any], str]:
    """返回 (样式字典, 来源名)"""
    for source, extract in TEXT_STYLE_SOURCES:
        style = extract(text)
        if isinstance(style, dict) and style:
            return style, source
    return default_text_style(), "default"


def text_content(layer: Dict[str, Any]) -> Optional[str]:
    text = layer.get("text")
    if isinstance(text, dict):
        content = text.get("text")
        if isinstance(content, str) and content:
            return content
    return None


# ===== 转换器 =====

class LayerElementMapper:
    """扁平图层 → 文档元素"""

    def __init__(
        self,
        rasterize_text: Optional[bool] = None,
        font_cache: Optional[FontCache] = None,
        config: Optional[ImportConfig] = None,
    ):
        self.config = config or import_config
        self.rasterize_text = self.config.RASTERIZE_TEXT if rasterize_text is None else rasterize_text
        self.font_cache = font_cache or FontCache()

    def map_layer(self, layer: Dict[str, Any], summary: Optional[ImportSummary] = None) -> Optional[Element]:
        """转换单个图层；跳过或出错时返回 None，并计入 summary"""
        try:
            element = self._convert(layer)
        except Exception:
            logger.exception("[ERROR] 图层转换失败: %s (keys=%s)", layer.get("name"), sorted(layer))
            if summary is not None:
                summary.errors += 1
            return None

        if element is None and summary is not None:
            summary.skipped += 1
        return element

    def _convert(self, layer: Dict[str, Any]) -> Optional[Element]:
        name = sanitize_name(layer.get("name"))
        hidden = bool(layer.get("hidden"))
        content = text_content(layer)

        if hidden and not layer.get("text") and not has_pixel_data(layer) and not layer.get("children"):
            logger.info("[SKIP] 跳过空隐藏图层: %s", name)
            return None
        if hidden:
            logger.info("[INFO] 导入隐藏图层但设置为不可见: %s", name)

        left = float(layer.get("left") or 0)
        top = float(layer.get("top") or 0)
        raw_width = abs(float(layer.get("right") or 0) - left)
        raw_height = abs(float(layer.get("bottom") or 0) - top)
        width, height = self._resolve_size(layer, raw_width, raw_height)

        opacity = layer.get("opacity")
        common = dict(
            id=new_element_id(),
            name=name,
            x=left,
            y=top,
            width=width,
            height=height,
            rotation=0,
            opacity=clamp(float(opacity), 0, 1) if opacity is not None else 1,
            visible=not hidden,
            blend_mode=map_blend_mode(layer.get("blendMode")),
        )
        logger.debug("[CREATE] 创建元素: %s, 位置: (%s, %s), 尺寸: %sx%s", name, left, top, width, height)

        if content is not None:
            if self.rasterize_text:
                return self._rasterized_text(layer, content, common)
            return self._text_element(layer, content, common)
        return self._raster_element(layer, common, raw_width > 0 and raw_height > 0)

    def _resolve_size(self, layer: Dict[str, Any], width: float, height: float) -> Tuple[float, float]:
        """边界为空时退回像素数据尺寸，最小为 1"""
        native_w, native_h = native_size(layer)
        if width <= 0 and native_w:
            width = native_w
        if height <= 0 and native_h:
            height = native_h
        return max(1.0, width), max(1.0, height)

    def _rasterized_text(self, layer: Dict[str, Any], content: str, common: Dict[str, Any]) -> ImageElement:
        bitmap = layer_to_canvas(layer, font_cache=self.font_cache)
        return ImageElement(
            **common,
            src=image_to_data_url(bitmap, "PNG", enhance=True),
            custom=merge_custom(None, {
                "fromPSD": True,
                "fromTextLayer": True,
                "originalText": content,
                "rasterized": True,
            }),
        )

    def _text_element(self, layer: Dict[str, Any], content: str, common: Dict[str, Any]) -> TextElement:
        text = layer["text"]
        style, style_source = resolve_text_style(text)
        engine_style = engine_style_sheet(text) or {}
        sources = [style, engine_style]
        custom = merge_custom(None, {
            "fromPSD": True,
            "fromTextLayer": True,
            "psdTextLayer": True,
            "originalText": content,
            "rasterized": False,
            "styleSource": style_source,
        })

        # 字号
        font_size, size_source, size_pt = resolve_font_size(style, engine_style)
        custom = merge_custom(custom, {
            "originalFontSizePt": size_pt,
            "originalFontSizePx": font_size,
            "fontSizeSource": size_source,
        })

        # 字体
        font_name = first_value(sources, ["fontName", "FontName"])
        font_family = self.font_cache.resolve_family(font_name) if font_name else SANS_FALLBACK
        custom = merge_custom(custom, {"originalFontName": font_name})

        # 颜色
        rgb = normalize_rgb(first_value(sources, ["fillColor", "FillColor"])) or (0, 0, 0)
        custom = merge_custom(custom, {"preciseColor": {"r": rgb[0], "g": rgb[1], "b": rgb[2]}})

        # 对齐
        align = map_text_alignment(first_value(sources, ["alignment", "justification", "Justification"]))

        # 粗体/斜体/装饰
        lowered = str(font_name or "").lower()
        bold = bool(first_value(sources, ["fauxBold", "FauxBold"])) or "bold" in lowered
        italic = bool(first_value(sources, ["fauxItalic", "FauxItalic"])) or "italic" in lowered
        decorations = []
        if first_value(sources, ["underline", "Underline"]):
            decorations.append("underline")
        if first_value(sources, ["strikethrough", "Strikethrough"]):
            decorations.append("line-through")

        # 字距
        tracking = first_value(sources, ["tracking", "Tracking"])
        letter_spacing = letter_spacing_from_tracking(tracking)

        # 水平/垂直缩放，只在 pt→px 路径上修正，避免对隐含像素字号二次缩放
        transform = first_value([text.get("engineData"), text, engine_style], ["Transform", "transform"])
        scale_x, scale_y = resolve_text_scale(style, engine_style, transform)
        if size_source == FONT_SIZE_PT_TO_PX:
            if scale_y != 1:
                before = font_size
                font_size = max(1.0, round(font_size * scale_y, 2))
                custom = merge_custom(custom, {"appliedScaleY": scale_y, "fontSizeBeforeScale": before})
            if scale_x != 1 and letter_spacing:
                letter_spacing = clamp(
                    round(letter_spacing * scale_x, 3),
                    self.config.LETTER_SPACING_MIN,
                    self.config.LETTER_SPACING_MAX,
                )
                custom = merge_custom(custom, {"appliedScaleX": scale_x})

        # 行高（基于最终字号）
        leading = None
        if not first_value(sources, ["autoLeading", "AutoLeading"]):
            leading = first_value(sources, ["leading", "Leading"])
        line_height = line_height_from_leading(leading, font_size)
        custom = merge_custom(custom, {
            "originalLeadingPt": leading,
            "originalTrackingThousandthsEm": tracking,
        })

        # 图层效果
        effects = parse_effects(layer)
        css_effects = None
        if effects.has_effects:
            css_effects = generate_css_effects(effects)
            logger.debug("[EFFECT] 文字图层 '%s' 包含效果", common["name"])

        return TextElement(
            **common,
            text=content,
            font_size=font_size,
            font_family=font_family,
            font_weight="bold" if bold else "normal",
            font_style="italic" if italic else "normal",
            text_decoration=" ".join(decorations) if decorations else "none",
            fill=format_rgb(rgb),
            align=align,
            line_height=line_height,
            letter_spacing=letter_spacing,
            effects=effects if effects.has_effects else None,
            css_effects=css_effects,
            custom=custom,
        )

    def _raster_element(self, layer: Dict[str, Any], common: Dict[str, Any], has_bounds: bool) -> Optional[Element]:
        name = common["name"]
        if not has_pixel_data(layer) and not has_bounds:
            logger.info("[SKIP] 跳过空图层: %s (无有效内容)", name)
            return None

        bitmap = render_layer_pixels(layer)
        if bitmap is None or bitmap.width <= 0 or bitmap.height <= 0:
            logger.warning("[WARNING] 图层 %s 无图像内容，创建占位符", name)
            return PlaceholderElement(
                **common,
                fill=self.config.PLACEHOLDER_FILL,
                stroke=self.config.PLACEHOLDER_STROKE,
                stroke_width=self.config.PLACEHOLDER_STROKE_WIDTH,
                custom={"isPlaceholder": True, "psdLayer": True},
            )

        logger.debug("[SUCCESS] 图像图层创建: %s, 尺寸: %sx%s", name, bitmap.width, bitmap.height)
        return ImageElement(
            **common,
            src=image_to_data_url(bitmap, "PNG", enhance=True),
            custom={
                "psdImageLayer": True,
                "highQuality": True,
                "originalDimensions": {"width": bitmap.width, "height": bitmap.height},
            },
        )
