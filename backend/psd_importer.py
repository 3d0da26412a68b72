#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
PSD 导入流程

读取 → 扁平化 → 逐层转换 → 按目标画布等比缩放 → 逐个添加到宿主页面
文件格式错误直接抛出 PSDFormatError；其余错误按图层隔离并计入 ImportSummary。
"""

# 标准库导入
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

# 本地模块导入
from config import ImportConfig, import_config
from effect_parser import generate_css_effects
from element_mapper import LayerElementMapper
from elements import (
    BevelEmbossEffect,
    DropShadowEffect,
    Element,
    EffectSet,
    ImportSummary,
    InnerShadowEffect,
    OuterGlowEffect,
    PlaceholderElement,
    StrokeEffect,
    TextElement,
)
from font_cache import FontCache
from host_page import HostPage
from layer_flattener import flatten_layers
from psd_reader import PSDDocument, read_psd

logger = logging.getLogger(__name__)


@dataclass
class ImportOptions:
    """单次导入的选项，导入开始时读取一次"""
    rasterize_text: bool = False


def compute_fit_scale(src_w: float, src_h: float, dst_w: float, dst_h: float) -> float:
    """源文档等比放入目标画布的缩放比例；尺寸无效时为 1"""
    if src_w <= 0 or src_h <= 0 or dst_w <= 0 or dst_h <= 0:
        return 1.0
    return min(dst_w / src_w, dst_h / src_h)


# 每种效果中随缩放变化的量
EFFECT_MAGNITUDES = {
    StrokeEffect: ("size",),
    OuterGlowEffect: ("blur", "spread"),
    DropShadowEffect: ("distance", "blur", "spread"),
    InnerShadowEffect: ("distance", "blur"),
    BevelEmbossEffect: ("depth", "size"),
}


def _scale_fields(model, fields, scale: float):
    return model.model_copy(update={name: getattr(model, name) * scale for name in fields})


def scale_effects(effects: Optional[EffectSet], scale: float) -> Optional[EffectSet]:
    if effects is None:
        return None
    update: Dict[str, Any] = {}
    for slot in ("stroke", "outer_glow", "drop_shadow", "inner_shadow", "bevel_emboss"):
        effect = getattr(effects, slot)
        if effect is not None:
            update[slot] = _scale_fields(effect, EFFECT_MAGNITUDES[type(effect)], scale)
    return effects.model_copy(update=update)


def scale_element(element: Element, scale: float) -> Element:
    """返回缩放后的新元素，原元素不变"""
    update: Dict[str, Any] = {
        "x": element.x * scale,
        "y": element.y * scale,
        "width": element.width * scale,
        "height": element.height * scale,
    }
    if isinstance(element, TextElement):
        update["font_size"] = element.font_size * scale
        scaled_effects = scale_effects(element.effects, scale)
        update["effects"] = scaled_effects
        update["css_effects"] = generate_css_effects(scaled_effects)
    if isinstance(element, PlaceholderElement):
        update["stroke_width"] = element.stroke_width * scale
        update["corner_radius"] = element.corner_radius * scale
    return element.model_copy(update=update)


class PSDImporter:
    """PSD 导入器，字体缓存在整个会话中复用"""

    def __init__(self, config: Optional[ImportConfig] = None, font_cache: Optional[FontCache] = None):
        self.config = config or import_config
        self.font_cache = font_cache or FontCache()

    def import_file(self, path: str, page: HostPage, options: Optional[ImportOptions] = None) -> ImportSummary:
        if not os.path.exists(path):
            raise FileNotFoundError(f"PSD文件不存在: {path}")
        logger.info("[INFO] 导入PSD文件: %s", path)
        with open(path, "rb") as f:
            data = f.read()
        return self.import_bytes(data, page, options)

    def import_bytes(self, data: bytes, page: HostPage, options: Optional[ImportOptions] = None) -> ImportSummary:
        """导入PSD字节流到页面，返回统计结果"""
        if options is None:
            options = ImportOptions(rasterize_text=self.config.RASTERIZE_TEXT)
        document = read_psd(data)
        return self.import_document(document, page, options)

    def import_document(self, document: PSDDocument, page: HostPage, options: ImportOptions) -> ImportSummary:
        flat_layers = flatten_layers(document.layers)
        scale = compute_fit_scale(document.width, document.height, page.width, page.height)
        summary = ImportSummary(
            total=len(flat_layers),
            scale=scale,
            source_width=document.width,
            source_height=document.height,
            target_width=page.width,
            target_height=page.height,
        )
        logger.info(
            "[INFO] 开始导入: %d 个图层, %sx%s → %sx%s, 缩放比例: %.4f, 文字位图化: %s",
            len(flat_layers), document.width, document.height, page.width, page.height,
            scale, options.rasterize_text,
        )

        mapper = LayerElementMapper(
            rasterize_text=options.rasterize_text,
            font_cache=self.font_cache,
            config=self.config,
        )
        for layer in flat_layers:
            element = mapper.map_layer(layer, summary)
            if element is None:
                continue
            if scale != 1:
                element = scale_element(element, scale)
            try:
                page.add_element(element.to_spec())
            except Exception:
                logger.exception("[ERROR] 添加元素失败: %s", element.name)
                summary.errors += 1
                continue
            summary.converted += 1
            summary.element_ids.append(element.id)

        logger.info(
            "[SUCCESS] 导入完成: 成功 %d, 跳过 %d, 错误 %d",
            summary.converted, summary.skipped, summary.errors,
        )
        return summary
