#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
模板元数据与预览图

- 元数据：尺寸、图层数、标签、分类、兼容性标记
- 预览：合成图 PNG；没有合成图时生成灰色占位预览
- 缩略图：等比缩放后居中放在背景色画布上，输出 JPEG
"""

# 标准库导入
import logging
import os
import time
from typing import Any, Dict, List, Optional

# 第三方库导入
from PIL import Image, ImageDraw

# 本地模块导入
from canvas_rasterizer import image_to_data_url
from config import import_config
from font_cache import FontCache
from layer_flattener import flatten_layers
from psd_reader import PSDDocument

logger = logging.getLogger(__name__)

# 文件名关键字 → 标签
NAME_TAGS = [
    ("template", "template"),
    ("poster", "poster"),
    ("flyer", "flyer"),
    ("banner", "banner"),
    ("card", "card"),
    ("social", "social-media"),
]

# 文件名关键字 → 分类，按顺序匹配
NAME_CATEGORIES = [
    ("poster", "poster"),
    ("flyer", "flyer"),
    ("banner", "banner"),
    ("card", "card"),
    ("social", "social-media"),
    ("brochure", "brochure"),
]

HIGH_RESOLUTION_EDGE = 1920
PREVIEW_MAX_SIZE = 200


def extract_tags(filename: str, width: int, height: int) -> List[str]:
    name = os.path.basename(filename or "").lower().replace(".psd", "")
    tags = [tag for keyword, tag in NAME_TAGS if keyword in name]

    if width > height:
        tags.append("landscape")
    elif height > width:
        tags.append("portrait")
    else:
        tags.append("square")

    if width >= HIGH_RESOLUTION_EDGE or height >= HIGH_RESOLUTION_EDGE:
        tags.append("high-resolution")
    return list(dict.fromkeys(tags))


def determine_category(filename: str, width: int, height: int) -> str:
    name = os.path.basename(filename or "").lower()
    for keyword, category in NAME_CATEGORIES:
        if keyword in name:
            return category

    if not height:
        return "general"
    aspect_ratio = width / height
    if aspect_ratio > 2:
        return "banner"
    if abs(aspect_ratio - 1) < 0.1:
        return "social-media"
    if aspect_ratio < 0.8:
        return "poster"
    return "general"


def _is_image_layer(layer: Dict[str, Any]) -> bool:
    return layer.get("canvas") is not None or layer.get("imageData") is not None


def _is_shape_layer(layer: Dict[str, Any]) -> bool:
    return bool(layer.get("vectorMask") or layer.get("fillColor") or layer.get("kind") == "shape")


def create_template_metadata(filename: str, document: PSDDocument, file_size: int = 0) -> Dict[str, Any]:
    """生成模板元数据"""
    layers = flatten_layers(document.layers)
    return {
        "originalFileName": filename,
        "dimensions": {"width": document.width, "height": document.height},
        "createdAt": int(time.time() * 1000),
        "layerCount": len(layers),
        "fileSize": file_size,
        "resolution": document.resolution,
        "tags": extract_tags(filename, document.width, document.height),
        "category": determine_category(filename, document.width, document.height),
        "compatibility": {
            "hasText": any(layer.get("text") for layer in layers),
            "hasImages": any(_is_image_layer(layer) for layer in layers),
            "hasShapes": any(_is_shape_layer(layer) for layer in layers),
        },
    }


def _centered_text(draw: ImageDraw.ImageDraw, center_x: float, baseline_y: float, text: str, font) -> None:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    draw.text((center_x - (right - left) / 2, baseline_y - bottom), text, fill=(0x66, 0x66, 0x66), font=font)


def _placeholder_preview(width: int, height: int, font_cache: Optional[FontCache] = None) -> Image.Image:
    scale = min(PREVIEW_MAX_SIZE / width, PREVIEW_MAX_SIZE / height)
    size = (max(1, int(width * scale)), max(1, int(height * scale)))
    image = Image.new("RGB", size, (0xE8, 0xE8, 0xE8))
    draw = ImageDraw.Draw(image)
    draw.rectangle([1, 1, size[0] - 2, size[1] - 2], outline=(0xCC, 0xCC, 0xCC), width=2)

    cache = font_cache or FontCache()
    center_x, center_y = size[0] / 2, size[1] / 2
    _centered_text(draw, center_x, center_y - 5, "PSD", cache.load_font(import_config.DEFAULT_FONT_NAME, 14))
    _centered_text(draw, center_x, center_y + 10, f"{width}×{height}", cache.load_font(import_config.DEFAULT_FONT_NAME, 10))
    return image


def get_psd_preview(document: PSDDocument, font_cache: Optional[FontCache] = None) -> Optional[str]:
    """合成图 → PNG data URL；无合成图时返回占位预览；文档无尺寸时返回 None"""
    composite = document.get_composite()
    if composite is not None:
        try:
            return image_to_data_url(composite, "PNG", enhance=False)
        except Exception as e:
            logger.warning("[WARNING] 合成图编码失败，使用占位预览: %s", e)

    if document.width and document.height:
        return image_to_data_url(_placeholder_preview(document.width, document.height, font_cache), "PNG", enhance=False)
    return None


def generate_thumbnail(document: PSDDocument, width: int = 150, height: int = 100) -> Optional[str]:
    """等比缩放后居中的 JPEG 缩略图"""
    if not document.width or not document.height:
        return None

    background = tuple(import_config.THUMBNAIL_BACKGROUND)
    thumbnail = Image.new("RGB", (width, height), background)
    source = document.get_composite()
    if source is None:
        source = _placeholder_preview(document.width, document.height)

    scale = min(width / document.width, height / document.height)
    fitted_size = (max(1, round(document.width * scale)), max(1, round(document.height * scale)))
    fitted = source.convert("RGBA").resize(fitted_size, Image.LANCZOS)
    offset = ((width - fitted_size[0]) // 2, (height - fitted_size[1]) // 2)
    thumbnail.paste(fitted, offset, fitted)
    return image_to_data_url(thumbnail, "JPEG", enhance=False)
