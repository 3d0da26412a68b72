#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
图层位图化

把图层像素数据输出为目标尺寸的 RGBA 位图，输入优先级：
1. 已解码的位图 (layer["canvas"]，PIL Image)
2. 原始像素缓冲 (layer["imageData"] = {data, width, height})
3. 都没有时生成随机着色的占位位图，并写上图层名称，让失败一眼可见

输出总是具体的位图，不会返回 None。
"""

# 标准库导入
import base64
import io
import logging
import math
import random
from typing import Any, Dict, Optional, Tuple

# 第三方库导入
import numpy as np
from PIL import Image, ImageDraw

# 本地模块导入
from config import import_config
from font_cache import FontCache
from utils.strings import sanitize_name

logger = logging.getLogger(__name__)


def native_size(layer: Dict[str, Any]) -> Tuple[int, int]:
    """像素数据自身的尺寸；没有像素数据时为 (0, 0)"""
    canvas = layer.get("canvas")
    if isinstance(canvas, Image.Image):
        return canvas.size
    image_data = layer.get("imageData")
    if isinstance(image_data, dict):
        return int(image_data.get("width") or 0), int(image_data.get("height") or 0)
    return 0, 0


def target_size(layer: Dict[str, Any]) -> Tuple[int, int]:
    """由图层边界计算目标尺寸，边界为空时取像素数据尺寸，最小 1×1"""
    width = math.floor(float(layer.get("right") or 0) - float(layer.get("left") or 0))
    height = math.floor(float(layer.get("bottom") or 0) - float(layer.get("top") or 0))
    if width <= 0 or height <= 0:
        native_w, native_h = native_size(layer)
        width = width if width > 0 else native_w
        height = height if height > 0 else native_h
    return max(1, width), max(1, height)


def unpremultiply(pixels: np.ndarray) -> np.ndarray:
    """对半透明像素做反预乘 (channel / (alpha/255))，结果截断到 [0, 255]"""
    rgba = pixels.reshape(-1, 4).astype(np.float32)
    alpha = rgba[:, 3]
    partial = (alpha > 0) & (alpha < 255)
    if np.any(partial):
        factor = alpha[partial] / 255.0
        rgba[partial, :3] = np.rint(rgba[partial, :3] / factor[:, None])
    rgba[:, :3] = np.clip(rgba[:, :3], 0, 255)
    return rgba.astype(np.uint8).reshape(pixels.shape)


def _fit_length(data: Any, expected: int) -> Tuple[np.ndarray, bool]:
    """像素缓冲长度与 w*h*4 不一致时补零或截断；返回 (缓冲, 长度是否一致)"""
    if isinstance(data, np.ndarray):
        raw = data.astype(np.uint8, copy=False).ravel()
    else:
        raw = np.frombuffer(bytes(data), dtype=np.uint8)
    if raw.size == expected:
        return raw.copy(), True
    fitted = np.zeros(expected, dtype=np.uint8)
    count = min(raw.size, expected)
    fitted[:count] = raw[:count]
    return fitted, False


def _resize(image: Image.Image, size: Tuple[int, int], supersample: int) -> Image.Image:
    if image.size == size:
        return image
    if supersample > 1:
        hi_res = image.resize((size[0] * supersample, size[1] * supersample), Image.LANCZOS)
        return hi_res.resize(size, Image.LANCZOS)
    return image.resize(size, Image.LANCZOS)


def _from_canvas(canvas: Image.Image, size: Tuple[int, int], supersample: int) -> Optional[Image.Image]:
    if canvas.width <= 0 or canvas.height <= 0:
        return None
    if canvas.mode != "RGBA":
        canvas = canvas.convert("RGBA")
    return _resize(canvas, size, supersample)


def _from_image_data(image_data: Dict[str, Any], size: Tuple[int, int]) -> Optional[Image.Image]:
    width = int(image_data.get("width") or 0)
    height = int(image_data.get("height") or 0)
    data = image_data.get("data")
    if width <= 0 or height <= 0 or data is None:
        return None

    expected = width * height * 4
    raw, matched = _fit_length(data, expected)
    if matched:
        raw = unpremultiply(raw)
    image = Image.fromarray(raw.reshape(height, width, 4))
    return _resize(image, size, 1)


def placeholder_bitmap(layer: Dict[str, Any], size: Tuple[int, int], font_cache: Optional[FontCache] = None) -> Image.Image:
    """随机着色的半透明占位位图，带黑色边框与图层名称"""
    tint = tuple(random.randint(0, 255) for _ in range(3)) + (import_config.PLACEHOLDER_ALPHA,)
    image = Image.new("RGBA", size, tint)
    draw = ImageDraw.Draw(image)
    draw.rectangle([0, 0, size[0] - 1, size[1] - 1], outline=(0, 0, 0, 255))
    font = (font_cache or FontCache()).load_font(import_config.DEFAULT_FONT_NAME, 12)
    draw.text((5, 3), sanitize_name(layer.get("name"), "Unnamed"), fill=(0, 0, 0, 255), font=font)
    return image


def has_pixel_data(layer: Dict[str, Any]) -> bool:
    canvas = layer.get("canvas")
    if isinstance(canvas, Image.Image) and (canvas.width > 0 or canvas.height > 0):
        return True
    image_data = layer.get("imageData")
    return isinstance(image_data, dict) and image_data.get("data") is not None


def render_layer_pixels(layer: Dict[str, Any], supersample: Optional[int] = None) -> Optional[Image.Image]:
    """只用真实像素数据绘制；没有可用数据时返回 None"""
    size = target_size(layer)
    factor = import_config.SUPERSAMPLE_FACTOR if supersample is None else supersample
    name = layer.get("name")

    canvas = layer.get("canvas")
    if isinstance(canvas, Image.Image):
        try:
            image = _from_canvas(canvas, size, factor)
            if image is not None:
                return image
        except Exception as e:
            logger.error("[ERROR] Canvas 数据绘制失败 '%s': %s", name, e)

    image_data = layer.get("imageData")
    if isinstance(image_data, dict) and image_data.get("data") is not None:
        try:
            image = _from_image_data(image_data, size)
            if image is not None:
                return image
        except Exception as e:
            logger.error("[ERROR] ImageData 绘制失败 '%s': %s", name, e)

    return None


def layer_to_canvas(
    layer: Dict[str, Any],
    supersample: Optional[int] = None,
    font_cache: Optional[FontCache] = None,
) -> Image.Image:
    """图层 → RGBA 位图（目标尺寸由图层边界决定），从不返回 None"""
    image = render_layer_pixels(layer, supersample)
    if image is not None:
        return image
    logger.warning("[WARNING] 图层 '%s' 无可用像素数据，生成占位位图", layer.get("name"))
    return placeholder_bitmap(layer, target_size(layer), font_cache)


def enhance_image_quality(image: Image.Image, factor: Optional[int] = None) -> Image.Image:
    """超采样增强：放大后再以 LANCZOS 缩回原尺寸"""
    factor = factor or import_config.SUPERSAMPLE_FACTOR
    try:
        hi_res = image.resize((image.width * factor, image.height * factor), Image.LANCZOS)
        return hi_res.resize(image.size, Image.LANCZOS)
    except Exception as e:
        logger.warning("[WARNING] 图像质量增强失败，使用原始图像: %s", e)
        return image


def image_to_data_url(image: Image.Image, fmt: str = "PNG", enhance: bool = True) -> str:
    """位图 → data URL；小图先做质量增强"""
    output = image
    max_edge = import_config.ENHANCE_MAX_EDGE
    if enhance and (image.width < max_edge or image.height < max_edge):
        output = enhance_image_quality(image)

    fmt = fmt.upper()
    if fmt in ("JPG", "JPEG"):
        fmt = "JPEG"
        if output.mode != "RGB":
            output = output.convert("RGB")

    buffer = io.BytesIO()
    if fmt == "JPEG":
        output.save(buffer, format=fmt, quality=95)
    else:
        output.save(buffer, format=fmt)
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/{fmt.lower()};base64,{encoded}"
