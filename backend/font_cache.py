#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""字体解析缓存：PSD字体名 → Web回退字体栈，以及位图绘制用的 Pillow 字体"""

import logging
from typing import Dict, Optional, Tuple

from PIL import ImageFont

from config import import_config

logger = logging.getLogger(__name__)

SANS_FALLBACK = "Arial, sans-serif"

FONT_MAP = {
    "arial": "Arial, sans-serif",
    "helvetica": "Helvetica, Arial, sans-serif",
    "times": 'Times, "Times New Roman", serif',
    "timesnewroman": 'Times, "Times New Roman", serif',
    "times new roman": 'Times, "Times New Roman", serif',
    "courier": 'Courier, "Courier New", monospace',
    "couriernew": 'Courier, "Courier New", monospace',
    "courier new": 'Courier, "Courier New", monospace',
    "verdana": "Verdana, Arial, sans-serif",
    "georgia": "Georgia, Times, serif",
    "palatino": 'Palatino, "Palatino Linotype", serif',
    "garamond": "Garamond, Times, serif",
    "bookman": "Bookman, serif",
    "comic sans ms": '"Comic Sans MS", cursive',
    "impact": "Impact, Arial Black, sans-serif",
    "lucida console": '"Lucida Console", Monaco, monospace',
    "lucida sans unicode": '"Lucida Sans Unicode", Arial, sans-serif',
}


def category_fallback(font_name: str) -> str:
    """按字体名特征给出通用回退栈"""
    name = font_name.lower()
    if "serif" in name and "sans" not in name:
        return 'Times, "Times New Roman", serif'
    if "mono" in name or "courier" in name:
        return 'Courier, "Courier New", monospace'
    if "script" in name or "brush" in name or "cursive" in name:
        return "cursive"
    if "display" in name or "decorative" in name or "fantasy" in name:
        return "fantasy"
    return SANS_FALLBACK


class FontCache:
    """会话级字体缓存

    由应用（或导入器）创建并持有，导入过程中查询与填充，不会隐式清空。
    """

    def __init__(self):
        self._families: Dict[str, str] = {}
        self._fonts: Dict[Tuple[str, int], ImageFont.ImageFont] = {}

    def resolve_family(self, font_name: Optional[str]) -> str:
        """PSD字体名 → CSS font-family 字符串"""
        if not font_name:
            return SANS_FALLBACK
        cached = self._families.get(font_name)
        if cached is not None:
            return cached

        key = font_name.strip().lower()
        family = FONT_MAP.get(key)
        if family is None:
            # 部分匹配：PostScript 名如 "Arial-BoldMT"
            family = next((v for k, v in FONT_MAP.items() if key.startswith(k)), None)
        if family is None:
            family = f'"{font_name}", {category_fallback(font_name)}'

        self._families[font_name] = family
        return family

    def load_font(self, font_name: Optional[str] = None, size: int = 12):
        """加载 Pillow 字体；找不到 TrueType 文件时使用内置默认字体"""
        name = font_name or import_config.DEFAULT_FONT_NAME
        size = max(1, int(size))
        cache_key = (name, size)
        font = self._fonts.get(cache_key)
        if font is not None:
            return font

        try:
            font = ImageFont.truetype(name, size)
        except OSError:
            try:
                font = ImageFont.truetype(f"{name.lower()}.ttf", size)
            except OSError:
                logger.debug("[FONT] 未找到字体文件 '%s'，使用默认字体", name)
                font = ImageFont.load_default()

        self._fonts[cache_key] = font
        return font

    def clear(self) -> None:
        self._families.clear()
        self._fonts.clear()

    def __len__(self) -> int:
        return len(self._families)
