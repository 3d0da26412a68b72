#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
字符串工具：图层名称清理与元素ID生成

PSD 图层名称常带有空字节和控制字符（尤其是旧版 Photoshop 写出的 Pascal 字符串），
在生成元素名称、日志输出与占位位图文字前统一清洗。
"""

import random
import string
import time
from typing import Optional


def sanitize_name(name: Optional[str], default: str = "Layer") -> str:
    """清理名称字符串：去除不可见字符与空字节，标准化后返回。

    - 去除空字节 (\x00)
    - 去除除 \t、\n、\r 以外的控制字符 (ord(c) < 32)
    - 去除首尾空白
    - 为空时返回 default
    """
    if not name:
        return default

    cleaned = str(name).replace("\x00", "")
    cleaned = "".join(ch for ch in cleaned if (ord(ch) >= 32) or (ch in "\t\n\r"))
    cleaned = cleaned.strip()
    if not cleaned:
        return default
    return cleaned


def new_element_id(prefix: str = "layer") -> str:
    """生成字符串形式的元素ID: <prefix>_<毫秒时间戳>_<9位随机串>"""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"
