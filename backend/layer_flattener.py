#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""图层树扁平化：组图层只展开子图层，自身不产生条目"""

import logging
from typing import Any, Dict, List, Optional

from utils.strings import new_element_id

logger = logging.getLogger(__name__)


def is_group(layer: Dict[str, Any]) -> bool:
    children = layer.get("children")
    return bool(children)


def flatten_layers(
    layers: Optional[List[Dict[str, Any]]] = None,
    result: Optional[List[Dict[str, Any]]] = None,
    parent_index: int = -1,
) -> List[Dict[str, Any]]:
    """
    递归提取所有叶子图层（先序遍历）

    Args:
        layers: 解析得到的图层列表（源顺序）
        result: 结果列表（递归时传递）
        parent_index: 父级索引，顶层为 -1

    Returns:
        扁平化的图层列表；组图层的子孙连续出现在组原来的位置
    """
    if result is None:
        result = []

    for index, layer in enumerate(layers or []):
        if is_group(layer):
            # 同时带有自身像素/文字的组图层按纯容器处理
            logger.debug("[GROUP] 处理图层组: %s, 子图层数: %d", layer.get("name"), len(layer["children"]))
            flatten_layers(layer["children"], result, len(result))
            continue

        opacity = layer.get("opacity")
        flat = dict(layer)
        flat.update(
            originalIndex=index,
            parentIndex=parent_index,
            id=layer.get("id") or new_element_id(),
            visible=layer.get("hidden") is not True,
            opacity=opacity / 255 if opacity is not None else 1,
            blendMode=layer.get("blendMode") or "normal",
        )
        result.append(flat)

    return result


def count_leaf_layers(layers: Optional[List[Dict[str, Any]]]) -> int:
    count = 0
    for layer in layers or []:
        count += count_leaf_layers(layer["children"]) if is_group(layer) else 1
    return count
