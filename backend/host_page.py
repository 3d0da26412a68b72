#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""宿主页面：导入流程只需要页面尺寸和逐个添加元素"""

from typing import Any, Dict, List, Optional, Protocol

from config import settings


class HostPage(Protocol):
    width: int
    height: int

    def add_element(self, spec: Dict[str, Any]) -> Any:
        ...


class MemoryPage:
    """内存页面，按添加顺序保存元素（后添加的位于上层）"""

    def __init__(self, width: Optional[int] = None, height: Optional[int] = None):
        self.width = width or settings.canvas_width
        self.height = height or settings.canvas_height
        self.elements: List[Dict[str, Any]] = []

    def add_element(self, spec: Dict[str, Any]) -> Dict[str, Any]:
        if not isinstance(spec, dict) or not spec.get("id"):
            raise ValueError("元素缺少 id")
        self.elements.append(spec)
        return spec

    def __len__(self) -> int:
        return len(self.elements)

    def to_dict(self) -> Dict[str, Any]:
        return {"width": self.width, "height": self.height, "elements": list(self.elements)}
