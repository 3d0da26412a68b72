"""
文档元素模型

交给宿主页面的元素描述。Python 中字段为 snake_case，`to_spec()` 输出 camelCase
(fontSize、blendMode 等)，与编辑器的元素字段一致。
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# === Effects ===

class StrokeEffect(CamelModel):
    enabled: bool = True
    size: float = 1
    color: str = "rgb(0, 0, 0)"
    position: str = "outside"
    opacity: float = 100


class OuterGlowEffect(CamelModel):
    enabled: bool = True
    color: str = "rgb(0, 0, 0)"
    opacity: float = 75
    blur: float = 5
    spread: float = 0
    blend_mode: str = "normal"


class ColorOverlayEffect(CamelModel):
    enabled: bool = True
    color: str = "rgb(0, 0, 0)"
    opacity: float = 100
    blend_mode: str = "normal"


class DropShadowEffect(CamelModel):
    enabled: bool = True
    color: str = "rgb(0, 0, 0)"
    opacity: float = 75
    distance: float = 5
    angle: float = 120
    blur: float = 5
    spread: float = 0


class InnerShadowEffect(CamelModel):
    enabled: bool = True
    color: str = "rgb(0, 0, 0)"
    opacity: float = 75
    distance: float = 5
    angle: float = 120
    blur: float = 5
    choke: float = 0


class BevelEmbossEffect(CamelModel):
    enabled: bool = True
    style: str = "innerBevel"
    technique: str = "smooth"
    depth: float = 100
    size: float = 5
    soften: float = 0
    angle: float = 120
    altitude: float = 30
    highlight_mode: str = "screen"
    shadow_mode: str = "multiply"


class EffectSet(CamelModel):
    """统一后的图层效果；未启用的效果为 None"""
    stroke: Optional[StrokeEffect] = None
    outer_glow: Optional[OuterGlowEffect] = None
    color_overlay: Optional[ColorOverlayEffect] = None
    drop_shadow: Optional[DropShadowEffect] = None
    inner_shadow: Optional[InnerShadowEffect] = None
    bevel_emboss: Optional[BevelEmbossEffect] = None
    has_effects: bool = False


# === Elements ===

class BaseElement(CamelModel):
    id: str
    type: str
    name: str = "Layer"
    x: float = 0
    y: float = 0
    width: float = 1
    height: float = 1
    rotation: float = 0
    opacity: float = 1
    visible: bool = True
    blend_mode: str = "normal"
    custom: Dict[str, Any] = Field(default_factory=dict)

    def to_spec(self) -> Dict[str, Any]:
        """供 page.add_element() 使用的元素字典"""
        return self.model_dump(by_alias=True, exclude_none=True)


class TextElement(BaseElement):
    type: Literal["text"] = "text"
    text: str = ""
    font_size: float = 16
    font_family: str = "Arial, sans-serif"
    font_weight: str = "normal"
    font_style: str = "normal"
    text_decoration: str = "none"
    fill: str = "rgb(0, 0, 0)"
    align: str = "left"
    line_height: float = 1.2
    letter_spacing: float = 0
    effects: Optional[EffectSet] = None
    css_effects: Optional[str] = None


class ImageElement(BaseElement):
    type: Literal["image"] = "image"
    src: str


class PlaceholderElement(BaseElement):
    type: Literal["rect"] = "rect"
    fill: str = "rgba(200, 200, 200, 0.3)"
    stroke: str = "#ccc"
    stroke_width: float = 1
    corner_radius: float = 0


Element = Union[TextElement, ImageElement, PlaceholderElement]


class ImportSummary(CamelModel):
    """单次导入的统计结果"""
    total: int = 0
    converted: int = 0
    skipped: int = 0
    errors: int = 0
    scale: float = 1.0
    source_width: int = 0
    source_height: int = 0
    target_width: int = 0
    target_height: int = 0
    element_ids: List[str] = Field(default_factory=list)


def merge_custom(base: Optional[Dict[str, Any]], *updates: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """合并元数据为新字典；后者覆盖前者，值为 None 的项忽略"""
    merged = dict(base or {})
    for update in updates:
        if update:
            merged.update({k: v for k, v in update.items() if v is not None})
    return merged
