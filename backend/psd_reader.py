#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
PSD 读取：文件头校验 + psd-tools 解析结果适配

psd-tools 负责二进制解码，本模块只把它的图层树转换为导入流程使用的图层字典：
name / left / top / right / bottom / hidden / opacity(0-255) / blendMode /
canvas(PIL Image) / text / effects / children
单个图层的可选部分读取失败只记录日志并省略该部分，不会中断解析。
"""

# 标准库导入
import enum
import io
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

# 第三方库导入
from PIL import Image
from psd_tools import PSDImage
from psd_tools.constants import BlendMode

# 本地模块导入
from config import import_config
from utils.strings import sanitize_name

logger = logging.getLogger(__name__)

PSD_SIGNATURE = b"8BPS"

PSD_MIME_TYPES = {
    "image/vnd.adobe.photoshop",
    "image/photoshop",
    "image/x-photoshop",
    "application/photoshop",
    "application/psd",
}

STROKE_POSITIONS = {
    "OutF": "outside",
    "InsF": "inside",
    "CtrF": "center",
}

# 效果描述符中的混合模式枚举值 → 混合模式标记
DESCRIPTOR_BLEND_MODES = {
    "Nrml": "normal",
    "Mltp": "multiply",
    "Scrn": "screen",
    "Ovrl": "overlay",
    "SftL": "softLight",
    "HrdL": "hardLight",
    "CDdg": "colorDodge",
    "CBrn": "colorBurn",
    "Drkn": "darken",
    "Lghn": "lighten",
    "Dfrn": "difference",
    "Xclu": "exclusion",
}

# 段落 Justification 引擎代码 → 对齐名称
ENGINE_JUSTIFICATIONS = {
    0: "left",
    1: "right",
    2: "center",
    3: "justifyLeft",
    4: "justifyRight",
    5: "justifyCenter",
    6: "justifyAll",
}

# psd-tools 效果类名 → 效果块字段名
EFFECT_CLASS_FIELDS = {
    "Stroke": "stroke",
    "OuterGlow": "outerGlow",
    "ColorOverlay": "colorOverlay",
    "DropShadow": "dropShadow",
    "InnerShadow": "innerShadow",
    "BevelEmboss": "bevelEmboss",
}


class PSDFormatError(Exception):
    """输入不是可解析的PSD文件"""


@dataclass
class PSDDocument:
    width: int
    height: int
    layers: List[Dict[str, Any]] = field(default_factory=list)
    resolution: float = 72.0
    color_mode: str = "RGB"
    composite: Optional[Image.Image] = None
    render_composite: Optional[Callable[[], Optional[Image.Image]]] = field(
        default=None, repr=False, compare=False
    )

    def get_composite(self) -> Optional[Image.Image]:
        """合成图在首次使用时才渲染，结果缓存"""
        if self.composite is None and self.render_composite is not None:
            render, self.render_composite = self.render_composite, None
            self.composite = render()
        return self.composite


def validate_signature(data: bytes) -> None:
    """校验4字节文件头 8BPS"""
    if not data or bytes(data[:4]) != PSD_SIGNATURE:
        raise PSDFormatError("无效的 PSD 文件格式")


def is_psd_file(filename: Optional[str], mimetype: Optional[str] = None) -> bool:
    """按扩展名/MIME 判断是否为PSD；octet-stream 需同时带 .psd 扩展名"""
    has_extension = bool(filename) and filename.lower().endswith(".psd")
    if mimetype == "application/octet-stream":
        return has_extension
    return has_extension or (mimetype in PSD_MIME_TYPES)


def read_psd(data: bytes) -> PSDDocument:
    """解析PSD字节流；文件头错误或解析失败时抛出 PSDFormatError"""
    validate_signature(data)
    try:
        psd = PSDImage.open(io.BytesIO(data))
    except Exception as e:
        raise PSDFormatError(f"PSD 解析失败: {e}") from e
    return document_from_psd(psd)


def read_psd_file(path: str) -> PSDDocument:
    if not os.path.exists(path):
        raise FileNotFoundError(path)
    with open(path, "rb") as f:
        return read_psd(f.read())


def document_from_psd(psd) -> PSDDocument:
    resolution = _resolution(psd)
    psd_info = {"resolution": resolution, "width": psd.width, "height": psd.height}
    document = PSDDocument(
        width=psd.width,
        height=psd.height,
        layers=[layer_to_dict(layer, psd_info) for layer in psd],
        resolution=resolution,
        color_mode=_enum_name(getattr(psd, "color_mode", None)) or "RGB",
        render_composite=lambda: _safe_call(psd, "composite", "composite"),
    )
    logger.info(
        "[SUCCESS] PSD解析成功: %sx%s, 顶层图层数: %d, 分辨率: %s",
        document.width, document.height, len(document.layers), resolution,
    )
    return document


def _resolution(psd) -> float:
    try:
        resources = psd.image_resources
        info = resources.get_data(1005) if resources is not None else None
        if info is not None:
            return float(info.horizontal)
    except Exception as e:
        logger.debug("[DATA] 读取分辨率失败: %s", e)
    return import_config.DEFAULT_RESOLUTION


def layer_to_dict(layer, psd_info: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """psd-tools 图层 → 图层字典（组图层递归）"""
    left, top, right, bottom = _bbox(layer)
    record: Dict[str, Any] = {
        "name": sanitize_name(layer.name),
        "left": left,
        "top": top,
        "right": right,
        "bottom": bottom,
        "hidden": not layer.visible,
        "opacity": layer.opacity,
        "blendMode": blend_mode_tag(getattr(layer, "blend_mode", None)),
        "kind": str(getattr(layer, "kind", "pixel")),
        "psdInfo": psd_info,
    }

    if layer.is_group():
        record["children"] = [layer_to_dict(child, psd_info) for child in layer]
        return record

    canvas = _layer_canvas(layer)
    if canvas is not None:
        record["canvas"] = canvas

    if record["kind"] == "type":
        text = extract_text(layer)
        if text is not None:
            record["text"] = text

    effects = extract_effects(layer)
    if effects:
        record["effects"] = effects
    return record


def _bbox(layer):
    bbox = layer.bbox
    try:
        return bbox.x1, bbox.y1, bbox.x2, bbox.y2
    except AttributeError:
        left, top, right, bottom = bbox
        return left, top, right, bottom


def _safe_call(obj, method: str, what: str):
    try:
        return getattr(obj, method)()
    except Exception as e:
        logger.warning("[WARNING] 读取%s失败 '%s': %s", what, getattr(obj, "name", ""), e)
        return None


def _layer_canvas(layer) -> Optional[Image.Image]:
    image = _safe_call(layer, "topil", "像素数据")
    if image is None and str(getattr(layer, "kind", "")) in ("shape", "smartobject"):
        image = _safe_call(layer, "composite", "矢量合成")
    if image is not None and image.mode != "RGBA":
        image = image.convert("RGBA")
    return image


def blend_mode_tag(blend_mode) -> str:
    """BlendMode.SOFT_LIGHT / Enum.SoftLight / b'sLit' / b'SftL' → softLight"""
    if isinstance(blend_mode, bytes) and not isinstance(blend_mode, enum.Enum):
        key = blend_mode.decode("latin-1").strip()
        if key in DESCRIPTOR_BLEND_MODES:
            return DESCRIPTOR_BLEND_MODES[key]
        try:
            blend_mode = BlendMode(blend_mode)
        except ValueError:
            logger.debug("[DATA] 未知混合模式: %r", blend_mode)
            return "normal"
    name = _enum_name(blend_mode)
    if not name:
        return "normal"
    if name in DESCRIPTOR_BLEND_MODES:
        return DESCRIPTOR_BLEND_MODES[name]
    if "_" in name or name.isupper():
        head, *rest = name.lower().split("_")
        return head + "".join(part.capitalize() for part in rest)
    return name[0].lower() + name[1:]


def _enum_name(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, enum.Enum):
        return value.name
    if isinstance(value, bytes):
        return value.decode("latin-1").strip()
    return getattr(value, "name", None) or str(value)


# ===== 文字 =====

def plain(value: Any) -> Any:
    """引擎数据节点 → 普通 Python 值"""
    if isinstance(value, (str, bytes, int, float, bool)) or value is None:
        return value
    if hasattr(value, "items"):
        return {str(plain(k)): plain(v) for k, v in value.items()}
    if hasattr(value, "value"):
        return plain(value.value)
    if isinstance(value, (list, tuple)) or hasattr(value, "__iter__"):
        return [plain(v) for v in value]
    return value


def extract_text(layer) -> Optional[Dict[str, Any]]:
    """文字图层 → {text, style, runs, engineData, transform}"""
    try:
        content = str(layer.text or "").rstrip("\r\n")
    except Exception as e:
        logger.warning("[WARNING] 读取文字内容失败 '%s': %s", layer.name, e)
        return None

    payload: Dict[str, Any] = {"text": content}
    try:
        engine = plain(layer.engine_dict) or {}
        resources = plain(layer.resource_dict) or {}
    except Exception as e:
        logger.warning("[WARNING] 读取文字引擎数据失败 '%s': %s", layer.name, e)
        return payload

    font_set = resources.get("FontSet") or []
    runs = []
    style_run = engine.get("StyleRun") or {}
    lengths = style_run.get("RunLengthArray") or []
    offset = 0
    for index, run in enumerate(style_run.get("RunArray") or []):
        sheet = (run.get("StyleSheet") or {}).get("StyleSheetData") or {}
        length = int(lengths[index]) if index < len(lengths) else 0
        runs.append({
            "text": content[offset:offset + length],
            "style": _style_from_sheet(sheet, font_set),
        })
        offset += length

    justification = None
    paragraph_runs = (engine.get("ParagraphRun") or {}).get("RunArray") or []
    if paragraph_runs:
        properties = (paragraph_runs[0].get("ParagraphSheet") or {}).get("Properties") or {}
        justification = engine_justification(properties.get("Justification"))

    if runs:
        for run in runs:
            if justification is not None:
                run["style"]["justification"] = justification
        payload["runs"] = runs
        payload["style"] = dict(runs[0]["style"])
    payload["engineData"] = engine

    transform = getattr(layer, "transform", None)
    if transform:
        payload["transform"] = [float(v) for v in transform]
    return payload


def engine_justification(code) -> Optional[str]:
    """段落 Justification 代码 → left / right / center / justify*；未知代码返回 None"""
    if code is None:
        return None
    try:
        return ENGINE_JUSTIFICATIONS.get(int(code))
    except (TypeError, ValueError):
        logger.debug("[DATA] 未知段落对齐代码: %r", code)
        return None


def _style_from_sheet(sheet: Dict[str, Any], font_set: List[Dict[str, Any]]) -> Dict[str, Any]:
    style: Dict[str, Any] = {}
    font_index = sheet.get("Font")
    if isinstance(font_index, int) and 0 <= font_index < len(font_set):
        style["fontName"] = font_set[font_index].get("Name")
    mapping = {
        "FontSize": "fontSize",
        "ImpliedFontSize": "impliedFontSize",
        "Tracking": "tracking",
        "Leading": "leading",
        "AutoLeading": "autoLeading",
        "HorizontalScale": "horizontalScale",
        "VerticalScale": "verticalScale",
        "FauxBold": "fauxBold",
        "FauxItalic": "fauxItalic",
        "Underline": "underline",
        "Strikethrough": "strikethrough",
        "FillColor": "fillColor",
    }
    for source, target in mapping.items():
        if sheet.get(source) is not None:
            style[target] = sheet[source]
    # HorizontalScale/VerticalScale 在引擎数据中为 1.0 基准的小数
    for key in ("horizontalScale", "verticalScale"):
        if key in style:
            try:
                style[key] = float(style[key]) * 100
            except (TypeError, ValueError):
                del style[key]
    return style


# ===== 效果 =====

def _descriptor_value(descriptor, *names: str):
    """在描述符中按去空格后的键名查找值"""
    if descriptor is None or not hasattr(descriptor, "items"):
        return None
    for key, value in descriptor.items():
        raw = getattr(key, "value", key)
        if isinstance(raw, bytes):
            raw = raw.decode("latin-1")
        if str(raw).strip() in names:
            return value
    return None


def descriptor_color(color) -> Optional[Dict[str, float]]:
    if color is None:
        return None
    channels = [_descriptor_value(color, *names) for names in (("Rd",), ("Grn",), ("Bl",))]
    if any(c is None for c in channels):
        return None
    r, g, b = (float(getattr(c, "value", c)) for c in channels)
    return {"r": r, "g": g, "b": b}


def _attr(effect, name: str, unwrap: bool = True):
    try:
        value = getattr(effect, name)
    except (AttributeError, KeyError, TypeError):
        return None
    if unwrap and hasattr(value, "value") and not isinstance(value, (int, float, str)):
        value = value.value
    return value


def _enum_tag(value) -> Optional[str]:
    if value is None:
        return None
    raw = getattr(value, "value", value)
    if isinstance(raw, bytes):
        raw = raw.decode("latin-1")
    return str(raw).strip()


def extract_effects(layer) -> Dict[str, Any]:
    """psd-tools 图层效果 → 效果块字典"""
    block: Dict[str, Any] = {}
    try:
        effects = layer.effects
        if not effects:
            return block
        for effect in effects:
            field_name = EFFECT_CLASS_FIELDS.get(type(effect).__name__)
            if field_name is None or field_name in block:
                continue
            blend_mode = _attr(effect, "blend_mode", unwrap=False)
            entry = {
                "enabled": bool(_attr(effect, "enabled")),
                "color": descriptor_color(_attr(effect, "color", unwrap=False)),
                "opacity": _attr(effect, "opacity"),
                "size": _attr(effect, "size"),
                "blendMode": blend_mode_tag(blend_mode) if blend_mode is not None else None,
            }
            if field_name == "stroke":
                entry["position"] = STROKE_POSITIONS.get(_enum_tag(_attr(effect, "position")), "outside")
            if field_name in ("dropShadow", "innerShadow"):
                entry["distance"] = _attr(effect, "distance")
                entry["angle"] = _attr(effect, "angle")
                entry["spread"] = _attr(effect, "spread")
                entry["choke"] = _attr(effect, "choke")
            if field_name == "outerGlow":
                entry["spread"] = _attr(effect, "spread")
            if field_name == "bevelEmboss":
                entry.update(
                    depth=_attr(effect, "depth"),
                    soften=_attr(effect, "soften"),
                    angle=_attr(effect, "angle"),
                    altitude=_attr(effect, "altitude"),
                )
            block[field_name] = {k: v for k, v in entry.items() if v is not None}
    except Exception as e:
        logger.warning("[WARNING] 读取图层效果失败 '%s': %s", layer.name, e)
    return block
