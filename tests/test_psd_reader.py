"""Tests for PSD signature checks and the psd-tools layer adapter.

psd_tools objects are mocked so no PSD fixture file is needed.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from PIL import Image
from psd_tools.constants import BlendMode, ColorMode

from element_mapper import LayerElementMapper
from psd_reader import (
    PSDFormatError,
    blend_mode_tag,
    document_from_psd,
    engine_justification,
    is_psd_file,
    layer_to_dict,
    read_psd,
    validate_signature,
)


def mock_layer(name, kind="pixel", bbox=(0, 0, 10, 10), visible=True, opacity=255, image=None):
    layer = MagicMock()
    layer.name = name
    layer.kind = kind
    layer.bbox = bbox
    layer.visible = visible
    layer.opacity = opacity
    layer.blend_mode = BlendMode.NORMAL
    layer.is_group.return_value = kind == "group"
    layer.topil.return_value = image
    layer.effects = []
    return layer


def mock_text_layer(justification=2):
    layer = mock_layer("Price", kind="type", bbox=(5, 5, 105, 45))
    layer.text = "Hello\r"
    layer.engine_dict = {
        "StyleRun": {
            "RunLengthArray": [6],
            "RunArray": [{
                "StyleSheet": {
                    "StyleSheetData": {
                        "Font": 0,
                        "FontSize": 12.0,
                        "Tracking": 100,
                        "FillColor": {"Type": 1, "Values": [1.0, 1.0, 0.0, 0.0]},
                    }
                }
            }],
        },
        "ParagraphRun": {"RunArray": [{"ParagraphSheet": {"Properties": {"Justification": justification}}}]},
    }
    layer.resource_dict = {"FontSet": [{"Name": "Arial-BoldMT"}]}
    layer.transform = (1.0, 0.0, 0.0, 1.0, 5.0, 5.0)
    return layer


def test_signature_validation():
    validate_signature(b"8BPS\x00\x01")
    with pytest.raises(PSDFormatError):
        validate_signature(b"\x89PNG")
    with pytest.raises(PSDFormatError):
        validate_signature(b"")


def test_unparsable_psd_is_a_format_error():
    with pytest.raises(PSDFormatError):
        read_psd(b"8BPS")


def test_is_psd_file():
    assert is_psd_file("design.PSD", None)
    assert is_psd_file("design.psd", "application/octet-stream")
    assert not is_psd_file("design.bin", "application/octet-stream")
    assert is_psd_file("upload", "image/vnd.adobe.photoshop")
    assert not is_psd_file("photo.png", "image/png")


def test_blend_mode_tag():
    assert blend_mode_tag(BlendMode.SOFT_LIGHT) == "softLight"
    assert blend_mode_tag(BlendMode.NORMAL) == "normal"
    assert blend_mode_tag(BlendMode.PASS_THROUGH) == "passThrough"
    assert blend_mode_tag(b"mul ") == "multiply"
    assert blend_mode_tag(b"SftL") == "softLight"
    assert blend_mode_tag(b"????") == "normal"
    assert blend_mode_tag(None) == "normal"


def test_pixel_layer_to_dict():
    image = Image.new("RGB", (10, 10))
    record = layer_to_dict(mock_layer("Back\x00ground", bbox=(1, 2, 11, 12), opacity=128, image=image))

    assert record["name"] == "Background"
    assert (record["left"], record["top"], record["right"], record["bottom"]) == (1, 2, 11, 12)
    assert record["hidden"] is False
    assert record["opacity"] == 128
    assert record["blendMode"] == "normal"
    assert record["canvas"].mode == "RGBA"
    assert "text" not in record
    assert "effects" not in record


def test_group_layer_to_dict():
    child = mock_layer("Child", visible=False)
    group = mock_layer("Group", kind="group")
    group.__iter__.return_value = iter([child])

    record = layer_to_dict(group)

    assert [c["name"] for c in record["children"]] == ["Child"]
    assert record["children"][0]["hidden"] is True
    assert "canvas" not in record


def test_text_layer_to_dict_and_mapping():
    record = layer_to_dict(mock_text_layer())

    text = record["text"]
    assert text["text"] == "Hello"
    assert text["style"]["fontName"] == "Arial-BoldMT"
    assert text["style"]["justification"] == "center"
    assert text["runs"][0]["text"] == "Hello"
    assert text["transform"] == [1.0, 0.0, 0.0, 1.0, 5.0, 5.0]

    element = LayerElementMapper(rasterize_text=False).map_layer(record)
    assert element.text == "Hello"
    assert element.font_size == pytest.approx(16.0)
    assert element.fill == "rgb(255, 0, 0)"
    assert element.align == "center"
    assert element.font_weight == "bold"
    assert element.letter_spacing == 0.1


def test_document_from_psd():
    psd = MagicMock()
    psd.width = 800
    psd.height = 600
    psd.color_mode = ColorMode.RGB
    psd.image_resources.get_data.return_value = SimpleNamespace(horizontal=300.0)
    psd.composite.return_value = Image.new("RGBA", (800, 600))
    psd.__iter__.return_value = iter([mock_layer("A"), mock_layer("B")])

    document = document_from_psd(psd)
    psd.composite.assert_not_called()

    assert (document.width, document.height) == (800, 600)
    assert document.resolution == 300.0
    assert document.color_mode == "RGB"
    assert [layer["name"] for layer in document.layers] == ["A", "B"]
    assert document.layers[0]["psdInfo"]["resolution"] == 300.0
    assert document.get_composite().size == (800, 600)
    assert document.get_composite() is document.composite
    psd.composite.assert_called_once()


@pytest.mark.parametrize("blend_mode, expected", [
    (BlendMode.SOFT_LIGHT, "soft-light"),
    (BlendMode.MULTIPLY, "multiply"),
    (BlendMode.COLOR_DODGE, "color-dodge"),
    (BlendMode.NORMAL, "normal"),
])
def test_layer_blend_mode_reaches_element(blend_mode, expected):
    layer = mock_layer("Tint", image=Image.new("RGBA", (10, 10)))
    layer.blend_mode = blend_mode

    record = layer_to_dict(layer)
    element = LayerElementMapper(rasterize_text=False).map_layer(record)

    assert element.blend_mode == expected


@pytest.mark.parametrize("code, expected", [
    (0, "left"),
    (1, "right"),
    (2, "center"),
])
def test_paragraph_justification_reaches_element(code, expected):
    record = layer_to_dict(mock_text_layer(justification=code))

    assert record["text"]["style"]["justification"] == expected
    element = LayerElementMapper(rasterize_text=False).map_layer(record)
    assert element.align == expected


def test_engine_justification():
    assert engine_justification(3) == "justifyLeft"
    assert engine_justification(6) == "justifyAll"
    assert engine_justification(None) is None
    assert engine_justification(42) is None


class Stroke(SimpleNamespace):
    pass


class OuterGlow(SimpleNamespace):
    pass


def test_effect_blend_modes_are_named():
    layer = mock_layer("Badge", image=Image.new("RGBA", (10, 10)))
    layer.effects = [
        Stroke(enabled=True, color=None, opacity=100.0, size=3.0, blend_mode=b"Mltp", position=b"OutF"),
        OuterGlow(enabled=True, color=None, opacity=75.0, size=8.0, blend_mode=BlendMode.SCREEN, spread=0.0),
    ]

    effects = layer_to_dict(layer)["effects"]

    assert effects["stroke"]["blendMode"] == "multiply"
    assert effects["stroke"]["position"] == "outside"
    assert effects["outerGlow"]["blendMode"] == "screen"
