"""Tests for mapping flattened layers to document elements."""

import pytest
from PIL import Image

from element_mapper import LayerElementMapper, resolve_text_style
from elements import ImageElement, ImportSummary, PlaceholderElement, TextElement


def text_layer(style=None, **extra):
    layer = {
        "name": "Headline",
        "left": 10,
        "top": 20,
        "right": 210,
        "bottom": 80,
        "text": {"text": "Hello", "style": style or {}},
    }
    layer.update(extra)
    return layer


@pytest.fixture
def mapper():
    return LayerElementMapper(rasterize_text=False)


def test_implied_pixel_size_is_used_verbatim(mapper):
    element = mapper.map_layer(text_layer({"fontSize": 30, "impliedFontSize": 40, "verticalScale": 150}))

    assert isinstance(element, TextElement)
    assert element.font_size == 40


def test_points_convert_to_pixels(mapper):
    element = mapper.map_layer(text_layer({"fontSize": 12}))
    assert element.font_size == pytest.approx(16.0)
    assert element.custom["fontSizeSource"] == "ptToPx"
    assert element.custom["originalFontSizePt"] == 12


def test_vertical_scale_applies_to_point_sizes(mapper):
    element = mapper.map_layer(text_layer({"fontSize": 12, "verticalScale": 150}))
    assert element.font_size == pytest.approx(24.0)
    assert element.custom["appliedScaleY"] == 1.5


def test_tracking_and_leading(mapper):
    element = mapper.map_layer(text_layer({"fontSize": 24, "tracking": 250, "leading": 36}))
    assert element.letter_spacing == 0.25
    assert element.line_height == 1.5

    auto = mapper.map_layer(text_layer({"fontSize": 24, "leading": 36, "autoLeading": True}))
    assert auto.line_height == 1.2


def test_text_styling(mapper):
    element = mapper.map_layer(text_layer({
        "fontName": "Arial-BoldMT",
        "fillColor": {"r": 1, "g": 0, "b": 0},
        "justification": "center",
        "underline": True,
    }))

    assert element.font_family == "Arial, sans-serif"
    assert element.font_weight == "bold"
    assert element.fill == "rgb(255, 0, 0)"
    assert element.align == "center"
    assert element.text_decoration == "underline"
    assert element.custom["preciseColor"] == {"r": 255, "g": 0, "b": 0}


def test_missing_style_falls_back_to_defaults(mapper):
    layer = {"name": "Bare", "left": 0, "top": 0, "right": 50, "bottom": 20, "text": {"text": "x"}}
    element = mapper.map_layer(layer)

    assert element.custom["styleSource"] == "default"
    assert element.fill == "rgb(0, 0, 0)"
    assert element.font_family == "Arial, sans-serif"
    assert element.font_size == pytest.approx(21.33)


def test_style_source_priority():
    text = {
        "textStyleRange": [{"textStyle": {"fontSize": 8}}],
        "runs": [{"style": {"fontSize": 9}}],
        "style": {"fontSize": 10},
        "engineData": {"StyleRun": {"RunArray": [{"StyleSheet": {"StyleSheetData": {"FontSize": 11}}}]}},
    }
    assert resolve_text_style(text) == ({"fontSize": 8}, "textStyleRange")

    del text["textStyleRange"]
    assert resolve_text_style(text)[1] == "runs"
    del text["runs"]
    assert resolve_text_style(text)[1] == "style"
    del text["style"]
    assert resolve_text_style(text) == ({"FontSize": 11}, "engineData")


def test_hidden_empty_layer_is_skipped(mapper):
    summary = ImportSummary()
    layer = {"name": "Ghost", "hidden": True, "left": 0, "top": 0, "right": 10, "bottom": 10}

    assert mapper.map_layer(layer, summary) is None
    assert summary.skipped == 1
    assert summary.errors == 0


def test_hidden_text_layer_is_kept_invisible(mapper):
    element = mapper.map_layer(text_layer({"fontSize": 12}, hidden=True))
    assert element is not None
    assert element.visible is False


def test_minimum_size(mapper):
    element = mapper.map_layer(text_layer({"fontSize": 12}, right=10, bottom=20))
    assert element.width >= 1
    assert element.height >= 1


def test_pixel_layer_becomes_image(mapper):
    canvas = Image.new("RGBA", (20, 10), (0, 255, 0, 255))
    layer = {"name": "Photo", "left": 5, "top": 6, "right": 25, "bottom": 16, "canvas": canvas, "opacity": 0.5}
    element = mapper.map_layer(layer)

    assert isinstance(element, ImageElement)
    assert element.src.startswith("data:image/png;base64,")
    assert (element.x, element.y, element.width, element.height) == (5, 6, 20, 10)
    assert element.opacity == 0.5
    assert element.custom["originalDimensions"] == {"width": 20, "height": 10}


def test_pixel_less_layer_with_bounds_becomes_placeholder(mapper):
    element = mapper.map_layer({"name": "Shape", "left": 0, "top": 0, "right": 30, "bottom": 30})

    assert isinstance(element, PlaceholderElement)
    assert element.type == "rect"
    assert element.fill == "rgba(200, 200, 200, 0.3)"
    assert element.custom["isPlaceholder"] is True


def test_pixel_less_layer_without_bounds_is_skipped(mapper):
    summary = ImportSummary()
    assert mapper.map_layer({"name": "Empty", "left": 0, "top": 0, "right": 0, "bottom": 0}, summary) is None
    assert summary.skipped == 1


def test_rasterized_text_keeps_original_text():
    mapper = LayerElementMapper(rasterize_text=True)
    element = mapper.map_layer(text_layer({"fontSize": 12}))

    assert isinstance(element, ImageElement)
    assert element.custom["originalText"] == "Hello"
    assert element.custom["rasterized"] is True


def test_text_effects_attached(mapper):
    element = mapper.map_layer(text_layer({"fontSize": 12}, effects={"stroke": {"enabled": True, "size": 3}}))

    assert element.effects.stroke.size == 3
    assert "-webkit-text-stroke: 3px" in element.css_effects

    plain = mapper.map_layer(text_layer({"fontSize": 12}))
    assert plain.effects is None
    assert plain.css_effects is None


def test_conversion_error_is_counted(mapper):
    summary = ImportSummary()
    assert mapper.map_layer(text_layer({"fontSize": 12}, left="not-a-number"), summary) is None
    assert summary.errors == 1
    assert summary.skipped == 0


def test_element_serialises_camel_case(mapper):
    spec = mapper.map_layer(text_layer({"fontSize": 12})).to_spec()

    assert spec["type"] == "text"
    assert spec["fontSize"] == pytest.approx(16.0)
    assert spec["blendMode"] == "normal"
    assert "letterSpacing" in spec
    assert "effects" not in spec
