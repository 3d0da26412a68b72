"""Tests for layer effect parsing."""

from effect_parser import find_effects_block, generate_css_effects, parse_effect_color, parse_effects


def test_stroke_defaults_from_enabled_only_block():
    effects = parse_effects({"effects": {"stroke": {"enabled": True}}})

    assert effects.has_effects is True
    assert effects.stroke.size == 1
    assert effects.stroke.position == "outside"
    assert effects.stroke.opacity == 100
    assert effects.stroke.color == "rgb(0, 0, 0)"


def test_effects_found_through_additional_layer_info():
    layer = {
        "name": "Title",
        "additionalLayerInfo": [
            {"key": "luni", "data": {}},
            {"key": "lfx2", "data": {"dropShadow": {"enabled": True, "distance": 8, "angle": 90}}},
        ],
    }
    effects = parse_effects(layer)

    assert effects.drop_shadow.distance == 8
    assert effects.drop_shadow.angle == 90
    assert effects.drop_shadow.blur == 5
    assert effects.stroke is None


def test_field_priority():
    layer = {"effects": {"stroke": {"size": 2}}, "layerEffects": {"stroke": {"size": 9}}}
    assert find_effects_block(layer) == {"stroke": {"size": 2}}
    assert find_effects_block({"layerEffects": {"outerGlow": {}}}) == {"outerGlow": {}}
    assert find_effects_block({}) is None


def test_disabled_and_listed_effects():
    effects = parse_effects({
        "effects": {
            "stroke": {"enabled": False, "size": 4},
            "dropShadow": [
                {"enabled": False, "distance": 1},
                {"enabled": True, "distance": 12},
            ],
        }
    })

    assert effects.stroke is None
    assert effects.drop_shadow.distance == 12


def test_explicit_zero_is_kept():
    effects = parse_effects({"effects": {"dropShadow": {"distance": 0, "blur": 0, "opacity": 0}}})
    assert effects.drop_shadow.distance == 0
    assert effects.drop_shadow.blur == 0
    assert effects.drop_shadow.opacity == 0


def test_no_effects():
    effects = parse_effects({"name": "plain"})
    assert effects.has_effects is False
    assert generate_css_effects(effects) is None


def test_effect_color_forms():
    assert parse_effect_color("#f00") == "rgb(255, 0, 0)"
    assert parse_effect_color("00ff80") == "rgb(0, 255, 128)"
    assert parse_effect_color("rgba(10, 20, 30, 0.5)") == "rgb(10, 20, 30)"
    assert parse_effect_color({"r": 0, "g": 0, "b": 255}) == "rgb(0, 0, 255)"
    assert parse_effect_color("not-a-colour") == "rgb(0, 0, 0)"
    assert parse_effect_color(None) == "rgb(0, 0, 0)"


def test_css_effects():
    effects = parse_effects({
        "effects": {
            "stroke": {"size": 1, "color": "#fff"},
            "dropShadow": {"distance": 10, "angle": 0, "blur": 4},
            "colorOverlay": {"color": {"r": 255, "g": 0, "b": 0}, "opacity": 50},
        }
    })
    css = generate_css_effects(effects)

    assert "-webkit-text-stroke: 1px rgb(255, 255, 255)" in css
    assert "10px 0px 4px rgb(0, 0, 0)" in css
    assert "color: rgb(255, 0, 0) !important" in css
    assert "opacity: 0.5" in css
    assert "filter: drop-shadow(" in css
