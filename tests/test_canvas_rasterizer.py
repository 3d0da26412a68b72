"""Tests for layer rasterization."""

import base64
import io

import numpy as np
from PIL import Image

from canvas_rasterizer import (
    has_pixel_data,
    image_to_data_url,
    layer_to_canvas,
    render_layer_pixels,
    target_size,
    unpremultiply,
)


def test_unpremultiply_partial_alpha_only():
    pixels = np.array([[100, 50, 0, 128], [10, 20, 30, 255], [5, 5, 5, 0], [200, 200, 200, 64]], dtype=np.uint8)
    result = unpremultiply(pixels)

    assert result[0].tolist() == [199, 100, 0, 128]
    assert result[1].tolist() == [10, 20, 30, 255]
    assert result[2].tolist() == [5, 5, 5, 0]
    # clamped to 255
    assert result[3].tolist() == [255, 255, 255, 64]


def test_target_size_floors_bounds_with_minimum():
    assert target_size({"left": 0.5, "top": 0, "right": 10.9, "bottom": 4}) == (10, 4)
    assert target_size({"left": 5, "top": 5, "right": 5, "bottom": 5}) == (1, 1)
    canvas = Image.new("RGBA", (7, 3))
    assert target_size({"left": 0, "top": 0, "right": 0, "bottom": 0, "canvas": canvas}) == (7, 3)


def test_canvas_is_resized_to_bounds():
    canvas = Image.new("RGBA", (5, 5), (255, 0, 0, 255))
    image = render_layer_pixels({"left": 0, "top": 0, "right": 10, "bottom": 10, "canvas": canvas})

    assert image.size == (10, 10)
    assert image.mode == "RGBA"
    assert image.getpixel((5, 5))[0] > 200


def test_image_data_is_unpremultiplied():
    data = bytes([100, 50, 0, 128] * 4)
    layer = {
        "left": 0, "top": 0, "right": 2, "bottom": 2,
        "imageData": {"width": 2, "height": 2, "data": data},
    }
    image = render_layer_pixels(layer)

    assert image.size == (2, 2)
    assert image.getpixel((0, 0)) == (199, 100, 0, 128)


def test_short_image_data_is_zero_padded():
    layer = {
        "left": 0, "top": 0, "right": 2, "bottom": 2,
        "imageData": {"width": 2, "height": 2, "data": bytes([10, 20, 30, 40])},
    }
    image = render_layer_pixels(layer)

    assert image.getpixel((0, 0)) == (10, 20, 30, 40)
    assert image.getpixel((1, 1)) == (0, 0, 0, 0)


def test_missing_pixels_render_placeholder_bitmap():
    layer = {"name": "Lost", "left": 0, "top": 0, "right": 40, "bottom": 30}

    assert has_pixel_data(layer) is False
    assert render_layer_pixels(layer) is None

    image = layer_to_canvas(layer)
    assert image.size == (40, 30)
    assert image.getpixel((35, 25))[3] == 128
    assert image.getpixel((0, 0)) == (0, 0, 0, 255)


def test_data_url_formats():
    image = Image.new("RGBA", (4, 4), (0, 128, 255, 255))

    png = image_to_data_url(image)
    assert png.startswith("data:image/png;base64,")
    decoded = Image.open(io.BytesIO(base64.b64decode(png.split(",", 1)[1])))
    assert decoded.size == (4, 4)

    jpeg = image_to_data_url(image, "jpg", enhance=False)
    assert jpeg.startswith("data:image/jpeg;base64,")
