import numpy as np
import pytest
from PIL import Image

from asset_squeeze.color_models import Direct, Grayscale, Indexed
from asset_squeeze.errors import DecodeError, EncodeError
from asset_squeeze.image_io import PngCodec, load_png, read_header

from conftest import image_from_pixels, png_bytes, write_png


def test_rgba_png_loads_as_direct(tmp_path):
    pixels = np.zeros((2, 3, 4), dtype=np.uint8)
    pixels[0, 0] = (1, 2, 3, 4)
    path = write_png(tmp_path / "rgba.png", image_from_pixels(pixels))

    image = load_png(path)

    assert isinstance(image.model, Direct)
    assert image.model.has_alpha_channel
    assert np.array_equal(image.model.pixels, pixels)
    assert image.byte_size == path.stat().st_size
    assert image.size == (3, 2)
    assert image.bit_depth == 8


def test_rgb_png_keeps_three_channels(tmp_path):
    path = write_png(tmp_path / "rgb.png", Image.new("RGB", (2, 2), (5, 6, 7)))
    model = load_png(path).model
    assert isinstance(model, Direct)
    assert not model.has_alpha_channel


def test_rgb_key_color_becomes_alpha(tmp_path):
    image = Image.new("RGB", (2, 1), (0, 0, 0))
    image.putpixel((1, 0), (9, 9, 9))
    path = write_png(tmp_path / "keyed.png", image, transparency=(0, 0, 0))
    model = load_png(path).model
    assert isinstance(model, Direct)
    assert model.pixels[0, 0].tolist() == [0, 0, 0, 0]
    assert model.pixels[0, 1].tolist() == [9, 9, 9, 255]


def test_gray_alpha_png_loads_as_direct(tmp_path):
    path = write_png(tmp_path / "la.png", Image.new("LA", (2, 2), (40, 128)))
    model = load_png(path).model
    assert isinstance(model, Direct)
    assert model.pixels[0, 0].tolist() == [40, 40, 40, 128]


def test_gray_png_loads_as_grayscale(tmp_path):
    path = write_png(tmp_path / "gray.png", Image.new("L", (2, 2), 77))
    model = load_png(path).model
    assert isinstance(model, Grayscale)
    assert model.pixels.tolist() == [[77, 77], [77, 77]]


def test_paletted_png_loads_as_indexed(tmp_path):
    image = Image.new("P", (2, 1))
    image.putpalette([10, 20, 30, 40, 50, 60])
    image.putpixel((1, 0), 1)
    path = write_png(tmp_path / "p.png", image, transparency=0)
    model = load_png(path).model
    assert isinstance(model, Indexed)
    assert model.indices.tolist() == [[0, 1]]
    assert model.palette[:2].tolist() == [[10, 20, 30], [40, 50, 60]]
    assert model.alpha[0] == 0
    assert model.alpha[1] == 255


def test_non_png_is_a_decode_error(tmp_path):
    path = tmp_path / "fake.png"
    path.write_bytes(b"GIF89a not a png at all")
    with pytest.raises(DecodeError) as excinfo:
        load_png(path)
    assert excinfo.value.path == path
    assert excinfo.value.stage == "decode"


def test_truncated_png_is_a_decode_error(tmp_path):
    noise = np.random.default_rng(7).integers(0, 256, size=(64, 64, 4), dtype=np.uint8)
    data = png_bytes(image_from_pixels(noise))
    path = tmp_path / "cut.png"
    path.write_bytes(data[: len(data) // 2])
    with pytest.raises(DecodeError):
        load_png(path)



def test_oversized_image_is_a_decode_error(tmp_path, monkeypatch):
    path = write_png(tmp_path / "huge.png", Image.new("L", (8, 8)))
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 4)
    with pytest.raises(DecodeError) as excinfo:
        load_png(path)
    assert excinfo.value.path == path

def test_read_header_reports_depth_and_color_type():
    data = png_bytes(Image.new("RGBA", (1, 1)))
    assert read_header(data) == (8, 6)


def test_premultiplied_pixels_are_not_encoded_directly():
    pixels = np.zeros((1, 1, 4), dtype=np.uint8)
    with pytest.raises(EncodeError):
        PngCodec().encode(Direct(pixels=pixels, premultiplied=True))
