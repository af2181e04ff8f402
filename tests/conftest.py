from __future__ import annotations

import io
from pathlib import Path

import numpy as np
import pytest
from PIL import Image


RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)


def image_from_pixels(pixels: np.ndarray) -> Image.Image:
    pixels = np.ascontiguousarray(pixels, dtype=np.uint8)
    height, width = pixels.shape[:2]
    if pixels.ndim == 2:
        mode = "L"
    else:
        mode = {3: "RGB", 4: "RGBA"}[pixels.shape[2]]
    return Image.frombytes(mode, (width, height), pixels.tobytes())


def png_bytes(image: Image.Image, **params) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG", **params)
    return buffer.getvalue()


def write_png(path: Path, image: Image.Image, **params) -> Path:
    path.write_bytes(png_bytes(image, **params))
    return path


def decode_rgba(data: bytes) -> np.ndarray:
    with Image.open(io.BytesIO(data)) as img:
        return np.asarray(img.convert("RGBA"))


def two_color_pixels(size: int = 64) -> np.ndarray:
    pixels = np.zeros((size, size, 4), dtype=np.uint8)
    pixels[:, :] = RED
    pixels[:, size // 2 :] = BLUE
    return pixels


@pytest.fixture
def bloated_png(tmp_path: Path) -> Path:
    """A two-color RGBA image stored without compression."""

    return write_png(tmp_path / "bloated.png", image_from_pixels(two_color_pixels()), compress_level=0)


@pytest.fixture
def gradient_pixels() -> np.ndarray:
    """272 distinct opaque colors, too many for a palette."""

    red, green = np.meshgrid(np.arange(17) * 15, np.arange(16) * 16, indexing="ij")
    pixels = np.zeros((17, 16, 4), dtype=np.uint8)
    pixels[..., 0] = red
    pixels[..., 1] = green
    pixels[..., 2] = 7
    pixels[..., 3] = 255
    return pixels
