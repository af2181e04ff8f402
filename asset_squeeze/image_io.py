"""PNG decode/encode boundary built on Pillow."""
from __future__ import annotations

import io
import logging
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Tuple

import numpy as np
from PIL import Image

from .color_models import ColorModel, DecodedImage, Direct, Grayscale, Indexed, Unsupported
from .errors import DecodeError, EncodeError, StorageError
from .palette_ops import PaletteInfo, extract_palette


logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

# IHDR color types
COLOR_TYPE_GRAY = 0
COLOR_TYPE_RGB = 2
COLOR_TYPE_GRAY_ALPHA = 4
COLOR_TYPE_RGBA = 6

_TO_RGBA_MODES = {"LA", "PA"}
_TRNS_MODES = {"1", "L", "RGB"}


def read_header(data: bytes) -> Tuple[int, int]:
    """Return ``(bit_depth, color_type)`` from the IHDR chunk."""

    if not data.startswith(PNG_SIGNATURE) or data[12:16] != b"IHDR" or len(data) < 26:
        raise DecodeError("not a PNG file")
    bit_depth, color_type = struct.unpack(">BB", data[24:26])
    return bit_depth, color_type


def decode_image(image: Image.Image, bit_depth: int = 8, color_type: int | None = None) -> ColorModel:
    """Wrap a loaded Pillow image in the matching color model."""

    mode = image.mode
    if bit_depth == 16 and color_type in (COLOR_TYPE_RGB, COLOR_TYPE_GRAY_ALPHA, COLOR_TYPE_RGBA):
        # Pillow keeps only the high byte of these
        return Unsupported(label="16-bit")
    if mode in _TO_RGBA_MODES or (mode in _TRNS_MODES and "transparency" in image.info):
        return Direct(pixels=np.asarray(image.convert("RGBA")))
    if mode in ("RGB", "RGBA"):
        return Direct(pixels=np.asarray(image))
    if mode == "RGBa":
        return Direct(pixels=np.asarray(image), premultiplied=True)
    if mode == "P":
        palette = extract_palette(image)
        indices = np.asarray(image)
        if indices.size and int(indices.max()) >= palette.size:
            padding = int(indices.max()) + 1 - palette.size
            palette = PaletteInfo(
                colors=palette.colors + [(0, 0, 0)] * padding,
                alphas=palette.alphas + [255] * padding,
            )
        colors, alphas = palette.arrays()
        return Indexed(indices=indices, palette=colors, alpha=alphas)
    if mode == "1":
        return Grayscale(pixels=np.asarray(image.convert("L")))
    if mode == "L":
        return Grayscale(pixels=np.asarray(image))
    if mode.startswith("I"):
        return Unsupported(label="16-bit", image=image.copy())
    return Unsupported(label=mode.lower())


def load_png(path: Path) -> DecodedImage:
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise StorageError(f"cannot read file: {exc}", path=path, stage="read") from exc
    try:
        bit_depth, color_type = read_header(data)
    except DecodeError as exc:
        raise exc.with_path(path)
    try:
        with Image.open(io.BytesIO(data), formats=["PNG"]) as img:
            img.load()
            model = decode_image(img, bit_depth, color_type)
            size = img.size
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
        raise DecodeError(f"cannot decode PNG: {exc}", path=path) from exc
    logger.debug(
        "Loaded %s bytes=%s size=%s depth=%s color_type=%s model=%s",
        path.name,
        len(data),
        size,
        bit_depth,
        color_type,
        model.name,
    )
    return DecodedImage(path=path, data=data, model=model, size=size, bit_depth=bit_depth)


def _flatten_palette(colors: np.ndarray) -> list[int]:
    return [int(value) for value in colors.reshape(-1)]


def _image_from_model(model: ColorModel) -> Tuple[Image.Image, Dict[str, Any]]:
    extra: Dict[str, Any] = {}
    match model:
        case Direct(premultiplied=True):
            raise EncodeError("premultiplied pixels must be converted before encoding")
        case Direct(pixels=pixels):
            mode = "RGBA" if pixels.shape[2] == 4 else "RGB"
            height, width = pixels.shape[:2]
            image = Image.frombytes(mode, (width, height), np.ascontiguousarray(pixels).tobytes())
        case Grayscale(pixels=pixels):
            height, width = pixels.shape
            image = Image.frombytes("L", (width, height), np.ascontiguousarray(pixels).tobytes())
        case Indexed(indices=indices, palette=colors, alpha=alpha):
            height, width = indices.shape
            image = Image.frombytes("P", (width, height), np.ascontiguousarray(indices).tobytes())
            image.putpalette(_flatten_palette(colors), "RGB")
            info = PaletteInfo(colors=[], alphas=alpha.tolist())
            table = info.transparency_table()
            if table:
                extra["transparency"] = table
        case Unsupported(image=image) if image is not None:
            if "transparency" in image.info:
                extra["transparency"] = image.info["transparency"]
        case _:
            raise EncodeError(f"no encoder for color model {model.name!r}")
    return image, extra


@dataclass(frozen=True, slots=True)
class PngCodec:
    """Encodes color models to PNG bytes at a fixed compression effort."""

    compress_level: int = 9
    optimize: bool = True

    def encode(self, model: ColorModel) -> bytes:
        image, extra = _image_from_model(model)
        buffer = io.BytesIO()
        try:
            image.save(
                buffer,
                format="PNG",
                compress_level=self.compress_level,
                optimize=self.optimize,
                **extra,
            )
        except (OSError, ValueError, TypeError, KeyError) as exc:
            raise EncodeError(f"cannot encode {model.name}: {exc}") from exc
        return buffer.getvalue()
