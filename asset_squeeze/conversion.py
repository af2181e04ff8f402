"""Pixel-exact conversions between truecolor, gray and indexed buffers."""
from __future__ import annotations

import logging

import numpy as np

from .color_models import Indexed
from .color_stats import MAX_ALPHA, ColorStatistics, as_rgba, pack_rgba
from .errors import ConversionError, PaletteError
from .palette_ops import MAX_PALETTE_SIZE, PaletteInfo, is_gray_palette


logger = logging.getLogger(__name__)

# packs gray level g as the RGBA key of (g, g, g, 255)
_GRAY_KEY_SCALE = np.uint32(0x01010100)


def unpremultiply(pixels: np.ndarray) -> np.ndarray:
    """Recover straight RGBA from premultiplied RGBA.

    Fully transparent pixels have no recoverable color and become (0, 0, 0, 0).
    """

    rgba = pixels.astype(np.uint32)
    alpha = rgba[..., 3:4]
    safe_alpha = np.where(alpha == 0, 1, alpha)
    rgb = np.minimum(rgba[..., :3] * MAX_ALPHA // safe_alpha, MAX_ALPHA)
    rgb = np.where(alpha == 0, 0, rgb)
    return np.concatenate([rgb, alpha], axis=2).astype(np.uint8)


def to_grayscale(pixels: np.ndarray, stats: ColorStatistics) -> np.ndarray:
    """Take the shared R=G=B component of an achromatic, opaque image."""

    if not stats.is_gray or stats.has_alpha:
        raise ConversionError("image is not an opaque achromatic image")
    return np.ascontiguousarray(pixels[..., 0])


def palette_of(model: Indexed) -> PaletteInfo:
    return PaletteInfo(
        colors=[tuple(color) for color in model.palette.tolist()],
        alphas=model.alpha.tolist(),
    )


def indexed_to_grayscale(model: Indexed) -> np.ndarray:
    """Map each index through a gray, opaque palette to its gray level."""

    if not is_gray_palette(palette_of(model)):
        raise ConversionError("palette is not opaque gray")
    size = model.palette.shape[0]
    if model.indices.size and int(model.indices.max()) >= size:
        raise ConversionError(f"index {int(model.indices.max())} outside {size}-entry palette")
    levels = np.zeros(MAX_PALETTE_SIZE, dtype=np.uint8)
    levels[:size] = model.palette[:, 0]
    return levels[model.indices]


def _lookup(keys: np.ndarray, palette_keys: np.ndarray) -> np.ndarray:
    if palette_keys.size == 0:
        raise ConversionError("cannot index pixels against an empty palette")
    if np.unique(palette_keys).size != palette_keys.size:
        raise PaletteError("palette contains duplicate colors")
    order = np.argsort(palette_keys, kind="stable")
    sorted_keys = palette_keys[order]
    positions = np.minimum(np.searchsorted(sorted_keys, keys), sorted_keys.size - 1)
    missing = sorted_keys[positions] != keys
    if np.any(missing):
        raise ConversionError(f"{int(missing.sum())} pixels have colors missing from the palette")
    return order[positions].astype(np.uint8)


def to_indexed(pixels: np.ndarray, palette: PaletteInfo) -> Indexed:
    """Remap RGB/RGBA ``(h, w, c)`` or gray ``(h, w)`` pixels onto ``palette``.

    Every pixel color must be present in the palette exactly once; anything
    else is a bug in palette construction and raises ConversionError.
    """

    if palette.size > MAX_PALETTE_SIZE:
        raise PaletteError(f"{palette.size} entries exceed the {MAX_PALETTE_SIZE}-entry palette limit")
    colors, alphas = palette.arrays()
    if pixels.ndim == 2:
        keys = pixels.astype(np.uint32) * _GRAY_KEY_SCALE + np.uint32(MAX_ALPHA)
    else:
        keys = pack_rgba(as_rgba(pixels))
    palette_keys = pack_rgba(np.concatenate([colors, alphas.reshape(-1, 1)], axis=1))
    indices = _lookup(keys, palette_keys)
    logger.debug("Indexed pixels shape=%s palette_size=%s", pixels.shape, palette.size)
    return Indexed(indices=indices, palette=colors, alpha=alphas)
