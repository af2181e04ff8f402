"""Single-pass color statistics over decoded pixel buffers.

The frequency table built here is handed to the palette builder as-is, so
both stages see the same counts and the image is scanned only once.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Tuple

import numpy as np


logger = logging.getLogger(__name__)

MAX_ALPHA = 255

RGBATuple = Tuple[int, int, int, int]


def pack_rgba(pixels: np.ndarray) -> np.ndarray:
    """Pack ``(..., 4)`` RGBA samples into one uint32 key per pixel."""

    rgba = pixels.astype(np.uint32)
    return (rgba[..., 0] << 24) | (rgba[..., 1] << 16) | (rgba[..., 2] << 8) | rgba[..., 3]


def unpack_rgba(keys: np.ndarray) -> np.ndarray:
    keys = np.asarray(keys, dtype=np.uint32)
    return np.stack(
        [(keys >> 24) & 0xFF, (keys >> 16) & 0xFF, (keys >> 8) & 0xFF, keys & 0xFF],
        axis=-1,
    ).astype(np.uint8)


def as_rgba(pixels: np.ndarray) -> np.ndarray:
    """Return ``pixels`` with an alpha plane, adding an opaque one to RGB."""

    if pixels.shape[2] == 4:
        return pixels
    alpha = np.full(pixels.shape[:2] + (1,), MAX_ALPHA, dtype=np.uint8)
    return np.concatenate([pixels, alpha], axis=2)


@dataclass(frozen=True, slots=True)
class ColorTable:
    """Exact color -> occurrence count.

    ``keys`` are packed RGBA (``channels == 4``) or gray levels
    (``channels == 1``), in ascending key order. That order is the
    enumeration order palette ties fall back on.
    """

    keys: np.ndarray
    counts: np.ndarray
    channels: int

    @classmethod
    def from_rgba(cls, pixels: np.ndarray) -> "ColorTable":
        keys, counts = np.unique(pack_rgba(pixels).ravel(), return_counts=True)
        return cls(keys=keys.astype(np.uint32), counts=counts.astype(np.int64), channels=4)

    @classmethod
    def from_gray(cls, pixels: np.ndarray) -> "ColorTable":
        histogram = np.bincount(pixels.ravel(), minlength=256)
        levels = np.flatnonzero(histogram)
        return cls(keys=levels.astype(np.uint8), counts=histogram[levels].astype(np.int64), channels=1)

    def __len__(self) -> int:
        return int(self.keys.shape[0])

    def colors(self) -> np.ndarray:
        """Distinct colors as ``(n, 4)`` RGBA rows or ``(n,)`` gray levels."""

        if self.channels == 1:
            return self.keys
        return unpack_rgba(self.keys)

    def items(self) -> Iterator[Tuple[RGBATuple | int, int]]:
        colors = self.colors()
        for color, count in zip(colors, self.counts):
            if self.channels == 1:
                yield int(color), int(count)
            else:
                yield tuple(int(c) for c in color), int(count)


@dataclass(frozen=True, slots=True)
class ColorStatistics:
    n: int
    has_transparent: bool
    has_partial_alpha: bool
    is_gray: bool

    @property
    def has_alpha(self) -> bool:
        return self.has_transparent or self.has_partial_alpha


def classify_direct(pixels: np.ndarray) -> Tuple[ColorStatistics, ColorTable]:
    """Count colors of an RGB/RGBA buffer and derive gray/alpha flags.

    A present but uniformly opaque alpha channel reports no transparency,
    so such images qualify for gray and palette forms like plain RGB.
    """

    table = ColorTable.from_rgba(as_rgba(pixels))
    colors = table.colors()
    alpha = colors[:, 3]
    stats = ColorStatistics(
        n=len(table),
        has_transparent=bool(np.any(alpha == 0)),
        has_partial_alpha=bool(np.any((alpha > 0) & (alpha < MAX_ALPHA))),
        is_gray=bool(np.all((colors[:, 0] == colors[:, 1]) & (colors[:, 1] == colors[:, 2]))),
    )
    logger.debug(
        "Classified direct pixels shape=%s colors=%s transparent=%s partial_alpha=%s gray=%s",
        pixels.shape,
        stats.n,
        stats.has_transparent,
        stats.has_partial_alpha,
        stats.is_gray,
    )
    return stats, table


def classify_gray(pixels: np.ndarray) -> Tuple[ColorStatistics, ColorTable]:
    table = ColorTable.from_gray(pixels)
    stats = ColorStatistics(n=len(table), has_transparent=False, has_partial_alpha=False, is_gray=True)
    logger.debug("Classified gray pixels shape=%s levels=%s", pixels.shape, stats.n)
    return stats, table
