"""Decoded pixel buffers, tagged by the color model they were decoded as."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image


@dataclass(frozen=True, slots=True)
class Direct:
    """Truecolor pixels, shape ``(h, w, 3)`` (RGB) or ``(h, w, 4)`` (RGBA)."""

    pixels: np.ndarray
    premultiplied: bool = False

    @property
    def has_alpha_channel(self) -> bool:
        return self.pixels.shape[2] == 4

    @property
    def name(self) -> str:
        if self.premultiplied:
            return "rgba premultiplied"
        return "rgba" if self.has_alpha_channel else "rgb"


@dataclass(frozen=True, slots=True)
class Indexed:
    """Palette indices ``(h, w)`` plus a ``(k, 3)`` RGB palette and ``(k,)`` alphas."""

    indices: np.ndarray
    palette: np.ndarray
    alpha: np.ndarray

    @property
    def name(self) -> str:
        return "paletted"


@dataclass(frozen=True, slots=True)
class Grayscale:
    """8-bit gray samples, shape ``(h, w)``."""

    pixels: np.ndarray

    @property
    def name(self) -> str:
        return "gray"


@dataclass(frozen=True, slots=True)
class Unsupported:
    """Any model without a dedicated optimization.

    ``image`` is None when Pillow cannot hold the source without losing
    precision; the original encoded bytes are then the only candidate.
    """

    label: str
    image: Image.Image | None = None

    @property
    def name(self) -> str:
        return self.label


ColorModel = Union[Direct, Indexed, Grayscale, Unsupported]


@dataclass(frozen=True, slots=True)
class DecodedImage:
    path: Path | None
    data: bytes
    model: ColorModel
    size: tuple[int, int]
    bit_depth: int = 8

    @property
    def byte_size(self) -> int:
        return len(self.data)
