"""Palette construction and inspection for indexed PNGs."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np
from PIL import Image

from .color_stats import MAX_ALPHA, ColorTable, RGBATuple
from .errors import PaletteError


ColorTuple = Tuple[int, int, int]

MAX_PALETTE_SIZE = 256

TRANSPARENT = 0
TRANSLUCENT = 1
OPAQUE = 2


def alpha_category(alpha: int) -> int:
    if alpha == 0:
        return TRANSPARENT
    if alpha < MAX_ALPHA:
        return TRANSLUCENT
    return OPAQUE


@dataclass(frozen=True, slots=True)
class PaletteEntry:
    """A palette color and how many pixels use it.

    ``color`` is an RGBA tuple, or a plain gray level for gray palettes.
    """

    color: RGBATuple | int
    count: int

    @property
    def rgba(self) -> RGBATuple:
        if isinstance(self.color, int):
            return (self.color, self.color, self.color, MAX_ALPHA)
        return self.color

    @property
    def category(self) -> int:
        return alpha_category(self.rgba[3])


def _palette_order(entry: PaletteEntry) -> Tuple[int, int]:
    return entry.category, -entry.count


def build_palette(table: ColorTable, max_colors: int = 0) -> List[PaletteEntry]:
    """Order the colors of ``table`` into an indexed palette.

    Transparent colors come first, then translucent, then opaque; inside a
    category the most frequent color comes first. Equal counts keep the
    table's key order. The tRNS chunk may stop at the last non-opaque entry,
    so this keeps it as short as possible and puts full transparency at
    index 0. Gray tables have no alpha and sort purely by frequency.
    """

    limit = max_colors or MAX_PALETTE_SIZE
    if len(table) > min(limit, MAX_PALETTE_SIZE):
        raise PaletteError(
            f"{len(table)} distinct colors do not fit a {min(limit, MAX_PALETTE_SIZE)}-entry palette"
        )
    entries = [PaletteEntry(color=color, count=count) for color, count in table.items()]
    # sorted() is stable, so ties stay in enumeration order
    return sorted(entries, key=_palette_order)


@dataclass(slots=True)
class PaletteInfo:
    """Lightweight snapshot of an indexed image palette."""

    colors: List[ColorTuple]
    alphas: List[int]

    @property
    def size(self) -> int:
        return len(self.colors)

    @property
    def transparent_index(self) -> int | None:
        return next((i for i, alpha in enumerate(self.alphas) if alpha == 0), None)

    def transparency_table(self) -> bytes:
        """tRNS payload: per-entry alpha with trailing opaque entries dropped."""

        alphas = list(self.alphas)
        while alphas and alphas[-1] == MAX_ALPHA:
            alphas.pop()
        return bytes(alphas)

    def arrays(self) -> Tuple[np.ndarray, np.ndarray]:
        colors = np.array(self.colors, dtype=np.uint8).reshape(-1, 3)
        alphas = np.array(self.alphas, dtype=np.uint8)
        return colors, alphas


def palette_from_entries(entries: Sequence[PaletteEntry]) -> PaletteInfo:
    colors: List[ColorTuple] = []
    alphas: List[int] = []
    for entry in entries:
        r, g, b, a = entry.rgba
        colors.append((r, g, b))
        alphas.append(a)
    return PaletteInfo(colors=colors, alphas=alphas)


def is_gray_palette(palette: PaletteInfo) -> bool:
    """True when every entry is fully opaque and achromatic."""

    for (r, g, b), alpha in zip(palette.colors, palette.alphas):
        # any transparency rules out a plain gray image
        if alpha < MAX_ALPHA or r != g or g != b:
            return False
    return True


def extract_palette(image: Image.Image) -> PaletteInfo:
    """Return palette entries and per-entry alpha from a mode "P" image."""

    if image.mode != "P":
        raise PaletteError(f"Expected indexed image (mode 'P'), got {image.mode!r}")
    palette = image.getpalette("RGB") or []
    colors: List[ColorTuple] = []
    for i in range(0, len(palette) - 2, 3):
        colors.append((palette[i], palette[i + 1], palette[i + 2]))
    alphas = [MAX_ALPHA] * len(colors)
    transparency = image.info.get("transparency")
    if isinstance(transparency, (bytes, bytearray)):
        for index, alpha in enumerate(transparency[: len(alphas)]):
            alphas[index] = alpha
    elif isinstance(transparency, tuple):
        transparency = transparency[0]
    if isinstance(transparency, int) and 0 <= transparency < len(alphas):
        alphas[transparency] = 0
    return PaletteInfo(colors=colors, alphas=alphas)
