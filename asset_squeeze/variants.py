"""Candidate re-encodings of one decoded image and best-of selection."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Literal

from .color_models import ColorModel, DecodedImage, Direct, Grayscale, Indexed, Unsupported
from .color_stats import classify_direct, classify_gray
from .conversion import indexed_to_grayscale, palette_of, to_grayscale, to_indexed, unpremultiply
from .errors import ConversionError, EncodeError
from .image_io import PngCodec
from .palette_ops import MAX_PALETTE_SIZE, build_palette, is_gray_palette, palette_from_entries


logger = logging.getLogger(__name__)

VariantKind = Literal["direct", "gray", "paletted"]


@dataclass(frozen=True, slots=True)
class Variant:
    data: bytes
    label: str
    kind: VariantKind

    def __len__(self) -> int:
        return len(self.data)


@dataclass(slots=True)
class VariantSet:
    variants: List[Variant] = field(default_factory=list)

    def add(self, data: bytes, label: str, kind: VariantKind) -> Variant:
        variant = Variant(data=data, label=label, kind=kind)
        logger.debug("Variant %s bytes=%s", label, len(data))
        self.variants.append(variant)
        return variant

    def __len__(self) -> int:
        return len(self.variants)

    def __iter__(self):
        return iter(self.variants)

    @property
    def kinds(self) -> List[str]:
        return [variant.kind for variant in self.variants]

    def best(self) -> Variant:
        """Smallest variant; the earliest generated one wins a tie."""

        if not self.variants:
            raise ConversionError("unexpected error: empty variants", stage="select")
        best = self.variants[0]
        for variant in self.variants[1:]:
            if len(variant) < len(best):
                best = variant
        return best


def _direct_variants(model: Direct, codec: PngCodec) -> VariantSet:
    variants = VariantSet()
    stats, table = classify_direct(model.pixels)

    # an alpha plane that is 255 everywhere is dropped from the direct form
    direct = model
    if model.has_alpha_channel and not stats.has_alpha:
        direct = Direct(pixels=model.pixels[..., :3])
    variants.add(codec.encode(direct), f"src ({direct.name})", "direct")

    if stats.is_gray and not stats.has_alpha:
        gray = Grayscale(pixels=to_grayscale(model.pixels, stats))
        variants.add(codec.encode(gray), "gray", "gray")

    # The codec writes either PLTE+tRNS or a full alpha channel, never a gray
    # or RGB key color in tRNS. Few-color images with one transparent color
    # therefore only get the paletted form.
    if stats.n <= MAX_PALETTE_SIZE:
        palette = palette_from_entries(build_palette(table, stats.n))
        variants.add(codec.encode(to_indexed(model.pixels, palette)), "paletted", "paletted")

    return variants


def _indexed_variants(model: Indexed, codec: PngCodec) -> VariantSet:
    variants = VariantSet()
    variants.add(codec.encode(model), f"src ({model.name})", "direct")

    if is_gray_palette(palette_of(model)):
        gray = Grayscale(pixels=indexed_to_grayscale(model))
        variants.add(codec.encode(gray), "gray", "gray")

    return variants


def _gray_variants(model: Grayscale, codec: PngCodec) -> VariantSet:
    variants = VariantSet()
    variants.add(codec.encode(model), f"src ({model.name})", "direct")

    stats, table = classify_gray(model.pixels)
    if stats.n <= MAX_PALETTE_SIZE:
        palette = palette_from_entries(build_palette(table, stats.n))
        variants.add(codec.encode(to_indexed(model.pixels, palette)), "paletted", "paletted")

    return variants


def _unsupported_variants(model: Unsupported, codec: PngCodec, original: bytes) -> VariantSet:
    variants = VariantSet()
    if model.image is None:
        if not original:
            raise EncodeError(f"no lossless encoder for {model.name} pixels")
        variants.add(original, f"src ({model.name})", "direct")
    else:
        variants.add(codec.encode(model), f"src ({model.name})", "direct")
    return variants


def generate_variants(model: ColorModel, codec: PngCodec, original: bytes = b"") -> VariantSet:
    """Build every lossless candidate for ``model``, direct form first.

    ``original`` is the source's encoded bytes, used as the only candidate
    for models the codec cannot re-encode without loss.
    """

    match model:
        case Direct(premultiplied=True):
            return _direct_variants(Direct(pixels=unpremultiply(model.pixels)), codec)
        case Direct():
            return _direct_variants(model, codec)
        case Indexed():
            return _indexed_variants(model, codec)
        case Grayscale():
            return _gray_variants(model, codec)
        case Unsupported():
            return _unsupported_variants(model, codec, original)
    raise ConversionError(f"unknown color model {type(model).__name__}")


def generate_for(image: DecodedImage, codec: PngCodec) -> VariantSet:
    return generate_variants(image.model, codec, image.data)
