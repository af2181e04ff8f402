"""Per-file PNG optimization: decode, build variants, keep the smallest."""
from __future__ import annotations

import contextlib
import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from .errors import OptimizeError, StorageError
from .image_io import PngCodec, load_png
from .variants import generate_for


logger = logging.getLogger(__name__)

TEMP_SUFFIX = ".pngtmp"


@dataclass(slots=True)
class OptimizeOptions:
    compress_level: int = 9
    optimize: bool = True
    dry_run: bool = False
    temp_suffix: str = TEMP_SUFFIX


@dataclass(frozen=True, slots=True)
class OptimizationOutcome:
    path: Path
    label: str
    original_size: int
    new_size: int
    written: bool = False

    @property
    def saved(self) -> int:
        return max(0, self.original_size - self.new_size)

    @property
    def noop(self) -> bool:
        return self.saved == 0

    @property
    def percent(self) -> float:
        if not self.original_size:
            return 0.0
        return self.saved / self.original_size * 100


def temp_path_for(path: Path, suffix: str = TEMP_SUFFIX) -> Path:
    return path.with_name(path.name + suffix)


def replace_atomically(path: Path, data: bytes, suffix: str = TEMP_SUFFIX) -> None:
    """Write ``data`` beside ``path`` and rename it over the original.

    On any failure the temporary file is removed and the original is left
    as it was.
    """

    tmp_path = temp_path_for(path, suffix)
    try:
        with tmp_path.open("wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        shutil.copymode(path, tmp_path)
        os.replace(tmp_path, path)
    except OSError as exc:
        with contextlib.suppress(OSError):
            tmp_path.unlink()
        raise StorageError(f"cannot replace file: {exc}", path=path) from exc


@dataclass(slots=True)
class PngOptimizer:
    """Rewrites a PNG in its smallest lossless color representation."""

    options: OptimizeOptions = field(default_factory=OptimizeOptions)
    codec: PngCodec = field(init=False)

    def __post_init__(self) -> None:
        self.codec = PngCodec(
            compress_level=self.options.compress_level,
            optimize=self.options.optimize,
        )

    def optimize(self, path: Path) -> OptimizationOutcome:
        try:
            return self._optimize(path)
        except OptimizeError as exc:
            raise exc.with_path(path)

    def _optimize(self, path: Path) -> OptimizationOutcome:
        image = load_png(path)
        best = generate_for(image, self.codec).best()
        outcome = OptimizationOutcome(
            path=path,
            label=best.label,
            original_size=image.byte_size,
            new_size=len(best),
        )
        if len(best) >= image.byte_size:
            logger.debug("No smaller variant for %s (best %s bytes=%s)", path.name, best.label, len(best))
            return OptimizationOutcome(
                path=path,
                label=best.label,
                original_size=image.byte_size,
                new_size=image.byte_size,
            )
        if self.options.dry_run:
            logger.debug("Dry run, not writing %s as %s", path.name, best.label)
            return outcome
        replace_atomically(path, best.data, self.options.temp_suffix)
        logger.debug(
            "Replaced %s as %s %s --> %s bytes",
            path.name,
            best.label,
            image.byte_size,
            len(best),
        )
        return OptimizationOutcome(
            path=path,
            label=best.label,
            original_size=image.byte_size,
            new_size=len(best),
            written=True,
        )
