"""Error kinds raised while optimizing a single asset."""
from __future__ import annotations

from pathlib import Path


class OptimizeError(RuntimeError):
    """Base class for failures that abort processing of one file.

    ``stage`` names the step that failed; ``path`` is filled in by the
    per-file engine when the raising code did not know it.
    """

    stage = "optimize"

    def __init__(self, message: str, *, path: Path | None = None, stage: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = path
        if stage is not None:
            self.stage = stage

    def with_path(self, path: Path) -> "OptimizeError":
        if self.path is None:
            self.path = path
        return self

    def __str__(self) -> str:
        if self.path is None:
            return f"{self.stage}: {self.message}"
        return f"{self.stage} {self.path}: {self.message}"


class DecodeError(OptimizeError):
    """Raised when a file is not a readable PNG container."""

    stage = "decode"


class ConversionError(OptimizeError):
    """Raised when a lossless conversion cannot be carried out exactly."""

    stage = "convert"


class PaletteError(ConversionError):
    """Raised when palette construction violates indexed PNG limits."""


class EncodeError(OptimizeError):
    """Raised when the codec rejects a pixel buffer."""

    stage = "encode"


class StorageError(OptimizeError):
    """Raised when reading the source or replacing it on disk fails."""

    stage = "commit"
