"""Extension -> optimizer lookup table, built once before any dispatch."""
from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Protocol

from .processing import OptimizationOutcome, OptimizeOptions, PngOptimizer


class AssetOptimizer(Protocol):
    def optimize(self, path: Path) -> OptimizationOutcome: ...


Registry = Mapping[str, AssetOptimizer]


def normalize_extension(ext: str) -> str:
    return ext.lower().lstrip(".")


def build_registry(options: OptimizeOptions | None = None) -> Registry:
    """Return a read-only extension table; callers share it across workers."""

    png = PngOptimizer(options or OptimizeOptions())
    return MappingProxyType({"png": png})


def optimizer_for(registry: Registry, path: Path) -> AssetOptimizer | None:
    if not path.suffix:
        return None
    return registry.get(normalize_extension(path.suffix))
