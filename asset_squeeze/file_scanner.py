"""Directory scanning helpers for batch asset optimization."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from .registry import normalize_extension


@dataclass(slots=True)
class ScanOptions:
    roots: Sequence[Path]
    recursive: bool = True
    allowed_exts: Iterable[str] = ("png",)


def is_supported_asset(path: Path, allowed_exts: Iterable[str] = ("png",)) -> bool:
    allowed = {normalize_extension(ext) for ext in allowed_exts}
    return bool(path.suffix) and normalize_extension(path.suffix) in allowed


def iter_asset_files(options: ScanOptions) -> Iterator[Path]:
    """Yield regular files with an allowed extension under the given roots.

    A root that is itself a file is yielded when its extension matches.
    """

    allowed = {normalize_extension(ext) for ext in options.allowed_exts}
    for root in options.roots:
        root = root.expanduser().resolve()
        if root.is_file():
            if is_supported_asset(root, allowed):
                yield root
            continue
        candidates = root.rglob("*") if options.recursive else root.glob("*")
        for path in sorted(candidates):
            if path.is_file() and not path.is_symlink() and is_supported_asset(path, allowed):
                yield path
