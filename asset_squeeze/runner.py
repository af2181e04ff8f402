"""Batch runs over directories of assets with per-file reporting."""
from __future__ import annotations

import logging
import time
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Sequence, Tuple

from .errors import OptimizeError
from .file_scanner import ScanOptions, iter_asset_files
from .processing import OptimizationOutcome
from .registry import Registry, optimizer_for


logger = logging.getLogger(__name__)

Reporter = Callable[[str], None]


@dataclass(slots=True)
class RunStats:
    files_seen: int = 0
    files_modified: int = 0
    bytes_saved: int = 0
    files_pending: int = 0
    bytes_pending: int = 0
    failures: List[Tuple[Path, OptimizeError]] = field(default_factory=list)

    def record(self, outcome: OptimizationOutcome) -> None:
        self.files_seen += 1
        if outcome.noop:
            return
        # dry runs find savings without writing them
        if outcome.written:
            self.files_modified += 1
            self.bytes_saved += outcome.saved
        else:
            self.files_pending += 1
            self.bytes_pending += outcome.saved


def _relative(path: Path, roots: Sequence[Path]) -> str:
    for root in roots:
        try:
            rel = path.relative_to(root)
        except ValueError:
            continue
        return str(rel) if str(rel) != "." else path.name
    return str(path)


def format_outcome(outcome: OptimizationOutcome, rel: str) -> str:
    if outcome.noop:
        return f"[NOOP] {rel}"
    tag = "SAVE" if outcome.written else "WOULD SAVE"
    return (
        f"[{tag}] {rel} as {outcome.label}: {outcome.original_size} --> {outcome.new_size}"
        f" == {outcome.saved} bytes ({outcome.percent:.2f}%)"
    )


class AssetsOptimizer:
    """Walks roots and runs the registered optimizer on each matching file.

    Fail-fast by default: the first error stops the run and is re-raised.
    With ``keep_going`` errors are reported, recorded and skipped.
    """

    def __init__(
        self,
        roots: Sequence[Path],
        registry: Registry,
        *,
        recursive: bool = True,
        jobs: int = 1,
        keep_going: bool = False,
        reporter: Reporter = print,
    ) -> None:
        self.roots = [root.expanduser().resolve() for root in roots]
        self.registry = registry
        self.recursive = recursive
        self.jobs = max(1, jobs)
        self.keep_going = keep_going
        self.report = reporter
        self.stats = RunStats()
        self.elapsed = 0.0

    def iter_files(self) -> List[Path]:
        options = ScanOptions(
            roots=self.roots,
            recursive=self.recursive,
            allowed_exts=tuple(self.registry.keys()),
        )
        return list(iter_asset_files(options))

    def _optimize_one(self, path: Path) -> OptimizationOutcome:
        optimizer = optimizer_for(self.registry, path)
        if optimizer is None:
            raise OptimizeError("no optimizer registered", path=path, stage="dispatch")
        return optimizer.optimize(path)

    def _handle_error(self, path: Path, error: OptimizeError) -> None:
        self.stats.failures.append((path, error))
        self.report(f"[FAIL] {_relative(path, self.roots)}: {error}")
        if not self.keep_going:
            raise error

    def _handle_outcome(self, path: Path, outcome: OptimizationOutcome) -> None:
        self.stats.record(outcome)
        self.report(format_outcome(outcome, _relative(path, self.roots)))

    def _run_serial(self, files: Sequence[Path]) -> None:
        for path in files:
            try:
                outcome = self._optimize_one(path)
            except OptimizeError as exc:
                self._handle_error(path, exc)
                continue
            self._handle_outcome(path, outcome)

    def _run_pool(self, files: Sequence[Path]) -> None:
        with ThreadPoolExecutor(max_workers=self.jobs, thread_name_prefix="asset-squeeze") as pool:
            futures: Dict[Future, Path] = {pool.submit(self._optimize_one, path): path for path in files}
            pending = set(futures)
            try:
                while pending:
                    done, pending = wait(pending, return_when=FIRST_EXCEPTION)
                    for future in sorted(done, key=lambda f: futures[f]):
                        error = future.exception()
                        if error is not None and not isinstance(error, OptimizeError):
                            raise error
                        if error is not None:
                            self._handle_error(futures[future], error)
                        else:
                            self._handle_outcome(futures[future], future.result())
            except BaseException:
                for future in pending:
                    future.cancel()
                raise

    def run(self) -> RunStats:
        start = time.perf_counter()
        files = self.iter_files()
        logger.debug("Found %s asset(s) under %s", len(files), [str(root) for root in self.roots])
        try:
            if self.jobs == 1 or len(files) <= 1:
                self._run_serial(files)
            else:
                self._run_pool(files)
        finally:
            self.elapsed = time.perf_counter() - start
        return self.stats

    def summary(self) -> str:
        text = (
            f"Totally optimized files: {self.stats.files_modified}, "
            f"totally saved bytes: {self.stats.bytes_saved} "
            f"({self.stats.files_seen} processed, {len(self.stats.failures)} failed, {self.elapsed:.2f}s)"
        )
        if self.stats.files_pending:
            text += (
                f"\nWould optimize files: {self.stats.files_pending}, "
                f"would save bytes: {self.stats.bytes_pending}"
            )
        return text
