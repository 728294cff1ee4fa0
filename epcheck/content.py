"""
Concurrent content scanner.

Each file is read and matched against the whole pattern table independently;
workers share nothing but the read-only table and return a FileUsage each.
The coordinating thread collects those partial records, so no locking is
needed anywhere.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union

from .base import Endpoint, FileUsage, PatternEntry

ProgressCallback = Callable[[int, int, Path], None]


class ContentScanner:
    """
    Matches a fixed pattern table against file contents.

    Args:
        patterns: Compiled pattern table (see patterns.compile_patterns)
        workers: Size of the bounded thread pool
        max_file_size_mb: Files above this size are treated as unreadable
        verbose: Log per-file match counts at DEBUG
        logger: Logger to report through (default: "epcheck.scanner")
    """

    def __init__(self, patterns: Sequence[PatternEntry], workers: int = 8,
                 max_file_size_mb: float = 10, verbose: bool = False,
                 logger: Optional[logging.Logger] = None):
        self.patterns = tuple(patterns)
        self.workers = max(1, int(workers))
        self.max_file_size_mb = max_file_size_mb
        self.verbose = verbose
        self.logger = logger or logging.getLogger("epcheck.scanner")

    def _read(self, fp: Path) -> Optional[str]:
        try:
            size_mb = fp.stat().st_size / (1024 * 1024)
            if self.max_file_size_mb and size_mb > self.max_file_size_mb:
                self.logger.debug(f"Skipping large file {fp}: {size_mb:.1f}MB > {self.max_file_size_mb}MB")
                return None
            return fp.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            # Binary content, permissions, deleted mid-scan
            self.logger.debug(f"File read error {fp}: {e}")
            return None

    def match_content(self, content: str) -> Dict[Endpoint, int]:
        """Count matches per endpoint; counts from different idioms are summed."""
        counts: Dict[Endpoint, int] = defaultdict(int)
        for entry in self.patterns:
            n = sum(1 for _ in entry.regex.finditer(content))
            if n:
                counts[entry.endpoint] += n
        return dict(counts)

    def scan_file(self, path: Union[str, Path]) -> FileUsage:
        """Scan one file. Never raises: unreadable files give an empty record."""
        fp = Path(path)
        content = self._read(fp)
        if content is None:
            return FileUsage(file_path=str(fp), readable=False)

        counts = self.match_content(content)
        if self.verbose and counts:
            for endpoint, n in counts.items():
                self.logger.debug(f"Found {n} matches for {endpoint} in {fp}")

        return FileUsage(file_path=str(fp), matches=tuple(counts.items()))

    def scan_files(self, paths: Iterable[Union[str, Path]],
                   progress_cb: Optional[ProgressCallback] = None) -> List[FileUsage]:
        """
        Scan many files on a bounded thread pool.

        The result order follows completion order; aggregation downstream
        does not depend on it.
        """
        files = [Path(p) for p in paths]
        total = len(files)
        results: List[FileUsage] = []
        if not files:
            return results

        self.logger.info(f"Scanning {total} files with {self.workers} workers and {len(self.patterns)} patterns")

        with ThreadPoolExecutor(max_workers=min(self.workers, total)) as executor:
            future_to_file = {executor.submit(self.scan_file, fp): fp for fp in files}

            for completed, future in enumerate(as_completed(future_to_file), 1):
                fp = future_to_file[future]
                try:
                    results.append(future.result())
                except Exception as e:
                    # scan_file guards its own I/O; anything here is unexpected
                    self.logger.error(f"Task error for {fp}: {e}")
                    results.append(FileUsage(file_path=str(fp), readable=False))

                if progress_cb:
                    progress_cb(completed, total, fp)

        return results
