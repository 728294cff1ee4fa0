"""
Endpoint analyzer: wires discovery, pattern compilation and scanning together
and reduces per-file usage into one ordered result per endpoint.
"""

from __future__ import annotations

import logging
import re
import time
from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Union

from .base import AnalysisSummary, Endpoint, EndpointResult, EndpointStatus, FileUsage
from .config import AnalyzerConfig
from .content import ContentScanner, ProgressCallback
from .discovery import FileDiscovery
from .errors import FilterError
from .openapi import OpenApiSpec
from .patterns import compile_patterns


# =============================================================================
# AGGREGATION
# =============================================================================

def aggregate(endpoints: Iterable[Endpoint], usages: Iterable[FileUsage]) -> List[EndpointResult]:
    """
    Merge per-file records into one result per endpoint.

    ``usage_count`` is the number of distinct files with at least one match;
    the raw match sum is kept as ``total_matches``. Only set union and integer
    addition are used, so the order of ``usages`` does not matter. Endpoints
    without matches are kept as UNUSED.
    """
    files: Dict[Endpoint, Set[str]] = defaultdict(set)
    totals: Dict[Endpoint, int] = defaultdict(int)

    for usage in usages:
        for endpoint, count in usage.matches:
            if count > 0:
                files[endpoint].add(usage.file_path)
                totals[endpoint] += count

    results = []
    for endpoint in dict.fromkeys(endpoints):
        endpoint_files = sorted(files.get(endpoint, ()))
        results.append(EndpointResult(
            endpoint=endpoint,
            status=EndpointStatus.USED if endpoint_files else EndpointStatus.UNUSED,
            usage_count=len(endpoint_files),
            files=endpoint_files,
            total_matches=totals.get(endpoint, 0),
        ))
    return results


def compile_filter(pattern: Optional[str]) -> Optional["re.Pattern[str]"]:
    """Compile the user filter; an invalid regex is fatal for the run."""
    if pattern is None:
        return None
    try:
        return re.compile(pattern)
    except re.error as e:
        raise FilterError(f"Invalid filter pattern {pattern!r}: {e}") from e


def filter_results(results: List[EndpointResult], unused_only: bool = False,
                   pattern: Optional[Union[str, "re.Pattern[str]"]] = None) -> List[EndpointResult]:
    """Keep unused results only and/or those whose "METHOD path" matches ``pattern``."""
    if unused_only:
        results = [r for r in results if r.status == EndpointStatus.UNUSED]

    if pattern is not None:
        regex = compile_filter(pattern) if isinstance(pattern, str) else pattern
        results = [r for r in results if regex.search(str(r.endpoint))]

    return results


def sort_results(results: Iterable[EndpointResult]) -> List[EndpointResult]:
    """Ascending by path, ties broken by the uppercase method token."""
    return sorted(results, key=lambda r: r.endpoint.sort_key)


# =============================================================================
# ANALYZER
# =============================================================================

class EndpointAnalyzer:
    """
    Runs the full analysis for one specification.

    Usage:
        spec = load_openapi_spec("openapi.yaml")
        summary = EndpointAnalyzer(spec, AnalyzerConfig(unused_only=True)).analyze_directory("./src")
    """

    def __init__(self, spec: Union[OpenApiSpec, Iterable[Endpoint]],
                 config: Optional[AnalyzerConfig] = None,
                 logger: Optional[logging.Logger] = None):
        if isinstance(spec, OpenApiSpec):
            endpoints = spec.endpoints()
        else:
            endpoints = spec
        self.endpoints: List[Endpoint] = list(dict.fromkeys(endpoints))
        self.config = config or AnalyzerConfig()
        self.logger = logger or logging.getLogger("epcheck.analyzer")

    def analyze_directory(self, root: Optional[Union[str, Path]] = None,
                          progress_cb: Optional[ProgressCallback] = None) -> AnalysisSummary:
        """Scan ``root`` (default: config.root) and return the ordered summary."""
        start = time.perf_counter()
        cfg = self.config

        # Validate user input before touching the file system
        regex = compile_filter(cfg.pattern)

        discovery = FileDiscovery(exclude=cfg.exclude, respect_gitignore=cfg.respect_gitignore)
        files = discovery.find_files(root if root is not None else cfg.root)

        patterns = compile_patterns(self.endpoints)
        scanner = ContentScanner(
            patterns,
            workers=cfg.workers,
            max_file_size_mb=cfg.max_file_size_mb,
            verbose=cfg.verbose,
        )
        usages = scanner.scan_files(files, progress_cb=progress_cb)

        results = aggregate(self.endpoints, usages)
        results = sort_results(filter_results(results, unused_only=cfg.unused_only, pattern=regex))

        summary = AnalysisSummary(
            results=results,
            total_files_scanned=len(files),
            files_read=sum(1 for u in usages if u.readable),
            elapsed_seconds=time.perf_counter() - start,
        )
        self.logger.info(
            f"Analysis complete: {summary.used_count}/{len(results)} endpoints used, "
            f"{summary.total_files_scanned} files in {summary.scan_time_ms}ms"
        )
        return summary
