"""
Shared data models for the endpoint usage analyzer.

All pipeline stages (pattern compiler, file discovery, content scanner,
aggregator) import from this module.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Tuple


# =============================================================================
# ENUMS
# =============================================================================

class HttpMethod(Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"

    @classmethod
    def parse(cls, token: Any) -> Optional["HttpMethod"]:
        """Case-insensitive lookup; returns None for anything that is not an HTTP verb."""
        if not isinstance(token, str):
            return None
        return cls.__members__.get(token.strip().upper())


class EndpointStatus(Enum):
    USED = "used"
    UNUSED = "unused"


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass(frozen=True)
class Endpoint:
    """A (path, method) pair declared by the specification."""
    path: str
    method: HttpMethod

    def __str__(self) -> str:
        return f"{self.method.value} {self.path}"

    @property
    def sort_key(self) -> Tuple[str, str]:
        return (self.path, self.method.value)


class PatternEntry(NamedTuple):
    """One compiled idiom variant for an endpoint."""
    endpoint: Endpoint
    regex: "re.Pattern[str]"
    idiom: str


class FileUsage(NamedTuple):
    """Match counts for a single scanned file."""
    file_path: str
    matches: Tuple[Tuple[Endpoint, int], ...] = ()
    readable: bool = True


@dataclass
class EndpointResult:
    """Aggregated usage evidence for one endpoint."""
    endpoint: Endpoint
    status: EndpointStatus
    usage_count: int
    files: List[str] = field(default_factory=list)
    total_matches: int = 0

    @property
    def path(self) -> str:
        return self.endpoint.path

    @property
    def method(self) -> str:
        return self.endpoint.method.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "endpoint": self.endpoint.path,
            "method": self.endpoint.method.value,
            "status": self.status.value,
            "usage_count": self.usage_count,
            "files": list(self.files),
        }


@dataclass
class AnalysisSummary:
    """Everything one analysis run hands to the output layer."""
    results: List[EndpointResult]
    total_files_scanned: int
    files_read: int
    elapsed_seconds: float

    @property
    def scan_time_ms(self) -> int:
        return int(self.elapsed_seconds * 1000)

    @property
    def used_count(self) -> int:
        return sum(1 for r in self.results if r.status == EndpointStatus.USED)

    @property
    def unused_count(self) -> int:
        return len(self.results) - self.used_count

    @property
    def coverage(self) -> float:
        if not self.results:
            return 0.0
        return self.used_count / len(self.results) * 100.0

    @property
    def total_file_references(self) -> int:
        return sum(r.usage_count for r in self.results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "files_scanned": self.total_files_scanned,
            "files_read": self.files_read,
            "scan_time_ms": self.scan_time_ms,
            "total": len(self.results),
            "used": self.used_count,
            "unused": self.unused_count,
            "coverage": round(self.coverage, 1),
            "endpoints": [r.to_dict() for r in self.results],
        }
