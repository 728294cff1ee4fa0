"""
epcheck: find which OpenAPI endpoints are referenced in a codebase.

Exports the analyzer pipeline and its shared data models.
"""

__version__ = "1.0.0"

from .base import (
    HttpMethod,
    EndpointStatus,
    Endpoint,
    PatternEntry,
    FileUsage,
    EndpointResult,
    AnalysisSummary,
)
from .errors import EpcheckError, SpecError, FilterError, DiscoveryError
from .config import AnalyzerConfig
from .openapi import OpenApiSpec, extract_endpoints, load_openapi_spec, find_openapi_spec
from .patterns import compile_patterns, template_path_regex
from .discovery import FileDiscovery, SOURCE_EXTENSIONS
from .content import ContentScanner
from .analyzer import EndpointAnalyzer, aggregate, filter_results, sort_results

__all__ = [
    # Data models
    "HttpMethod",
    "EndpointStatus",
    "Endpoint",
    "PatternEntry",
    "FileUsage",
    "EndpointResult",
    "AnalysisSummary",
    # Errors
    "EpcheckError",
    "SpecError",
    "FilterError",
    "DiscoveryError",
    # Pipeline
    "AnalyzerConfig",
    "OpenApiSpec",
    "extract_endpoints",
    "load_openapi_spec",
    "find_openapi_spec",
    "compile_patterns",
    "template_path_regex",
    "FileDiscovery",
    "SOURCE_EXTENSIONS",
    "ContentScanner",
    "EndpointAnalyzer",
    "aggregate",
    "filter_results",
    "sort_results",
]
