"""
Analyzer configuration.

Defaults can be overridden from environment variables, a JSON/YAML config
file, or CLI arguments (applied last by main.py).
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional

import yaml

DEFAULT_WORKERS = 8


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class AnalyzerConfig:
    """
    Scan configuration with sensible defaults.
    Can be loaded from environment variables, config file, or CLI args.
    """
    # Scanning options
    root: str = "."
    exclude: List[str] = field(default_factory=list)
    respect_gitignore: bool = True
    workers: int = DEFAULT_WORKERS
    max_file_size_mb: float = 10

    # Result filtering
    unused_only: bool = False
    pattern: Optional[str] = None

    verbose: bool = False

    def __post_init__(self):
        if isinstance(self.exclude, str):
            self.exclude = [e.strip() for e in self.exclude.split(",") if e.strip()]
        else:
            self.exclude = list(self.exclude or [])
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")

    @classmethod
    def from_env(cls) -> "AnalyzerConfig":
        """Load configuration from environment variables."""
        return cls(
            exclude=os.getenv("EPCHECK_EXCLUDE", ""),
            respect_gitignore=_env_bool("EPCHECK_GITIGNORE", "true"),
            workers=int(os.getenv("EPCHECK_WORKERS", DEFAULT_WORKERS)),
            max_file_size_mb=float(os.getenv("EPCHECK_MAX_FILE_SIZE", 10)),
            unused_only=_env_bool("EPCHECK_UNUSED_ONLY"),
            pattern=os.getenv("EPCHECK_PATTERN") or None,
            verbose=_env_bool("EPCHECK_VERBOSE"),
        )

    @classmethod
    def from_file(cls, path: str) -> "AnalyzerConfig":
        """Load configuration from JSON or YAML file."""
        with open(path, "r", encoding="utf-8") as f:
            if path.endswith((".yaml", ".yml")):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)

        data = data or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain an object")

        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown config keys in {path}: {', '.join(sorted(unknown))}")

        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return asdict(self)
