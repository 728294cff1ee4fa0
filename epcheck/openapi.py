"""OpenAPI/Swagger loading and endpoint extraction (.json/.yaml/.yml, local or URL)."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import requests
import yaml

from .base import Endpoint, HttpMethod
from .errors import SpecError

logger = logging.getLogger("epcheck.openapi")

# Searched in this order, first in the start directory and then in each parent.
SPEC_FILE_NAMES = (
    "openapi.json",
    "openapi.yaml",
    "openapi.yml",
    "swagger.json",
    "swagger.yaml",
    "swagger.yml",
)


def extract_endpoints(paths: Mapping[str, Any]) -> List[Endpoint]:
    """
    Turn a specification path table into Endpoints.

    Keys that are not HTTP verbs (``parameters``, ``summary``, ``x-*``) are
    skipped, as are path items that are not mappings. Duplicate pairs collapse.
    """
    seen = set()
    endpoints: List[Endpoint] = []

    for route, path_obj in paths.items():
        if not isinstance(path_obj, Mapping):
            logger.debug(f"Skipping non-object path item: {route!r}")
            continue

        for token in path_obj:
            method = HttpMethod.parse(token)
            if method is None:
                continue
            endpoint = Endpoint(path=str(route), method=method)
            if endpoint not in seen:
                seen.add(endpoint)
                endpoints.append(endpoint)

    return endpoints


@dataclass
class OpenApiSpec:
    """The parts of an OpenAPI document the analyzer cares about."""
    paths: Dict[str, Any] = field(default_factory=dict)
    title: Optional[str] = None
    version: Optional[str] = None
    source: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any, source: Optional[str] = None) -> "OpenApiSpec":
        if not isinstance(data, dict):
            raise SpecError(f"Specification is not an object: {source or '<inline>'}")

        paths = data.get("paths")
        if not isinstance(paths, dict):
            raise SpecError(f"Specification has no 'paths' object: {source or '<inline>'}")

        info = data.get("info") if isinstance(data.get("info"), dict) else {}
        return cls(
            paths=paths,
            title=info.get("title"),
            version=data.get("openapi") or data.get("swagger"),
            source=source,
        )

    def endpoints(self) -> List[Endpoint]:
        return extract_endpoints(self.paths)


def _read_source(source: str, timeout: int) -> str:
    if source.startswith(("http://", "https://")):
        try:
            response = requests.get(source, timeout=timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise SpecError(f"Failed to fetch {source}: {e}") from e
        return response.text

    try:
        return Path(source).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise SpecError(f"Failed to read {source}: {e}") from e


def _parse_content(content: str, source: str) -> Any:
    # URLs may carry a query string, so only look at the path part for the suffix
    ext = Path(source.split("?", 1)[0]).suffix.lower()

    try:
        if ext == ".json":
            return json.loads(content)
        if ext in {".yaml", ".yml"}:
            return yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise SpecError(f"Failed to parse {source}: {e}") from e

    # Unknown extension: JSON first, then YAML
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        pass
    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SpecError(f"Failed to parse {source} as JSON or YAML: {e}") from e


def load_openapi_spec(source: Union[str, Path], timeout: int = 30) -> OpenApiSpec:
    """Load a specification from a local file or an http(s) URL."""
    source = str(source)
    content = _read_source(source, timeout)
    spec = OpenApiSpec.from_dict(_parse_content(content, source), source=source)
    logger.info(f"Loaded {source}: {len(spec.paths)} paths")
    return spec


def find_openapi_spec(start: Optional[Union[str, Path]] = None,
                      names: Iterable[str] = SPEC_FILE_NAMES) -> Optional[Path]:
    """Find the closest spec file in ``start`` (default: cwd) or any parent."""
    directory = Path(start) if start is not None else Path.cwd()
    directory = directory.resolve()
    names = tuple(names)

    for candidate_dir in (directory, *directory.parents):
        for name in names:
            candidate = candidate_dir / name
            if candidate.is_file():
                return candidate
    return None
