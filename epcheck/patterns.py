"""
Pattern compiler: turns each endpoint into a family of call-site regexes.

Source code spells the same request in several ways, e.g.::

    client.GET('/api/users')
    client.GET('/api/users/{id}', { params })
    api.get(`/api/users/42`)
    http.post("/v1/api/users", body)

Missing a real call is worse than flagging a spurious one, so the family
over-matches on purpose.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Dict, Iterable, List, Tuple

from .base import Endpoint, PatternEntry

logger = logging.getLogger("epcheck.patterns")

QUOTE = r"""['"`]"""
NOT_QUOTE = r"""[^'"`]"""

# A {name} placeholder after re.escape() has turned the braces into \{ and \}
_ESCAPED_PLACEHOLDER = re.compile(r"\\\{[^}]+\\\}")

# Stands in for a concrete path parameter value (one or more non-separators)
PARAM_FRAGMENT = "[^/]+"


def template_path_regex(path: str) -> str:
    """Escape ``path`` and replace every ``{param}`` with ``[^/]+``."""
    return _ESCAPED_PLACEHOLDER.sub(lambda _m: PARAM_FRAGMENT, re.escape(path))


def _literal(method: str, path: str) -> str:
    # Optional prefix (base path, host) before the literal path, then the closing paren
    return rf"{re.escape(method)}\s*\(\s*{QUOTE}({NOT_QUOTE}*{re.escape(path)}){QUOTE}\s*\)"


def _template(method: str, path: str) -> str:
    return rf"{re.escape(method)}\s*\(\s*{QUOTE}({template_path_regex(path)}){QUOTE}\s*\)"


def _loose(method: str, path: str) -> str:
    # No closing paren required: tolerates trailing arguments
    return rf"{re.escape(method)}\s*\(\s*{QUOTE}({re.escape(path)}){QUOTE}"


# Order matters only for reproducibility of the pattern table
IDIOMS: Tuple[Tuple[str, Callable[[str, str], str], bool], ...] = (
    ("literal_upper", _literal, False),
    ("template_upper", _template, False),
    ("literal_lower", _literal, True),
    ("template_lower", _template, True),
    ("loose_lower", _loose, True),
    ("loose_upper", _loose, False),
)


def endpoint_patterns(endpoint: Endpoint) -> Dict[str, str]:
    """Return the uncompiled idiom family for one endpoint, keyed by idiom name."""
    method = endpoint.method.value
    return {
        name: build(method.lower() if lowercase else method, endpoint.path)
        for name, build, lowercase in IDIOMS
    }


def compile_patterns(endpoints: Iterable[Endpoint]) -> Tuple[PatternEntry, ...]:
    """
    Build the pattern table for all endpoints.

    A pattern that fails to compile is dropped for its endpoint only; every
    other endpoint and idiom still gets compiled.
    """
    table: List[PatternEntry] = []
    skipped = 0

    for endpoint in endpoints:
        for idiom, source in endpoint_patterns(endpoint).items():
            try:
                regex = re.compile(source)
            except re.error as e:
                skipped += 1
                logger.warning(f"Skipping {idiom} pattern for {endpoint}: {e}")
                continue
            table.append(PatternEntry(endpoint=endpoint, regex=regex, idiom=idiom))

    logger.debug(f"Compiled {len(table)} patterns ({skipped} skipped)")
    return tuple(table)
