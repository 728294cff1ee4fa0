"""
File discovery: enumerate candidate source files under a root directory.

Hidden files are included. Ignore rules follow git: ``.gitignore`` / ``.ignore``
files in the scanned tree and in its ancestors up to the repository root,
``.git/info/exclude`` and the user's global ``core.excludesFile``. User
exclusions use the same gitignore syntax (via ``pathspec``), relative to the
scan root.
"""

from __future__ import annotations

import configparser
import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Set, Tuple, Union

import pathspec
from git.config import GitConfigParser, get_config_path

from .errors import DiscoveryError

logger = logging.getLogger("epcheck.discovery")

# Common source/config/markup extensions (without the dot, lowercase)
SOURCE_EXTENSIONS: Set[str] = {
    "js", "ts", "jsx", "tsx", "mjs", "cjs", "py", "rb", "php", "java", "scala",
    "kt", "swift", "go", "rs", "cpp", "c", "h", "hpp", "cs", "fs", "vb", "clj",
    "cljs", "elm", "ex", "exs", "hs", "ml", "fsx", "dart", "lua", "pl", "pm",
    "tcl", "r", "sh", "bash", "zsh", "fish", "ps1", "sql", "xml", "json",
    "yaml", "yml", "toml", "ini", "cfg", "conf", "md", "txt", "html", "htm",
    "css", "scss", "sass", "less", "vue", "svelte", "astro",
}

# Never descended into, regardless of ignore files
VCS_DIRS: Set[str] = {".git", ".hg", ".svn"}

# Later files win over earlier ones in the same directory
IGNORE_FILE_NAMES = (".gitignore", ".ignore")

ScopedSpec = Tuple[str, pathspec.PathSpec]


def is_candidate(name: str) -> bool:
    """Allowed extension, or no extension at all (extensionless scripts)."""
    if "." not in name:
        return True
    ext = name.rsplit(".", 1)[1].lower()
    return ext in SOURCE_EXTENSIONS


def find_repo_root(start: Path) -> Optional[Path]:
    """Closest directory at or above ``start`` that holds a ``.git`` entry."""
    for directory in (start, *start.parents):
        if (directory / ".git").exists():
            return directory
    return None


def global_excludes_file() -> Path:
    """``core.excludesFile`` from the user's git config, else git's default location."""
    configs = [p for p in (get_config_path("user"), get_config_path("global")) if os.path.isfile(p)]
    if configs:
        try:
            reader = GitConfigParser(configs, read_only=True)
            reader.read()
            value = reader.get_value("core", "excludesFile", "") or reader.get_value("core", "excludesfile", "")
            if value:
                return Path(os.path.expanduser(str(value)))
        except (OSError, configparser.Error) as e:
            logger.warning(f"Cannot read git config: {e}")

    config_home = os.environ.get("XDG_CONFIG_HOME") or os.path.join(os.path.expanduser("~"), ".config")
    return Path(config_home) / "git" / "ignore"


def _join(parent: str, name: str) -> str:
    if parent and name:
        return f"{parent}/{name}"
    return parent or name


def _read_spec(path: Path) -> Optional[pathspec.PathSpec]:
    try:
        lines = path.read_text(encoding="utf-8", errors="ignore").splitlines()
        return pathspec.GitIgnoreSpec.from_lines(lines)
    except OSError as e:
        logger.warning(f"Cannot read ignore file {path}: {e}")
    except ValueError as e:
        logger.warning(f"Invalid pattern in {path}: {e}")
    return None


class FileDiscovery:
    """
    Walks a directory tree and collects scannable files.

    Usage:
        files = FileDiscovery(exclude=["openapi.json", "dist/"]).find_files("./src")
    """

    def __init__(self, exclude: Iterable[str] = (), respect_gitignore: bool = True):
        self.exclude = [e.strip() for e in exclude if e and e.strip()]
        self.respect_gitignore = respect_gitignore
        self.warnings: List[str] = []
        try:
            self._exclude_spec = pathspec.GitIgnoreSpec.from_lines(
                [e[2:] if e.startswith("./") else e for e in self.exclude]
            )
        except ValueError as e:
            raise DiscoveryError(f"Invalid exclude pattern: {e}") from e

    def _warn(self, message: str):
        self.warnings.append(message)
        logger.warning(message)

    def _load_ignore_specs(self, directory: Path, rel_dir: str) -> List[ScopedSpec]:
        specs = []
        for name in IGNORE_FILE_NAMES:
            ignore_file = directory / name
            if ignore_file.is_file():
                spec = _read_spec(ignore_file)
                if spec is not None:
                    specs.append((rel_dir, spec))
        return specs

    def _repository_specs(self, repo_root: Path, prefix: str) -> List[ScopedSpec]:
        """Rules that apply before the walk starts, lowest precedence first."""
        specs: List[ScopedSpec] = []
        for source in (global_excludes_file(), repo_root / ".git" / "info" / "exclude"):
            if source.is_file():
                spec = _read_spec(source)
                if spec is not None:
                    specs.append(("", spec))

        # Ignore files of the directories above the scan root, outermost first
        parts = prefix.split("/") if prefix else []
        for depth in range(len(parts)):
            rel_dir = "/".join(parts[:depth])
            specs.extend(self._load_ignore_specs(repo_root / rel_dir if rel_dir else repo_root, rel_dir))
        return specs

    def _is_ignored(self, scan_rel: str, repo_rel: str, is_dir: bool,
                    specs: List[ScopedSpec]) -> bool:
        suffix = "/" if is_dir else ""
        if self._exclude_spec.match_file(scan_rel + suffix):
            return True

        # Shallowest to deepest; the last file with a matching rule decides
        ignored = False
        for base, spec in specs:
            if base:
                if not repo_rel.startswith(base + "/"):
                    continue
                local = repo_rel[len(base) + 1:]
            else:
                local = repo_rel
            include = spec.check_file(local + suffix).include
            if include is not None:
                ignored = include
        return ignored

    def find_files(self, root: Union[str, Path]) -> List[Path]:
        """Return candidate files under ``root`` (no ordering guarantee)."""
        root = Path(root)
        if not root.exists():
            raise DiscoveryError(f"Directory not found: {root}")
        if not root.is_dir():
            raise DiscoveryError(f"Not a directory: {root}")
        if not os.access(root, os.R_OK | os.X_OK):
            raise DiscoveryError(f"Directory not readable: {root}")

        self.warnings = []
        specs: List[ScopedSpec] = []

        # Ignore rules are matched against paths relative to the repository root
        prefix = ""
        if self.respect_gitignore:
            absolute = root.resolve()
            repo_root = find_repo_root(absolute)
            if repo_root is not None:
                prefix = absolute.relative_to(repo_root).as_posix()
                prefix = "" if prefix == "." else prefix
                specs.extend(self._repository_specs(repo_root, prefix))

        def on_error(err: OSError):
            self._warn(f"Cannot read {err.filename}: {err.strerror}")

        files: List[Path] = []
        skipped = 0

        for dirpath, dirs, names in os.walk(root, onerror=on_error):
            current = Path(dirpath)
            scan_dir = current.relative_to(root).as_posix()
            scan_dir = "" if scan_dir == "." else scan_dir
            repo_dir = _join(prefix, scan_dir)

            if self.respect_gitignore:
                # Only keep specs that apply to this subtree, then add this level's own
                specs = [(b, s) for b, s in specs
                         if not b or repo_dir == b or repo_dir.startswith(b + "/")]
                specs.extend(self._load_ignore_specs(current, repo_dir))

            # Prune in place so os.walk never descends into ignored directories
            kept = []
            for d in sorted(dirs):
                if d in VCS_DIRS or self._is_ignored(_join(scan_dir, d), _join(repo_dir, d), True, specs):
                    continue
                kept.append(d)
            dirs[:] = kept

            for name in names:
                fp = current / name

                if fp.is_symlink() and not fp.exists():
                    self._warn(f"Broken symlink: {fp}")
                    continue
                if not is_candidate(name) or self._is_ignored(_join(scan_dir, name), _join(repo_dir, name), False, specs):
                    skipped += 1
                    continue
                files.append(fp)

        logger.info(f"Discovered {len(files)} candidate files under {root} ({skipped} skipped)")
        return files
