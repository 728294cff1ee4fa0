#!/usr/bin/env python3
"""
epcheck - OpenAPI Endpoint Usage Checker
========================================
Finds which endpoints declared in an OpenAPI specification are actually
referenced in a codebase, and where.

Features:
  - OpenAPI/Swagger specs from JSON, YAML or an http(s) URL
  - Auto-discovery of openapi.* / swagger.* in the current or parent directories
  - Parallel, pattern-based scanning that honors .gitignore
  - Remote git repositories as scan targets
  - Table, CSV, JSON and Markdown output

Usage: python main.py [OPTIONS]
"""

import sys
import os
import argparse
import tempfile
import shutil
import logging
import re
from pathlib import Path
from typing import List, Optional

# =============================================================================
# DEPENDENCY CHECK
# =============================================================================
REQUIRED = {
    "rich": "rich>=13.7.0",
    "git": "gitpython>=3.1.40",
    "dotenv": "python-dotenv>=1.0.0",
    "yaml": "pyyaml>=6.0",
    "requests": "requests>=2.31.0",
    "pathspec": "pathspec>=1.0.0",
}

def check_deps():
    missing = []
    for mod, pkg in REQUIRED.items():
        try:
            __import__(mod)
        except ImportError:
            missing.append(pkg)
    if missing:
        print(f"\nMissing: pip install {' '.join(missing)}\n")
        sys.exit(1)

check_deps()

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn
from dotenv import load_dotenv
import git

from epcheck import __version__
from epcheck.analyzer import EndpointAnalyzer
from epcheck.config import AnalyzerConfig
from epcheck.errors import EpcheckError, SpecError
from epcheck.openapi import find_openapi_spec, load_openapi_spec
from epcheck.output import FORMATTERS, ReportContext, get_formatter

load_dotenv()

# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================
def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None,
                  console_level: int = logging.WARNING) -> logging.Logger:
    """Configure structured logging for the analyzer."""
    logger = logging.getLogger("epcheck")
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Clear existing handlers
    logger.handlers.clear()

    # Console handler (stderr) with structured format
    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_formatter = logging.Formatter(
        '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    # File handler if specified
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_formatter = logging.Formatter(
            '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
            datefmt='%Y-%m-%dT%H:%M:%S'
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    return logger

logger = setup_logging()

# =============================================================================
# GIT HELPER
# =============================================================================
def is_git_url(target: str) -> bool:
    return target.startswith(("http://", "https://", "git@", "ssh://"))

def clone_repo(url: str, console: Console) -> str:
    tmp = tempfile.mkdtemp(prefix="epcheck_")
    console.print(f"[cyan]Cloning: {escape(url)}[/cyan]")
    git.Repo.clone_from(url, tmp, depth=1)
    console.print("[green] Cloned[/green]")
    return tmp

# =============================================================================
# HELPERS
# =============================================================================
def spec_exclusion(spec_source: str, scan_dir: str) -> Optional[str]:
    """Exclude pattern for the spec file itself when it lives inside the scanned tree."""
    if spec_source.startswith(("http://", "https://")):
        return None
    try:
        rel = Path(spec_source).resolve().relative_to(Path(scan_dir).resolve())
    except ValueError:
        return None
    # Wildcard characters in the location are literal, not glob syntax
    return "/" + re.sub(r"([\\\[\]*?])", r"\\\1", rel.as_posix())

def build_config(args: argparse.Namespace) -> AnalyzerConfig:
    """File or environment config first, then explicit CLI flags on top."""
    config = AnalyzerConfig.from_file(args.config) if args.config else AnalyzerConfig.from_env()

    config.root = args.dir
    config.exclude = list(config.exclude) + list(args.exclude or [])
    if args.workers is not None:
        config.workers = args.workers
    if args.max_file_size is not None:
        config.max_file_size_mb = args.max_file_size
    if args.pattern is not None:
        config.pattern = args.pattern
    if args.unused_only:
        config.unused_only = True
    if args.no_gitignore:
        config.respect_gitignore = False
    if args.verbose:
        config.verbose = True
    return config

# =============================================================================
# MAIN CLI
# =============================================================================
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="epcheck",
        description=f"OpenAPI Endpoint Usage Checker v{__version__}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  epcheck -s openapi.yaml -d ./src              # Table report
  epcheck -d ./src --unused-only                # Auto-discover spec, unused only
  epcheck -s https://host/openapi.json -f json  # Spec from URL, JSON output
  epcheck -p '^GET /api/users' -e dist/         # Filter endpoints, exclude a folder
  epcheck -d https://github.com/org/repo.git    # Scan a remote repository
        """
    )

    parser.add_argument("-s", "--spec", metavar="SPEC",
                        help="Path or URL to OpenAPI spec (JSON or YAML). "
                             "Default: closest openapi.*/swagger.* in cwd or parents")
    parser.add_argument("-d", "--dir", metavar="DIR", default=".",
                        help="Directory or git URL to search for endpoint usage (default: .)")

    output_group = parser.add_argument_group("Output Options")
    output_group.add_argument("-f", "--format", choices=list(FORMATTERS), default="table",
                              help="Output format (default: table)")
    output_group.add_argument("-o", "--output", metavar="FILE", nargs="?", const="AUTO",
                              help="Write the report to a file instead of stdout")
    output_group.add_argument("--truncate", action="store_true",
                              help="Truncate long file lists")
    output_group.add_argument("--no-colors", action="store_true",
                              help="Disable colored output")

    filter_group = parser.add_argument_group("Filter Options")
    filter_group.add_argument("-p", "--pattern", metavar="PATTERN",
                              help="Only report endpoints whose 'METHOD path' matches this regex")
    filter_group.add_argument("--unused-only", action="store_true",
                              help="Show only unused endpoints")

    scan_group = parser.add_argument_group("Scan Options")
    scan_group.add_argument("-e", "--exclude", metavar="PATTERN", action="append",
                            help="Gitignore-style pattern to exclude (repeatable)")
    scan_group.add_argument("--no-gitignore", action="store_true",
                            help="Do not honor .gitignore/.ignore files")
    scan_group.add_argument("--workers", type=int,
                            help="Number of parallel workers (default: 8)")
    scan_group.add_argument("--max-file-size", type=float,
                            help="Max file size in MB to scan (default: 10)")
    scan_group.add_argument("--config", metavar="FILE",
                            help="Configuration file (JSON/YAML)")

    ci_group = parser.add_argument_group("CI Options")
    ci_group.add_argument("--fail-on-unused", action="store_true",
                          help="Exit with error if any unused endpoint is reported")

    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimal output")
    parser.add_argument("--log-file", metavar="FILE", help="Write JSON-line logs to file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser

def main(argv: Optional[List[str]] = None):
    args = build_parser().parse_args(argv)

    console = Console(no_color=args.no_colors, highlight=not args.no_colors)
    # Status messages go to stderr so csv/json/markdown stay clean on stdout
    status = Console(stderr=True, no_color=args.no_colors)
    quiet = args.quiet or args.format != "table"

    global logger
    logger = setup_logging(
        "DEBUG" if args.verbose else "INFO",
        args.log_file,
        console_level=logging.DEBUG if args.verbose else logging.WARNING,
    )

    if not quiet:
        status.print(Panel.fit(
            f"[bold cyan] epcheck v{__version__}[/bold cyan]\n"
            "[dim]OpenAPI endpoint usage checker[/dim]",
            border_style="cyan"
        ))

    tmp = None
    exit_code = 0

    try:
        spec_source = args.spec
        if not spec_source:
            found = find_openapi_spec()
            if found is None:
                raise SpecError("No OpenAPI spec provided and none found in current or parent directories")
            spec_source = str(found)

        spec = load_openapi_spec(spec_source)
        config = build_config(args)

        scan_dir = args.dir
        if is_git_url(scan_dir):
            tmp = clone_repo(scan_dir, status)
            scan_dir = tmp
        else:
            own_spec = spec_exclusion(spec_source, scan_dir)
            if own_spec:
                config.exclude.append(own_spec)

        analyzer = EndpointAnalyzer(spec, config)

        if not quiet:
            status.print(f"\n[bold cyan] Scanning...[/bold cyan] [dim]({len(analyzer.endpoints)} endpoints)[/dim]")

        with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"),
                      BarColumn(), TextColumn("{task.percentage:>3.0f}%"),
                      console=status, disable=quiet) as prog:
            task = prog.add_task("[cyan]Scanning", total=100)

            def progress_cb(cur, tot, fp):
                prog.update(task, completed=(cur / tot) * 100,
                            description=f"[cyan]{Path(fp).name[:25]}")

            summary = analyzer.analyze_directory(scan_dir, progress_cb=progress_cb)

        context = ReportContext(
            spec_source=spec_source,
            search_dir=args.dir,
            exclude=list(config.exclude),
            unused_only=config.unused_only,
            truncate=args.truncate,
        )
        formatter = get_formatter(args.format)

        if args.output:
            out_file = f"epcheck-report{formatter.file_extension}" if args.output == "AUTO" else args.output
            with open(out_file, "w", encoding="utf-8") as f:
                f.write(formatter.format(summary, context))
            if not args.quiet:
                status.print(f"[green] Saved: {out_file}[/green]")
        else:
            formatter.write(summary, context, console)

        if args.fail_on_unused and summary.unused_count > 0:
            if not args.quiet:
                status.print(f"\n[bold red] Failed: {summary.unused_count} unused endpoints[/bold red]")
            exit_code = 1

    except KeyboardInterrupt:
        status.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except (EpcheckError, ValueError) as e:
        status.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)
    except Exception as e:
        status.print(f"\n[red]Error: {escape(str(e))}[/red]")
        if args.verbose:
            status.print_exception()
        sys.exit(1)
    finally:
        if tmp and os.path.exists(tmp):
            shutil.rmtree(tmp, ignore_errors=True)

    sys.exit(exit_code)

if __name__ == "__main__":
    main()
