"""CLI entrypoints for stackprobe commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List

from .aggregator import AGGREGATE_FIELDS, Aggregator, parse_fields
from .config import ConfigError, load_config
from .errors import StackProbeError
from .events import LoggingSink
from .logging import configure_logging
from .rules import load_catalog
from .scanner import scan_paths


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if suppress_default else False,
        help="Log every directory, match and skipped file.",
    )


def _add_rules_dir_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--rules-dir",
        action="append",
        default=[],
        metavar="DIR",
        help="Additional rule directory loaded after the built-in rules (repeatable).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stackprobe",
        description="Detect the technology stack of a source tree.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_parser = subparsers.add_parser(
        "scan",
        help="Scan one or more directories and print the component tree as JSON.",
    )
    _add_verbose_option(scan_parser, suppress_default=True)
    _add_rules_dir_option(scan_parser)
    scan_parser.add_argument(
        "paths",
        nargs="*",
        default=["."],
        help="Directories to scan; several paths are scanned as one tree (defaults to .).",
    )
    scan_parser.add_argument(
        "--aggregate",
        nargs="?",
        const="",
        default=None,
        metavar="FIELDS",
        help=(
            "Print a deduplicated summary instead of the tree. Optionally limit it to "
            f"comma separated fields: {','.join(AGGREGATE_FIELDS)}."
        ),
    )
    scan_parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        metavar="PATTERN",
        help="Glob pattern to exclude, on top of .gitignore files (repeatable).",
    )
    scan_parser.add_argument("--root-id", help="Use this ID for the root component.")
    scan_parser.add_argument(
        "--config",
        type=Path,
        help="Path to a .stackprobe.yml file (defaults to the one in the scan root).",
    )
    scan_parser.add_argument("-o", "--output", type=Path, help="Write JSON to this file instead of stdout.")
    scan_parser.add_argument("--compact", action="store_true", help="Emit JSON on a single line.")
    scan_parser.add_argument("--no-git", action="store_true", help="Skip repository identity lookups.")

    rules_parser = subparsers.add_parser("rules", help="List the loaded detection rules.")
    _add_verbose_option(rules_parser, suppress_default=True)
    _add_rules_dir_option(rules_parser)
    rules_parser.add_argument("--category", help="Only list rules of this category.")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP scan service.")
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for stackprobe commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    if args.command == "scan":
        try:
            output = _run_scan(args)
        except (StackProbeError, ConfigError, FileNotFoundError, ValueError) as exc:
            parser.exit(1, f"stackprobe scan failed: {exc}\n")
        _write_json(output, args.output, compact=bool(args.compact))
    elif args.command == "rules":
        try:
            catalog = load_catalog(args.rules_dir)
        except StackProbeError as exc:
            parser.exit(1, f"{exc}\n")
        for rule in catalog:
            if args.category and rule.category != args.category:
                continue
            flags = []
            if catalog.should_create_component(rule):
                flags.append("component")
            if catalog.should_add_primary_tech(rule):
                flags.append("primary")
            suffix = f" [{', '.join(flags)}]" if flags else ""
            print(f"{rule.category}/{rule.tech}: {rule.name}{suffix}")
        for error in catalog.errors:
            print(f"rejected {error}", file=sys.stderr)
    elif args.command == "serve":
        from .service.app import run_service

        run_service(host=args.host, port=args.port)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _run_scan(args: argparse.Namespace) -> Dict[str, Any]:
    paths: List[str] = list(args.paths) or ["."]
    config = None
    if args.config is not None:
        config = load_config(args.config, required=True)
    elif len(paths) == 1:
        config = load_config(Path(paths[0]))

    fields = parse_fields(args.aggregate)
    aggregator = Aggregator(fields) if args.aggregate is not None else None

    tree = scan_paths(
        paths,
        config=config,
        exclude=args.exclude,
        root_id=args.root_id,
        rules_dirs=args.rules_dir,
        events=LoggingSink() if args.verbose else None,
        use_git=not args.no_git,
    )
    if aggregator is not None:
        return aggregator.to_dict(tree)
    return tree.to_dict()


def _write_json(data: Dict[str, Any], output: Path | None, *, compact: bool) -> None:
    text = json.dumps(data, separators=(",", ":")) if compact else json.dumps(data, indent=2)
    if output is None:
        print(text)
        return
    output.write_text(text + "\n", encoding="utf-8")
    print(f"Wrote {output}", file=sys.stderr)


if __name__ == "__main__":
    main(sys.argv[1:])
