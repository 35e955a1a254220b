"""CLI entry point for dep-inspector."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from pydantic import ValidationError

from dep_inspector import __version__
from dep_inspector.config import InspectorConfig
from dep_inspector.errors import FatalGraphError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dep-inspector",
        description="Risk management for third-party dependencies.",
    )
    parser.add_argument(
        "path",
        nargs="?",
        help="Cargo.toml or dependency graph JSON to analyze (default: ./Cargo.toml)",
    )
    output = parser.add_mutually_exclusive_group()
    output.add_argument("--json", action="store_true", help="print the report as JSON")
    output.add_argument(
        "--markdown", metavar="FILE", help="write the report as Markdown to FILE"
    )
    parser.add_argument(
        "-g", "--github-token", metavar="USER:TOKEN",
        help="credential for the GitHub API (or set GITHUB_TOKEN)",
    )
    parser.add_argument(
        "--proxy", metavar="PROTOCOL://IP:PORT", help="proxy for external requests"
    )
    parser.add_argument(
        "-p", "--package", action="append", dest="packages", metavar="NAME",
        help="analyze only this workspace member (repeatable)",
    )
    parser.add_argument(
        "-i", "--ignore-workspace", action="append", dest="ignore", metavar="NAME",
        help="workspace member to ignore (repeatable)",
    )
    parser.add_argument(
        "--no-registry", action="store_true", help="skip crates.io lookups"
    )
    parser.add_argument("-v", "--verbose", action="count", default=0)
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _config(args: argparse.Namespace) -> InspectorConfig:
    return InspectorConfig.from_env(
        github_token=args.github_token,
        proxy=args.proxy,
        registry_lookups=False if args.no_registry else None,
    )


async def _run(args: argparse.Namespace, path: str, config: InspectorConfig) -> int:
    from dep_inspector.analyzer import Analyzer
    from dep_inspector.render import render_json, render_markdown

    analyzer = Analyzer(config=config)
    try:
        report = await analyzer.inspect(path, packages=args.packages, ignore=args.ignore)
    except FatalGraphError as e:
        print(f"dep-inspector: {e}", file=sys.stderr)
        return 1
    finally:
        await analyzer.close()

    if args.json:
        print(render_json(report))
    else:
        Path(args.markdown).write_text(render_markdown(report))
        print(f"markdown report saved at {args.markdown}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Analyze a manifest and print, save, or browse the report."""
    from dotenv import load_dotenv

    load_dotenv()  # Load .env file (e.g. GITHUB_TOKEN)

    args = build_parser().parse_args(argv)
    level = logging.DEBUG if args.verbose > 1 else logging.INFO if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        config = _config(args)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        print(f"dep-inspector: invalid configuration: {problems}", file=sys.stderr)
        return 2

    path = args.path or str(Path.cwd() / "Cargo.toml")
    if args.json or args.markdown:
        return asyncio.run(_run(args, path, config))

    from dep_inspector.app import DepInspectorApp

    app = DepInspectorApp(
        path=args.path, config=config, packages=args.packages, ignore=args.ignore
    )
    app.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
