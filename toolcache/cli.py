#!/usr/bin/env python3
"""
Command line interface for ensuring pinned tools.

Examples:
    toolcache ensure go
    toolcache ensure libevmone --platform docker.amd64
    toolcache path bin/go
    toolcache verify golangci
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

# Local imports
from .catalog import default_registry
from .config import build_context, load_config, setup_logging
from .errors import InvariantViolationError, ToolError
from .installer import ensure, install_all, is_compatible, verify_all, verify_tool
from .platforms import PLATFORMS, parse_platform
from .tools import BinaryTool, PackageTool


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="toolcache", description="Ensure pinned build tools")
    parser.add_argument("--config", help="Configuration file")
    parser.add_argument("--cache-dir", help="Cache directory (overrides configuration)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose output")

    subparsers = parser.add_subparsers(dest="command", required=True)

    ensure_parser = subparsers.add_parser("ensure", help="Install a tool if needed")
    ensure_parser.add_argument("name", help="Tool name")
    ensure_parser.add_argument("--platform", default="local", help="Target platform")

    install_parser = subparsers.add_parser("install-all", help="Install every tool defined for a platform")
    install_parser.add_argument("--platform", default="local", help="Target platform")

    verify_parser = subparsers.add_parser("verify", help="Check declared hashes against published archives")
    verify_parser.add_argument("name", nargs="?", help="Tool name (all tools if omitted)")

    subparsers.add_parser("list", help="List registered tools")

    path_parser = subparsers.add_parser("path", help="Print the stable path of a tool file")
    path_parser.add_argument("relative", help="Destination path, e.g. bin/go")
    path_parser.add_argument("--platform", default="local", help="Target platform")

    return parser


def _describe(ctx, tool) -> str:
    if isinstance(tool, BinaryTool):
        platforms = ", ".join(sorted(str(p) for p in tool.sources))
    else:
        platforms = ", ".join(str(p) for p in PLATFORMS if is_compatible(ctx.registry, tool, p))
    kind = "package " + tool.package if isinstance(tool, PackageTool) else "binary"
    return f"{tool.name} {tool.version} ({kind}) [{platforms}]"


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
        if args.cache_dir:
            config.cache_dir = Path(args.cache_dir).expanduser()
        setup_logging("DEBUG" if args.verbose else config.log_level, config.log_format)

        ctx = build_context(config, default_registry())

        if args.command == "ensure":
            for path in ensure(ctx, args.name, parse_platform(args.platform)):
                print(path)

        elif args.command == "install-all":
            for name in install_all(ctx, parse_platform(args.platform)):
                print(name)

        elif args.command == "verify":
            if args.name:
                problems = verify_tool(ctx, ctx.registry.get(args.name))
            else:
                problems = verify_all(ctx)
            for problem in problems:
                print(f"ERROR: {problem}", file=sys.stderr)
            if problems:
                return 1

        elif args.command == "list":
            for tool in ctx.registry:
                print(_describe(ctx, tool))

        elif args.command == "path":
            print(ctx.layout.bin_path(args.relative, parse_platform(args.platform)))

    except InvariantViolationError as e:
        print(f"FATAL: {e}", file=sys.stderr)
        return 2
    except ToolError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
