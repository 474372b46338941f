# src/main.py
"""CLI entry point: call, tools, refresh, cleanup commands.

Usage:
    sevenpools call <tool> [--args JSON]
    sevenpools tools
    sevenpools refresh
    sevenpools cleanup
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from sevenpools.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sevenpools",
        description=f"sevenpools v{__version__}: Seven Pools retrieval and persona style tools",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    p_call = subparsers.add_parser("call", help="Invoke one tool and print its JSON result")
    p_call.add_argument("tool", help="Tool name (see `sevenpools tools`)")
    p_call.add_argument(
        "--args", dest="arguments", default="{}",
        help='Tool arguments as a JSON object (default: "{}")',
    )
    p_call.set_defaults(func=_cmd_call)

    p_tools = subparsers.add_parser("tools", help="List tool schemas")
    p_tools.set_defaults(func=_cmd_tools)

    p_refresh = subparsers.add_parser(
        "refresh", help="Rebuild capsules expiring within the refresh window",
    )
    p_refresh.set_defaults(func=_cmd_refresh)

    p_cleanup = subparsers.add_parser("cleanup", help="Delete expired capsules")
    p_cleanup.set_defaults(func=_cmd_cleanup)

    return parser


async def _cmd_call(args: argparse.Namespace) -> int:
    try:
        arguments = json.loads(args.arguments)
    except json.JSONDecodeError as e:
        print(f"Invalid --args JSON: {e}", file=sys.stderr)
        return 1
    if not isinstance(arguments, dict):
        print("--args must be a JSON object", file=sys.stderr)
        return 1

    toolbox = _toolbox(args.verbose)
    try:
        result = await toolbox.call(args.tool, arguments)
        await toolbox.drain()
    finally:
        toolbox.close()
    _print_json(result)
    return 0 if result.get("ok") else 1


async def _cmd_tools(args: argparse.Namespace) -> int:
    toolbox = _toolbox(args.verbose)
    try:
        _print_json(toolbox.registry.tool_schemas())
    finally:
        toolbox.close()
    return 0


async def _cmd_refresh(args: argparse.Namespace) -> int:
    toolbox = _toolbox(args.verbose)
    try:
        await toolbox.enqueue_refresh()
        await toolbox.drain()
        failed = [r for r in toolbox.queue.records if r.status == "failed"]
    finally:
        toolbox.close()
    print(f"Refresh complete: {len(toolbox.queue.records)} jobs, {len(failed)} failed")
    return 1 if failed else 0


async def _cmd_cleanup(args: argparse.Namespace) -> int:
    toolbox = _toolbox(args.verbose)
    try:
        deleted = await toolbox.cleanup()
    finally:
        toolbox.close()
    print(f"Cleanup complete: {deleted} expired capsules deleted")
    return 0


def _toolbox(verbose: bool):
    from sevenpools.api.facade import build_toolbox
    from sevenpools.config.settings import Settings
    from sevenpools.logging.logger import setup_logging

    settings = Settings()
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("neo4j").setLevel(logging.WARNING)
    return build_toolbox(settings)


def _print_json(value: object) -> None:
    print(json.dumps(value, indent=2, ensure_ascii=False, default=str))


if __name__ == "__main__":
    sys.exit(main())
