"""
Empire Core CLI: inspect and serve a context's kernel.

Usage:
    python -m empire_core rules
    python -m empire_core inspect --context content
    python -m empire_core serve --context background --port 8765
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from .config import load_config
from .errors import KernelError
from .kernel import Kernel
from .types import ExecutionContext

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8765

CONTEXT_CHOICES = [c.value for c in ExecutionContext if c is not ExecutionContext.UNKNOWN]


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def cmd_rules(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    print(json.dumps(config.permissions().to_dict(), indent=2))
    return 0


def cmd_inspect(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    setup_logging(args.log_level or config.log_level)
    kernel = Kernel(args.context, config=config)

    async def run() -> dict:
        await kernel.start()
        info = kernel.info()
        await kernel.stop()
        return info

    print(json.dumps(asyncio.run(run()), indent=2))
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from .api import create_app

    config = load_config(args.config)
    setup_logging(args.log_level or config.log_level)
    app = create_app(Kernel(args.context, config=config))
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="empire-core",
        description="Empire Core module kernel",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", default=None, help="Path to kernel.yaml")
    parser.add_argument("--log-level", default=None, help="Override log level")

    # te same opcje po nazwie komendy; SUPPRESS nie nadpisuje wartości sprzed komendy
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default=argparse.SUPPRESS, help="Path to kernel.yaml")
    common.add_argument("--log-level", default=argparse.SUPPRESS, help="Override log level")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # rules
    subparsers.add_parser("rules", parents=[common], help="Print the context permission table")

    # inspect
    inspect_parser = subparsers.add_parser(
        "inspect", parents=[common], help="Load modules for a context and print kernel info"
    )
    inspect_parser.add_argument("--context", required=True, choices=CONTEXT_CHOICES)

    # serve
    serve_parser = subparsers.add_parser("serve", parents=[common], help="Run the kernel HTTP endpoint")
    serve_parser.add_argument("--context", required=True, choices=CONTEXT_CHOICES)
    serve_parser.add_argument("--host", default=DEFAULT_HOST, help="Host to bind")
    serve_parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="Port to bind")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    commands = {
        "rules": cmd_rules,
        "inspect": cmd_inspect,
        "serve": cmd_serve,
    }

    try:
        return commands[args.command](args)
    except (KernelError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
