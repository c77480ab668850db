"""Command-line interface for the POS MCP Server."""

import argparse
import asyncio
import contextlib
import os
import sys


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="POS MCP Server - point-of-sale terminal over MCP or HTTP"
    )
    parser.add_argument(
        "--mode",
        choices=["stdio", "http"],
        default="stdio",
        help="Server mode: stdio (for MCP clients) or http (REST API)",
    )
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="HTTP server host (only for http mode, default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="HTTP server port (only for http mode, default: 8000)",
    )
    parser.add_argument(
        "--api-base",
        help="Backend base URL (overrides POS_API_BASE)",
    )
    parser.add_argument(
        "--spawn-backend",
        action="store_true",
        help="Start POS_BACKEND_COMMAND before serving and stop it on exit",
    )
    return parser


def main() -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args()

    if args.api_base:
        os.environ["POS_API_BASE"] = args.api_base

    from .backend_process import BackendProcess
    from .config import Settings

    settings = Settings.from_env()
    backend = contextlib.nullcontext()
    if args.spawn_backend:
        if not settings.backend_command:
            print("Error: --spawn-backend requires POS_BACKEND_COMMAND", file=sys.stderr)
            sys.exit(2)
        backend = BackendProcess(settings.backend_command, cwd=settings.backend_dir)

    try:
        with backend:
            if args.mode == "stdio":
                # Run MCP server via stdio
                from .server import main as server_main

                asyncio.run(server_main())
            elif args.mode == "http":
                # Run HTTP server
                from .http_server import run_http_server

                print(f"Starting POS HTTP Server on {args.host}:{args.port}", file=sys.stderr)
                print(f"API documentation available at http://{args.host}:{args.port}/docs", file=sys.stderr)
                run_http_server(host=args.host, port=args.port)
    except KeyboardInterrupt:
        print("\nShutting down...", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    main()
