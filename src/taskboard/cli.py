"""CLI entry point for the Taskboard server and maintenance commands."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from taskboard.config.settings import Settings


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point for Taskboard."""
    parser = argparse.ArgumentParser(
        prog="taskboard",
        description="Taskboard — Stage and Task records with a synchronized search index",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to YAML configuration file",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["debug", "info", "warning", "error"],
        default=None,
        help="Log level (overrides config)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"Taskboard {_get_version()}",
    )
    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Run the HTTP server (default)")
    serve.add_argument("--host", type=str, default=None, help="Server bind address (overrides config)")
    serve.add_argument("--port", "-p", type=int, default=None, help="Server port (overrides config)")
    serve.add_argument("--workers", "-w", type=int, default=None, help="Number of worker processes")
    serve.add_argument("--reload", action="store_true", help="Enable auto-reload for development")

    reindex = subparsers.add_parser("reindex", help="Rebuild search indexes from the record store")
    reindex.add_argument(
        "target",
        nargs="?",
        choices=["stages", "tasks", "all"],
        default="all",
        help="Entity type to reindex",
    )

    args = parser.parse_args(argv)
    settings = _load_settings(args.config)
    if args.log_level:
        settings.observability.log_level = args.log_level

    if args.command == "reindex":
        sys.exit(_reindex(settings, args.target))
    _serve(settings, args)


def _load_settings(config: str | None) -> Settings:
    from taskboard.config.settings import Settings

    if config:
        config_path = Path(config)
        if not config_path.exists():
            print(f"Error: Config file not found: {config_path}", file=sys.stderr)
            sys.exit(1)
        return Settings.from_yaml(config_path)
    return Settings()


def _serve(settings: Settings, args: argparse.Namespace) -> None:
    # Apply CLI overrides
    if getattr(args, "host", None):
        settings.server.host = args.host
    if getattr(args, "port", None):
        settings.server.port = args.port
    if getattr(args, "workers", None):
        settings.server.workers = args.workers
    reload = getattr(args, "reload", False)

    # Check port availability before starting
    _check_port(settings.server.host, settings.server.port)

    import uvicorn

    from taskboard.api.app import create_app

    if reload or settings.server.workers > 1:
        # uvicorn needs an import string here; the factory reloads settings itself
        uvicorn.run(
            "taskboard.api.app:create_app",
            factory=True,
            host=settings.server.host,
            port=settings.server.port,
            workers=settings.server.workers if not reload else 1,
            reload=reload,
            log_level=settings.observability.log_level.lower(),
        )
        return

    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.observability.log_level.lower(),
    )


def _reindex(settings: Settings, target: str) -> int:
    """Reindex one or both entity types. Returns the process exit code."""
    from taskboard.core.engine import TaskboardEngine
    from taskboard.observability.logging import setup_logging

    setup_logging(settings.observability)
    collections = ["stages", "tasks"] if target == "all" else [target]

    async def _run() -> int:
        engine = TaskboardEngine(settings)
        await engine.initialize()
        failed = 0
        try:
            for collection in collections:
                report = await engine.service_for(collection).reindex()
                print(f"{collection}: {report.indexed} indexed, {report.failed} failed")
                failed += report.failed
        finally:
            await engine.shutdown()
        return 1 if failed else 0

    return asyncio.run(_run())


def _check_port(host: str, port: int) -> None:
    """Check if the port is available. If not, print the blocking process and exit."""
    import socket
    import subprocess

    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind((host if host != "0.0.0.0" else "127.0.0.1", port))
    except OSError:
        print(f"\n{'=' * 60}", file=sys.stderr)
        print(f"  ERROR: Port {port} is already in use!", file=sys.stderr)
        print(f"{'=' * 60}", file=sys.stderr)

        # Try lsof to find the process occupying the port
        try:
            result = subprocess.run(
                ["lsof", "-i", f":{port}", "-P", "-n"],
                capture_output=True,
                text=True,
                timeout=5,
            )
            if result.stdout.strip():
                print(f"\n  Processes using port {port}:\n", file=sys.stderr)
                for line in result.stdout.strip().splitlines():
                    print(f"    {line}", file=sys.stderr)
            else:
                print(f"\n  Could not identify the process using port {port}.", file=sys.stderr)
        except (subprocess.TimeoutExpired, FileNotFoundError):
            print(f"\n  Run 'lsof -i :{port}' to find the process.", file=sys.stderr)

        print(f"\n{'=' * 60}\n", file=sys.stderr)
        sys.exit(1)
    finally:
        sock.close()


def _get_version() -> str:
    from taskboard import __version__

    return __version__


if __name__ == "__main__":
    main()
