"""Command-line interface for lava."""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Optional

# Verify core dependencies
try:
    import aiohttp  # noqa: F401
    import bs4  # noqa: F401
    import html2text  # noqa: F401
    import rich  # noqa: F401
except ImportError as e:
    print(f"\nERROR: Missing required dependency: {e.name}", file=sys.stderr)
    print("\nLava requires all core dependencies to be installed.", file=sys.stderr)
    print("\nRecommended fixes:", file=sys.stderr)
    print("  1. For pip users: pip install --upgrade --force-reinstall lava", file=sys.stderr)
    print("  2. For development: pip install -e .[dev]", file=sys.stderr)
    sys.exit(1)

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from . import __version__
from .exceptions import LavaError
from .logging_config import setup_logging
from .models.config import LavaConfig, ReturnFormat
from .models.events import ClipEvent, EventType
from .pipeline.base import LinkPipeline
from .watcher import LinksFileWatcher, MarkdownPoller


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="lava",
        description="Clip web pages into Markdown notes with frontmatter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Watch a links file and check off each link once clipped
  CLIPPING_DIR=./vault/Clippings LINKS_FILE=./vault/links.md lava watch

  # Pick up links from anywhere in a note every 10 seconds
  lava -o ./vault/Clippings poll "./vault/Reading list.md"

  # Serve the HTTP API on port 3000
  lava serve --port 3000

  # Clip one page to stdout without saving
  lava --no-save -f md clip https://example.com/post
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        metavar="FILE",
        help="YAML config file (default: environment variables)",
    )
    parser.add_argument(
        "--output-dir",
        "-o",
        type=Path,
        default=None,
        help="Clipping directory (overrides CLIPPING_DIR)",
    )
    parser.add_argument(
        "--strategy",
        "-s",
        default=None,
        help="Page retrieval strategy: render or fetch (overrides PARSER)",
    )
    parser.add_argument(
        "--return-format",
        "-f",
        default=None,
        help="Result shape: md or json (overrides RETURN_FORMAT)",
    )
    parser.add_argument(
        "--no-save",
        action="store_true",
        help="Do not write clippings to disk",
    )

    # Output control
    output_group = parser.add_argument_group("output control")
    output_group.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Verbose output",
    )
    output_group.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress output",
    )
    output_group.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write logs to this file",
    )

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    watch_parser = commands.add_parser("watch", help="Watch the links file and check off clipped links")
    watch_parser.add_argument(
        "--links-file",
        "-l",
        type=Path,
        default=None,
        help="Links file (overrides LINKS_FILE)",
    )

    poll_parser = commands.add_parser("poll", help="Scan a Markdown note for new links periodically")
    poll_parser.add_argument("file", type=Path, help="Markdown note to scan")
    poll_parser.add_argument(
        "--interval",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Seconds between scans (default: 10)",
    )

    serve_parser = commands.add_parser("serve", help="Serve the HTTP API")
    serve_parser.add_argument("--host", default=None, help="Interface to bind (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=None, help="Port (default: 3000)")

    clip_parser = commands.add_parser("clip", help="Clip the given links once and print the result")
    clip_parser.add_argument("links", nargs="+", metavar="URL", help="Links to clip")

    return parser


def build_config(args: argparse.Namespace) -> LavaConfig:
    """Combine the config file (or environment) with command-line overrides."""
    base = LavaConfig.from_yaml_file(args.config) if args.config else LavaConfig.from_env()
    data: dict[str, Any] = base.model_dump()

    if args.output_dir is not None:
        data["clipping_dir"] = args.output_dir
    if args.strategy:
        data["strategy"] = args.strategy
    if args.return_format:
        data["return_format"] = args.return_format
    if args.no_save:
        data["save_to_disk"] = False
    if args.log_file is not None:
        data["log_file"] = args.log_file

    if args.verbose:
        data["log_level"] = "DEBUG"
    elif args.quiet:
        data["log_level"] = "ERROR"

    command = getattr(args, "command", None)
    if command == "watch" and args.links_file is not None:
        data["links_file"] = args.links_file
    elif command == "poll" and args.interval is not None:
        data["watch"]["poll_interval"] = args.interval
    elif command == "serve":
        if args.host:
            data["server"]["host"] = args.host
        if args.port is not None:
            data["server"]["port"] = args.port

    return LavaConfig.model_validate(data)


def run_watch(config: LavaConfig, console: Console) -> int:
    config.require_daemon_settings()
    watcher = LinksFileWatcher(LinkPipeline(config), config.links_path)
    console.print(f"[bold red]lava[/bold red] v{__version__} watching {watcher.path}")
    asyncio.run(watcher.run())
    return 0


def run_poll(config: LavaConfig, path: Path, console: Console) -> int:
    poller = MarkdownPoller(LinkPipeline(config), path)
    console.print(f"[bold red]lava[/bold red] v{__version__} polling {poller.path}")
    asyncio.run(poller.run())
    return 0


def run_serve(config: LavaConfig, console: Console) -> int:
    import uvicorn

    from .server import create_app

    console.print(
        f"[bold red]lava[/bold red] v{__version__} listening on http://{config.server.host}:{config.server.port}"
    )
    uvicorn.run(
        create_app(config),
        host=config.server.host,
        port=config.server.port,
        log_level=config.log_level.lower(),
    )
    return 0


def run_clip(config: LavaConfig, links: list[str], console: Console, quiet: bool) -> int:
    """Clip links once; results go to stdout, progress to stderr."""
    pipeline = LinkPipeline(config)

    async def run() -> int:
        if quiet:
            result = await pipeline.process_links(links)
        else:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
                transient=True,
            ) as progress:
                task = progress.add_task("Starting...", total=None)

                def on_event(event: ClipEvent) -> None:
                    if event.type == EventType.LINK_STARTED:
                        progress.update(task, description=f"[cyan]Clipping {event.url}")
                    elif event.type == EventType.FALLBACK_STARTED:
                        progress.update(task, description=f"[yellow]Retrying without browser: {event.url}")
                    elif event.type == EventType.LINK_FAILED:
                        console.print(f"[red]Failed:[/red] {event.url} - {event.error}")
                    elif event.type == EventType.STUB_CREATED:
                        console.print(f"[yellow]Stub:[/yellow] {event.url}")
                    elif event.type == EventType.DOCUMENT_SAVED:
                        console.print(f"[green]Saved:[/green] {event.output_path}")

                result = await pipeline.process_links(links, emit=on_event)

            stats = result.stats
            console.print()
            console.print("[bold]Results:[/bold]")
            console.print(f"  Clipped: {stats.clipped}")
            console.print(f"  Stubbed: {stats.stubbed}")
            console.print(f"  Skipped: {stats.skipped}")
            console.print(f"  Failed: {stats.failed}")
            console.print(f"  Duration: {stats.duration_seconds:.1f}s")

        if result.return_format == ReturnFormat.MARKDOWN:
            sys.stdout.write("\n".join(doc for doc in result.markdown if doc))
        else:
            sys.stdout.write(json.dumps(result.payload(), indent=2, ensure_ascii=False))
        sys.stdout.write("\n")

        return 0 if result.stats.failed == 0 else 1

    return asyncio.run(run())


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    console = Console(stderr=True, quiet=args.quiet)

    if not args.command:
        parser.print_help()
        return 1

    try:
        config = build_config(args)
    except Exception as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        return 1

    setup_logging(
        level=config.log_level,
        log_file=str(config.log_file) if config.log_file else None,
    )

    try:
        if args.command == "watch":
            return run_watch(config, console)
        if args.command == "poll":
            return run_poll(config, args.file, console)
        if args.command == "serve":
            return run_serve(config, console)
        return run_clip(config, args.links, console, args.quiet)

    except KeyboardInterrupt:
        return 0
    except LavaError as e:
        console.print(f"[red]Error:[/red] {e}")
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
