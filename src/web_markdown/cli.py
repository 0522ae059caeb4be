"""Command-line interface for web_markdown."""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

import aiohttp
from rich.console import Console
from rich.markup import escape

from . import __version__
from .adapters.aiohttp_client import fetch_markdown
from .errors import FetchError
from .http.protocols import ExchangeRequest, ExchangeResponse
from .logging_config import setup_logging
from .models.config import WebMarkdownConfig
from .models.events import TransformObservation
from .pipeline.base import TransformPipeline

HTML_SUFFIXES = (".html", ".htm", ".xhtml")


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="web-markdown",
        description="Serve or convert HTML as Markdown for clients that ask for it",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Convert a local file (or - for stdin)
  web-markdown convert page.html

  # Fetch a page and keep only its main content
  web-markdown convert https://example.com/docs --mode content --front-matter

  # Serve a directory; curl -H 'Accept: text/markdown' gets Markdown
  web-markdown serve ./site --port 8080 --debug-headers
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
        help="YAML configuration file",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: from config, else INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    convert = subparsers.add_parser("convert", help="Convert an HTML file or URL to Markdown")
    convert.add_argument("source", help="HTML file, '-' for stdin, or an http(s) URL")
    convert.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Write Markdown here instead of stdout",
    )
    convert.add_argument(
        "--url",
        default=None,
        help="Document URL used to resolve relative links (files and stdin)",
    )
    _add_converter_arguments(convert)

    serve = subparsers.add_parser("serve", help="Serve a directory of HTML behind the Markdown middleware")
    serve.add_argument("root", type=Path, help="Directory to serve")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", "-p", type=int, default=8080, help="Port (default: 8080)")
    serve.add_argument(
        "--debug-headers",
        action="store_true",
        default=None,
        help="Emit X-Markdown-* debug headers",
    )
    serve.add_argument(
        "--reject-oversize",
        action="store_true",
        default=None,
        help="Answer 406 instead of passing oversized HTML through",
    )
    _add_converter_arguments(serve)

    return parser


def _add_converter_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("conversion")
    group.add_argument(
        "--mode",
        "-m",
        choices=["verbatim", "content"],
        default=None,
        help="Render the whole body or only the detected main content",
    )
    group.add_argument(
        "--front-matter",
        action="store_true",
        default=None,
        help="Prepend YAML front matter",
    )
    group.add_argument(
        "--strip",
        nargs="+",
        metavar="SELECTOR",
        default=None,
        help="CSS selectors to remove before rendering",
    )
    group.add_argument(
        "--max-html-bytes",
        default=None,
        metavar="SIZE",
        help="Largest HTML body to convert (e.g., 512kb, 3mb)",
    )


def build_config(args: argparse.Namespace) -> WebMarkdownConfig:
    """Merge the optional config file with command-line overrides."""
    config = WebMarkdownConfig.from_yaml_file(args.config) if args.config else WebMarkdownConfig()
    data = config.model_dump()

    converter = data["converter"]
    if args.mode is not None:
        converter["mode"] = args.mode
    if args.front_matter is not None:
        converter["add_front_matter"] = args.front_matter
    if args.strip:
        converter["strip_selectors"] = args.strip

    transform = data["transform"]
    if args.max_html_bytes is not None:
        transform["max_html_bytes"] = args.max_html_bytes
    if getattr(args, "debug_headers", None) is not None:
        transform["debug_headers"] = args.debug_headers
    if getattr(args, "reject_oversize", None):
        transform["oversize_behavior"] = "not-acceptable"

    if args.log_level is not None:
        data["log_level"] = args.log_level

    return WebMarkdownConfig.model_validate(data)


def _read_source(source: str) -> bytes:
    if source == "-":
        return sys.stdin.buffer.read()
    return Path(source).read_bytes()


async def convert_source(
    source: str,
    config: WebMarkdownConfig,
    document_url: Optional[str] = None,
) -> str:
    """
    Convert a file, stdin or URL to Markdown through the transform pipeline.

    Raises:
        FetchError: If the source did not produce Markdown
    """
    observations: list[TransformObservation] = []
    policy = config.build_policy(on_observation=observations.append)

    if source.startswith(("http://", "https://")):
        try:
            async with aiohttp.ClientSession() as session:
                result = await fetch_markdown(session, source, policy)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchError(f"Could not fetch {source}: {e}") from e
    else:
        content = _read_source(source)
        url = document_url or (Path(source).resolve().as_uri() if source != "-" else "file:///stdin")
        headers = {"Content-Type": "text/html"} if source.lower().endswith(HTML_SUFFIXES) else None
        request = ExchangeRequest.create(url, {"Accept": "text/markdown"})
        upstream = ExchangeResponse.from_bytes(content, headers=headers, url=document_url)
        result = await TransformPipeline(policy).transform(request, upstream)

    observation = observations[-1]
    if not observation.transformed:
        raise FetchError(f"{source} was not converted (status {result.status}, reason: {observation.reason.value})")

    return await result.text()


def run_convert(args: argparse.Namespace, config: WebMarkdownConfig, console: Console) -> int:
    try:
        markdown = asyncio.run(convert_source(args.source, config, args.url))
    except (FetchError, OSError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        return 1

    if args.output:
        args.output.write_text(markdown, encoding="utf-8")
        console.print(f"[green]Wrote[/green] {args.output} ({len(markdown)} chars)")
    else:
        sys.stdout.write(markdown)
    return 0


def run_serve(args: argparse.Namespace, config: WebMarkdownConfig, console: Console) -> int:
    from aiohttp import web

    from .models.events import TransformStats
    from .server import create_app

    if not args.root.is_dir():
        console.print(f"[red]Error:[/red] {args.root} is not a directory")
        return 1

    stats = TransformStats()
    app = create_app(args.root, config.build_policy(), stats)

    console.print(f"[bold blue]web-markdown[/bold blue] v{__version__}")
    console.print(f"Serving {args.root.resolve()} on http://{args.host}:{args.port}")

    web.run_app(app, host=args.host, port=args.port, print=None)

    summary = stats.to_dict()
    console.print()
    console.print("[bold]Results:[/bold]")
    console.print(f"  Exchanges: {summary['total']}")
    console.print(f"  Transformed: {summary['transformed']}")
    console.print(f"  Passed through: {summary['passthrough']}")
    console.print(f"  Rejected: {summary['rejected']}")
    for reason, count in sorted(summary["reasons"].items()):
        console.print(f"    {reason}: {count}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    console = Console(stderr=True)

    try:
        config = build_config(args)
    except Exception as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        return 1

    setup_logging(level=config.log_level, log_file=str(config.log_file) if config.log_file else None)

    if args.command == "convert":
        return run_convert(args, config, console)
    return run_serve(args, config, console)


if __name__ == "__main__":
    sys.exit(main())
