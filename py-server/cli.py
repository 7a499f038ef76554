"""PDF visual-content extractor command line"""

import argparse
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn

from engine import EngineConfig
from extractors.page_extractor import slug_from_path
from extractors.page_writer import DEFAULT_OUTPUT_ROOT, extract_to_directory
from models.pdf_types import PageProgress
from utils.logging_config import configure_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pdf-visuals",
        description="Extract page rasters, text and standalone images from a PDF",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    extract = subparsers.add_parser("extract", help="Extract pages into <output-root>/<label>/extract/pages")
    extract.add_argument("pdf_path", help="PDF file to extract")
    extract.add_argument("--output-root", default=DEFAULT_OUTPUT_ROOT,
                         help=f"Root directory for extracted books (default: {DEFAULT_OUTPUT_ROOT})")
    extract.add_argument("--start-page", type=int, default=1, help="First page, 1-based (default: 1)")
    extract.add_argument("--end-page", type=int, default=None, help="Last page, inclusive (default: last page)")
    extract.add_argument("--resume", action="store_true",
                         help="Reuse an existing extraction when its first page is already on disk")
    extract.add_argument("--log-level", default="WARNING",
                         choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                         help="Log level (default: WARNING)")
    return parser


def run_extract(args: argparse.Namespace, console: Console) -> int:
    label = slug_from_path(args.pdf_path)
    config = EngineConfig(log_level=args.log_level)

    progress = Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total} pages"),
        console=console,
        transient=False,
    )
    task_id = progress.add_task(label, total=None)

    def on_progress(event: PageProgress) -> None:
        progress.update(task_id, completed=event.page, total=event.totalPages)

    with progress:
        pages_dir = extract_to_directory(
            args.pdf_path,
            output_root=args.output_root,
            start_page=args.start_page,
            end_page=args.end_page,
            config=config,
            on_progress=on_progress,
            resume=args.resume,
            label=label,
        )

    console.print(f"[bold green]Pages written to {pages_dir}[/bold green]")
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    console = Console(stderr=True)
    configure_logging(console=console, level=args.log_level)

    try:
        if args.command == "extract":
            return run_extract(args, console)
    except KeyboardInterrupt:
        console.print("\n[bold yellow]Interrupted.[/bold yellow]")
        return EXIT_INTERRUPTED
    except Exception as e:
        logger.debug("Extraction failed", exc_info=True)
        console.print(f"[bold red]Error:[/bold red] {e}")
        return EXIT_ERROR

    return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
