"""
Page Extractor

Public-facing API for per-page extraction: the full page raster, the raw text
and every meaningful embedded image or vector graphic as its own RGBA PNG.

Pages are processed strictly in order. Page records are produced by a
generator, and the progress event for a page fires only once the consumer has
finished with that page's record and asked for the next one.
"""

import asyncio
import logging
import os
import re
import threading
from pathlib import Path
from typing import AsyncIterator, Callable, Iterator, List, Optional

from engine import EngineConfig, PDFEngine, PageRange
from models.pdf_types import CompleteEvent, ErrorEvent, PageProgress, ProgressEvent, StreamEvent
from models.shape_types import ExtractedImage, PageRecord
from utils.image_encoding import content_hash
from utils.validation import (
    ExtractionCancelledError,
    PdfSource,
    PdfValidationError,
    ResourceManager,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[PageProgress], None]
RecordHandler = Callable[[PageRecord], None]

DEFAULT_LABEL = "document"
PAGE_IMAGE_INDEX = 0


def slug_from_path(path) -> str:
    """
    Label for a PDF file: its lowercased stem with runs of anything other than
    letters and digits collapsed to '-'.

    Example:
        >>> slug_from_path("/books/The Raven (1845).pdf")
        'the-raven-1845'
    """
    stem = Path(os.fspath(path)).stem.lower()
    slug = re.sub(r'[^a-z0-9]+', '-', stem).strip('-')
    return slug or DEFAULT_LABEL


def make_page_id(page_number: int) -> str:
    return f"pg{page_number:03d}"


def make_image_id(page_number: int, index: int) -> str:
    """Image id; index 0 is the page raster, 1.. the extracted images."""
    return f"{make_page_id(page_number)}_im{index:03d}"


def resolve_page_numbers(engine: PDFEngine, start_page: int = 1, end_page: Optional[int] = None) -> List[int]:
    """
    Absolute page numbers to extract. An end page past the document is clamped.

    Raises:
        PdfValidationError: If the range is malformed or starts past the last page
    """
    try:
        page_range = PageRange(start=start_page, end=end_page)
    except ValueError as e:
        raise PdfValidationError(f"Invalid page range: {e}") from e

    page_numbers = page_range.to_page_numbers(engine.get_page_count())
    if not page_numbers:
        raise PdfValidationError(
            f"start page {start_page} exceeds page count {engine.get_page_count()}"
        )
    return page_numbers


def extract_page(engine: PDFEngine, page_number: int) -> PageRecord:
    """
    Extract one page.

    Args:
        engine: Open engine
        page_number: 1-based page number

    Returns:
        Page record with ids assigned

    Raises:
        PageRenderError: If the page raster fails (fatal for the document)
    """
    page_index = page_number - 1

    page_png = engine.render_page_raster(page_index)
    page_image = ExtractedImage(
        image_id=make_image_id(page_number, PAGE_IMAGE_INDEX),
        width_px=page_png.width_px,
        height_px=page_png.height_px,
        png_bytes=page_png.png_bytes,
        content_hash=content_hash(page_png.png_bytes),
    )

    raw_text = engine.text_processor.extract_text(page_index) if engine.has_text_processor else ""

    pngs = engine.image_processor.extract_page_images(page_index) if engine.has_image_processor else []
    images = [
        ExtractedImage(
            image_id=make_image_id(page_number, index),
            width_px=png.width_px,
            height_px=png.height_px,
            png_bytes=png.png_bytes,
            content_hash=content_hash(png.png_bytes),
        )
        for index, png in enumerate(pngs, start=1)
    ]

    logger.debug(f"Page {page_number}: {len(images)} images, {len(raw_text)} characters")
    return PageRecord(
        page_id=make_page_id(page_number),
        page_number=page_number,
        raw_text=raw_text,
        page_image=page_image,
        images=images,
    )


def iter_page_records(
    engine: PDFEngine,
    page_numbers: List[int],
    label: str,
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[threading.Event] = None,
    resource_manager: Optional[ResourceManager] = None,
) -> Iterator[PageRecord]:
    """
    Yield page records in order, checking cancellation and resource limits
    at every page boundary.

    Raises:
        ExtractionCancelledError: If cancel_event is set at a page boundary
        ProcessingTimeoutError: If the time limit is spent
        MemoryLimitError: If the memory limit is exceeded
    """
    total_pages = len(page_numbers)
    for position, page_number in enumerate(page_numbers, start=1):
        if cancel_event is not None and cancel_event.is_set():
            raise ExtractionCancelledError(
                f"Extraction of '{label}' cancelled before page {page_number}"
            )
        if resource_manager is not None:
            resource_manager.check_limits()

        yield extract_page(engine, page_number)

        # Back here only once the consumer is done with the record
        if on_progress is not None:
            on_progress(PageProgress(page=position, totalPages=total_pages, label=label))


def generate_page_records(
    source: PdfSource,
    start_page: int = 1,
    end_page: Optional[int] = None,
    label: Optional[str] = None,
    config: Optional[EngineConfig] = None,
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[threading.Event] = None,
) -> Iterator[PageRecord]:
    """
    Open a PDF and yield its page records in order.

    The engine stays open for the life of the generator and closes when it
    is exhausted or closed.

    Args:
        source: Path to a PDF file, or its bytes
        start_page: First page (1-based)
        end_page: Last page (inclusive), None for the last page of the document
        label: Label for progress events (slug of the file name by default)
        config: Engine configuration
        on_progress: Called after each page has been consumed
        cancel_event: Set to stop at the next page boundary
    """
    config = config or EngineConfig.default()
    if label is None:
        label = DEFAULT_LABEL if isinstance(source, (bytes, bytearray)) else slug_from_path(source)

    try:
        with PDFEngine(source, config=config) as engine, \
                ResourceManager(config.max_memory_mb, config.timeout_seconds) as resource_manager:
            page_numbers = resolve_page_numbers(engine, start_page, end_page)
            logger.info(
                f"Extracting '{label}' pages {page_numbers[0]} to {page_numbers[-1]} "
                f"of {engine.get_page_count()}"
            )
            yield from iter_page_records(
                engine,
                page_numbers,
                label,
                on_progress=on_progress,
                cancel_event=cancel_event,
                resource_manager=resource_manager,
            )
            logger.info(f"Extraction of '{label}' complete: {len(page_numbers)} pages")

    except FileNotFoundError:
        logger.error(f"PDF file not found: {source}")
        raise
    except ExtractionCancelledError as e:
        logger.warning(str(e))
        raise
    except Exception as e:
        logger.error(f"Page extraction failed for '{label}': {e}", exc_info=True)
        raise


def extract_pages(
    source: PdfSource,
    start_page: int = 1,
    end_page: Optional[int] = None,
    label: Optional[str] = None,
    config: Optional[EngineConfig] = None,
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[threading.Event] = None,
) -> List[PageRecord]:
    """Extract a page range into memory. See generate_page_records."""
    return list(generate_page_records(
        source,
        start_page=start_page,
        end_page=end_page,
        label=label,
        config=config,
        on_progress=on_progress,
        cancel_event=cancel_event,
    ))


async def stream_extraction_events(
    source: PdfSource,
    start_page: int = 1,
    end_page: Optional[int] = None,
    label: Optional[str] = None,
    config: Optional[EngineConfig] = None,
    record_handler: Optional[RecordHandler] = None,
) -> AsyncIterator[StreamEvent]:
    """
    Run an extraction in a worker thread and relay its progress.

    Yields one ProgressEvent per page, then a CompleteEvent, or an ErrorEvent
    if the extraction fails. If the consumer stops early the extraction is
    cancelled at its next page boundary.

    Args:
        record_handler: Called in the worker thread with each page record
            (records are dropped after the call)
    """
    if label is None:
        label = DEFAULT_LABEL if isinstance(source, (bytes, bytearray)) else slug_from_path(source)

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()
    cancel_event = threading.Event()

    def on_progress(progress: PageProgress) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, ProgressEvent(**progress.model_dump()))

    def run() -> int:
        count = 0
        for record in generate_page_records(
            source,
            start_page=start_page,
            end_page=end_page,
            label=label,
            config=config,
            on_progress=on_progress,
            cancel_event=cancel_event,
        ):
            if record_handler is not None:
                record_handler(record)
            count += 1
        return count

    task = asyncio.ensure_future(asyncio.to_thread(run))
    getter: Optional[asyncio.Future] = None
    try:
        while True:
            getter = asyncio.ensure_future(queue.get())
            done, _ = await asyncio.wait({getter, task}, return_when=asyncio.FIRST_COMPLETED)
            if getter in done:
                yield getter.result()
                continue
            getter.cancel()
            break

        # Progress callbacks are scheduled before the worker's result
        while not queue.empty():
            yield queue.get_nowait()

        try:
            page_count = task.result()
        except Exception as e:
            yield ErrorEvent(error=type(e).__name__, detail=str(e))
            return
        yield CompleteEvent(label=label, pageCount=page_count)

    finally:
        if getter is not None and not getter.done():
            getter.cancel()
        if not task.done():
            cancel_event.set()
            # The worker ends with ExtractionCancelledError; it is logged there
            task.add_done_callback(lambda t: t.cancelled() or t.exception())
