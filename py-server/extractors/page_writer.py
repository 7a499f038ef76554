"""
Page Writer

Stores page records on disk and reads them back:

    <output_root>/<label>/extract/pages/pgNNN/
        page.png                 full page raster (RGB)
        text.txt                 raw text (UTF-8)
        images/pgNNN_imMMM.png   extracted images (RGBA), omitted when none

Each page directory is assembled in a hidden staging directory next to its
final location and renamed into place, so a page directory is either complete
or absent.
"""

import io
import logging
import re
import shutil
import tempfile
import threading
from pathlib import Path
from typing import List, Optional, Union

from PIL import Image

from engine import EngineConfig
from extractors.page_extractor import (
    ProgressCallback,
    generate_page_records,
    make_image_id,
    make_page_id,
    slug_from_path,
)
from models.pdf_types import PageProgress
from models.shape_types import ExtractedImage, PageRecord
from utils.image_encoding import content_hash

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_ROOT = "books"
PAGE_IMAGE_FILE = "page.png"
TEXT_FILE = "text.txt"
IMAGES_DIR = "images"

PAGE_DIR_RE = re.compile(r'pg(\d{3,})')
IMAGE_FILE_RE = re.compile(r'(pg\d{3,}_im\d{3,})\.png')

PathLike = Union[str, Path]


def pages_dir_for(output_root: PathLike, label: str) -> Path:
    """Directory holding the page directories of one document."""
    return Path(output_root) / label / "extract" / "pages"


def write_page_record(pages_dir: PathLike, record: PageRecord) -> Path:
    """
    Write one page record, replacing any previous version of the page.

    Args:
        pages_dir: Parent of the page directories
        record: Page record to store

    Returns:
        Path of the page directory
    """
    pages_dir = Path(pages_dir)
    pages_dir.mkdir(parents=True, exist_ok=True)
    final_dir = pages_dir / record.page_id

    staging_dir = Path(tempfile.mkdtemp(prefix=f".{record.page_id}-", dir=pages_dir))
    try:
        (staging_dir / PAGE_IMAGE_FILE).write_bytes(record.page_image.png_bytes)
        (staging_dir / TEXT_FILE).write_text(record.raw_text, encoding="utf-8")

        if record.images:
            images_dir = staging_dir / IMAGES_DIR
            images_dir.mkdir()
            for image in record.images:
                (images_dir / f"{image.image_id}.png").write_bytes(image.png_bytes)

        _swap_into_place(staging_dir, final_dir)
    except Exception:
        shutil.rmtree(staging_dir, ignore_errors=True)
        raise

    logger.debug(f"Wrote {final_dir} ({len(record.images)} images)")
    return final_dir


def _swap_into_place(staging_dir: Path, final_dir: Path) -> None:
    backup_dir = None
    if final_dir.exists():
        backup_dir = final_dir.with_name(f".{final_dir.name}.old")
        if backup_dir.exists():
            shutil.rmtree(backup_dir)
        final_dir.rename(backup_dir)

    try:
        staging_dir.rename(final_dir)
    except OSError:
        if backup_dir is not None:
            backup_dir.rename(final_dir)
        raise

    if backup_dir is not None:
        shutil.rmtree(backup_dir, ignore_errors=True)


def _load_image(path: Path, image_id: str) -> ExtractedImage:
    png_bytes = path.read_bytes()
    with Image.open(io.BytesIO(png_bytes)) as image:
        width, height = image.size
    return ExtractedImage(
        image_id=image_id,
        width_px=width,
        height_px=height,
        png_bytes=png_bytes,
        content_hash=content_hash(png_bytes),
    )


def read_page_from_disk(page_dir: PathLike) -> PageRecord:
    """
    Load one stored page directory.

    Raises:
        FileNotFoundError: If the page raster is missing
        ValueError: If the directory name is not a page id
    """
    page_dir = Path(page_dir)
    match = PAGE_DIR_RE.fullmatch(page_dir.name)
    if not match:
        raise ValueError(f"Not a page directory: {page_dir}")
    page_number = int(match.group(1))

    text_path = page_dir / TEXT_FILE
    raw_text = text_path.read_text(encoding="utf-8") if text_path.exists() else ""

    images = []
    images_dir = page_dir / IMAGES_DIR
    if images_dir.is_dir():
        for path in sorted(images_dir.iterdir()):
            image_match = IMAGE_FILE_RE.fullmatch(path.name)
            if image_match:
                images.append(_load_image(path, image_match.group(1)))

    return PageRecord(
        page_id=make_page_id(page_number),
        page_number=page_number,
        raw_text=raw_text,
        page_image=_load_image(page_dir / PAGE_IMAGE_FILE, make_image_id(page_number, 0)),
        images=images,
    )


def read_pages_from_disk(pages_dir: PathLike) -> List[PageRecord]:
    """
    Load every stored page under pages_dir in page order.

    Staging leftovers and other non-page entries are ignored. A missing
    directory yields an empty list.
    """
    pages_dir = Path(pages_dir)
    if not pages_dir.is_dir():
        return []

    page_dirs = [
        path for path in pages_dir.iterdir()
        if path.is_dir() and PAGE_DIR_RE.fullmatch(path.name)
    ]
    page_dirs.sort(key=lambda path: int(PAGE_DIR_RE.fullmatch(path.name).group(1)))
    return [read_page_from_disk(path) for path in page_dirs]


def extract_to_directory(
    pdf_path: PathLike,
    output_root: PathLike = DEFAULT_OUTPUT_ROOT,
    start_page: int = 1,
    end_page: Optional[int] = None,
    config: Optional[EngineConfig] = None,
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[threading.Event] = None,
    resume: bool = False,
    label: Optional[str] = None,
) -> Path:
    """
    Extract a PDF into its page directories.

    Each page is written before its progress event fires.

    Args:
        pdf_path: PDF file to extract
        output_root: Root of the per-document output trees
        start_page: First page (1-based)
        end_page: Last page (inclusive), None for the last page
        config: Engine configuration
        on_progress: Called once per page after it has been written
        cancel_event: Set to stop at the next page boundary
        resume: Reuse stored pages when the first requested page already exists
        label: Output directory name and progress label (slug of the file name by default)

    Returns:
        The document's pages directory
    """
    label = label or slug_from_path(pdf_path)
    pages_dir = pages_dir_for(output_root, label)

    if resume and (pages_dir / make_page_id(start_page) / PAGE_IMAGE_FILE).exists():
        logger.info(f"Reusing existing extraction in {pages_dir}")
        _replay_progress(pages_dir, start_page, end_page, label, on_progress)
        return pages_dir

    written = 0
    for record in generate_page_records(
        pdf_path,
        start_page=start_page,
        end_page=end_page,
        label=label,
        config=config,
        on_progress=on_progress,
        cancel_event=cancel_event,
    ):
        write_page_record(pages_dir, record)
        written += 1

    logger.info(f"Wrote {written} pages to {pages_dir}")
    return pages_dir


def _replay_progress(
    pages_dir: Path,
    start_page: int,
    end_page: Optional[int],
    label: str,
    on_progress: Optional[ProgressCallback],
) -> None:
    """Report stored pages of the requested range as completed."""
    if on_progress is None:
        return

    stored = [
        int(match.group(1))
        for match in (PAGE_DIR_RE.fullmatch(path.name) for path in pages_dir.iterdir())
        if match
    ]
    page_numbers = sorted(
        n for n in stored
        if n >= start_page and (end_page is None or n <= end_page)
    )
    for position, _ in enumerate(page_numbers, start=1):
        on_progress(PageProgress(page=position, totalPages=len(page_numbers), label=label))
