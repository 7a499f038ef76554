"""Pytest fixtures and shared test configuration.

Fixtures:
    - clip_pdf_bytes: Three pages covering single clips, nested clips and a clipped raster
    - small_group_pdf_bytes: One decorative 10x10 square and one 100x100 square
    - text_pdf_bytes: Single page with text and no graphics
    - write_pdf: Writes PDF bytes to a named file under tmp_path
    - png_data_uri: Builds base64 PNG data URIs for SVG <image> elements

PDFs are assembled by a minimal writer so every test document is reproducible
and described by its content streams alone.
"""

import base64
import io
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Tuple

import pytest
from PIL import Image

PAGE_WIDTH = 612
PAGE_HEIGHT = 792
IMAGE_SIZE = 20


@dataclass
class PageContent:
    """Content stream and size of one generated page."""
    content: str
    width: int = PAGE_WIDTH
    height: int = PAGE_HEIGHT


def _stream_object(data: bytes, extra: bytes = b"") -> bytes:
    return b"<< " + extra + b"/Length %d >>\nstream\n" % len(data) + data + b"\nendstream"


def _split_image_pixels() -> bytes:
    """Raw RGB samples: left half red, right half blue."""
    row = b"\xff\x00\x00" * (IMAGE_SIZE // 2) + b"\x00\x00\xff" * (IMAGE_SIZE // 2)
    return row * IMAGE_SIZE


def build_pdf(pages: List[PageContent]) -> bytes:
    """
    Build a PDF whose pages share a Helvetica font /F1 and a 20x20 RGB image /Im1.

    Args:
        pages: Page specs in order

    Returns:
        PDF file bytes
    """
    objects: List[bytes] = []

    def add(body: bytes) -> int:
        objects.append(body)
        return len(objects)

    catalog = add(b"")
    pages_root = add(b"")
    font = add(b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>")
    image = add(_stream_object(
        _split_image_pixels(),
        b"/Type /XObject /Subtype /Image /Width %d /Height %d "
        b"/ColorSpace /DeviceRGB /BitsPerComponent 8 " % (IMAGE_SIZE, IMAGE_SIZE),
    ))

    kids = []
    for page in pages:
        contents = add(_stream_object(page.content.encode("latin-1")))
        kids.append(add(
            b"<< /Type /Page /Parent %d 0 R /MediaBox [0 0 %d %d] "
            b"/Resources << /Font << /F1 %d 0 R >> /XObject << /Im1 %d 0 R >> >> "
            b"/Contents %d 0 R >>" % (pages_root, page.width, page.height, font, image, contents)
        ))

    objects[catalog - 1] = b"<< /Type /Catalog /Pages %d 0 R >>" % pages_root
    objects[pages_root - 1] = b"<< /Type /Pages /Kids [%s] /Count %d >>" % (
        b" ".join(b"%d 0 R" % kid for kid in kids), len(kids)
    )

    out = bytearray(b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref_offset = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root %d 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (
        len(objects) + 1, catalog, xref_offset
    )
    return bytes(out)


# Page 1: two clipped fills, two overlapping squares, one standalone square
CLIPPED_FILLS_PAGE = """
BT /F1 12 Tf 72 740 Td (Clipped fills) Tj ET
q 100 400 200 150 re W n 1 0 0 rg 50 350 300 250 re f Q
q 350 400 100 100 re W n 0 0 1 rg 300 350 200 200 re f Q
q 0 0.5 0 rg 100 100 80 80 re f Q
q 0 0.5 0 rg 150 130 80 80 re f Q
q 1 0.5 0 rg 500 100 50 50 re f Q
"""

# Page 2: a full-page fill under two nested clips, and a simple clipped fill
NESTED_CLIPS_PAGE = """
BT /F1 12 Tf 72 740 Td (Nested clips) Tj ET
q 50 300 400 400 re W n 150 400 200 200 re W n 1 0 1 rg 0 0 612 792 re f Q
q 100 100 100 80 re W n 0 1 0 rg 50 50 200 200 re f Q
"""

# Page 3: a clipped raster and an unclipped raster
CLIPPED_RASTER_PAGE = """
BT /F1 12 Tf 72 740 Td (Clipped raster) Tj ET
q 150 450 100 100 re W n 200 0 0 200 100 400 cm /Im1 Do Q
q 200 0 0 200 350 400 cm /Im1 Do Q
"""

SMALL_GROUP_PAGE = """
q 0 0.5 0 rg 50 50 10 10 re f Q
q 1 0 0 rg 300 300 100 100 re f Q
"""

TEXT_ONLY_PAGE = """
BT /F1 14 Tf 72 700 Td (Hello extraction) Tj ET
"""


@pytest.fixture
def clip_pdf_bytes() -> bytes:
    """Three-page document exercising clips, nested clips and raster masking."""
    return build_pdf([
        PageContent(CLIPPED_FILLS_PAGE),
        PageContent(NESTED_CLIPS_PAGE),
        PageContent(CLIPPED_RASTER_PAGE),
    ])


@pytest.fixture
def small_group_pdf_bytes() -> bytes:
    """Single page with one group below the size threshold and one above it."""
    return build_pdf([PageContent(SMALL_GROUP_PAGE)])


@pytest.fixture
def text_pdf_bytes() -> bytes:
    """Single page with text only."""
    return build_pdf([PageContent(TEXT_ONLY_PAGE)])


@pytest.fixture
def write_pdf(tmp_path: Path) -> Callable[[bytes, str], Path]:
    """Return a function writing PDF bytes to tmp_path/<name>."""
    def _write(content: bytes, name: str = "Test Book.pdf") -> Path:
        path = tmp_path / name
        path.write_bytes(content)
        return path
    return _write


@pytest.fixture
def png_data_uri() -> Callable[..., str]:
    """Return a function building a solid-color PNG data URI."""
    def _build(size: Tuple[int, int] = (10, 10), color: Tuple[int, ...] = (255, 0, 0, 255)) -> str:
        buffer = io.BytesIO()
        Image.new("RGBA", size, color).save(buffer, format="PNG")
        return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")
    return _build


def open_png(png_bytes: bytes) -> Image.Image:
    """Decode PNG bytes into a loaded Pillow image."""
    image = Image.open(io.BytesIO(png_bytes))
    image.load()
    return image
