"""
PDF Processing Engine - Core Coordinator

The PDFEngine is the central coordinator for all PDF operations. It owns the
open PyMuPDF document, orchestrates processors, and provides the page-level
primitives the extraction pipeline is built on: page rasters, page text and
the paint operations of a page's drawing program.

Usage:
    >>> from engine.pdf_engine import PDFEngine
    >>> from engine.config import EngineConfig
    >>>
    >>> with PDFEngine('document.pdf', config=EngineConfig()) as engine:
    ...     pages = engine.get_page_count()
    ...     print(f"Document has {pages} pages")
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import xml.etree.ElementTree as ET

import fitz  # PyMuPDF

from engine.config import EngineConfig, PageRange
from engine.base_processor import ProcessorRegistry
from models.shape_types import PaintOp, PngImage
from processors.paint_walker import enumerate_paint_ops
from utils.validation import (
    PageRenderError,
    PdfSource,
    PdfValidationError,
    comprehensive_pdf_validation,
)

logger = logging.getLogger(__name__)

IN_MEMORY_NAME = "<memory>"


def _drain_mupdf_warnings() -> None:
    """Move MuPDF's accumulated warnings into the debug log."""
    warnings = fitz.TOOLS.mupdf_warnings()
    if warnings:
        for line in warnings.splitlines():
            logger.debug(f"MuPDF: {line}")


class PDFEngine:
    """
    Unified PDF processing engine with resource management and processor coordination.

    Uses composition to coordinate specialized processors for text and
    visual-content extraction.

    Example:
        >>> with PDFEngine(pdf_bytes) as engine:
        ...     png = engine.render_page_raster(0)
    """

    def __init__(self, source: PdfSource, config: Optional[EngineConfig] = None):
        """
        Initialize PDF engine with a source and optional configuration.

        Note: Document is not opened until entering context manager (__enter__).

        Args:
            source: Path to a PDF file, or the PDF bytes
            config: Engine configuration (uses defaults if None)

        Raises:
            FileNotFoundError: If a path source does not exist
            PdfValidationError: If configuration is invalid
        """
        self.config = config or EngineConfig.default()

        if isinstance(source, (bytes, bytearray)):
            self.source = bytes(source)
            self.name = IN_MEMORY_NAME
        else:
            self.source = os.fspath(source)
            self.name = Path(self.source).name
            if not os.path.exists(self.source):
                raise FileNotFoundError(f"PDF file not found: {self.source}")

        if not self.config.validate():
            raise PdfValidationError("Invalid engine configuration")

        self._document: Optional[fitz.Document] = None
        self._is_open = False

        self._processors = ProcessorRegistry()

        self._page_count: Optional[int] = None
        self._file_size_mb: Optional[float] = None

        logger.debug(f"PDFEngine initialized for: {self.name}")

    @property
    def is_in_memory(self) -> bool:
        return isinstance(self.source, bytes)

    def __enter__(self) -> 'PDFEngine':
        """
        Open the PDF and initialize processors.

        Raises:
            PdfValidationError: If the PDF cannot be opened, is invalid or is encrypted
        """
        try:
            logger.info(f"Opening PDF: {self.name}")

            if self.config.validate_on_open:
                self._validate_pdf_source()

            fitz.TOOLS.mupdf_display_errors(False)
            if self.is_in_memory:
                self._document = fitz.open(stream=self.source, filetype="pdf")
                self._file_size_mb = len(self.source) / (1024 * 1024)
            else:
                self._document = fitz.open(self.source, filetype="pdf")
                self._file_size_mb = os.path.getsize(self.source) / (1024 * 1024)
            _drain_mupdf_warnings()

            if self._document.needs_pass:
                raise PdfValidationError("PDF is encrypted and requires a password")

            self._page_count = self._document.page_count
            if self._page_count < 1:
                raise PdfValidationError("PDF has no pages")

            self._is_open = True
            self._initialize_processors()

            logger.info(
                f"PDF opened successfully: {self._page_count} pages, "
                f"{self._file_size_mb:.2f} MB"
            )
            return self

        except PdfValidationError as e:
            logger.error(f"Failed to open PDF: {e}")
            self._cleanup_resources()
            raise
        except Exception as e:
            logger.error(f"Failed to open PDF: {e}")
            self._cleanup_resources()
            raise PdfValidationError(f"Failed to open PDF: {str(e)}") from e

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Clean up all resources, even if an exception occurred."""
        logger.debug(f"Closing PDF engine for {self.name}")
        self._cleanup_resources()

        if exc_type is not None:
            logger.debug(f"Engine closed after exception: {exc_val}")

        return False

    def _validate_pdf_source(self) -> None:
        """
        Validate the PDF source before opening.

        Raises:
            PdfValidationError: If validation fails
        """
        results = comprehensive_pdf_validation(self.source, self.config.max_file_size_mb)
        for warning in results['warnings']:
            logger.warning(f"PDF validation warning: {warning}")
        if not results['is_valid']:
            raise PdfValidationError("; ".join(results['errors']))

    def _initialize_processors(self) -> None:
        """Initialize all enabled processors."""
        if self.config.enable_text_processor:
            from engine.text_processor import TextProcessor
            self._processors.register('text', TextProcessor(self, self.config.get_text_options()))

        if self.config.enable_image_processor:
            from engine.image_processor import ImageProcessor
            self._processors.register('image', ImageProcessor(self, self.config.get_image_options()))

        self._processors.initialize_all()

    def _cleanup_resources(self) -> None:
        """
        Clean up processors and the document.

        Idempotent and safe to call multiple times.
        """
        self._processors.cleanup_all()

        if self._document is not None:
            try:
                self._document.close()
            except (RuntimeError, ValueError) as e:
                logger.warning(f"Error closing document: {e}")
            finally:
                self._document = None

        self._is_open = False

    def _require_open(self) -> None:
        if not self._is_open:
            raise RuntimeError("Engine not opened - use within context manager")

    # Public API - Document Information

    def get_page_count(self) -> int:
        """
        Get total number of pages in document.

        Raises:
            RuntimeError: If engine not opened
        """
        self._require_open()
        return self._page_count

    def get_file_size_mb(self) -> float:
        """
        Get source size in megabytes.

        Raises:
            RuntimeError: If engine not opened
        """
        self._require_open()
        return self._file_size_mb

    def validate_page_range(self, page_range: PageRange) -> bool:
        """
        Validate that page range is within document bounds.

        Returns:
            True if valid, False otherwise
        """
        self._require_open()
        return page_range.validate(self._page_count)

    # Public API - Page Access

    def load_page(self, page_index: int) -> fitz.Page:
        """
        Load a page.

        Args:
            page_index: 0-based page index

        Raises:
            RuntimeError: If engine not opened
            IndexError: If page index out of bounds
        """
        self._require_open()

        if page_index < 0 or page_index >= self._page_count:
            raise IndexError(f"Page index {page_index} out of bounds (0-{self._page_count-1})")

        return self._document.load_page(page_index)

    def get_page_size(self, page_index: int) -> Tuple[float, float]:
        """Page (width, height) in points."""
        rect = self.load_page(page_index).rect
        return rect.width, rect.height

    def render_page_raster(self, page_index: int, scale: Optional[float] = None) -> PngImage:
        """
        Rasterize a whole page to an opaque RGB PNG.

        Args:
            page_index: 0-based page index
            scale: Pixels per point (defaults to config.raster_scale)

        Returns:
            Page raster

        Raises:
            PageRenderError: If MuPDF cannot render the page
        """
        scale = scale or self.config.raster_scale
        page = self.load_page(page_index)

        try:
            pixmap = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
            png_bytes = pixmap.tobytes("png")
        except Exception as e:
            raise PageRenderError(page_index + 1, str(e)) from e
        finally:
            _drain_mupdf_warnings()

        logger.debug(f"Rendered page {page_index + 1} at {pixmap.width}x{pixmap.height}")
        return PngImage(width_px=pixmap.width, height_px=pixmap.height, png_bytes=png_bytes)

    def get_page_svg(self, page_index: int) -> str:
        """
        SVG rendering of the page's drawing program in page points, Y down.

        Text stays as text elements so it never turns into vector shapes.
        """
        page = self.load_page(page_index)
        try:
            return page.get_svg_image(matrix=fitz.Identity, text_as_path=False)
        finally:
            _drain_mupdf_warnings()

    def enumerate_paint_ops(self, page_index: int) -> List[PaintOp]:
        """
        Paint operations of a page in paint order.

        Returns an empty list, after logging a warning, when the page's
        drawing program cannot be walked.
        """
        svg_content = self.get_page_svg(page_index)
        try:
            return enumerate_paint_ops(svg_content)
        except ET.ParseError as e:
            logger.warning(f"Page {page_index + 1}: unreadable drawing program, no shapes collected: {e}")
            return []

    # Public API - Processor Access

    @property
    def text_processor(self):
        """Access TextProcessor instance."""
        processor = self._processors.get('text')
        if processor is None:
            raise RuntimeError("TextProcessor not enabled or not yet initialized")
        return processor

    @property
    def image_processor(self):
        """Access ImageProcessor instance."""
        processor = self._processors.get('image')
        if processor is None:
            raise RuntimeError("ImageProcessor not enabled or not yet initialized")
        return processor

    @property
    def has_text_processor(self) -> bool:
        return self._processors.get('text') is not None

    @property
    def has_image_processor(self) -> bool:
        return self._processors.get('image') is not None

    # Status and Debugging

    @property
    def is_open(self) -> bool:
        return self._is_open

    def get_status(self) -> Dict[str, Any]:
        """
        Get engine status information.

        Returns:
            Dictionary with status information
        """
        return {
            'is_open': self._is_open,
            'source': self.name,
            'page_count': self._page_count,
            'file_size_mb': self._file_size_mb,
            'processors': self._processors.processor_names,
            'config': self.config.to_dict()
        }

    def __repr__(self) -> str:
        status = "open" if self._is_open else "closed"
        pages = f"{self._page_count} pages" if self._page_count else "unknown pages"
        return f"PDFEngine({self.name}, {status}, {pages})"
