"""Text Processor for PDFEngine

Extracts the raw text of a page with PyMuPDF. Text is stored next to the page
raster for downstream stages; no layout structure is recovered here.
"""

import logging
from typing import Optional, TYPE_CHECKING

import fitz  # PyMuPDF

from engine.base_processor import BaseProcessor
from engine.config import TextProcessorOptions

if TYPE_CHECKING:
    from engine.pdf_engine import PDFEngine

logger = logging.getLogger(__name__)


class TextProcessor(BaseProcessor):
    """
    Text extraction processor for PDFEngine.

    Example:
        >>> with PDFEngine('book.pdf') as engine:
        ...     text = engine.text_processor.extract_text(0)
    """

    def __init__(self, engine: 'PDFEngine', options: Optional[TextProcessorOptions] = None):
        """
        Args:
            engine: Parent PDFEngine instance
            options: TextProcessorOptions or None for defaults
        """
        super().__init__(engine)
        self.options = options or TextProcessorOptions()

    @property
    def text_flags(self) -> int:
        """PyMuPDF text extraction flags for the configured options."""
        flags = fitz.TEXT_MEDIABOX_CLIP
        if self.options.preserve_ligatures:
            flags |= fitz.TEXT_PRESERVE_LIGATURES
        if self.options.preserve_whitespace:
            flags |= fitz.TEXT_PRESERVE_WHITESPACE
        return flags

    def extract_text(self, page_index: int) -> str:
        """
        Extract the raw text of a page.

        Args:
            page_index: 0-based page index

        Returns:
            Page text (empty string for pages without text, or when the
            text processor is disabled through its options)
        """
        self._require_ready()
        if not self.options.enabled:
            return ""

        page = self.engine.load_page(page_index)
        text = page.get_text("text", flags=self.text_flags, sort=self.options.sort_blocks)

        logger.debug(f"Page {page_index + 1}: extracted {len(text)} characters of text")
        return text
