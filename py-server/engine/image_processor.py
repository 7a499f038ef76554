"""Image Processor for PDFEngine

Turns a page's drawing program into standalone images: paint operations are
collected as shape candidates, merged into groups by overlap and clip,
filtered for size, and composited into RGBA PNGs.
"""

import logging
from typing import List, Optional, TYPE_CHECKING

from engine.base_processor import BaseProcessor
from engine.config import ImageProcessorOptions
from models.shape_types import PngImage, ShapeGroup
from processors.compositor import Compositor
from processors.shape_collector import ShapeCollector
from utils.shape_grouping import filter_groups, group_shapes

if TYPE_CHECKING:
    from engine.pdf_engine import PDFEngine

logger = logging.getLogger(__name__)


class ImageProcessor(BaseProcessor):
    """
    Visual-content extraction processor for PDFEngine.

    Groups that fail to composite are logged and skipped, so they never
    consume an image id.
    """

    def __init__(self, engine: 'PDFEngine', options: Optional[ImageProcessorOptions] = None):
        """
        Args:
            engine: Parent PDFEngine instance
            options: ImageProcessorOptions or None for defaults
        """
        super().__init__(engine)
        self.options = options or ImageProcessorOptions()
        self.compositor: Optional[Compositor] = None

    def initialize(self) -> None:
        super().initialize()
        self.compositor = Compositor(scale=self.engine.config.raster_scale)

    def cleanup(self) -> None:
        self.compositor = None
        super().cleanup()

    def collect_groups(self, page_index: int) -> List[ShapeGroup]:
        """
        Shape groups of a page that survive size filtering, in discovery order.

        Args:
            page_index: 0-based page index
        """
        self._require_ready()

        page_width, page_height = self.engine.get_page_size(page_index)
        collector = ShapeCollector(
            page_width,
            page_height,
            page_level_clip_ratio=self.options.page_level_clip_ratio,
            pad_strokes=self.options.pad_strokes,
            include_vector_shapes=self.options.include_vector_shapes,
            include_raster_shapes=self.options.include_raster_shapes,
        )

        candidates = collector.collect(self.engine.enumerate_paint_ops(page_index))
        groups = group_shapes(candidates, overlap_margin=self.options.overlap_margin)
        kept = filter_groups(groups, self.options.min_vector_dimension)

        logger.debug(
            f"Page {page_index + 1}: {len(candidates)} candidates, "
            f"{len(groups)} groups, {len(kept)} kept"
        )
        return kept

    def extract_page_images(self, page_index: int) -> List[PngImage]:
        """
        Composite every surviving group of a page.

        Args:
            page_index: 0-based page index

        Returns:
            RGBA PNGs in discovery order (empty when the processor is disabled)
        """
        if not self.options.enabled:
            return []

        images: List[PngImage] = []
        for group in self.collect_groups(page_index):
            try:
                png = self.compositor.composite(group)
            except Exception as e:
                # MuPDF and Pillow raise assorted errors on hostile content;
                # one bad group must not cost the page its other images
                logger.warning(f"Page {page_index + 1}: skipping {group!r}: {e}")
                continue

            if png is None:
                logger.warning(f"Page {page_index + 1}: {group!r} produced no pixels, skipping")
                continue
            images.append(png)

        return images
