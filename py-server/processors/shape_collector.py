"""
Shape Collector

Turns a page's paint operations into shape candidates with resolved page-space
geometry: the painted bbox, the effective clip bbox, and for raster paints the
decoded source pixels.
"""

import logging
from typing import List, Optional, Sequence

from constants.svg_tags import (
    ATTR_HEIGHT,
    ATTR_STROKE,
    ATTR_STROKE_WIDTH,
    ATTR_WIDTH,
    ATTR_X,
    ATTR_Y,
    TAG_PATH,
    TAG_RECT,
    VALUE_NONE,
)
from models.shape_types import PaintOp, ShapeCandidate, ShapeKind
from utils.clip_bounds import (
    PAGE_LEVEL_CLIP_RATIO,
    is_page_level_clip,
    local_name,
    resolve_clip_chain,
)
from utils.geometry import Bbox, intersect_bboxes, parse_length
from utils.image_encoding import ImageDecodeError, decode_data_uri
from utils.path_bbox import expand_bbox, resolve_path_bbox
from utils.pdf_transforms import apply_matrix_to_bbox

logger = logging.getLogger(__name__)

DEFAULT_STROKE_WIDTH = 1.0


class ShapeCollector:
    """
    Collects shape candidates for one page.

    Candidates that cannot contribute to an image are skipped: paints without
    resolvable geometry, paints clipped away entirely, and embedded images
    whose data cannot be decoded.
    """

    def __init__(
        self,
        page_width: float,
        page_height: float,
        page_level_clip_ratio: float = PAGE_LEVEL_CLIP_RATIO,
        pad_strokes: bool = True,
        include_vector_shapes: bool = True,
        include_raster_shapes: bool = True,
    ):
        """
        Args:
            page_width: Page width in points
            page_height: Page height in points
            page_level_clip_ratio: Page coverage at which a clip counts as no clip
            pad_strokes: Grow stroked paths by half their stroke width
            include_vector_shapes: Collect path/rect paints
            include_raster_shapes: Collect embedded image paints
        """
        self.page_width = page_width
        self.page_height = page_height
        self.page_level_clip_ratio = page_level_clip_ratio
        self.pad_strokes = pad_strokes
        self.include_vector_shapes = include_vector_shapes
        self.include_raster_shapes = include_raster_shapes

    def collect(self, paint_ops: Sequence[PaintOp]) -> List[ShapeCandidate]:
        """
        Resolve paint operations into shape candidates, keeping paint order.

        Args:
            paint_ops: Paint operations of one page

        Returns:
            Shape candidates in discovery order
        """
        candidates: List[ShapeCandidate] = []
        skipped = 0

        for op in paint_ops:
            if op.kind == ShapeKind.VECTOR and not self.include_vector_shapes:
                continue
            if op.kind == ShapeKind.RASTER and not self.include_raster_shapes:
                continue

            candidate = self._build_candidate(op)
            if candidate is None:
                skipped += 1
                continue
            candidates.append(candidate)

        logger.debug(
            f"Collected {len(candidates)} shape candidates "
            f"({skipped} skipped) from {len(paint_ops)} paint ops"
        )
        return candidates

    def _build_candidate(self, op: PaintOp) -> Optional[ShapeCandidate]:
        local_bbox = self._local_bbox(op)
        if local_bbox is None:
            return None

        bbox = apply_matrix_to_bbox(local_bbox, op.matrix)

        clip = resolve_clip_chain(op.clip_chain)
        if clip.is_empty:
            logger.debug(f"Paint op #{op.seqno} is clipped away by disjoint clips")
            return None

        clip_bbox = clip.bbox
        if is_page_level_clip(clip_bbox, self.page_width, self.page_height, self.page_level_clip_ratio):
            clip_bbox = None

        if clip_bbox is not None and intersect_bboxes(bbox, clip_bbox) is None:
            logger.debug(f"Paint op #{op.seqno} lies outside its clip")
            return None

        image = None
        if op.kind == ShapeKind.RASTER:
            try:
                image = decode_data_uri(op.image_ref.href)
            except ImageDecodeError as e:
                logger.warning(f"Dropping embedded image #{op.seqno}: {e}")
                return None

        return ShapeCandidate(
            kind=op.kind,
            seqno=op.seqno,
            local_bbox=local_bbox,
            transform=op.matrix,
            clip_chain=op.clip_chain,
            source_ref=op,
            bbox=bbox,
            clip_bbox=clip_bbox,
            image=image,
        )

    def _local_bbox(self, op: PaintOp) -> Optional[Bbox]:
        """Bounding box of the paint in its own coordinate space."""
        if op.kind == ShapeKind.RASTER:
            return op.image_ref.local_bbox if op.image_ref else None

        element = op.element
        tag = local_name(element.tag)
        if tag == TAG_PATH:
            bbox = resolve_path_bbox(op.path or '')
        elif tag == TAG_RECT:
            x = parse_length(element.get(ATTR_X), 0.0)
            y = parse_length(element.get(ATTR_Y), 0.0)
            width = parse_length(element.get(ATTR_WIDTH))
            height = parse_length(element.get(ATTR_HEIGHT))
            if width is None or height is None or width < 0 or height < 0:
                return None
            bbox = (x, y, x + width, y + height)
        else:
            return None

        if bbox is None or not self.pad_strokes:
            return bbox

        stroke = element.get(ATTR_STROKE)
        if stroke and stroke != VALUE_NONE:
            stroke_width = parse_length(element.get(ATTR_STROKE_WIDTH), DEFAULT_STROKE_WIDTH)
            bbox = expand_bbox(bbox, stroke_width / 2.0)
        return bbox
