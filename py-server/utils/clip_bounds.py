"""
Clip Region Bounds

Resolves clip primitives (<path> and <rect> elements plus their transforms)
into absolute bounding boxes, intersects nested clip chains, and detects
page-level clips that restrict nothing in practice.

Non-rectangular clips are represented by their bounding box.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Iterable, NamedTuple, Optional, Tuple

from constants.svg_tags import (
    ATTR_D,
    ATTR_HEIGHT,
    ATTR_TRANSFORM,
    ATTR_WIDTH,
    ATTR_X,
    ATTR_Y,
    CLIP_PRIMITIVE_TAGS,
    TAG_PATH,
    TAG_RECT,
)
from models.shape_types import ClipLevel
from utils.geometry import Bbox, bbox_area, intersect_bboxes, parse_length, union_bboxes
from utils.path_bbox import resolve_path_bbox
from utils.pdf_transforms import apply_matrix_to_bbox, apply_transform

logger = logging.getLogger(__name__)

PAGE_LEVEL_CLIP_RATIO = 0.9


class ClipBounds(NamedTuple):
    """Effective clip of a chain.

    bbox is None when the chain imposes no restriction. is_empty is set when
    the levels do not intersect at all, i.e. everything under the chain is
    clipped away.
    """
    bbox: Optional[Bbox]
    is_empty: bool = False


def local_name(tag: str) -> str:
    """Strip an XML namespace from a tag name."""
    return tag.rsplit('}', 1)[-1] if isinstance(tag, str) else ''


def resolve_clip_element(element: ET.Element) -> Optional[Bbox]:
    """
    Resolve one clip primitive into the coordinate space of its parent.

    Args:
        element: <path d=...> or <rect x y width height> element with an
            optional transform attribute

    Returns:
        Bounding box, or None when the element has no usable geometry
    """
    tag = local_name(element.tag)

    if tag == TAG_PATH:
        bbox = resolve_path_bbox(element.get(ATTR_D, ''))
    elif tag == TAG_RECT:
        x = parse_length(element.get(ATTR_X), 0.0)
        y = parse_length(element.get(ATTR_Y), 0.0)
        width = parse_length(element.get(ATTR_WIDTH))
        height = parse_length(element.get(ATTR_HEIGHT))
        if None in (x, y, width, height) or width < 0 or height < 0:
            return None
        bbox = (x, y, x + width, y + height)
    else:
        return None

    if bbox is None:
        return None
    return apply_transform(bbox, element.get(ATTR_TRANSFORM))


def resolve_clip_bounds(clip_content: str) -> Optional[Bbox]:
    """
    Resolve clip markup into a bounding box.

    The content may hold one or several primitives; several primitives are
    combined by union, as SVG does for the children of one <clipPath>.

    Example:
        >>> resolve_clip_bounds('<rect x="10" y="20" width="100" height="50"/>')
        (10.0, 20.0, 110.0, 70.0)

    Returns:
        Bounding box, or None for empty or unparseable content
    """
    if not clip_content or not clip_content.strip():
        return None

    try:
        wrapper = ET.fromstring(f'<clip>{clip_content}</clip>')
    except ET.ParseError as e:
        logger.debug(f"Unparseable clip content: {e}")
        return None

    boxes = [
        resolve_clip_element(element)
        for element in wrapper.iter()
        if local_name(element.tag) in CLIP_PRIMITIVE_TAGS
    ]
    return union_bboxes(b for b in boxes if b is not None)


def resolve_clip_level(level: ClipLevel) -> Optional[Bbox]:
    """
    Resolve one clip chain level into page space.

    Children of the <clipPath> are unioned, then the clipPath's own transform
    and finally the referencing context's matrix are applied.
    """
    boxes = [
        resolve_clip_element(child)
        for child in level.clip_path
        if local_name(child.tag) in CLIP_PRIMITIVE_TAGS
    ]
    bbox = union_bboxes(b for b in boxes if b is not None)
    if bbox is None:
        logger.debug(f"Clip '{level.clip_id}' has no resolvable geometry, ignoring")
        return None

    bbox = apply_transform(bbox, level.clip_path.get(ATTR_TRANSFORM))
    return apply_matrix_to_bbox(bbox, level.matrix)


def intersect_clip_bounds(boxes: Iterable[Optional[Bbox]]) -> ClipBounds:
    """
    Fold clip boxes, outermost first, into their geometric intersection.

    None entries impose no restriction and are skipped.
    """
    effective: Optional[Bbox] = None
    for bbox in boxes:
        if bbox is None:
            continue
        if effective is None:
            effective = bbox
            continue
        effective = intersect_bboxes(effective, bbox)
        if effective is None:
            return ClipBounds(bbox=None, is_empty=True)
    return ClipBounds(bbox=effective)


def resolve_clip_chain(chain: Tuple[ClipLevel, ...]) -> ClipBounds:
    """Resolve a whole clip chain into its effective bounds."""
    return intersect_clip_bounds(resolve_clip_level(level) for level in chain)


def is_page_level_clip(
    bbox: Optional[Bbox],
    page_width: float,
    page_height: float,
    ratio: float = PAGE_LEVEL_CLIP_RATIO
) -> bool:
    """
    Check whether a clip covers (nearly) the whole page.

    Many PDFs wrap all content in a full-page clip; such a clip is treated
    as no clip at all.

    Args:
        bbox: Clip bounding box or None
        page_width: Page width in points
        page_height: Page height in points
        ratio: Minimum covered fraction of the page area

    Returns:
        True if the clip/page intersection covers at least ratio of the page
    """
    if bbox is None:
        return False

    page_area = page_width * page_height
    if page_area <= 0:
        return False

    overlap = intersect_bboxes(bbox, (0.0, 0.0, page_width, page_height))
    if overlap is None:
        return False

    return bbox_area(overlap) >= ratio * page_area
