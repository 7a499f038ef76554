"""
Bounding box primitives.

Boxes are (min_x, min_y, max_x, max_y) tuples in page points with the Y axis
pointing down. Zero-area boxes are valid everywhere in this module.
"""

import math
from typing import Iterable, Optional, Tuple

Bbox = Tuple[float, float, float, float]


def bbox_width(bbox: Bbox) -> float:
    return bbox[2] - bbox[0]


def bbox_height(bbox: Bbox) -> float:
    return bbox[3] - bbox[1]


def bbox_area(bbox: Bbox) -> float:
    return max(0.0, bbox_width(bbox)) * max(0.0, bbox_height(bbox))


def intersect_bboxes(bbox1: Bbox, bbox2: Bbox) -> Optional[Bbox]:
    """
    Intersect two boxes.

    Boxes that only touch produce a zero-area intersection rather than None.

    Returns:
        Intersection box, or None when the boxes are disjoint
    """
    min_x = max(bbox1[0], bbox2[0])
    min_y = max(bbox1[1], bbox2[1])
    max_x = min(bbox1[2], bbox2[2])
    max_y = min(bbox1[3], bbox2[3])

    if min_x > max_x or min_y > max_y:
        return None
    return (min_x, min_y, max_x, max_y)


def union_bboxes(bboxes: Iterable[Bbox]) -> Optional[Bbox]:
    """
    Calculate the union bounding box of multiple boxes.

    Args:
        bboxes: Boxes to combine

    Returns:
        Enclosing box, or None for an empty input
    """
    min_x = float('inf')
    min_y = float('inf')
    max_x = float('-inf')
    max_y = float('-inf')
    found = False

    for x0, y0, x1, y1 in bboxes:
        min_x = min(min_x, x0)
        min_y = min(min_y, y0)
        max_x = max(max_x, x1)
        max_y = max(max_y, y1)
        found = True

    if not found:
        return None
    return (min_x, min_y, max_x, max_y)


def bboxes_overlap(bbox1: Bbox, bbox2: Bbox, margin: float = 0.0) -> bool:
    """Check whether two boxes intersect; touching edges count as overlap."""
    return (
        bbox1[0] <= bbox2[2] + margin and
        bbox2[0] <= bbox1[2] + margin and
        bbox1[1] <= bbox2[3] + margin and
        bbox2[1] <= bbox1[3] + margin
    )


def to_pixel_rect(bbox: Bbox, scale: float) -> Tuple[int, int, int, int]:
    """
    Convert a page-point box into integer pixel coordinates at a raster scale.

    Edges are snapped outward so the pixel rect always covers the box, and a
    degenerate box still yields at least one pixel in each direction.

    Returns:
        (left, top, width, height) in pixels
    """
    left = int(math.floor(bbox[0] * scale + 1e-6))
    top = int(math.floor(bbox[1] * scale + 1e-6))
    right = int(math.ceil(bbox[2] * scale - 1e-6))
    bottom = int(math.ceil(bbox[3] * scale - 1e-6))
    return left, top, max(1, right - left), max(1, bottom - top)


def parse_length(value: Optional[str], default: Optional[float] = None) -> Optional[float]:
    """
    Parse an SVG length or number attribute.

    A trailing 'px' or 'pt' unit is removed; other units are not converted.

    Args:
        value: Attribute text, or None when the attribute is absent
        default: Returned for absent or unparseable values

    Returns:
        The number, or default
    """
    if value is None:
        return default
    text = value.strip()
    if text.endswith(('px', 'pt')):
        text = text[:-2]
    try:
        return float(text)
    except ValueError:
        return default
