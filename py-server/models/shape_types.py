"""
Internal data structures for the visual-content extraction pipeline.

These are plain dataclasses passed between the paint-op walker, the shape
collector, the grouping engine and the compositor. They are not exposed in
the API; see models/pdf_types.py for the response models.
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, TYPE_CHECKING

from utils.geometry import Bbox, intersect_bboxes
from utils.pdf_transforms import Matrix

if TYPE_CHECKING:
    from PIL import Image


class ShapeKind(str, Enum):
    """Compositing path for a shape"""
    RASTER = "raster"
    VECTOR = "vector"


@dataclass(frozen=True)
class ClipLevel:
    """
    One level of a clip chain.

    `clip_path` is the <clipPath> definition; `matrix` maps the coordinate
    space of the element that referenced it into page space.
    """
    clip_path: ET.Element
    matrix: Optional[Matrix] = None
    clip_id: str = ""


@dataclass(frozen=True)
class EmbeddedImageRef:
    """Where to find an embedded raster and the box it is stretched over."""
    href: str
    local_bbox: Bbox


@dataclass(frozen=True)
class PaintOp:
    """A single paint operation discovered while walking a page."""
    kind: ShapeKind
    seqno: int
    element: ET.Element
    matrix: Optional[Matrix] = None  # local -> page, None means identity
    clip_chain: Tuple[ClipLevel, ...] = ()
    opacity: float = 1.0
    image_ref: Optional[EmbeddedImageRef] = None
    refs: Tuple[ET.Element, ...] = ()  # gradient/pattern definitions used by the paint

    @property
    def path(self) -> Optional[str]:
        return self.element.get('d')


@dataclass
class ShapeCandidate:
    """A paint operation with its geometry resolved into page space."""
    kind: ShapeKind
    seqno: int
    local_bbox: Bbox
    transform: Optional[Matrix]
    clip_chain: Tuple[ClipLevel, ...]
    source_ref: PaintOp
    bbox: Bbox
    clip_bbox: Optional[Bbox] = None
    image: Optional['Image.Image'] = None  # decoded pixels for raster shapes

    @property
    def visible_bbox(self) -> Optional[Bbox]:
        if self.clip_bbox is None:
            return self.bbox
        return intersect_bboxes(self.bbox, self.clip_bbox)


@dataclass
class ShapeGroup:
    """Overlapping candidates of one kind sharing one effective clip."""
    kind: ShapeKind
    members: List[ShapeCandidate] = field(default_factory=list)
    bbox: Bbox = (0.0, 0.0, 0.0, 0.0)
    clip_bbox: Optional[Bbox] = None

    @property
    def seqno(self) -> int:
        """Discovery position of the group (its earliest member)."""
        return min(member.seqno for member in self.members)

    @property
    def visible_bbox(self) -> Optional[Bbox]:
        """Part of the group bbox left visible by the clip, None if fully clipped."""
        if self.clip_bbox is None:
            return self.bbox
        return intersect_bboxes(self.bbox, self.clip_bbox)

    @property
    def width(self) -> float:
        visible = self.visible_bbox
        return visible[2] - visible[0] if visible else 0.0

    @property
    def height(self) -> float:
        visible = self.visible_bbox
        return visible[3] - visible[1] if visible else 0.0

    def __repr__(self) -> str:
        return (
            f"ShapeGroup({self.kind.value}, {len(self.members)} members, "
            f"bbox={tuple(round(v, 2) for v in self.bbox)}, "
            f"clipped={self.clip_bbox is not None})"
        )


@dataclass(frozen=True)
class PngImage:
    """Encoded raster produced by the compositor or the page renderer."""
    width_px: int
    height_px: int
    png_bytes: bytes


@dataclass
class ExtractedImage:
    """An image artifact with its stable identifier and content hash."""
    image_id: str
    width_px: int
    height_px: int
    png_bytes: bytes
    content_hash: str
    is_pruned: bool = False


@dataclass
class PageRecord:
    """Everything extracted from one page, handed to downstream stages."""
    page_id: str
    page_number: int
    raw_text: str
    page_image: ExtractedImage
    images: List[ExtractedImage] = field(default_factory=list)
