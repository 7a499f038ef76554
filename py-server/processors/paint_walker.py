"""
Paint Operation Walker

Walks the SVG rendering of a page's drawing program and enumerates its paint
operations in paint order. The drawing state (current matrix, clip chain and
inherited opacity) is an immutable DrawingContext passed down the recursion,
so every nested scope sees exactly the state of its ancestors and nothing
leaks back out when a scope closes.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Dict, List, NamedTuple, Optional, Set, Tuple

from constants.svg_tags import (
    ATTR_CLIP_PATH,
    ATTR_DISPLAY,
    ATTR_HEIGHT,
    ATTR_HREF,
    ATTR_ID,
    ATTR_OPACITY,
    ATTR_TRANSFORM,
    ATTR_VISIBILITY,
    ATTR_WIDTH,
    ATTR_X,
    ATTR_XLINK_HREF,
    ATTR_Y,
    CONTAINER_TAGS,
    PAINT_REFERENCE_ATTRS,
    SKIPPED_TAGS,
    TAG_CLIP_PATH,
    TAG_IMAGE,
    TAG_SYMBOL,
    TAG_USE,
    URL_REF_RE,
    VALUE_NONE,
    VECTOR_TAGS,
)
from models.shape_types import ClipLevel, EmbeddedImageRef, PaintOp, ShapeKind
from utils.clip_bounds import local_name
from utils.geometry import Bbox, parse_length
from utils.pdf_transforms import Matrix, multiply_matrices, parse_transform

logger = logging.getLogger(__name__)


class DrawingContext(NamedTuple):
    """Drawing state in effect for one scope of the walk."""
    matrix: Optional[Matrix] = None
    clip_chain: Tuple[ClipLevel, ...] = ()
    opacity: float = 1.0


def _href(element: ET.Element) -> Optional[str]:
    return element.get(ATTR_XLINK_HREF) or element.get(ATTR_HREF)


class PaintOpWalker:
    """
    Enumerates paint operations from page SVG markup.

    Elements with an id anywhere in the document (including <defs>) are
    indexed up front, so clip paths and image definitions may appear before
    or after the content that references them.

    Example:
        >>> ops = PaintOpWalker(svg_text).walk()
        >>> [op.kind for op in ops]
        [<ShapeKind.VECTOR: 'vector'>, <ShapeKind.RASTER: 'raster'>]
    """

    def __init__(self, svg_content: str):
        """
        Parse page SVG.

        Args:
            svg_content: SVG document text

        Raises:
            xml.etree.ElementTree.ParseError: If the markup is not well-formed
        """
        self.root = ET.fromstring(svg_content)
        self.definitions: Dict[str, ET.Element] = {
            element.get(ATTR_ID): element
            for element in self.root.iter()
            if element.get(ATTR_ID)
        }
        self._seqno = 0

    def walk(self) -> List[PaintOp]:
        """Return every paint operation in paint order."""
        self._seqno = 0
        ops: List[PaintOp] = []
        self._walk_children(self.root, DrawingContext(), ops)
        logger.debug(
            f"Walked {len(ops)} paint ops "
            f"({sum(1 for op in ops if op.kind == ShapeKind.RASTER)} raster)"
        )
        return ops

    # --- Scope handling ---

    def _walk_children(self, parent: ET.Element, context: DrawingContext, ops: List[PaintOp]) -> None:
        for child in parent:
            tag = local_name(child.tag)
            if tag in SKIPPED_TAGS:
                continue

            child_context = self._enter(child, context)
            if child_context is None:
                continue

            if tag in CONTAINER_TAGS:
                self._walk_children(child, child_context, ops)
            elif tag in VECTOR_TAGS:
                ops.append(self._vector_op(child, child_context))
            elif tag in (TAG_IMAGE, TAG_USE):
                op = self._raster_op(child, child_context)
                if op is not None:
                    ops.append(op)

    def _enter(self, element: ET.Element, context: DrawingContext) -> Optional[DrawingContext]:
        """Derive the drawing context of an element, None if it is not rendered."""
        if element.get(ATTR_DISPLAY) == VALUE_NONE or element.get(ATTR_VISIBILITY) == 'hidden':
            return None

        matrix = context.matrix
        own_matrix = parse_transform(element.get(ATTR_TRANSFORM))
        if own_matrix is not None:
            matrix = own_matrix if matrix is None else multiply_matrices(own_matrix, matrix)

        opacity = context.opacity
        own_opacity = parse_length(element.get(ATTR_OPACITY))
        if own_opacity is not None:
            opacity *= max(0.0, min(1.0, own_opacity))

        clip_chain = context.clip_chain
        clip_ref = element.get(ATTR_CLIP_PATH)
        if clip_ref:
            # Clip geometry lives in the user space of the referencing element,
            # which includes the element's own transform
            clip_chain = clip_chain + self._clip_levels(clip_ref, matrix, set())

        return DrawingContext(matrix=matrix, clip_chain=clip_chain, opacity=opacity)

    def _clip_levels(self, clip_ref: str, matrix: Optional[Matrix], visited: Set[str]) -> Tuple[ClipLevel, ...]:
        match = URL_REF_RE.search(clip_ref)
        if not match:
            return ()

        clip_id = match.group(1)
        clip_path = self.definitions.get(clip_id)
        if clip_path is None or local_name(clip_path.tag) != TAG_CLIP_PATH:
            logger.debug(f"Clip reference '{clip_id}' not found, ignoring")
            return ()
        if clip_id in visited:
            return ()
        visited.add(clip_id)

        levels = (ClipLevel(clip_path=clip_path, matrix=matrix, clip_id=clip_id),)
        # A clipPath may itself be clipped
        nested_ref = clip_path.get(ATTR_CLIP_PATH)
        if nested_ref:
            levels += self._clip_levels(nested_ref, matrix, visited)
        return levels

    # --- Paint operations ---

    def _next_seqno(self) -> int:
        seqno = self._seqno
        self._seqno += 1
        return seqno

    def _vector_op(self, element: ET.Element, context: DrawingContext) -> PaintOp:
        return PaintOp(
            kind=ShapeKind.VECTOR,
            seqno=self._next_seqno(),
            element=element,
            matrix=context.matrix,
            clip_chain=context.clip_chain,
            opacity=context.opacity,
            refs=self._paint_references(element),
        )

    def _raster_op(self, element: ET.Element, context: DrawingContext) -> Optional[PaintOp]:
        image_ref = self._resolve_image(element)
        if image_ref is None:
            return None

        return PaintOp(
            kind=ShapeKind.RASTER,
            seqno=self._next_seqno(),
            element=element,
            matrix=context.matrix,
            clip_chain=context.clip_chain,
            opacity=context.opacity,
            image_ref=image_ref,
        )

    def _resolve_image(self, element: ET.Element) -> Optional[EmbeddedImageRef]:
        """
        Find the image data and local placement box of an <image> or <use>.

        A <use> may point at an <image> directly or at a <symbol> wrapping
        one. Uses of anything else (glyph outlines, reused paths) are not
        raster paints and are ignored.
        """
        image = element
        if local_name(element.tag) == TAG_USE:
            target_ref = _href(element) or ''
            target = self.definitions.get(target_ref.lstrip('#'))
            if target is None:
                logger.debug(f"Unresolved <use> reference '{target_ref}'")
                return None

            if local_name(target.tag) == TAG_SYMBOL:
                target = next(
                    (el for el in target.iter() if local_name(el.tag) == TAG_IMAGE),
                    None
                )
            if target is None or local_name(target.tag) != TAG_IMAGE:
                return None
            image = target

        href = _href(image)
        if not href:
            return None

        x = (parse_length(element.get(ATTR_X)) or 0.0)
        y = (parse_length(element.get(ATTR_Y)) or 0.0)
        if image is not element:
            x += parse_length(image.get(ATTR_X)) or 0.0
            y += parse_length(image.get(ATTR_Y)) or 0.0

        width = parse_length(element.get(ATTR_WIDTH))
        height = parse_length(element.get(ATTR_HEIGHT))
        if width is None:
            width = parse_length(image.get(ATTR_WIDTH))
        if height is None:
            height = parse_length(image.get(ATTR_HEIGHT))

        if not width or not height or width < 0 or height < 0:
            logger.debug("Skipping image without a positive placement size")
            return None

        local_bbox: Bbox = (x, y, x + width, y + height)
        return EmbeddedImageRef(href=href, local_bbox=local_bbox)

    def _paint_references(self, element: ET.Element) -> Tuple[ET.Element, ...]:
        """Collect gradient/pattern definitions a paint element depends on."""
        values = [element.get(attr) for attr in PAINT_REFERENCE_ATTRS]
        values.append(element.get('style'))

        refs: List[ET.Element] = []
        for value in values:
            if not value:
                continue
            for ref_id in URL_REF_RE.findall(value):
                definition = self.definitions.get(ref_id)
                if definition is None or definition in refs:
                    continue
                refs.append(definition)
                # Gradients may inherit stops from another gradient
                inherited = self.definitions.get((_href(definition) or '').lstrip('#'))
                if inherited is not None and inherited not in refs:
                    refs.append(inherited)
        return tuple(refs)


def enumerate_paint_ops(svg_content: str) -> List[PaintOp]:
    """Enumerate paint operations of page SVG markup."""
    return PaintOpWalker(svg_content).walk()
