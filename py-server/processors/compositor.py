"""
Group Compositor

Rasterizes a shape group into a standalone RGBA PNG at the extraction's
raster scale:

- Vector groups are re-rendered from their original paint elements in a small
  SVG document whose viewport is the visible group extent, so everything
  outside it is cut off and the background stays transparent.
- Raster groups resample each embedded image through the inverse of the
  matrix that placed it, then zero the alpha channel outside the clip bbox.
"""

import copy
import logging
import xml.etree.ElementTree as ET
from typing import List, Optional

import fitz  # PyMuPDF
import numpy as np
from PIL import Image

from constants.svg_tags import ATTR_CLIP_PATH, ATTR_ID, ATTR_OPACITY, ATTR_TRANSFORM, SVG_NS, XLINK_NS
from models.shape_types import PngImage, ShapeCandidate, ShapeGroup, ShapeKind
from utils.geometry import Bbox, to_pixel_rect
from utils.image_encoding import encode_png
from utils.pdf_transforms import IDENTITY_MATRIX, format_matrix, invert_matrix, matrix_to_array

logger = logging.getLogger(__name__)

DEFAULT_RASTER_SCALE = 2.0

ET.register_namespace('', SVG_NS)
ET.register_namespace('xlink', XLINK_NS)

# Attributes that only make sense inside the page document. Element opacity
# is already folded into PaintOp.opacity and carried by the wrapper group.
PAGE_ONLY_ATTRS = (ATTR_CLIP_PATH, ATTR_OPACITY, 'mask', 'filter', ATTR_ID)


def _fmt(value: float) -> str:
    return f"{value:.4f}".rstrip('0').rstrip('.') or '0'


class Compositor:
    """
    Produces one RGBA PNG per shape group.

    Example:
        >>> compositor = Compositor(scale=2.0)
        >>> png = compositor.composite(group)
        >>> png.width_px, png.height_px
        (200, 100)
    """

    def __init__(self, scale: float = DEFAULT_RASTER_SCALE,
                 resample: Image.Resampling = Image.Resampling.BILINEAR):
        """
        Args:
            scale: Pixels per page point (2.0 is about 144 DPI)
            resample: Pillow filter used when resampling embedded images
        """
        if scale <= 0:
            raise ValueError(f"scale must be positive, got {scale}")
        self.scale = scale
        self.resample = resample

    def composite(self, group: ShapeGroup) -> Optional[PngImage]:
        """
        Rasterize a group.

        Args:
            group: Surviving shape group

        Returns:
            RGBA PNG, or None when nothing of the group could be rendered

        Raises:
            RuntimeError: If MuPDF fails to render a vector group
        """
        if group.kind == ShapeKind.RASTER:
            image = self._composite_raster(group)
        else:
            image = self._composite_vector(group)

        if image is None:
            return None
        if image.mode != 'RGBA':
            image = image.convert('RGBA')
        return encode_png(image)

    # --- Vector groups ---

    def _composite_vector(self, group: ShapeGroup) -> Optional[Image.Image]:
        canvas = group.visible_bbox
        if canvas is None:
            return None

        left, top, width_px, height_px = to_pixel_rect(canvas, self.scale)
        svg_bytes = self.build_vector_document(group, left / self.scale, top / self.scale,
                                               width_px / self.scale, height_px / self.scale)
        return self._render_svg(svg_bytes, width_px, height_px)

    def build_vector_document(self, group: ShapeGroup, origin_x: float, origin_y: float,
                              width: float, height: float) -> bytes:
        """
        Build a standalone SVG document holding the group's paint elements.

        Every element gets its full page-space matrix, and a translate moves
        (origin_x, origin_y) to the document origin.
        """
        root = ET.Element(f'{{{SVG_NS}}}svg', {
            'version': '1.1',
            'width': _fmt(width),
            'height': _fmt(height),
            'viewBox': f"0 0 {_fmt(width)} {_fmt(height)}",
        })

        definitions: List[ET.Element] = []
        for member in group.members:
            for ref in member.source_ref.refs:
                if ref not in definitions:
                    definitions.append(ref)
        if definitions:
            defs = ET.SubElement(root, f'{{{SVG_NS}}}defs')
            for definition in definitions:
                defs.append(copy.deepcopy(definition))

        layer = ET.SubElement(root, f'{{{SVG_NS}}}g', {
            ATTR_TRANSFORM: f"translate({_fmt(-origin_x)},{_fmt(-origin_y)})",
        })

        for member in group.members:
            op = member.source_ref
            element = copy.deepcopy(op.element)
            for attr in PAGE_ONLY_ATTRS:
                element.attrib.pop(attr, None)

            if op.matrix is not None:
                element.set(ATTR_TRANSFORM, format_matrix(op.matrix))
            else:
                element.attrib.pop(ATTR_TRANSFORM, None)

            parent = layer
            if op.opacity < 1.0:
                parent = ET.SubElement(layer, f'{{{SVG_NS}}}g', {'opacity': _fmt(op.opacity)})
            parent.append(element)

        return ET.tostring(root, encoding='utf-8')

    def _render_svg(self, svg_bytes: bytes, width_px: int, height_px: int) -> Image.Image:
        document = fitz.open(stream=svg_bytes, filetype="svg")
        try:
            page = document[0]
            rect = page.rect
            matrix = fitz.Matrix(width_px / rect.width, height_px / rect.height)
            pixmap = page.get_pixmap(matrix=matrix, alpha=True)
        finally:
            document.close()

        # MuPDF pixmaps with alpha hold premultiplied colour
        if pixmap.alpha:
            image = Image.frombytes('RGBa', (pixmap.width, pixmap.height), pixmap.samples).convert('RGBA')
        else:
            image = Image.frombytes('RGB', (pixmap.width, pixmap.height), pixmap.samples)
        if image.size != (width_px, height_px):
            logger.debug(f"Resizing vector render {image.size} to {(width_px, height_px)}")
            image = image.resize((width_px, height_px), self.resample)
        return image

    # --- Raster groups ---

    def _composite_raster(self, group: ShapeGroup) -> Optional[Image.Image]:
        left, top, width_px, height_px = to_pixel_rect(group.bbox, self.scale)
        canvas = Image.new('RGBA', (width_px, height_px), (0, 0, 0, 0))

        placed = 0
        for member in group.members:
            layer = self._place_raster(member, left, top, width_px, height_px)
            if layer is None:
                continue
            canvas = Image.alpha_composite(canvas, layer)
            placed += 1

        if placed == 0:
            return None

        if group.clip_bbox is not None:
            canvas = self._apply_clip_mask(canvas, group.clip_bbox, left, top)
        return canvas

    def _place_raster(self, member: ShapeCandidate, left: int, top: int,
                      width_px: int, height_px: int) -> Optional[Image.Image]:
        """Resample one embedded image onto a canvas-sized transparent layer."""
        source = member.image
        if source is None:
            return None

        matrix = member.transform or IDENTITY_MATRIX
        inverse = invert_matrix(matrix)
        if inverse is None:
            logger.warning(f"Skipping raster #{member.seqno}: singular placement matrix")
            return None

        lx0, ly0, lx1, ly1 = member.local_bbox
        local_width = lx1 - lx0
        local_height = ly1 - ly0
        if local_width <= 0 or local_height <= 0:
            return None

        # canvas pixel -> page point -> image-local unit -> source pixel
        canvas_to_page = np.array([
            [1.0 / self.scale, 0.0, left / self.scale],
            [0.0, 1.0 / self.scale, top / self.scale],
            [0.0, 0.0, 1.0],
        ])
        local_to_source = np.array([
            [source.width / local_width, 0.0, -lx0 * source.width / local_width],
            [0.0, source.height / local_height, -ly0 * source.height / local_height],
            [0.0, 0.0, 1.0],
        ])
        total = local_to_source @ matrix_to_array(inverse) @ canvas_to_page
        coefficients = (
            total[0, 0], total[0, 1], total[0, 2],
            total[1, 0], total[1, 1], total[1, 2],
        )

        layer = source.transform(
            (width_px, height_px),
            Image.Transform.AFFINE,
            coefficients,
            resample=self.resample,
            fillcolor=(0, 0, 0, 0),
        )

        opacity = member.source_ref.opacity
        if opacity < 1.0:
            pixels = np.array(layer)
            pixels[..., 3] = np.round(pixels[..., 3].astype(np.float32) * opacity).astype(np.uint8)
            layer = Image.fromarray(pixels)
        return layer

    def _apply_clip_mask(self, image: Image.Image, clip_bbox: Bbox, left: int, top: int) -> Image.Image:
        """Zero the alpha channel outside the clip bbox."""
        clip_left, clip_top, clip_width, clip_height = to_pixel_rect(clip_bbox, self.scale)
        x0 = max(0, clip_left - left)
        y0 = max(0, clip_top - top)
        x1 = min(image.width, clip_left - left + clip_width)
        y1 = min(image.height, clip_top - top + clip_height)

        pixels = np.array(image)
        inside = np.zeros(pixels.shape[:2], dtype=bool)
        if x1 > x0 and y1 > y0:
            inside[y0:y1, x0:x1] = True
        pixels[~inside, 3] = 0
        return Image.fromarray(pixels)
