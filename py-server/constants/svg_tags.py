"""
SVG Element and Attribute Constants

Names used when walking the SVG rendering of a page's drawing program.
MuPDF emits one element per paint operation, clip paths as <clipPath>
definitions referenced from <g clip-path="url(#id)"> scopes, and embedded
images as base64 data URIs.

Reference: SVG 1.1 (Second Edition), chapters 5, 8, 9, 14
"""

import re

# ==============================================================================
# Namespaces
# ==============================================================================
SVG_NS = 'http://www.w3.org/2000/svg'
XLINK_NS = 'http://www.w3.org/1999/xlink'

ATTR_XLINK_HREF = f'{{{XLINK_NS}}}href'
ATTR_HREF = 'href'

# ==============================================================================
# Elements
# ==============================================================================
TAG_SVG = 'svg'
TAG_GROUP = 'g'
TAG_ANCHOR = 'a'
TAG_PATH = 'path'
TAG_RECT = 'rect'
TAG_IMAGE = 'image'
TAG_USE = 'use'
TAG_SYMBOL = 'symbol'
TAG_DEFS = 'defs'
TAG_CLIP_PATH = 'clipPath'

# Elements whose children are walked as part of the drawing program
CONTAINER_TAGS = {TAG_SVG, TAG_GROUP, TAG_ANCHOR}

# Paint operations that produce vector shapes
VECTOR_TAGS = {TAG_PATH, TAG_RECT}

# Clip primitives understood by the clip resolver
CLIP_PRIMITIVE_TAGS = {TAG_PATH, TAG_RECT}

# Never part of the drawing program itself; only reached through references
SKIPPED_TAGS = {
    TAG_DEFS, TAG_CLIP_PATH, TAG_SYMBOL,
    'mask', 'pattern', 'linearGradient', 'radialGradient', 'filter',
    'style', 'title', 'desc', 'metadata', 'text', 'font',
}

# ==============================================================================
# Attributes
# ==============================================================================
ATTR_ID = 'id'
ATTR_D = 'd'
ATTR_TRANSFORM = 'transform'
ATTR_CLIP_PATH = 'clip-path'
ATTR_OPACITY = 'opacity'
ATTR_DISPLAY = 'display'
ATTR_VISIBILITY = 'visibility'
ATTR_FILL = 'fill'
ATTR_STROKE = 'stroke'
ATTR_STROKE_WIDTH = 'stroke-width'
ATTR_X = 'x'
ATTR_Y = 'y'
ATTR_WIDTH = 'width'
ATTR_HEIGHT = 'height'
ATTR_VIEWBOX = 'viewBox'

# Paint attributes that may reference gradient or pattern definitions
PAINT_REFERENCE_ATTRS = (ATTR_FILL, ATTR_STROKE)

VALUE_NONE = 'none'

# url(#clip_1) / url('#clip_1')
URL_REF_RE = re.compile(r'url\(\s*[\'"]?#([^)\'"\s]+)[\'"]?\s*\)')
