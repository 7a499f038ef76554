"""Affine transformation utilities for paint operations and clip paths."""

import re
from typing import Iterable, Optional, Tuple

import numpy as np

from utils.geometry import Bbox

MATRIX_EPSILON = 1e-9

Matrix = Tuple[float, float, float, float, float, float]

IDENTITY_MATRIX: Matrix = (1.0, 0.0, 0.0, 1.0, 0.0, 0.0)

MATRIX_RE = re.compile(r'matrix\(([^)]+)\)')
SEPARATOR_RE = re.compile(r'[\s,]+')


# --- Parsing ---
def parse_transform(transform: Optional[str]) -> Optional[Matrix]:
    """Parse a `matrix(a,b,c,d,e,f)` transform attribute.

    Any other syntax (rotate, translate, scale, malformed values) is not
    understood and yields None, which callers treat as identity.

    Args:
        transform: SVG transform attribute value or None

    Returns:
        6-element matrix tuple, or None
    """
    if not transform:
        return None

    match = MATRIX_RE.search(transform)
    if not match:
        return None

    parts = [p for p in SEPARATOR_RE.split(match.group(1).strip()) if p]
    if len(parts) != 6:
        return None

    try:
        values = tuple(float(p) for p in parts)
    except ValueError:
        return None
    return values  # type: ignore[return-value]


def format_matrix(matrix: Matrix) -> str:
    """Render a matrix back to SVG transform syntax."""
    return "matrix({})".format(",".join(f"{v:.6g}" for v in matrix))


# --- Core Transformation Functions ---
def multiply_matrices(m1: Matrix, m2: Matrix) -> Matrix:
    """Compose two matrices so that m1 is applied first, then m2.

    Args:
        m1: Inner (child) matrix
        m2: Outer (parent) matrix

    Returns:
        Combined matrix mapping child-local points into m2's parent space
    """
    a1, b1, c1, d1, e1, f1 = m1
    a2, b2, c2, d2, e2, f2 = m2
    return (
        a1 * a2 + b1 * c2,
        a1 * b2 + b1 * d2,
        c1 * a2 + d1 * c2,
        c1 * b2 + d1 * d2,
        e1 * a2 + f1 * c2 + e2,
        e1 * b2 + f1 * d2 + f2,
    )


def compose_transforms(transforms: Iterable[Optional[str]]) -> Optional[Matrix]:
    """Compose transform attributes listed outermost first.

    Unparseable entries count as identity. Returns None when nothing in the
    chain carries a usable matrix.
    """
    combined: Optional[Matrix] = None
    for transform in transforms:
        matrix = parse_transform(transform)
        if matrix is None:
            continue
        combined = matrix if combined is None else multiply_matrices(matrix, combined)
    return combined


def apply_matrix_transform(x: float, y: float, ctm: Matrix) -> Tuple[float, float]:
    """Apply transformation matrix to a point.

    Args:
        x, y: Point coordinates
        ctm: 6-element matrix [a, b, c, d, e, f]

    Returns:
        Transformed (x, y) coordinates
    """
    a, b, c, d, e, f = ctm
    tx = a * x + c * y + e
    ty = b * x + d * y + f
    return tx, ty


def apply_matrix_to_bbox(bbox: Bbox, matrix: Optional[Matrix]) -> Bbox:
    """Map a bbox through a matrix and return the axis-aligned bbox of the result.

    All four corners are transformed so rotation and reflection produce the
    correct enclosing box.
    """
    if matrix is None:
        return bbox

    min_x, min_y, max_x, max_y = bbox
    corners = [(min_x, min_y), (max_x, min_y), (max_x, max_y), (min_x, max_y)]
    transformed = [apply_matrix_transform(x, y, matrix) for x, y in corners]

    x_coords = [p[0] for p in transformed]
    y_coords = [p[1] for p in transformed]
    return (min(x_coords), min(y_coords), max(x_coords), max(y_coords))


def apply_transform(bbox: Bbox, transform: Optional[str]) -> Bbox:
    """Map a local bbox into its parent space through a transform attribute.

    Only `matrix(...)` is understood; anything else returns bbox unchanged.

    Example:
        >>> apply_transform((0, 20, 10, 40), "matrix(1,0,0,-1,0,100)")
        (0.0, 60.0, 10.0, 80.0)
    """
    return apply_matrix_to_bbox(bbox, parse_transform(transform))


def matrix_to_array(matrix: Matrix) -> np.ndarray:
    """Convert a 6-element matrix into a 3x3 column-vector affine array."""
    a, b, c, d, e, f = matrix
    return np.array([
        [a, c, e],
        [b, d, f],
        [0.0, 0.0, 1.0],
    ])


def invert_matrix(matrix: Matrix) -> Optional[Matrix]:
    """Invert an affine matrix, or return None when it is singular."""
    a, b, c, d, _, _ = matrix
    if abs(a * d - b * c) < MATRIX_EPSILON:
        return None

    inverse = np.linalg.inv(matrix_to_array(matrix))
    return (
        float(inverse[0, 0]),
        float(inverse[1, 0]),
        float(inverse[0, 1]),
        float(inverse[1, 1]),
        float(inverse[0, 2]),
        float(inverse[1, 2]),
    )
