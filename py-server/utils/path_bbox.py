"""
Path bounding box calculation.

Parses SVG path data into an axis-aligned bounding box in the path's local
coordinate space. Curves are bounded by their control points rather than the
true curve extremum, which over-approximates but never under-approximates
the painted area.
"""

import re
import logging
from typing import List, Optional, Tuple

from utils.geometry import Bbox

logger = logging.getLogger(__name__)

TOKEN_RE = re.compile(
    r'([MmLlHhVvCcSsQqTtAaZz])|([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)'
)

# Number of parameters consumed by one repetition of each command
COMMAND_ARITY = {
    'M': 2, 'L': 2, 'H': 1, 'V': 1,
    'C': 6, 'S': 4, 'Q': 4, 'T': 2,
    'A': 7, 'Z': 0,
}


def tokenize_path(descriptor: str) -> List[Tuple[str, List[float]]]:
    """
    Split path data into (command, parameters) pairs.

    Numbers appearing before the first command and characters that are
    neither commands nor numbers are dropped.

    Args:
        descriptor: SVG path data, e.g. "M10 20L30-40Z"

    Returns:
        List of (command letter, parameter list) in path order
    """
    commands: List[Tuple[str, List[float]]] = []
    for command, number in TOKEN_RE.findall(descriptor or ''):
        if command:
            commands.append((command, []))
        elif commands:
            try:
                commands[-1][1].append(float(number))
            except ValueError:
                continue
    return commands


class _BoundsAccumulator:
    """Running min/max over the points a path visits."""

    def __init__(self):
        self.min_x = float('inf')
        self.min_y = float('inf')
        self.max_x = float('-inf')
        self.max_y = float('-inf')
        self.count = 0

    def add(self, x: float, y: float) -> None:
        self.min_x = min(self.min_x, x)
        self.min_y = min(self.min_y, y)
        self.max_x = max(self.max_x, x)
        self.max_y = max(self.max_y, y)
        self.count += 1

    def result(self) -> Optional[Bbox]:
        if self.count == 0:
            return None
        return (self.min_x, self.min_y, self.max_x, self.max_y)


def resolve_path_bbox(descriptor: str) -> Optional[Bbox]:
    """
    Calculate the bounding box of SVG path data.

    Relative commands accumulate from the current pen position. Cubic and
    quadratic segments contribute their control points and end point; arcs
    contribute their end point. Close-path returns the pen to the subpath
    start without adding new extrema.

    Args:
        descriptor: SVG path data string

    Returns:
        (min_x, min_y, max_x, max_y), or None when no coordinate pair
        could be read. Malformed input never raises.
    """
    if not descriptor:
        return None

    bounds = _BoundsAccumulator()
    current_x, current_y = 0.0, 0.0
    start_x, start_y = 0.0, 0.0

    for command, params in tokenize_path(descriptor):
        upper = command.upper()
        relative = command != upper
        arity = COMMAND_ARITY[upper]

        if upper == 'Z':
            current_x, current_y = start_x, start_y
            continue

        # Incomplete trailing parameter groups are ignored
        usable = len(params) - (len(params) % arity)
        for index in range(0, usable, arity):
            group = params[index:index + arity]
            base_x, base_y = (current_x, current_y) if relative else (0.0, 0.0)

            if upper == 'H':
                current_x = group[0] + (current_x if relative else 0.0)
                bounds.add(current_x, current_y)
            elif upper == 'V':
                current_y = group[0] + (current_y if relative else 0.0)
                bounds.add(current_x, current_y)
            elif upper == 'A':
                current_x = group[5] + base_x
                current_y = group[6] + base_y
                bounds.add(current_x, current_y)
            else:
                # M, L, T, C, S, Q: every pair in the group is a point
                for pair in range(0, arity, 2):
                    bounds.add(group[pair] + base_x, group[pair + 1] + base_y)
                current_x = group[arity - 2] + base_x
                current_y = group[arity - 1] + base_y

                # The first pair of a moveto starts a new subpath; extra pairs
                # are implicit linetos
                if upper == 'M' and index == 0:
                    start_x, start_y = current_x, current_y

    result = bounds.result()
    if result is None:
        logger.debug(f"Path data yielded no coordinates: {descriptor[:40]!r}")
    return result


def expand_bbox(bbox: Bbox, amount: float) -> Bbox:
    """Grow a bbox by amount on every side (used for stroke widths)."""
    if amount <= 0:
        return bbox
    min_x, min_y, max_x, max_y = bbox
    return (min_x - amount, min_y - amount, max_x + amount, max_y + amount)
