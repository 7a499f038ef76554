"""
Shape Grouping Utilities

Merges overlapping shape candidates that share a clip into groups and drops
groups too small to be meaningful standalone images (bullets, rules and other
decoration).
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

from models.shape_types import ShapeCandidate, ShapeGroup, ShapeKind
from utils.geometry import Bbox, bboxes_overlap, union_bboxes

logger = logging.getLogger(__name__)

MIN_VECTOR_DIMENSION = 20.0

# Clip boxes are compared after rounding so float noise from different
# transform paths does not split a clip into two
CLIP_KEY_PRECISION = 3


class DisjointSet:
    """
    Union-find over integer indices with path compression and union by rank.

    The resulting partition depends only on which pairs were united, never on
    the order of the union calls.
    """

    def __init__(self, size: int):
        self.parent = list(range(size))
        self.rank = [0] * size

    def find(self, x: int) -> int:
        root = x
        while self.parent[root] != root:
            root = self.parent[root]
        # Path compression
        while self.parent[x] != root:
            self.parent[x], x = root, self.parent[x]
        return root

    def union(self, x: int, y: int) -> None:
        root_x, root_y = self.find(x), self.find(y)
        if root_x == root_y:
            return
        if self.rank[root_x] < self.rank[root_y]:
            root_x, root_y = root_y, root_x
        self.parent[root_y] = root_x
        if self.rank[root_x] == self.rank[root_y]:
            self.rank[root_x] += 1

    def components(self) -> Dict[int, List[int]]:
        """Map each root to its member indices in ascending order."""
        groups: Dict[int, List[int]] = defaultdict(list)
        for i in range(len(self.parent)):
            groups[self.find(i)].append(i)
        return groups


def clip_key(bbox: Optional[Bbox]) -> Optional[Tuple[float, ...]]:
    """Hashable identity of an effective clip box."""
    if bbox is None:
        return None
    return tuple(round(v, CLIP_KEY_PRECISION) for v in bbox)


def group_shapes(
    candidates: Sequence[ShapeCandidate],
    overlap_margin: float = 0.0
) -> List[ShapeGroup]:
    """
    Merge overlapping candidates into groups.

    Two candidates end up in the same group when they have the same kind,
    the same effective clip (or both none), and their boxes intersect,
    directly or through a chain of other candidates. Touching boxes count as
    intersecting.

    Args:
        candidates: Shape candidates of one page
        overlap_margin: Extra distance in points still treated as overlap

    Returns:
        Groups ordered by their earliest member, members kept in paint order
    """
    if not candidates:
        return []

    # Only candidates sharing kind and clip can ever merge
    buckets: Dict[Tuple[ShapeKind, Optional[Tuple[float, ...]]], List[int]] = defaultdict(list)
    for index, candidate in enumerate(candidates):
        buckets[(candidate.kind, clip_key(candidate.clip_bbox))].append(index)

    disjoint_set = DisjointSet(len(candidates))
    for indices in buckets.values():
        for pos, i in enumerate(indices):
            for j in indices[pos + 1:]:
                if bboxes_overlap(candidates[i].bbox, candidates[j].bbox, overlap_margin):
                    disjoint_set.union(i, j)

    groups: List[ShapeGroup] = []
    for member_indices in disjoint_set.components().values():
        members = sorted((candidates[i] for i in member_indices), key=lambda c: c.seqno)
        groups.append(ShapeGroup(
            kind=members[0].kind,
            members=members,
            bbox=union_bboxes(m.bbox for m in members),
            clip_bbox=members[0].clip_bbox,
        ))

    groups.sort(key=lambda g: g.seqno)
    logger.debug(f"Grouped {len(candidates)} candidates into {len(groups)} groups")
    return groups


def filter_groups(
    groups: Sequence[ShapeGroup],
    min_dimension: float = MIN_VECTOR_DIMENSION
) -> List[ShapeGroup]:
    """
    Drop groups whose visible width and height are both below min_dimension.

    Groups clipped away entirely are dropped as well. Order is preserved.
    """
    kept = []
    for group in groups:
        if group.visible_bbox is None:
            logger.debug(f"Dropping fully clipped {group!r}")
            continue
        if group.width < min_dimension and group.height < min_dimension:
            logger.debug(f"Dropping decorative {group!r}")
            continue
        kept.append(group)

    if len(kept) != len(groups):
        logger.debug(f"Filtered {len(groups) - len(kept)} of {len(groups)} groups")
    return kept
