"""Unit tests for overlap grouping and size filtering."""

import itertools
import xml.etree.ElementTree as ET
from typing import Optional

from models.shape_types import PaintOp, ShapeCandidate, ShapeKind
from utils.geometry import Bbox
from utils.shape_grouping import DisjointSet, clip_key, filter_groups, group_shapes


def make_candidate(
    seqno: int,
    bbox: Bbox,
    kind: ShapeKind = ShapeKind.VECTOR,
    clip_bbox: Optional[Bbox] = None,
) -> ShapeCandidate:
    """Candidate whose page bbox equals its local bbox."""
    op = PaintOp(kind=kind, seqno=seqno, element=ET.Element("path", {"d": ""}))
    return ShapeCandidate(
        kind=kind,
        seqno=seqno,
        local_bbox=bbox,
        transform=None,
        clip_chain=(),
        source_ref=op,
        bbox=bbox,
        clip_bbox=clip_bbox,
    )


def partition(groups) -> set:
    return {frozenset(member.seqno for member in group.members) for group in groups}


class TestDisjointSet:
    """Tests for the union-find structure."""

    def test_components(self) -> None:
        """United indices share a root; others stay apart."""
        disjoint_set = DisjointSet(5)
        disjoint_set.union(0, 1)
        disjoint_set.union(3, 4)
        disjoint_set.union(1, 0)

        assert disjoint_set.find(0) == disjoint_set.find(1)
        assert disjoint_set.find(2) != disjoint_set.find(0)
        assert sorted(disjoint_set.components().values()) == [[0, 1], [2], [3, 4]]

    def test_transitive_union(self) -> None:
        """Chains of unions end in one component."""
        disjoint_set = DisjointSet(4)
        disjoint_set.union(0, 1)
        disjoint_set.union(2, 3)
        disjoint_set.union(1, 3)

        assert len(disjoint_set.components()) == 1


class TestGroupShapes:
    """Tests for merging candidates into groups."""

    def test_empty_input(self) -> None:
        """No candidates, no groups."""
        assert group_shapes([]) == []

    def test_overlapping_candidates_merge(self) -> None:
        """Overlapping candidates merge; a distant one stays alone."""
        groups = group_shapes([
            make_candidate(0, (0, 0, 10, 10)),
            make_candidate(1, (5, 5, 15, 15)),
            make_candidate(2, (100, 100, 110, 110)),
        ])

        assert partition(groups) == {frozenset({0, 1}), frozenset({2})}
        assert groups[0].bbox == (0, 0, 15, 15)

    def test_overlap_is_transitive(self) -> None:
        """A and C merge through B even though they never touch."""
        groups = group_shapes([
            make_candidate(0, (0, 0, 10, 10)),
            make_candidate(1, (20, 0, 30, 10)),
            make_candidate(2, (8, 0, 22, 10)),
        ])

        assert partition(groups) == {frozenset({0, 1, 2})}

    def test_touching_candidates_merge(self) -> None:
        """Shared edges count as overlap."""
        groups = group_shapes([
            make_candidate(0, (0, 0, 10, 10)),
            make_candidate(1, (10, 0, 20, 10)),
        ])

        assert len(groups) == 1

    def test_kinds_never_merge(self) -> None:
        """Raster and vector candidates stay apart even when identical in place."""
        groups = group_shapes([
            make_candidate(0, (0, 0, 10, 10), ShapeKind.VECTOR),
            make_candidate(1, (0, 0, 10, 10), ShapeKind.RASTER),
        ])

        assert [group.kind for group in groups] == [ShapeKind.VECTOR, ShapeKind.RASTER]

    def test_different_clips_never_merge(self) -> None:
        """Candidates under different clips stay apart."""
        groups = group_shapes([
            make_candidate(0, (0, 0, 50, 50), clip_bbox=(0, 0, 40, 40)),
            make_candidate(1, (0, 0, 50, 50), clip_bbox=(10, 10, 50, 50)),
            make_candidate(2, (0, 0, 50, 50)),
        ])

        assert len(groups) == 3

    def test_clip_float_noise_is_ignored(self) -> None:
        """Clips equal up to float noise count as the same clip."""
        groups = group_shapes([
            make_candidate(0, (0, 0, 50, 50), clip_bbox=(0, 0, 40, 40)),
            make_candidate(1, (0, 0, 50, 50), clip_bbox=(0, 0, 40.0000001, 40)),
        ])

        assert len(groups) == 1
        assert clip_key((0, 0, 40.0000001, 40)) == clip_key((0, 0, 40, 40))

    def test_groups_ordered_by_earliest_member(self) -> None:
        """Groups come out in discovery order and keep members in paint order."""
        groups = group_shapes([
            make_candidate(3, (0, 0, 10, 10)),
            make_candidate(1, (100, 0, 110, 10)),
            make_candidate(0, (5, 5, 12, 12)),
        ])

        assert [group.seqno for group in groups] == [0, 1]
        assert [member.seqno for member in groups[0].members] == [0, 3]

    def test_partition_independent_of_input_order(self) -> None:
        """Every permutation of the input yields the same groups in the same order."""
        candidates = [
            make_candidate(0, (0, 0, 10, 10)),
            make_candidate(1, (20, 0, 30, 10)),
            make_candidate(2, (8, 0, 22, 10)),
            make_candidate(3, (200, 200, 230, 230)),
            make_candidate(4, (0, 0, 10, 10), ShapeKind.RASTER),
        ]
        expected = [
            [member.seqno for member in group.members]
            for group in group_shapes(candidates)
        ]

        for permutation in itertools.permutations(candidates):
            groups = group_shapes(list(permutation))
            assert [[member.seqno for member in group.members] for group in groups] == expected

    def test_overlap_margin(self) -> None:
        """A margin merges candidates separated by a small gap."""
        candidates = [
            make_candidate(0, (0, 0, 10, 10)),
            make_candidate(1, (11, 0, 20, 10)),
        ]

        assert len(group_shapes(candidates)) == 2
        assert len(group_shapes(candidates, overlap_margin=1.5)) == 1


class TestFilterGroups:
    """Tests for dropping decorative groups."""

    def test_small_groups_are_dropped(self) -> None:
        """A 10x10 group is decoration."""
        groups = group_shapes([make_candidate(0, (0, 0, 10, 10))])

        assert filter_groups(groups) == []

    def test_one_large_dimension_is_enough(self) -> None:
        """A thin but long group is kept."""
        groups = group_shapes([make_candidate(0, (0, 0, 5, 30))])

        assert len(filter_groups(groups)) == 1

    def test_threshold_is_inclusive(self) -> None:
        """A group exactly at the threshold survives; just below it does not."""
        groups = group_shapes([
            make_candidate(0, (0, 0, 20, 20)),
            make_candidate(1, (100, 100, 119.9, 119.9)),
        ])

        assert [group.seqno for group in filter_groups(groups)] == [0]

    def test_clip_limits_visible_size(self) -> None:
        """Size is measured on the part left visible by the clip."""
        groups = group_shapes([make_candidate(0, (0, 0, 100, 100), clip_bbox=(0, 0, 5, 5))])

        assert filter_groups(groups) == []

    def test_fully_clipped_group_is_dropped(self) -> None:
        """A group that lies outside its clip is dropped."""
        groups = group_shapes([make_candidate(0, (0, 0, 100, 100), clip_bbox=(200, 200, 300, 300))])

        assert filter_groups(groups) == []

    def test_order_is_preserved(self) -> None:
        """Surviving groups keep discovery order."""
        groups = group_shapes([
            make_candidate(0, (0, 0, 50, 50)),
            make_candidate(1, (100, 100, 105, 105)),
            make_candidate(2, (200, 200, 260, 260)),
        ])

        assert [group.seqno for group in filter_groups(groups)] == [0, 2]

    def test_custom_threshold(self) -> None:
        """The threshold is configurable."""
        groups = group_shapes([make_candidate(0, (0, 0, 10, 10))])

        assert len(filter_groups(groups, min_dimension=5)) == 1
