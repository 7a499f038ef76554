"""Unit tests for resolving paint operations into shape candidates."""

import logging

import pytest

from models.shape_types import ShapeKind
from processors.paint_walker import enumerate_paint_ops
from processors.shape_collector import ShapeCollector

SVG_OPEN = (
    '<svg xmlns="http://www.w3.org/2000/svg" xmlns:xlink="http://www.w3.org/1999/xlink" '
    'width="612" height="792" viewBox="0 0 612 792">'
)


def collect(body: str, **kwargs):
    collector = ShapeCollector(612, 792, **kwargs)
    return collector.collect(enumerate_paint_ops(SVG_OPEN + body + "</svg>"))


class TestVectorCandidates:
    """Tests for path and rect geometry."""

    def test_bbox_in_page_space(self) -> None:
        """The local bbox is mapped through the op's matrix."""
        candidates = collect('<path transform="matrix(1,0,0,-1,0,792)" d="M100 100H200V150H100Z"/>')

        assert candidates[0].local_bbox == (100, 100, 200, 150)
        assert candidates[0].bbox == (100, 642, 200, 692)
        assert candidates[0].clip_bbox is None

    def test_rect_element(self) -> None:
        """Rect elements resolve from x/y/width/height."""
        candidates = collect('<rect x="10" y="20" width="30" height="40"/>')

        assert candidates[0].bbox == (10, 20, 40, 60)

    def test_stroke_padding(self) -> None:
        """Stroked paths grow by half their stroke width."""
        body = '<path stroke="#000000" stroke-width="4" d="M10 10H30V30H10Z"/>'

        assert collect(body)[0].bbox == (8, 8, 32, 32)
        assert collect(body, pad_strokes=False)[0].bbox == (10, 10, 30, 30)

    def test_unstroked_path_is_not_padded(self) -> None:
        """stroke=none leaves the bbox alone."""
        candidates = collect('<path stroke="none" stroke-width="4" d="M10 10H30V30H10Z"/>')

        assert candidates[0].bbox == (10, 10, 30, 30)

    def test_path_without_geometry_is_skipped(self) -> None:
        """A path whose data yields no points is not a candidate."""
        assert collect('<path d=""/><path d="M0 0H10V10H0Z"/>')[0].seqno == 1

    def test_vector_shapes_can_be_excluded(self) -> None:
        """include_vector_shapes=False drops every vector paint."""
        assert collect('<path d="M0 0H10V10H0Z"/>', include_vector_shapes=False) == []


class TestClipResolution:
    """Tests for effective clip handling."""

    def test_clip_bbox_is_resolved(self) -> None:
        """A clip is resolved into page space and kept on the candidate."""
        candidates = collect(
            '<clipPath id="c"><path d="M100 400H300V550H100Z"/></clipPath>'
            '<g clip-path="url(#c)"><path d="M50 350H350V600H50Z"/></g>'
        )

        assert candidates[0].clip_bbox == (100, 400, 300, 550)
        assert candidates[0].visible_bbox == (100, 400, 300, 550)

    def test_page_level_clip_becomes_no_clip(self) -> None:
        """A clip covering the whole page is dropped."""
        candidates = collect(
            '<clipPath id="page"><path d="M0 0H612V792H0Z"/></clipPath>'
            '<g clip-path="url(#page)"><path d="M50 50H100V100H50Z"/></g>'
        )

        assert candidates[0].clip_bbox is None

    def test_page_level_ratio_is_configurable(self) -> None:
        """A stricter ratio keeps a large clip."""
        body = (
            '<clipPath id="big"><path d="M0 0H612V720H0Z"/></clipPath>'
            '<g clip-path="url(#big)"><path d="M50 50H100V100H50Z"/></g>'
        )

        assert collect(body)[0].clip_bbox is None
        assert collect(body, page_level_clip_ratio=0.95)[0].clip_bbox == (0, 0, 612, 720)

    def test_disjoint_nested_clips_drop_the_paint(self) -> None:
        """Nested clips that do not intersect clip the paint away."""
        candidates = collect(
            '<clipPath id="a"><path d="M0 0H10V10H0Z"/></clipPath>'
            '<clipPath id="b"><path d="M50 50H60V60H50Z"/></clipPath>'
            '<g clip-path="url(#a)"><g clip-path="url(#b)"><path d="M0 0H100V100H0Z"/></g></g>'
        )

        assert candidates == []

    def test_paint_outside_its_clip_is_dropped(self) -> None:
        """A paint that misses its clip entirely is not a candidate."""
        candidates = collect(
            '<clipPath id="c"><path d="M0 0H10V10H0Z"/></clipPath>'
            '<g clip-path="url(#c)"><path d="M200 200H300V300H200Z"/></g>'
        )

        assert candidates == []


class TestRasterCandidates:
    """Tests for embedded image candidates."""

    def test_image_is_decoded(self, png_data_uri) -> None:
        """Raster candidates carry their decoded RGBA pixels."""
        candidates = collect(
            f'<g transform="matrix(10,0,0,10,100,192)">'
            f'<image width="20" height="20" xlink:href="{png_data_uri((20, 20))}"/>'
            f'</g>'
        )

        assert candidates[0].kind == ShapeKind.RASTER
        assert candidates[0].bbox == (100, 192, 300, 392)
        assert candidates[0].image.mode == "RGBA"
        assert candidates[0].image.size == (20, 20)

    def test_undecodable_image_is_dropped(self, caplog: pytest.LogCaptureFixture) -> None:
        """Images whose data cannot be decoded are dropped with a warning."""
        with caplog.at_level(logging.WARNING, logger="processors.shape_collector"):
            candidates = collect(
                '<image width="20" height="20" xlink:href="data:image/png;base64,AAAA"/>'
                '<path d="M0 0H10V10H0Z"/>'
            )

        assert [c.kind for c in candidates] == [ShapeKind.VECTOR]
        assert "Dropping embedded image #0" in caplog.text

    def test_raster_shapes_can_be_excluded(self, png_data_uri) -> None:
        """include_raster_shapes=False drops every raster paint."""
        candidates = collect(
            f'<image width="20" height="20" xlink:href="{png_data_uri()}"/>',
            include_raster_shapes=False,
        )

        assert candidates == []
