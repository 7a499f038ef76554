"""Integration tests for the on-disk page layout."""

from pathlib import Path

import pytest

from extractors.page_extractor import extract_pages
from extractors.page_writer import (
    extract_to_directory,
    pages_dir_for,
    read_page_from_disk,
    read_pages_from_disk,
    write_page_record,
)
from tests.conftest import open_png


class TestExtractToDirectory:
    """Tests for writing a document into page directories."""

    def test_layout(self, clip_pdf_bytes: bytes, write_pdf, tmp_path: Path) -> None:
        """Each page gets page.png, text.txt and an images directory."""
        pages_dir = extract_to_directory(write_pdf(clip_pdf_bytes), output_root=tmp_path / "books")

        assert pages_dir == tmp_path / "books" / "test-book" / "extract" / "pages"
        assert sorted(p.name for p in pages_dir.iterdir()) == ["pg001", "pg002", "pg003"]

        page_dir = pages_dir / "pg001"
        assert open_png((page_dir / "page.png").read_bytes()).mode == "RGB"
        assert "Clipped fills" in (page_dir / "text.txt").read_text(encoding="utf-8")
        assert sorted(p.name for p in (page_dir / "images").iterdir()) == [
            "pg001_im001.png", "pg001_im002.png", "pg001_im003.png", "pg001_im004.png"
        ]

    def test_page_without_images_has_no_images_dir(self, text_pdf_bytes: bytes, write_pdf, tmp_path: Path) -> None:
        """The images directory is omitted when a page has no images."""
        pages_dir = extract_to_directory(write_pdf(text_pdf_bytes, "notes.pdf"), output_root=tmp_path)

        assert (pages_dir / "pg001" / "page.png").exists()
        assert not (pages_dir / "pg001" / "images").exists()

    def test_progress_after_each_write(self, clip_pdf_bytes: bytes, write_pdf, tmp_path: Path) -> None:
        """Progress for a page fires once its directory exists."""
        seen = []
        pages_dir = pages_dir_for(tmp_path, "test-book")

        def on_progress(event) -> None:
            seen.append((event.page, (pages_dir / f"pg{event.page:03d}" / "page.png").exists()))

        extract_to_directory(write_pdf(clip_pdf_bytes), output_root=tmp_path, on_progress=on_progress)

        assert seen == [(1, True), (2, True), (3, True)]

    def test_explicit_label(self, clip_pdf_bytes: bytes, write_pdf, tmp_path: Path) -> None:
        """A label overrides the directory name."""
        pages_dir = extract_to_directory(write_pdf(clip_pdf_bytes), output_root=tmp_path, end_page=1, label="custom")

        assert pages_dir == tmp_path / "custom" / "extract" / "pages"

    def test_missing_pdf(self, tmp_path: Path) -> None:
        """A missing PDF raises before anything is written."""
        with pytest.raises(FileNotFoundError):
            extract_to_directory(tmp_path / "missing.pdf", output_root=tmp_path / "out")

        assert not (tmp_path / "out").exists()


class TestResume:
    """Tests for reusing a stored extraction."""

    def test_resume_reuses_stored_pages(self, clip_pdf_bytes: bytes, write_pdf, tmp_path: Path) -> None:
        """With resume, stored pages are kept and their progress replayed."""
        pdf_path = write_pdf(clip_pdf_bytes)
        pages_dir = extract_to_directory(pdf_path, output_root=tmp_path)
        marker = pages_dir / "pg001" / "text.txt"
        marker.write_text("kept", encoding="utf-8")

        events = []
        assert extract_to_directory(pdf_path, output_root=tmp_path, resume=True, on_progress=events.append) == pages_dir

        assert marker.read_text(encoding="utf-8") == "kept"
        assert [(e.page, e.totalPages) for e in events] == [(1, 3), (2, 3), (3, 3)]

    def test_without_resume_pages_are_rewritten(self, clip_pdf_bytes: bytes, write_pdf, tmp_path: Path) -> None:
        """Without resume, stored pages are replaced."""
        pdf_path = write_pdf(clip_pdf_bytes)
        pages_dir = extract_to_directory(pdf_path, output_root=tmp_path, end_page=1)
        marker = pages_dir / "pg001" / "text.txt"
        marker.write_text("stale", encoding="utf-8")

        extract_to_directory(pdf_path, output_root=tmp_path, end_page=1)

        assert "Clipped fills" in marker.read_text(encoding="utf-8")

    def test_resume_without_stored_first_page_extracts(self, clip_pdf_bytes: bytes, write_pdf, tmp_path: Path) -> None:
        """Resume extracts normally when the first requested page is not stored."""
        pdf_path = write_pdf(clip_pdf_bytes)
        extract_to_directory(pdf_path, output_root=tmp_path, end_page=1)

        pages_dir = extract_to_directory(pdf_path, output_root=tmp_path, start_page=2, resume=True)

        assert sorted(p.name for p in pages_dir.iterdir()) == ["pg001", "pg002", "pg003"]


class TestReadBack:
    """Tests for loading stored pages."""

    def test_round_trip(self, clip_pdf_bytes: bytes, tmp_path: Path) -> None:
        """Stored records read back with the same ids, text and bytes."""
        records = extract_pages(clip_pdf_bytes)
        for record in records:
            write_page_record(tmp_path, record)

        loaded = read_pages_from_disk(tmp_path)

        assert [r.page_id for r in loaded] == ["pg001", "pg002", "pg003"]
        for original, stored in zip(records, loaded):
            assert stored.raw_text == original.raw_text
            assert stored.page_image.image_id == original.page_image.image_id
            assert stored.page_image.png_bytes == original.page_image.png_bytes
            assert stored.page_image.content_hash == original.page_image.content_hash
            assert [(i.image_id, i.width_px, i.height_px, i.content_hash) for i in stored.images] == [
                (i.image_id, i.width_px, i.height_px, i.content_hash) for i in original.images
            ]

    def test_non_page_entries_are_ignored(self, text_pdf_bytes: bytes, tmp_path: Path) -> None:
        """Staging leftovers and stray files are not pages."""
        write_page_record(tmp_path, extract_pages(text_pdf_bytes)[0])
        (tmp_path / ".pg002-abc123").mkdir()
        (tmp_path / "notes.txt").write_text("x")

        assert [r.page_id for r in read_pages_from_disk(tmp_path)] == ["pg001"]

    def test_missing_directory(self, tmp_path: Path) -> None:
        """A missing pages directory holds no pages."""
        assert read_pages_from_disk(tmp_path / "absent") == []

    def test_not_a_page_directory(self, tmp_path: Path) -> None:
        """Reading a directory that is not named like a page fails."""
        with pytest.raises(ValueError, match="Not a page directory"):
            read_page_from_disk(tmp_path)

    def test_rewrite_replaces_page(self, text_pdf_bytes: bytes, clip_pdf_bytes: bytes, tmp_path: Path) -> None:
        """Writing a page again replaces its directory and leaves no backups."""
        write_page_record(tmp_path, extract_pages(clip_pdf_bytes, end_page=1)[0])
        write_page_record(tmp_path, extract_pages(text_pdf_bytes)[0])

        assert not (tmp_path / "pg001" / "images").exists()
        assert [p.name for p in tmp_path.iterdir()] == ["pg001"]
