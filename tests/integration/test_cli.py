"""Integration tests for the pdf-visuals command line."""

from pathlib import Path

import pytest

from cli import EXIT_ERROR, EXIT_OK, build_parser, main


class TestParser:
    """Tests for argument parsing."""

    def test_defaults(self) -> None:
        """extract only needs a PDF path."""
        args = build_parser().parse_args(["extract", "book.pdf"])

        assert args.output_root == "books"
        assert args.start_page == 1
        assert args.end_page is None
        assert args.resume is False
        assert args.log_level == "WARNING"

    def test_command_is_required(self) -> None:
        """Running without a subcommand is a usage error."""
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestExtractCommand:
    """Tests for running extract end to end."""

    def test_extract_writes_pages(self, clip_pdf_bytes: bytes, write_pdf, tmp_path: Path) -> None:
        """A successful run exits 0 and writes the page directories."""
        pdf_path = write_pdf(clip_pdf_bytes)
        output_root = tmp_path / "books"

        exit_code = main([
            "extract", str(pdf_path),
            "--output-root", str(output_root),
            "--start-page", "2",
        ])

        pages_dir = output_root / "test-book" / "extract" / "pages"
        assert exit_code == EXIT_OK
        assert sorted(p.name for p in pages_dir.iterdir()) == ["pg002", "pg003"]

    def test_resume_flag(self, clip_pdf_bytes: bytes, write_pdf, tmp_path: Path) -> None:
        """A resumed run keeps existing pages."""
        pdf_path = write_pdf(clip_pdf_bytes)
        args = ["extract", str(pdf_path), "--output-root", str(tmp_path), "--end-page", "1"]
        assert main(args) == EXIT_OK

        text_file = tmp_path / "test-book" / "extract" / "pages" / "pg001" / "text.txt"
        text_file.write_text("kept", encoding="utf-8")

        assert main(args + ["--resume"]) == EXIT_OK
        assert text_file.read_text(encoding="utf-8") == "kept"

    def test_missing_file_exits_with_error(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        """A missing PDF reports an error and exits 1."""
        exit_code = main(["extract", str(tmp_path / "missing.pdf"), "--output-root", str(tmp_path)])

        assert exit_code == EXIT_ERROR
        assert "Error:" in capsys.readouterr().err

    def test_invalid_range_exits_with_error(self, clip_pdf_bytes: bytes, write_pdf, tmp_path: Path) -> None:
        """A start page past the document exits 1."""
        exit_code = main([
            "extract", str(write_pdf(clip_pdf_bytes)),
            "--output-root", str(tmp_path),
            "--start-page", "9",
        ])

        assert exit_code == EXIT_ERROR
