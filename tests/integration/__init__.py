"""Integration tests running real PDFs through PyMuPDF end to end."""
