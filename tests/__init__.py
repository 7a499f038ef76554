"""Test package for the PDF visual-content extractor.

Structure:
    - unit/: Resolvers, grouping, walker, collector, compositor, config, validation
    - integration/: End-to-end extraction, directory output, CLI and HTTP

PDFs are generated in memory by the builder in conftest.py; no binary fixtures.
"""
