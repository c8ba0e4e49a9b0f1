# catalog_ingest/extraction/__init__.py
"""
Catalog extraction package.

Public API:
- parse_catalog_text(text, filename, page_count=0, page_starts=None, pdf_info=None) -> CatalogParseResult
- parse_catalog_file(path, settings) -> CatalogRunResult
- parse_all_catalogs(settings) -> BatchSummary
"""

from .pipeline import parse_all_catalogs, parse_catalog_file, parse_catalog_text

__all__ = ["parse_catalog_text", "parse_catalog_file", "parse_all_catalogs"]
