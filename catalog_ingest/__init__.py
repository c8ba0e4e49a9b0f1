"""
catalog-ingest: catalog text extraction, normalization and community
descriptor ingestion for the student resource directory.
"""

__version__ = "2.1.0"
