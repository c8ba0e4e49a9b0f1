"""
Fatal errors for one document's pipeline.

Extractors never raise for "nothing found"; only these reach the
orchestrator, which decides whether to retry.
"""


class CatalogIngestError(RuntimeError):
    """Base class for document-level failures."""
    retryable = True


class CatalogReadError(CatalogIngestError):
    """Raised when the source document is missing, unreadable or has no text."""


class CatalogTooLargeError(CatalogIngestError):
    """Raised when the source document exceeds the configured size limit."""
    retryable = False


class ParseTimeoutError(CatalogIngestError):
    """Raised when the whole-document parse exceeds the configured timeout."""
