# pdfplumber extract, image-only heuristics (OCR is out of scope)

# catalog_ingest/extraction/pdf_text.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import CatalogReadError

PDF_VERSION_RE = re.compile(rb"%PDF-(\d\.\d+)")


@dataclass(frozen=True)
class DocumentText:
    text: str
    page_count: int
    page_starts: List[int] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)


def extract_pdf_text_by_page(pdf_path: str) -> List[str]:
    """
    Extract text per page using pdfplumber.

    Notes:
    - This will return empty strings for image-only PDFs (scans).
    """
    import pdfplumber  # local import to reduce editor import sensitivity

    pages: List[str] = []
    with pdfplumber.open(pdf_path) as pdf:
        for page in pdf.pages:
            t = page.extract_text() or ""
            t = re.sub(r"[ \t]+", " ", t)
            pages.append(t.strip())
    return pages


def read_pdf_metadata(pdf_path: str) -> Dict[str, Any]:
    import pdfplumber

    meta: Dict[str, Any] = {}
    with open(pdf_path, "rb") as f:
        m = PDF_VERSION_RE.search(f.read(32))
        if m:
            meta["version"] = m.group(1).decode("ascii")

    with pdfplumber.open(pdf_path) as pdf:
        info = pdf.metadata or {}
        for src, dst in (("Title", "title"), ("Author", "author"), ("Producer", "producer")):
            val = info.get(src)
            if isinstance(val, bytes):
                val = val.decode("utf-8", errors="replace")
            if isinstance(val, str) and val.strip():
                meta[dst] = val.strip()
        meta["pages"] = len(pdf.pages)
    return meta


def looks_like_image_only(pages_text: List[str], min_chars_per_page: int = 40) -> bool:
    """
    Heuristic: if >=80% pages have fewer than min_chars_per_page characters, treat as image-only.
    """
    if not pages_text:
        return True
    low = sum(1 for t in pages_text if len(t) < min_chars_per_page)
    return (low / max(len(pages_text), 1)) >= 0.8


def join_pages(pages_text: List[str]) -> tuple[str, List[int]]:
    """Join pages with newlines, returning the text and each page's start offset."""
    starts: List[int] = []
    pos = 0
    for t in pages_text:
        starts.append(pos)
        pos += len(t) + 1
    return "\n".join(pages_text), starts


def extract_document_text(pdf_path: str | Path) -> DocumentText:
    """
    Text provider for the catalog pipeline: one linear text stream plus page info.

    Raises CatalogReadError when the file cannot be opened or yields no text at all.
    """
    path = str(pdf_path)
    try:
        pages = extract_pdf_text_by_page(path)
        meta = read_pdf_metadata(path)
    except CatalogReadError:
        raise
    except Exception as e:
        raise CatalogReadError(f"Failed to load PDF {path}: {e}") from e

    text, starts = join_pages(pages)
    if not text.strip():
        raise CatalogReadError(f"No extractable text in {path} (image-only or empty document)")

    meta["image_only"] = looks_like_image_only(pages)
    return DocumentText(text=text, page_count=len(pages), page_starts=starts, metadata=meta)
