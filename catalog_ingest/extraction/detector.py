# catalog_ingest/extraction/detector.py
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional

YEAR_RE = re.compile(r"(?<!\d)((?:19|20)\d{2})(?!\d)")
DATE_TOKEN_RE = re.compile(r"(?<!\d)((?:19|20)\d{2})[-_.]?(0[1-9]|1[0-2])(?!\d)")

LEGACY = "legacy"
MODERN = "modern"
ENHANCED = "enhanced"


@dataclass(frozen=True)
class CatalogFormat:
    generation: str  # legacy | modern | enhanced
    version: str
    era: str
    strategy: str
    year: int

    @property
    def is_legacy(self) -> bool:
        return self.generation == LEGACY


def _year_from(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    m = YEAR_RE.search(value)
    return int(m.group(1)) if m else None


def detect_catalog_format(
    filename: str,
    sample: Optional[str] = None,
    today: Optional[date] = None,
) -> CatalogFormat:
    """
    Pick an extraction generation from the catalog's year.

    The year comes from the filename, then from a sample of the document,
    then from today's date. Never fails: a wrong guess only changes which
    ordered strategy list the course extractor runs.
    """
    year = _year_from(Path(filename).name) or _year_from(sample[:2000] if sample else None)
    if year is None:
        year = (today or date.today()).year

    if year <= 2020:
        return CatalogFormat(LEGACY, "v1.0-legacy", f"{year} (Legacy)", "legacy-embedded-ccn", year)
    if year <= 2023:
        return CatalogFormat(MODERN, "v2.0-modern", f"{year} (Modern)", "structured-tables", year)
    return CatalogFormat(ENHANCED, "v2.1-current", f"{year} (Current)", "enhanced-structured", year)


def catalog_date_token(filename: str) -> str:
    """
    'catalog-2025-08.pdf' -> '2025-08', 'WGU_Catalog_2019.pdf' -> '2019'.

    Falls back to a sanitized file stem when no date is present.
    """
    name = Path(filename).name
    m = DATE_TOKEN_RE.search(name)
    if m:
        return f"{m.group(1)}-{m.group(2)}"
    year = _year_from(name)
    if year:
        return str(year)
    stem = Path(filename).stem
    return re.sub(r"[^A-Za-z0-9_-]+", "-", stem).strip("-").lower() or "catalog"


def output_basename(filename: str) -> str:
    token = catalog_date_token(filename)
    return token if token.startswith("catalog") else f"catalog-{token}"
