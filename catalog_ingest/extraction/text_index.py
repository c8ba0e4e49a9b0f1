# catalog_ingest/extraction/text_index.py
from __future__ import annotations

import re
from typing import Dict, Iterator, List, Tuple

# Upper-case alphanumeric tokens: C172, PACA101, UTH, MGMT ...
TOKEN_RE = re.compile(r"\b[A-Z][A-Z0-9]*\b")
# Standard-shaped codes anywhere, including column-collapsed "3000C715Org..."
ANY_COURSE_CODE_RE = re.compile(r"[A-Z]\d{3,4}[A-Z]?")


class CodeIndex:
    """
    Occurrence index over one document's text, built once per parse.

    Lookups replace repeated `\\bCODE\\b` scans of the full text. The index is
    never mutated after construction, so every extractor can share it.
    """

    def __init__(self, text: str):
        self._text = text
        offsets: Dict[str, List[int]] = {}
        for m in TOKEN_RE.finditer(text):
            offsets.setdefault(m.group(0), []).append(m.start())
        self._offsets: Dict[str, Tuple[int, ...]] = {k: tuple(v) for k, v in offsets.items()}

        seen: Dict[str, None] = {}
        for m in ANY_COURSE_CODE_RE.finditer(text):
            seen.setdefault(m.group(0), None)
        self._course_codes: Tuple[str, ...] = tuple(seen)

    @property
    def text(self) -> str:
        return self._text

    @property
    def course_codes(self) -> Tuple[str, ...]:
        """Distinct standard-shaped codes in order of first appearance."""
        return self._course_codes

    def offsets(self, code: str) -> Tuple[int, ...]:
        return self._offsets.get(code, ())

    def contains(self, code: str) -> bool:
        return code in self._offsets

    def contexts(self, code: str, before: int, after: int) -> Iterator[str]:
        """Yield the text window around each word-bounded occurrence of `code`."""
        n = len(self._text)
        for pos in self._offsets.get(code, ()):
            yield self._text[max(0, pos - before):min(n, pos + after)]
