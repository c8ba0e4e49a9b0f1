# catalog_ingest/extraction/mappings.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..workflow_logger import log_event
from .text_index import CodeIndex

# A course code must not run straight into an upper-case letter that starts no word
# ("C715A " is a different code, "C715Organizational" is a collapsed table cell).
CODE_END = r"(?![A-Z](?![a-z]))"

# SUBJ 1234 directly followed by the course code: "MGMT 3000C715Organizational"
COLLAPSED_CCN_RE = re.compile(
    r"(?<![A-Z])([A-Z]{2,6}\s+\d{3,4}[A-Z]?)([A-Z]\d{3,4}[A-Z]?)(?=[A-Z][a-z]|\d)"
)
# "C234 - Workforce Planning: Recruitment and Selection (HRM 3200)"
SAME_LINE_CCN_RE = re.compile(
    r"\b([A-Z]\d{3,4}[A-Z]?)\b(?:(?![A-Z]\d{3,4}\b)[^\n])*?\(?(?<![A-Z])([A-Z]{2,6}\s+\d{3,4}[A-Z]?)(?!\d)\)?"
)
CCN_RE = re.compile(r"(?<![A-Z])([A-Z]{2,6}\s+\d{3,4}[A-Z]?)(?!\d)")

EXPLICIT_CU_RE = re.compile(
    r"(?<![A-Za-z])([A-Z]\d{3,4}[A-Z]?)\b[^\d\n]*?(\d{1,2})\s*(?i:competency\s*units?|cus?|credits?)\b"
)
TRAILING_CU_RE = re.compile(
    r"(?<![A-Za-z])([A-Z]\d{3,4}[A-Z]?)\s*-\s*[^0-9\n]+?(\d{1,2})[ \t]*$",
    re.MULTILINE,
)
STANDALONE_NUMERAL_RE = re.compile(r"(?<![\w.])(\d{1,2})(?=\s|$)")

DETAILED_DESCRIPTION_RE = re.compile(
    r"(?<![A-Za-z])([A-Z]\d{3,4}[A-Z]?)\s*-\s*([A-Z]{2,4}\s+\d{3,5}[A-Z]?)\s*-\s*([^-]+?)\s*-\s*"
    r"((?![A-Z]\d{3})\S.*?)(?=\s+[A-Z]\d{3,4}[A-Z]?\s*-|\n\s*\n|\Z)",
    re.DOTALL,
)

# Capstones whose 4 CUs are certain. Nothing else gets a default.
CAPSTONE_CUS = {"C216": 4, "C218": 4, "C219": 4, "C498": 4}

CU_TABLE_ROW = "table-row"
CU_EXPLICIT = "explicit-phrase"
CU_TRAILING = "trailing-number"
CU_CONTEXT = "context-numeral"
CU_CAPSTONE = "capstone-allow-list"


@dataclass
class CatalogMappings:
    ccn: Dict[str, str] = field(default_factory=dict)
    cu: Dict[str, int] = field(default_factory=dict)
    cu_sources: Dict[str, str] = field(default_factory=dict)
    descriptions: Dict[str, str] = field(default_factory=dict)


def _valid_cu(n: int) -> bool:
    return 1 <= n <= 12


def _squash(s: str) -> str:
    return re.sub(r"\s+", " ", s).strip()


# ----------------------------
# CCN map
# ----------------------------
def extract_ccn_map(text: str, index: CodeIndex) -> Dict[str, str]:
    """
    Course code -> common course number, three passes in priority order.
    A code keeps the first CCN any pass assigns to it.
    """
    ccn: Dict[str, str] = {}

    collapsed = 0
    for m in COLLAPSED_CCN_RE.finditer(text):
        if m.group(2) not in ccn:
            ccn[m.group(2)] = _squash(m.group(1))
            collapsed += 1

    same_line = 0
    for m in SAME_LINE_CCN_RE.finditer(text):
        if m.group(1) not in ccn:
            ccn[m.group(1)] = _squash(m.group(2))
            same_line += 1

    nearby = 0
    for code in index.course_codes:
        if code in ccn:
            continue
        for ctx in index.contexts(code, 250, 250):
            hit = CCN_RE.search(ctx)
            if hit:
                ccn[code] = _squash(hit.group(1))
                nearby += 1
                break

    log_event(
        status="info",
        actor="mappings",
        event="ccn_map",
        extra={"collapsed_table": collapsed, "same_line": same_line, "nearby": nearby, "total": len(ccn)},
    )
    return ccn


# ----------------------------
# CU map
# ----------------------------
def _table_row_cu(text: str, code: str) -> Optional[int]:
    row_re = re.compile(
        r"(?<![A-Za-z])" + re.escape(code) + CODE_END
        + r"[A-Za-z \t&,.\-:()'/]+?(\d{1,2})(\d)(?=[ \t]*$|[A-Z]{2,6}\s+\d{3,4})",
        re.MULTILINE,
    )
    for m in row_re.finditer(text):
        cus, term = int(m.group(1)), int(m.group(2))
        if _valid_cu(cus) and 1 <= term <= 4:
            return cus
    return None


def _context_cu(index: CodeIndex, code: str) -> Optional[int]:
    for ctx in index.contexts(code, 100, 200):
        numbers = [int(n) for n in STANDALONE_NUMERAL_RE.findall(ctx)]
        numbers = [n for n in numbers if _valid_cu(n)]
        if numbers:
            preferred = next((n for n in numbers if 3 <= n <= 6), None)
            return preferred if preferred is not None else numbers[0]
    return None


def extract_cu_map(
    text: str,
    index: CodeIndex,
    ccn_map: Dict[str, str],
) -> tuple[Dict[str, int], Dict[str, str]]:
    """
    Course code -> competency units, plus which heuristic produced each value.

    Heuristics run in a fixed order and a code keeps the first value found.
    When none fires the code stays unmapped; no default is ever invented.
    """
    cu: Dict[str, int] = {}
    sources: Dict[str, str] = {}

    def put(code: str, value: int, source: str) -> bool:
        if code in cu or not _valid_cu(value):
            return False
        cu[code] = value
        sources[code] = source
        return True

    # (a) table rows: "C715Organizational Behavior31" -> 3 CUs, term 1
    for code in ccn_map:
        value = _table_row_cu(text, code)
        if value is not None:
            put(code, value, CU_TABLE_ROW)

    # (b) "C100 ... 3 competency units"
    for m in EXPLICIT_CU_RE.finditer(text):
        put(m.group(1), int(m.group(2)), CU_EXPLICIT)

    # (c) "C234 - Workforce Planning: Recruitment and Selection 3"
    for m in TRAILING_CU_RE.finditer(text):
        put(m.group(1), int(m.group(2)), CU_TRAILING)

    # (d) a lone numeral near the code, 3-6 preferred
    for code in index.course_codes:
        if code in cu:
            continue
        value = _context_cu(index, code)
        if value is not None:
            put(code, value, CU_CONTEXT)

    # (e) known capstones only
    for code in index.course_codes:
        if code in CAPSTONE_CUS:
            put(code, CAPSTONE_CUS[code], CU_CAPSTONE)

    counts: Dict[str, int] = {}
    for s in sources.values():
        counts[s] = counts.get(s, 0) + 1
    log_event(status="info", actor="mappings", event="cu_map", extra={"by_heuristic": counts, "total": len(cu)})
    return cu, sources


# ----------------------------
# Detailed descriptions
# ----------------------------
def extract_detailed_descriptions(text: str) -> Dict[str, str]:
    """
    "C141 - EDUC 5220 - Instructional Planning - Detailed description..."
    -> {"C141": "EDUC 5220 - Instructional Planning - Detailed description..."}
    """
    out: Dict[str, str] = {}
    for m in DETAILED_DESCRIPTION_RE.finditer(text):
        code = m.group(1)
        if code in out:
            continue
        ccn, name, desc = _squash(m.group(2)), _squash(m.group(3)), _squash(m.group(4))
        out[code] = f"{ccn} - {name} - {desc}"

    log_event(status="info", actor="mappings", event="detailed_descriptions", extra={"total": len(out)})
    return out


def extract_mappings(text: str, index: Optional[CodeIndex] = None) -> CatalogMappings:
    index = index or CodeIndex(text)
    ccn = extract_ccn_map(text, index)
    cu, sources = extract_cu_map(text, index, ccn)
    return CatalogMappings(ccn=ccn, cu=cu, cu_sources=sources, descriptions=extract_detailed_descriptions(text))


def codes_with_cu_source(mappings: CatalogMappings, source: str) -> List[str]:
    return sorted(code for code, s in mappings.cu_sources.items() if s == source)
