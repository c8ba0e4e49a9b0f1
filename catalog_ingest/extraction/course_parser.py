# catalog_ingest/extraction/course_parser.py
from __future__ import annotations

import re
from bisect import bisect_right
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple

from ..contracts import Course
from ..workflow_logger import log_event
from .detector import CatalogFormat
from .mappings import CU_TABLE_ROW, CatalogMappings
from .course_types import explain_course_type
from .text_index import CodeIndex

CODE = r"[A-Z]\d{3,4}[A-Z]?"
NOT_A_CODE = r"(?![A-Z]\d{3})"

FULL_FORMAT_RE = re.compile(rf"\b({CODE})\s*-\s*([A-Z]{{2,4}}\s+\d{{3,4}})\b\s*-\s*([^\n\r]+)")
NO_CCN_RE = re.compile(rf"\b({CODE})\s*-[ \t]*(?![ \t]|[A-Z]{{2,4}}\s+\d{{3,4}}\b)([^\d\n\r-][^\n\r]+)")
NEWLINE_TABLE_RE = re.compile(
    rf"\b({CODE})[ \t]*\n\s*({NOT_A_CODE}[^\d\n\r][^\n\r]{{15,80}})[ \t]*\n\s*({NOT_A_CODE}[^\d\n\r][^\n\r]{{30,}})"
)
SIMPLE_PARAGRAPH_RE = re.compile(
    rf"\b({CODE})[ \t]+({NOT_A_CODE}[^\d\n\r-][^\n\r]{{15,80}}?)[ \t]*\n\s*"
    rf"({NOT_A_CODE}[^\d\n\r](?:[^\n]|\n(?!\s*\n)(?!\s*{CODE}\b))*)"
)
CCN_EMBEDDED_RE = re.compile(
    rf"\b({CODE})[ \t]+({NOT_A_CODE}[^\d\n\r-][^\n\r]*?)[ \t]+([A-Z]{{2,4}}[ \t]+\d{{3,4}})\b"
    r"(?:[ \t]*-[ \t]*|[ \t]*\n\s*)([^\n\r]{30,})"
)
# "MGMT 3000C715Organizational Behavior31": code, name, CUs, term
CONCATENATED_TABLE_RE = re.compile(
    r"(?<![A-Za-z])([A-Z]\d{3,4}(?:[A-Z](?![a-z]))?)([A-Z][A-Za-z\s&,.\-:()'/]+?)(\d{1,2})(\d)"
    r"(?=\s|\Z|[A-Z]{2,6}\s+\d{3,4})"
)
BULLET_POINT_RE = re.compile(rf"•\s*([^(•\n]+?)\s*\(({CODE})\)")

SEGMENT_SPLIT_RE = re.compile(r"\s+-\s+")
SMALL_WORDS = {"a", "an", "and", "as", "at", "by", "for", "in", "of", "on", "or", "the", "to", "with", "&"}

MIN_KEPT_DESCRIPTION = 30


@dataclass(frozen=True)
class CourseCandidate:
    code: str
    name: str
    description: Optional[str] = None
    ccn: Optional[str] = None
    competency_units: Optional[int] = None
    cu_source: Optional[str] = None
    strategy: str = ""
    offset: int = 0


@dataclass
class CourseExtraction:
    courses: Dict[str, Course] = field(default_factory=dict)
    strategy_hits: Dict[str, int] = field(default_factory=dict)


Strategy = Callable[[str, FrozenSet[str]], List[CourseCandidate]]


def _squash(s: Optional[str]) -> str:
    return re.sub(r"\s+", " ", s or "").strip()


def _is_title_like(segment: str) -> bool:
    s = segment.strip()
    if not s or len(s) > 80 or s.endswith("."):
        return False
    words = s.split()
    if not words[0][:1].isupper():
        return False
    for w in words:
        head = w.lstrip("(\"'")[:1]
        if not head:
            continue
        if head.isupper() or head.isdigit() or w.lower() in SMALL_WORDS:
            continue
        return False
    return True


def split_name_and_description(rest: str) -> Tuple[str, Optional[str]]:
    """
    "Network and Security - Foundations - Covers networking basics."
    -> ("Network and Security - Foundations", "Covers networking basics.")

    Leading title-like segments form the name. When every segment looks
    like a title, only the first one is taken as the name.
    """
    segments = [s.strip() for s in SEGMENT_SPLIT_RE.split(rest.strip()) if s.strip()]
    if not segments:
        return "", None
    if len(segments) == 1:
        return segments[0], None

    n = 0
    while n < len(segments) and _is_title_like(segments[n]):
        n += 1
    if n == 0 or n == len(segments):
        n = 1
    return " - ".join(segments[:n]), " - ".join(segments[n:])


# ----------------------------
# Strategies
# ----------------------------
def full_format(text: str, found: FrozenSet[str]) -> List[CourseCandidate]:
    """C172 - IT 2120 - Network and Security - Foundations - Description..."""
    out: List[CourseCandidate] = []
    for m in FULL_FORMAT_RE.finditer(text):
        name, desc = split_name_and_description(m.group(3))
        if name:
            out.append(CourseCandidate(m.group(1), name, desc, _squash(m.group(2)), strategy="full_format",
                                       offset=m.start()))
    return out


def no_ccn(text: str, found: FrozenSet[str]) -> List[CourseCandidate]:
    """C100 - Course Name - Description..."""
    out: List[CourseCandidate] = []
    for m in NO_CCN_RE.finditer(text):
        name, desc = split_name_and_description(m.group(2))
        if name and desc and len(name) >= 3:
            out.append(CourseCandidate(m.group(1), name, desc, strategy="no_ccn", offset=m.start()))
    return out


def newline_table(text: str, found: FrozenSet[str]) -> List[CourseCandidate]:
    """Code, name and description each on their own line."""
    return [
        CourseCandidate(m.group(1), m.group(2).strip(), m.group(3).strip(), strategy="newline_table", offset=m.start())
        for m in NEWLINE_TABLE_RE.finditer(text)
    ]


def simple_paragraph(text: str, found: FrozenSet[str]) -> List[CourseCandidate]:
    """"C123 Course Name" followed by a paragraph that runs to a blank line or the next code."""
    out: List[CourseCandidate] = []
    for m in SIMPLE_PARAGRAPH_RE.finditer(text):
        desc = _squash(m.group(3))
        if len(desc) >= 50:
            out.append(CourseCandidate(m.group(1), m.group(2).strip(), desc, strategy="simple_paragraph",
                                       offset=m.start()))
    return out


def ccn_embedded(text: str, found: FrozenSet[str]) -> List[CourseCandidate]:
    """C123 Course Name SUBJ 1234 - Description..."""
    return [
        CourseCandidate(m.group(1), m.group(2).strip(), m.group(4).strip(), _squash(m.group(3)),
                        strategy="ccn_embedded", offset=m.start())
        for m in CCN_EMBEDDED_RE.finditer(text)
    ]


def concatenated_table(text: str, found: FrozenSet[str]) -> List[CourseCandidate]:
    """Column-collapsed table rows: "C715Organizational Behavior31" (3 CUs, term 1)."""
    out: List[CourseCandidate] = []
    seen = set(found)
    for m in CONCATENATED_TABLE_RE.finditer(text):
        code = m.group(1)
        name = _squash(m.group(2))
        cus, term = int(m.group(3)), int(m.group(4))
        if code in seen or not (1 <= cus <= 12) or not (1 <= term <= 4) or len(name) < 10:
            continue
        seen.add(code)
        out.append(CourseCandidate(code, name, competency_units=cus, cu_source=CU_TABLE_ROW,
                                   strategy="concatenated_table", offset=m.start()))
    return out


def bullet_point(text: str, found: FrozenSet[str]) -> List[CourseCandidate]:
    """•Course Name (C123A)"""
    out: List[CourseCandidate] = []
    seen = set(found)
    for m in BULLET_POINT_RE.finditer(text):
        code, name = m.group(2), _squash(m.group(1))
        if code in seen or not name:
            continue
        seen.add(code)
        out.append(CourseCandidate(code, name, strategy="bullet_point", offset=m.start()))
    return out


LEGACY_STRATEGIES: Tuple[Tuple[str, Strategy], ...] = (
    ("full_format", full_format),
    ("no_ccn", no_ccn),
    ("newline_table", newline_table),
    ("simple_paragraph", simple_paragraph),
    ("ccn_embedded", ccn_embedded),
)
MODERN_STRATEGIES: Tuple[Tuple[str, Strategy], ...] = (
    ("full_format", full_format),
    ("no_ccn", no_ccn),
    ("concatenated_table", concatenated_table),
    ("bullet_point", bullet_point),
)


def strategies_for(fmt: CatalogFormat) -> Tuple[Tuple[str, Strategy], ...]:
    return LEGACY_STRATEGIES if fmt.is_legacy else MODERN_STRATEGIES


# ----------------------------
# Merge + enrichment
# ----------------------------
def merge_candidate(records: Dict[str, CourseCandidate], cand: CourseCandidate) -> None:
    """
    First candidate for a code creates the record. Later candidates only
    fill fields still unset, except the description, which is replaced
    when the new one is strictly longer.
    """
    prev = records.get(cand.code)
    if prev is None:
        records[cand.code] = cand
        return

    updates = {}
    if not prev.name and cand.name:
        updates["name"] = cand.name
    if prev.ccn is None and cand.ccn:
        updates["ccn"] = cand.ccn
    if prev.competency_units is None and cand.competency_units is not None:
        updates["competency_units"] = cand.competency_units
        updates["cu_source"] = cand.cu_source
    if len(_squash(cand.description)) > len(_squash(prev.description)):
        updates["description"] = cand.description
    if updates:
        records[cand.code] = replace(prev, **updates)


def _page_number(page_starts: Sequence[int], offset: int) -> Optional[int]:
    if not page_starts:
        return None
    return max(1, bisect_right(page_starts, offset))


def _final_description(own: Optional[str], detailed: Optional[str]) -> Optional[str]:
    own = _squash(own)
    if len(own) > MIN_KEPT_DESCRIPTION:
        return own
    return detailed or own or None


def extract_courses(
    text: str,
    fmt: CatalogFormat,
    mappings: CatalogMappings,
    index: Optional[CodeIndex] = None,
    page_starts: Sequence[int] = (),
    document: str = "-",
) -> CourseExtraction:
    """
    Run the format's ordered strategy list, merge by course code, then
    enrich from the mapping tables and classify each course once.
    """
    index = index or CodeIndex(text)
    records: Dict[str, CourseCandidate] = {}
    hits: Dict[str, int] = {}

    for name, strategy in strategies_for(fmt):
        cands = strategy(text, frozenset(records))
        hits[name] = len(cands)
        for cand in cands:
            merge_candidate(records, cand)

    courses: Dict[str, Course] = {}
    reasons: Dict[str, int] = {}
    for code, rec in records.items():
        ccn = rec.ccn or mappings.ccn.get(code)
        cus = rec.competency_units if rec.competency_units is not None else mappings.cu.get(code)
        description = _final_description(rec.description, mappings.descriptions.get(code))
        course_type, reason = explain_course_type(code, rec.name, index, ccn, description)
        reasons[reason] = reasons.get(reason, 0) + 1

        courses[code] = Course(
            courseCode=code,
            courseName=rec.name,
            ccn=ccn,
            competencyUnits=cus,
            description=description,
            courseType=course_type,
            pageNumber=_page_number(page_starts, rec.offset),
        )

    log_event(
        status="info",
        actor="course_parser",
        event="courses_extracted",
        document=document,
        extra={"generation": fmt.generation, "strategy_hits": hits, "type_reasons": reasons, "total": len(courses)},
    )
    return CourseExtraction(courses=courses, strategy_hits=hits)
