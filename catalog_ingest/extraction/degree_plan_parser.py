# catalog_ingest/extraction/degree_plan_parser.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..contracts import DegreePlan, School
from ..workflow_logger import log_event
from .course_types import is_valid_course_code

STRUCTURED_WINDOW = 10_000

# ---------------------------
# Titles
# ---------------------------
# A structured title is a whole line followed by a "The ..." paragraph.
BSBA_TITLE_RE = re.compile(
    r"^[ \t]*(Bachelor of Science Business Administration,[ \t]*[^,\n]+?)[ \t]*(?=\n\s*The\b)",
    re.MULTILINE,
)
GENERAL_TITLE_RE = re.compile(
    r"^[ \t]*((?:Bachelor|Master|Associate) of (?:Science|Arts|Business|Applied Science|Engineering|Fine Arts)"
    r"(?:[ \t]+in[ \t]+[\w ,&-]+?)?(?:,[ \t]*[\w ,&-]+?)?)[ \t]*(?=\n\s*The\b)",
    re.MULTILINE,
)
TITLE_DESCRIPTION_RE = re.compile(
    r"\s*(The\b[\s\S]*?)(?=\n\s*CCN|\n\s*Course|\n\s*(?:Bachelor|Master|Associate)\b|Total|\Z)"
)

TITLE_WORDS = r"[A-Z][A-Za-z&-]*(?:,?[ \t]+(?:and[ \t]+|&[ \t]+|of[ \t]+|for[ \t]+)?[A-Z][A-Za-z&-]*)*"
GENERIC_TITLE_PATTERNS: Tuple[Tuple[str, re.Pattern, int, int], ...] = (
    (
        "complete_title",
        re.compile(
            r"((?:Bachelor|Master|Associate)[ \t]+of[ \t]+(?:Science|Arts|Engineering|Business|Applied Science|Fine Arts)"
            rf"(?:[ \t]+in[ \t]+{TITLE_WORDS})?(?:[ \t]+with[ \t]+{TITLE_WORDS})?(?:[ \t]+\([^)\n]+\))?)"
        ),
        1500,
        3000,
    ),
    ("table_of_contents", re.compile(r"((?:Bachelor|Master|Associate|Certificate)[^\n\r]{15,80}?)\.{3,}"), 1000, 2000),
    ("header_line", re.compile(r"^((?:Bachelor|Master|Associate|Certificate)[^\n\r]{20,100})$", re.MULTILINE), 500, 2500),
    (
        "x_of_y_title",
        re.compile(
            rf"((?:Bachelor|Master|Associate)[ \t]+of[ \t]+{TITLE_WORDS}"
            rf"(?:[ \t]+in[ \t]+{TITLE_WORDS})?(?:[ \t]+-[ \t]+{TITLE_WORDS})?)"
        ),
        1000,
        2000,
    ),
)
NAME_TAIL_RE = re.compile(
    r"\s+(capstone|is the culminating|program to design|that improves public health|candidates|program)\b.*$",
    re.IGNORECASE,
)

# ---------------------------
# Course tables
# ---------------------------
TABLE_HEADER_RES = (
    re.compile(r"CCN\s+Course\s+Number\s+Course\s+Description\s+CUs\s+Term", re.I),
    re.compile(r"CCN\s+Course Number\s+Course Description\s+CUs\s+Term", re.I),
    re.compile(r"Course\s+Number\s+Course\s+Description\s+CUs\s+Term", re.I),
    re.compile(r"CCN\s+Course\s+Description\s+CUs\s+Term", re.I),
    re.compile(r"CCNCourse\s*NumberCourse\s*DescriptionCUsTerm", re.I),
    re.compile(r"CCNCourseNumberCourseDescriptionCUsTerm", re.I),
    re.compile(r"CCN.*?Course.*?Number.*?Course.*?Description.*?CUs.*?Term", re.I | re.S),
    re.compile(r"Course.*?Number.*?Course.*?Description.*?CUs.*?Term", re.I | re.S),
)

ROW_NAME = r"[A-Za-z0-9\s:,.\-&'()/]+?"
# (name, regex, group holding the course code)
ROW_PATTERNS: Tuple[Tuple[str, re.Pattern, int], ...] = (
    ("ccn_code_collapsed", re.compile(
        rf"(?<![A-Z])([A-Z]{{2,6}}\s+\d{{3,4}})([A-Z]\d{{3,4}}[A-Z]?)({ROW_NAME})(\d{{1,2}})(\d)"
        r"(?=\s*$|\s*\n|[A-Z]{2,6}\s+\d{3,4})", re.M), 2),
    ("ccn_code_spaced", re.compile(
        rf"(?<![A-Z])([A-Z]{{2,6}}\s+\d{{3,4}})\s+([A-Z]\d{{3,4}}[A-Z]?)\s+({ROW_NAME})\s+(\d{{1,2}})\s+(\d)(?=\s*$|\s*\n)",
        re.M), 2),
    ("ccn_code_line", re.compile(
        rf"^([A-Z]{{2,6}}\s+\d{{3,4}})\s+([A-Z]\d{{3,4}}[A-Z]?)\s+({ROW_NAME})\s+(\d{{1,2}})\s+(\d{{1,2}})\s*$", re.M), 2),
    ("ccn_code_loose", re.compile(
        r"(?<![A-Z])([A-Z]{2,6}\s+\d{3,4})\s+([A-Z]\d{3,4}[A-Z]?)\s+([^\d\n]+?)\s+(\d{1,2})\s+(\d{1,2})(?=\s|$)"), 2),
    ("ccn_code_tabbed", re.compile(
        r"(?<![A-Z])([A-Z]{2,6}\s+\d{3,4})[\s\t]+([A-Z]\d{3,4}[A-Z]?)[\s\t]+([^\t\n\d]+?)[\s\t]+(\d{1,2})[\s\t]+(\d{1,2})"), 2),
    ("ccn_then_code", re.compile(r"^[A-Z]{2,6}\s+\d{3,4}\s+([A-Z]\d{3,4}[A-Z]?)\s+", re.M), 1),
    ("code_then_ccn", re.compile(
        rf"^([A-Z]\d{{3,4}}[A-Z]?)\s+([A-Z]{{2,6}}\s+\d{{3,4}})\s+({ROW_NAME})\s+(\d{{1,2}})\s+(\d{{1,2}})\s*$", re.M), 1),
)

LINE_CCN_RE = re.compile(r"(?<![A-Z])[A-Z]{2,6}\s+\d{3,4}")
LINE_STARTS_WITH_CCN_RE = re.compile(r"^[A-Z]{2,6}\s+\d{3,4}")
LINE_CODE_RE = re.compile(r"(?<![A-Za-z])([A-Z]\d{3,4}[A-Z]?)")
WORD_CODE_RE = re.compile(r"\b([A-Z]\d{3,4}[A-Z]?)\b")
HEADER_OR_TOTAL_LINE_RE = re.compile(r"CCN|Course Number|Course Description|^\s*$|Total.*CUs", re.I)
TABLE_END_LINE_RE = re.compile(r"Total.*CUs|^\s*$|^[A-Z][a-z].*[a-z]$")
LAST_RESORT_CODE_RE = re.compile(r"\b([A-Z]{1,4}\d{3,4}[A-Z]*)\b")
STANDARD_CODE_RE = re.compile(r"^[A-Z]\d{3,4}[A-Z]?$")

TOTAL_CU_RES = (
    re.compile(r"TOTAL CUs?\s*:?\s*(\d{2,3})\b", re.I),
    re.compile(r"Total\s+CUs?\s*:?\s*(\d{2,3})\b", re.I),
    re.compile(r"\b(\d{2,3})\s+CUs?\s*total", re.I),
    re.compile(r"Total\s+Credit\s+Units?\s*:?\s*(\d{2,3})\b", re.I),
    re.compile(r"Total\s+Competency\s+Units?\s*:?\s*(\d{2,3})\b", re.I),
)
# PROGRAMCODE YYYYMM Total CUs N
FOOTER_RES = (
    re.compile(r"\b([A-Z]{2,8})[ \t]+(\d{6})[ \t]+(?i:total)[ \t]+(?i:cus?)[ \t]*:?[ \t]*(\d{2,3})\b"),
    re.compile(r"\b([A-Z]{2,8})\s*(\d{6})\s*(?i:total)\s+(?i:cus?)\s*:?\s*(\d{2,3})\b"),
    re.compile(r"\b([A-Z]{2,8})[ \t]*\n[ \t]*(\d{6})[ \t]*\n?[ \t]*(?i:total)\s+(?i:cus?)\s*:?\s*(\d{2,3})\b"),
    re.compile(r"\b([A-Z]{2,8})[ \t]+(\d{6})[ \t]+(\d{2,3})\b"),
    re.compile(r"\b([A-Z]{2,8}\d?)[ \t]+(\d{6})\s+(?i:total)\s+(?i:cus?)\s*:?\s*(\d{2,3})\b"),
    re.compile(r"\b([A-Z]{2,8}\d?)[ \t]+(\d{6})[ \t]+(\d{2,3})\b"),
)
PROGRAM_CODE_RE = re.compile(r"^[A-Z]{2,8}\d?$")
EFFECTIVE_DATE_RE = re.compile(r"^\d{4}(0[1-9]|1[0-2])$")

SCHOOL_KEYWORDS: Tuple[Tuple[School, Tuple[str, ...]], ...] = (
    (School.TECHNOLOGY, ("technology", "computer", "software", "data", "cyber")),
    (School.BUSINESS, ("business", "management", "marketing", "accounting", "mba")),
    (School.HEALTH, ("health", "nursing", "medical")),
    (School.EDUCATION, ("education", "teaching", "curriculum")),
)


@dataclass
class CourseTable:
    courses: List[str] = field(default_factory=list)
    total_cus: Optional[int] = None
    program_code: Optional[str] = None
    effective_date: Optional[str] = None
    row_pattern: Optional[str] = None


@dataclass
class DegreePlanExtraction:
    plans: Dict[str, DegreePlan] = field(default_factory=dict)
    phase: str = "none"  # structured | generic | none
    row_patterns: List[str] = field(default_factory=list)


def _squash(s: str) -> str:
    return re.sub(r"\s+", " ", s).strip()


def repair_collapsed_code(code: str, next_char: str) -> str:
    """
    "C715O" followed by "rganizational" -> "C715".

    Only fires when the character after the code is lower case, so a real
    letter-suffixed code like "C216A" followed by a space or digit is kept.
    """
    if len(code) > 4 and code[-1].isalpha() and code[-2].isdigit() and next_char.islower():
        return code[:-1]
    return code


def determine_school(name: str) -> Optional[School]:
    low = name.lower()
    for school, words in SCHOOL_KEYWORDS:
        if any(w in low for w in words):
            return school
    return None


def clean_program_name(name: str) -> Optional[str]:
    cleaned = _squash(name)
    cleaned = NAME_TAIL_RE.sub("", cleaned).strip(" ,-")
    if not re.match(r"^(Bachelor|Master|Associate|Certificate)", cleaned, re.I):
        return None
    if len(cleaned) < 15 or len(cleaned) > 120:
        return None
    if re.match(r"^(certificate and may also|Master of Arts in Teaching candidates)$", cleaned, re.I):
        return None
    return cleaned


def clean_plan_description(raw: str) -> Optional[str]:
    desc = _squash(raw)
    desc = re.sub(r"\s*Total\s*CUs?\s*:?\s*\d+.*$", "", desc, flags=re.I)
    desc = re.sub(r"\s*CCN\s+Course.*$", "", desc, flags=re.I)
    return desc.strip() or None


# ---------------------------
# Course table sub-extraction
# ---------------------------
def _codes_by_row_pattern(window: str, pattern: re.Pattern, group: int) -> List[str]:
    out: List[str] = []
    for m in pattern.finditer(window):
        end = m.end(group)
        code = repair_collapsed_code(m.group(group), window[end:end + 1])
        if is_valid_course_code(code) and code not in out:
            out.append(code)
    return out


def _codes_in_line(line: str, matcher: re.Pattern) -> List[str]:
    out: List[str] = []
    for m in matcher.finditer(line):
        out.append(repair_collapsed_code(m.group(1), line[m.end(1):m.end(1) + 1]))
    return out


def _scan_header_lines(window: str) -> List[str]:
    codes: List[str] = []
    for line in window.split("\n"):
        if HEADER_OR_TOTAL_LINE_RE.search(line):
            continue
        if LINE_CCN_RE.search(line) or LINE_STARTS_WITH_CCN_RE.match(line):
            found = _codes_in_line(line, LINE_CODE_RE)
            if found and is_valid_course_code(found[0]) and found[0] not in codes:
                codes.append(found[0])
    return codes


def _scan_table_like_lines(window: str) -> List[str]:
    codes: List[str] = []
    lines = window.split("\n")
    in_table = False
    for i, line in enumerate(lines):
        starts_with_ccn = bool(LINE_STARTS_WITH_CCN_RE.match(line))
        if not (starts_with_ccn or in_table):
            continue
        in_table = True
        nxt = lines[i + 1] if i + 1 < len(lines) else ""
        for code in WORD_CODE_RE.findall(line) + WORD_CODE_RE.findall(nxt):
            if STANDARD_CODE_RE.match(code) and code not in codes:
                codes.append(code)
        if TABLE_END_LINE_RE.search(line) and not starts_with_ccn:
            in_table = False
    if not codes:
        for code in LAST_RESORT_CODE_RE.findall(window):
            if STANDARD_CODE_RE.match(code) and code not in codes:
                codes.append(code)
    return codes


def _read_total_cus(window: str) -> Optional[int]:
    for p in TOTAL_CU_RES:
        m = p.search(window)
        if m:
            return int(m.group(1))
    return None


def _read_footer(window: str, document: str) -> Tuple[Optional[str], Optional[str], Optional[int]]:
    for p in FOOTER_RES:
        m = p.search(window)
        if not m:
            continue
        program_code, effective_date, total = m.group(1), m.group(2), int(m.group(3))
        if not PROGRAM_CODE_RE.match(program_code):
            log_event(status="warn", actor="degree_plan_parser", event="invalid_program_code", document=document,
                      extra={"value": program_code})
            program_code = None
        if not EFFECTIVE_DATE_RE.match(effective_date):
            log_event(status="warn", actor="degree_plan_parser", event="invalid_effective_date", document=document,
                      extra={"value": effective_date})
            effective_date = None
        return program_code, effective_date, total
    return None, None, None


def parse_course_table(window: str, document: str = "-") -> CourseTable:
    """
    Course codes, total CUs, program code and effective date from one plan's text window.

    With a recognizable table header the row pattern yielding the most
    valid codes wins (ties go to the earlier pattern). Otherwise lines are
    scanned for table-like runs.
    """
    table = CourseTable()

    if any(p.search(window) for p in TABLE_HEADER_RES):
        for name, pattern, group in ROW_PATTERNS:
            codes = _codes_by_row_pattern(window, pattern, group)
            if len(codes) > len(table.courses):
                table.courses, table.row_pattern = codes, name
        if not table.courses:
            table.courses, table.row_pattern = _scan_header_lines(window), "header_line_scan"
    else:
        table.courses, table.row_pattern = _scan_table_like_lines(window), "table_like_scan"

    table.total_cus = _read_total_cus(window)
    program_code, effective_date, footer_total = _read_footer(window, document)
    table.program_code, table.effective_date = program_code, effective_date
    if table.total_cus is None:
        table.total_cus = footer_total
    return table


# ---------------------------
# Plan assembly
# ---------------------------
def _slug(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-") or "plan"


def _plan_key(plans: Dict[str, DegreePlan], plan: DegreePlan) -> str:
    base = plan.programCode or _slug(plan.name)
    key, n = base, 2
    while key in plans:
        key = f"{base}-{n}"
        n += 1
    return key


def _make_plan(name: str, description: Optional[str], table: CourseTable) -> DegreePlan:
    return DegreePlan(
        name=name,
        programCode=table.program_code,
        effectiveDate=table.effective_date,
        totalCUs=table.total_cus,
        courses=list(table.courses),
        description=description,
        school=determine_school(name),
    )


def _structured_titles(text: str) -> List[Tuple[int, int, str]]:
    titles: Dict[int, Tuple[int, int, str]] = {}
    names = set()
    for pattern in (BSBA_TITLE_RE, GENERAL_TITLE_RE):
        for m in pattern.finditer(text):
            name = _squash(m.group(1))
            if m.start(1) in titles or name in names:
                continue
            if pattern is GENERAL_TITLE_RE and (len(name) < 20 or " of " not in name):
                continue
            titles[m.start(1)] = (m.start(1), m.end(1), name)
            names.add(name)
    return [titles[k] for k in sorted(titles)]


def _structured_plans(text: str, document: str) -> Tuple[Dict[str, DegreePlan], List[str]]:
    plans: Dict[str, DegreePlan] = {}
    used: List[str] = []
    titles = _structured_titles(text)
    for i, (start, end, name) in enumerate(titles):
        stop = min(len(text), start + STRUCTURED_WINDOW)
        if i + 1 < len(titles):
            stop = min(stop, titles[i + 1][0])
        window = text[start:stop]

        d = TITLE_DESCRIPTION_RE.match(text, end, stop)
        description = clean_plan_description(d.group(1)) if d else None

        table = parse_course_table(window, document)
        if table.courses or table.total_cus is not None:
            plan = _make_plan(name, description, table)
            plans[_plan_key(plans, plan)] = plan
            if table.row_pattern:
                used.append(table.row_pattern)
    return plans, used


def _generic_plans(text: str, document: str) -> Tuple[Dict[str, DegreePlan], List[str]]:
    plans: Dict[str, DegreePlan] = {}
    used: List[str] = []
    seen = set()
    for label, pattern, before, after in GENERIC_TITLE_PATTERNS:
        for m in pattern.finditer(text):
            raw = m.group(1)
            if label == "table_of_contents":
                raw = re.sub(r"\s+\d+$", "", raw.rstrip(". "))
            name = clean_program_name(raw)
            if not name or name in seen:
                continue
            seen.add(name)

            window = text[max(0, m.start() - before):min(len(text), m.start() + after)]
            table = parse_course_table(window, document)
            if len(table.courses) < 3:
                continue

            description = None
            if label == "complete_title":
                d = TITLE_DESCRIPTION_RE.match(text, m.end(1), min(len(text), m.start() + after))
                description = clean_plan_description(d.group(1)) if d else None
            plan = _make_plan(name, description, table)
            plans[_plan_key(plans, plan)] = plan
            used.append(f"{label}/{table.row_pattern}")
    return plans, used


def extract_degree_plans(text: str, document: str = "-") -> DegreePlanExtraction:
    """
    Structured titles first; the looser generic title shapes only run when
    the structured phase keeps no plan at all.
    """
    plans, used = _structured_plans(text, document)
    phase = "structured" if plans else "none"
    if not plans:
        plans, used = _generic_plans(text, document)
        phase = "generic" if plans else "none"

    log_event(
        status="info",
        actor="degree_plan_parser",
        event="degree_plans_extracted",
        document=document,
        extra={"phase": phase, "plans": len(plans), "row_patterns": sorted(set(used))},
    )
    return DegreePlanExtraction(plans=plans, phase=phase, row_patterns=sorted(set(used)))
