# catalog_ingest/extraction/outcomes_parser.py
from __future__ import annotations

import re
from typing import Dict

from ..contracts import OutcomeCategory, OutcomeStatement, ProgramOutcome, School
from ..workflow_logger import log_event

SECTION_RE = re.compile(r"Program Outcomes\s*(?=School of|Leavitt School)[\s\S]*?(?=Course Descriptions|\Z)")
SCHOOL_HEADINGS = (
    ("School of Business", School.BUSINESS),
    ("School of Technology", School.TECHNOLOGY),
    ("Leavitt School of Health", School.HEALTH),
    ("School of Education", School.EDUCATION),
)
PROGRAM_HEADER_RE = re.compile(
    r"(?<![\w.])(B\.[AS]\.|M\.[AS]\.|MBA|M\.Ed\.|Post-Master's Certificate|Certificate:)[ \t]*([^\n]+)"
)
OUTCOME_RE = re.compile(r"•\s*(The graduate (\w+)[^.•]*\.)")

TECHNICAL_VERBS = {"applies", "completes", "demonstrates", "creates"}
PROFESSIONAL_VERBS = {"recommends", "discusses", "reports"}


def categorize_outcome(verb: str) -> OutcomeCategory:
    v = verb.lower()
    if v in TECHNICAL_VERBS:
        return OutcomeCategory.TECHNICAL
    if v in PROFESSIONAL_VERBS:
        return OutcomeCategory.PROFESSIONAL
    return OutcomeCategory.ANALYTICAL


def _school_text(section: str, heading: str) -> str:
    m = re.search(re.escape(heading) + r"([\s\S]*?)(?=School of|Leavitt School|\Z)", section)
    return m.group(1) if m else ""


def extract_program_outcomes(text: str, document: str = "-") -> Dict[str, ProgramOutcome]:
    """Outcome statements per program, grouped under the four school headings."""
    outcomes: Dict[str, ProgramOutcome] = {}
    section = SECTION_RE.search(text)
    if not section:
        log_event(status="info", actor="outcomes_parser", event="section_not_found", document=document)
        return outcomes

    per_school: Dict[str, int] = {}
    for heading, school in SCHOOL_HEADINGS:
        body = _school_text(section.group(0), heading)
        headers = list(PROGRAM_HEADER_RE.finditer(body))
        for i, h in enumerate(headers):
            program = f"{h.group(1)} {h.group(2).strip()}"
            if program in outcomes:
                continue
            end = headers[i + 1].start() if i + 1 < len(headers) else len(body)
            statements = [
                OutcomeStatement(outcome=re.sub(r"\s+", " ", m.group(1)).strip(), category=categorize_outcome(m.group(2)))
                for m in OUTCOME_RE.finditer(body, h.end(), end)
            ]
            if statements:
                outcomes[program] = ProgramOutcome(school=school, program=program, outcomes=statements)
                per_school[school.value] = per_school.get(school.value, 0) + 1

    log_event(
        status="info",
        actor="outcomes_parser",
        event="outcomes_extracted",
        document=document,
        extra={"programs": len(outcomes), "by_school": per_school},
    )
    return outcomes
