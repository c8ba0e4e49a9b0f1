# catalog_ingest/extraction/course_types.py
from __future__ import annotations

import re
from typing import Optional, Tuple

from ..contracts import CourseType
from .text_index import CodeIndex

STANDARD_CODE_RE = re.compile(r"^[A-Z]\d{3,4}[A-Z]?$")
INDEPENDENT_STUDY_CODE_RE = re.compile(r"^[A-Z]\d{3,4}A$")

# ENG1 / HIS101, PACA101, UTH, CTI1AT
ALTERNATE_CODE_RES = (
    re.compile(r"^[A-Z]{3,4}\d+$"),
    re.compile(r"^[A-Z]{2,4}[A-Z]\d+$"),
    re.compile(r"^[A-Z]{3,6}$"),
    re.compile(r"^[A-Z]+\d+[A-Z]+$"),
)

VALID_CODE_RES = (
    STANDARD_CODE_RE,
    re.compile(r"^[A-Z]{2,6}\d+[A-Z]*$"),
    re.compile(r"^[A-Z]{3,6}$"),
    re.compile(r"^DC[A-Z]{2,4}$"),
)

INDEPENDENT_STUDY_TERMS = (
    "independent study",
    "standalone",
    "single course",
    "continuing education",
    "professional development",
    "non-degree",
    "certificate program",
)
FLEXIBLE_TERMS = (
    "flexible",
    "alternative",
    "competency-based",
    "prior learning",
    "assessment",
    "portfolio",
    "experience-based",
)
DEGREE_PLAN_TERMS = (
    "bachelor",
    "master",
    "degree",
    "program requirements",
    "general education",
    "major requirements",
    "required courses",
    "capstone",
    "total cus",
)


def is_standard_code(code: str) -> bool:
    return bool(STANDARD_CODE_RE.match(code))


def is_valid_course_code(code: str) -> bool:
    """Standard codes plus the certificate / flexible-learning alternates."""
    return any(p.match(code) for p in VALID_CODE_RES)


def _vocabulary_near(index: CodeIndex, code: str, window: int, terms: Tuple[str, ...]) -> bool:
    for ctx in index.contexts(code, window, window):
        low = ctx.lower()
        if any(t in low for t in terms):
            return True
    return False


def explain_course_type(
    course_code: str,
    course_name: str,
    index: CodeIndex,
    ccn: Optional[str] = None,
    description: Optional[str] = None,
) -> Tuple[CourseType, str]:
    """
    Classify a course and say which signal decided it.

    Reasons: "vocabulary", "base-code", "code-shape" or "default".
    """
    if INDEPENDENT_STUDY_CODE_RE.match(course_code):
        if _vocabulary_near(index, course_code, 200, INDEPENDENT_STUDY_TERMS):
            return CourseType.INDEPENDENT_STUDY, "vocabulary"
        if index.contains(course_code[:-1]):
            return CourseType.INDEPENDENT_STUDY, "base-code"

    if not is_standard_code(course_code) and any(p.match(course_code) for p in ALTERNATE_CODE_RES):
        # the shape alone is enough once independent study is ruled out
        if _vocabulary_near(index, course_code, 150, FLEXIBLE_TERMS):
            return CourseType.FLEXIBLE_LEARNING, "vocabulary"
        return CourseType.FLEXIBLE_LEARNING, "code-shape"

    if _vocabulary_near(index, course_code, 300, DEGREE_PLAN_TERMS):
        return CourseType.DEGREE_PLAN, "vocabulary"
    return CourseType.DEGREE_PLAN, "default"


def classify_course_type(
    course_code: str,
    course_name: str,
    index: CodeIndex,
    ccn: Optional[str] = None,
    description: Optional[str] = None,
) -> CourseType:
    return explain_course_type(course_code, course_name, index, ccn, description)[0]
