# catalog_ingest/extraction/validation.py
from __future__ import annotations

from typing import Dict, List, Mapping

from pydantic import BaseModel, Field

from ..contracts import Course, DegreePlan, IssueType, Severity, ValidationIssue
from .course_types import is_valid_course_code


class CrossValidation(BaseModel):
    issues: List[ValidationIssue] = Field(default_factory=list)
    total_references: int = 0
    referenced_codes: List[str] = Field(default_factory=list)
    resolved_codes: List[str] = Field(default_factory=list)
    missing_codes: List[str] = Field(default_factory=list)
    validation_rate: float = 100.0


def validate_degree_plans(
    courses: Mapping[str, Course],
    degree_plans: Mapping[str, DegreePlan],
) -> CrossValidation:
    """
    Check every plan's course codes against the extracted course map.

    Observational only: plans and courses are never modified. One
    missing_course error is emitted per distinct unresolved code.
    """
    issues: List[ValidationIssue] = []
    referenced: Dict[str, None] = {}
    missing: Dict[str, List[str]] = {}
    total = 0

    for key, plan in degree_plans.items():
        for code in plan.courses:
            total += 1
            referenced.setdefault(code, None)
            if code not in courses:
                missing.setdefault(code, [])
                if key not in missing[code]:
                    missing[code].append(key)

            if not is_valid_course_code(code):
                issues.append(ValidationIssue(
                    type=IssueType.INVALID_FORMAT,
                    severity=Severity.WARNING,
                    location=f"degreePlans.{key}",
                    message=f"Course code {code!r} does not match any known code shape",
                    details={"courseCode": code},
                ))

        if plan.totalCUs is None:
            issues.append(ValidationIssue(
                type=IssueType.MISSING_DATA,
                severity=Severity.WARNING,
                location=f"degreePlans.{key}",
                message=f"Degree plan {plan.name} has no total CUs",
                details={"field": "totalCUs"},
            ))

    for code, plans in missing.items():
        issues.append(ValidationIssue(
            type=IssueType.MISSING_COURSE,
            severity=Severity.ERROR,
            location=f"courses.{code}",
            message=f"Course {code} is referenced by {len(plans)} degree plan(s) but was not extracted",
            details={"courseCode": code, "degreePlans": plans},
        ))

    ref_codes = list(referenced)
    resolved = [c for c in ref_codes if c in courses]
    rate = round(len(resolved) / len(ref_codes) * 100, 1) if ref_codes else 100.0

    return CrossValidation(
        issues=issues,
        total_references=total,
        referenced_codes=ref_codes,
        resolved_codes=resolved,
        missing_codes=list(missing),
        validation_rate=rate,
    )
