# catalog_ingest/extraction/reporting.py
from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Sequence

from ..contracts import (
    CatalogStatistics,
    CertificateProgram,
    Course,
    DataCompleteness,
    DataQuality,
    DegreePlan,
    DegreePlanStatistics,
    ParsedCatalog,
    ParsingReport,
    PlanCourseValidation,
    ProcessingDetails,
    ProgramOutcome,
    ReportSummary,
    ReportValidation,
    StandaloneCourse,
)
from .detector import CatalogFormat
from .validation import CrossValidation

MIN_DESCRIPTION = 30


def _round_ratio(part: int, whole: int) -> int:
    """Round part/whole to the nearest integer, halves up."""
    if whole <= 0:
        return 0
    return (2 * part + whole) // (2 * whole)


def _percent(part: int, whole: int) -> int:
    return _round_ratio(100 * part, whole)


def _has_description(c: Course) -> bool:
    return bool(c.description) and len(c.description) > MIN_DESCRIPTION


def calculate_statistics(
    courses: Mapping[str, Course],
    degree_plans: Mapping[str, DegreePlan],
    standalone: Optional[Mapping[str, StandaloneCourse]] = None,
    certificates: Optional[Mapping[str, CertificateProgram]] = None,
    outcomes: Optional[Mapping[str, ProgramOutcome]] = None,
) -> CatalogStatistics:
    course_list = list(courses.values())
    n = len(course_list)

    by_prefix: Dict[str, int] = {}
    by_type: Dict[str, int] = {}
    for c in course_list:
        by_prefix[c.courseCode[0]] = by_prefix.get(c.courseCode[0], 0) + 1
        by_type[c.courseType.value] = by_type.get(c.courseType.value, 0) + 1

    all_refs: List[str] = []
    schools: Dict[str, int] = {}
    for plan in degree_plans.values():
        all_refs.extend(plan.courses)
        if plan.school is not None:
            schools[plan.school.value] = schools.get(plan.school.value, 0) + 1
    with_total = sum(1 for p in degree_plans.values() if p.totalCUs is not None)

    with_ccn = sum(1 for c in course_list if c.ccn)
    with_cus = sum(1 for c in course_list if c.competencyUnits is not None)

    return CatalogStatistics(
        coursesFound=n,
        degreePlansFound=len(degree_plans),
        standaloneCourses=len(standalone or {}),
        certificatePrograms=len(certificates or {}),
        programOutcomes=len(outcomes or {}),
        ccnCoverage=_percent(with_ccn, n),
        cuCoverage=_percent(with_cus, n),
        coursesByPrefix=dict(sorted(by_prefix.items())),
        coursesByType=dict(sorted(by_type.items())),
        degreePlanStatistics=DegreePlanStatistics(
            totalCourses=len(all_refs),
            uniqueCourses=len(set(all_refs)),
            averageCoursesPerPlan=_round_ratio(len(all_refs), max(len(degree_plans), 1)),
            plansWithTotalCUs=with_total,
            plansMissingTotalCUs=len(degree_plans) - with_total,
            schoolDistribution=dict(sorted(schools.items())) or None,
        ),
        dataQuality=DataQuality(
            coursesWithDescription=sum(1 for c in course_list if _has_description(c)),
            coursesWithCCN=with_ccn,
            coursesWithCUs=with_cus,
            completeCourseRecords=sum(1 for c in course_list if c.courseName and _has_description(c)),
        ),
    )


def enhanced_features(catalog: ParsedCatalog) -> List[str]:
    features: List[str] = []
    if catalog.programOutcomes:
        features.append("program_outcomes")
    if catalog.standaloneCourses:
        features.append("standalone_courses")
    if catalog.certificatePrograms:
        features.append("certificate_programs")
    if catalog.courseBundles:
        features.append("course_bundles")
    return features


def build_parsing_report(
    catalog: ParsedCatalog,
    validation: CrossValidation,
    filename: str,
    fmt: CatalogFormat,
    patterns_used: Sequence[str] = (),
) -> ParsingReport:
    stats = catalog.metadata.statistics
    courses = list(catalog.courses.values())

    return ParsingReport(
        filename=filename,
        parsedAt=catalog.metadata.parsedAt,
        parserVersion=catalog.metadata.parserVersion,
        summary=ReportSummary(
            totalCourses=stats.coursesFound,
            totalDegreePlans=stats.degreePlansFound,
            totalProgramOutcomes=stats.programOutcomes,
            ccnCoverage=stats.ccnCoverage,
            cuCoverage=stats.cuCoverage,
            validationIssues=len(validation.issues),
            parsingDuration=catalog.metadata.parsingTimeMs,
        ),
        validation=ReportValidation(
            degreePlanCourseValidation=PlanCourseValidation(
                totalCoursesInPlans=validation.total_references,
                uniqueCoursesInPlans=len(validation.referenced_codes),
                coursesFoundInCatalog=len(validation.resolved_codes),
                missingCourses=sorted(validation.missing_codes),
                validationRate=validation.validation_rate,
            ),
            dataCompleteness=DataCompleteness(
                coursesWithAllFields=sum(
                    1 for c in courses if c.description and c.ccn and c.competencyUnits is not None
                ),
                coursesWithDescription=stats.dataQuality.coursesWithDescription,
                coursesWithCCN=stats.dataQuality.coursesWithCCN,
                coursesWithCUs=stats.dataQuality.coursesWithCUs,
                degreePlansWithTotalCUs=stats.degreePlanStatistics.plansWithTotalCUs,
            ),
            issues=list(validation.issues),
        ),
        statistics=stats,
        processingDetails=ProcessingDetails(
            pdfInfo=catalog.metadata.pdf,
            formatDetected=fmt.era,
            strategy=fmt.strategy,
            patternsUsed=list(patterns_used),
            enhancedFeaturesUsed=enhanced_features(catalog),
        ),
    )


# Alert thresholds for `health`
MIN_CCN_COVERAGE = 85
MAX_MISSING_PLAN_COURSES = 10
MAX_PARSE_TIME_MS = 30_000


def health_warnings(report: ParsingReport) -> List[str]:
    """Degradation signals for one parsed catalog; empty when healthy."""
    warnings: List[str] = []
    summary = report.summary
    if summary.totalCourses == 0:
        warnings.append("No courses extracted")
    elif summary.ccnCoverage < MIN_CCN_COVERAGE:
        warnings.append(f"Low CCN coverage: {summary.ccnCoverage}%")
    missing = len(report.validation.degreePlanCourseValidation.missingCourses)
    if missing > MAX_MISSING_PLAN_COURSES:
        warnings.append(f"{missing} courses referenced in degree plans but not found")
    if summary.parsingDuration > MAX_PARSE_TIME_MS:
        warnings.append(f"Slow parse time: {summary.parsingDuration / 1000:.1f}s")
    return warnings
