from catalog_ingest.contracts import Course, CourseType, DegreePlan, IssueType, Severity
from catalog_ingest.extraction.pipeline import parse_catalog_text
from catalog_ingest.extraction.reporting import calculate_statistics, health_warnings
from catalog_ingest.extraction.validation import validate_degree_plans


def _course(code, **kw):
    return Course(courseCode=code, courseName=kw.pop("name", f"Course {code}"), **kw)


def test_all_plan_codes_present_means_full_rate():
    courses = {c: _course(c) for c in ("C100", "C200")}
    plans = {"BSX": DegreePlan(name="Bachelor of Science X", totalCUs=120, courses=["C100", "C200"])}
    v = validate_degree_plans(courses, plans)
    assert v.issues == []
    assert v.validation_rate == 100.0
    assert v.missing_codes == []


def test_issues_are_reported_without_changing_inputs():
    courses = {"C100": _course("C100")}
    plan = DegreePlan(name="Bachelor of Science X", courses=["C100", "C100", "C999", "bad-code"])
    plans = {"bachelor-of-science-x": plan}
    v = validate_degree_plans(courses, plans)

    kinds = [(i.type, i.severity) for i in v.issues]
    assert IssueType.DUPLICATE_COURSE not in [k for k, _ in kinds]
    assert (IssueType.INVALID_FORMAT, Severity.WARNING) in kinds
    assert (IssueType.MISSING_DATA, Severity.WARNING) in kinds
    missing = [i for i in v.issues if i.type == IssueType.MISSING_COURSE]
    assert [i.details["courseCode"] for i in missing] == ["C999", "bad-code"]
    assert all(i.severity == Severity.ERROR for i in missing)
    assert missing[0].details["degreePlans"] == ["bachelor-of-science-x"]

    assert v.total_references == 4
    assert v.referenced_codes == ["C100", "C999", "bad-code"]
    assert v.validation_rate == 33.3
    assert plan.courses == ["C100", "C100", "C999", "bad-code"]


def test_no_plans_means_nothing_to_validate():
    v = validate_degree_plans({"C100": _course("C100")}, {})
    assert v.validation_rate == 100.0
    assert v.total_references == 0


def test_statistics_counts_and_coverage():
    courses = {
        "C100": _course("C100", ccn="ABC 1000", competencyUnits=3, description="x" * 40),
        "C200": _course("C200", description="short"),
        "D300": _course("D300", courseType=CourseType.INDEPENDENT_STUDY),
    }
    plans = {
        "A": DegreePlan(name="A", totalCUs=30, courses=["C100", "C200"]),
        "B": DegreePlan(name="B", courses=["C100"]),
    }
    s = calculate_statistics(courses, plans)
    assert s.coursesFound == 3
    assert s.degreePlansFound == 2
    assert s.ccnCoverage == 33
    assert s.cuCoverage == 33
    assert s.coursesByPrefix == {"C": 2, "D": 1}
    assert s.coursesByType == {"degree-plan": 2, "independent-study": 1}
    assert s.degreePlanStatistics.totalCourses == 3
    assert s.degreePlanStatistics.uniqueCourses == 2
    assert s.degreePlanStatistics.averageCoursesPerPlan == 2
    assert s.degreePlanStatistics.plansWithTotalCUs == 1
    assert s.degreePlanStatistics.plansMissingTotalCUs == 1
    assert s.dataQuality.coursesWithDescription == 1
    assert s.dataQuality.completeCourseRecords == 1


def test_report_mirrors_catalog(bsba_text):
    result = parse_catalog_text(bsba_text, "catalog-2025-08.pdf", page_count=3)
    report = result.report
    assert report.filename == "catalog-2025-08.pdf"
    assert report.parserVersion == "v2.1-current-enhanced"
    assert report.summary.totalCourses == 3
    assert report.summary.totalDegreePlans == 1
    assert report.summary.validationIssues == 0
    pv = report.validation.degreePlanCourseValidation
    assert (pv.totalCoursesInPlans, pv.uniqueCoursesInPlans, pv.coursesFoundInCatalog) == (3, 3, 3)
    assert pv.validationRate == 100.0
    assert report.validation.dataCompleteness.degreePlansWithTotalCUs == 1
    assert report.processingDetails.formatDetected == "2025 (Current)"
    assert report.processingDetails.strategy == "enhanced-structured"
    assert "concatenated_table" in report.processingDetails.patternsUsed
    assert "ccn_code_collapsed" in report.processingDetails.patternsUsed
    assert report.processingDetails.enhancedFeaturesUsed == []
    assert health_warnings(report) == []


def test_health_flags_empty_catalog():
    report = parse_catalog_text("no courses in here", "catalog-2025-08.pdf").report
    assert health_warnings(report) == ["No courses extracted"]


def test_repeated_plan_rows_are_listed_once(bsba_text):
    repeated = bsba_text.replace(
        "BSBA 202509", "MGMT 3000C715Organizational Behavior31\nBSBA 202509"
    )
    result = parse_catalog_text(repeated, "catalog-2025-08.pdf")
    assert result.catalog.degreePlans["BSBA"].courses == ["C715", "C211", "C483"]
    assert result.report.summary.validationIssues == 0
