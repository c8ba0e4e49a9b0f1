from catalog_ingest.contracts import School
from catalog_ingest.extraction.degree_plan_parser import (
    clean_program_name,
    determine_school,
    extract_degree_plans,
    parse_course_table,
    repair_collapsed_code,
)
from catalog_ingest.workflow_logger import _get_log_path

GENERIC_PLAN = """Master of Science in Data Analytics
MATH 2010 C955 Applied Probability and Statistics 3 1
DATA 3010 C957 Applied Algebra 3 1
DATA 4010 C962 Current and Emerging Technology 3 2
Total CUs: 34
"""


def test_structured_plan_from_collapsed_table(bsba_text):
    run = extract_degree_plans(bsba_text)
    assert run.phase == "structured"
    assert list(run.plans) == ["BSBA"]
    plan = run.plans["BSBA"]
    assert plan.name == "Bachelor of Science Business Administration, Marketing"
    assert plan.programCode == "BSBA"
    assert plan.effectiveDate == "202509"
    assert plan.totalCUs == 120
    assert plan.courses == ["C715", "C211", "C483"]
    assert plan.school == School.BUSINESS
    assert plan.description == (
        "The Bachelor of Science in Business Administration, Marketing prepares students for careers in marketing."
    )
    assert run.row_patterns == ["ccn_code_collapsed"]


def test_generic_titles_when_no_structured_plan():
    run = extract_degree_plans(GENERIC_PLAN)
    assert run.phase == "generic"
    assert len(run.plans) == 1
    key, plan = next(iter(run.plans.items()))
    assert key == "master-of-science-in-data-analytics"
    assert plan.courses == ["C955", "C957", "C962"]
    assert plan.totalCUs == 34
    assert plan.programCode is None
    assert plan.school == School.TECHNOLOGY
    assert run.row_patterns == ["complete_title/table_like_scan"]


def test_text_without_plans():
    run = extract_degree_plans("Nothing that looks like a program here.")
    assert run.plans == {}
    assert run.phase == "none"


def test_malformed_effective_date_is_dropped_and_logged():
    window = (
        "CCN Course Number Course Description CUs Term\n"
        "MGMT 3000C715Organizational Behavior31\n"
        "BSBA 202513 Total CUs: 120\n"
    )
    table = parse_course_table(window, document="catalog-2025-08.pdf")
    assert table.courses == ["C715"]
    assert table.program_code == "BSBA"
    assert table.effective_date is None
    assert table.total_cus == 120
    log = _get_log_path().read_text(encoding="utf-8")
    assert "invalid_effective_date" in log
    assert '"value": "202513"' in log


def test_footer_total_used_when_no_total_phrase():
    window = (
        "CCN Course Number Course Description CUs Term\n"
        "MGMT 3000C715Organizational Behavior31\n"
        "BSBA 202509 120\n"
    )
    table = parse_course_table(window)
    assert table.total_cus == 120
    assert table.effective_date == "202509"


def test_collapsed_code_repair():
    assert repair_collapsed_code("C715O", "r") == "C715"
    assert repair_collapsed_code("C216A", " ") == "C216A"
    assert repair_collapsed_code("C216A", "1") == "C216A"
    assert repair_collapsed_code("C715", "O") == "C715"


def test_program_name_cleanup_and_school():
    assert clean_program_name("Master of Science in Nursing program to design care") == "Master of Science in Nursing"
    assert clean_program_name("Bachelor of X") is None
    assert clean_program_name("Something else entirely different") is None
    assert determine_school("Bachelor of Science in Nursing") == School.HEALTH
    assert determine_school("Master of Arts in Teaching") == School.EDUCATION
    assert determine_school("Bachelor of Arts in Music") is None
