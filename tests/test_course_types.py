from catalog_ingest.contracts import CourseType
from catalog_ingest.extraction.course_types import (
    classify_course_type,
    explain_course_type,
    is_valid_course_code,
)
from catalog_ingest.extraction.text_index import CodeIndex


def test_letter_suffix_with_base_code_present_is_independent_study():
    index = CodeIndex("C216 - Business Capstone\nLater: C216A - Business Capstone Retake")
    assert explain_course_type("C216A", "Business Capstone Retake", index) == (
        CourseType.INDEPENDENT_STUDY,
        "base-code",
    )


def test_letter_suffix_with_vocabulary_is_independent_study():
    index = CodeIndex("C900A Writing Lab is offered as an independent study option.")
    assert explain_course_type("C900A", "Writing Lab", index) == (CourseType.INDEPENDENT_STUDY, "vocabulary")


def test_alternate_shape_is_flexible_learning():
    index = CodeIndex("PACA101 Principles of Accounting")
    assert explain_course_type("PACA101", "Principles of Accounting", index) == (
        CourseType.FLEXIBLE_LEARNING,
        "code-shape",
    )


def test_alternate_shape_with_vocabulary():
    index = CodeIndex("UTH Foundations - a flexible, competency-based course")
    assert explain_course_type("UTH", "Foundations", index) == (CourseType.FLEXIBLE_LEARNING, "vocabulary")


def test_standard_code_defaults_to_degree_plan():
    index = CodeIndex("C777 Something Unrelated")
    assert explain_course_type("C777", "Something Unrelated", index) == (CourseType.DEGREE_PLAN, "default")
    index = CodeIndex("Bachelor of Science required courses: C777")
    assert classify_course_type("C777", "x", index) == CourseType.DEGREE_PLAN
    assert explain_course_type("C777", "x", index)[1] == "vocabulary"


def test_lone_suffixed_code_without_signals_is_degree_plan():
    index = CodeIndex("C555B Topics")
    assert classify_course_type("C555B", "Topics", index) == CourseType.DEGREE_PLAN


def test_valid_code_shapes():
    for code in ("C172", "C216A", "D1234", "PACA101", "UTH", "CTI1AT", "DCAB"):
        assert is_valid_course_code(code), code
    for code in ("c172", "C12", "bad-code", "1234", ""):
        assert not is_valid_course_code(code), code
