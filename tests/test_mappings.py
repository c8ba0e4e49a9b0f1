from catalog_ingest.extraction.mappings import (
    CU_CAPSTONE,
    CU_CONTEXT,
    CU_EXPLICIT,
    CU_TABLE_ROW,
    CU_TRAILING,
    codes_with_cu_source,
    extract_detailed_descriptions,
    extract_mappings,
)


def test_collapsed_table_row_gives_ccn_and_cus(bsba_text):
    m = extract_mappings(bsba_text)
    assert m.ccn["C715"] == "MGMT 3000"
    assert m.ccn["C211"] == "MKTG 2010"
    assert m.ccn["C483"] == "BUS 2010"
    assert m.cu["C715"] == 3
    assert m.cu["C483"] == 4
    assert m.cu_sources["C715"] == CU_TABLE_ROW
    # collapsed cell never becomes a code of its own
    assert "C715O" not in m.ccn


def test_parenthesized_ccn_on_the_same_line():
    m = extract_mappings("C234 - Workforce Planning: Recruitment and Selection (HRM 3200)")
    assert m.ccn == {"C234": "HRM 3200"}


def test_explicit_competency_unit_phrase():
    m = extract_mappings("C200 Data Structures is worth 4 competency units.")
    assert m.cu == {"C200": 4}
    assert m.cu_sources["C200"] == CU_EXPLICIT


def test_trailing_number_after_dash():
    m = extract_mappings("C234 - Workforce Planning: Recruitment and Selection 3")
    assert m.cu == {"C234": 3}
    assert m.cu_sources["C234"] == CU_TRAILING


def test_nearby_numeral_prefers_three_to_six():
    m = extract_mappings("C300 Advanced Topics\nOffered in term 2 for 5 units")
    assert m.cu == {"C300": 5}
    assert codes_with_cu_source(m, CU_CONTEXT) == ["C300"]


def test_no_numeric_context_leaves_cus_unset():
    m = extract_mappings("C999 - Mystery Course - A course with no numeric context at all in this sentence.")
    assert "C999" not in m.cu
    assert m.cu_sources == {}


def test_capstone_allow_list_is_the_only_default():
    m = extract_mappings(
        "C216 - Business Capstone - Students complete a final project.\n"
        "C217 - Another Capstone - Students complete another project."
    )
    assert m.cu == {"C216": 4}
    assert m.cu_sources == {"C216": CU_CAPSTONE}


def test_detailed_descriptions_keyed_by_code():
    text = "C141 - EDUC 5220 - Instructional Planning - Detailed description of planning.\n\nOther text"
    assert extract_detailed_descriptions(text) == {
        "C141": "EDUC 5220 - Instructional Planning - Detailed description of planning."
    }


def test_ccn_digits_are_not_read_as_table_row_cus():
    m = extract_mappings("C182 - ITEC 101 - Introduction to IT - Students survey the information technology field.")
    assert m.ccn == {"C182": "ITEC 101"}
    assert m.cu == {}
    assert m.cu_sources == {}


def test_table_row_suffix_must_end_the_row():
    m = extract_mappings("DATA 1000C500Data Analysis12 weeks of guided study")
    assert m.ccn["C500"] == "DATA 1000"
    assert "C500" not in m.cu
