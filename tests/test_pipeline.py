import dataclasses
import json
import threading
import time

import pytest
from sqlalchemy import create_engine, func, select

from catalog_ingest.config import Settings
from catalog_ingest.extraction import pipeline
from catalog_ingest.extraction.errors import CatalogReadError
from catalog_ingest.extraction.pdf_text import DocumentText
from catalog_ingest.models import Catalog, CatalogCourse


def _doc(text):
    return DocumentText(text=text, page_count=1, page_starts=[0], metadata={"pages": 1, "image_only": False})


@pytest.fixture
def settings(tmp_path):
    base = Settings.from_env(base_dir=tmp_path)
    return dataclasses.replace(
        base,
        max_retries=3,
        retry_delay_ms=10,
        timeout_ms=5000,
        batch_size=2,
        batch_pause_ms=0,
        database_url=None,
    )


def _pdf(settings, name, size=64):
    settings.catalogs_dir.mkdir(parents=True, exist_ok=True)
    path = settings.catalogs_dir / name
    path.write_bytes(b"%PDF-1.7\n" + b"0" * size)
    return path


# ----------------------------
# Pure text pipeline
# ----------------------------
def test_parse_catalog_text_scenario_a(scenario_a_text):
    result = pipeline.parse_catalog_text(scenario_a_text, "catalog-2025-08.pdf")
    course = result.catalog.courses["C172"]
    assert course.courseName == "Network and Security - Foundations"
    assert course.ccn == "IT 2120"
    assert result.catalog.metadata.catalogDate == "2025-08"
    assert result.catalog.metadata.era == "2025 (Current)"
    assert result.catalog.degreePlans == {}


def test_parse_catalog_text_scenario_b(bsba_text):
    result = pipeline.parse_catalog_text(bsba_text, "catalog-2025-08.pdf")
    plan = result.catalog.degreePlans["BSBA"]
    assert plan.courses == ["C715", "C211", "C483"]
    assert result.catalog.metadata.statistics.coursesFound == 3
    assert result.report.summary.validationIssues == 0


def test_parse_is_deterministic_apart_from_timing(bsba_text):
    a = pipeline.parse_catalog_text(bsba_text, "catalog-2025-08.pdf").catalog.model_dump()
    b = pipeline.parse_catalog_text(bsba_text, "catalog-2025-08.pdf").catalog.model_dump()
    for d in (a, b):
        d["metadata"].pop("parsedAt")
        d["metadata"].pop("parsingTimeMs")
    assert a == b


# ----------------------------
# One file
# ----------------------------
def test_parse_file_writes_catalog_and_report(settings, monkeypatch, bsba_text):
    pdf = _pdf(settings, "catalog-2025-08.pdf")
    monkeypatch.setattr(pipeline, "extract_document_text", lambda p: _doc(bsba_text))

    run = pipeline.parse_catalog_file(pdf, settings)
    assert run.ok and run.attempts == 1
    assert run.catalog_path == settings.parsed_dir / "catalog-2025-08.json"
    assert run.report_path == settings.parsed_dir / "catalog-2025-08.report.json"
    assert (run.courses, run.degree_plans, run.validation_issues) == (3, 1, 0)

    written = json.loads(run.catalog_path.read_text(encoding="utf-8"))
    assert set(written["courses"]) == {"C715", "C211", "C483"}
    assert written["metadata"]["pdf"]["pages"] == 1
    report = json.loads(run.report_path.read_text(encoding="utf-8"))
    assert report["summary"]["totalCourses"] == 3


def test_retry_then_success(settings, monkeypatch, bsba_text):
    pdf = _pdf(settings, "catalog-2025-08.pdf")
    calls = []

    def flaky(p):
        calls.append(p)
        if len(calls) == 1:
            raise CatalogReadError("temporarily unreadable")
        return _doc(bsba_text)

    sleeps = []
    monkeypatch.setattr(pipeline, "extract_document_text", flaky)
    run = pipeline.parse_catalog_file(pdf, settings, sleep=sleeps.append)
    assert run.ok
    assert run.attempts == 2
    assert sleeps == [0.01]


def test_exhausted_retries_back_off_exponentially(settings, monkeypatch):
    pdf = _pdf(settings, "catalog-2025-08.pdf")

    def broken(p):
        raise CatalogReadError("unreadable")

    sleeps = []
    monkeypatch.setattr(pipeline, "extract_document_text", broken)
    run = pipeline.parse_catalog_file(pdf, settings, sleep=sleeps.append)
    assert not run.ok
    assert run.attempts == 4
    assert sleeps == [0.01, 0.02, 0.04]
    assert "CatalogReadError" in run.error
    assert not (settings.parsed_dir / "catalog-2025-08.json").exists()


def test_oversized_file_is_not_retried(settings, monkeypatch, bsba_text):
    settings = dataclasses.replace(settings, max_file_size_mb=1)
    pdf = _pdf(settings, "catalog-2025-08.pdf", size=2 * 1024 * 1024)
    monkeypatch.setattr(pipeline, "extract_document_text", lambda p: _doc(bsba_text))

    sleeps = []
    run = pipeline.parse_catalog_file(pdf, settings, sleep=sleeps.append)
    assert not run.ok
    assert run.attempts == 1
    assert sleeps == []
    assert "CatalogTooLargeError" in run.error


def test_missing_file_fails(settings):
    run = pipeline.parse_catalog_file(settings.catalogs_dir / "nope.pdf", settings, sleep=lambda s: None)
    assert not run.ok
    assert "not found" in run.error


def test_timeout_fails_the_attempt(settings, monkeypatch, bsba_text):
    settings = dataclasses.replace(settings, timeout_ms=50, max_retries=0)
    pdf = _pdf(settings, "catalog-2025-08.pdf")

    def slow(p):
        time.sleep(0.5)
        return _doc(bsba_text)

    monkeypatch.setattr(pipeline, "extract_document_text", slow)
    run = pipeline.parse_catalog_file(pdf, settings)
    assert not run.ok
    assert "ParseTimeoutError" in run.error
    assert not (settings.parsed_dir / "catalog-2025-08.json").exists()


def test_timed_out_parses_never_overlap(settings, monkeypatch, bsba_text):
    settings = dataclasses.replace(settings, timeout_ms=50, max_retries=2, batch_pause_ms=0)
    _pdf(settings, "catalog-2024-01.pdf")
    _pdf(settings, "catalog-2025-08.pdf")

    lock = threading.Lock()
    running = [0]
    peak = [0]

    def slow(p):
        with lock:
            running[0] += 1
            peak[0] = max(peak[0], running[0])
        try:
            time.sleep(0.2)
            return _doc(bsba_text)
        finally:
            with lock:
                running[0] -= 1

    monkeypatch.setattr(pipeline, "extract_document_text", slow)
    summary = pipeline.parse_all_catalogs(settings, sleep=lambda s: None)

    assert [r.attempts for r in summary.results] == [3, 3]
    assert summary.failed == 2
    assert peak[0] == 1
    assert running[0] == 0


def test_failed_document_leaves_previous_output(settings, monkeypatch, bsba_text):
    pdf = _pdf(settings, "catalog-2025-08.pdf")
    monkeypatch.setattr(pipeline, "extract_document_text", lambda p: _doc(bsba_text))
    first = pipeline.parse_catalog_file(pdf, settings)
    before = first.catalog_path.read_text(encoding="utf-8")

    def broken(p):
        raise CatalogReadError("gone")

    monkeypatch.setattr(pipeline, "extract_document_text", broken)
    second = pipeline.parse_catalog_file(pdf, settings, sleep=lambda s: None)
    assert not second.ok
    assert first.catalog_path.read_text(encoding="utf-8") == before


def test_persist_replaces_rows_for_same_date(settings, monkeypatch, tmp_path, bsba_text):
    url = f"sqlite:///{tmp_path / 'catalogs.db'}"
    settings = dataclasses.replace(settings, database_url=url)
    pdf = _pdf(settings, "catalog-2025-08.pdf")
    monkeypatch.setattr(pipeline, "extract_document_text", lambda p: _doc(bsba_text))

    first = pipeline.parse_catalog_file(pdf, settings)
    second = pipeline.parse_catalog_file(pdf, settings)
    assert first.ok and second.ok
    assert first.catalog_id and second.catalog_id

    engine = create_engine(url)
    try:
        with engine.connect() as conn:
            assert conn.execute(select(func.count()).select_from(Catalog)).scalar() == 1
            assert conn.execute(select(func.count()).select_from(CatalogCourse)).scalar() == 3
    finally:
        engine.dispose()


# ----------------------------
# Batch
# ----------------------------
def test_parse_all_in_batches(settings, monkeypatch, bsba_text):
    settings = dataclasses.replace(settings, batch_pause_ms=250, max_retries=0)
    for name in ("catalog-2023-01.pdf", "catalog-2024-01.pdf", "catalog-2025-08.pdf"):
        _pdf(settings, name)

    def extract(p):
        if p.name == "catalog-2024-01.pdf":
            raise CatalogReadError("corrupt")
        return _doc(bsba_text)

    sleeps = []
    monkeypatch.setattr(pipeline, "extract_document_text", extract)
    summary = pipeline.parse_all_catalogs(settings, sleep=sleeps.append)

    assert summary.total == 3
    assert summary.succeeded == 2
    assert summary.failed == 1
    assert summary.success_rate == 66.7
    assert sleeps == [0.25]
    assert [r.ok for r in summary.results] == [True, False, True]


def test_parse_all_with_no_pdfs(settings):
    summary = pipeline.parse_all_catalogs(settings)
    assert summary.total == 0
    assert summary.success_rate == 0.0
