# catalog_ingest/extraction/pipeline.py
# orchestrates one catalog end to end, writes JSON outputs (+ DB when configured)
from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError

from ..config import Settings
from ..contracts import CatalogMetadata, DocumentInfo, ParsedCatalog, ParsingReport
from ..store import persist_catalog, write_catalog_outputs
from ..workflow_logger import log_event
from .course_parser import extract_courses
from .degree_plan_parser import extract_degree_plans
from .detector import CatalogFormat, catalog_date_token, detect_catalog_format, output_basename
from .errors import CatalogIngestError, CatalogReadError, CatalogTooLargeError, ParseTimeoutError
from .mappings import extract_mappings
from .outcomes_parser import extract_program_outcomes
from .pdf_text import DocumentText, extract_document_text
from .reporting import build_parsing_report, calculate_statistics
from .standalone_parser import extract_standalone
from .text_index import CodeIndex
from .validation import validate_degree_plans


@dataclass(frozen=True)
class CatalogParseResult:
    catalog: ParsedCatalog
    report: ParsingReport
    format: CatalogFormat


@dataclass
class CatalogRunResult:
    source: str
    ok: bool
    attempts: int = 0
    catalog_path: Optional[Path] = None
    report_path: Optional[Path] = None
    catalog_id: Optional[str] = None
    courses: int = 0
    degree_plans: int = 0
    validation_issues: int = 0
    error: Optional[str] = None


@dataclass
class BatchSummary:
    results: List[CatalogRunResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    @property
    def success_rate(self) -> float:
        if not self.results:
            return 0.0
        return round(self.succeeded / self.total * 100, 1)


def _now_utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ----------------------------
# Pure pipeline over text
# ----------------------------
def parse_catalog_text(
    text: str,
    filename: str,
    page_count: int = 0,
    page_starts: Optional[Sequence[int]] = None,
    pdf_info: Optional[Dict[str, Any]] = None,
    today: Optional[date] = None,
) -> CatalogParseResult:
    """
    classify -> mappings -> courses -> degree plans -> standalone /
    certificates / outcomes -> statistics -> validate -> report.

    Pure given the text: two runs over the same text differ only in
    `parsedAt` and `parsingTimeMs`.
    """
    started = time.perf_counter()
    document = Path(filename).name

    fmt = detect_catalog_format(filename, sample=text, today=today)
    index = CodeIndex(text)
    mappings = extract_mappings(text, index)
    course_run = extract_courses(text, fmt, mappings, index=index, page_starts=page_starts or (), document=document)
    plan_run = extract_degree_plans(text, document)
    standalone = extract_standalone(text, document)
    outcomes = extract_program_outcomes(text, document)

    statistics = calculate_statistics(
        course_run.courses,
        plan_run.plans,
        standalone=standalone.courses,
        certificates=standalone.certificates,
        outcomes=outcomes,
    )
    validation = validate_degree_plans(course_run.courses, plan_run.plans)
    elapsed_ms = int((time.perf_counter() - started) * 1000)

    catalog = ParsedCatalog(
        courses=course_run.courses,
        degreePlans=plan_run.plans,
        standaloneCourses=standalone.courses,
        certificatePrograms=standalone.certificates,
        programOutcomes=outcomes,
        courseBundles=standalone.bundles,
        metadata=CatalogMetadata(
            catalogDate=catalog_date_token(filename),
            era=fmt.era,
            strategy=fmt.strategy,
            parserVersion=f"{fmt.version}-enhanced",
            parsedAt=_now_utc_iso(),
            totalPages=page_count,
            parsingTimeMs=elapsed_ms,
            pdf=DocumentInfo.model_validate(pdf_info) if pdf_info else None,
            statistics=statistics,
        ),
    )

    patterns_used = [name for name, hits in course_run.strategy_hits.items() if hits] + plan_run.row_patterns
    report = build_parsing_report(catalog, validation, document, fmt, patterns_used)

    log_event(
        status="info",
        actor="pipeline",
        event="catalog_parsed",
        document=document,
        extra={
            "era": fmt.era,
            "courses": statistics.coursesFound,
            "degree_plans": statistics.degreePlansFound,
            "validation_issues": len(validation.issues),
            "validation_rate": validation.validation_rate,
            "parsing_time_ms": elapsed_ms,
        },
    )
    return CatalogParseResult(catalog=catalog, report=report, format=fmt)


# ----------------------------
# One file: timeout + retry + persist
# ----------------------------
def _check_source(path: Path, settings: Settings) -> None:
    if not path.is_file():
        raise CatalogReadError(f"Catalog file not found: {path}")
    size_mb = path.stat().st_size / (1024 * 1024)
    if size_mb > settings.max_file_size_mb:
        raise CatalogTooLargeError(
            f"{path.name} is {size_mb:.1f} MB, above the {settings.max_file_size_mb} MB limit"
        )


def _read_and_parse(path: Path) -> Tuple[CatalogParseResult, DocumentText]:
    doc = extract_document_text(path)
    result = parse_catalog_text(
        doc.text,
        path.name,
        page_count=doc.page_count,
        page_starts=doc.page_starts,
        pdf_info=doc.metadata,
    )
    return result, doc


def run_with_timeout(
    fn: Callable[..., Any],
    timeout_ms: int,
    *args: Any,
    document: str = "-",
) -> Any:
    """
    Race `fn(*args)` against `timeout_ms`.

    On timeout the attempt is failed with ParseTimeoutError and the worker's
    result is discarded. The worker is not interrupted, so the call only
    returns once it has drained; no second parse ever overlaps it.
    """
    pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="catalog-parse")
    future = pool.submit(fn, *args)
    try:
        return future.result(timeout=timeout_ms / 1000)
    except FutureTimeout:
        log_event(
            status="warn",
            actor="pipeline",
            event="parse_timed_out",
            document=document,
            extra={"timeout_ms": timeout_ms, "waiting_for_worker": True},
        )
        raise ParseTimeoutError(f"Parse exceeded {timeout_ms} ms") from None
    finally:
        pool.shutdown(wait=True)


def parse_catalog_file(
    path: str | Path,
    settings: Settings,
    sleep: Callable[[float], None] = time.sleep,
) -> CatalogRunResult:
    """
    Parse one catalog PDF and write `catalog-<date>.json` plus its report.

    Read failures, timeouts and OSErrors are retried with exponential
    backoff; an oversized file is not. A failed document never touches
    earlier output files.
    """
    path = Path(path)
    document = path.name
    run = CatalogRunResult(source=str(path), ok=False)
    max_attempts = settings.max_retries + 1

    for attempt in range(1, max_attempts + 1):
        run.attempts = attempt
        retryable = True
        try:
            _check_source(path, settings)
            parsed, doc = run_with_timeout(_read_and_parse, settings.timeout_ms, path, document=document)

            if doc.metadata.get("image_only"):
                log_event(
                    status="warn",
                    actor="pipeline",
                    event="image_only_document",
                    document=document,
                    extra={"pages": doc.page_count, "chars": len(doc.text)},
                )

            basename = output_basename(document)
            run.catalog_path, run.report_path = write_catalog_outputs(
                parsed.catalog, parsed.report, settings.parsed_dir, basename, settings.output_indent
            )
            if settings.database_url:
                run.catalog_id = persist_catalog(
                    settings.database_url,
                    parsed.catalog,
                    parsed.catalog.metadata.catalogDate,
                    document,
                    parsed.report,
                )

            run.ok = True
            run.error = None
            run.courses = parsed.report.summary.totalCourses
            run.degree_plans = parsed.report.summary.totalDegreePlans
            run.validation_issues = parsed.report.summary.validationIssues
            log_event(
                status="success",
                actor="pipeline",
                event="catalog_written",
                document=document,
                extra={
                    "attempt": attempt,
                    "catalog_path": str(run.catalog_path),
                    "report_path": str(run.report_path),
                    "catalog_id": run.catalog_id,
                },
            )
            return run
        except CatalogIngestError as e:
            run.error = f"{type(e).__name__}: {e}"
            retryable = e.retryable
        except OSError as e:
            run.error = f"{type(e).__name__}: {e}"
        except SQLAlchemyError as e:
            run.error = f"{type(e).__name__}: {e}"
            retryable = False

        if not retryable or attempt >= max_attempts:
            break

        delay_ms = settings.retry_delay_ms * 2 ** (attempt - 1)
        log_event(
            status="warn",
            actor="pipeline",
            event="retrying",
            document=document,
            extra={"attempt": attempt, "next_attempt_in_ms": delay_ms, "error": run.error},
        )
        sleep(delay_ms / 1000)

    log_event(
        status="error",
        actor="pipeline",
        event="catalog_failed",
        document=document,
        extra={"attempts": run.attempts, "error": run.error},
    )
    return run


# ----------------------------
# Directory batch
# ----------------------------
def find_catalog_pdfs(catalogs_dir: Path) -> List[Path]:
    catalogs_dir = Path(catalogs_dir)
    if not catalogs_dir.is_dir():
        return []
    return sorted(p for p in catalogs_dir.iterdir() if p.is_file() and p.suffix.lower() == ".pdf")


def parse_all_catalogs(
    settings: Settings,
    sleep: Callable[[float], None] = time.sleep,
) -> BatchSummary:
    """Documents run strictly one after another, in batches with a pause between them."""
    pdfs = find_catalog_pdfs(settings.catalogs_dir)
    summary = BatchSummary()
    if not pdfs:
        log_event(
            status="warn",
            actor="pipeline",
            event="no_catalogs_found",
            extra={"catalogs_dir": str(settings.catalogs_dir)},
        )
        return summary

    batches = [pdfs[i:i + settings.batch_size] for i in range(0, len(pdfs), settings.batch_size)]
    for n, batch in enumerate(batches, start=1):
        log_event(
            status="info",
            actor="pipeline",
            event="batch_started",
            extra={"batch": n, "of": len(batches), "files": [p.name for p in batch]},
        )
        for pdf in batch:
            summary.results.append(parse_catalog_file(pdf, settings, sleep=sleep))
        if n < len(batches) and settings.batch_pause_ms > 0:
            sleep(settings.batch_pause_ms / 1000)

    log_event(
        status="success" if summary.failed == 0 else "warn",
        actor="pipeline",
        event="batch_completed",
        extra={
            "total": summary.total,
            "succeeded": summary.succeeded,
            "failed": summary.failed,
            "success_rate": summary.success_rate,
            "failures": {Path(r.source).name: r.error for r in summary.results if not r.ok},
        },
    )
    return summary
