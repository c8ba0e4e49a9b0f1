# catalog_ingest/store.py
# whole-document writers: catalog JSON + report JSON on disk, rows in the DB
from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Tuple

from pydantic import BaseModel
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .contracts import ParsedCatalog, ParsingReport
from .models import Base, Catalog, CatalogCourse, CatalogDegreePlan
from .workflow_logger import log_event


# ----------------------------
# JSON files
# ----------------------------
def _dumps(data: Any, indent: Optional[int]) -> str:
    return json.dumps(data, indent=indent, ensure_ascii=False) + "\n"


def write_json_atomic(path: Path, data: Any, indent: Optional[int] = 2) -> Path:
    """
    Write JSON next to its destination, then move it into place.

    A failed write leaves any previous file at `path` untouched.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = data.model_dump(mode="json") if isinstance(data, BaseModel) else data

    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(_dumps(payload, indent))
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise
    return path


def write_catalog_outputs(
    catalog: ParsedCatalog,
    report: ParsingReport,
    parsed_dir: Path,
    basename: str,
    indent: Optional[int] = 2,
) -> Tuple[Path, Path]:
    """Write `<basename>.json` and `<basename>.report.json`; returns both paths."""
    parsed_dir = Path(parsed_dir)
    catalog_path = write_json_atomic(parsed_dir / f"{basename}.json", catalog, indent)
    report_path = write_json_atomic(parsed_dir / f"{basename}.report.json", report, indent)
    return catalog_path, report_path


# ----------------------------
# Database
# ----------------------------
def make_engine(database_url: str) -> Engine:
    return create_engine(
        database_url,
        connect_args={"check_same_thread": False} if database_url.startswith("sqlite") else {},
    )


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)


def _catalog_row(catalog: ParsedCatalog, catalog_date: str, filename: str, report: Optional[ParsingReport]) -> Catalog:
    meta = catalog.metadata
    row = Catalog(
        catalog_date=catalog_date,
        filename=filename,
        era=meta.era,
        strategy=meta.strategy,
        parser_version=meta.parserVersion,
        parsed_at=meta.parsedAt,
        total_pages=meta.totalPages,
        parsing_time_ms=meta.parsingTimeMs,
        statistics_json=meta.statistics.model_dump(mode="json"),
        report_json=report.model_dump(mode="json") if report is not None else None,
        extras_json={
            "standaloneCourses": {k: v.model_dump(mode="json") for k, v in catalog.standaloneCourses.items()},
            "certificatePrograms": {k: v.model_dump(mode="json") for k, v in catalog.certificatePrograms.items()},
            "programOutcomes": {k: v.model_dump(mode="json") for k, v in catalog.programOutcomes.items()},
            "courseBundles": [b.model_dump(mode="json") for b in catalog.courseBundles],
        },
    )

    for c in catalog.courses.values():
        row.courses.append(
            CatalogCourse(
                course_code=c.courseCode,
                course_name=c.courseName,
                ccn=c.ccn,
                competency_units=c.competencyUnits,
                description=c.description,
                course_type=c.courseType.value,
                page_number=c.pageNumber,
            )
        )

    for key, p in catalog.degreePlans.items():
        row.degree_plans.append(
            CatalogDegreePlan(
                plan_key=key,
                name=p.name,
                program_code=p.programCode,
                effective_date=p.effectiveDate,
                total_cus=p.totalCUs,
                school=p.school.value if p.school is not None else None,
                description=p.description,
                courses_json=list(p.courses),
            )
        )
    return row


def save_catalog(
    db: Session,
    catalog: ParsedCatalog,
    catalog_date: str,
    filename: str,
    report: Optional[ParsingReport] = None,
) -> Catalog:
    """
    Persist one parsed catalog, replacing any earlier rows for the same
    catalog date. Delete and insert happen in one transaction.
    """
    try:
        existing = db.query(Catalog).filter(Catalog.catalog_date == catalog_date).first()
        if existing is not None:
            db.delete(existing)
            db.flush()
        row = _catalog_row(catalog, catalog_date, filename, report)
        db.add(row)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(row)
    log_event(
        status="info",
        actor="store",
        event="catalog_saved",
        document=filename,
        extra={
            "catalog_date": catalog_date,
            "replaced": existing is not None,
            "courses": len(catalog.courses),
            "degree_plans": len(catalog.degreePlans),
        },
    )
    return row


def persist_catalog(
    database_url: str,
    catalog: ParsedCatalog,
    catalog_date: str,
    filename: str,
    report: Optional[ParsingReport] = None,
) -> str:
    """Open the configured database, make sure tables exist, save; returns the catalog id."""
    engine = make_engine(database_url)
    try:
        init_db(engine)
        SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
        db = SessionLocal()
        try:
            return save_catalog(db, catalog, catalog_date, filename, report).catalog_id
        finally:
            db.close()
    finally:
        engine.dispose()
