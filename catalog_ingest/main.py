from __future__ import annotations

import os
import re
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from sqlalchemy import or_, text
from sqlalchemy.orm import Session, sessionmaker

from catalog_ingest.contracts import CourseType
from catalog_ingest.models import Catalog, CatalogCourse, CatalogDegreePlan
from catalog_ingest.schemas import (
    CatalogOut,
    CourseOut,
    CourseSearchOut,
    DegreePlanOut,
    DegreePlanSummaryOut,
)
from catalog_ingest.store import init_db, make_engine
from catalog_ingest.workflow_logger import log_event


# Database setup
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./catalog_ingest.db")
engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

DATED_CATALOG_RE = re.compile(r"^(?:19|20)\d{2}(?:-(?:0[1-9]|1[0-2]))?$")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    init_db(engine)
    log_event(status="info", actor="api", event="startup", extra={"database": DATABASE_URL.split("@")[-1]})
    yield


app = FastAPI(title="Catalog Ingest API", lifespan=lifespan)


def get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@app.get("/health/db")
def health_db(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"ok": True}


def catalog_recency(c: Catalog):
    """Dated catalogs (YYYY or YYYY-MM) by date first, undated ones after them by ingest time."""
    dated = bool(DATED_CATALOG_RE.match(c.catalog_date))
    return (dated, c.catalog_date if dated else "", c.created_at)


def get_catalog(db: Session, catalog_date: Optional[str]) -> Catalog:
    """The requested catalog date, or the most recent one."""
    q = db.query(Catalog)
    if catalog_date:
        row = q.filter(Catalog.catalog_date == catalog_date).first()
        if not row:
            raise HTTPException(status_code=404, detail="Catalog not found")
        return row

    rows = q.all()
    if not rows:
        raise HTTPException(status_code=404, detail="No catalogs have been ingested")
    return max(rows, key=catalog_recency)


def catalog_to_out(c: Catalog) -> CatalogOut:
    return CatalogOut(
        catalogId=c.catalog_id,
        catalogDate=c.catalog_date,
        filename=c.filename,
        era=c.era,
        strategy=c.strategy,
        parserVersion=c.parser_version,
        parsedAt=c.parsed_at,
        totalPages=c.total_pages,
        parsingTimeMs=c.parsing_time_ms,
        statistics=c.statistics_json,
        createdAt=c.created_at,
    )


def course_to_out(c: CatalogCourse, catalog_date: str) -> CourseOut:
    return CourseOut(
        courseCode=c.course_code,
        courseName=c.course_name,
        ccn=c.ccn,
        competencyUnits=c.competency_units,
        description=c.description,
        courseType=c.course_type,
        pageNumber=c.page_number,
        catalogDate=catalog_date,
    )


# READ ROUTES
@app.get("/api/catalogs", response_model=List[CatalogOut])
def list_catalogs(db: Session = Depends(get_db)):
    rows = sorted(db.query(Catalog).all(), key=catalog_recency, reverse=True)
    return [catalog_to_out(c) for c in rows]


@app.get("/api/courses", response_model=CourseSearchOut)
def search_courses(
    q: Optional[str] = Query(None, description="Substring of course code or name"),
    courseType: Optional[CourseType] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    catalogDate: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    catalog = get_catalog(db, catalogDate)
    query = db.query(CatalogCourse).filter(CatalogCourse.catalog_id == catalog.catalog_id)
    if q:
        like = f"%{q.strip()}%"
        query = query.filter(or_(CatalogCourse.course_code.ilike(like), CatalogCourse.course_name.ilike(like)))
    if courseType is not None:
        query = query.filter(CatalogCourse.course_type == courseType.value)

    total = query.count()
    rows = query.order_by(CatalogCourse.course_code.asc()).limit(limit).all()
    return CourseSearchOut(
        catalogDate=catalog.catalog_date,
        total=total,
        courses=[course_to_out(c, catalog.catalog_date) for c in rows],
    )


@app.get("/api/courses/{code}", response_model=CourseOut)
def get_course(code: str, catalogDate: Optional[str] = Query(None), db: Session = Depends(get_db)):
    catalog = get_catalog(db, catalogDate)
    row = (
        db.query(CatalogCourse)
        .filter(
            CatalogCourse.catalog_id == catalog.catalog_id,
            CatalogCourse.course_code == code.strip().upper(),
        )
        .first()
    )
    if not row:
        raise HTTPException(status_code=404, detail="Course not found")
    return course_to_out(row, catalog.catalog_date)


@app.get("/api/degree-plans", response_model=List[DegreePlanSummaryOut])
def list_degree_plans(catalogDate: Optional[str] = Query(None), db: Session = Depends(get_db)):
    catalog = get_catalog(db, catalogDate)
    rows = (
        db.query(CatalogDegreePlan)
        .filter(CatalogDegreePlan.catalog_id == catalog.catalog_id)
        .order_by(CatalogDegreePlan.name.asc())
        .all()
    )
    return [
        DegreePlanSummaryOut(
            planKey=p.plan_key,
            name=p.name,
            programCode=p.program_code,
            effectiveDate=p.effective_date,
            totalCUs=p.total_cus,
            school=p.school,
            courseCount=len(p.courses_json or []),
        )
        for p in rows
    ]


@app.get("/api/degree-plans/{planKey}", response_model=DegreePlanOut)
def get_degree_plan(planKey: str, catalogDate: Optional[str] = Query(None), db: Session = Depends(get_db)):
    catalog = get_catalog(db, catalogDate)
    plan = (
        db.query(CatalogDegreePlan)
        .filter(CatalogDegreePlan.catalog_id == catalog.catalog_id, CatalogDegreePlan.plan_key == planKey)
        .first()
    )
    if not plan:
        raise HTTPException(status_code=404, detail="Degree plan not found")

    codes = list(plan.courses_json or [])
    known = {
        c for (c,) in db.query(CatalogCourse.course_code)
        .filter(CatalogCourse.catalog_id == catalog.catalog_id, CatalogCourse.course_code.in_(codes))
        .all()
    } if codes else set()

    return DegreePlanOut(
        planKey=plan.plan_key,
        name=plan.name,
        programCode=plan.program_code,
        effectiveDate=plan.effective_date,
        totalCUs=plan.total_cus,
        school=plan.school,
        description=plan.description,
        courses=codes,
        missingCourses=[c for c in dict.fromkeys(codes) if c not in known],
        catalogDate=catalog.catalog_date,
    )
