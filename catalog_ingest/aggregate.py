# catalog_ingest/aggregate.py
# merges every parsed catalog-YYYY-MM.json into one courses.json
from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field

from .extraction.errors import CatalogReadError
from .store import write_json_atomic
from .workflow_logger import log_event

CATALOG_FILE_RE = re.compile(r"^catalog-(\d{4}-\d{2})\.json$")


class AggregatedCourse(BaseModel):
    id: str  # lower-cased code
    code: str
    name: str
    description: Optional[str] = None
    ccn: Optional[str] = None
    competencyUnits: Optional[int] = None
    catalogVersions: List[str] = Field(default_factory=list)
    lastUpdated: str


class AggregateMetadata(BaseModel):
    generatedAt: str
    totalCourses: int
    catalogVersionsIncluded: List[str]
    description: str = (
        "Courses from all available catalog versions, keyed by lower-cased course code."
    )


class CoursesAggregate(BaseModel):
    metadata: AggregateMetadata
    courses: Dict[str, AggregatedCourse] = Field(default_factory=dict)


def normalize_course_code(code: str) -> str:
    return code.lower()


def catalog_date_from_filename(filename: str) -> str:
    m = CATALOG_FILE_RE.match(Path(filename).name)
    return m.group(1) if m else Path(filename).stem


def aggregate_courses(catalogs: Mapping[str, Mapping[str, Any]]) -> Dict[str, AggregatedCourse]:
    """
    Merge course maps from several catalogs, oldest date first.

    Later catalogs win for name, CCN and CUs; the longest description seen
    is kept; every catalog date a course appears in is recorded.
    """
    merged: Dict[str, AggregatedCourse] = {}

    for catalog_date in sorted(catalogs):
        courses = catalogs[catalog_date].get("courses") or {}
        for code, course in courses.items():
            raw_code = course.get("courseCode") or code
            key = normalize_course_code(raw_code)
            existing = merged.get(key)

            if existing is None:
                merged[key] = AggregatedCourse(
                    id=key,
                    code=raw_code,
                    name=course.get("courseName") or raw_code,
                    description=course.get("description"),
                    ccn=course.get("ccn"),
                    competencyUnits=course.get("competencyUnits"),
                    catalogVersions=[catalog_date],
                    lastUpdated=catalog_date,
                )
                continue

            existing.catalogVersions.append(catalog_date)
            existing.lastUpdated = catalog_date
            if course.get("courseName"):
                existing.name = course["courseName"]
            desc = course.get("description")
            if desc and (not existing.description or len(desc) > len(existing.description)):
                existing.description = desc
            if course.get("ccn"):
                existing.ccn = course["ccn"]
            if isinstance(course.get("competencyUnits"), int):
                existing.competencyUnits = course["competencyUnits"]

    return {k: merged[k] for k in sorted(merged, key=lambda k: merged[k].code)}


def load_parsed_catalogs(parsed_dir: Path) -> Dict[str, Dict[str, Any]]:
    catalogs: Dict[str, Dict[str, Any]] = {}
    parsed_dir = Path(parsed_dir)
    if not parsed_dir.is_dir():
        return catalogs

    for path in sorted(parsed_dir.iterdir()):
        if not CATALOG_FILE_RE.match(path.name):
            continue
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            log_event(
                status="warn",
                actor="aggregate",
                event="catalog_skipped",
                document=path.name,
                extra={"error": str(e)},
            )
            continue
        catalogs[catalog_date_from_filename(path.name)] = data
    return catalogs


def generate_courses_aggregate(parsed_dir: Path, output_file: Path, indent: Optional[int] = 2) -> CoursesAggregate:
    catalogs = load_parsed_catalogs(parsed_dir)
    if not catalogs:
        raise CatalogReadError(f"No catalog-YYYY-MM.json files found in {parsed_dir}")

    courses = aggregate_courses(catalogs)
    out = CoursesAggregate(
        metadata=AggregateMetadata(
            generatedAt=datetime.now(timezone.utc).isoformat(),
            totalCourses=len(courses),
            catalogVersionsIncluded=sorted(catalogs),
        ),
        courses=courses,
    )
    write_json_atomic(Path(output_file), out.model_dump(mode="json", exclude_none=True), indent)

    log_event(
        status="success",
        actor="aggregate",
        event="courses_aggregated",
        extra={"catalogs": sorted(catalogs), "courses": len(courses), "output": str(output_file)},
    )
    return out
