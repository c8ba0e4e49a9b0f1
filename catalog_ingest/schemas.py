from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class CatalogOut(BaseModel):
    catalogId: str
    catalogDate: str
    filename: str
    era: str
    strategy: str
    parserVersion: str
    parsedAt: str
    totalPages: int
    parsingTimeMs: int
    statistics: Optional[Dict[str, Any]] = None
    createdAt: datetime


class CourseOut(BaseModel):
    courseCode: str
    courseName: str
    ccn: Optional[str] = None
    competencyUnits: Optional[int] = None
    description: Optional[str] = None
    courseType: str
    pageNumber: Optional[int] = None
    catalogDate: str


class CourseSearchOut(BaseModel):
    catalogDate: str
    total: int
    courses: List[CourseOut]


class DegreePlanSummaryOut(BaseModel):
    planKey: str
    name: str
    programCode: Optional[str] = None
    effectiveDate: Optional[str] = None
    totalCUs: Optional[int] = None
    school: Optional[str] = None
    courseCount: int


class DegreePlanOut(BaseModel):
    planKey: str
    name: str
    programCode: Optional[str] = None
    effectiveDate: Optional[str] = None
    totalCUs: Optional[int] = None
    school: Optional[str] = None
    description: Optional[str] = None
    courses: List[str]
    missingCourses: List[str]
    catalogDate: str
