from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class CourseType(str, Enum):
    DEGREE_PLAN = "degree-plan"
    INDEPENDENT_STUDY = "independent-study"
    FLEXIBLE_LEARNING = "flexible-learning"


class School(str, Enum):
    BUSINESS = "Business"
    HEALTH = "Health"
    TECHNOLOGY = "Technology"
    EDUCATION = "Education"


class OutcomeCategory(str, Enum):
    TECHNICAL = "technical"
    PROFESSIONAL = "professional"
    ANALYTICAL = "analytical"


class IssueType(str, Enum):
    MISSING_COURSE = "missing_course"
    DUPLICATE_COURSE = "duplicate_course"
    INVALID_FORMAT = "invalid_format"
    MISSING_DATA = "missing_data"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


# ---------------------------
# Catalog entities
# ---------------------------
class Course(BaseModel):
    courseCode: str
    courseName: str
    ccn: Optional[str] = None
    competencyUnits: Optional[int] = Field(default=None, ge=1, le=12)
    description: Optional[str] = None
    courseType: CourseType = CourseType.DEGREE_PLAN
    pageNumber: Optional[int] = None


class DegreePlan(BaseModel):
    """
    A named program and its ordered course list.

    `courses` may reference codes missing from the course map; that is
    reported by the cross-validator, never repaired here.
    """
    name: str
    programCode: Optional[str] = None
    effectiveDate: Optional[str] = None  # YYYYMM
    totalCUs: Optional[int] = None
    courses: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    school: Optional[School] = None


class PriceRange(BaseModel):
    min: int
    max: int


class StandaloneCourse(BaseModel):
    courseCode: str
    courseName: str
    priceRange: PriceRange
    accessDuration: str


class CourseBundle(BaseModel):
    priceRange: PriceRange
    duration: str
    accessType: str = "bundle"


class CURange(BaseModel):
    min: int
    max: int


class CertificateProgram(BaseModel):
    name: str
    price: int
    totalCUs: Optional[int] = None
    duration: Optional[str] = None
    cuRange: Optional[CURange] = None


class OutcomeStatement(BaseModel):
    outcome: str
    category: OutcomeCategory


class ProgramOutcome(BaseModel):
    school: School
    program: str
    outcomes: List[OutcomeStatement] = Field(default_factory=list)


class ValidationIssue(BaseModel):
    type: IssueType
    severity: Severity
    location: str
    message: str
    details: Optional[Dict[str, Any]] = None


# ---------------------------
# Metadata + statistics
# ---------------------------
class DegreePlanStatistics(BaseModel):
    totalCourses: int = 0
    uniqueCourses: int = 0
    averageCoursesPerPlan: int = 0
    plansWithTotalCUs: int = 0
    plansMissingTotalCUs: int = 0
    schoolDistribution: Optional[Dict[str, int]] = None


class DataQuality(BaseModel):
    coursesWithDescription: int = 0
    coursesWithCCN: int = 0
    coursesWithCUs: int = 0
    completeCourseRecords: int = 0


class CatalogStatistics(BaseModel):
    coursesFound: int = 0
    degreePlansFound: int = 0
    standaloneCourses: int = 0
    certificatePrograms: int = 0
    programOutcomes: int = 0
    ccnCoverage: int = 0
    cuCoverage: int = 0
    coursesByPrefix: Dict[str, int] = Field(default_factory=dict)
    coursesByType: Dict[str, int] = Field(default_factory=dict)
    degreePlanStatistics: DegreePlanStatistics = Field(default_factory=DegreePlanStatistics)
    dataQuality: DataQuality = Field(default_factory=DataQuality)


class DocumentInfo(BaseModel):
    """Text-provider metadata, passed through untouched."""
    title: Optional[str] = None
    author: Optional[str] = None
    producer: Optional[str] = None
    version: Optional[str] = None
    pages: int = 0


class CatalogMetadata(BaseModel):
    catalogDate: str
    era: str
    strategy: str
    parserVersion: str
    parsedAt: str
    totalPages: int = 0
    parsingTimeMs: int = 0
    pdf: Optional[DocumentInfo] = None
    statistics: CatalogStatistics = Field(default_factory=CatalogStatistics)


class ParsedCatalog(BaseModel):
    model_config = ConfigDict(frozen=True)

    courses: Dict[str, Course] = Field(default_factory=dict)
    degreePlans: Dict[str, DegreePlan] = Field(default_factory=dict)
    standaloneCourses: Dict[str, StandaloneCourse] = Field(default_factory=dict)
    certificatePrograms: Dict[str, CertificateProgram] = Field(default_factory=dict)
    programOutcomes: Dict[str, ProgramOutcome] = Field(default_factory=dict)
    courseBundles: List[CourseBundle] = Field(default_factory=list)
    metadata: CatalogMetadata


# ---------------------------
# Parsing report
# ---------------------------
class ReportSummary(BaseModel):
    totalCourses: int
    totalDegreePlans: int
    totalProgramOutcomes: int
    ccnCoverage: int
    cuCoverage: int
    validationIssues: int
    parsingDuration: int


class PlanCourseValidation(BaseModel):
    totalCoursesInPlans: int
    uniqueCoursesInPlans: int
    coursesFoundInCatalog: int
    missingCourses: List[str] = Field(default_factory=list)
    validationRate: float


class DataCompleteness(BaseModel):
    coursesWithAllFields: int
    coursesWithDescription: int
    coursesWithCCN: int
    coursesWithCUs: int
    degreePlansWithTotalCUs: int


class ReportValidation(BaseModel):
    degreePlanCourseValidation: PlanCourseValidation
    dataCompleteness: DataCompleteness
    issues: List[ValidationIssue] = Field(default_factory=list)


class ProcessingDetails(BaseModel):
    pdfInfo: Optional[DocumentInfo] = None
    formatDetected: str
    strategy: str
    patternsUsed: List[str] = Field(default_factory=list)
    enhancedFeaturesUsed: List[str] = Field(default_factory=list)


class ParsingReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    filename: str
    parsedAt: str
    parserVersion: str
    summary: ReportSummary
    validation: ReportValidation
    statistics: CatalogStatistics
    processingDetails: ProcessingDetails
