import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Catalog(Base):
    __tablename__ = "catalogs"

    catalog_id = Column(String(36), primary_key=True, default=_uuid)
    catalog_date = Column(String(32), nullable=False, unique=True)
    filename = Column(Text, nullable=False)

    era = Column(Text, nullable=False)
    strategy = Column(Text, nullable=False)
    parser_version = Column(Text, nullable=False)
    parsed_at = Column(Text, nullable=False)
    total_pages = Column(Integer, nullable=False, default=0)
    parsing_time_ms = Column(Integer, nullable=False, default=0)

    statistics_json = Column(JSON)
    report_json = Column(JSON)
    extras_json = Column(JSON)  # standalone courses, certificates, outcomes, bundles

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    courses = relationship("CatalogCourse", back_populates="catalog", cascade="all, delete-orphan")
    degree_plans = relationship("CatalogDegreePlan", back_populates="catalog", cascade="all, delete-orphan")


class CatalogCourse(Base):
    __tablename__ = "catalog_courses"

    id = Column(String(36), primary_key=True, default=_uuid)
    catalog_id = Column(String(36), ForeignKey("catalogs.catalog_id", ondelete="CASCADE"), nullable=False)

    course_code = Column(String(16), nullable=False, index=True)
    course_name = Column(Text, nullable=False)
    ccn = Column(Text)
    competency_units = Column(Integer)
    description = Column(Text)
    course_type = Column(String(32), nullable=False)
    page_number = Column(Integer)

    catalog = relationship("Catalog", back_populates="courses")


class CatalogDegreePlan(Base):
    __tablename__ = "catalog_degree_plans"

    id = Column(String(36), primary_key=True, default=_uuid)
    catalog_id = Column(String(36), ForeignKey("catalogs.catalog_id", ondelete="CASCADE"), nullable=False)

    plan_key = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    program_code = Column(Text)
    effective_date = Column(String(6))
    total_cus = Column(Integer)
    school = Column(Text)
    description = Column(Text)
    courses_json = Column(JSON, nullable=False, default=list)

    catalog = relationship("Catalog", back_populates="degree_plans")
