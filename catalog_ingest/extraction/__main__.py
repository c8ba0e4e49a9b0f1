"""
Package CLI entrypoint for catalog tooling.

Usage:
  python -m catalog_ingest.extraction parse <pdf>
  python -m catalog_ingest.extraction parse-all
  python -m catalog_ingest.extraction aggregate
  python -m catalog_ingest.extraction communities [--check-invites]
  python -m catalog_ingest.extraction config
  python -m catalog_ingest.extraction health
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from catalog_ingest.aggregate import generate_courses_aggregate
from catalog_ingest.communities import (
    check_invites_in_dir,
    generate_processed_communities,
    validate_raw_dir,
)
from catalog_ingest.config import Settings
from catalog_ingest.contracts import ParsingReport
from catalog_ingest.extraction.errors import CatalogIngestError
from catalog_ingest.extraction.pipeline import parse_all_catalogs, parse_catalog_file
from catalog_ingest.extraction.reporting import health_warnings
from catalog_ingest.store import make_engine


def _print_run(r) -> None:
    name = Path(r.source).name
    if r.ok:
        print(
            f"[catalog-cli] ✅ {name}: {r.courses} courses, {r.degree_plans} degree plans, "
            f"{r.validation_issues} issues -> {r.catalog_path}"
        )
    else:
        print(f"[catalog-cli] ❌ {name}: failed after {r.attempts} attempt(s): {r.error}")


def _cmd_parse(settings: Settings, pdf: str) -> int:
    r = parse_catalog_file(pdf, settings)
    _print_run(r)
    return 0 if r.ok else 1


def _cmd_parse_all(settings: Settings) -> int:
    summary = parse_all_catalogs(settings)
    for r in summary.results:
        _print_run(r)
    print(
        f"[catalog-cli] processed={summary.total} succeeded={summary.succeeded} "
        f"failed={summary.failed} success_rate={summary.success_rate}%"
    )
    if summary.total == 0:
        print(f"[catalog-cli] ⚠️ no PDFs found in {settings.catalogs_dir}")
    return 0 if summary.failed == 0 else 1


def _cmd_aggregate(settings: Settings) -> int:
    try:
        out = generate_courses_aggregate(settings.parsed_dir, settings.courses_out_file, settings.output_indent)
    except CatalogIngestError as e:
        print(f"[catalog-cli] ❌ {e}")
        return 1
    print(
        f"[catalog-cli] ✅ {out.metadata.totalCourses} courses from "
        f"{len(out.metadata.catalogVersionsIncluded)} catalog(s) -> {settings.courses_out_file}"
    )
    return 0


def _cmd_communities(settings: Settings, check_invites: bool) -> int:
    results = validate_raw_dir(settings.communities_raw_dir)
    errors = sum(len(r.errors) for r in results)
    warnings = sum(len(r.warnings) for r in results)
    for r in results:
        mark = "✅" if r.isValid and not r.warnings else ("⚠️" if r.isValid else "❌")
        print(f"[catalog-cli] {mark} {r.file}")
        for e in r.errors:
            print(f"   ERROR: {e}")
        for w in r.warnings:
            print(f"   WARN: {w}")

    out = generate_processed_communities(
        settings.communities_raw_dir, settings.communities_out_file, settings.output_indent
    )
    print(
        f"[catalog-cli] files={len(results)} errors={errors} warnings={warnings} "
        f"communities={out.metadata.totalCommunities} -> {settings.communities_out_file}"
    )

    failures = 0
    if check_invites:
        for inv in check_invites_in_dir(settings.communities_raw_dir):
            if inv.ok:
                print(f"[catalog-cli] ✅ {inv.file}: valid invite ({inv.code})")
            else:
                failures += 1
                print(f"[catalog-cli] ❌ {inv.file}: invalid invite ({inv.inviteUrl}) - {inv.error} [status={inv.status}]")

    return 0 if errors == 0 and failures == 0 else 1


def _cmd_health(settings: Settings) -> int:
    ok = True
    parsed_dir = Path(settings.parsed_dir)
    reports = sorted(parsed_dir.glob("*.report.json")) if parsed_dir.is_dir() else []
    print(f"[health] catalogs_dir: {settings.catalogs_dir} (exists={Path(settings.catalogs_dir).is_dir()})")
    print(f"[health] parsed reports: {len(reports)}")

    for path in reports:
        report = ParsingReport.model_validate_json(path.read_text(encoding="utf-8"))
        warns = health_warnings(report)
        if warns:
            print(f"[health] ⚠️ {path.name}:")
            for w in warns:
                print(f"   WARN: {w}")
        else:
            print(f"[health] ✅ {path.name}")

    if settings.database_url:
        engine = make_engine(settings.database_url)
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            print("[health] ✅ database reachable")
        except SQLAlchemyError as e:
            ok = False
            print(f"[health] ❌ database unreachable: {e}")
        finally:
            engine.dispose()
    return 0 if ok else 2


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="python -m catalog_ingest.extraction")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_parse = sub.add_parser("parse", help="Parse one catalog PDF")
    p_parse.add_argument("pdf", help="Path to the catalog PDF")

    sub.add_parser("parse-all", help="Parse every PDF in CATALOGS_DIR in batches")
    sub.add_parser("aggregate", help="Merge parsed catalogs into courses.json")

    p_comm = sub.add_parser("communities", help="Validate and summarize community descriptor files")
    p_comm.add_argument("--check-invites", action="store_true", help="Also verify invite URLs over the network")

    sub.add_parser("config", help="Print the effective configuration")
    sub.add_parser("health", help="Check parsed reports and database connectivity")

    args = parser.parse_args(argv)

    settings = Settings.from_env()
    problems = settings.validate()
    if problems:
        for p in problems:
            print(f"[catalog-cli] ❌ config: {p}")
        return 2

    if args.cmd == "config":
        print(json.dumps(settings.export(), indent=2))
        return 0
    if args.cmd == "parse":
        return _cmd_parse(settings, args.pdf)
    if args.cmd == "parse-all":
        return _cmd_parse_all(settings)
    if args.cmd == "aggregate":
        return _cmd_aggregate(settings)
    if args.cmd == "communities":
        return _cmd_communities(settings, args.check_invites)
    if args.cmd == "health":
        return _cmd_health(settings)

    parser.print_help()
    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
