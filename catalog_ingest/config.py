# catalog_ingest/config.py
from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

load_dotenv()

ENVIRONMENTS = ("development", "testing", "staging", "production")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from None


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    return Path(raw) if raw else default


@dataclass(frozen=True)
class Settings:
    """
    Runtime configuration for the ingestion pipeline.

    Values come from the process environment (and a local .env file).
    Defaults depend on CATALOG_ENV the same way for every key: production
    retries more, waits longer and writes compact JSON.
    """

    environment: str
    catalogs_dir: Path
    parsed_dir: Path
    courses_out_file: Path
    communities_raw_dir: Path
    communities_out_file: Path

    max_retries: int
    retry_delay_ms: int
    timeout_ms: int
    batch_size: int
    batch_pause_ms: int
    max_file_size_mb: int
    output_indent: Optional[int]

    database_url: Optional[str] = None

    @classmethod
    def from_env(cls, base_dir: Optional[Path] = None) -> "Settings":
        environment = (os.getenv("CATALOG_ENV") or "development").strip().lower()
        prod = environment == "production"
        base = Path(base_dir) if base_dir is not None else Path(os.getenv("CATALOG_DATA_DIR", "data"))

        indent = _env_int("OUTPUT_INDENT", 0 if prod else 2)

        return cls(
            environment=environment,
            catalogs_dir=_env_path("CATALOGS_DIR", base / "catalogs" / "pdf"),
            parsed_dir=_env_path("PARSED_DIR", base / "catalogs" / "parsed"),
            courses_out_file=_env_path("COURSES_OUT_FILE", base / "catalogs" / "processed" / "courses.json"),
            communities_raw_dir=_env_path("COMMUNITIES_RAW_DIR", base / "discord" / "raw"),
            communities_out_file=_env_path(
                "COMMUNITIES_OUT_FILE", base / "discord" / "processed" / "communities.json"
            ),
            max_retries=_env_int("PARSE_MAX_RETRIES", 5 if prod else 3),
            retry_delay_ms=_env_int("PARSE_RETRY_DELAY_MS", 2000 if prod else 1000),
            timeout_ms=_env_int("PARSE_TIMEOUT_MS", 300_000 if prod else 120_000),
            batch_size=_env_int("PARSE_BATCH_SIZE", 10 if prod else 5),
            batch_pause_ms=_env_int("BATCH_PAUSE_MS", 1000),
            max_file_size_mb=_env_int("MAX_FILE_SIZE_MB", 50),
            output_indent=indent if indent > 0 else None,
            database_url=os.getenv("DATABASE_URL") or None,
        )

    def validate(self) -> List[str]:
        errors: List[str] = []
        if self.environment not in ENVIRONMENTS:
            errors.append(f"CATALOG_ENV must be one of {', '.join(ENVIRONMENTS)} (got {self.environment!r})")
        if self.max_retries < 0:
            errors.append("PARSE_MAX_RETRIES must be >= 0")
        if self.retry_delay_ms < 0:
            errors.append("PARSE_RETRY_DELAY_MS must be >= 0")
        if self.timeout_ms <= 0:
            errors.append("PARSE_TIMEOUT_MS must be > 0")
        if self.batch_size <= 0:
            errors.append("PARSE_BATCH_SIZE must be > 0")
        if self.batch_pause_ms < 0:
            errors.append("BATCH_PAUSE_MS must be >= 0")
        if self.max_file_size_mb <= 0:
            errors.append("MAX_FILE_SIZE_MB must be > 0")
        return errors

    def export(self) -> Dict[str, Any]:
        out = asdict(self)
        for k, v in out.items():
            if isinstance(v, Path):
                out[k] = str(v)
        if self.database_url:
            # never echo credentials
            out["database_url"] = self.database_url.split("@")[-1]
        return out
