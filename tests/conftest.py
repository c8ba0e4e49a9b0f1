from __future__ import annotations

import pytest

from catalog_ingest.workflow_logger import reset_log_path

CONFIG_KEYS = (
    "CATALOG_ENV",
    "CATALOG_DATA_DIR",
    "CATALOGS_DIR",
    "PARSED_DIR",
    "COURSES_OUT_FILE",
    "COMMUNITIES_RAW_DIR",
    "COMMUNITIES_OUT_FILE",
    "PARSE_MAX_RETRIES",
    "PARSE_RETRY_DELAY_MS",
    "PARSE_TIMEOUT_MS",
    "PARSE_BATCH_SIZE",
    "BATCH_PAUSE_MS",
    "MAX_FILE_SIZE_MB",
    "OUTPUT_INDENT",
    "DATABASE_URL",
)

SCENARIO_A = (
    "C172 - IT 2120 - Network and Security - Foundations - Covers networking basics "
    "and security principles in depth for students."
)

BSBA_MARKETING = """Bachelor of Science Business Administration, Marketing
The Bachelor of Science in Business Administration, Marketing prepares students for careers in marketing.
CCN Course Number Course Description CUs Term
MGMT 3000C715Organizational Behavior31
MKTG 2010C211Principles of Marketing31
BUS 2010C483Principles of Management41
BSBA 202509 Total CUs: 120
"""


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    for key in CONFIG_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("WORKFLOW_LOG_DIR", str(tmp_path / "logs"))
    reset_log_path()
    yield
    reset_log_path()


@pytest.fixture
def scenario_a_text() -> str:
    return SCENARIO_A


@pytest.fixture
def bsba_text() -> str:
    return BSBA_MARKETING
