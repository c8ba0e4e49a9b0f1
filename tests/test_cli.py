import json

from catalog_ingest.extraction.__main__ import main


def test_config_prints_settings(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("CATALOG_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("DATABASE_URL", "postgresql://user:secret@db:5432/catalogs")
    assert main(["config"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["environment"] == "development"
    assert out["database_url"] == "db:5432/catalogs"


def test_invalid_config_exits_2(monkeypatch, capsys):
    monkeypatch.setenv("PARSE_BATCH_SIZE", "0")
    assert main(["config"]) == 2
    assert "PARSE_BATCH_SIZE" in capsys.readouterr().out


def test_parse_all_on_empty_dir(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("CATALOG_DATA_DIR", str(tmp_path))
    assert main(["parse-all"]) == 0
    assert "no PDFs found" in capsys.readouterr().out


def test_aggregate_without_catalogs_fails(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("CATALOG_DATA_DIR", str(tmp_path))
    assert main(["aggregate"]) == 1
    assert "❌" in capsys.readouterr().out


def test_health_without_reports(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("CATALOG_DATA_DIR", str(tmp_path))
    assert main(["health"]) == 0
    assert "parsed reports: 0" in capsys.readouterr().out
