"""
Tests for crm_analytics/cli.py.

What we test
------------
  - validate-config: valid file → exit 0, missing/invalid file → exit 1.
  - analyze: prints every section, writes reports with --output-dir, and
    with --write-report into data.output_dir (CRM_ANALYTICS_OUTPUT_DIR wins).
  - archive-snapshot: dated envelope under data.snapshot_dir, loadable again.
  - forecast: single-metric filter, unknown metric, absent collection.
  - segment / score-leads / assess-churn / attribution / optimize: exit 0
    and print their tables.
  - Unreadable snapshots (missing, non-UTF-8) and invalid horizons exit 1.
"""

from __future__ import annotations

import logging

import pytest
from typer.testing import CliRunner

from crm_analytics.cli import app
from crm_analytics.ingestion.snapshot import load_snapshot
from crm_analytics.utils.logging import clear_log_context

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolate(monkeypatch):
    for name in ("CRM_ANALYTICS_LOG_LEVEL", "CRM_ANALYTICS_OUTPUT_DIR",
                 "CRM_ANALYTICS_FORECAST_HORIZON", "CRM_ANALYTICS_DEBUG"):
        monkeypatch.delenv(name, raising=False)
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    clear_log_context()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config" / "test.toml"
    path.parent.mkdir()
    path.write_text(
        '[forecast]\nhorizon_periods = 3\n[logging]\nlevel = "WARNING"\nlog_file = ""\n',
        encoding="utf-8",
    )
    return str(path)


def _invoke(*args: str):
    return runner.invoke(app, list(args))


class TestValidateConfig:
    def test_valid(self, config_file):
        result = _invoke("validate-config", "--config", config_file)
        assert result.exit_code == 0
        assert "[OK] Config is valid." in result.output
        assert "3 x month" in result.output

    def test_full_dump(self, config_file):
        result = _invoke("validate-config", "--config", config_file, "--full")
        assert result.exit_code == 0
        assert '"horizon_periods": 3' in result.output

    def test_missing_file(self, tmp_path):
        assert _invoke("validate-config", "--config", str(tmp_path / "nope.toml")).exit_code == 1

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("[forecast]\nhorizon_periods = -1\n", encoding="utf-8")
        assert _invoke("validate-config", "--config", str(path)).exit_code == 1


class TestAnalyze:
    def test_prints_all_sections(self, config_file, snapshot_file):
        result = _invoke("analyze", "--snapshot", str(snapshot_file), "--config", config_file)
        assert result.exit_code == 0
        for heading in ("=== Insights ===", "=== Recommendations ===",
                        "=== Forecasts ===", "=== Optimization ==="):
            assert heading in result.output
        assert "[OK] 5 insights, 4 recommendations." in result.output

    def test_writes_reports(self, config_file, snapshot_file, tmp_path):
        out_dir = tmp_path / "reports"
        result = _invoke("analyze", "--snapshot", str(snapshot_file), "--config", config_file,
                         "--output-dir", str(out_dir))
        assert result.exit_code == 0
        assert len(list(out_dir.glob("insights_report_*.json"))) == 1
        assert len(list(out_dir.glob("recommendations_*.csv"))) == 1
        assert len(list(out_dir.glob("forecasts_*.parquet"))) == 1

    def test_write_report_uses_env_output_dir(self, config_file, snapshot_file, tmp_path, monkeypatch):
        env_dir = tmp_path / "env_reports"
        monkeypatch.setenv("CRM_ANALYTICS_OUTPUT_DIR", str(env_dir))
        result = _invoke("analyze", "--snapshot", str(snapshot_file), "--config", config_file,
                         "--write-report")
        assert result.exit_code == 0
        assert len(list(env_dir.glob("insights_report_*.json"))) == 1
        assert len(list(env_dir.glob("recommendations_*.csv"))) == 1
        assert len(list(env_dir.glob("forecasts_*.parquet"))) == 1

    def test_no_reports_without_flag(self, config_file, snapshot_file, tmp_path, monkeypatch):
        env_dir = tmp_path / "env_reports"
        monkeypatch.setenv("CRM_ANALYTICS_OUTPUT_DIR", str(env_dir))
        result = _invoke("analyze", "--snapshot", str(snapshot_file), "--config", config_file)
        assert result.exit_code == 0
        assert not env_dir.exists()

    def test_invalid_horizon(self, config_file, snapshot_file):
        result = _invoke("analyze", "--snapshot", str(snapshot_file), "--config", config_file,
                         "--horizon", "0")
        assert result.exit_code == 1

    def test_invalid_period(self, config_file, snapshot_file):
        result = _invoke("analyze", "--snapshot", str(snapshot_file), "--config", config_file,
                         "--period", "hourly")
        assert result.exit_code == 1

    def test_missing_snapshot(self, config_file, tmp_path):
        result = _invoke("analyze", "--snapshot", str(tmp_path / "none.json"), "--config", config_file)
        assert result.exit_code == 1

    def test_non_utf8_snapshot(self, config_file, tmp_path):
        snapshot = tmp_path / "latin.json"
        snapshot.write_bytes(b'{"revenue": "\xff\xfe"}')
        result = _invoke("analyze", "--snapshot", str(snapshot), "--config", config_file)
        assert result.exit_code == 1
        assert "[ERROR]" in result.output
        assert "not valid UTF-8" in result.output

    def test_snapshot_option_required(self, config_file):
        assert _invoke("analyze", "--config", config_file).exit_code == 2


class TestForecast:
    def test_single_metric(self, config_file, snapshot_file):
        result = _invoke("forecast", "--snapshot", str(snapshot_file), "--config", config_file,
                         "--metric", "revenue", "--horizon", "4")
        assert result.exit_code == 0
        assert "[REVENUE]" in result.output
        assert "[SALES]" not in result.output

    def test_unknown_metric(self, config_file, snapshot_file):
        result = _invoke("forecast", "--snapshot", str(snapshot_file), "--config", config_file,
                         "--metric", "profit")
        assert result.exit_code == 1

    def test_absent_collection_warns(self, config_file, tmp_path):
        snapshot = tmp_path / "s.json"
        snapshot.write_text('{"customers": []}', encoding="utf-8")
        result = _invoke("forecast", "--snapshot", str(snapshot), "--config", config_file,
                         "--metric", "revenue")
        assert result.exit_code == 0
        assert "[WARN]" in result.output


class TestModelCommands:
    @pytest.mark.parametrize(
        "command, heading",
        [
            ("segment", "=== Customer Segments (RFM) ==="),
            ("score-leads", "=== Lead Scores ==="),
            ("assess-churn", "=== Churn Risk ==="),
            ("attribution", "=== Marketing Attribution (revenue) ==="),
            ("optimize", "=== Optimization ==="),
        ],
    )
    def test_prints_table(self, command, heading, config_file, snapshot_file):
        result = _invoke(command, "--snapshot", str(snapshot_file), "--config", config_file)
        assert result.exit_code == 0
        assert heading in result.output

    def test_attribution_names_leader(self, config_file, snapshot_file):
        result = _invoke("attribution", "--snapshot", str(snapshot_file), "--config", config_file)
        assert "Top campaign (time decay): Newsletter" in result.output

    def test_segment_non_utf8_snapshot(self, config_file, tmp_path):
        snapshot = tmp_path / "latin.json"
        snapshot.write_bytes(b'{"revenue": "\xff\xfe"}')
        result = _invoke("segment", "--snapshot", str(snapshot), "--config", config_file)
        assert result.exit_code == 1
        assert "[ERROR]" in result.output


class TestArchiveSnapshot:
    def test_writes_dated_envelope(self, tmp_path, snapshot_file, sample_snapshot):
        archive_dir = tmp_path / "archive"
        config = tmp_path / "archive.toml"
        config.write_text(
            f'[data]\nsnapshot_dir = "{archive_dir.as_posix()}"\n'
            '[logging]\nlevel = "WARNING"\nlog_file = ""\n',
            encoding="utf-8",
        )
        result = _invoke("archive-snapshot", "--snapshot", str(snapshot_file),
                         "--config", str(config), "--source", "crm-export")
        assert result.exit_code == 0
        assert "[OK] Archived" in result.output

        written = list(archive_dir.glob("crm-export/*/*/*/crm-export_*Z.json"))
        assert len(written) == 1
        assert load_snapshot(written[0]).content_hash() == sample_snapshot.content_hash()

    def test_missing_snapshot(self, config_file, tmp_path):
        result = _invoke("archive-snapshot", "--snapshot", str(tmp_path / "none.json"),
                         "--config", config_file)
        assert result.exit_code == 1
