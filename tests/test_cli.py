import json
from pathlib import Path
from unittest.mock import patch

from typer.testing import CliRunner

from countgate.cli import app
from countgate.errors import TransportError
from countgate.models import FetchedCount

runner = CliRunner()

CHECK_ARGS = [
    "check",
    "--query", "status:500",
    "--comparison", "gte",
    "--threshold", "10",
    "--since", "1",
    "--units", "HOURS",
]


def _invoke_check(count: int, extra: list[str] | None = None):
    with patch("countgate.gate.CountFetcher") as mock_cls:
        mock_cls.return_value.fetch.return_value = FetchedCount(count=count, content=f'{{"count":{count}}}')
        return runner.invoke(app, CHECK_ARGS + (extra or []))


def test_check_fails_build_when_threshold_met(monkeypatch) -> None:
    monkeypatch.setenv("COUNTGATE_HOST", "es:9200")

    result = _invoke_check(15)

    assert result.exit_code == 1
    assert "Count: 15 is >= 10" in result.stdout
    assert "Query: status:500" in result.stdout


def test_check_passes_below_threshold(monkeypatch) -> None:
    monkeypatch.setenv("COUNTGATE_HOST", "es:9200")

    result = _invoke_check(5)

    assert result.exit_code == 0
    assert "within threshold" in result.stdout


def test_check_reads_config_file(tmp_path: Path) -> None:
    cfg = tmp_path / "countgate.json"
    cfg.write_text(json.dumps({"host": "from-file:9200", "indexes": "app-*"}))

    result = _invoke_check(5, ["--config", str(cfg)])

    assert result.exit_code == 0
    assert "host: from-file:9200" in result.stdout
    assert "queryIndexes: app-*" in result.stdout


def test_check_missing_host_is_config_error() -> None:
    result = _invoke_check(5)

    assert result.exit_code == 2
    assert "Host cannot be empty" in result.stdout


def test_check_invalid_comparison_is_config_error(monkeypatch) -> None:
    monkeypatch.setenv("COUNTGATE_HOST", "es")

    result = runner.invoke(app, ["check", "--query", "q", "--comparison", "gt", "--threshold", "1", "--since", "1"])

    assert result.exit_code == 2
    assert "gte, lte" in result.stdout


def test_check_missing_config_file_is_usage_error(tmp_path: Path) -> None:
    result = runner.invoke(app, CHECK_ARGS + ["--config", str(tmp_path / "nope.json")])

    assert result.exit_code == 2


def test_check_transport_error_exit_code(monkeypatch) -> None:
    monkeypatch.setenv("COUNTGATE_HOST", "es")

    with patch("countgate.gate.CountFetcher") as mock_cls:
        mock_cls.return_value.fetch.side_effect = TransportError("Count request timed out after 120000ms")
        result = runner.invoke(app, CHECK_ARGS)

    assert result.exit_code == 3
    assert "timed out" in result.stdout


def test_check_writes_run_log(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("COUNTGATE_HOST", "es")
    log_path = tmp_path / "runs.jsonl"

    result = _invoke_check(15, ["--run-log", str(log_path)])

    assert result.exit_code == 1
    lines = log_path.read_text().strip().split("\n")
    assert json.loads(lines[-1])["status"] == "failed"


def test_validate_reports_each_field() -> None:
    result = runner.invoke(app, ["validate", "--query", "q", "--indexes", ", ,", "--since", "0", "--threshold", "0"])

    assert result.exit_code == 1
    assert "query: OK" in result.stdout
    assert "indexes: Indexes cannot contain whitespace" in result.stdout
    assert "since: Please set a since value greater than 0" in result.stdout
    assert "threshold: OK" in result.stdout


def test_validate_all_ok() -> None:
    result = runner.invoke(app, ["validate", "--indexes", "q", "--timeout", "5000"])

    assert result.exit_code == 0
    assert "indexes: OK" in result.stdout
    assert "timeout: OK" in result.stdout


def test_config_show_masks_password(monkeypatch) -> None:
    monkeypatch.setenv("COUNTGATE_HOST", "es")
    monkeypatch.setenv("COUNTGATE_USER", "elastic")
    monkeypatch.setenv("COUNTGATE_PASSWORD", "secret")

    result = runner.invoke(app, ["config", "show"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["host"] == "es"
    assert data["password"] == "****"
    assert data["query_request_timeout_ms"] == 120000
