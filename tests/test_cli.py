"""Tests for the command-line interface."""

import json

import yaml
from click.testing import CliRunner

from correlator.cli import cli


def test_list_resources():
    runner = CliRunner()
    for resource in ("techniques", "templates", "campaigns", "profiles", "sinks"):
        result = runner.invoke(cli, ["list", resource])
        assert result.exit_code == 0, result.output
    result = runner.invoke(cli, ["list", "techniques", "--tactic", "impact"])
    assert "T1486" in result.output


def test_correlate_writes_log_set(tmp_path):
    output = tmp_path / "logs.json"
    result = CliRunner().invoke(cli, [
        "correlate", "-t", "T1059", "--host", "host1", "--user", "alice",
        "--timestamp", "2025-01-01T10:00:00Z", "--seed", "1", "-o", str(output),
    ])

    assert result.exit_code == 0, result.output
    data = json.loads(output.read_text())
    assert len(data["supportingLogs"]) == 6
    assert data["supportingLogs"][0]["@timestamp"] == "2025-01-01T09:50:00.000Z"
    assert data["attackNarrative"].startswith("Command and scripting attack:")


def test_correlate_from_alert_document(tmp_path):
    alert = tmp_path / "alert.json"
    alert.write_text(json.dumps({
        "@timestamp": "2025-02-01T08:00:00Z",
        "host.name": "DC01",
        "user.name": "admin",
        "threat.technique.id": "T1003.001",
        "kibana.alert.uuid": "abc",
    }))
    output = tmp_path / "out.json"
    result = CliRunner().invoke(cli, ["correlate", "--alert", str(alert), "-n", "3", "-o", str(output)])

    assert result.exit_code == 0, result.output
    data = json.loads(output.read_text())
    assert data["trigger"]["host"] == "DC01"
    assert data["trigger"]["techniqueId"] == "T1003.001"
    assert len(data["supportingLogs"]) == 3


def test_correlate_rejects_negative_count():
    result = CliRunner().invoke(cli, ["correlate", "-n", "-1"])
    assert result.exit_code == 1


def test_init_then_validate(tmp_path):
    runner = CliRunner()
    result = runner.invoke(cli, ["init", "-t", "ransomware_drill", "-o", str(tmp_path), "--force"])
    assert result.exit_code == 0, result.output
    assert sorted(p.name for p in tmp_path.iterdir()) == [
        "batch.yaml", "campaign.yaml", "correlation.yaml", "sink.yaml",
    ]
    campaign = yaml.safe_load((tmp_path / "campaign.yaml").read_text())
    assert campaign["campaign_type"] == "ransomware"

    result = runner.invoke(cli, ["validate", "-c", str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert "valid" in result.output


def test_validate_reports_errors(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text(yaml.dump({"campaign": {"detection": {"detection_rate": 2}}}))
    result = CliRunner().invoke(cli, ["validate", "-c", str(bad)])
    assert result.exit_code == 1


def test_batch_to_files(tmp_path):
    result = CliRunner().invoke(cli, [
        "batch", "-n", "3", "-t", "T1486", "--seed", "2", "--sink", "file", "-o", str(tmp_path),
    ])
    assert result.exit_code == 0, result.output

    alerts = tmp_path / "alerts-security.alerts-default.ndjson"
    assert len(alerts.read_text().splitlines()) == 3


def test_campaign_dry_run():
    result = CliRunner().invoke(cli, [
        "campaign", "--type", "insider", "--complexity", "low", "--detection-rate", "1.0",
        "--sink", "memory", "--seed", "3",
    ])
    assert result.exit_code == 0, result.output
    assert "Investigation Guide" in result.output
