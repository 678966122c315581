"""
CLI commands run inside the test app context instead of DATABASE_URL.
"""

import json
from contextlib import nullcontext
from pathlib import Path

import pytest
from click.testing import CliRunner

import cli as cli_module
from models import Connector

SEED_FILE = Path(__file__).parent.parent / "data" / "seed.yaml"


@pytest.fixture
def runner(app, monkeypatch):
    monkeypatch.setattr(cli_module, "get_app_context", lambda: nullcontext())
    return CliRunner()


def test_seed_command(runner, session):
    result = runner.invoke(cli_module.cli, ["seed", str(SEED_FILE)])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["created"]["connectors"] == 3
    assert session.query(Connector).count() == 3


def test_run_connector_json(runner, texas_forest, parser_registry, make_connector):
    connector = make_connector("austin-council")

    result = runner.invoke(cli_module.cli, ["run-connector", str(connector.id), "--json"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["status"] == "success"
    assert payload["stats"]["newCount"] == 2


def test_run_connector_failure_exits_nonzero(runner, texas_forest, parser_registry, make_connector):
    connector = make_connector("austin-broken", parser_key="stub_fail")

    result = runner.invoke(cli_module.cli, ["run-connector", str(connector.id)])

    assert result.exit_code == 1
    assert "error" in result.output


def test_run_connector_unknown_id(runner):
    result = runner.invoke(cli_module.cli, ["run-connector", "999"])

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_data_status_json(runner, texas_forest):
    result = runner.invoke(cli_module.cli, ["data-status", "city:austin-tx", "--json"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["mode"] == "seed"
    assert payload["reason"] == "no-successful-runs"
    assert payload["scopeUsed"] == "city:austin-tx"
