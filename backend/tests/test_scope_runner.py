"""
Tests for the sequential scope fan-out.
"""

from unittest.mock import patch

from models import Connector, IngestRun, Source
from services.errors import ConnectorDisabledError
from services.run_executor import run_connector as real_run_connector
from services.scope_runner import ScopeRunResult, run_all, run_connectors, run_scope


class Recorder:
    def __init__(self):
        self.sleeps = []

    def __call__(self, seconds):
        self.sleeps.append(seconds)


class TestRunScope:

    def test_failure_isolated_from_other_connectors(self, session, texas_forest, parser_registry, make_connector):
        broken = make_connector("austin-broken", parser_key="stub_fail")
        healthy = make_connector("austin-healthy", parser_key="stub_ok")

        result = run_scope("city:austin-tx")

        assert result.success is True
        statuses = {r["connectorKey"]: r["status"] for r in result.results}
        assert statuses == {"austin-broken": "error", "austin-healthy": "success"}
        assert result.summary == "1 succeeded, 1 failed"

        healthy_source = session.query(Source).filter_by(connector_id=healthy.id).one()
        healthy_run = session.query(IngestRun).filter_by(source_id=healthy_source.id).one()
        assert healthy_run.status == "success"

        broken_entry = result.results[0]
        assert broken_entry["connectorKey"] == broken.key
        assert broken_entry["stats"]["newCount"] == 1

    def test_runs_in_registry_order(self, texas_forest, parser_registry, make_connector):
        make_connector("c-first")
        make_connector("a-second")
        make_connector("b-third", jurisdiction_slug="county:travis-county-tx")

        result = run_scope("city:austin-tx,county:travis-county-tx")

        assert [r["connectorKey"] for r in result.results] == ["c-first", "a-second", "b-third"]
        assert result.connectors_run == 3

    def test_only_refreshable_kinds(self, texas_forest, parser_registry, make_connector):
        make_connector("austin-meetings", kind="meetings")
        make_connector("austin-ordinances", kind="ordinances")
        make_connector("austin-rss", kind="rss")
        make_connector("austin-docs", kind="docs")

        result = run_scope("city:austin-tx")

        assert {r["connectorKey"] for r in result.results} == {"austin-meetings", "austin-ordinances"}

    def test_other_jurisdictions_untouched(self, texas_forest, parser_registry, make_connector):
        make_connector("austin-meetings")
        make_connector("round-rock-meetings", jurisdiction_slug="city:round-rock-tx")

        result = run_scope("city:austin-tx")

        assert [r["connectorKey"] for r in result.results] == ["austin-meetings"]

    def test_no_matching_connectors(self, texas_forest, parser_registry):
        result = run_scope("city:nowhere")
        assert result.to_dict() == {
            "success": True,
            "summary": "0 succeeded, 0 failed",
            "connectorsRun": 0,
            "results": [],
        }


class TestPacing:

    def test_sleeps_between_runs_but_not_after_last(self, texas_forest, parser_registry, make_connector):
        for key in ("a", "b", "c"):
            make_connector(key)
        sleep = Recorder()

        run_scope("city:austin-tx", pacing_seconds=1.0, sleep=sleep)

        assert sleep.sleeps == [1.0, 1.0]

    def test_single_connector_never_sleeps(self, texas_forest, parser_registry, make_connector):
        make_connector("only")
        sleep = Recorder()
        run_scope("city:austin-tx", pacing_seconds=1.0, sleep=sleep)
        assert sleep.sleeps == []

    def test_pacing_from_config(self, app, texas_forest, parser_registry, make_connector):
        app.config["CONNECTOR_PACING_SECONDS"] = 0.25
        make_connector("a")
        make_connector("b")
        sleep = Recorder()

        run_scope("city:austin-tx", sleep=sleep)

        assert sleep.sleeps == [0.25]


class TestRaisedErrors:

    def test_raised_error_reported_as_error_entry(self, texas_forest, parser_registry, make_connector):
        first = make_connector("a")
        make_connector("b")

        def flaky(connector_id, **kwargs):
            if connector_id == first.id:
                raise ConnectorDisabledError("Connector is disabled: a")
            return real_run_connector(connector_id, **kwargs)

        with patch("services.scope_runner.run_connector", side_effect=flaky):
            result = run_scope("city:austin-tx")

        assert result.results[0] == {
            "connectorKey": "a",
            "status": "error",
            "error": "Connector is disabled: a",
        }
        assert result.results[1]["status"] == "success"
        assert result.summary == "1 succeeded, 1 failed"

    def test_unexpected_exception_does_not_escape(self, session, texas_forest, parser_registry, make_connector):
        make_connector("a")
        with patch("services.scope_runner.run_connector", side_effect=KeyError("boom")):
            result = run_connectors(session.query(Connector).all())
        assert result.success is True
        assert result.results[0]["status"] == "error"


class TestRunAll:

    def test_sweep_covers_every_enabled_kind(self, texas_forest, parser_registry, make_connector):
        make_connector("austin-meetings")
        make_connector("austin-rss", kind="rss")
        make_connector("round-rock-docs", kind="docs", jurisdiction_slug="city:round-rock-tx")
        make_connector("off", enabled=False)

        result = run_all()

        assert isinstance(result, ScopeRunResult)
        assert [r["connectorKey"] for r in result.results] == [
            "austin-meetings", "austin-rss", "round-rock-docs",
        ]
