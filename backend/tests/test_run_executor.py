"""
Tests for the single-connector run executor.

Stub adapters come from conftest's parser_registry fixture.
"""

import pytest
from sqlalchemy import func

from models import Connector, IngestRun, Meeting, Source
from services.errors import ConnectorDisabledError, ConnectorNotFoundError
from services.run_executor import RunConnectorResult, get_or_create_source, run_connector


@pytest.fixture
def austin(texas_forest):
    return texas_forest["austin-tx"]


def _runs(session):
    return session.query(IngestRun).order_by(IngestRun.id).all()


# =============================================================================
# Success path
# =============================================================================

class TestSuccessfulRun:

    def test_closes_run_success_and_stamps_connector(self, session, austin, parser_registry, make_connector):
        connector = make_connector("austin-council", parser_key="stub_ok")

        result = run_connector(connector.id)

        assert result.status == "success"
        assert result.stats.new_count == 2

        runs = _runs(session)
        assert len(runs) == 1
        assert runs[0].status == "success"
        assert runs[0].finished_at is not None
        assert runs[0].log == "Completed: 2 new, 0 updated, 0 errors"
        assert runs[0].stats["newCount"] == 2

        connector = session.get(Connector, connector.id)
        assert connector.last_status == "success"
        assert connector.last_run_at is not None

    def test_adapter_rows_written_for_connector_jurisdiction(self, session, austin, parser_registry, make_connector):
        connector = make_connector("austin-council", parser_key="stub_ok")
        run_connector(connector.id)

        meetings = session.query(Meeting).all()
        assert len(meetings) == 2
        assert {m.jurisdiction_id for m in meetings} == {austin.id}

    def test_errors_do_not_make_run_fail(self, session, austin, parser_registry, make_connector):
        connector = make_connector("austin-partial", parser_key="stub_partial")

        result = run_connector(connector.id)

        assert result.status == "success"
        run = _runs(session)[0]
        assert run.log == "Completed: 3 new, 1 updated, 2 errors; first error: row 7: missing date"
        assert run.stats["firstError"] == "row 7: missing date"

    def test_result_to_dict(self, session, austin, parser_registry, make_connector):
        connector = make_connector("austin-council", parser_key="stub_ok")
        data = run_connector(connector.id).to_dict()
        assert data["status"] == "success"
        assert data["stats"]["newCount"] == 2
        assert data["runId"] == _runs(session)[0].id


# =============================================================================
# Failure paths
# =============================================================================

class TestFailedRun:

    def test_adapter_exception_closes_run_error_with_partial_stats(
        self, session, austin, parser_registry, make_connector
    ):
        connector = make_connector("austin-broken", parser_key="stub_fail")

        result = run_connector(connector.id)

        assert result.status == "error"
        run = _runs(session)[0]
        assert run.status == "error"
        assert run.log == "Error: upstream returned 500"
        assert run.stats["newCount"] == 1
        assert run.stats["errors"] == ["row 1: unparseable"]
        assert session.get(Connector, connector.id).last_status == "error"

    def test_unknown_parser_recorded_on_run(self, session, austin, parser_registry, make_connector):
        connector = make_connector("austin-mystery", parser_key="does_not_exist")

        result = run_connector(connector.id)

        assert result.status == "error"
        run = _runs(session)[0]
        assert run.log == "Error: Unknown parser: does_not_exist"
        assert session.get(Connector, connector.id).last_status == "error"

    def test_missing_jurisdiction_recorded_on_run(self, session, parser_registry, make_connector):
        connector = make_connector("ghost-town", jurisdiction_slug="city:ghost-town")

        result = run_connector(connector.id)

        assert result.status == "error"
        assert _runs(session)[0].log == "Error: Jurisdiction not found: ghost-town"

    def test_not_found_raises_before_any_write(self, session, parser_registry):
        with pytest.raises(ConnectorNotFoundError):
            run_connector(424242)
        assert _runs(session) == []

    def test_disabled_raises_before_any_write(self, session, austin, parser_registry, make_connector):
        connector = make_connector("austin-off", enabled=False)

        with pytest.raises(ConnectorDisabledError):
            run_connector(connector.id)

        assert _runs(session) == []
        assert session.get(Connector, connector.id).last_run_at is None


# =============================================================================
# Source handle
# =============================================================================

class TestSourceHandle:

    def test_source_created_once_and_reused(self, session, austin, parser_registry, make_connector):
        connector = make_connector("austin-council")

        run_connector(connector.id)
        run_connector(connector.id)

        sources = session.query(Source).all()
        assert len(sources) == 1
        assert sources[0].jurisdiction_id == austin.id
        assert session.get(Connector, connector.id).source_id == sources[0].id
        assert session.query(func.count(IngestRun.id)).scalar() == 2

    def test_get_or_create_returns_existing(self, session, austin, make_connector):
        connector = make_connector("austin-council")
        first = get_or_create_source(connector, austin.id, session)
        second = get_or_create_source(connector, austin.id, session)
        assert first.id == second.id


def test_result_dataclass_defaults():
    from connectors.base import RunStats
    result = RunConnectorResult(stats=RunStats(), status="success")
    assert result.to_dict()["runId"] is None
