"""
Tests for the adapter plumbing: RunStats, ParserRegistry, polite_fetch and
the per-domain politeness limiter.
"""

from unittest.mock import Mock, patch

import pytest

from connectors.base import ParserAdapter, RunStats
from connectors.http import polite_fetch
from connectors.rate_limiter import DomainRateLimiter
from connectors.registry import ParserRegistry, build_default_registry
from constants import USER_AGENT
from services.errors import UnknownParserError


# =============================================================================
# RunStats
# =============================================================================

class TestRunStats:

    def test_first_error_tracks_first_message(self):
        stats = RunStats()
        assert stats.first_error is None
        stats.add_error("first")
        stats.add_error("second")
        assert stats.first_error == "first"
        assert stats.errors[0] == stats.first_error

    def test_error_list_capped_but_count_unbounded(self):
        stats = RunStats()
        for n in range(25):
            stats.add_error(f"row {n}")
        assert stats.error_count == 25
        assert len(stats.errors) == 10
        assert stats.errors[-1] == "row 9"

    def test_to_dict_camel_case(self):
        stats = RunStats(new_count=4, updated_count=2, skipped_count=1)
        assert stats.to_dict() == {
            "newCount": 4,
            "updatedCount": 2,
            "skippedCount": 1,
            "errorCount": 0,
            "errors": [],
        }

    def test_to_dict_includes_first_error(self):
        stats = RunStats()
        stats.add_error("boom")
        assert stats.to_dict()["firstError"] == "boom"

    def test_summary_line(self):
        stats = RunStats(new_count=5, updated_count=1)
        assert stats.summary() == "Completed: 5 new, 1 updated, 0 errors"
        stats.add_error("bad row")
        assert stats.summary() == "Completed: 5 new, 1 updated, 1 errors; first error: bad row"


# =============================================================================
# ParserRegistry
# =============================================================================

class _Dummy(ParserAdapter):
    PARSER_KEY = "dummy"

    def run(self, source_id, jurisdiction_id, stats):
        pass


class TestParserRegistry:

    def test_register_and_get(self):
        registry = ParserRegistry()
        registry.register(_Dummy)
        assert registry.get("dummy") is _Dummy
        assert "dummy" in registry
        assert registry.keys() == ["dummy"]

    def test_unknown_key_raises(self):
        with pytest.raises(UnknownParserError, match="Unknown parser: nope"):
            ParserRegistry().get("nope")

    def test_conflicting_key_rejected(self):
        class Other(ParserAdapter):
            PARSER_KEY = "dummy"

            def run(self, source_id, jurisdiction_id, stats):
                pass

        registry = ParserRegistry()
        registry.register(_Dummy)
        with pytest.raises(ValueError):
            registry.register(Other)

    def test_default_registry_ships_html_meetings(self):
        assert "html_meetings" in build_default_registry()


# =============================================================================
# DomainRateLimiter
# =============================================================================

class FakeClock:
    def __init__(self):
        self.now = 1000.0
        self.sleeps = []

    def time(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def limits_file(tmp_path):
    path = tmp_path / "limits.yaml"
    path.write_text(
        "defaults:\n"
        "  requests_per_minute: 5\n"
        "  requests_per_hour: 50\n"
        "domains:\n"
        "  slow.gov:\n"
        "    requests_per_minute: 2\n"
    )
    return str(path)


class TestDomainRateLimiter:

    def test_domain_overrides_defaults(self, limits_file):
        limiter = DomainRateLimiter(limits_file)
        assert limiter.get_limits("slow.gov") == {"requests_per_minute": 2, "requests_per_hour": 50}
        assert limiter.get_limits("other.gov") == {"requests_per_minute": 5, "requests_per_hour": 50}

    def test_missing_config_uses_defaults(self, tmp_path):
        limiter = DomainRateLimiter(str(tmp_path / "absent.yaml"))
        assert limiter.get_limits("x.gov") == {"requests_per_minute": 10, "requests_per_hour": 100}

    def test_waits_when_minute_window_full(self, limits_file):
        clock = FakeClock()
        limiter = DomainRateLimiter(limits_file, sleep=clock.sleep, clock=clock.time)

        limiter.wait("slow.gov")
        limiter.wait("slow.gov")
        assert clock.sleeps == []
        assert not limiter.is_allowed("slow.gov")

        limiter.wait("slow.gov")
        assert clock.sleeps == [60.0]
        assert limiter.get_status("slow.gov")["minute"]["current"] == 1

    def test_domains_are_independent(self, limits_file):
        clock = FakeClock()
        limiter = DomainRateLimiter(limits_file, sleep=clock.sleep, clock=clock.time)
        limiter.wait("slow.gov")
        limiter.wait("slow.gov")
        limiter.wait("other.gov")
        assert clock.sleeps == []

    def test_domain_for_strips_www(self):
        assert DomainRateLimiter.domain_for("https://www.austintexas.gov/x?y=1") == "austintexas.gov"


# =============================================================================
# polite_fetch
# =============================================================================

class TestPoliteFetch:

    def test_sends_user_agent_and_waits_for_domain(self):
        limiter = Mock(spec=DomainRateLimiter)
        limiter.domain_for.return_value = "example.gov"
        response = Mock(status_code=200, text="<html></html>")

        with patch("connectors.http.requests.get", return_value=response) as get:
            result = polite_fetch("https://example.gov/meetings", rate_limiter=limiter, timeout=3)

        assert result is response
        limiter.wait.assert_called_once_with("example.gov")
        _, kwargs = get.call_args
        assert kwargs["headers"]["User-Agent"] == USER_AGENT
        assert kwargs["timeout"] == 3
        response.raise_for_status.assert_called_once()

    def test_timeout_from_app_config(self, app):
        app.config["CONNECTOR_FETCH_TIMEOUT_SECONDS"] = 4.5
        limiter = Mock(spec=DomainRateLimiter)
        limiter.domain_for.return_value = "example.gov"

        with patch("connectors.http.requests.get", return_value=Mock(status_code=200)) as get:
            polite_fetch("https://example.gov/", rate_limiter=limiter)

        assert get.call_args[1]["timeout"] == 4.5

    def test_http_error_propagates(self):
        import requests

        limiter = Mock(spec=DomainRateLimiter)
        limiter.domain_for.return_value = "example.gov"
        response = Mock(status_code=503)
        response.raise_for_status.side_effect = requests.HTTPError("503 Server Error")

        with patch("connectors.http.requests.get", return_value=response):
            with pytest.raises(requests.HTTPError):
                polite_fetch("https://example.gov/", rate_limiter=limiter)
