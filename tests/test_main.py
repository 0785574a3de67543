"""Tests for the command line entry point."""
import sys

import pytest

from avdtp_harness import main as cli
from avdtp_harness.config import settings
from avdtp_harness.models import RunSummary, ScenarioResult, ScenarioStatus


@pytest.fixture(autouse=True)
def bounded_scenarios(monkeypatch):
    monkeypatch.setattr(settings, "scenario_timeout_sec", 5.0)
    monkeypatch.setattr(settings, "verbose", False)


def test_list(capsys):
    assert cli.main(["-l"]) == 0

    out = capsys.readouterr().out.splitlines()
    assert out[0] == "/TP/SIG/SMG/BV-05-C"
    assert len(out) == 11


def test_pattern_runs_selected(capsys):
    status = cli.main(["-p", "/TP/SIG/SMG/BV-06-C", "-p", "/TP/SIG/SMG/BV-08-C"])

    out = capsys.readouterr().out
    assert status == 0
    assert "/TP/SIG/SMG/BV-06-C: PASS" in out
    assert "/TP/SIG/SMG/BV-08-C: PASS" in out
    assert "BV-05-C" not in out
    assert "2 scenarios, 2 passed, 0 failed" in out


def test_no_match_fails(capsys):
    assert cli.main(["-p", "/TP/SIG/ABORT"]) == 1
    assert "No scenarios match" in capsys.readouterr().err


def test_report_failure_details(capsys):
    summary = RunSummary(
        results=[
            ScenarioResult(name="/a", status=ScenarioStatus.COMPLETED),
            ScenarioResult(
                name="/b",
                status=ScenarioStatus.FAILED,
                error="Content mismatch",
                error_type="ContentMismatchError",
                details={"offset": 3},
                trace=["> 22 03"],
            ),
        ]
    )

    cli.report(summary, verbose=True, out=sys.stdout)

    out = capsys.readouterr().out
    assert "/a: PASS" in out
    assert "/b: FAIL" in out
    assert "ContentMismatchError: Content mismatch" in out
    assert "offset=3" in out
    assert "> 22 03" in out
    assert "2 scenarios, 1 passed, 1 failed" in out
    assert summary.exit_status == 1


def test_unknown_log_level(capsys):
    assert cli.main(["-l", "--log-level", "bogus"]) == 2
    assert "Unknown log level: bogus" in capsys.readouterr().err


def test_options_do_not_leak_into_settings(capsys):
    status = cli.main(["-v", "--timeout", "3", "-p", "/TP/SIG/SMG/BV-06-C"])

    assert status == 0
    assert settings.verbose is False
    assert settings.scenario_timeout_sec == 5.0
    assert "/TP/SIG/SMG/BV-06-C: PASS" in capsys.readouterr().out
