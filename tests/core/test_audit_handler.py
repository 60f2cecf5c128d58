# tests/core/test_audit_handler.py
import asyncio
import json
from unittest.mock import MagicMock, patch

import pandas as pd
import pytest

from a11y_shell import app
from a11y_shell.core.context.shell_context import ShellContext
from a11y_shell.core.handlers.audit_handler import handle_audit, result_to_dataframe, result_to_payload
from a11y_shell.core.managers.database_manager import DatabaseManager
from a11y_shell.model import AuditConfig
from auditor.managers.audit_data_manager import AuditDataManager
from auditor.model import AuditResult, ExtrapolatedViolation, PageTypeReport, TestResult, Violation
from auditor.testers.tester_base import PageTester
from sitemap.services.sitemap_fetcher_service import SitemapFetchError


def _result(audit_id=None) -> AuditResult:
    return AuditResult(
        audit_id=audit_id,
        url="https://example.com",
        total_urls=110,
        duration_seconds=1.5,
        page_types=[
            PageTypeReport(
                type="Artist Page", pattern="/artists/*", total_count=100, pages_sampled=10,
                violations=[ExtrapolatedViolation(
                    rule_id="image-alt", instances_found=3, extrapolated_total=30,
                    example_urls=["https://example.com/artists/a"], impact="critical", category="content",
                )],
            ),
            PageTypeReport(type="Other", pattern="/*", total_count=10, pages_sampled=10),
        ],
    )


@pytest.fixture
def ctx(tmp_path):
    context = ShellContext(db_manager=DatabaseManager(tmp_path / "audits.db"))
    yield context
    context.close()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"pageTypes": [{"pattern": "/artists/*", "type": "Artist Page"}]}))
    return path


def _close(coro):
    coro.close()


@patch("a11y_shell.core.handlers.audit_handler.run_on_main_loop")
def test_audit_run_writes_output(mock_loop_runner, ctx, config_file, tmp_path, capsys):
    """Een geslaagde run schrijft JSON en CSV weg en geeft exit code 0."""
    mock_loop_runner.side_effect = lambda coro: (_close(coro), _result("abc123"))[1]
    output = tmp_path / "out.json"
    export = tmp_path / "violations.csv"

    code = handle_audit([
        "run", "--url", "https://example.com", "--config", str(config_file),
        "--output", str(output), "--export", str(export), "--skip-db",
    ], ctx)

    assert code == 0
    payload = json.loads(output.read_text())
    assert payload["total_extrapolated"] == 30
    assert payload["page_types"][0]["extrapolated_total"] == 30
    assert payload["page_types"][0]["violations"][0]["rule_id"] == "image-alt"

    df = pd.read_csv(export)
    assert list(df["rule_id"]) == ["image-alt"]
    assert ctx.get("audit.id") == "abc123"
    assert "Audit complete" in capsys.readouterr().out


@patch("a11y_shell.core.handlers.audit_handler.run_on_main_loop")
def test_audit_run_sitemap_failure(mock_loop_runner, ctx, config_file, tmp_path, capsys):
    def fail(coro):
        coro.close()
        raise SitemapFetchError("Failed to fetch sitemap from https://example.com/sitemap.xml: 404 Not Found")

    mock_loop_runner.side_effect = fail
    output = tmp_path / "out.json"

    code = handle_audit(["run", "--url", "https://example.com", "--config", str(config_file),
                         "--output", str(output), "--skip-db"], ctx)

    assert code == 1
    assert not output.exists()
    assert "404 Not Found" in capsys.readouterr().out


@patch("a11y_shell.core.handlers.audit_handler.run_on_main_loop")
def test_audit_run_missing_config(mock_loop_runner, ctx, tmp_path, capsys):
    code = handle_audit(["run", "--url", "https://example.com", "--config", str(tmp_path / "nope.json")], ctx)
    assert code == 1
    assert "not found" in capsys.readouterr().out
    mock_loop_runner.assert_not_called()


def test_audit_run_requires_url(ctx, capsys):
    assert handle_audit(["run"], ctx) == 1
    assert "audit run --url" in capsys.readouterr().out


def test_audit_help(ctx, capsys):
    assert handle_audit([], ctx) == 0
    assert "audit show" in capsys.readouterr().out


def test_audit_show(ctx, capsys):
    data_manager = AuditDataManager(ctx.db_manager)
    audit_id = data_manager.create_audit("https://example.com")
    data_manager.save_page_type_report(audit_id, _result().page_types[0])
    data_manager.update_audit_status(audit_id, "completed", duration_seconds=2, total_violations=30)

    assert handle_audit(["show", audit_id], ctx) == 0
    out = capsys.readouterr().out
    assert "(completed)" in out
    assert "image-alt" in out

    assert handle_audit(["show", "missing"], ctx) == 1


def test_audit_show_defaults_to_audit_from_same_session(ctx, capsys):
    data_manager = AuditDataManager(ctx.db_manager)
    audit_id = data_manager.create_audit("https://example.com")

    assert handle_audit(["show"], ctx) == 1
    assert "No audit id given" in capsys.readouterr().out

    ctx.set("audit.id", audit_id)
    assert handle_audit(["show"], ctx) == 0
    assert f"Audit {audit_id} (running)" in capsys.readouterr().out


@patch("a11y_shell.core.handlers.audit_handler.run_on_main_loop")
def test_audit_run_accepts_yaml_config(mock_loop_runner, ctx, tmp_path):
    from a11y_shell.core.handlers.audit_handler import _load_audit_config

    mock_loop_runner.side_effect = lambda coro: (_close(coro), _result())[1]
    config = tmp_path / "config.yml"
    config.write_text("pageTypes:\n  - pattern: /artists/*\n    name: Artist Page\n  - pattern: /*\n    type: Other\n")

    audit_config, error = _load_audit_config(str(config))
    assert error is None
    assert [p.type for p in audit_config.page_types] == ["Artist Page", "Other"]

    code = handle_audit(["run", "--url", "https://example.com", "--config", str(config),
                         "--output", str(tmp_path / "out.json"), "--skip-db"], ctx)
    assert code == 0
    mock_loop_runner.assert_called_once()


@patch("a11y_shell.core.handlers.audit_handler.run_on_main_loop")
def test_audit_run_rejects_broken_yaml(mock_loop_runner, ctx, tmp_path, capsys):
    config = tmp_path / "config.yaml"
    config.write_text("pageTypes: [unclosed\n")

    assert handle_audit(["run", "--url", "https://example.com", "--config", str(config)], ctx) == 1
    assert "Invalid config file" in capsys.readouterr().out
    mock_loop_runner.assert_not_called()


def test_result_helpers():
    result = _result()
    assert result_to_payload(result)["total_extrapolated"] == 30
    df = result_to_dataframe(result)
    assert len(df) == 1
    assert df.iloc[0]["page_type"] == "Artist Page"


# --- app entry point ---

def test_split_commands():
    assert app.split_commands(["config", "set", "a.b", "1", ";", "audit", "run", "--url", "x"]) == [
        ("config", ["set", "a.b", "1"], None),
        ("audit", ["run", "--url", "x"], ";"),
    ]


def test_execute_sequence_stops_on_and_failure(monkeypatch):
    first = MagicMock(return_value=1)
    second = MagicMock(return_value=0)
    monkeypatch.setitem(app.COMMANDS, "first", first)
    monkeypatch.setitem(app.COMMANDS, "second", second)

    code = app.execute_sequence(app.split_commands(["first", "&&", "second"]), ShellContext())

    assert code == 1
    second.assert_not_called()

    app.execute_sequence(app.split_commands(["first", ";", "second"]), ShellContext())
    second.assert_called_once()


def test_main_help_and_unknown_command(capsys):
    assert app.main([]) == 0
    assert "a11y-audit" in capsys.readouterr().out
    assert app.main(["bogus"]) == 1
    assert "Unknown command" in capsys.readouterr().out


# --- async task wiring ---

class _FakeFetcher:
    def __init__(self, config=None, user_agent=None):
        self.config = config

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def fetch_urls(self, url):
        assert url == "https://example.com/sitemap.xml"
        return [f"https://example.com/artists/{i}" for i in range(4)] + ["https://example.com/about"]


class _CleanTester(PageTester):
    def __init__(self, config=None):
        self.config = config

    async def test_url(self, url: str) -> TestResult:
        rule_ids = ["image-alt"] if "/artists/" in url else []
        return TestResult(url=url, violations=[Violation(id=r, impact="critical") for r in rule_ids])


def test_run_audit_task_wires_fetcher_runner_and_controller(monkeypatch):
    from a11y_shell.core.handlers import audit_handler

    monkeypatch.setattr(audit_handler, "SitemapFetcherService", _FakeFetcher)
    monkeypatch.setattr(audit_handler, "AxeTester", _CleanTester)
    monkeypatch.setattr(audit_handler, "Pa11yTester", _CleanTester)

    audit_config = AuditConfig.model_validate({
        "pageTypes": [{"pattern": "/artists/*", "type": "Artist Page"}, {"pattern": "/*", "type": "Other"}],
        "sampling": {"initial_sample_size": 2, "max_sample_size": 3},
    })

    result = asyncio.run(audit_handler._run_audit_task("example.com", audit_config, None))

    assert result.total_urls == 5
    artist = result.page_types[0]
    assert (artist.type, artist.pages_sampled, artist.total_count) == ("Artist Page", 2, 4)
    assert [(v.rule_id, v.extrapolated_total) for v in artist.violations] == [("image-alt", 4)]
    assert result.page_types[1].violations == []
