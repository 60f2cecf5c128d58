# tests/auditor/test_audit_data_manager.py
from __future__ import annotations

import pytest

from a11y_shell.core.managers.database_manager import DatabaseManager
from auditor.managers.audit_data_manager import AuditDataManager
from auditor.model import ExtrapolatedViolation, PageTypeReport


@pytest.fixture
def dm(tmp_path) -> DatabaseManager:
    m = DatabaseManager(tmp_path / "audits.db")
    yield m
    m.close_connections()


@pytest.fixture
def adm(dm) -> AuditDataManager:
    return AuditDataManager(dm)


def _report() -> PageTypeReport:
    return PageTypeReport(
        type="Artist Page",
        pattern="/artists/*",
        total_count=100,
        pages_sampled=10,
        violations=[
            ExtrapolatedViolation(
                rule_id="image-alt", instances_found=3, extrapolated_total=30,
                example_urls=["https://example.com/artists/a", "https://example.com/artists/b"],
                impact="critical", description="Images must have alternate text",
                help_url="https://dequeuniversity.com/rules/axe/image-alt", category="content",
            ),
            ExtrapolatedViolation(
                rule_id="region", instances_found=10, extrapolated_total=100,
                example_urls=["https://example.com/artists/a"],
            ),
        ],
    )


def test_create_and_get_audit(adm: AuditDataManager):
    audit_id = adm.create_audit("https://example.com", {"sampling": {"max_sample_size": 10}})
    audit = adm.get_audit(audit_id)

    assert audit["url"] == "https://example.com"
    assert audit["status"] == "running"
    assert audit["config_used"]["sampling"]["max_sample_size"] == 10
    assert adm.get_audit("does-not-exist") is None


def test_update_audit_status(adm: AuditDataManager):
    audit_id = adm.create_audit("https://example.com")
    adm.update_audit_status(audit_id, "completed", duration_seconds=12, total_violations=130)

    audit = adm.get_audit(audit_id)
    assert audit["status"] == "completed"
    assert audit["duration_seconds"] == 12
    assert audit["total_violations"] == 130

    # status-only updates keep earlier figures
    adm.update_audit_status(audit_id, "failed")
    assert adm.get_audit(audit_id)["total_violations"] == 130


def test_unknown_status_is_rejected(adm: AuditDataManager):
    audit_id = adm.create_audit("https://example.com")
    with pytest.raises(ValueError):
        adm.update_audit_status(audit_id, "exploded")


def test_save_page_type_report(adm: AuditDataManager, dm: DatabaseManager):
    audit_id = adm.create_audit("https://example.com")
    page_type_id = adm.save_page_type_report(audit_id, _report())

    row = dm.fetch_one(
        "SELECT type_name, url_pattern, total_count_in_sitemap, pages_sampled FROM page_types WHERE id = ?",
        (page_type_id,),
    )
    assert tuple(row) == ("Artist Page", "/artists/*", 100, 10)

    examples = dm.fetch_all("SELECT url FROM violation_examples ORDER BY id")
    assert [r[0] for r in examples] == [
        "https://example.com/artists/a",
        "https://example.com/artists/b",
        "https://example.com/artists/a",
    ]

    classifications = dm.fetch_all("SELECT category FROM violation_classifications")
    assert [r[0] for r in classifications] == ["content"]


def test_load_violations_df(adm: AuditDataManager):
    audit_id = adm.create_audit("https://example.com")
    adm.save_page_type_report(audit_id, _report())

    df = adm.load_violations_df(audit_id)

    assert len(df) == 2
    # sorted by extrapolated total within the page type
    assert list(df["rule_id"]) == ["region", "image-alt"]
    assert list(df["severity"]) == ["serious", "critical"]
    assert df.loc[df["rule_id"] == "image-alt", "category"].iloc[0] == "content"
    assert df.loc[df["rule_id"] == "region", "remediation_guidance"].isna().all()
