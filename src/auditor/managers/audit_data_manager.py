# src/auditor/managers/audit_data_manager.py
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import pandas as pd

from a11y_shell.core.managers.database_manager import DatabaseManager
from auditor.model import PageTypeReport

logger = logging.getLogger(__name__)

AUDIT_STATUSES = ("running", "completed", "failed")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class AuditDataManager:
    """
    Smart Facade acting as an adapter between the audit controller and the dumb
    DatabaseManager. All audit SQL lives here.
    """

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager
        self.db.init_schema()

    # --- AUDITS ---

    def create_audit(self, url: str, config_used: Optional[Dict[str, Any]] = None) -> str:
        audit_id = uuid.uuid4().hex
        now = _now_iso()
        self.db.execute_query(
            "INSERT INTO audits (id, url, status, config_used, created_at, updated_at) "
            "VALUES (?, ?, 'running', ?, ?, ?)",
            (audit_id, url, json.dumps(config_used or {}), now, now),
        )
        logger.debug("Created audit %s for %s", audit_id, url)
        return audit_id

    def update_audit_status(
            self,
            audit_id: str,
            status: str,
            duration_seconds: Optional[int] = None,
            total_violations: Optional[int] = None,
    ) -> None:
        if status not in AUDIT_STATUSES:
            raise ValueError(f"Unknown audit status '{status}'")
        self.db.execute_query(
            "UPDATE audits SET status = ?, "
            "duration_seconds = COALESCE(?, duration_seconds), "
            "total_violations = COALESCE(?, total_violations), "
            "updated_at = ? WHERE id = ?",
            (status, duration_seconds, total_violations, _now_iso(), audit_id),
        )

    def get_audit(self, audit_id: str) -> Optional[Dict[str, Any]]:
        row = self.db.fetch_one(
            "SELECT id, url, status, config_used, total_violations, duration_seconds, created_at "
            "FROM audits WHERE id = ?",
            (audit_id,),
        )
        if not row:
            return None
        return {
            "id": row[0],
            "url": row[1],
            "status": row[2],
            "config_used": json.loads(row[3]) if row[3] else {},
            "total_violations": row[4],
            "duration_seconds": row[5],
            "created_at": row[6],
        }

    # --- PAGE TYPES & VIOLATIONS ---

    def save_page_type_report(self, audit_id: str, report: PageTypeReport) -> int:
        """Persists one page type with its extrapolated violations, examples and classifications."""
        now = _now_iso()
        page_type_id = self.db.execute_insert(
            "INSERT INTO page_types (audit_id, type_name, url_pattern, total_count_in_sitemap, "
            "pages_sampled, created_at) VALUES (?, ?, ?, ?, ?, ?)",
            (audit_id, report.type, report.pattern, report.total_count, report.pages_sampled, now),
        )

        for violation in report.violations:
            violation_id = self.db.execute_insert(
                "INSERT INTO violations (audit_id, page_type_id, rule_id, severity, description, "
                "instances_found, extrapolated_total, remediation_guidance, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    audit_id, page_type_id, violation.rule_id, violation.impact,
                    violation.description or "No description available",
                    violation.instances_found, violation.extrapolated_total,
                    violation.help_url, now,
                ),
            )
            self.db.save_batch(
                "INSERT INTO violation_examples (violation_id, url, created_at) VALUES (?, ?, ?)",
                [(violation_id, url, now) for url in violation.example_urls],
            )
            if violation.category:
                self.db.execute_query(
                    "INSERT INTO violation_classifications (violation_id, category, auto_classified, "
                    "created_at) VALUES (?, ?, 1, ?)",
                    (violation_id, violation.category, now),
                )

        logger.debug("Saved page type '%s' (%d violations).", report.type, len(report.violations))
        return page_type_id

    # --- DATAFRAME LOADERS ---

    def load_violations_df(self, audit_id: str) -> pd.DataFrame:
        """One row per (page type, rule) for an audit, ready for export."""
        sql = """
            SELECT pt.type_name, pt.url_pattern, pt.total_count_in_sitemap, pt.pages_sampled,
                   v.rule_id, v.severity, v.instances_found, v.extrapolated_total,
                   vc.category, v.remediation_guidance
            FROM violations v
            JOIN page_types pt ON v.page_type_id = pt.id
            LEFT JOIN violation_classifications vc ON vc.violation_id = v.id
            WHERE v.audit_id = ?
            ORDER BY pt.total_count_in_sitemap DESC, v.extrapolated_total DESC
        """
        conn = self.db.get_connection()
        return pd.read_sql_query(sql, conn, params=(audit_id,))
