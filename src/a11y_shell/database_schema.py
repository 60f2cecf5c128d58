# src/a11y_shell/database_schema.py

DEFAULT_SCHEMA_SCRIPT = """
CREATE TABLE IF NOT EXISTS audits (
    id TEXT PRIMARY KEY,
    url TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'running',  -- running | completed | failed
    config_used TEXT,
    total_violations INTEGER DEFAULT 0,
    duration_seconds INTEGER,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS page_types (
    id INTEGER PRIMARY KEY,
    audit_id TEXT NOT NULL,
    type_name TEXT NOT NULL,
    url_pattern TEXT NOT NULL,
    total_count_in_sitemap INTEGER NOT NULL,
    pages_sampled INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    FOREIGN KEY (audit_id) REFERENCES audits (id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_page_types_audit ON page_types(audit_id);

CREATE TABLE IF NOT EXISTS violations (
    id INTEGER PRIMARY KEY,
    audit_id TEXT NOT NULL,
    page_type_id INTEGER NOT NULL,
    rule_id TEXT NOT NULL,
    severity TEXT NOT NULL,
    description TEXT,
    instances_found INTEGER NOT NULL,
    extrapolated_total INTEGER,
    remediation_guidance TEXT,
    created_at TEXT NOT NULL,
    FOREIGN KEY (audit_id) REFERENCES audits (id) ON DELETE CASCADE,
    FOREIGN KEY (page_type_id) REFERENCES page_types (id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_violations_page_type ON violations(page_type_id);
CREATE INDEX IF NOT EXISTS idx_violations_rule ON violations(rule_id);

CREATE TABLE IF NOT EXISTS violation_examples (
    id INTEGER PRIMARY KEY,
    violation_id INTEGER NOT NULL,
    url TEXT NOT NULL,
    html_snippet TEXT,
    css_selector TEXT,
    created_at TEXT NOT NULL,
    FOREIGN KEY (violation_id) REFERENCES violations (id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS violation_classifications (
    id INTEGER PRIMARY KEY,
    violation_id INTEGER NOT NULL,
    category TEXT NOT NULL,  -- content | structural
    auto_classified INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    FOREIGN KEY (violation_id) REFERENCES violations (id) ON DELETE CASCADE
);
"""
