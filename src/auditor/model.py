from datetime import datetime, timezone
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

Impact = Literal["critical", "serious", "moderate", "minor"]
IMPACT_LEVELS = ("critical", "serious", "moderate", "minor")


class ViolationNode(BaseModel):
    html: str = ""
    target: Any = ""  # axe reports a selector list, pa11y a single selector string
    failure_summary: str = ""

    @field_validator("html", "failure_summary", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)


class Violation(BaseModel):
    """
    One accessibility rule violated on one page, as reported by a tester.
    `id` is the rule identifier used to deduplicate findings across testers.
    """
    id: str
    impact: Impact = "minor"
    description: str = ""
    help: str = ""
    help_url: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    nodes: List[ViolationNode] = Field(default_factory=list)

    @field_validator("impact", mode="before")
    @classmethod
    def _normalize_impact(cls, v: Any) -> str:
        s = str(v or "").strip().lower()
        return s if s in IMPACT_LEVELS else "minor"


class TestResult(BaseModel):
    """Raw outcome of one tester on one page."""
    __test__ = False  # keep pytest from collecting this model

    url: str
    violations: List[Violation] = Field(default_factory=list)
    passes: int = 0
    incomplete: int = 0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class MergedTestResult(BaseModel):
    url: str
    violations: List[Violation] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ClassificationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: Optional[Literal["content", "structural"]] = None
    confidence: Literal["high", "low"] = "low"


class ExtrapolatedViolation(BaseModel):
    """
    Sample-observed occurrences of one rule on one page type, projected onto
    every page of that type.
    """
    model_config = ConfigDict(frozen=True)

    rule_id: str
    instances_found: int
    extrapolated_total: int
    example_urls: List[str] = Field(default_factory=list)
    impact: Impact = "serious"
    description: str = ""
    help_url: Optional[str] = None
    category: Optional[str] = None


class PageTypeReport(BaseModel):
    """What gets persisted per page type: the group minus its URL body."""
    type: str
    pattern: str
    total_count: int
    pages_sampled: int
    violations: List[ExtrapolatedViolation] = Field(default_factory=list)

    @property
    def extrapolated_total(self) -> int:
        return sum(v.extrapolated_total for v in self.violations)


class AuditResult(BaseModel):
    audit_id: Optional[str] = None
    url: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    total_urls: int = 0
    page_types: List[PageTypeReport] = Field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def total_extrapolated(self) -> int:
        return sum(pt.extrapolated_total for pt in self.page_types)
