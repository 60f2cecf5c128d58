# src/sampler/model.py (Sampling Layer)
from typing import List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SamplingConfigError(ValueError):
    """Raised when a sampling configuration cannot drive a sampling run."""


class SamplingConfig(BaseModel):
    """
    Shared, read-only sampling parameters for every page type of one audit.

    Attributes:
        initial_sample_size: Minimum number of pages tested before early stopping is allowed.
        max_sample_size: Hard cap on tested pages per type.
        consistency_threshold: Average Jaccard overlap (0-1) against the first
            sample needed to call a type consistent.
        test_timeout: Optional per-page timeout in seconds at the test function boundary.
    """
    model_config = ConfigDict(frozen=True)

    initial_sample_size: int = Field(default=30, gt=0)
    max_sample_size: int = Field(default=100, gt=0)
    consistency_threshold: float = Field(default=0.95, ge=0.0, le=1.0)
    test_timeout: Optional[float] = Field(default=None, gt=0)

    @model_validator(mode="after")
    def _check_bounds(self) -> "SamplingConfig":
        if self.max_sample_size < self.initial_sample_size:
            raise SamplingConfigError(
                f"max_sample_size ({self.max_sample_size}) must be >= "
                f"initial_sample_size ({self.initial_sample_size})"
            )
        return self


class SampleResult(BaseModel):
    """Outcome of sampling one page type, in the order pages were tested."""
    samples_taken: int = 0
    violations: Set[str] = Field(default_factory=set)
    sampled_urls: List[str] = Field(default_factory=list)
    page_violations: List[Set[str]] = Field(default_factory=list)

    def record(self, url: str, rule_ids: Set[str]) -> None:
        self.sampled_urls.append(url)
        self.page_violations.append(set(rule_ids))
        self.violations.update(rule_ids)
        self.samples_taken += 1
