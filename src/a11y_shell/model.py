# src/a11y_shell/model.py (Shell Layer)
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field

from classifier.model import PageTypePattern
from sampler.model import SamplingConfig

logger = logging.getLogger(__name__)

YAML_SUFFIXES = {".yaml", ".yml"}


class AuditConfig(BaseModel):
    """
    Per-site audit configuration, read from the JSON or YAML file passed with --config.

    Example:
        {"pageTypes": [{"pattern": "/artists/*", "type": "Artist Page"},
                       {"pattern": "/*", "type": "Other"}],
         "sampling": {"initial_sample_size": 10}}
    """
    model_config = ConfigDict(populate_by_name=True)

    page_types: List[PageTypePattern] = Field(default_factory=list, alias="pageTypes")
    sampling: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "AuditConfig":
        """Loads JSON, or YAML for .yaml/.yml files."""
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() in YAML_SUFFIXES:
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)
        return cls.model_validate(data)

    def build_sampling_config(self, defaults: Dict[str, Any]) -> SamplingConfig:
        """Site overrides win over settings.json defaults; unknown keys are ignored."""
        merged = {**(defaults or {}), **self.sampling}
        known = {k: v for k, v in merged.items() if k in SamplingConfig.model_fields}
        return SamplingConfig.model_validate(known)
