from typing import Tuple

from auditor.model import ClassificationResult

# Fixes that need content changes (alt text, labels, link text).
CONTENT_PATTERNS: Tuple[str, ...] = (
    "image-alt",
    "H37",    # pa11y: img missing alt
    "H67",    # pa11y: empty alt on meaningful img
    "label",
    "link-name",
    "button-name",
    "1_1_1",  # WCAG 1.1.1 Non-text Content
)

# Fixes that need template or code changes.
STRUCTURAL_PATTERNS: Tuple[str, ...] = (
    "html-has-lang",
    "document-title",
    "landmark-one-main",
    "page-has-heading-one",
    "color-contrast",
    "H32.2",  # pa11y: form without submit
    "H91",    # pa11y: form controls
    "2_4_1",  # WCAG 2.4.1 Bypass Blocks
    "3_2_2",  # WCAG 3.2.2 On Input
    "4_1_2",  # WCAG 4.1.2 Name, Role, Value
    "F68",    # pa11y: control without label
)


def auto_classify(rule_id: str) -> ClassificationResult:
    """
    Classifies a rule as a content or structural issue by substring match.
    Content patterns win over structural ones.
    """
    if not rule_id or not rule_id.strip():
        return ClassificationResult(category=None, confidence="low")

    if any(pattern in rule_id for pattern in CONTENT_PATTERNS):
        return ClassificationResult(category="content", confidence="high")

    if any(pattern in rule_id for pattern in STRUCTURAL_PATTERNS):
        return ClassificationResult(category="structural", confidence="high")

    return ClassificationResult(category=None, confidence="low")
