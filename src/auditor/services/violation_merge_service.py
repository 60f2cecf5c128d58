import logging
from typing import List, Sequence

from auditor.model import Violation

logger = logging.getLogger(__name__)


def merge_violations(primary: Sequence[Violation], secondary: Sequence[Violation]) -> List[Violation]:
    """
    Deduplicates two testers' findings for the same page by exact rule id.

    Every primary violation is kept in order. A secondary violation is appended
    only when its id has not been seen yet. The testers use different id
    vocabularies for overlapping issues; those are kept as separate entries.
    """
    merged = list(primary)
    seen_ids = {v.id for v in primary}

    for violation in secondary:
        if violation.id in seen_ids:
            continue
        merged.append(violation)
        seen_ids.add(violation.id)

    logger.debug("Merged %d + %d violations into %d.", len(primary), len(secondary), len(merged))
    return merged
