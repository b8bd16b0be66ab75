from typing import List, Sequence

from classifier.logger import get_logger
from classifier.models import Assignment
from classifier.weights import FULL_WEIGHT, format_path, format_weight, round_half_up

logger = get_logger(__name__)


def normalize_breakdown(
    assignments: Sequence[Assignment],
    taxonomy_id: str = "",
    fix_total: bool = True,
) -> List[Assignment]:
    """
    Returns the assignments with positive integer weights and, when
    ``fix_total`` is set, a total of at most 100%.

    Overflow is not scaled away proportionally: the largest categories are
    kept as reported and the smallest ones absorb the excess. Entries are
    sorted by descending weight (stable), the first one that crosses 100% is
    cut down to what is left and everything after it is dropped.
    """
    result = [
        Assignment(path=a.path, weight=round_half_up(a.weight))
        for a in assignments
        if a is not None and a.weight > 0
    ]
    result = [a for a in result if a.weight > 0]

    total_weight = sum(a.weight for a in result)
    if not fix_total or total_weight <= FULL_WEIGHT:
        return result

    truncated = []
    running_total = 0
    for assignment in sorted(result, key=lambda a: a.weight, reverse=True):
        if running_total >= FULL_WEIGHT:
            logger.debug(f"[{taxonomy_id}] Dropping '{format_path(assignment.path)}', total already at 100%")
            continue
        if running_total + assignment.weight > FULL_WEIGHT:
            headroom = FULL_WEIGHT - running_total
            logger.info(
                f"[{taxonomy_id}] Truncating weight for '{format_path(assignment.path)}' to {format_weight(headroom)}"
            )
            assignment = Assignment(path=assignment.path, weight=headroom)
        running_total += assignment.weight
        truncated.append(assignment)

    return [a for a in truncated if a.weight > 0]
