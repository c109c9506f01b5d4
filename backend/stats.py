import math

from course_state import APPROVED, AVAILABLE, BLOCKED, REGULARIZED, normalize_state


def completion_percent(approved_count: int, total: int) -> int:
    """Whole percent of approved courses, rounding halves up. 0 for an empty plan."""
    if total <= 0:
        return 0
    return int(math.floor(approved_count / total * 100 + 0.5))


def compute_stats(nodes: list[dict]) -> dict:
    """
    Reduces a node list to per-state counts.

    Returns:
      {"approved_count": 4, "regularized_count": 2, "available_count": 10,
       "blocked_count": 20, "total": 36, "completion_percent": 11}

    State aliases are normalized first; anything unrecognized counts as
    available, so the four counts always add up to total.
    """
    counts = {APPROVED: 0, REGULARIZED: 0, AVAILABLE: 0, BLOCKED: 0}
    for node in nodes:
        counts[normalize_state(node.get("state")) or AVAILABLE] += 1
    total = len(nodes)
    return {
        "approved_count": counts[APPROVED],
        "regularized_count": counts[REGULARIZED],
        "available_count": counts[AVAILABLE],
        "blocked_count": counts[BLOCKED],
        "total": total,
        "completion_percent": completion_percent(counts[APPROVED], total),
    }
