from course_state import APPROVED, AVAILABLE, BLOCKED, REGULARIZED
from stats import completion_percent, compute_stats


def _nodes(*states):
    return [{"id": i, "level": 2, "state": s} for i, s in enumerate(states, start=1)]


class TestComputeStats:
    def test_empty_plan(self):
        assert compute_stats([]) == {
            "approved_count": 0,
            "regularized_count": 0,
            "available_count": 0,
            "blocked_count": 0,
            "total": 0,
            "completion_percent": 0,
        }

    def test_counts_by_state(self):
        stats = compute_stats(_nodes(APPROVED, APPROVED, REGULARIZED, AVAILABLE, BLOCKED, BLOCKED, BLOCKED))
        assert stats["approved_count"] == 2
        assert stats["regularized_count"] == 1
        assert stats["available_count"] == 1
        assert stats["blocked_count"] == 3
        assert stats["total"] == 7

    def test_counts_sum_to_total(self):
        stats = compute_stats(_nodes(APPROVED, REGULARIZED, AVAILABLE, BLOCKED, AVAILABLE))
        counted = (
            stats["approved_count"] + stats["regularized_count"]
            + stats["available_count"] + stats["blocked_count"]
        )
        assert counted == stats["total"]

    def test_unrecognized_state_counts_as_available(self):
        stats = compute_stats([{"state": None}, {"state": "final"}, {"state": "Aprobada"}])
        assert stats["available_count"] == 2
        assert stats["approved_count"] == 1
        assert stats["total"] == 3

    def test_completion_counts_only_approved(self):
        stats = compute_stats(_nodes(APPROVED, REGULARIZED, REGULARIZED, REGULARIZED))
        assert stats["completion_percent"] == 25


class TestCompletionPercent:
    def test_rounds_halves_up(self):
        # 1/8 = 12.5%
        assert completion_percent(1, 8) == 13

    def test_rounds_to_nearest(self):
        # 2/36 = 5.56%, 1/36 = 2.78%, 1/3 = 33.33%
        assert completion_percent(2, 36) == 6
        assert completion_percent(1, 36) == 3
        assert completion_percent(1, 3) == 33

    def test_zero_total(self):
        assert completion_percent(0, 0) == 0

    def test_full(self):
        assert completion_percent(36, 36) == 100
