import pytest

from course_state import APPROVED, AVAILABLE, BLOCKED, REGULARIZED
from validators import find_stale_completed_courses, validate_nodes_payload


def _raw(course_id, level=2, state="available", **extra):
    node = {"id": course_id, "level": level, "state": state}
    node.update(extra)
    return node


class TestValidateNodesPayload:
    def test_not_a_list(self):
        nodes, error = validate_nodes_payload({"id": 1})
        assert nodes is None
        assert "list" in error

    def test_empty_list_is_valid(self):
        assert validate_nodes_payload([]) == ([], None)

    def test_normalizes_node(self):
        nodes, error = validate_nodes_payload([
            _raw("7", level="3", state="Pendiente", requires_regularized=["1", 2, 2], name="Redes", column=4),
        ])
        assert error is None
        assert nodes == [{
            "id": 7,
            "sequence_number": 1,
            "name": "Redes",
            "level": 3,
            "state": AVAILABLE,
            "requires_regularized": [1, 2],
            "requires_approved": [],
            "column": 4,
        }]

    def test_missing_field(self):
        _, error = validate_nodes_payload([{"id": 1, "level": 1}])
        assert "state" in error

    @pytest.mark.parametrize("bad", [
        _raw("x"),
        _raw(1, level=None),
        _raw(1, state="passed"),
        _raw(1, requires_approved="3"),
        _raw(1, requires_regularized=[1, "a"]),
        _raw(True),
    ])
    def test_rejects_bad_nodes(self, bad):
        nodes, error = validate_nodes_payload([bad])
        assert nodes is None
        assert error

    def test_rejects_non_object_item(self):
        _, error = validate_nodes_payload(["nope"])
        assert "object" in error

    def test_duplicate_ids(self):
        _, error = validate_nodes_payload([_raw(1), _raw(1)])
        assert "Duplicate" in error

    def test_unknown_prereq_ids_are_kept(self):
        nodes, error = validate_nodes_payload([_raw(1, requires_approved=[404])])
        assert error is None
        assert nodes[0]["requires_approved"] == [404]


class TestFindStaleCompletedCourses:
    def test_reports_completed_course_with_unmet_prereqs(self):
        nodes = [
            {"id": 1, "level": 1, "state": AVAILABLE, "requires_regularized": [], "requires_approved": []},
            {"id": 2, "level": 1, "state": REGULARIZED, "requires_regularized": [], "requires_approved": []},
            {"id": 3, "level": 2, "state": APPROVED, "requires_regularized": [1], "requires_approved": [2]},
        ]
        assert find_stale_completed_courses(nodes) == [
            {"course_id": 3, "missing_regularized": [1], "missing_approved": [2]},
        ]

    def test_ignores_open_and_first_year_courses(self):
        nodes = [
            {"id": 1, "level": 1, "state": APPROVED, "requires_regularized": [9], "requires_approved": []},
            {"id": 2, "level": 2, "state": BLOCKED, "requires_regularized": [9], "requires_approved": []},
        ]
        assert find_stale_completed_courses(nodes) == []

    def test_satisfied_completed_course_not_reported(self):
        nodes = [
            {"id": 1, "level": 1, "state": APPROVED, "requires_regularized": [], "requires_approved": []},
            {"id": 2, "level": 2, "state": REGULARIZED, "requires_regularized": [], "requires_approved": [1]},
        ]
        assert find_stale_completed_courses(nodes) == []

    def test_unknown_prereq_ids_are_reported(self):
        nodes = [
            {"id": 1, "level": 1, "state": APPROVED, "requires_regularized": [], "requires_approved": []},
            {"id": 2, "level": 2, "state": APPROVED, "requires_regularized": [1, 77], "requires_approved": [88]},
        ]
        assert find_stale_completed_courses(nodes) == [
            {"course_id": 2, "missing_regularized": [77], "missing_approved": [88]},
        ]

    def test_prereq_failing_both_kinds_listed_once(self):
        nodes = [
            {"id": 1, "level": 1, "state": AVAILABLE, "requires_regularized": [], "requires_approved": []},
            {"id": 2, "level": 2, "state": REGULARIZED, "requires_regularized": [1], "requires_approved": [1]},
        ]
        assert find_stale_completed_courses(nodes) == [
            {"course_id": 2, "missing_regularized": [], "missing_approved": [1]},
        ]
