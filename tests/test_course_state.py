import pytest

from course_state import (
    APPROVED,
    AVAILABLE,
    BLOCKED,
    REGULARIZED,
    can_unlock,
    cycle_state,
    from_backend_state,
    normalize_state,
    to_backend_state,
)


class TestFromBackendState:
    @pytest.mark.parametrize("raw,expected", [
        ("aprobado", APPROVED),
        ("approved", APPROVED),
        ("regular", REGULARIZED),
        ("cursado", AVAILABLE),
        ("no_cursado", AVAILABLE),
        (None, AVAILABLE),
        ("", AVAILABLE),
    ])
    def test_mapping(self, raw, expected):
        assert from_backend_state(raw) == expected

    def test_case_and_whitespace(self):
        assert from_backend_state("  Aprobado ") == APPROVED

    def test_never_blocked(self):
        for raw in ("bloqueada", "blocked", "garbage"):
            assert from_backend_state(raw) == AVAILABLE


class TestToBackendState:
    def test_mapping(self):
        assert to_backend_state(APPROVED) == "aprobado"
        assert to_backend_state(REGULARIZED) == "regular"
        assert to_backend_state(AVAILABLE) == "cursado"

    def test_blocked_is_never_sent(self):
        assert to_backend_state(BLOCKED) is None


class TestNormalizeState:
    def test_engine_names(self):
        assert normalize_state(" Approved ") == APPROVED

    def test_client_aliases(self):
        assert normalize_state("aprobada") == APPROVED
        assert normalize_state("regularizada") == REGULARIZED
        assert normalize_state("pendiente") == AVAILABLE
        assert normalize_state("bloqueada") == BLOCKED

    def test_unknown(self):
        assert normalize_state("passed") is None
        assert normalize_state(None) is None


class TestHelpers:
    def test_can_unlock(self):
        assert can_unlock(APPROVED)
        assert can_unlock(REGULARIZED)
        assert not can_unlock(AVAILABLE)
        assert not can_unlock(BLOCKED)

    def test_cycle_unknown_defaults_to_available(self):
        assert cycle_state("garbage") == AVAILABLE
