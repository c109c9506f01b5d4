APPROVED = "approved"
REGULARIZED = "regularized"
AVAILABLE = "available"
BLOCKED = "blocked"

COURSE_STATES = (APPROVED, REGULARIZED, AVAILABLE, BLOCKED)

# States that satisfy a "requires regularized" prerequisite and that the
# cascade never touches.
COMPLETED_STATES = frozenset({APPROVED, REGULARIZED})

# Backend enumeration stored per user/course.
BACKEND_APPROVED = "aprobado"
BACKEND_REGULAR = "regular"
BACKEND_TAKEN = "cursado"
BACKEND_NOT_TAKEN = "no_cursado"

_FROM_BACKEND = {
    BACKEND_APPROVED: APPROVED,
    "approved": APPROVED,
    BACKEND_REGULAR: REGULARIZED,
    BACKEND_TAKEN: AVAILABLE,
    BACKEND_NOT_TAKEN: AVAILABLE,
}

_TO_BACKEND = {
    APPROVED: BACKEND_APPROVED,
    REGULARIZED: BACKEND_REGULAR,
    AVAILABLE: BACKEND_TAKEN,
}

# Spanish labels used by the mobile client.
_STATE_ALIASES = {
    "aprobada": APPROVED,
    "regularizada": REGULARIZED,
    "pendiente": AVAILABLE,
    "bloqueada": BLOCKED,
}

_NEXT_STATE = {
    AVAILABLE: REGULARIZED,
    REGULARIZED: APPROVED,
    APPROVED: AVAILABLE,
    BLOCKED: BLOCKED,
}


def normalize_state(raw) -> str | None:
    """
    Normalizes an engine state name.
    Accepts 'approved', ' Approved ', and the client aliases ('aprobada', 'pendiente', ...).
    Returns None if the value is not a known state.
    """
    s = str(raw or "").strip().lower()
    if s in COURSE_STATES:
        return s
    return _STATE_ALIASES.get(s)


def from_backend_state(raw) -> str:
    """
    Maps a stored backend state to the engine state.

      aprobado / approved        → approved
      regular                    → regularized
      cursado / no_cursado / None → available

    Unknown values also map to available. Never returns blocked: only
    recompute() is allowed to block a course.
    """
    s = str(raw or "").strip().lower()
    return _FROM_BACKEND.get(s, AVAILABLE)


def to_backend_state(state: str) -> str | None:
    """Engine state → backend enumeration. blocked is derived and maps to None."""
    return _TO_BACKEND.get(normalize_state(state))


def can_unlock(state: str) -> bool:
    return state in COMPLETED_STATES


def cycle_state(current: str) -> str:
    """
    Next state for a quick tap.
    available → regularized → approved → available; blocked stays blocked.
    """
    return _NEXT_STATE.get(normalize_state(current), AVAILABLE)
