"""
Correlativas cascade: keeps every course's available/blocked status in line
with the states of its prerequisites.

A course node is a plain dict:
  {"id": 17, "sequence_number": 17, "name": "...", "level": 2, "column": 8,
   "state": "available",
   "requires_regularized": [1, 2],   # must be regularized or approved
   "requires_approved": [1, 2]}      # must be approved

Every function here is pure: inputs are never mutated and nothing raises on
bad graph data (unknown ids are simply unsatisfiable).
"""

from course_state import (
    APPROVED,
    AVAILABLE,
    BLOCKED,
    COMPLETED_STATES,
    COURSE_STATES,
    REGULARIZED,
    normalize_state,
)

# Pass budget the mobile client always used. recompute() keeps it as a floor
# and raises the cap for deeper plans.
DEFAULT_CASCADE_PASSES = 3


def all_prerequisites(node: dict) -> list:
    """Union of both prerequisite lists (regularized first), duplicates removed."""
    return list(dict.fromkeys(
        list(node.get("requires_regularized") or []) + list(node.get("requires_approved") or [])
    ))


def _index_states(nodes: list[dict]) -> dict:
    return {n["id"]: n.get("state") for n in nodes}


def _regularized_ok(req_id, states: dict) -> bool:
    return states.get(req_id) in COMPLETED_STATES


def _approved_ok(req_id, states: dict) -> bool:
    return states.get(req_id) == APPROVED


def prerequisites_satisfied(node: dict, states: dict) -> bool:
    """
    True when every regularized requirement is regularized/approved and every
    approved requirement is approved. Empty lists are satisfied.
    """
    return (
        all(_regularized_ok(r, states) for r in node.get("requires_regularized") or [])
        and all(_approved_ok(r, states) for r in node.get("requires_approved") or [])
    )


def _next_state(node: dict, states: dict) -> str:
    state = node.get("state")
    if node.get("level") == 1:
        return AVAILABLE if state == BLOCKED else state
    if state in COMPLETED_STATES:
        return state
    if prerequisites_satisfied(node, states):
        return AVAILABLE if state == BLOCKED else state
    return BLOCKED if state == AVAILABLE else state


def _cascade_pass(nodes: list[dict]) -> list[dict]:
    # Every node reads the states left by the previous pass.
    states = _index_states(nodes)
    result = []
    for node in nodes:
        new_state = _next_state(node, states)
        if new_state != node.get("state"):
            node = {**node, "state": new_state}
        result.append(node)
    return result


def build_reverse_prereq_map(nodes: list[dict]) -> dict:
    """
    For each course id, the ids of courses that list it as a prerequisite
    (either kind). Only direct dependents.

    Returns: {1: [9, 10, 17, 18], 9: [22, 27, 28], ...}
    """
    reverse: dict = {}
    for node in nodes:
        for prereq_id in all_prerequisites(node):
            reverse.setdefault(prereq_id, [])
            if node["id"] not in reverse[prereq_id]:
                reverse[prereq_id].append(node["id"])
    return reverse


def compute_chain_depths(reverse_map: dict) -> dict:
    """
    Longest downstream prerequisite chain for every course in reverse_map.

    A course nothing depends on has depth 0.
    1 -> 9 -> 22 -> 27 -> 33 gives course 1 depth 4.

    Walks with an explicit stack, so chains of any length are fine. An edge
    back into the current path counts as depth 0 (cycle guard).
    """
    memo: dict = {}
    best: dict = {}
    in_stack: set = set()

    for root in reverse_map:
        if root in memo:
            continue
        stack = [(root, iter(reverse_map.get(root, [])))]
        in_stack.add(root)
        best[root] = 0
        while stack:
            course_id, children = stack[-1]
            for child in children:
                if child in memo:
                    best[course_id] = max(best[course_id], memo[child] + 1)
                elif child in in_stack:
                    best[course_id] = max(best[course_id], 1)
                else:
                    in_stack.add(child)
                    best[child] = 0
                    stack.append((child, iter(reverse_map.get(child, []))))
                    break
            else:
                stack.pop()
                in_stack.discard(course_id)
                memo[course_id] = best.pop(course_id)
                if stack:
                    parent = stack[-1][0]
                    best[parent] = max(best[parent], memo[course_id] + 1)

    return memo


def max_chain_depth(nodes: list[dict]) -> int:
    depths = compute_chain_depths(build_reverse_prereq_map(nodes))
    return max(depths.values(), default=0)


def get_direct_unlocks(course_id, reverse_map: dict, limit: int | None = None) -> list:
    """Courses that list course_id as a direct prerequisite, optionally capped at limit."""
    unlocked = reverse_map.get(course_id, [])
    return unlocked[:limit] if limit is not None else list(unlocked)


def recompute(nodes: list[dict], max_passes: int | None = None) -> list[dict]:
    """
    Returns a new node list where every available/blocked course reflects its
    prerequisites. approved and regularized courses are never touched, and
    level 1 courses are never blocked.

    Passes repeat until nothing changes. The pass count is capped at
    max(DEFAULT_CASCADE_PASSES, chain depth + 1) so cyclic data still ends.
    """
    if not nodes:
        return []

    if max_passes is None:
        max_passes = max(DEFAULT_CASCADE_PASSES, max_chain_depth(nodes) + 1)

    current = [dict(n) for n in nodes]
    for _ in range(max_passes):
        updated = _cascade_pass(current)
        if all(a.get("state") == b.get("state") for a, b in zip(current, updated)):
            break
        current = updated
    return current


def apply_manual_transition(nodes: list[dict], course_id, requested_state: str) -> list[dict]:
    """
    Sets one course's state and recomputes the whole list.

    Callers must not target a blocked course; those taps should go to
    missing_prerequisites() instead. An unknown course_id changes nothing.
    Raises ValueError for an unknown state name.
    """
    state = normalize_state(requested_state)
    if state is None:
        raise ValueError(
            f"Unknown course state: {requested_state!r} (expected one of {', '.join(COURSE_STATES)})"
        )
    changed = [
        {**n, "state": state} if n["id"] == course_id else n
        for n in nodes
    ]
    return recompute(changed)


def _resolve_target(nodes: list[dict], target):
    if isinstance(target, dict):
        return target
    return next((n for n in nodes if n["id"] == target), None)


def missing_prerequisites(nodes: list[dict], target) -> dict:
    """
    Which prerequisite courses keep `target` (a node or an id) from being available.

    Returns:
      {
        "regularized_needed": [node, ...],   # not yet regularized or approved
        "approved_needed":    [node, ...],   # not yet approved
      }

    A course that fails both requirements is listed once, under approved_needed.
    Unknown ids are skipped.
    """
    node = _resolve_target(nodes, target)
    if node is None:
        return {"regularized_needed": [], "approved_needed": []}

    by_id = {n["id"]: n for n in nodes}
    states = _index_states(nodes)

    approved_needed = []
    seen = set()
    for req_id in node.get("requires_approved") or []:
        if req_id in by_id and req_id not in seen and not _approved_ok(req_id, states):
            approved_needed.append(dict(by_id[req_id]))
            seen.add(req_id)

    regularized_needed = []
    for req_id in node.get("requires_regularized") or []:
        if req_id in by_id and req_id not in seen and not _regularized_ok(req_id, states):
            regularized_needed.append(dict(by_id[req_id]))
            seen.add(req_id)

    return {"regularized_needed": regularized_needed, "approved_needed": approved_needed}


def prerequisite_edges(nodes: list[dict]) -> list[dict]:
    """
    Connector list for drawing the plan graph.

    Each edge: {"from": prereq_id, "to": course_id, "kind": "approved"|"regularized", "active": bool}
    An edge present in both lists is reported once with kind "approved".
    "active" is True when the prerequisite course is regularized or approved.
    Edges to unknown courses are left out.
    """
    states = _index_states(nodes)
    edges = []
    for node in nodes:
        strict = set(node.get("requires_approved") or [])
        for prereq_id in all_prerequisites(node):
            if prereq_id not in states:
                continue
            edges.append({
                "from": prereq_id,
                "to": node["id"],
                "kind": APPROVED if prereq_id in strict else REGULARIZED,
                "active": states[prereq_id] in COMPLETED_STATES,
            })
    return edges
