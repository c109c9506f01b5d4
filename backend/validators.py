"""
Pure validation helpers for the /simulate endpoints.
No Flask or data-loader imports.
"""

from typing import Dict, List, Optional, Tuple

from cascade import prerequisites_satisfied
from course_state import APPROVED, COMPLETED_STATES, normalize_state

REQUIRED_NODE_KEYS = ("id", "level", "state")


def _coerce_int(raw) -> Optional[int]:
    if isinstance(raw, bool):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def _coerce_id_list(raw) -> Optional[List[int]]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        return None
    ids = []
    for item in raw:
        value = _coerce_int(item)
        if value is None:
            return None
        ids.append(value)
    return list(dict.fromkeys(ids))


def _normalize_node(raw: dict, position: int) -> Tuple[Optional[dict], Optional[str]]:
    missing = [k for k in REQUIRED_NODE_KEYS if k not in raw]
    if missing:
        return None, f"nodes[{position}] is missing field(s): {', '.join(missing)}."

    course_id = _coerce_int(raw.get("id"))
    if course_id is None:
        return None, f"nodes[{position}].id must be an integer."
    level = _coerce_int(raw.get("level"))
    if level is None:
        return None, f"nodes[{position}].level must be an integer."
    state = normalize_state(raw.get("state"))
    if state is None:
        return None, f"nodes[{position}].state '{raw.get('state')}' is not a valid course state."

    requires_regularized = _coerce_id_list(raw.get("requires_regularized"))
    requires_approved = _coerce_id_list(raw.get("requires_approved"))
    if requires_regularized is None or requires_approved is None:
        return None, f"nodes[{position}] prerequisite lists must be lists of integer ids."

    sequence_number = _coerce_int(raw.get("sequence_number"))
    node = {
        "id": course_id,
        "sequence_number": sequence_number if sequence_number is not None else position + 1,
        "name": str(raw.get("name") or ""),
        "level": level,
        "state": state,
        "requires_regularized": requires_regularized,
        "requires_approved": requires_approved,
    }
    column = _coerce_int(raw.get("column"))
    if column is not None:
        node["column"] = column
    return node, None


def validate_nodes_payload(raw) -> Tuple[Optional[List[dict]], Optional[str]]:
    """
    Validates and normalizes a node list received over HTTP.

    Returns (nodes, None) on success, (None, message) on invalid input.
    State aliases ('aprobada', 'pendiente', ...) are normalized; prerequisite
    ids that point outside the list are kept (the engine treats them as unsatisfiable).
    """
    if not isinstance(raw, list):
        return None, "nodes must be a list."

    nodes: List[dict] = []
    seen_ids = set()
    for position, item in enumerate(raw):
        if not isinstance(item, dict):
            return None, f"nodes[{position}] must be an object."
        node, error = _normalize_node(item, position)
        if error:
            return None, error
        if node["id"] in seen_ids:
            return None, f"Duplicate course id {node['id']} in nodes."
        seen_ids.add(node["id"])
        nodes.append(node)
    return nodes, None


def find_stale_completed_courses(nodes: List[dict]) -> List[dict]:
    """
    Return completed (approved/regularized) courses whose own prerequisites are
    no longer met. The cascade keeps these states; callers surface them as warnings.

    Each item:
      {"course_id": int, "missing_regularized": List[int], "missing_approved": List[int]}

    Ids that match no course in the list are reported too, since they can never
    be satisfied. A prerequisite failing both kinds is listed under missing_approved.
    """
    states: Dict = {n["id"]: n.get("state") for n in nodes}
    issues: List[dict] = []
    for node in nodes:
        if node.get("state") not in COMPLETED_STATES or node.get("level") == 1:
            continue
        if prerequisites_satisfied(node, states):
            continue
        missing_approved = [
            r for r in dict.fromkeys(node.get("requires_approved") or [])
            if states.get(r) != APPROVED
        ]
        missing_regularized = [
            r for r in dict.fromkeys(node.get("requires_regularized") or [])
            if states.get(r) not in COMPLETED_STATES and r not in missing_approved
        ]
        issues.append({
            "course_id": node["id"],
            "missing_regularized": missing_regularized,
            "missing_approved": missing_approved,
        })
    return issues
