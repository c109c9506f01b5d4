import os

import pandas as pd

from cascade import recompute
from course_state import from_backend_state


COURSE_COLUMNS = ["id", "number", "name", "level"]
PREREQ_COLUMNS = ["course_id", "requires_id", "kind"]

_ROMAN_LEVELS = {"I": 1, "II": 2, "III": 3, "IV": 4, "V": 5}
MAX_LEVEL = 5

_KIND_ALIASES = {
    "regularizada": "regularized",
    "regularized": "regularized",
    "regular": "regularized",
    "aprobada": "approved",
    "approved": "approved",
}


def parse_level(raw) -> int | None:
    """'III' → 3, '3' → 3, 3.0 → 3. Anything outside 1..5 → None."""
    if raw is None or (isinstance(raw, float) and pd.isna(raw)):
        return None
    s = str(raw).strip().upper()
    if s in _ROMAN_LEVELS:
        return _ROMAN_LEVELS[s]
    try:
        level = int(float(s))
    except ValueError:
        return None
    return level if 1 <= level <= MAX_LEVEL else None


def _safe_int(raw) -> int | None:
    if raw is None or (isinstance(raw, float) and pd.isna(raw)):
        return None
    try:
        return int(float(str(raw).strip()))
    except ValueError:
        return None


def _read_sheets(data_path: str) -> tuple[pd.DataFrame, pd.DataFrame | None]:
    """Read courses + prerequisites from a CSV directory or an xlsx workbook."""
    if os.path.isdir(data_path):
        courses_csv = os.path.join(data_path, "courses.csv")
        if not os.path.isfile(courses_csv):
            raise FileNotFoundError(f"courses.csv not found in {data_path}")
        prereqs_csv = os.path.join(data_path, "prerequisites.csv")
        courses_df = pd.read_csv(courses_csv)
        prereqs_df = pd.read_csv(prereqs_csv) if os.path.isfile(prereqs_csv) else None
        return courses_df, prereqs_df

    xl = pd.ExcelFile(data_path)
    if "courses" not in xl.sheet_names:
        raise FileNotFoundError(f"'courses' sheet not found in {data_path}")
    courses_df = xl.parse("courses")
    prereqs_df = xl.parse("prerequisites") if "prerequisites" in xl.sheet_names else None
    return courses_df, prereqs_df


def _normalize_prereqs_df(prereqs_df: pd.DataFrame | None) -> pd.DataFrame:
    if prereqs_df is None or len(prereqs_df) == 0:
        return pd.DataFrame(columns=PREREQ_COLUMNS)

    missing = [c for c in PREREQ_COLUMNS if c not in prereqs_df.columns]
    if missing:
        raise ValueError(f"prerequisites is missing column(s): {missing}")

    df = prereqs_df[PREREQ_COLUMNS].copy()
    df["kind"] = df["kind"].fillna("").astype(str).str.strip().str.lower().map(_KIND_ALIASES)
    unknown_kind = df["kind"].isna()
    if unknown_kind.any():
        print(f"[WARN] {int(unknown_kind.sum())} prerequisite row(s) have an unknown kind and were dropped.")
    df = df[~unknown_kind].copy()

    df["course_id"] = df["course_id"].apply(_safe_int)
    df["requires_id"] = df["requires_id"].apply(_safe_int)
    bad_ids = df["course_id"].isna() | df["requires_id"].isna()
    if bad_ids.any():
        print(f"[WARN] {int(bad_ids.sum())} prerequisite row(s) have a non-numeric course id and were dropped.")
    df = df[~bad_ids].copy()
    df["course_id"] = df["course_id"].astype(int)
    df["requires_id"] = df["requires_id"].astype(int)
    return df.reset_index(drop=True)


def load_plan(data_path: str) -> dict:
    """Load and normalize a plan. Raises on file/schema errors."""
    courses_df, prereqs_df = _read_sheets(data_path)

    missing = [c for c in COURSE_COLUMNS if c not in courses_df.columns]
    if missing:
        raise ValueError(f"courses is missing column(s): {missing}")

    courses_df = courses_df.copy()
    courses_df["id"] = courses_df["id"].apply(_safe_int)
    courses_df["number"] = courses_df["number"].apply(_safe_int)
    courses_df["name"] = courses_df["name"].fillna("").astype(str).str.strip()
    courses_df = courses_df.dropna(subset=["id"])
    courses_df["id"] = courses_df["id"].astype(int)

    prereqs_df = _normalize_prereqs_df(prereqs_df)

    catalog_ids = set(courses_df["id"].tolist())
    orphaned = (
        set(prereqs_df["course_id"].tolist()) | set(prereqs_df["requires_id"].tolist())
    ) - catalog_ids
    if orphaned:
        print(f"[WARN] {len(orphaned)} course id(s) in prerequisites not found in courses: {sorted(orphaned)}")

    return {
        "courses_df": courses_df,
        "prereqs_df": prereqs_df,
        "catalog_ids": catalog_ids,
    }


def build_course_nodes(
    courses_df: pd.DataFrame,
    prereqs_df: pd.DataFrame,
    user_states: dict | None = None,
) -> list[dict]:
    """
    Turns plan rows into course nodes (not yet cascaded).

    - Courses without a valid level (I..V / 1..5) or plan number are left out.
    - Nodes are ordered by plan number; `column` is the position within the level.
    - Only prerequisite edges whose both ends are in the plan are kept.
    - user_states maps course id → backend state ('aprobado', 'regular', ...);
      missing entries start as available.
    """
    user_states = user_states or {}

    rows = []
    for _, row in courses_df.iterrows():
        level = parse_level(row.get("level"))
        number = _safe_int(row.get("number"))
        if level is None or not number:
            continue
        rows.append({
            "id": int(row["id"]),
            "number": number,
            "name": str(row.get("name") or "").strip(),
            "level": level,
        })
    rows.sort(key=lambda r: (r["number"], r["id"]))

    plan_ids = {r["id"] for r in rows}
    requires: dict[int, dict[str, list[int]]] = {}
    for _, edge in prereqs_df.iterrows():
        course_id = int(edge["course_id"])
        requires_id = int(edge["requires_id"])
        if course_id not in plan_ids or requires_id not in plan_ids:
            continue
        kind = _KIND_ALIASES.get(str(edge["kind"] or "").strip().lower())
        if kind is None:
            continue
        bucket = requires.setdefault(course_id, {"regularized": [], "approved": []})
        ids = bucket[kind]
        if requires_id not in ids:
            ids.append(requires_id)

    columns: dict[int, int] = {}
    nodes = []
    for r in rows:
        column = columns.get(r["level"], 0)
        columns[r["level"]] = column + 1
        reqs = requires.get(r["id"], {"regularized": [], "approved": []})
        raw_state = user_states.get(r["id"], user_states.get(str(r["id"])))
        nodes.append({
            "id": r["id"],
            "sequence_number": r["number"],
            "name": r["name"] or f"Materia {r['number']}",
            "level": r["level"],
            "column": column,
            "state": from_backend_state(raw_state),
            "requires_regularized": reqs["regularized"],
            "requires_approved": reqs["approved"],
        })
    return nodes


def load_nodes(data_path: str, user_states: dict | None = None) -> list[dict]:
    """Load a plan from disk and return its cascaded node list."""
    plan = load_plan(data_path)
    nodes = build_course_nodes(plan["courses_df"], plan["prereqs_df"], user_states)
    return recompute(nodes)
