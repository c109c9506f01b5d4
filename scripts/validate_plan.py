"""
Publish gate validator for study plans.

Checks data-quality rules that must pass before a plan is loaded into the
simulator. Designed to be importable for tests and runnable as a
standalone CLI.

Usage:
    python scripts/validate_plan.py
    python scripts/validate_plan.py --path path/to/plan_dir
    python scripts/validate_plan.py --path path/to/plan.xlsx
"""

import argparse
import os
import sys

try:
    import pandas as pd
except ImportError as e:
    sys.exit(f"Missing dependency: {e}. Run: pip install pandas")

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "backend"))
from cascade import compute_chain_depths  # noqa: E402
from data_loader import load_plan, parse_level  # noqa: E402

# Cascade pass budget the mobile client was built around.
LEGACY_PASS_BUDGET = 3


# ── Validation result ─────────────────────────────────────────────────────────

class ValidationResult:
    """Collects errors and warnings for a single plan validation run."""

    def __init__(self, plan_label: str):
        self.plan_label = plan_label
        self.errors: list[str] = []
        self.warnings: list[str] = []

    def error(self, msg: str) -> None:
        self.errors.append(msg)

    def warn(self, msg: str) -> None:
        self.warnings.append(msg)

    @property
    def passed(self) -> bool:
        return len(self.errors) == 0

    def summary(self) -> str:
        status = "PASS" if self.passed else "FAIL"
        lines = [f"[{status}] Plan '{self.plan_label}'"]
        for e in self.errors:
            lines.append(f"  [ERROR] {e}")
        for w in self.warnings:
            lines.append(f"  [WARN]  {w}")
        if self.passed and not self.warnings:
            lines.append("  All checks passed.")
        return "\n".join(lines)


def _requires_map(prereqs_df: pd.DataFrame) -> dict[int, list[int]]:
    requires: dict[int, list[int]] = {}
    for _, row in prereqs_df.iterrows():
        requires.setdefault(int(row["course_id"]), [])
        if int(row["requires_id"]) not in requires[int(row["course_id"])]:
            requires[int(row["course_id"])].append(int(row["requires_id"]))
    return requires


# ── Individual checks ─────────────────────────────────────────────────────────

def check_unique_ids(courses_df: pd.DataFrame, result: ValidationResult) -> None:
    """Course ids must be unique within a plan."""
    dupes = courses_df["id"][courses_df["id"].duplicated()].tolist()
    if dupes:
        result.error(f"Duplicate course id(s): {sorted(set(int(d) for d in dupes))}")


def check_levels(courses_df: pd.DataFrame, result: ValidationResult) -> None:
    """Every course needs a level I..V (or 1..5); others are dropped by the loader."""
    for _, row in courses_df.iterrows():
        if parse_level(row.get("level")) is None:
            result.error(
                f"Course {int(row['id'])} has invalid level '{row.get('level')}' "
                "and would be left out of the simulator."
            )


def check_edge_references(
    courses_df: pd.DataFrame,
    prereqs_df: pd.DataFrame,
    result: ValidationResult,
) -> None:
    """Both ends of every prerequisite must be courses of the plan."""
    catalog_ids = set(int(i) for i in courses_df["id"].tolist())
    for _, row in prereqs_df.iterrows():
        course_id = int(row["course_id"])
        requires_id = int(row["requires_id"])
        if course_id not in catalog_ids:
            result.error(f"Prerequisite row references unknown course {course_id}.")
        elif requires_id not in catalog_ids:
            result.error(f"Course {course_id} requires unknown course {requires_id}.")
        elif course_id == requires_id:
            result.warn(f"Course {course_id} lists itself as a prerequisite.")


def check_level_one_prereqs(
    courses_df: pd.DataFrame,
    prereqs_df: pd.DataFrame,
    result: ValidationResult,
) -> None:
    """First-year courses are never blocked, so their prerequisites are ignored."""
    level_one = set(
        int(row["id"]) for _, row in courses_df.iterrows() if parse_level(row.get("level")) == 1
    )
    flagged = sorted(set(int(c) for c in prereqs_df["course_id"].tolist()) & level_one)
    if flagged:
        result.warn(
            f"Level 1 course(s) {flagged} have prerequisites; "
            "the simulator never blocks level 1 courses."
        )


def find_cycle(requires: dict[int, list[int]]) -> list[int] | None:
    """Return one prerequisite cycle as a list of ids (first id repeated at the end), or None."""
    done: set[int] = set()
    for root in requires:
        if root in done:
            continue
        path = [root]
        on_path = {root}
        stack = [iter(requires.get(root, []))]
        while stack:
            for req in stack[-1]:
                if req == path[-1]:
                    continue  # reported by check_edge_references
                if req in on_path:
                    return path[path.index(req):] + [req]
                if req not in done:
                    path.append(req)
                    on_path.add(req)
                    stack.append(iter(requires.get(req, [])))
                    break
            else:
                stack.pop()
                done.add(path[-1])
                on_path.discard(path.pop())
    return None


def check_no_cycles(prereqs_df: pd.DataFrame, result: ValidationResult) -> None:
    cycle = find_cycle(_requires_map(prereqs_df))
    if cycle:
        result.error(f"Prerequisite cycle: {' -> '.join(str(c) for c in cycle)}")


def longest_chain(requires: dict[int, list[int]]) -> int:
    """Number of edges on the longest prerequisite chain (cycle-guarded)."""
    dependents: dict[int, list[int]] = {}
    for course_id, reqs in requires.items():
        for req in reqs:
            if req != course_id:
                dependents.setdefault(req, []).append(course_id)
    return max(compute_chain_depths(dependents).values(), default=0)


def check_chain_depth(prereqs_df: pd.DataFrame, result: ValidationResult) -> None:
    """Plans deeper than the old fixed pass budget only cascade correctly on current builds."""
    depth = longest_chain(_requires_map(prereqs_df))
    if depth > LEGACY_PASS_BUDGET:
        result.warn(
            f"Longest prerequisite chain is {depth} courses deep; "
            f"clients with a fixed {LEGACY_PASS_BUDGET}-pass cascade may show stale locks."
        )


# ── Orchestrator ──────────────────────────────────────────────────────────────

def validate_plan(
    courses_df: pd.DataFrame,
    prereqs_df: pd.DataFrame | None,
    plan_label: str = "plan",
) -> ValidationResult:
    """Run every check and return the collected result."""
    result = ValidationResult(plan_label)
    if courses_df is None or len(courses_df) == 0:
        result.error("Plan has no courses.")
        return result
    if prereqs_df is None:
        prereqs_df = pd.DataFrame(columns=["course_id", "requires_id", "kind"])

    check_unique_ids(courses_df, result)
    check_levels(courses_df, result)
    check_edge_references(courses_df, prereqs_df, result)
    check_level_one_prereqs(courses_df, prereqs_df, result)
    check_no_cycles(prereqs_df, result)
    check_chain_depth(prereqs_df, result)
    return result


# ── CLI entry point ───────────────────────────────────────────────────────────

def main(args=None):
    parser = argparse.ArgumentParser(
        description="Validate study plan data before loading it into the simulator.",
    )
    parser.add_argument(
        "--path", type=str,
        default=os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "data"),
        help="Plan directory (courses.csv + prerequisites.csv) or .xlsx workbook.",
    )
    opts = parser.parse_args(args)

    try:
        plan = load_plan(opts.path)
    except (FileNotFoundError, ValueError) as exc:
        print(f"[FATAL] Could not load plan from {opts.path}: {exc}", file=sys.stderr)
        return 1

    result = validate_plan(plan["courses_df"], plan["prereqs_df"], os.path.basename(os.path.normpath(opts.path)))
    print(result.summary())
    return 0 if result.passed else 1


if __name__ == "__main__":
    sys.exit(main())
