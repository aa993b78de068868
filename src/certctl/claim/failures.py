"""Failed-check view of a claim: which objects made each check fail."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from ..checks.model import report_objects_from_string


def failed_results(root: Mapping[str, Any], suites: Iterable[str] = ()) -> list[dict[str, Any]]:
    wanted = {suite.strip() for suite in suites if suite.strip()}
    rows: list[dict[str, Any]] = []
    results = root["claim"].get("results") or {}
    for test_id in sorted(results):
        result = results[test_id]
        suite = str((result.get("testID") or {}).get("suite", ""))
        if wanted and suite not in wanted:
            continue
        if result.get("state") != "failed":
            continue
        try:
            _, non_compliant = report_objects_from_string(str(result.get("checkDetails", "")))
        except ValueError:
            non_compliant = []
        rows.append(
            {
                "id": test_id,
                "suite": suite,
                "reason": str(result.get("skipReason", "")),
                "description": str((result.get("catalogInfo") or {}).get("description", "")),
                "non_compliant_objects": [
                    {"type": obj.object_type, "fields": dict(zip(obj.fields_keys, obj.fields_values))} for obj in non_compliant
                ],
            }
        )
    return rows


def render_failures_text(rows: list[dict[str, Any]]) -> str:
    if not rows:
        return "no failed checks"
    lines: list[str] = []
    for row in rows:
        lines.append(f"{row['suite']}/{row['id']}: {row['description'] or row['reason']}")
        if row["reason"]:
            lines.append(f"  reason: {row['reason']}")
        for obj in row["non_compliant_objects"]:
            fields = ", ".join(f"{key}={value}" for key, value in obj["fields"].items())
            lines.append(f"  - {obj['type']}: {fields}")
    return "\n".join(lines)


__all__ = ["failed_results", "render_failures_text"]
