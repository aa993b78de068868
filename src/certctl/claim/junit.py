"""JUnit XML projection of claim results."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Mapping
from xml.etree.ElementTree import Element, SubElement, fromstring, indent, tostring

from ..core.clock import format_iso_utc, parse_timestamp
from ..core.serialize import write_text_file

TEST_SUITE_NAME = "certctl"


def _testcase_seconds(result: Mapping[str, Any]) -> float:
    try:
        start = parse_timestamp(str(result.get("startTime", "")))
        end = parse_timestamp(str(result.get("endTime", "")))
    except ValueError:
        return float(result.get("duration", 0) or 0) / 1_000_000_000
    return max(0.0, (end - start).total_seconds())


def junit_counts(results: Mapping[str, Mapping[str, Any]]) -> dict[str, int]:
    counts = {"tests": 0, "passed": 0, "failures": 0, "errors": 0, "skipped": 0}
    for result in results.values():
        state = str(result.get("state", ""))
        counts["tests"] += 1
        if state == "passed":
            counts["passed"] += 1
        elif state == "skipped":
            counts["skipped"] += 1
        elif state == "failed":
            counts["failures"] += 1
        elif state in {"error", "aborted"}:
            counts["failures"] += 1
            counts["errors"] += 1
    return counts


def build_junit(results: Mapping[str, Mapping[str, Any]], start: datetime, end: datetime, *, timestamp: datetime | None = None) -> Element:
    counts = junit_counts(results)
    total_time = f"{max(0.0, (end - start).total_seconds()):.3f}"
    root = Element(
        "testsuites",
        tests=str(counts["tests"]),
        disabled=str(counts["skipped"]),
        errors=str(counts["errors"]),
        failures=str(counts["failures"]),
        time=total_time,
    )
    suite = SubElement(
        root,
        "testsuite",
        name=TEST_SUITE_NAME,
        package=TEST_SUITE_NAME,
        tests=str(counts["tests"]),
        disabled=str(counts["skipped"]),
        skipped=str(counts["skipped"]),
        errors=str(counts["errors"]),
        failures=str(counts["failures"]),
        time=total_time,
        timestamp=format_iso_utc(timestamp or end),
    )
    for test_id in sorted(results):
        result = results[test_id]
        state = str(result.get("state", ""))
        case = SubElement(
            suite,
            "testcase",
            name=test_id,
            classname=TEST_SUITE_NAME,
            status=state,
            time=f"{_testcase_seconds(result):.3f}",
        )
        if state == "skipped":
            reason = str(result.get("skipReason", ""))
            skipped = SubElement(case, "skipped", message=reason)
            skipped.text = reason
        elif state == "failed":
            detail = str(result.get("skipReason", "")) or str(result.get("checkDetails", ""))
            failure = SubElement(case, "failure", message=detail)
            failure.text = detail
    return root


def render_junit(root: Element) -> str:
    indent(root, space="  ")
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + tostring(root, encoding="unicode") + "\n"


def write_junit(path: Path, results: Mapping[str, Mapping[str, Any]], start: datetime, end: datetime) -> Path:
    return write_text_file(path, render_junit(build_junit(results, start, end)))


def junit_as_map(node: Element) -> dict[str, Any]:
    """Convert a JUnit element into the ``-attr``/``#content`` map stored in claim rawResults."""
    return {node.tag: _element_value(node)}


def _element_value(node: Element) -> Any:
    value: dict[str, Any] = {f"-{key}": item for key, item in sorted(node.attrib.items())}
    for child in node:
        converted = _element_value(child)
        if child.tag in value:
            existing = value[child.tag]
            if isinstance(existing, list):
                existing.append(converted)
            else:
                value[child.tag] = [existing, converted]
        else:
            value[child.tag] = converted
    text = (node.text or "").strip()
    if not value:
        return text
    if text:
        value["#content"] = text
    return value


def load_junit_xml_into_map(path: Path) -> dict[str, Any]:
    return junit_as_map(fromstring(path.read_bytes()))


__all__ = [
    "TEST_SUITE_NAME",
    "build_junit",
    "junit_as_map",
    "junit_counts",
    "load_junit_xml_into_map",
    "render_junit",
    "write_junit",
]
