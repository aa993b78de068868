"""Checks on the host running certctl itself."""

from __future__ import annotations

import os
import sys
import tempfile

from ..checks.catalog import MANDATORY, OPTIONAL, TAG_COMMON, TAG_EXTENDED, Catalog, get_test_id_and_labels
from ..checks.check import Check
from ..checks.model import ReportObject
from ..checks.registry import ChecksDB

SUITE = "platform"
MIN_PYTHON = (3, 10)


def _python_version(check: Check, _run: object) -> None:
    found = ".".join(str(part) for part in sys.version_info[:3])
    check.log_info("interpreter %s", found)
    obj = ReportObject.new(
        f"python {found} is {'supported' if sys.version_info[:2] >= MIN_PYTHON else 'too old'}",
        "Interpreter",
        sys.version_info[:2] >= MIN_PYTHON,
    ).add_field("Version", found)
    if obj.compliant:
        check.set_result([obj], [])
    else:
        check.set_result([], [obj])


def _tempdir_writable(check: Check, _run: object) -> None:
    root = tempfile.gettempdir()
    with tempfile.NamedTemporaryFile(dir=root) as handle:
        handle.write(b"certctl")
    check.set_result([ReportObject.new("temporary directory is writable", "Directory", True).add_field("Path", root)], [])


def _utc_timezone(check: Check, _run: object) -> None:
    tz = os.environ.get("TZ", "")
    compliant = tz in {"", "UTC", "Etc/UTC"}
    obj = ReportObject.new("TZ is UTC" if compliant else "TZ is not UTC", "Environment", compliant).add_field("TZ", tz or "<unset>")
    check.set_result([obj] if compliant else [], [] if compliant else [obj])


def _tz_unset() -> tuple[bool, str]:
    return "TZ" not in os.environ, "TZ is not set"


def load_checks(db: ChecksDB, catalog: Catalog) -> None:
    group = db.new_checks_group(SUITE)
    python_id = catalog.add_entry(
        "platform-python-version",
        SUITE,
        "Verifies that the interpreter running the checks is supported.",
        f"Run certctl with Python {MIN_PYTHON[0]}.{MIN_PYTHON[1]} or newer.",
        classification={"Extended": MANDATORY, "FarEdge": MANDATORY, "NonTelco": MANDATORY, "Telco": MANDATORY},
        tags=[TAG_COMMON],
    )
    tmp_id = catalog.add_entry(
        "platform-tempdir-writable",
        SUITE,
        "Verifies that the temporary directory accepts writes.",
        "Point TMPDIR at a writable directory.",
        tags=[TAG_COMMON],
    )
    tz_id = catalog.add_entry(
        "platform-utc-timezone",
        SUITE,
        "Verifies that the TZ environment variable, when set, selects UTC.",
        "Unset TZ or set it to UTC.",
        classification={"Extended": OPTIONAL},
        tags=[TAG_EXTENDED],
    )
    for identifier, fn in ((python_id, _python_version), (tmp_id, _tempdir_writable)):
        check_id, labels = get_test_id_and_labels(identifier)
        group.add(Check(check_id, labels).with_check_fn(fn))
    check_id, labels = get_test_id_and_labels(tz_id)
    group.add(Check(check_id, labels).with_skip_check_fn(_tz_unset).with_check_fn(_utc_timezone))
