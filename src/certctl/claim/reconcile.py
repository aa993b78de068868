from __future__ import annotations

from ..checks.catalog import Catalog, Identifier
from ..checks.check import Check
from ..checks.engine import RunState
from ..checks.model import CheckStatus
from .model import CatalogInfo, Result

_ANNOTATED_STATES = {CheckStatus.FAILED, CheckStatus.ERROR, CheckStatus.SKIPPED}


def _identifier_for(check: Check, catalog: Catalog) -> Identifier:
    entry = catalog.get(check.id)
    if entry is not None:
        return entry.identifier
    tags = [label for label in check.labels if label not in {check.id, check.group_name}]
    return Identifier(id=check.id, suite=check.group_name, tags=",".join(tags))


def reconcile_check(check: Check, catalog: Catalog) -> Result:
    entry = catalog.get(check.id)
    info = CatalogInfo()
    classification: dict[str, str] = {}
    if entry is not None:
        info = CatalogInfo(
            description=entry.description,
            remediation=entry.remediation,
            best_practice_reference=entry.best_practice_reference,
            exception_process=entry.exception_process,
        )
        classification = dict(entry.category_classification)
    reason = check.skip_reason
    if check.abort_reason and check.status in _ANNOTATED_STATES:
        reason = check.abort_reason
    return Result(
        test_id=_identifier_for(check, catalog),
        state=check.status.value,
        start_time=check.start_timestamp,
        end_time=check.end_timestamp,
        duration=check.duration_ns,
        skip_reason=reason,
        check_details=check.details,
        failure_location=check.failure_location,
        failure_line_content=check.failure_line_content,
        captured_test_output=check.get_logs(),
        catalog_info=info,
        category_classification=classification,
    )


def get_reconciled_results(run: RunState, catalog: Catalog) -> dict[str, Result]:
    """One Result per recorded check, in execution order; catalog data is copied, not referenced."""
    return {check.id: reconcile_check(check, catalog) for check in run.checks}


__all__ = ["get_reconciled_results", "reconcile_check"]
