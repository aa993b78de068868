from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Mapping

from ..checks.catalog import Identifier, get_test_id_and_labels
from ..checks.engine import expand_labels_filter
from ..checks.labels import compile_labels_expr
from .builder import claim_times, raw_results_for, read_claim, write_claim


def sanitize_claim(root: Mapping[str, Any], labels_filter: str) -> dict[str, Any]:
    """Drop results whose labels no longer match ``labels_filter`` and rebuild rawResults.

    Labels are recomputed from each result's ``testID`` exactly as at registration
    time, so sanitizing with the run's own filter changes nothing.
    """
    evaluator = compile_labels_expr(expand_labels_filter(labels_filter))
    sanitized = copy.deepcopy(dict(root))
    claim = sanitized["claim"]
    results = claim.get("results") or {}
    for test_id in list(results):
        _, labels = get_test_id_and_labels(Identifier.from_dict(results[test_id].get("testID") or {}))
        if not evaluator.eval(labels):
            del results[test_id]
    claim["results"] = results
    start, end = claim_times(sanitized)
    claim["rawResults"] = raw_results_for(results, start, end)
    return sanitized


def sanitize_claim_file(path: Path, labels_filter: str, out_path: Path | None = None) -> Path:
    target = out_path or path
    write_claim(target, sanitize_claim(read_claim(path), labels_filter))
    return target


__all__ = ["sanitize_claim", "sanitize_claim_file"]
