"""Check registration, selection and execution."""

from __future__ import annotations

from .check import Check
from .group import ChecksGroup
from .labels import LabelsExprEvaluator, compile_labels_expr
from .model import CheckStatus, ReportObject, SkipMode
from .registry import ChecksDB

__all__ = [
    "Check",
    "CheckStatus",
    "ChecksDB",
    "ChecksGroup",
    "LabelsExprEvaluator",
    "ReportObject",
    "SkipMode",
    "compile_labels_expr",
]
