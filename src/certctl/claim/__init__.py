"""Claim document model, reconciliation and report projections."""

from __future__ import annotations

from .builder import ClaimBuilder, read_claim, write_claim
from .model import CLAIM_FORMAT_VERSION, CatalogInfo, Result, Versions
from .reconcile import get_reconciled_results
from .sanitize import sanitize_claim

__all__ = [
    "CLAIM_FORMAT_VERSION",
    "CatalogInfo",
    "ClaimBuilder",
    "Result",
    "Versions",
    "get_reconciled_results",
    "read_claim",
    "sanitize_claim",
    "write_claim",
]
