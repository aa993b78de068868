"""Bundled JSON schemas and validation helpers."""

from __future__ import annotations

from .validate import validate

__all__ = ["validate"]
