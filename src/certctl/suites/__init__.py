"""Suite loading: every suite module exposes ``load_checks(db, catalog)``."""

from __future__ import annotations

import importlib
from typing import Iterable

from ..checks.catalog import Catalog
from ..checks.registry import ChecksDB
from ..core.context import RunContext
from ..core.errors import ConfigError
from ..core.logging import log_event

BUILTIN_SUITES = ("certctl.suites.platform",)


def load_suites(db: ChecksDB, catalog: Catalog, modules: Iterable[str], ctx: RunContext | None = None) -> ChecksDB:
    ctx = ctx or RunContext.quiet_default()
    for module_name in modules:
        try:
            module = importlib.import_module(module_name)
        except ImportError as exc:
            raise ConfigError(f"cannot import suite module `{module_name}`: {exc}") from exc
        loader = getattr(module, "load_checks", None)
        if not callable(loader):
            raise ConfigError(f"suite module `{module_name}` has no load_checks(db, catalog) function")
        before = len(db)
        loader(db, catalog)
        log_event(ctx, "debug", "suites", "load", module=module_name, checks=len(db) - before)
    return db


__all__ = ["BUILTIN_SUITES", "load_suites"]
