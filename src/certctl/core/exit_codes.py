from __future__ import annotations

OK = 0
ERR_CHECKS_FAILED = 1
ERR_USAGE = 2
ERR_CONFIG = 10
ERR_VALIDATION = 12
ERR_TIMEOUT = 14
ERR_INTERNAL = 99

__all__ = [
    "OK",
    "ERR_CHECKS_FAILED",
    "ERR_USAGE",
    "ERR_CONFIG",
    "ERR_VALIDATION",
    "ERR_TIMEOUT",
    "ERR_INTERNAL",
]
