__version__ = "0.1.0"

__all__ = [
    "__version__",
    "checks",
    "claim",
    "cli",
    "config",
    "contracts",
    "core",
    "suites",
]
