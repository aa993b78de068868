"""certctl contract schemas and catalog access."""

from __future__ import annotations

from importlib import resources
import json
from pathlib import Path

from ...core.errors import ScriptError
from ...core.exit_codes import ERR_VALIDATION


def schemas_root() -> Path:
    """Return the packaged schema directory path."""
    return Path(str(resources.files(__package__)))


def load_catalog() -> dict[str, dict[str, object]]:
    raw = json.loads((schemas_root() / "catalog.json").read_text(encoding="utf-8"))
    return {str(row["name"]): row for row in raw.get("schemas", [])}


def schema_path_for(schema_name: str) -> Path:
    entry = load_catalog().get(schema_name)
    if entry is None:
        raise ScriptError(f"unknown schema `{schema_name}`", ERR_VALIDATION, "validation_error")
    return schemas_root() / str(entry["file"])
