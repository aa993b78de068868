"""CLI payload output helpers."""

from __future__ import annotations

from typing import Any

from ..core.context import RunContext
from ..core.serialize import dumps_json


def emit(payload: dict[str, object], as_json: bool) -> None:
    print(dumps_json(payload, pretty=not as_json))


def build_base_payload(ctx: RunContext, status: str = "ok") -> dict[str, Any]:
    return {
        "schema_version": 1,
        "tool": "certctl",
        "status": status,
        "run_id": ctx.run_id,
        "profile": ctx.profile,
    }


def render_error(*, as_json: bool, message: str, code: int, kind: str = "generic_error", run_id: str = "") -> str:
    if as_json:
        return dumps_json(
            {
                "schema_name": "certctl.error.v1",
                "schema_version": 1,
                "tool": "certctl",
                "status": "error",
                "run_id": run_id,
                "errors": [{"code": code, "kind": kind, "message": message}],
            },
            pretty=False,
        )
    return message
