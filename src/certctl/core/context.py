from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal

from .env import getenv

OutputFormat = Literal["text", "json"]
LogLevel = Literal["debug", "info", "warn", "error"]


@dataclass(frozen=True)
class RunContext:
    run_id: str
    profile: str
    output_format: OutputFormat = "text"
    verbose: bool = False
    quiet: bool = False
    log_json: bool = False
    log_level: LogLevel = "info"

    @classmethod
    def from_args(
        cls,
        run_id: str | None,
        profile: str | None,
        output_format: OutputFormat = "text",
        verbose: bool = False,
        quiet: bool = False,
        log_json: bool = False,
    ) -> "RunContext":
        default_run = f"certctl-{datetime.now(timezone.utc).strftime('%Y%m%d-%H%M%S')}"
        resolved_run_id = run_id or getenv("RUN_ID", default_run) or default_run
        resolved_profile = profile or getenv("PROFILE", "local") or "local"
        level: LogLevel = "debug" if verbose else ("error" if quiet else "info")
        return cls(
            run_id=resolved_run_id,
            profile=resolved_profile,
            output_format=output_format,
            verbose=verbose,
            quiet=quiet,
            log_json=log_json or getenv("CERTCTL_LOG_JSON", "") == "1",
            log_level=level,
        )

    @classmethod
    def quiet_default(cls) -> "RunContext":
        return cls(run_id="local", profile="local", quiet=True, log_level="error")
