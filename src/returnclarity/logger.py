"""Structured JSON logger for per-context pipeline tracking."""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from returnclarity.constants import ERROR_TRUNCATION_CHARS
from returnclarity.logging_config import LOG_DATEFMT, LOG_FORMAT

__all__ = ["RunLogger", "LOG_FORMAT", "LOG_DATEFMT"]


class RunLogger:
    """Structured JSON logger with context_id correlation."""

    def __init__(self, log_dir: Path, level: str = "INFO") -> None:
        self._log_dir = log_dir
        self._log_dir.mkdir(parents=True, exist_ok=True)
        self._logger = logging.getLogger("returnclarity.runs")
        self._logger.setLevel(getattr(logging, level.upper()))
        self._logger.propagate = False

        if not self._logger.handlers:
            handler = logging.FileHandler(log_dir / "runs.log")
            handler.setFormatter(logging.Formatter("%(message)s"))
            self._logger.addHandler(handler)

    def log_transition(
        self,
        context_id: str,
        status: str,
        domain: str | None = None,
        from_cache: bool = False,
    ) -> None:
        self._logger.info(
            json.dumps({
                "type": "transition",
                "timestamp": datetime.now(UTC).isoformat(),
                "context_id": context_id,
                "status": status,
                "domain": domain,
                "from_cache": from_cache,
            })
        )

    def log_probe(
        self,
        context_id: str,
        url: str,
        quality: int | None,
        duration_ms: float,
        error: str | None = None,
    ) -> None:
        self._logger.info(
            json.dumps({
                "type": "probe",
                "timestamp": datetime.now(UTC).isoformat(),
                "context_id": context_id,
                "url": url,
                "quality": quality,
                "duration_ms": duration_ms,
                "error": error[:ERROR_TRUNCATION_CHARS] if error else None,
            })
        )

    def log_error(
        self,
        context_id: str,
        component: str,
        error: str,
    ) -> None:
        self._logger.error(
            json.dumps({
                "type": "error",
                "timestamp": datetime.now(UTC).isoformat(),
                "context_id": context_id,
                "component": component,
                "error": error[:ERROR_TRUNCATION_CHARS],
            })
        )
