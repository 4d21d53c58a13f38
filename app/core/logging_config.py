"""
Structured Logging Configuration
HealthMate API

LOG_FORMAT=json emits one JSON object per line, including any ``extra``
fields passed to the logger; anything else gives a plain pipe-separated line.
"""

import json
import logging
import sys
from datetime import datetime, timezone

from app.core.config import settings

# Attributes every LogRecord carries; anything else came in through `extra`
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

_NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx", "botocore", "google_genai")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, value) for key, value in vars(record).items() if key not in _RECORD_ATTRS
        )
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


def configure_logging() -> None:
    """Configure application-wide logging."""
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    if settings.log_format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(name)s | %(levelname)s | %(message)s")
        )

    # Root logger
    logging.basicConfig(level=log_level, handlers=[handler])

    # Quieten noisy libraries
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class RequestLogger:
    """Structured log lines for HTTP requests and outbound adapter calls."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def log_request(self, request_id: str, method: str, path: str, status: int,
                    duration_ms: float, client: str) -> None:
        level = logging.WARNING if status >= 400 else logging.INFO
        self.logger.log(
            level,
            "[%s] %s %s → %d (%.1fms) client=%s",
            request_id, method, path, status, duration_ms, client,
            extra={
                "request_id": request_id,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client": client,
            },
        )

    def log_ai_call(self, model: str, report_type: str, payload_bytes: int,
                    duration_ms: float, kind: str) -> None:
        self.logger.info(
            "AI API Call",
            extra={
                "model": model,
                "report_type": report_type,
                "payload_bytes": payload_bytes,
                "duration_ms": round(duration_ms, 2),
                "result_kind": kind,
            },
        )

    def log_storage_call(self, operation: str, key: str, duration_ms: float) -> None:
        self.logger.info(
            "Storage Call",
            extra={
                "operation": operation,
                "key": key,
                "duration_ms": round(duration_ms, 2),
            },
        )
