"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List
from pythonjsonlogger import jsonlogger

from budgetly.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_ledger_write(
    request_id: str,
    uid: str,
    operation: str,
    months: List[str],
    duration_ms: float,
) -> None:
    """Log which months a ledger mutation touched"""
    logging.info(
        "Ledger updated",
        extra={
            "request_id": request_id,
            "uid": uid,
            "step": "ledger_write",
            "operation": operation,
            "months": months,
            "month_count": len(months),
            "duration_ms": duration_ms,
        },
    )


def log_suggestion(
    request_id: str,
    uid: str,
    classification: str,
    advisor_used: bool,
    duration_ms: float,
) -> None:
    """Log structured purchase advice outcome"""
    logging.info(
        "Suggestion completed",
        extra={
            "request_id": request_id,
            "uid": uid,
            "step": "suggestion_complete",
            "classification": classification,
            "advisor_used": advisor_used,
            "duration_ms": duration_ms,
        },
    )
