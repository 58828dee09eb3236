"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def __init__(self, *args, service_name: str = "crediario", **kwargs):
        super().__init__(*args, **kwargs)
        self.service_name = service_name

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = self.service_name


def setup_logging(level: str = "INFO", service_name: str = "crediario") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s",
        service_name=service_name,
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Reduce noise from external libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def log_payment(
    request_id: str,
    customer_id: str,
    operation: str,
    requested_cents: int,
    applied_cents: int,
    remainder_cents: int,
    payment_ids: list[str],
    store: str,
    duration_ms: float,
    target_id: Optional[str] = None,
) -> None:
    """Log structured payment outcome for reconciliation and auditing"""
    logging.info(
        "Payment applied",
        extra={
            "request_id": request_id,
            "customer_id": customer_id,
            "step": "payment_complete",
            "operation": operation,
            "target_id": target_id,
            "requested_cents": requested_cents,
            "applied_cents": applied_cents,
            "remainder_cents": remainder_cents,
            "payment_ids": payment_ids,
            "store": store,
            "duration_ms": duration_ms,
        },
    )


def log_payment_change(
    request_id: str,
    customer_id: str,
    action: str,
    payment_id: str,
    amount_before_cents: int,
    amount_after_cents: int,
) -> None:
    """Log an edit or deletion of a recorded payment"""
    logging.info(
        f"Payment {action}",
        extra={
            "request_id": request_id,
            "customer_id": customer_id,
            "step": f"payment_{action}",
            "payment_id": payment_id,
            "amount_before_cents": amount_before_cents,
            "amount_after_cents": amount_after_cents,
        },
    )
