"""
Structured logging setup.

PURPOSE:
- One call configures JSON log lines for the analytics engine, locally or on AWS.
- Every module logs through structlog.get_logger(__name__) with dotted event names
  (risk.explain.fallback, price.fetch.failed, pipeline.completed ...).

CONTEXT:
- Call configure_logging() once at process start (CLI, Lambda cold start, test session).
"""

from __future__ import annotations
import logging
import os
import sys
from typing import Optional

import structlog

SERVICE_NAME = "WealthPulse"


def configure_logging(level: Optional[str] = None):
    """
    Configure structured JSON logging for the current environment.

    parameters:
    - level: str (optional) – overrides LOG_LEVEL (default INFO).

    returns:
    - structlog.BoundLogger – logger bound with service and env.

    example log entry:
    {
      "event": "pipeline.completed",
      "level": "info",
      "timestamp": "2025-10-21T13:00:00Z",
      "service": "WealthPulse",
      "env": "dev",
      "latency_ms": 42
    }
    """
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level, logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger().bind(service=SERVICE_NAME, env=os.getenv("ENV", "dev"))
