"""
AWS Lambda handler: parses the request, runs the analysis pipeline, returns a JSON body.

PURPOSE:
- Entry point for Lambda behind API Gateway.
- Wires the production collaborators (DynamoDB transactions and audit log, Bedrock
  explainer, HTTP price source, paper executor) into run_pipeline.

CONTEXT:
- Logging carries request_id and correlation_id so one run can be followed in CloudWatch.
- Errors come back as {"status": "error", "message": ...} with HTTP 200, so API Gateway
  does not retry a request that can never succeed.
"""

from __future__ import annotations
import asyncio
import json
import time
import uuid
from typing import Any, Dict

import structlog
from jsonschema import ValidationError
from pydantic import ValidationError as RecordValidationError

from wealthpulse.engine_io import error_to_string
from wealthpulse.logging_setup import configure_logging
from wealthpulse.model_interface.loader import load_explainer
from wealthpulse.observability import init_observability
from wealthpulse.pipeline import run_pipeline
from wealthpulse.tools.audit_log import AuditLogStore
from wealthpulse.tools.executor import PaperTradeExecutor
from wealthpulse.tools.price_source import HttpPriceSource, PriceCache
from wealthpulse.tools.repository import DynamoTransactionRepository

log = configure_logging()
init_observability()

# Survives between invocations on a warm container; run_pipeline hands back the refreshed copy.
_price_cache: PriceCache = {}


def _response(body: Dict[str, Any], status_code: int = 200) -> Dict[str, Any]:
    """API Gateway compatible wrapper."""
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }


def collaborators() -> Dict[str, Any]:
    """Production collaborator set for run_pipeline keyword arguments."""
    return {
        "repository": DynamoTransactionRepository(),
        "explainer": load_explainer(),
        "price_source": HttpPriceSource(),
        "executor": PaperTradeExecutor(),
        "audit_store": AuditLogStore(),
    }


def handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    """
    Lambda entry point.

    flow:
    1) Bind request/correlation IDs.
    2) Normalise body (API Gateway proxy events carry it as a JSON string).
    3) Run the pipeline with production collaborators and the container's price cache.
    4) Invalid requests -> status 'error' with the failing JSON path; anything else
       unexpected -> status 'error' with the exception type, logged with traceback.
    """
    global _price_cache
    t0 = time.time()
    request_id = getattr(context, "aws_request_id", None) or str(uuid.uuid4())
    correlation_id = (event.get("headers", {}) or {}).get("x-correlation-id") or str(uuid.uuid4())
    # request ids land on every log line for this invocation
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, correlation_id=correlation_id)
    log.info("request.received")

    body = event
    if "body" in event:
        try:
            body = json.loads(event["body"]) if isinstance(event["body"], str) else (event["body"] or {})
        except json.JSONDecodeError:
            body = {}
            log.warning("request.body_parse_failed")

    try:
        result, _price_cache = asyncio.run(run_pipeline(body, price_cache=_price_cache, **collaborators()))
    except (ValidationError, RecordValidationError) as e:
        latency_ms = round((time.time() - t0) * 1000, 1)
        log.info("request.invalid", error=error_to_string(e), latency_ms=latency_ms)
        return _response({"status": "error", "message": error_to_string(e), "latency_ms": latency_ms})
    except Exception as e:
        latency_ms = round((time.time() - t0) * 1000, 1)
        log.error("response.error", error=str(e), latency_ms=latency_ms, exc_info=True)
        return _response({"status": "error", "message": f"{type(e).__name__}: {e}", "latency_ms": latency_ms})

    log.info("response.success", latency_ms=round((time.time() - t0) * 1000, 1), run_id=result["runId"])
    return _response({"status": "ok", **result})
