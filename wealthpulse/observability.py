"""
Optional AWS X-Ray tracing.

PURPOSE:
- init_observability() turns on X-Ray (and patches boto3/requests) when USE_XRAY=1.
- xray_segment wraps a block in a subsegment; the pipeline uses it around each run.

CONTEXT:
- Tracing is optional: with USE_XRAY unset, or the SDK missing, both are no-ops and the
  wrapped code runs unchanged.
"""
from __future__ import annotations
import os

import structlog

log = structlog.get_logger(__name__)

XRAY_SERVICE_NAME = os.getenv("XRAY_SERVICE_NAME", "WealthPulse")


def xray_enabled() -> bool:
    return os.getenv("USE_XRAY", "0") == "1"


def init_observability():
    """
    Configure the X-Ray recorder when enabled.

    returns:
    - xray_recorder when configured, else None.
    """
    if not xray_enabled():
        return None
    try:
        from aws_xray_sdk.core import xray_recorder, patch_all
        xray_recorder.configure(service=XRAY_SERVICE_NAME)
        patch_all()
        return xray_recorder
    except Exception as e:
        log.warning("xray.init.failed", error=f"{type(e).__name__}: {e}")
        return None


class xray_segment:
    """
    Context manager for a manual subsegment.

    >>> with xray_segment("run_pipeline"):
    ...     result = await run_pipeline(payload)

    Does nothing unless USE_XRAY=1. Errors inside the wrapped block propagate; only
    tracing failures are suppressed.
    """

    def __init__(self, name: str):
        self.name = name
        self.sub = None

    def __enter__(self):
        if not xray_enabled():
            return self
        try:
            from aws_xray_sdk.core import xray_recorder
            self.sub = xray_recorder.begin_subsegment(self.name)
        except Exception:
            self.sub = None
        return self

    def __exit__(self, exc_type, exc, tb):
        if self.sub is None:
            return False
        try:
            from aws_xray_sdk.core import xray_recorder
            if exc is not None:
                self.sub.add_exception(exc, [])
            xray_recorder.end_subsegment()
        except Exception as e:
            log.debug("xray.segment.close_failed", segment=self.name, error=str(e))
        return False
