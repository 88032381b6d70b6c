"""
Audit log store for WealthPulse.

PURPOSE:
- Persists compliance-relevant audit events (rebalance executions, policy overrides) to DynamoDB.
- Each record carries a TTL epoch so DynamoDB expires it after the retention period.

CONTEXT:
- Written by the pipeline after a rebalance execution. That write is best-effort: the caller
  logs a failure and still returns the execution result.
- Table layout: partition key 'user_id', sort key 'event_key' = ISO timestamp + '#' + event id.
"""

from __future__ import annotations
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from wealthpulse.model_interface.types import AuditEvent
from wealthpulse.tools import dynamodb_tool as ddb

DDB_AUDIT_TABLE = os.getenv("DDB_AUDIT_TABLE", "wealthpulse_audit")
# Number of days to retain audit records before DynamoDB expiry.
AUDIT_TTL_DAYS = int(os.getenv("AUDIT_TTL_DAYS", "365"))


def _ttl_epoch(days: int = AUDIT_TTL_DAYS, now: Optional[datetime] = None) -> int:
    """
    Unix timestamp (seconds) `days` from now, for DynamoDB TTL expiration.
    """
    now = now or datetime.now(timezone.utc)
    return int((now + timedelta(days=days)).timestamp())


class AuditLogStore:
    def __init__(self, table_name: str = DDB_AUDIT_TABLE, ttl_days: int = AUDIT_TTL_DAYS):
        self.table_name = table_name
        self.ttl_days = ttl_days

    def record(self, event: AuditEvent) -> Dict[str, Any]:
        """
        Store one audit event.

        returns:
        - dict – {"ok": True} from the DynamoDB helper.

        raises:
        - RuntimeError – if the write fails.
        """
        ts = event["timestamp"]
        item = {
            "user_id": event["userId"],
            "event_key": f"{ts.isoformat()}#{event['id']}",
            **event,
            "ttl_epoch": _ttl_epoch(self.ttl_days),
        }
        return ddb.put_item(self.table_name, item)

    def list_events(self, user_id: str) -> List[Dict[str, Any]]:
        """All stored events for a user, oldest first (timestamps come back as ISO strings)."""
        return ddb.query_partition(self.table_name, "user_id", user_id)


class InMemoryAuditLogStore(AuditLogStore):
    def __init__(self):
        super().__init__()
        self.events: List[AuditEvent] = []

    def record(self, event: AuditEvent) -> Dict[str, Any]:
        self.events.append(event)
        return {"ok": True}

    def list_events(self, user_id: str) -> List[Dict[str, Any]]:
        return [dict(e) for e in self.events if e["userId"] == user_id]
