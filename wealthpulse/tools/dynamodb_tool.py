# PURPOSE: Helper functions to interact with DynamoDB for transactions and audit events.
# CONTEXT: Used by the transaction repository and the audit log store. Tables are resolved per
#          call so region/credentials from the environment (or a moto mock) apply at call time.

from __future__ import annotations
import json
import os
from decimal import Decimal
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

_REGION = os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION") or "eu-west-2"


def table(name: str, region: Optional[str] = None) -> Any:
    """boto3 Table resource for `name`."""
    return boto3.resource("dynamodb", region_name=region or _REGION).Table(name)


def to_item(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Make a dict storable: floats become Decimal, datetimes become ISO strings.

    notes:
    - DynamoDB rejects Python floats, so the value goes through JSON with parse_float=Decimal.
    """
    return json.loads(json.dumps(data, default=_json_default), parse_float=Decimal)


def from_item(item: Dict[str, Any]) -> Dict[str, Any]:
    """Inverse of to_item for numbers: Decimal back to int or float."""
    return json.loads(json.dumps(item, default=_json_default))


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def put_item(table_name: str, item: Dict[str, Any]) -> Dict[str, Any]:
    """
    Insert or replace a full record.

    returns:
    - dict – {"ok": True} on success.

    raises:
    - RuntimeError – if DynamoDB put_item fails.
    """
    try:
        table(table_name).put_item(Item=to_item(item))
        return {"ok": True}
    except ClientError as e:
        raise RuntimeError(f"DDB put_item failed: {e.response['Error']['Message']}")


def batch_put(table_name: str, items: List[Dict[str, Any]]) -> int:
    """Write many records through a batch writer; returns how many were written."""
    try:
        with table(table_name).batch_writer() as batch:
            for item in items:
                batch.put_item(Item=to_item(item))
        return len(items)
    except ClientError as e:
        raise RuntimeError(f"DDB batch_write failed: {e.response['Error']['Message']}")


def query_partition(
    table_name: str,
    pk_name: str,
    pk_value: str,
    sk_name: Optional[str] = None,
    sk_from: Optional[str] = None,
    sk_to: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    All items of one partition, optionally restricted to a sort-key range, following pagination.

    raises:
    - RuntimeError – if the query fails (wraps boto3 ClientError).
    """
    cond = Key(pk_name).eq(pk_value)
    if sk_name and sk_from and sk_to:
        cond = cond & Key(sk_name).between(sk_from, sk_to)
    elif sk_name and sk_from:
        cond = cond & Key(sk_name).gte(sk_from)
    elif sk_name and sk_to:
        cond = cond & Key(sk_name).lte(sk_to)

    items: List[Dict[str, Any]] = []
    kwargs: Dict[str, Any] = {"KeyConditionExpression": cond}
    try:
        t = table(table_name)
        while True:
            res = t.query(**kwargs)
            items.extend(from_item(i) for i in res.get("Items", []))
            if "LastEvaluatedKey" not in res:
                return items
            kwargs["ExclusiveStartKey"] = res["LastEvaluatedKey"]
    except ClientError as e:
        raise RuntimeError(f"DDB query failed: {e.response['Error']['Message']}")
