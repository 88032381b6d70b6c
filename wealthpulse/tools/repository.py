"""
Transaction repositories.

PURPOSE:
- Storage behind the TransactionRepository interface, so the analytics never know where
  transactions come from.
- InMemoryTransactionRepository for local runs and tests; DynamoTransactionRepository for AWS.

CONTEXT:
- DynamoDB layout: partition key 'user_id', sort key 'txn_key' = ISO date + '#' + transaction id,
  so a date range is a sort-key range query.
"""

from __future__ import annotations
import os
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from wealthpulse.model_interface.collaborators import TransactionRepository
from wealthpulse.model_interface.records import Transaction
from wealthpulse.tools import dynamodb_tool as ddb
from wealthpulse.utils.clock import align

DDB_TRANSACTIONS_TABLE = os.getenv("DDB_TRANSACTIONS_TABLE", "wealthpulse_transactions")


def txn_key(txn: Transaction) -> str:
    return f"{txn.date.isoformat()}#{txn.id}"


def _in_range(txn: Transaction, start: Optional[datetime], end: Optional[datetime]) -> bool:
    if start is not None and align(txn.date, start) < start:
        return False
    if end is not None and align(txn.date, end) > end:
        return False
    return True


class InMemoryTransactionRepository(TransactionRepository):
    def __init__(self, transactions: Optional[Dict[str, List[Transaction]]] = None):
        self._data: Dict[str, List[Transaction]] = {k: list(v) for k, v in (transactions or {}).items()}

    def fetch(self, user_id: str, start: Optional[datetime] = None,
              end: Optional[datetime] = None) -> List[Transaction]:
        rows = [t for t in self._data.get(user_id, []) if _in_range(t, start, end)]
        return sorted(rows, key=lambda t: t.date)

    def add(self, user_id: str, transactions: Iterable[Transaction]) -> int:
        rows = list(transactions)
        self._data.setdefault(user_id, []).extend(rows)
        return len(rows)


class DynamoTransactionRepository(TransactionRepository):
    """
    Transactions stored one item per transaction.

    notes:
    - Range filtering relies on ISO strings sorting chronologically, so stored and queried
      dates should share one timezone flavour (all naive or all UTC).
    """

    def __init__(self, table_name: str = DDB_TRANSACTIONS_TABLE):
        self.table_name = table_name

    def fetch(self, user_id: str, start: Optional[datetime] = None,
              end: Optional[datetime] = None) -> List[Transaction]:
        items = ddb.query_partition(
            self.table_name, "user_id", user_id,
            sk_name="txn_key",
            sk_from=start.isoformat() if start else None,
            # '~' sorts after '#', so every id on the end date is included.
            sk_to=f"{end.isoformat()}~" if end else None,
        )
        txns = [Transaction(**{k: v for k, v in i.items() if k not in ("user_id", "txn_key")}) for i in items]
        return [t for t in txns if _in_range(t, start, end)]

    def add(self, user_id: str, transactions: Iterable[Transaction]) -> int:
        items = [
            {"user_id": user_id, "txn_key": txn_key(t), **t.model_dump(mode="json", exclude_none=True)}
            for t in transactions
        ]
        return ddb.batch_put(self.table_name, items)
