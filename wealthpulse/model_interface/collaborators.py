from __future__ import annotations
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from .records import TargetAllocation, Transaction
from .types import Allocation, RebalanceAdvice, Risk, TradeInstruction, Trend


class Explainer:
    """Turns a risk score into one or two sentences of narrative."""

    def explain(self, score: int, profile: Risk, volatility: float, trend: Trend) -> str:
        raise NotImplementedError


class Classifier:
    """Maps a raw description + amount to a transaction category and type."""

    def classify(self, description: str, amount: float) -> Dict[str, str]:
        raise NotImplementedError


class RebalanceAdvisor:
    """Plain-language rebalance advice for a traditional/longevity split."""

    def advise(self, allocation: Allocation, total_value: float, target: TargetAllocation) -> RebalanceAdvice:
        raise NotImplementedError


class PriceSource:
    """Current prices keyed by holding id. Missing ids are simply absent from the result."""

    def fetch(self, ids: Sequence[str]) -> Dict[str, float]:
        raise NotImplementedError


class TransactionRepository:
    def fetch(self, user_id: str, start: Optional[datetime] = None,
              end: Optional[datetime] = None) -> List[Transaction]:
        raise NotImplementedError

    def add(self, user_id: str, transactions: Iterable[Transaction]) -> int:
        raise NotImplementedError


class TradeExecutor:
    async def submit(self, user_id: str, trades: Sequence[TradeInstruction]) -> List[str]:
        raise NotImplementedError
