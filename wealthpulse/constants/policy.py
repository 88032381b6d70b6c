from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class CompliancePolicy:
    """
    Static compliance policy.

    attributes:
    - max_allocation_drift: float – % points either class may stray from target
    - max_portfolio_volatility: float – % ceiling on weighted volatility
    - min_rebalance_interval: int – days that should pass between rebalances
    - max_single_trade_size: float – % of portfolio value any one trade may move
    - suitability_check: bool – whether to compare volatility against the risk profile
    """
    max_allocation_drift: float = 5.0
    max_portfolio_volatility: float = 25.0
    min_rebalance_interval: int = 7
    max_single_trade_size: float = 20.0
    suitability_check: bool = True
    max_days_between_rebalances: int = 180
    suitability_volatility_limit: float = 30.0


DEFAULT_COMPLIANCE_POLICY = CompliancePolicy()


@dataclass(frozen=True)
class GovernanceLimits:
    """Pre-execution guardrails applied to a rebalance proposal."""
    volatility_threshold: float = 25.0
    drift_threshold: float = 5.0
    max_trade_pct: float = DEFAULT_COMPLIANCE_POLICY.max_single_trade_size
    post_trade_drift_tolerance: float = 2.0
    min_asset_balance: float = 100.0
    market_open_hour: int = 9
    market_close_hour: int = 16


DEFAULT_GOVERNANCE_LIMITS = GovernanceLimits()

REBALANCE_MONTHS_TRIGGER = 6
MINUTES_PER_TRADE = 2
