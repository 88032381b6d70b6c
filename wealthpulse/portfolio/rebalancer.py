# PURPOSE: Rebalance proposals with pre-execution risk governance, and the execution
#          lifecycle pending -> executing -> completed | failed.
# CONTEXT: evaluate (allocation.assess_rebalance_need) -> propose (trades) -> risk-check ->
#          approved | pending -> execute. A proposal that fails any guardrail stays pending
#          and is never sent to the executor.

from __future__ import annotations
import asyncio
import os
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence
from zoneinfo import ZoneInfo

import structlog

from wealthpulse.constants.policy import DEFAULT_GOVERNANCE_LIMITS, MINUTES_PER_TRADE, GovernanceLimits
from wealthpulse.model_interface.collaborators import TradeExecutor
from wealthpulse.model_interface.records import DEFAULT_TARGET, Asset, TargetAllocation
from wealthpulse.model_interface.types import (
    Allocation,
    RebalanceExecution,
    RebalanceProposal,
    RiskCheck,
    TradeInstruction,
)
from wealthpulse.portfolio.allocation import (
    assess_rebalance_need,
    calculate_current_allocation,
    calculate_portfolio_volatility,
    class_values,
    max_drift,
    total_value,
    traditional_shift,
)
from wealthpulse.utils.stats import safe_pct

log = structlog.get_logger(__name__)

MARKET_TZ = ZoneInfo(os.getenv("MARKET_TZ", "America/New_York"))
EXECUTION_TIMEOUT_S = float(os.getenv("EXECUTION_TIMEOUT_S", "30"))

CLASS_LABELS = {"traditional": "Traditional Assets", "longevity": "Longevity Assets"}

GOVERNANCE_CHECKS = (
    "Portfolio Volatility",
    "Trade Size Constraint",
    "Allocation Target",
    "Market Hours",
    "Minimum Balance",
)


def _trade(action: str, asset_class: str, amount: float) -> TradeInstruction:
    return {
        "action": action,
        "assetClass": asset_class,
        "assetType": CLASS_LABELS[asset_class],
        "targetAmount": amount,
        "estimatedPrice": 1.0,
        "estimatedCost": amount,
    }


def generate_rebalance_trades(
    assets: Sequence[Asset],
    target: TargetAllocation = DEFAULT_TARGET,
) -> List[TradeInstruction]:
    """
    Symmetric sell/buy pair that moves the traditional class to its target value.

    returns:
    - list – empty when the portfolio is already on target, else [sell overweight, buy underweight].
    """
    shift = traditional_shift(assets, target)
    if shift < 0:
        return [_trade("sell", "traditional", -shift), _trade("buy", "longevity", -shift)]
    if shift > 0:
        return [_trade("sell", "longevity", shift), _trade("buy", "traditional", shift)]
    return []


def post_trade_class_values(assets: Sequence[Asset], trades: Sequence[TradeInstruction]) -> Dict[str, float]:
    """Class values after applying the trades (sells leave a class, buys enter one)."""
    values = class_values(assets)
    for t in trades:
        sign = -1 if t["action"] == "sell" else 1
        values[t["assetClass"]] += sign * t["estimatedCost"]
    return values


def calculate_post_rebalance_allocation(
    assets: Sequence[Asset],
    trades: Sequence[TradeInstruction],
) -> Allocation:
    values = post_trade_class_values(assets, trades)
    total = values["traditional"] + values["longevity"]
    if total <= 0:
        return {"traditional": 0.0, "longevity": 0.0}
    traditional = min(100.0, max(0.0, safe_pct(values["traditional"], total)))
    return {"traditional": traditional, "longevity": 100 - traditional}


def post_trade_asset_values(
    assets: Sequence[Asset],
    trades: Sequence[TradeInstruction],
) -> Dict[str, float]:
    """
    Per-asset value after trades, spreading each class's net trade pro rata over its holdings.
    """
    before = class_values(assets)
    after = post_trade_class_values(assets, trades)
    out: Dict[str, float] = {}
    for a in assets:
        cls_before = before[a.asset_class]
        factor = after[a.asset_class] / cls_before if cls_before > 0 else 1.0
        out[a.id] = a.value * factor
    return out


def in_market_hours(now: datetime, limits: GovernanceLimits = DEFAULT_GOVERNANCE_LIMITS) -> bool:
    """
    Weekday between the open and close hour, evaluated in the market's timezone.

    A naive `now` is read as UTC, the clock Lambda and most servers run on.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local = now.astimezone(MARKET_TZ)
    return local.weekday() < 5 and limits.market_open_hour <= local.hour < limits.market_close_hour


def perform_risk_governance_checks(
    assets: Sequence[Asset],
    trades: Sequence[TradeInstruction],
    limits: GovernanceLimits = DEFAULT_GOVERNANCE_LIMITS,
    target: TargetAllocation = DEFAULT_TARGET,
    now: Optional[datetime] = None,
) -> List[RiskCheck]:
    """
    Five guardrails evaluated before any trade is released.

    checks:
    1) Portfolio Volatility – weighted volatility at or below the threshold
    2) Trade Size Constraint – no trade above max_trade_pct of portfolio value
    3) Allocation Target – post-trade drift strictly below the tolerance
    4) Market Hours – weekday, 09:00-16:00 market time
    5) Minimum Balance – every holding keeps at least min_asset_balance after trades
    """
    now = now or datetime.now(MARKET_TZ)
    checks: List[RiskCheck] = []

    volatility = calculate_portfolio_volatility(assets)
    vol_ok = volatility <= limits.volatility_threshold
    checks.append({
        "name": "Portfolio Volatility",
        "threshold": limits.volatility_threshold,
        "current": volatility,
        "passed": vol_ok,
        "message": (
            f"Portfolio volatility {volatility:.1f}% is within threshold" if vol_ok
            else f"Volatility {volatility:.1f}% exceeds threshold {limits.volatility_threshold:g}%"
        ),
    })

    value = total_value(assets)
    max_trade = value * limits.max_trade_pct / 100
    largest = max((t["estimatedCost"] for t in trades), default=0.0)
    size_ok = largest <= max_trade
    share = safe_pct(largest, value)
    checks.append({
        "name": "Trade Size Constraint",
        "threshold": max_trade,
        "current": largest,
        "passed": size_ok,
        "message": (
            f"Largest trade ({share:.1f}%) is within {limits.max_trade_pct:g}% limit" if size_ok
            else f"Single trade ({share:.1f}%) exceeds {limits.max_trade_pct:g}% limit"
        ),
    })

    projected = calculate_post_rebalance_allocation(assets, trades)
    drift = max_drift(projected, target)
    drift_ok = drift < limits.post_trade_drift_tolerance
    checks.append({
        "name": "Allocation Target",
        "threshold": limits.post_trade_drift_tolerance,
        "current": drift,
        "passed": drift_ok,
        "message": (
            f"Rebalance will achieve {target.traditional:g}/{target.longevity:g} allocation within tolerance"
            if drift_ok else f"Post-rebalance allocation drift {drift:.1f}%"
        ),
    })

    open_now = in_market_hours(now, limits)
    checks.append({
        "name": "Market Hours",
        "threshold": 1,
        "current": 1 if open_now else 0,
        "passed": open_now,
        "message": (
            f"Executing during market hours ({limits.market_open_hour:02d}:00-{limits.market_close_hour:02d}:00)"
            if open_now else "Queued for execution during next market hours"
        ),
    })

    after = post_trade_asset_values(assets, trades)
    funded = sum(1 for v in after.values() if v >= limits.min_asset_balance)
    balance_ok = funded == len(assets)
    checks.append({
        "name": "Minimum Balance",
        "threshold": len(assets),
        "current": funded,
        "passed": balance_ok,
        "message": (
            "All assets keep sufficient balance after trades" if balance_ok
            else f"{len(assets) - funded} assets fall below ${limits.min_asset_balance:,.0f} after trades"
        ),
    })

    return checks


def checks_approve(checks: Sequence[RiskCheck]) -> bool:
    """True only when every named guardrail is present and every check passed."""
    present = {c["name"] for c in checks}
    return present.issuperset(GOVERNANCE_CHECKS) and all(c["passed"] for c in checks)


def propose_rebalance(
    assets: Sequence[Asset],
    months_since_last_rebalance: float = 0,
    limits: GovernanceLimits = DEFAULT_GOVERNANCE_LIMITS,
    target: TargetAllocation = DEFAULT_TARGET,
    now: Optional[datetime] = None,
) -> RebalanceProposal:
    """
    Evaluate, propose and risk-check a rebalance in one step.

    A no-op evaluation yields no trades and no checks (and is not approved). Otherwise the
    proposal is approved only if every governance check passed; it is always returned in
    'pending' state, since execution is a separate step.
    """
    recommendation = assess_rebalance_need(
        assets,
        rebalance_threshold=limits.drift_threshold,
        volatility_threshold=limits.volatility_threshold,
        months_since_last_rebalance=months_since_last_rebalance,
        target=target,
    )
    old = calculate_current_allocation(assets)
    if not recommendation["shouldRebalance"]:
        return {
            "recommendation": recommendation,
            "oldAllocation": old,
            "newAllocation": old,
            "trades": [],
            "riskChecks": [],
            "approved": False,
            "status": "pending",
        }

    trades = generate_rebalance_trades(assets, target)
    checks = perform_risk_governance_checks(assets, trades, limits, target, now)
    approved = checks_approve(checks)
    log.info("rebalance.proposed", trades=len(trades), approved=approved,
             failed=[c["name"] for c in checks if not c["passed"]])
    return {
        "recommendation": recommendation,
        "oldAllocation": old,
        "newAllocation": calculate_post_rebalance_allocation(assets, trades),
        "trades": trades,
        "riskChecks": checks,
        "approved": approved,
        "status": "pending",
    }


async def execute_rebalancing(
    user_id: str,
    assets: Sequence[Asset],
    trades: Sequence[TradeInstruction],
    checks: Optional[Sequence[RiskCheck]] = None,
    executor: Optional[TradeExecutor] = None,
    timeout: float = EXECUTION_TIMEOUT_S,
    now: Optional[datetime] = None,
    limits: GovernanceLimits = DEFAULT_GOVERNANCE_LIMITS,
    target: TargetAllocation = DEFAULT_TARGET,
) -> RebalanceExecution:
    """
    Run an approved rebalance through the trade executor.

    flow:
    - checks=None: the five guardrails are evaluated here against `limits`, `target` and `now`.
    - approved (all five guardrails present and passed) and an executor given: status
      'executing', submit trades; 'completed' on success, 'failed' on error or timeout.
    - approved without an executor: stays 'executing' (handed off for later submission).
    - not approved, including a check list missing any guardrail: 'pending'; trades are
      never submitted.
    """
    now = now or datetime.now(MARKET_TZ)
    if checks is None:
        checks = perform_risk_governance_checks(assets, trades, limits, target, now)
    approved = checks_approve(checks)
    execution: RebalanceExecution = {
        "id": f"rebal_{uuid.uuid4().hex[:12]}",
        "userId": user_id,
        "timestamp": now,
        "oldAllocation": calculate_current_allocation(assets),
        "newAllocation": calculate_post_rebalance_allocation(assets, trades),
        "trades": list(trades),
        "totalCost": sum(t["estimatedCost"] for t in trades),
        "estimatedTime": len(trades) * MINUTES_PER_TRADE,
        "riskGovernanceChecks": list(checks),
        "approved": approved,
        "status": "executing" if approved else "pending",
        "orderIds": [],
        "error": None,
    }

    if not approved:
        log.info("rebalance.execution.pending", user_id=user_id,
                 failed=[c["name"] for c in checks if not c["passed"]],
                 missing=[n for n in GOVERNANCE_CHECKS if n not in {c["name"] for c in checks}])
        return execution
    if executor is None:
        return execution

    try:
        order_ids = await asyncio.wait_for(executor.submit(user_id, list(trades)), timeout=timeout)
    except asyncio.TimeoutError:
        log.warning("rebalance.execution.failed", user_id=user_id, reason="timeout", timeout_s=timeout)
        execution["status"] = "failed"
        execution["error"] = f"executor timed out after {timeout}s"
        return execution
    except Exception as e:
        log.warning("rebalance.execution.failed", user_id=user_id, error=f"{type(e).__name__}: {e}")
        execution["status"] = "failed"
        execution["error"] = f"{type(e).__name__}: {e}"
        return execution

    execution["orderIds"] = list(order_ids)
    execution["status"] = "completed"
    log.info("rebalance.execution.completed", user_id=user_id, orders=len(order_ids))
    return execution


def generate_rebalancing_summary(execution: RebalanceExecution) -> str:
    """Plain-text summary of an execution for statements and notifications."""
    old, new = execution["oldAllocation"], execution["newAllocation"]
    lines = [
        "=== REBALANCING SUMMARY ===",
        "",
        f"Execution ID: {execution['id']}",
        f"Timestamp: {execution['timestamp'].isoformat()}",
        f"Status: {execution['status'].upper()}",
        "",
        "ALLOCATION CHANGE:",
        f"  Traditional: {old['traditional']:.1f}% -> {new['traditional']:.1f}%",
        f"  Longevity: {old['longevity']:.1f}% -> {new['longevity']:.1f}%",
        "",
        f"TRADES ({len(execution['trades'])} total):",
    ]
    lines += [f"  {t['action'].upper()} {t['assetType']}: ${t['estimatedCost']:,.0f}" for t in execution["trades"]]
    lines += [
        "",
        f"TOTAL COST: ${execution['totalCost']:,.0f}",
        f"ESTIMATED TIME: {execution['estimatedTime']} minutes",
        "",
        "RISK GOVERNANCE CHECKS:",
    ]
    lines += [f"  [{'PASS' if c['passed'] else 'FAIL'}] {c['name']}: {c['message']}"
              for c in execution["riskGovernanceChecks"]]
    lines += ["", f"APPROVED: {'YES' if execution['approved'] else 'NO'}"]
    return "\n".join(lines)
