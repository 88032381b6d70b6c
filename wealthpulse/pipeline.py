# PURPOSE: End-to-end analysis run: validate the request, analyse transactions, score risk,
#          detect idle capital, propose (and optionally execute) a rebalance, audit compliance,
#          and validate the final output against the result schema.
# CONTEXT: The only place the collaborators meet. Each one is injected; the pure calculators
#          below never touch storage, the network or a clock of their own.

from __future__ import annotations
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

import structlog
from pydantic import TypeAdapter

from wealthpulse.analytics.idle_capital import analyze_portfolio_idle_capital, generate_allocation_plan
from wealthpulse.analytics.risk_scorer import score_user_risk
from wealthpulse.analytics.transactions import (
    analyze_transactions,
    calculate_spending_trend,
    identify_recurring_transactions,
    monthly_totals,
    suggest_budgets,
)
from wealthpulse.compliance import check_compliance, create_audit_event
from wealthpulse.constants.policy import DEFAULT_COMPLIANCE_POLICY, DEFAULT_GOVERNANCE_LIMITS
from wealthpulse.engine_io import to_jsonable, validate_analysis_request, validate_analysis_result
from wealthpulse.model_interface.collaborators import Explainer, PriceSource, TradeExecutor, TransactionRepository
from wealthpulse.model_interface.loader import load_explainer
from wealthpulse.model_interface.records import (
    DEFAULT_TARGET,
    Account,
    Asset,
    PortfolioSnapshot,
    TargetAllocation,
    Transaction,
)
from wealthpulse.observability import xray_segment
from wealthpulse.portfolio.allocation import (
    calculate_current_allocation,
    calculate_portfolio_volatility,
    total_value,
)
from wealthpulse.portfolio.rebalancer import execute_rebalancing, propose_rebalance
from wealthpulse.tools.audit_log import AuditLogStore
from wealthpulse.tools.price_source import PriceCache, reprice_assets, resolve_prices
from wealthpulse.utils.clock import days_between

log = structlog.get_logger(__name__)

DEFAULT_LOOKBACK_DAYS = 365
DAYS_PER_MONTH = 30
_DATETIME = TypeAdapter(datetime)


def _run_id(now: datetime) -> str:
    """
    Readable run ID: short random prefix and a timestamp suffix.
    Example: 'a1b2c3d4-20251021130000'
    """
    return uuid.uuid4().hex[:8] + "-" + now.strftime("%Y%m%d%H%M%S")


def _load_transactions(
    payload: Dict[str, Any],
    repository: Optional[TransactionRepository],
    now: datetime,
) -> List[Transaction]:
    """Inline transactions win; otherwise the repository's trailing window; otherwise none."""
    if "transactions" in payload:
        return [Transaction(**t) for t in payload["transactions"]]
    if repository is None:
        return []
    start = now - timedelta(days=payload.get("lookback_days", DEFAULT_LOOKBACK_DAYS))
    return repository.fetch(payload["user_id"], start, now)


def _audit_execution(audit_store: AuditLogStore, execution: Dict[str, Any], now: datetime) -> None:
    """Best-effort audit write; a storage failure is logged, never raised."""
    event = create_audit_event(
        execution["userId"],
        "rebalance_execution",
        "portfolio",
        execution["id"],
        dict(execution["oldAllocation"]),
        {**execution["newAllocation"], "status": execution["status"]},
        execution["approved"],
        now=now,
    )
    try:
        audit_store.record(event)
    except Exception as e:
        log.error("audit.write.failed", execution_id=execution["id"], error=str(e), exc_info=True)


async def run_pipeline(
    payload: Dict[str, Any],
    *,
    repository: Optional[TransactionRepository] = None,
    explainer: Optional[Explainer] = None,
    price_source: Optional[PriceSource] = None,
    price_cache: Optional[Mapping[str, Any]] = None,
    executor: Optional[TradeExecutor] = None,
    audit_store: Optional[AuditLogStore] = None,
    now: Optional[datetime] = None,
) -> Tuple[Dict[str, Any], PriceCache]:
    """
    End-to-end pipeline:

    steps:
    1) Validate the request against analysis_request.schema.json, then build pydantic records.
    2) Transaction statistics: analysis, monthly trend, recurring charges, budgets.
    3) Risk score (awaits the narrative explainer; falls back to the template sentence).
    4) Idle capital across accounts, using the scored risk profile, plus a plan per account.
    5) Reprice assets through the caller's price cache, then propose a rebalance with
       governance checks.
    6) Compliance gate over the current portfolio snapshot (needs last_rebalance_date).
    7) When 'execute' is set and there are trades, run the execution and audit it.
    8) Assemble with runId/latencyMs, convert to JSON-ready values, validate the output.

    returns:
    - (result, price_cache) – schema-valid result dict and the refreshed price cache.

    raises:
    - jsonschema.ValidationError / pydantic.ValidationError – malformed request.
    - RuntimeError – repository failure.
    """
    t0 = time.perf_counter()
    now = now or datetime.now(timezone.utc)

    # 1) Validate input
    validate_analysis_request(payload)
    user_id = payload["user_id"]
    preference = payload.get("risk_preference", "moderate")
    accounts = [Account(**a) for a in payload.get("accounts", [])]
    assets = [Asset(**a) for a in payload.get("assets", [])]
    target = TargetAllocation(**payload["target_allocation"]) if "target_allocation" in payload else DEFAULT_TARGET
    last_rebalance = (
        _DATETIME.validate_python(payload["last_rebalance_date"]) if "last_rebalance_date" in payload else None
    )

    with xray_segment("run_pipeline"):
        transactions = _load_transactions(payload, repository, now)

        # 2) Transaction statistics
        analysis = analyze_transactions(transactions)
        trend = calculate_spending_trend(monthly_totals(transactions, "spending"))
        recurring = identify_recurring_transactions(transactions)
        budgets = suggest_budgets(analysis["spendingByCategory"])

        # 3) Risk score
        capital = payload.get("total_capital")
        if capital is None:
            capital = sum(a.balance for a in accounts) + total_value(assets)
        risk = await score_user_risk(
            transactions,
            capital,
            risk_preference=preference,
            explainer=explainer or load_explainer(),
            now=now,
        )

        # 4) Idle capital
        idle = analyze_portfolio_idle_capital(accounts, risk["riskProfile"], now)
        plans = {a["accountId"]: generate_allocation_plan(a) for a in idle["accountAnalysis"]}

        # 5) Prices and rebalance proposal
        cache: PriceCache = dict(price_cache or {})
        if assets and price_source is not None:
            prices, cache = resolve_prices([a.id for a in assets], cache, price_source, now)
            assets = reprice_assets(assets, prices)

        proposal = None
        if assets:
            months = days_between(last_rebalance, now) / DAYS_PER_MONTH if last_rebalance else 0
            proposal = propose_rebalance(assets, months, DEFAULT_GOVERNANCE_LIMITS, target, now)

        # 6) Compliance
        report = None
        if assets and last_rebalance is not None:
            allocation = calculate_current_allocation(assets)
            snapshot = PortfolioSnapshot(
                total_value=total_value(assets),
                traditional=allocation["traditional"],
                longevity=allocation["longevity"],
                volatility=calculate_portfolio_volatility(assets),
                last_rebalance_date=last_rebalance,
                risk_profile=preference,
            )
            report = check_compliance(user_id, snapshot, DEFAULT_COMPLIANCE_POLICY, now, target)

        # 7) Execution
        execution = None
        if payload.get("execute") and proposal and proposal["trades"]:
            execution = await execute_rebalancing(
                user_id, assets, proposal["trades"], proposal["riskChecks"], executor, now=now
            )
            if audit_store is not None:
                _audit_execution(audit_store, execution, now)

    # 8) Assemble and validate output
    out = {
        "userId": user_id,
        "transactionAnalysis": analysis,
        "spendingTrend": trend,
        "recurringCharges": recurring,
        "budgets": budgets,
        "riskScore": risk,
        "idleCapital": idle,
        "allocationPlans": plans,
        "rebalance": proposal,
        "compliance": report,
        "execution": execution,
        "runId": _run_id(now),
        "latencyMs": int((time.perf_counter() - t0) * 1000),
    }
    out = to_jsonable(out)
    validate_analysis_result(out)
    log.info(
        "pipeline.completed",
        user_id=user_id,
        run_id=out["runId"],
        latency_ms=out["latencyMs"],
        risk_score=risk["overallRiskScore"],
        rebalance=bool(proposal and proposal["recommendation"]["shouldRebalance"]),
        executed=execution["status"] if execution else None,
    )
    return out, cache
