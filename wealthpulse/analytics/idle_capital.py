# PURPOSE: Idle capital detection: per-account dormancy scoring, portfolio aggregation
#          and an action plan for putting idle cash to work.
# CONTEXT: The risk profile chosen by the risk scorer selects the recommendation table.
#          Accounts are independent, so the portfolio view is a plain reduction over
#          per-account results.

from __future__ import annotations
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from wealthpulse.constants.idle_allocation import (
    DEFAULT_TIMELINE,
    DEPLOYMENT_TIMELINES,
    IDLE_RECOMMENDATIONS,
    SEVERITY_LIMITS,
)
from wealthpulse.model_interface.records import Account
from wealthpulse.model_interface.types import (
    AllocationPlan,
    AllocationRecommendation,
    IdleCapitalAnalysis,
    PortfolioIdleCapital,
    Risk,
)
from wealthpulse.utils.clock import days_between, now_like
from wealthpulse.utils.rounding import round_half_up
from wealthpulse.utils.stats import safe_pct

ACCOUNT_TYPE_FACTOR = {"savings": 0.7, "investment": 1.2}


def idle_ratio_for_inactivity(inactivity_days: int) -> float:
    """
    Share of a balance (0-100) considered idle after `inactivity_days` without activity.

    curve:
    - under 7 days: 0
    - 7-29 days: 3% per day, capped at 50
    - 30-89 days: 50 + 0.8% per day past 30, capped at 75
    - 90+ days: 100
    """
    if inactivity_days < 7:
        return 0.0
    if inactivity_days < 30:
        return float(min(50, inactivity_days * 3))
    if inactivity_days < 90:
        return float(min(75, 50 + (inactivity_days - 30) * 0.8))
    return 100.0


def severity_for(idle_amount: float) -> str:
    for limit, label in SEVERITY_LIMITS:
        if idle_amount < limit:
            return label
    return "critical"


def recommendations_for(risk_profile: Risk) -> List[AllocationRecommendation]:
    return [dict(r) for r in IDLE_RECOMMENDATIONS[risk_profile]]


def analyze_account_idle_capital(
    account: Account,
    risk_profile: Risk = "moderate",
    now: Optional[datetime] = None,
) -> IdleCapitalAnalysis:
    """
    Score one account for dormant funds.

    parameters:
    - account: Account – read-only balance snapshot
    - risk_profile: Risk – selects the recommendation table
    - now: datetime – evaluation time (defaults to the current time)

    returns:
    - IdleCapitalAnalysis – ratio, amount, severity, recommendations and projected yield.
    """
    now = now or now_like(account.last_activity_date)
    inactivity = days_between(account.last_activity_date, now)

    ratio = idle_ratio_for_inactivity(inactivity) * ACCOUNT_TYPE_FACTOR.get(account.type, 1.0)
    ratio = max(0.0, min(100.0, ratio))

    idle_amount = account.balance * ratio / 100
    recs = recommendations_for(risk_profile)
    annual_yield = sum(
        idle_amount * r["percentageAllocation"] / 100 * r["expectedAPY"] / 100 for r in recs
    )

    return {
        "accountId": account.id,
        "accountType": account.type,
        "balance": account.balance,
        "inactivityDays": inactivity,
        "idleRatio": ratio,
        "idleAmount": idle_amount,
        "severity": severity_for(idle_amount),
        "recommendations": recs,
        "estimatedAnnualYield": annual_yield,
    }


def analyze_portfolio_idle_capital(
    accounts: Sequence[Account],
    risk_profile: Risk = "moderate",
    now: Optional[datetime] = None,
) -> PortfolioIdleCapital:
    """
    Aggregate idle capital across accounts.

    notes:
    - idlePercentage is total idle over total balance (0 when the balance is 0).
    - aggregatedRecommendations averages each asset type's percentage across accounts.
    - highPriorityAccounts are the high/critical accounts, largest idle amount first.
    """
    analyses = [analyze_account_idle_capital(a, risk_profile, now) for a in accounts]

    total_balance = sum(a.balance for a in accounts)
    total_idle = sum(a["idleAmount"] for a in analyses)

    aggregated: Dict[str, float] = {}
    for analysis in analyses:
        for rec in analysis["recommendations"]:
            aggregated[rec["assetType"]] = aggregated.get(rec["assetType"], 0.0) + rec["percentageAllocation"]
    if analyses:
        aggregated = {k: v / len(analyses) for k, v in aggregated.items()}

    high_priority = sorted(
        (a for a in analyses if a["severity"] in ("high", "critical")),
        key=lambda a: a["idleAmount"],
        reverse=True,
    )

    return {
        "totalBalance": total_balance,
        "totalIdleAmount": total_idle,
        "idlePercentage": safe_pct(total_idle, total_balance),
        "accountAnalysis": analyses,
        "aggregatedRecommendations": aggregated,
        "estimatedTotalAnnualYield": sum(a["estimatedAnnualYield"] for a in analyses),
        "highPriorityAccounts": high_priority,
    }


def generate_allocation_plan(analysis: IdleCapitalAnalysis) -> AllocationPlan:
    """Turn an account analysis into dollar amounts per asset and readable action items."""
    if analysis["idleAmount"] == 0:
        return {
            "actionItems": ["Your account is actively invested. No action needed."],
            "expectedMonthlyYield": 0.0,
            "implementation": [],
        }

    items: List[str] = []
    implementation = []

    if analysis["inactivityDays"] > 30:
        items.append(f"Account inactive for {analysis['inactivityDays']} days")

    if analysis["idleAmount"] > 10000:
        monthly = int(round_half_up(analysis["estimatedAnnualYield"] / 12))
        items.append(
            f"Opportunity: allocate ${analysis['idleAmount']:,.2f} to generate ~${monthly:,}/month"
        )

    for rec in analysis["recommendations"]:
        amount = analysis["idleAmount"] * rec["percentageAllocation"] / 100
        items.append(f"Allocate ${amount:,.0f} to {rec['assetType']} ({rec['expectedAPY']}% APY)")
        implementation.append({"assetType": rec["assetType"], "amount": amount})

    items.append("Complete allocation in 1-2 business days to start earning yield")

    return {
        "actionItems": items,
        "expectedMonthlyYield": analysis["estimatedAnnualYield"] / 12,
        "implementation": implementation,
    }


def calculate_deployment_timeline(asset_type: str) -> Dict[str, object]:
    """Days until cash moved into `asset_type` starts earning, with a short reason."""
    timeline = DEPLOYMENT_TIMELINES.get(asset_type, DEFAULT_TIMELINE)
    return {"daysToActivation": timeline["days"], "rationale": timeline["rationale"]}
