# PURPOSE: Composite 0-100 risk score from spending volatility, idle capital, income
#          stability and the user's declared preference.
# CONTEXT: Consumes trailing-12-month transactions. The narrative explanation is the only
#          awaited step; it always resolves (model text or template fallback).

from __future__ import annotations
from datetime import datetime, timedelta
from typing import Optional, Sequence

from wealthpulse.analytics.transactions import is_spending, monthly_totals
from wealthpulse.constants.risk_bands import (
    IDLE_PENALTY_FLOOR,
    PREFERENCE_BASE,
    PROFILE_BANDS,
    SCORE_WEIGHTS,
    VOLATILITY_THRESHOLD,
)
from wealthpulse.model_interface.collaborators import Explainer
from wealthpulse.model_interface.records import Transaction
from wealthpulse.model_interface.types import Risk, RiskScoreResult, ScoreComponents, VolatilityStatus
from wealthpulse.tools.narrative import TemplateExplainer, explain_with_fallback, NARRATIVE_TIMEOUT_S
from wealthpulse.utils.clock import align, days_between, now_like
from wealthpulse.utils.rounding import round_half_up
from wealthpulse.utils.stats import coefficient_of_variation

TRAILING_DAYS = 30


def _now_for(transactions: Sequence[Transaction], now: Optional[datetime]) -> datetime:
    if now is not None:
        return now
    return now_like(transactions[0].date if transactions else None)


def calculate_monthly_spending(transactions: Sequence[Transaction], now: datetime) -> float:
    """Non-transfer debits dated within the trailing 30 days."""
    cutoff = now - timedelta(days=TRAILING_DAYS)
    return sum(t.amount for t in transactions if is_spending(t) and align(t.date, now) >= cutoff)


def calculate_spending_volatility(transactions: Sequence[Transaction]) -> float:
    """Coefficient of variation (%) of monthly spending; 0 with fewer than two months."""
    totals = monthly_totals(transactions, "spending")
    if len(totals) < 2:
        return 0.0
    cv = coefficient_of_variation(list(totals.values()))
    return cv * 100 if cv is not None else 0.0


def calculate_idle_capital_ratio(
    total_capital: float,
    transactions: Sequence[Transaction],
    now: datetime,
) -> float:
    """
    Rough share of capital sitting idle, from how recently money moved.

    rules:
    - no capital: 0
    - no transactions in the trailing 30 days: 100
    - most recent transaction older than 30 days: 60
    - otherwise 2% per day since the most recent transaction
    """
    if total_capital == 0:
        return 0.0

    cutoff = now - timedelta(days=TRAILING_DAYS)
    recent = [t for t in transactions if align(t.date, now) >= cutoff]
    if not recent:
        return 100.0

    latest = max(recent, key=lambda t: align(t.date, now))
    inactivity = days_between(latest.date, now)
    if inactivity > TRAILING_DAYS:
        return 60.0
    return float(max(0, inactivity * 2))


def calculate_income_stability(transactions: Sequence[Transaction]) -> float:
    """100 - CV(monthly credits) x 100, floored at 0; 50 without two months of income."""
    credits = [t for t in transactions if t.type == "credit"]
    if len(credits) < 2:
        return 50.0
    totals = monthly_totals(credits, "income")
    if len(totals) < 2:
        return 50.0
    cv = coefficient_of_variation(list(totals.values()))
    if cv is None:
        cv = 1.0
    return max(0.0, 100 - cv * 100)


def determine_volatility_status(volatility: float, threshold: float = VOLATILITY_THRESHOLD) -> VolatilityStatus:
    if volatility > threshold * 2:
        return "breach"
    if volatility > threshold * 1.5:
        return "warning"
    if volatility > threshold:
        return "elevated"
    return "normal"


def profile_for_score(score: float) -> Risk:
    for name, band in PROFILE_BANDS.items():
        if band["min_score"] <= score < band["max_score"]:
            return name
    return "aggressive"


def score_components(
    volatility: float,
    idle_ratio: float,
    income_stability: float,
    preference: Risk,
) -> ScoreComponents:
    """Weighted parts of the composite score, each non-decreasing in its risk driver."""
    return {
        "volatilityComponent": min(volatility, 100) * SCORE_WEIGHTS["volatility"],
        "idleComponent": max(0.0, idle_ratio - IDLE_PENALTY_FLOOR) * SCORE_WEIGHTS["idle"],
        "incomeComponent": (100 - income_stability) * SCORE_WEIGHTS["income"],
        "preferenceComponent": PREFERENCE_BASE[preference] * SCORE_WEIGHTS["preference"],
    }


def composite_score(components: ScoreComponents) -> int:
    """Sum of components, rounded half-up and clamped to [0, 100]."""
    raw = round_half_up(sum(components.values()))
    return int(max(0, min(100, raw)))


async def score_user_risk(
    transactions: Sequence[Transaction],
    total_capital: float,
    risk_preference: Risk = "moderate",
    explainer: Optional[Explainer] = None,
    now: Optional[datetime] = None,
    volatility_threshold: float = VOLATILITY_THRESHOLD,
    explain_timeout: float = NARRATIVE_TIMEOUT_S,
) -> RiskScoreResult:
    """
    Score a user's financial risk.

    parameters:
    - transactions: trailing 12 months of validated transactions
    - total_capital: float – capital the idle ratio applies to
    - risk_preference: Risk – declared preference (contributes a fixed base)
    - explainer: Explainer – narrative collaborator; TemplateExplainer when omitted
    - now: datetime – evaluation time (defaults to the current time)

    returns:
    - RiskScoreResult – score, profile, drivers, component breakdown and an explanation.
    """
    now = _now_for(transactions, now)

    monthly_spending = calculate_monthly_spending(transactions, now)
    volatility = calculate_spending_volatility(transactions)
    idle_ratio = calculate_idle_capital_ratio(total_capital, transactions, now)
    income_stability = calculate_income_stability(transactions)

    components = score_components(volatility, idle_ratio, income_stability, risk_preference)
    score = composite_score(components)
    profile = profile_for_score(score)

    status = determine_volatility_status(volatility, volatility_threshold)
    rebalance = status != "normal" or idle_ratio > 40 or volatility > 30

    trend = "increasing" if volatility > 35 else "stable"
    narrative = await explain_with_fallback(
        explainer or TemplateExplainer(), score, profile, volatility, trend, timeout=explain_timeout
    )

    return {
        "overallRiskScore": score,
        "riskProfile": profile,
        "monthlySpending": monthly_spending,
        "spendingVolatility": volatility,
        "idleCapitalRatio": idle_ratio,
        "incomeStability": income_stability,
        "components": components,
        "volatilityStatus": status,
        "rebalanceRecommended": rebalance,
        "explanation": narrative.value,
        "explanationSource": narrative.status,
    }
