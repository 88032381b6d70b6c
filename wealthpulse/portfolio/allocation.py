# PURPOSE: Traditional/longevity allocation math: current split, drift from target,
#          value-weighted volatility and the decision whether to rebalance.
# CONTEXT: Every percentage here is guarded against a zero-value portfolio, so an empty or
#          unpriced portfolio reads as 0/0 rather than raising.

from __future__ import annotations
from typing import Dict, List, Sequence

from wealthpulse.constants.asset_classes import (
    ASSET_TEMPLATES,
    DEFAULT_LONGEVITY_APY,
    DEFAULT_TYPE_VOLATILITY,
    LONGEVITY_APY,
    LONGEVITY_TYPES,
    PROFILE_WEIGHTS,
    TEMPLATE_UNIT_PRICE,
    TRADITIONAL_APY,
    TRADITIONAL_TYPES,
    TYPE_VOLATILITY,
)
from wealthpulse.constants.policy import REBALANCE_MONTHS_TRIGGER
from wealthpulse.model_interface.records import DEFAULT_TARGET, Asset, TargetAllocation
from wealthpulse.model_interface.types import Allocation, Drift, ProposedChange, RebalanceRecommendation, Risk
from wealthpulse.utils.stats import safe_pct


def total_value(assets: Sequence[Asset]) -> float:
    return sum(a.value for a in assets)


def class_values(assets: Sequence[Asset]) -> Dict[str, float]:
    """Market value held in each class."""
    values = {"traditional": 0.0, "longevity": 0.0}
    for a in assets:
        values[a.asset_class] += a.value
    return values


def calculate_current_allocation(assets: Sequence[Asset]) -> Allocation:
    """
    Percentage of portfolio value in each class.

    returns:
    - dict – {"traditional", "longevity"} summing to 100, or both 0 when the portfolio has no value.
    """
    total = total_value(assets)
    if total <= 0:
        return {"traditional": 0.0, "longevity": 0.0}
    traditional = safe_pct(class_values(assets)["traditional"], total)
    return {"traditional": traditional, "longevity": 100 - traditional}


def calculate_allocation_drift(
    assets: Sequence[Asset],
    target: TargetAllocation = DEFAULT_TARGET,
) -> Drift:
    current = calculate_current_allocation(assets)
    return {
        "traditionDrift": abs(current["traditional"] - target.traditional),
        "longevityDrift": abs(current["longevity"] - target.longevity),
    }


def max_drift(allocation: Allocation, target: TargetAllocation = DEFAULT_TARGET) -> float:
    return max(
        abs(allocation["traditional"] - target.traditional),
        abs(allocation["longevity"] - target.longevity),
    )


def calculate_portfolio_volatility(assets: Sequence[Asset]) -> float:
    """Value-weighted average of the per-type volatility table (unknown types count as 20)."""
    total = total_value(assets)
    if total <= 0:
        return 0.0
    return sum(a.value / total * TYPE_VOLATILITY.get(a.type, DEFAULT_TYPE_VOLATILITY) for a in assets)


def assess_rebalance_need(
    assets: Sequence[Asset],
    rebalance_threshold: float = 5.0,
    volatility_threshold: float = 25.0,
    months_since_last_rebalance: float = 0,
    target: TargetAllocation = DEFAULT_TARGET,
) -> RebalanceRecommendation:
    """
    Decide whether the portfolio should be rebalanced.

    triggers (any one is enough):
    - drift: either class strays more than `rebalance_threshold` points from target
    - volatility: weighted volatility above `volatility_threshold`
    - schedule: more than 6 months since the last rebalance

    returns:
    - RebalanceRecommendation – when triggered, a symmetric sell/buy pair moving the
      traditional class to its target value; otherwise no changes and the reason why.
    """
    current = calculate_current_allocation(assets)
    drift = max_drift(current, target) if total_value(assets) > 0 else 0.0
    volatility = calculate_portfolio_volatility(assets)

    triggers: List[str] = []
    reasons: List[str] = []
    if drift > rebalance_threshold:
        triggers.append("drift")
        reasons.append(f"Allocation drift of {drift:.1f}%.")
    if volatility > volatility_threshold:
        triggers.append("volatility")
        reasons.append(
            f"Portfolio volatility ({volatility:.1f}%) exceeds threshold ({volatility_threshold:g}%)."
        )
    if months_since_last_rebalance > REBALANCE_MONTHS_TRIGGER:
        triggers.append("schedule")
        reasons.append("Scheduled rebalance: more than 6 months since the last one.")

    if not triggers:
        return {
            "shouldRebalance": False,
            "driftPercentage": drift,
            "volatility": volatility,
            "triggers": [],
            "reason": (
                f"Portfolio within target allocation (drift {drift:.1f}% <= {rebalance_threshold:g}%, "
                f"volatility {volatility:.1f}% <= {volatility_threshold:g}%)"
            ),
            "proposedChanges": [],
        }

    shift = traditional_shift(assets, target)
    changes: List[ProposedChange] = []
    if shift != 0:
        trad_action, long_action = ("buy", "sell") if shift > 0 else ("sell", "buy")
        changes = [
            {"assetId": "traditional_aggregate", "currentAllocation": current["traditional"],
             "targetAllocation": target.traditional, "action": trad_action, "amount": abs(shift)},
            {"assetId": "longevity_aggregate", "currentAllocation": current["longevity"],
             "targetAllocation": target.longevity, "action": long_action, "amount": abs(shift)},
        ]

    return {
        "shouldRebalance": True,
        "driftPercentage": drift,
        "volatility": volatility,
        "triggers": triggers,
        "reason": " ".join(reasons),
        "proposedChanges": changes,
    }


def traditional_shift(assets: Sequence[Asset], target: TargetAllocation = DEFAULT_TARGET) -> float:
    """
    Currency amount that must move into (positive) or out of (negative) the traditional class
    for it to hit its target share of total value.
    """
    total = total_value(assets)
    return total * target.traditional / 100 - class_values(assets)["traditional"]


def get_asset_allocation_for_profile(risk_profile: Risk, available_budget: float) -> List[Asset]:
    """Starter portfolio for a risk profile, priced at 100 per unit."""
    weights = PROFILE_WEIGHTS[risk_profile]
    assets: List[Asset] = []
    for tpl in ASSET_TEMPLATES:
        amount = available_budget * weights.get(tpl["key"], 0.0)
        if amount > 0:
            assets.append(Asset(
                id=f"{tpl['key']}-{risk_profile}",
                name=tpl["name"],
                type=tpl["key"],
                quantity=amount / TEMPLATE_UNIT_PRICE,
                current_price=TEMPLATE_UNIT_PRICE,
                volatility=tpl["volatility"],
            ))
    return assets


def simulate_portfolio_growth(assets: Sequence[Asset], months: int) -> Dict[str, float]:
    """
    Compound each holding at its assumed APY for `months` months.

    returns:
    - dict – {"startValue", "endValue", "gain", "gainPercentage"}
    """
    start = total_value(assets)
    end = 0.0
    for a in assets:
        if a.type in LONGEVITY_TYPES:
            apy = LONGEVITY_APY.get(a.type, DEFAULT_LONGEVITY_APY)
        else:
            apy = TRADITIONAL_APY
        end += a.value * (1 + apy) ** (months / 12)
    return {
        "startValue": start,
        "endValue": end,
        "gain": end - start,
        "gainPercentage": safe_pct(end - start, start),
    }


__all__ = [
    "TRADITIONAL_TYPES",
    "LONGEVITY_TYPES",
    "total_value",
    "class_values",
    "calculate_current_allocation",
    "calculate_allocation_drift",
    "max_drift",
    "calculate_portfolio_volatility",
    "assess_rebalance_need",
    "traditional_shift",
    "get_asset_allocation_for_profile",
    "simulate_portfolio_growth",
]
