# PURPOSE: Plain-language rebalance advice for a traditional/longevity split via Bedrock,
#          with a deterministic drift-based fallback.
# CONTEXT: Advisory only. The trades that actually run come from portfolio.rebalancer and its
#          governance checks; nothing here is ever sent to an executor.

from __future__ import annotations
import json
import re
from typing import Any, Dict, List, Optional

import structlog

from wealthpulse.constants.policy import DEFAULT_GOVERNANCE_LIMITS
from wealthpulse.model_interface.collaborators import RebalanceAdvisor
from wealthpulse.model_interface.records import DEFAULT_TARGET, TargetAllocation
from wealthpulse.model_interface.types import Allocation, RebalanceAdvice, SuggestedTrade
from wealthpulse.portfolio.allocation import max_drift
from wealthpulse.portfolio.rebalancer import CLASS_LABELS
from wealthpulse.tools.narrative import MODEL_ID, bedrock_client, converse_text
from wealthpulse.tools.result import CallResult

log = structlog.get_logger(__name__)

PROMPT = """You are a financial advisor for a {t_trad:g}/{t_long:g} (Traditional/Longevity) portfolio strategy.

Current portfolio:
- Traditional allocation: {traditional:.1f}% (target {t_trad:g}%)
- Longevity allocation: {longevity:.1f}% (target {t_long:g}%)
- Total portfolio value: {total_value:,.0f}

Rebalancing is usually recommended when drift exceeds 2-5%.
Return only a JSON object with:
- shouldRebalance: boolean
- driftPercentage: number (the absolute maximum drift)
- reason: string
- recommendation: string
- suggestedTrades: array of {{"action": "buy"|"sell", "asset": string, "amount": number}}"""

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def drift_advice(
    allocation: Allocation,
    total_value: float,
    target: TargetAllocation = DEFAULT_TARGET,
    threshold: float = DEFAULT_GOVERNANCE_LIMITS.drift_threshold,
) -> RebalanceAdvice:
    """
    Deterministic advice from drift alone.

    notes:
    - rebalance when the larger class drift exceeds `threshold` points.
    - suggested trades move total_value x drift% out of the overweight class into the other.
    """
    drift = max_drift(allocation, target)
    should = drift > threshold
    shift = total_value * drift / 100
    trades: List[SuggestedTrade] = []
    if should:
        over = "traditional" if allocation["traditional"] > target.traditional else "longevity"
        under = "longevity" if over == "traditional" else "traditional"
        trades = [
            {"action": "sell", "asset": CLASS_LABELS[over], "amount": shift},
            {"action": "buy", "asset": CLASS_LABELS[under], "amount": shift},
        ]
    return {
        "shouldRebalance": should,
        "driftPercentage": drift,
        "reason": f"Portfolio has drifted {drift:.1f}% from target." if should else "Portfolio is well-balanced.",
        "recommendation": (
            f"Consider shifting {shift:,.0f} to restore your {target.traditional:g}/{target.longevity:g} balance."
            if should else "No immediate action required."
        ),
        "suggestedTrades": trades,
    }


def parse_advice(text: str) -> RebalanceAdvice:
    """
    Pull the first JSON object out of a model answer and normalise it.

    raises:
    - ValueError – no JSON object, a non-boolean shouldRebalance, or a trade that is not buy/sell.
    """
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise ValueError("No JSON found in response")
    parsed: Dict[str, Any] = json.loads(match.group(0))
    if not isinstance(parsed.get("shouldRebalance"), bool):
        raise ValueError("shouldRebalance missing or not a boolean")

    trades: List[SuggestedTrade] = []
    for t in parsed.get("suggestedTrades") or []:
        action = str(t.get("action", "")).lower()
        if action not in ("buy", "sell"):
            raise ValueError(f"unknown trade action {action!r}")
        trades.append({"action": action, "asset": str(t.get("asset", "")), "amount": abs(float(t.get("amount", 0)))})

    return {
        "shouldRebalance": parsed["shouldRebalance"],
        "driftPercentage": float(parsed.get("driftPercentage", 0)),
        "reason": str(parsed.get("reason", "")),
        "recommendation": str(parsed.get("recommendation", "")),
        "suggestedTrades": trades,
    }


class BedrockRebalanceAdvisor(RebalanceAdvisor):
    def __init__(self, model_id: str = MODEL_ID, client: Optional[Any] = None):
        self.model_id = model_id
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = bedrock_client()
        return self._client

    def advise(self, allocation: Allocation, total_value: float, target: TargetAllocation) -> RebalanceAdvice:
        prompt = PROMPT.format(
            traditional=allocation["traditional"],
            longevity=allocation["longevity"],
            total_value=total_value,
            t_trad=target.traditional,
            t_long=target.longevity,
        )
        return parse_advice(converse_text(self.client, self.model_id, prompt, max_tokens=512))


def advise_rebalance(
    advisor: RebalanceAdvisor,
    allocation: Allocation,
    total_value: float,
    target: TargetAllocation = DEFAULT_TARGET,
) -> CallResult[RebalanceAdvice]:
    """Ask the advisor, falling back to drift_advice() when it raises or answers badly."""
    try:
        return CallResult.success(advisor.advise(allocation, total_value, target))
    except Exception as e:
        log.warning("rebalance.advice.fallback", error=f"{type(e).__name__}: {e}")
        return CallResult.fallback(drift_advice(allocation, total_value, target), f"{type(e).__name__}: {e}")
