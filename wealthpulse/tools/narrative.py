# PURPOSE: Narrative explanations for risk scores via Amazon Bedrock, with a deterministic
#          template fallback.
# CONTEXT: The risk scorer awaits explain_with_fallback(); whatever happens on the Bedrock
#          side (timeout, throttling, empty answer) the scorer always gets a sentence back.

from __future__ import annotations
import asyncio
import os
from typing import Any, Optional

import boto3
import structlog
from botocore.config import Config

from wealthpulse.model_interface.collaborators import Explainer
from wealthpulse.model_interface.types import Risk, Trend
from wealthpulse.tools.result import CallResult

log = structlog.get_logger(__name__)

REGION = os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION") or "eu-west-2"
# Example model ids: deepseek.v3-v1:0, anthropic.claude-3-haiku-20240307-v1:0
MODEL_ID = os.getenv("NARRATIVE_MODEL_ID", "deepseek.v3-v1:0")
NARRATIVE_TIMEOUT_S = float(os.getenv("NARRATIVE_TIMEOUT_S", "8"))

PROMPT = """Generate a brief (1-2 sentence) financial risk explanation for:
- Overall Risk Score: {score}/100
- Risk Profile: {profile}
- Spending Volatility: {volatility:.1f}%
- Spending Trend: {trend}

Be concise and actionable."""


def template_explanation(profile: str, volatility: float) -> str:
    """Deterministic sentence used whenever the model cannot answer."""
    return f"Risk profile is {profile}. Volatility at {volatility:.1f}%."


def bedrock_client(timeout_s: float = NARRATIVE_TIMEOUT_S) -> Any:
    """bedrock-runtime client with bounded connect/read time and a small retry budget."""
    cfg = Config(
        connect_timeout=timeout_s,
        read_timeout=timeout_s,
        retries={"max_attempts": 2, "mode": "standard"},
    )
    return boto3.client("bedrock-runtime", region_name=REGION, config=cfg)


def converse_text(client: Any, model_id: str, prompt: str, max_tokens: int = 256) -> str:
    """
    Send one user turn to a Bedrock model and return the concatenated text blocks.

    notes:
    - Uses the message-based 'converse' API; most models return a single text block.
    """
    resp = client.converse(
        modelId=model_id,
        messages=[{"role": "user", "content": [{"text": prompt}]}],
        inferenceConfig={"maxTokens": max_tokens, "temperature": 0.2},
    )
    parts = resp.get("output", {}).get("message", {}).get("content", [])
    return "".join(p.get("text", "") for p in parts)


class TemplateExplainer(Explainer):
    def explain(self, score: int, profile: Risk, volatility: float, trend: Trend) -> str:
        return template_explanation(profile, volatility)


class BedrockExplainer(Explainer):
    """Explainer backed by a Bedrock chat model."""

    def __init__(self, model_id: str = MODEL_ID, client: Optional[Any] = None):
        self.model_id = model_id
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = bedrock_client()
        return self._client

    def explain(self, score: int, profile: Risk, volatility: float, trend: Trend) -> str:
        prompt = PROMPT.format(score=score, profile=profile, volatility=volatility, trend=trend)
        return converse_text(self.client, self.model_id, prompt).strip()


async def explain_with_fallback(
    explainer: Explainer,
    score: int,
    profile: Risk,
    volatility: float,
    trend: Trend,
    timeout: float = NARRATIVE_TIMEOUT_S,
) -> CallResult[str]:
    """
    Ask the explainer for a narrative, bounded by `timeout` seconds.

    returns:
    - CallResult – 'ok' with the model's text, or 'fallback' with the template sentence when
      the call failed, timed out or came back empty.

    notes:
    - The explainer runs in a worker thread so a slow SDK call never blocks the event loop.
    - Cancelling the awaiting task cancels the wait; no fallback is produced in that case.
    """
    fallback = template_explanation(profile, volatility)
    try:
        text = await asyncio.wait_for(
            asyncio.to_thread(explainer.explain, score, profile, volatility, trend),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        log.warning("risk.explain.fallback", reason="timeout", timeout_s=timeout)
        return CallResult.fallback(fallback, f"explainer timed out after {timeout}s")
    except Exception as e:
        log.warning("risk.explain.fallback", reason="error", error=f"{type(e).__name__}: {e}")
        return CallResult.fallback(fallback, f"{type(e).__name__}: {e}")

    text = (text or "").strip()
    if not text:
        log.warning("risk.explain.fallback", reason="empty")
        return CallResult.fallback(fallback, "explainer returned no text")
    return CallResult.success(text)
