# PURPOSE: Transaction classification (description + amount -> category and type) via Bedrock,
#          with a keyword fallback.
# CONTEXT: Upstream of the transaction statistics: the output only feeds Transaction construction.

from __future__ import annotations
import json
import re
from typing import Any, Dict, Optional

import structlog

from wealthpulse.model_interface.collaborators import Classifier
from wealthpulse.tools.narrative import MODEL_ID, bedrock_client, converse_text
from wealthpulse.tools.result import CallResult

log = structlog.get_logger(__name__)

CATEGORIES = (
    "groceries", "utilities", "entertainment", "transportation", "dining", "shopping",
    "healthcare", "insurance", "fees", "salary", "transfer", "other",
)
TXN_TYPES = ("debit", "credit", "transfer", "fee")

PROMPT = """You are a financial transaction classifier.
Return only a JSON object with these fields:
- category: one of {categories}
- type: one of {types}

Description: "{description}"
Amount: {amount}"""

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def keyword_classification(description: str) -> Dict[str, str]:
    """
    Deterministic classification from keywords in the description.

    Fee wins over transfer, transfer over credit; anything else is a debit in category 'other'.
    """
    text = description.lower()
    if "fee" in text or "charge" in text:
        kind = "fee"
    elif "transfer" in text or "sent to" in text:
        kind = "transfer"
    elif any(w in text for w in ("salary", "credit", "deposited", "received")):
        kind = "credit"
    else:
        kind = "debit"
    return {"category": "other", "type": kind}


def parse_classification(text: str) -> Dict[str, str]:
    """
    Pull the first JSON object out of a model answer and normalise it.

    raises:
    - ValueError – no JSON object, or a type outside debit/credit/transfer/fee.
    """
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise ValueError("No JSON found in response")
    parsed = json.loads(match.group(0))
    kind = str(parsed.get("type", "debit")).lower()
    if kind not in TXN_TYPES:
        raise ValueError(f"unknown transaction type {kind!r}")
    category = str(parsed.get("category") or "other").lower()
    return {"category": category if category in CATEGORIES else "other", "type": kind}


class KeywordClassifier(Classifier):
    def classify(self, description: str, amount: float) -> Dict[str, str]:
        return keyword_classification(description)


class BedrockClassifier(Classifier):
    def __init__(self, model_id: str = MODEL_ID, client: Optional[Any] = None):
        self.model_id = model_id
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = bedrock_client()
        return self._client

    def classify(self, description: str, amount: float) -> Dict[str, str]:
        prompt = PROMPT.format(
            categories=", ".join(CATEGORIES),
            types=", ".join(TXN_TYPES),
            description=description,
            amount=amount,
        )
        return parse_classification(converse_text(self.client, self.model_id, prompt, max_tokens=128))


def classify_with_fallback(classifier: Classifier, description: str, amount: float) -> CallResult[Dict[str, str]]:
    """Classify, falling back to keywords when the classifier raises or answers badly."""
    try:
        return CallResult.success(classifier.classify(description, amount))
    except Exception as e:
        log.warning("classifier.fallback", error=f"{type(e).__name__}: {e}")
        return CallResult.fallback(keyword_classification(description), f"{type(e).__name__}: {e}")
