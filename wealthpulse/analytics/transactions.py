# PURPOSE: Transaction statistics: totals, category/merchant breakdowns, anomalies,
#          monthly trend, recurring charges and budget suggestions.
# CONTEXT: First stage of the analysis flow; its monthly totals also feed the risk scorer.
#          Pure functions over validated Transaction records. Empty input gives an
#          empty/zeroed result, never an exception.

from __future__ import annotations
from collections import OrderedDict
from typing import Dict, Iterable, List, Literal, Mapping, Sequence

from wealthpulse.model_interface.records import Transaction
from wealthpulse.model_interface.types import (
    Anomaly,
    BudgetSuggestion,
    CategorySpending,
    RecurringCharge,
    SpendingTrend,
    TransactionAnalysis,
)
from wealthpulse.utils.rounding import ceil_money
from wealthpulse.utils.stats import linear_fit, mean_std, safe_pct

MAX_ANOMALIES = 20
TOP_MERCHANTS = 10
RAPID_SUCCESSION_SECONDS = 5 * 60
TREND_SLOPE_LIMIT = 50
RECURRING_AMOUNT_TOLERANCE = 0.01
BUDGET_BUFFER = "1.15"


def is_spending(t: Transaction) -> bool:
    """Debits count as spending unless they were filed under the 'transfer' category."""
    return t.type == "debit" and t.category != "transfer"


def month_key(t: Transaction) -> str:
    return f"{t.date.year}-{t.date.month:02d}"


def monthly_totals(
    transactions: Iterable[Transaction],
    kind: Literal["spending", "income"] = "spending",
) -> "OrderedDict[str, float]":
    """
    Sum amounts per calendar month.

    parameters:
    - transactions: iterable of Transaction
    - kind: 'spending' (non-transfer debits) or 'income' (credits)

    returns:
    - OrderedDict – 'YYYY-MM' -> total, in chronological order.
    """
    keep = is_spending if kind == "spending" else (lambda t: t.type == "credit")
    totals: Dict[str, float] = {}
    for t in transactions:
        if keep(t):
            key = month_key(t)
            totals[key] = totals.get(key, 0.0) + t.amount
    return OrderedDict(sorted(totals.items()))


def _empty_analysis() -> TransactionAnalysis:
    return {
        "totalTransactions": 0,
        "dateRange": {"start": None, "end": None},
        "totalSpending": 0.0,
        "totalIncome": 0.0,
        "netCashFlow": 0.0,
        "averageTransaction": 0.0,
        "largestTransaction": {"amount": 0.0, "merchant": None, "date": None, "transactionId": None},
        "spendingByCategory": [],
        "anomalies": [],
        "merchantFrequency": [],
    }


def analyze_transactions(transactions: Sequence[Transaction]) -> TransactionAnalysis:
    """
    Aggregate a set of transactions into totals, breakdowns and anomalies.

    notes:
    - spending excludes transfer-category debits; income is the credit sum.
    - category percentages are shares of total spending, sorted by total descending.
    - merchant frequency keeps the 10 most frequent merchants.
    """
    if not transactions:
        return _empty_analysis()

    ordered = sorted(transactions, key=lambda t: t.date)

    total_spending = sum(t.amount for t in ordered if is_spending(t))
    total_income = sum(t.amount for t in ordered if t.type == "credit")
    average = sum(t.amount for t in ordered) / len(ordered)

    largest = ordered[0]
    for t in ordered[1:]:
        if t.amount > largest.amount:
            largest = t

    by_category: Dict[str, List[Transaction]] = {}
    for t in ordered:
        if is_spending(t):
            by_category.setdefault(t.category, []).append(t)

    categories: List[CategorySpending] = []
    for category, items in by_category.items():
        total = sum(t.amount for t in items)
        categories.append({
            "category": category,
            "total": total,
            "count": len(items),
            "percentage": safe_pct(total, total_spending),
            "averageTransaction": total / len(items),
        })
    categories.sort(key=lambda c: c["total"], reverse=True)

    merchants: Dict[str, int] = {}
    for t in ordered:
        if t.merchant:
            merchants[t.merchant] = merchants.get(t.merchant, 0) + 1
    merchant_frequency = sorted(
        ({"merchant": m, "count": c} for m, c in merchants.items()),
        key=lambda m: m["count"],
        reverse=True,
    )[:TOP_MERCHANTS]

    return {
        "totalTransactions": len(ordered),
        "dateRange": {"start": ordered[0].date, "end": ordered[-1].date},
        "totalSpending": total_spending,
        "totalIncome": total_income,
        "netCashFlow": total_income - total_spending,
        "averageTransaction": average,
        "largestTransaction": {
            "amount": largest.amount,
            "merchant": largest.merchant,
            "date": largest.date,
            "transactionId": largest.id,
        },
        "spendingByCategory": categories,
        "anomalies": detect_anomalies(ordered, categories),
        "merchantFrequency": merchant_frequency,
    }


def detect_anomalies(
    transactions: Sequence[Transaction],
    category_stats: Sequence[CategorySpending],
) -> List[Anomaly]:
    """
    Flag outliers in a date-sorted transaction list.

    rules:
    - high_value: debit above mean + 2σ of all amounts (high severity above mean + 3σ).
    - unusual_category: debit in a spending category that has exactly one transaction.
    - weekend_spending: spending debit dated Saturday or Sunday.
    - rapid_succession: adjacent pair less than five minutes apart (only adjacent pairs are compared).

    returns at most MAX_ANOMALIES entries.
    """
    if not transactions:
        return []

    mean, std = mean_std([t.amount for t in transactions])
    counts = {c["category"]: c["count"] for c in category_stats}
    anomalies: List[Anomaly] = []

    for t in transactions:
        if t.type == "debit" and t.amount > mean + 2 * std:
            anomalies.append({
                "type": "high_value",
                "severity": "high" if t.amount > mean + 3 * std else "medium",
                "description": f"Unusually high transaction: ${t.amount:.2f} (avg: ${mean:.2f})",
                "transactionId": t.id,
            })

        if t.type == "debit" and counts.get(t.category) == 1:
            anomalies.append({
                "type": "unusual_category",
                "severity": "low",
                "description": f"First transaction in category: {t.category}",
                "transactionId": t.id,
            })

        # weekday(): Monday=0 ... Saturday=5, Sunday=6
        if is_spending(t) and t.date.weekday() >= 5:
            anomalies.append({
                "type": "weekend_spending",
                "severity": "low",
                "description": f"Weekend transaction: ${t.amount:.2f}",
                "transactionId": t.id,
            })

    for current, nxt in zip(transactions, transactions[1:]):
        gap = abs((nxt.date - current.date).total_seconds())
        if gap < RAPID_SUCCESSION_SECONDS:
            anomalies.append({
                "type": "rapid_succession",
                "severity": "low",
                "description": f"Rapid transaction: {gap:g}s apart",
                "transactionId": current.id,
            })

    return anomalies[:MAX_ANOMALIES]


def calculate_spending_trend(monthly_spending: Mapping[str, float]) -> SpendingTrend:
    """
    Fit a straight line through equally spaced monthly totals.

    parameters:
    - monthly_spending: mapping – month -> total, in chronological order.

    returns:
    - dict – {"trend", "slope", "projection"}; projection is the fitted value at the next month.
      Fewer than two months gives {"stable", 0, 0}.
    """
    values = list(monthly_spending.values())
    if len(values) < 2:
        return {"trend": "stable", "slope": 0.0, "projection": 0.0}

    slope, intercept = linear_fit(values)
    if slope > TREND_SLOPE_LIMIT:
        trend = "increasing"
    elif slope < -TREND_SLOPE_LIMIT:
        trend = "decreasing"
    else:
        trend = "stable"
    return {"trend": trend, "slope": slope, "projection": slope * len(values) + intercept}


def _cadence(avg_gap_days: float) -> str:
    if avg_gap_days < 2:
        return "daily"
    if avg_gap_days < 10:
        return "weekly"
    if avg_gap_days < 35:
        return "monthly"
    return "irregular"


def identify_recurring_transactions(
    transactions: Iterable[Transaction],
    min_occurrences: int = 3,
) -> List[RecurringCharge]:
    """
    Find merchants charged the same amount repeatedly (subscriptions, rent, memberships).

    A merchant is recurring when it has at least `min_occurrences` debits and every amount is
    within 0.01 of the first one. Cadence comes from the mean whole-day gap between charges.
    """
    by_merchant: Dict[str, List[Transaction]] = {}
    for t in transactions:
        if t.merchant and t.type == "debit":
            by_merchant.setdefault(t.merchant, []).append(t)

    recurring: List[RecurringCharge] = []
    for merchant, items in by_merchant.items():
        if len(items) < min_occurrences:
            continue
        first = items[0].amount
        if not all(abs(t.amount - first) < RECURRING_AMOUNT_TOLERANCE for t in items):
            continue

        dates = sorted(t.date for t in items)
        gaps = [int((b - a).total_seconds() // 86400) for a, b in zip(dates, dates[1:])]
        avg_gap = sum(gaps) / len(gaps) if gaps else 0.0

        recurring.append({
            "merchant": merchant,
            "amount": first,
            "frequency": _cadence(avg_gap),
            "count": len(items),
        })
    return recurring


def suggest_budgets(spending_by_category: Iterable[CategorySpending]) -> List[BudgetSuggestion]:
    """Budget per category: historical total plus a 15% buffer, rounded up."""
    return [
        {"category": c["category"], "suggestedBudget": ceil_money(c["total"], BUDGET_BUFFER)}
        for c in spending_by_category
    ]
