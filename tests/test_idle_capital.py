from datetime import datetime, timedelta

import pytest

from wealthpulse.analytics.idle_capital import (
    analyze_account_idle_capital,
    analyze_portfolio_idle_capital,
    calculate_deployment_timeline,
    generate_allocation_plan,
    idle_ratio_for_inactivity,
)
from wealthpulse.constants.idle_allocation import IDLE_RECOMMENDATIONS
from wealthpulse.model_interface.records import Account

NOW = datetime(2024, 6, 1, 9, 0)


def account(id, type, balance, idle_days):
    return Account(id=id, type=type, balance=balance, last_activity_date=NOW - timedelta(days=idle_days))


@pytest.mark.parametrize("days,ratio", [(0, 0), (6, 0), (7, 21), (10, 30), (29, 50), (30, 50), (40, 58), (89, 75), (90, 100), (400, 100)])
def test_inactivity_curve(days, ratio):
    assert idle_ratio_for_inactivity(days) == pytest.approx(ratio)


def test_recommendation_tables_sum_to_100():
    for recs in IDLE_RECOMMENDATIONS.values():
        assert sum(r["percentageAllocation"] for r in recs) == 100


def test_dormant_savings_account():
    out = analyze_account_idle_capital(account("sav", "savings", 10000, 95), now=NOW)
    assert out["inactivityDays"] == 95
    assert out["idleRatio"] == pytest.approx(70)
    assert out["idleAmount"] == pytest.approx(7000)
    assert out["severity"] == "high"
    assert out["estimatedAnnualYield"] == pytest.approx(327.6)


def test_investment_multiplier_is_clamped():
    out = analyze_account_idle_capital(account("inv", "investment", 1000, 120), now=NOW)
    assert out["idleRatio"] == 100
    assert out["severity"] == "medium"


def test_account_active_today_is_not_idle():
    out = analyze_account_idle_capital(account("chk", "checking", 2500, 0), now=NOW)
    assert out["idleRatio"] == 0
    assert out["idleAmount"] == 0
    assert out["severity"] == "low"
    plan = generate_allocation_plan(out)
    assert plan["actionItems"] == ["Your account is actively invested. No action needed."]
    assert plan["implementation"] == []


def test_allocation_plan_for_dormant_account():
    analysis = analyze_account_idle_capital(account("sav", "savings", 10000, 95), "moderate", now=NOW)
    plan = generate_allocation_plan(analysis)
    assert plan["actionItems"][0] == "Account inactive for 95 days"
    assert "Allocate $2,800 to Staking Pools (6.0% APY)" in plan["actionItems"]
    assert plan["actionItems"][-1] == "Complete allocation in 1-2 business days to start earning yield"
    assert sum(i["amount"] for i in plan["implementation"]) == pytest.approx(7000)
    assert plan["expectedMonthlyYield"] == pytest.approx(327.6 / 12)
    assert not any(i.startswith("Opportunity") for i in plan["actionItems"])


def test_large_idle_amount_gets_opportunity_item():
    analysis = analyze_account_idle_capital(account("chk", "checking", 50000, 100), "aggressive", now=NOW)
    plan = generate_allocation_plan(analysis)
    assert any(i.startswith("Opportunity: allocate $50,000.00") for i in plan["actionItems"])


def test_portfolio_aggregation():
    accounts = [
        account("a", "checking", 30000, 100),
        account("b", "savings", 10000, 95),
        account("c", "checking", 5000, 1),
    ]
    out = analyze_portfolio_idle_capital(accounts, "conservative", NOW)
    assert out["totalBalance"] == 45000
    assert out["totalIdleAmount"] == pytest.approx(37000)
    assert out["idlePercentage"] == pytest.approx(37000 / 45000 * 100)
    assert [a["accountId"] for a in out["highPriorityAccounts"]] == ["a", "b"]
    assert out["aggregatedRecommendations"]["High-Yield Savings"] == pytest.approx(60)


def test_portfolio_with_no_balance_has_zero_idle_percentage():
    out = analyze_portfolio_idle_capital([account("z", "checking", 0, 200)], now=NOW)
    assert out["idlePercentage"] == 0
    empty = analyze_portfolio_idle_capital([], now=NOW)
    assert empty["idlePercentage"] == 0 and empty["aggregatedRecommendations"] == {}


def test_deployment_timeline():
    assert calculate_deployment_timeline("Longevity Insurance") == {
        "daysToActivation": 5,
        "rationale": "Underwriting process and policy issuance",
    }
    assert calculate_deployment_timeline("Unknown")["daysToActivation"] == 3
