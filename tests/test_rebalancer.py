import asyncio
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from wealthpulse.model_interface.collaborators import TradeExecutor
from wealthpulse.model_interface.records import Asset
from wealthpulse.portfolio.rebalancer import (
    GOVERNANCE_CHECKS,
    calculate_post_rebalance_allocation,
    execute_rebalancing,
    generate_rebalance_trades,
    generate_rebalancing_summary,
    in_market_hours,
    perform_risk_governance_checks,
    propose_rebalance,
)
from wealthpulse.tools.executor import PaperTradeExecutor

NEW_YORK = ZoneInfo("America/New_York")
WEDNESDAY_10AM = datetime(2024, 1, 10, 10, 0, tzinfo=NEW_YORK)
SATURDAY_10AM = datetime(2024, 1, 13, 10, 0, tzinfo=NEW_YORK)


def asset(id, type, value):
    return Asset(id=id, name=id, type=type, quantity=value, current_price=1.0)


def drifted_portfolio():
    return [asset("stk", "stock", 7600), asset("yld", "yield", 1040), asset("ins", "insurance", 1360)]


def by_name(checks):
    return {c["name"]: c for c in checks}


class RefusingExecutor(TradeExecutor):
    async def submit(self, user_id, trades):
        raise AssertionError("trades must not be submitted")


class FailingExecutor(TradeExecutor):
    async def submit(self, user_id, trades):
        raise RuntimeError("broker rejected order")


class HangingExecutor(TradeExecutor):
    async def submit(self, user_id, trades):
        await asyncio.sleep(10)
        return []


def test_trades_are_a_symmetric_pair():
    sell, buy = generate_rebalance_trades(drifted_portfolio())
    assert (sell["action"], sell["assetClass"], sell["assetType"]) == ("sell", "traditional", "Traditional Assets")
    assert (buy["action"], buy["assetClass"], buy["assetType"]) == ("buy", "longevity", "Longevity Assets")
    assert sell["estimatedCost"] == pytest.approx(600) and buy["estimatedCost"] == pytest.approx(600)
    assert sell["estimatedPrice"] == 1.0


def test_underweight_traditional_buys_traditional():
    sell, buy = generate_rebalance_trades([asset("b", "bond", 5000), asset("s", "staking", 5000)])
    assert sell["assetClass"] == "longevity" and buy["assetClass"] == "traditional"
    assert buy["targetAmount"] == pytest.approx(2000)


def test_no_trades_when_on_target():
    assert generate_rebalance_trades([asset("b", "bond", 7000), asset("i", "insurance", 3000)]) == []


def test_post_rebalance_allocation_hits_target():
    assets = drifted_portfolio()
    alloc = calculate_post_rebalance_allocation(assets, generate_rebalance_trades(assets))
    assert alloc["traditional"] == pytest.approx(70)
    assert alloc["longevity"] == pytest.approx(30)


def test_all_governance_checks_pass_for_small_rebalance():
    assets = drifted_portfolio()
    checks = perform_risk_governance_checks(assets, generate_rebalance_trades(assets), now=WEDNESDAY_10AM)
    assert [c["name"] for c in checks] == [
        "Portfolio Volatility", "Trade Size Constraint", "Allocation Target", "Market Hours", "Minimum Balance",
    ]
    assert all(c["passed"] for c in checks)


def test_trade_above_twenty_percent_fails():
    assets = [asset("stk", "stock", 10000)]
    checks = by_name(perform_risk_governance_checks(assets, generate_rebalance_trades(assets), now=WEDNESDAY_10AM))
    assert checks["Trade Size Constraint"]["passed"] is False
    assert checks["Trade Size Constraint"]["current"] == pytest.approx(3000)
    assert checks["Minimum Balance"]["passed"] is True


def test_empty_trade_list_passes_trade_size():
    checks = by_name(perform_risk_governance_checks(drifted_portfolio(), [], now=WEDNESDAY_10AM))
    assert checks["Trade Size Constraint"]["passed"] is True
    assert checks["Trade Size Constraint"]["current"] == 0
    # no trades: the 76/24 drift remains
    assert checks["Allocation Target"]["passed"] is False


def test_minimum_balance_is_checked_after_trades():
    assets = [asset("stk", "stock", 7000), asset("bnd", "bond", 50), asset("stake", "staking", 2950)]
    checks = by_name(perform_risk_governance_checks(assets, generate_rebalance_trades(assets), now=WEDNESDAY_10AM))
    assert checks["Minimum Balance"]["passed"] is False
    assert checks["Minimum Balance"]["current"] == 2


def test_market_hours():
    assert in_market_hours(WEDNESDAY_10AM)
    assert not in_market_hours(SATURDAY_10AM)
    assert not in_market_hours(datetime(2024, 1, 10, 16, 0, tzinfo=NEW_YORK))
    # 15:00 UTC is 10:00 in New York; 22:00 UTC is after the close
    assert in_market_hours(datetime(2024, 1, 10, 15, 0, tzinfo=timezone.utc))
    assert not in_market_hours(datetime(2024, 1, 10, 22, 0, tzinfo=timezone.utc))


def test_proposal_outside_market_hours_stays_pending():
    proposal = propose_rebalance(drifted_portfolio(), now=SATURDAY_10AM)
    assert proposal["status"] == "pending"
    assert proposal["approved"] is False
    assert by_name(proposal["riskChecks"])["Market Hours"]["passed"] is False
    assert len(proposal["trades"]) == 2


def test_proposal_noop_has_no_trades():
    proposal = propose_rebalance([asset("b", "bond", 7000), asset("i", "insurance", 3000)], now=WEDNESDAY_10AM)
    assert proposal["recommendation"]["shouldRebalance"] is False
    assert proposal["trades"] == [] and proposal["riskChecks"] == []
    assert proposal["approved"] is False


async def test_approved_execution_completes():
    assets = drifted_portfolio()
    proposal = propose_rebalance(assets, now=WEDNESDAY_10AM)
    assert proposal["approved"] is True
    executor = PaperTradeExecutor()
    execution = await execute_rebalancing(
        "u1", assets, proposal["trades"], proposal["riskChecks"], executor, now=WEDNESDAY_10AM
    )
    assert execution["status"] == "completed"
    assert execution["approved"] is True
    assert execution["id"].startswith("rebal_")
    assert len(execution["orderIds"]) == 2 and set(execution["orderIds"]) == set(executor.orders)
    assert execution["totalCost"] == pytest.approx(1200)
    assert execution["estimatedTime"] == 4
    assert execution["newAllocation"]["traditional"] == pytest.approx(70)


async def test_unapproved_execution_is_never_submitted():
    assets = drifted_portfolio()
    trades = generate_rebalance_trades(assets)
    checks = perform_risk_governance_checks(assets, trades, now=SATURDAY_10AM)
    execution = await execute_rebalancing("u1", assets, trades, checks, RefusingExecutor(), now=SATURDAY_10AM)
    assert execution["status"] == "pending"
    assert execution["approved"] is False
    assert execution["orderIds"] == []


async def test_approved_flag_matches_checks():
    assets = drifted_portfolio()
    trades = generate_rebalance_trades(assets)
    for now in (WEDNESDAY_10AM, SATURDAY_10AM):
        checks = perform_risk_governance_checks(assets, trades, now=now)
        execution = await execute_rebalancing("u1", assets, trades, checks, now=now)
        assert execution["approved"] == all(c["passed"] for c in execution["riskGovernanceChecks"])


async def test_executor_error_marks_failed():
    assets = drifted_portfolio()
    proposal = propose_rebalance(assets, now=WEDNESDAY_10AM)
    execution = await execute_rebalancing("u1", assets, proposal["trades"], proposal["riskChecks"], FailingExecutor())
    assert execution["status"] == "failed"
    assert "broker rejected order" in execution["error"]


async def test_executor_timeout_marks_failed():
    assets = drifted_portfolio()
    proposal = propose_rebalance(assets, now=WEDNESDAY_10AM)
    execution = await execute_rebalancing(
        "u1", assets, proposal["trades"], proposal["riskChecks"], HangingExecutor(), timeout=0.05
    )
    assert execution["status"] == "failed"
    assert "timed out" in execution["error"]


async def test_summary_text():
    assets = drifted_portfolio()
    proposal = propose_rebalance(assets, now=WEDNESDAY_10AM)
    execution = await execute_rebalancing(
        "u1", assets, proposal["trades"], proposal["riskChecks"], PaperTradeExecutor(), now=WEDNESDAY_10AM
    )
    text = generate_rebalancing_summary(execution)
    assert "=== REBALANCING SUMMARY ===" in text
    assert "Status: COMPLETED" in text
    assert "Traditional: 76.0% -> 70.0%" in text
    assert "SELL Traditional Assets: $600" in text
    assert "[PASS] Market Hours" in text
    assert text.endswith("APPROVED: YES")


def test_naive_times_are_read_as_utc():
    # Monday 17:00 on a UTC host is noon in New York
    assert in_market_hours(datetime(2024, 1, 8, 17, 0))
    # 10:00 UTC is 05:00 in New York, before the open
    assert not in_market_hours(datetime(2024, 1, 10, 10, 0))


async def test_execution_without_guardrails_is_not_approved():
    assets = [asset("stk", "stock", 9000), asset("ins", "insurance", 1000)]
    trades = generate_rebalance_trades(assets)
    execution = await execute_rebalancing("u1", assets, trades, [], RefusingExecutor(), now=WEDNESDAY_10AM)
    assert execution["approved"] is False
    assert execution["status"] == "pending"
    assert execution["orderIds"] == []


async def test_execution_with_partial_checks_is_not_approved():
    assets = drifted_portfolio()
    trades = generate_rebalance_trades(assets)
    checks = perform_risk_governance_checks(assets, trades, now=WEDNESDAY_10AM)
    partial = [c for c in checks if c["name"] != "Market Hours"]
    assert all(c["passed"] for c in partial)
    execution = await execute_rebalancing("u1", assets, trades, partial, RefusingExecutor(), now=WEDNESDAY_10AM)
    assert execution["approved"] is False
    assert execution["status"] == "pending"


async def test_execution_evaluates_guardrails_when_none_given():
    assets = drifted_portfolio()
    trades = generate_rebalance_trades(assets)
    executor = PaperTradeExecutor()
    done = await execute_rebalancing("u1", assets, trades, executor=executor, now=WEDNESDAY_10AM)
    assert done["status"] == "completed"
    assert [c["name"] for c in done["riskGovernanceChecks"]] == list(GOVERNANCE_CHECKS)

    # same trade shape on a Saturday: the market-hours guardrail holds it back
    lopsided = [asset("stk", "stock", 9000), asset("ins", "insurance", 1000)]
    held = await execute_rebalancing(
        "u1", lopsided, generate_rebalance_trades(lopsided), executor=RefusingExecutor(), now=SATURDAY_10AM
    )
    assert held["status"] == "pending"
    failed = {c["name"] for c in held["riskGovernanceChecks"] if not c["passed"]}
    assert "Market Hours" in failed
