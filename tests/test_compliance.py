from datetime import datetime, timedelta

import pytest

from wealthpulse.compliance import (
    check_compliance,
    create_audit_event,
    generate_compliance_report_for_filing,
    verify_investment_eligibility,
)
from wealthpulse.constants.policy import CompliancePolicy
from wealthpulse.model_interface.records import InvestorProfile, PortfolioSnapshot

NOW = datetime(2024, 6, 1, 12, 0)


def snapshot(traditional=70, volatility=15, days_since=10, profile="moderate"):
    return PortfolioSnapshot(
        total_value=100000,
        traditional=traditional,
        longevity=100 - traditional,
        volatility=volatility,
        last_rebalance_date=NOW - timedelta(days=days_since),
        risk_profile=profile,
    )


def by_name(report):
    return {c["name"]: c for c in report["checks"]}


def test_healthy_portfolio_is_compliant():
    report = check_compliance("u1", snapshot(), now=NOW)
    assert report["overallCompliant"] is True
    assert len(report["checks"]) == 4
    assert report["violations"] == []
    assert report["recommendations"] == []
    assert report["userId"] == "u1" and report["timestamp"] == NOW


def test_aggressive_profile_with_high_volatility():
    report = check_compliance("u1", snapshot(volatility=30, profile="aggressive"), now=NOW)
    checks = by_name(report)
    assert checks["Portfolio Volatility"]["compliant"] is False
    assert checks["Suitability"]["compliant"] is True
    assert report["overallCompliant"] is False
    assert [(v["policy"], v["severity"]) for v in report["violations"]] == [("Portfolio Volatility", "critical")]


def test_high_volatility_is_unsuitable_for_moderate_profile():
    report = check_compliance("u1", snapshot(volatility=35), now=NOW)
    checks = by_name(report)
    assert checks["Suitability"]["compliant"] is False
    assert checks["Suitability"]["message"] == "Portfolio volatility exceeds risk profile tolerance"
    severities = {v["policy"]: v["severity"] for v in report["violations"]}
    assert severities == {"Portfolio Volatility": "critical", "Suitability": "warning"}


def test_suitability_check_can_be_disabled():
    policy = CompliancePolicy(suitability_check=False, max_portfolio_volatility=50)
    report = check_compliance("u1", snapshot(volatility=35), policy, now=NOW)
    assert report["overallCompliant"] is True


def test_drift_violation_and_recommendations():
    report = check_compliance("u1", snapshot(traditional=77), now=NOW)
    assert by_name(report)["Allocation Drift"]["compliant"] is False
    assert report["violations"][0]["remediation"] == "Perform portfolio rebalancing to restore 70/30 allocation"
    assert "Rebalance portfolio to restore 70/30 allocation" in report["recommendations"]


def test_drift_approaching_ceiling_is_recommended_while_compliant():
    report = check_compliance("u1", snapshot(traditional=74), now=NOW)
    assert report["overallCompliant"] is True
    assert report["recommendations"] == ["Monitor allocation drift closely; consider rebalancing soon"]


def test_rebalance_frequency():
    stale = check_compliance("u1", snapshot(days_since=200), now=NOW)
    assert by_name(stale)["Rebalance Frequency"]["compliant"] is False
    assert by_name(stale)["Rebalance Frequency"]["message"] == "Portfolio has not been rebalanced for 200 days"
    assert "Schedule quarterly portfolio rebalance" in stale["recommendations"]

    edge = check_compliance("u1", snapshot(days_since=180), now=NOW)
    assert by_name(edge)["Rebalance Frequency"]["compliant"] is True


def test_recent_rebalance_recommends_waiting():
    report = check_compliance("u1", snapshot(days_since=3), now=NOW)
    assert report["overallCompliant"] is True
    assert report["recommendations"] == [
        "Last rebalance was 3 days ago; wait at least 7 days between rebalances"
    ]


def test_filing_report_aggregates_reports():
    reports = [
        check_compliance("u1", snapshot(), now=NOW),
        check_compliance("u1", snapshot(volatility=30, profile="aggressive"), now=NOW),
    ]
    text = generate_compliance_report_for_filing("u1", reports, now=NOW)
    assert "Total Compliance Checks: 2" in text
    assert "Compliant Checks: 1" in text
    assert "Total Violations: 1" in text
    assert "[CRITICAL] Portfolio Volatility" in text
    assert "  Portfolio Volatility: 1/2 (50.0%)" in text
    assert "  Suitability: 2/2 (100.0%)" in text


def test_audit_event_shape():
    event = create_audit_event(
        "u1", "rebalance_execution", "portfolio", "rebal_1",
        {"traditional": 76.0}, {"traditional": 70.0}, True, now=NOW,
    )
    assert event["id"].startswith("audit_")
    assert event["timestamp"] == NOW
    assert event["riskGovernanceCheckPassed"] is True
    assert event["ipAddress"] is None


@pytest.mark.parametrize("profile,eligible,restrictions,recommendations", [
    (InvestorProfile(age=30, minimum_balance=50000), True, 0, 0),
    (InvestorProfile(age=17, minimum_balance=50000), False, 1, 0),
    (InvestorProfile(age=30, minimum_balance=500), False, 1, 0),
    (InvestorProfile(age=30, minimum_balance=5000), True, 0, 1),
    (InvestorProfile(age=30, minimum_balance=50000, risk_profile="aggressive"), True, 0, 1),
    (InvestorProfile(age=30, minimum_balance=50000, risk_profile="aggressive", accredited_investor=True), True, 0, 0),
])
def test_investment_eligibility(profile, eligible, restrictions, recommendations):
    out = verify_investment_eligibility(profile)
    assert out["eligible"] is eligible
    assert len(out["restrictions"]) == restrictions
    assert len(out["recommendations"]) == recommendations
