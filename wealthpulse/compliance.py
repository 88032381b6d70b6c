# PURPOSE: Compliance gate: audits a portfolio snapshot against a static policy set and
#          produces checks, violations and heuristic recommendations.
# CONTEXT: Distinct from the pre-execution risk governance in portfolio.rebalancer. Violations
#          are data (severity + remediation), never exceptions. Also hosts audit events, the
#          regulatory filing report and investment eligibility.

from __future__ import annotations
import uuid
from datetime import datetime
from typing import Dict, List, Optional, Sequence

import structlog

from wealthpulse.constants.policy import DEFAULT_COMPLIANCE_POLICY, CompliancePolicy
from wealthpulse.model_interface.records import DEFAULT_TARGET, InvestorProfile, PortfolioSnapshot, TargetAllocation
from wealthpulse.model_interface.types import (
    AuditEvent,
    ComplianceReport,
    ComplianceViolation,
    Eligibility,
    PolicyCheck,
)
from wealthpulse.utils.clock import days_between, now_like
from wealthpulse.utils.stats import safe_pct

log = structlog.get_logger(__name__)

QUARTERLY_DAYS = 90
MIN_ELIGIBLE_AGE = 18
MIN_ACTIVATION_BALANCE = 1000
FULL_ACCESS_BALANCE = 10000


def check_compliance(
    user_id: str,
    snapshot: PortfolioSnapshot,
    policy: CompliancePolicy = DEFAULT_COMPLIANCE_POLICY,
    now: Optional[datetime] = None,
    target: TargetAllocation = DEFAULT_TARGET,
) -> ComplianceReport:
    """
    Audit a portfolio snapshot against the compliance policy.

    checks:
    1) Allocation Drift – max class drift from target within max_allocation_drift (warning)
    2) Portfolio Volatility – volatility within max_portfolio_volatility (critical)
    3) Rebalance Frequency – last rebalance at most 180 days ago (warning)
    4) Suitability – volatility above 30% is only suitable for an aggressive profile (warning)

    returns:
    - ComplianceReport – overallCompliant is the AND of all four checks.
    """
    now = now or now_like(snapshot.last_rebalance_date)
    checks: List[PolicyCheck] = []
    violations: List[ComplianceViolation] = []
    split = f"{target.traditional:g}/{target.longevity:g}"

    def violate(severity, name, description, remediation):
        violations.append({
            "severity": severity,
            "policy": name,
            "description": description,
            "remediation": remediation,
            "timestamp": now,
        })

    drift = max(abs(snapshot.traditional - target.traditional), abs(snapshot.longevity - target.longevity))
    drift_ok = drift <= policy.max_allocation_drift
    checks.append({
        "name": "Allocation Drift",
        "compliant": drift_ok,
        "message": (
            f"Allocation drift {drift:.1f}% is within policy ({policy.max_allocation_drift:g}%)" if drift_ok
            else f"Allocation drift {drift:.1f}% exceeds policy threshold"
        ),
    })
    if not drift_ok:
        violate("warning", "Allocation Drift",
                f"Current allocation drift is {drift:.1f}%, exceeding policy of {policy.max_allocation_drift:g}%",
                f"Perform portfolio rebalancing to restore {split} allocation")

    vol = snapshot.volatility
    vol_ok = vol <= policy.max_portfolio_volatility
    checks.append({
        "name": "Portfolio Volatility",
        "compliant": vol_ok,
        "message": (
            f"Portfolio volatility {vol:.1f}% is within policy ({policy.max_portfolio_volatility:g}%)" if vol_ok
            else f"Portfolio volatility {vol:.1f}% exceeds policy threshold"
        ),
    })
    if not vol_ok:
        violate("critical", "Portfolio Volatility",
                f"Portfolio volatility {vol:.1f}% exceeds policy threshold of {policy.max_portfolio_volatility:g}%",
                "Rebalance toward lower-volatility assets or adjust risk profile")

    days = days_between(snapshot.last_rebalance_date, now)
    freq_ok = days <= policy.max_days_between_rebalances
    checks.append({
        "name": "Rebalance Frequency",
        "compliant": freq_ok,
        "message": (
            f"Portfolio rebalanced {days} days ago" if freq_ok
            else f"Portfolio has not been rebalanced for {days} days"
        ),
    })
    if not freq_ok:
        violate("warning", "Rebalance Frequency",
                f"Portfolio last rebalanced {days} days ago (exceeds 6-month guideline)",
                "Schedule immediate portfolio rebalancing")

    suitable, suitability_msg = True, "Portfolio is suitable for stated risk profile"
    if policy.suitability_check:
        aggressive = snapshot.risk_profile == "aggressive"
        too_volatile = vol > policy.suitability_volatility_limit
        if aggressive and not too_volatile:
            suitability_msg = "Aggressive portfolio suitable for risk profile"
        elif not aggressive and too_volatile:
            suitable, suitability_msg = False, "Portfolio volatility exceeds risk profile tolerance"
    checks.append({"name": "Suitability", "compliant": suitable, "message": suitability_msg})
    if not suitable:
        violate("warning", "Suitability", suitability_msg,
                "Adjust portfolio composition or update risk profile")

    recommendations: List[str] = []
    if not drift_ok:
        recommendations.append(f"Rebalance portfolio to restore {split} allocation")
    if not vol_ok:
        recommendations.append("Reduce portfolio volatility by allocating more to conservative assets")
    if drift > policy.max_allocation_drift * 0.5:
        recommendations.append("Monitor allocation drift closely; consider rebalancing soon")
    if days > QUARTERLY_DAYS:
        recommendations.append("Schedule quarterly portfolio rebalance")
    if 0 <= days < policy.min_rebalance_interval:
        recommendations.append(
            f"Last rebalance was {days} days ago; wait at least {policy.min_rebalance_interval} days "
            "between rebalances"
        )

    overall = drift_ok and vol_ok and freq_ok and suitable
    if not overall:
        log.info("compliance.violations", user_id=user_id, policies=[v["policy"] for v in violations])

    return {
        "timestamp": now,
        "userId": user_id,
        "checks": checks,
        "overallCompliant": overall,
        "violations": violations,
        "recommendations": recommendations,
    }


def create_audit_event(
    user_id: str,
    action: str,
    entity_type: str,
    entity_id: str,
    old_values: Dict[str, object],
    new_values: Dict[str, object],
    risk_governance_check_passed: bool,
    ip_address: Optional[str] = None,
    now: Optional[datetime] = None,
) -> AuditEvent:
    """Record of a compliance-relevant action, ready for the audit store."""
    return {
        "id": f"audit_{uuid.uuid4().hex[:12]}",
        "userId": user_id,
        "action": action,
        "entityType": entity_type,
        "entityId": entity_id,
        "oldValues": old_values,
        "newValues": new_values,
        "riskGovernanceCheckPassed": risk_governance_check_passed,
        "timestamp": now or datetime.now(),
        "ipAddress": ip_address,
    }


def generate_compliance_report_for_filing(
    user_id: str,
    reports: Sequence[ComplianceReport],
    now: Optional[datetime] = None,
) -> str:
    """
    Plain-text aggregate of compliance reports for a regulatory filing.

    Lists every violation, then the pass rate per policy across all reports.
    """
    now = now or datetime.now()
    lines = [
        "=== COMPLIANCE REPORT FOR REGULATORY FILING ===",
        f"User ID: {user_id}",
        f"Report Date: {now.isoformat()}",
        "Period: Last 30 days",
        "",
        "SUMMARY:",
        f"Total Compliance Checks: {len(reports)}",
        f"Compliant Checks: {sum(1 for r in reports if r['overallCompliant'])}",
        f"Total Violations: {sum(len(r['violations']) for r in reports)}",
        "",
        "VIOLATION DETAILS:",
    ]
    for report in reports:
        for v in report["violations"]:
            lines += [
                "",
                f"[{v['severity'].upper()}] {v['policy']} - {v['timestamp'].isoformat()}",
                f"  Description: {v['description']}",
                f"  Remediation: {v['remediation']}",
            ]

    tally: Dict[str, Dict[str, int]] = {}
    for report in reports:
        for check in report["checks"]:
            entry = tally.setdefault(check["name"], {"compliant": 0, "total": 0})
            entry["total"] += 1
            entry["compliant"] += int(check["compliant"])

    lines += ["", "POLICY COMPLIANCE:", ""]
    for name, entry in tally.items():
        pct = safe_pct(entry["compliant"], entry["total"])
        lines.append(f"  {name}: {entry['compliant']}/{entry['total']} ({pct:.1f}%)")

    lines += ["", f"Certification: This report certifies compliance status as of {now.isoformat()}"]
    return "\n".join(lines)


def verify_investment_eligibility(profile: InvestorProfile) -> Eligibility:
    restrictions: List[str] = []
    recommendations: List[str] = []

    if profile.age < MIN_ELIGIBLE_AGE:
        restrictions.append("User must be 18 years or older")

    if profile.minimum_balance < MIN_ACTIVATION_BALANCE:
        restrictions.append("Minimum balance of $1,000 required to activate portfolio")
    elif profile.minimum_balance < FULL_ACCESS_BALANCE:
        recommendations.append("Consider increasing balance to unlock all asset types")

    if profile.risk_profile == "aggressive" and not profile.accredited_investor:
        recommendations.append(
            "Aggressive profile benefits from accredited investor status for alternative assets"
        )

    return {"eligible": not restrictions, "restrictions": restrictions, "recommendations": recommendations}
