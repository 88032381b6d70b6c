from typing import TypedDict, Literal, Optional, List, Dict

from datetime import datetime

Risk = Literal["conservative", "moderate", "aggressive"]
TxnType = Literal["debit", "credit", "transfer", "fee"]
AccountType = Literal["checking", "savings", "investment", "credit"]
AssetType = Literal["stock", "bond", "etf", "staking", "yield", "insurance"]
AssetClass = Literal["traditional", "longevity"]
IdleSeverity = Literal["low", "medium", "high", "critical"]
AnomalySeverity = Literal["low", "medium", "high"]
ViolationSeverity = Literal["info", "warning", "critical"]
VolatilityStatus = Literal["normal", "elevated", "warning", "breach"]
Trend = Literal["increasing", "decreasing", "stable"]
Frequency = Literal["daily", "weekly", "monthly", "irregular"]
ExecutionStatus = Literal["pending", "executing", "completed", "failed"]


# -------------------- Transaction statistics -------------------- #

class CategorySpending(TypedDict):
    category: str
    total: float
    count: int
    percentage: float
    averageTransaction: float

class Anomaly(TypedDict):
    type: Literal["high_value", "unusual_category", "rapid_succession", "weekend_spending"]
    severity: AnomalySeverity
    description: str
    transactionId: str

class DateRange(TypedDict):
    start: Optional[datetime]
    end: Optional[datetime]

class LargestTransaction(TypedDict, total=False):
    amount: float
    merchant: Optional[str]
    date: Optional[datetime]
    transactionId: Optional[str]

class MerchantCount(TypedDict):
    merchant: str
    count: int

class TransactionAnalysis(TypedDict):
    totalTransactions: int
    dateRange: DateRange
    totalSpending: float
    totalIncome: float
    netCashFlow: float
    averageTransaction: float
    largestTransaction: LargestTransaction
    spendingByCategory: List[CategorySpending]
    anomalies: List[Anomaly]
    merchantFrequency: List[MerchantCount]

class SpendingTrend(TypedDict):
    trend: Trend
    slope: float
    projection: float

class RecurringCharge(TypedDict):
    merchant: str
    amount: float
    frequency: Frequency
    count: int

class BudgetSuggestion(TypedDict):
    category: str
    suggestedBudget: int


# -------------------- Idle capital -------------------- #

class AllocationRecommendation(TypedDict):
    assetType: str
    percentageAllocation: float
    expectedAPY: float
    rationale: str

class IdleCapitalAnalysis(TypedDict):
    accountId: str
    accountType: AccountType
    balance: float
    inactivityDays: int
    idleRatio: float
    idleAmount: float
    severity: IdleSeverity
    recommendations: List[AllocationRecommendation]
    estimatedAnnualYield: float

class PortfolioIdleCapital(TypedDict):
    totalBalance: float
    totalIdleAmount: float
    idlePercentage: float
    accountAnalysis: List[IdleCapitalAnalysis]
    aggregatedRecommendations: Dict[str, float]
    estimatedTotalAnnualYield: float
    highPriorityAccounts: List[IdleCapitalAnalysis]

class PlanItem(TypedDict):
    assetType: str
    amount: float

class AllocationPlan(TypedDict):
    actionItems: List[str]
    expectedMonthlyYield: float
    implementation: List[PlanItem]


# -------------------- Risk score -------------------- #

class ScoreComponents(TypedDict):
    volatilityComponent: float
    idleComponent: float
    incomeComponent: float
    preferenceComponent: float

class RiskScoreResult(TypedDict):
    overallRiskScore: int
    riskProfile: Risk
    monthlySpending: float
    spendingVolatility: float
    idleCapitalRatio: float
    incomeStability: float
    components: ScoreComponents
    volatilityStatus: VolatilityStatus
    rebalanceRecommended: bool
    explanation: str
    explanationSource: Literal["ok", "fallback"]


# -------------------- Allocation & rebalance -------------------- #

class Allocation(TypedDict):
    traditional: float
    longevity: float

class Drift(TypedDict):
    traditionDrift: float
    longevityDrift: float

class ProposedChange(TypedDict):
    assetId: str
    currentAllocation: float
    targetAllocation: float
    action: Literal["buy", "sell"]
    amount: float

class RebalanceRecommendation(TypedDict):
    shouldRebalance: bool
    driftPercentage: float
    volatility: float
    triggers: List[str]
    reason: str
    proposedChanges: List[ProposedChange]

class TradeInstruction(TypedDict):
    action: Literal["buy", "sell"]
    assetClass: AssetClass
    assetType: str
    targetAmount: float
    estimatedPrice: float
    estimatedCost: float

class RiskCheck(TypedDict):
    name: str
    threshold: float
    current: float
    passed: bool
    message: str

class RebalanceProposal(TypedDict):
    recommendation: RebalanceRecommendation
    oldAllocation: Allocation
    newAllocation: Allocation
    trades: List[TradeInstruction]
    riskChecks: List[RiskCheck]
    approved: bool
    status: ExecutionStatus

class RebalanceExecution(TypedDict):
    id: str
    userId: str
    timestamp: datetime
    oldAllocation: Allocation
    newAllocation: Allocation
    trades: List[TradeInstruction]
    totalCost: float
    estimatedTime: int
    riskGovernanceChecks: List[RiskCheck]
    approved: bool
    status: ExecutionStatus
    orderIds: List[str]
    error: Optional[str]


# -------------------- Compliance -------------------- #

class PolicyCheck(TypedDict):
    name: str
    compliant: bool
    message: str

class ComplianceViolation(TypedDict):
    severity: ViolationSeverity
    policy: str
    description: str
    remediation: str
    timestamp: datetime

class ComplianceReport(TypedDict):
    timestamp: datetime
    userId: str
    checks: List[PolicyCheck]
    overallCompliant: bool
    violations: List[ComplianceViolation]
    recommendations: List[str]

class AuditEvent(TypedDict, total=False):
    id: str
    userId: str
    action: str
    entityType: str
    entityId: str
    oldValues: Dict[str, object]
    newValues: Dict[str, object]
    riskGovernanceCheckPassed: bool
    timestamp: datetime
    ipAddress: Optional[str]

class Eligibility(TypedDict):
    eligible: bool
    restrictions: List[str]
    recommendations: List[str]

class SuggestedTrade(TypedDict):
    action: Literal["buy", "sell"]
    asset: str
    amount: float

class RebalanceAdvice(TypedDict):
    shouldRebalance: bool
    driftPercentage: float
    reason: str
    recommendation: str
    suggestedTrades: List[SuggestedTrade]
