# Where idle cash should go, per risk profile. Percentages sum to 100 within each profile.
IDLE_RECOMMENDATIONS = {
    "conservative": [
        {"assetType": "High-Yield Savings", "percentageAllocation": 60, "expectedAPY": 4.5,
         "rationale": "Safe, liquid option with competitive returns matching inflation"},
        {"assetType": "Treasury Bonds", "percentageAllocation": 30, "expectedAPY": 4.8,
         "rationale": "Government-backed securities with predictable returns"},
        {"assetType": "Short-Term Bond Fund", "percentageAllocation": 10, "expectedAPY": 4.2,
         "rationale": "Diversified bond exposure with lower volatility"},
    ],
    "moderate": [
        {"assetType": "Staking Pools", "percentageAllocation": 40, "expectedAPY": 6.0,
         "rationale": "Balanced yield generation through cryptographic staking protocols"},
        {"assetType": "Dividend ETFs", "percentageAllocation": 35, "expectedAPY": 3.5,
         "rationale": "Market-linked returns with regular income distribution"},
        {"assetType": "Fixed Income", "percentageAllocation": 15, "expectedAPY": 4.5,
         "rationale": "Capital preservation with stable income"},
        {"assetType": "Longevity Insurance", "percentageAllocation": 10, "expectedAPY": 3.8,
         "rationale": "Life expectancy-linked returns for retirement optimization"},
    ],
    "aggressive": [
        {"assetType": "Yield Farming", "percentageAllocation": 35, "expectedAPY": 12.0,
         "rationale": "Higher yield generation through decentralized finance strategies"},
        {"assetType": "Growth ETFs", "percentageAllocation": 40, "expectedAPY": 8.5,
         "rationale": "Equity exposure for capital appreciation and dividend growth"},
        {"assetType": "Staking", "percentageAllocation": 15, "expectedAPY": 7.0,
         "rationale": "Cryptocurrency staking for enhanced returns"},
        {"assetType": "Small Cap Index", "percentageAllocation": 10, "expectedAPY": 9.0,
         "rationale": "High-growth potential for long-term wealth building"},
    ],
}

# Settlement time before deployed cash starts earning.
DEPLOYMENT_TIMELINES = {
    "High-Yield Savings":   {"days": 1, "rationale": "Immediate activation with same-day settlement"},
    "Treasury Bonds":       {"days": 3, "rationale": "Settlement through US Treasury direct system"},
    "Dividend ETFs":        {"days": 1, "rationale": "Immediate activation through securities exchange"},
    "Staking Pools":        {"days": 2, "rationale": "Smart contract deployment and confirmation"},
    "Yield Farming":        {"days": 1, "rationale": "Direct protocol interaction with blockchain confirmation"},
    "Longevity Insurance":  {"days": 5, "rationale": "Underwriting process and policy issuance"},
    "Short-Term Bond Fund": {"days": 2, "rationale": "Fund purchase and settlement"},
    "Growth ETFs":          {"days": 1, "rationale": "Immediate activation through securities exchange"},
    "Small Cap Index":      {"days": 1, "rationale": "Immediate activation through index fund"},
    "Fixed Income":         {"days": 3, "rationale": "Bond settlement and portfolio allocation"},
}
DEFAULT_TIMELINE = {"days": 3, "rationale": "Standard settlement period"}

# Idle amount thresholds (currency units) for severity buckets.
SEVERITY_LIMITS = (
    (1000, "low"),
    (5000, "medium"),
    (20000, "high"),
)
