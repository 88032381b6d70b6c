TRADITIONAL_TYPES = ("stock", "bond", "etf")
LONGEVITY_TYPES = ("staking", "yield", "insurance")

# Annualised volatility (%) assumed per asset type when weighting a portfolio.
TYPE_VOLATILITY = {
    "stock":     18,
    "bond":      8,
    "etf":       15,
    "staking":   45,
    "yield":     35,
    "insurance": 5,
}
DEFAULT_TYPE_VOLATILITY = 20

TARGET_TRADITIONAL = 70.0
TARGET_LONGEVITY = 30.0

# Template holdings used when building a starter portfolio for a risk profile.
PROFILE_WEIGHTS = {
    "conservative": {"bond": 0.40, "stock": 0.20, "etf": 0.10, "staking": 0.15, "yield": 0.10, "insurance": 0.05},
    "moderate":     {"bond": 0.25, "stock": 0.30, "etf": 0.15, "staking": 0.15, "yield": 0.10, "insurance": 0.05},
    "aggressive":   {"bond": 0.10, "stock": 0.45, "etf": 0.15, "staking": 0.15, "yield": 0.10, "insurance": 0.05},
}

ASSET_TEMPLATES = [
    {"key": "bond",      "name": "US Treasury Bonds ETF", "volatility": 8},
    {"key": "stock",     "name": "S&P 500 Index",         "volatility": 18},
    {"key": "etf",       "name": "Diversified ETF",       "volatility": 15},
    {"key": "staking",   "name": "Ethereum Staking",      "volatility": 45},
    {"key": "yield",     "name": "DeFi Yield Farming",    "volatility": 35},
    {"key": "insurance", "name": "Longevity Insurance",   "volatility": 5},
]
TEMPLATE_UNIT_PRICE = 100.0

# Growth assumptions for the projection helper.
LONGEVITY_APY = {"staking": 0.06, "yield": 0.15, "insurance": 0.04}
DEFAULT_LONGEVITY_APY = 0.05
TRADITIONAL_APY = 0.05
