PROFILE_BANDS = {
    "conservative": {"min_score": 0,  "max_score": 40},
    "moderate":     {"min_score": 40, "max_score": 65},
    "aggressive":   {"min_score": 65, "max_score": 101},
}

PREFERENCE_BASE = {
    "conservative": 20,
    "moderate":     50,
    "aggressive":   80,
}

SCORE_WEIGHTS = {
    "volatility": 0.35,
    "idle":       0.25,
    "income":     0.25,
    "preference": 0.15,
}

IDLE_PENALTY_FLOOR = 30
VOLATILITY_THRESHOLD = 25
