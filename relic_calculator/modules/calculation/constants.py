"""
Calculation defaults.

Every value here is the fallback passed to `ConfigManager.get`; the YAML
files under `config/` override them.
"""

MAX_RELIC_SELECTION = 9

BASE_MULTIPLIER = 1.0

# Synergy weights, in multiplier units per group member
CATEGORY_SYNERGY_WEIGHT = 0.15
EFFECT_SYNERGY_WEIGHT = 0.10
MIN_SYNERGY_GROUP_SIZE = 2

ENVIRONMENT_BONUS_PER_TAG = 0.03

RESULT_CACHE_TTL_SECONDS = 600.0
RESULT_CACHE_MAX_SIZE = 1000

MULTIPLIER_PRECISION = 2
DIFFICULTY_PRECISION = 1

# Fallback path
FALLBACK_CONTRIBUTION_PER_RELIC = 0.1
FALLBACK_DIFFICULTY_PER_RELIC = 0.5
FALLBACK_MAX_DIFFICULTY = 5.0
