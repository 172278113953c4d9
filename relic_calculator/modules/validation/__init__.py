"""
Dual-path validation: remote calculator client and the validator that
compares local results against it.
"""

from relic_calculator.modules.validation.remote_client import (
    HttpRemoteCalculator,
    RemoteCalculator,
)
from relic_calculator.modules.validation.validator import (
    DualPathValidator,
    ValidationConfig,
    compare_results,
    confidence_score,
    percentage_difference,
    recommend_action,
)

__all__ = [
    "DualPathValidator",
    "ValidationConfig",
    "HttpRemoteCalculator",
    "RemoteCalculator",
    "compare_results",
    "confidence_score",
    "percentage_difference",
    "recommend_action",
]
