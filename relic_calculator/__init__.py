"""
Relic calculator: deterministic attack-multiplier calculation for relic
selections, with memoization and dual-path validation against a remote
calculator.
"""

__version__ = "1.0.0"
