"""A/B Harness: gated vs ungated cycle comparison."""

from tollgate.harness.ab import (
    ABComparison,
    ABHarness,
    Condition,
    ConditionMetrics,
    print_ab_comparison,
    save_ab_comparison,
)

__all__ = [
    "ABComparison",
    "ABHarness",
    "Condition",
    "ConditionMetrics",
    "print_ab_comparison",
    "save_ab_comparison",
]
