from __future__ import annotations

from extractbench.models import ModelPricing


def calculate_cost(
    pricing: ModelPricing | None,
    input_tokens: int,
    output_tokens: int,
) -> float:
    """USD cost for the given token totals; 0 when pricing is unknown."""
    if pricing is None:
        return 0.0
    return (input_tokens / 1_000_000) * pricing.input + (output_tokens / 1_000_000) * pricing.output
