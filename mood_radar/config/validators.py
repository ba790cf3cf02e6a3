"""Shared validators for Pydantic config models.

This module provides common validation utilities that reduce code
duplication across configuration models:
- Weight sum validation
- Domain list normalization
"""

from typing import Any


def validate_weights_sum(
    values: dict[str, float],
    tolerance: float = 0.01,
    expected_sum: float = 1.0,
) -> None:
    """Validate that numeric values sum to expected value.

    Args:
        values: Dictionary of field names to weight values
        tolerance: Allowed deviation from expected_sum
        expected_sum: Expected sum of all weights

    Raises:
        ValueError: If sum deviates from expected by more than tolerance
    """
    total = sum(values.values())
    if abs(total - expected_sum) > tolerance:
        raise ValueError(
            f"Weights must sum to {expected_sum} (got {total:.2f}). " f"Values: {values}"
        )


def normalize_domain_list(value: Any) -> list[str]:
    """Normalize a list of domains to bare lowercase hostnames.

    Handles None, single strings, and lists. Leading "www." and
    surrounding dots/whitespace are stripped; empty entries are dropped.

    Args:
        value: Input value (None, str, or list[str])

    Returns:
        List of normalized domains
    """
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []

    domains: list[str] = []
    for item in value:
        if not isinstance(item, str):
            continue
        domain = item.strip().lower().strip(".")
        if domain.startswith("www."):
            domain = domain[4:]
        if domain and domain not in domains:
            domains.append(domain)
    return domains
