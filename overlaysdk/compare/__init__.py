"""Structural page diff: composite() plus a session that waits for both renders."""

from .compositor import PRIMARY_COLOR, COMPARISON_COLOR, parse_color, ink_mask, composite
from .session import ComparisonSession

__all__ = ["PRIMARY_COLOR", "COMPARISON_COLOR", "parse_color", "ink_mask", "composite", "ComparisonSession"]
