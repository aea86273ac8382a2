"""Calculations backing the clinical chart forms."""

from .intake_output import (
    IntakeOutputEntry,
    IntakeOutputRecord,
    IntakeOutputTotals,
    calculate_totals,
    parse_amount,
)

__all__ = [
    "IntakeOutputEntry",
    "IntakeOutputRecord",
    "IntakeOutputTotals",
    "calculate_totals",
    "parse_amount",
]
