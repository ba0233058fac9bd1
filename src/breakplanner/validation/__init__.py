"""Validation module for checking break assignments."""

from breakplanner.validation.validator import LedgerValidator, ValidationError

__all__ = [
    "LedgerValidator",
    "ValidationError",
]
