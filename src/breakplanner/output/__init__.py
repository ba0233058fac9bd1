"""Output generation for break sheets (text, PDF)."""

from breakplanner.output.pdf_generator import BreakSheetPDFGenerator
from breakplanner.output.text_generator import BreakSheetTextGenerator

__all__ = [
    "BreakSheetPDFGenerator",
    "BreakSheetTextGenerator",
]
