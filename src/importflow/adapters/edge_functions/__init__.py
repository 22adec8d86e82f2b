"""Edge-function adapters (remote document analysis)."""

from __future__ import annotations

from .client import AgreementExtractionOracle, EdgeFunctionClient, EdgeFunctionError
from .translator import translate_analysis

__all__ = [
    "AgreementExtractionOracle",
    "EdgeFunctionClient",
    "EdgeFunctionError",
    "translate_analysis",
]
