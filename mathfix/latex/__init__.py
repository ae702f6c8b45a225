from .compositor import apply_accepted
from .delimiters import is_display_mode, unwrap_delimiters, wrap_with_delimiters
from .models import DelimiterType, FixStatus, Formula, FormulaFix, ValidationResult
from .registry import MANUAL_PROVENANCE, FixRegistry, UnknownFormulaError
from .scanner import extract_formulas
from .validator import MathMLRenderer, MathRenderError, ValidationCache, Validator
from .worker import ValidationWorker

__all__ = [
    "DelimiterType",
    "FixRegistry",
    "FixStatus",
    "Formula",
    "FormulaFix",
    "MANUAL_PROVENANCE",
    "MathMLRenderer",
    "MathRenderError",
    "UnknownFormulaError",
    "ValidationCache",
    "ValidationResult",
    "ValidationWorker",
    "Validator",
    "apply_accepted",
    "extract_formulas",
    "is_display_mode",
    "unwrap_delimiters",
    "wrap_with_delimiters",
]
