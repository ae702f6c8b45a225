from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class DelimiterType(str, Enum):
    INLINE_DOLLAR = "inline-dollar"
    BLOCK_DOLLAR = "block-dollar"
    INLINE_PAREN = "inline-paren"
    BLOCK_BRACKET = "block-bracket"


class FixStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Formula(BaseModel):
    """One math span found in a document version. Offsets are half-open."""

    model_config = ConfigDict(frozen=True)

    id: str
    raw: str
    raw_with_delimiters: str
    delimiter_type: DelimiterType
    start_offset: int
    end_offset: int
    line_number: int
    is_valid: bool = True
    error_message: Optional[str] = None


class FormulaFix(BaseModel):
    model_config = ConfigDict(frozen=True)

    formula_id: str
    original_raw: str
    fixed_raw: str
    fixed_with_delimiters: str
    fixed_is_valid: bool
    fixed_error_message: Optional[str] = None
    status: FixStatus = FixStatus.PENDING
    provenance: str = ""  # "manual" or "<provider>:<model>"


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    error_message: Optional[str] = None
    html: Optional[str] = None
