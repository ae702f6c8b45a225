from __future__ import annotations

from typing import Iterable, Iterator, Optional

from .delimiters import is_display_mode, wrap_with_delimiters
from .models import FixStatus, Formula, FormulaFix
from .validator import Validator

MANUAL_PROVENANCE = "manual"


class UnknownFormulaError(KeyError):
    pass


class FixRegistry:
    """
    At most one FormulaFix per formula id, for one document version.

    Status moves pending -> accepted or pending -> rejected. A new proposal
    replaces whatever was stored and resets it to pending.
    """

    def __init__(self, formulas: Iterable[Formula], validator: Validator) -> None:
        self._formulas: dict[str, Formula] = {f.id: f for f in formulas}
        self._validator = validator
        self._fixes: dict[str, FormulaFix] = {}

    def propose(self, formula_id: str, fixed_raw: str, provenance: str) -> FormulaFix:
        formula = self._formulas.get(formula_id)
        if formula is None:
            raise UnknownFormulaError(formula_id)
        result = self._validator.validate(fixed_raw, is_display_mode(formula.delimiter_type))
        fix = FormulaFix(
            formula_id=formula_id,
            original_raw=formula.raw,
            fixed_raw=fixed_raw,
            fixed_with_delimiters=wrap_with_delimiters(fixed_raw, formula.delimiter_type),
            fixed_is_valid=result.success,
            fixed_error_message=result.error_message,
            status=FixStatus.PENDING,
            provenance=provenance,
        )
        self._fixes[formula_id] = fix
        return fix

    def _set_status(self, formula_id: str, status: FixStatus) -> None:
        fix = self._fixes.get(formula_id)
        if fix is None or fix.status != FixStatus.PENDING:
            return
        self._fixes[formula_id] = fix.model_copy(update={"status": status})

    def accept(self, formula_id: str) -> None:
        self._set_status(formula_id, FixStatus.ACCEPTED)

    def reject(self, formula_id: str) -> None:
        self._set_status(formula_id, FixStatus.REJECTED)

    def accept_all(self, *, only_valid: bool = False) -> int:
        """Accept pending fixes; with `only_valid`, skip ones that still fail to render."""
        n = 0
        for fid, fix in list(self._fixes.items()):
            if fix.status != FixStatus.PENDING:
                continue
            if only_valid and not fix.fixed_is_valid:
                continue
            self._fixes[fid] = fix.model_copy(update={"status": FixStatus.ACCEPTED})
            n += 1
        return n

    def reject_all(self) -> int:
        n = 0
        for fid, fix in list(self._fixes.items()):
            if fix.status == FixStatus.PENDING:
                self._fixes[fid] = fix.model_copy(update={"status": FixStatus.REJECTED})
                n += 1
        return n

    def get(self, formula_id: str) -> Optional[FormulaFix]:
        return self._fixes.get(formula_id)

    def formula(self, formula_id: str) -> Optional[Formula]:
        return self._formulas.get(formula_id)

    def snapshot(self) -> dict[str, FormulaFix]:
        return dict(self._fixes)

    def with_status(self, status: FixStatus) -> list[FormulaFix]:
        return [f for f in self._fixes.values() if f.status == status]

    def __contains__(self, formula_id: object) -> bool:
        return formula_id in self._fixes

    def __len__(self) -> int:
        return len(self._fixes)

    def __iter__(self) -> Iterator[FormulaFix]:
        return iter(list(self._fixes.values()))
