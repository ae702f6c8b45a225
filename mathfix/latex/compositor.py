from __future__ import annotations

from typing import Iterable, Mapping

from .models import FixStatus, Formula, FormulaFix


def apply_accepted(
    original_content: str,
    formulas: Iterable[Formula],
    fixes: Mapping[str, FormulaFix],
) -> str:
    """
    Rewrite `original_content` with every accepted fix.

    Replacements run from the last span to the first, so offsets of spans
    not yet replaced still point into unchanged text.
    """
    accepted: list[tuple[Formula, FormulaFix]] = []
    for formula in formulas:
        fix = fixes.get(formula.id)
        if fix is not None and fix.status == FixStatus.ACCEPTED:
            accepted.append((formula, fix))

    if not accepted:
        return original_content

    accepted.sort(key=lambda pair: pair[0].start_offset, reverse=True)
    content = original_content
    for formula, fix in accepted:
        content = content[: formula.start_offset] + fix.fixed_with_delimiters + content[formula.end_offset :]
    return content
