from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from .latex.compositor import apply_accepted
from .latex.models import Formula, FormulaFix
from .latex.registry import MANUAL_PROVENANCE, FixRegistry
from .latex.scanner import extract_formulas
from .latex.validator import Validator
from .latex.worker import ValidationWorker

logger = logging.getLogger(__name__)


@dataclass
class Document:
    path: Optional[str] = None
    original_content: str = ""
    current_content: str = ""
    epoch: int = 0
    formulas: list[Formula] = field(default_factory=list)


class DocumentSession:
    """
    Editing state for one open document: its formulas, their fixes and the
    epoch that tags asynchronous work started against it.
    """

    def __init__(self, validator: Validator, worker: Optional[ValidationWorker] = None) -> None:
        self.validator = validator
        self.worker = worker
        self.document = Document()
        self.fixes = FixRegistry([], validator)

    @property
    def epoch(self) -> int:
        return self.document.epoch

    @property
    def formulas(self) -> list[Formula]:
        return self.document.formulas

    @property
    def errors(self) -> list[Formula]:
        return [f for f in self.document.formulas if not f.is_valid]

    def load(self, path: Optional[str], content: str) -> int:
        epoch = self.document.epoch + 1
        self.document = Document(path=path, original_content=content, current_content=content, epoch=epoch)
        self.fixes = FixRegistry([], self.validator)
        if self.worker is not None:
            self.worker.set_epoch(epoch)
        return epoch

    def set_formulas(self, formulas: list[Formula]) -> None:
        self.document.formulas = list(formulas)
        self.fixes = FixRegistry(self.document.formulas, self.validator)

    def analyze(self) -> list[Formula]:
        """Scan and validate the original content; returns the formulas kept."""
        epoch = self.document.epoch
        extracted = extract_formulas(self.document.original_content)
        if self.worker is None:
            validated: Optional[list[Formula]] = self.validator.validate_all(extracted)
        else:
            validated = self.worker.validate_formulas(extracted)
        if validated is None or epoch != self.document.epoch:
            logger.debug("discarding analysis for superseded epoch %d", epoch)
            return []
        self.set_formulas(validated)
        logger.info(
            "found %d formulas (%d invalid) in %s",
            len(validated),
            len(self.errors),
            self.document.path or "<memory>",
        )
        return validated

    def propose_manual(self, formula_id: str, fixed_raw: str) -> FormulaFix:
        return self.fixes.propose(formula_id, fixed_raw, MANUAL_PROVENANCE)

    def apply_accepted_fixes(self) -> str:
        self.document.current_content = apply_accepted(
            self.document.original_content, self.document.formulas, self.fixes.snapshot()
        )
        return self.document.current_content
