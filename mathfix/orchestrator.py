from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from .document import DocumentSession
from .latex.models import Formula, FormulaFix
from .llm import FixFormulaRequest, RepairClient

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_CHARS = 200


class RepairInFlightError(RuntimeError):
    pass


@dataclass(frozen=True)
class FixOutcome:
    formula_id: str
    fix: Optional[FormulaFix] = None
    error: Optional[Exception] = None
    stale: bool = False

    @property
    def ok(self) -> bool:
        return self.fix is not None


def surrounding_context(content: str, formula: Formula, chars: int = DEFAULT_CONTEXT_CHARS) -> str:
    start = max(0, formula.start_offset - chars)
    end = min(len(content), formula.end_offset + chars)
    return content[start:end]


class FixOrchestrator:
    """
    Runs repair requests for invalid formulas and stores the results as
    pending fixes. One request per formula at a time; batches run in order.
    """

    def __init__(
        self,
        session: DocumentSession,
        client: RepairClient,
        *,
        context_chars: int = DEFAULT_CONTEXT_CHARS,
    ) -> None:
        self.session = session
        self.client = client
        self.context_chars = max(0, int(context_chars))
        self._in_flight: set[str] = set()
        self._lock = threading.Lock()

    def is_in_flight(self, formula_id: str) -> bool:
        with self._lock:
            return formula_id in self._in_flight

    @property
    def in_flight(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._in_flight)

    def _belongs_to_session(self, formula: Formula) -> bool:
        current = self.session.fixes.formula(formula.id)
        return (
            current is not None
            and current.start_offset == formula.start_offset
            and current.end_offset == formula.end_offset
            and current.raw_with_delimiters == formula.raw_with_delimiters
        )

    def fix_formula(self, formula: Formula, *, epoch: Optional[int] = None) -> Optional[FormulaFix]:
        """
        Ask the repair client for a replacement and propose it.

        `epoch` is the document version the formula was taken from; it
        defaults to the current one. Returns None if that version is no
        longer loaded, before or after the request. Provider failures
        propagate.
        """
        if epoch is None:
            epoch = self.session.epoch
        if epoch != self.session.epoch or not self._belongs_to_session(formula):
            logger.debug("skipping repair for %s from superseded epoch %d", formula.id, epoch)
            return None

        with self._lock:
            if formula.id in self._in_flight:
                raise RepairInFlightError(f"repair already running for {formula.id}")
            self._in_flight.add(formula.id)

        try:
            request = FixFormulaRequest(
                original_latex=formula.raw,
                error_message=formula.error_message or "Unknown error",
                context=surrounding_context(
                    self.session.document.original_content, formula, self.context_chars
                ),
                delimiter_type=formula.delimiter_type.value,
            )
            response = self.client.fix_formula(request)
            if epoch != self.session.epoch or not self._belongs_to_session(formula):
                logger.debug("discarding repair for %s from superseded epoch %d", formula.id, epoch)
                return None
            provenance = f"{self.client.provider_name}:{response.model}"
            return self.session.fixes.propose(formula.id, response.fixed_latex, provenance)
        finally:
            with self._lock:
                self._in_flight.discard(formula.id)

    def fix_all(self, formulas: list[Formula]) -> list[FixOutcome]:
        """
        Repair each formula in order; a failure is recorded and the batch moves on.

        Once the document is replaced, the remaining formulas are reported
        stale without contacting the repair client.
        """
        epoch = self.session.epoch
        outcomes: list[FixOutcome] = []
        for formula in formulas:
            if epoch != self.session.epoch:
                outcomes.append(FixOutcome(formula_id=formula.id, stale=True))
                continue
            try:
                fix = self.fix_formula(formula, epoch=epoch)
            except Exception as e:  # noqa: BLE001
                logger.warning("repair failed for %s (line %d): %s", formula.id, formula.line_number, e)
                outcomes.append(FixOutcome(formula_id=formula.id, error=e))
                continue
            outcomes.append(FixOutcome(formula_id=formula.id, fix=fix, stale=fix is None))
        return outcomes
