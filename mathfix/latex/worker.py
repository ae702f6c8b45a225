from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from .delimiters import is_display_mode
from .models import Formula, ValidationResult
from .validator import Validator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderRequest:
    request_id: int
    epoch: int
    slot: str
    latex: str
    display_mode: bool


@dataclass(frozen=True)
class RenderResponse:
    request_id: int
    epoch: int
    slot: str
    result: ValidationResult


class ValidationWorker:
    """
    Runs validation on a thread pool.

    Every request gets an increasing id and the epoch current at submission.
    Only the latest request per slot, from the current epoch, is applied;
    anything else is dropped when it arrives.
    """

    def __init__(self, validator: Validator, max_workers: int = 4) -> None:
        self._validator = validator
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, min(32, int(max_workers))),
            thread_name_prefix="mathfix-validate",
        )
        self._lock = threading.Lock()
        self._next_id = 0
        self._epoch = 0
        self._latest: dict[str, int] = {}

    @property
    def epoch(self) -> int:
        with self._lock:
            return self._epoch

    def set_epoch(self, epoch: int) -> None:
        with self._lock:
            self._epoch = int(epoch)
            self._latest.clear()

    def submit(self, latex: str, display_mode: bool, *, slot: str) -> Future:
        with self._lock:
            self._next_id += 1
            req = RenderRequest(
                request_id=self._next_id,
                epoch=self._epoch,
                slot=slot,
                latex=latex,
                display_mode=bool(display_mode),
            )
            self._latest[slot] = req.request_id
        return self._executor.submit(self._run, req)

    def _run(self, req: RenderRequest) -> RenderResponse:
        result = self._validator.validate(req.latex, req.display_mode)
        return RenderResponse(request_id=req.request_id, epoch=req.epoch, slot=req.slot, result=result)

    def is_current(self, response: RenderResponse) -> bool:
        with self._lock:
            return response.epoch == self._epoch and self._latest.get(response.slot) == response.request_id

    def result(self, future: Future, timeout: Optional[float] = None) -> Optional[ValidationResult]:
        """Wait for `future`; None if its response was superseded."""
        response: RenderResponse = future.result(timeout=timeout)
        if not self.is_current(response):
            logger.debug(
                "dropping stale validation id=%s slot=%s epoch=%s",
                response.request_id,
                response.slot,
                response.epoch,
            )
            return None
        return response.result

    def validate_formulas(
        self, formulas: list[Formula], timeout: Optional[float] = None
    ) -> Optional[list[Formula]]:
        """
        Validate `formulas` concurrently, keyed by formula id.

        Returns None when any response is stale, which means the document
        they came from has been replaced.
        """
        futures = [
            self.submit(f.raw, is_display_mode(f.delimiter_type), slot=f.id)
            for f in formulas
        ]
        out: list[Formula] = []
        stale = False
        for formula, fut in zip(formulas, futures):
            result = self.result(fut, timeout=timeout)
            if result is None:
                stale = True
                continue
            out.append(
                formula.model_copy(update={"is_valid": result.success, "error_message": result.error_message})
            )
        return None if stale else out

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "ValidationWorker":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()
