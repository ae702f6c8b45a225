from __future__ import annotations

import logging
import re
import threading
from typing import Optional, Protocol

from latex2mathml.converter import convert as latex2mathml_convert

from .delimiters import is_display_mode
from .models import Formula, ValidationResult

logger = logging.getLogger(__name__)

DEFAULT_CACHE_SIZE = 800

# An unknown command comes back verbatim inside a token element.
_UNKNOWN_COMMAND_RE = re.compile(r"<(?:mi|mo|mn|mtext)\b[^>]*>\s*\\([A-Za-z]+)")


class MathRenderError(Exception):
    """Raised by a renderer when a formula does not typeset."""


class MathRenderer(Protocol):
    def render(self, latex: str, display_mode: bool) -> str:
        """Return rendered markup, or raise MathRenderError with a readable message."""
        ...


def _check_braces(latex: str) -> None:
    depth = 0
    i = 0
    n = len(latex)
    while i < n:
        ch = latex[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth < 0:
                raise MathRenderError(f"Unexpected '}}' at position {i}")
        i += 1
    if depth > 0:
        raise MathRenderError("Expected '}', got 'EOF' at end of input")


class MathMLRenderer:
    """
    Typesets LaTeX to MathML with latex2mathml.

    latex2mathml echoes commands it does not know back as plain tokens
    (`<mi>\\foo</mi>`); those are reported as undefined.
    """

    def render(self, latex: str, display_mode: bool) -> str:
        _check_braces(latex)
        try:
            mathml = latex2mathml_convert(latex, display="block" if display_mode else "inline")
        except Exception as e:  # noqa: BLE001
            name = type(e).__name__
            detail = str(e).strip()
            raise MathRenderError(f"{name}: {detail}" if detail else name) from e
        m = _UNKNOWN_COMMAND_RE.search(mathml)
        if m:
            raise MathRenderError(f"Undefined control sequence: \\{m.group(1)}")
        return mathml


class ValidationCache:
    """
    Bounded map of (display_mode, latex) -> ValidationResult.

    Evicts the oldest inserted entry once over capacity. Safe to share
    between validation threads.
    """

    def __init__(self, max_items: int = DEFAULT_CACHE_SIZE) -> None:
        self._max_items = max(1, int(max_items))
        self._items: dict[tuple[bool, str], ValidationResult] = {}
        self._lock = threading.Lock()

    @property
    def max_items(self) -> int:
        return self._max_items

    def get(self, latex: str, display_mode: bool) -> Optional[ValidationResult]:
        with self._lock:
            return self._items.get((bool(display_mode), latex))

    def put(self, latex: str, display_mode: bool, result: ValidationResult) -> None:
        key = (bool(display_mode), latex)
        with self._lock:
            self._items.pop(key, None)
            self._items[key] = result
            while len(self._items) > self._max_items:
                del self._items[next(iter(self._items))]

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._items


class Validator:
    def __init__(
        self,
        renderer: Optional[MathRenderer] = None,
        cache: Optional[ValidationCache] = None,
    ) -> None:
        self.renderer: MathRenderer = renderer if renderer is not None else MathMLRenderer()
        self.cache = cache if cache is not None else ValidationCache()

    def validate(self, latex: str, display_mode: bool = False) -> ValidationResult:
        cached = self.cache.get(latex, display_mode)
        if cached is not None:
            return cached
        try:
            html = self.renderer.render(latex, display_mode)
            result = ValidationResult(success=True, html=html)
        except MathRenderError as e:
            result = ValidationResult(success=False, error_message=str(e) or "Render failed")
        except Exception as e:  # noqa: BLE001
            logger.debug("renderer raised %s for %r", type(e).__name__, latex[:80])
            result = ValidationResult(success=False, error_message=f"{type(e).__name__}: {e}")
        self.cache.put(latex, display_mode, result)
        return result

    def validate_formula(self, formula: Formula) -> Formula:
        result = self.validate(formula.raw, is_display_mode(formula.delimiter_type))
        return formula.model_copy(update={"is_valid": result.success, "error_message": result.error_message})

    def validate_all(self, formulas: list[Formula]) -> list[Formula]:
        return [self.validate_formula(f) for f in formulas]
