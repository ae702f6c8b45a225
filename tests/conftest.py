import threading

import pytest

from mathfix.document import DocumentSession
from mathfix.latex.validator import MathRenderError, Validator
from mathfix.llm import FixFormulaResponse, RepairClient, RepairError


class FakeRenderer:
    """Fails on `\\bad` or unbalanced braces; records every call."""

    def __init__(self):
        self.calls = []
        self._lock = threading.Lock()

    def render(self, latex, display_mode):
        with self._lock:
            self.calls.append((latex, display_mode))
        if "\\bad" in latex:
            raise MathRenderError("Undefined control sequence: \\bad")
        if latex.count("{") != latex.count("}"):
            raise MathRenderError("Expected '}'")
        return f"<span data-display=\"{int(display_mode)}\">{latex}</span>"


class FakeRepairClient(RepairClient):
    provider_name = "Fake"

    def __init__(self, fixes=None, fail_on=(), model="fake-model-1"):
        self.fixes = dict(fixes or {})
        self.fail_on = set(fail_on)
        self.model = model
        self.requests = []

    def fix_formula(self, request):
        self.requests.append(request)
        if request.original_latex in self.fail_on:
            raise RepairError(f"provider exploded on {request.original_latex}")
        fixed = self.fixes.get(request.original_latex, request.original_latex.replace("\\bad", "\\alpha"))
        return FixFormulaResponse(fixed_latex=fixed, model=self.model)

    def test_connection(self):
        return True


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def validator(renderer):
    return Validator(renderer=renderer)


@pytest.fixture
def session(validator):
    return DocumentSession(validator)


@pytest.fixture
def fake_client():
    return FakeRepairClient()
