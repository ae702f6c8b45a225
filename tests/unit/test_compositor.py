from mathfix.latex.compositor import apply_accepted
from mathfix.latex.registry import FixRegistry
from mathfix.latex.scanner import extract_formulas

DOC = "Intro $\\bad$ text.\r\n\r\nBlock:\n$$\\frac{1}{2$$\nthen \\(c\\) end $5 `$x$`\n"


def _registry(validator):
    return FixRegistry(extract_formulas(DOC), validator)


def test_no_fixes_is_identity(validator):
    formulas = extract_formulas(DOC)
    assert apply_accepted(DOC, formulas, {}) == DOC
    registry = _registry(validator)
    registry.propose("formula-0", "\\alpha", "manual")
    assert apply_accepted(DOC, formulas, registry.snapshot()) == DOC


def test_two_accepted_fixes_leave_other_text_untouched(validator):
    formulas = extract_formulas(DOC)
    registry = FixRegistry(formulas, validator)
    registry.propose("formula-0", "\\alpha + \\beta", "manual")
    registry.propose("formula-1", "\\frac{1}{2}", "manual")
    registry.accept("formula-0")
    registry.accept("formula-1")

    out = apply_accepted(DOC, formulas, registry.snapshot())
    f0, f1 = formulas[0], formulas[1]
    assert out == (
        DOC[: f0.start_offset]
        + "$\\alpha + \\beta$"
        + DOC[f0.end_offset : f1.start_offset]
        + "$$\\frac{1}{2}$$"
        + DOC[f1.end_offset :]
    )
    assert out.startswith("Intro $\\alpha + \\beta$ text.\r\n\r\n")
    assert out.endswith("then \\(c\\) end $5 `$x$`\n")


def test_pending_and_rejected_fixes_are_ignored(validator):
    formulas = extract_formulas(DOC)
    registry = FixRegistry(formulas, validator)
    registry.propose("formula-0", "\\alpha", "manual")
    registry.propose("formula-1", "\\frac{1}{2}", "manual")
    registry.propose("formula-2", "d", "manual")
    registry.reject("formula-1")
    registry.accept("formula-2")

    out = apply_accepted(DOC, formulas, registry.snapshot())
    assert "$\\bad$" in out
    assert "$$\\frac{1}{2$$" in out
    assert "\\(d\\)" in out


def test_length_changes_do_not_shift_later_spans(validator):
    text = "$a$ $b$ $c$"
    formulas = extract_formulas(text)
    registry = FixRegistry(formulas, validator)
    registry.propose("formula-0", "aaaaaaaa", "manual")
    registry.propose("formula-2", "", "manual")
    registry.accept_all()
    assert apply_accepted(text, formulas, registry.snapshot()) == "$aaaaaaaa$ $b$ $$"
