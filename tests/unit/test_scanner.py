from mathfix.latex.models import DelimiterType
from mathfix.latex.scanner import extract_formulas


def test_block_dollar_formula():
    formulas = extract_formulas("$$x^2 + y^2 = z^2$$")
    assert len(formulas) == 1
    f = formulas[0]
    assert f.delimiter_type == DelimiterType.BLOCK_DOLLAR
    assert f.raw == "x^2 + y^2 = z^2"
    assert (f.start_offset, f.end_offset) == (0, 19)
    assert f.id == "formula-0"
    assert f.line_number == 1


def test_inline_paren_formula():
    formulas = extract_formulas("Use \\(a+b\\) here")
    assert len(formulas) == 1
    assert formulas[0].delimiter_type == DelimiterType.INLINE_PAREN
    assert formulas[0].raw == "a+b"
    assert formulas[0].raw_with_delimiters == "\\(a+b\\)"


def test_block_bracket_formula_spans_lines():
    text = "Before\n\\[\n  \\int_0^1 f(x)\\,dx\n\\]\nAfter"
    formulas = extract_formulas(text)
    assert len(formulas) == 1
    assert formulas[0].delimiter_type == DelimiterType.BLOCK_BRACKET
    assert formulas[0].raw == "\\int_0^1 f(x)\\,dx"
    assert formulas[0].line_number == 2


def test_unterminated_bracket_yields_nothing():
    assert extract_formulas("\\[x^2") == []
    assert extract_formulas("\\(a + b") == []


def test_unterminated_block_dollar_is_plain_text():
    formulas = extract_formulas("$$x and then $y$")
    assert [f.raw for f in formulas] == ["y"]
    assert formulas[0].delimiter_type == DelimiterType.INLINE_DOLLAR


def test_currency_is_not_math():
    assert extract_formulas("The price is $5 and $10 total") == []


def test_currency_then_real_formula():
    formulas = extract_formulas("Costs $5, but $x$ is variable")
    assert [f.raw for f in formulas] == ["x"]


def test_leading_digit_formula_is_missed():
    # Known false negative of the currency rule.
    assert extract_formulas("$2\\pi$") == []


def test_fenced_code_is_opaque():
    text = "```\n$a$ and $$b$$\n```\nafter $c$"
    formulas = extract_formulas(text)
    assert [f.raw for f in formulas] == ["c"]
    assert formulas[0].line_number == 4


def test_inline_code_is_opaque():
    formulas = extract_formulas("`$x$` and $y$")
    assert [f.raw for f in formulas] == ["y"]


def test_unterminated_inline_code_hides_rest():
    assert extract_formulas("`code $x$") == []


def test_escaped_dollars_are_not_delimiters():
    assert extract_formulas("costs \\$3 and \\$4") == []


def test_escaped_closing_dollar_is_skipped():
    formulas = extract_formulas("$a\\$b$ end")
    assert len(formulas) == 1
    assert formulas[0].raw == "a\\$b"
    assert formulas[0].raw_with_delimiters == "$a\\$b$"


def test_empty_inline_formula_is_discarded():
    formulas = extract_formulas("a $  $ b $c$")
    assert [f.raw for f in formulas] == ["c"]
    assert formulas[0].id == "formula-0"


def test_raw_is_trimmed_but_span_is_not():
    f = extract_formulas("$$  x  $$")[0]
    assert f.raw == "x"
    assert f.raw_with_delimiters == "$$  x  $$"


def test_priority_and_order_of_all_delimiters():
    text = "\\[a\\] then $$b$$ then \\(c\\) then $d$"
    formulas = extract_formulas(text)
    assert [f.delimiter_type for f in formulas] == [
        DelimiterType.BLOCK_BRACKET,
        DelimiterType.BLOCK_DOLLAR,
        DelimiterType.INLINE_PAREN,
        DelimiterType.INLINE_DOLLAR,
    ]
    assert [f.id for f in formulas] == ["formula-0", "formula-1", "formula-2", "formula-3"]


def test_line_numbers():
    text = "line1\nline2 $a$\n\n$$b$$\n```\n$skip$\n```\n\\(c\\)"
    formulas = extract_formulas(text)
    assert [(f.raw, f.line_number) for f in formulas] == [("a", 2), ("b", 4), ("c", 8)]


def test_offsets_cover_delimited_text_and_do_not_overlap():
    text = (
        "# Title\n"
        "Inline $a+b$ and \\(c\\), price $5.\n"
        "$$\n\\sum_i x_i\n$$\n"
        "`$no$` \\$ escaped \\[d^2\\] and $e$ end $"
    )
    formulas = extract_formulas(text)
    assert [f.raw for f in formulas] == ["a+b", "c", "\\sum_i x_i", "d^2", "e"]
    prev_end = 0
    for f in formulas:
        assert 0 <= f.start_offset < f.end_offset <= len(text)
        assert text[f.start_offset : f.end_offset] == f.raw_with_delimiters
        assert f.start_offset >= prev_end
        prev_end = f.end_offset


def test_scan_is_stable():
    text = "$a$ $$b$$ \\(c\\)"
    assert extract_formulas(text) == extract_formulas(text)


def test_empty_text():
    assert extract_formulas("") == []


def test_backtick_run_inside_inline_code():
    formulas = extract_formulas("`a```b` $x$")
    assert [f.raw for f in formulas] == ["x"]


def test_only_ascii_digits_count_as_currency():
    formulas = extract_formulas("$²x$ and $٣y$ but $7 stays")
    assert [f.raw for f in formulas] == ["²x", "٣y"]
