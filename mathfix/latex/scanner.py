from __future__ import annotations

from .models import DelimiterType, Formula

_FENCE = "```"


class _LineCounter:
    """Incremental 1-based line lookup for monotonically increasing offsets."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0
        self._line = 1

    def line_at(self, offset: int) -> int:
        if offset < self._pos:
            return self._text.count("\n", 0, offset) + 1
        self._line += self._text.count("\n", self._pos, offset)
        self._pos = offset
        return self._line


def _find_inline_dollar_close(text: str, start: int) -> int:
    # Closing `$` must not be escaped.
    j = start
    while True:
        j = text.find("$", j)
        if j == -1:
            return -1
        if text[j - 1] != "\\":
            return j
        j += 1


def extract_formulas(text: str) -> list[Formula]:
    """
    Extract math spans from Markdown in one left-to-right pass.

    Recognized delimiters, in priority order at each position:
    `\\[...\\]`, `\\(...\\)`, `$$...$$`, `$...$`.
    Fenced code blocks and inline code are opaque. Unterminated delimiters
    and `$` directly followed by a digit (currency) are plain text.
    """
    formulas: list[Formula] = []
    if not text:
        return formulas

    n = len(text)
    lines = _LineCounter(text)
    in_fence = False
    in_inline_code = False
    i = 0

    def emit(content: str, delimiter_type: DelimiterType, start: int, end: int) -> None:
        formulas.append(
            Formula(
                id=f"formula-{len(formulas)}",
                raw=content.strip(),
                raw_with_delimiters=text[start:end],
                delimiter_type=delimiter_type,
                start_offset=start,
                end_offset=end,
                line_number=lines.line_at(start),
            )
        )

    while i < n:
        if text.startswith(_FENCE, i):
            if in_fence:
                in_fence = False
                i += 3
                continue
            if not in_inline_code:
                in_fence = True
                i += 3
                continue

        if in_fence:
            j = text.find(_FENCE, i)
            if j == -1:
                break
            i = j
            continue

        ch = text[i]
        if ch == "`":
            if in_inline_code and text.startswith(_FENCE, i):
                # A ``` run inside inline code does not close it.
                i += 1
                continue
            in_inline_code = not in_inline_code
            i += 1
            continue

        if in_inline_code:
            j = text.find("`", i)
            if j == -1:
                break
            i = j
            continue

        if ch == "\\":
            if i + 1 >= n:
                i += 1
                continue
            nxt = text[i + 1]
            if nxt in "[(":
                closer = "\\]" if nxt == "[" else "\\)"
                j = text.find(closer, i + 2)
                if j != -1:
                    kind = DelimiterType.BLOCK_BRACKET if nxt == "[" else DelimiterType.INLINE_PAREN
                    emit(text[i + 2 : j], kind, i, j + 2)
                    i = j + 2
                    continue
            # Escaped character (including `\$`) or unterminated opener.
            i += 2
            continue

        if ch == "$":
            if text.startswith("$$", i):
                j = text.find("$$", i + 2)
                if j == -1:
                    i += 2
                    continue
                emit(text[i + 2 : j], DelimiterType.BLOCK_DOLLAR, i, j + 2)
                i = j + 2
                continue

            if i + 1 < n and text[i + 1] in "0123456789":
                # Currency such as `$5`.
                i += 1
                continue

            j = _find_inline_dollar_close(text, i + 1)
            if j == -1:
                i += 1
                continue
            content = text[i + 1 : j]
            if content.strip():
                emit(content, DelimiterType.INLINE_DOLLAR, i, j + 1)
            i = j + 1
            continue

        i += 1

    return formulas
