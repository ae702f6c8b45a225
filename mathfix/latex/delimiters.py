from __future__ import annotations

from .models import DelimiterType

_WRAPPERS: dict[DelimiterType, tuple[str, str]] = {
    DelimiterType.INLINE_DOLLAR: ("$", "$"),
    DelimiterType.BLOCK_DOLLAR: ("$$", "$$"),
    DelimiterType.INLINE_PAREN: ("\\(", "\\)"),
    DelimiterType.BLOCK_BRACKET: ("\\[", "\\]"),
}


def delimiters_for(delimiter_type: DelimiterType) -> tuple[str, str]:
    return _WRAPPERS[DelimiterType(delimiter_type)]


def is_display_mode(delimiter_type: DelimiterType) -> bool:
    """Block delimiters typeset in display mode; inline ones do not."""
    return DelimiterType(delimiter_type) in (DelimiterType.BLOCK_DOLLAR, DelimiterType.BLOCK_BRACKET)


def wrap_with_delimiters(raw: str, delimiter_type: DelimiterType) -> str:
    opener, closer = delimiters_for(delimiter_type)
    return f"{opener}{raw}{closer}"


def unwrap_delimiters(text: str, delimiter_type: DelimiterType) -> str:
    """
    Strip one pair of `delimiter_type` delimiters from `text`.

    Text that is not wrapped in those delimiters is returned unchanged.
    """
    opener, closer = delimiters_for(delimiter_type)
    if len(text) >= len(opener) + len(closer) and text.startswith(opener) and text.endswith(closer):
        return text[len(opener) : len(text) - len(closer)]
    return text
