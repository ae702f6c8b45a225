from __future__ import annotations

import re

SYSTEM_PROMPT = (
    "You are a LaTeX formula repair assistant. Your task is to fix LaTeX formulas that fail to parse in KaTeX.\n"
    "\n"
    "Rules:\n"
    "1. Output ONLY the corrected LaTeX formula, nothing else. No explanations, no markdown formatting, no code blocks.\n"
    "2. Do not include delimiters ($, $$, \\(, \\), \\[, \\]) in your output.\n"
    "3. Use only KaTeX-compatible commands. KaTeX does NOT support:\n"
    "   - \\newcommand, \\def, \\DeclareMathOperator\n"
    "   - \\eqref, \\label, \\ref, \\cite\n"
    "   - \\begin{align}, \\begin{equation}, \\begin{gather}, \\begin{multline}\n"
    "   - Custom macros\n"
    "4. Prefer standard alternatives:\n"
    "   - \\operatorname{name} instead of \\DeclareMathOperator\n"
    "   - \\mathbf{x} instead of \\boldsymbol{x}\n"
    "   - \\begin{aligned} instead of \\begin{align}\n"
    "   - \\begin{gathered} instead of \\begin{gather}\n"
    "5. Maintain the mathematical meaning of the original formula.\n"
    "6. Fix mismatched braces, missing closing delimiters, and typos in command names.\n"
    "7. Do NOT invent new variable names or symbols. If unsure, keep it minimal/faithful rather than guessing."
)


def build_user_prompt(original_latex: str, error_message: str, context: str = "") -> str:
    prompt = (
        "Fix this LaTeX formula that produces the following KaTeX error.\n\n"
        f"Error: {error_message}\n\n"
        f"Original formula:\n{original_latex}"
    )
    if context:
        prompt += f"\n\nSurrounding context in the document:\n{context}"
    prompt += "\n\nRespond with ONLY the corrected LaTeX formula, no delimiters, no explanation."
    return prompt


_THINK_RE = re.compile(r"<think>.*?</think>", re.IGNORECASE | re.DOTALL)
_FENCE_OPEN_RE = re.compile(r"^```(?:latex|tex|math)?[ \t]*\n?", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"\n?```$")
_WRAPPERS = (
    (re.compile(r"^\$\$\s*"), re.compile(r"\s*\$\$$")),
    (re.compile(r"^\$\s*"), re.compile(r"\s*\$$")),
    (re.compile(r"^\\\(\s*"), re.compile(r"\s*\\\)$")),
    (re.compile(r"^\\\[\s*"), re.compile(r"\s*\\\]$")),
)


def clean_llm_output(text: str) -> str:
    """Strip reasoning blocks, code fences and math delimiters the model added anyway."""
    out = _THINK_RE.sub("", text or "").strip()
    out = _FENCE_OPEN_RE.sub("", out)
    out = _FENCE_CLOSE_RE.sub("", out).strip()
    for opener, closer in _WRAPPERS:
        if opener.search(out) and closer.search(out):
            out = closer.sub("", opener.sub("", out, count=1), count=1)
            break
    return out.strip()
