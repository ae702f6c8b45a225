from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

MARKDOWN_SUFFIXES = (".md", ".mdx", ".markdown")


@dataclass(frozen=True)
class FileContent:
    path: str
    content: str


def _to_os_path(path_like: Path | str) -> str:
    p = Path(path_like).expanduser()
    try:
        return str(p.resolve(strict=False))
    except OSError:
        return str(p)


def read_markdown_file(path: Path | str) -> FileContent:
    # newline="" keeps \r\n intact so unfixed text is written back unchanged.
    with open(_to_os_path(path), "r", encoding="utf-8", newline="") as f:
        content = f.read()
    return FileContent(path=str(path), content=content)


def write_markdown_file(path: Path | str, content: str) -> None:
    dest = Path(_to_os_path(path))
    dest.parent.mkdir(parents=True, exist_ok=True)
    tmp = dest.with_name(dest.name + ".tmp")
    try:
        with open(tmp, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        os.replace(tmp, dest)
    finally:
        if tmp.exists():
            tmp.unlink()


def output_path_for(input_path: Path | str) -> str:
    """`notes.md` -> `notes_fixed.md`; without an extension, append `_fixed`."""
    s = str(input_path)
    last_dot = s.rfind(".")
    last_sep = max(s.rfind("/"), s.rfind("\\"))
    if last_dot > last_sep + 1:
        return s[:last_dot] + "_fixed" + s[last_dot:]
    return s + "_fixed"
