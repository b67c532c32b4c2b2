from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

COMMENT = "//"


@dataclass
class SourceLine:
    text: str
    line: int


def clean_lines(src: str) -> Iterator[SourceLine]:
    """Yield VM commands with comments and surrounding whitespace removed.

    Blank lines (also those that held only a comment) are skipped; line
    numbers refer to the original source.
    """
    for no, raw in enumerate(src.splitlines(), start=1):
        text = raw.split(COMMENT, 1)[0].strip()
        if not text:
            continue
        yield SourceLine(text, no)
