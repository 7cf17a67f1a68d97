"""
Source Line Reader
==================

Turns macro source text into the numbered lines the compiler works on.

Input Format
------------
- One construct per line
- `//` starts a comment that runs to the end of the line
- Blank lines (after comment removal) are dropped

Line numbers always refer to the original file position, so diagnostics
point at the right place even though comments and blanks are filtered.

Example
-------
>>> lines = read_source("let $x = $5   // five\\n\\nhalt\\n")
>>> [(l.line_number, l.text) for l in lines]
[(1, 'let $x = $5'), (3, 'halt')]
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import re

from marie_sdk.errors import LabelError, SourceLocation


COMMENT_MARKER = "//"
LABEL_MARKER = ":"

LABEL_RE = re.compile(r"[A-Za-z_]\w*", re.ASCII)


@dataclass(frozen=True)
class SourceLine:
    """
    One non-blank, comment-stripped source line.

    Attributes:
        line_number: Original 1-based line number
        text: Line content without comment and surrounding whitespace
        filename: Source file name for diagnostics
    """
    line_number: int
    text: str
    filename: str = "<input>"

    @property
    def tokens(self) -> list[str]:
        """Whitespace-separated tokens of the line."""
        return self.text.split()

    def location(self, token: str | None = None) -> SourceLocation:
        """
        Location of this line, pointing at token when it occurs in the text.
        """
        column = 0
        if token:
            # Prefer a whole-token match; `$x` in `let $x=$1` is not one
            match = re.search(rf"(?<!\S){re.escape(token)}(?!\S)", self.text)
            index = match.start() if match else self.text.find(token)
            if index >= 0:
                column = index + 1
        return SourceLocation(self.filename, self.line_number, column)


def is_label_name(name: str) -> bool:
    """Return True if name can be used as a native label."""
    return LABEL_RE.fullmatch(name) is not None


def split_label(line: SourceLine) -> tuple[Optional[str], list[str]]:
    """
    Separate a leading `name:` label from the rest of the line.

    Returns:
        (label or None, remaining tokens)

    Raises:
        LabelError: If the label is not a valid identifier
    """
    tokens = line.tokens
    if not tokens or not tokens[0].endswith(LABEL_MARKER):
        return None, tokens

    label = tokens[0][: -len(LABEL_MARKER)]
    if not is_label_name(label):
        raise LabelError(
            label,
            "is not a valid identifier",
            location=line.location(tokens[0]),
            source_line=line.text,
            hint="labels start with a letter or '_' and end with ':'",
        )
    return label, tokens[1:]


def strip_comment(text: str) -> str:
    """Remove a trailing `//` comment and surrounding whitespace."""
    index = text.find(COMMENT_MARKER)
    if index >= 0:
        text = text[:index]
    return text.strip()


def read_source(source: str, filename: str = "<input>") -> list[SourceLine]:
    """
    Split source text into SourceLines, dropping comments and blank lines.

    Args:
        source: Complete source text
        filename: Name used in diagnostics

    Returns:
        Non-blank lines in file order with their original line numbers
    """
    lines = []
    for number, raw in enumerate(source.splitlines(), start=1):
        text = strip_comment(raw)
        if text:
            lines.append(SourceLine(number, text, filename))
    return lines


def read_source_file(path: str | Path) -> list[SourceLine]:
    """
    Read a source file as UTF-8 and return its SourceLines.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Source file not found: {path}")
    return read_source(path.read_text(encoding="utf-8"), str(path))
