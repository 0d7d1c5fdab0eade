"""
Delimiter sniffing for uploaded tabular text.

Best-effort only: the first line decides, nothing validates the rest of the CSV.
"""

from __future__ import annotations

import re

COMMA = ","
SEMICOLON = ";"

# Only "\n" and "\r\n" end a line; a lone "\r" or form feed stays in it.
_LINE_BREAK = re.compile(r"\r?\n")


def first_line(text: str) -> str:
    return _LINE_BREAK.split(text or "", maxsplit=1)[0]


def detect_delimiter(text: str) -> str:
    """
    Return ";" when the first line has strictly more semicolons than commas, else ",".
    """
    line = first_line(text)
    if line.count(SEMICOLON) > line.count(COMMA):
        return SEMICOLON
    # Ties (including an empty line) fall back to comma.
    return COMMA
