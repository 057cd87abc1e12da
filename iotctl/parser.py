"""Splitting of delimited protocol messages."""

from __future__ import annotations


def split_string(text: str, delimiter: str) -> list[str]:
    """Split ``text`` at every ``delimiter`` character.

    Empty fields are kept, so the result always has one more element than
    there are delimiters in ``text``.
    """
    if len(delimiter) != 1:
        raise ValueError("delimiter must be a single character")
    return text.split(delimiter)