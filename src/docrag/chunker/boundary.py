"""Boundary-aware pre-passes.

Each splitter returns segments that concatenate back to the input exactly,
so packing them into windows never loses or reorders text.
"""

import re

_PARAGRAPH_BREAK = re.compile(r"\n[ \t]*\n\s*")
_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+")


def _split_after(text: str, pattern: re.Pattern[str]) -> list[str]:
    segments = []
    start = 0
    for match in pattern.finditer(text):
        if match.end() > start:
            segments.append(text[start:match.end()])
            start = match.end()
    if start < len(text):
        segments.append(text[start:])
    return segments


def split_paragraphs(text: str) -> list[str]:
    """Split on blank lines; each paragraph keeps its trailing break."""
    return _split_after(text, _PARAGRAPH_BREAK)


def split_sentences(text: str) -> list[str]:
    """Split after ., ! or ? followed by whitespace."""
    return _split_after(text, _SENTENCE_BREAK)
