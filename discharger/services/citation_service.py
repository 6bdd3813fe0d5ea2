"""Locating a cited excerpt inside its source text."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple

HIGHLIGHT_OPEN = '<span class="citation-highlighted-blue">'
HIGHLIGHT_CLOSE = "</span>"

# Shortest run of consecutive matching words accepted by the fuzzy match
MIN_FUZZY_RUN = 3

_WHITESPACE_SPLIT = re.compile(r"(\s+)")


@dataclass
class HighlightResult:
    content: str
    matched: bool
    match_type: str  # exact | fuzzy | none


def _wrap(text: str) -> str:
    return f"{HIGHLIGHT_OPEN}{text}{HIGHLIGHT_CLOSE}"


def longest_common_word_run(source_words: list[str], citation_words: list[str]) -> Tuple[int, int]:
    """Return ``(start, length)`` of the longest run in ``source_words`` that matches
    consecutive words of ``citation_words``. Length is 0 when nothing matches."""
    best_start, best_length = 0, 0
    for i in range(len(source_words)):
        for j in range(len(citation_words)):
            length = 0
            while (
                i + length < len(source_words)
                and j + length < len(citation_words)
                and source_words[i + length] == citation_words[j + length]
            ):
                length += 1
            if length > best_length:
                best_start, best_length = i, length
    return best_start, best_length


def highlight_citation(source_text: str, citation_text: str) -> HighlightResult:
    """Wrap the cited excerpt in a highlight marker.

    An exact substring wins. Otherwise the longest run of at least
    ``MIN_FUZZY_RUN`` consecutive words (case-insensitive) is wrapped word by
    word, keeping the original whitespace. With no such run the text comes
    back unchanged.
    """
    if not source_text or not citation_text or not citation_text.strip():
        return HighlightResult(content=source_text or "", matched=False, match_type="none")

    index = source_text.find(citation_text)
    if index != -1:
        end = index + len(citation_text)
        content = source_text[:index] + _wrap(citation_text) + source_text[end:]
        return HighlightResult(content=content, matched=True, match_type="exact")

    source_words = source_text.lower().split()
    citation_words = citation_text.lower().split()
    start, length = longest_common_word_run(source_words, citation_words)
    if length < MIN_FUZZY_RUN:
        return HighlightResult(content=source_text, matched=False, match_type="none")

    end = start + length
    tokens = _WHITESPACE_SPLIT.split(source_text)
    word_index = 0
    for position, token in enumerate(tokens):
        if not token or token.isspace():
            continue
        if start <= word_index < end:
            tokens[position] = _wrap(token)
        word_index += 1

    return HighlightResult(content="".join(tokens), matched=True, match_type="fuzzy")


def citation_source_type(citation_id: str) -> str:
    """``c*`` ids cite the clinician's typed context, anything else a document."""
    return "user-context" if citation_id.startswith("c") else "selected-document"


def resolve_document_id(document_ids: list[str], document_number: Optional[int] = None) -> Optional[str]:
    """Map a document citation to one of the selected documents.

    Uses the explicit 1-based ``document_number`` when the model supplied one,
    otherwise the only selected document when there is exactly one.
    """
    if document_number is not None and 1 <= document_number <= len(document_ids):
        return document_ids[document_number - 1]
    if len(document_ids) == 1:
        return document_ids[0]
    return None
