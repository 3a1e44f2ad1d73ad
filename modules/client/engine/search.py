"""
Filter/Search Engine.

Pure functions deriving the filtered list and the highlight fragments from
the current collection and a search term, plus the SearchState the list
view holds between store refreshes.

Matching is case-insensitive literal substring matching on title or
content. The term is trimmed first; a blank term means "no filter".
"""

import re
from collections.abc import Sequence

from modules.client.schemas.note import HighlightSpan, Note


def normalize_term(term: str | None) -> str:
    """Trim the raw search input; None counts as blank."""
    return (term or "").strip()


def _compile(term: str) -> re.Pattern[str]:
    return re.compile(re.escape(term), re.IGNORECASE)


def apply(term: str | None, notes: Sequence[Note]) -> tuple[Note, ...]:
    """
    Filter notes whose title or content contains the term.

    Args:
        term: Raw search input
        notes: Notes in display order

    Returns:
        Matching notes in their input order; all notes when term is blank
    """
    keyword = normalize_term(term)
    if not keyword:
        return tuple(notes)

    pattern = _compile(keyword)
    return tuple(
        note for note in notes
        if pattern.search(note.title) or pattern.search(note.content)
    )


def highlight_spans(text: str, term: str | None) -> list[HighlightSpan]:
    """
    Split text into matched and unmatched fragments.

    Concatenating the fragment texts in order always gives back `text`.
    Original casing is preserved; only the comparison ignores case.

    Args:
        text: Text to annotate
        term: Raw search input

    Returns:
        Ordered fragments; a single unmatched fragment when term is blank
        or nothing matches
    """
    keyword = normalize_term(term)
    if not keyword:
        return [HighlightSpan(text=text, matched=False)]

    spans: list[HighlightSpan] = []
    position = 0
    for match in _compile(keyword).finditer(text):
        if match.start() > position:
            spans.append(HighlightSpan(text=text[position:match.start()], matched=False))
        spans.append(HighlightSpan(text=match.group(), matched=True))
        position = match.end()

    if position < len(text) or not spans:
        spans.append(HighlightSpan(text=text[position:], matched=False))
    return spans


class SearchState:
    """
    Current search term and the results derived from it.

    Holds only derived copies of the store snapshot; call `rederive` after
    every store change.
    """

    def __init__(self) -> None:
        self.term = ""
        self.results: tuple[Note, ...] = ()

    @property
    def is_filtered(self) -> bool:
        """True while a non-blank term is applied."""
        return bool(normalize_term(self.term))

    @property
    def not_found(self) -> bool:
        """True when a term is applied and nothing matched."""
        return self.is_filtered and not self.results

    def set_term(self, term: str | None, notes: Sequence[Note]) -> tuple[Note, ...]:
        """Apply a new term against the given notes."""
        self.term = term or ""
        return self.rederive(notes)

    def clear(self, notes: Sequence[Note]) -> tuple[Note, ...]:
        """Drop the filter; results become the full collection."""
        return self.set_term("", notes)

    def rederive(self, notes: Sequence[Note]) -> tuple[Note, ...]:
        """Recompute results for the current term."""
        self.results = apply(self.term, notes)
        return self.results
