"""Application search: fuzzy name matching and ``#tag`` filtering."""

from __future__ import annotations

import difflib
from typing import Optional, Sequence, TypeVar

from .apps import Application, app_key, sort_applications
from .store.tags import resolve_tags
from .store.tags_types import StoredTags

DEFAULT_THRESHOLD = 0.4
# Each character of offset before the match adds this much to the score.
LOCATION_PENALTY = 0.01
TAG_PREFIX = "#"

T = TypeVar("T")


def fuzzy_score(query: str, text: str) -> float:
    """Score how well ``query`` matches somewhere inside ``text``.

    Returns a value in ``[0, 1]`` where 0 is an exact match at the start.
    Exact substrings score by their offset; otherwise each window of ``text``
    with the query's length is compared with ``difflib`` and the share of
    query characters left unmatched is added to the offset penalty.
    """
    query = query.lower()
    text = text.lower()
    if not query:
        return 0.0
    if not text:
        return 1.0

    index = text.find(query)
    if index >= 0:
        return min(1.0, index * LOCATION_PENALTY)

    width = min(len(query), len(text))
    matcher = difflib.SequenceMatcher(autojunk=False)
    matcher.set_seq2(query)
    best = 1.0
    for start in range(len(text) - width + 1):
        matcher.set_seq1(text[start:start + width])
        matched = sum(block.size for block in matcher.get_matching_blocks())
        score = min(1.0, 1.0 - matched / len(query) + start * LOCATION_PENALTY)
        if score < best:
            best = score
            if best == 0.0:
                break
    return best


class SearchIndex:
    """Searchable view over the installed applications.

    Parameters
    ----------
    apps
        Applications to index; they are kept sorted by name.
    threshold
        Highest fuzzy score still counted as a match (0 = exact, 1 = anything).
    """

    def __init__(self, apps: Sequence[Application], *, threshold: float = DEFAULT_THRESHOLD) -> None:
        if not 0 <= threshold <= 1:
            raise ValueError(f"Invalid threshold: {threshold}")
        self.apps: list[Application] = sort_applications(apps)
        self.threshold = threshold

    def __len__(self) -> int:
        return len(self.apps)

    def search(self, query: str, state: Optional[StoredTags] = None) -> list[Application]:
        """Return the applications matching ``query``.

        An empty query returns every application in name order. A query
        starting with ``#`` keeps applications with a tag whose name contains
        the rest of the query (case-insensitive); tags come from ``state``.
        Anything else is a fuzzy name search ranked best match first.
        """
        if not query or not query.strip():
            return list(self.apps)
        if query.startswith(TAG_PREFIX):
            return self.filter_by_tag(query[len(TAG_PREFIX):], state)
        return self.fuzzy(query)

    def fuzzy(self, query: str) -> list[Application]:
        scored = []
        for position, app in enumerate(self.apps):
            score = fuzzy_score(query, app["name"])
            if score <= self.threshold:
                scored.append((score, position, app))
        scored.sort(key=lambda item: (item[0], item[1]))
        return [app for _score, _position, app in scored]

    def filter_by_tag(self, tag_query: str, state: Optional[StoredTags]) -> list[Application]:
        if state is None:
            return []
        needle = tag_query.lower()
        return [
            app
            for app in self.apps
            if any(needle in definition["name"].lower() for definition in resolve_tags(state, app_key(app)))
        ]


class Pagination:
    """Client-side visible window over a result list.

    The window starts at one page. Selecting an item within ``lookahead`` of
    the last visible one grows it by a page, never past ``total``.
    """

    def __init__(self, page_size: int = 15, *, lookahead: int = 5, total: int = 0) -> None:
        if page_size < 1:
            raise ValueError(f"Invalid page_size: {page_size}")
        if lookahead < 0:
            raise ValueError(f"Invalid lookahead: {lookahead}")
        self.page_size = page_size
        self.lookahead = lookahead
        self.total = total
        self._window = page_size

    def reset(self, total: int) -> None:
        """Back to one page, e.g. after the query changed."""
        self.total = max(0, total)
        self._window = self.page_size

    def resize(self, total: int) -> None:
        """Keep the current window but track a new result count."""
        self.total = max(0, total)

    @property
    def visible_count(self) -> int:
        return min(self._window, self.total)

    @property
    def has_more(self) -> bool:
        return self.visible_count < self.total

    def visible(self, items: Sequence[T]) -> list[T]:
        return list(items[:self.visible_count])

    def select(self, index: int) -> bool:
        """Report that the item at ``index`` was selected.

        Returns
        -------
        bool
            True when the window grew.
        """
        if index < 0 or not self.has_more:
            return False
        if index < self.visible_count - self.lookahead:
            return False
        self._window = min(self._window + self.page_size, self.total)
        return True


__all__ = ["DEFAULT_THRESHOLD", "Pagination", "SearchIndex", "fuzzy_score"]
