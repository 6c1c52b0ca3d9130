"""Incremental commit search over the loaded history window."""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum

from .types import CommitInfo


class SearchType(Enum):
    MESSAGE = "message"
    AUTHOR = "author"
    HASH = "hash"

    def next(self) -> SearchType:
        order = list(SearchType)
        return order[(order.index(self) + 1) % len(order)]


def _matches(commit: CommitInfo, query: str, search_type: SearchType) -> bool:
    if search_type is SearchType.MESSAGE:
        return query in commit.message.lower()
    if search_type is SearchType.AUTHOR:
        return query in commit.author.lower()
    return commit.oid.startswith(query)


def filter_commits(commits: Sequence[CommitInfo], query: str, search_type: SearchType) -> list[int]:
    """Indices of ``commits`` matching ``query`` (case-insensitive; hash is a prefix match)."""
    if not query:
        return []
    needle = query.lower()
    return [idx for idx, commit in enumerate(commits) if _matches(commit, needle, search_type)]
