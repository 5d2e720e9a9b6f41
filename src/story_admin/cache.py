from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Tuple

from .datamodels import Pagination, StatusCategory, Story

logger = logging.getLogger("story_admin")

SearchKey = Tuple[str, StatusCategory, int, int]


def patch_stories(stories: List[Story], story_id: str, patch: Callable[[Story], Story]) -> int:
    patched = 0
    for i, story in enumerate(stories):
        if story.id == story_id:
            stories[i] = patch(story)
            patched += 1
    return patched


class PageCache:
    """Page number -> stories fetched for that page, for one status category."""

    def __init__(self, category: StatusCategory):
        self.category = category
        self.page_size: Optional[int] = None
        self._pages: Dict[int, List[Story]] = {}

    def __contains__(self, page: int) -> bool:
        return page in self._pages

    def __len__(self) -> int:
        return len(self._pages)

    def get(self, page: int) -> Optional[List[Story]]:
        stories = self._pages.get(page)
        if stories is None:
            return None
        logger.debug("Page cache hit: %s page %d", self.category.value, page)
        return list(stories)

    def set(self, page: int, stories: List[Story], page_size: int) -> None:
        if self.page_size is not None and self.page_size != page_size:
            logger.debug(
                "Page size changed for %s (%s -> %d); dropping cached pages",
                self.category.value,
                self.page_size,
                page_size,
            )
            self._pages.clear()
        self.page_size = page_size
        self._pages[page] = list(stories)

    def patch(self, story_id: str, patch: Callable[[Story], Story]) -> int:
        """Apply `patch` to every cached copy of `story_id`; returns the number patched."""
        return sum(patch_stories(stories, story_id, patch) for stories in self._pages.values())

    def clear(self) -> None:
        """Clear all pages from the cache."""
        self._pages.clear()
        self.page_size = None
        logger.debug("Page cache cleared for %s", self.category.value)


class SearchCache:
    """Search results keyed by (text, category, page, page size)."""

    def __init__(self) -> None:
        self._entries: Dict[SearchKey, Tuple[List[Story], Pagination]] = {}

    @staticmethod
    def key(text: str, category: StatusCategory, page: int, limit: int) -> SearchKey:
        return (text, category, page, limit)

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: SearchKey) -> Optional[Tuple[List[Story], Pagination]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        logger.debug("Search cache hit for key: %s", key)
        stories, pagination = entry
        return list(stories), pagination

    def set(self, key: SearchKey, stories: List[Story], pagination: Pagination) -> None:
        self._entries[key] = (list(stories), pagination)

    def patch(self, story_id: str, patch: Callable[[Story], Story]) -> int:
        return sum(
            patch_stories(stories, story_id, patch) for stories, _ in self._entries.values()
        )

    def clear(self, category: Optional[StatusCategory] = None) -> None:
        if category is None:
            self._entries.clear()
            return
        for key in [k for k in self._entries if k[1] is category]:
            del self._entries[key]
