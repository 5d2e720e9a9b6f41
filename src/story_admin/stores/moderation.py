"""
Story moderation state: per-category lists, page caches, selection and the
story under detail view.

Actions are blocking and meant to run in worker threads. They never raise
API errors; failures land in `error` and the view polls `error` and
`is_loading`.

Approve/reject prune the pending list but leave cached pages as they were,
so a cached page may still show a story that has since been moderated.
Callers that need an exact list force a refresh or clear the cache.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..cache import PageCache, SearchCache, patch_stories
from ..config import DEFAULT_PAGE_SIZE
from ..datamodels import (
    ModerationResult,
    Pagination,
    StatusCategory,
    Story,
    StoryCounts,
    to_wire_patch,
)
from ..services.base import ApiError, NotFoundError
from ..services.stories import StoryService

logger = logging.getLogger("story_admin")

PENDING = StatusCategory.PENDING


@dataclass
class CategoryState:
    category: StatusCategory
    items: List[Story] = field(default_factory=list)
    pagination: Optional[Pagination] = None
    # Descriptor from the last real list fetch; search results never touch it.
    list_pagination: Optional[Pagination] = None
    search_text: str = ""
    # Bumped for every list/search request; a response whose number is no
    # longer current is dropped.
    request_seq: int = 0
    page_cache: PageCache = field(init=False)

    def __post_init__(self) -> None:
        self.page_cache = PageCache(self.category)


class ModerationStore:
    def __init__(self, story_service: StoryService, page_size: int = DEFAULT_PAGE_SIZE):
        self.service = story_service
        self.page_size = page_size
        self._lock = threading.RLock()
        self.reset()

    def reset(self) -> None:
        """Drop all state. Used on logout and between tests."""
        with self._lock:
            self.categories: Dict[StatusCategory, CategoryState] = {
                c: CategoryState(c) for c in StatusCategory
            }
            self.search_cache = SearchCache()
            self.selected_ids: List[str] = []
            self.current_story: Optional[Story] = None
            self.story_counts: Optional[StoryCounts] = None
            self.last_result: Optional[ModerationResult] = None
            self.error: Optional[str] = None
            self.message: Optional[str] = None
            self.is_loading = False
            self._in_flight = 0

    # --- Accessors ---
    def state(self, category: Any) -> CategoryState:
        return self.categories[StatusCategory.parse(category)]

    def items(self, category: Any) -> List[Story]:
        return self.state(category).items

    def pagination(self, category: Any) -> Optional[Pagination]:
        return self.state(category).pagination

    @property
    def pending_stories(self) -> List[Story]:
        return self.categories[PENDING].items

    # --- Loading bookkeeping ---
    def _begin(self) -> None:
        with self._lock:
            self._in_flight += 1
            self.is_loading = True
            self.error = None
            self.message = None

    def _end(self, error: Optional[str] = None) -> None:
        with self._lock:
            self._in_flight = max(0, self._in_flight - 1)
            self.is_loading = self._in_flight > 0
            if error is not None:
                self.error = error

    def _show_page(
        self, state: CategoryState, stories: List[Story], pagination: Pagination
    ) -> None:
        previous = state.pagination.current_page if state.pagination else None
        state.items = list(stories)
        state.pagination = pagination
        if state.category is not PENDING:
            return
        if previous is not None and previous != pagination.current_page:
            self.selected_ids = []
        else:
            present = {s.id for s in state.items}
            self.selected_ids = [i for i in self.selected_ids if i in present]

    # --- Lists ---
    def fetch_stories(
        self,
        category: Any,
        page: int = 1,
        limit: Optional[int] = None,
        force_refresh: bool = False,
    ) -> None:
        category = StatusCategory.parse(category)
        limit = limit or self.page_size
        state = self.categories[category]

        with self._lock:
            state.request_seq += 1
            seq = state.request_seq
            if not force_refresh and state.page_cache.page_size == limit:
                cached = state.page_cache.get(page)
                if cached is not None and state.list_pagination is not None:
                    # Totals come from the last real fetch and may be stale.
                    self._show_page(state, cached, state.list_pagination.for_page(page))
                    state.search_text = ""
                    self.error = None
                    return

        self._begin()
        try:
            stories, pagination = self.service.list_stories(category, page, limit)
        except ApiError as e:
            logger.error("Error fetching %s stories page %d: %s", category.value, page, e)
            with self._lock:
                stale = seq != state.request_seq
            if stale:
                logger.debug("Discarding stale %s page %d failure", category.value, page)
                self._end()
            else:
                self._end(f"Failed to fetch {category.value} stories. Please try again.")
            return

        with self._lock:
            if seq != state.request_seq:
                logger.debug(
                    "Discarding stale %s page %d response (seq %d, latest %d)",
                    category.value,
                    page,
                    seq,
                    state.request_seq,
                )
            else:
                state.page_cache.set(page, stories, limit)
                state.list_pagination = pagination
                self._show_page(state, stories, pagination)
                state.search_text = ""
        self._end()

    def fetch_pending_stories(self, page: int = 1, limit: Optional[int] = None) -> None:
        self.fetch_stories(StatusCategory.PENDING, page, limit)

    def fetch_approved_stories(self, page: int = 1, limit: Optional[int] = None) -> None:
        self.fetch_stories(StatusCategory.PUBLISHED, page, limit)

    def fetch_rejected_stories(self, page: int = 1, limit: Optional[int] = None) -> None:
        self.fetch_stories(StatusCategory.REJECTED, page, limit)

    def clear_cache(self, category: Any) -> None:
        category = StatusCategory.parse(category)
        with self._lock:
            state = self.categories[category]
            state.page_cache.clear()
            state.pagination = None
            state.list_pagination = None
            state.items = []
            state.search_text = ""
            state.request_seq += 1
            self.search_cache.clear(category)
            if category is PENDING:
                self.selected_ids = []

    def search_stories(
        self,
        text: str,
        category: Any,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> None:
        category = StatusCategory.parse(category)
        limit = limit or self.page_size
        query = (text or "").strip()
        if not query:
            # Empty search means the normal list, with fresh counts.
            self.clear_cache(category)
            self.fetch_stories(category, 1, limit)
            return

        state = self.categories[category]
        key = SearchCache.key(query, category, page, limit)
        with self._lock:
            state.request_seq += 1
            seq = state.request_seq
            cached = self.search_cache.get(key)
            if cached is not None:
                stories, pagination = cached
                self._show_page(state, stories, pagination)
                state.search_text = query
                self.error = None
                return

        self._begin()
        try:
            stories, pagination = self.service.search_stories(query, category, page, limit)
        except ApiError as e:
            logger.error("Error searching %s stories for %r: %s", category.value, query, e)
            with self._lock:
                stale = seq != state.request_seq
            if stale:
                logger.debug("Discarding stale search failure for %r", query)
                self._end()
            else:
                self._end("Failed to search stories. Please try again.")
            return

        with self._lock:
            if seq != state.request_seq:
                logger.debug("Discarding stale search response for %r", query)
            else:
                self.search_cache.set(key, stories, pagination)
                self._show_page(state, stories, pagination)
                state.search_text = query
        self._end()

    # --- Detail and counts ---
    def fetch_story_by_id(self, story_id: str, category: Any = PENDING) -> None:
        category = StatusCategory.parse(category)
        self._begin()
        try:
            story = self.service.get_story(story_id, category)
        except NotFoundError:
            logger.info("Story %s not found in %s", story_id, category.value)
            self._end("Story not found.")
            return
        except ApiError as e:
            logger.error("Error fetching story with ID %s: %s", story_id, e)
            self._end("Failed to fetch story details. Please try again.")
            return
        with self._lock:
            self.current_story = story
        self._end()

    def fetch_story_counts(self) -> None:
        self._begin()
        try:
            counts = self.service.get_story_counts()
        except ApiError as e:
            logger.error("Error fetching story counts: %s", e)
            self._end("Failed to fetch stories info. Please try again.")
            return
        with self._lock:
            self.story_counts = counts
        self._end()

    # --- Mutations ---
    def _moderate(
        self,
        story_ids: Sequence[str],
        call: Callable[[List[str]], ModerationResult],
        verb: str,
    ) -> Optional[ModerationResult]:
        ids = list(dict.fromkeys(story_ids))
        if not ids:
            with self._lock:
                self.error = "No stories selected"
            return None

        self._begin()
        try:
            result = call(ids)
        except ApiError as e:
            logger.error("Error during %s of %d stories: %s", verb, len(ids), e)
            self._end(e.message or f"Failed to {verb} stories. Please try again.")
            return None

        with self._lock:
            self.last_result = result
            if result.success:
                removed = set(ids) - set(result.failed_ids)
                pending = self.categories[PENDING]
                pending.items = [s for s in pending.items if s.id not in removed]
                self.selected_ids = [i for i in self.selected_ids if i not in removed]
                self.message = result.message or f"Stories {verb}d successfully"
        if result.success:
            self._end()
        else:
            self._end(result.message or f"Failed to {verb} stories")
        return result

    def approve_stories(self, story_ids: Sequence[str]) -> Optional[ModerationResult]:
        return self._moderate(story_ids, self.service.approve_stories, "approve")

    def reject_stories(self, story_ids: Sequence[str]) -> Optional[ModerationResult]:
        return self._moderate(story_ids, self.service.reject_stories, "reject")

    def approve_selected_stories(self) -> Optional[ModerationResult]:
        return self.approve_stories(list(self.selected_ids))

    def reject_selected_stories(self) -> Optional[ModerationResult]:
        return self.reject_stories(list(self.selected_ids))

    def update_story(self, story_id: str, category: Any, fields: Dict[str, Any]) -> bool:
        """Send a partial update and patch every local copy of the story."""
        category = StatusCategory.parse(category)
        patch = to_wire_patch(fields)
        if not patch:
            logger.debug("No changes to send for story %s", story_id)
            return True

        self._begin()
        try:
            updated = self.service.update_story(story_id, category, patch)
        except ApiError as e:
            logger.error("Error updating story %s: %s", story_id, e)
            self._end(e.message or "Failed to update story. Please try again.")
            return False

        # Server-owned fields come from the returned record when it has them.
        local_patch = dict(patch)
        if isinstance(updated, Story) and updated.updated_at:
            local_patch["updatedAt"] = updated.updated_at

        def apply(story: Story) -> Story:
            return story.apply_patch(local_patch)

        with self._lock:
            for state in self.categories.values():
                patch_stories(state.items, story_id, apply)
                state.page_cache.patch(story_id, apply)
            self.search_cache.patch(story_id, apply)
            if self.current_story is not None and self.current_story.id == story_id:
                self.current_story = apply(self.current_story)
            self.message = "Story updated successfully"
        self._end()
        return True

    def update_story_cover_image(self, story_id: str, image_url: str, category: Any) -> bool:
        return self.update_story(story_id, category, {"coverPicRef": image_url})

    # --- Selection (pending list only) ---
    def is_selected(self, story_id: str) -> bool:
        return story_id in self.selected_ids

    def select_story(self, story_id: str) -> None:
        with self._lock:
            if story_id in self.selected_ids:
                return
            if story_id not in {s.id for s in self.pending_stories}:
                logger.debug("Ignoring selection of %s: not on the current page", story_id)
                return
            self.selected_ids.append(story_id)

    def deselect_story(self, story_id: str) -> None:
        with self._lock:
            self.selected_ids = [i for i in self.selected_ids if i != story_id]

    def toggle_select_story(self, story_id: str) -> None:
        if self.is_selected(story_id):
            self.deselect_story(story_id)
        else:
            self.select_story(story_id)

    def select_all_stories(self) -> None:
        with self._lock:
            self.selected_ids = list(dict.fromkeys(s.id for s in self.pending_stories))

    def deselect_all_stories(self) -> None:
        with self._lock:
            self.selected_ids = []
