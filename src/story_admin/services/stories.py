from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence, Tuple

from ..datamodels import (
    ModerationResult,
    Pagination,
    StatusCategory,
    Story,
    StoryCounts,
    to_wire_patch,
)
from .base import ApiClient, ServerError

logger = logging.getLogger("story_admin")

StoryPage = Tuple[List[Story], Pagination]


class StoryService(ApiClient):
    """Moderation endpoints of the story API. Stateless; no caching here."""

    def list_stories(
        self, category: StatusCategory, page: int = 1, limit: int = 10
    ) -> StoryPage:
        category = StatusCategory.parse(category)
        body = self._get(
            category.list_path,
            f"Failed to fetch {category.value} stories",
            params={"page": page, "limit": limit},
        )
        return _parse_story_page(body, page, limit)

    def get_story(self, story_id: str, category: StatusCategory) -> Story:
        category = StatusCategory.parse(category)
        body = self._get(
            f"{category.list_path}/{story_id}",
            f"Failed to fetch story {story_id}",
        )
        data = body.get("data")
        if not isinstance(data, dict):
            raise ServerError(f"Story {story_id} missing from response", payload=body)
        return Story.from_dict(data)

    def approve_stories(self, story_ids: Sequence[str]) -> ModerationResult:
        body = self._post(
            "pendingStories/approve",
            "Failed to approve stories",
            json={"storyIds": list(story_ids)},
            allow_unsuccessful=True,
        )
        result = ModerationResult.from_response(body, "approved")
        logger.info(
            "Approve %d stories: success=%s failed=%d",
            len(story_ids),
            result.success,
            len(result.failed),
        )
        return result

    def reject_stories(self, story_ids: Sequence[str]) -> ModerationResult:
        body = self._post(
            "rejectStories/reject",
            "Failed to reject stories",
            json={"storyIds": list(story_ids)},
            allow_unsuccessful=True,
        )
        result = ModerationResult.from_response(body, "rejected")
        logger.info(
            "Reject %d stories: success=%s failed=%d",
            len(story_ids),
            result.success,
            len(result.failed),
        )
        return result

    def update_story(
        self, story_id: str, category: StatusCategory, fields: Dict[str, Any]
    ) -> Story:
        """Send a sparse patch; returns the updated record."""
        category = StatusCategory.parse(category)
        patch = to_wire_patch(fields)
        payload = {"storyId": story_id, "storiesType": category.update_type, **patch}
        body = self._put("admin/update-story", "Failed to update story", json=payload)
        data = body.get("data")
        if isinstance(data, dict) and data.get("_id"):
            return Story.from_dict(data)
        # The server did not echo the record; build it from the patch.
        return Story(id=story_id).apply_patch(patch)

    def search_stories(
        self, text: str, category: StatusCategory, page: int = 1, limit: int = 10
    ) -> StoryPage:
        category = StatusCategory.parse(category)
        body = self._get(
            "admin/search-stories",
            "Failed to search stories",
            params={
                "searchText": text,
                "storiesType": category.search_type,
                "page": page,
                "limit": limit,
            },
        )
        return _parse_story_page(body, page, limit)

    def get_story_counts(self) -> StoryCounts:
        body = self._get("admin/stories-counts", "Failed to fetch story counts")
        return StoryCounts.from_dict(body.get("data") or {})


def _parse_story_page(body: Dict[str, Any], page: int, limit: int) -> StoryPage:
    data = body.get("data") or {}
    stories = [Story.from_dict(s) for s in data.get("stories", []) if isinstance(s, dict)]
    raw_pagination = data.get("pagination")
    if isinstance(raw_pagination, dict):
        pagination = Pagination.from_dict(raw_pagination)
    else:
        pagination = Pagination.from_stories(stories, page, limit)
    return stories, pagination
