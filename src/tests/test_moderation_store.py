from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from story_admin.datamodels import ModerationResult, StatusCategory, Story, StoryCounts
from story_admin.services.base import NetworkError, NotFoundError, ServerError
from story_admin.services.stories import StoryService
from story_admin.stores.moderation import ModerationStore

PENDING = StatusCategory.PENDING
PUBLISHED = StatusCategory.PUBLISHED


@pytest.fixture
def service():
    return MagicMock(spec=StoryService)


@pytest.fixture
def store(service):
    return ModerationStore(service, page_size=10)


def ids(stories):
    return [s.id for s in stories]


# --- Lists and caching ---
def test_fetch_stories_serves_repeat_from_cache(store, service, story_page):
    service.list_stories.return_value = story_page(["s1", "s2"])

    store.fetch_stories("pending", 1)
    store.fetch_stories("pending", 1)

    assert service.list_stories.call_count == 1
    service.list_stories.assert_called_once_with(PENDING, 1, 10)
    assert ids(store.pending_stories) == ["s1", "s2"]
    assert store.is_loading is False
    assert store.error is None


def test_force_refresh_bypasses_cache(store, service, story_page):
    service.list_stories.return_value = story_page(["s1"])
    store.fetch_stories("pending", 1)
    store.fetch_stories("pending", 1, force_refresh=True)
    assert service.list_stories.call_count == 2


def test_page_size_change_refetches(store, service, story_page):
    service.list_stories.return_value = story_page(["s1"])
    store.fetch_stories("published", 1)
    store.fetch_stories("published", 1, limit=5)
    assert service.list_stories.call_count == 2
    assert store.state("published").page_cache.page_size == 5


def test_clear_cache_forces_fetch(store, service, story_page):
    service.list_stories.return_value = story_page(["s1"])
    store.fetch_stories("rejected", 1)
    store.clear_cache("rejected")

    assert store.items("rejected") == []
    assert store.pagination("rejected") is None

    store.fetch_stories("rejected", 1)
    assert service.list_stories.call_count == 2


def test_cached_page_pagination_matches_page(store, service, story_page):
    service.list_stories.side_effect = [
        story_page(["s1"], page=1, total_pages=3, total=25),
        story_page(["s11"], page=2, total_pages=3, total=25),
    ]
    store.fetch_stories("published", 1)
    store.fetch_stories("published", 2)
    store.fetch_stories("published", 1)

    pagination = store.pagination("published")
    assert service.list_stories.call_count == 2
    assert ids(store.items("published")) == ["s1"]
    assert pagination.current_page == 1
    assert pagination.has_next_page is True
    assert pagination.has_prev_page is False


def test_categories_are_cached_independently(store, service, story_page):
    service.list_stories.side_effect = [story_page(["p1"]), story_page(["a1"])]
    store.fetch_pending_stories()
    store.fetch_approved_stories()
    assert ids(store.items(PENDING)) == ["p1"]
    assert ids(store.items(PUBLISHED)) == ["a1"]


def test_fetch_failure_sets_error(store, service):
    service.list_stories.side_effect = NetworkError("Network error. Please try again.")
    store.fetch_stories("pending", 1)
    assert store.error == "Failed to fetch pending stories. Please try again."
    assert store.is_loading is False
    assert store.pending_stories == []


def test_stale_list_response_is_discarded(store, service, story_page):
    def list_stories(category, page, limit):
        if page == 1:
            # A newer request for page 2 completes while page 1 is in flight.
            store.fetch_stories(category, 2)
            return story_page(["old"], page=1, total_pages=2)
        return story_page(["new"], page=2, total_pages=2)

    service.list_stories.side_effect = list_stories
    store.fetch_stories("pending", 1)

    assert ids(store.pending_stories) == ["new"]
    assert store.pagination("pending").current_page == 2
    assert 1 not in store.state("pending").page_cache
    assert store.is_loading is False


# --- Search ---
def test_search_sets_text_and_caches(store, service, story_page):
    service.search_stories.return_value = story_page(["s9"])

    store.search_stories("  sea ", "pending")
    store.search_stories("sea", "pending")

    service.search_stories.assert_called_once_with("sea", PENDING, 1, 10)
    assert store.state("pending").search_text == "sea"
    assert ids(store.pending_stories) == ["s9"]


def test_empty_search_is_a_fresh_first_page(store, service, story_page):
    service.list_stories.return_value = story_page(["s1", "s2"])
    store.fetch_stories("pending", 1)

    store.search_stories("", "pending")

    assert service.list_stories.call_count == 2
    service.list_stories.assert_called_with(PENDING, 1, 10)
    service.search_stories.assert_not_called()
    assert store.state("pending").search_text == ""
    assert ids(store.pending_stories) == ["s1", "s2"]


def test_search_failure_sets_error(store, service):
    service.search_stories.side_effect = ServerError("boom")
    store.search_stories("sea", "published")
    assert store.error == "Failed to search stories. Please try again."


# --- Detail and counts ---
def test_fetch_story_by_id(store, service):
    service.get_story.return_value = Story(id="s1", title="One")
    store.fetch_story_by_id("s1", "published")
    service.get_story.assert_called_once_with("s1", PUBLISHED)
    assert store.current_story.title == "One"


def test_fetch_story_by_id_not_found(store, service):
    service.get_story.side_effect = NotFoundError("Story not found", 404)
    store.fetch_story_by_id("missing")
    assert store.error == "Story not found."
    assert store.current_story is None


def test_fetch_story_counts(store, service):
    service.get_story_counts.return_value = StoryCounts(pending=2, published=5, rejected=1)
    store.fetch_story_counts()
    assert store.story_counts.total == 8


def test_fetch_story_counts_failure(store, service):
    service.get_story_counts.side_effect = NetworkError("Network error. Please try again.")
    store.fetch_story_counts()
    assert store.error == "Failed to fetch stories info. Please try again."


# --- Approve / reject ---
def test_approve_selected_removes_stories(store, service, story_page):
    service.list_stories.return_value = story_page([f"s{i}" for i in range(1, 11)])
    store.fetch_pending_stories()
    store.select_story("s1")
    store.select_story("s2")
    service.approve_stories.return_value = ModerationResult(
        success=True,
        message="2 stories approved successfully",
        succeeded=[{"storyId": "s1"}, {"storyId": "s2"}],
    )

    result = store.approve_selected_stories()

    service.approve_stories.assert_called_once_with(["s1", "s2"])
    assert result.success is True
    assert len(store.pending_stories) == 8
    assert "s1" not in ids(store.pending_stories)
    assert store.selected_ids == []
    assert store.message == "2 stories approved successfully"
    assert store.last_result is result


def test_partial_failure_keeps_failed_story(store, service, story_page):
    service.list_stories.return_value = story_page(["s1", "s2", "s3"])
    store.fetch_pending_stories()
    store.select_all_stories()
    service.reject_stories.return_value = ModerationResult(
        success=True,
        message="2 stories rejected",
        succeeded=[{"storyId": "s1"}, {"storyId": "s3"}],
        failed=[{"storyId": "s2", "reason": "Story not found"}],
    )

    store.reject_selected_stories()

    assert ids(store.pending_stories) == ["s2"]
    assert store.selected_ids == ["s2"]


def test_unsuccessful_moderation_sets_error(store, service, story_page):
    service.list_stories.return_value = story_page(["s1"])
    store.fetch_pending_stories()
    service.approve_stories.return_value = ModerationResult(
        success=False, message="No stories were approved"
    )

    store.approve_stories(["s1"])

    assert store.error == "No stories were approved"
    assert ids(store.pending_stories) == ["s1"]


def test_moderation_with_nothing_selected(store, service):
    assert store.approve_selected_stories() is None
    assert store.error == "No stories selected"
    service.approve_stories.assert_not_called()


def test_moderation_transport_failure(store, service, story_page):
    service.list_stories.return_value = story_page(["s1"])
    store.fetch_pending_stories()
    service.reject_stories.side_effect = NetworkError("Network error. Please try again.")

    assert store.reject_stories(["s1"]) is None
    assert store.error == "Network error. Please try again."
    assert ids(store.pending_stories) == ["s1"]
    assert store.is_loading is False


# --- Selection ---
def test_selection_is_limited_to_pending_items(store, service, story_page):
    service.list_stories.return_value = story_page(["s1", "s2"])
    store.fetch_pending_stories()

    store.select_story("elsewhere")
    store.toggle_select_story("s1")
    store.toggle_select_story("s1")
    store.toggle_select_story("s2")

    assert store.selected_ids == ["s2"]
    assert store.is_selected("s2")


def test_select_all_then_deselect_all(store, service, story_page):
    service.list_stories.return_value = story_page(["s1", "s2", "s3"])
    store.fetch_pending_stories()
    store.select_all_stories()
    assert store.selected_ids == ["s1", "s2", "s3"]
    store.deselect_story("s2")
    assert store.selected_ids == ["s1", "s3"]
    store.deselect_all_stories()
    assert store.selected_ids == []


def test_page_change_clears_selection(store, service, story_page):
    service.list_stories.side_effect = [
        story_page(["s1", "s2"], page=1, total_pages=2),
        story_page(["s11"], page=2, total_pages=2),
    ]
    store.fetch_pending_stories(1)
    store.select_all_stories()
    store.fetch_pending_stories(2)
    assert store.selected_ids == []


# --- Updates ---
def test_update_patches_every_copy(store, service, story_page):
    service.list_stories.return_value = story_page(["s1", "s2"])
    service.search_stories.return_value = story_page(["s1"])
    service.get_story.return_value = Story(id="s1", title="Story s1")
    store.fetch_pending_stories()
    store.search_stories("story", "published")
    store.fetch_story_by_id("s1")

    assert store.update_story("s1", "pending", {"storyTitle": "Renamed"}) is True

    service.update_story.assert_called_once_with("s1", PENDING, {"storyTitle": "Renamed"})
    assert store.pending_stories[0].title == "Renamed"
    assert store.state("pending").page_cache.get(1)[0].title == "Renamed"
    assert store.items("published")[0].title == "Renamed"
    assert store.current_story.title == "Renamed"
    assert store.message == "Story updated successfully"

    # The cached search result was patched as well.
    service.search_stories.reset_mock()
    store.search_stories("story", "published")
    service.search_stories.assert_not_called()
    assert store.items("published")[0].title == "Renamed"


def test_update_cover_image(store, service, story_page):
    service.list_stories.return_value = story_page(["s1"])
    store.fetch_pending_stories()
    store.update_story_cover_image("s1", "https://img.example.com/x.jpg", "pending")
    service.update_story.assert_called_once_with(
        "s1", PENDING, {"coverPicRef": "https://img.example.com/x.jpg"}
    )
    assert store.pending_stories[0].cover_pic_ref == "https://img.example.com/x.jpg"


def test_update_failure_leaves_state(store, service, story_page):
    service.list_stories.return_value = story_page(["s1"])
    store.fetch_pending_stories()
    service.update_story.side_effect = ServerError("Title too long", 400)

    assert store.update_story("s1", "pending", {"storyTitle": "x" * 500}) is False
    assert store.error == "Title too long"
    assert store.pending_stories[0].title == "Story s1"


def test_empty_update_makes_no_call(store, service):
    assert store.update_story("s1", "pending", {}) is True
    service.update_story.assert_not_called()


def test_reset_drops_everything(store, service, story_page):
    service.list_stories.return_value = story_page(["s1"])
    store.fetch_pending_stories()
    store.select_all_stories()
    store.reset()
    assert store.pending_stories == []
    assert store.selected_ids == []
    assert len(store.state("pending").page_cache) == 0


def test_cover_image_updates_current_story_only_when_ids_match(store, service):
    service.get_story.return_value = Story(id="y", cover_pic_ref="old.jpg")
    store.fetch_story_by_id("y", "approved")

    store.update_story_cover_image("y", "https://img.example.com/new.jpg", "approved")
    assert store.current_story.cover_pic_ref == "https://img.example.com/new.jpg"
    service.update_story.assert_called_with(
        "y", PUBLISHED, {"coverPicRef": "https://img.example.com/new.jpg"}
    )

    store.update_story_cover_image("other", "https://img.example.com/else.jpg", "approved")
    assert store.current_story.cover_pic_ref == "https://img.example.com/new.jpg"


def test_select_all_after_approve_excludes_approved(store, service, story_page):
    service.list_stories.return_value = story_page(
        [f"s{i}" for i in range(1, 11)], page=1, total_pages=3, total=25
    )
    store.fetch_pending_stories(1, 10)
    assert store.pagination("pending").has_next_page is True
    service.approve_stories.return_value = ModerationResult(
        success=True, succeeded=[{"storyId": "s1"}, {"storyId": "s2"}]
    )

    store.approve_stories(["s1", "s2"])
    store.select_all_stories()

    assert len(store.pending_stories) == 8
    assert "s1" not in store.selected_ids
    assert "s2" not in store.selected_ids
    assert len(store.selected_ids) == 8
    assert store.message == "Stories approved successfully"


def test_cache_hit_after_search_uses_list_totals(store, service, story_page):
    service.list_stories.side_effect = [
        story_page(["s1"], page=1, total_pages=3, total=25),
        story_page(["s11"], page=2, total_pages=3, total=25),
    ]
    service.search_stories.return_value = story_page(["z1"], page=1, total_pages=1, total=1)
    store.fetch_stories("published", 1)
    store.fetch_stories("published", 2)
    store.search_stories("z", "published")

    store.fetch_stories("published", 2)

    pagination = store.pagination("published")
    assert service.list_stories.call_count == 2
    assert ids(store.items("published")) == ["s11"]
    assert (pagination.current_page, pagination.total_pages, pagination.total_stories) == (2, 3, 25)
    assert pagination.has_next_page is True


def test_stale_list_failure_does_not_set_error(store, service, story_page):
    def list_stories(category, page, limit):
        if page == 1:
            store.fetch_stories(category, 2)
            raise NetworkError("Network error. Please try again.")
        return story_page(["new"], page=2, total_pages=2)

    service.list_stories.side_effect = list_stories
    store.fetch_stories("pending", 1)

    assert ids(store.pending_stories) == ["new"]
    assert store.error is None
    assert store.is_loading is False


def test_stale_search_failure_does_not_set_error(store, service, story_page):
    def search_stories(text, category, page, limit):
        if text == "old":
            store.search_stories("new", category)
            raise ServerError("boom")
        return story_page(["n1"])

    service.search_stories.side_effect = search_stories
    store.search_stories("old", "pending")

    assert ids(store.pending_stories) == ["n1"]
    assert store.state("pending").search_text == "new"
    assert store.error is None


def test_approve_prunes_items_but_not_cached_pages(store, service, story_page):
    service.list_stories.return_value = story_page(["s1", "s2", "s3"])
    store.fetch_pending_stories()
    store.select_story("s1")
    service.approve_stories.return_value = ModerationResult(
        success=True, succeeded=[{"storyId": "s1"}]
    )

    store.approve_stories(["s1"])

    assert "s1" not in ids(store.pending_stories)
    assert "s1" not in store.selected_ids
    # The cached page is left as it was until a refresh or cache clear.
    assert "s1" in ids(store.state("pending").page_cache.get(1))

    service.list_stories.return_value = story_page(["s2", "s3"])
    store.fetch_pending_stories()
    assert "s1" in ids(store.pending_stories)
    store.fetch_stories("pending", 1, force_refresh=True)
    assert ids(store.pending_stories) == ["s2", "s3"]
    assert "s1" not in ids(store.state("pending").page_cache.get(1))

    store.clear_cache("pending")
    assert store.state("pending").page_cache.get(1) is None


def test_update_keeps_server_updated_at(store, service, story_page):
    service.list_stories.return_value = story_page(["s1"])
    store.fetch_pending_stories()
    service.update_story.return_value = Story(
        id="s1", title="Renamed", updated_at="2026-01-01T00:00:00.000Z"
    )

    store.update_story("s1", "pending", {"storyTitle": "Renamed"})

    story = store.pending_stories[0]
    assert story.title == "Renamed"
    assert story.updated_at == "2026-01-01T00:00:00.000Z"
    assert store.state("pending").page_cache.get(1)[0].updated_at == "2026-01-01T00:00:00.000Z"
