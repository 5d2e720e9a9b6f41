from __future__ import annotations

from typing import Any, Dict, Optional
from unittest.mock import MagicMock

import pytest
import requests

from story_admin.datamodels import Pagination, Story


@pytest.fixture
def make_response():
    def _make(status_code: int = 200, body: Optional[Dict[str, Any]] = None):
        resp = MagicMock(spec=requests.Response)
        resp.status_code = status_code
        resp.ok = status_code < 400
        if body is None:
            resp.json.side_effect = ValueError("No JSON object could be decoded")
        else:
            resp.json.return_value = body
        return resp

    return _make


@pytest.fixture
def story_page():
    """Build a (stories, pagination) tuple as returned by the story service."""

    def _make(ids, page: int = 1, total_pages: int = 1, total: Optional[int] = None, limit: int = 10):
        stories = [Story(id=i, title=f"Story {i}", user_name="Author") for i in ids]
        pagination = Pagination(
            current_page=page,
            total_pages=total_pages,
            total_stories=len(ids) if total is None else total,
            stories_per_page=limit,
        )
        return stories, pagination

    return _make
