from __future__ import annotations

import logging
from typing import List

from ..config import HTTP_TIMEOUT, UNSPLASH_PER_PAGE, UNSPLASH_SEARCH_URL
from ..datamodels import UnsplashImage
from .base import ApiClient

logger = logging.getLogger("story_admin")


class UnsplashClient(ApiClient):
    """Stock photo search against the Unsplash API."""

    def __init__(
        self,
        access_key: str,
        per_page: int = UNSPLASH_PER_PAGE,
        search_url: str = UNSPLASH_SEARCH_URL,
        timeout: float = HTTP_TIMEOUT,
    ):
        super().__init__(search_url, timeout=timeout)
        self.access_key = access_key
        self.per_page = per_page
        self.search_url = search_url

    def _auth_headers(self) -> dict:
        return {"Authorization": f"Client-ID {self.access_key}"}

    def _url(self, path: str) -> str:
        return self.search_url

    def search_photos(self, query: str) -> List[UnsplashImage]:
        body = self._get(
            "",
            "Failed to fetch images",
            params={
                "query": query,
                "per_page": self.per_page,
                "orientation": "landscape",
            },
        )
        results = body.get("results") or []
        logger.debug("Unsplash returned %d images for %r", len(results), query)
        return [UnsplashImage.from_dict(r) for r in results if isinstance(r, dict)]
