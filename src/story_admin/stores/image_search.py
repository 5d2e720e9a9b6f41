from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from ..config import DEFAULT_APP_NAME
from ..datamodels import UnsplashImage
from ..services.base import ApiError
from ..services.unsplash import UnsplashClient
from ..validation import ValidationError, validate_search_text

logger = logging.getLogger("story_admin")


class ImageSearchStore:
    """Transient stock-photo search results for the image picker."""

    def __init__(self, client: UnsplashClient, app_name: str = DEFAULT_APP_NAME):
        self.client = client
        self.app_name = app_name
        self.search_query = ""
        self.unsplash_images: List[UnsplashImage] = []
        self.is_loading_images = False
        self.has_searched = False
        self.error: Optional[str] = None

    def set_search_query(self, query: str) -> None:
        self.search_query = query

    def search_images(self, query: str) -> None:
        try:
            query = validate_search_text(query)
        except ValidationError as e:
            self.error = e.message
            return

        self.is_loading_images = True
        self.error = None
        self.search_query = query
        try:
            images = self.client.search_photos(query)
        except ApiError as e:
            logger.error("Error fetching images for %r: %s", query, e)
            self.unsplash_images = []
            self.error = "Failed to fetch images. Please try again."
        else:
            self.unsplash_images = images
        finally:
            self.is_loading_images = False
            self.has_searched = True

    def select_image(self, image_url: str) -> str:
        """Return `image_url` with the provider's attribution parameters added."""
        parts = urlsplit(image_url)
        query = [
            (k, v)
            for k, v in parse_qsl(parts.query, keep_blank_values=True)
            if k not in ("utm_source", "utm_medium")
        ]
        query += [("utm_source", self.app_name), ("utm_medium", "referral")]
        return urlunsplit(parts._replace(query=urlencode(query)))

    def clear_images(self) -> None:
        self.unsplash_images = []
        self.has_searched = False
        self.search_query = ""
        self.error = None
