from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class StatusCategory(str, Enum):
    PENDING = "pending"
    PUBLISHED = "published"
    REJECTED = "rejected"

    @classmethod
    def parse(cls, value: Any) -> "StatusCategory":
        """Accept enum members, canonical names and the UI's aliases."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        aliased = _CATEGORY_ALIASES.get(key)
        if aliased is None:
            raise ValueError(f"Unknown status category: {value!r}")
        return cls(aliased)

    @property
    def list_path(self) -> str:
        return _LIST_PATHS[self]

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def update_type(self) -> str:
        """`storiesType` value expected by the update endpoint."""
        return "approved" if self is StatusCategory.PUBLISHED else self.value

    @property
    def search_type(self) -> str:
        """`storiesType` value expected by the search endpoint."""
        return self.value


_CATEGORY_ALIASES = {
    "pending": "pending",
    "published": "published",
    "approved": "published",
    "approve": "published",
    "rejected": "rejected",
    "reject": "rejected",
}

_LIST_PATHS = {
    StatusCategory.PENDING: "pendingStories",
    StatusCategory.PUBLISHED: "publishedStories",
    StatusCategory.REJECTED: "rejectStories/rejected",
}

_LABELS = {
    StatusCategory.PENDING: "Pending Stories",
    StatusCategory.PUBLISHED: "Approved Stories",
    StatusCategory.REJECTED: "Rejected Stories",
}

# wire name -> attribute name
_STORY_FIELDS = {
    "_id": "id",
    "storyTitle": "title",
    "storyContent": "content",
    "tagList": "tags",
    "coverPicRef": "cover_pic_ref",
    "profilePicRef": "profile_pic_ref",
    "userName": "user_name",
    "userEmail": "user_email",
    "userDetails": "user_details",
    "status": "status",
    "submissionDate": "submission_date",
    "readCount": "read_count",
    "upvoteCount": "upvote_count",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}
_STORY_WIRE_NAMES = {attr: wire for wire, attr in _STORY_FIELDS.items()}

# Fields an admin may edit through the update endpoint.
EDITABLE_FIELDS = (
    "storyTitle",
    "storyContent",
    "tagList",
    "coverPicRef",
    "profilePicRef",
    "userName",
    "userEmail",
    "userDetails",
)


def to_wire_patch(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Normalise a partial update to camelCase wire names."""
    patch: Dict[str, Any] = {}
    for key, value in fields.items():
        wire = _STORY_WIRE_NAMES.get(key, key)
        if wire == "_id":
            continue
        patch[wire] = list(value) if wire == "tagList" else value
    return patch


# --- Data models ---
@dataclass
class Story:
    id: str
    title: str = ""
    content: str = ""
    tags: List[str] = field(default_factory=list)
    cover_pic_ref: Optional[str] = None
    profile_pic_ref: Optional[str] = None
    user_name: str = ""
    user_email: str = ""
    user_details: Optional[str] = None
    status: Optional[int] = None
    submission_date: Optional[int] = None
    read_count: int = 0
    upvote_count: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Story":
        kwargs: Dict[str, Any] = {}
        for wire, attr in _STORY_FIELDS.items():
            if wire in data and data[wire] is not None:
                kwargs[attr] = data[wire]
        if "id" not in kwargs:
            kwargs["id"] = str(data.get("id") or data.get("storyId") or "")
        kwargs["tags"] = list(kwargs.get("tags") or [])
        for counter in ("read_count", "upvote_count"):
            kwargs[counter] = int(kwargs.get(counter) or 0)
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for wire, attr in _STORY_FIELDS.items():
            value = getattr(self, attr)
            if value is None:
                continue
            out[wire] = list(value) if attr == "tags" else value
        return out

    def apply_patch(self, fields: Dict[str, Any]) -> "Story":
        """Return a copy with a partial update applied."""
        changes = {}
        for wire, value in to_wire_patch(fields).items():
            attr = _STORY_FIELDS.get(wire)
            if attr:
                changes[attr] = list(value) if attr == "tags" else value
        return replace(self, **changes)

    @property
    def image_ref(self) -> Optional[str]:
        return self.profile_pic_ref or self.cover_pic_ref

    @property
    def submitted_at(self) -> Optional[datetime]:
        if self.submission_date is None:
            return None
        return datetime.fromtimestamp(self.submission_date / 1000, tz=timezone.utc)


@dataclass
class Pagination:
    current_page: int = 1
    total_pages: int = 1
    total_stories: int = 0
    stories_per_page: int = 10

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.current_page > 1

    def for_page(self, page: int) -> "Pagination":
        """Descriptor for another page of the same list, reusing the known totals."""
        return replace(self, current_page=page)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Pagination":
        # hasNextPage/hasPrevPage are recomputed, never trusted.
        return cls(
            current_page=int(data.get("currentPage") or 1),
            total_pages=int(data.get("totalPages") or 1),
            total_stories=int(data.get("totalStories") or 0),
            stories_per_page=int(data.get("storiesPerPage") or data.get("limit") or 10),
        )

    @classmethod
    def from_stories(cls, stories: List[Story], page: int, limit: int) -> "Pagination":
        total = len(stories)
        return cls(
            current_page=page,
            total_pages=max(page, math.ceil(total / limit) if limit else 1),
            total_stories=total,
            stories_per_page=limit,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentPage": self.current_page,
            "totalPages": self.total_pages,
            "totalStories": self.total_stories,
            "storiesPerPage": self.stories_per_page,
            "hasNextPage": self.has_next_page,
            "hasPrevPage": self.has_prev_page,
        }


@dataclass
class StoryCounts:
    pending: int = 0
    published: int = 0
    rejected: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoryCounts":
        return cls(
            pending=int(data.get("pendingStories") or 0),
            published=int(data.get("publishedStories") or 0),
            rejected=int(data.get("rejectedStories") or 0),
        )

    @property
    def total(self) -> int:
        return self.pending + self.published + self.rejected

    def for_category(self, category: StatusCategory) -> int:
        return getattr(self, category.value)


@dataclass
class Admin:
    id: str
    email: str
    display_name: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Admin":
        return cls(
            id=str(data.get("_id") or data.get("id") or ""),
            email=data.get("email", ""),
            display_name=data.get("displayName", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"_id": self.id, "email": self.email, "displayName": self.display_name}


@dataclass
class ModerationResult:
    """Outcome of a bulk approve or reject call."""

    success: bool
    message: str = ""
    succeeded: List[Dict[str, Any]] = field(default_factory=list)
    failed: List[Dict[str, Any]] = field(default_factory=list)
    summary: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_response(cls, payload: Dict[str, Any], succeeded_key: str) -> "ModerationResult":
        data = payload.get("data") or {}
        return cls(
            success=bool(payload.get("success")),
            message=payload.get("message", ""),
            succeeded=list(data.get(succeeded_key) or []),
            failed=list(data.get("failed") or []),
            summary=dict(data.get("summary") or {}),
        )

    @property
    def succeeded_ids(self) -> List[str]:
        return [item.get("storyId") for item in self.succeeded if item.get("storyId")]

    @property
    def failed_ids(self) -> List[str]:
        return [item.get("storyId") for item in self.failed if item.get("storyId")]

    @property
    def is_partial(self) -> bool:
        return bool(self.succeeded) and bool(self.failed)


@dataclass
class UnsplashImage:
    id: str
    urls: Dict[str, str] = field(default_factory=dict)
    alt_description: Optional[str] = None
    author_name: str = ""
    author_username: str = ""
    author_link: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UnsplashImage":
        user = data.get("user") or {}
        return cls(
            id=str(data.get("id", "")),
            urls=dict(data.get("urls") or {}),
            alt_description=data.get("alt_description"),
            author_name=user.get("name", ""),
            author_username=user.get("username", ""),
            author_link=(user.get("links") or {}).get("html"),
        )

    @property
    def regular_url(self) -> str:
        return self.urls.get("regular") or self.urls.get("full") or self.urls.get("raw", "")
