"""
Entity records shared by every storage backend.

Each entity comes in two shapes: the stored record (with server-assigned
fields such as ``id`` and ``created_at``) and the insertable ``New*`` shape
accepted by the create operations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

DEFAULT_VIDEO_CATEGORY = "general"
DEFAULT_NEWS_TICKER_ITEMS = ["Welcome to the channel!"]
SETTINGS_ID = 1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class User:
    id: int
    username: str
    password: str  # bcrypt hash
    is_admin: bool = False
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class NewUser:
    username: str
    password: str  # plaintext, hashed by the backend
    is_admin: bool = False


@dataclass
class Video:
    id: int
    youtube_id: str
    title: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    duration: Optional[str] = None
    view_count: Optional[int] = None
    upload_date: Optional[datetime] = None
    category: str = DEFAULT_VIDEO_CATEGORY
    # Derived from SiteSetting.featured_video_id, never stored on the video.
    is_featured: bool = False
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class NewVideo:
    youtube_id: str
    title: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    duration: Optional[str] = None
    view_count: Optional[int] = None
    upload_date: Optional[datetime] = None
    category: str = DEFAULT_VIDEO_CATEGORY
    is_featured: bool = False


@dataclass
class Download:
    id: int
    title: str
    type: str
    version: str
    download_url: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    download_count: int = 0
    rating: int = 0
    rating_count: int = 0
    release_date: datetime = field(default_factory=utcnow)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class NewDownload:
    title: str
    type: str
    version: str
    download_url: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    release_date: Optional[datetime] = None


@dataclass
class Notification:
    id: int
    title: str
    message: str
    type: str
    read: bool = False
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class NewNotification:
    title: str
    message: str
    type: str


@dataclass
class Subscriber:
    id: int
    email: str
    notification_type: str = "all"
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class NewSubscriber:
    email: str
    notification_type: str = "all"


@dataclass
class SiteSetting:
    """The singleton site configuration record."""

    id: int = SETTINGS_ID
    youtube_channel_id: Optional[str] = None
    featured_video_id: Optional[str] = None
    news_ticker_items: list[str] = field(
        default_factory=lambda: list(DEFAULT_NEWS_TICKER_ITEMS)
    )
    is_live_streaming: bool = False
    live_stream_id: Optional[str] = None
    last_updated: datetime = field(default_factory=utcnow)


@dataclass
class Comment:
    id: int
    video_id: int
    author: str
    content: str
    user_id: Optional[int] = None
    approved: bool = False
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class NewComment:
    video_id: int
    author: str
    content: str
    user_id: Optional[int] = None


# Fields of SiteSetting that the partial update accepts.
SETTINGS_FIELDS = (
    "youtube_channel_id",
    "featured_video_id",
    "news_ticker_items",
    "is_live_streaming",
    "live_stream_id",
)

VIDEO_FIELDS = (
    "youtube_id",
    "title",
    "description",
    "thumbnail_url",
    "duration",
    "view_count",
    "upload_date",
    "category",
)

DOWNLOAD_FIELDS = (
    "title",
    "description",
    "type",
    "version",
    "download_url",
    "thumbnail_url",
    "release_date",
)
