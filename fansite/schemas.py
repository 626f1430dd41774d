"""
Pydantic schemas for the fansite API.

Requests and responses use camelCase on the wire; Python code uses the
snake_case field names.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from fansite.models import DEFAULT_VIDEO_CATEGORY

DownloadType = Literal["game", "mod", "tool"]
NotificationType = Literal["video", "download", "announcement"]
SubscriptionType = Literal["all", "videos", "downloads", "announcements"]

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


def _reject_null(value, info):
    if value is None:
        raise ValueError(f"{info.field_name} may not be null")
    return value


# Auth


class LoginRequest(CamelModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class LoginResponse(CamelModel):
    id: int
    username: str
    is_admin: bool
    token: Optional[str] = None


# Videos


class VideoCreate(CamelModel):
    youtube_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    duration: Optional[str] = None
    view_count: Optional[int] = Field(default=None, ge=0)
    upload_date: Optional[datetime] = None
    category: str = Field(default=DEFAULT_VIDEO_CATEGORY, min_length=1)
    is_featured: bool = False


class VideoUpdate(CamelModel):
    youtube_id: Optional[str] = Field(default=None, min_length=1)
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    duration: Optional[str] = None
    view_count: Optional[int] = Field(default=None, ge=0)
    upload_date: Optional[datetime] = None
    category: Optional[str] = Field(default=None, min_length=1)
    is_featured: Optional[bool] = None

    @field_validator("youtube_id", "title", "category", "is_featured")
    @classmethod
    def check_not_null(cls, value, info):
        return _reject_null(value, info)


class VideoResponse(CamelModel):
    id: int
    youtube_id: str
    title: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    duration: Optional[str] = None
    view_count: Optional[int] = None
    upload_date: Optional[datetime] = None
    category: str
    is_featured: bool
    created_at: datetime


# Downloads


class DownloadCreate(CamelModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    type: DownloadType
    version: str = Field(..., min_length=1)
    download_url: str = Field(..., min_length=1)
    thumbnail_url: Optional[str] = None
    release_date: Optional[datetime] = None


class DownloadUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    type: Optional[DownloadType] = None
    version: Optional[str] = Field(default=None, min_length=1)
    download_url: Optional[str] = Field(default=None, min_length=1)
    thumbnail_url: Optional[str] = None
    release_date: Optional[datetime] = None

    @field_validator("title", "type", "version", "download_url", "release_date")
    @classmethod
    def check_not_null(cls, value, info):
        return _reject_null(value, info)


class DownloadResponse(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    type: str
    version: str
    download_url: str
    thumbnail_url: Optional[str] = None
    download_count: int
    rating: int
    rating_count: int
    release_date: datetime
    created_at: datetime


class DownloadCountResponse(CamelModel):
    download_count: int


# Notifications


class NotificationCreate(CamelModel):
    title: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    type: NotificationType


class NotificationResponse(CamelModel):
    id: int
    title: str
    message: str
    type: str
    read: bool
    created_at: datetime


# Subscribers


class SubscriberCreate(CamelModel):
    email: str = Field(..., pattern=EMAIL_PATTERN)
    notification_type: SubscriptionType = "all"


class SubscriberResponse(CamelModel):
    id: int
    email: str
    notification_type: str
    created_at: datetime


# Site settings


class SiteSettingsUpdate(CamelModel):
    youtube_channel_id: Optional[str] = None
    featured_video_id: Optional[str] = None
    news_ticker_items: Optional[list[str]] = Field(default=None, min_length=1)
    is_live_streaming: Optional[StrictBool] = None
    live_stream_id: Optional[str] = None

    @field_validator("news_ticker_items", "is_live_streaming")
    @classmethod
    def check_not_null(cls, value, info):
        return _reject_null(value, info)


class SiteSettingsResponse(CamelModel):
    id: int
    youtube_channel_id: Optional[str] = None
    featured_video_id: Optional[str] = None
    news_ticker_items: list[str]
    is_live_streaming: bool
    live_stream_id: Optional[str] = None
    last_updated: datetime


class LivestreamUpdate(CamelModel):
    is_live_streaming: StrictBool
    live_stream_id: Optional[str] = None

    @model_validator(mode="after")
    def require_stream_id_when_live(self) -> "LivestreamUpdate":
        if self.is_live_streaming and not self.live_stream_id:
            raise ValueError("liveStreamId is required when going live")
        return self


class LivestreamResponse(CamelModel):
    is_live_streaming: bool
    live_stream_id: Optional[str] = None


# Comments


class CommentCreate(CamelModel):
    author: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    user_id: Optional[int] = None


class CommentResponse(CamelModel):
    id: int
    video_id: int
    user_id: Optional[int] = None
    author: str
    content: str
    approved: bool
    created_at: datetime


# Utilities


class ConvertLinkRequest(CamelModel):
    url: str = Field(..., min_length=1)


class ConvertLinkResponse(CamelModel):
    original_url: str
    converted_url: str
    is_converted: bool


class QrCodeResponse(CamelModel):
    qr_code: str


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: Literal["ok"]
    storage: str
