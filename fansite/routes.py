"""
HTTP routes for the fansite API.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from fansite.config import Settings, get_settings
from fansite.db import DbClient
from fansite.dependencies import (
    ActiveBackend,
    get_active_backend,
    get_db_client,
    is_admin_request,
    require_admin,
)
from fansite.link_converter import convert_to_direct_download_link
from fansite.models import (
    NewComment,
    NewDownload,
    NewNotification,
    NewSubscriber,
    NewVideo,
)
from fansite.qr_codes import generate_channel_qr_code, generate_video_qr_code
from fansite.schemas import (
    CommentCreate,
    CommentResponse,
    ConvertLinkRequest,
    ConvertLinkResponse,
    DownloadCountResponse,
    DownloadCreate,
    DownloadResponse,
    DownloadType,
    DownloadUpdate,
    HealthResponse,
    LivestreamResponse,
    LivestreamUpdate,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    NotificationCreate,
    NotificationResponse,
    QrCodeResponse,
    SiteSettingsResponse,
    SiteSettingsUpdate,
    SubscriberCreate,
    SubscriberResponse,
    VideoCreate,
    VideoResponse,
    VideoUpdate,
)
from fansite.security import verify_password

logger = logging.getLogger(__name__)

router = APIRouter()


def _not_found(what: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{what} not found")


@router.get("/health", response_model=HealthResponse)
def health(backend: ActiveBackend = Depends(get_active_backend)):
    return HealthResponse(status="ok", storage=backend.name)


# Auth


@router.post("/auth/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    user = db.get_user_by_username(payload.username)
    if not user or not verify_password(payload.password, user.password):
        raise HTTPException(status_code=401, detail="Invalid username or password")
    # Only admins receive the shared bearer token.
    token = settings.admin_token if user.is_admin else None
    return LoginResponse(
        id=user.id, username=user.username, is_admin=user.is_admin, token=token
    )


# Videos


@router.get("/videos", response_model=list[VideoResponse])
def list_videos(
    category: Optional[str] = Query(default=None),
    db: DbClient = Depends(get_db_client),
):
    if category:
        return db.list_videos_by_category(category)
    return db.list_videos()


@router.get("/videos/featured", response_model=VideoResponse)
def get_featured_video(db: DbClient = Depends(get_db_client)):
    video = db.get_featured_video()
    if not video:
        raise HTTPException(status_code=404, detail="No featured video found")
    return video


@router.get("/videos/{video_id}", response_model=VideoResponse)
def get_video(video_id: int, db: DbClient = Depends(get_db_client)):
    video = db.get_video(video_id)
    if not video:
        raise _not_found("Video")
    return video


@router.post(
    "/videos",
    response_model=VideoResponse,
    status_code=201,
    dependencies=[Depends(require_admin)],
)
def create_video(payload: VideoCreate, db: DbClient = Depends(get_db_client)):
    return db.create_video(NewVideo(**payload.model_dump()))


@router.put(
    "/videos/{video_id}",
    response_model=VideoResponse,
    dependencies=[Depends(require_admin)],
)
def update_video(
    video_id: int, payload: VideoUpdate, db: DbClient = Depends(get_db_client)
):
    video = db.update_video(video_id, payload.model_dump(exclude_unset=True))
    if not video:
        raise _not_found("Video")
    return video


@router.delete(
    "/videos/{video_id}", status_code=204, dependencies=[Depends(require_admin)]
)
def delete_video(video_id: int, db: DbClient = Depends(get_db_client)):
    if not db.delete_video(video_id):
        raise _not_found("Video")
    return Response(status_code=204)


@router.post(
    "/videos/{video_id}/feature",
    response_model=MessageResponse,
    dependencies=[Depends(require_admin)],
)
def feature_video(video_id: int, db: DbClient = Depends(get_db_client)):
    if not db.set_featured_video(video_id):
        raise _not_found("Video")
    return MessageResponse(message="Video featured successfully")


# Comments


@router.get("/videos/{video_id}/comments", response_model=list[CommentResponse])
def list_comments(
    video_id: int,
    db: DbClient = Depends(get_db_client),
    is_admin: bool = Depends(is_admin_request),
):
    if not db.get_video(video_id):
        raise _not_found("Video")
    comments = db.list_comments_by_video(video_id)
    if is_admin:
        return comments
    return [comment for comment in comments if comment.approved]


@router.post(
    "/videos/{video_id}/comments", response_model=CommentResponse, status_code=201
)
def create_comment(
    video_id: int, payload: CommentCreate, db: DbClient = Depends(get_db_client)
):
    if not db.get_video(video_id):
        raise _not_found("Video")
    if payload.user_id is not None and not db.get_user(payload.user_id):
        raise _not_found("User")
    return db.create_comment(NewComment(video_id=video_id, **payload.model_dump()))


@router.post(
    "/comments/{comment_id}/approve",
    response_model=MessageResponse,
    dependencies=[Depends(require_admin)],
)
def approve_comment(comment_id: int, db: DbClient = Depends(get_db_client)):
    if not db.approve_comment(comment_id):
        raise _not_found("Comment")
    return MessageResponse(message="Comment approved successfully")


@router.delete(
    "/comments/{comment_id}", status_code=204, dependencies=[Depends(require_admin)]
)
def delete_comment(comment_id: int, db: DbClient = Depends(get_db_client)):
    if not db.delete_comment(comment_id):
        raise _not_found("Comment")
    return Response(status_code=204)


# Downloads


@router.get("/downloads", response_model=list[DownloadResponse])
def list_downloads(
    type: Optional[DownloadType] = Query(default=None),
    db: DbClient = Depends(get_db_client),
):
    if type:
        return db.list_downloads_by_type(type)
    return db.list_downloads()


@router.get("/downloads/{download_id}", response_model=DownloadResponse)
def get_download(download_id: int, db: DbClient = Depends(get_db_client)):
    download = db.get_download(download_id)
    if not download:
        raise _not_found("Download")
    return download


@router.post(
    "/downloads",
    response_model=DownloadResponse,
    status_code=201,
    dependencies=[Depends(require_admin)],
)
def create_download(payload: DownloadCreate, db: DbClient = Depends(get_db_client)):
    return db.create_download(NewDownload(**payload.model_dump()))


@router.put(
    "/downloads/{download_id}",
    response_model=DownloadResponse,
    dependencies=[Depends(require_admin)],
)
def update_download(
    download_id: int, payload: DownloadUpdate, db: DbClient = Depends(get_db_client)
):
    download = db.update_download(download_id, payload.model_dump(exclude_unset=True))
    if not download:
        raise _not_found("Download")
    return download


@router.delete(
    "/downloads/{download_id}", status_code=204, dependencies=[Depends(require_admin)]
)
def delete_download(download_id: int, db: DbClient = Depends(get_db_client)):
    if not db.delete_download(download_id):
        raise _not_found("Download")
    return Response(status_code=204)


@router.post("/downloads/{download_id}/increment", response_model=DownloadCountResponse)
def increment_download(download_id: int, db: DbClient = Depends(get_db_client)):
    count = db.increment_download_count(download_id)
    if count is None:
        raise _not_found("Download")
    return DownloadCountResponse(download_count=count)


# Notifications


@router.get("/notifications", response_model=list[NotificationResponse])
def list_notifications(db: DbClient = Depends(get_db_client)):
    return db.list_notifications()


@router.get("/notifications/{notification_id}", response_model=NotificationResponse)
def get_notification(notification_id: int, db: DbClient = Depends(get_db_client)):
    notification = db.get_notification(notification_id)
    if not notification:
        raise _not_found("Notification")
    return notification


@router.post(
    "/notifications",
    response_model=NotificationResponse,
    status_code=201,
    dependencies=[Depends(require_admin)],
)
def create_notification(
    payload: NotificationCreate, db: DbClient = Depends(get_db_client)
):
    return db.create_notification(NewNotification(**payload.model_dump()))


@router.patch("/notifications/{notification_id}/read", response_model=MessageResponse)
def mark_notification_read(
    notification_id: int, db: DbClient = Depends(get_db_client)
):
    if not db.mark_notification_read(notification_id):
        raise _not_found("Notification")
    return MessageResponse(message="Notification marked as read")


@router.delete(
    "/notifications/{notification_id}",
    status_code=204,
    dependencies=[Depends(require_admin)],
)
def delete_notification(notification_id: int, db: DbClient = Depends(get_db_client)):
    if not db.delete_notification(notification_id):
        raise _not_found("Notification")
    return Response(status_code=204)


# Subscribers


@router.post("/subscribers", response_model=SubscriberResponse, status_code=201)
def create_subscriber(
    payload: SubscriberCreate, db: DbClient = Depends(get_db_client)
):
    if db.get_subscriber_by_email(payload.email):
        raise HTTPException(status_code=409, detail="Email already subscribed")
    return db.create_subscriber(NewSubscriber(**payload.model_dump()))


@router.get(
    "/subscribers",
    response_model=list[SubscriberResponse],
    dependencies=[Depends(require_admin)],
)
def list_subscribers(db: DbClient = Depends(get_db_client)):
    return db.list_subscribers()


@router.get(
    "/subscribers/{subscriber_id}",
    response_model=SubscriberResponse,
    dependencies=[Depends(require_admin)],
)
def get_subscriber(subscriber_id: int, db: DbClient = Depends(get_db_client)):
    subscriber = db.get_subscriber(subscriber_id)
    if not subscriber:
        raise _not_found("Subscriber")
    return subscriber


@router.delete(
    "/subscribers/{subscriber_id}",
    status_code=204,
    dependencies=[Depends(require_admin)],
)
def delete_subscriber(subscriber_id: int, db: DbClient = Depends(get_db_client)):
    if not db.delete_subscriber(subscriber_id):
        raise _not_found("Subscriber")
    return Response(status_code=204)


# Site settings and livestream


@router.get("/settings", response_model=SiteSettingsResponse)
def get_site_settings(db: DbClient = Depends(get_db_client)):
    settings = db.get_site_settings()
    if not settings:
        raise _not_found("Site settings")
    return settings


@router.put(
    "/settings",
    response_model=SiteSettingsResponse,
    dependencies=[Depends(require_admin)],
)
def update_site_settings(
    payload: SiteSettingsUpdate, db: DbClient = Depends(get_db_client)
):
    changes = payload.model_dump(exclude_unset=True)
    current = db.get_site_settings()
    is_live = changes.get(
        "is_live_streaming", current.is_live_streaming if current else False
    )
    stream_id = changes.get(
        "live_stream_id", current.live_stream_id if current else None
    )
    if is_live and not stream_id:
        raise HTTPException(
            status_code=400, detail="liveStreamId is required when going live"
        )
    if not is_live and "is_live_streaming" in changes:
        changes["live_stream_id"] = None
    return db.update_site_settings(changes)


@router.get("/livestream", response_model=LivestreamResponse)
def get_livestream(db: DbClient = Depends(get_db_client)):
    settings = db.get_site_settings()
    if not settings:
        raise _not_found("Site settings")
    return settings


@router.post(
    "/livestream",
    response_model=LivestreamResponse,
    dependencies=[Depends(require_admin)],
)
def update_livestream(
    payload: LivestreamUpdate, db: DbClient = Depends(get_db_client)
):
    return db.update_livestream_status(
        payload.is_live_streaming, payload.live_stream_id
    )


# Utilities


@router.post("/convert-link", response_model=ConvertLinkResponse)
def convert_link(payload: ConvertLinkRequest):
    converted = convert_to_direct_download_link(payload.url)
    return ConvertLinkResponse(
        original_url=payload.url,
        converted_url=converted,
        is_converted=converted != payload.url,
    )


@router.get("/qrcode/channel", response_model=QrCodeResponse)
def channel_qr_code(db: DbClient = Depends(get_db_client)):
    settings = db.get_site_settings()
    if not settings or not settings.youtube_channel_id:
        raise HTTPException(status_code=404, detail="Channel ID not configured")
    return QrCodeResponse(qr_code=generate_channel_qr_code(settings.youtube_channel_id))


@router.get("/qrcode/video/{video_id}", response_model=QrCodeResponse)
def video_qr_code(video_id: str):
    return QrCodeResponse(qr_code=generate_video_qr_code(video_id))
