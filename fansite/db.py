"""
Storage port plus the Postgres and in-memory backends.

Every backend implements ``DbClient``. Lookups of a missing id return
``None`` (or ``False`` for boolean operations); backend failures surface as
``StorageError``.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Dict, Iterator, Optional, Protocol

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
    delete,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from fansite.models import (
    DEFAULT_NEWS_TICKER_ITEMS,
    DOWNLOAD_FIELDS,
    SETTINGS_FIELDS,
    SETTINGS_ID,
    VIDEO_FIELDS,
    Comment,
    Download,
    NewComment,
    NewDownload,
    NewNotification,
    NewSubscriber,
    NewUser,
    NewVideo,
    Notification,
    SiteSetting,
    Subscriber,
    User,
    Video,
    utcnow,
)
from fansite.security import hash_password

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """A storage backend failed to complete an operation."""


class ConstraintViolation(StorageError):
    """A uniqueness or reference constraint rejected a write."""


class BackendUnavailable(StorageError):
    """A backend is not configured or cannot be reached."""


class DbClient(Protocol):
    """Interface every storage backend implements."""

    # Users
    def get_user(self, user_id: int) -> Optional[User]:
        ...

    def get_user_by_username(self, username: str) -> Optional[User]:
        ...

    def create_user(self, user: NewUser) -> User:
        ...

    # Videos
    def list_videos(self) -> list[Video]:
        ...

    def list_videos_by_category(self, category: str) -> list[Video]:
        ...

    def get_video(self, video_id: int) -> Optional[Video]:
        ...

    def create_video(self, video: NewVideo) -> Video:
        ...

    def update_video(self, video_id: int, changes: dict) -> Optional[Video]:
        ...

    def delete_video(self, video_id: int) -> bool:
        ...

    def get_featured_video(self) -> Optional[Video]:
        ...

    def set_featured_video(self, video_id: int) -> bool:
        ...

    # Downloads
    def list_downloads(self) -> list[Download]:
        ...

    def list_downloads_by_type(self, download_type: str) -> list[Download]:
        ...

    def get_download(self, download_id: int) -> Optional[Download]:
        ...

    def create_download(self, download: NewDownload) -> Download:
        ...

    def update_download(self, download_id: int, changes: dict) -> Optional[Download]:
        ...

    def delete_download(self, download_id: int) -> bool:
        ...

    def increment_download_count(self, download_id: int) -> Optional[int]:
        ...

    # Notifications
    def list_notifications(self) -> list[Notification]:
        ...

    def get_notification(self, notification_id: int) -> Optional[Notification]:
        ...

    def create_notification(self, notification: NewNotification) -> Notification:
        ...

    def mark_notification_read(self, notification_id: int) -> bool:
        ...

    def delete_notification(self, notification_id: int) -> bool:
        ...

    # Subscribers
    def list_subscribers(self) -> list[Subscriber]:
        ...

    def get_subscriber(self, subscriber_id: int) -> Optional[Subscriber]:
        ...

    def get_subscriber_by_email(self, email: str) -> Optional[Subscriber]:
        ...

    def create_subscriber(self, subscriber: NewSubscriber) -> Subscriber:
        ...

    def delete_subscriber(self, subscriber_id: int) -> bool:
        ...

    # Site settings
    def get_site_settings(self) -> Optional[SiteSetting]:
        ...

    def update_site_settings(self, changes: dict) -> SiteSetting:
        ...

    def update_livestream_status(
        self, is_live: bool, stream_id: Optional[str] = None
    ) -> SiteSetting:
        ...

    # Comments
    def list_comments_by_video(self, video_id: int) -> list[Comment]:
        ...

    def get_comment(self, comment_id: int) -> Optional[Comment]:
        ...

    def create_comment(self, comment: NewComment) -> Comment:
        ...

    def delete_comment(self, comment_id: int) -> bool:
        ...

    def approve_comment(self, comment_id: int) -> bool:
        ...


POINTER_UNCHANGED = object()


def featured_pointer_after_update(
    *,
    was_featured: bool,
    old_youtube_id: str,
    new_youtube_id: str,
    changes: dict,
) -> Any:
    """
    Work out where SiteSetting.featured_video_id should point after a video
    update. Returns ``POINTER_UNCHANGED`` when the pointer stays as it is.
    """
    flag = changes.get("is_featured")
    if flag is True:
        return new_youtube_id
    if was_featured and flag is False:
        return None
    if was_featured and new_youtube_id != old_youtube_id:
        return new_youtube_id
    return POINTER_UNCHANGED


def pick_changes(changes: dict, allowed: tuple[str, ...]) -> dict:
    return {key: value for key, value in changes.items() if key in allowed}


class InMemoryDbClient:
    """Process-local storage for development, fallback and tests."""

    def __init__(self):
        self._lock = threading.RLock()
        self._counters: Dict[str, int] = {}
        self.users: Dict[int, User] = {}
        self.videos: Dict[int, Video] = {}
        self.downloads: Dict[int, Download] = {}
        self.notifications: Dict[int, Notification] = {}
        self.subscribers: Dict[int, Subscriber] = {}
        self.comments: Dict[int, Comment] = {}
        self.settings: Optional[SiteSetting] = None

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self._counters.clear()
            self.users.clear()
            self.videos.clear()
            self.downloads.clear()
            self.notifications.clear()
            self.subscribers.clear()
            self.comments.clear()
            self.settings = None

    def _next_id(self, kind: str) -> int:
        self._counters[kind] = self._counters.get(kind, 0) + 1
        return self._counters[kind]

    # Users

    def get_user(self, user_id: int) -> Optional[User]:
        with self._lock:
            user = self.users.get(user_id)
            return replace(user) if user else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._lock:
            for user in self.users.values():
                if user.username == username:
                    return replace(user)
            return None

    def create_user(self, user: NewUser) -> User:
        with self._lock:
            if any(u.username == user.username for u in self.users.values()):
                raise ConstraintViolation(f"username already exists: {user.username}")
            record = User(
                id=self._next_id("users"),
                username=user.username,
                password=hash_password(user.password),
                is_admin=user.is_admin,
            )
            self.users[record.id] = record
            return replace(record)

    # Videos

    def _featured_video_id(self) -> Optional[int]:
        pointer = self.settings.featured_video_id if self.settings else None
        if not pointer:
            return None
        return self._video_id_for(pointer)

    def _video_id_for(self, youtube_id: str) -> Optional[int]:
        for video in self.videos.values():
            if video.youtube_id == youtube_id:
                return video.id
        return None

    def _check_youtube_id_free(self, youtube_id: str, video_id: Optional[int] = None) -> None:
        owner = self._video_id_for(youtube_id)
        if owner is not None and owner != video_id:
            raise ConstraintViolation(f"youtube id already exists: {youtube_id}")

    def _point_featured_at(self, youtube_id: Optional[str]) -> None:
        settings = self._ensure_settings()
        settings.featured_video_id = youtube_id
        settings.last_updated = utcnow()

    def _video_out(self, video: Video, featured_id: Optional[int]) -> Video:
        return replace(video, is_featured=video.id == featured_id)

    def list_videos(self) -> list[Video]:
        with self._lock:
            featured_id = self._featured_video_id()
            return [
                self._video_out(v, featured_id)
                for _, v in sorted(self.videos.items())
            ]

    def list_videos_by_category(self, category: str) -> list[Video]:
        return [v for v in self.list_videos() if v.category == category]

    def get_video(self, video_id: int) -> Optional[Video]:
        with self._lock:
            video = self.videos.get(video_id)
            if not video:
                return None
            return self._video_out(video, self._featured_video_id())

    def create_video(self, video: NewVideo) -> Video:
        with self._lock:
            self._check_youtube_id_free(video.youtube_id)
            record = Video(
                id=self._next_id("videos"),
                youtube_id=video.youtube_id,
                title=video.title,
                description=video.description,
                thumbnail_url=video.thumbnail_url,
                duration=video.duration,
                view_count=video.view_count,
                upload_date=video.upload_date,
                category=video.category,
            )
            self.videos[record.id] = record
            if video.is_featured:
                self._point_featured_at(record.youtube_id)
            return self._video_out(record, self._featured_video_id())

    def update_video(self, video_id: int, changes: dict) -> Optional[Video]:
        with self._lock:
            video = self.videos.get(video_id)
            if not video:
                return None
            was_featured = self._featured_video_id() == video_id
            old_youtube_id = video.youtube_id
            if "youtube_id" in changes:
                self._check_youtube_id_free(changes["youtube_id"], video_id)
            for key, value in pick_changes(changes, VIDEO_FIELDS).items():
                setattr(video, key, value)
            pointer = featured_pointer_after_update(
                was_featured=was_featured,
                old_youtube_id=old_youtube_id,
                new_youtube_id=video.youtube_id,
                changes=changes,
            )
            if pointer is not POINTER_UNCHANGED:
                self._point_featured_at(pointer)
            return self._video_out(video, self._featured_video_id())

    def delete_video(self, video_id: int) -> bool:
        with self._lock:
            if video_id not in self.videos:
                return False
            if self._featured_video_id() == video_id:
                self._point_featured_at(None)
            for comment_id in [
                c.id for c in self.comments.values() if c.video_id == video_id
            ]:
                del self.comments[comment_id]
            del self.videos[video_id]
            return True

    def get_featured_video(self) -> Optional[Video]:
        with self._lock:
            featured_id = self._featured_video_id()
            if featured_id is None:
                return None
            return self._video_out(self.videos[featured_id], featured_id)

    def set_featured_video(self, video_id: int) -> bool:
        with self._lock:
            video = self.videos.get(video_id)
            if not video:
                return False
            self._point_featured_at(video.youtube_id)
            return True

    # Downloads

    def list_downloads(self) -> list[Download]:
        with self._lock:
            return [replace(d) for _, d in sorted(self.downloads.items())]

    def list_downloads_by_type(self, download_type: str) -> list[Download]:
        return [d for d in self.list_downloads() if d.type == download_type]

    def get_download(self, download_id: int) -> Optional[Download]:
        with self._lock:
            download = self.downloads.get(download_id)
            return replace(download) if download else None

    def create_download(self, download: NewDownload) -> Download:
        with self._lock:
            record = Download(
                id=self._next_id("downloads"),
                title=download.title,
                description=download.description,
                type=download.type,
                version=download.version,
                download_url=download.download_url,
                thumbnail_url=download.thumbnail_url,
                release_date=download.release_date or utcnow(),
            )
            self.downloads[record.id] = record
            return replace(record)

    def update_download(self, download_id: int, changes: dict) -> Optional[Download]:
        with self._lock:
            download = self.downloads.get(download_id)
            if not download:
                return None
            for key, value in pick_changes(changes, DOWNLOAD_FIELDS).items():
                setattr(download, key, value)
            return replace(download)

    def delete_download(self, download_id: int) -> bool:
        with self._lock:
            return self.downloads.pop(download_id, None) is not None

    def increment_download_count(self, download_id: int) -> Optional[int]:
        with self._lock:
            download = self.downloads.get(download_id)
            if not download:
                return None
            download.download_count += 1
            return download.download_count

    # Notifications

    def list_notifications(self) -> list[Notification]:
        with self._lock:
            return [
                replace(n)
                for _, n in sorted(self.notifications.items(), reverse=True)
            ]

    def get_notification(self, notification_id: int) -> Optional[Notification]:
        with self._lock:
            notification = self.notifications.get(notification_id)
            return replace(notification) if notification else None

    def create_notification(self, notification: NewNotification) -> Notification:
        with self._lock:
            record = Notification(
                id=self._next_id("notifications"),
                title=notification.title,
                message=notification.message,
                type=notification.type,
            )
            self.notifications[record.id] = record
            return replace(record)

    def mark_notification_read(self, notification_id: int) -> bool:
        with self._lock:
            notification = self.notifications.get(notification_id)
            if not notification:
                return False
            notification.read = True
            return True

    def delete_notification(self, notification_id: int) -> bool:
        with self._lock:
            return self.notifications.pop(notification_id, None) is not None

    # Subscribers

    def list_subscribers(self) -> list[Subscriber]:
        with self._lock:
            return [replace(s) for _, s in sorted(self.subscribers.items())]

    def get_subscriber(self, subscriber_id: int) -> Optional[Subscriber]:
        with self._lock:
            subscriber = self.subscribers.get(subscriber_id)
            return replace(subscriber) if subscriber else None

    def get_subscriber_by_email(self, email: str) -> Optional[Subscriber]:
        with self._lock:
            for subscriber in self.subscribers.values():
                if subscriber.email == email:
                    return replace(subscriber)
            return None

    def create_subscriber(self, subscriber: NewSubscriber) -> Subscriber:
        with self._lock:
            if any(s.email == subscriber.email for s in self.subscribers.values()):
                raise ConstraintViolation(f"email already subscribed: {subscriber.email}")
            record = Subscriber(
                id=self._next_id("subscribers"),
                email=subscriber.email,
                notification_type=subscriber.notification_type,
            )
            self.subscribers[record.id] = record
            return replace(record)

    def delete_subscriber(self, subscriber_id: int) -> bool:
        with self._lock:
            return self.subscribers.pop(subscriber_id, None) is not None

    # Site settings

    def _ensure_settings(self) -> SiteSetting:
        if self.settings is None:
            self.settings = SiteSetting()
        return self.settings

    def _settings_out(self) -> SiteSetting:
        return replace(
            self.settings, news_ticker_items=list(self.settings.news_ticker_items)
        )

    def get_site_settings(self) -> Optional[SiteSetting]:
        with self._lock:
            if self.settings is None:
                return None
            return self._settings_out()

    def update_site_settings(self, changes: dict) -> SiteSetting:
        with self._lock:
            settings = self._ensure_settings()
            for key, value in pick_changes(changes, SETTINGS_FIELDS).items():
                if key == "news_ticker_items":
                    value = list(value)
                setattr(settings, key, value)
            settings.last_updated = utcnow()
            return self._settings_out()

    def update_livestream_status(
        self, is_live: bool, stream_id: Optional[str] = None
    ) -> SiteSetting:
        with self._lock:
            settings = self._ensure_settings()
            settings.is_live_streaming = is_live
            settings.live_stream_id = stream_id if is_live else None
            settings.last_updated = utcnow()
            return self._settings_out()

    # Comments

    def list_comments_by_video(self, video_id: int) -> list[Comment]:
        with self._lock:
            return [
                replace(c)
                for _, c in sorted(self.comments.items())
                if c.video_id == video_id
            ]

    def get_comment(self, comment_id: int) -> Optional[Comment]:
        with self._lock:
            comment = self.comments.get(comment_id)
            return replace(comment) if comment else None

    def create_comment(self, comment: NewComment) -> Comment:
        with self._lock:
            if comment.video_id not in self.videos:
                raise ConstraintViolation(f"video {comment.video_id} does not exist")
            if comment.user_id is not None and comment.user_id not in self.users:
                raise ConstraintViolation(f"user {comment.user_id} does not exist")
            record = Comment(
                id=self._next_id("comments"),
                video_id=comment.video_id,
                user_id=comment.user_id,
                author=comment.author,
                content=comment.content,
            )
            self.comments[record.id] = record
            return replace(record)

    def delete_comment(self, comment_id: int) -> bool:
        with self._lock:
            return self.comments.pop(comment_id, None) is not None

    def approve_comment(self, comment_id: int) -> bool:
        with self._lock:
            comment = self.comments.get(comment_id)
            if not comment:
                return False
            comment.approved = True
            return True


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        try:
            self.engine = create_engine(
                database_url,
                future=True,
                pool_pre_ping=True,
                pool_recycle=1800,
            )
        except (SQLAlchemyError, ImportError) as exc:
            # Malformed URL or missing DBAPI driver.
            logger.warning("Cannot build a database engine: %s", exc)
            raise BackendUnavailable(f"Invalid database URL: {exc}") from exc
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            logger.exception("Creating Postgres tables failed")
            self.engine.dispose()
            raise BackendUnavailable(f"Postgres schema setup failed: {exc}") from exc

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self.Session()
        try:
            yield session
        except IntegrityError as exc:
            session.rollback()
            logger.warning("Postgres constraint violation: %s", exc.orig)
            raise ConstraintViolation(str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Postgres operation failed")
            raise StorageError("Postgres operation failed") from exc
        finally:
            session.close()

    # Row conversion

    def _to_user(self, row: "UserRow") -> User:
        return User(
            id=row.id,
            username=row.username,
            password=row.password,
            is_admin=row.is_admin,
            created_at=row.created_at,
        )

    def _to_video(self, row: "VideoRow", featured_id: Optional[int]) -> Video:
        return Video(
            id=row.id,
            youtube_id=row.youtube_id,
            title=row.title,
            description=row.description,
            thumbnail_url=row.thumbnail_url,
            duration=row.duration,
            view_count=row.view_count,
            upload_date=row.upload_date,
            category=row.category,
            is_featured=row.id == featured_id,
            created_at=row.created_at,
        )

    def _to_download(self, row: "DownloadRow") -> Download:
        return Download(
            id=row.id,
            title=row.title,
            description=row.description,
            type=row.type,
            version=row.version,
            download_url=row.download_url,
            thumbnail_url=row.thumbnail_url,
            download_count=row.download_count,
            rating=row.rating,
            rating_count=row.rating_count,
            release_date=row.release_date,
            created_at=row.created_at,
        )

    def _to_notification(self, row: "NotificationRow") -> Notification:
        return Notification(
            id=row.id,
            title=row.title,
            message=row.message,
            type=row.type,
            read=row.read,
            created_at=row.created_at,
        )

    def _to_subscriber(self, row: "SubscriberRow") -> Subscriber:
        return Subscriber(
            id=row.id,
            email=row.email,
            notification_type=row.notification_type,
            created_at=row.created_at,
        )

    def _to_settings(self, row: "SiteSettingRow") -> SiteSetting:
        return SiteSetting(
            id=row.id,
            youtube_channel_id=row.youtube_channel_id,
            featured_video_id=row.featured_video_id,
            news_ticker_items=list(row.news_ticker_items or []),
            is_live_streaming=row.is_live_streaming,
            live_stream_id=row.live_stream_id,
            last_updated=row.last_updated,
        )

    def _to_comment(self, row: "CommentRow") -> Comment:
        return Comment(
            id=row.id,
            video_id=row.video_id,
            user_id=row.user_id,
            author=row.author,
            content=row.content,
            approved=row.approved,
            created_at=row.created_at,
        )

    # Users

    def get_user(self, user_id: int) -> Optional[User]:
        with self._session() as session:
            row = session.get(UserRow, user_id)
            return self._to_user(row) if row else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._session() as session:
            row = session.execute(
                select(UserRow).where(UserRow.username == username)
            ).scalar_one_or_none()
            return self._to_user(row) if row else None

    def create_user(self, user: NewUser) -> User:
        with self._session() as session:
            row = UserRow(
                username=user.username,
                password=hash_password(user.password),
                is_admin=user.is_admin,
                created_at=utcnow(),
            )
            session.add(row)
            session.commit()
            return self._to_user(row)

    # Videos

    def _settings_row(self, session: Session) -> "SiteSettingRow":
        row = session.get(SiteSettingRow, SETTINGS_ID)
        if row is None:
            row = SiteSettingRow(
                id=SETTINGS_ID,
                news_ticker_items=list(DEFAULT_NEWS_TICKER_ITEMS),
                is_live_streaming=False,
                last_updated=utcnow(),
            )
            session.add(row)
        return row

    def _featured_video_id(self, session: Session) -> Optional[int]:
        settings = session.get(SiteSettingRow, SETTINGS_ID)
        if not settings or not settings.featured_video_id:
            return None
        return session.execute(
            select(VideoRow.id).where(
                VideoRow.youtube_id == settings.featured_video_id
            )
        ).scalar()

    def _point_featured_at(self, session: Session, youtube_id: Optional[str]) -> None:
        settings = self._settings_row(session)
        settings.featured_video_id = youtube_id
        settings.last_updated = utcnow()

    def _list_videos(self, session: Session, stmt) -> list[Video]:
        featured_id = self._featured_video_id(session)
        rows = session.execute(stmt.order_by(VideoRow.id.asc())).scalars().all()
        return [self._to_video(row, featured_id) for row in rows]

    def list_videos(self) -> list[Video]:
        with self._session() as session:
            return self._list_videos(session, select(VideoRow))

    def list_videos_by_category(self, category: str) -> list[Video]:
        with self._session() as session:
            return self._list_videos(
                session, select(VideoRow).where(VideoRow.category == category)
            )

    def get_video(self, video_id: int) -> Optional[Video]:
        with self._session() as session:
            row = session.get(VideoRow, video_id)
            if not row:
                return None
            return self._to_video(row, self._featured_video_id(session))

    def create_video(self, video: NewVideo) -> Video:
        with self._session() as session:
            row = VideoRow(
                youtube_id=video.youtube_id,
                title=video.title,
                description=video.description,
                thumbnail_url=video.thumbnail_url,
                duration=video.duration,
                view_count=video.view_count,
                upload_date=video.upload_date,
                category=video.category,
                created_at=utcnow(),
            )
            session.add(row)
            session.flush()
            if video.is_featured:
                self._point_featured_at(session, row.youtube_id)
            session.commit()
            return self._to_video(row, self._featured_video_id(session))

    def update_video(self, video_id: int, changes: dict) -> Optional[Video]:
        with self._session() as session:
            row = session.get(VideoRow, video_id)
            if not row:
                return None
            was_featured = self._featured_video_id(session) == video_id
            old_youtube_id = row.youtube_id
            for key, value in pick_changes(changes, VIDEO_FIELDS).items():
                setattr(row, key, value)
            pointer = featured_pointer_after_update(
                was_featured=was_featured,
                old_youtube_id=old_youtube_id,
                new_youtube_id=row.youtube_id,
                changes=changes,
            )
            if pointer is not POINTER_UNCHANGED:
                self._point_featured_at(session, pointer)
            session.commit()
            return self._to_video(row, self._featured_video_id(session))

    def delete_video(self, video_id: int) -> bool:
        with self._session() as session:
            row = session.get(VideoRow, video_id)
            if not row:
                return False
            if self._featured_video_id(session) == video_id:
                self._point_featured_at(session, None)
            session.execute(delete(CommentRow).where(CommentRow.video_id == video_id))
            session.delete(row)
            session.commit()
            return True

    def get_featured_video(self) -> Optional[Video]:
        with self._session() as session:
            featured_id = self._featured_video_id(session)
            if featured_id is None:
                return None
            return self._to_video(session.get(VideoRow, featured_id), featured_id)

    def set_featured_video(self, video_id: int) -> bool:
        with self._session() as session:
            row = session.get(VideoRow, video_id)
            if not row:
                return False
            self._point_featured_at(session, row.youtube_id)
            session.commit()
            return True

    # Downloads

    def list_downloads(self) -> list[Download]:
        with self._session() as session:
            rows = session.execute(
                select(DownloadRow).order_by(DownloadRow.id.asc())
            ).scalars()
            return [self._to_download(row) for row in rows]

    def list_downloads_by_type(self, download_type: str) -> list[Download]:
        with self._session() as session:
            rows = session.execute(
                select(DownloadRow)
                .where(DownloadRow.type == download_type)
                .order_by(DownloadRow.id.asc())
            ).scalars()
            return [self._to_download(row) for row in rows]

    def get_download(self, download_id: int) -> Optional[Download]:
        with self._session() as session:
            row = session.get(DownloadRow, download_id)
            return self._to_download(row) if row else None

    def create_download(self, download: NewDownload) -> Download:
        now = utcnow()
        with self._session() as session:
            row = DownloadRow(
                title=download.title,
                description=download.description,
                type=download.type,
                version=download.version,
                download_url=download.download_url,
                thumbnail_url=download.thumbnail_url,
                download_count=0,
                rating=0,
                rating_count=0,
                release_date=download.release_date or now,
                created_at=now,
            )
            session.add(row)
            session.commit()
            return self._to_download(row)

    def update_download(self, download_id: int, changes: dict) -> Optional[Download]:
        with self._session() as session:
            row = session.get(DownloadRow, download_id)
            if not row:
                return None
            for key, value in pick_changes(changes, DOWNLOAD_FIELDS).items():
                setattr(row, key, value)
            session.commit()
            return self._to_download(row)

    def delete_download(self, download_id: int) -> bool:
        with self._session() as session:
            row = session.get(DownloadRow, download_id)
            if not row:
                return False
            session.delete(row)
            session.commit()
            return True

    def increment_download_count(self, download_id: int) -> Optional[int]:
        with self._session() as session:
            stmt = (
                update(DownloadRow)
                .where(DownloadRow.id == download_id)
                .values(download_count=DownloadRow.download_count + 1)
                .returning(DownloadRow.download_count)
                .execution_options(synchronize_session=False)
            )
            count = session.execute(stmt).scalar_one_or_none()
            session.commit()
            return count

    # Notifications

    def list_notifications(self) -> list[Notification]:
        with self._session() as session:
            rows = session.execute(
                select(NotificationRow).order_by(NotificationRow.id.desc())
            ).scalars()
            return [self._to_notification(row) for row in rows]

    def get_notification(self, notification_id: int) -> Optional[Notification]:
        with self._session() as session:
            row = session.get(NotificationRow, notification_id)
            return self._to_notification(row) if row else None

    def create_notification(self, notification: NewNotification) -> Notification:
        with self._session() as session:
            row = NotificationRow(
                title=notification.title,
                message=notification.message,
                type=notification.type,
                read=False,
                created_at=utcnow(),
            )
            session.add(row)
            session.commit()
            return self._to_notification(row)

    def mark_notification_read(self, notification_id: int) -> bool:
        with self._session() as session:
            row = session.get(NotificationRow, notification_id)
            if not row:
                return False
            row.read = True
            session.commit()
            return True

    def delete_notification(self, notification_id: int) -> bool:
        with self._session() as session:
            row = session.get(NotificationRow, notification_id)
            if not row:
                return False
            session.delete(row)
            session.commit()
            return True

    # Subscribers

    def list_subscribers(self) -> list[Subscriber]:
        with self._session() as session:
            rows = session.execute(
                select(SubscriberRow).order_by(SubscriberRow.id.asc())
            ).scalars()
            return [self._to_subscriber(row) for row in rows]

    def get_subscriber(self, subscriber_id: int) -> Optional[Subscriber]:
        with self._session() as session:
            row = session.get(SubscriberRow, subscriber_id)
            return self._to_subscriber(row) if row else None

    def get_subscriber_by_email(self, email: str) -> Optional[Subscriber]:
        with self._session() as session:
            row = session.execute(
                select(SubscriberRow).where(SubscriberRow.email == email)
            ).scalar_one_or_none()
            return self._to_subscriber(row) if row else None

    def create_subscriber(self, subscriber: NewSubscriber) -> Subscriber:
        with self._session() as session:
            row = SubscriberRow(
                email=subscriber.email,
                notification_type=subscriber.notification_type,
                created_at=utcnow(),
            )
            session.add(row)
            session.commit()
            return self._to_subscriber(row)

    def delete_subscriber(self, subscriber_id: int) -> bool:
        with self._session() as session:
            row = session.get(SubscriberRow, subscriber_id)
            if not row:
                return False
            session.delete(row)
            session.commit()
            return True

    # Site settings

    def get_site_settings(self) -> Optional[SiteSetting]:
        with self._session() as session:
            row = session.get(SiteSettingRow, SETTINGS_ID)
            return self._to_settings(row) if row else None

    def update_site_settings(self, changes: dict) -> SiteSetting:
        with self._session() as session:
            row = self._settings_row(session)
            for key, value in pick_changes(changes, SETTINGS_FIELDS).items():
                if key == "news_ticker_items":
                    value = list(value)
                setattr(row, key, value)
            row.last_updated = utcnow()
            session.commit()
            return self._to_settings(row)

    def update_livestream_status(
        self, is_live: bool, stream_id: Optional[str] = None
    ) -> SiteSetting:
        with self._session() as session:
            row = self._settings_row(session)
            row.is_live_streaming = is_live
            row.live_stream_id = stream_id if is_live else None
            row.last_updated = utcnow()
            session.commit()
            return self._to_settings(row)

    # Comments

    def list_comments_by_video(self, video_id: int) -> list[Comment]:
        with self._session() as session:
            rows = session.execute(
                select(CommentRow)
                .where(CommentRow.video_id == video_id)
                .order_by(CommentRow.id.asc())
            ).scalars()
            return [self._to_comment(row) for row in rows]

    def get_comment(self, comment_id: int) -> Optional[Comment]:
        with self._session() as session:
            row = session.get(CommentRow, comment_id)
            return self._to_comment(row) if row else None

    def create_comment(self, comment: NewComment) -> Comment:
        with self._session() as session:
            row = CommentRow(
                video_id=comment.video_id,
                user_id=comment.user_id,
                author=comment.author,
                content=comment.content,
                approved=False,
                created_at=utcnow(),
            )
            session.add(row)
            session.commit()
            return self._to_comment(row)

    def delete_comment(self, comment_id: int) -> bool:
        with self._session() as session:
            row = session.get(CommentRow, comment_id)
            if not row:
                return False
            session.delete(row)
            session.commit()
            return True

    def approve_comment(self, comment_id: int) -> bool:
        with self._session() as session:
            row = session.get(CommentRow, comment_id)
            if not row:
                return False
            row.approved = True
            session.commit()
            return True


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String, nullable=False, unique=True)
    password = Column(String, nullable=False)
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False)


class VideoRow(Base):
    __tablename__ = "videos"

    id = Column(Integer, primary_key=True, autoincrement=True)
    youtube_id = Column(String, nullable=False, unique=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    thumbnail_url = Column(String, nullable=True)
    duration = Column(String, nullable=True)
    view_count = Column(Integer, nullable=True)
    upload_date = Column(DateTime(timezone=True), nullable=True)
    category = Column(String, nullable=False, default="general", index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)


class DownloadRow(Base):
    __tablename__ = "downloads"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String, nullable=False, index=True)
    version = Column(String, nullable=False)
    download_url = Column(String, nullable=False)
    thumbnail_url = Column(String, nullable=True)
    download_count = Column(Integer, nullable=False, default=0)
    rating = Column(Integer, nullable=False, default=0)
    rating_count = Column(Integer, nullable=False, default=0)
    release_date = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)


class NotificationRow(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String, nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False)


class SubscriberRow(Base):
    __tablename__ = "subscribers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String, nullable=False, unique=True)
    notification_type = Column(String, nullable=False, default="all")
    created_at = Column(DateTime(timezone=True), nullable=False)


class SiteSettingRow(Base):
    __tablename__ = "site_settings"

    id = Column(Integer, primary_key=True)
    youtube_channel_id = Column(String, nullable=True)
    featured_video_id = Column(String, nullable=True)
    news_ticker_items = Column(JSON, nullable=False)
    is_live_streaming = Column(Boolean, nullable=False, default=False)
    live_stream_id = Column(String, nullable=True)
    last_updated = Column(DateTime(timezone=True), nullable=False)


class CommentRow(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    video_id = Column(Integer, ForeignKey("videos.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    author = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    approved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
