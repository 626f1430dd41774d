"""
Storage backend selection and dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from fastapi import Depends, Header, HTTPException, Request

from fansite.config import Settings, get_settings
from fansite.db import (
    BackendUnavailable,
    DbClient,
    InMemoryDbClient,
    PostgresDbClient,
    StorageError,
)
from fansite.firestore_db import open_firestore
from fansite.models import NewDownload, NewUser
from fansite.security import is_admin_token

logger = logging.getLogger(__name__)

SAMPLE_DOWNLOADS = [
    NewDownload(
        title="Pixel Dungeon",
        description=(
            "A fun retro-style dungeon crawler with procedurally generated levels "
            "and hundreds of items to discover."
        ),
        type="game",
        version="1.2.0",
        download_url="/downloads/pixel_dungeon_v1.2.0.zip",
        thumbnail_url="https://images.unsplash.com/photo-1511512578047-dfb367046420",
        release_date=datetime(2023, 2, 12, tzinfo=timezone.utc),
    ),
    NewDownload(
        title="Enhanced Biomes",
        description=(
            "Adds 12 new biomes to Minecraft with unique flora, fauna, and "
            "structures to explore."
        ),
        type="mod",
        version="2.4.1",
        download_url="/downloads/enhanced_biomes_v2.4.1.zip",
        thumbnail_url="https://images.unsplash.com/photo-1627856013091-fed6e4e30025",
        release_date=datetime(2023, 5, 5, tzinfo=timezone.utc),
    ),
    NewDownload(
        title="Sprite Sheet Generator",
        description=(
            "Create and optimize sprite sheets for your game projects. "
            "Supports multiple formats."
        ),
        type="tool",
        version="1.0.5",
        download_url="/downloads/sprite_sheet_generator_v1.0.5.zip",
        thumbnail_url="https://images.unsplash.com/photo-1551033406-611cf9a28f67",
        release_date=datetime(2023, 8, 17, tzinfo=timezone.utc),
    ),
]


@dataclass
class ActiveBackend:
    """The storage backend chosen at startup, plus its name for diagnostics."""

    name: str
    db: DbClient


@dataclass
class BackendFactory:
    name: str
    open: Callable[[Settings], DbClient]
    seed: bool = True


def seed_defaults(db: DbClient, settings: Settings) -> None:
    """Create the default admin user and settings record if they are missing."""
    if db.get_user_by_username(settings.default_admin_username) is None:
        db.create_user(
            NewUser(
                username=settings.default_admin_username,
                password=settings.default_admin_password,
                is_admin=True,
            )
        )
        logger.info("Created default admin user %r", settings.default_admin_username)

    if db.get_site_settings() is None:
        db.update_site_settings({"youtube_channel_id": settings.youtube_channel_id})
        logger.info("Created default site settings")

    if settings.seed_sample_downloads and not db.list_downloads():
        for download in SAMPLE_DOWNLOADS:
            db.create_download(download)
        logger.info("Seeded %d sample downloads", len(SAMPLE_DOWNLOADS))


def _open_postgres(settings: Settings) -> DbClient:
    if not settings.database_url:
        raise BackendUnavailable("DATABASE_URL is not configured")
    return PostgresDbClient(settings.database_url)


def _open_memory(settings: Settings) -> DbClient:
    return InMemoryDbClient()


DEFAULT_FACTORIES = (
    BackendFactory("postgres", _open_postgres),
    # The document store tolerates absent documents, so nothing is seeded.
    BackendFactory("firestore", open_firestore, seed=False),
    BackendFactory("memory", _open_memory),
)


def select_backend(
    settings: Settings, factories: Optional[Sequence[BackendFactory]] = None
) -> ActiveBackend:
    """
    Try each backend in priority order and return the first that opens (and
    seeds, where applicable) cleanly. The in-memory backend is the last resort.
    """
    if factories is None:
        factories = DEFAULT_FACTORIES
    if settings.use_in_memory_backends:
        factories = [f for f in factories if f.name == "memory"]

    for factory in factories:
        try:
            db = factory.open(settings)
            if factory.seed:
                seed_defaults(db, settings)
        except StorageError as exc:
            logger.warning("Storage backend %s unavailable: %s", factory.name, exc)
            continue
        logger.info("Using %s storage backend", factory.name)
        return ActiveBackend(name=factory.name, db=db)

    raise BackendUnavailable("No storage backend could be initialized")


def get_active_backend(request: Request) -> ActiveBackend:
    return request.app.state.backend


def get_db_client(backend: ActiveBackend = Depends(get_active_backend)) -> DbClient:
    return backend.db


def is_admin_request(
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> bool:
    return is_admin_token(authorization, settings.admin_token)


def require_admin(is_admin: bool = Depends(is_admin_request)) -> None:
    if not is_admin:
        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
