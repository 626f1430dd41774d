"""
Turn cloud-storage share links into direct download links.

Only OneDrive/SharePoint links are recognized. ``1drv.ms`` short links are
not resolved to their target; the download marker is appended as-is.
"""

from __future__ import annotations

from urllib.parse import parse_qsl, urlsplit, urlunsplit

DOWNLOAD_MARKER = "download=1"

SHORT_LINK_HOST = "1drv.ms"
ONEDRIVE_HOST = "onedrive.live.com"
SHAREPOINT_HOST = "sharepoint.com"


def is_cloud_storage_link(url: str) -> bool:
    return any(marker in url for marker in (SHORT_LINK_HOST, ONEDRIVE_HOST, SHAREPOINT_HOST))


def _has_download_marker(query: str) -> bool:
    return ("download", "1") in parse_qsl(query)


def convert_to_direct_download_link(url: str) -> str:
    """
    Return a best-effort direct download link for ``url``.

    Unrecognized URLs are returned unchanged. Applying the conversion to its
    own output returns the same output.
    """
    if not is_cloud_storage_link(url):
        return url

    parts = urlsplit(url)
    if SHORT_LINK_HOST in url:
        if _has_download_marker(parts.query):
            return url
        query = f"{parts.query}&{DOWNLOAD_MARKER}" if parts.query else DOWNLOAD_MARKER
        return urlunsplit(parts._replace(query=query))

    # onedrive.live.com and sharepoint.com: drop the existing query string.
    # The fragment stays after the query.
    return urlunsplit(parts._replace(query=DOWNLOAD_MARKER))
