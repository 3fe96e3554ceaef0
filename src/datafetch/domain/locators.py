"""Parsing and rewriting of source locators.

Pure string logic only; anything that needs the network (following a
``1drv.ms`` redirect, listing a bucket) lives in the infrastructure layer.
"""

import re
from dataclasses import dataclass
from typing import Tuple
from urllib.parse import urlsplit, urlunsplit

from .exceptions import LocatorError, ManualDownloadRequiredError


_GDRIVE_ID = r"([A-Za-z0-9_-]+)"
_GDRIVE_FILE_PATTERNS = (
    re.compile(r"drive\.google\.com/file/d/" + _GDRIVE_ID),
    re.compile(r"docs\.google\.com/\w+/d/" + _GDRIVE_ID),
    re.compile(r"[?&]id=" + _GDRIVE_ID),
)
_GDRIVE_FOLDER_PATTERN = re.compile(r"drive\.google\.com/(?:drive/)?(?:u/\d+/)?folders/" + _GDRIVE_ID)
_GDRIVE_BARE_ID = re.compile(r"^[A-Za-z0-9_-]{10,}$")

ONEDRIVE_HOST = "onedrive.live.com"
ONEDRIVE_SHORT_HOST = "1drv.ms"


@dataclass(frozen=True)
class DriveTarget:
    """A resolved Google Drive file or folder."""

    id: str
    is_folder: bool = False


def resolve_gdrive_id(locator: str) -> DriveTarget:
    """
    Resolve a Google Drive share URL or bare id to a stable id.

    Recognized shapes:
        https://drive.google.com/file/d/<id>/view
        https://drive.google.com/uc?id=<id>  (any ``id=`` query parameter)
        https://drive.google.com/drive/folders/<id>
        <id>

    Raises:
        LocatorError: If no id can be found
    """
    locator = (locator or "").strip()

    match = _GDRIVE_FOLDER_PATTERN.search(locator)
    if match:
        return DriveTarget(id=match.group(1), is_folder=True)

    for pattern in _GDRIVE_FILE_PATTERNS:
        match = pattern.search(locator)
        if match:
            return DriveTarget(id=match.group(1))

    if _GDRIVE_BARE_ID.match(locator):
        return DriveTarget(id=locator)

    raise LocatorError(f"Could not extract Google Drive file ID from locator: {locator!r}")


def is_onedrive_short_link(url: str) -> bool:
    return urlsplit(url).netloc.lower().endswith(ONEDRIVE_SHORT_HOST)


def rewrite_onedrive_url(url: str) -> str:
    """
    Turn a onedrive.live.com sharing URL into a direct-download URL.

    The ``download=1`` parameter is appended to the query (or replaces an
    existing ``download`` value).

    Raises:
        ManualDownloadRequiredError: If the URL is not a onedrive.live.com URL
    """
    parts = urlsplit((url or "").strip())
    host = parts.netloc.lower()
    if parts.scheme not in ("http", "https") or not (host == ONEDRIVE_HOST or host.endswith("." + ONEDRIVE_HOST)):
        raise ManualDownloadRequiredError(
            f"Cannot convert {url!r} to a direct download link; manual download required"
        )

    query = parts.query
    if not query:
        query = "download=1"
    elif re.search(r"(^|&)download=[^&]*", query):
        query = re.sub(r"(^|&)download=[^&]*", r"\1download=1", query)
    else:
        query = f"{query}&download=1"

    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def parse_gcs_locator(locator: str) -> Tuple[str, str]:
    """
    Split ``gs://bucket/some/prefix`` (or ``bucket/some/prefix``) into bucket and prefix.

    Raises:
        LocatorError: If no bucket name is present
    """
    value = (locator or "").strip()
    if value.startswith("gs://"):
        value = value[len("gs://"):]
    elif "://" in value:
        raise LocatorError(f"Not a Google Cloud Storage locator: {locator!r}")

    bucket, _, prefix = value.partition("/")
    if not bucket:
        raise LocatorError(f"Missing bucket name in locator: {locator!r}")
    return bucket, prefix.strip("/")
