"""Small filesystem helpers shared by transports and the summary."""

import os
from pathlib import Path
from urllib.parse import urlsplit, unquote


def dir_size(path: Path) -> int:
    """Total size in bytes of all regular files under path (0 if missing)."""
    if not path.exists():
        return 0
    if path.is_file():
        return path.stat().st_size
    total = 0
    for root, _dirs, files in os.walk(path):
        for name in files:
            try:
                total += os.path.getsize(os.path.join(root, name))
            except OSError:
                continue
    return total


def filename_from_url(url: str, default: str = "download") -> str:
    """Last path component of a URL, without query string."""
    name = unquote(Path(urlsplit(url).path).name)
    return name or default


def format_bytes(size: float) -> str:
    for unit in ('B', 'KB', 'MB', 'GB', 'TB'):
        if abs(size) < 1024.0:
            return f"{size:.1f}{unit}"
        size /= 1024.0
    return f"{size:.1f}PB"


def is_within(root: Path, relative: str) -> bool:
    """True if root/relative resolves to a path inside root (symlinks followed)."""
    base = os.path.realpath(root)
    target = os.path.realpath(os.path.join(base, relative))
    return os.path.commonpath([base, target]) == base
