"""Archive materialization."""

from datafetch.infrastructure.archive.extractor import ArchiveExtractor, detect_archive_kind

__all__ = ["ArchiveExtractor", "detect_archive_kind"]
