"""Archive extraction (zip, tar, tar.gz, 7z) with re-run markers."""

import os
import shutil
import tarfile
import zipfile
from pathlib import Path
from typing import List, Optional

from datafetch.domain.models import ArchiveKind, ExtractionReport
from datafetch.domain.exceptions import CorruptArchiveError, ExtractionError, TransportUnavailableError
from datafetch.infrastructure.storage.markers import MarkerStore
from datafetch.shared.logging import get_logger
from datafetch.shared.shell import run_cmd
from datafetch.shared.files import is_within

logger = get_logger(__name__)

EXTRACTION_MARKER_DIR = ".extraction_markers"
SEVENZIP_HINT = "install p7zip-full (apt-get install p7zip-full)"
SEVENZIP_FATAL_ERROR = 2

_SUFFIX_KINDS = (
    (".tar.gz", ArchiveKind.TAR_GZ),
    (".tgz", ArchiveKind.TAR_GZ),
    (".tar", ArchiveKind.TAR),
    (".zip", ArchiveKind.ZIP),
    (".7z", ArchiveKind.SEVENZIP),
)


def detect_archive_kind(path: Path) -> Optional[ArchiveKind]:
    """Archive kind implied by a file name, or None if it is not a known archive."""
    name = path.name.lower()
    for suffix, kind in _SUFFIX_KINDS:
        if name.endswith(suffix):
            return kind
    return None


def _matches(path: Path, kind: ArchiveKind) -> bool:
    detected = detect_archive_kind(path)
    if detected is None:
        return False
    if kind == ArchiveKind.AUTO:
        return True
    if kind == ArchiveKind.SEVENZIP:
        # 7z also opens zip archives, including split zip sets
        return detected in (ArchiveKind.SEVENZIP, ArchiveKind.ZIP)
    return detected == kind


def _ensure_inside(destination: Path, member_name: str) -> None:
    if not is_within(destination, member_name):
        raise ExtractionError(f"Archive member escapes destination: {member_name}")


class ArchiveExtractor:
    """
    Materializes downloaded archives into a destination directory.

    Every extracted archive gets a JSON marker (size, mtime, file count) in
    ``<destination>/.extraction_markers/``; an unchanged archive with a marker
    is not extracted again. Archives themselves are kept.

    Implements IExtractor protocol.
    """

    def __init__(self, sevenzip_executable: str = "7z"):
        self.sevenzip_executable = sevenzip_executable
        self._logger = get_logger(__name__)

    def check_available(self, kind: ArchiveKind) -> None:
        if kind == ArchiveKind.SEVENZIP and shutil.which(self.sevenzip_executable) is None:
            raise TransportUnavailableError(
                f"'{self.sevenzip_executable}' not found on PATH", remediation=SEVENZIP_HINT
            )

    def materialize(self, payload: Path, destination: Path, kind: ArchiveKind) -> ExtractionReport:
        """
        Extract payload according to kind.

        A file payload is extracted into destination. A directory payload has
        every matching archive beneath it extracted next to itself.

        Raises:
            ExtractionError: If an archive is corrupt, unsafe or cannot be opened
        """
        report = ExtractionReport()
        if kind == ArchiveKind.NONE:
            return report

        if payload.is_dir():
            archives = self._find_archives(payload, kind)
            if not archives:
                report.warnings.append(f"No {kind.value} archives found under {payload}")
            for archive in archives:
                self._extract_one(archive, archive.parent, self._resolve_kind(archive, kind), report)
            return report

        if not payload.exists():
            raise ExtractionError(f"Archive not found: {payload}")

        resolved = self._resolve_kind(payload, kind)
        if resolved is None:
            message = f"Unrecognized archive extension for {payload.name}; extraction skipped"
            self._logger.warning(message)
            report.warnings.append(message)
            report.skipped.append(payload)
            return report

        self._extract_one(payload, destination, resolved, report)
        return report

    def _resolve_kind(self, archive: Path, kind: ArchiveKind) -> Optional[ArchiveKind]:
        if kind == ArchiveKind.AUTO:
            return detect_archive_kind(archive)
        return kind

    def _find_archives(self, directory: Path, kind: ArchiveKind) -> List[Path]:
        found = []
        for path in sorted(directory.rglob("*")):
            if EXTRACTION_MARKER_DIR in path.parts or not path.is_file():
                continue
            if _matches(path, kind):
                found.append(path)
        return found

    def _extract_one(self, archive: Path, destination: Path, kind: ArchiveKind, report: ExtractionReport) -> None:
        markers = MarkerStore(destination / EXTRACTION_MARKER_DIR)
        stat = archive.stat()
        marker = markers.load(archive.name)
        if marker and marker.get("size") == stat.st_size and marker.get("mtime") == int(stat.st_mtime):
            self._logger.info(f"Already extracted, skipping: {archive.name}")
            report.skipped.append(archive)
            return

        destination.mkdir(parents=True, exist_ok=True)
        self._logger.info(f"Extracting {archive.name} ({kind.value}) into {destination}")

        if kind == ArchiveKind.ZIP:
            count = self._extract_zip(archive, destination)
        elif kind in (ArchiveKind.TAR, ArchiveKind.TAR_GZ):
            count = self._extract_tar(archive, destination, kind)
        elif kind == ArchiveKind.SEVENZIP:
            count = self._extract_7z(archive, destination)
        else:
            raise ExtractionError(f"Cannot extract {archive.name} as {kind.value}")

        markers.save(archive.name, {
            "archive": str(archive),
            "size": stat.st_size,
            "mtime": int(stat.st_mtime),
            "extracted_files": count,
        })
        report.archives.append(archive)

    def _extract_zip(self, archive: Path, destination: Path) -> int:
        try:
            with zipfile.ZipFile(archive) as zf:
                names = zf.namelist()
                for name in names:
                    _ensure_inside(destination, name)
                zf.extractall(destination)
        except (zipfile.BadZipFile, zipfile.LargeZipFile) as e:
            raise CorruptArchiveError(f"Corrupt zip archive {archive.name}: {e}") from e
        except OSError as e:
            raise ExtractionError(f"Failed to extract {archive.name}: {e}") from e
        return len(names)

    def _extract_tar(self, archive: Path, destination: Path, kind: ArchiveKind) -> int:
        mode = "r:gz" if kind == ArchiveKind.TAR_GZ else "r:*"
        try:
            with tarfile.open(archive, mode) as tf:
                members = tf.getmembers()
                for member in members:
                    _ensure_inside(destination, member.name)
                    if member.issym():
                        _ensure_inside(destination, os.path.join(os.path.dirname(member.name), member.linkname))
                    elif member.islnk():
                        _ensure_inside(destination, member.linkname)
                if hasattr(tarfile, "data_filter"):
                    tf.extractall(destination, members=members, filter="data")
                else:
                    tf.extractall(destination, members=members)
        except tarfile.TarError as e:
            raise CorruptArchiveError(f"Corrupt tar archive {archive.name}: {e}") from e
        except OSError as e:
            raise ExtractionError(f"Failed to extract {archive.name}: {e}") from e
        return len(members)

    def _extract_7z(self, archive: Path, destination: Path) -> int:
        rc, out, err = run_cmd(
            [self.sevenzip_executable, "x", str(archive), f"-o{destination}", "-y", "-bb1"]
        )
        if rc == 127:
            raise ExtractionError(f"7z binary '{self.sevenzip_executable}' not found; {SEVENZIP_HINT}")
        detail = (err or out).strip()
        if rc == SEVENZIP_FATAL_ERROR and "Missing volume" not in detail:
            raise CorruptArchiveError(f"7z could not read {archive.name}: {detail}")
        if rc != 0:
            raise ExtractionError(f"7z failed on {archive.name} (exit {rc}): {detail}")
        return sum(1 for line in out.splitlines() if line.startswith("- "))
