"""Google Drive transport backed by gdown."""

import gdown
from pathlib import Path

from datafetch.domain.models import Job, Source, SourceKind, FetchedPayload
from datafetch.domain.exceptions import TransferError
from datafetch.domain.locators import resolve_gdrive_id
from datafetch.shared.files import dir_size
from datafetch.shared.logging import get_logger

logger = get_logger(__name__)


class GoogleDriveTransport:
    """
    Downloads Google Drive files and folders.

    gdown takes care of the large-file confirmation page Drive serves instead
    of the file body. Single files resume from gdown's own partial file.
    """

    kind = SourceKind.GOOGLE_DRIVE

    def __init__(self, quiet: bool = False):
        self.quiet = quiet
        self._logger = get_logger(__name__)

    def check_available(self) -> None:
        return None

    def fetch(self, job: Job, source: Source) -> FetchedPayload:
        target = resolve_gdrive_id(source.locator)
        if target.is_folder:
            return self._fetch_folder(target.id, job.destination_path)
        return self._fetch_file(target.id, job.destination_path, source.filename)

    def _fetch_file(self, file_id: str, destination: Path, filename=None) -> FetchedPayload:
        # gdown treats a trailing separator as "pick the name Drive reports"
        output = str(destination / filename) if filename else str(destination) + "/"
        if filename and (destination / filename).exists():
            self._logger.info(f"Already downloaded, skipping: {destination / filename}")
            return FetchedPayload(path=destination / filename, already_present=True)

        self._logger.info(f"Downloading Google Drive file {file_id} into {destination}")
        try:
            result = gdown.download(id=file_id, output=output, quiet=self.quiet, resume=True)
        except Exception as e:
            raise TransferError(f"Google Drive download of {file_id} failed: {e}") from e

        if not result:
            raise TransferError(
                f"Google Drive download of {file_id} produced no file "
                f"(quota exceeded or file not shared publicly?)"
            )

        path = Path(result)
        return FetchedPayload(path=path, bytes_transferred=path.stat().st_size if path.exists() else 0)

    def _fetch_folder(self, folder_id: str, destination: Path) -> FetchedPayload:
        self._logger.info(f"Downloading Google Drive folder {folder_id} into {destination}")
        before = dir_size(destination)
        try:
            files = gdown.download_folder(
                id=folder_id,
                output=str(destination),
                quiet=self.quiet,
                resume=True,
            )
        except Exception as e:
            raise TransferError(f"Google Drive folder download of {folder_id} failed: {e}") from e

        if files is None:
            raise TransferError(f"Google Drive folder download of {folder_id} returned nothing")

        self._logger.info(f"Fetched {len(files)} file(s) from folder {folder_id}")
        return FetchedPayload(path=destination, bytes_transferred=max(dir_size(destination) - before, 0))
