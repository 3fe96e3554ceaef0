"""Resumable HTTP/HTTPS transport."""

import requests
import shutil
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse
from urllib.request import url2pathname

from datafetch.domain.models import Job, Source, SourceKind, FetchedPayload
from datafetch.domain.exceptions import (
    TransferError,
    AuthenticationRequiredError,
    LocatorError,
)
from datafetch.shared.logging import get_logger
from datafetch.shared.retry import RetryStrategy
from datafetch.shared.files import filename_from_url, format_bytes

logger = get_logger(__name__)

PARTIAL_SUFFIX = ".part"
PROGRESS_LOG_INTERVAL = 256 * 1024 * 1024


class HttpTransport:
    """
    Downloads single files over HTTP/HTTPS with byte-range resume.

    Bytes are streamed into ``<name>.part``. When that file already exists the
    request carries ``Range: bytes=<size>-``; a ``206`` reply is appended, a
    ``200`` reply means the server ignored the range and the file is
    restarted. The partial file is renamed once the body has been read.

    Also accepts ``file://`` URLs and local paths, which are copied.
    Implements ITransport protocol.
    """

    kind = SourceKind.DIRECT_HTTP

    def __init__(
        self,
        timeout: int = 60,
        chunk_size: int = 1024 * 1024,
        max_attempts: int = 5,
        backoff_seconds: float = 2.0,
        retry: Optional[RetryStrategy] = None,
        session: Optional[requests.Session] = None,
        force: bool = False,
    ):
        """
        Initialize HTTP transport.

        Args:
            timeout: Connect/read timeout in seconds
            chunk_size: Download chunk size in bytes
            max_attempts: Attempts per file when no retry strategy is given
            backoff_seconds: Initial backoff between attempts
            retry: Retry strategy for transient failures (each retry resumes)
            session: requests session to use (one is created if omitted)
            force: Discard finished and partial files instead of reusing them
        """
        self.timeout = timeout
        self.chunk_size = chunk_size
        self._logger = get_logger(__name__)
        self._retry = retry or RetryStrategy(
            max_attempts=max_attempts,
            backoff_seconds=backoff_seconds,
            exceptions=(TransferError,),
            on_retry=self._log_retry,
        )
        self._session = session or requests.Session()
        self.force = force

    def check_available(self) -> None:
        """requests is a hard dependency; nothing to probe."""
        return None

    def fetch(self, job: Job, source: Source) -> FetchedPayload:
        """
        Download source.locator into the job's destination directory.

        Raises:
            TransferError: If the download ultimately fails
            AuthenticationRequiredError: If the server answers 401/403
        """
        target = job.destination_path / (source.filename or filename_from_url(source.locator, job.name))
        return self.download(source.locator, target)

    def download(self, url: str, target: Path) -> FetchedPayload:
        """
        Download url to target, resuming a previous partial transfer.

        Args:
            url: URL to download from or local file path
            target: Final file path

        Returns:
            FetchedPayload describing the file on disk
        """
        partial = target.with_name(target.name + PARTIAL_SUFFIX)
        if self.force:
            for stale in (target, partial):
                if stale.exists():
                    self._logger.info(f"Forced re-download, removing {stale}")
                    stale.unlink()
        elif target.exists():
            self._logger.info(f"Already downloaded, skipping: {target}")
            return FetchedPayload(path=target, bytes_transferred=0, already_present=True)

        local = self._local_source(url)
        if local is not None:
            return self._copy_local(local, target)

        parsed = urlparse(url)
        if parsed.scheme not in ('http', 'https'):
            raise LocatorError(f"Unsupported URL scheme: {url}")

        target.parent.mkdir(parents=True, exist_ok=True)
        return self._retry.execute(self._download_once, url, target)

    def _download_once(self, url: str, target: Path) -> FetchedPayload:
        partial = target.with_name(target.name + PARTIAL_SUFFIX)
        offset = partial.stat().st_size if partial.exists() else 0

        headers = {}
        if offset:
            headers['Range'] = f'bytes={offset}-'
            self._logger.info(f"Resuming {url} from byte {offset} ({format_bytes(offset)})")
        else:
            self._logger.info(f"Downloading {url} to {target}")

        try:
            response = self._session.get(
                url,
                stream=True,
                timeout=self.timeout,
                headers=headers,
                allow_redirects=True,
            )
        except requests.RequestException as e:
            raise TransferError(f"Failed to connect to {url}: {e}") from e

        try:
            if offset and response.status_code == 416:
                total = _content_range_total(response.headers.get('Content-Range', ''))
                if total == offset:
                    self._logger.info(f"Server reports {partial.name} already complete")
                    partial.replace(target)
                    return FetchedPayload(path=target, bytes_transferred=0, resumed_from=offset)
                partial.unlink()
                raise TransferError(
                    f"Partial file {partial.name} has {offset} bytes but {url} reports "
                    f"{total if total is not None else 'an unknown size'}; restarting"
                )

            if response.status_code in (401, 403):
                raise AuthenticationRequiredError(
                    f"{url} answered HTTP {response.status_code}; the link may require "
                    f"credentials or may have expired"
                )

            try:
                response.raise_for_status()
            except requests.HTTPError as e:
                raise TransferError(f"Failed to download {url}: {e}") from e

            if offset and response.status_code != 206:
                self._logger.warning(
                    f"Server ignored range request for {url}; restarting full transfer"
                )
                offset = 0

            written = self._write_body(response, partial, append=bool(offset))
        finally:
            response.close()

        partial.replace(target)
        self._logger.info(
            f"Downloaded {format_bytes(written)} to {target}"
            + (f" (resumed at byte {offset})" if offset else "")
        )
        return FetchedPayload(path=target, bytes_transferred=written, resumed_from=offset)

    def _write_body(self, response, partial: Path, append: bool) -> int:
        written = 0
        next_report = PROGRESS_LOG_INTERVAL
        try:
            with open(partial, 'ab' if append else 'wb') as f:
                for chunk in response.iter_content(chunk_size=self.chunk_size):
                    if not chunk:
                        continue
                    f.write(chunk)
                    written += len(chunk)
                    if written >= next_report:
                        self._logger.debug(f"{partial.name}: {format_bytes(written)} received")
                        next_report += PROGRESS_LOG_INTERVAL
        except requests.RequestException as e:
            raise TransferError(
                f"Connection lost after {format_bytes(written)} of {partial.name}: {e}"
            ) from e
        return written

    def _local_source(self, url: str) -> Optional[Path]:
        parsed = urlparse(url)
        if parsed.scheme == 'file':
            path = Path(url2pathname(parsed.path))
            if not path.exists():
                raise TransferError(f"File not found: {path}")
            return path
        if parsed.scheme == '' and Path(url).is_file():
            return Path(url)
        return None

    def _copy_local(self, source: Path, target: Path) -> FetchedPayload:
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target)
        except OSError as e:
            raise TransferError(f"Failed to copy {source} to {target}: {e}") from e
        self._logger.info(f"Copied {source} to {target}")
        return FetchedPayload(path=target, bytes_transferred=target.stat().st_size)

    def _log_retry(self, attempt: int, error: Exception, wait: float) -> None:
        self._logger.warning(f"Attempt {attempt} failed: {error}; retrying in {wait:.1f}s")


def _content_range_total(value: str) -> Optional[int]:
    """Total length from a ``Content-Range`` header such as ``bytes */1234``."""
    _, _, total = value.rpartition('/')
    total = total.strip()
    return int(total) if total.isdigit() else None
