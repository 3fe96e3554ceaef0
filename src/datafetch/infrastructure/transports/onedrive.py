"""OneDrive share-link transport."""

import requests
from typing import Optional

from datafetch.domain.models import Job, Source, SourceKind, FetchedPayload
from datafetch.domain.exceptions import TransferError
from datafetch.domain.locators import is_onedrive_short_link, rewrite_onedrive_url
from datafetch.infrastructure.transports.http import HttpTransport
from datafetch.shared.files import filename_from_url
from datafetch.shared.logging import get_logger

logger = get_logger(__name__)


class OneDriveTransport:
    """
    Fetches public OneDrive share links.

    ``1drv.ms`` short links are expanded by following their redirects, the
    resulting onedrive.live.com URL is rewritten into a direct-download URL
    and the bytes are moved by the HTTP transport (so transfers resume).
    """

    kind = SourceKind.ONEDRIVE

    def __init__(
        self,
        http: HttpTransport,
        session: Optional[requests.Session] = None,
        timeout: int = 30,
    ):
        self._http = http
        self._session = session or requests.Session()
        self.timeout = timeout
        self._logger = get_logger(__name__)

    def check_available(self) -> None:
        return None

    def resolve(self, url: str) -> str:
        """
        Return the direct-download URL for a share link.

        Raises:
            TransferError: If a short link cannot be expanded
            ManualDownloadRequiredError: If the link does not lead to onedrive.live.com
        """
        if is_onedrive_short_link(url):
            url = self._expand_short_link(url)
        direct = rewrite_onedrive_url(url)
        self._logger.debug(f"OneDrive direct link: {direct}")
        return direct

    def fetch(self, job: Job, source: Source) -> FetchedPayload:
        direct = self.resolve(source.locator)
        filename = source.filename or filename_from_url(direct, default=f"{job.name}.download")
        return self._http.download(direct, job.destination_path / filename)

    def _expand_short_link(self, url: str) -> str:
        self._logger.info(f"Resolving OneDrive short link {url}")
        try:
            response = self._session.head(url, allow_redirects=True, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransferError(f"Could not resolve OneDrive link {url}: {e}") from e
        try:
            resolved = response.url or url
        finally:
            response.close()
        return resolved
