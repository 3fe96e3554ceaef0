"""
Google Cloud Storage transport.

Uses boto3 against the GCS XML API, which is S3-compatible when called with
HMAC interoperability keys (Cloud Console > Cloud Storage > Settings >
Interoperability).
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from datafetch.domain.models import Job, Source, SourceKind, FetchedPayload
from datafetch.domain.exceptions import AuthenticationRequiredError, TransferError
from datafetch.domain.locators import parse_gcs_locator
from datafetch.shared.logging import get_logger
from datafetch.shared.files import is_within

logger = get_logger(__name__)

DEFAULT_ENDPOINT = "https://storage.googleapis.com"

_AUTH_ERROR_CODES = {
    "AccessDenied",
    "InvalidAccessKeyId",
    "SignatureDoesNotMatch",
    "InvalidSecurity",
    "401",
    "403",
}


@dataclass
class GcsCredentials:
    """GCS HMAC interoperability credentials."""
    access_key: str
    secret_key: str
    endpoint: str = DEFAULT_ENDPOINT

    @classmethod
    def from_env(cls) -> 'GcsCredentials':
        """Load from environment variables."""
        return cls(
            access_key=os.getenv('GCS_HMAC_ACCESS_KEY', ''),
            secret_key=os.getenv('GCS_HMAC_SECRET', ''),
            endpoint=os.getenv('GCS_ENDPOINT', DEFAULT_ENDPOINT),
        )

    def validate(self) -> bool:
        """Check if credentials are set."""
        return bool(self.access_key and self.secret_key)


def _default_client_factory(credentials: GcsCredentials, config: Config):
    return boto3.client(
        's3',
        endpoint_url=credentials.endpoint,
        aws_access_key_id=credentials.access_key,
        aws_secret_access_key=credentials.secret_key,
        config=config,
    )


class GcsTransport:
    """
    Copies every object under ``gs://bucket/prefix`` into the job destination.

    Objects land under ``<destination>/<last prefix component>/`` the same
    way ``gsutil cp -r`` lays them out. Objects already on disk with the
    remote size are not fetched again.
    """

    kind = SourceKind.GCS_BUCKET

    def __init__(
        self,
        credentials: Optional[GcsCredentials] = None,
        connect_timeout: int = 60,
        max_attempts: int = 5,
        client_factory: Optional[Callable[[GcsCredentials, Config], Any]] = None,
    ):
        """
        Initialize GCS transport.

        Args:
            credentials: HMAC credentials (loads from env if None)
            connect_timeout: Connect/read timeout passed to botocore
            max_attempts: botocore retry attempts per request
            client_factory: Builds the S3 client (tests inject a fake)
        """
        self.credentials = credentials or GcsCredentials.from_env()
        self._config = Config(
            connect_timeout=connect_timeout,
            read_timeout=connect_timeout,
            retries={'max_attempts': max_attempts, 'mode': 'standard'},
            # GCS rejects the chunked checksum trailers newer botocore sends by default
            request_checksum_calculation='when_required',
            response_checksum_validation='when_required',
        )
        self._client_factory = client_factory or _default_client_factory
        self._client = None
        self._logger = get_logger(__name__)

    def check_available(self) -> None:
        return None

    def _s3(self):
        if not self.credentials.validate():
            raise AuthenticationRequiredError(
                "Google Cloud Storage credentials not set: authenticate first by creating "
                "HMAC keys and exporting GCS_HMAC_ACCESS_KEY and GCS_HMAC_SECRET"
            )
        if self._client is None:
            self._client = self._client_factory(self.credentials, self._config)
        return self._client

    def fetch(self, job: Job, source: Source) -> FetchedPayload:
        bucket, prefix = parse_gcs_locator(source.locator)
        s3 = self._s3()

        local_root = job.destination_path / (prefix.rsplit('/', 1)[-1] if prefix else bucket)
        list_prefix = f"{prefix}/" if prefix else ""

        self._logger.info(f"Listing gs://{bucket}/{list_prefix} -> {local_root}")

        transferred = 0
        fetched = 0
        present = 0
        try:
            paginator = s3.get_paginator('list_objects_v2')
            for page in paginator.paginate(Bucket=bucket, Prefix=list_prefix):
                for item in page.get('Contents', []):
                    key = item['Key']
                    if key.endswith('/'):
                        continue
                    relative = key[len(list_prefix):]
                    if not is_within(local_root, relative):
                        raise TransferError(f"Object key escapes destination: gs://{bucket}/{key}")
                    local_path = local_root / relative
                    size = int(item.get('Size', 0))

                    if local_path.exists() and local_path.stat().st_size == size:
                        present += 1
                        continue

                    local_path.parent.mkdir(parents=True, exist_ok=True)
                    self._logger.debug(f"gs://{bucket}/{key} -> {local_path}")
                    s3.download_file(bucket, key, str(local_path))
                    transferred += size
                    fetched += 1
        except ClientError as e:
            code = str(e.response.get('Error', {}).get('Code', ''))
            if code in _AUTH_ERROR_CODES:
                raise AuthenticationRequiredError(
                    f"Access to gs://{bucket}/{prefix} denied ({code}); check the HMAC key's permissions"
                ) from e
            raise TransferError(f"GCS transfer from gs://{bucket}/{prefix} failed: {e}") from e
        except BotoCoreError as e:
            raise TransferError(f"GCS transfer from gs://{bucket}/{prefix} failed: {e}") from e

        if fetched == 0 and present == 0:
            raise TransferError(f"No objects found under gs://{bucket}/{list_prefix}")

        self._logger.info(f"Fetched {fetched} object(s), {present} already present")
        return FetchedPayload(path=local_root, bytes_transferred=transferred, already_present=fetched == 0)
