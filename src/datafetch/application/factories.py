"""Factories wiring configuration into transports and the orchestrator."""

from typing import Dict, List, Mapping, Optional, Sequence

import requests

from datafetch.domain.models import ArchiveKind, Job, SourceKind
from datafetch.domain.protocols import ITransport, IExtractor, ILogger
from datafetch.domain.exceptions import ConfigurationError, TransportUnavailableError
from datafetch.infrastructure.config.loader import FetchConfig
from datafetch.infrastructure.storage.markers import MarkerStore
from datafetch.infrastructure.archive.extractor import ArchiveExtractor
from datafetch.infrastructure.transports import (
    HttpTransport,
    OneDriveTransport,
    GoogleDriveTransport,
    HuggingFaceTransport,
    GcsTransport,
    GcsCredentials,
    GitTransport,
)
from datafetch.application.orchestrator import FetchOrchestrator
from datafetch.shared.logging import get_logger, LoggerAdapter

logger = get_logger(__name__)


def validate_transport_map(transports: Mapping[SourceKind, ITransport]) -> None:
    """Raise ConfigurationError unless every source kind has a transport."""
    missing = [kind.value for kind in SourceKind if kind not in transports]
    if missing:
        raise ConfigurationError(f"No transport configured for: {', '.join(missing)}")


class TransportFactory:
    """
    Builds the kind -> transport map from configuration.

    Every SourceKind gets exactly one transport; adding a kind without
    registering it here is caught by validate_transport_map.
    """

    def __init__(self, config: FetchConfig, session: Optional[requests.Session] = None):
        self.config = config
        self._session = session or requests.Session()
        self._logger = get_logger(__name__)

    def create_http(self) -> HttpTransport:
        return HttpTransport(
            timeout=self.config.timeout,
            chunk_size=self.config.chunk_size,
            max_attempts=self.config.max_attempts,
            backoff_seconds=self.config.backoff_seconds,
            session=self._session,
            force=self.config.force,
        )

    def create_transports(self) -> Dict[SourceKind, ITransport]:
        http = self.create_http()
        transports: Dict[SourceKind, ITransport] = {
            SourceKind.DIRECT_HTTP: http,
            SourceKind.ONEDRIVE: OneDriveTransport(http, session=self._session, timeout=self.config.timeout),
            SourceKind.GOOGLE_DRIVE: GoogleDriveTransport(),
            SourceKind.HUGGINGFACE: HuggingFaceTransport(
                token=self.config.hf_token,
                max_workers=self.config.hf_max_workers,
            ),
            SourceKind.GCS_BUCKET: GcsTransport(
                credentials=GcsCredentials(
                    access_key=self.config.gcs_access_key or "",
                    secret_key=self.config.gcs_secret_key or "",
                    endpoint=self.config.gcs_endpoint,
                ),
                connect_timeout=self.config.timeout,
                max_attempts=self.config.max_attempts,
            ),
            SourceKind.GIT_CLONE: GitTransport(executable=self.config.git_executable),
        }
        validate_transport_map(transports)
        self._logger.debug(f"Transports: {', '.join(k.value for k in transports)}")
        return transports

    def create_extractor(self) -> ArchiveExtractor:
        return ArchiveExtractor(sevenzip_executable=self.config.sevenzip_executable)


def create_orchestrator(
    config: FetchConfig,
    catalog: Sequence[Job],
    transports: Optional[Mapping[SourceKind, ITransport]] = None,
    extractor: Optional[IExtractor] = None,
    logger: Optional[ILogger] = None,
) -> FetchOrchestrator:
    """
    Assemble an orchestrator for the given configuration and catalog.

    Transports and extractor are built from config unless passed in (the CLI
    builds them first so it can run the prerequisite check).
    """
    if transports is None or extractor is None:
        factory = TransportFactory(config)
        transports = transports if transports is not None else factory.create_transports()
        extractor = extractor or factory.create_extractor()
    return FetchOrchestrator(
        transports=transports,
        extractor=extractor,
        marker_store=MarkerStore(config.state_dir),
        logger=logger or LoggerAdapter(get_logger("datafetch.run")),
        catalog=catalog,
        force=config.force,
        dry_run=config.dry_run,
    )


def find_missing_prerequisites(
    jobs: Sequence[Job],
    transports: Mapping[SourceKind, ITransport],
    extractor: IExtractor,
) -> List[str]:
    """
    Check the host tools needed by the selected jobs.

    Returns:
        Remediation messages, empty when everything is available
    """
    problems: List[str] = []

    kinds = []
    for job in jobs:
        for source in job.sources:
            if source.kind not in kinds:
                kinds.append(source.kind)

    for kind in kinds:
        transport = transports.get(kind)
        if transport is None:
            problems.append(f"{kind.value}: no transport configured")
            continue
        try:
            transport.check_available()
        except TransportUnavailableError as e:
            problems.append(f"{kind.value}: {e}")

    if any(job.archive_kind == ArchiveKind.SEVENZIP for job in jobs):
        try:
            extractor.check_available(ArchiveKind.SEVENZIP)
        except TransportUnavailableError as e:
            problems.append(f"sevenzip: {e}")

    return problems
