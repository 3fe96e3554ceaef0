"""Domain layer package."""

from .models import (
    SourceKind,
    ArchiveKind,
    TransferStatus,
    Source,
    Job,
    FetchedPayload,
    ExtractionReport,
    TransferResult,
    Run,
)
from .exceptions import (
    DatafetchError,
    ConfigurationError,
    CatalogError,
    SelectionError,
    TransportUnavailableError,
    AuthenticationRequiredError,
    TransferError,
    LocatorError,
    ManualDownloadRequiredError,
    ExtractionError,
    CorruptArchiveError,
)
from .protocols import (
    ITransport,
    IExtractor,
    IMarkerStore,
    ILogger,
)
from .locators import (
    DriveTarget,
    resolve_gdrive_id,
    rewrite_onedrive_url,
    parse_gcs_locator,
)

__all__ = [
    # Models
    "SourceKind",
    "ArchiveKind",
    "TransferStatus",
    "Source",
    "Job",
    "FetchedPayload",
    "ExtractionReport",
    "TransferResult",
    "Run",
    # Exceptions
    "DatafetchError",
    "ConfigurationError",
    "CatalogError",
    "SelectionError",
    "TransportUnavailableError",
    "AuthenticationRequiredError",
    "TransferError",
    "LocatorError",
    "ManualDownloadRequiredError",
    "ExtractionError",
    "CorruptArchiveError",
    # Protocols
    "ITransport",
    "IExtractor",
    "IMarkerStore",
    "ILogger",
    # Locators
    "DriveTarget",
    "resolve_gdrive_id",
    "rewrite_onedrive_url",
    "parse_gcs_locator",
]
