"""Domain exceptions for the dataset fetch orchestrator."""

from typing import Optional


class DatafetchError(Exception):
    """Base exception for all domain errors."""
    pass


class ConfigurationError(DatafetchError):
    """Raised when configuration is invalid."""
    pass


class CatalogError(ConfigurationError):
    """Raised when the job catalog cannot be loaded or is inconsistent."""
    pass


class SelectionError(DatafetchError):
    """Raised when a job selection cannot be interpreted at all."""
    pass


class TransportUnavailableError(DatafetchError):
    """Raised when the tool a transport needs is not present on the host."""

    def __init__(self, message: str, remediation: Optional[str] = None):
        self.remediation = remediation
        if remediation:
            message = f"{message} ({remediation})"
        super().__init__(message)


class AuthenticationRequiredError(DatafetchError):
    """Raised when a source needs credentials that were not supplied."""
    pass


class TransferError(DatafetchError):
    """Raised when moving bytes from a source fails."""
    pass


class LocatorError(DatafetchError):
    """Raised when a locator does not have a recognized shape."""
    pass


class ManualDownloadRequiredError(LocatorError):
    """Raised when a locator cannot be turned into an automatic download."""
    pass


class ExtractionError(DatafetchError):
    """Raised when archive extraction fails."""
    pass


class CorruptArchiveError(ExtractionError):
    """Raised when a payload is not a readable archive of the expected kind."""
    pass
