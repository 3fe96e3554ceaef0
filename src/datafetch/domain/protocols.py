"""Protocol definitions for dependency inversion."""

from pathlib import Path
from typing import Protocol, Optional, Dict, Any

from .models import Job, Source, SourceKind, ArchiveKind, FetchedPayload, ExtractionReport


class ITransport(Protocol):
    """Moves bytes for one source kind into a job's destination."""

    kind: SourceKind

    def fetch(self, job: Job, source: Source) -> FetchedPayload:
        """Fetch source into job.destination_path."""
        ...

    def check_available(self) -> None:
        """Raise TransportUnavailableError if the host lacks the needed tool."""
        ...


class IExtractor(Protocol):
    """Interface for materializing downloaded archives."""

    def materialize(self, payload: Path, destination: Path, kind: ArchiveKind) -> ExtractionReport:
        """Extract payload into destination according to kind."""
        ...

    def check_available(self, kind: ArchiveKind) -> None:
        """Raise TransportUnavailableError if kind cannot be extracted on this host."""
        ...


class IMarkerStore(Protocol):
    """Interface for small JSON markers that survive between runs."""

    def save(self, name: str, data: Dict[str, Any]) -> None:
        ...

    def load(self, name: str) -> Optional[Dict[str, Any]]:
        ...

    def exists(self, name: str) -> bool:
        ...

    def remove(self, name: str) -> None:
        ...


class ILogger(Protocol):
    """Interface for logging."""

    def debug(self, message: str, **kwargs) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, **kwargs) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, **kwargs) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, **kwargs) -> None:
        """Log error message."""
        ...

    def exception(self, message: str, **kwargs) -> None:
        """Log exception with traceback."""
        ...

