"""Domain models for dataset fetching."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, List, Tuple, Iterator


class SourceKind(str, Enum):
    """Where a job's bytes come from."""

    DIRECT_HTTP = "direct_http"
    GOOGLE_DRIVE = "google_drive"
    HUGGINGFACE = "huggingface"
    GCS_BUCKET = "gcs_bucket"
    GIT_CLONE = "git_clone"
    ONEDRIVE = "onedrive"


class ArchiveKind(str, Enum):
    """How a downloaded payload is materialized."""

    TAR_GZ = "tar_gz"
    TAR = "tar"
    ZIP = "zip"
    SEVENZIP = "sevenzip"
    NONE = "none"
    AUTO = "auto"  # detect from file extension


class TransferStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


# Source kinds whose remote layout is already the final layout
LAYOUT_PRESERVING_KINDS = (SourceKind.HUGGINGFACE, SourceKind.GIT_CLONE)


@dataclass(frozen=True)
class Source:
    """One place a job can be fetched from."""

    kind: SourceKind
    locator: str
    filename: Optional[str] = None
    companions: Tuple[str, ...] = ()

    def __post_init__(self):
        if not self.locator or not self.locator.strip():
            raise ValueError("Source locator must not be empty")


@dataclass(frozen=True)
class Job:
    """Declarative download + materialize task for one dataset (or one part of it)."""

    name: str
    source_kind: SourceKind
    locator: str
    destination_path: Path
    archive_kind: ArchiveKind = ArchiveKind.NONE
    include: Tuple[str, ...] = ()
    filename: Optional[str] = None
    companions: Tuple[str, ...] = ()
    fallbacks: Tuple[Source, ...] = ()
    group: str = ""
    description: str = ""
    size_hint: str = ""
    notes: str = ""

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("Job name must not be empty")
        if not self.locator or not self.locator.strip():
            raise ValueError(f"Job {self.name}: locator must not be empty")
        if self.source_kind in LAYOUT_PRESERVING_KINDS and self.archive_kind != ArchiveKind.NONE:
            raise ValueError(
                f"Job {self.name}: {self.source_kind.value} jobs cannot use "
                f"archive kind {self.archive_kind.value}"
            )

    @property
    def primary_source(self) -> Source:
        return Source(
            kind=self.source_kind,
            locator=self.locator,
            filename=self.filename,
            companions=self.companions,
        )

    @property
    def sources(self) -> Tuple[Source, ...]:
        """Primary source followed by fallbacks, in the order they are tried."""
        return (self.primary_source,) + tuple(self.fallbacks)


@dataclass(frozen=True)
class FetchedPayload:
    """What a transport left on disk."""

    path: Path
    bytes_transferred: int = 0
    resumed_from: int = 0
    already_present: bool = False


@dataclass
class ExtractionReport:
    """What a materialization step did."""

    archives: List[Path] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def extracted_count(self) -> int:
        return len(self.archives)


@dataclass(frozen=True)
class TransferResult:
    """Outcome of running one job. Recorded exactly once per job."""

    job_name: str
    status: TransferStatus
    bytes_transferred: Optional[int] = None
    error_message: Optional[str] = None
    warnings: Tuple[str, ...] = ()
    source_kind: Optional[SourceKind] = None
    locator: str = ""
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status == TransferStatus.SUCCEEDED

    @property
    def failed(self) -> bool:
        return self.status == TransferStatus.FAILED


@dataclass
class Run:
    """Jobs selected for one invocation plus the results gathered so far."""

    jobs: Tuple[Job, ...]
    results: List[TransferResult] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)

    def record(self, result: TransferResult) -> None:
        """Record a job's result; a job can only be recorded once."""
        if any(r.job_name == result.job_name for r in self.results):
            raise ValueError(f"Result for job {result.job_name} already recorded")
        self.results.append(result)

    def _with_status(self, status: TransferStatus) -> List[TransferResult]:
        return [r for r in self.results if r.status == status]

    @property
    def succeeded(self) -> List[TransferResult]:
        return self._with_status(TransferStatus.SUCCEEDED)

    @property
    def failed(self) -> List[TransferResult]:
        return self._with_status(TransferStatus.FAILED)

    @property
    def skipped(self) -> List[TransferResult]:
        return self._with_status(TransferStatus.SKIPPED)

    @property
    def pending(self) -> List[Job]:
        """Jobs that have no result yet (e.g. after an interrupt)."""
        done = {r.job_name for r in self.results}
        return [job for job in self.jobs if job.name not in done]

    @property
    def all_succeeded(self) -> bool:
        return not self.failed and not self.pending

    def iter_pairs(self) -> Iterator[Tuple[Job, Optional[TransferResult]]]:
        by_name = {r.job_name: r for r in self.results}
        for job in self.jobs:
            yield job, by_name.get(job.name)
