"""Main orchestrator for dataset fetch runs."""

import time
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from datafetch.domain.models import (
    ArchiveKind,
    FetchedPayload,
    Job,
    Run,
    Source,
    SourceKind,
    TransferResult,
    TransferStatus,
)
from datafetch.domain.protocols import ITransport, IExtractor, IMarkerStore, ILogger
from datafetch.domain.exceptions import CorruptArchiveError, DatafetchError, LocatorError
from datafetch.shared.logging import get_logger
from datafetch.shared.files import format_bytes

logger = get_logger(__name__)

CORRUPT_SUFFIX = ".corrupt"


class FetchOrchestrator:
    """
    Runs catalog jobs one at a time and turns every outcome into a TransferResult.

    A failing job never stops the run: each job yields exactly one result,
    whatever goes wrong inside it. Only KeyboardInterrupt ends a run early.
    """

    def __init__(
        self,
        transports: Mapping[SourceKind, ITransport],
        extractor: IExtractor,
        marker_store: IMarkerStore,
        logger: ILogger,
        catalog: Sequence[Job],
        force: bool = False,
        dry_run: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._transports: Dict[SourceKind, ITransport] = dict(transports)
        self._extractor = extractor
        self._markers = marker_store
        self._logger = logger
        self._catalog: Tuple[Job, ...] = tuple(catalog)
        self.force = force
        self.dry_run = dry_run
        self._clock = clock

    def list_jobs(self) -> List[Job]:
        """The static catalog, in catalog order."""
        return list(self._catalog)

    def run_selection(self, jobs: Sequence[Job], run: Optional[Run] = None) -> List[TransferResult]:
        """
        Run jobs in order, continuing past failures.

        Args:
            jobs: Jobs to run
            run: Optional run to record each result into as soon as it exists

        Returns:
            One result per job, in input order
        """
        results = []
        total = len(jobs)
        for position, job in enumerate(jobs, start=1):
            self._logger.info(f"[{position}/{total}] {job.name}")
            result = self.run_job(job)
            results.append(result)
            if run is not None:
                run.record(result)
        return results

    def run_job(self, job: Job) -> TransferResult:
        """Execute one job. Never raises except for KeyboardInterrupt."""
        started = self._clock()
        try:
            return self._run_job(job, started)
        except Exception as e:
            self._logger.exception(
                f"Job {job.name} failed unexpectedly "
                f"[{job.source_kind.value} {job.locator}]: {e}"
            )
            return self._result(job, TransferStatus.FAILED, started, error=f"{type(e).__name__}: {e}")

    def _run_job(self, job: Job, started: float) -> TransferResult:
        if self.dry_run:
            self._logger.info(
                f"Dry run: would fetch {job.name} [{job.source_kind.value}] "
                f"{job.locator} -> {job.destination_path}"
                + (f" then extract ({job.archive_kind.value})" if job.archive_kind != ArchiveKind.NONE else "")
            )
            return self._result(job, TransferStatus.SKIPPED, started, warnings=("dry run",))

        if self._markers.exists(job.name):
            if not self.force:
                self._logger.info(f"Skipping {job.name}: already materialized (use --force to re-run)")
                return self._result(job, TransferStatus.SKIPPED, started, warnings=("already materialized",))
            # Marker is rewritten only if the forced run succeeds
            self._markers.remove(job.name)

        if not job.locator.strip():
            raise LocatorError(f"Job {job.name} has an empty locator")

        self._logger.info(
            f"Starting {job.name} [{job.source_kind.value}] {job.locator} -> {job.destination_path}"
        )
        job.destination_path.mkdir(parents=True, exist_ok=True)

        payload, source, errors = self._fetch_any(job)
        if payload is None:
            message = "; ".join(errors)
            self._logger.error(f"Job {job.name} failed [{job.source_kind.value} {job.locator}]: {message}")
            return self._result(job, TransferStatus.FAILED, started, error=message)

        warnings = [f"fell back to {source.kind.value} {source.locator} after: {e}" for e in errors]

        if job.archive_kind != ArchiveKind.NONE:
            try:
                report = self._extractor.materialize(payload.path, job.destination_path, job.archive_kind)
            except DatafetchError as e:
                self._logger.error(f"Job {job.name}: extraction failed for {payload.path}: {e}")
                set_aside = self._set_aside(payload.path) if isinstance(e, CorruptArchiveError) else None
                if set_aside is not None:
                    warnings.append(f"moved unreadable payload to {set_aside.name}")
                return self._result(
                    job, TransferStatus.FAILED, started,
                    bytes_transferred=payload.bytes_transferred,
                    error=f"extraction failed: {e}",
                    warnings=tuple(warnings),
                    source=source,
                )
            warnings.extend(report.warnings)

        self._markers.save(job.name, {
            "job": job.name,
            "kind": source.kind.value,
            "locator": source.locator,
            "bytes": payload.bytes_transferred,
        })

        self._logger.info(
            f"✅ {job.name} done ({format_bytes(payload.bytes_transferred)} transferred)"
        )
        for warning in warnings:
            self._logger.warning(f"{job.name}: {warning}")

        return self._result(
            job, TransferStatus.SUCCEEDED, started,
            bytes_transferred=payload.bytes_transferred,
            warnings=tuple(warnings),
            source=source,
        )

    def _fetch_any(self, job: Job) -> Tuple[Optional[FetchedPayload], Optional[Source], List[str]]:
        """Try the job's sources in order; return the first payload and the errors before it."""
        errors: List[str] = []
        for source in job.sources:
            transport = self._transports.get(source.kind)
            if transport is None:
                errors.append(f"{source.kind.value}: no transport registered")
                continue
            try:
                payload = self._fetch_source(transport, job, source)
            except DatafetchError as e:
                self._logger.warning(f"{job.name}: {source.kind.value} {source.locator} failed: {e}")
                errors.append(f"{source.kind.value} {source.locator}: {e}")
                continue
            return payload, source, errors
        return None, None, errors

    def _fetch_source(self, transport: ITransport, job: Job, source: Source) -> FetchedPayload:
        transferred = 0
        for index, companion in enumerate(source.companions, start=1):
            self._logger.info(f"{job.name}: companion {index}/{len(source.companions)}")
            part = transport.fetch(job, Source(kind=source.kind, locator=companion))
            transferred += part.bytes_transferred

        payload = transport.fetch(job, source)
        if not transferred:
            return payload
        return FetchedPayload(
            path=payload.path,
            bytes_transferred=payload.bytes_transferred + transferred,
            resumed_from=payload.resumed_from,
            already_present=False,
        )

    def _set_aside(self, path: Path) -> Optional[Path]:
        """Rename a payload that failed to extract so the next run fetches it again."""
        if not path.is_file():
            return None
        corrupt = path.with_name(path.name + CORRUPT_SUFFIX)
        try:
            path.replace(corrupt)
        except OSError as e:
            self._logger.warning(f"Could not move {path} aside: {e}")
            return None
        self._logger.warning(f"Moved {path.name} to {corrupt.name}; it will be downloaded again")
        return corrupt

    def _result(
        self,
        job: Job,
        status: TransferStatus,
        started: float,
        bytes_transferred: Optional[int] = None,
        error: Optional[str] = None,
        warnings: Tuple[str, ...] = (),
        source: Optional[Source] = None,
    ) -> TransferResult:
        source = source or job.primary_source
        return TransferResult(
            job_name=job.name,
            status=status,
            bytes_transferred=bytes_transferred,
            error_message=error,
            warnings=warnings,
            source_kind=source.kind,
            locator=source.locator,
            duration_seconds=max(self._clock() - started, 0.0),
        )
