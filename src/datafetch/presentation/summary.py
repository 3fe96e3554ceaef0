"""Run summary rendering."""

from pathlib import Path
from typing import List

from datafetch.domain.models import Run, TransferStatus
from datafetch.shared.files import format_bytes

SUMMARY_FILE = "DOWNLOAD_SUMMARY.md"

_STATUS_LABELS = {
    TransferStatus.SUCCEEDED: "✅ succeeded",
    TransferStatus.FAILED: "❌ failed",
    TransferStatus.SKIPPED: "⏭ skipped",
}


def _cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


def format_summary(run: Run, destination_root: Path) -> str:
    """Markdown summary of a run: one row per selected job, then follow-ups."""
    lines: List[str] = [
        "# Download Summary",
        "",
        f"- Started: {run.started_at:%Y-%m-%d %H:%M:%S}",
        f"- Destination: `{destination_root}`",
        f"- Jobs: {len(run.jobs)} selected, {len(run.succeeded)} succeeded, "
        f"{len(run.skipped)} skipped, {len(run.failed)} failed, {len(run.pending)} not run",
        "",
        "| # | Job | Source | Status | Bytes | Time | Details |",
        "|---|-----|--------|--------|-------|------|---------|",
    ]

    for position, (job, result) in enumerate(run.iter_pairs(), start=1):
        if result is None:
            lines.append(f"| {position} | {job.name} | {job.source_kind.value} | not run | | | |")
            continue
        details = result.error_message or "; ".join(result.warnings)
        size = format_bytes(result.bytes_transferred) if result.bytes_transferred is not None else ""
        kind = result.source_kind.value if result.source_kind else job.source_kind.value
        lines.append(
            f"| {position} | {job.name} | {kind} | {_STATUS_LABELS[result.status]} | {size} "
            f"| {result.duration_seconds:.1f}s | {_cell(details)} |"
        )

    failed_names = {r.job_name for r in run.failed}
    failed_jobs = [job for job in run.jobs if job.name in failed_names]
    if failed_jobs:
        lines += ["", "## Failed jobs", ""]
        for job in failed_jobs:
            lines.append(f"- **{job.name}** (`{job.locator}`)")
            if job.notes:
                lines.append(f"  - {job.notes}")

    retry = [job.name for job in failed_jobs] + [job.name for job in run.pending]
    if retry:
        lines += [
            "",
            "## Re-run",
            "",
            "```",
            f"datafetch --dest {destination_root} --select {','.join(retry)}",
            "```",
        ]

    return "\n".join(lines) + "\n"


def write_summary(run: Run, destination_root: Path) -> Path:
    """Write the summary to <destination_root>/DOWNLOAD_SUMMARY.md."""
    destination_root.mkdir(parents=True, exist_ok=True)
    path = destination_root / SUMMARY_FILE
    path.write_text(format_summary(run, destination_root), encoding="utf-8")
    return path
