"""Interactive job selection."""

from typing import Callable, List, Optional, Sequence

from datafetch.domain.models import Job
from datafetch.domain.exceptions import SelectionError
from datafetch.application.selection import Selection, select_jobs, tokenize

QUIT_WORDS = ("q", "quit", "exit")


def format_catalog(jobs: Sequence[Job]) -> str:
    """Numbered job list grouped by dataset, with size hints."""
    lines: List[str] = []
    current_group = None
    for number, job in enumerate(jobs, start=1):
        if job.group != current_group:
            current_group = job.group
            header = f"{job.group}"
            if job.size_hint:
                header += f" ({job.size_hint})"
            if job.description:
                header += f" - {job.description}"
            if lines:
                lines.append("")
            lines.append(header)
        lines.append(f"  {number:>4}) {job.name}  [{job.source_kind.value}]")
    return "\n".join(lines)


def prompt_for_selection(
    jobs: Sequence[Job],
    input_fn: Optional[Callable[[str], str]] = None,
    output_fn: Callable[[str], None] = print,
    assume_yes: bool = False,
) -> Optional[Selection]:
    """
    Ask the user which jobs to run.

    Accepts ``all``, numbers, ranges (``3-7``), job names, dataset names and
    globs, separated by commas or spaces. An empty answer or ``q`` quits.

    Returns:
        The selection, or None if the user quit or declined
    """
    input_fn = input_fn or input
    output_fn(format_catalog(jobs))
    output_fn("")
    output_fn("Select jobs: all, numbers (1,3), ranges (5-9), names, datasets or globs. Empty or 'q' quits.")

    while True:
        try:
            answer = input_fn("Selection: ").strip()
        except EOFError:
            return None

        if not answer or answer.lower() in QUIT_WORDS:
            return None

        try:
            selection = select_jobs(jobs, answer)
        except SelectionError as e:
            output_fn(str(e))
            continue

        for warning in selection.warnings:
            output_fn(f"⚠️  {warning}")

        if not selection.jobs:
            output_fn("Nothing matched, try again.")
            continue

        if "all" in (t.lower() for t in tokenize(answer)) and not assume_yes:
            try:
                confirm = input_fn(f"Download ALL {len(selection.jobs)} jobs? This is several TB. [y/N]: ")
            except EOFError:
                return None
            if confirm.strip().lower() not in ("y", "yes"):
                output_fn("Cancelled.")
                return None

        return selection
