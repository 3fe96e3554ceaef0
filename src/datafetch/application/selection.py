"""Turns user selectors into an ordered list of catalog jobs."""

import fnmatch
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence, Union

from datafetch.domain.models import Job
from datafetch.domain.exceptions import SelectionError

_TOKEN_SPLIT = re.compile(r"[,\s]+")
_RANGE = re.compile(r"^(\d+)-(\d+)$")
_GLOB_CHARS = set("*?[")


@dataclass
class Selection:
    """Jobs picked by a selector string plus anything that could not be matched."""

    jobs: List[Job] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.jobs)


def tokenize(selectors: Union[str, Iterable[str]]) -> List[str]:
    if isinstance(selectors, str):
        selectors = [selectors]
    tokens = []
    for chunk in selectors:
        tokens.extend(t for t in _TOKEN_SPLIT.split(chunk or "") if t)
    return tokens


def select_jobs(catalog: Sequence[Job], selectors: Union[str, Iterable[str]]) -> Selection:
    """
    Resolve selectors against the catalog.

    Each token is ``all``, a 1-based number, an inclusive range ``a-b``, an
    exact job name, a dataset group name (case-insensitive) or a glob over
    job names. Jobs keep the order their tokens appear in; repeats are
    dropped. Tokens that match nothing produce a warning and are skipped.

    Raises:
        SelectionError: If no tokens were given at all
    """
    tokens = tokenize(selectors)
    if not tokens:
        raise SelectionError("Empty selection")

    selection = Selection()
    seen = set()

    def add(jobs: Iterable[Job]) -> None:
        for job in jobs:
            if job.name not in seen:
                seen.add(job.name)
                selection.jobs.append(job)

    by_name = {job.name: job for job in catalog}
    total = len(catalog)

    for token in tokens:
        if token.lower() == "all":
            add(catalog)
            continue

        if token.isdigit():
            number = int(token)
            if 1 <= number <= total:
                add([catalog[number - 1]])
            else:
                selection.warnings.append(f"Selection {number} is out of range (1-{total}), skipped")
            continue

        match = _RANGE.match(token)
        if match:
            start, stop = int(match.group(1)), int(match.group(2))
            if start > stop:
                selection.warnings.append(f"Range {token} is reversed, skipped")
                continue
            if start < 1 or stop > total:
                selection.warnings.append(
                    f"Range {token} exceeds the catalog (1-{total}); out-of-range entries skipped"
                )
            add(catalog[i - 1] for i in range(max(start, 1), min(stop, total) + 1))
            continue

        if token in by_name:
            add([by_name[token]])
            continue

        group = [job for job in catalog if job.group.lower() == token.lower()]
        if group:
            add(group)
            continue

        if _GLOB_CHARS & set(token):
            matched = [job for job in catalog if fnmatch.fnmatchcase(job.name, token)]
            if matched:
                add(matched)
            else:
                selection.warnings.append(f"Pattern {token!r} matched no jobs, skipped")
            continue

        selection.warnings.append(f"Unknown selection {token!r}, skipped")

    return selection
