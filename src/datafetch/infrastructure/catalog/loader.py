"""Loads the dataset catalog (YAML) into Job objects."""

import yaml
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from datafetch.domain.models import Job, Source, SourceKind, ArchiveKind
from datafetch.domain.exceptions import CatalogError
from datafetch.shared.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CATALOG = Path(__file__).resolve().parents[2] / "catalog.yaml"

_STRING_FIELDS = ("name", "locator", "subdir", "filename", "notes", "description")


def _expand_range(bounds: Any, exclude: Any, where: str) -> List[int]:
    """Inclusive [start, stop] range minus excluded indices."""
    if not isinstance(bounds, (list, tuple)) or len(bounds) != 2:
        raise CatalogError(f"{where}: range must be [start, stop], got {bounds!r}")
    try:
        start, stop = int(bounds[0]), int(bounds[1])
        excluded = {int(i) for i in (exclude or [])}
    except (TypeError, ValueError) as e:
        raise CatalogError(f"{where}: range bounds must be integers: {e}") from e
    if stop < start:
        raise CatalogError(f"{where}: range stop {stop} is below start {start}")
    return [i for i in range(start, stop + 1) if i not in excluded]


def _format(value: Optional[str], index: int, where: str) -> Optional[str]:
    if value is None:
        return None
    try:
        return str(value).format(index=index)
    except (KeyError, IndexError, ValueError) as e:
        raise CatalogError(f"{where}: cannot format {value!r} with index {index}: {e}") from e


def _source_kind(value: Any, where: str) -> SourceKind:
    try:
        return SourceKind(value)
    except ValueError:
        known = ", ".join(k.value for k in SourceKind)
        raise CatalogError(f"{where}: unknown source {value!r} (expected one of: {known})")


def _archive_kind(value: Any, where: str) -> ArchiveKind:
    try:
        return ArchiveKind(value or ArchiveKind.NONE.value)
    except ValueError:
        known = ", ".join(k.value for k in ArchiveKind)
        raise CatalogError(f"{where}: unknown archive kind {value!r} (expected one of: {known})")


class CatalogLoader:
    """
    Reads ``catalog.yaml`` and expands it into jobs.

    Document shape::

        datasets:
          - group: DynamicReplica
            description: ...
            size_hint: ~1.6TB
            notes: ...
            jobs:
              - name: dynamic_replica_train_{index:03d}
                source: direct_http
                locator: https://.../dynamic_replica_train_{index:03d}.zip
                subdir: train/part_{index:03d}
                archive: zip
                range: [0, 85]
                exclude: []
                fallbacks:
                  - {source: onedrive, locator: ..., filename: ...}
                companions: {template: "x.z{index:02d}", range: [1, 42]}

    ``range`` is inclusive on both ends and expands an entry into one job per
    index, with ``{index}`` formatted into its string fields.
    """

    def __init__(self, catalog_path: Optional[Path] = None):
        self.catalog_path = Path(catalog_path) if catalog_path else DEFAULT_CATALOG
        self._logger = get_logger(__name__)

    def load(self, destination_root: Path) -> List[Job]:
        """
        Load and validate the catalog.

        Args:
            destination_root: Root directory all job destinations live under

        Returns:
            Jobs in catalog order

        Raises:
            CatalogError: If the file is missing, malformed or inconsistent
        """
        document = self._read()
        datasets = document.get("datasets")
        if not isinstance(datasets, list) or not datasets:
            raise CatalogError(f"{self.catalog_path}: expected a non-empty 'datasets' list")

        jobs: List[Job] = []
        for position, group in enumerate(datasets, start=1):
            jobs.extend(self._parse_group(group, position, Path(destination_root)))

        self._check_unique(jobs)
        self._logger.debug(f"Loaded {len(jobs)} jobs from {self.catalog_path}")
        return jobs

    def _read(self) -> Dict[str, Any]:
        if not self.catalog_path.exists():
            raise CatalogError(f"Catalog not found: {self.catalog_path}")
        try:
            with open(self.catalog_path, 'r', encoding='utf-8') as f:
                document = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise CatalogError(f"Invalid YAML in {self.catalog_path}: {e}") from e
        if not isinstance(document, dict):
            raise CatalogError(f"{self.catalog_path}: top level must be a mapping")
        return document

    def _parse_group(self, group: Any, position: int, root: Path) -> List[Job]:
        if not isinstance(group, dict) or not group.get("group"):
            raise CatalogError(f"Dataset entry #{position} needs a 'group' name")

        name = str(group["group"])
        entries = group.get("jobs")
        if not isinstance(entries, list) or not entries:
            raise CatalogError(f"Dataset {name}: expected a non-empty 'jobs' list")

        defaults = {
            "group": name,
            "description": str(group.get("description", "")),
            "size_hint": str(group.get("size_hint", "")),
            "notes": str(group.get("notes", "")),
        }

        jobs = []
        for entry in entries:
            if not isinstance(entry, dict):
                raise CatalogError(f"Dataset {name}: job entries must be mappings, got {entry!r}")
            jobs.extend(self._expand_entry(entry, defaults, root / name))
        return jobs

    def _expand_entry(self, entry: Dict[str, Any], defaults: Dict[str, str], group_dir: Path) -> List[Job]:
        where = f"{defaults['group']}/{entry.get('name', '?')}"
        if "range" not in entry:
            return [self._build_job(entry, defaults, group_dir, where)]

        jobs = []
        for index in _expand_range(entry["range"], entry.get("exclude"), where):
            expanded = dict(entry)
            for key in _STRING_FIELDS:
                if key in expanded:
                    expanded[key] = _format(expanded[key], index, where)
            expanded["fallbacks"] = [
                {k: _format(v, index, where) if isinstance(v, str) else v for k, v in fb.items()}
                for fb in (entry.get("fallbacks") or [])
                if isinstance(fb, dict)
            ]
            jobs.append(self._build_job(expanded, defaults, group_dir, f"{where}[{index}]"))
        return jobs

    def _build_job(self, entry: Dict[str, Any], defaults: Dict[str, str], group_dir: Path, where: str) -> Job:
        for required in ("name", "source", "locator"):
            if not entry.get(required):
                raise CatalogError(f"{where}: missing '{required}'")

        subdir = entry.get("subdir")
        destination = group_dir / subdir if subdir else group_dir

        include = entry.get("include") or ()
        if isinstance(include, str):
            include = (include,)

        try:
            return Job(
                name=str(entry["name"]),
                source_kind=_source_kind(entry["source"], where),
                locator=str(entry["locator"]),
                destination_path=destination,
                archive_kind=_archive_kind(entry.get("archive"), where),
                include=tuple(str(p) for p in include),
                filename=entry.get("filename"),
                companions=self._companions(entry.get("companions"), where),
                fallbacks=self._fallbacks(entry.get("fallbacks"), where),
                group=defaults["group"],
                description=str(entry.get("description") or defaults["description"]),
                size_hint=str(entry.get("size_hint") or defaults["size_hint"]),
                notes=str(entry.get("notes") or defaults["notes"]),
            )
        except ValueError as e:
            raise CatalogError(f"{where}: {e}") from e

    def _companions(self, value: Any, where: str) -> Tuple[str, ...]:
        if not value:
            return ()
        if isinstance(value, list):
            return tuple(str(v) for v in value)
        if isinstance(value, dict) and "template" in value:
            indices = _expand_range(value.get("range"), value.get("exclude"), f"{where} companions")
            return tuple(_format(value["template"], i, where) for i in indices)
        raise CatalogError(f"{where}: companions must be a list or a {{template, range}} mapping")

    def _fallbacks(self, value: Any, where: str) -> Tuple[Source, ...]:
        fallbacks = []
        for item in value or []:
            if not isinstance(item, dict) or not item.get("source") or not item.get("locator"):
                raise CatalogError(f"{where}: each fallback needs 'source' and 'locator'")
            fallbacks.append(Source(
                kind=_source_kind(item["source"], where),
                locator=str(item["locator"]),
                filename=item.get("filename"),
            ))
        return tuple(fallbacks)

    def _check_unique(self, jobs: List[Job]) -> None:
        names: Dict[str, Job] = {}
        destinations: Dict[Path, Job] = {}
        for job in jobs:
            if job.name in names:
                raise CatalogError(f"Duplicate job name in catalog: {job.name}")
            if job.destination_path in destinations:
                other = destinations[job.destination_path]
                raise CatalogError(
                    f"Jobs {other.name} and {job.name} share destination {job.destination_path}"
                )
            names[job.name] = job
            destinations[job.destination_path] = job
