import sys
import os
from pathlib import Path

import pytest

# Ensure src/ is on sys.path so the 'datafetch' package is importable without installing
SRC = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src'))
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from datafetch.domain.models import Job, SourceKind, ArchiveKind  # noqa: E402


@pytest.fixture
def make_job(tmp_path):
    """Build a Job under tmp_path with sensible defaults."""
    def _make(name="job", kind=SourceKind.DIRECT_HTTP, locator="https://example.com/data.zip",
              archive=ArchiveKind.NONE, **kwargs):
        kwargs.setdefault("destination_path", tmp_path / "dest" / name)
        return Job(name=name, source_kind=kind, locator=locator, archive_kind=archive, **kwargs)
    return _make


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep developer environment variables out of config-dependent tests."""
    for var in (
        "DOWNLOADS_DIR", "DATAFETCH_DEST", "DATAFETCH_LOG_FILE", "DATAFETCH_CATALOG",
        "DATAFETCH_TIMEOUT", "DATAFETCH_CHUNK_SIZE", "DATAFETCH_MAX_ATTEMPTS", "DATAFETCH_BACKOFF",
        "HF_MAX_WORKERS", "HF_TOKEN", "HUGGING_FACE_HUB_TOKEN", "GCS_HMAC_ACCESS_KEY",
        "GCS_HMAC_SECRET", "GCS_ENDPOINT", "DATAFETCH_GIT", "DATAFETCH_7Z",
        "DATAFETCH_LENIENT", "DATAFETCH_FORCE",
    ):
        monkeypatch.delenv(var, raising=False)
