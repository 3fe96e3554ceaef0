import pytest
from unittest.mock import Mock

from datafetch.application.factories import (
    TransportFactory,
    create_orchestrator,
    find_missing_prerequisites,
    validate_transport_map,
)
from datafetch.domain.models import ArchiveKind, Source, SourceKind
from datafetch.domain.exceptions import ConfigurationError, TransportUnavailableError
from datafetch.infrastructure.config import FetchConfig
from datafetch.infrastructure.transports import HttpTransport, OneDriveTransport, GcsTransport


@pytest.fixture
def config(tmp_path):
    return FetchConfig(destination_root=tmp_path / "out", timeout=15, max_attempts=2,
                       gcs_access_key="k", gcs_secret_key="s", sevenzip_executable="7za")


def test_every_source_kind_gets_a_transport(config):
    transports = TransportFactory(config, session=Mock()).create_transports()

    assert set(transports) == set(SourceKind)
    assert isinstance(transports[SourceKind.DIRECT_HTTP], HttpTransport)
    assert isinstance(transports[SourceKind.ONEDRIVE], OneDriveTransport)
    assert transports[SourceKind.GCS_BUCKET].credentials.access_key == "k"
    assert isinstance(transports[SourceKind.GCS_BUCKET], GcsTransport)


def test_force_reaches_http_transport(tmp_path):
    config = FetchConfig(destination_root=tmp_path / "out", force=True)

    assert TransportFactory(config, session=Mock()).create_http().force is True


def test_extractor_uses_configured_binary(config):
    assert TransportFactory(config).create_extractor().sevenzip_executable == "7za"


def test_validate_transport_map_names_missing_kinds():
    with pytest.raises(ConfigurationError, match="git_clone"):
        validate_transport_map({kind: Mock() for kind in SourceKind if kind != SourceKind.GIT_CLONE})


def test_create_orchestrator_uses_state_dir(config):
    transports = {kind: Mock() for kind in SourceKind}

    orchestrator = create_orchestrator(config, catalog=[], transports=transports, extractor=Mock())

    assert orchestrator._markers.directory == config.state_dir
    assert orchestrator.force is False


class TestPrerequisites:

    def test_reports_missing_tools_for_selected_kinds_only(self, make_job):
        git = Mock()
        git.check_available.side_effect = TransportUnavailableError("'git' not found", remediation="install git")
        http = Mock()
        transports = {SourceKind.GIT_CLONE: git, SourceKind.DIRECT_HTTP: http}

        problems = find_missing_prerequisites(
            [make_job(name="web")], transports, Mock())
        assert problems == []

        problems = find_missing_prerequisites(
            [make_job(name="repo", kind=SourceKind.GIT_CLONE, locator="https://github.com/x/y.git")],
            transports, Mock())
        assert problems == ["git_clone: 'git' not found (install git)"]

    def test_fallback_kinds_are_checked(self, make_job):
        job = make_job(fallbacks=(Source(kind=SourceKind.ONEDRIVE, locator="https://1drv.ms/u/s!x"),))

        problems = find_missing_prerequisites([job], {SourceKind.DIRECT_HTTP: Mock()}, Mock())

        assert problems == ["onedrive: no transport configured"]

    def test_sevenzip_checked_for_split_archives(self, make_job):
        extractor = Mock()
        extractor.check_available.side_effect = TransportUnavailableError(
            "'7z' not found on PATH", remediation="install p7zip-full")
        job = make_job(archive=ArchiveKind.SEVENZIP)

        problems = find_missing_prerequisites([job], {SourceKind.DIRECT_HTTP: Mock()}, extractor)

        assert len(problems) == 1
        assert problems[0].startswith("sevenzip:")
        extractor.check_available.assert_called_once_with(ArchiveKind.SEVENZIP)
