import pytest
from unittest.mock import patch

from datafetch.domain.models import Source, SourceKind
from datafetch.domain.exceptions import LocatorError, TransferError
from datafetch.infrastructure.transports.gdrive import GoogleDriveTransport


@pytest.fixture
def drive_job(make_job):
    def _make(locator, filename=None):
        job = make_job(kind=SourceKind.GOOGLE_DRIVE, locator=locator, filename=filename)
        job.destination_path.mkdir(parents=True)
        return job
    return _make


@patch("datafetch.infrastructure.transports.gdrive.gdown")
def test_file_download_uses_id_and_resume(mock_gdown, drive_job):
    job = drive_job("https://drive.google.com/file/d/1N9BkpQuibIyIBkLxVPUuoB-eDOMFqY8D/view", "mono.zip")
    target = job.destination_path / "mono.zip"

    def fake_download(id, output, quiet, resume):
        target.write_bytes(b"12345")
        return output

    mock_gdown.download.side_effect = fake_download

    payload = GoogleDriveTransport(quiet=True).fetch(job, job.primary_source)

    kwargs = mock_gdown.download.call_args.kwargs
    assert kwargs["id"] == "1N9BkpQuibIyIBkLxVPUuoB-eDOMFqY8D"
    assert kwargs["resume"] is True
    assert kwargs["output"] == str(target)
    assert payload.path == target
    assert payload.bytes_transferred == 5


@patch("datafetch.infrastructure.transports.gdrive.gdown")
def test_folder_download(mock_gdown, drive_job):
    job = drive_job("https://drive.google.com/drive/folders/1W6wxsbKbTdtV8-2TwToqa_QgLqRY3ft0")

    def fake_folder(id, output, quiet, resume):
        (job.destination_path / "part1.tar").write_bytes(b"abc")
        return [str(job.destination_path / "part1.tar")]

    mock_gdown.download_folder.side_effect = fake_folder

    payload = GoogleDriveTransport().fetch(job, job.primary_source)

    assert mock_gdown.download_folder.call_args.kwargs["id"] == "1W6wxsbKbTdtV8-2TwToqa_QgLqRY3ft0"
    assert payload.path == job.destination_path
    assert payload.bytes_transferred == 3
    mock_gdown.download.assert_not_called()


@patch("datafetch.infrastructure.transports.gdrive.gdown")
def test_none_result_is_transfer_error(mock_gdown, drive_job):
    job = drive_job("1N8qoU-oEjRKdaKSrHPWA-xsnRtofR_jJ")
    mock_gdown.download.return_value = None

    with pytest.raises(TransferError, match="produced no file"):
        GoogleDriveTransport().fetch(job, job.primary_source)


@patch("datafetch.infrastructure.transports.gdrive.gdown")
def test_library_errors_are_wrapped(mock_gdown, drive_job):
    job = drive_job("1N8qoU-oEjRKdaKSrHPWA-xsnRtofR_jJ")
    mock_gdown.download.side_effect = RuntimeError("Too many users have viewed or downloaded this file")

    with pytest.raises(TransferError, match="Too many users"):
        GoogleDriveTransport().fetch(job, job.primary_source)


def test_bad_locator(drive_job):
    job = drive_job("https://example.com/somewhere")

    with pytest.raises(LocatorError):
        GoogleDriveTransport().fetch(job, job.primary_source)


@patch("datafetch.infrastructure.transports.gdrive.gdown")
def test_named_file_already_present(mock_gdown, drive_job):
    job = drive_job("1N8qoU-oEjRKdaKSrHPWA-xsnRtofR_jJ", "both.zip")
    (job.destination_path / "both.zip").write_bytes(b"done")

    payload = GoogleDriveTransport().fetch(job, Source(kind=SourceKind.GOOGLE_DRIVE,
                                                        locator=job.locator, filename="both.zip"))

    assert payload.already_present is True
    mock_gdown.download.assert_not_called()
