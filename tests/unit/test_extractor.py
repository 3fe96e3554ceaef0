"""
Unit tests for archive extraction.
"""

import io
import tarfile
import zipfile
from pathlib import Path

import pytest
from unittest.mock import patch

from datafetch.domain.models import ArchiveKind
from datafetch.domain.exceptions import CorruptArchiveError, ExtractionError, TransportUnavailableError
from datafetch.infrastructure.archive import ArchiveExtractor, detect_archive_kind
from datafetch.infrastructure.archive.extractor import EXTRACTION_MARKER_DIR


def make_zip(path: Path, members: dict) -> Path:
    with zipfile.ZipFile(path, "w") as zf:
        for name, data in members.items():
            zf.writestr(name, data)
    return path


def make_tar_gz(path: Path, members: dict) -> Path:
    with tarfile.open(path, "w:gz") as tf:
        for name, data in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tf.addfile(info, io.BytesIO(data))
    return path


@pytest.fixture
def extractor():
    return ArchiveExtractor()


@pytest.mark.parametrize("name,kind", [
    ("megadepth.tar.gz", ArchiveKind.TAR_GZ),
    ("MVS-Synth.TGZ", ArchiveKind.TAR_GZ),
    ("part.tar", ArchiveKind.TAR),
    ("vkitti.zip", ArchiveKind.ZIP),
    ("scene.7z", ArchiveKind.SEVENZIP),
    ("BlendedMVS+.z01", None),
    ("README.md", None),
])
def test_detect_archive_kind(name, kind):
    assert detect_archive_kind(Path(name)) == kind


class TestZip:

    def test_extracts_and_keeps_archive(self, extractor, tmp_path):
        archive = make_zip(tmp_path / "vkitti.zip", {"Scene01/rgb.png": b"png", "Scene01/depth.png": b"d"})
        dest = tmp_path / "out"

        report = extractor.materialize(archive, dest, ArchiveKind.ZIP)

        assert (dest / "Scene01" / "rgb.png").read_bytes() == b"png"
        assert report.archives == [archive]
        assert archive.exists()
        assert (dest / EXTRACTION_MARKER_DIR / "vkitti.zip.json").exists()

    def test_unchanged_archive_is_not_extracted_twice(self, extractor, tmp_path):
        archive = make_zip(tmp_path / "data.zip", {"a.txt": b"a"})
        dest = tmp_path / "out"
        extractor.materialize(archive, dest, ArchiveKind.ZIP)
        (dest / "a.txt").unlink()

        report = extractor.materialize(archive, dest, ArchiveKind.ZIP)

        assert report.skipped == [archive]
        assert report.extracted_count == 0
        assert not (dest / "a.txt").exists()

    def test_corrupt_zip(self, extractor, tmp_path):
        archive = tmp_path / "broken.zip"
        archive.write_bytes(b"this is not a zip file")

        with pytest.raises(CorruptArchiveError, match="Corrupt zip"):
            extractor.materialize(archive, tmp_path / "out", ArchiveKind.ZIP)

    def test_path_traversal_is_rejected(self, extractor, tmp_path):
        archive = make_zip(tmp_path / "evil.zip", {"../escaped.txt": b"x"})

        with pytest.raises(ExtractionError, match="escapes destination"):
            extractor.materialize(archive, tmp_path / "out", ArchiveKind.ZIP)
        assert not (tmp_path / "escaped.txt").exists()


class TestTar:

    def test_tar_gz(self, extractor, tmp_path):
        archive = make_tar_gz(tmp_path / "megadepth.tar.gz", {"phoenix/0001.jpg": b"jpg"})
        dest = tmp_path / "out"

        report = extractor.materialize(archive, dest, ArchiveKind.TAR_GZ)

        assert (dest / "phoenix" / "0001.jpg").read_bytes() == b"jpg"
        assert report.extracted_count == 1

    def test_auto_detects_tar_gz(self, extractor, tmp_path):
        archive = make_tar_gz(tmp_path / "mvs.tgz", {"a.txt": b"a"})

        extractor.materialize(archive, tmp_path / "out", ArchiveKind.AUTO)

        assert (tmp_path / "out" / "a.txt").exists()

    def test_absolute_member_is_rejected(self, extractor, tmp_path):
        archive = make_tar_gz(tmp_path / "evil.tar.gz", {"/tmp/evil.txt": b"x"})

        with pytest.raises(ExtractionError):
            extractor.materialize(archive, tmp_path / "out", ArchiveKind.TAR_GZ)


class TestMaterialize:

    def test_none_does_nothing(self, extractor, tmp_path):
        archive = make_zip(tmp_path / "data.zip", {"a.txt": b"a"})

        report = extractor.materialize(archive, tmp_path / "out", ArchiveKind.NONE)

        assert report.extracted_count == 0
        assert not (tmp_path / "out").exists()

    def test_auto_with_unknown_extension_warns(self, extractor, tmp_path):
        payload = tmp_path / "sequences.bin"
        payload.write_bytes(b"raw")

        report = extractor.materialize(payload, tmp_path, ArchiveKind.AUTO)

        assert report.skipped == [payload]
        assert "Unrecognized archive extension" in report.warnings[0]

    def test_missing_payload(self, extractor, tmp_path):
        with pytest.raises(ExtractionError, match="not found"):
            extractor.materialize(tmp_path / "gone.zip", tmp_path, ArchiveKind.ZIP)

    def test_directory_payload_extracts_in_place(self, extractor, tmp_path):
        folder = tmp_path / "point_odyssey"
        (folder / "train").mkdir(parents=True)
        make_zip(folder / "train" / "ani.zip", {"ani/rgb.jpg": b"j"})
        make_tar_gz(folder / "val.tar.gz", {"val/rgb.jpg": b"k"})

        report = extractor.materialize(folder, folder, ArchiveKind.AUTO)

        assert (folder / "train" / "ani" / "rgb.jpg").exists()
        assert (folder / "val" / "rgb.jpg").exists()
        assert report.extracted_count == 2

    def test_directory_without_archives_warns(self, extractor, tmp_path):
        folder = tmp_path / "empty"
        folder.mkdir()

        report = extractor.materialize(folder, folder, ArchiveKind.ZIP)

        assert report.warnings


class TestSevenZip:

    @patch("datafetch.infrastructure.archive.extractor.run_cmd")
    def test_runs_7z_on_first_volume(self, mock_run, extractor, tmp_path):
        archive = tmp_path / "BlendedMVS+.zip"
        archive.write_bytes(b"volume")
        mock_run.return_value = (0, "- a.jpg\n- b.jpg\nEverything is Ok\n", "")

        report = extractor.materialize(archive, tmp_path / "out", ArchiveKind.SEVENZIP)

        cmd = mock_run.call_args.args[0]
        assert cmd[:3] == ["7z", "x", str(archive)]
        assert f"-o{tmp_path / 'out'}" in cmd
        assert report.archives == [archive]

    @patch("datafetch.infrastructure.archive.extractor.run_cmd")
    def test_7z_failure(self, mock_run, extractor, tmp_path):
        archive = tmp_path / "BlendedMVS++.zip"
        archive.write_bytes(b"volume")
        mock_run.return_value = (2, "", "ERROR: Missing volume : BlendedMVS++.z07")

        with pytest.raises(ExtractionError, match="Missing volume") as excinfo:
            extractor.materialize(archive, tmp_path / "out", ArchiveKind.SEVENZIP)
        assert not isinstance(excinfo.value, CorruptArchiveError)

    @patch("datafetch.infrastructure.archive.extractor.run_cmd")
    def test_unreadable_7z_is_corrupt(self, mock_run, extractor, tmp_path):
        archive = tmp_path / "scene.7z"
        archive.write_bytes(b"<html>quota exceeded</html>")
        mock_run.return_value = (2, "", "ERROR: scene.7z\nCan not open the file as archive")

        with pytest.raises(CorruptArchiveError, match="Can not open"):
            extractor.materialize(archive, tmp_path / "out", ArchiveKind.SEVENZIP)

    def test_check_available_without_binary(self, tmp_path):
        extractor = ArchiveExtractor(sevenzip_executable=str(tmp_path / "no-such-7z"))

        with pytest.raises(TransportUnavailableError, match="p7zip-full"):
            extractor.check_available(ArchiveKind.SEVENZIP)

    def test_check_available_ignores_other_kinds(self, tmp_path):
        ArchiveExtractor(sevenzip_executable=str(tmp_path / "no-such-7z")).check_available(ArchiveKind.ZIP)
