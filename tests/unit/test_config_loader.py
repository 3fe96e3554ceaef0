from pathlib import Path

import pytest

from datafetch.domain.exceptions import ConfigurationError
from datafetch.infrastructure.config import ConfigLoader, FetchConfig


def test_defaults_without_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    cfg = ConfigLoader().load()

    assert isinstance(cfg, FetchConfig)
    assert cfg.destination_root == Path("downloaded_datasets")
    assert cfg.resolved_log_file == Path("downloaded_datasets") / "download.log"
    assert cfg.state_dir == Path("downloaded_datasets") / ".datafetch"
    assert cfg.lenient is False


def test_precedence_file_env_overrides(tmp_path, monkeypatch):
    path = tmp_path / "datafetch.yaml"
    path.write_text("destination_root: /data/from_file\ntimeout: 30\nmax_attempts: 2\n")
    monkeypatch.setenv("DATAFETCH_TIMEOUT", "90")
    monkeypatch.setenv("HF_TOKEN", "hf_env")

    cfg = ConfigLoader(path).load({"destination_root": tmp_path / "cli", "force": None})

    assert cfg.destination_root == tmp_path / "cli"
    assert cfg.timeout == 90
    assert cfg.max_attempts == 2
    assert cfg.hf_token == "hf_env"
    assert cfg.force is False


def test_downloads_dir_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DOWNLOADS_DIR", "/mnt/datasets")

    assert ConfigLoader().load().destination_root == Path("/mnt/datasets")


def test_boolean_env_values(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DATAFETCH_LENIENT", "yes")
    monkeypatch.setenv("DATAFETCH_FORCE", "0")

    cfg = ConfigLoader().load()

    assert cfg.lenient is True
    assert cfg.force is False


def test_gcs_credentials_from_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("GCS_HMAC_ACCESS_KEY", "GOOG1KEY")
    monkeypatch.setenv("GCS_HMAC_SECRET", "s3cret")

    cfg = ConfigLoader().load()

    assert cfg.gcs_access_key == "GOOG1KEY"
    assert cfg.gcs_secret_key == "s3cret"


def test_explicit_missing_file_is_an_error(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        ConfigLoader(tmp_path / "missing.yaml").load()


def test_invalid_values_rejected(tmp_path):
    path = tmp_path / "datafetch.yaml"
    path.write_text("timeout: 0\n")

    with pytest.raises(ConfigurationError, match="Timeout"):
        ConfigLoader(path).load()


def test_non_mapping_file_rejected(tmp_path):
    path = tmp_path / "datafetch.yaml"
    path.write_text("- just\n- a list\n")

    with pytest.raises(ConfigurationError, match="mapping"):
        ConfigLoader(path).load()


def test_unknown_keys_ignored(tmp_path):
    path = tmp_path / "datafetch.yaml"
    path.write_text("b2_bucket: legacy\nchunk_size: 4096\n")

    assert ConfigLoader(path).load().chunk_size == 4096
