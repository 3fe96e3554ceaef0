"""Configuration loading and validation."""

import os
import yaml
from pathlib import Path
from typing import Optional, Dict, Any
from dataclasses import dataclass, fields

from datafetch.domain.exceptions import ConfigurationError
from datafetch.shared.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_FILE = Path("datafetch.yaml")
DEFAULT_DESTINATION = Path("downloaded_datasets")
DEFAULT_GCS_ENDPOINT = "https://storage.googleapis.com"

_TRUE_VALUES = ("true", "1", "yes")


@dataclass
class FetchConfig:
    """Configuration for one orchestrator invocation."""

    # Output
    destination_root: Path = DEFAULT_DESTINATION
    log_file: Optional[Path] = None
    catalog_path: Optional[Path] = None

    # HTTP transfers
    timeout: int = 60
    chunk_size: int = 1024 * 1024
    max_attempts: int = 5
    backoff_seconds: float = 2.0

    # Hugging Face
    hf_token: Optional[str] = None
    hf_max_workers: int = 8

    # Google Cloud Storage (S3-interoperable HMAC credentials)
    gcs_access_key: Optional[str] = None
    gcs_secret_key: Optional[str] = None
    gcs_endpoint: str = DEFAULT_GCS_ENDPOINT

    # External tools
    git_executable: str = "git"
    sevenzip_executable: str = "7z"

    # Run behaviour
    force: bool = False
    dry_run: bool = False
    lenient: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.destination_root = Path(self.destination_root)
        if self.log_file is not None:
            self.log_file = Path(self.log_file)
        if self.catalog_path is not None:
            self.catalog_path = Path(self.catalog_path)
        self._validate()

    def _validate(self):
        """Validate configuration values."""
        if self.timeout <= 0:
            raise ConfigurationError(f"Timeout must be positive, got: {self.timeout}")

        if self.chunk_size <= 0:
            raise ConfigurationError(f"Chunk size must be positive, got: {self.chunk_size}")

        if self.max_attempts < 1:
            raise ConfigurationError(f"max_attempts must be at least 1, got: {self.max_attempts}")

        if self.backoff_seconds < 0:
            raise ConfigurationError(f"backoff_seconds cannot be negative, got: {self.backoff_seconds}")

        if self.hf_max_workers < 1:
            raise ConfigurationError(f"hf_max_workers must be at least 1, got: {self.hf_max_workers}")

    @property
    def resolved_log_file(self) -> Path:
        return self.log_file or self.destination_root / "download.log"

    @property
    def state_dir(self) -> Path:
        """Where completion markers are kept."""
        return self.destination_root / ".datafetch"


class ConfigLoader:
    """Loads and validates configuration from YAML files and environment variables."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize config loader.

        Args:
            config_path: Optional path to YAML config file
        """
        self.config_path = config_path or DEFAULT_CONFIG_FILE
        self._explicit_path = config_path is not None
        self._logger = get_logger(__name__)

    def load(self, overrides: Optional[Dict[str, Any]] = None) -> FetchConfig:
        """
        Load configuration from file and environment.

        Precedence: YAML file < environment variables < overrides.

        Returns:
            FetchConfig instance

        Raises:
            ConfigurationError: If configuration is invalid
        """
        config_dict: Dict[str, Any] = {}

        if self.config_path.exists():
            self._logger.info(f"Loading config from {self.config_path}")
            try:
                with open(self.config_path, 'r') as f:
                    yaml_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}") from e
            if not isinstance(yaml_config, dict):
                raise ConfigurationError(f"Config file {self.config_path} must contain a mapping")
            config_dict.update(yaml_config)
        elif self._explicit_path:
            raise ConfigurationError(f"Config file not found: {self.config_path}")
        else:
            self._logger.debug(f"No config file at {self.config_path}, using defaults")

        config_dict.update(self._load_from_env())

        if overrides:
            for k, v in overrides.items():
                if v is None:
                    continue
                config_dict[k] = v

        valid_fields = {f.name for f in fields(FetchConfig)}
        unknown = sorted(set(config_dict) - valid_fields)
        if unknown:
            self._logger.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")

        filtered_config = {k: v for k, v in config_dict.items() if k in valid_fields}

        try:
            return FetchConfig(**filtered_config)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        env_config: Dict[str, Any] = {}

        if dest := os.getenv("DOWNLOADS_DIR") or os.getenv("DATAFETCH_DEST"):
            env_config["destination_root"] = Path(dest)

        if log_file := os.getenv("DATAFETCH_LOG_FILE"):
            env_config["log_file"] = Path(log_file)

        if catalog := os.getenv("DATAFETCH_CATALOG"):
            env_config["catalog_path"] = Path(catalog)

        for env_name, key, cast in (
            ("DATAFETCH_TIMEOUT", "timeout", int),
            ("DATAFETCH_CHUNK_SIZE", "chunk_size", int),
            ("DATAFETCH_MAX_ATTEMPTS", "max_attempts", int),
            ("DATAFETCH_BACKOFF", "backoff_seconds", float),
            ("HF_MAX_WORKERS", "hf_max_workers", int),
        ):
            if raw := os.getenv(env_name):
                try:
                    env_config[key] = cast(raw)
                except ValueError:
                    self._logger.warning(f"Invalid {env_name} value: {raw}")

        # Hugging Face
        if token := os.getenv("HF_TOKEN") or os.getenv("HUGGING_FACE_HUB_TOKEN"):
            env_config["hf_token"] = token

        # Google Cloud Storage
        if gcs_key := os.getenv("GCS_HMAC_ACCESS_KEY"):
            env_config["gcs_access_key"] = gcs_key

        if gcs_secret := os.getenv("GCS_HMAC_SECRET"):
            env_config["gcs_secret_key"] = gcs_secret

        if gcs_endpoint := os.getenv("GCS_ENDPOINT"):
            env_config["gcs_endpoint"] = gcs_endpoint

        # Tools
        if git := os.getenv("DATAFETCH_GIT"):
            env_config["git_executable"] = git

        if sevenzip := os.getenv("DATAFETCH_7Z"):
            env_config["sevenzip_executable"] = sevenzip

        # Run behaviour
        if lenient := os.getenv("DATAFETCH_LENIENT"):
            env_config["lenient"] = lenient.lower() in _TRUE_VALUES

        if force := os.getenv("DATAFETCH_FORCE"):
            env_config["force"] = force.lower() in _TRUE_VALUES

        return env_config
