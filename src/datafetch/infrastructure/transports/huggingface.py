"""Hugging Face Hub dataset transport."""

from typing import Optional

from huggingface_hub import snapshot_download
from huggingface_hub.errors import GatedRepoError, RepositoryNotFoundError, HfHubHTTPError

from datafetch.domain.models import Job, Source, SourceKind, FetchedPayload
from datafetch.domain.exceptions import AuthenticationRequiredError, TransferError
from datafetch.shared.files import dir_size
from datafetch.shared.logging import get_logger

logger = get_logger(__name__)

LOGIN_HINT = "run `huggingface-cli login` or set HF_TOKEN, and accept the dataset terms on its Hub page"


class HuggingFaceTransport:
    """
    Mirrors a Hub dataset repository into the job destination.

    The repository layout is kept as-is; ``Job.include`` becomes
    ``allow_patterns``. snapshot_download skips files already present, so a
    re-run only fetches what is missing.
    """

    kind = SourceKind.HUGGINGFACE

    def __init__(
        self,
        token: Optional[str] = None,
        max_workers: int = 8,
        repo_type: str = "dataset",
    ):
        self.token = token
        self.max_workers = max_workers
        self.repo_type = repo_type
        self._logger = get_logger(__name__)

    def check_available(self) -> None:
        return None

    def fetch(self, job: Job, source: Source) -> FetchedPayload:
        repo_id = source.locator.strip().strip("/")
        destination = job.destination_path
        before = dir_size(destination)

        self._logger.info(
            f"Snapshot of {self.repo_type} {repo_id} into {destination}"
            + (f" (patterns: {', '.join(job.include)})" if job.include else "")
        )
        try:
            snapshot_download(
                repo_id=repo_id,
                repo_type=self.repo_type,
                local_dir=str(destination),
                allow_patterns=list(job.include) or None,
                token=self.token,
                max_workers=self.max_workers,
            )
        except GatedRepoError as e:
            raise AuthenticationRequiredError(f"{repo_id} is gated: {LOGIN_HINT}") from e
        except RepositoryNotFoundError as e:
            raise AuthenticationRequiredError(
                f"{repo_id} was not found or is private: {LOGIN_HINT}"
            ) from e
        except HfHubHTTPError as e:
            raise TransferError(f"Hugging Face download of {repo_id} failed: {e}") from e
        except OSError as e:
            raise TransferError(f"Hugging Face download of {repo_id} failed: {e}") from e

        return FetchedPayload(
            path=destination,
            bytes_transferred=max(dir_size(destination) - before, 0),
        )
