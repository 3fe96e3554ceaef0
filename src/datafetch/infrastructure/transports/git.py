"""git clone / pull transport."""

import re
import shutil
from pathlib import Path

from datafetch.domain.models import Job, Source, SourceKind, FetchedPayload
from datafetch.domain.exceptions import (
    AuthenticationRequiredError,
    TransferError,
    TransportUnavailableError,
)
from datafetch.shared.files import dir_size
from datafetch.shared.logging import get_logger
from datafetch.shared.shell import run_cmd

logger = get_logger(__name__)

_AUTH_STDERR = re.compile(
    r"authentication failed|could not read username|permission denied|terminal prompts disabled",
    re.IGNORECASE,
)

# Never block on a credential prompt
GIT_ENV = {"GIT_TERMINAL_PROMPT": "0"}


class GitTransport:
    """Clones a repository into the destination, or fast-forwards an existing checkout."""

    kind = SourceKind.GIT_CLONE

    def __init__(self, executable: str = "git"):
        self.executable = executable
        self._logger = get_logger(__name__)

    def check_available(self) -> None:
        if shutil.which(self.executable) is None:
            raise TransportUnavailableError(
                f"'{self.executable}' not found on PATH",
                remediation="install git (e.g. apt-get install git)",
            )

    def fetch(self, job: Job, source: Source) -> FetchedPayload:
        self.check_available()
        destination = job.destination_path
        before = dir_size(destination)

        if (destination / ".git").exists():
            self._logger.info(f"Updating existing checkout in {destination}")
            cmd = [self.executable, "-C", str(destination), "pull", "--ff-only"]
            action = "pull"
        elif destination.exists() and any(destination.iterdir()):
            raise TransferError(
                f"{destination} exists, is not empty and is not a git checkout; "
                f"move it away before cloning {source.locator}"
            )
        else:
            self._logger.info(f"Cloning {source.locator} into {destination}")
            destination.parent.mkdir(parents=True, exist_ok=True)
            cmd = [self.executable, "clone", source.locator, str(destination)]
            action = "clone"

        rc, out, err = run_cmd(cmd, env=GIT_ENV)
        if rc == 127:
            raise TransportUnavailableError(err, remediation="install git")
        if rc != 0:
            message = (err or out).strip()
            if _AUTH_STDERR.search(message):
                raise AuthenticationRequiredError(
                    f"git {action} of {source.locator} needs credentials: {message}"
                )
            raise TransferError(f"git {action} of {source.locator} failed (exit {rc}): {message}")

        return FetchedPayload(
            path=destination,
            bytes_transferred=max(dir_size(destination) - before, 0),
            already_present=action == "pull",
        )
