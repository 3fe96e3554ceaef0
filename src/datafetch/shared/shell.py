import os
import subprocess
from pathlib import Path
from typing import Tuple, List, Optional, Dict


def run_cmd(
    cmd: List[str],
    cwd: Optional[Path] = None,
    env: Optional[Dict[str, str]] = None,
) -> Tuple[int, str, str]:
    """Run a command. Returns (returncode, stdout, stderr).

    ``env`` entries are added on top of the current environment. A missing
    executable is reported as return code 127 rather than raised.
    """
    full_env = None
    if env:
        full_env = dict(os.environ)
        full_env.update(env)

    try:
        completed = subprocess.run(
            cmd,
            cwd=cwd,
            env=full_env,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
        return completed.returncode, completed.stdout, completed.stderr
    except FileNotFoundError:
        return 127, '', f'command not found: {cmd[0]}'
