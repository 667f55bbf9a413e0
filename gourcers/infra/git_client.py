"""
Git client infrastructure for gourcers.

Provides a clean abstraction over the git commands the pipeline needs.
All git operations go through this client, making them:
- Easy to mock for testing
- Consistent in error handling
- Isolated from business logic
"""

import logging
import shlex
import subprocess
from pathlib import Path
from typing import List, Optional, Union

from .errors import ProcessFailedError, ToolMissingError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class GitClient:
    """
    Abstraction over git commands.

    Example:
        client = GitClient()
        action = client.clone_or_pull("git@github.com:acme/app.git", "/data/repos/acme__app")
        print(action)  # "cloned" or "pulled"
    """

    def __init__(self, binary: str = "git", timeout: Optional[int] = None):
        """
        Initialize GitClient.

        Args:
            binary: git executable name or path
            timeout: Command timeout in seconds (default: no timeout)
        """
        self.binary = binary
        self.timeout = timeout

    def _run(self, args: List[str], cwd: Optional[PathLike] = None) -> str:
        """
        Run a git command and return its stdout.

        Raises:
            ToolMissingError: git is not installed
            ProcessFailedError: git exited non-zero (stderr attached)
        """
        cmd = [self.binary] + args
        logger.debug(f"Running in '{cwd or '.'}': {shlex.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                capture_output=True,
                text=True,
                encoding='utf-8',
                errors='replace',
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise ToolMissingError([self.binary]) from e
        except subprocess.TimeoutExpired as e:
            raise ProcessFailedError(f"git {args[0]}", None, f"timed out after {self.timeout}s") from e

        if result.returncode != 0:
            raise ProcessFailedError(f"git {args[0]}", result.returncode, result.stderr)

        if result.stdout and result.stdout.strip():
            logger.debug(result.stdout.strip())
        return result.stdout

    def clone(self, url: str, dest: PathLike) -> None:
        """Clone ``url`` into ``dest`` (which must not exist)."""
        Path(dest).parent.mkdir(parents=True, exist_ok=True)
        self._run(["clone", url, str(dest)])

    def pull(self, path: PathLike, remote: str = "origin") -> None:
        """Pull the current branch from ``remote``."""
        self._run(["pull", remote], cwd=path)

    def clone_or_pull(self, url: str, dest: PathLike) -> str:
        """
        Bring ``dest`` up to date with ``url``.

        Clones when ``dest`` does not exist yet, pulls otherwise, so running
        it twice is harmless.

        Returns:
            "cloned" or "pulled"
        """
        if Path(dest).exists():
            logger.debug(f"working copy exists, pulling: {dest}")
            self.pull(dest)
            return "pulled"

        logger.debug(f"working copy missing, cloning: {url}")
        self.clone(url, dest)
        return "cloned"
