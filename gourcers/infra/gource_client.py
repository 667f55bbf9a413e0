"""
Gource client infrastructure for gourcers.

Wraps the two ways gourcers drives gource:
- extracting a custom-format log from a working copy
- building the command line that renders a combined log
"""

import logging
import shlex
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .errors import ProcessFailedError, ToolMissingError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class GourceClient:
    """
    Abstraction over the gource binary.

    Example:
        client = GourceClient()
        log = client.custom_log("/data/repos/acme__app")
        # "1700000000|alice|A|/src/main.py\\n..."
    """

    def __init__(self, binary: str = "gource"):
        self.binary = binary

    def custom_log(self, repo_dir: PathLike) -> str:
        """
        Extract the history of ``repo_dir`` in gource's custom log format.

        Each line is ``timestamp|username|type|path``.

        Raises:
            ToolMissingError: gource is not installed
            ProcessFailedError: gource exited non-zero
        """
        cmd = [self.binary, "--output-custom-log", "-", str(repo_dir)]
        logger.debug(f"Running: {shlex.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True)
        except FileNotFoundError as e:
            raise ToolMissingError([self.binary]) from e

        if result.returncode != 0:
            raise ProcessFailedError(
                self.binary,
                result.returncode,
                result.stderr.decode('utf-8', errors='replace'),
            )

        return result.stdout.decode('utf-8', errors='replace')

    def render_command(
        self,
        log_path: PathLike,
        args: Sequence[str] = (),
        resolution: Optional[str] = None,
        to_stdout: bool = False
    ) -> List[str]:
        """
        Build the gource command line for rendering ``log_path``.

        Args:
            log_path: Combined, sorted custom log
            args: Extra gource options
            resolution: e.g. "1920x1080"; passed as ``-1920x1080``
            to_stdout: Write a PPM stream to stdout (``-o -``) instead of
                opening a window
        """
        cmd = [self.binary] + list(args)
        if resolution:
            cmd.append(f"-{resolution}")
        if to_stdout:
            cmd += ["-o", "-"]
        cmd.append(str(log_path))
        return cmd
