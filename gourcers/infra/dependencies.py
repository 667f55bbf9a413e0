"""
Collaborator discovery for gourcers.

Every external tool is probed once before any stage runs, and all
problems are reported together rather than one at a time.
"""

import logging
import shutil
import subprocess
from dataclasses import dataclass
from typing import Dict, List, Optional

from .errors import ToolMissingError

logger = logging.getLogger(__name__)

# Argument that makes each tool print something and exit 0
PROBE_ARGS: Dict[str, str] = {
    "git": "--version",
    "gource": "-h",
    "ffmpeg": "-version",
    "qsv": "--version",
}


@dataclass
class DependencyStatus:
    """Result of probing one tool."""
    tool: str
    path: Optional[str] = None
    found: bool = False
    exit_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.found and self.exit_code == 0

    def describe(self) -> str:
        if not self.found:
            return f"{self.tool} not found"
        if self.error:
            return f"{self.tool}: {self.error}"
        if self.exit_code != 0:
            return f"{self.tool}: nonzero exit code {self.exit_code}"
        return f"{self.tool}: {self.path}"


def probe(
    tool: str,
    binary: Optional[str] = None,
    arg: Optional[str] = None,
    timeout: int = 10
) -> DependencyStatus:
    """Run ``binary arg`` (binary defaults to the tool name) and report whether it works."""
    binary = binary or tool
    status = DependencyStatus(tool=tool, path=shutil.which(binary))
    arg = arg or PROBE_ARGS.get(tool, "--version")

    try:
        result = subprocess.run([binary, arg], capture_output=True, timeout=timeout)
    except FileNotFoundError:
        return status
    except (subprocess.TimeoutExpired, OSError) as e:
        status.found = True
        status.error = str(e)
        return status

    status.found = True
    status.exit_code = result.returncode
    return status


def required_tools(video: bool = True, external_sort: bool = False, skip_clone: bool = False) -> List[str]:
    """Tools a run with these settings will invoke."""
    tools = [] if skip_clone else ["git"]
    tools.append("gource")
    if video:
        tools.append("ffmpeg")
    if external_sort:
        tools.append("qsv")
    return tools


def check_dependencies(
    tools: List[str],
    binaries: Optional[Dict[str, str]] = None
) -> List[DependencyStatus]:
    """
    Probe every tool in ``tools``.

    Args:
        tools: Tool names, e.g. from required_tools()
        binaries: Configured executable for a tool, where it is not on PATH
        under its own name

    Returns:
        One status per tool, in order

    Raises:
        ToolMissingError: listing every tool that is missing or broken
    """
    binaries = binaries or {}
    statuses = [probe(tool, binaries.get(tool)) for tool in tools]
    for status in statuses:
        logger.debug(status.describe())

    failed = [s for s in statuses if not s.ok]
    if failed:
        raise ToolMissingError(
            [s.tool for s in failed],
            [s.describe() for s in failed if s.found],
        )
    return statuses
