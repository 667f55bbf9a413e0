"""
Data directory layout for gourcers.

    <data_dir>/
        repos/<owner>__<name>/     working copies
        gource/<owner>__<name>.txt normalized per-repository logs
        sorted.txt                 combined, time-ordered log
"""

from pathlib import Path
from typing import Union

from .domain.repository import Repository


class Workspace:
    """Paths of every intermediate artifact under one data directory."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).expanduser()

    @property
    def repos_dir(self) -> Path:
        return self.root / "repos"

    @property
    def gource_dir(self) -> Path:
        return self.root / "gource"

    @property
    def sorted_log(self) -> Path:
        return self.root / "sorted.txt"

    def repo_dir(self, repo: Repository) -> Path:
        return self.repos_dir / repo.path_friendly_name

    def gource_log(self, repo: Repository) -> Path:
        return self.gource_dir / f"{repo.path_friendly_name}.txt"

    def ensure(self) -> None:
        """Create the directory skeleton."""
        self.repos_dir.mkdir(parents=True, exist_ok=True)
        self.gource_dir.mkdir(parents=True, exist_ok=True)

    def __repr__(self) -> str:
        return f"Workspace({str(self.root)!r})"
