"""
Repository domain object for gourcers.

Repository describes one hosted repository as returned by the catalog.
It is immutable once fetched; ``full_name`` is the key used for working
copy directories, log files, log tagging and rule matching.
"""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class Repository:
    """A repository descriptor from the catalog."""
    owner: str
    name: str
    clone_url: str
    is_fork: bool = False
    is_public: bool = True

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def path_friendly_name(self) -> str:
        """``full_name`` with path separators replaced, safe as a file name."""
        return self.full_name.replace('/', '__')

    @classmethod
    def from_api_response(cls, data: Dict[str, Any], protocol: str = "ssh") -> 'Repository':
        """Create from a GitHub API repository object."""
        owner = data.get('owner', {})
        login = owner.get('login', '') if isinstance(owner, dict) else str(owner)
        name = data.get('name', '')

        # full_name is authoritative when present (it survives renames)
        full_name = data.get('full_name')
        if full_name and '/' in full_name:
            login, name = full_name.split('/', 1)

        if protocol == "https":
            clone_url = data.get('clone_url') or f"https://github.com/{login}/{name}.git"
        else:
            clone_url = data.get('ssh_url') or f"git@github.com:{login}/{name}.git"

        return cls(
            owner=login,
            name=name,
            clone_url=clone_url,
            is_fork=bool(data.get('fork', False)),
            is_public=not data.get('private', False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'owner': self.owner,
            'name': self.name,
            'full_name': self.full_name,
            'clone_url': self.clone_url,
            'is_fork': self.is_fork,
            'is_public': self.is_public,
        }

    def __str__(self) -> str:
        return self.full_name
