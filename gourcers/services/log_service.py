"""
Log normalization service for gourcers.

Turns one working copy's history into a gource log that can be merged with
every other repository's log:

    1700000000|alice|M|/src/main.py
becomes
    1700000000|alice|M|/acme/app/src/main.py

so each repository shows up as its own subtree. Diacritics and quote
characters are removed because gource's log parser chokes on them.
"""

import logging
import os
import re
import unicodedata
from pathlib import Path
from typing import Optional

from ..domain.repository import Repository
from ..infra.errors import GourcersError, NormalizeError
from ..infra.gource_client import GourceClient
from ..workspace import Workspace

logger = logging.getLogger(__name__)

# Everything up to and including the one-character change type field
# ("...|A|"), then the path.
REPLACE_REGEX = re.compile(r"^(.*\|.\|)(.*)$", re.MULTILINE)
DEQUOTE_REGEX = re.compile(r"['\"`]")

# Latin letters NFD leaves whole (strokes, bars, ligatures)
LATIN_FOLDS = str.maketrans({
    'Ł': 'L', 'ł': 'l',
    'Ø': 'O', 'ø': 'o',
    'Đ': 'D', 'đ': 'd', 'Ð': 'D', 'ð': 'd',
    'Ħ': 'H', 'ħ': 'h',
    'Ŧ': 'T', 'ŧ': 't',
    'Ɨ': 'I', 'ɨ': 'i', 'ı': 'i',
    'Ŀ': 'L', 'ŀ': 'l',
    'Ƶ': 'Z', 'ƶ': 'z',
    'Ƀ': 'B', 'ƀ': 'b',
    'Ɖ': 'D', 'ɖ': 'd',
    'Ǥ': 'G', 'ǥ': 'g',
    'Æ': 'AE', 'æ': 'ae',
    'Œ': 'OE', 'œ': 'oe',
    'ß': 'ss',
})


def tag_lines(log: str, identity: str) -> str:
    """Prefix the path of every log line with ``/identity``."""
    return REPLACE_REGEX.sub(lambda m: f"{m.group(1)}/{identity}{m.group(2)}", log)


def strip_diacritics(text: str) -> str:
    """Remove diacritics: "Mélanie" -> "Melanie", "Łukasz" -> "Lukasz"."""
    decomposed = unicodedata.normalize('NFD', text.translate(LATIN_FOLDS))
    stripped = ''.join(c for c in decomposed if not unicodedata.combining(c))
    return unicodedata.normalize('NFC', stripped)


def dequote(text: str) -> str:
    return DEQUOTE_REGEX.sub('', text)


def normalize_log(log: str, identity: str) -> str:
    """Apply every rewrite a per-repository log needs before merging."""
    log = tag_lines(log, identity)
    log = strip_diacritics(log)
    return dequote(log)


def write_atomic(path: Path, text: str) -> None:
    """Write ``text`` so readers see either the old file or the whole new one."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    with open(tmp, 'w', encoding='utf-8', newline='') as f:
        f.write(text)
    os.replace(tmp, path)


class LogService:
    """
    Generates normalized gource logs for repositories.

    Example:
        service = LogService(Workspace("/data"))
        path = service.normalize_repo(repo)
    """

    def __init__(self, workspace: Workspace, gource: Optional[GourceClient] = None):
        self.workspace = workspace
        self.gource = gource or GourceClient()

    def normalize_repo(self, repo: Repository) -> Path:
        """
        Extract, normalize and write the log for ``repo``.

        Returns:
            Path of the written log file

        Raises:
            NormalizeError: extraction or writing failed (no retry)
        """
        logger.debug(f"generating gource log for repo {repo.full_name}")
        log_path = self.workspace.gource_log(repo)

        try:
            raw = self.gource.custom_log(self.workspace.repo_dir(repo))
            write_atomic(log_path, normalize_log(raw, repo.full_name))
        except (GourcersError, OSError) as e:
            raise NormalizeError(repo.full_name, e) from e

        return log_path
