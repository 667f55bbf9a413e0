"""
Selection rules for gourcers.

A rule file decides which repositories take part in a visualization.
Each non-blank, non-comment line is ``[!]selector:value``:

    # include everything
    *:*
    # but not private repositories
    !public:false
    # nor forks
    !is_fork:true
    # nor anything owned by rust-lang
    !owner:rust-lang

Selectors:
    *          matches every repository
    owner      the owner login
    name       the repository name
    full_name  owner/name
    is_fork    "true" or "false"
    public     "true" or "false"

A leading ``!`` turns the line into an exclude. Evaluation is
default-deny: a repository is kept only if some include matches it and
no exclude does. Excludes always win over includes.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from .repository import Repository

logger = logging.getLogger(__name__)


class Selector(Enum):
    """The repository field a rule entry matches against."""
    ALL = "*"
    OWNER = "owner"
    NAME = "name"
    FULL_NAME = "full_name"
    IS_FORK = "is_fork"
    PUBLIC = "public"

    @property
    def is_bool(self) -> bool:
        return self in (Selector.IS_FORK, Selector.PUBLIC)


_SELECTORS = {s.value: s for s in Selector}


class RuleErrorKind(Enum):
    INVALID_SELECTOR = "invalid_selector"
    MISSING_VALUE = "missing_value"
    INVALID_BOOL = "invalid_bool"


class RuleParseError(ValueError):
    """A rule line could not be parsed.

    ``detail`` holds the offending token: the selector for
    INVALID_SELECTOR, the whole rule for MISSING_VALUE and the value for
    INVALID_BOOL.
    """

    _MESSAGES = {
        RuleErrorKind.INVALID_SELECTOR: "Invalid selector: {!r}",
        RuleErrorKind.MISSING_VALUE: "Selector has no value: {}",
        RuleErrorKind.INVALID_BOOL: "Value must be a bool: {}",
    }

    def __init__(self, kind: RuleErrorKind, line: int, detail: str, source: Optional[str] = None):
        self.kind = kind
        self.line = line
        self.detail = detail
        self.source = source
        super().__init__(str(self))

    @property
    def message(self) -> str:
        return self._MESSAGES[self.kind].format(self.detail)

    def __str__(self) -> str:
        where = f"{self.source}, line {self.line}" if self.source else f"line {self.line}"
        return f"{where}: {self.message}"


class _EntryError(Exception):
    """Raised by RuleEntry.parse; RuleSet.parse attaches the line number."""

    def __init__(self, kind: RuleErrorKind, detail: str):
        super().__init__(detail)
        self.kind = kind
        self.detail = detail


@dataclass(frozen=True)
class RuleEntry:
    """One ``selector:value`` pair."""
    selector: Selector
    value: str

    @classmethod
    def parse(cls, rule: str) -> 'RuleEntry':
        """Parse ``selector:value`` (without the ``!`` prefix)."""
        selector_part, sep, value = rule.partition(':')

        selector = _SELECTORS.get(selector_part)
        if selector is None:
            raise _EntryError(RuleErrorKind.INVALID_SELECTOR, selector_part)

        if not sep or not value:
            raise _EntryError(RuleErrorKind.MISSING_VALUE, rule)

        if selector.is_bool and value not in ("true", "false"):
            raise _EntryError(RuleErrorKind.INVALID_BOOL, value)

        return cls(selector, value)

    def matches(self, repo: Repository) -> bool:
        if self.selector is Selector.ALL:
            return True
        if self.selector is Selector.OWNER:
            return repo.owner == self.value
        if self.selector is Selector.NAME:
            return repo.name == self.value
        if self.selector is Selector.FULL_NAME:
            return repo.full_name == self.value
        if self.selector is Selector.IS_FORK:
            return _bool_str(repo.is_fork) == self.value
        if self.selector is Selector.PUBLIC:
            return _bool_str(repo.is_public) == self.value
        return False

    def describe(self) -> str:
        """Human readable reason, e.g. ``owner is "acme"``."""
        if self.selector is Selector.ALL:
            return "* is enabled"
        return f'{self.selector.value} is "{self.value}"'

    def __str__(self) -> str:
        return f"{self.selector.value}:{self.value}"


def _bool_str(value: bool) -> str:
    return "true" if value else "false"


class Verdict:
    """Outcome of evaluating one repository against a RuleSet."""

    keep = False

    def describe(self) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class Include(Verdict):
    """An include matched and no exclude did."""
    inclusion: RuleEntry
    keep = True

    def describe(self) -> str:
        return self.inclusion.describe()


@dataclass(frozen=True)
class Exclude(Verdict):
    """An include matched but so did an exclude."""
    inclusion: RuleEntry
    exclusion: RuleEntry

    def describe(self) -> str:
        return f"{self.inclusion.describe()} but {self.exclusion.describe()}"


@dataclass(frozen=True)
class Default(Verdict):
    """No include matched; the repository is dropped."""

    def describe(self) -> str:
        return "no rules matched"


@dataclass(frozen=True)
class RuleSet:
    """Ordered include and exclude entries."""
    includes: Tuple[RuleEntry, ...] = field(default_factory=tuple)
    excludes: Tuple[RuleEntry, ...] = field(default_factory=tuple)

    @classmethod
    def parse(cls, text: str, source: Optional[str] = None) -> 'RuleSet':
        """
        Parse rule text.

        Args:
            text: Rule file contents
            source: Name used in error messages (e.g. the file path)

        Raises:
            RuleParseError: on the first malformed line
        """
        includes: List[RuleEntry] = []
        excludes: List[RuleEntry] = []

        for line_number, raw in enumerate(text.splitlines(), start=1):
            line = raw.strip()
            if not line or line.startswith('#'):
                continue

            exclude = line.startswith('!')
            if exclude:
                line = line[1:]

            try:
                entry = RuleEntry.parse(line)
            except _EntryError as e:
                raise RuleParseError(e.kind, line_number, e.detail, source) from None

            (excludes if exclude else includes).append(entry)

        return cls(tuple(includes), tuple(excludes))

    @classmethod
    def from_sources(
        cls,
        file_text: Optional[str] = None,
        file_name: Optional[str] = None,
        inline: Iterable[str] = ()
    ) -> 'RuleSet':
        """Parse a rule file and inline rules and merge them, file first."""
        rules = cls()
        if file_text is not None:
            rules = rules.merge(cls.parse(file_text, source=file_name))
        inline = list(inline)
        if inline:
            rules = rules.merge(cls.parse('\n'.join(inline), source="command line"))
        return rules

    def merge(self, other: 'RuleSet') -> 'RuleSet':
        return RuleSet(self.includes + other.includes, self.excludes + other.excludes)

    def is_empty(self) -> bool:
        return not self.includes and not self.excludes

    def evaluate(self, repo: Repository) -> Verdict:
        """Decide whether ``repo`` is kept. Pure; does not log."""
        inclusion = next((e for e in self.includes if e.matches(repo)), None)
        if inclusion is None:
            return Default()

        exclusion = next((e for e in self.excludes if e.matches(repo)), None)
        if exclusion is None:
            return Include(inclusion)

        return Exclude(inclusion, exclusion)

    def apply(self, repos: List[Repository]) -> List[Tuple[Repository, Verdict]]:
        """
        Filter ``repos`` in place, keeping only Include verdicts.

        Every decision is logged at DEBUG level.

        Returns:
            (repository, verdict) for every repository that was considered,
            in catalog order
        """
        decisions = [(repo, self.evaluate(repo)) for repo in repos]

        for repo, verdict in decisions:
            if isinstance(verdict, Include):
                logger.debug(f"including repo {repo.full_name}: {verdict.describe()}")
            elif isinstance(verdict, Exclude):
                logger.debug(f"excluding repo {repo.full_name}: {verdict.describe()}")
            else:
                logger.debug(f"ignoring repo {repo.full_name}: {verdict.describe()}")

        repos[:] = [repo for repo, verdict in decisions if verdict.keep]
        return decisions
