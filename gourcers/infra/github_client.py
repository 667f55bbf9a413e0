"""
GitHub API client infrastructure for gourcers.

Fetches the repository catalog for the authenticated user:
- Paginates /user/repos until an empty page
- Handles rate limiting with exponential backoff
- Optionally dumps each raw page to disk for debugging
"""

import json
import logging
import os
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from ..domain.repository import Repository
from .errors import CatalogError

logger = logging.getLogger(__name__)

API_VERSION = "2022-11-28"


@dataclass
class RateLimitStatus:
    """GitHub API rate limit status."""
    remaining: int
    limit: int
    reset_time: int  # Unix timestamp
    used: int

    @property
    def reset_datetime(self) -> datetime:
        """Get reset time as datetime."""
        return datetime.fromtimestamp(self.reset_time)

    @property
    def minutes_until_reset(self) -> int:
        """Minutes until rate limit resets."""
        now = int(time.time())
        return max(0, (self.reset_time - now) // 60)

    @property
    def is_low(self) -> bool:
        """Check if rate limit is getting low (< 100 remaining)."""
        return self.remaining < 100


class GitHubClient:
    """
    GitHub API client for listing repositories.

    Example:
        client = GitHubClient(token="ghp_...")
        for repo in client.list_repositories():
            print(repo.full_name)
    """

    def __init__(
        self,
        token: Optional[str] = None,
        api_url: str = "https://api.github.com",
        per_page: int = 100,
        protocol: str = "ssh",
        dump_dir: Optional[Path] = None,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize GitHubClient.

        Args:
            token: GitHub token (defaults to GOURCERS_GITHUB_TOKEN or GITHUB_TOKEN env var)
            api_url: API base URL
            per_page: Page size for listing (GitHub caps this at 100)
            protocol: "ssh" or "https" clone addresses
            dump_dir: If set, each raw page is written to api_page{N}.json here
            max_retries: Maximum retry attempts for rate-limited requests
            base_delay: Base delay for exponential backoff
            max_delay: Maximum delay between retries
            session: requests session (created if None)
        """
        self.token = token or os.environ.get('GOURCERS_GITHUB_TOKEN') or os.environ.get('GITHUB_TOKEN')
        self.api_url = api_url.rstrip('/')
        self.per_page = per_page
        self.protocol = protocol
        self.dump_dir = dump_dir
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.session = session or requests.Session()
        self._rate_limit_status: Optional[RateLimitStatus] = None

    @property
    def headers(self) -> Dict[str, str]:
        headers = {
            'Accept': 'application/vnd.github+json',
            'User-Agent': 'gourcers',
            'X-GitHub-Api-Version': API_VERSION,
        }
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        return headers

    @property
    def rate_limit_status(self) -> Optional[RateLimitStatus]:
        """Rate limit status from the last response, if any."""
        return self._rate_limit_status

    def _update_rate_limit_from_headers(self, headers) -> None:
        """Update rate limit status from response headers."""
        try:
            remaining = int(headers.get('X-RateLimit-Remaining', -1))
            limit = int(headers.get('X-RateLimit-Limit', -1))
            reset_time = int(headers.get('X-RateLimit-Reset', 0))
            used = int(headers.get('X-RateLimit-Used', 0))
        except (ValueError, TypeError):
            return

        if remaining >= 0 and limit >= 0:
            self._rate_limit_status = RateLimitStatus(
                remaining=remaining,
                limit=limit,
                reset_time=reset_time,
                used=used
            )

            if self._rate_limit_status.is_low:
                logger.warning(
                    f"GitHub API rate limit low: {remaining}/{limit} remaining, "
                    f"resets in {self._rate_limit_status.minutes_until_reset} minutes"
                )

    def _get(self, endpoint: str) -> Any:
        """
        GET an API endpoint, retrying when rate limited.

        Raises:
            CatalogError: request failed or retries were exhausted
        """
        url = f"{self.api_url}/{endpoint}"

        for attempt in range(self.max_retries):
            try:
                response = self.session.get(url, headers=self.headers, timeout=30)
            except requests.RequestException as e:
                logger.warning(f"GitHub API request failed: {e}")
                if attempt < self.max_retries - 1:
                    time.sleep(min(self.base_delay * (2 ** attempt), self.max_delay))
                    continue
                raise CatalogError(f"GitHub API request failed: {e}") from e

            self._update_rate_limit_from_headers(response.headers)

            if response.status_code == 200:
                try:
                    return response.json()
                except ValueError as e:
                    raise CatalogError(f"failed to parse GitHub API response for {endpoint}: {e}") from e

            if response.status_code in (403, 429):
                reset_time = response.headers.get('X-RateLimit-Reset')
                if reset_time:
                    wait_time = int(reset_time) - int(time.time())
                    if 0 < wait_time < self.max_delay:
                        logger.info(f"Rate limited, waiting {wait_time}s")
                        time.sleep(wait_time)
                        continue

                delay = min(self.base_delay * (2 ** attempt), self.max_delay)
                logger.info(f"Rate limited, waiting {delay}s (attempt {attempt + 1})")
                time.sleep(delay)
                continue

            if response.status_code == 401:
                raise CatalogError("GitHub rejected the token (401 Unauthorized)")

            raise CatalogError(f"GitHub API error {response.status_code} for {endpoint}: {response.text[:200]}")

        raise CatalogError(f"GitHub API rate limit: gave up after {self.max_retries} attempts")

    def _dump_page(self, page: int, data: Any) -> None:
        self.dump_dir.mkdir(parents=True, exist_ok=True)
        path = self.dump_dir / f"api_page{page}.json"
        with open(path, 'w') as f:
            json.dump(data, f, indent=2)
        logger.debug(f"dumped page {page} to {path}")

    def list_user_repos(self) -> List[Dict[str, Any]]:
        """
        List raw repository objects visible to the authenticated user.

        Returns:
            API objects in the order GitHub returns them
        """
        if not self.token:
            raise CatalogError("no GitHub token configured (set GITHUB_TOKEN or pass --token)")

        repos: List[Dict[str, Any]] = []
        page = 1

        while True:
            logger.debug(f"fetching page {page} of repos")
            data = self._get(f"user/repos?per_page={self.per_page}&page={page}")

            if self.dump_dir is not None:
                self._dump_page(page, data)

            if not isinstance(data, list):
                raise CatalogError(f"unexpected GitHub API response on page {page}")

            logger.debug(f"fetched {len(data)} repos on page {page}")
            if not data:
                break

            repos.extend(data)
            page += 1

        return repos

    def list_repositories(self) -> List[Repository]:
        """
        List the catalog as Repository objects.

        Duplicate ``full_name`` entries are dropped (first one wins) so that
        every repository handed downstream is unique.
        """
        catalog: List[Repository] = []
        seen = set()

        for data in self.list_user_repos():
            repo = Repository.from_api_response(data, protocol=self.protocol)
            if repo.full_name in seen:
                logger.warning(f"duplicate repository in catalog, skipping: {repo.full_name}")
                continue
            seen.add(repo.full_name)
            catalog.append(repo)

        return catalog
