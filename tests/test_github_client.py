"""Tests for the GitHub catalog client."""

import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from gourcers.infra.errors import CatalogError
from gourcers.infra.github_client import GitHubClient, RateLimitStatus


def api_repo(owner, name, fork=False, private=False):
    return {
        'name': name,
        'full_name': f"{owner}/{name}",
        'owner': {'login': owner},
        'ssh_url': f"git@github.com:{owner}/{name}.git",
        'clone_url': f"https://github.com/{owner}/{name}.git",
        'fork': fork,
        'private': private,
    }


def response(status=200, data=None, headers=None, text=""):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = data
    resp.headers = headers or {}
    resp.text = text
    return resp


class TestGitHubClient:
    """Tests for GitHubClient."""

    def setup_method(self):
        self.session = MagicMock()

    def make_client(self, **kwargs):
        kwargs.setdefault('token', 'test-token')
        return GitHubClient(session=self.session, base_delay=0, **kwargs)

    def test_headers(self):
        client = self.make_client()
        assert client.headers['Authorization'] == 'Bearer test-token'
        assert client.headers['X-GitHub-Api-Version'] == '2022-11-28'

    def test_token_from_environment(self):
        with patch.dict('os.environ', {'GITHUB_TOKEN': 'env-token'}, clear=True):
            client = GitHubClient(session=self.session)
        assert client.token == 'env-token'

    def test_paginates_until_empty_page(self):
        self.session.get.side_effect = [
            response(data=[api_repo("acme", "a"), api_repo("acme", "b")]),
            response(data=[api_repo("acme", "c")]),
            response(data=[]),
        ]
        client = self.make_client(per_page=2)

        repos = client.list_repositories()

        assert [r.full_name for r in repos] == ["acme/a", "acme/b", "acme/c"]
        urls = [c.args[0] for c in self.session.get.call_args_list]
        assert urls == [
            "https://api.github.com/user/repos?per_page=2&page=1",
            "https://api.github.com/user/repos?per_page=2&page=2",
            "https://api.github.com/user/repos?per_page=2&page=3",
        ]

    def test_maps_fields(self):
        self.session.get.side_effect = [
            response(data=[api_repo("acme", "fork", fork=True, private=True)]),
            response(data=[]),
        ]

        repo = self.make_client(protocol="https").list_repositories()[0]

        assert repo.is_fork is True
        assert repo.is_public is False
        assert repo.clone_url == "https://github.com/acme/fork.git"

    def test_duplicates_dropped(self):
        self.session.get.side_effect = [
            response(data=[api_repo("acme", "a"), api_repo("acme", "a")]),
            response(data=[]),
        ]

        repos = self.make_client().list_repositories()

        assert len(repos) == 1

    def test_dump_pages(self, tmp_path):
        page = [api_repo("acme", "a")]
        self.session.get.side_effect = [response(data=page), response(data=[])]

        self.make_client(dump_dir=tmp_path / "dump").list_repositories()

        assert json.loads((tmp_path / "dump" / "api_page1.json").read_text()) == page
        assert json.loads((tmp_path / "dump" / "api_page2.json").read_text()) == []

    def test_no_token(self):
        with patch.dict('os.environ', {}, clear=True):
            client = GitHubClient(session=self.session)
        with pytest.raises(CatalogError, match="no GitHub token"):
            client.list_repositories()
        self.session.get.assert_not_called()

    def test_unauthorized(self):
        self.session.get.return_value = response(status=401)
        with pytest.raises(CatalogError, match="401"):
            self.make_client().list_repositories()

    def test_server_error(self):
        self.session.get.return_value = response(status=500, text="oops")
        with pytest.raises(CatalogError, match="500"):
            self.make_client().list_repositories()

    @patch('gourcers.infra.github_client.time.sleep')
    def test_rate_limit_retry(self, mock_sleep):
        self.session.get.side_effect = [
            response(status=429),
            response(data=[api_repo("acme", "a")]),
            response(data=[]),
        ]

        repos = self.make_client().list_repositories()

        assert len(repos) == 1
        mock_sleep.assert_called_once()

    @patch('gourcers.infra.github_client.time.sleep')
    def test_rate_limit_exhausted(self, mock_sleep):
        self.session.get.return_value = response(status=403)
        with pytest.raises(CatalogError, match="gave up after 3 attempts"):
            self.make_client().list_repositories()
        assert self.session.get.call_count == 3

    @patch('gourcers.infra.github_client.time.sleep')
    def test_network_error(self, mock_sleep):
        self.session.get.side_effect = requests.ConnectionError("no route")
        with pytest.raises(CatalogError, match="no route"):
            self.make_client().list_repositories()

    def test_unexpected_payload(self):
        self.session.get.return_value = response(data={'message': 'nope'})
        with pytest.raises(CatalogError, match="unexpected"):
            self.make_client().list_repositories()

    def test_rate_limit_headers_tracked(self):
        self.session.get.side_effect = [
            response(data=[], headers={
                'X-RateLimit-Remaining': '4990',
                'X-RateLimit-Limit': '5000',
                'X-RateLimit-Reset': '1700000000',
                'X-RateLimit-Used': '10',
            }),
        ]
        client = self.make_client()
        client.list_repositories()

        status = client.rate_limit_status
        assert isinstance(status, RateLimitStatus)
        assert status.remaining == 4990
        assert not status.is_low
