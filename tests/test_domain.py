"""Tests for gourcers domain objects."""

import pytest

from gourcers.domain import (
    FailurePolicy,
    PipelineSummary,
    Repository,
    TaskResult,
    TaskStage,
    TaskStatus,
)
from gourcers.workspace import Workspace


class TestRepository:
    """Tests for the Repository domain object."""

    def test_full_name(self):
        repo = Repository(owner="acme", name="app", clone_url="git@github.com:acme/app.git")
        assert repo.full_name == "acme/app"
        assert str(repo) == "acme/app"

    def test_path_friendly_name(self):
        repo = Repository(owner="acme", name="app", clone_url="")
        assert repo.path_friendly_name == "acme__app"

    def test_path_friendly_names_distinct_across_owners(self):
        a = Repository(owner="alice", name="dotfiles", clone_url="")
        b = Repository(owner="bob", name="dotfiles", clone_url="")
        assert a.path_friendly_name != b.path_friendly_name

    def test_immutable(self):
        repo = Repository(owner="acme", name="app", clone_url="")
        with pytest.raises(AttributeError):
            repo.name = "other"

    def test_from_api_response_ssh(self):
        data = {
            'name': 'app',
            'full_name': 'acme/app',
            'owner': {'login': 'acme'},
            'ssh_url': 'git@github.com:acme/app.git',
            'clone_url': 'https://github.com/acme/app.git',
            'fork': True,
            'private': True,
        }
        repo = Repository.from_api_response(data)

        assert repo.owner == "acme"
        assert repo.name == "app"
        assert repo.clone_url == "git@github.com:acme/app.git"
        assert repo.is_fork is True
        assert repo.is_public is False

    def test_from_api_response_https(self):
        data = {
            'name': 'app',
            'full_name': 'acme/app',
            'ssh_url': 'git@github.com:acme/app.git',
            'clone_url': 'https://github.com/acme/app.git',
        }
        repo = Repository.from_api_response(data, protocol="https")
        assert repo.clone_url == "https://github.com/acme/app.git"

    def test_from_api_response_defaults(self):
        repo = Repository.from_api_response({'name': 'app', 'owner': {'login': 'acme'}})

        assert repo.full_name == "acme/app"
        assert repo.clone_url == "git@github.com:acme/app.git"
        assert repo.is_fork is False
        assert repo.is_public is True

    def test_to_dict(self):
        repo = Repository(owner="acme", name="app", clone_url="url", is_fork=True)
        d = repo.to_dict()
        assert d['full_name'] == "acme/app"
        assert d['is_fork'] is True
        assert d['is_public'] is True


class TestWorkspace:

    def test_layout(self, tmp_path):
        ws = Workspace(tmp_path)
        repo = Repository(owner="acme", name="app", clone_url="")

        assert ws.repo_dir(repo) == tmp_path / "repos" / "acme__app"
        assert ws.gource_log(repo) == tmp_path / "gource" / "acme__app.txt"
        assert ws.sorted_log == tmp_path / "sorted.txt"

    def test_ensure(self, tmp_path):
        ws = Workspace(tmp_path / "data")
        ws.ensure()
        assert ws.repos_dir.is_dir()
        assert ws.gource_dir.is_dir()


class TestFailurePolicy:

    def test_parse(self):
        assert FailurePolicy.parse("isolate") is FailurePolicy.ISOLATE
        assert FailurePolicy.parse("ABORT") is FailurePolicy.ABORT

    def test_parse_unknown(self):
        with pytest.raises(ValueError, match="expected one of: isolate, abort"):
            FailurePolicy.parse("retry")


class TestPipelineSummary:
    """Tests for PipelineSummary."""

    def make_result(self, name, status, error=None):
        repo = Repository(owner="acme", name=name, clone_url="")
        stage = TaskStage.DONE if status == TaskStatus.SUCCESS else TaskStage.FETCH
        return TaskResult(repo=repo, status=status, stage=stage, error=error)

    def test_counts(self):
        summary = PipelineSummary()
        summary.add_result(self.make_result("a", TaskStatus.SUCCESS))
        summary.add_result(self.make_result("b", TaskStatus.FAILED, error="boom"))
        summary.add_result(self.make_result("c", TaskStatus.CANCELLED))

        assert summary.total == 3
        assert summary.successful == 1
        assert summary.failed == 1
        assert summary.cancelled == 1
        assert summary.errors == ["acme/b: boom"]
        assert not summary.success

    def test_success_when_all_ok(self):
        summary = PipelineSummary()
        summary.add_result(self.make_result("a", TaskStatus.SUCCESS))
        assert summary.success
        assert [r.name for r in summary.succeeded_repos] == ["a"]

    def test_sort_by_catalog(self):
        catalog = [Repository(owner="acme", name=n, clone_url="") for n in ("a", "b", "c")]
        summary = PipelineSummary()
        for name in ("c", "a", "b"):
            summary.add_result(self.make_result(name, TaskStatus.SUCCESS))

        summary.sort_by(catalog)

        assert [r.repo.name for r in summary.results] == ["a", "b", "c"]

    def test_to_dict(self):
        summary = PipelineSummary(policy=FailurePolicy.ABORT)
        summary.add_result(self.make_result("b", TaskStatus.FAILED, error="boom"))
        d = summary.to_dict()

        assert d['type'] == 'summary'
        assert d['policy'] == 'abort'
        assert d['failed'] == 1

    def test_task_result_to_dict(self):
        result = self.make_result("a", TaskStatus.FAILED, error="clone failed")
        d = result.to_dict()
        assert d == {
            'repo': 'acme/a',
            'status': 'failed',
            'stage': 'fetch',
            'error': 'clone failed',
        }
