"""Tests for GitClient."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from gourcers.infra.errors import ProcessFailedError, ToolMissingError
from gourcers.infra.git_client import GitClient


def completed(code=0, stdout="", stderr=""):
    result = MagicMock()
    result.returncode = code
    result.stdout = stdout
    result.stderr = stderr
    return result


class TestGitClient:
    """Tests for GitClient."""

    @patch('gourcers.infra.git_client.subprocess.run')
    def test_clone_when_missing(self, mock_run, tmp_path):
        mock_run.return_value = completed()
        dest = tmp_path / "repos" / "acme__app"

        action = GitClient().clone_or_pull("git@github.com:acme/app.git", dest)

        assert action == "cloned"
        assert mock_run.call_args[0][0] == ["git", "clone", "git@github.com:acme/app.git", str(dest)]
        assert dest.parent.is_dir()

    @patch('gourcers.infra.git_client.subprocess.run')
    def test_pull_when_present(self, mock_run, tmp_path):
        mock_run.return_value = completed()
        dest = tmp_path / "acme__app"
        dest.mkdir()

        action = GitClient().clone_or_pull("git@github.com:acme/app.git", dest)

        assert action == "pulled"
        assert mock_run.call_args[0][0] == ["git", "pull", "origin"]
        assert mock_run.call_args[1]['cwd'] == dest

    @patch('gourcers.infra.git_client.subprocess.run')
    def test_failure_carries_stderr(self, mock_run, tmp_path):
        mock_run.return_value = completed(128, stderr="fatal: repository not found\n")

        with pytest.raises(ProcessFailedError) as exc_info:
            GitClient().clone("git@github.com:acme/gone.git", tmp_path / "gone")

        assert exc_info.value.tool == "git clone"
        assert exc_info.value.exit_code == 128
        assert exc_info.value.stderr == "fatal: repository not found"

    @patch('gourcers.infra.git_client.subprocess.run', side_effect=FileNotFoundError)
    def test_missing_git(self, mock_run, tmp_path):
        with pytest.raises(ToolMissingError):
            GitClient(binary="git").pull(tmp_path)

    @patch('gourcers.infra.git_client.subprocess.run',
           side_effect=subprocess.TimeoutExpired(cmd="git", timeout=5))
    def test_timeout(self, mock_run, tmp_path):
        with pytest.raises(ProcessFailedError, match="timed out"):
            GitClient(timeout=5).pull(tmp_path)

