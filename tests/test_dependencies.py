"""Tests for collaborator probing."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from gourcers.infra.dependencies import check_dependencies, probe, required_tools
from gourcers.infra.errors import ToolMissingError


def completed(code=0):
    result = MagicMock()
    result.returncode = code
    return result


class TestRequiredTools:

    def test_default(self):
        assert required_tools() == ["git", "gource", "ffmpeg"]

    def test_window_only(self):
        assert required_tools(video=False) == ["git", "gource"]

    def test_skip_clone_and_external_sort(self):
        assert required_tools(skip_clone=True, external_sort=True) == ["gource", "ffmpeg", "qsv"]


class TestProbe:

    @patch('gourcers.infra.dependencies.shutil.which', return_value="/usr/bin/git")
    @patch('gourcers.infra.dependencies.subprocess.run')
    def test_found(self, mock_run, mock_which):
        mock_run.return_value = completed(0)

        status = probe("git")

        assert status.ok
        assert status.path == "/usr/bin/git"
        assert mock_run.call_args[0][0] == ["git", "--version"]

    @patch('gourcers.infra.dependencies.shutil.which', return_value=None)
    @patch('gourcers.infra.dependencies.subprocess.run', side_effect=FileNotFoundError)
    def test_missing(self, mock_run, mock_which):
        status = probe("gource")
        assert not status.found
        assert status.describe() == "gource not found"

    @patch('gourcers.infra.dependencies.shutil.which', return_value="/usr/bin/ffmpeg")
    @patch('gourcers.infra.dependencies.subprocess.run')
    def test_nonzero_exit(self, mock_run, mock_which):
        mock_run.return_value = completed(1)
        status = probe("ffmpeg")
        assert status.found
        assert not status.ok
        assert "nonzero exit code 1" in status.describe()

    @patch('gourcers.infra.dependencies.shutil.which', return_value="/usr/bin/gource")
    @patch('gourcers.infra.dependencies.subprocess.run',
           side_effect=subprocess.TimeoutExpired(cmd="gource", timeout=10))
    def test_timeout(self, mock_run, mock_which):
        status = probe("gource")
        assert not status.ok
        assert status.error


class TestCheckDependencies:

    @patch('gourcers.infra.dependencies.subprocess.run')
    def test_all_present(self, mock_run):
        mock_run.return_value = completed(0)
        statuses = check_dependencies(["git", "gource"])
        assert [s.tool for s in statuses] == ["git", "gource"]

    @patch('gourcers.infra.dependencies.subprocess.run')
    def test_reports_every_missing_tool(self, mock_run):
        def run(cmd, **kwargs):
            if cmd[0] in ("gource", "ffmpeg"):
                raise FileNotFoundError(cmd[0])
            return completed(0)
        mock_run.side_effect = run

        with pytest.raises(ToolMissingError) as exc_info:
            check_dependencies(["git", "gource", "ffmpeg"])

        assert exc_info.value.tools == ["gource", "ffmpeg"]
        assert "gource, ffmpeg" in str(exc_info.value)
