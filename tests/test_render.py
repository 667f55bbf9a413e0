"""
Tests for gourcers/render.py output helpers.

Output goes to stderr through rich, so assertions look at captured.err.
"""

from gourcers import render
from gourcers.domain import (
    Default,
    Exclude,
    Include,
    PipelineSummary,
    Repository,
    RuleEntry,
    Selector,
    TaskResult,
    TaskStatus,
)
from gourcers.infra.dependencies import DependencyStatus


def repo(name):
    return Repository(owner="acme", name=name, clone_url="")


class TestRenderDecisions:

    def test_empty(self, capsys):
        render.render_decisions([])
        assert "No repositories found" in capsys.readouterr().err

    def test_verdicts(self, capsys):
        everything = RuleEntry(Selector.ALL, "*")
        decisions = [
            (repo("app"), Include(everything)),
            (repo("fork"), Exclude(everything, RuleEntry(Selector.IS_FORK, "true"))),
            (repo("other"), Default()),
        ]

        render.render_decisions(decisions)

        err = capsys.readouterr().err
        assert "include" in err
        assert "exclude" in err
        assert "ignore" in err
        assert "1 of 3 repositories selected" in err


class TestRenderSummary:

    def test_empty_summary_prints_nothing(self, capsys):
        render.render_summary(PipelineSummary())
        assert capsys.readouterr().err == ""

    def test_failures_listed(self, capsys):
        summary = PipelineSummary()
        summary.add_result(TaskResult(repo=repo("ok"), status=TaskStatus.SUCCESS, fetched="pulled"))
        summary.add_result(TaskResult(repo=repo("bad"), status=TaskStatus.FAILED, error="not found"))

        render.render_summary(summary)

        err = capsys.readouterr().err
        assert "acme/bad" in err
        assert "not found" in err
        assert err.index("acme/bad") < err.index("acme/ok")


class TestRenderDependencies:

    def test_statuses(self, capsys):
        render.render_dependencies([
            DependencyStatus(tool="git", path="/usr/bin/git", found=True, exit_code=0),
            DependencyStatus(tool="qsv"),
        ])

        err = capsys.readouterr().err
        assert "ok" in err
        assert "missing" in err
