#!/usr/bin/env python3
"""
Command line interface for gourcers.

    gourcers run -d ~/gource-data -f rules.txt -o all-my-code.mp4
    gourcers rules -f rules.txt --list
    gourcers check
    gourcers config show
"""

import json
import logging
import shlex
import sys
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Any, Iterator, Optional, Tuple

import click
from rich.console import Console

from . import __version__
from .config import configure_logging, get_config_path, load_config
from .domain.operation import FailurePolicy
from .domain.rules import RuleParseError, RuleSet
from .exit_codes import (
    ConfigError,
    INTERRUPTED,
    PARTIAL_SUCCESS,
    SUCCESS,
    get_exit_code_for_exception,
)
from .infra.dependencies import check_dependencies, probe, required_tools
from .infra.errors import GourcersError, ToolMissingError
from .infra.git_client import GitClient
from .infra.github_client import GitHubClient
from .infra.gource_client import GourceClient
from .render import render_decisions, render_dependencies, render_summary
from .services.log_service import LogService
from .services.merge_service import MergeService
from .services.pipeline_service import PipelineOptions, PipelineService
from .services.render_service import EncodeOptions, RenderOptions, RenderService
from .workspace import Workspace

logger = logging.getLogger(__name__)
console = Console(stderr=True)

NUM_STEPS = 5


def status(step: int, message: str) -> None:
    console.print(f"[bold dim][{step}/{NUM_STEPS}][/bold dim] {message}")


def fail(exc: BaseException, verbose: bool = False) -> None:
    """Print ``exc`` and exit with its exit code."""
    if verbose:
        console.print_exception()
    console.print(f"[bold red]Error:[/bold red] {exc}")
    sys.exit(get_exit_code_for_exception(exc))


def setup_logging(config: Dict[str, Any], verbose: bool, quiet: bool) -> None:
    log_config = config.get("logging", {})
    level = log_config.get("level", "INFO")
    if verbose:
        level = "DEBUG"
    elif quiet:
        level = "WARNING"
    configure_logging(level, log_config.get("format", "%(levelname)s: %(message)s"))


def load_rules(
    config: Dict[str, Any],
    include_file: Optional[str],
    includes: Tuple[str, ...]
) -> RuleSet:
    """
    Merge the rule file and inline rules from flags and config.

    Raises:
        RuleParseError: a rule is malformed
        OSError: the rule file cannot be read
    """
    rules_config = config.get("rules", {})
    include_file = include_file or rules_config.get("include_file") or None
    inline = list(rules_config.get("include", [])) + list(includes)

    file_text = None
    if include_file:
        path = Path(include_file).expanduser()
        file_text = path.read_text(encoding='utf-8')

    return RuleSet.from_sources(file_text, include_file, inline)


@contextmanager
def open_workspace(data_dir: Optional[str], assume_temp: bool) -> Iterator[Workspace]:
    """Use ``data_dir``, or a temporary directory removed afterwards."""
    if data_dir:
        yield Workspace(data_dir)
        return

    if not assume_temp:
        console.print("[bold red]WARNING[/bold red]: [dim]No --data-dir specified![/dim]")
        console.print(
            "[bold red]WARNING[/bold red]: [dim]A temporary data directory will be created "
            "and removed after finishing. You probably don't want this.[/dim]\n"
        )
        if not click.confirm("Are you sure you want to use a temporary data directory?", err=True):
            console.print("[red]Refusing to use a temporary data directory.[/red]")
            sys.exit(1)

    with tempfile.TemporaryDirectory(prefix="gourcers-") as tmp:
        logger.debug(f"using temporary data directory {tmp}")
        yield Workspace(tmp)


def configured_binaries(config: Dict[str, Any]) -> Dict[str, str]:
    """Executable configured for each external tool."""
    return {
        "git": config.get("git", {}).get("binary", "git"),
        "gource": config.get("gource", {}).get("binary", "gource"),
        "ffmpeg": config.get("ffmpeg", {}).get("binary", "ffmpeg"),
        "qsv": config.get("sort", {}).get("binary", "qsv"),
    }


def github_client(config: Dict[str, Any], token: Optional[str], dump_dir: Optional[Path]) -> GitHubClient:
    gh = config.get("github", {})
    return GitHubClient(
        token=token or gh.get("token") or None,
        api_url=gh.get("api_url", "https://api.github.com"),
        per_page=int(gh.get("per_page", 100)),
        protocol=gh.get("clone_protocol", "ssh"),
        dump_dir=dump_dir,
        max_retries=int(gh.get("max_retries", 3)),
        base_delay=float(gh.get("base_delay_seconds", 1)),
        max_delay=float(gh.get("max_delay_seconds", 60)),
    )


@click.group()
@click.version_option(__version__)
def cli():
    """gourcers - Render the history of all your repositories as one gource video.

    Lists your GitHub repositories, keeps the ones your selection rules
    include, clones or pulls them, merges their histories into a single
    timeline and renders it with gource (optionally encoded by ffmpeg).
    """
    pass


@cli.command('run')
@click.option('-t', '--token', envvar='GITHUB_TOKEN', help='GitHub personal access token (needs the repo scope)')
@click.option('-d', '--data-dir', type=click.Path(file_okay=False), help='Where working copies and logs are kept')
@click.option('-y', '--temp', 'assume_temp', is_flag=True, help='Use a temporary data directory without asking')
@click.option('-o', '--output', type=click.Path(dir_okay=False), help='Video file to write')
@click.option('--skip-clone', is_flag=True, default=None, help='Assume working copies already exist')
@click.option('-i', '--include', 'includes', multiple=True, help='Selection rule, e.g. "*:*" or "!is_fork:true"')
@click.option('-f', '--include-file', type=click.Path(dir_okay=False), help='File of selection rules')
@click.option('--gource-args', help='Extra arguments passed to gource')
@click.option('--ffmpeg-args', help='Extra arguments passed to ffmpeg after the input')
@click.option('--resolution', help='Video resolution, e.g. 1920x1080')
@click.option('--framerate', type=int, help='Frames per second fed to ffmpeg')
@click.option('--video/--no-video', default=None, help='Encode a video (default) or open gource interactively')
@click.option('-j', '--parallel', type=int, help='Maximum repositories processed at once')
@click.option('--failure-policy', type=click.Choice([p.value for p in FailurePolicy]),
              help='isolate: skip repositories that fail; abort: stop the run')
@click.option('--external-sort', is_flag=True, default=None, help='Sort the combined log with qsv')
@click.option('--dump-requests', is_flag=True, help='Save raw GitHub API pages to the data directory')
@click.option('-v', '--verbose', is_flag=True, help='Debug logging')
@click.option('-q', '--quiet', is_flag=True, help='Only warnings and errors')
def run_cmd(token, data_dir, assume_temp, output, skip_clone, includes, include_file,
            gource_args, ffmpeg_args, resolution, framerate, video, parallel,
            failure_policy, external_sort, dump_requests, verbose, quiet):
    """Fetch, merge and render every selected repository.

    Examples:

    \b
        gourcers run -d ~/gource -i '*:*' -i '!is_fork:true'
        gourcers run -d ~/gource -f rules.txt -o everything.mp4
        gourcers run -d ~/gource -f rules.txt --no-video --skip-clone
    """
    config = load_config()
    setup_logging(config, verbose, quiet)

    general = config.get("general", {})
    gource_config = config.get("gource", {})
    ffmpeg_config = config.get("ffmpeg", {})
    sort_config = config.get("sort", {})

    if skip_clone is None:
        skip_clone = bool(general.get("skip_clone", False))
    if video is None:
        video = bool(ffmpeg_config.get("enabled", True))
    if external_sort is None:
        external_sort = bool(sort_config.get("external", False))

    try:
        # everything that can be rejected is rejected before any side effect
        rules = load_rules(config, include_file, includes)
        policy = FailurePolicy.parse(failure_policy or general.get("failure_policy", "isolate"))
    except RuleParseError as e:
        fail(e, verbose)
    except (OSError, ValueError) as e:
        fail(ConfigError(str(e)), verbose)

    if rules.is_empty():
        console.print("[yellow]No selection rules given; nothing will be selected. "
                      "Use -i '*:*' to include every repository.[/yellow]")

    options = PipelineOptions(
        parallel=parallel or int(general.get("max_concurrent_tasks", 8)),
        policy=policy,
        skip_clone=skip_clone,
    )
    render_options = RenderOptions(
        args=shlex.split(gource_args if gource_args is not None else gource_config.get("args", "")),
        resolution=resolution or gource_config.get("resolution") or None,
    )
    encode_options = None
    if video:
        encode_options = EncodeOptions(
            output=Path(output or general.get("output", "./gource.mp4")).expanduser(),
            framerate=framerate or int(ffmpeg_config.get("framerate", 60)),
            args=shlex.split(ffmpeg_args if ffmpeg_args is not None else ffmpeg_config.get("args", "")),
        )

    binaries = configured_binaries(config)
    try:
        check_dependencies(
            required_tools(video=video, external_sort=external_sort, skip_clone=skip_clone),
            binaries,
        )
    except GourcersError as e:
        fail(e, verbose)

    data_dir = data_dir or general.get("data_directory") or None
    service = None

    try:
        with open_workspace(data_dir, assume_temp) as workspace:
            git_timeout = int(config.get("git", {}).get("timeout_seconds", 0))
            gource = GourceClient(binaries["gource"])
            service = PipelineService(
                workspace,
                git_client=GitClient(binaries["git"], timeout=git_timeout or None),
                log_service=LogService(workspace, gource),
                merge_service=MergeService(
                    workspace,
                    external_sort=external_sort,
                    qsv_binary=binaries["qsv"],
                ),
                render_service=RenderService(gource, binaries["ffmpeg"]),
            )

            status(1, "Fetching repos from GitHub API...")
            dump_dir = workspace.root if dump_requests or config.get("github", {}).get("dump_requests") else None
            catalog = github_client(config, token, dump_dir).list_repositories()
            logger.debug(f"fetched {len(catalog)} repos")

            status(2, "Applying selection rules...")
            steps = {"Fetching": 3, "Normalizing": 3, "Combining": 4, "Rendering": 5}
            for message in service.run(catalog, rules, options, render_options, encode_options):
                step = steps.get(message.split(" ", 1)[0])
                if step is not None:
                    status(step, message)
                elif message.startswith("  "):
                    if not quiet:
                        console.print(message)
                else:
                    console.print(f"      {message}")
    except KeyboardInterrupt:
        console.print("\n[red]Interrupted by user[/red]")
        sys.exit(INTERRUPTED)
    except GourcersError as e:
        if service is not None and service.last_summary is not None:
            render_summary(service.last_summary)
        fail(e, verbose)
    except OSError as e:
        fail(e, verbose)

    summary = service.last_summary
    if summary is not None and summary.failed:
        render_summary(summary)
        console.print(f"[yellow]Done, but {summary.failed} repositories were left out.[/yellow]")
        sys.exit(PARTIAL_SUCCESS)

    console.print("      [green]Done![/green]")
    sys.exit(SUCCESS)


@cli.command('rules')
@click.option('-i', '--include', 'includes', multiple=True, help='Selection rule')
@click.option('-f', '--include-file', type=click.Path(dir_okay=False), help='File of selection rules')
@click.option('--list', 'list_repos', is_flag=True, help='Fetch the catalog and show every verdict')
@click.option('-t', '--token', envvar='GITHUB_TOKEN', help='GitHub personal access token')
@click.option('--json', 'json_output', is_flag=True, help='Output verdicts as JSONL')
@click.option('-v', '--verbose', is_flag=True, help='Debug logging')
def rules_cmd(includes, include_file, list_repos, token, json_output, verbose):
    """Validate selection rules and optionally preview their verdicts.

    \b
    Rule syntax, one per line:
        *:*                     include everything
        owner:acme              include repositories owned by acme
        !public:false           exclude private repositories
        !is_fork:true           exclude forks
        !full_name:acme/legacy  exclude one repository
    """
    config = load_config()
    setup_logging(config, verbose, False)

    try:
        rules = load_rules(config, include_file, includes)
    except RuleParseError as e:
        fail(e, verbose)
    except OSError as e:
        fail(ConfigError(str(e)), verbose)

    click.echo(f"{len(rules.includes)} include rules, {len(rules.excludes)} exclude rules")
    for entry in rules.includes:
        click.echo(f"  + {entry}")
    for entry in rules.excludes:
        click.echo(f"  - {entry}")

    if not list_repos:
        return

    try:
        catalog = github_client(config, token, None).list_repositories()
    except GourcersError as e:
        fail(e, verbose)

    decisions = [(repo, rules.evaluate(repo)) for repo in catalog]
    if json_output:
        for repo, verdict in decisions:
            click.echo(json.dumps({
                'repo': repo.full_name,
                'keep': verdict.keep,
                'verdict': type(verdict).__name__.lower(),
                'reason': verdict.describe(),
            }))
    else:
        render_decisions(decisions)


@cli.command('check')
@click.option('--video/--no-video', default=True, help='Also require ffmpeg')
@click.option('--external-sort', is_flag=True, help='Also require qsv')
@click.option('--skip-clone', is_flag=True, help='Do not require git')
def check_cmd(video, external_sort, skip_clone):
    """Check that the external tools gourcers needs are installed."""
    binaries = configured_binaries(load_config())
    statuses = [probe(tool, binaries.get(tool)) for tool in required_tools(video, external_sort, skip_clone)]
    render_dependencies(statuses)

    missing = [s for s in statuses if not s.ok]
    if missing:
        fail(ToolMissingError([s.tool for s in missing], [s.describe() for s in missing if s.found]))


@cli.group('config')
def config_cmd():
    """Inspect gourcers configuration."""
    pass


@config_cmd.command('show')
def config_show():
    """Print the effective configuration as JSON."""
    config = load_config()
    gh = config.get("github", {})
    if gh.get("token"):
        gh["token"] = "***"
    click.echo(json.dumps(config, indent=2))


@config_cmd.command('path')
def config_path():
    """Print the configuration file location."""
    click.echo(str(get_config_path()))


def main():
    cli()


if __name__ == "__main__":
    main()
