"""
gourcers - Render the history of many repositories as one gource timeline.

gourcers lists the repositories you can see on GitHub, keeps the ones your
selection rules include, clones or pulls them, tags every event of their
history with the repository it came from, merges everything into one
chronological log and feeds that to gource (optionally piped into ffmpeg).

Quick Start:
    from gourcers import RuleSet, PipelineService, PipelineOptions, Workspace
    from gourcers.services import RenderOptions, EncodeOptions

    rules = RuleSet.parse("*:*\\n!is_fork:true")
    service = PipelineService(Workspace("~/gource-data"))

    for message in service.run(catalog, rules, PipelineOptions(),
                               RenderOptions(), EncodeOptions()):
        print(message)

Domain Objects:
    Repository - A repository descriptor from the catalog
    RuleSet - Parsed selection rules; evaluate() returns a Verdict
    PipelineSummary - Per-repository task outcomes

Services:
    PipelineService - Stage orchestration and concurrency
    LogService - Log normalization
    MergeService - Combine and sort
    RenderService - gource / ffmpeg
"""

__version__ = "0.2.0"

# Domain objects
from .domain import (
    Repository,
    RuleSet,
    RuleEntry,
    RuleParseError,
    Selector,
    Include,
    Exclude,
    Default,
    FailurePolicy,
    PipelineSummary,
)

# Services
from .services import (
    PipelineService,
    PipelineOptions,
    LogService,
    MergeService,
    RenderService,
)

from .workspace import Workspace

# Configuration
from .config import load_config

__all__ = [
    "__version__",
    "Repository",
    "RuleSet",
    "RuleEntry",
    "RuleParseError",
    "Selector",
    "Include",
    "Exclude",
    "Default",
    "FailurePolicy",
    "PipelineSummary",
    "PipelineService",
    "PipelineOptions",
    "LogService",
    "MergeService",
    "RenderService",
    "Workspace",
    "load_config",
]
