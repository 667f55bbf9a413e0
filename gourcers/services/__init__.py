"""
Service layer for gourcers.

Services hold the pipeline's logic and talk to the outside world only
through the infrastructure clients they are given:
- LogService: per-repository log normalization
- MergeService: combine and sort logs
- RenderService: gource rendering and ffmpeg encoding
- PipelineService: stage orchestration and concurrency
"""

from .log_service import LogService, normalize_log
from .merge_service import MergeService, sort_lines
from .render_service import RenderService, RenderOptions, EncodeOptions
from .pipeline_service import PipelineService, PipelineOptions

__all__ = [
    'LogService',
    'normalize_log',
    'MergeService',
    'sort_lines',
    'RenderService',
    'RenderOptions',
    'EncodeOptions',
    'PipelineService',
    'PipelineOptions',
]
