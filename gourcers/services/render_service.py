"""
Render service for gourcers.

Two modes:
- render only: gource opens its window and plays the sorted log
- render + encode: gource writes PPM frames to stdout, which are streamed
  into ffmpeg's stdin and encoded to a video file

    gource <args> -1920x1080 -o - sorted.txt | ffmpeg -y -r 60 -f image2pipe -c:v ppm -i - <args> out.mp4
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from ..infra.errors import EncodeError, GourcersError, ProcessFailedError, RenderError, ToolMissingError
from ..infra.gource_client import GourceClient
from ..infra.process import ManagedProcess, ProcessPipeline

logger = logging.getLogger(__name__)

RENDERER = "gource"
ENCODER = "ffmpeg"


@dataclass
class RenderOptions:
    """How gource renders the combined log."""
    args: List[str] = field(default_factory=list)
    resolution: Optional[str] = "1920x1080"


@dataclass
class EncodeOptions:
    """How ffmpeg encodes gource's frame stream."""
    output: Path = Path("gource.mp4")
    framerate: int = 60
    args: List[str] = field(default_factory=list)


class RenderService:
    """
    Runs gource, optionally piping it into ffmpeg.

    Example:
        service = RenderService()
        service.render("/data/sorted.txt", RenderOptions(), EncodeOptions(output=Path("out.mp4")))
    """

    def __init__(self, gource: Optional[GourceClient] = None, ffmpeg_binary: str = "ffmpeg"):
        self.gource = gource or GourceClient()
        self.ffmpeg_binary = ffmpeg_binary

    def encode_command(self, options: EncodeOptions) -> List[str]:
        """ffmpeg command reading a PPM stream from stdin."""
        return [
            self.ffmpeg_binary,
            "-y",                          # overwrite existing file
            "-r", str(options.framerate),  # input framerate
            "-f", "image2pipe",
            "-c:v", "ppm",
            "-i", "-",
            *options.args,
            str(options.output),
        ]

    def render(
        self,
        sorted_log: Union[str, Path],
        render_options: RenderOptions,
        encode_options: Optional[EncodeOptions] = None
    ) -> None:
        """
        Render ``sorted_log``; encode it too when ``encode_options`` is given.

        Raises:
            ToolMissingError: gource or ffmpeg could not be started
            RenderError: gource failed (stderr included)
            EncodeError: ffmpeg failed (stderr included)
        """
        if encode_options is None:
            self._render_only(sorted_log, render_options)
        else:
            self._render_and_encode(sorted_log, render_options, encode_options)

    def _render_only(self, sorted_log, options: RenderOptions) -> None:
        cmd = self.gource.render_command(sorted_log, options.args, options.resolution)
        logger.debug("executing gource")

        # stdout stays attached to the terminal; stderr is kept for the error
        proc = ManagedProcess(cmd, name=RENDERER)
        code = proc.wait()
        if code != 0:
            raise RenderError(f"failed to render: {ProcessFailedError(RENDERER, code, proc.stderr_text)}")

    def _render_and_encode(self, sorted_log, options: RenderOptions, encode: EncodeOptions) -> None:
        Path(encode.output).parent.mkdir(parents=True, exist_ok=True)

        pipeline = ProcessPipeline(
            self.gource.render_command(sorted_log, options.args, options.resolution, to_stdout=True),
            self.encode_command(encode),
            producer_name=RENDERER,
            consumer_name=ENCODER,
        )

        logger.debug("spinning up ffmpeg and gource")
        try:
            pipeline.run()
        except ToolMissingError:
            raise
        except ProcessFailedError as e:
            if e.tool == RENDERER:
                raise RenderError(f"failed to generate video: {e}") from e
            raise EncodeError(f"failed to generate video: {e}") from e
        except GourcersError as e:
            raise EncodeError(f"failed to generate video: {e}") from e

        logger.info(f"wrote {encode.output} ({pipeline.bytes_copied} bytes of frames encoded)")
