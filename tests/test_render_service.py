"""Tests for rendering and encoding."""

from pathlib import Path
from unittest.mock import patch

import pytest

from gourcers.infra.errors import (
    EncodeError,
    GourcersError,
    ProcessFailedError,
    RenderError,
    ToolMissingError,
)
from gourcers.infra.gource_client import GourceClient
from gourcers.services.render_service import EncodeOptions, RenderOptions, RenderService


class TestCommands:

    def test_render_command_window(self):
        cmd = GourceClient().render_command("sorted.txt", ["--hide", "root"], "1280x720")
        assert cmd == ["gource", "--hide", "root", "-1280x720", "sorted.txt"]

    def test_render_command_stdout(self):
        cmd = GourceClient("/opt/gource").render_command("sorted.txt", [], None, to_stdout=True)
        assert cmd == ["/opt/gource", "-o", "-", "sorted.txt"]

    def test_encode_command(self):
        service = RenderService(ffmpeg_binary="ffmpeg")
        cmd = service.encode_command(EncodeOptions(output=Path("out.mp4"), framerate=30,
                                                   args=["-c:v", "libx264"]))
        assert cmd == [
            "ffmpeg", "-y", "-r", "30", "-f", "image2pipe", "-c:v", "ppm", "-i", "-",
            "-c:v", "libx264", "out.mp4",
        ]


class TestRenderAndEncode:
    """Tests for the gource -> ffmpeg pipeline."""

    def setup_method(self):
        self.service = RenderService()
        self.render_options = RenderOptions(args=["--key"], resolution="1920x1080")

    @patch('gourcers.services.render_service.ProcessPipeline')
    def test_wires_gource_into_ffmpeg(self, mock_pipeline, tmp_path):
        output = tmp_path / "videos" / "out.mp4"
        mock_pipeline.return_value.bytes_copied = 0

        self.service.render("sorted.txt", self.render_options, EncodeOptions(output=output))

        producer, consumer = mock_pipeline.call_args[0]
        assert producer == ["gource", "--key", "-1920x1080", "-o", "-", "sorted.txt"]
        assert consumer[0] == "ffmpeg"
        assert consumer[-1] == str(output)
        assert mock_pipeline.call_args[1]['producer_name'] == "gource"
        assert mock_pipeline.call_args[1]['consumer_name'] == "ffmpeg"
        assert output.parent.is_dir()

    @patch('gourcers.services.render_service.ProcessPipeline')
    def test_gource_failure_is_render_error(self, mock_pipeline, tmp_path):
        mock_pipeline.return_value.run.side_effect = ProcessFailedError("gource", 1, "could not parse log")

        with pytest.raises(RenderError, match="could not parse log"):
            self.service.render("sorted.txt", self.render_options, EncodeOptions(output=tmp_path / "o.mp4"))

    @patch('gourcers.services.render_service.ProcessPipeline')
    def test_ffmpeg_failure_is_encode_error(self, mock_pipeline, tmp_path):
        mock_pipeline.return_value.run.side_effect = ProcessFailedError("ffmpeg", 1, "Unknown encoder")

        with pytest.raises(EncodeError, match="Unknown encoder"):
            self.service.render("sorted.txt", self.render_options, EncodeOptions(output=tmp_path / "o.mp4"))

    @patch('gourcers.services.render_service.ProcessPipeline')
    def test_broken_stream_is_encode_error(self, mock_pipeline, tmp_path):
        mock_pipeline.return_value.run.side_effect = GourcersError("broken pipe")

        with pytest.raises(EncodeError):
            self.service.render("sorted.txt", self.render_options, EncodeOptions(output=tmp_path / "o.mp4"))

    @patch('gourcers.services.render_service.ProcessPipeline')
    def test_missing_tool_propagates(self, mock_pipeline, tmp_path):
        mock_pipeline.return_value.run.side_effect = ToolMissingError(["ffmpeg"])

        with pytest.raises(ToolMissingError):
            self.service.render("sorted.txt", self.render_options, EncodeOptions(output=tmp_path / "o.mp4"))


class TestRenderOnly:

    @patch('gourcers.services.render_service.ManagedProcess')
    def test_success(self, mock_proc):
        mock_proc.return_value.wait.return_value = 0

        RenderService().render("sorted.txt", RenderOptions(args=[], resolution=None))

        assert mock_proc.call_args[0][0] == ["gource", "sorted.txt"]

    @patch('gourcers.services.render_service.ManagedProcess')
    def test_failure_includes_stderr(self, mock_proc):
        mock_proc.return_value.wait.return_value = 1
        mock_proc.return_value.stderr_text = "no display"

        with pytest.raises(RenderError, match="no display"):
            RenderService().render("sorted.txt", RenderOptions())
