"""
FFmpeg renderer for slideshow programs.

The renderer turns a FilterProgram into an MP4 by running ffmpeg as a
subprocess. The command runner is injectable so tests can substitute a fake
and assert on job transitions without a real media tool.
"""

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from slideshow.config import Settings
from slideshow.exceptions import MissingSourceError, RenderFailureError
from slideshow.render.filter_graph import FilterProgram

logger = logging.getLogger(__name__)

# How much of ffmpeg's stderr is kept as the failure diagnostic
DIAGNOSTIC_TAIL_CHARS = 4000


@dataclass
class CommandResult:
    returncode: int
    stdout: str = ""
    stderr: str = ""


CommandRunner = Callable[[list[str], float], Awaitable[CommandResult]]


async def run_subprocess(cmd: list[str], timeout: float) -> CommandResult:
    """Run a command, killing it if it outlives ``timeout`` seconds.

    Raises:
        asyncio.TimeoutError: if the process had to be killed
    """
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise
    return CommandResult(
        returncode=proc.returncode,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )


@dataclass
class RenderArtifact:
    """The finished video file."""

    path: Path
    size: int
    duration_seconds: int


class FFmpegRenderer:
    """Renders FilterPrograms to H.264/MP4 with ffmpeg."""

    def __init__(self, settings: Settings, runner: CommandRunner = run_subprocess):
        self.ffmpeg_path = settings.ffmpeg_path
        self.video_codec = settings.render_video_codec
        self.preset = settings.render_preset
        self.crf = settings.render_crf
        self.timeout = settings.render_timeout_seconds
        self._runner = runner

    def build_command(self, program: FilterProgram, output_path: str | Path) -> list[str]:
        """Build the ffmpeg command for ``program`` without executing it."""
        cmd = [self.ffmpeg_path, "-y"]
        for input_path in program.inputs:
            cmd.extend(["-i", input_path])
        cmd.extend([
            "-filter_complex", program.filter_complex,
            "-map", program.output_label,
            "-c:v", self.video_codec,
            "-pix_fmt", "yuv420p",
            "-r", str(program.fps),
            "-preset", self.preset,
            "-crf", str(self.crf),
            "-t", str(program.duration_seconds),
            "-movflags", "+faststart",
            str(output_path),
        ])
        return cmd

    def _check_sources(self, program: FilterProgram) -> None:
        for input_path in program.inputs:
            if not os.path.isfile(input_path) or not os.access(input_path, os.R_OK):
                raise MissingSourceError(input_path)

    async def render(self, program: FilterProgram, output_path: str | Path) -> RenderArtifact:
        """Render ``program`` to ``output_path``.

        Raises:
            MissingSourceError: if an input image is not readable
            RenderFailureError: on non-zero exit, timeout, or missing output
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        self._check_sources(program)

        cmd = self.build_command(program, output_path)
        logger.info(
            f"[RENDER] ffmpeg start: {len(program.inputs)} images, "
            f"{program.duration_seconds}s -> {output_path}"
        )
        logger.debug(f"[RENDER] filter_complex: {program.filter_complex}")

        try:
            result = await self._runner(cmd, self.timeout)
        except asyncio.TimeoutError:
            raise RenderFailureError(
                f"ffmpeg timed out after {self.timeout}s",
                diagnostic=f"timeout after {self.timeout}s",
            )

        if result.returncode != 0:
            raise RenderFailureError(
                f"ffmpeg exited with code {result.returncode}",
                diagnostic=result.stderr[-DIAGNOSTIC_TAIL_CHARS:],
            )

        if not output_path.is_file() or output_path.stat().st_size == 0:
            raise RenderFailureError(
                "ffmpeg produced no output file",
                diagnostic=result.stderr[-DIAGNOSTIC_TAIL_CHARS:],
            )

        size = output_path.stat().st_size
        logger.info(f"[RENDER] ffmpeg done: {output_path} ({size} bytes)")
        return RenderArtifact(
            path=output_path,
            size=size,
            duration_seconds=program.duration_seconds,
        )
