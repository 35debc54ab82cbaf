from slideshow.render.filter_graph import FilterProgram, RenderOptions, SlideInput, build_slideshow_program
from slideshow.render.renderer import CommandResult, FFmpegRenderer, RenderArtifact, run_subprocess

__all__ = [
    "FilterProgram",
    "RenderOptions",
    "SlideInput",
    "build_slideshow_program",
    "CommandResult",
    "FFmpegRenderer",
    "RenderArtifact",
    "run_subprocess",
]
