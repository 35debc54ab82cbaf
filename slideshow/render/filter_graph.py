"""
Filter graph builder for album slideshows.

Turns an ordered list of images into an FFmpeg filter_complex program:
every image is normalised to the output frame (rotate, scale to fit, pad,
center, square pixels) and held for a fixed duration, then all segments are
concatenated in order into one video stream.

The builder is pure: the same images and options always produce the same
program, so it can be tested without ffmpeg.
"""

from dataclasses import dataclass

from slideshow.exceptions import EmptyAlbumError, ValidationError

OUTPUT_LABEL = "[outv]"

# Clockwise rotation in degrees -> filters applied before scaling
_ROTATION_FILTERS: dict[int, str] = {
    0: "",
    90: "transpose=1",
    180: "hflip,vflip",
    270: "transpose=2",
}


@dataclass(frozen=True)
class RenderOptions:
    """Fixed slideshow output format."""

    width: int = 1280
    height: int = 720
    fps: int = 30
    image_duration_seconds: int = 2

    @property
    def frames_per_image(self) -> int:
        return self.fps * self.image_duration_seconds


@dataclass(frozen=True)
class SlideInput:
    """One image to show, with a readable local path."""

    path: str
    rotation: int = 0


@dataclass(frozen=True)
class FilterProgram:
    """A complete composition program for the renderer."""

    inputs: tuple[str, ...]
    filter_complex: str
    duration_seconds: int
    width: int
    height: int
    fps: int
    output_label: str = OUTPUT_LABEL


def _normalize_rotation(rotation: int) -> int:
    normalized = rotation % 360
    if normalized not in _ROTATION_FILTERS:
        raise ValidationError(f"Unsupported rotation: {rotation} (must be a multiple of 90)")
    return normalized


def build_segment_filter(index: int, rotation: int, options: RenderOptions) -> str:
    """Build the normalisation chain for input ``index``, labelled [img<index>]."""
    w, h = options.width, options.height
    steps = []
    rotate = _ROTATION_FILTERS[_normalize_rotation(rotation)]
    if rotate:
        steps.append(rotate)
    steps.extend([
        f"scale={w}:{h}:force_original_aspect_ratio=decrease",
        f"pad={w}:{h}:(ow-iw)/2:(oh-ih)/2",
        "setsar=1",
        # A still image is one frame; repeat it for the whole display duration
        f"loop=loop={options.frames_per_image - 1}:size=1:start=0",
        f"setpts=N/{options.fps}/TB",
    ])
    return f"[{index}:v]{','.join(steps)}[img{index}]"


def build_slideshow_program(
    images: list[SlideInput],
    options: RenderOptions | None = None,
) -> FilterProgram:
    """Build the slideshow program for ``images`` in the given order.

    Raises:
        EmptyAlbumError: if ``images`` is empty (a zero-segment concat is undefined)
    """
    options = options or RenderOptions()
    if not images:
        raise EmptyAlbumError()

    segments = [
        build_segment_filter(index, image.rotation, options)
        for index, image in enumerate(images)
    ]
    labels = tuple(f"[img{index}]" for index in range(len(images)))
    concat = f"{''.join(labels)}concat=n={len(images)}:v=1:a=0{OUTPUT_LABEL}"

    return FilterProgram(
        inputs=tuple(image.path for image in images),
        filter_complex=";".join([*segments, concat]),
        duration_seconds=len(images) * options.image_duration_seconds,
        width=options.width,
        height=options.height,
        fps=options.fps,
    )
