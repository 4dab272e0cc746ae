"""
Compositor: render a selection onto a print-sized raster (Qt-free).

Crop mode maps the selection into native source pixels and resamples that
region to fill the whole output.  Placement mode resamples the entire
source into the selection's share of the output frame.  Both start from a
buffer filled with ``BACKGROUND_COLOR``.
"""

import logging
from typing import Optional, Union

from PIL import Image

from print_crop_tool.config import BACKGROUND_COLOR
from print_crop_tool.image_io import decode_image
from print_crop_tool.models import (
    CompositeResult, SelectionMode, SelectionNotReadyError, SelectionRect, TargetSpec,
)

logger = logging.getLogger(__name__)


def display_to_selection(rect: tuple[float, float, float, float],
                         displayed_w: float, displayed_h: float) -> SelectionRect:
    """Map an on-screen ``(x, y, w, h)`` rectangle to percent of the displayed image."""
    x, y, w, h = rect
    return SelectionRect(
        x=x / displayed_w * 100.0,
        y=y / displayed_h * 100.0,
        width=w / displayed_w * 100.0,
        height=h / displayed_h * 100.0,
    )


def selection_to_native_box(selection: SelectionRect, native_w: int, native_h: int,
                            displayed_w: Optional[float] = None,
                            displayed_h: Optional[float] = None) -> tuple[float, float, float, float]:
    """
    Map a crop selection into a native pixel box ``(left, top, right, bottom)``.

    The selection is first placed on the displayed image and then scaled by
    ``native / displayed`` per axis.  Without a displayed size the image is
    taken at native size (scale 1).
    """
    displayed_w = displayed_w or native_w
    displayed_h = displayed_h or native_h
    scale_x = native_w / displayed_w
    scale_y = native_h / displayed_h
    left = selection.x / 100.0 * displayed_w * scale_x
    top = selection.y / 100.0 * displayed_h * scale_y
    right = left + selection.width / 100.0 * displayed_w * scale_x
    bottom = top + selection.height / 100.0 * displayed_h * scale_y
    return (
        max(0.0, left), max(0.0, top),
        min(float(native_w), right), min(float(native_h), bottom),
    )


def _is_integral(box: tuple[float, ...]) -> bool:
    return all(abs(v - round(v)) < 1e-9 for v in box)


def _render_crop(source: Image.Image, selection: SelectionRect,
                 out_w: int, out_h: int) -> Image.Image:
    box = selection_to_native_box(selection, source.width, source.height)
    left, top, right, bottom = box
    if right - left <= 0 or bottom - top <= 0:
        raise ValueError(f"Empty crop region {box}")

    if _is_integral(box) and (round(right - left), round(bottom - top)) == (out_w, out_h):
        # 1:1, copy pixels without resampling
        int_box = tuple(int(round(v)) for v in box)
        logger.debug("Crop box %s matches output size — copying without resampling", int_box)
        return source.crop(int_box)

    return source.resize((out_w, out_h), Image.Resampling.LANCZOS, box=box)


def _placement_rect(selection: SelectionRect, out_w: int, out_h: int) -> tuple[int, int, int, int]:
    """Destination ``(x, y, w, h)`` of the image layer in output pixels."""
    x = int(round(selection.x / 100.0 * out_w))
    y = int(round(selection.y / 100.0 * out_h))
    w = max(1, int(round(selection.width / 100.0 * out_w)))
    h = max(1, int(round(selection.height / 100.0 * out_h)))
    return x, y, w, h


def _render_placement(source: Image.Image, selection: SelectionRect,
                      out_w: int, out_h: int) -> Optional[tuple[Image.Image, tuple[int, int]]]:
    """
    Resample only the part of the image layer that lands inside the output.

    Returns the visible layer and its paste origin, or None when the layer
    misses the output entirely.
    """
    x, y, w, h = _placement_rect(selection, out_w, out_h)
    left, top = max(x, 0), max(y, 0)
    right, bottom = min(x + w, out_w), min(y + h, out_h)
    if right <= left or bottom <= top:
        return None

    scale_x = source.width / w
    scale_y = source.height / h
    box = (
        (left - x) * scale_x, (top - y) * scale_y,
        (right - x) * scale_x, (bottom - y) * scale_y,
    )
    layer = source.resize((right - left, bottom - top), Image.Resampling.LANCZOS, box=box)
    return layer, (left, top)


def _working_mode(source: Image.Image) -> Image.Image:
    """RGBA for sources with transparency, RGB otherwise."""
    has_alpha = source.mode in ("RGBA", "LA", "PA") or "transparency" in source.info
    mode = "RGBA" if has_alpha else "RGB"
    return source if source.mode == mode else source.convert(mode)


def _flatten_onto(canvas: Image.Image, layer: Image.Image, origin: tuple[int, int]):
    """Paste ``layer`` onto ``canvas`` honouring transparency."""
    if layer.mode == "RGBA":
        canvas.paste(layer, origin, layer)
    else:
        canvas.paste(layer, origin)


def compose(
    source: Union[Image.Image, bytes, None],
    selection: Optional[SelectionRect],
    mode: SelectionMode,
    target: TargetSpec,
) -> CompositeResult:
    """
    Render ``selection`` of ``source`` into a raster of ``target.output_size()``.

    Raises ``SelectionNotReadyError`` when there is no source or no finalized
    selection, and ``UnsupportedImageError`` when the source bytes do not
    decode.  Nothing is rendered in either case.
    """
    if source is None:
        raise SelectionNotReadyError("No source image loaded")
    if selection is None:
        raise SelectionNotReadyError("No finalized selection — complete a crop first")
    if isinstance(source, (bytes, bytearray)):
        source = decode_image(bytes(source))
    source = _working_mode(source)

    out_w, out_h = target.output_size()
    canvas = Image.new("RGB", (out_w, out_h), BACKGROUND_COLOR)

    if mode == SelectionMode.CROP:
        _flatten_onto(canvas, _render_crop(source, selection, out_w, out_h), (0, 0))
    else:
        visible = _render_placement(source, selection, out_w, out_h)
        if visible is not None:
            _flatten_onto(canvas, *visible)

    logger.info(
        "Composed %s %d×%d for %s\" at %g DPI",
        mode.value, out_w, out_h, target.label, target.dpi,
    )
    return CompositeResult(image=canvas, target=target, mode=mode)
