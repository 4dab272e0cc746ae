"""
Ratio-constrained crop region.

Keeps a crop selection (percent of the image) locked to the print aspect
ratio and at least the minimum print size.  All corrections are computed
in native pixels: width drives height, the size is raised to the minimum
and capped at the image, and finally the origin is clamped so the whole
rectangle stays inside the image.  Falling short of the minimum only
produces a ``SizeAdvisory``; it never blocks an edit.

This module is Qt-free; the editor widget calls ``propose_change`` on every
drag tick.
"""

import logging
from typing import Optional

from print_crop_tool.config import DEFAULT_CROP_FRACTION, RATIO_H, RATIO_W
from print_crop_tool.models import (
    MinimumSize, SelectionRect, SizeAdvisory,
    center_origin, fit_ratio, minimum_size_for,
)

logger = logging.getLogger(__name__)

# Slack for float comparisons against the minimum, in native pixels
_PX_EPSILON = 1e-6


def _constrain_size(w_px: float, aspect: float, img_w: int, img_h: int,
                    minimum: MinimumSize) -> tuple[float, float]:
    """Apply ratio, minimum and image ceiling to a native width."""
    w_px = max(w_px, 0.0)
    h_px = w_px / aspect

    if w_px < minimum.width or h_px < minimum.height:
        w_px = max(w_px, minimum.width, minimum.height * aspect)
        h_px = w_px / aspect

    # The image itself is the ceiling, even when it is below the minimum
    if w_px > img_w or h_px > img_h:
        w_px, h_px = fit_ratio(min(w_px, img_w), min(h_px, img_h), aspect)

    return w_px, h_px


def _advisory(w_px: float, h_px: float, img_w: int, img_h: int,
              minimum: MinimumSize) -> Optional[SizeAdvisory]:
    if img_w < minimum.width or img_h < minimum.height:
        return SizeAdvisory(img_w, img_h, minimum, source_too_small=True)
    if w_px < minimum.width - _PX_EPSILON or h_px < minimum.height - _PX_EPSILON:
        return SizeAdvisory(int(round(w_px)), int(round(h_px)), minimum)
    return None


def _to_selection(x_px: float, y_px: float, w_px: float, h_px: float,
                  img_w: int, img_h: int) -> SelectionRect:
    sel = SelectionRect.from_native(x_px, y_px, w_px, h_px, img_w, img_h)
    # Guard against float overshoot past the far edge
    return SelectionRect(
        x=max(0.0, min(sel.x, 100.0 - sel.width)),
        y=max(0.0, min(sel.y, 100.0 - sel.height)),
        width=min(sel.width, 100.0),
        height=min(sel.height, 100.0),
    )


def constrain_selection(
    candidate: SelectionRect,
    img_w: int,
    img_h: int,
    aspect: float,
    minimum: MinimumSize,
) -> tuple[SelectionRect, Optional[SizeAdvisory]]:
    """
    Correct a user-proposed crop.

    Returns the accepted selection and an advisory when the result is below
    the minimum print size (or the source image is).
    """
    w_px, _ = candidate.native_size(img_w, img_h)
    w_px, h_px = _constrain_size(w_px, aspect, img_w, img_h, minimum)

    # Clamp origin so the full rectangle stays inside the image (no resizing)
    x_px = max(0.0, min(candidate.x / 100.0 * img_w, img_w - w_px))
    y_px = max(0.0, min(candidate.y / 100.0 * img_h, img_h - h_px))

    accepted = _to_selection(x_px, y_px, w_px, h_px, img_w, img_h)
    return accepted, _advisory(w_px, h_px, img_w, img_h, minimum)


def initial_selection(
    img_w: int,
    img_h: int,
    aspect: float,
    minimum: MinimumSize,
    fraction: float = DEFAULT_CROP_FRACTION,
) -> tuple[SelectionRect, Optional[SizeAdvisory]]:
    """Centered crop at ``fraction`` of the largest ratio rectangle, minimum enforced."""
    max_w, _ = fit_ratio(img_w, img_h, aspect)
    w_px, h_px = _constrain_size(max_w * fraction, aspect, img_w, img_h, minimum)
    x_px, y_px = center_origin(img_w, img_h, w_px, h_px)
    return (
        _to_selection(x_px, y_px, w_px, h_px, img_w, img_h),
        _advisory(w_px, h_px, img_w, img_h, minimum),
    )


class CropRegion:
    """Crop selection state for one image."""

    def __init__(self, img_w: int, img_h: int, ratio_w: int = RATIO_W, ratio_h: int = RATIO_H,
                 minimum: Optional[MinimumSize] = None):
        if img_w <= 0 or img_h <= 0:
            raise ValueError(f"Image dimensions must be positive, got {img_w}×{img_h}")
        self.img_w = img_w
        self.img_h = img_h
        self.aspect = ratio_w / ratio_h
        self.minimum = minimum or minimum_size_for(ratio_w, ratio_h)
        self.selection: Optional[SelectionRect] = None
        self.completed_selection: Optional[SelectionRect] = None
        self.advisory: Optional[SizeAdvisory] = None

    @property
    def source_too_small(self) -> bool:
        return self.img_w < self.minimum.width or self.img_h < self.minimum.height

    def initialize(self) -> SelectionRect:
        self.selection, self.advisory = initial_selection(
            self.img_w, self.img_h, self.aspect, self.minimum,
        )
        self.completed_selection = None
        if self.advisory is not None:
            logger.info("Size advisory at load: %s", self.advisory.message)
        return self.selection

    def propose_change(self, candidate: SelectionRect) -> SelectionRect:
        """Accept a resize/move candidate, returning the corrected selection."""
        self.selection, self.advisory = constrain_selection(
            candidate, self.img_w, self.img_h, self.aspect, self.minimum,
        )
        return self.selection

    def propose_resize(self, candidate: SelectionRect, anchor_right: bool = False,
                       anchor_bottom: bool = False) -> SelectionRect:
        """
        Accept a corner-drag candidate whose opposite corner must stay fixed.

        ``anchor_right``/``anchor_bottom`` name the candidate edges that hold
        still.  After size correction the origin is shifted so those edges
        stay where the candidate put them (as far as the image allows).
        """
        sel = self.propose_change(candidate)
        if not (anchor_right or anchor_bottom):
            return sel
        x = candidate.x + candidate.width - sel.width if anchor_right else sel.x
        y = candidate.y + candidate.height - sel.height if anchor_bottom else sel.y
        return self.propose_change(SelectionRect(x, y, sel.width, sel.height))

    def complete(self) -> Optional[SelectionRect]:
        """Finalize the current selection (end of a drag)."""
        self.completed_selection = self.selection
        return self.completed_selection

    def nudge(self, dx_px: float, dy_px: float) -> Optional[SelectionRect]:
        """Move the selection by a native-pixel offset."""
        if self.selection is None:
            return None
        sel = self.selection
        return self.propose_change(SelectionRect(
            x=sel.x + dx_px / self.img_w * 100.0,
            y=sel.y + dy_px / self.img_h * 100.0,
            width=sel.width,
            height=sel.height,
        ))

    def crop_box(self) -> Optional[tuple[float, float, float, float]]:
        """Current selection as a native pixel box."""
        if self.selection is None:
            return None
        return self.selection.to_native_box(self.img_w, self.img_h)
