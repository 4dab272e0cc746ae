"""
Placement region: the frame stays fixed and the image layer moves inside it.

The selection is the position and size of the image layer in percent of the
frame.  The layer keeps the image's own aspect ratio (width drives height),
may hang off the frame edges, but always keeps part of itself inside the
frame.  Its size is bounded on both sides.  Qt-free.
"""

from typing import Optional

from print_crop_tool.config import (
    PLACEMENT_DEFAULT_SCALE, PLACEMENT_MAX_SIZE_PCT, PLACEMENT_MIN_SIZE_PCT,
    PLACEMENT_MIN_VISIBLE_PCT, RATIO_H, RATIO_W,
)
from print_crop_tool.models import SelectionRect


class PlacementRegion:
    """Image-layer placement inside a fixed print frame."""

    def __init__(self, img_w: int, img_h: int, frame_w: float, frame_h: Optional[float] = None,
                 ratio_w: int = RATIO_W, ratio_h: int = RATIO_H):
        if img_w <= 0 or img_h <= 0:
            raise ValueError(f"Image dimensions must be positive, got {img_w}×{img_h}")
        if frame_w <= 0:
            raise ValueError(f"Frame width must be positive, got {frame_w}")
        self.img_w = img_w
        self.img_h = img_h
        self.frame_w = float(frame_w)
        self.frame_h = float(frame_h) if frame_h else self.frame_w * ratio_h / ratio_w
        self.selection: Optional[SelectionRect] = None
        self.completed_selection: Optional[SelectionRect] = None

    def _height_for(self, width_pct: float) -> float:
        """Layer height (percent of frame) that keeps the image aspect ratio."""
        width_px = width_pct / 100.0 * self.frame_w
        height_px = width_px * self.img_h / self.img_w
        return height_px / self.frame_h * 100.0

    def initialize(self) -> SelectionRect:
        """Image at a fraction of native size, anchored at the frame origin."""
        width_pct = self.img_w * PLACEMENT_DEFAULT_SCALE / self.frame_w * 100.0
        self.propose_change(SelectionRect(0.0, 0.0, width_pct, 0.0))
        self.completed_selection = None
        return self.selection

    def propose_change(self, candidate: SelectionRect) -> SelectionRect:
        """Accept a drag/resize candidate for the image layer."""
        width = min(max(candidate.width, PLACEMENT_MIN_SIZE_PCT), PLACEMENT_MAX_SIZE_PCT)
        height = self._height_for(width)
        if height > PLACEMENT_MAX_SIZE_PCT:
            width *= PLACEMENT_MAX_SIZE_PCT / height
            height = PLACEMENT_MAX_SIZE_PCT

        visible_w = min(PLACEMENT_MIN_VISIBLE_PCT, width)
        visible_h = min(PLACEMENT_MIN_VISIBLE_PCT, height)
        x = max(visible_w - width, min(candidate.x, 100.0 - visible_w))
        y = max(visible_h - height, min(candidate.y, 100.0 - visible_h))

        self.selection = SelectionRect(x, y, width, height)
        return self.selection

    def complete(self) -> Optional[SelectionRect]:
        self.completed_selection = self.selection
        return self.completed_selection

    def set_frame_size(self, frame_w: float, frame_h: float):
        """Re-express the layer for a resized on-screen frame (percentages are kept)."""
        self.frame_w = float(frame_w)
        self.frame_h = float(frame_h)
        if self.selection is not None:
            self.propose_change(self.selection)

    def covered_fraction(self) -> float:
        """Share of the frame area covered by the image layer (0-1)."""
        if self.selection is None:
            return 0.0
        sel = self.selection
        overlap_w = max(0.0, min(sel.x + sel.width, 100.0) - max(sel.x, 0.0))
        overlap_h = max(0.0, min(sel.y + sel.height, 100.0) - max(sel.y, 0.0))
        return overlap_w * overlap_h / 10_000.0
