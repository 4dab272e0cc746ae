"""
Editing session: the single current asset, its selection, and its export.

Loads complete asynchronously, so every load is tagged with a token from
``begin_load()``.  Only the newest token may install its asset; older
completions are dropped no matter when they arrive.  Qt-free.
"""

import logging
from typing import Optional

from print_crop_tool.compositor import compose
from print_crop_tool.config import PLACEMENT_FRAME_WIDTH, RATIO_H, RATIO_W
from print_crop_tool.crop_region import CropRegion
from print_crop_tool.image_io import decode_image
from print_crop_tool.models import (
    CompositeResult, ImageAsset, QualityReport, SelectionMode,
    SelectionNotReadyError, SelectionRect, SizeAdvisory, TargetSpec,
)
from print_crop_tool.placement import PlacementRegion
from print_crop_tool.quality import estimate_composite, estimate_from_metadata

logger = logging.getLogger(__name__)


class EditSession:
    """Holds the current asset, selection mode, regions and latest composite."""

    def __init__(self, ratio_w: int = RATIO_W, ratio_h: int = RATIO_H,
                 frame_w: float = PLACEMENT_FRAME_WIDTH):
        self.ratio_w = ratio_w
        self.ratio_h = ratio_h
        self.frame_w = frame_w
        self.mode = SelectionMode.CROP
        self.asset: Optional[ImageAsset] = None
        self.crop: Optional[CropRegion] = None
        self.placement: Optional[PlacementRegion] = None
        self.result: Optional[CompositeResult] = None
        self._load_token = 0

    # --- Asset lifecycle ---

    def begin_load(self) -> int:
        """Start a new load; any load started earlier becomes stale."""
        self._load_token += 1
        return self._load_token

    def is_current(self, token: int) -> bool:
        return token == self._load_token

    def finish_load(self, token: int, asset: ImageAsset) -> bool:
        """Install ``asset`` if ``token`` is the newest load. Returns False if discarded."""
        if not self.is_current(token):
            logger.warning(
                "Discarding stale load of %s (token %d, current %d)",
                asset.name or asset.asset_id, token, self._load_token,
            )
            return False

        self.asset = asset
        self.result = None
        w, h = asset.native_width, asset.native_height
        self.crop = CropRegion(w, h, self.ratio_w, self.ratio_h)
        self.crop.initialize()
        self.placement = PlacementRegion(w, h, self.frame_w, ratio_w=self.ratio_w, ratio_h=self.ratio_h)
        self.placement.initialize()
        return True

    def clear(self):
        """Drop the current asset (no asset present)."""
        self._load_token += 1
        self.asset = None
        self.crop = None
        self.placement = None
        self.result = None

    # --- Selection ---

    @property
    def region(self):
        return self.crop if self.mode == SelectionMode.CROP else self.placement

    @property
    def selection(self) -> Optional[SelectionRect]:
        region = self.region
        return region.selection if region else None

    @property
    def completed_selection(self) -> Optional[SelectionRect]:
        region = self.region
        return region.completed_selection if region else None

    @property
    def advisory(self) -> Optional[SizeAdvisory]:
        return self.crop.advisory if self.crop else None

    def set_mode(self, mode: SelectionMode):
        self.mode = SelectionMode(mode)

    def propose(self, candidate: SelectionRect) -> Optional[SelectionRect]:
        region = self.region
        if region is None:
            return None
        return region.propose_change(candidate)

    def complete_selection(self) -> Optional[SelectionRect]:
        region = self.region
        return region.complete() if region else None

    # --- Export ---

    def export(self, target: TargetSpec) -> CompositeResult:
        """Render the completed selection; replaces any earlier result."""
        if self.asset is None:
            raise SelectionNotReadyError("No image loaded")
        if self.completed_selection is None:
            raise SelectionNotReadyError("No finalized selection — complete a crop first")
        source = decode_image(self.asset.data)
        self.result = compose(source, self.completed_selection, self.mode, target)
        return self.result

    def quality_report(self) -> QualityReport:
        return estimate_composite(self.result)

    def source_quality(self) -> QualityReport:
        return estimate_from_metadata(self.asset.metadata if self.asset else None)
