import pytest

from print_crop_tool.compositor import compose
from print_crop_tool.models import (
    ImageMetadata, QualityTier, SelectionMode, SelectionRect, TargetSpec,
)
from print_crop_tool.quality import classify, estimate, estimate_composite, estimate_from_metadata
from tests.helpers.images import noise_image


@pytest.mark.parametrize("size, dpi, tier", [
    ((2400, 3000), 300, QualityTier.EXCELLENT),
    ((1600, 2000), 200, QualityTier.GOOD),
    ((1200, 1500), 150, QualityTier.ACCEPTABLE),
    ((800, 1000), 100, QualityTier.LOW),
])
def test_estimate_for_eight_by_ten(size, dpi, tier):
    report = estimate(size, (8, 10))
    assert report.dpi == dpi
    assert report.tier == tier
    assert (report.width, report.height) == size


def test_estimate_averages_both_axes():
    # 250 dpi across, 350 dpi down
    report = estimate((2000, 3500), (8, 10))
    assert report.dpi == 300


def test_estimate_without_dimensions_is_unknown():
    report = estimate(None, (8, 10))
    assert report.dpi is None
    assert report.tier == QualityTier.UNKNOWN
    assert report.dpi_label == "Unknown"


def test_estimate_with_empty_dimensions_is_unknown():
    report = estimate((0, 0), (8, 10))
    assert report.dpi is None
    assert report.tier == QualityTier.UNKNOWN


def test_tier_boundaries():
    assert classify(300) == QualityTier.EXCELLENT
    assert classify(299.9) == QualityTier.GOOD
    assert classify(199) == QualityTier.ACCEPTABLE
    assert classify(149) == QualityTier.LOW
    assert classify(0) == QualityTier.UNKNOWN
    assert classify(None) == QualityTier.UNKNOWN


def test_estimate_composite():
    result = compose(noise_image(80, 100), SelectionRect(0, 0, 100, 100),
                     SelectionMode.CROP, TargetSpec(8, 10, 20))
    report = estimate_composite(result)

    assert report.dpi == 20
    assert report.tier == QualityTier.LOW
    assert report.dpi_label == "20"


def test_estimate_composite_without_result():
    assert estimate_composite(None).tier == QualityTier.UNKNOWN


def test_estimate_from_metadata():
    report = estimate_from_metadata(ImageMetadata(4000, 5000, 300, 300))
    assert report.dpi == 300
    assert report.tier == QualityTier.EXCELLENT

    assert estimate_from_metadata(ImageMetadata(4000, 5000, 240, 180)).tier == QualityTier.GOOD
    assert estimate_from_metadata(ImageMetadata(4000, 5000)).tier == QualityTier.UNKNOWN
    assert estimate_from_metadata(None).dpi is None
