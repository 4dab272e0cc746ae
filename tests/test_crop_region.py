import itertools

import pytest

from print_crop_tool.crop_region import CropRegion, constrain_selection
from print_crop_tool.models import SelectionRect, minimum_size_for

ASPECT = 8 / 10


def _assert_valid(sel: SelectionRect, img_w: int, img_h: int):
    w, h = sel.native_size(img_w, img_h)
    assert w / h == pytest.approx(ASPECT, abs=1e-3)
    assert sel.x >= 0 and sel.y >= 0
    assert sel.x + sel.width <= 100 + 1e-9
    assert sel.y + sel.height <= 100 + 1e-9


def test_minimum_size_tied_to_ratio():
    m = minimum_size_for(8, 10)
    assert (m.width, m.height) == (800, 1000)


def test_initialize_is_centered_at_eighty_percent():
    region = CropRegion(4000, 5000)
    sel = region.initialize()

    assert sel.width == pytest.approx(80.0)
    assert sel.height == pytest.approx(80.0)
    assert sel.x == pytest.approx(10.0)
    assert sel.y == pytest.approx(10.0)
    assert region.advisory is None
    assert region.completed_selection is None


def test_initialize_landscape_image_limited_by_height():
    region = CropRegion(6000, 2000)
    sel = region.initialize()
    w, h = sel.native_size(6000, 2000)

    assert h == pytest.approx(1600)
    assert w == pytest.approx(1280)
    assert sel.x + sel.width / 2 == pytest.approx(50.0)
    _assert_valid(sel, 6000, 2000)


def test_initialize_raises_default_crop_to_minimum():
    # 80% of the max crop would be 704×880, below 800×1000
    region = CropRegion(900, 1100)
    sel = region.initialize()
    w, h = sel.native_size(900, 1100)

    assert (w, h) == (pytest.approx(800), pytest.approx(1000))
    assert sel.x / 100 * 900 == pytest.approx(50)
    assert sel.y / 100 * 1100 == pytest.approx(50)
    assert region.advisory is None


def test_small_candidate_is_clamped_to_minimum():
    region = CropRegion(4000, 5000)
    region.initialize()
    candidate = SelectionRect.from_native(100, 100, 500, 700, 4000, 5000)

    sel = region.propose_change(candidate)
    w, h = sel.native_size(4000, 5000)

    assert w == pytest.approx(800)
    assert h == pytest.approx(1000)
    assert region.advisory is None


def test_small_source_keeps_advisory_and_stays_inside_image():
    region = CropRegion(700, 900)
    region.initialize()
    assert region.advisory is not None
    assert region.advisory.source_too_small

    candidate = SelectionRect.from_native(0, 0, 500, 700, 700, 900)
    sel = region.propose_change(candidate)
    w, h = sel.native_size(700, 900)

    assert w <= 700 + 1e-9 and h <= 900 + 1e-9
    assert w == pytest.approx(700)
    assert h == pytest.approx(875)
    assert region.advisory is not None
    assert region.advisory.source_too_small
    assert "700×900px" in region.advisory.message
    _assert_valid(sel, 700, 900)


@pytest.mark.parametrize("img_w, img_h", [(700, 900), (900, 950), (750, 2000)])
def test_source_advisory_survives_every_edit(img_w, img_h):
    region = CropRegion(img_w, img_h)
    region.initialize()
    assert region.advisory is not None

    for x, y, w in [(0, 0, 5), (50, 50, 100), (-20, 10, 60), (90, 90, 30)]:
        region.propose_change(SelectionRect(x, y, w, w))
        assert region.advisory is not None
        assert region.advisory.source_too_small


def test_width_drives_height():
    region = CropRegion(4000, 5000)
    region.initialize()
    # 2000 px wide but 3000 px tall: height follows width
    sel = region.propose_change(SelectionRect.from_native(0, 0, 2000, 3000, 4000, 5000))
    w, h = sel.native_size(4000, 5000)

    assert w == pytest.approx(2000)
    assert h == pytest.approx(2500)


def test_oversized_candidate_is_capped_at_image():
    region = CropRegion(4000, 5000)
    sel = region.propose_change(SelectionRect(0, 0, 150, 150))
    w, h = sel.native_size(4000, 5000)

    assert (w, h) == (pytest.approx(4000), pytest.approx(5000))
    assert (sel.x, sel.y) == (0, 0)


def test_resize_keeps_opposite_corner_fixed():
    region = CropRegion(4000, 5000)
    region.initialize()
    # Dragging the top-left handle: right edge at 60%, bottom edge at 70%
    sel = region.propose_resize(SelectionRect(50, 60, 10, 10), anchor_right=True, anchor_bottom=True)

    assert sel.native_size(4000, 5000) == (pytest.approx(800), pytest.approx(1000))
    assert sel.x + sel.width == pytest.approx(60)
    assert sel.y + sel.height == pytest.approx(70)


def test_resize_without_anchors_matches_propose_change():
    candidate = SelectionRect(50, 60, 10, 10)
    anchored = CropRegion(4000, 5000).propose_resize(candidate)
    assert anchored == CropRegion(4000, 5000).propose_change(candidate)
    assert (anchored.x, anchored.y) == (pytest.approx(50), pytest.approx(60))


def test_origin_is_clamped_without_resizing():
    region = CropRegion(4000, 5000)
    region.initialize()
    sel = region.propose_change(SelectionRect(90, 95, 20, 20))

    assert sel.width == pytest.approx(20)
    assert sel.height == pytest.approx(20)
    assert sel.x == pytest.approx(80)
    assert sel.y == pytest.approx(80)


def test_negative_origin_is_clamped_to_zero():
    region = CropRegion(4000, 5000)
    sel = region.propose_change(SelectionRect(-15, -3, 30, 30))

    assert (sel.x, sel.y) == (0, 0)
    assert sel.width == pytest.approx(30)


def test_candidates_always_meet_minimum_and_ratio():
    img_w, img_h = 3000, 4500
    region = CropRegion(img_w, img_h)
    region.initialize()

    xs = (-10, 0, 33.3, 70, 99)
    widths = (0, 1, 12.5, 26.67, 50, 99, 120)
    heights = (0, 10, 45, 100)
    for x, y, w, h in itertools.product(xs, xs, widths, heights):
        sel = region.propose_change(SelectionRect(x, y, w, h))
        nw, nh = sel.native_size(img_w, img_h)
        assert nw >= 800 - 1e-6
        assert nh >= 1000 - 1e-6
        _assert_valid(sel, img_w, img_h)
        assert region.advisory is None


def test_constrain_selection_is_pure():
    candidate = SelectionRect(10, 10, 5, 5)
    minimum = minimum_size_for()
    first = constrain_selection(candidate, 4000, 5000, ASPECT, minimum)
    second = constrain_selection(candidate, 4000, 5000, ASPECT, minimum)

    assert first == second
    assert candidate == SelectionRect(10, 10, 5, 5)


def test_nudge_moves_in_native_pixels():
    region = CropRegion(4000, 5000)
    region.initialize()
    before = region.crop_box()
    region.nudge(10, -20)
    after = region.crop_box()

    assert after[0] - before[0] == pytest.approx(10)
    assert after[1] - before[1] == pytest.approx(-20)
    assert after[2] - after[0] == pytest.approx(before[2] - before[0])


def test_complete_records_current_selection():
    region = CropRegion(4000, 5000)
    region.initialize()
    assert region.complete() == region.selection
    region.propose_change(SelectionRect(0, 0, 50, 50))
    assert region.completed_selection != region.selection


def test_nudge_without_selection_is_noop():
    assert CropRegion(100, 100).nudge(1, 1) is None


def test_rejects_empty_image():
    with pytest.raises(ValueError):
        CropRegion(0, 100)
