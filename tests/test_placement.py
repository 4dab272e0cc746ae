import pytest

from print_crop_tool.models import SelectionRect
from print_crop_tool.placement import PlacementRegion


def test_frame_height_follows_print_ratio():
    region = PlacementRegion(1000, 1000, frame_w=400)
    assert region.frame_h == pytest.approx(500)


def test_initialize_quarter_native_size_at_origin():
    region = PlacementRegion(800, 1000, frame_w=400)
    sel = region.initialize()

    # 200×250 display px inside a 400×500 frame
    assert (sel.x, sel.y) == (0.0, 0.0)
    assert sel.width == pytest.approx(50.0)
    assert sel.height == pytest.approx(50.0)
    assert region.completed_selection is None


def test_layer_keeps_image_aspect_ratio():
    region = PlacementRegion(1000, 1000, frame_w=400, frame_h=500)
    region.initialize()
    sel = region.propose_change(SelectionRect(10, 10, 40, 90))

    # 160 px wide square layer → 160 / 500 of the frame height
    assert sel.width == pytest.approx(40.0)
    assert sel.height == pytest.approx(32.0)


def test_layer_may_overhang_frame():
    region = PlacementRegion(1000, 1000, frame_w=400, frame_h=500)
    sel = region.propose_change(SelectionRect(-20, -10, 150, 0))

    assert sel.x == pytest.approx(-20)
    assert sel.y == pytest.approx(-10)
    assert sel.width == pytest.approx(150)


def test_layer_stays_partly_visible():
    region = PlacementRegion(1000, 1000, frame_w=400, frame_h=500)
    sel = region.propose_change(SelectionRect(150, -200, 20, 0))

    assert sel.x == pytest.approx(95.0)
    assert sel.y + sel.height == pytest.approx(5.0)


def test_minimum_layer_size():
    region = PlacementRegion(1000, 1000, frame_w=400)
    sel = region.propose_change(SelectionRect(0, 0, 0.5, 0.5))
    assert sel.width == pytest.approx(5.0)


def test_layer_size_is_capped():
    region = PlacementRegion(1000, 1000, frame_w=400, frame_h=500)
    sel = region.propose_change(SelectionRect(0, 0, 100_000, 100_000))

    # 1600 px square layer is 320% of the frame height
    assert sel.width == pytest.approx(400.0)
    assert sel.height == pytest.approx(320.0)


def test_tall_layer_is_capped_by_height():
    region = PlacementRegion(1000, 4000, frame_w=400, frame_h=500)
    sel = region.propose_change(SelectionRect(0, 0, 100_000, 0))

    assert sel.height == pytest.approx(400.0)
    assert sel.width == pytest.approx(125.0)


def test_initialize_huge_image_is_capped():
    region = PlacementRegion(40_000, 50_000, frame_w=400)
    sel = region.initialize()

    assert sel.width == pytest.approx(400.0)
    assert sel.height == pytest.approx(400.0)


def test_covered_fraction():
    region = PlacementRegion(1000, 1250, frame_w=400)
    region.propose_change(SelectionRect(25, 25, 50, 50))
    assert region.covered_fraction() == pytest.approx(0.25)

    region.propose_change(SelectionRect(50, 50, 100, 100))
    assert region.covered_fraction() == pytest.approx(0.25)


def test_set_frame_size_keeps_percentages():
    region = PlacementRegion(1000, 1250, frame_w=400)
    region.propose_change(SelectionRect(10, 20, 30, 30))
    region.set_frame_size(800, 1000)

    sel = region.selection
    assert (sel.x, sel.y, sel.width) == (10, 20, 30)
    assert sel.height == pytest.approx(30)


def test_complete():
    region = PlacementRegion(1000, 1250, frame_w=400)
    region.initialize()
    assert region.complete() is region.selection


def test_rejects_bad_frame():
    with pytest.raises(ValueError):
        PlacementRegion(100, 100, frame_w=0)
