from __future__ import annotations

import pytest

from pagesmith.geometry import (
    baseline_to_top,
    center_anchored_origin,
    compute_display_rect,
    normalized_rect_to_pdf_space,
    normalized_rect_to_pointer,
    normalized_to_pdf_space,
    normalized_to_pointer,
    place_centered,
    pointer_drag_to_normalized_rect,
    pointer_to_normalized,
    rotated_page_size,
    top_to_baseline,
)
from pagesmith.typing.models import (
    ElementBox,
    NormalizedPoint,
    NormalizedRect,
    PdfPageSize,
    PdfPoint,
    PointerPoint,
    RasterImage,
)

LETTER = PdfPageSize(width=850.0, height=1100.0)


def _raster_for(page: PdfPageSize, width: int) -> RasterImage:
    scale = width / page.width
    return RasterImage(natural_width=width, natural_height=round(page.height * scale), render_scale=scale)


def test_compute_display_rect_letterboxes_left_and_right_for_tall_image() -> None:
    box = ElementBox(width=1000.0, height=800.0)
    raster = RasterImage(natural_width=400, natural_height=800, render_scale=1.0)

    display = compute_display_rect(box, raster)

    assert display is not None
    assert display.width == pytest.approx(400.0)
    assert display.height == pytest.approx(800.0)
    assert display.offset_x == pytest.approx(300.0)
    assert display.offset_y == 0.0


def test_compute_display_rect_letterboxes_top_and_bottom_for_wide_image() -> None:
    box = ElementBox(width=500.0, height=500.0)
    raster = RasterImage(natural_width=1000, natural_height=500, render_scale=1.0)

    display = compute_display_rect(box, raster)

    assert display is not None
    assert display.width == pytest.approx(500.0)
    assert display.height == pytest.approx(250.0)
    assert display.offset_x == 0.0
    assert display.offset_y == pytest.approx(125.0)


def test_compute_display_rect_returns_none_until_image_is_loaded() -> None:
    box = ElementBox(width=500.0, height=500.0)

    assert compute_display_rect(box, RasterImage(natural_width=0, natural_height=0, render_scale=0.0)) is None
    assert compute_display_rect(ElementBox(width=0.0, height=0.0), _raster_for(LETTER, 1200)) is None


def test_click_at_centre_of_letterboxed_letter_page_maps_to_page_centre() -> None:
    box = ElementBox(width=1000.0, height=800.0)
    raster = _raster_for(LETTER, 1200)

    point = pointer_to_normalized(PointerPoint(x=500.0, y=400.0), box, raster, LETTER)

    assert point is not None
    assert point.x == pytest.approx(0.5, abs=1e-3)
    assert point.y == pytest.approx(0.5, abs=1e-3)


def test_click_at_centre_of_non_letterboxed_page_maps_to_page_centre() -> None:
    page = PdfPageSize(width=850.0, height=680.0)
    box = ElementBox(left=40.0, top=120.0, width=1000.0, height=800.0)
    raster = RasterImage(natural_width=1000, natural_height=800, render_scale=1000 / 850)

    point = pointer_to_normalized(PointerPoint(x=540.0, y=520.0), box, raster, page)

    assert point is not None
    assert point.x == pytest.approx(0.5)
    assert point.y == pytest.approx(0.5)


def test_click_in_letterbox_margin_is_ignored() -> None:
    box = ElementBox(width=1000.0, height=800.0)
    raster = _raster_for(LETTER, 1200)

    assert pointer_to_normalized(PointerPoint(x=50.0, y=400.0), box, raster, LETTER) is None
    assert pointer_to_normalized(PointerPoint(x=990.0, y=400.0), box, raster, LETTER) is None


def test_zoom_does_not_change_normalized_position() -> None:
    raster = _raster_for(LETTER, 1200)
    small = ElementBox(width=425.0, height=550.0)
    large = ElementBox(width=1700.0, height=2200.0)

    first = pointer_to_normalized(PointerPoint(x=106.25, y=412.5), small, raster, LETTER)
    second = pointer_to_normalized(PointerPoint(x=425.0, y=1650.0), large, raster, LETTER)

    assert first is not None
    assert second is not None
    assert first.x == pytest.approx(second.x, abs=1e-3)
    assert first.y == pytest.approx(second.y, abs=1e-3)
    assert first.x == pytest.approx(0.25, abs=1e-3)
    assert first.y == pytest.approx(0.75, abs=1e-3)


@pytest.mark.parametrize("rotation", [0, 90, 180, 270])
def test_pointer_and_normalized_round_trip(rotation: int) -> None:
    view = rotated_page_size(LETTER, rotation)
    raster = _raster_for(view, 1200)
    box = ElementBox(left=15.0, top=30.0, width=900.0, height=700.0)
    original = NormalizedPoint(x=0.2, y=0.7)

    pointer = normalized_to_pointer(original, box, raster, LETTER, rotation=rotation)
    assert pointer is not None
    back = pointer_to_normalized(pointer, box, raster, LETTER, rotation=rotation)

    assert back is not None
    assert back.x == pytest.approx(original.x, abs=1e-3)
    assert back.y == pytest.approx(original.y, abs=1e-3)


def test_quarter_turn_maps_top_left_of_view_to_bottom_left_of_page() -> None:
    view = rotated_page_size(LETTER, 90)
    raster = RasterImage(natural_width=1100, natural_height=850, render_scale=1.0)
    box = ElementBox(width=1100.0, height=850.0)

    point = pointer_to_normalized(PointerPoint(x=0.0, y=0.0), box, raster, LETTER, rotation=90)

    assert view.width == LETTER.height
    assert point is not None
    assert point.x == pytest.approx(0.0)
    assert point.y == pytest.approx(1.0)


def test_rotation_must_be_quarter_turn() -> None:
    box = ElementBox(width=100.0, height=100.0)
    with pytest.raises(ValueError, match="multiple of 90"):
        pointer_to_normalized(PointerPoint(x=1.0, y=1.0), box, _raster_for(LETTER, 100), LETTER, rotation=45)


def test_drag_is_clamped_to_page_edge() -> None:
    page = PdfPageSize(width=500.0, height=500.0)
    raster = RasterImage(natural_width=500, natural_height=500, render_scale=1.0)
    box = ElementBox(width=500.0, height=500.0)

    rect = pointer_drag_to_normalized_rect(
        PointerPoint(x=250.0, y=250.0),
        PointerPoint(x=900.0, y=-40.0),
        box,
        raster,
        page,
    )

    assert rect is not None
    assert rect.x == pytest.approx(0.5)
    assert rect.y == pytest.approx(0.0)
    assert rect.width == pytest.approx(0.5)
    assert rect.height == pytest.approx(0.5)


def test_drag_starting_outside_page_is_ignored() -> None:
    raster = _raster_for(LETTER, 1200)
    box = ElementBox(width=1000.0, height=800.0)

    rect = pointer_drag_to_normalized_rect(
        PointerPoint(x=10.0, y=10.0),
        PointerPoint(x=500.0, y=400.0),
        box,
        raster,
        LETTER,
    )

    assert rect is None


def test_normalized_rect_to_pointer_matches_display_area() -> None:
    page = PdfPageSize(width=500.0, height=500.0)
    raster = RasterImage(natural_width=1000, natural_height=1000, render_scale=2.0)
    box = ElementBox(left=10.0, top=20.0, width=800.0, height=400.0)

    rect = normalized_rect_to_pointer(NormalizedRect(x=0.0, y=0.0, width=1.0, height=0.5), box, raster, page)

    assert rect is not None
    assert rect.x == pytest.approx(210.0)
    assert rect.y == pytest.approx(20.0)
    assert rect.width == pytest.approx(400.0)
    assert rect.height == pytest.approx(200.0)


def test_normalized_to_pdf_space_flips_y_axis() -> None:
    page = PdfPageSize(width=600.0, height=800.0)

    assert normalized_to_pdf_space(NormalizedPoint(x=0.0, y=0.0), page) == PdfPoint(x=0.0, y=800.0)
    assert normalized_to_pdf_space(NormalizedPoint(x=0.5, y=1.0), page) == PdfPoint(x=300.0, y=0.0)


def test_normalized_rect_to_pdf_space_anchors_bottom_left() -> None:
    page = PdfPageSize(width=600.0, height=800.0)

    rect = normalized_rect_to_pdf_space(NormalizedRect(x=0.1, y=0.25, width=0.5, height=0.25), page)

    assert rect.x == pytest.approx(60.0)
    assert rect.y == pytest.approx(400.0)
    assert rect.width == pytest.approx(300.0)
    assert rect.height == pytest.approx(200.0)


def test_center_anchored_placement() -> None:
    page = PdfPageSize(width=600.0, height=800.0)

    origin = center_anchored_origin(PdfPoint(x=300.0, y=400.0), 200.0, 80.0)
    rect = place_centered(NormalizedPoint(x=0.5, y=0.5), page, 200.0, 80.0)

    assert origin == PdfPoint(x=200.0, y=360.0)
    assert (rect.x, rect.y, rect.width, rect.height) == (200.0, 360.0, 200.0, 80.0)


def test_baseline_correction_round_trip() -> None:
    top = baseline_to_top(100.0, 20.0)

    assert top == pytest.approx(84.0)
    assert top_to_baseline(top, 20.0) == pytest.approx(100.0)
    assert baseline_to_top(100.0, 20.0, baseline_ratio=0.5) == pytest.approx(90.0)


def test_normalized_rect_rejects_boxes_past_page_edge() -> None:
    with pytest.raises(ValueError, match="within the page"):
        NormalizedRect(x=0.8, y=0.0, width=0.5, height=0.1)
