"""Conversions between pointer, raster and PDF coordinate spaces.

Three spaces are involved when a user places an object on a page preview:

* pointer space: client pixels reported by the UI, in which the page image
  element has a bounding box (`ElementBox`);
* raster space: pixels of the rendered page image (`RasterImage`), drawn
  inside the element with "contain" fitting, so it may be letterboxed;
* PDF space: points of the page (`PdfPageSize`), origin bottom-left.

Callers store positions as `NormalizedPoint`/`NormalizedRect` (page fractions,
y down), which survive zoom and resolution changes. Every mapping returns
`None` instead of raising when the image is not loaded yet or the pointer is
outside the page, so clicks beside the page are simply ignored.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pagesmith.typing.models import (
    DisplayRect,
    NormalizedPoint,
    NormalizedRect,
    PdfPageSize,
    PdfPoint,
    PdfRect,
    PointerPoint,
    PointerRect,
)

if TYPE_CHECKING:
    from pagesmith.typing.models import ElementBox, RasterImage

DEFAULT_BASELINE_RATIO = 0.8
_QUARTER_TURNS = (0, 90, 180, 270)


def _clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    return max(lower, min(upper, value))


def _normalize_rotation(rotation: int) -> int:
    """Reduce a rotation to 0, 90, 180 or 270.

    Raises:
        ValueError: If the angle is not a multiple of 90.
    """
    angle = rotation % 360
    if angle not in _QUARTER_TURNS:
        raise ValueError(f"Rotation must be a multiple of 90 degrees, got {rotation}")  # noqa: TRY003
    return angle


def rotated_page_size(page_size: PdfPageSize, rotation: int = 0) -> PdfPageSize:
    """Return the page size as displayed after a clockwise rotation.

    Args:
        page_size (PdfPageSize): Unrotated page size.
        rotation (int): Clockwise rotation in degrees.

    Returns:
        PdfPageSize: Width and height swapped for quarter turns.
    """
    if _normalize_rotation(rotation) in {90, 270}:
        return PdfPageSize(width=page_size.height, height=page_size.width)
    return page_size


def compute_display_rect(box: ElementBox, raster: RasterImage) -> DisplayRect | None:
    """Compute where a "contain"-fitted image lands inside its element.

    An image relatively wider than its box fills the width and is letterboxed
    top and bottom; otherwise it fills the height and is letterboxed left and
    right.

    Args:
        box (ElementBox): Element bounding box.
        raster (RasterImage): Rendered image dimensions.

    Returns:
        DisplayRect | None: Displayed image area, or None while the image has no size.
    """
    if not raster.is_loaded or box.width <= 0 or box.height <= 0:
        return None

    image_aspect = raster.natural_width / raster.natural_height
    box_aspect = box.width / box.height

    if image_aspect > box_aspect:
        height = box.width / image_aspect
        return DisplayRect(offset_x=0.0, offset_y=(box.height - height) / 2, width=box.width, height=height)

    width = box.height * image_aspect
    return DisplayRect(offset_x=(box.width - width) / 2, offset_y=0.0, width=width, height=box.height)


def _to_page_frame(u: float, v: float, rotation: int) -> tuple[float, float]:
    """Map fractions of the rotated view back onto the unrotated page."""
    if rotation == 90:
        return v, 1.0 - u
    if rotation == 180:
        return 1.0 - u, 1.0 - v
    if rotation == 270:
        return 1.0 - v, u
    return u, v


def _to_view_frame(x: float, y: float, rotation: int) -> tuple[float, float]:
    """Map fractions of the unrotated page onto the rotated view."""
    if rotation == 90:
        return 1.0 - y, x
    if rotation == 180:
        return 1.0 - x, 1.0 - y
    if rotation == 270:
        return y, 1.0 - x
    return x, y


def _pointer_to_view_fractions(
    pointer: PointerPoint,
    box: ElementBox,
    raster: RasterImage,
    page_size: PdfPageSize,
    *,
    clamp_to_page: bool,
) -> tuple[float, float] | None:
    """Run the pointer -> display -> raster -> PDF chain for the displayed view."""
    display = compute_display_rect(box, raster)
    if display is None:
        return None

    local_x = pointer.x - box.left - display.offset_x
    local_y = pointer.y - box.top - display.offset_y
    if clamp_to_page:
        local_x = _clamp(local_x, 0.0, display.width)
        local_y = _clamp(local_y, 0.0, display.height)
    elif not (0.0 <= local_x <= display.width and 0.0 <= local_y <= display.height):
        return None

    rendered_x = local_x * raster.natural_width / display.width
    rendered_y = local_y * raster.natural_height / display.height

    pdf_x = rendered_x / raster.render_scale
    pdf_y = rendered_y / raster.render_scale

    return _clamp(pdf_x / page_size.width), _clamp(pdf_y / page_size.height)


def pointer_to_normalized(
    pointer: PointerPoint,
    box: ElementBox,
    raster: RasterImage,
    page_size: PdfPageSize,
    *,
    rotation: int = 0,
) -> NormalizedPoint | None:
    """Convert a pointer position into a normalized page position.

    `raster` must have been rendered from the page as displayed, that is with
    `render_scale = natural_width / rotated_page_width`. `page_size` is the
    unrotated page size; the result is expressed on the unrotated page.

    Args:
        pointer (PointerPoint): Client coordinates of the pointer.
        box (ElementBox): Bounding box of the image element.
        raster (RasterImage): Rendered image dimensions.
        page_size (PdfPageSize): Unrotated page size in points.
        rotation (int): Clockwise display rotation in degrees.

    Returns:
        NormalizedPoint | None: Position on the page, or None when the image is
        not loaded or the pointer is outside the displayed page.
    """
    angle = _normalize_rotation(rotation)
    view = _pointer_to_view_fractions(
        pointer,
        box,
        raster,
        rotated_page_size(page_size, angle),
        clamp_to_page=False,
    )
    if view is None:
        return None
    x, y = _to_page_frame(*view, angle)
    return NormalizedPoint(x=_clamp(x), y=_clamp(y))


def normalized_to_pointer(
    point: NormalizedPoint,
    box: ElementBox,
    raster: RasterImage,
    page_size: PdfPageSize,
    *,
    rotation: int = 0,
) -> PointerPoint | None:
    """Convert a normalized page position back to client coordinates.

    Exact inverse of `pointer_to_normalized`, used to draw previews.

    Args:
        point (NormalizedPoint): Position on the unrotated page.
        box (ElementBox): Bounding box of the image element.
        raster (RasterImage): Rendered image dimensions.
        page_size (PdfPageSize): Unrotated page size in points.
        rotation (int): Clockwise display rotation in degrees.

    Returns:
        PointerPoint | None: Client coordinates, or None when the image is not loaded.
    """
    display = compute_display_rect(box, raster)
    if display is None:
        return None

    angle = _normalize_rotation(rotation)
    view_size = rotated_page_size(page_size, angle)
    u, v = _to_view_frame(point.x, point.y, angle)

    rendered_x = u * view_size.width * raster.render_scale
    rendered_y = v * view_size.height * raster.render_scale

    return PointerPoint(
        x=box.left + display.offset_x + rendered_x * display.width / raster.natural_width,
        y=box.top + display.offset_y + rendered_y * display.height / raster.natural_height,
    )


def pointer_drag_to_normalized_rect(
    start: PointerPoint,
    end: PointerPoint,
    box: ElementBox,
    raster: RasterImage,
    page_size: PdfPageSize,
    *,
    rotation: int = 0,
) -> NormalizedRect | None:
    """Convert a drag gesture into a normalized box.

    The drag must start on the page; its end is clamped to the page edge so a
    drag leaving the page still selects up to the border.

    Args:
        start (PointerPoint): Where the drag started.
        end (PointerPoint): Where the drag currently is.
        box (ElementBox): Bounding box of the image element.
        raster (RasterImage): Rendered image dimensions.
        page_size (PdfPageSize): Unrotated page size in points.
        rotation (int): Clockwise display rotation in degrees.

    Returns:
        NormalizedRect | None: Box on the unrotated page, or None when the drag
        did not start on a loaded page.
    """
    angle = _normalize_rotation(rotation)
    view_size = rotated_page_size(page_size, angle)
    first = _pointer_to_view_fractions(start, box, raster, view_size, clamp_to_page=False)
    if first is None:
        return None
    second = _pointer_to_view_fractions(end, box, raster, view_size, clamp_to_page=True)
    if second is None:
        return None

    x1, y1 = _to_page_frame(*first, angle)
    x2, y2 = _to_page_frame(*second, angle)
    left, top = min(x1, x2), min(y1, y2)
    return NormalizedRect(
        x=_clamp(left),
        y=_clamp(top),
        width=_clamp(abs(x2 - x1), 0.0, 1.0 - _clamp(left)),
        height=_clamp(abs(y2 - y1), 0.0, 1.0 - _clamp(top)),
    )


def normalized_rect_to_pointer(
    rect: NormalizedRect,
    box: ElementBox,
    raster: RasterImage,
    page_size: PdfPageSize,
    *,
    rotation: int = 0,
) -> PointerRect | None:
    """Convert a normalized box to a client-space box for previews.

    Args:
        rect (NormalizedRect): Box on the unrotated page.
        box (ElementBox): Bounding box of the image element.
        raster (RasterImage): Rendered image dimensions.
        page_size (PdfPageSize): Unrotated page size in points.
        rotation (int): Clockwise display rotation in degrees.

    Returns:
        PointerRect | None: Client-space box, or None when the image is not loaded.
    """
    corners = (
        NormalizedPoint(x=rect.x, y=rect.y),
        NormalizedPoint(x=min(1.0, rect.x + rect.width), y=min(1.0, rect.y + rect.height)),
    )
    mapped = [normalized_to_pointer(corner, box, raster, page_size, rotation=rotation) for corner in corners]
    if mapped[0] is None or mapped[1] is None:
        return None
    first, second = mapped
    return PointerRect(
        x=min(first.x, second.x),
        y=min(first.y, second.y),
        width=abs(second.x - first.x),
        height=abs(second.y - first.y),
    )


def normalized_to_pdf_space(point: NormalizedPoint, page_size: PdfPageSize) -> PdfPoint:
    """Convert a normalized position to PDF user space.

    Args:
        point (NormalizedPoint): Position, y down.
        page_size (PdfPageSize): Page size in points.

    Returns:
        PdfPoint: Position with the origin at the bottom-left corner.
    """
    return PdfPoint(x=point.x * page_size.width, y=(1.0 - point.y) * page_size.height)


def normalized_rect_to_pdf_space(rect: NormalizedRect, page_size: PdfPageSize) -> PdfRect:
    """Convert a normalized box to a PDF rectangle anchored bottom-left.

    Args:
        rect (NormalizedRect): Box with its top-left corner at (`x`, `y`), y down.
        page_size (PdfPageSize): Page size in points.

    Returns:
        PdfRect: Rectangle ready for drawing.
    """
    top_left = normalized_to_pdf_space(NormalizedPoint(x=rect.x, y=rect.y), page_size)
    height = rect.height * page_size.height
    return PdfRect(x=top_left.x, y=top_left.y - height, width=rect.width * page_size.width, height=height)


def center_anchored_origin(anchor: PdfPoint, asset_width: float, asset_height: float) -> PdfPoint:
    """Return the draw origin that centres an asset on `anchor`.

    Signatures and text boxes are placed by their visual centre.

    Args:
        anchor (PdfPoint): Centre of the asset in PDF space.
        asset_width (float): Asset width in points.
        asset_height (float): Asset height in points.

    Returns:
        PdfPoint: Bottom-left corner to draw the asset at.
    """
    return PdfPoint(x=anchor.x - asset_width / 2, y=anchor.y - asset_height / 2)


def place_centered(
    anchor: NormalizedPoint,
    page_size: PdfPageSize,
    asset_width: float,
    asset_height: float,
) -> PdfRect:
    """Return the PDF rectangle of an asset centred on a normalized anchor."""
    origin = center_anchored_origin(normalized_to_pdf_space(anchor, page_size), asset_width, asset_height)
    return PdfRect(x=origin.x, y=origin.y, width=asset_width, height=asset_height)


def baseline_to_top(
    baseline_y: float,
    font_size: float,
    *,
    baseline_ratio: float = DEFAULT_BASELINE_RATIO,
) -> float:
    """Convert the baseline of extracted text to the top of its box.

    Text pulled from a content stream is positioned by its baseline, while
    boxes on screen are positioned by their top edge. The ratio is an
    empirical approximation rather than a font metric.

    Args:
        baseline_y (float): Baseline position, y down, in the caller's unit.
        font_size (float): Font size in the same unit.
        baseline_ratio (float): Fraction of the font size above the baseline.

    Returns:
        float: Top of the text box.
    """
    return baseline_y - font_size * baseline_ratio


def top_to_baseline(
    top_y: float,
    font_size: float,
    *,
    baseline_ratio: float = DEFAULT_BASELINE_RATIO,
) -> float:
    """Inverse of `baseline_to_top`."""
    return top_y + font_size * baseline_ratio
