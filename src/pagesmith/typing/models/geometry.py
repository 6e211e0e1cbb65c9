"""Coordinate-space models for pointer, raster and PDF spaces."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ElementBox(BaseModel):
    """Bounding box of the element showing a page image, in pointer pixels."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    left: float = 0.0
    top: float = 0.0
    width: float = Field(ge=0.0)
    height: float = Field(ge=0.0)


class DisplayRect(BaseModel):
    """Area actually covered by the page image inside its element.

    Offsets are relative to the element's top-left corner.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    offset_x: float
    offset_y: float
    width: float
    height: float


class RasterImage(BaseModel):
    """Dimensions of a rendered page image.

    `render_scale` is pixels per PDF point: `natural_width / page_width`.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    natural_width: int = Field(ge=0)
    natural_height: int = Field(ge=0)
    render_scale: float = Field(ge=0.0)

    @property
    def is_loaded(self) -> bool:
        """Return whether the image has usable dimensions."""
        return self.natural_width > 0 and self.natural_height > 0 and self.render_scale > 0


class PdfPageSize(BaseModel):
    """Intrinsic page size in PDF points."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    width: float = Field(gt=0.0)
    height: float = Field(gt=0.0)


class PointerPoint(BaseModel):
    """Pointer position in client pixels."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    x: float
    y: float


class PointerRect(BaseModel):
    """Box in client pixels, top-left anchored."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    x: float
    y: float
    width: float
    height: float


class NormalizedPoint(BaseModel):
    """Position as page fractions, y growing downwards."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    x: float = Field(ge=0.0, le=1.0)
    y: float = Field(ge=0.0, le=1.0)


class NormalizedRect(BaseModel):
    """Box as page fractions, top-left anchored, y growing downwards."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    x: float = Field(ge=0.0, le=1.0)
    y: float = Field(ge=0.0, le=1.0)
    width: float = Field(ge=0.0, le=1.0)
    height: float = Field(ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_inside_page(self) -> NormalizedRect:
        """Reject boxes reaching past the right or bottom page edge.

        Raises:
            ValueError: If `x + width` or `y + height` exceeds 1.

        Returns:
            NormalizedRect: The validated rect.
        """
        # Small tolerance absorbs float noise from pointer mapping.
        if self.x + self.width > 1.0 + 1e-9 or self.y + self.height > 1.0 + 1e-9:
            raise ValueError("NormalizedRect must lie within the page")  # noqa: TRY003
        return self


class PdfPoint(BaseModel):
    """Point in PDF user space (origin bottom-left, y up)."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    x: float
    y: float


class PdfRect(BaseModel):
    """Rectangle in PDF user space, anchored at its bottom-left corner."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    x: float
    y: float
    width: float
    height: float
