"""Page-set, outline and output models."""

from __future__ import annotations

import base64
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

from pagesmith.typing.enums import SignatureKind, StandardFont
from pagesmith.typing.models.geometry import NormalizedPoint, NormalizedRect, RasterImage


class PageRange(BaseModel):
    """One range token, 0-based and inclusive, in the order it was typed.

    `start` may be greater than `end` when the user typed a reversed pair.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    start: int = Field(ge=0)
    end: int = Field(ge=0)

    @property
    def first(self) -> int:
        """Return the lower bound."""
        return min(self.start, self.end)

    @property
    def last(self) -> int:
        """Return the upper bound."""
        return max(self.start, self.end)

    def indices(self, *, preserve_literal_order: bool = False) -> list[int]:
        """Expand the range into page indices.

        Args:
            preserve_literal_order: Walk from `start` to `end` even when descending.

        Returns:
            list[int]: Page indices.
        """
        if preserve_literal_order and self.start > self.end:
            return list(range(self.start, self.end - 1, -1))
        return list(range(self.first, self.last + 1))

    def __len__(self) -> int:
        """Return the number of pages covered."""
        return self.last - self.first + 1


class SizePartition(BaseModel):
    """Contiguous page group produced by the size partitioner."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    page_indices: list[int]
    byte_size: int = Field(ge=0)
    max_bytes: int = Field(gt=0)
    data: bytes = Field(repr=False)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def over_budget(self) -> bool:
        """Return whether this group exceeds the requested budget.

        Only single-page groups can be over budget.
        """
        return self.byte_size > self.max_bytes


class OutlineItem(BaseModel):
    """Raw outline entry as returned by an outline reader."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    title: str
    destination: Any = None
    children: list[OutlineItem] = Field(default_factory=list)


class BookmarkNode(BaseModel):
    """Outline node with its destination resolved to a page index."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    title: str
    page_index: int = Field(ge=0)
    level: int = Field(ge=1)
    resolved: bool = True
    children: list[BookmarkNode] = Field(default_factory=list)


class BookmarkRange(BaseModel):
    """Page range owned by one bookmark at the requested level."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    title: str
    start: int = Field(ge=0)
    end: int = Field(ge=0)
    resolved: bool = True

    @property
    def page_indices(self) -> list[int]:
        """Return the inclusive page indices."""
        return list(range(self.start, self.end + 1))


class BookmarkInfo(BaseModel):
    """Outline summary used to offer level choices."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    has_bookmarks: bool
    levels: list[int] = Field(default_factory=list)
    count: int = 0
    unresolved: int = 0
    bookmarks: list[BookmarkNode] = Field(default_factory=list)


class RenderedPage(BaseModel):
    """Page rendered to an image."""

    model_config = ConfigDict(extra="forbid")

    page_number: int
    mime_type: str
    data_base64: str
    natural_width: int
    natural_height: int
    render_scale: float

    @property
    def data_url(self) -> str:
        """Return the image as a data URL."""
        return f"data:{self.mime_type};base64,{self.data_base64}"

    @property
    def raster(self) -> RasterImage:
        """Return the dimensions consumed by the geometry mapper."""
        return RasterImage(
            natural_width=self.natural_width,
            natural_height=self.natural_height,
            render_scale=self.render_scale,
        )

    def image_bytes(self) -> bytes:
        """Return the decoded image payload."""
        return base64.b64decode(self.data_base64)


class RedactionArea(BaseModel):
    """Box to black out on one page."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    page_index: int
    rect: NormalizedRect


class SignaturePlacement(BaseModel):
    """Signature anchored by its centre on one page.

    `width` and `height` bound the signature box in PDF points.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    page_index: int = Field(ge=0)
    anchor: NormalizedPoint
    kind: SignatureKind
    text: str | None = None
    image: bytes | None = Field(default=None, repr=False)
    width: float = Field(default=200.0, gt=0.0)
    height: float = Field(default=80.0, gt=0.0)
    font_size: float = Field(default=24.0, gt=0.0)
    font: StandardFont = StandardFont.HELVETICA


class OutputDocument(BaseModel):
    """Finished document handed to the download sink."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    filename: str
    data: bytes = Field(repr=False)
    page_indices: list[int] = Field(default_factory=list)

    @property
    def byte_size(self) -> int:
        """Return the serialized size."""
        return len(self.data)
