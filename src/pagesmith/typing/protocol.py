"""Interfaces of the external PDF collaborators."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Sequence

    from pagesmith.typing.enums import StandardFont
    from pagesmith.typing.models import OutlineItem, PdfPageSize, PdfPoint, PdfRect, RenderedPage


class EnginePage(Protocol):
    """Page handle owned by an engine document.

    Drawing coordinates are PDF user space: origin bottom-left, y up.
    """

    @property
    def rotation(self) -> int:
        """Return the page rotation in degrees."""

    def set_rotation(self, angle: int) -> None:
        """Set the page rotation in degrees."""

    def get_size(self) -> PdfPageSize:
        """Return the unrotated page size in points."""

    def redact(self, rect: PdfRect, *, color: tuple[float, float, float]) -> None:
        """Remove the content under `rect` and fill it with `color`."""

    def draw_image(self, image: bytes, rect: PdfRect) -> None:
        """Paint a PNG or JPEG image stretched to `rect`."""

    def draw_text(self, text: str, origin: PdfPoint, *, font: StandardFont, font_size: float) -> None:
        """Paint text whose baseline starts at `origin`."""


class EngineDocument(Protocol):
    """In-memory document owned by one operation."""

    @property
    def page_count(self) -> int:
        """Return the number of pages."""

    def get_page(self, index: int) -> EnginePage:
        """Return the page at a 0-based index."""

    def copy_pages(self, source: EngineDocument, indices: Sequence[int]) -> list[EnginePage]:
        """Copy pages of `source` for later insertion with `add_page`."""

    def add_page(self, page: EnginePage | tuple[float, float]) -> EnginePage:
        """Append a copied page, or a blank page of the given width and height."""

    def save(self) -> bytes:
        """Serialize the document."""


class PdfEngine(Protocol):
    """Factory for engine documents."""

    def load(self, data: bytes) -> EngineDocument:
        """Parse PDF bytes."""

    def create(self) -> EngineDocument:
        """Return an empty document."""

    def image_size(self, image: bytes) -> tuple[int, int]:
        """Return the pixel width and height of an embeddable image."""

    def text_width(self, text: str, *, font: StandardFont, font_size: float) -> float:
        """Return the advance width of `text` in points."""


class Rasterizer(Protocol):
    """Renders pages to images."""

    def render_page(
        self,
        document: EngineDocument,
        page_number: int,
        target_width: int | None = None,
        rotation: int = 0,
    ) -> RenderedPage:
        """Render one page (1-based) to `target_width` pixels."""


class OutlineReader(Protocol):
    """Reads the outline tree of a document."""

    def get_outline(self, document: EngineDocument) -> list[OutlineItem]:
        """Return the top-level outline items."""

    def resolve_destination(self, document: EngineDocument, destination: Any) -> int:
        """Return the 0-based page index an outline destination points to."""
