"""PyMuPDF implementation of the PDF engine and outline reader."""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

try:
    import fitz
except Exception:  # pragma: no cover - optional dependency at runtime
    fitz: Any
    fitz = None

from pagesmith.exceptions import EngineIOError
from pagesmith.logging import get_logger
from pagesmith.typing.enums import StandardFont
from pagesmith.typing.models import OutlineItem, PdfPageSize

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from pagesmith.settings import Settings
    from pagesmith.typing.models import PdfPoint, PdfRect

logger = get_logger(__name__)

_FONT_NAMES = {
    StandardFont.HELVETICA: "helv",
    StandardFont.TIMES: "tiro",
    StandardFont.COURIER: "cour",
}


def _require_fitz() -> Any:
    """Return the PyMuPDF module.

    Raises:
        EngineIOError: If PyMuPDF is not installed.
    """
    if fitz is None:
        raise EngineIOError(message="PyMuPDF is required for PDF processing")
    return fitz


@contextmanager
def _unrotated(page: Any) -> Iterator[Any]:
    """Yield `page` with its rotation cleared, restoring it afterwards."""
    rotation = int(page.rotation)
    if rotation:
        page.set_rotation(0)
    try:
        yield page
    finally:
        if rotation:
            page.set_rotation(rotation)


class FitzPage:
    """Page living inside a `FitzDocument`.

    PDF-space coordinates (origin bottom-left) are flipped into PyMuPDF's
    top-left coordinates of the unrotated page. Drawing happens with the page
    rotation cleared so annotations and content share one frame.
    """

    def __init__(self, document: FitzDocument, index: int) -> None:
        self._document = document
        self._index = index

    @property
    def native(self) -> Any:
        """Return the underlying `fitz.Page`."""
        return self._document.native[self._index]

    @property
    def rotation(self) -> int:
        return int(self.native.rotation)

    def set_rotation(self, angle: int) -> None:
        self.native.set_rotation(angle % 360)

    def get_size(self) -> PdfPageSize:
        box = self.native.cropbox
        return PdfPageSize(width=box.width, height=box.height)

    def _to_native_rect(self, rect: PdfRect) -> Any:
        module = _require_fitz()
        height = self.native.cropbox.height
        return module.Rect(rect.x, height - (rect.y + rect.height), rect.x + rect.width, height - rect.y)

    def _to_native_point(self, point: PdfPoint) -> Any:
        module = _require_fitz()
        return module.Point(point.x, self.native.cropbox.height - point.y)

    def redact(self, rect: PdfRect, *, color: tuple[float, float, float]) -> None:
        native_rect = self._to_native_rect(rect)
        with _unrotated(self.native) as page:
            page.add_redact_annot(native_rect, fill=color)
            page.apply_redactions()

    def draw_image(self, image: bytes, rect: PdfRect) -> None:
        native_rect = self._to_native_rect(rect)
        with _unrotated(self.native) as page:
            page.insert_image(native_rect, stream=image, keep_proportion=False, overlay=True)

    def draw_text(self, text: str, origin: PdfPoint, *, font: StandardFont, font_size: float) -> None:
        native_point = self._to_native_point(origin)
        with _unrotated(self.native) as page:
            page.insert_text(native_point, text, fontname=_FONT_NAMES[font], fontsize=font_size, color=(0, 0, 0))


class _CopiedPage:
    """Page copied out of a source document, waiting for `add_page`."""

    def __init__(self, source: FitzDocument, index: int) -> None:
        self.source = source
        self.index = index
        native = source.native[index]
        self._rotation = int(native.rotation)
        box = native.cropbox
        self._size = PdfPageSize(width=box.width, height=box.height)

    @property
    def rotation(self) -> int:
        return self._rotation

    def set_rotation(self, angle: int) -> None:
        self._rotation = angle % 360

    def get_size(self) -> PdfPageSize:
        return self._size

    def redact(self, rect: PdfRect, *, color: tuple[float, float, float]) -> None:
        raise EngineIOError(message="Add a copied page to a document before drawing on it")

    def draw_image(self, image: bytes, rect: PdfRect) -> None:
        raise EngineIOError(message="Add a copied page to a document before drawing on it")

    def draw_text(self, text: str, origin: PdfPoint, *, font: StandardFont, font_size: float) -> None:
        raise EngineIOError(message="Add a copied page to a document before drawing on it")


class FitzDocument:
    """In-memory PDF backed by a `fitz.Document`."""

    def __init__(self, native: Any, *, garbage: int = 3, deflate: bool = True) -> None:
        self._native = native
        self._garbage = garbage
        self._deflate = deflate

    @property
    def native(self) -> Any:
        """Return the underlying `fitz.Document`."""
        return self._native

    @property
    def page_count(self) -> int:
        return int(self._native.page_count)

    def get_page(self, index: int) -> FitzPage:
        if not 0 <= index < self.page_count:
            raise EngineIOError(message=f"Page index {index} is out of range (0-{self.page_count - 1})")
        return FitzPage(self, index)

    def copy_pages(self, source: FitzDocument, indices: Sequence[int]) -> list[_CopiedPage]:
        for index in indices:
            if not 0 <= index < source.page_count:
                raise EngineIOError(
                    message=f"Page index {index + 1} is out of range (1-{source.page_count})",
                )
        return [_CopiedPage(source, index) for index in indices]

    def add_page(self, page: _CopiedPage | tuple[float, float]) -> FitzPage:
        if isinstance(page, tuple):
            width, height = page
            self._native.new_page(width=width, height=height)
            return FitzPage(self, self.page_count - 1)

        self._native.insert_pdf(page.source.native, from_page=page.index, to_page=page.index)
        added = FitzPage(self, self.page_count - 1)
        if added.rotation != page.rotation:
            added.set_rotation(page.rotation)
        return added

    def save(self) -> bytes:
        try:
            return self._native.tobytes(garbage=self._garbage, deflate=self._deflate)
        except Exception as exc:
            raise EngineIOError(message="Failed to save PDF") from exc


class FitzEngine:
    """`PdfEngine` backed by PyMuPDF."""

    def __init__(self, *, garbage: int = 3, deflate: bool = True) -> None:
        self._garbage = garbage
        self._deflate = deflate

    @classmethod
    def from_settings(cls, settings: Settings) -> FitzEngine:
        """Build an engine with the configured save options."""
        return cls(garbage=settings.save_garbage, deflate=settings.save_deflate)

    def load(self, data: bytes) -> FitzDocument:
        """Parse PDF bytes.

        Raises:
            EngineIOError: If the bytes are not a readable PDF.
        """
        module = _require_fitz()
        try:
            native = module.open(stream=data, filetype="pdf")
        except Exception as exc:
            raise EngineIOError(message="Failed to load PDF. Make sure it's a valid PDF file.") from exc
        if not native.is_pdf:
            native.close()
            raise EngineIOError(message="Input is not a PDF document")
        logger.debug("PDF loaded", extra={"pages": native.page_count, "bytes": len(data)})
        return FitzDocument(native, garbage=self._garbage, deflate=self._deflate)

    def create(self) -> FitzDocument:
        module = _require_fitz()
        return FitzDocument(module.open(), garbage=self._garbage, deflate=self._deflate)

    def image_size(self, image: bytes) -> tuple[int, int]:
        """Return image pixel dimensions.

        Raises:
            EngineIOError: If the bytes are not a PNG or JPEG image.
        """
        module = _require_fitz()
        try:
            pixmap = module.Pixmap(image)
        except Exception as exc:
            raise EngineIOError(
                message="Failed to embed image. Please ensure the image is in PNG or JPEG format.",
            ) from exc
        return int(pixmap.width), int(pixmap.height)

    def text_width(self, text: str, *, font: StandardFont, font_size: float) -> float:
        module = _require_fitz()
        return float(module.get_text_length(text, fontname=_FONT_NAMES[font], fontsize=font_size))


class FitzOutlineReader:
    """`OutlineReader` over PyMuPDF's table of contents.

    Destinations are the 1-based page numbers reported by PyMuPDF, which uses
    -1 for entries it could not resolve (external or broken links).
    """

    def get_outline(self, document: FitzDocument) -> list[OutlineItem]:
        """Rebuild the outline tree from PyMuPDF's flat, level-annotated list."""
        roots: list[OutlineItem] = []
        stack: list[tuple[int, OutlineItem]] = []
        for entry in document.native.get_toc(simple=True):
            level, title, page_number = int(entry[0]), str(entry[1]), int(entry[2])
            item = OutlineItem(title=title, destination=page_number)
            while stack and stack[-1][0] >= level:
                stack.pop()
            if stack:
                stack[-1][1].children.append(item)
            else:
                roots.append(item)
            stack.append((level, item))
        return roots

    def resolve_destination(self, document: FitzDocument, destination: Any) -> int:
        """Return the 0-based page index of a destination.

        Raises:
            EngineIOError: If the destination does not point inside the document.
        """
        if not isinstance(destination, int) or not 1 <= destination <= document.page_count:
            raise EngineIOError(message=f"Unresolvable bookmark destination: {destination!r}")
        return destination - 1
