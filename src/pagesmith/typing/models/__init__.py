"""Core domain model exports."""

from pagesmith.typing.models.geometry import (
    DisplayRect,
    ElementBox,
    NormalizedPoint,
    NormalizedRect,
    PdfPageSize,
    PdfPoint,
    PdfRect,
    PointerPoint,
    PointerRect,
    RasterImage,
)
from pagesmith.typing.models.pages import (
    BookmarkInfo,
    BookmarkNode,
    BookmarkRange,
    OutlineItem,
    OutputDocument,
    PageRange,
    RedactionArea,
    RenderedPage,
    SignaturePlacement,
    SizePartition,
)

__all__ = [
    "BookmarkInfo",
    "BookmarkNode",
    "BookmarkRange",
    "DisplayRect",
    "ElementBox",
    "NormalizedPoint",
    "NormalizedRect",
    "OutlineItem",
    "OutputDocument",
    "PageRange",
    "PdfPageSize",
    "PdfPoint",
    "PdfRect",
    "PointerPoint",
    "PointerRect",
    "RasterImage",
    "RedactionArea",
    "RenderedPage",
    "SignaturePlacement",
    "SizePartition",
]
