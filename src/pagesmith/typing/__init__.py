"""Typing-centric domain modules."""

from pagesmith.typing.enums import InsertPosition, ProbeStrategy, Rotation, SignatureKind, StandardFont
from pagesmith.typing.models import (
    BookmarkInfo,
    BookmarkNode,
    BookmarkRange,
    DisplayRect,
    ElementBox,
    NormalizedPoint,
    NormalizedRect,
    OutlineItem,
    OutputDocument,
    PageRange,
    PdfPageSize,
    PdfPoint,
    PdfRect,
    PointerPoint,
    PointerRect,
    RasterImage,
    RedactionArea,
    RenderedPage,
    SignaturePlacement,
    SizePartition,
)
from pagesmith.typing.protocol import EngineDocument, EnginePage, OutlineReader, PdfEngine, Rasterizer

__all__ = [
    "BookmarkInfo",
    "BookmarkNode",
    "BookmarkRange",
    "DisplayRect",
    "ElementBox",
    "EngineDocument",
    "EnginePage",
    "InsertPosition",
    "NormalizedPoint",
    "NormalizedRect",
    "OutlineItem",
    "OutlineReader",
    "OutputDocument",
    "PageRange",
    "PdfEngine",
    "PdfPageSize",
    "PdfPoint",
    "PdfRect",
    "PointerPoint",
    "PointerRect",
    "ProbeStrategy",
    "RasterImage",
    "Rasterizer",
    "RedactionArea",
    "RenderedPage",
    "Rotation",
    "SignatureKind",
    "SignaturePlacement",
    "SizePartition",
    "StandardFont",
]
