"""Build output documents from page selections.

Every operation loads its own copy of the source bytes, so a failure never
affects the input or another operation. Input that can be checked without the
document is rejected before the engine is touched; checks that need the page
count run right after loading, before anything is assembled.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from pagesmith.bookmarks import DEFAULT_TIMEOUT_SECONDS, bookmark_ranges, read_bookmarks, validate_bookmark_level
from pagesmith.exceptions import EngineIOError, InputValidationError
from pagesmith.geometry import center_anchored_origin, normalized_rect_to_pdf_space, normalized_to_pdf_space, place_centered
from pagesmith.logging import get_logger
from pagesmith.page_ranges import (
    compress_indices,
    format_page_ranges,
    parse_page_ranges,
    parse_range_tokens,
    require_expression,
    split_filename,
    validate_delete_selection,
    validate_selection,
    validate_split_selection,
)
from pagesmith.partition import ProgressCallback, parse_size_to_bytes, partition_by_size
from pagesmith.typing.enums import InsertPosition, ProbeStrategy, Rotation, SignatureKind
from pagesmith.typing.models import OutputDocument

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from pagesmith.typing.models import RedactionArea, SignaturePlacement
    from pagesmith.typing.protocol import EngineDocument, OutlineReader, PdfEngine

logger = get_logger(__name__)

DEFAULT_MAX_BLANK_PAGES = 100
DEFAULT_MAX_COPIES = 10
_REDACTION_COLOR = (0.0, 0.0, 0.0)
_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.-]+")

# One entry per output page: a source index, or None for a blank page.
PagePlan = list[int | None]


def load_document(engine: PdfEngine, data: bytes, *, name: str = "input") -> EngineDocument:
    """Load PDF bytes, reporting failures against `name`.

    Raises:
        EngineIOError: If the engine cannot parse the bytes.

    Returns:
        EngineDocument: Loaded document.
    """
    try:
        return engine.load(data)
    except Exception as exc:
        raise EngineIOError(message=f"Failed to process {name}. Make sure it's a valid PDF file.") from exc


def _assemble(
    engine: PdfEngine,
    source: EngineDocument,
    plan: Sequence[int | None],
    *,
    rotations: Mapping[int, int] | None = None,
) -> bytes:
    """Copy pages of `source` following `plan` and serialize the result.

    Blank pages take the size of the first source page. `rotations` maps
    source indices to extra clockwise rotation.
    """
    try:
        target = engine.create()
        blank_size: tuple[float, float] | None = None
        if any(entry is None for entry in plan):
            first = source.get_page(0).get_size()
            blank_size = (first.width, first.height)

        indices = [entry for entry in plan if entry is not None]
        copied = iter(target.copy_pages(source, indices))
        for entry in plan:
            if entry is None:
                target.add_page(blank_size)  # type: ignore[arg-type]
                continue
            page = next(copied)
            extra = (rotations or {}).get(entry, 0)
            if extra:
                page.set_rotation(Rotation.from_degrees(page.rotation % 360).compose(extra))
            target.add_page(page)
        return target.save()
    except EngineIOError:
        raise
    except Exception as exc:
        raise EngineIOError(message="Failed to build PDF") from exc


def _safe_name(value: str) -> str:
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", value).strip("._")
    return cleaned or "untitled"


def _describe(indices: Iterable[int]) -> str:
    """Render 0-based indices as a 1-based range string, e.g. ``"2-4, 7"``."""
    return format_page_ranges(compress_indices(indices))


def _require_pages(source: EngineDocument, *, action: str) -> int:
    total_pages = source.page_count
    if total_pages == 0:
        raise InputValidationError(message=f"PDF has no pages to {action}")
    return total_pages


def merge_documents(engine: PdfEngine, inputs: Sequence[tuple[str, bytes]]) -> OutputDocument:
    """Concatenate every page of every input, in input order.

    Args:
        engine (PdfEngine): PDF engine.
        inputs (Sequence[tuple[str, bytes]]): `(name, bytes)` pairs.

    Raises:
        InputValidationError: If fewer than two inputs are given.
        EngineIOError: If any input fails to load; nothing is produced.

    Returns:
        OutputDocument: Merged document.
    """
    if len(inputs) < 2:
        raise InputValidationError(message="At least 2 PDF files are required to merge")

    sources = [(name, load_document(engine, data, name=name)) for name, data in inputs]
    try:
        target = engine.create()
        for _, source in sources:
            for page in target.copy_pages(source, list(range(source.page_count))):
                target.add_page(page)
        merged = target.save()
    except EngineIOError:
        raise
    except Exception as exc:
        raise EngineIOError(message="Failed to merge PDF files") from exc

    total = sum(source.page_count for _, source in sources)
    logger.info("PDF files merged", extra={"inputs": len(sources), "pages": total, "bytes": len(merged)})
    return OutputDocument(filename="merged.pdf", data=merged, page_indices=list(range(total)))


def extract_pages(engine: PdfEngine, data: bytes, expression: str, *, base_name: str = "document") -> OutputDocument:
    """Copy the pages selected by `expression` into a new document, ascending."""
    require_expression(expression, action="extract")
    source = load_document(engine, data)
    total_pages = _require_pages(source, action="extract")
    indices = validate_selection(parse_page_ranges(expression, total_pages))

    output = _assemble(engine, source, indices)
    logger.info(
        "Pages extracted",
        extra={"selection": _describe(indices), "pages": len(indices), "total_pages": total_pages},
    )
    return OutputDocument(filename=f"{base_name}_extracted.pdf", data=output, page_indices=indices)


def delete_pages(engine: PdfEngine, data: bytes, expression: str, *, base_name: str = "document") -> OutputDocument:
    """Remove the pages selected by `expression`; at least one page must remain."""
    require_expression(expression, action="delete")
    source = load_document(engine, data)
    total_pages = _require_pages(source, action="delete")
    removed = set(validate_delete_selection(parse_page_ranges(expression, total_pages), total_pages))
    kept = [index for index in range(total_pages) if index not in removed]

    output = _assemble(engine, source, kept)
    logger.info(
        "Pages deleted",
        extra={"selection": _describe(removed), "deleted": len(removed), "remaining": len(kept)},
    )
    return OutputDocument(filename=f"{base_name}_pages_removed.pdf", data=output, page_indices=kept)


def split_by_ranges(
    engine: PdfEngine,
    data: bytes,
    expression: str,
    *,
    base_name: str = "document",
) -> list[OutputDocument]:
    """Write one document per range token of `expression`.

    Tokens keep their typed order. A reversed pair such as ``"5-3"`` yields
    pages 5, 4, 3 and the filename ``<base>_pages_5-3.pdf``.

    Raises:
        InputValidationError: If the expression is empty or would not split the document.
        EngineIOError: If the engine fails.

    Returns:
        list[OutputDocument]: One document per range.
    """
    if not expression.strip():
        raise InputValidationError(message='Please enter page ranges (e.g., "1-3, 5, 8-10")')
    source = load_document(engine, data)
    total_pages = _require_pages(source, action="split")
    ranges = validate_split_selection(parse_range_tokens(expression, total_pages), total_pages)

    outputs: list[OutputDocument] = []
    for page_range in ranges:
        indices = page_range.indices(preserve_literal_order=True)
        outputs.append(
            OutputDocument(
                filename=split_filename(base_name, page_range),
                data=_assemble(engine, source, indices),
                page_indices=indices,
            ),
        )
    logger.info("PDF split by ranges", extra={"files": len(outputs), "total_pages": total_pages})
    return outputs


def split_by_size(
    engine: PdfEngine,
    data: bytes,
    max_size: int | str,
    *,
    base_name: str = "document",
    strategy: ProbeStrategy = ProbeStrategy.LINEAR,
    on_progress: ProgressCallback | None = None,
) -> list[OutputDocument]:
    """Write contiguous parts of at most `max_size` bytes each.

    A part whose `byte_size` exceeds the budget holds a single page that was
    too large on its own.

    Args:
        engine (PdfEngine): PDF engine.
        data (bytes): Source PDF.
        max_size (int | str): Budget in bytes, or a size string such as ``"10 MB"``.
        base_name (str): Stem of the output filenames.
        strategy (ProbeStrategy): Candidate growth strategy.
        on_progress (ProgressCallback | None): Progress callback.

    Raises:
        InputValidationError: If the budget is malformed or not positive.
        EngineIOError: If the engine fails.

    Returns:
        list[OutputDocument]: Parts in page order.
    """
    max_bytes = parse_size_to_bytes(max_size) if isinstance(max_size, str) else max_size
    if max_bytes <= 0:
        raise InputValidationError(message="Maximum size must be greater than 0")

    source = load_document(engine, data)
    partitions = partition_by_size(engine, source, max_bytes, strategy=strategy, on_progress=on_progress)
    return [
        OutputDocument(
            filename=f"{base_name}_part_{position}.pdf",
            data=partition.data,
            page_indices=partition.page_indices,
        )
        for position, partition in enumerate(partitions, start=1)
    ]


def split_by_bookmarks(
    engine: PdfEngine,
    reader: OutlineReader,
    data: bytes,
    level: int = 1,
    *,
    base_name: str = "document",
    max_level: int = 10,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> list[OutputDocument]:
    """Write one document per bookmark at `level`.

    Raises:
        InputValidationError: If `level` is out of bounds.
        NoStructureFoundError: If there are no bookmarks, or none at `level`.
        EngineIOError: If the engine fails.

    Returns:
        list[OutputDocument]: One document per bookmark, in page order.
    """
    validate_bookmark_level(level, max_level)
    source = load_document(engine, data)
    total_pages = _require_pages(source, action="split")
    ranges = bookmark_ranges(read_bookmarks(reader, source, timeout=timeout), level, total_pages)

    outputs = [
        OutputDocument(
            filename=f"{base_name}_{position}_{_safe_name(bookmark_range.title)}.pdf",
            data=_assemble(engine, source, bookmark_range.page_indices),
            page_indices=bookmark_range.page_indices,
        )
        for position, bookmark_range in enumerate(ranges, start=1)
    ]
    logger.info("PDF split by bookmarks", extra={"files": len(outputs), "level": level})
    return outputs


def is_permutation(order: Sequence[int], total_pages: int) -> bool:
    """Return whether `order` lists every index of `[0, total_pages)` exactly once."""
    return len(order) == total_pages and sorted(order) == list(range(total_pages))


def reorder_pages(engine: PdfEngine, data: bytes, order: Sequence[int], *, base_name: str = "document") -> OutputDocument:
    """Rebuild the document with its pages in `order`.

    `order` must be a permutation of the page indices; anything else is a
    programming error in the caller.
    """
    source = load_document(engine, data)
    assert is_permutation(order, source.page_count), f"Not a permutation of {source.page_count} pages: {order}"  # noqa: S101

    output = _assemble(engine, source, list(order))
    logger.info("Pages reordered", extra={"pages": len(order)})
    return OutputDocument(filename=f"{base_name}_reordered.pdf", data=output, page_indices=list(order))


def reverse_pages(engine: PdfEngine, data: bytes, *, base_name: str = "document") -> OutputDocument:
    """Rebuild the document with its pages in reverse order."""
    source = load_document(engine, data)
    total_pages = _require_pages(source, action="reverse")
    order = list(range(total_pages - 1, -1, -1))
    output = _assemble(engine, source, order)
    logger.info("Pages reversed", extra={"pages": total_pages})
    return OutputDocument(filename=f"{base_name}_reversed.pdf", data=output, page_indices=order)


def rotate_pages(
    engine: PdfEngine,
    data: bytes,
    rotations: Mapping[int, int],
    *,
    base_name: str = "document",
) -> OutputDocument:
    """Add a quarter-turn rotation to selected pages.

    Rotations add to each page's existing rotation, modulo 360.

    Args:
        engine (PdfEngine): PDF engine.
        data (bytes): Source PDF.
        rotations (Mapping[int, int]): 0-based page index -> 0, 90, 180 or 270.
        base_name (str): Stem of the output filename.

    Raises:
        InputValidationError: If no page is selected, an angle is invalid or a page does not exist.
        EngineIOError: If the engine fails.

    Returns:
        OutputDocument: Rotated document.
    """
    if not rotations:
        raise InputValidationError(message="Please select at least one page to rotate")
    try:
        angles = {index: int(Rotation.from_degrees(angle)) for index, angle in rotations.items()}
    except ValueError as exc:
        raise InputValidationError(message=str(exc)) from exc

    source = load_document(engine, data)
    total_pages = source.page_count
    for index in angles:
        if not 0 <= index < total_pages:
            raise InputValidationError(message=f"Invalid page number: {index + 1}")

    order = list(range(total_pages))
    output = _assemble(engine, source, order, rotations=angles)
    logger.info("Pages rotated", extra={"rotated": sum(1 for angle in angles.values() if angle)})
    return OutputDocument(filename=f"{base_name}_rotated.pdf", data=output, page_indices=order)


def insertion_plan(
    total_pages: int,
    position: InsertPosition,
    count: int,
    after_page: int | None = None,
) -> PagePlan:
    """Return the page plan for inserting `count` blank pages.

    Args:
        total_pages (int): Pages in the source document.
        position (InsertPosition): Where to insert.
        count (int): Number of blank pages.
        after_page (int | None): 1-based page preceding the blanks, for `AFTER`.

    Raises:
        InputValidationError: If `after_page` is missing or outside `[1, total_pages]`.

    Returns:
        PagePlan: Source indices with None marking blank pages.
    """
    blanks: PagePlan = [None] * count
    originals: PagePlan = list(range(total_pages))
    if position == InsertPosition.BEGINNING:
        return blanks + originals
    if position == InsertPosition.END:
        return originals + blanks
    if after_page is None or not 1 <= after_page <= total_pages:
        raise InputValidationError(message=f"Page number must be between 1 and {total_pages}")
    return originals[:after_page] + blanks + originals[after_page:]


def insert_blank_pages(
    engine: PdfEngine,
    data: bytes,
    position: InsertPosition,
    count: int,
    *,
    after_page: int | None = None,
    max_count: int = DEFAULT_MAX_BLANK_PAGES,
    base_name: str = "document",
) -> OutputDocument:
    """Insert blank pages sized like the first page of the document."""
    if not 1 <= count <= max_count:
        raise InputValidationError(message=f"Number of pages must be between 1 and {max_count}")

    source = load_document(engine, data)
    total_pages = _require_pages(source, action="extend")
    plan = insertion_plan(total_pages, position, count, after_page)

    output = _assemble(engine, source, plan)
    logger.info("Blank pages inserted", extra={"count": count, "position": position.to_str()})
    return OutputDocument(
        filename=f"{base_name}_with_blank_pages.pdf",
        data=output,
        page_indices=[entry for entry in plan if entry is not None],
    )


def duplication_plan(total_pages: int, selected: Sequence[int], copies: int) -> list[int]:
    """Return page order with each selected page followed by `copies` duplicates."""
    chosen = set(selected)
    order: list[int] = []
    for index in range(total_pages):
        order.append(index)
        if index in chosen:
            order.extend([index] * copies)
    return order


def duplicate_pages(
    engine: PdfEngine,
    data: bytes,
    expression: str,
    copies: int = 1,
    *,
    max_copies: int = DEFAULT_MAX_COPIES,
    base_name: str = "document",
) -> OutputDocument:
    """Insert `copies` duplicates right after each selected page."""
    require_expression(expression, action="duplicate")
    if not 1 <= copies <= max_copies:
        raise InputValidationError(message=f"Number of copies must be between 1 and {max_copies}")

    source = load_document(engine, data)
    total_pages = _require_pages(source, action="duplicate")
    selected = validate_selection(parse_page_ranges(expression, total_pages))
    order = duplication_plan(total_pages, selected, copies)

    output = _assemble(engine, source, order)
    logger.info("Pages duplicated", extra={"selection": _describe(selected), "copies": copies})
    return OutputDocument(filename=f"{base_name}_duplicated.pdf", data=output, page_indices=order)


def redact_pages(
    engine: PdfEngine,
    data: bytes,
    areas: Sequence[RedactionArea],
    *,
    base_name: str = "document",
) -> OutputDocument:
    """Paint opaque black boxes over the given areas.

    Areas on pages that do not exist are skipped.
    """
    if not areas:
        raise InputValidationError(message="No redaction areas specified")

    document = load_document(engine, data)
    total_pages = document.page_count
    applied = 0
    try:
        for area in areas:
            if not 0 <= area.page_index < total_pages:
                logger.warning("Skipping redaction on missing page", extra={"page_index": area.page_index})
                continue
            page = document.get_page(area.page_index)
            page.redact(normalized_rect_to_pdf_space(area.rect, page.get_size()), color=_REDACTION_COLOR)
            applied += 1
        output = document.save()
    except EngineIOError:
        raise
    except Exception as exc:
        raise EngineIOError(message="Failed to redact PDF") from exc

    logger.info("Redactions applied", extra={"applied": applied, "requested": len(areas)})
    return OutputDocument(filename=f"{base_name}_redacted.pdf", data=output, page_indices=list(range(total_pages)))


def sign_page(
    engine: PdfEngine,
    data: bytes,
    placement: SignaturePlacement,
    *,
    base_name: str = "document",
) -> OutputDocument:
    """Draw a signature centred on `placement.anchor`.

    Image signatures shrink to fit `width` x `height` without being enlarged;
    typed signatures are centred using the measured text width.
    """
    if placement.kind == SignatureKind.TYPE:
        if not (placement.text or "").strip():
            raise InputValidationError(message="Signature data is required")
    elif not placement.image:
        raise InputValidationError(message="Signature data is required")

    document = load_document(engine, data)
    total_pages = document.page_count
    if placement.page_index >= total_pages:
        raise InputValidationError(
            message=f"Page number {placement.page_index + 1} exceeds total pages ({total_pages})",
        )

    try:
        page = document.get_page(placement.page_index)
        page_size = page.get_size()
        if placement.kind == SignatureKind.TYPE:
            text = placement.text or ""
            text_width = engine.text_width(text, font=placement.font, font_size=placement.font_size)
            origin = center_anchored_origin(
                normalized_to_pdf_space(placement.anchor, page_size),
                text_width,
                placement.font_size,
            )
            page.draw_text(text, origin, font=placement.font, font_size=placement.font_size)
        else:
            image = placement.image or b""
            image_width, image_height = engine.image_size(image)
            scale = min(placement.width / image_width, placement.height / image_height, 1.0)
            page.draw_image(image, place_centered(placement.anchor, page_size, image_width * scale, image_height * scale))
        output = document.save()
    except EngineIOError:
        raise
    except Exception as exc:
        raise EngineIOError(message="Failed to sign PDF") from exc

    logger.info("Signature placed", extra={"page_index": placement.page_index, "kind": placement.kind.to_str()})
    return OutputDocument(filename=f"{base_name}_signed.pdf", data=output, page_indices=list(range(total_pages)))
