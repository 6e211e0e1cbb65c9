"""Outline (bookmark tree) extraction and bookmark-driven page ranges."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pagesmith.async_runner import call_with_timeout
from pagesmith.exceptions import AsyncExecutionError, InputValidationError, NoStructureFoundError
from pagesmith.logging import get_logger
from pagesmith.typing.models import BookmarkInfo, BookmarkNode, BookmarkRange

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pagesmith.typing.models import OutlineItem
    from pagesmith.typing.protocol import EngineDocument, OutlineReader

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


def _resolve_page_index(reader: OutlineReader, document: EngineDocument, item: OutlineItem, level: int) -> int | None:
    """Resolve one outline destination, or return None when it cannot be resolved."""
    if item.destination is None:
        return None
    try:
        page_index = reader.resolve_destination(document, item.destination)
    except Exception as exc:  # noqa: BLE001
        logger.warning(
            "Could not resolve bookmark destination, using page 1",
            extra={"title": item.title, "level": level, "error": str(exc)},
        )
        return None
    if page_index < 0:
        return None
    return page_index


def _build_nodes(
    reader: OutlineReader,
    document: EngineDocument,
    items: Iterable[OutlineItem],
    level: int,
) -> list[BookmarkNode]:
    nodes: list[BookmarkNode] = []
    for item in items:
        page_index = _resolve_page_index(reader, document, item, level)
        nodes.append(
            BookmarkNode(
                title=item.title or "Untitled",
                page_index=page_index if page_index is not None else 0,
                level=level,
                resolved=page_index is not None,
                children=_build_nodes(reader, document, item.children, level + 1),
            ),
        )
    return nodes


def extract_bookmarks(reader: OutlineReader, document: EngineDocument) -> list[BookmarkNode]:
    """Build the bookmark tree of a document.

    A destination that cannot be resolved does not abort extraction: the node
    points at page 0 and is marked `resolved=False`.

    Args:
        reader (OutlineReader): Outline reader.
        document (EngineDocument): Loaded document.

    Returns:
        list[BookmarkNode]: Top-level bookmarks, levels starting at 1.
    """
    return _build_nodes(reader, document, reader.get_outline(document), 1)


def read_bookmarks(
    reader: OutlineReader,
    document: EngineDocument,
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> list[BookmarkNode]:
    """Extract bookmarks within a wall-clock budget.

    Timeouts and reader failures are reported as an empty outline.

    Args:
        reader (OutlineReader): Outline reader.
        document (EngineDocument): Loaded document.
        timeout (float): Budget in seconds.

    Returns:
        list[BookmarkNode]: Top-level bookmarks, or an empty list.
    """
    try:
        return call_with_timeout(extract_bookmarks, reader, document, timeout=timeout)
    except TimeoutError:
        logger.warning("Bookmark extraction timed out", extra={"timeout_seconds": timeout})
    except AsyncExecutionError as exc:
        logger.warning("Bookmark extraction failed", extra={"error": str(exc.result)})
    except Exception as exc:  # noqa: BLE001
        logger.warning("Bookmark extraction failed", extra={"error": str(exc)})
    return []


def flatten_bookmarks(bookmarks: Iterable[BookmarkNode]) -> list[BookmarkNode]:
    """Flatten a bookmark tree in pre-order.

    Args:
        bookmarks (Iterable[BookmarkNode]): Top-level bookmarks.

    Returns:
        list[BookmarkNode]: Every node, parents before their children.
    """
    flat: list[BookmarkNode] = []
    for bookmark in bookmarks:
        flat.append(bookmark)
        flat.extend(flatten_bookmarks(bookmark.children))
    return flat


def available_levels(bookmarks: Iterable[BookmarkNode]) -> list[int]:
    """Return the distinct levels present in a bookmark tree, ascending."""
    return sorted({bookmark.level for bookmark in flatten_bookmarks(bookmarks)})


def summarize_bookmarks(bookmarks: list[BookmarkNode]) -> BookmarkInfo:
    """Summarize a bookmark tree for level selection."""
    if not bookmarks:
        return BookmarkInfo(has_bookmarks=False)
    flat = flatten_bookmarks(bookmarks)
    return BookmarkInfo(
        has_bookmarks=True,
        levels=available_levels(bookmarks),
        count=len(flat),
        unresolved=sum(1 for bookmark in flat if not bookmark.resolved),
        bookmarks=flat,
    )


def get_bookmark_info(
    reader: OutlineReader,
    document: EngineDocument,
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> BookmarkInfo:
    """Return the outline summary of a document, bounded by `timeout` seconds."""
    return summarize_bookmarks(read_bookmarks(reader, document, timeout=timeout))


def validate_bookmark_level(level: int, max_level: int) -> int:
    """Reject levels outside `[1, max_level]`.

    Raises:
        InputValidationError: If the level is out of bounds.

    Returns:
        int: The level, unchanged.
    """
    if level < 1 or level > max_level:
        raise InputValidationError(message=f"Bookmark level must be between 1 and {max_level}")
    return level


def _missing_level_error(level: int, levels: list[int]) -> NoStructureFoundError:
    if level > levels[-1]:
        message = f"No bookmarks found at level {level}. Maximum level in this PDF is {levels[-1]}."
    elif level < levels[0]:
        message = f"No bookmarks found at level {level}. Minimum level in this PDF is {levels[0]}."
    else:
        available = ", ".join(str(value) for value in levels)
        message = f"No bookmarks found at level {level}. Available levels: {available}"
    return NoStructureFoundError(message=message, available_levels=levels)


def bookmark_ranges(bookmarks: list[BookmarkNode], level: int, total_pages: int) -> list[BookmarkRange]:
    """Turn the bookmarks of one level into contiguous page ranges.

    Each bookmark owns the pages from its own page up to the page before the
    next bookmark of the same level; the last one runs to the end of the
    document. Pages before the first bookmark are not covered. When two
    bookmarks share a page the earlier one keeps just that page.

    Args:
        bookmarks (list[BookmarkNode]): Top-level bookmarks.
        level (int): Level to split at, 1 being the top.
        total_pages (int): Number of pages in the document.

    Raises:
        NoStructureFoundError: If the document has no bookmarks, or none at `level`.

    Returns:
        list[BookmarkRange]: Ranges sorted by start page.
    """
    flat = flatten_bookmarks(bookmarks)
    if not flat:
        raise NoStructureFoundError(
            message="No bookmarks found in PDF. Please ensure your PDF has bookmarks/outline structure.",
        )

    at_level = [bookmark for bookmark in flat if bookmark.level == level]
    if not at_level:
        raise _missing_level_error(level, available_levels(bookmarks))

    at_level.sort(key=lambda bookmark: bookmark.page_index)
    last_page = total_pages - 1

    ranges: list[BookmarkRange] = []
    for position, bookmark in enumerate(at_level):
        start = max(0, min(bookmark.page_index, last_page))
        if position + 1 < len(at_level):
            end = max(start, min(at_level[position + 1].page_index - 1, last_page))
        else:
            end = last_page
        ranges.append(BookmarkRange(title=bookmark.title, start=start, end=end, resolved=bookmark.resolved))

    unresolved = [item.title for item in ranges if not item.resolved]
    if unresolved:
        logger.warning(
            "Unresolved bookmarks were assigned to page 1",
            extra={"titles": unresolved, "level": level},
        )
    return ranges
