"""Page range expressions such as ``"1-3, 5, 8-10"``.

Parsing is lenient: bounds are clamped into the document, tokens that do not
parse are skipped, so a half-typed expression never errors. Rejections live in
the `validate_*` helpers, applied by the tools that need them.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from pagesmith.exceptions import InputValidationError
from pagesmith.typing.models import PageRange

if TYPE_CHECKING:
    from collections.abc import Iterable

_TOKEN_PATTERN = re.compile(r"^(\d+)(?:\s*-\s*(\d+))?$")


def _clamp_page_number(value: int, total_pages: int) -> int:
    """Clamp a 1-based page number into `[1, total_pages]`."""
    return max(1, min(value, total_pages))


def parse_range_tokens(text: str, total_pages: int) -> list[PageRange]:
    """Parse an expression into one range per token, in typed order.

    Reversed pairs keep their literal bounds; callers decide whether that
    means a descending walk or just the same set.

    Args:
        text (str): Comma-separated page numbers and `start-end` pairs, 1-based.
        total_pages (int): Number of pages in the document.

    Returns:
        list[PageRange]: Parsed ranges with 0-based bounds.
    """
    if total_pages <= 0:
        return []

    ranges: list[PageRange] = []
    for raw_token in text.split(","):
        match = _TOKEN_PATTERN.match(raw_token.strip())
        if match is None:
            continue
        start = _clamp_page_number(int(match.group(1)), total_pages)
        end = _clamp_page_number(int(match.group(2)), total_pages) if match.group(2) else start
        ranges.append(PageRange(start=start - 1, end=end - 1))
    return ranges


def parse_page_ranges(
    text: str,
    total_pages: int,
    *,
    preserve_literal_order: bool = False,
) -> list[int]:
    """Parse an expression into deduplicated 0-based page indices.

    Args:
        text (str): Range expression, 1-based.
        total_pages (int): Number of pages in the document.
        preserve_literal_order (bool): Keep typed order (and descending walks
            for reversed pairs) instead of sorting ascending.

    Returns:
        list[int]: Page indices, each appearing once.
    """
    indices: list[int] = []
    seen: set[int] = set()
    for page_range in parse_range_tokens(text, total_pages):
        for index in page_range.indices(preserve_literal_order=preserve_literal_order):
            if index not in seen:
                seen.add(index)
                indices.append(index)
    if not preserve_literal_order:
        indices.sort()
    return indices


def format_page_ranges(ranges: Iterable[PageRange]) -> str:
    """Render ranges back to a 1-based expression.

    Args:
        ranges (Iterable[PageRange]): Ranges to render.

    Returns:
        str: Expression such as ``"1-3, 5"``.
    """
    parts: list[str] = []
    for page_range in ranges:
        if page_range.start == page_range.end:
            parts.append(f"{page_range.start + 1}")
        else:
            parts.append(f"{page_range.start + 1}-{page_range.end + 1}")
    return ", ".join(parts)


def compress_indices(indices: Iterable[int]) -> list[PageRange]:
    """Group sorted, unique indices into maximal consecutive ranges."""
    ranges: list[PageRange] = []
    ordered = sorted(set(indices))
    if not ordered:
        return ranges
    start = previous = ordered[0]
    for index in ordered[1:]:
        if index != previous + 1:
            ranges.append(PageRange(start=start, end=previous))
            start = index
        previous = index
    ranges.append(PageRange(start=start, end=previous))
    return ranges


def require_expression(text: str, *, action: str) -> None:
    """Reject an empty expression before the document is loaded.

    Raises:
        InputValidationError: If `text` is blank.
    """
    if not text.strip():
        raise InputValidationError(message=f"Please specify which pages to {action}")


def validate_selection(indices: list[int]) -> list[int]:
    """Reject an expression that selected nothing.

    Raises:
        InputValidationError: If no index was parsed.

    Returns:
        list[int]: The indices, unchanged.
    """
    if not indices:
        raise InputValidationError(message="No valid pages found in the specified range")
    return indices


def validate_split_selection(ranges: list[PageRange], total_pages: int) -> list[PageRange]:
    """Reject range selections that would not split anything.

    A split must not reproduce the input as a single file: one range covering
    every page is rejected, as is any lone range set whose union is the
    whole document.

    Args:
        ranges (list[PageRange]): Parsed ranges, one per output file.
        total_pages (int): Number of pages in the document.

    Raises:
        InputValidationError: If the selection is empty or is the full document in one range.

    Returns:
        list[PageRange]: The ranges, unchanged.
    """
    if not ranges:
        raise InputValidationError(message="No valid pages found in the specified range")

    if len(ranges) == 1:
        covered = {index for page_range in ranges for index in page_range.indices()}
        if len(covered) == total_pages:
            raise InputValidationError(
                message=(
                    f"You selected all {total_pages} pages in one range. To split a PDF, specify "
                    'multiple ranges separated by commas, for example "1-3, 5-7".'
                ),
            )
    return ranges


def validate_delete_selection(indices: list[int], total_pages: int) -> list[int]:
    """Reject deletions that would leave no page.

    Raises:
        InputValidationError: If nothing or everything is selected.

    Returns:
        list[int]: The indices, unchanged.
    """
    validate_selection(indices)
    if len(set(indices)) >= total_pages:
        raise InputValidationError(
            message=f"Cannot delete all {total_pages} pages. At least one page must remain.",
        )
    return indices


def split_filename(base_name: str, page_range: PageRange) -> str:
    """Return the output filename for one split range.

    Args:
        base_name (str): Input file name without extension.
        page_range (PageRange): Range as typed.

    Returns:
        str: ``<base>_page_<n>.pdf`` or ``<base>_pages_<a>-<b>.pdf``.
    """
    if page_range.start == page_range.end:
        return f"{base_name}_page_{page_range.start + 1}.pdf"
    return f"{base_name}_pages_{page_range.start + 1}-{page_range.end + 1}.pdf"
