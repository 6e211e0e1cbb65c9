"""Split a document into contiguous groups under a byte budget.

Serialized PDF size is not additive across pages (shared fonts and images,
compression, object streams), so groups are sized by actually serializing
candidates through the engine and measuring the bytes.

`ProbeStrategy.LINEAR` grows a group one page at a time, costing O(n^2)
serializations in the worst case. `ProbeStrategy.BISECT` grows the probe
length exponentially then binary-searches the largest fitting prefix, which
needs O(log n) serializations per group but assumes size grows with length.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable
from typing import TYPE_CHECKING

from pagesmith.exceptions import EngineIOError, InputValidationError
from pagesmith.logging import get_logger
from pagesmith.typing.enums import ProbeStrategy
from pagesmith.typing.models import SizePartition

if TYPE_CHECKING:
    from collections.abc import Sequence

    from pagesmith.typing.protocol import EngineDocument, PdfEngine

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int], None]

_SIZE_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)\s*(B|KB|MB|GB)?$")
_UNIT_FACTORS = {
    "B": 1,
    "KB": 1024,
    "MB": 1024 * 1024,
    "GB": 1024 * 1024 * 1024,
}


def parse_size_to_bytes(size: str) -> int:
    """Convert a size string such as ``"10 MB"`` to bytes.

    Units are binary multiples; a bare number means bytes.

    Args:
        size (str): Size string.

    Raises:
        InputValidationError: If the string is malformed or not positive.

    Returns:
        int: Size in bytes, rounded down.
    """
    match = _SIZE_PATTERN.match(size.strip().upper())
    if match is None:
        raise InputValidationError(message=f"Invalid size format: {size}")
    amount = float(match.group(1)) * _UNIT_FACTORS[match.group(2) or "B"]
    if not math.isfinite(amount):
        raise InputValidationError(message=f"Invalid size format: {size}")
    value = int(amount)
    if value <= 0:
        raise InputValidationError(message="Maximum size must be greater than 0")
    return value


def format_bytes(size: int) -> str:
    """Render a byte count for humans, e.g. ``"1.50 MB"``."""
    if size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB"]
    value = float(size)
    unit_index = 0
    while value >= 1024 and unit_index < len(units) - 1:
        value /= 1024
        unit_index += 1
    return f"{value:.2f} {units[unit_index]}"


def serialize_pages(engine: PdfEngine, source: EngineDocument, indices: Sequence[int]) -> bytes:
    """Copy `indices` of `source` into a fresh document and serialize it.

    Args:
        engine (PdfEngine): PDF engine.
        source (EngineDocument): Source document.
        indices (Sequence[int]): Page indices, in output order.

    Raises:
        EngineIOError: If the engine fails to copy or save.

    Returns:
        bytes: Serialized document.
    """
    try:
        target = engine.create()
        for page in target.copy_pages(source, list(indices)):
            target.add_page(page)
        return target.save()
    except EngineIOError:
        raise
    except Exception as exc:
        raise EngineIOError(message=f"Failed to serialize pages {list(indices)}") from exc


class _Prober:
    """Serializes candidate prefixes and counts engine round-trips."""

    def __init__(self, engine: PdfEngine, source: EngineDocument) -> None:
        self._engine = engine
        self._source = source
        self.calls = 0

    def probe(self, start: int, stop: int) -> bytes:
        self.calls += 1
        return serialize_pages(self._engine, self._source, range(start, stop))


def _make_partition(start: int, stop: int, data: bytes, max_bytes: int) -> SizePartition:
    partition = SizePartition(
        page_indices=list(range(start, stop)),
        byte_size=len(data),
        max_bytes=max_bytes,
        data=data,
    )
    if partition.over_budget:
        logger.warning(
            "Single page exceeds size budget",
            extra={"page_index": start, "byte_size": partition.byte_size, "max_bytes": max_bytes},
        )
    else:
        logger.debug(
            "Partition flushed",
            extra={"first_page": start, "pages": stop - start, "byte_size": partition.byte_size},
        )
    return partition


def _next_group_linear(prober: _Prober, start: int, total_pages: int, max_bytes: int) -> tuple[int, bytes]:
    """Grow a group from `start` one page at a time.

    Returns:
        tuple[int, bytes]: Exclusive end of the group and its payload.
    """
    committed: bytes | None = None
    cursor = start
    while cursor < total_pages:
        candidate = prober.probe(start, cursor + 1)
        if len(candidate) <= max_bytes:
            committed = candidate
            cursor += 1
            continue
        if committed is None:
            # A lone page over budget still ships, as its own group.
            return cursor + 1, candidate
        break
    if committed is None:  # pragma: no cover - loop always runs at least once
        raise EngineIOError(message="Size partitioning made no progress")
    return cursor, committed


def _next_group_bisect(prober: _Prober, start: int, total_pages: int, max_bytes: int) -> tuple[int, bytes]:
    """Find the longest fitting group from `start` by galloping then bisecting.

    Returns:
        tuple[int, bytes]: Exclusive end of the group and its payload.
    """
    single = prober.probe(start, start + 1)
    if len(single) > max_bytes:
        return start + 1, single

    best_length, best_data = 1, single
    remaining = total_pages - start
    length = 2
    upper: int | None = None
    while best_length < remaining:
        length = min(length, remaining)
        candidate = prober.probe(start, start + length)
        if len(candidate) > max_bytes:
            upper = length
            break
        best_length, best_data = length, candidate
        length *= 2

    if upper is not None:
        low, high = best_length + 1, upper - 1
        while low <= high:
            middle = (low + high) // 2
            candidate = prober.probe(start, start + middle)
            if len(candidate) <= max_bytes:
                best_length, best_data = middle, candidate
                low = middle + 1
            else:
                high = middle - 1

    return start + best_length, best_data


def partition_by_size(
    engine: PdfEngine,
    source: EngineDocument,
    max_bytes: int,
    *,
    strategy: ProbeStrategy = ProbeStrategy.LINEAR,
    on_progress: ProgressCallback | None = None,
) -> list[SizePartition]:
    """Partition `source` into contiguous groups of at most `max_bytes` each.

    Groups cover every page exactly once, in order. A page that alone exceeds
    the budget forms its own group, flagged by `SizePartition.over_budget`.

    Args:
        engine (PdfEngine): PDF engine used as the size oracle.
        source (EngineDocument): Loaded source document.
        max_bytes (int): Budget per group.
        strategy (ProbeStrategy): How candidate groups are grown.
        on_progress (ProgressCallback | None): Called with `(pages_done, total_pages)`
            after each group.

    Raises:
        InputValidationError: If the budget is not positive or the document is empty.
        EngineIOError: If a serialization fails.

    Returns:
        list[SizePartition]: Groups in page order.
    """
    if max_bytes <= 0:
        raise InputValidationError(message="Maximum size must be greater than 0")

    total_pages = source.page_count
    if total_pages == 0:
        raise InputValidationError(message="PDF has no pages to split")

    prober = _Prober(engine, source)
    whole = prober.probe(0, total_pages)
    if len(whole) <= max_bytes:
        logger.info("Document already under size budget", extra={"byte_size": len(whole), "max_bytes": max_bytes})
        if on_progress is not None:
            on_progress(total_pages, total_pages)
        return [_make_partition(0, total_pages, whole, max_bytes)]

    next_group = _next_group_bisect if strategy == ProbeStrategy.BISECT else _next_group_linear
    partitions: list[SizePartition] = []
    start = 0
    while start < total_pages:
        stop, data = next_group(prober, start, total_pages, max_bytes)
        partitions.append(_make_partition(start, stop, data, max_bytes))
        start = stop
        if on_progress is not None:
            on_progress(start, total_pages)

    logger.info(
        "Size partitioning completed",
        extra={
            "partitions": len(partitions),
            "over_budget": sum(1 for partition in partitions if partition.over_budget),
            "serializations": prober.calls,
            "strategy": strategy.to_str(),
        },
    )
    return partitions
