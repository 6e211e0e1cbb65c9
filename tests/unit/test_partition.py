from __future__ import annotations

import pytest

from pagesmith.exceptions import EngineIOError, InputValidationError
from pagesmith.partition import format_bytes, parse_size_to_bytes, partition_by_size, serialize_pages
from pagesmith.typing.enums import ProbeStrategy

MB = 1024 * 1024


def _covered(partitions) -> list[int]:
    return [index for partition in partitions for index in partition.page_indices]


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("10 MB", 10 * MB),
        ("10mb", 10 * MB),
        ("1.5 KB", 1536),
        ("2GB", 2 * 1024 * MB),
        ("512", 512),
        ("512 b", 512),
    ],
)
def test_parse_size_to_bytes(text: str, expected: int) -> None:
    assert parse_size_to_bytes(text) == expected


@pytest.mark.parametrize("text", ["", "ten MB", "10 TB", "-1 MB", "1,5 MB", "9" * 400 + " GB"])
def test_parse_size_to_bytes_rejects_malformed_sizes(text: str) -> None:
    with pytest.raises(InputValidationError, match="Invalid size format"):
        parse_size_to_bytes(text)


def test_parse_size_to_bytes_rejects_zero() -> None:
    with pytest.raises(InputValidationError, match="greater than 0"):
        parse_size_to_bytes("0 KB")


def test_format_bytes() -> None:
    assert format_bytes(0) == "0 B"
    assert format_bytes(512) == "512.00 B"
    assert format_bytes(1536) == "1.50 KB"
    assert format_bytes(3 * MB) == "3.00 MB"


def test_document_under_budget_is_returned_whole(fake_engine) -> None:
    source = fake_engine.load(fake_engine.make_pdf(4))

    partitions = partition_by_size(fake_engine, source, 10 * MB)

    assert len(partitions) == 1
    assert partitions[0].page_indices == [0, 1, 2, 3]
    assert fake_engine.save_calls == 1


def test_three_large_pages_produce_one_partition_each(fake_engine) -> None:
    source = fake_engine.load(fake_engine.make_pdf(3, weights=[9 * MB, 9 * MB, 9 * MB]))

    partitions = partition_by_size(fake_engine, source, 10 * MB)

    assert [partition.page_indices for partition in partitions] == [[0], [1], [2]]
    assert all(partition.byte_size <= 10 * MB for partition in partitions)
    assert not any(partition.over_budget for partition in partitions)


def test_single_oversized_page_is_flagged(fake_engine) -> None:
    source = fake_engine.load(fake_engine.make_pdf(1, weights=[15 * MB]))

    partitions = partition_by_size(fake_engine, source, 10 * MB)

    assert len(partitions) == 1
    assert partitions[0].page_indices == [0]
    assert partitions[0].over_budget is True


def test_oversized_page_in_the_middle_ships_alone(fake_engine) -> None:
    source = fake_engine.load(fake_engine.make_pdf(5, weights=[300, 300, 5000, 300, 300]))

    partitions = partition_by_size(fake_engine, source, 1000)

    assert [partition.page_indices for partition in partitions] == [[0, 1], [2], [3, 4]]
    assert [partition.over_budget for partition in partitions] == [False, True, False]


@pytest.mark.parametrize("strategy", [ProbeStrategy.LINEAR, ProbeStrategy.BISECT])
def test_partitions_cover_every_page_in_order_within_budget(fake_engine, strategy: ProbeStrategy) -> None:
    weights = [120, 80, 400, 60, 60, 60, 900, 30, 250, 10, 10, 700]
    source = fake_engine.load(fake_engine.make_pdf(len(weights), weights=weights))

    partitions = partition_by_size(fake_engine, source, 1000, strategy=strategy)

    assert _covered(partitions) == list(range(len(weights)))
    for partition in partitions:
        assert partition.byte_size == len(partition.data)
        assert partition.byte_size <= 1000 or len(partition.page_indices) == 1


def test_bisect_matches_linear_grouping(make_engine) -> None:
    weights = [50] * 40
    linear_engine = make_engine()
    bisect_engine = make_engine()

    linear = partition_by_size(
        linear_engine,
        linear_engine.load(linear_engine.make_pdf(40, weights=weights)),
        640,
    )
    bisect = partition_by_size(
        bisect_engine,
        bisect_engine.load(bisect_engine.make_pdf(40, weights=weights)),
        640,
        strategy=ProbeStrategy.BISECT,
    )

    assert [p.page_indices for p in linear] == [p.page_indices for p in bisect]
    assert [len(p.page_indices) for p in linear] == [11, 11, 11, 7]
    assert bisect_engine.save_calls < linear_engine.save_calls


def test_size_is_measured_not_summed(make_engine) -> None:
    engine = make_engine(size_of=lambda pages: 500 + 10 * len(pages))
    source = engine.load(engine.make_pdf(20))

    partitions = partition_by_size(engine, source, 600)

    assert [len(partition.page_indices) for partition in partitions] == [10, 10]


def test_progress_callback_reports_pages_done(fake_engine) -> None:
    source = fake_engine.load(fake_engine.make_pdf(4, weights=[600, 600, 600, 600]))
    progress: list[tuple[int, int]] = []

    partition_by_size(fake_engine, source, 1000, on_progress=lambda done, total: progress.append((done, total)))

    assert progress == [(1, 4), (2, 4), (3, 4), (4, 4)]


def test_partition_rejects_invalid_budget_and_empty_document(fake_engine) -> None:
    source = fake_engine.load(fake_engine.make_pdf(2))
    with pytest.raises(InputValidationError, match="greater than 0"):
        partition_by_size(fake_engine, source, 0)

    empty = fake_engine.load(fake_engine.make_pdf(0))
    with pytest.raises(InputValidationError, match="no pages"):
        partition_by_size(fake_engine, empty, 1000)


def test_serialize_pages_wraps_engine_failures(fake_engine, mocker) -> None:
    source = fake_engine.load(fake_engine.make_pdf(2))
    mocker.patch.object(fake_engine, "create", side_effect=RuntimeError("disk full"))

    with pytest.raises(EngineIOError, match="Failed to serialize"):
        serialize_pages(fake_engine, source, [0, 1])
