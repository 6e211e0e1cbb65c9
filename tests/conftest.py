"""Pytest marker auto-assignment by folder and in-memory PDF fakes."""

from __future__ import annotations

import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from pagesmith import logger
from pagesmith.typing.models import OutlineItem, PdfPageSize


def _mark_tests_by_directory(
    config: pytest.Config,
    items: list[pytest.Item],
    marker: str,
) -> None:
    """Mark collected tests located under tests/<marker>/."""
    target_dir = Path(config.rootpath) / "tests" / marker
    target_dir = target_dir.resolve()

    for item in items:
        try:
            path = Path(str(item.fspath)).resolve()
        except Exception:
            logger.warning(
                f"Could not resolve path for test item {item.name!s}; skipping {marker!s} marker assignment",
            )
            continue

        if path == target_dir or target_dir in path.parents:
            item.add_marker(getattr(pytest.mark, marker))


def pytest_collection_modifyitems(
    config: pytest.Config,
    items: list[pytest.Item],
) -> None:
    """Apply directory-based markers to test items."""
    _mark_tests_by_directory(config, items, "unit")
    _mark_tests_by_directory(config, items, "integration")
    _mark_tests_by_directory(config, items, "end2end")


class FakePage:
    """Page whose serialized weight is known up front."""

    def __init__(
        self,
        label: str,
        *,
        weight: int = 100,
        width: float = 612.0,
        height: float = 792.0,
        rotation: int = 0,
    ) -> None:
        self.label = label
        self.weight = weight
        self.width = width
        self.height = height
        self._rotation = rotation
        self.drawings: list[tuple[Any, ...]] = []

    @property
    def rotation(self) -> int:
        return self._rotation

    def set_rotation(self, angle: int) -> None:
        self._rotation = angle % 360

    def get_size(self) -> PdfPageSize:
        return PdfPageSize(width=self.width, height=self.height)

    def redact(self, rect, *, color) -> None:
        self.drawings.append(("redact", rect, color))

    def draw_image(self, image, rect) -> None:
        self.drawings.append(("image", rect, image))

    def draw_text(self, text, origin, *, font, font_size) -> None:
        self.drawings.append(("text", origin, text, font, font_size))

    def clone(self) -> FakePage:
        page = FakePage(
            self.label,
            weight=self.weight,
            width=self.width,
            height=self.height,
            rotation=self._rotation,
        )
        page.drawings = list(self.drawings)
        return page


class FakeDocument:
    def __init__(self, engine: FakeEngine, pages: list[FakePage] | None = None) -> None:
        self._engine = engine
        self.pages = pages or []

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def get_page(self, index: int) -> FakePage:
        return self.pages[index]

    def copy_pages(self, source: FakeDocument, indices) -> list[FakePage]:
        return [source.pages[index].clone() for index in indices]

    def add_page(self, page) -> FakePage:
        if isinstance(page, tuple):
            width, height = page
            page = FakePage("blank", weight=10, width=width, height=height)
        self.pages.append(page)
        return page

    def save(self) -> bytes:
        return self._engine.register(self.pages)


class FakeEngine:
    """PDF engine keeping documents in memory.

    Saved bytes are padded to `size_of(pages)` so payload length acts as the
    serialized size; loading them back returns the saved pages.
    """

    def __init__(
        self,
        size_of: Callable[[list[FakePage]], int] | None = None,
        *,
        image_dimensions: tuple[int, int] = (400, 100),
    ) -> None:
        self.size_of = size_of or (lambda pages: 64 + sum(page.weight for page in pages))
        self.image_dimensions = image_dimensions
        self.save_calls = 0
        self.load_calls = 0
        self._serial = 0
        self._documents: dict[bytes, list[FakePage]] = {}

    def register(self, pages: list[FakePage]) -> bytes:
        self.save_calls += 1
        self._serial += 1
        prefix = f"%FAKE-{self._serial}:".encode()
        data = prefix + b"\0" * max(0, self.size_of(pages) - len(prefix))
        self._documents[data] = [page.clone() for page in pages]
        return data

    def make_pdf(
        self,
        page_count: int = 3,
        *,
        weights: list[int] | None = None,
        width: float = 612.0,
        height: float = 792.0,
        rotations: list[int] | None = None,
    ) -> bytes:
        pages = [
            FakePage(
                f"p{index + 1}",
                weight=weights[index] if weights else 100,
                width=width,
                height=height,
                rotation=rotations[index] if rotations else 0,
            )
            for index in range(page_count)
        ]
        data = self.register(pages)
        self.save_calls = 0
        return data

    def pages(self, data: bytes) -> list[FakePage]:
        return self._documents[data]

    def labels(self, data: bytes) -> list[str]:
        return [page.label for page in self._documents[data]]

    def load(self, data: bytes) -> FakeDocument:
        self.load_calls += 1
        if data not in self._documents:
            raise ValueError("not a PDF")
        return FakeDocument(self, [page.clone() for page in self._documents[data]])

    def create(self) -> FakeDocument:
        return FakeDocument(self)

    def image_size(self, image: bytes) -> tuple[int, int]:
        return self.image_dimensions

    def text_width(self, text: str, *, font, font_size: float) -> float:
        return len(text) * font_size * 0.5


class FakeOutlineReader:
    """Outline reader over a prepared tree; destinations are page indices."""

    def __init__(self, outline: list[OutlineItem], *, delay: float = 0.0) -> None:
        self.outline = outline
        self.delay = delay

    def get_outline(self, document) -> list[OutlineItem]:
        if self.delay:
            time.sleep(self.delay)
        return self.outline

    def resolve_destination(self, document, destination) -> int:
        if not isinstance(destination, int):
            raise ValueError(f"cannot resolve {destination!r}")
        return destination


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def make_engine() -> type[FakeEngine]:
    return FakeEngine


@pytest.fixture
def make_outline_reader() -> type[FakeOutlineReader]:
    return FakeOutlineReader
