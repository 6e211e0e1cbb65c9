"""Write finished documents to disk."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from pagesmith.exceptions import EngineIOError
from pagesmith.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pagesmith.typing.models import OutputDocument

logger = get_logger(__name__)


def write_outputs(documents: Iterable[OutputDocument], directory: Path) -> list[Path]:
    """Write each document under its own filename inside `directory`.

    Args:
        documents (Iterable[OutputDocument]): Documents to persist.
        directory (Path): Target directory, created when missing.

    Raises:
        EngineIOError: If a file cannot be written.

    Returns:
        list[Path]: Written paths, in input order.
    """
    directory.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for document in documents:
        path = directory / Path(document.filename).name
        try:
            path.write_bytes(document.data)
        except OSError as exc:
            raise EngineIOError(message=f"Failed to write {path}") from exc
        logger.info("Output written", extra={"path": str(path), "bytes": document.byte_size})
        written.append(path)
    return written
