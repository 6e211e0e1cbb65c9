"""CLI entry point for Pagesmith."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from pagesmith import __version__, logger
from pagesmith.bookmarks import get_bookmark_info
from pagesmith.composer import (
    delete_pages,
    duplicate_pages,
    extract_pages,
    insert_blank_pages,
    is_permutation,
    load_document,
    merge_documents,
    redact_pages,
    reorder_pages,
    reverse_pages,
    rotate_pages,
    sign_page,
    split_by_bookmarks,
    split_by_ranges,
    split_by_size,
)
from pagesmith.dependencies import ensure_engine_dependencies, ensure_package_dependencies
from pagesmith.engine import FitzEngine, FitzOutlineReader
from pagesmith.exceptions import EngineIOError, InputValidationError, PackageError
from pagesmith.logging import configure_logging
from pagesmith.output import write_outputs
from pagesmith.pdf_render import RasterizerConfig, initialize_rasterizer
from pagesmith.settings import get_settings
from pagesmith.typing.enums import InsertPosition, ProbeStrategy, SignatureKind, StandardFont
from pagesmith.typing.models import NormalizedPoint, NormalizedRect, OutputDocument, RedactionArea, SignaturePlacement

if TYPE_CHECKING:
    from collections.abc import Callable

    from pagesmith.settings import Settings


def _rotation_entry(value: str) -> tuple[int, int]:
    """Parse `--rotate PAGE:ANGLE` (1-based page).

    Raises:
        argparse.ArgumentTypeError: If the value is malformed.

    Returns:
        tuple[int, int]: 0-based page index and angle.
    """
    page, _, angle = value.partition(":")
    try:
        return int(page) - 1, int(angle)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("--rotate expects PAGE:ANGLE, e.g. 2:90") from exc  # noqa: TRY003


def _redaction_area(value: str) -> RedactionArea:
    """Parse `--area PAGE:X,Y,W,H` with normalized coordinates (1-based page).

    Raises:
        argparse.ArgumentTypeError: If the value is malformed.

    Returns:
        RedactionArea: Parsed area.
    """
    page, _, box = value.partition(":")
    try:
        x, y, width, height = (float(part) for part in box.split(","))
        rect = NormalizedRect(x=x, y=y, width=width, height=height)
        return RedactionArea(page_index=int(page) - 1, rect=rect)
    except (ValueError, ValidationError) as exc:
        raise argparse.ArgumentTypeError("--area expects PAGE:X,Y,W,H with values in [0, 1]") from exc  # noqa: TRY003


def _page_order(value: str) -> list[int]:
    """Parse `--order 3,1,2` (1-based) into 0-based indices.

    Raises:
        argparse.ArgumentTypeError: If an entry is not an integer.

    Returns:
        list[int]: Page indices.
    """
    try:
        return [int(part) - 1 for part in value.split(",") if part.strip()]
    except ValueError as exc:
        raise argparse.ArgumentTypeError("--order expects comma-separated page numbers") from exc  # noqa: TRY003


def _add_input(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("input_path", type=Path)
    parser.add_argument("--output-dir", type=Path, default=None, dest="output_dir")


def build_parser() -> argparse.ArgumentParser:
    """Create the command-line parser.

    Returns:
        argparse.ArgumentParser: The configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="pagesmith")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command")

    merge_parser = subparsers.add_parser("merge", help="Merge PDF files in the given order")
    merge_parser.add_argument("input_paths", nargs="+", type=Path)
    merge_parser.add_argument("--output-dir", type=Path, default=None, dest="output_dir")

    split_parser = subparsers.add_parser("split", help="Split into one file per page range")
    _add_input(split_parser)
    split_parser.add_argument("--ranges", required=True)

    size_parser = subparsers.add_parser("split-size", help="Split into parts under a size budget")
    _add_input(size_parser)
    size_parser.add_argument("--max-size", required=True, dest="max_size", help='e.g. "10 MB"')
    size_parser.add_argument(
        "--strategy",
        type=ProbeStrategy.from_str,
        default=ProbeStrategy.LINEAR,
        choices=list(ProbeStrategy),
    )

    bookmark_split_parser = subparsers.add_parser("split-bookmarks", help="Split at bookmarks of one level")
    _add_input(bookmark_split_parser)
    bookmark_split_parser.add_argument("--level", type=int, default=1)

    bookmarks_parser = subparsers.add_parser("bookmarks", help="Show the bookmark levels of a PDF")
    bookmarks_parser.add_argument("input_path", type=Path)

    extract_parser = subparsers.add_parser("extract", help="Extract selected pages")
    _add_input(extract_parser)
    extract_parser.add_argument("--pages", required=True)

    delete_parser = subparsers.add_parser("delete", help="Delete selected pages")
    _add_input(delete_parser)
    delete_parser.add_argument("--pages", required=True)

    reorder_parser = subparsers.add_parser("reorder", help="Reorder pages")
    _add_input(reorder_parser)
    reorder_parser.add_argument("--order", required=True, type=_page_order)

    reverse_parser = subparsers.add_parser("reverse", help="Reverse page order")
    _add_input(reverse_parser)

    rotate_parser = subparsers.add_parser("rotate", help="Rotate pages clockwise")
    _add_input(rotate_parser)
    rotate_parser.add_argument("--rotate", required=True, action="append", type=_rotation_entry, dest="rotations")

    blank_parser = subparsers.add_parser("insert-blank", help="Insert blank pages")
    _add_input(blank_parser)
    blank_parser.add_argument(
        "--position",
        type=InsertPosition.from_str,
        default=InsertPosition.END,
        choices=list(InsertPosition),
    )
    blank_parser.add_argument("--count", type=int, default=1)
    blank_parser.add_argument("--after", type=int, default=None, dest="after_page")

    duplicate_parser = subparsers.add_parser("duplicate", help="Duplicate selected pages")
    _add_input(duplicate_parser)
    duplicate_parser.add_argument("--pages", required=True)
    duplicate_parser.add_argument("--copies", type=int, default=1)

    redact_parser = subparsers.add_parser("redact", help="Black out areas of pages")
    _add_input(redact_parser)
    redact_parser.add_argument("--area", required=True, action="append", type=_redaction_area, dest="areas")

    sign_parser = subparsers.add_parser("sign", help="Place a signature on a page")
    _add_input(sign_parser)
    sign_parser.add_argument("--page", type=int, default=1)
    sign_parser.add_argument("--x", type=float, default=0.5)
    sign_parser.add_argument("--y", type=float, default=0.5)
    source = sign_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--image", type=Path, default=None, dest="image_path")
    source.add_argument("--text", default=None)
    sign_parser.add_argument("--width", type=float, default=200.0)
    sign_parser.add_argument("--height", type=float, default=80.0)
    sign_parser.add_argument("--font-size", type=float, default=24.0, dest="font_size")
    sign_parser.add_argument(
        "--font",
        type=StandardFont.from_str,
        default=StandardFont.HELVETICA,
        choices=list(StandardFont),
    )

    render_parser = subparsers.add_parser("render", help="Render one page to an image")
    _add_input(render_parser)
    render_parser.add_argument("--page", type=int, default=1)
    render_parser.add_argument("--width", type=int, default=None)
    render_parser.add_argument("--rotation", type=int, default=0)

    return parser


def _read_input(path: Path) -> bytes:
    """Read an input file.

    Raises:
        EngineIOError: If the file cannot be read.

    Returns:
        bytes: File content.
    """
    try:
        return path.read_bytes()
    except OSError as exc:
        raise EngineIOError(message=f"Cannot read {path}") from exc


def _run_merge(args: argparse.Namespace, engine: FitzEngine, settings: Settings) -> list[OutputDocument]:
    inputs = [(path.name, _read_input(path)) for path in args.input_paths]
    return [merge_documents(engine, inputs)]


def _run_split(args: argparse.Namespace, engine: FitzEngine, settings: Settings) -> list[OutputDocument]:
    return split_by_ranges(engine, _read_input(args.input_path), args.ranges, base_name=args.input_path.stem)


def _run_split_size(args: argparse.Namespace, engine: FitzEngine, settings: Settings) -> list[OutputDocument]:
    return split_by_size(
        engine,
        _read_input(args.input_path),
        args.max_size,
        base_name=args.input_path.stem,
        strategy=args.strategy,
    )


def _run_split_bookmarks(args: argparse.Namespace, engine: FitzEngine, settings: Settings) -> list[OutputDocument]:
    return split_by_bookmarks(
        engine,
        FitzOutlineReader(),
        _read_input(args.input_path),
        args.level,
        base_name=args.input_path.stem,
        max_level=settings.max_bookmark_level,
        timeout=settings.bookmark_timeout_seconds,
    )


def _run_bookmarks(args: argparse.Namespace, engine: FitzEngine, settings: Settings) -> list[OutputDocument]:
    document = load_document(engine, _read_input(args.input_path), name=args.input_path.name)
    info = get_bookmark_info(FitzOutlineReader(), document, timeout=settings.bookmark_timeout_seconds)
    print(info.model_dump_json(indent=2))  # noqa: T201
    return []


def _run_extract(args: argparse.Namespace, engine: FitzEngine, settings: Settings) -> list[OutputDocument]:
    return [extract_pages(engine, _read_input(args.input_path), args.pages, base_name=args.input_path.stem)]


def _run_delete(args: argparse.Namespace, engine: FitzEngine, settings: Settings) -> list[OutputDocument]:
    return [delete_pages(engine, _read_input(args.input_path), args.pages, base_name=args.input_path.stem)]


def _run_reorder(args: argparse.Namespace, engine: FitzEngine, settings: Settings) -> list[OutputDocument]:
    data = _read_input(args.input_path)
    total_pages = load_document(engine, data, name=args.input_path.name).page_count
    if not is_permutation(args.order, total_pages):
        raise InputValidationError(message=f"--order must list each of the {total_pages} pages exactly once")
    return [reorder_pages(engine, data, args.order, base_name=args.input_path.stem)]


def _run_reverse(args: argparse.Namespace, engine: FitzEngine, settings: Settings) -> list[OutputDocument]:
    return [reverse_pages(engine, _read_input(args.input_path), base_name=args.input_path.stem)]


def _run_rotate(args: argparse.Namespace, engine: FitzEngine, settings: Settings) -> list[OutputDocument]:
    rotations = dict(args.rotations)
    return [rotate_pages(engine, _read_input(args.input_path), rotations, base_name=args.input_path.stem)]


def _run_insert_blank(args: argparse.Namespace, engine: FitzEngine, settings: Settings) -> list[OutputDocument]:
    return [
        insert_blank_pages(
            engine,
            _read_input(args.input_path),
            args.position,
            args.count,
            after_page=args.after_page,
            max_count=settings.max_blank_pages,
            base_name=args.input_path.stem,
        ),
    ]


def _run_duplicate(args: argparse.Namespace, engine: FitzEngine, settings: Settings) -> list[OutputDocument]:
    return [
        duplicate_pages(
            engine,
            _read_input(args.input_path),
            args.pages,
            args.copies,
            max_copies=settings.max_copies,
            base_name=args.input_path.stem,
        ),
    ]


def _run_redact(args: argparse.Namespace, engine: FitzEngine, settings: Settings) -> list[OutputDocument]:
    return [redact_pages(engine, _read_input(args.input_path), args.areas, base_name=args.input_path.stem)]


def _run_sign(args: argparse.Namespace, engine: FitzEngine, settings: Settings) -> list[OutputDocument]:
    try:
        placement = SignaturePlacement(
            page_index=args.page - 1,
            anchor=NormalizedPoint(x=args.x, y=args.y),
            kind=SignatureKind.IMAGE if args.image_path else SignatureKind.TYPE,
            text=args.text,
            image=_read_input(args.image_path) if args.image_path else None,
            width=args.width,
            height=args.height,
            font_size=args.font_size,
            font=args.font,
        )
    except ValidationError as exc:
        raise InputValidationError(message=f"Invalid signature placement: {exc}") from exc
    return [sign_page(engine, _read_input(args.input_path), placement, base_name=args.input_path.stem)]


def _run_render(args: argparse.Namespace, engine: FitzEngine, settings: Settings) -> list[OutputDocument]:
    rasterizer = initialize_rasterizer(RasterizerConfig.from_settings(settings))
    document = engine.load(_read_input(args.input_path))
    rendered = rasterizer.render_page(document, args.page, target_width=args.width, rotation=args.rotation)
    logger.info(
        "Page rendered",
        extra={"page": args.page, "width": rendered.natural_width, "render_scale": rendered.render_scale},
    )
    return [OutputDocument(filename=f"{args.input_path.stem}_page_{args.page}.png", data=rendered.image_bytes())]


_COMMANDS: dict[str, Callable[[argparse.Namespace, FitzEngine, Settings], list[OutputDocument]]] = {
    "merge": _run_merge,
    "split": _run_split,
    "split-size": _run_split_size,
    "split-bookmarks": _run_split_bookmarks,
    "bookmarks": _run_bookmarks,
    "extract": _run_extract,
    "delete": _run_delete,
    "reorder": _run_reorder,
    "reverse": _run_reverse,
    "rotate": _run_rotate,
    "insert-blank": _run_insert_blank,
    "duplicate": _run_duplicate,
    "redact": _run_redact,
    "sign": _run_sign,
    "render": _run_render,
}


def main(argv: list[str] | None = None) -> int:
    """Run the CLI.

    Args:
        argv (list[str] | None): Arguments, defaults to `sys.argv[1:]`.

    Returns:
        int: Exit code (0 for success, 1 for error, 130 when interrupted).
    """
    settings = get_settings()
    configure_logging(settings=settings)

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        ensure_package_dependencies()
        ensure_engine_dependencies()
        engine = FitzEngine.from_settings(settings)
        outputs = _COMMANDS[args.command](args, engine, settings)
        output_dir = getattr(args, "output_dir", None) or Path(settings.output_dir)
        written = write_outputs(outputs, output_dir) if outputs else []
    except PackageError:
        logger.exception("Command failed", extra={"command": args.command})
        return 1
    except KeyboardInterrupt:
        logger.info("Command aborted by user", extra={"command": args.command})
        return 130

    logger.info("Command completed", extra={"command": args.command, "outputs": [str(path) for path in written]})
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
