from __future__ import annotations

import argparse
from typing import TYPE_CHECKING

import pytest

from pagesmith import cli
from pagesmith.settings import Settings
from pagesmith.typing.enums import InsertPosition, ProbeStrategy

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def cli_engine(mocker, fake_engine):
    mocker.patch("pagesmith.cli.get_settings", return_value=Settings())
    mocker.patch("pagesmith.cli.ensure_engine_dependencies")
    engine_factory = mocker.patch("pagesmith.cli.FitzEngine")
    engine_factory.from_settings.return_value = fake_engine
    return fake_engine


def test_build_parser_supports_version_flag(capsys) -> None:
    parser = cli.build_parser()

    with pytest.raises(SystemExit) as exc_info:
        parser.parse_args(["--version"])
    assert exc_info.value.code == 0

    captured = capsys.readouterr()
    assert "0.1.0" in captured.out


def test_build_parser_converts_option_types() -> None:
    parser = cli.build_parser()

    size_args = parser.parse_args(["split-size", "in.pdf", "--max-size", "5 MB", "--strategy", "bisect"])
    blank_args = parser.parse_args(["insert-blank", "in.pdf", "--position", "after", "--after", "2"])
    rotate_args = parser.parse_args(["rotate", "in.pdf", "--rotate", "1:90", "--rotate", "3:180"])
    reorder_args = parser.parse_args(["reorder", "in.pdf", "--order", "3,1,2"])

    assert size_args.strategy == ProbeStrategy.BISECT
    assert blank_args.position == InsertPosition.AFTER
    assert rotate_args.rotations == [(0, 90), (2, 180)]
    assert reorder_args.order == [2, 0, 1]


def test_redaction_area_parser_rejects_boxes_outside_page() -> None:
    area = cli._redaction_area("2:0.1,0.2,0.3,0.4")
    assert area.page_index == 1

    with pytest.raises(argparse.ArgumentTypeError):
        cli._redaction_area("1:0.9,0.0,0.5,0.5")


def test_main_without_command_prints_help(mocker, capsys) -> None:
    mocker.patch("pagesmith.cli.get_settings", return_value=Settings())

    assert cli.main([]) == 0
    assert "usage" in capsys.readouterr().out.lower()


def test_main_writes_outputs(cli_engine, tmp_path: Path) -> None:
    source = tmp_path / "doc.pdf"
    source.write_bytes(cli_engine.make_pdf(3))
    out_dir = tmp_path / "out"

    result = cli.main(["reverse", str(source), "--output-dir", str(out_dir)])

    assert result == 0
    written = out_dir / "doc_reversed.pdf"
    assert cli_engine.labels(written.read_bytes()) == ["p3", "p2", "p1"]


def test_main_splits_into_several_files(cli_engine, tmp_path: Path) -> None:
    source = tmp_path / "doc.pdf"
    source.write_bytes(cli_engine.make_pdf(4))
    out_dir = tmp_path / "out"

    result = cli.main(["split", str(source), "--ranges", "1-2, 3-4", "--output-dir", str(out_dir)])

    assert result == 0
    assert sorted(path.name for path in out_dir.iterdir()) == ["doc_pages_1-2.pdf", "doc_pages_3-4.pdf"]


def test_main_rejects_invalid_reorder(cli_engine, tmp_path: Path) -> None:
    source = tmp_path / "doc.pdf"
    source.write_bytes(cli_engine.make_pdf(3))

    assert cli.main(["reorder", str(source), "--order", "1,1,2", "--output-dir", str(tmp_path)]) == 1


def test_main_returns_error_code_on_package_error(cli_engine, tmp_path: Path) -> None:
    source = tmp_path / "doc.pdf"
    source.write_bytes(cli_engine.make_pdf(2))

    result = cli.main(["delete", str(source), "--pages", "1-2", "--output-dir", str(tmp_path / "out")])

    assert result == 1
    assert not (tmp_path / "out").exists()


def test_main_reports_missing_input(cli_engine, tmp_path: Path) -> None:
    assert cli.main(["reverse", str(tmp_path / "missing.pdf")]) == 1


def test_main_handles_keyboard_interrupt(cli_engine, mocker, tmp_path: Path) -> None:
    mocker.patch.dict(cli._COMMANDS, {"reverse": mocker.Mock(side_effect=KeyboardInterrupt)})

    assert cli.main(["reverse", str(tmp_path / "doc.pdf")]) == 130
