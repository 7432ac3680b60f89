from __future__ import annotations

import io
import os
import sys
from pathlib import Path

import pytest

from pathseek.server import build_arg_parser, main


def test_arg_parser_defaults_root_to_cwd() -> None:
    args = build_arg_parser().parse_args([])

    assert args.root == "."
    assert args.config is None
    assert args.character_index is None


def test_main_serves_until_end_of_input(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    (tmp_path / "foo.txt").write_text("x", encoding="utf-8")
    out_stream = io.StringIO()
    monkeypatch.setattr(sys, "stdin", io.StringIO("search foo\n"))
    monkeypatch.setattr(sys, "stdout", out_stream)
    monkeypatch.setattr("pathseek.server.install_rescan_signal", lambda trigger: True)

    exit_code = main([str(tmp_path), "--max-results", "5", "--character-index", "false"])

    assert exit_code == 0
    assert out_stream.getvalue().startswith(f"foo.txt|{tmp_path / 'foo.txt'}|")


def test_main_writes_audit_log_only_when_requested(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    root = tmp_path / "root"
    root.mkdir()
    audit_path = tmp_path / "events.jsonl"
    monkeypatch.setattr(sys, "stdin", io.StringIO("search foo\n"))
    monkeypatch.setattr(sys, "stdout", io.StringIO())
    monkeypatch.setattr("pathseek.server.install_rescan_signal", lambda trigger: True)

    main([str(root), "--audit-log", str(audit_path)])

    assert audit_path.exists()
    assert list(root.iterdir()) == []


def test_main_rejects_invalid_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(sys, "stdin", io.StringIO(""))

    with pytest.raises(SystemExit) as excinfo:
        main([str(tmp_path), "--max-results", "0"])

    assert excinfo.value.code == 2


@pytest.mark.skipif(sys.platform != "linux", reason="needs a filesystem accepting non-UTF-8 names")
def test_main_writes_undecodable_filename_bytes_unchanged(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    raw_name = os.path.join(os.fsencode(tmp_path), b"\xff.txt")
    with open(raw_name, "wb") as handle:
        handle.write(b"x")
    (tmp_path / "plain.txt").write_text("x", encoding="utf-8")
    stdin = io.TextIOWrapper(io.BytesIO(b"search t\nsearch plain\n"), encoding="utf-8")
    stdout = io.TextIOWrapper(io.BytesIO(), encoding="utf-8")
    monkeypatch.setattr(sys, "stdin", stdin)
    monkeypatch.setattr(sys, "stdout", stdout)
    monkeypatch.setattr("pathseek.server.install_rescan_signal", lambda trigger: True)

    exit_code = main([str(tmp_path)])
    stdout.flush()
    output = stdout.buffer.getvalue()

    assert exit_code == 0
    first, second, rest = output.split(b"\n\n")
    assert sorted(row.split(b"|")[1] for row in first.split(b"\n")) == [
        raw_name,
        os.fsencode(tmp_path / "plain.txt"),
    ]
    assert second.startswith(b"plain.txt|")
    assert rest == b""
