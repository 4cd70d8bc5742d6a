from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from applypatch.cli import main
from applypatch.logger import configure_logging


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    # The CLI binds its handler to the runner's captured stderr.
    configure_logging()


def wrap_patch(body: str) -> str:
    return f"*** Begin Patch\n{body}\n*** End Patch"


def test_apply_from_argument(tmp_path: Path) -> None:
    (tmp_path / "f.txt").write_text("a\nb\n")
    patch = wrap_patch("*** Add File: new.txt\n+hi\n*** Update File: f.txt\n@@\n a\n-b\n+c")
    result = CliRunner().invoke(main, [patch, "--cwd", str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert result.output == "Success. Updated the following files:\nA new.txt\nM f.txt\n"
    assert (tmp_path / "new.txt").read_text() == "hi\n"
    assert (tmp_path / "f.txt").read_text() == "a\nc\n"


def test_apply_from_file(tmp_path: Path) -> None:
    patch_file = tmp_path / "change.patch"
    patch_file.write_text(wrap_patch("*** Add File: out/x.txt\n+x"))
    result = CliRunner().invoke(main, [str(patch_file), "--cwd", str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "out" / "x.txt").read_text() == "x\n"


def test_apply_from_stdin(tmp_path: Path) -> None:
    (tmp_path / "gone.txt").write_text("bye\n")
    result = CliRunner().invoke(
        main, ["--cwd", str(tmp_path)], input=wrap_patch("*** Delete File: gone.txt")
    )
    assert result.exit_code == 0, result.output
    assert "D gone.txt" in result.output
    assert not (tmp_path / "gone.txt").exists()


def test_empty_stdin_prints_usage(tmp_path: Path) -> None:
    result = CliRunner().invoke(main, ["--cwd", str(tmp_path)], input="")
    assert result.exit_code == 2
    assert "Usage: applypatch" in result.output


def test_unreadable_patch_file(tmp_path: Path) -> None:
    missing = tmp_path / "missing.patch"
    result = CliRunner().invoke(main, [str(missing), "--cwd", str(tmp_path)])
    assert result.exit_code == 1
    assert "Failed to read patch file" in result.output


def test_invalid_hunk_reports_line(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        main, [wrap_patch("*** Frobnicate File: x"), "--cwd", str(tmp_path)]
    )
    assert result.exit_code == 1
    assert "Invalid patch hunk on line 2: '*** Frobnicate File: x' is not a valid hunk header" in result.output


def test_invalid_envelope(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        main, ["*** Begin Patch\n*** Add File: a\n+x", "--cwd", str(tmp_path)]
    )
    assert result.exit_code == 1
    assert "Invalid patch: The last line of the patch must be '*** End Patch'" in result.output


def test_missing_expected_lines(tmp_path: Path) -> None:
    (tmp_path / "f.txt").write_text("a\n")
    result = CliRunner().invoke(
        main,
        [wrap_patch("*** Update File: f.txt\n@@\n-zzz\n+b"), "--cwd", str(tmp_path)],
    )
    assert result.exit_code == 1
    assert "Failed to find expected lines in f.txt:\n  | zzz" in result.output
    assert (tmp_path / "f.txt").read_text() == "a\n"


def test_absolute_path_rejected(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        main, [wrap_patch("*** Add File: /tmp/evil.txt\n+x"), "--cwd", str(tmp_path)]
    )
    assert result.exit_code == 1
    assert "File references can only be relative, never absolute." in result.output


def test_traversal_rejected(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        main, [wrap_patch("*** Add File: ../evil.txt\n+x"), "--cwd", str(tmp_path)]
    )
    assert result.exit_code == 1
    assert "directory traversal" in result.output
    assert not (tmp_path.parent / "evil.txt").exists()


def test_heredoc_patch_accepted_unless_strict(tmp_path: Path) -> None:
    patch = "<<'EOF'\n" + wrap_patch("*** Add File: h.txt\n+h") + "\nEOF\n"
    strict = CliRunner().invoke(main, [patch, "--cwd", str(tmp_path), "--strict"])
    assert strict.exit_code == 1
    assert not (tmp_path / "h.txt").exists()

    lenient = CliRunner().invoke(main, [patch, "--cwd", str(tmp_path)])
    assert lenient.exit_code == 0, lenient.output
    assert (tmp_path / "h.txt").read_text() == "h\n"


def test_config_file_in_cwd(tmp_path: Path) -> None:
    (tmp_path / ".applypatch.yaml").write_text("parse_mode: strict\n")
    patch = "<<EOF\n" + wrap_patch("*** Add File: h.txt\n+h") + "\nEOF"
    result = CliRunner().invoke(main, [patch, "--cwd", str(tmp_path)])
    assert result.exit_code == 1
    assert "Invalid patch: The first line of the patch must be '*** Begin Patch'" in result.output


def test_invalid_config(tmp_path: Path) -> None:
    cfg = tmp_path / "bad.yaml"
    cfg.write_text("diff_context: -3\n")
    result = CliRunner().invoke(
        main, [wrap_patch("*** Add File: a\n+x"), "--cwd", str(tmp_path), "--config", str(cfg)]
    )
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output
    assert not (tmp_path / "a").exists()


def test_malformed_config_in_cwd(tmp_path: Path) -> None:
    (tmp_path / ".applypatch.yaml").write_text("parse_mode: [strict\n")
    result = CliRunner().invoke(main, [wrap_patch("*** Add File: a\n+x"), "--cwd", str(tmp_path)])
    assert result.exit_code == 1
    assert "Invalid configuration: Invalid config file" in result.output
    assert not (tmp_path / "a").exists()


def test_dry_run_shows_diff_and_writes_nothing(tmp_path: Path) -> None:
    (tmp_path / "f.txt").write_text("one\ntwo\n")
    patch = wrap_patch(
        "*** Update File: f.txt\n@@\n one\n-two\n+TWO\n*** Add File: n.txt\n+new"
    )
    result = CliRunner().invoke(main, [patch, "--cwd", str(tmp_path), "--dry-run"])
    assert result.exit_code == 0, result.output
    assert "M f.txt" in result.output
    assert "-two" in result.output
    assert "+TWO" in result.output
    assert "A n.txt" in result.output
    assert "+new" in result.output
    assert (tmp_path / "f.txt").read_text() == "one\ntwo\n"
    assert not (tmp_path / "n.txt").exists()


def test_log_file_option(tmp_path: Path) -> None:
    log_file = tmp_path / "run.log"
    result = CliRunner().invoke(
        main,
        [
            wrap_patch("*** Add File: a.txt\n+x"),
            "--cwd",
            str(tmp_path),
            "--log-level",
            "info",
            "--log-file",
            str(log_file),
        ],
    )
    assert result.exit_code == 0, result.output
    configure_logging()
    assert "file added" in log_file.read_text(encoding="utf-8")


def test_extra_arguments_are_a_usage_error(tmp_path: Path) -> None:
    result = CliRunner().invoke(main, ["a.patch", "b.patch", "--cwd", str(tmp_path)])
    assert result.exit_code == 2
