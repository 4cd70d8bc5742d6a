from __future__ import annotations

import sys
from pathlib import Path
from typing import Dict, Optional

import click
from rich import console as rich_console
from rich import syntax as rich_syntax
from rich import text as rich_text

from applypatch import settings as ap_settings
from applypatch.logger import configure_logging, logger
from applypatch.patch import (
    AddChange,
    DeleteChange,
    DiffError,
    FileChange,
    FileSystemPatchFileOps,
    InvalidHunkError,
    InvalidPatchError,
    ParseMode,
    UpdateChange,
    apply_hunks,
    parse_patch,
    plan_changes,
    validate_hunk_paths,
)

USAGE = (
    "Usage: applypatch 'PATCH' or applypatch <file.patch>\n"
    "       echo 'PATCH' | applypatch"
)


def _read_patch_arg(patch: Optional[str]) -> str:
    if patch is not None:
        if patch.startswith("*** Begin Patch") or "\n" in patch:
            return patch
        try:
            return Path(patch).read_text(encoding="utf-8")
        except OSError as e:
            raise click.ClickException(
                f"Failed to read patch file '{patch}'.\n{e}"
            ) from e

    stdin = click.get_text_stream("stdin")
    try:
        data = stdin.read()
    except OSError as e:
        raise click.ClickException(f"Failed to read PATCH from stdin.\n{e}") from e
    if not data:
        click.echo(USAGE, err=True)
        sys.exit(2)
    return data


def _change_header(path: str, kind: str) -> rich_text.Text:
    header = rich_text.Text(no_wrap=True)
    header.append(kind, style="bold")
    header.append(" ")
    header.append(path, style="cyan")
    return header


def render_changes(console: rich_console.Console, changes: Dict[str, FileChange]) -> None:
    for path, change in changes.items():
        if isinstance(change, AddChange):
            console.print(_change_header(path, "A"))
            body = "".join(f"+{ln}\n" for ln in change.content.splitlines())
            console.print(rich_syntax.Syntax(body, "diff"))
        elif isinstance(change, DeleteChange):
            console.print(_change_header(path, "D"))
        elif isinstance(change, UpdateChange):
            target = path if change.move_path is None else f"{path} -> {change.move_path}"
            console.print(_change_header(target, "M"))
            console.print(rich_syntax.Syntax(change.unified_diff, "diff"))
        else:
            raise TypeError(f"Unknown change type: {type(change).__name__}")


def _report_error(err: DiffError) -> None:
    if isinstance(err, InvalidHunkError):
        click.echo(
            f"Invalid patch hunk on line {err.line_number}: {err.reason}", err=True
        )
    elif isinstance(err, InvalidPatchError):
        click.echo(f"Invalid patch: {err.reason}", err=True)
    else:
        click.echo(str(err), err=True)


@click.command()
@click.argument("patch", required=False)
@click.option(
    "--cwd",
    "cwd",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Directory the patch paths are relative to.",
)
@click.option("--strict", is_flag=True, help="Do not accept a heredoc-wrapped patch.")
@click.option("--dry-run", is_flag=True, help="Show the diff of each file, write nothing.")
@click.option("--context", "diff_context", type=click.IntRange(min=0), default=None)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
)
@click.option(
    "--log-level",
    type=click.Choice([lvl.value for lvl in ap_settings.LogLevel]),
    default=None,
)
@click.option("--log-file", type=click.Path(dir_okay=False, path_type=Path), default=None)
def main(
    patch: Optional[str],
    cwd: Path,
    strict: bool,
    dry_run: bool,
    diff_context: Optional[int],
    config_path: Optional[Path],
    log_level: Optional[str],
    log_file: Optional[Path],
) -> None:
    """Apply PATCH (patch text, a patch file, or stdin) to the files under --cwd."""
    try:
        settings = ap_settings.load_settings(config_path or ap_settings.find_config(cwd))
    except (ValueError, OSError) as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e

    configure_logging(
        log_level or settings.logging.level.value,
        log_file or settings.logging.file,
    )
    mode = ParseMode.strict if strict else settings.parse_mode
    context = settings.diff_context if diff_context is None else diff_context

    text = _read_patch_arg(patch)
    ops = FileSystemPatchFileOps(cwd)

    try:
        args = parse_patch(text, mode)
        if settings.check_paths:
            validate_hunk_paths(args.hunks)
        if dry_run:
            changes = plan_changes(args.hunks, ops.open, context=context)
            render_changes(rich_console.Console(), changes)
            return
        affected = apply_hunks(args.hunks, ops)
    except DiffError as e:
        logger.error("apply_patch failed", err=str(e))
        _report_error(e)
        sys.exit(1)

    click.echo(affected.summary())


if __name__ == "__main__":
    main()
