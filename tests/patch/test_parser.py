import pytest

from applypatch.patch import (
    AddFile,
    DeleteFile,
    InvalidHunkError,
    InvalidPatchError,
    ParseMode,
    UpdateFile,
    UpdateFileChunk,
    parse_patch,
)
from applypatch.patch.parser import parse_update_file_chunk


def wrap_patch(body: str) -> str:
    return f"*** Begin Patch\n{body}\n*** End Patch"


def test_bad_first_line():
    with pytest.raises(InvalidPatchError) as ei:
        parse_patch("bad", ParseMode.strict)
    assert str(ei.value) == (
        "invalid patch: The first line of the patch must be '*** Begin Patch'"
    )


def test_bad_last_line():
    with pytest.raises(InvalidPatchError) as ei:
        parse_patch("*** Begin Patch\nbad", ParseMode.strict)
    assert ei.value.reason == "The last line of the patch must be '*** End Patch'"


def test_empty_patch_has_no_hunks():
    args = parse_patch("*** Begin Patch\n*** End Patch")
    assert args.hunks == ()
    assert args.workdir is None


def test_envelope_whitespace_is_tolerated():
    args = parse_patch("  *** Begin Patch  \n*** Add File: a.txt\n+x\n   *** End Patch \n")
    assert args.hunks == (AddFile(path="a.txt", contents="x\n"),)


def test_all_hunk_kinds():
    text = wrap_patch(
        "*** Add File: path/add.py\n"
        "+abc\n"
        "+def\n"
        "*** Delete File: path/delete.py\n"
        "*** Update File: path/update.py\n"
        "*** Move to: path/update2.py\n"
        "@@ def f():\n"
        "-    pass\n"
        "+    return 123"
    )
    args = parse_patch(text, ParseMode.strict)
    assert args.hunks == (
        AddFile(path="path/add.py", contents="abc\ndef\n"),
        DeleteFile(path="path/delete.py"),
        UpdateFile(
            path="path/update.py",
            move_path="path/update2.py",
            chunks=(
                UpdateFileChunk(
                    change_context=("def f():",),
                    old_lines=("    pass",),
                    new_lines=("    return 123",),
                ),
            ),
        ),
    )
    assert args.patch == text


def test_add_file_with_no_lines_is_empty():
    args = parse_patch(wrap_patch("*** Add File: empty.txt"))
    assert args.hunks == (AddFile(path="empty.txt", contents=""),)


def test_update_hunk_followed_by_add_hunk():
    args = parse_patch(
        wrap_patch(
            "*** Update File: file.py\n"
            "@@\n"
            "+line\n"
            "*** Add File: other.py\n"
            "+content"
        )
    )
    assert args.hunks == (
        UpdateFile(
            path="file.py",
            chunks=(UpdateFileChunk(new_lines=("line",)),),
        ),
        AddFile(path="other.py", contents="content\n"),
    )


def test_first_chunk_may_omit_context_marker():
    args = parse_patch(
        wrap_patch("*** Update File: file2.py\n import foo\n+bar"), ParseMode.strict
    )
    assert args.hunks == (
        UpdateFile(
            path="file2.py",
            chunks=(
                UpdateFileChunk(old_lines=("import foo",), new_lines=("import foo", "bar")),
            ),
        ),
    )


def test_nested_context_markers():
    args = parse_patch(
        wrap_patch(
            "*** Update File: src/foo.py\n"
            "@@ class Foo\n"
            "@@     def bar(self):\n"
            "-        return 1\n"
            "+        return 2"
        )
    )
    (hunk,) = args.hunks
    assert isinstance(hunk, UpdateFile)
    assert hunk.chunks[0].change_context == ("class Foo", "def bar(self):")


def test_blank_line_in_chunk_is_context():
    args = parse_patch(
        wrap_patch("*** Update File: a.py\n@@\n a\n\n-b\n+c")
    )
    (hunk,) = args.hunks
    assert hunk.chunks[0].old_lines == ("a", "", "b")
    assert hunk.chunks[0].new_lines == ("a", "", "c")


def test_multiple_chunks():
    args = parse_patch(
        wrap_patch(
            "*** Update File: multi.txt\n"
            "@@\n"
            "-line2\n"
            "+changed2\n"
            "@@\n"
            "-line4\n"
            "+changed4"
        )
    )
    (hunk,) = args.hunks
    assert [c.old_lines for c in hunk.chunks] == [("line2",), ("line4",)]
    assert [c.new_lines for c in hunk.chunks] == [("changed2",), ("changed4",)]


def test_empty_update_hunk_reports_header_line():
    with pytest.raises(InvalidHunkError) as ei:
        parse_patch(wrap_patch("*** Update File: test.py"))
    assert ei.value.line_number == 2
    assert str(ei.value) == (
        "invalid hunk at line 2, Update file hunk for path 'test.py' is empty"
    )


def test_invalid_hunk_header():
    with pytest.raises(InvalidHunkError) as ei:
        parse_patch(wrap_patch("*** Frobnicate File: foo"))
    assert ei.value.line_number == 2
    assert ei.value.reason.startswith(
        "'*** Frobnicate File: foo' is not a valid hunk header."
    )


def test_missing_context_marker_on_second_chunk():
    text = wrap_patch("*** Update File: file.py\n@@\n-old\nbad")
    with pytest.raises(InvalidHunkError) as ei:
        parse_patch(text)
    assert ei.value.line_number == 5
    assert ei.value.reason == (
        "Expected update hunk to start with a @@ context marker, got: 'bad'"
    )


def test_unexpected_line_in_chunk():
    with pytest.raises(InvalidHunkError) as ei:
        parse_patch(wrap_patch("*** Update File: file.py\n@@\nbad"))
    assert ei.value.line_number == 4
    assert ei.value.reason.startswith("Unexpected line found in update hunk: 'bad'.")


def test_chunk_line_numbers():
    with pytest.raises(InvalidHunkError) as ei:
        parse_update_file_chunk(["bad"], 123, allow_missing_context=False)
    assert ei.value.line_number == 123

    with pytest.raises(InvalidHunkError) as ei:
        parse_update_file_chunk(["@@"], 123, allow_missing_context=False)
    assert ei.value.line_number == 124
    assert ei.value.reason == "Update hunk does not contain any lines"

    with pytest.raises(InvalidHunkError) as ei:
        parse_update_file_chunk(["@@", "bad"], 234, allow_missing_context=False)
    assert ei.value.line_number == 235


def test_chunk_parse_stops_at_next_header():
    chunk, consumed = parse_update_file_chunk(
        ["@@", "+line", "*** Add File: x"], 10, allow_missing_context=False
    )
    assert consumed == 2
    assert chunk == UpdateFileChunk(new_lines=("line",))


def test_end_of_file_marker():
    chunk, consumed = parse_update_file_chunk(
        ["@@", "+line", "*** End of File"], 10, allow_missing_context=False
    )
    assert consumed == 3
    assert chunk.is_end_of_file is True


def test_end_of_file_marker_without_body():
    with pytest.raises(InvalidHunkError) as ei:
        parse_update_file_chunk(["@@", "*** End of File"], 10, allow_missing_context=False)
    assert ei.value.line_number == 11


@pytest.mark.parametrize("opener", ["<<EOF", "<<'EOF'", '<<"EOF"'])
def test_heredoc_wrapper_lenient(opener):
    inner = wrap_patch("*** Add File: foo\n+hi")
    text = f"{opener}\n{inner}\nEOF\n"
    args = parse_patch(text, ParseMode.lenient)
    assert args.hunks == (AddFile(path="foo", contents="hi\n"),)
    assert args.patch == inner


def test_heredoc_wrapper_rejected_in_strict_mode():
    text = "<<'EOF'\n" + wrap_patch("*** Add File: foo\n+hi") + "\nEOF\n"
    with pytest.raises(InvalidPatchError) as ei:
        parse_patch(text, ParseMode.strict)
    assert ei.value.reason == "The first line of the patch must be '*** Begin Patch'"


def test_heredoc_with_mismatched_quotes_is_rejected():
    text = "<<\"EOF'\n" + wrap_patch("*** Add File: foo\n+hi") + "\nEOF\n"
    with pytest.raises(InvalidPatchError):
        parse_patch(text, ParseMode.lenient)


def test_heredoc_without_closer_is_rejected():
    text = "<<EOF\n" + wrap_patch("*** Add File: foo\n+hi")
    with pytest.raises(InvalidPatchError):
        parse_patch(text, ParseMode.lenient)


def test_heredoc_inner_envelope_must_be_valid():
    text = "<<EOF\n*** Begin Patch\n*** Add File: foo\n+hi\nEOF\n"
    with pytest.raises(InvalidPatchError) as ei:
        parse_patch(text, ParseMode.lenient)
    assert ei.value.reason == "The last line of the patch must be '*** End Patch'"


def test_strict_and_lenient_agree_on_well_formed_patch():
    text = wrap_patch(
        "*** Add File: a.txt\n"
        "+one\n"
        "*** Delete File: b.txt\n"
        "*** Update File: c.py\n"
        "*** Move to: d.py\n"
        "@@ class C\n"
        " x = 1\n"
        "-y = 2\n"
        "+y = 3\n"
        "*** End of File"
    )
    assert parse_patch(text, ParseMode.strict) == parse_patch(text, ParseMode.lenient)
