"""Tests for multipart form assembly."""

import os

import pytest

from httper.errors import (
    FormDataBoundaryMissingError,
    FormPartNameMissingError,
    InvalidHeaderError,
)
from httper.models import BytesContent, FileContent, TextContent
from httper.multipart import (
    ScanState,
    assemble_form,
    extract_boundary,
    extract_part_headers,
    resolve_file_reference,
    scan_segment,
    scan_step,
)

CONTENT_TYPE = "multipart/form-data; boundary=foo"


class TestExtractBoundary:
    """Tests for extract_boundary."""

    def test_plain_boundary(self):
        assert extract_boundary("multipart/form-data; boundary=foo") == "foo"

    def test_key_is_case_insensitive(self):
        assert extract_boundary("multipart/form-data; BOUNDARY=x") == "x"

    def test_other_parameters_in_any_order(self):
        ct = "multipart/form-data; charset=utf-8; boundary=abc; foo=bar"
        assert extract_boundary(ct) == "abc"

    def test_quoted_boundary(self):
        assert extract_boundary('multipart/form-data; boundary="a b"') == "a b"

    def test_missing_boundary_raises(self):
        with pytest.raises(FormDataBoundaryMissingError, match="multipart/form-data"):
            extract_boundary("multipart/form-data; charset=utf-8")

    def test_empty_boundary_raises(self):
        with pytest.raises(FormDataBoundaryMissingError):
            extract_boundary("multipart/form-data; boundary=")


class TestScanSegment:
    """Tests for the header/body line scanner."""

    def test_leading_blank_lines_are_skipped(self):
        state = scan_segment("\n\n  \nA: 1\n\nbody\n")
        assert state.header_lines == ("A: 1",)
        assert state.body_lines == ("body",)

    def test_body_keeps_blank_lines(self):
        state = scan_segment("\nA: 1\n\none\n\n\ntwo\n")
        assert state.body_lines == ("one", "", "", "two")

    def test_headers_only(self):
        state = scan_segment("\nA: 1\nB: 2\n")
        assert state.header_lines == ("A: 1", "B: 2")
        assert state.body_lines == ()
        assert state.in_body is False

    def test_blank_before_headers_does_not_enter_body(self):
        assert scan_step(ScanState(), "") == ScanState()

    def test_blank_after_header_enters_body(self):
        state = scan_step(ScanState(header_lines=("A: 1",)), "")
        assert state.in_body is True
        assert state.body_lines == ()

    def test_step_returns_new_state(self):
        start = ScanState()
        after = scan_step(start, "A: 1")
        assert start.header_lines == ()
        assert after.header_lines == ("A: 1",)


class TestExtractPartHeaders:
    """Tests for extract_part_headers."""

    def test_name_and_filename(self):
        headers, name, filename = extract_part_headers(
            ['Content-Disposition: form-data; name="image"; filename="logo.png"']
        )
        assert name == "image"
        assert filename == "logo.png"
        assert headers == {}

    def test_disposition_is_case_insensitive(self):
        _, name, _ = extract_part_headers(['content-DISPOSITION: form-data; name="t"'])
        assert name == "t"

    def test_unquoted_values(self):
        _, name, filename = extract_part_headers(
            ["Content-Disposition: form-data; name=title; filename=a.txt"]
        )
        assert name == "title"
        assert filename == "a.txt"

    def test_only_one_layer_of_quotes_removed(self):
        _, name, _ = extract_part_headers(
            ['Content-Disposition: form-data; name=""quoted""']
        )
        assert name == '"quoted"'

    def test_other_disposition_params_are_dropped(self):
        headers, name, _ = extract_part_headers(
            ['Content-Disposition: form-data; name="a"; size=10']
        )
        assert name == "a"
        assert headers == {}

    def test_content_type_is_not_forwarded(self):
        headers, _, _ = extract_part_headers(
            [
                'Content-Disposition: form-data; name="a"',
                "Content-Type: image/png",
                "X-Custom:  yes ",
            ]
        )
        assert headers == {"X-Custom": "yes"}

    def test_line_without_colon_raises(self):
        with pytest.raises(InvalidHeaderError, match="garbage"):
            extract_part_headers(['Content-Disposition: form-data; name="a"', "garbage"])

    def test_disposition_without_colon_raises(self):
        with pytest.raises(InvalidHeaderError):
            extract_part_headers(['Content-Disposition form-data; name="a"'])

    def test_disposition_param_keys_match_exactly(self):
        _, name, filename = extract_part_headers(
            ['Content-Disposition: form-data; Name="x"; FILENAME="a.txt"']
        )
        assert name is None
        assert filename is None

    def test_disposition_param_keys_are_trimmed(self):
        _, name, _ = extract_part_headers(
            ['Content-Disposition: form-data;   name  ="x"']
        )
        assert name == "x"

    def test_no_disposition_means_no_name(self):
        _, name, filename = extract_part_headers(["X-A: 1"])
        assert name is None
        assert filename is None


class TestResolveFileReference:
    """Tests for resolve_file_reference."""

    def test_empty_body_is_empty_text(self, tmp_path):
        assert resolve_file_reference("", str(tmp_path)) == TextContent("")

    def test_literal_body_is_bytes(self, tmp_path):
        assert resolve_file_reference("hi\nthere", str(tmp_path)) == BytesContent(
            b"hi\nthere"
        )

    def test_file_reference_opens_relative_file(self, tmp_path):
        sub = tmp_path / "data"
        sub.mkdir()
        (sub / "payload.bin").write_bytes(b"\x00\x01")
        content = resolve_file_reference("<  data/payload.bin  ", str(tmp_path))
        try:
            assert isinstance(content, FileContent)
            assert content.path == os.path.join(str(tmp_path), "data/payload.bin")
            assert content.handle.read() == b"\x00\x01"
        finally:
            content.close()

    def test_absolute_looking_path_stays_under_base(self, tmp_path):
        sub = tmp_path / "sub"
        sub.mkdir()
        (sub / "x.bin").write_bytes(b"inside base")
        content = resolve_file_reference("< /sub/x.bin", str(tmp_path))
        try:
            assert content.path == os.path.join(str(tmp_path), "sub/x.bin")
            assert content.handle.read() == b"inside base"
        finally:
            content.close()

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            resolve_file_reference("< nope.bin", str(tmp_path))


class TestAssembleForm:
    """Tests for assemble_form."""

    def test_two_text_parts(self, tmp_path):
        body = (
            "--foo\n"
            'Content-Disposition: form-data; name="title"\n'
            "\n"
            "hello\n"
            "--foo\n"
            'Content-Disposition: form-data; name="description"\n'
            "Content-Type: text/plain\n"
            "\n"
            "first line\n"
            "\n"
            "second line\n"
            "--foo--\n"
        )
        form = assemble_form(CONTENT_TYPE, body, str(tmp_path))
        assert set(form) == {"title", "description"}
        assert form["title"].content == BytesContent(b"hello")
        assert form["description"].content == BytesContent(b"first line\n\nsecond line")
        assert form["description"].headers == {}

    def test_file_part_with_extra_header(self, tmp_path):
        (tmp_path / "Cargo.lock").write_text("lock contents")
        body = (
            "--foo\n"
            'Content-Disposition: form-data; name="image"; filename="Cargo.lock"\n'
            "Content-Type: application/octet-stream\n"
            "X-Trace: 1\n"
            "\n"
            "< ./Cargo.lock\n"
            "--foo--"
        )
        form = assemble_form(CONTENT_TYPE, body, str(tmp_path))
        part = form["image"]
        try:
            assert part.filename == "Cargo.lock"
            assert part.headers == {"X-Trace": "1"}
            assert part.content.handle.read() == b"lock contents"
        finally:
            form.close()

    def test_blank_line_after_delimiter_is_tolerated(self, tmp_path):
        body = '--foo\n\nContent-Disposition: form-data; name="a"\n\nvalue\n--foo--'
        form = assemble_form(CONTENT_TYPE, body, str(tmp_path))
        assert form["a"].content == BytesContent(b"value")

    def test_part_without_body_is_empty_text(self, tmp_path):
        body = '--foo\nContent-Disposition: form-data; name="empty"\n--foo--'
        form = assemble_form(CONTENT_TYPE, body, str(tmp_path))
        assert form["empty"].content == TextContent("")

    def test_preamble_and_epilogue_are_ignored(self, tmp_path):
        body = (
            "\n"
            "--foo\n"
            'Content-Disposition: form-data; name="a"\n'
            "\n"
            "1\n"
            "--foo--\n"
            "trailing epilogue\n"
        )
        form = assemble_form(CONTENT_TYPE, body, str(tmp_path))
        assert list(form) == ["a"]

    def test_duplicate_names_last_wins(self, tmp_path):
        body = (
            '--foo\nContent-Disposition: form-data; name="a"\n\nfirst\n'
            '--foo\nContent-Disposition: form-data; name="a"\n\nsecond\n'
            "--foo--"
        )
        form = assemble_form(CONTENT_TYPE, body, str(tmp_path))
        assert len(form) == 1
        assert form["a"].content == BytesContent(b"second")

    def test_crlf_body(self, tmp_path):
        body = '--foo\r\nContent-Disposition: form-data; name="a"\r\n\r\nv\r\n--foo--\r\n'
        form = assemble_form(CONTENT_TYPE, body, str(tmp_path))
        assert form["a"].content == BytesContent(b"v")

    def test_part_without_disposition_raises(self, tmp_path):
        body = "--foo\nContent-Type: text/plain\n\nvalue\n--foo--"
        with pytest.raises(FormPartNameMissingError):
            assemble_form(CONTENT_TYPE, body, str(tmp_path))

    def test_one_nameless_part_fails_whole_form(self, tmp_path):
        body = (
            '--foo\nContent-Disposition: form-data; name="ok"\n\nfine\n'
            "--foo\nContent-Disposition: form-data\n\nlost\n"
            "--foo--"
        )
        with pytest.raises(FormPartNameMissingError):
            assemble_form(CONTENT_TYPE, body, str(tmp_path))

    def test_empty_name_raises(self, tmp_path):
        body = '--foo\nContent-Disposition: form-data; name=""\n\nx\n--foo--'
        with pytest.raises(FormPartNameMissingError):
            assemble_form(CONTENT_TYPE, body, str(tmp_path))

    def test_missing_boundary_raises(self, tmp_path):
        with pytest.raises(FormDataBoundaryMissingError):
            assemble_form("multipart/form-data", "--foo--", str(tmp_path))

    def test_opened_files_closed_when_later_part_fails(self, tmp_path, monkeypatch):
        (tmp_path / "a.bin").write_bytes(b"a")
        opened = []
        real_open = open

        def tracking_open(*args, **kwargs):
            handle = real_open(*args, **kwargs)
            opened.append(handle)
            return handle

        monkeypatch.setattr("builtins.open", tracking_open)
        body = (
            '--foo\nContent-Disposition: form-data; name="a"\n\n< a.bin\n'
            "--foo\nX-No-Name: 1\n\nvalue\n"
            "--foo--"
        )
        with pytest.raises(FormPartNameMissingError):
            assemble_form(CONTENT_TYPE, body, str(tmp_path))
        assert len(opened) == 1
        assert opened[0].closed
