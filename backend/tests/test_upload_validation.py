import io

import pytest

from edusync.errors import EmptyPayload, PayloadTooLarge
from edusync.utils.content_types import resolve_content_type
from edusync.utils.upload_validation import (
    MAX_UPLOAD_BYTES,
    measure_stream,
    sanitize_file_name,
    validate_upload,
)


def test_content_type_is_case_insensitive():
    assert resolve_content_type("report.PDF") == "application/pdf"
    assert resolve_content_type("Slides.PpTx") == "application/vnd.openxmlformats-officedocument.presentationml.presentation"
    assert resolve_content_type("photo.jpeg") == resolve_content_type("photo.JPG") == "image/jpeg"


def test_content_type_unknown_extension_falls_back():
    assert resolve_content_type("archive.tar") == "application/octet-stream"
    assert resolve_content_type("README") == "application/octet-stream"
    assert resolve_content_type("") == "application/octet-stream"


def test_content_type_uses_last_extension():
    assert resolve_content_type("backup.tar.zip") == "application/zip"
    assert resolve_content_type("note.txt") == "text/plain"


def test_validate_rejects_zero_length():
    with pytest.raises(EmptyPayload):
        validate_upload(io.BytesIO(b""), 0)


def test_validate_rejects_missing_stream():
    with pytest.raises(EmptyPayload):
        validate_upload(None, 10)


def test_validate_rejects_one_byte_over_ceiling():
    assert MAX_UPLOAD_BYTES == 100 * 1024 * 1024
    with pytest.raises(PayloadTooLarge) as info:
        validate_upload(io.BytesIO(b"x"), MAX_UPLOAD_BYTES + 1)
    assert info.value.size == MAX_UPLOAD_BYTES + 1
    assert info.value.max_size == MAX_UPLOAD_BYTES
    assert info.value.status_code == 400


def test_validate_passes_stream_through():
    stream = io.BytesIO(b"x")
    assert validate_upload(stream, 1) is stream
    assert validate_upload(stream, MAX_UPLOAD_BYTES) is stream


def test_sanitize_strips_directories():
    assert sanitize_file_name("../../etc/passwd") == "passwd"
    assert sanitize_file_name("C:\\Users\\me\\notes.txt") == "notes.txt"
    assert sanitize_file_name(" plain.pdf ") == "plain.pdf"


@pytest.mark.parametrize("name", [None, "", "   ", ".."])
def test_sanitize_rejects_blank_names(name):
    with pytest.raises(EmptyPayload):
        sanitize_file_name(name)


def test_measure_stream_rewinds():
    stream = io.BytesIO(b"twenty bytes of text")
    stream.seek(5)
    assert measure_stream(stream) == 20
    assert stream.tell() == 0
