"""Checks applied to an incoming upload before any remote call is made."""

from pathlib import PureWindowsPath
from typing import BinaryIO, Optional

from ..errors import EmptyPayload, PayloadTooLarge

MAX_UPLOAD_BYTES = 100 * 1024 * 1024  # 100 MiB


def validate_upload(stream: Optional[BinaryIO], length: int, max_bytes: int = MAX_UPLOAD_BYTES) -> BinaryIO:
    """Return `stream` unchanged if it may be forwarded to the store.

    Raises `EmptyPayload` for a missing stream or zero length and
    `PayloadTooLarge` when `length` exceeds `max_bytes`.
    """
    if stream is None or not length:
        raise EmptyPayload()
    if length > max_bytes:
        raise PayloadTooLarge(length, max_bytes)
    return stream


def sanitize_file_name(file_name: Optional[str]) -> str:
    """Strip directory components from a client supplied file name."""
    # PureWindowsPath splits on both separators
    name = PureWindowsPath((file_name or "").strip()).name
    if not name or name in (".", ".."):
        raise EmptyPayload("A file name is required.")
    return name


def measure_stream(stream: BinaryIO) -> int:
    """Return the byte length of a seekable stream and rewind it."""
    stream.seek(0, 2)
    length = stream.tell()
    stream.seek(0)
    return length
