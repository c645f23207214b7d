# -*- coding: utf-8 -*-
"""Tests for upload validation and image decoding helpers."""

from __future__ import annotations

import pytest

from screenstudio.constants import MAX_FILE_SIZE
from screenstudio.utils.image_utils import (
    ImageDecodeError,
    ImageValidationError,
    decode_image_bytes,
    infer_device_type,
    parse_data_url,
    to_data_url,
    validate_upload,
)


@pytest.mark.parametrize(
    ("filename", "mime"),
    [("a.png", "image/png"), ("b.JPG", "image/jpeg"), ("c.jpeg", "image/jpeg"), ("d.webp", "image/webp")],
)
def test_validate_upload_accepts_supported_types(filename: str, mime: str) -> None:
    assert validate_upload(filename, b"data") == mime


@pytest.mark.parametrize("filename", ["a.gif", "b.txt", "noext"])
def test_validate_upload_rejects_other_types(filename: str) -> None:
    with pytest.raises(ImageValidationError):
        validate_upload(filename, b"data")


def test_validate_upload_size_limits() -> None:
    validate_upload("ok.png", b"\0" * MAX_FILE_SIZE)
    with pytest.raises(ImageValidationError, match="20 MB"):
        validate_upload("big.png", b"\0" * (MAX_FILE_SIZE + 1))
    with pytest.raises(ImageValidationError, match="empty"):
        validate_upload("empty.png", b"")


def test_decode_image_bytes(png_bytes: bytes, tiny_png_bytes: bytes) -> None:
    handle = decode_image_bytes(png_bytes)
    assert (handle.width, handle.height) == (4, 8)
    assert handle.aspect_ratio == 2.0
    tiny = decode_image_bytes(tiny_png_bytes)
    assert (tiny.width, tiny.height) == (1, 1)


@pytest.mark.parametrize("data", [b"", b"definitely not an image"])
def test_decode_image_bytes_rejects_garbage(data: bytes) -> None:
    with pytest.raises(ImageDecodeError):
        decode_image_bytes(data)


def test_data_url_helpers(png_bytes: bytes) -> None:
    url = to_data_url(png_bytes, "image/png")
    assert url.startswith("data:image/png;base64,")
    assert parse_data_url(url) == ("image/png", png_bytes)
    assert parse_data_url("/path/to/file.png") is None
    assert parse_data_url(None) is None


@pytest.mark.parametrize(
    ("width", "height", "expected"),
    [(1290, 2796, "iphone"), (2048, 2732, "ipad"), (1080, 1920, "iphone"), (100, 150, "iphone"), (0, 10, "iphone")],
)
def test_infer_device_type(width: int, height: int, expected: str) -> None:
    assert infer_device_type(width, height) == expected
