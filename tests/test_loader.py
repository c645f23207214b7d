# -*- coding: utf-8 -*-
"""Tests for batched localized image decoding."""

from __future__ import annotations

import threading

from screenstudio.core.loader import DecodeRequest, ImageBatchLoader
from screenstudio.models.image import ImageHandle
from screenstudio.models.project import ProjectState
from screenstudio.models.screenshot import Screenshot
from screenstudio.utils.image_utils import ImageDecodeError


def _screenshot() -> Screenshot:
    return Screenshot.from_defaults(ProjectState.empty().defaults, name="S1_en.png")


def _fake_decoder(data: bytes) -> ImageHandle:
    if data == b"bad":
        raise ImageDecodeError("broken")
    return ImageHandle(pixels=data, width=10, height=20)


def test_all_languages_resolve_before_ready() -> None:
    loader = ImageBatchLoader(decoder=_fake_decoder)
    screenshot = _screenshot()
    batch = loader.submit(
        screenshot,
        [DecodeRequest("en", "S1_en.png", "en-src", b"en"), DecodeRequest("de", "S1_de.png", "de-src", b"de")],
    )
    assert screenshot.ready is False
    failures = loader.apply(screenshot, batch, current_language="en", timeout=5)
    assert failures == []
    assert screenshot.ready is True
    assert set(screenshot.localized_images) == {"en", "de"}
    assert screenshot.image.pixels == b"en"
    loader.shutdown()


def test_failed_decode_is_reported_and_others_kept() -> None:
    loader = ImageBatchLoader(decoder=_fake_decoder)
    screenshot = _screenshot()
    failures = loader.load(
        screenshot,
        [DecodeRequest("en", "a", "src-a", b"ok"), DecodeRequest("de", "b", "src-b", b"bad")],
        current_language="en",
        timeout=5,
    )
    assert [failure.language for failure in failures] == ["de"]
    assert screenshot.localized_images["en"].image is not None
    assert screenshot.localized_images["de"].image is None
    assert screenshot.ready is True
    loader.shutdown()


def test_missing_source_keeps_entry_without_image() -> None:
    loader = ImageBatchLoader(decoder=_fake_decoder)
    screenshot = _screenshot()
    failures = loader.load(screenshot, [DecodeRequest("en", "a", "/gone.png", None)], current_language="en")
    assert failures == []
    assert screenshot.localized_images["en"].src == "/gone.png"
    loader.shutdown()


def test_cancelled_batch_is_not_applied() -> None:
    release = threading.Event()

    def _blocking_decoder(data: bytes) -> ImageHandle:
        release.wait(2.0)
        return ImageHandle(pixels=data, width=1, height=1)

    loader = ImageBatchLoader(decoder=_blocking_decoder, max_workers=1)
    screenshot = _screenshot()
    batch = loader.submit(screenshot, [DecodeRequest("en", "a", "a", b"a"), DecodeRequest("de", "b", "b", b"b")])
    assert loader.cancel(screenshot.uid) is True
    release.set()
    assert loader.apply(screenshot, batch, current_language="en", timeout=5) == []
    assert screenshot.localized_images == {}
    assert batch.done() is True
    loader.shutdown()


def test_empty_batch_is_ready_immediately() -> None:
    loader = ImageBatchLoader(decoder=_fake_decoder)
    screenshot = _screenshot()
    loader.submit(screenshot, [])
    assert screenshot.ready is True
    loader.shutdown()
