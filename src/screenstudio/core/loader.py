# -*- coding: utf-8 -*-
"""Per-screenshot batches of localized image decodes."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field

from screenstudio.core.localization import add_localized_image
from screenstudio.models.image import ImageHandle
from screenstudio.models.screenshot import Screenshot
from screenstudio.utils.image_utils import decode_image_bytes

logger = logging.getLogger(__name__)

Decoder = Callable[[bytes], ImageHandle]


@dataclass
class DecodeRequest:
    """One localized image to restore; ``data`` is None when the source is gone."""

    language: str
    name: str
    src: str
    data: bytes | None


@dataclass
class DecodeOutcome:
    language: str
    name: str
    src: str
    image: ImageHandle | None = None
    error: str | None = None


@dataclass
class LoadBatch:
    """Handle for the decodes of one screenshot."""

    screenshot_uid: str
    requests: list[DecodeRequest]
    futures: list[Future] = field(default_factory=list)
    cancelled: bool = False

    def done(self) -> bool:
        return self.cancelled or all(future.done() for future in self.futures)

    def outcomes(self, timeout: float | None = None) -> list[DecodeOutcome]:
        """Wait for every decode and collect the results in request order."""
        wait(self.futures, timeout=timeout)
        results: list[DecodeOutcome] = []
        for request, future in zip(self.requests, self.futures):
            if future.cancelled():
                continue
            if not future.done():
                results.append(DecodeOutcome(request.language, request.name, request.src, error="Timed out"))
                continue
            results.append(future.result())
        return results


class ImageBatchLoader:
    """Decode localized images in parallel and expose a screenshot only when all resolved."""

    def __init__(self, decoder: Decoder | None = None, max_workers: int = 4) -> None:
        self._decoder = decoder or decode_image_bytes
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="screenstudio-decode")
        self._lock = threading.Lock()
        self._batches: dict[str, LoadBatch] = {}

    def _decode(self, request: DecodeRequest) -> DecodeOutcome:
        outcome = DecodeOutcome(request.language, request.name, request.src)
        if request.data is None:
            return outcome
        try:
            outcome.image = self._decoder(request.data)
        except Exception as exc:
            logger.warning("Could not decode %s (%s): %s", request.name or "image", request.language, exc)
            outcome.error = str(exc)
        return outcome

    def submit(self, screenshot: Screenshot, requests: list[DecodeRequest]) -> LoadBatch:
        """Start decoding; the screenshot stays not-ready until ``apply`` runs."""
        self.cancel(screenshot.uid)
        batch = LoadBatch(screenshot_uid=screenshot.uid, requests=list(requests))
        screenshot.ready = not batch.requests
        batch.futures = [self._executor.submit(self._decode, request) for request in batch.requests]
        with self._lock:
            self._batches[screenshot.uid] = batch
        return batch

    def cancel(self, screenshot_uid: str) -> bool:
        """Cancel the batch for a deleted or reloaded screenshot."""
        with self._lock:
            batch = self._batches.pop(screenshot_uid, None)
        if batch is None:
            return False
        batch.cancelled = True
        for future in batch.futures:
            future.cancel()
        return True

    def cancel_all(self) -> None:
        with self._lock:
            uids = list(self._batches)
        for uid in uids:
            self.cancel(uid)

    def apply(
        self,
        screenshot: Screenshot,
        batch: LoadBatch,
        current_language: str,
        timeout: float | None = None,
    ) -> list[DecodeOutcome]:
        """Join the batch, write the images into the screenshot and return failures."""
        try:
            outcomes = batch.outcomes(timeout=timeout)
        except CancelledError:
            outcomes = []
        with self._lock:
            if self._batches.get(screenshot.uid) is batch:
                del self._batches[screenshot.uid]
        if batch.cancelled:
            return []

        failures: list[DecodeOutcome] = []
        for outcome in outcomes:
            add_localized_image(
                screenshot, outcome.language, outcome.image, outcome.src, outcome.name, current_language
            )
            if outcome.error:
                failures.append(outcome)
        screenshot.ready = True
        return failures

    def load(
        self,
        screenshot: Screenshot,
        requests: list[DecodeRequest],
        current_language: str,
        timeout: float | None = None,
    ) -> list[DecodeOutcome]:
        return self.apply(screenshot, self.submit(screenshot, requests), current_language, timeout)

    def shutdown(self, wait_for_tasks: bool = True) -> None:
        self.cancel_all()
        self._executor.shutdown(wait=wait_for_tasks, cancel_futures=True)
