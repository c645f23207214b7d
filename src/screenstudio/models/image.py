# -*- coding: utf-8 -*-
"""Image handle and localized image entry models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(eq=False)
class ImageHandle:
    """Decoded image pixels.

    Handles are opaque to the state model: copying a state never copies the
    pixel buffer, every copy shares the same handle object.
    """

    pixels: Any
    width: int
    height: int

    def __copy__(self) -> ImageHandle:
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> ImageHandle:
        return self

    @property
    def aspect_ratio(self) -> float:
        return self.height / self.width if self.width else 0.0


@dataclass
class LocalizedImage:
    """One language variant of a screenshot image."""

    image: ImageHandle | None
    src: str
    name: str
