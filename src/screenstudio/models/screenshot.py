# -*- coding: utf-8 -*-
"""Screenshot (slide) data model."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from screenstudio.models.image import ImageHandle, LocalizedImage

KIND_ATTRIBUTES = {
    "background": "background",
    "screenshot": "transform",
    "transform": "transform",
    "text": "text",
}


def new_uid() -> str:
    return uuid4().hex


@dataclass
class Screenshot:
    """One slide: localized images plus its own visual settings."""

    name: str
    background: dict[str, Any]
    transform: dict[str, Any]
    text: dict[str, Any]
    device_type: str = "iphone"
    localized_images: dict[str, LocalizedImage] = field(default_factory=dict)
    image: ImageHandle | None = None
    src: str = ""
    overrides: dict[str, Any] = field(default_factory=dict)
    uid: str = field(default_factory=new_uid, compare=False)
    ready: bool = field(default=True, compare=False)

    @classmethod
    def from_defaults(cls, defaults: dict[str, Any], name: str = "") -> Screenshot:
        """Create a screenshot seeded with independent copies of ``defaults``."""
        return cls(
            name=name,
            background=deepcopy(defaults["background"]),
            transform=deepcopy(defaults["screenshot"]),
            text=deepcopy(defaults["text"]),
        )

    def settings(self, kind: str) -> dict[str, Any]:
        try:
            return getattr(self, KIND_ATTRIBUTES[kind])
        except KeyError:
            raise KeyError(f"Unknown settings kind: {kind}") from None

    def languages(self) -> list[str]:
        """Languages with a decoded image; failed or missing sources do not count."""
        return [lang for lang, entry in self.localized_images.items() if entry.image is not None]
