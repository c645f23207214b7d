# -*- coding: utf-8 -*-
"""Interface of the compositing collaborator."""

from __future__ import annotations

from typing import Protocol

from screenstudio.models.screenshot import Screenshot


class Renderer(Protocol):
    def render(self, screenshot: Screenshot | None, language: str) -> None:
        ...
