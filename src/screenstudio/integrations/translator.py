# -*- coding: utf-8 -*-
"""Interface of the AI translation collaborator."""

from __future__ import annotations

from typing import Protocol


class TranslationError(RuntimeError):
    """Raised when the translation provider fails; shown to the user as-is."""


class Translator(Protocol):
    def translate_batch(self, source_lang: str, target_langs: list[str], texts: list[str]) -> dict[str, list[str]]:
        """Translate ``texts`` into every target language.

        Returns target language -> translations in the same order as ``texts``.
        """
        ...
