# panel/errors.py
"""
Feiltyper for visningsmotoren. Alle er rådgivende: klokke og rotasjon
fortsetter uansett.
"""
from __future__ import annotations


class PanelError(Exception):
    """Felles base."""


class ValidationError(PanelError, ValueError):
    """Innsendt tekst er tom etter trim."""


class ThemeLoadError(PanelError):
    def __init__(self, theme_id: str, message: str) -> None:
        super().__init__(f"{theme_id}: {message}")
        self.theme_id = theme_id
        self.message = message


class CaptureError(PanelError):
    """Eksport forespurt før visningsflaten finnes."""
