"""Mapping from client language codes to NIM model locales."""

from __future__ import annotations

DEFAULT_LANGUAGE = "en"
DEFAULT_LOCALE = "en-US"

_LOCALES: dict[str, str] = {
    "en": "en-US",
    "zh": "zh-CN",
    "ru": "ru-RU",
}


def to_backend_locale(code: str) -> str:
    """Return the backend locale for a two-letter client code.

    Unknown codes fall back to ``en-US``; matching is exact, so ``"ZH"``
    is treated as unknown.
    """

    return _LOCALES.get(code, DEFAULT_LOCALE)


__all__ = ["DEFAULT_LANGUAGE", "DEFAULT_LOCALE", "to_backend_locale"]
