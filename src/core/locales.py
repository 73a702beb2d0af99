"""Locale and static-asset helpers shared by the prelaunch gate and locale router."""

from __future__ import annotations

import re

from django.conf import settings

STATIC_PREFIXES = ("/_next/", "/_static/")
STATIC_EXTENSION_RE = re.compile(r"\.(ico|png|jpg|jpeg|svg|css|js|woff|woff2|ttf|eot)$", re.IGNORECASE)


def supported_locales() -> list[str]:
    return [code for code, _name in settings.LANGUAGES]


def default_locale() -> str:
    return settings.LANGUAGE_CODE


def locale_from_path(path: str) -> str | None:
    """Return the first path segment when it is a supported locale."""
    segments = [segment for segment in path.split("/") if segment]
    if segments and segments[0] in supported_locales():
        return segments[0]
    return None


def locale_from_accept_language(header: str) -> str | None:
    """Pick the best supported locale from an Accept-Language header.

    Regional variants collapse to their base language (``ar-SA`` -> ``ar``).
    """
    candidates = []
    for index, part in enumerate(header.split(",")):
        tag, _, params = part.strip().partition(";")
        tag = tag.strip().lower()
        if not tag:
            continue
        quality = 1.0
        params = params.strip()
        if params.startswith("q="):
            try:
                quality = float(params[2:])
            except ValueError:
                quality = 0.0
        candidates.append((-quality, index, tag))

    available = supported_locales()
    for _quality, _index, tag in sorted(candidates):
        base = tag.split("-", 1)[0]
        if tag in available:
            return tag
        if base in available:
            return base
    return None


def fallback_locale(request) -> str:
    """Locale to use when the path carries none."""
    if getattr(settings, "LOCALE_DETECTION", False):
        detected = locale_from_accept_language(request.META.get("HTTP_ACCEPT_LANGUAGE", ""))
        if detected:
            return detected
    return default_locale()


def request_locale(request) -> str:
    """Locale of the request path, falling back when absent or unknown."""
    return locale_from_path(request.path_info) or fallback_locale(request)


def is_static_asset(path: str) -> bool:
    static_url = "/" + settings.STATIC_URL.lstrip("/")
    if path.startswith(STATIC_PREFIXES) or path.startswith(static_url):
        return True
    return bool(STATIC_EXTENSION_RE.search(path))


__all__ = [
    "default_locale",
    "fallback_locale",
    "is_static_asset",
    "locale_from_accept_language",
    "locale_from_path",
    "request_locale",
    "supported_locales",
]
