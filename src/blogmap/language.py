"""Language detection from URL structure.

Pure functions, no I/O. ``None`` means the language is unknown; callers
must not read it as English.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional, TypeVar
from urllib.parse import parse_qsl, urlparse

from pydantic import BaseModel

LANGUAGE_NAMES: dict[str, str] = {
    "de": "German",
    "fr": "French",
    "en": "English",
    "es": "Spanish",
    "it": "Italian",
    "pt": "Portuguese",
    "nl": "Dutch",
    "ja": "Japanese",
    "zh": "Chinese",
    "ko": "Korean",
    "ru": "Russian",
    "pl": "Polish",
    "sv": "Swedish",
    "no": "Norwegian",
    "da": "Danish",
    "fi": "Finnish",
}

SUPPORTED_LANGUAGE_CODES: tuple[str, ...] = tuple(LANGUAGE_NAMES)

# Region or script suffixes accepted after a code: "de-at", "en_us", "zh-hans"
LANGUAGE_REGIONS: dict[str, frozenset[str]] = {
    "de": frozenset({"de", "at", "ch"}),
    "fr": frozenset({"fr", "ca", "be", "ch"}),
    "en": frozenset({"us", "gb", "au", "ca", "uk"}),
    "es": frozenset({"es", "mx", "ar", "latam"}),
    "it": frozenset({"it"}),
    "pt": frozenset({"pt", "br"}),
    "nl": frozenset({"nl", "be"}),
    "ja": frozenset({"jp"}),
    "zh": frozenset({"cn", "tw", "hans", "hant"}),
    "ko": frozenset({"kr"}),
    "ru": frozenset({"ru"}),
    "pl": frozenset({"pl"}),
    "sv": frozenset({"se"}),
    "no": frozenset({"no"}),
    "da": frozenset({"dk"}),
    "fi": frozenset({"fi"}),
}

_LOCALE = re.compile(r"^([a-z]{2})(?:[-_]([a-z]{2,5}))?$", re.IGNORECASE)

_QUERY_KEYS = ("lang", "language", "locale", "hl")

T = TypeVar("T", bound=BaseModel)


def _code_from_token(token: str) -> Optional[str]:
    match = _LOCALE.match(token.strip())
    if not match:
        return None
    code = match.group(1).lower()
    if code not in LANGUAGE_NAMES:
        return None
    region = match.group(2)
    # "it-ops" or "no-code" is a section slug, not a locale
    if region and region.lower() not in LANGUAGE_REGIONS.get(code, frozenset()):
        return None
    return code


def detect_language_from_url(url: str) -> Optional[str]:
    """Detect an ISO 639-1 language code from a URL.

    Checks, in order: the first path segment, a ``lang=``-style query
    parameter, then the host's first label (``de.example.com``).

    Returns:
        Language code, or None when nothing matches
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return None

    segments = [s for s in parsed.path.split("/") if s]
    if segments:
        code = _code_from_token(segments[0])
        if code:
            return code

    for key, value in parse_qsl(parsed.query):
        if key.lower() in _QUERY_KEYS:
            code = _code_from_token(value)
            if code:
                return code

    host = (parsed.hostname or "").lower()
    labels = host.split(".")
    if len(labels) > 2 and labels[0] in LANGUAGE_NAMES:
        return labels[0]

    return None


def get_language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(code, code.upper())


def get_language_options() -> list[dict[str, str]]:
    """Language choices for UI pickers."""
    return [{"code": code, "name": name} for code, name in LANGUAGE_NAMES.items()]


def filter_by_language(
    posts: Iterable[T],
    languages: Optional[Iterable[str]],
    include_undetected: bool = True,
) -> list[T]:
    """Keep posts whose detected language is in ``languages``.

    An empty or missing filter keeps everything. Posts with no detectable
    language are kept only when ``include_undetected`` is set.
    """
    posts = list(posts)
    wanted = {code.lower() for code in languages or []}
    if not wanted:
        return posts

    kept = []
    for post in posts:
        code = getattr(post, "language", None) or detect_language_from_url(post.url)
        if code is None:
            if include_undetected:
                kept.append(post)
        elif code in wanted:
            kept.append(post)
    return kept
