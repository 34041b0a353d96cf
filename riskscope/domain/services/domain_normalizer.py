"""Canonical form of a domain string, used as the site identity key."""

import re

_SCHEME = re.compile(r"^https?://")
_PATH_START = re.compile(r"[/?#]")


def _normalize_once(raw: str) -> str:
    domain = raw.lower().strip()
    domain = _SCHEME.sub("", domain)
    domain = _PATH_START.split(domain, maxsplit=1)[0]
    domain = domain.split(":", 1)[0]
    while domain.startswith("www."):
        domain = domain[len("www."):]
    return domain.strip()


def normalize_domain(raw: str) -> str:
    """Normalize a raw domain, URL or host string.

    Lowercases and trims, then drops the ``http(s)://`` scheme, anything from
    the first ``/``, ``?`` or ``#``, a ``:port`` suffix and a leading ``www.``.

    The steps are repeated until the value stops changing, so
    ``normalize_domain(normalize_domain(x)) == normalize_domain(x)`` holds for
    every input, e.g. ``"www. example.com"``.

    Args:
        raw: Raw user or scanner input

    Returns:
        Normalized domain, possibly empty
    """
    current = raw
    while True:
        normalized = _normalize_once(current)
        if normalized == current:
            return normalized
        current = normalized
