"""
Shared validators for input sanitization.
Centralized URL normalization and search-term escaping.
"""

import re
from urllib.parse import urlparse

# Blocked internal hosts that must never be fetched as images (SSRF prevention)
BLOCKED_HOSTS = [
    "localhost",
    "127.0.0.1",
    "0.0.0.0",
    "10.",
    "192.168.",
    "169.254.",  # Link-local, cloud metadata
    "[::1]",
    "metadata.google",
]

MAX_URL_LENGTH = 2048

# Spreadsheet exports wrap links as =HYPERLINK("url", "label")
_HYPERLINK_PATTERNS = [
    re.compile(r'^(?:=)?HYPERLINK\(\s*"([^"]+)"', re.IGNORECASE),
    re.compile(r"^(?:=)?HYPERLINK\(\s*'([^']+)'", re.IGNORECASE),
    re.compile(r'^(?:=)?ГИПЕРССЫЛКА\(\s*"([^"]+)"', re.IGNORECASE),
    re.compile(r"^(?:=)?ГИПЕРССЫЛКА\(\s*'([^']+)'", re.IGNORECASE),
]


def extract_hyperlink_target(value: str) -> str:
    """Return the URL inside a spreadsheet HYPERLINK formula, or the value itself."""
    trimmed = value.strip()
    for pattern in _HYPERLINK_PATTERNS:
        match = pattern.match(trimmed)
        if match and match.group(1):
            return match.group(1).strip()
    return trimmed


def is_managed_image_url(url: str, managed_prefixes: list[str]) -> bool:
    """True when the URL already points at our own image storage."""
    value = url.strip()
    if not value:
        return False
    return any(value.startswith(prefix) for prefix in managed_prefixes)


def normalize_product_image_url(
    value: str | None,
    managed_prefixes: list[str] | None = None,
) -> str | None:
    """
    Normalize an incoming image reference.

    Accepts http(s) URLs, protocol-relative and ``www.`` URLs, inline
    ``data:image/`` payloads and URLs under a managed storage prefix.
    Returns None for anything else, including internal hosts.
    """
    if value is None:
        return None
    normalized = value.strip()
    if not normalized:
        return None

    candidate = extract_hyperlink_target(normalized)
    if candidate.startswith("//"):
        candidate = f"https:{candidate}"
    elif re.match(r"^www\.", candidate, re.IGNORECASE):
        candidate = f"https://{candidate}"

    if candidate.startswith("data:image/"):
        return candidate

    if managed_prefixes and is_managed_image_url(candidate, managed_prefixes):
        return candidate

    if len(candidate) > MAX_URL_LENGTH:
        return None

    parsed = urlparse(candidate)
    if parsed.scheme.lower() not in ("http", "https"):
        return None

    host = parsed.netloc.lower()
    if not host:
        return None
    for blocked in BLOCKED_HOSTS:
        if host.startswith(blocked):
            return None

    return candidate


def escape_like_pattern(value: str) -> str:
    """
    Escape special characters in LIKE patterns.

    SQL LIKE uses % and _ as wildcards. This function escapes them
    so user input is matched literally.
    """
    if not value:
        return value

    value = value.replace("\\", "\\\\")
    value = value.replace("%", "\\%")
    value = value.replace("_", "\\_")
    return value
