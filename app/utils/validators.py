"""Custom validation utilities."""

import re
from urllib.parse import urlparse

_HOST_PATTERN = re.compile(r"^(localhost|[a-z0-9-]+(\.[a-z0-9-]+)+)(:\d{1,5})?$", re.IGNORECASE)


def validate_url(url: str) -> bool:
    """Validate an absolute http(s) URL.

    Args:
        url: URL to validate

    Returns:
        bool: True if the URL has an http/https scheme and a plausible host
    """
    if not url or any(ch.isspace() for ch in url.strip()):
        return False

    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https"):
        return False

    return bool(_HOST_PATTERN.match(parsed.netloc))


def is_blank(value: object) -> bool:
    """True for None or strings that are empty after stripping."""
    return value is None or (isinstance(value, str) and not value.strip())


def mask_sensitive_data(data: str, visible_chars: int = 4) -> str:
    """Mask sensitive data showing only last few characters.

    Args:
        data: Sensitive data to mask
        visible_chars: Number of characters to show at end

    Returns:
        str: Masked string like '********7890'
    """
    if len(data) <= visible_chars:
        return "*" * len(data)

    masked_length = len(data) - visible_chars
    return "*" * masked_length + data[-visible_chars:]
