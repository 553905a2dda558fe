"""
Small helpers shared by the adapters, validation and enrichment services.
"""
import re
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlparse

_NON_ALNUM = re.compile(r"[^a-z0-9]")

_DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y-%m",
    "%Y/%m/%d",
    "%Y/%m",
    "%m/%Y",
    "%d/%m/%Y",
    "%b %Y",
    "%B %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%d %B %Y",
    "%Y",
]


def normalize_key(value: Optional[str]) -> str:
    """Lowercase and strip everything but letters and digits."""
    return _NON_ALNUM.sub("", (value or "").lower())


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """
    Parse the loose date strings found on CVs and web pages
    ("2023-04-01T10:00:00Z", "2023-04", "Apr 2023", "2023").
    Returns a timezone-aware UTC datetime or None.
    """
    if not value:
        return None
    text = value.strip()
    if not text:
        return None

    iso = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        parsed = datetime.fromisoformat(iso)
    except ValueError:
        parsed = None

    if parsed is None:
        for fmt in _DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_valid_url(url: Optional[str]) -> bool:
    if not url:
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
