"""Frontmatter helpers for JotBird Publisher.

Covers stripping the YAML header from note text, reading the title out of
it, and the transform factories used to mirror publish status back into a
note's properties.
"""

import re
from typing import Any, Callable, Dict, Optional, Tuple

MetadataTransform = Callable[[Dict[str, Any]], Dict[str, Any]]

LINK_KEY = "jotbird_link"
EXPIRES_KEY = "jotbird_expires"
LEGACY_KEYS = ("jotbird_url", "jotbird_slug", "jotbird_published")
LEGACY_LINK_KEY = "jotbird_url"
LEGACY_PUBLISHED_KEY = "jotbird_published"

NEVER_EXPIRES = "never"

# Opening delimiter on the very first line, closing delimiter on a line of its own
FRONTMATTER_PATTERN = re.compile(r'\A---\r?\n(?:(.*?)\r?\n)?---\r?(?:\n|\Z)', re.DOTALL)

TITLE_PATTERN = re.compile(r'^title:[ \t]*(\S.*?)[ \t]*\r?$', re.MULTILINE)


def split_frontmatter(content: str) -> Tuple[Optional[str], str]:
    """Split note text into its header block and body.

    Args:
        content: Full note text

    Returns:
        Tuple of (header text or None when absent, body)
    """
    match = FRONTMATTER_PATTERN.match(content)
    if not match:
        return None, content
    return match.group(1) or "", content[match.end():]


def strip_frontmatter(content: str) -> str:
    """Remove a leading YAML header; anything else is left untouched."""
    return split_frontmatter(content)[1]


def header_title(content: str) -> Optional[str]:
    """Read the title key out of a leading header.

    A single layer of matching single or double quotes is removed. A blank
    value counts as no title.
    """
    header, _ = split_frontmatter(content)
    if not header:
        return None
    match = TITLE_PATTERN.search(header)
    if not match:
        return None
    title = match.group(1)
    if len(title) >= 2 and title[0] == title[-1] and title[0] in ("'", '"'):
        title = title[1:-1].strip()
    return title or None


def expiration_label(expires_at: Optional[str], ttl_days: Optional[int]) -> str:
    """Human-readable expiry: "never" on the permanent tier, else the date."""
    if not ttl_days or not expires_at:
        return NEVER_EXPIRES
    return expires_at[:10]


def publish_fields(url: str, expires: str) -> MetadataTransform:
    """Create a transform that records the published link and expiry.

    The current keys are removed and re-added so the link always comes
    before the expiry; properties written by older versions are dropped.

    Args:
        url: Public URL of the published document
        expires: Expiry label, see expiration_label()

    Returns:
        A transform function (header) -> header
    """
    def transform(fm: Dict[str, Any]) -> Dict[str, Any]:
        result = {
            k: v for k, v in fm.items()
            if k not in (LINK_KEY, EXPIRES_KEY) and k not in LEGACY_KEYS
        }
        result[LINK_KEY] = url
        result[EXPIRES_KEY] = expires
        return result
    return transform


def clear_publish_fields() -> MetadataTransform:
    """Create a transform that removes every publish property, old and new."""
    def transform(fm: Dict[str, Any]) -> Dict[str, Any]:
        return {
            k: v for k, v in fm.items()
            if k not in (LINK_KEY, EXPIRES_KEY) and k not in LEGACY_KEYS
        }
    return transform
