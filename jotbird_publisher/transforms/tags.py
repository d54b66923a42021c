"""Inline #tag stripping for JotBird Publisher."""

import re

from jotbird_publisher.transforms.code import CodeRegions

# A # at line start or after whitespace, not doubled and not followed by a space
TAG_PATTERN = re.compile(r'(^|\s)#(?!#|\s)([\w/-]+)', re.MULTILINE)

HEADING_MARKER_PATTERN = re.compile(r'#{1,6}')


def strip_tags(content: str) -> str:
    """Remove inline tags such as #tag or #parent/child.

    The character before a tag is kept, so "a #b c" becomes "a  c". A tag
    sitting directly after a heading's own hashes ("## #topic") is treated
    as heading text and kept, while tags later in a heading line are
    stripped. Tags inside code are never touched.
    """
    regions = CodeRegions.scan(content)

    def replace_tag(match: re.Match) -> str:
        prefix = match.group(1)
        hash_offset = match.start() + len(prefix)
        if regions.contains(hash_offset):
            return match.group(0)

        line_start = content.rfind('\n', 0, hash_offset) + 1
        before = content[line_start:hash_offset].strip()
        if HEADING_MARKER_PATTERN.fullmatch(before):
            return match.group(0)

        return prefix

    return TAG_PATTERN.sub(replace_tag, content)
