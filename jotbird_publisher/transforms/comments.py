"""Removal of Obsidian %%comment%% spans."""

import re

COMMENT_PATTERN = re.compile(r'%%[\s\S]*?%%')


def strip_comments(content: str) -> str:
    """Remove every balanced %%...%% span, inline or multi-line."""
    return COMMENT_PATTERN.sub('', content)
