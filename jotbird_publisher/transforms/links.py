"""Wikilink conversion for JotBird Publisher.

Published pages have no vault to link into, so wikilinks collapse to the
text a reader would have seen.
"""

import re

# [[target|display]]; matched first so the target never swallows the alias
ALIASED_WIKILINK_PATTERN = re.compile(r'\[\[([^\]|]+)\|([^\]]+)\]\]')

WIKILINK_PATTERN = re.compile(r'\[\[([^\]]+)\]\]')


def convert_wikilinks(content: str) -> str:
    """Replace wikilinks with their display text.

    [[Page Name]] becomes "Page Name", [[Page Name|display]] becomes "display".
    """
    content = ALIASED_WIKILINK_PATTERN.sub(lambda m: m.group(2), content)
    return WIKILINK_PATTERN.sub(lambda m: m.group(1), content)
