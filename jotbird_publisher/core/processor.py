"""Content processor turning vault notes into publishable markdown."""

import logging
import re
from typing import Optional

from jotbird_publisher.core.models import VaultFile
from jotbird_publisher.core.vault import DocumentStore
from jotbird_publisher.images.uploader import ImageHost, ImageUploader
from jotbird_publisher.transforms.comments import strip_comments
from jotbird_publisher.transforms.frontmatter import header_title, strip_frontmatter
from jotbird_publisher.transforms.links import convert_wikilinks
from jotbird_publisher.transforms.tags import strip_tags

logger = logging.getLogger(__name__)

H1_PATTERN = re.compile(r'^#[ \t]+(.+?)[ \t]*\r?$', re.MULTILINE)


class MarkdownPipeline:
    """Processes note content for publishing.

    Handles, in order:
    - Frontmatter stripping
    - Comment stripping
    - Local image upload
    - Wikilink to plain text conversion
    - Optional tag stripping
    """

    def __init__(
        self,
        store: DocumentStore,
        host: ImageHost,
        api_key: str = "",
        strip_tags: bool = True,
    ):
        """Initialize MarkdownPipeline.

        Args:
            store: Document store images are resolved against
            host: Service images are uploaded to
            api_key: Credential used for image uploads
            strip_tags: Whether to remove inline #tags
        """
        self.store = store
        self.strip_tags = strip_tags
        self.uploader = ImageUploader(store, host, api_key)

    async def transform(self, content: str, source: Optional[VaultFile] = None) -> str:
        """Turn raw note text into markdown ready for publishing.

        Args:
            content: Full note text including frontmatter
            source: The note the content was read from

        Returns:
            Publish-ready markdown, trimmed
        """
        md = strip_frontmatter(content)
        md = strip_comments(md)
        # Images must be processed before wikilinks so ![[image.png]] is still intact
        md = await self.uploader.process(md)
        md = convert_wikilinks(md)
        if self.strip_tags:
            md = strip_tags(md)

        if source is not None:
            logger.debug("Transformed %s (%d chars)", source.path, len(md))
        return md.strip()


def extract_title(content: str, file: VaultFile) -> str:
    """Pick a display title for a note.

    Uses the frontmatter title, then the first H1, then the file name.
    """
    title = header_title(content)
    if title:
        return title

    match = H1_PATTERN.search(strip_frontmatter(content))
    if match:
        return match.group(1).strip()

    return file.basename


def ensure_title_heading(markdown: str, title: str) -> str:
    """Prepend "# title" unless the markdown already opens with an H1."""
    if markdown.startswith('# '):
        return markdown
    return f"# {title}\n\n{markdown}"
