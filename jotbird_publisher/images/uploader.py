"""Local image upload for JotBird Publisher.

Finds images the note embeds from the vault, uploads them to the service
and points the references at the hosted copies.
"""

import logging
import re
from typing import List, Optional, Protocol, Tuple

from jotbird_publisher.api.errors import ApiError
from jotbird_publisher.core.models import VaultFile
from jotbird_publisher.core.vault import DocumentStore
from jotbird_publisher.transforms.code import CodeRegions

logger = logging.getLogger(__name__)

MIME_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
}

IMAGE_EXTENSION_PATTERN = re.compile(r'\.(png|jpe?g|gif|webp|svg)$', re.IGNORECASE)

# Pattern for image embeds: ![[image.png]] or ![[image.png|alt]]
IMAGE_EMBED_PATTERN = re.compile(r'!\[\[([^\]|]+(?:\.[a-zA-Z]+))(?:\|[^\]]*)?\]\]')

# Pattern for standard images with a non-network target: ![alt](path)
MARKDOWN_IMAGE_PATTERN = re.compile(r'!\[([^\]]*)\]\((?!https?://)([^)]+)\)')


class ImageHost(Protocol):
    async def upload_image(self, api_key: str, data: bytes, filename: str, mime_type: str) -> str:
        ...


def get_mime_type(extension: str) -> Optional[str]:
    return MIME_TYPES.get(extension.lower())


class ImageUploader:
    """Uploads vault images referenced by a note and rewrites the references.

    Images that cannot be resolved, read or uploaded keep their original
    reference; nothing here raises to the caller.
    """

    def __init__(self, store: DocumentStore, host: ImageHost, api_key: str = ""):
        """Initialize ImageUploader.

        Args:
            store: Document store the images are read from
            host: Service the images are uploaded to
            api_key: Credential sent along with uploads, may be empty
        """
        self.store = store
        self.host = host
        self.api_key = api_key

    async def process(self, content: str) -> str:
        """Upload every local image in content and return the rewritten text.

        Each original reference is replaced at every place it occurs.
        """
        regions = CodeRegions.scan(content)
        replacements: List[Tuple[str, str]] = []

        for match in IMAGE_EMBED_PATTERN.finditer(content):
            if regions.contains(match.start()):
                continue
            name = match.group(1)
            if not IMAGE_EXTENSION_PATTERN.search(name):
                continue
            url = await self.resolve_and_upload(name)
            if url:
                # Alt text is dropped for embeds
                replacements.append((match.group(0), f"![]({url})"))

        for match in MARKDOWN_IMAGE_PATTERN.finditer(content):
            if regions.contains(match.start()):
                continue
            alt, path = match.group(1), match.group(2)
            if path.startswith('/') or not IMAGE_EXTENSION_PATTERN.search(path):
                continue
            url = await self.resolve_and_upload(path)
            if url:
                replacements.append((match.group(0), f"![{alt}]({url})"))

        for original, replacement in replacements:
            content = content.replace(original, replacement)

        return content

    async def resolve(self, name: str) -> Optional[VaultFile]:
        """Find a vault file by exact path, then file name, then path suffix."""
        files = await self.store.list_files()
        for file in files:
            if file.path == name or file.name == name or file.path.endswith("/" + name):
                return file
        return None

    async def resolve_and_upload(self, name: str) -> Optional[str]:
        """Upload the named image, returning its hosted URL or None."""
        try:
            file = await self.resolve(name)
            if file is None:
                logger.debug("Image not found in vault: %s", name)
                return None

            mime_type = get_mime_type(file.extension)
            if mime_type is None:
                return None

            data = await self.store.read_binary(file)
            return await self.host.upload_image(self.api_key, data, file.name, mime_type)
        except (OSError, ApiError) as e:
            logger.warning("Failed to upload image %s: %s", name, e)
            return None
