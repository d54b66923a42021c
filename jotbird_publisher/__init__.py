"""
JotBird Publisher - Publish Obsidian notes to JotBird

Converts vault notes into portable markdown and keeps track of the public
pages they were published to, with support for:
- Frontmatter, comment and tag stripping
- Wikilink flattening
- Local image upload
- Anonymous publishing and claiming into an account
"""

from jotbird_publisher.version import __version__
from jotbird_publisher.core.models import LocalState, PublishedRecord, PublishOutcome, Settings, VaultFile
from jotbird_publisher.core.vault import DocumentStore, FileVault
from jotbird_publisher.core.state import StateStore
from jotbird_publisher.core.processor import MarkdownPipeline, extract_title
from jotbird_publisher.core.publisher import Publisher, create_publisher_from_config
from jotbird_publisher.api import ApiError, ErrorKind, JotBirdClient
from jotbird_publisher.config import PublisherConfig, load_config

__all__ = [
    "__version__",
    "LocalState",
    "PublishedRecord",
    "PublishOutcome",
    "Settings",
    "VaultFile",
    "DocumentStore",
    "FileVault",
    "StateStore",
    "MarkdownPipeline",
    "extract_title",
    "Publisher",
    "create_publisher_from_config",
    "ApiError",
    "ErrorKind",
    "JotBirdClient",
    "PublisherConfig",
    "load_config",
]
