"""Core components for JotBird Publisher."""

from jotbird_publisher.core.models import (
    LocalState,
    PublishedRecord,
    PublishOutcome,
    Settings,
    VaultFile,
)
from jotbird_publisher.core.vault import DocumentStore, FileVault
from jotbird_publisher.core.state import StateStore

__all__ = [
    "LocalState",
    "PublishedRecord",
    "PublishOutcome",
    "Settings",
    "VaultFile",
    "DocumentStore",
    "FileVault",
    "StateStore",
]
