"""Document store access for JotBird Publisher."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml

from jotbird_publisher.core.models import VaultFile
from jotbird_publisher.transforms.frontmatter import MetadataTransform, split_frontmatter

logger = logging.getLogger(__name__)

RenameHandler = Callable[[str, str], None]
DeleteHandler = Callable[[str], None]


class DocumentStore(ABC):
    """Contract for the host that owns the notes being published.

    Reads and metadata writes are coroutines; rename and delete events are
    delivered synchronously to registered handlers.
    """

    def __init__(self) -> None:
        self._rename_handlers: List[RenameHandler] = []
        self._delete_handlers: List[DeleteHandler] = []

    @abstractmethod
    async def list_files(self, extension: Optional[str] = None) -> List[VaultFile]:
        """List documents, optionally only those with the given extension."""

    @abstractmethod
    async def get_file(self, path: str) -> Optional[VaultFile]:
        """Resolve a document by its exact path."""

    @abstractmethod
    async def read(self, file: VaultFile) -> str:
        """Read the full text of a document."""

    @abstractmethod
    async def read_binary(self, file: VaultFile) -> bytes:
        """Read the raw bytes of a document."""

    @abstractmethod
    async def get_metadata(self, file: VaultFile) -> Dict[str, Any]:
        """Return the parsed metadata header, empty when there is none."""

    @abstractmethod
    async def process_metadata(self, file: VaultFile, transform: MetadataTransform) -> None:
        """Replace a document's metadata header with transform(header)."""

    def on_rename(self, handler: RenameHandler) -> None:
        """Register handler(old_path, new_path) for renames."""
        self._rename_handlers.append(handler)

    def on_delete(self, handler: DeleteHandler) -> None:
        """Register handler(path) for deletions."""
        self._delete_handlers.append(handler)

    def _emit_rename(self, old_path: str, new_path: str) -> None:
        for handler in self._rename_handlers:
            handler(old_path, new_path)

    def _emit_delete(self, path: str) -> None:
        for handler in self._delete_handlers:
            handler(path)


class FileVault(DocumentStore):
    """A document store backed by a directory of markdown files.

    Hidden directories such as .obsidian or .jotbird are not part of the vault.
    """

    def __init__(self, vault_path: Path):
        """Initialize FileVault.

        Args:
            vault_path: Path to the vault root
        """
        super().__init__()
        self.vault_path = Path(vault_path)

    async def list_files(self, extension: Optional[str] = None) -> List[VaultFile]:
        if not self.vault_path.is_dir():
            raise FileNotFoundError(f"Vault directory not found: {self.vault_path}")

        files = []
        for file_path in sorted(self.vault_path.rglob("*")):
            if not file_path.is_file():
                continue
            relative = file_path.relative_to(self.vault_path)
            if any(part.startswith('.') for part in relative.parts):
                continue
            file = VaultFile(relative.as_posix())
            if extension is None or file.extension == extension.lower():
                files.append(file)
        return files

    async def get_file(self, path: str) -> Optional[VaultFile]:
        if (self.vault_path / path).is_file():
            return VaultFile(Path(path).as_posix())
        return None

    async def read(self, file: VaultFile) -> str:
        return self._resolve(file).read_text(encoding='utf-8')

    async def read_binary(self, file: VaultFile) -> bytes:
        return self._resolve(file).read_bytes()

    async def get_metadata(self, file: VaultFile) -> Dict[str, Any]:
        content = await self.read(file)
        header, _ = split_frontmatter(content)
        if not header:
            return {}
        try:
            return self._parse_header(header)
        except (yaml.YAMLError, ValueError) as e:
            logger.warning("Failed to parse frontmatter in %s: %s", file.path, e)
            return {}

    async def process_metadata(self, file: VaultFile, transform: MetadataTransform) -> None:
        """Rewrite the header of a file, keeping its body intact.

        Raises:
            yaml.YAMLError: If the existing header is not valid YAML
            ValueError: If the existing header is not a mapping
        """
        path = self._resolve(file)
        content = path.read_text(encoding='utf-8')
        header, body = split_frontmatter(content)

        frontmatter = self._parse_header(header) if header else {}
        updated = transform(dict(frontmatter))

        if updated:
            frontmatter_str = yaml.safe_dump(
                updated,
                default_flow_style=False,
                allow_unicode=True,
                sort_keys=False,
            )
            content = f"---\n{frontmatter_str}---\n{body}"
        else:
            content = body

        path.write_text(content, encoding='utf-8')

    def rename(self, old_path: str, new_path: str) -> None:
        """Move a file inside the vault and notify rename handlers."""
        target = self.vault_path / new_path
        target.parent.mkdir(parents=True, exist_ok=True)
        (self.vault_path / old_path).rename(target)
        self._emit_rename(Path(old_path).as_posix(), Path(new_path).as_posix())

    def delete(self, path: str) -> None:
        """Remove a file from the vault and notify delete handlers."""
        (self.vault_path / path).unlink()
        self._emit_delete(Path(path).as_posix())

    def _resolve(self, file: VaultFile) -> Path:
        return self.vault_path / file.path

    def _parse_header(self, header: str) -> Dict[str, Any]:
        frontmatter = yaml.safe_load(header)
        if frontmatter is None:
            return {}
        if not isinstance(frontmatter, dict):
            raise ValueError("frontmatter is not a mapping")
        return frontmatter
