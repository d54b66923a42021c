"""Publishing workflow: keeps vault notes and remote documents in step."""

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple
from urllib.parse import urlparse

import inflection
import yaml

from jotbird_publisher.api.client import JotBirdClient
from jotbird_publisher.api.errors import ApiError, ErrorKind
from jotbird_publisher.config import PublisherConfig
from jotbird_publisher.core.models import (
    DocumentSummary,
    LocalState,
    PublishOutcome,
    PublishResponse,
    PublishedRecord,
    Settings,
    VaultFile,
)
from jotbird_publisher.core.processor import MarkdownPipeline, ensure_title_heading, extract_title
from jotbird_publisher.core.state import StateStore
from jotbird_publisher.core.vault import DocumentStore, FileVault
from jotbird_publisher.transforms.frontmatter import (
    LEGACY_LINK_KEY,
    LEGACY_PUBLISHED_KEY,
    LINK_KEY,
    MetadataTransform,
    NEVER_EXPIRES,
    clear_publish_fields,
    expiration_label,
    publish_fields,
)

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "jb_"

# Failures writing a note's properties never fail the action around them
METADATA_ERRORS = (OSError, ValueError, yaml.YAMLError)


class Notifier(Protocol):
    """Where user-facing messages, clipboard copies and confirmations go."""

    def notify(self, message: str) -> None:
        ...

    def copy(self, text: str) -> None:
        ...

    def confirm(self, message: str) -> bool:
        ...


class LogNotifier:
    """Notifier for library use: messages go to the log, actions are confirmed."""

    def notify(self, message: str) -> None:
        logger.info(message)

    def copy(self, text: str) -> None:
        logger.info("Link: %s", text)

    def confirm(self, message: str) -> bool:
        return True


def _count(n: int, noun: str) -> str:
    return f"{n} {noun if n == 1 else inflection.pluralize(noun)}"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


class Publisher:
    """Publishes notes and reconciles local records with the service.

    Owns the LocalState for the session: every mutation of the published
    records is flushed through the StateStore before the action returns.
    """

    def __init__(
        self,
        store: DocumentStore,
        client: JotBirdClient,
        state_store: StateStore,
        notifier: Optional[Notifier] = None,
    ):
        """Initialize Publisher.

        Args:
            store: The vault notes are read from
            client: Publishing service client
            state_store: Persistence for LocalState
            notifier: Receiver of user-facing messages (default: log them)
        """
        self.store = store
        self.client = client
        self.state_store = state_store
        self.notifier = notifier or LogNotifier()
        self.state: LocalState = state_store.load()
        self.is_pro = False
        self._status_check: Optional["asyncio.Future[None]"] = None

        store.on_rename(self.handle_rename)
        store.on_delete(self.handle_delete)

    @property
    def settings(self) -> Settings:
        return self.state.settings

    @property
    def records(self) -> Dict[str, PublishedRecord]:
        return self.state.published_notes

    def save(self) -> None:
        self.state_store.save(self.state)

    # Publishing

    async def publish(self, path: str) -> PublishOutcome:
        """Publish a note, or update the document it was published to.

        An update whose document has expired on the server is retried once
        as a fresh publish.

        Raises:
            ApiError: If the service rejects the publish
            OSError: If the note cannot be read; left for the caller to report
        """
        file = VaultFile(path)
        existing = self.records.get(path)
        self.notifier.notify(f"JotBird: {'Updating' if existing else 'Publishing'}...")

        content = await self.store.read(file)
        title = extract_title(content, file)

        try:
            pipeline = MarkdownPipeline(
                self.store,
                self.client,
                api_key=self.settings.api_key,
                strip_tags=self.settings.strip_tags,
            )
            markdown = ensure_title_heading(await pipeline.transform(content, file), title)

            retried = False
            try:
                result = await self._publish_remote(markdown, title, existing)
            except ApiError as e:
                if existing is None or not e.is_not_found:
                    raise
                logger.info("Document %s expired, publishing %s again", existing.slug, path)
                retried = True
                result = await self._publish_remote(markdown, title, None)
        except ApiError as e:
            self.notifier.notify(f"JotBird: {e}")
            raise

        record = PublishedRecord(
            slug=result.slug,
            url=result.url,
            published_at=_now(),
            edit_token=result.edit_token,
        )
        self.records[path] = record
        self.save()

        expires = expiration_label(result.expires_at, result.ttl_days)
        await self._write_metadata(file, publish_fields(result.url, expires))

        if not result.ttl_days:
            await self._apply_upgrade(exclude_path=path)

        updated = existing is not None and not retried
        self._report_published(result, updated)
        return PublishOutcome(path=path, record=record, updated=updated, retried=retried, expires=expires)

    async def _publish_remote(
        self,
        markdown: str,
        title: str,
        existing: Optional[PublishedRecord],
    ) -> PublishResponse:
        slug = existing.slug if existing else None
        if self.settings.api_key:
            return await self.client.publish(self.settings.api_key, markdown, title, slug)
        edit_token = existing.edit_token if existing else None
        return await self.client.trial_publish(
            self.state.device_fingerprint, markdown, title, slug, edit_token
        )

    def _report_published(self, result: PublishResponse, updated: bool) -> None:
        verb = "Updated" if updated else "Published"
        copied = ""
        if self.settings.auto_copy_link:
            self.notifier.copy(result.url)
            copied = " Link copied."
        if not self.settings.api_key:
            self.notifier.notify(
                f"JotBird: {verb}!{copied}\n"
                "Expires in 30 days. Connect a JotBird account for longer links."
            )
        else:
            self.notifier.notify(f"JotBird: {verb}!{copied}")

    async def unpublish(self, path: str) -> bool:
        """Delete a note's remote document after the user confirms.

        Returns:
            True if the document was removed, False if there was nothing
            to remove or the user declined

        Raises:
            ApiError: If the service rejects the delete
        """
        record = self.records.get(path)
        if record is None:
            self.notifier.notify("JotBird: This note is not published.")
            return False

        file = VaultFile(path)
        if not self.notifier.confirm(
            f'Unpublish "{file.basename}" from JotBird? '
            f"This will permanently remove it from {record.url}."
        ):
            return False

        try:
            if self.settings.api_key:
                await self.client.delete_document(self.settings.api_key, record.slug)
            else:
                await self.client.trial_delete_document(
                    record.slug, record.edit_token or "", self.state.device_fingerprint
                )
        except ApiError as e:
            self.notifier.notify(f"JotBird: {e}")
            raise

        del self.records[path]
        self.save()
        await self._write_metadata(file, clear_publish_fields())
        self.notifier.notify("JotBird: Note unpublished.")
        return True

    def copy_link(self, path: str) -> Optional[str]:
        """Copy a published note's URL through the notifier."""
        record = self.records.get(path)
        if record is None:
            self.notifier.notify("JotBird: This note is not published.")
            return None
        self.notifier.copy(record.url)
        self.notifier.notify("JotBird link copied to clipboard")
        return record.url

    # Account

    async def connect(self, token: str) -> None:
        """Store an API key, then claim documents published anonymously.

        Raises:
            ApiError: With kind VALIDATION if the token is malformed
        """
        token = token.strip()
        if not token.startswith(TOKEN_PREFIX):
            self.notifier.notify("JotBird: Invalid token received. Please try again.")
            raise ApiError(ErrorKind.VALIDATION, "Invalid token", "Connect")

        self.settings.api_key = token
        self.save()
        self.notifier.notify("JotBird: Account connected successfully!")
        await self.check_status()
        await self.claim_anonymous_documents()

    def disconnect(self) -> None:
        self.settings.api_key = ""
        self.is_pro = False
        self.state.pro_refresh_done = False
        self.save()

    async def check_status(self) -> bool:
        """Ask the service whether the account has permanent links.

        Concurrent calls are serialized: a caller arriving while a check is
        running waits for it, then runs its own. Failures keep the last
        known tier.

        Returns:
            The current tier flag
        """
        if not self.settings.api_key:
            return self.is_pro

        while self._status_check is not None:
            await asyncio.wait([self._status_check])

        check = asyncio.ensure_future(self._fetch_status())
        self._status_check = check
        try:
            await check
        finally:
            if self._status_check is check:
                self._status_check = None
        return self.is_pro

    async def _fetch_status(self) -> None:
        try:
            result = await self.client.list_documents(self.settings.api_key)
        except ApiError as e:
            logger.warning("Status check failed: %s", e)
            return
        self.is_pro = result.is_pro
        if self.is_pro:
            await self._apply_upgrade()

    async def handle_upgrade(self) -> bool:
        """Refresh every note once the account has been upgraded.

        Returns:
            True if the permanent tier was detected
        """
        already_refreshed = self.state.pro_refresh_done
        await self.check_status()
        if not self.is_pro:
            self.notifier.notify(
                "JotBird: Upgrade not detected yet. "
                "Try publishing a note and it will update automatically."
            )
            return False

        if already_refreshed:
            await self.refresh_permanent_expiration()
        self.notifier.notify("JotBird: Welcome to Pro! All your links are now permanent.")
        return True

    async def list_documents(self) -> List[DocumentSummary]:
        try:
            result = await self.client.list_documents(self.settings.api_key)
        except ApiError as e:
            self.notifier.notify(f"JotBird: {e}")
            raise
        return result.documents

    async def portal_url(self) -> str:
        try:
            return await self.client.get_portal_url(self.settings.api_key)
        except ApiError as e:
            self.notifier.notify(f"JotBird: {e}")
            raise

    async def claim_anonymous_documents(self) -> int:
        """Move anonymously published documents into the connected account.

        Documents are claimed one at a time; one that fails keeps its edit
        token and the rest are still attempted.

        Returns:
            Number of documents claimed
        """
        if not self.settings.api_key:
            return 0

        to_claim: List[Tuple[str, PublishedRecord]] = [
            (path, record) for path, record in self.records.items() if record.edit_token
        ]

        claimed = 0
        for path, record in to_claim:
            try:
                result = await self.client.claim_document(
                    self.settings.api_key, record.slug, record.edit_token or ""
                )
            except ApiError as e:
                logger.warning("Failed to claim %s: %s", path, e)
                continue

            self.records[path] = PublishedRecord(
                slug=result.slug,
                url=result.url,
                published_at=record.published_at,
            )
            self.save()

            file = await self.store.get_file(path)
            if file is not None:
                expires = expiration_label(result.expires_at, result.ttl_days)
                await self._write_metadata(file, publish_fields(result.url, expires))
            claimed += 1

        if claimed:
            self.notifier.notify(
                f"JotBird: {_count(claimed, 'existing document')} linked to your account."
            )
        return claimed

    async def _apply_upgrade(self, exclude_path: Optional[str] = None) -> None:
        if self.state.pro_refresh_done:
            return
        self.state.pro_refresh_done = True
        self.save()
        await self.refresh_permanent_expiration(exclude_path)

    async def refresh_permanent_expiration(self, exclude_path: Optional[str] = None) -> int:
        """Mark every other published note as never expiring.

        Returns:
            Number of notes updated
        """
        if not self.settings.store_frontmatter:
            return 0

        updated = 0
        for path, record in list(self.records.items()):
            if path == exclude_path:
                continue
            file = await self.store.get_file(path)
            if file is None:
                continue
            if await self._write_metadata(file, publish_fields(record.url, NEVER_EXPIRES)):
                updated += 1

        if updated:
            self.notifier.notify(
                f"JotBird: Updated {_count(updated, 'note')} to Pro (no expiration)."
            )
        return updated

    async def _write_metadata(self, file: VaultFile, transform: MetadataTransform) -> bool:
        if not self.settings.store_frontmatter:
            return False
        try:
            await self.store.process_metadata(file, transform)
        except METADATA_ERRORS as e:
            logger.warning("Failed to update frontmatter of %s: %s", file.path, e)
            return False
        return True

    # Vault events

    def handle_rename(self, old_path: str, new_path: str) -> None:
        record = self.records.pop(old_path, None)
        if record is None:
            return
        self.records[new_path] = record
        self.save()

    def handle_delete(self, path: str) -> None:
        if self.records.pop(path, None) is not None:
            self.save()

    async def reconcile_metadata(self) -> int:
        """Rebuild records for notes whose properties say they are published.

        Existing records are never overwritten.

        Returns:
            Number of records recovered
        """
        if not self.settings.store_frontmatter:
            return 0

        recovered = 0
        for file in await self.store.list_files("md"):
            if file.path in self.records:
                continue
            try:
                fm = await self.store.get_metadata(file)
            except (OSError, ValueError) as e:
                # ValueError covers notes that are not valid UTF-8
                logger.warning("Failed to read %s: %s", file.path, e)
                continue

            link = fm.get(LINK_KEY) or fm.get(LEGACY_LINK_KEY)
            if not isinstance(link, str) or not link:
                continue

            parsed = urlparse(link)
            if not parsed.scheme or not parsed.netloc:
                logger.debug("Ignoring malformed link in %s: %s", file.path, link)
                continue
            slug = parsed.path.split('/')[-1]
            if not slug:
                continue

            self.records[file.path] = PublishedRecord(
                slug=slug,
                url=link,
                published_at=str(fm.get(LEGACY_PUBLISHED_KEY) or ""),
            )
            recovered += 1

        if recovered:
            self.save()
        return recovered


def create_publisher_from_config(
    vault_path: Path,
    config: Optional[PublisherConfig] = None,
    notifier: Optional[Notifier] = None,
) -> Publisher:
    """Create a Publisher for a vault directory.

    Args:
        vault_path: Root of the vault
        config: Service and state settings (default: PublisherConfig())
        notifier: Receiver of user-facing messages

    Returns:
        Configured Publisher
    """
    config = config or PublisherConfig()
    vault = FileVault(vault_path)
    return Publisher(
        store=vault,
        client=JotBirdClient(config),
        state_store=StateStore(config.resolve_state_path(vault_path)),
        notifier=notifier,
    )
