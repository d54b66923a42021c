"""Data models for JotBird Publisher."""

from dataclasses import asdict, dataclass, field, fields
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class VaultFile:
    """A document in the vault, identified by its vault-relative path."""
    path: str

    @property
    def name(self) -> str:
        """File name with extension."""
        return PurePosixPath(self.path).name

    @property
    def basename(self) -> str:
        """File name without extension."""
        return PurePosixPath(self.path).stem

    @property
    def extension(self) -> str:
        """Extension without the dot, lower-cased."""
        return PurePosixPath(self.path).suffix.lstrip('.').lower()


@dataclass
class Settings:
    """User-facing settings persisted alongside the published-notes mapping."""
    api_key: str = ""
    strip_tags: bool = True
    auto_copy_link: bool = True
    store_frontmatter: bool = True

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Settings":
        """Build settings from stored data, filling in defaults.

        Unknown keys are ignored so older or newer state files still load.
        """
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (data or {}).items() if k in known})


@dataclass
class PublishedRecord:
    """Local record of the remote document a note was published to.

    An edit_token marks the document as anonymously owned; records without
    one belong to the configured account.
    """
    slug: str
    url: str
    published_at: str
    edit_token: Optional[str] = None

    @property
    def is_anonymous(self) -> bool:
        return bool(self.edit_token)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PublishedRecord":
        return cls(
            slug=data["slug"],
            url=data["url"],
            published_at=data.get("publishedAt", ""),
            edit_token=data.get("editToken") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "slug": self.slug,
            "url": self.url,
            "publishedAt": self.published_at,
        }
        if self.edit_token:
            data["editToken"] = self.edit_token
        return data


@dataclass
class LocalState:
    """Everything the publisher persists between runs."""
    settings: Settings = field(default_factory=Settings)
    published_notes: Dict[str, PublishedRecord] = field(default_factory=dict)
    device_fingerprint: str = ""
    pro_refresh_done: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "LocalState":
        data = data or {}
        notes = {
            path: PublishedRecord.from_dict(record)
            for path, record in (data.get("publishedNotes") or {}).items()
        }
        return cls(
            settings=Settings.from_dict(data.get("settings")),
            published_notes=notes,
            device_fingerprint=data.get("deviceFingerprint") or "",
            pro_refresh_done=bool(data.get("proRefreshDone")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "settings": asdict(self.settings),
            "publishedNotes": {
                path: record.to_dict() for path, record in self.published_notes.items()
            },
            "deviceFingerprint": self.device_fingerprint,
            "proRefreshDone": self.pro_refresh_done,
        }


@dataclass
class PublishResponse:
    """Result of a create-or-update call against the publishing service.

    ttl_days of None means the account is on the permanent-link tier.
    """
    slug: str
    url: str
    title: str = ""
    expires_at: Optional[str] = None
    ttl_days: Optional[int] = None
    created: bool = False
    edit_token: Optional[str] = None

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "PublishResponse":
        return cls(
            slug=data["slug"],
            url=data["url"],
            title=data.get("title", ""),
            expires_at=data.get("expiresAt"),
            ttl_days=data.get("ttlDays"),
            created=bool(data.get("created", False)),
            edit_token=data.get("editToken") or None,
        )


@dataclass
class ClaimResponse:
    """Result of transferring an anonymous document to an account."""
    slug: str
    url: str
    expires_at: Optional[str] = None
    ttl_days: Optional[int] = None
    ok: bool = True

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "ClaimResponse":
        return cls(
            slug=data["slug"],
            url=data["url"],
            expires_at=data.get("expiresAt"),
            ttl_days=data.get("ttlDays"),
            ok=bool(data.get("ok", True)),
        )


@dataclass
class DocumentSummary:
    slug: str
    title: str
    url: str
    source: str = ""
    updated_at: str = ""
    expires_at: Optional[str] = None


@dataclass
class DocumentListResponse:
    """Documents owned by the account plus its tier."""
    documents: List[DocumentSummary] = field(default_factory=list)
    is_pro: bool = False

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "DocumentListResponse":
        documents = [
            DocumentSummary(
                slug=doc["slug"],
                title=doc.get("title", ""),
                url=doc.get("url", ""),
                source=doc.get("source", ""),
                updated_at=doc.get("updatedAt", ""),
                expires_at=doc.get("expiresAt"),
            )
            for doc in data.get("documents") or []
        ]
        return cls(documents=documents, is_pro=bool(data.get("isPro")))


@dataclass
class PublishOutcome:
    """What a publish action did, for reporting back to the user."""
    path: str
    record: PublishedRecord
    updated: bool
    retried: bool
    expires: str
