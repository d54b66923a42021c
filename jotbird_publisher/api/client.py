"""Async client for the JotBird publishing service."""

import logging
from typing import Any, Callable, Dict, Optional, TypeVar

import httpx

from jotbird_publisher.api.errors import ApiError, ErrorKind, classify_status
from jotbird_publisher.config import PublisherConfig
from jotbird_publisher.core.models import ClaimResponse, DocumentListResponse, PublishResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")


class JotBirdClient:
    """Thin wrapper over the service endpoints.

    Every failure surfaces as ApiError labelled with the operation name, so
    callers can show it to the user as-is. Authenticated endpoints take the
    API key per call; anonymous ones are keyed by the device fingerprint.
    """

    def __init__(
        self,
        config: Optional[PublisherConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize JotBirdClient.

        Args:
            config: Service URLs, user agent and timeout
            transport: Optional httpx transport, mainly for tests
        """
        self.config = config or PublisherConfig()
        self._http = httpx.AsyncClient(
            timeout=self.config.timeout,
            transport=transport,
            headers={"User-Agent": self.config.user_agent},
        )

    async def __aenter__(self) -> "JotBirdClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def publish(
        self,
        api_key: str,
        markdown: str,
        title: str,
        slug: Optional[str] = None,
    ) -> PublishResponse:
        """Create a document, or update it when slug is given."""
        body = {"markdown": markdown, "title": title}
        if slug:
            body["slug"] = slug
        data = await self._post("Publish", "/cli/publish", json=body, headers=self._auth(api_key))
        return self._parse("Publish", PublishResponse.from_json, data)

    async def trial_publish(
        self,
        device_fingerprint: str,
        markdown: str,
        title: str,
        slug: Optional[str] = None,
        edit_token: Optional[str] = None,
    ) -> PublishResponse:
        """Anonymous create-or-update; the response carries an edit token."""
        body = {"markdown": markdown, "title": title}
        if slug:
            body["slug"] = slug
        if edit_token:
            body["editToken"] = edit_token
        data = await self._post(
            "Publish", "/trial/publish", json=body, headers=self._device(device_fingerprint)
        )
        return self._parse("Publish", PublishResponse.from_json, data)

    async def delete_document(self, api_key: str, slug: str) -> bool:
        data = await self._post(
            "Delete", "/cli/documents/delete", json={"slug": slug}, headers=self._auth(api_key, "Delete")
        )
        return bool(data.get("ok"))

    async def trial_delete_document(self, slug: str, edit_token: str, device_fingerprint: str) -> bool:
        data = await self._post(
            "Delete",
            "/trial/documents/delete",
            json={"slug": slug, "editToken": edit_token},
            headers=self._device(device_fingerprint),
        )
        return bool(data.get("ok"))

    async def list_documents(self, api_key: str) -> DocumentListResponse:
        """List the account's documents along with its tier."""
        data = await self._post(
            "List documents", "/cli/documents", headers=self._auth(api_key, "List documents")
        )
        return self._parse("List documents", DocumentListResponse.from_json, data)

    async def claim_document(self, api_key: str, slug: str, edit_token: str) -> ClaimResponse:
        """Move an anonymously published document into the account."""
        data = await self._post(
            "Claim",
            "/cli/claim",
            json={"slug": slug, "editToken": edit_token},
            headers=self._auth(api_key, "Claim"),
        )
        return self._parse("Claim", ClaimResponse.from_json, data)

    async def upload_image(self, api_key: str, data: bytes, filename: str, mime_type: str) -> str:
        """Upload image bytes and return the hosted URL."""
        result = await self._post(
            "Image upload",
            "/preview/upload-image",
            files={"file": (filename, data, mime_type)},
            headers=self._auth(api_key),
        )
        return self._parse("Image upload", lambda d: str(d["url"]), result)

    async def get_portal_url(self, api_key: str) -> str:
        """Look up the billing portal URL for the account."""
        context = "Manage subscription"
        data = await self._post(
            context,
            f"{self.config.site_url}/api/stripe/portal-key",
            json={"apiKey": api_key},
            headers=self._auth(api_key, context),
        )
        if not data.get("url"):
            raise ApiError(ErrorKind.UNKNOWN, "No portal URL returned", context)
        return str(data["url"])

    def _auth(self, api_key: str, required_for: Optional[str] = None) -> Dict[str, str]:
        if not api_key:
            if required_for:
                raise ApiError(ErrorKind.VALIDATION, "An API key is required", required_for)
            return {}
        return {"Authorization": f"Bearer {api_key}"}

    def _device(self, device_fingerprint: str) -> Dict[str, str]:
        return {"X-Device-Fingerprint": device_fingerprint}

    async def _post(
        self,
        context: str,
        url: str,
        json: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        if url.startswith("/"):
            url = f"{self.config.api_base_url}{url}"

        logger.debug("%s: POST %s", context, url)
        try:
            response = await self._http.post(url, json=json, files=files, headers=headers)
        except httpx.HTTPError as e:
            raise ApiError(ErrorKind.NETWORK, str(e) or type(e).__name__, context) from e

        status = response.status_code
        try:
            data = response.json()
        except ValueError:
            # Plain-text bodies such as "Not found"
            data = {"error": response.text or f"Request failed with status {status}"}

        if status >= 400:
            message = f"Request failed with status {status}"
            if isinstance(data, dict) and data.get("error"):
                message = str(data["error"])
            logger.debug("%s failed with %s: %s", context, status, message)
            raise ApiError(classify_status(status, message), message, context, status)

        if not isinstance(data, dict):
            raise ApiError(ErrorKind.UNKNOWN, "Unexpected response body", context, status)
        return data

    def _parse(self, context: str, parser: Callable[[Dict[str, Any]], T], data: Dict[str, Any]) -> T:
        try:
            return parser(data)
        except (KeyError, TypeError) as e:
            raise ApiError(ErrorKind.UNKNOWN, f"Malformed response, missing {e}", context) from e
