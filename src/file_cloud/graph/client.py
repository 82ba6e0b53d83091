"""Microsoft Graph API client with MSAL authentication."""

from __future__ import annotations

import json
import logging
from http import HTTPStatus
from typing import TYPE_CHECKING, Any
from urllib import request as urllib_request
from urllib.error import HTTPError

import msal

if TYPE_CHECKING:
    from file_cloud.config import AppConfig

logger = logging.getLogger(__name__)

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
GRAPH_SCOPES = ["https://graph.microsoft.com/.default"]
AUTHORITY_BASE_URL = "https://login.microsoftonline.com"


class GraphAuthError(Exception):
    """Raised when MSAL token acquisition fails."""


class GraphApiError(Exception):
    """Raised when the Graph API returns a non-2xx response."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"Graph API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message

    @property
    def is_auth_failure(self) -> bool:
        """True when the token was rejected (expired or revoked credentials)."""
        return self.status_code == HTTPStatus.UNAUTHORIZED


class GraphClient:
    """Authenticated client for Microsoft Graph API."""

    def __init__(self, client_id: str, client_secret: str, tenant_id: str) -> None:
        """Initialise the MSAL confidential client application.

        Args:
            client_id: Azure AD application (client) ID.
            client_secret: Azure AD application client secret.
            tenant_id: Azure AD tenant ID.
        """
        authority = f"{AUTHORITY_BASE_URL}/{tenant_id}"
        self._app = msal.ConfidentialClientApplication(
            client_id=client_id,
            client_credential=client_secret,
            authority=authority,
        )

    def _acquire_token(self) -> str:
        """Acquire a Bearer token using client credentials flow.

        Returns:
            Access token string.

        Raises:
            GraphAuthError: If MSAL cannot acquire a token.
        """
        result: dict[str, Any] = self._app.acquire_token_for_client(scopes=GRAPH_SCOPES) or {}
        if "access_token" not in result:
            error = result.get("error", "unknown_error")
            description = result.get("error_description", "No description provided")
            logger.error("[_acquire_token] MSAL token acquisition failed; error:%s", error)
            raise GraphAuthError(f"Token acquisition failed: {error} — {description}")
        return str(result["access_token"])

    def _send(self, req: urllib_request.Request) -> bytes:
        """Send a prepared request and return the raw response body.

        Raises:
            GraphApiError: If the API returns a non-2xx status code.
        """
        try:
            with urllib_request.urlopen(req) as resp:
                return resp.read()  # type: ignore[no-any-return]
        except HTTPError as exc:
            raw = exc.read()
            try:
                detail = json.loads(raw).get("error", {}).get("message", exc.reason)
            except Exception:
                detail = exc.reason
            raise GraphApiError(exc.code, detail) from exc

    def get(self, path: str) -> dict[str, Any]:
        """Perform an authenticated GET request to the Graph API.

        Args:
            path: URL path relative to GRAPH_BASE_URL (must start with '/').

        Returns:
            Parsed JSON response body as a dict.

        Raises:
            GraphAuthError: If token acquisition fails.
            GraphApiError: If the API returns a non-2xx status code.
        """
        token = self._acquire_token()
        req = urllib_request.Request(
            f"{GRAPH_BASE_URL}{path}",
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            },
            method="GET",
        )
        return json.loads(self._send(req))  # type: ignore[no-any-return]

    def post_json(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        """Perform an authenticated POST with a JSON body.

        Args:
            path: URL path relative to GRAPH_BASE_URL (must start with '/').
            body: JSON-serializable request body.

        Returns:
            Parsed JSON response body as a dict (empty for 204 responses).

        Raises:
            GraphAuthError: If token acquisition fails.
            GraphApiError: If the API returns a non-2xx status code.
        """
        token = self._acquire_token()
        req = urllib_request.Request(
            f"{GRAPH_BASE_URL}{path}",
            data=json.dumps(body).encode("utf-8"),
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
            method="POST",
        )
        raw = self._send(req)
        return json.loads(raw) if raw else {}

    def put_content(
        self,
        path: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> dict[str, Any]:
        """Perform an authenticated PUT request to upload content in one request.

        Args:
            path: URL path relative to GRAPH_BASE_URL (must start with '/').
            content: Raw bytes to upload.
            content_type: MIME type for the Content-Type header.

        Returns:
            Parsed JSON response body (the created or replaced drive item).

        Raises:
            GraphAuthError: If token acquisition fails.
            GraphApiError: If the API returns a non-2xx status code.
        """
        token = self._acquire_token()
        req = urllib_request.Request(
            f"{GRAPH_BASE_URL}{path}",
            data=content,
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": content_type,
            },
            method="PUT",
        )
        raw = self._send(req)
        return json.loads(raw) if raw else {}

    def put_range(self, upload_url: str, chunk: bytes, start: int, total: int) -> dict[str, Any]:
        """Upload one byte range to an upload session.

        Upload session URLs are pre-authenticated, so no Bearer token is sent.

        Args:
            upload_url: Absolute ``uploadUrl`` returned by createUploadSession.
            chunk: Bytes for this range.
            start: Offset of the first byte of ``chunk`` within the file.
            total: Total file size in bytes.

        Returns:
            Parsed JSON response: the upload session status for intermediate
            ranges, or the created drive item for the final range.

        Raises:
            GraphApiError: If the API returns a non-2xx status code.
        """
        end = start + len(chunk) - 1
        req = urllib_request.Request(
            upload_url,
            data=chunk,
            headers={
                "Content-Length": str(len(chunk)),
                "Content-Range": f"bytes {start}-{end}/{total}",
            },
            method="PUT",
        )
        raw = self._send(req)
        return json.loads(raw) if raw else {}


def graph_client_from_config(config: AppConfig) -> GraphClient:
    """Construct a GraphClient from application configuration.

    Args:
        config: Application configuration instance.

    Returns:
        Configured GraphClient instance.
    """
    return GraphClient(
        client_id=config.client_id,
        client_secret=config.client_secret,
        tenant_id=config.tenant_id,
    )
