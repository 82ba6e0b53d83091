"""OneDrive provider — folder listing, profile lookup and upload-session transfers."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from file_cloud.graph.client import GRAPH_BASE_URL, GraphClient, graph_client_from_config
from file_cloud.graph.models import (
    FIELD_CHILD_COUNT,
    FIELD_DISPLAY_NAME,
    FIELD_FILE,
    FIELD_FOLDER,
    FIELD_ID,
    FIELD_MAIL,
    FIELD_MIME_TYPE,
    FIELD_NAME,
    FIELD_PARENT_REFERENCE,
    FIELD_SIZE,
    FIELD_UPLOAD_URL,
    FIELD_USER_PRINCIPAL_NAME,
    ODATA_NEXT_LINK,
    ODATA_VALUE,
    FileEntry,
    UserProfile,
)
from file_cloud.upload.chunker import Chunker, FixedSizeChunker
from file_cloud.upload.models import ProgressEvent, UploadStatus

if TYPE_CHECKING:
    from file_cloud.config import AppConfig
    from file_cloud.upload.tracker import CancellationToken

logger = logging.getLogger(__name__)

PROVIDER_ID = "onedrive"
CONFLICT_BEHAVIOR = "rename"
DEFAULT_UPLOAD_CHUNK_SIZE = 3_276_800


class OneDriveProvider:
    """Folder-listing and upload-transport collaborator for one OneDrive user."""

    provider_id = PROVIDER_ID

    def __init__(
        self,
        graph_client: GraphClient,
        drive_user: str,
        chunker: Chunker | None = None,
    ) -> None:
        """Initialise the provider.

        Args:
            graph_client: Authenticated GraphClient instance.
            drive_user: UPN or object ID of the user whose drive is browsed
                (e.g. "alice@contoso.onmicrosoft.com").
            chunker: Splits upload bytes into upload-session ranges. Range
                sizes must be multiples of 320 KiB except for the last one.
        """
        self._graph = graph_client
        self._drive_user = drive_user
        self._chunker = chunker or FixedSizeChunker(DEFAULT_UPLOAD_CHUNK_SIZE)

    @property
    def account_id(self) -> str:
        return self._drive_user

    # ------------------------------------------------------------------
    # Listing and profile
    # ------------------------------------------------------------------

    def list_folder(self, folder_id: str | None) -> list[FileEntry]:
        """List the children of a folder, following pagination.

        Args:
            folder_id: OneDrive item ID, or None for the drive root.

        Returns:
            Folders and files in the order Graph returned them.
        """
        drive = f"/users/{self._drive_user}/drive"
        if folder_id is None:
            path = f"{drive}/root/children"
        else:
            path = f"{drive}/items/{folder_id}/children"

        entries: list[FileEntry] = []
        next_path: str | None = path
        while next_path is not None:
            response = self._graph.get(next_path)
            entries.extend(self._parse_entry(raw) for raw in response.get(ODATA_VALUE, []))
            next_link = response.get(ODATA_NEXT_LINK)
            next_path = self._relative_path(next_link) if next_link else None

        logger.info(
            "[list_folder] listed folder; folder_id:%s;entry_count:%d",
            folder_id,
            len(entries),
        )
        return entries

    def get_profile(self) -> UserProfile:
        """Fetch the drive user's profile for account display."""
        raw = self._graph.get(f"/users/{self._drive_user}")
        return UserProfile(
            id=raw.get(FIELD_ID, ""),
            name=raw.get(FIELD_DISPLAY_NAME, ""),
            email=raw.get(FIELD_MAIL) or raw.get(FIELD_USER_PRINCIPAL_NAME, ""),
            picture_url=f"{GRAPH_BASE_URL}/users/{self._drive_user}/photo/$value",
        )

    # ------------------------------------------------------------------
    # Upload transport
    # ------------------------------------------------------------------

    def upload(
        self,
        file_name: str,
        data: bytes,
        parent_folder_id: str | None,
        token: CancellationToken,
    ) -> Iterator[ProgressEvent]:
        """Upload a file through a Graph upload session, one range per chunk.

        Yields a progress event after each acknowledged range and a final
        ``completed`` event. Empty files are sent with a single PUT because
        upload sessions require at least one byte.

        Raises:
            GraphAuthError: If token acquisition fails.
            GraphApiError: If any Graph request fails.
        """
        total = len(data)
        yield ProgressEvent(uploaded=0, total=total)

        item_path = self._item_path(parent_folder_id, file_name)
        if total == 0:
            self._graph.put_content(f"{item_path}/content", data)
            yield ProgressEvent(uploaded=0, total=0, status=UploadStatus.COMPLETED)
            return

        session = self._graph.post_json(
            f"{item_path}/createUploadSession",
            {"item": {"@microsoft.graph.conflictBehavior": CONFLICT_BEHAVIOR}},
        )
        upload_url = session[FIELD_UPLOAD_URL]
        logger.info(
            "[upload] created upload session; file_name:%s;total:%d",
            file_name,
            total,
        )

        sent = 0
        for chunk in self._chunker(data):
            if token.stop_requested:
                logger.info("[upload] stopped; file_name:%s;sent:%d", file_name, sent)
                return
            self._graph.put_range(upload_url, chunk, sent, total)
            sent += len(chunk)
            yield ProgressEvent(uploaded=sent, total=total)

        yield ProgressEvent(uploaded=total, total=total, status=UploadStatus.COMPLETED)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _item_path(self, parent_folder_id: str | None, file_name: str) -> str:
        drive = f"/users/{self._drive_user}/drive"
        name = quote(file_name)
        if parent_folder_id is None:
            return f"{drive}/root:/{name}:"
        return f"{drive}/items/{parent_folder_id}:/{name}:"

    @staticmethod
    def _parse_entry(raw: dict[str, Any]) -> FileEntry:
        """Map a raw Graph driveItem dict to a FileEntry."""
        is_folder = FIELD_FOLDER in raw
        metadata: dict[str, Any] = {}
        if is_folder:
            metadata[FIELD_CHILD_COUNT] = raw[FIELD_FOLDER].get(FIELD_CHILD_COUNT, 0)
        return FileEntry(
            id=raw.get(FIELD_ID, ""),
            name=raw.get(FIELD_NAME, ""),
            is_folder=is_folder,
            size=None if is_folder else raw.get(FIELD_SIZE),
            mime_type=raw.get(FIELD_FILE, {}).get(FIELD_MIME_TYPE),
            parent_id=raw.get(FIELD_PARENT_REFERENCE, {}).get(FIELD_ID),
            metadata=metadata,
        )

    @staticmethod
    def _relative_path(full_url: str) -> str:
        """Convert a full Graph API URL to a relative path for GraphClient.get()."""
        if full_url.startswith(GRAPH_BASE_URL):
            return full_url[len(GRAPH_BASE_URL) :]
        return full_url


def onedrive_provider_from_config(
    config: AppConfig, chunker: Chunker | None = None
) -> OneDriveProvider:
    """Construct a OneDriveProvider from application configuration.

    Args:
        config: Application configuration instance.
        chunker: Optional override; defaults to ranges of upload_chunk_size.

    Returns:
        Configured OneDriveProvider instance.
    """
    return OneDriveProvider(
        graph_client=graph_client_from_config(config),
        drive_user=config.drive_user,
        chunker=chunker or FixedSizeChunker(config.upload_chunk_size),
    )
