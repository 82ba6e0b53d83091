"""File browser session — wires navigation and uploads to a cloud provider."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import replace
from typing import TYPE_CHECKING, Protocol

from file_cloud.graph.client import GraphApiError, GraphAuthError
from file_cloud.graph.provider import onedrive_provider_from_config
from file_cloud.navigation.manager import NavigationManager, navigation_manager_from_config
from file_cloud.upload.chunker import chunker_from_config
from file_cloud.upload.queue import UploadQueue
from file_cloud.upload.transport import SimulatedTransport, UploadTransport, consume_progress
from file_cloud.upload.tracker import UploadTracker

if TYPE_CHECKING:
    from file_cloud.config import AppConfig
    from file_cloud.graph.models import FileEntry, UserProfile
    from file_cloud.navigation.models import BreadcrumbItem
    from file_cloud.upload.models import UploadProgress

logger = logging.getLogger(__name__)

AuthFailureCallback = Callable[[str], None]


class FolderProvider(Protocol):
    """Folder-listing collaborator for one provider."""

    provider_id: str

    def list_folder(self, folder_id: str | None) -> list[FileEntry]: ...

    def get_profile(self) -> UserProfile: ...


class FileBrowser:
    """One browsing session over a single provider.

    Each user action updates the navigation or upload state first and then
    lists the folder that is now current, so callers re-render from the
    returned listing and the read-only state on ``navigation``/``uploads``.
    """

    def __init__(
        self,
        provider: FolderProvider,
        transport: UploadTransport,
        navigation: NavigationManager | None = None,
        uploads: UploadTracker | None = None,
        on_auth_failure: AuthFailureCallback | None = None,
        breadcrumb_max_items: int = 5,
        max_concurrent_uploads: int = 3,
    ) -> None:
        """Initialise the session.

        Args:
            provider: Folder-listing collaborator.
            transport: Upload-transport collaborator.
            navigation: Navigation state; a fresh manager when omitted.
            uploads: Upload state; a fresh tracker when omitted.
            on_auth_failure: Called with the account ID when credentials are
                rejected during an upload.
            breadcrumb_max_items: Items shown before the trail collapses.
            max_concurrent_uploads: Queued uploads transferred at once.
        """
        self._provider = provider
        self._transport = transport
        self.navigation = navigation or NavigationManager()
        self.uploads = uploads or UploadTracker()
        self.queue = UploadQueue(
            self.uploads,
            transport,
            max_concurrent=max_concurrent_uploads,
            on_failure=self._record_failure,
        )
        self._on_auth_failure = on_auth_failure
        self._breadcrumb_max_items = breadcrumb_max_items
        self._account_id: str | None = None
        self._profile: UserProfile | None = None

    @property
    def account_id(self) -> str | None:
        return self._account_id

    @property
    def profile(self) -> UserProfile | None:
        return self._profile

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def select_account(self, account_id: str) -> list[FileEntry]:
        """Switch to an account: history is reset and the root is listed."""
        logger.info(
            "[select_account] switching account; provider_id:%s;account_id:%s",
            self._provider.provider_id,
            account_id,
        )
        self._account_id = account_id
        self._profile = None
        self.navigation.reset_for_provider(self._provider.provider_id, account_id)
        return self.refresh()

    def load_profile(self) -> UserProfile:
        self._profile = self._provider.get_profile()
        return self._profile

    def mark_needs_reauth(self) -> None:
        if self._profile is not None:
            self._profile = replace(self._profile, needs_reauth=True)
        if self._on_auth_failure is not None and self._account_id is not None:
            self._on_auth_failure(self._account_id)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def refresh(self) -> list[FileEntry]:
        return self._provider.list_folder(self.navigation.current_folder_id)

    def open_folder(self, entry: FileEntry) -> list[FileEntry] | None:
        """Enter a listed folder; returns None for files or blocked folders."""
        if self._account_id is None:
            raise RuntimeError("No account selected. Call select_account() first.")
        if not self.navigation.can_navigate_to_folder(entry):
            logger.debug("[open_folder] entry is not navigable; entry_id:%s", entry.id)
            return None
        moved = self.navigation.navigate_to_folder(
            entry.id, entry.name, self._provider.provider_id, self._account_id
        )
        return self.refresh() if moved is not None else None

    def go_back(self) -> list[FileEntry] | None:
        return self.refresh() if self.navigation.go_back() is not None else None

    def go_forward(self) -> list[FileEntry] | None:
        return self.refresh() if self.navigation.go_forward() is not None else None

    def go_home(self) -> list[FileEntry]:
        if self._account_id is None:
            raise RuntimeError("No account selected. Call select_account() first.")
        self.navigation.go_home(self._provider.provider_id, self._account_id)
        return self.refresh()

    def breadcrumbs(self) -> list[BreadcrumbItem]:
        return self.navigation.breadcrumb_items(self._breadcrumb_max_items)

    def open_breadcrumb(self, item: BreadcrumbItem) -> list[FileEntry] | None:
        """Jump to a breadcrumb's history position (home without one resets)."""
        if not item.is_clickable:
            return None
        if item.history_index is None:
            return self.go_home() if item.is_home else None
        if self.navigation.navigate_to_index(item.history_index) is None:
            return None
        return self.refresh()

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    def upload(
        self,
        file_name: str,
        data: bytes,
        upload_id: str | None = None,
    ) -> UploadProgress | None:
        """Upload into the current folder and track it until it finishes.

        Graph and network failures are recorded as the upload's error instead
        of being raised. Rejected credentials additionally flag the account for
        re-authentication. Any other exception is recorded as well and then
        re-raised.

        Returns:
            Final snapshot of the upload.
        """
        upload_id = upload_id or uuid.uuid4().hex
        parent_folder_id = self.navigation.current_folder_id
        token = self.uploads.start_upload(upload_id, file_name, len(data), parent_folder_id)

        try:
            events = self._transport.upload(file_name, data, parent_folder_id, token)
            return consume_progress(self.uploads, upload_id, events, token)
        except (GraphAuthError, GraphApiError, OSError) as exc:
            self._record_failure(upload_id, exc)
        except Exception as exc:
            logger.error("[upload] unexpected failure; upload_id:%s", upload_id, exc_info=True)
            self.uploads.report_error(upload_id, str(exc))
            raise
        return self.uploads.get(upload_id)

    def enqueue_upload(
        self,
        file_name: str,
        data: bytes,
        upload_id: str | None = None,
    ) -> str:
        """Queue an upload into the current folder and return without waiting.

        The transfer runs in the background once one of the queue's slots is
        free; follow it on ``uploads`` or block on ``queue.wait_for_upload``.
        Failures are recorded the same way as for ``upload``.

        Returns:
            The upload ID.
        """
        return self.queue.add(
            file_name,
            data,
            parent_folder_id=self.navigation.current_folder_id,
            upload_id=upload_id,
        )

    def _record_failure(self, upload_id: str, exc: Exception) -> None:
        if isinstance(exc, GraphAuthError):
            logger.error("[upload] authentication failed; upload_id:%s", upload_id, exc_info=exc)
            self.mark_needs_reauth()
            self.uploads.report_error(upload_id, str(exc))
        elif isinstance(exc, GraphApiError):
            logger.error(
                "[upload] transport failed; upload_id:%s;status_code:%d",
                upload_id,
                exc.status_code,
                exc_info=exc,
            )
            if exc.is_auth_failure:
                self.mark_needs_reauth()
            self.uploads.report_error(upload_id, exc.message)
        else:
            logger.error("[upload] transfer failed; upload_id:%s", upload_id, exc_info=exc)
            self.uploads.report_error(upload_id, str(exc))


def file_browser_from_config(
    config: AppConfig,
    on_auth_failure: AuthFailureCallback | None = None,
) -> FileBrowser:
    """Construct a OneDrive FileBrowser from application configuration.

    In slow upload mode the transfer is simulated chunk by chunk so the
    progress UI can be exercised without touching the drive.

    Args:
        config: Application configuration instance.
        on_auth_failure: Optional callback for rejected credentials.

    Returns:
        Configured FileBrowser instance.
    """
    provider = onedrive_provider_from_config(config)
    transport: UploadTransport = (
        SimulatedTransport(chunker_from_config(config)) if config.slow_upload else provider
    )
    return FileBrowser(
        provider=provider,
        transport=transport,
        navigation=navigation_manager_from_config(config),
        uploads=UploadTracker(),
        on_auth_failure=on_auth_failure,
        breadcrumb_max_items=config.breadcrumb_max_items,
        max_concurrent_uploads=config.max_concurrent_uploads,
    )
