"""Unit tests for graph/provider.py — OneDriveProvider listing, profile and uploads."""

from unittest.mock import MagicMock, patch

import pytest

from file_cloud.config import AppConfig
from file_cloud.graph.client import GraphApiError, GraphClient
from file_cloud.graph.provider import OneDriveProvider, onedrive_provider_from_config
from file_cloud.upload.chunker import FixedSizeChunker
from file_cloud.upload.models import UploadStatus
from file_cloud.upload.tracker import CancellationToken

GRAPH = "https://graph.microsoft.com/v1.0"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_provider(chunk_size: int = 4) -> tuple[OneDriveProvider, MagicMock]:
    mock_client = MagicMock(spec=GraphClient)
    provider = OneDriveProvider(
        graph_client=mock_client,
        drive_user="user@example.com",
        chunker=FixedSizeChunker(chunk_size),
    )
    return provider, mock_client


def _folder(item_id: str, name: str, child_count: int = 0) -> dict:
    return {
        "id": item_id,
        "name": name,
        "folder": {"childCount": child_count},
        "parentReference": {"id": "root-id"},
    }


def _file(item_id: str, name: str, size: int) -> dict:
    return {
        "id": item_id,
        "name": name,
        "size": size,
        "file": {"mimeType": "text/plain"},
        "parentReference": {"id": "root-id"},
    }


# ---------------------------------------------------------------------------
# list_folder() tests
# ---------------------------------------------------------------------------


class TestListFolder:
    def test_lists_root_children(self) -> None:
        provider, mock_client = _make_provider()
        mock_client.get.return_value = {
            "value": [_folder("f1", "Photos", 3), _file("x1", "notes.txt", 12)]
        }

        entries = provider.list_folder(None)

        mock_client.get.assert_called_once_with("/users/user@example.com/drive/root/children")
        assert [e.name for e in entries] == ["Photos", "notes.txt"]

    def test_lists_folder_children_by_id(self) -> None:
        provider, mock_client = _make_provider()
        mock_client.get.return_value = {"value": []}

        assert provider.list_folder("f1") == []
        mock_client.get.assert_called_once_with(
            "/users/user@example.com/drive/items/f1/children"
        )

    def test_follows_next_link(self) -> None:
        provider, mock_client = _make_provider()
        next_link = f"{GRAPH}/users/user@example.com/drive/root/children?$skiptoken=abc"
        mock_client.get.side_effect = [
            {"value": [_folder("f1", "A")], "@odata.nextLink": next_link},
            {"value": [_folder("f2", "B")]},
        ]

        entries = provider.list_folder(None)

        assert [e.id for e in entries] == ["f1", "f2"]
        assert mock_client.get.call_args_list[1].args[0] == (
            "/users/user@example.com/drive/root/children?$skiptoken=abc"
        )

    def test_parses_folder_and_file_fields(self) -> None:
        provider, mock_client = _make_provider()
        mock_client.get.return_value = {
            "value": [_folder("f1", "Photos", 7), _file("x1", "notes.txt", 12)]
        }

        folder, file = provider.list_folder(None)

        assert folder.is_folder is True
        assert folder.size is None
        assert folder.metadata == {"childCount": 7}
        assert folder.parent_id == "root-id"
        assert file.is_folder is False
        assert file.size == 12
        assert file.mime_type == "text/plain"
        assert file.metadata == {}

    def test_api_errors_propagate(self) -> None:
        provider, mock_client = _make_provider()
        mock_client.get.side_effect = GraphApiError(404, "Item not found")

        with pytest.raises(GraphApiError):
            provider.list_folder("missing")


# ---------------------------------------------------------------------------
# get_profile() tests
# ---------------------------------------------------------------------------


class TestGetProfile:
    def test_reads_display_name_and_mail(self) -> None:
        provider, mock_client = _make_provider()
        mock_client.get.return_value = {
            "id": "u-1",
            "displayName": "Alice Smith",
            "mail": "alice@example.com",
            "userPrincipalName": "alice@contoso.onmicrosoft.com",
        }

        profile = provider.get_profile()

        mock_client.get.assert_called_once_with("/users/user@example.com")
        assert profile.id == "u-1"
        assert profile.name == "Alice Smith"
        assert profile.email == "alice@example.com"
        assert profile.picture_url == f"{GRAPH}/users/user@example.com/photo/$value"
        assert profile.needs_reauth is False

    def test_falls_back_to_principal_name(self) -> None:
        provider, mock_client = _make_provider()
        mock_client.get.return_value = {
            "id": "u-1",
            "displayName": "Alice",
            "mail": None,
            "userPrincipalName": "alice@contoso.onmicrosoft.com",
        }

        assert provider.get_profile().email == "alice@contoso.onmicrosoft.com"


# ---------------------------------------------------------------------------
# upload() tests
# ---------------------------------------------------------------------------


class TestUpload:
    def test_uploads_ranges_through_session(self) -> None:
        provider, mock_client = _make_provider(chunk_size=4)
        mock_client.post_json.return_value = {"uploadUrl": "https://upload.example/s1"}

        events = list(provider.upload("a b.txt", b"0123456789", "folder-1", CancellationToken()))

        mock_client.post_json.assert_called_once_with(
            "/users/user@example.com/drive/items/folder-1:/a%20b.txt:/createUploadSession",
            {"item": {"@microsoft.graph.conflictBehavior": "rename"}},
        )
        assert [c.args for c in mock_client.put_range.call_args_list] == [
            ("https://upload.example/s1", b"0123", 0, 10),
            ("https://upload.example/s1", b"4567", 4, 10),
            ("https://upload.example/s1", b"89", 8, 10),
        ]
        assert [e.uploaded for e in events] == [0, 4, 8, 10, 10]
        assert events[-1].status is UploadStatus.COMPLETED

    def test_uploads_into_drive_root(self) -> None:
        provider, mock_client = _make_provider()
        mock_client.post_json.return_value = {"uploadUrl": "https://upload.example/s1"}

        list(provider.upload("a.txt", b"abc", None, CancellationToken()))

        assert mock_client.post_json.call_args.args[0] == (
            "/users/user@example.com/drive/root:/a.txt:/createUploadSession"
        )

    def test_empty_file_uses_single_put(self) -> None:
        provider, mock_client = _make_provider()

        events = list(provider.upload("empty.txt", b"", None, CancellationToken()))

        mock_client.put_content.assert_called_once_with(
            "/users/user@example.com/drive/root:/empty.txt:/content", b""
        )
        mock_client.post_json.assert_not_called()
        assert [(e.uploaded, e.status) for e in events] == [
            (0, UploadStatus.UPLOADING),
            (0, UploadStatus.COMPLETED),
        ]

    def test_stops_sending_ranges_when_cancelled(self) -> None:
        provider, mock_client = _make_provider(chunk_size=4)
        mock_client.post_json.return_value = {"uploadUrl": "https://upload.example/s1"}
        token = CancellationToken()
        events = provider.upload("a.txt", b"0123456789", None, token)

        next(events)
        assert next(events).uploaded == 4
        token.cancel()

        assert list(events) == []
        assert mock_client.put_range.call_count == 1

    def test_stops_sending_ranges_when_paused(self) -> None:
        provider, mock_client = _make_provider(chunk_size=4)
        mock_client.post_json.return_value = {"uploadUrl": "https://upload.example/s1"}
        token = CancellationToken()
        events = provider.upload("a.txt", b"0123456789", None, token)

        next(events)
        token.pause()

        assert list(events) == []
        mock_client.put_range.assert_not_called()

    def test_range_failure_propagates(self) -> None:
        provider, mock_client = _make_provider(chunk_size=4)
        mock_client.post_json.return_value = {"uploadUrl": "https://upload.example/s1"}
        mock_client.put_range.side_effect = [{}, GraphApiError(500, "Server error")]
        events = provider.upload("a.txt", b"0123456789", None, CancellationToken())

        assert next(events).uploaded == 0
        assert next(events).uploaded == 4
        with pytest.raises(GraphApiError):
            next(events)


# ---------------------------------------------------------------------------
# Factory tests
# ---------------------------------------------------------------------------


class TestOneDriveProviderFromConfig:
    def test_builds_provider_for_configured_user(self) -> None:
        config = AppConfig(
            client_id="cid",
            client_secret="secret",
            tenant_id="tid",
            drive_user="bob@example.com",
            upload_chunk_size=655_360,
        )
        with patch("file_cloud.graph.client.msal.ConfidentialClientApplication"):
            provider = onedrive_provider_from_config(config)

        assert provider.account_id == "bob@example.com"
        assert provider.provider_id == "onedrive"
        assert isinstance(provider._chunker, FixedSizeChunker)
        assert provider._chunker.chunk_size == 655_360
