"""Data models for Microsoft Graph drive items and user profiles."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Graph API JSON field names
FIELD_ID = "id"
FIELD_NAME = "name"
FIELD_FOLDER = "folder"
FIELD_FILE = "file"
FIELD_SIZE = "size"
FIELD_MIME_TYPE = "mimeType"
FIELD_PARENT_REFERENCE = "parentReference"
FIELD_DISPLAY_NAME = "displayName"
FIELD_MAIL = "mail"
FIELD_USER_PRINCIPAL_NAME = "userPrincipalName"
FIELD_UPLOAD_URL = "uploadUrl"
FIELD_CHILD_COUNT = "childCount"

# OData response keys
ODATA_NEXT_LINK = "@odata.nextLink"
ODATA_VALUE = "value"


@dataclass(frozen=True)
class FileEntry:
    """A file or folder listed from a cloud drive.

    Attributes:
        id: Provider item ID.
        name: Display name.
        is_folder: True for folders.
        size: Size in bytes (None for folders).
        mime_type: MIME type reported by the provider (None for folders).
        parent_id: ID of the containing folder, when known.
        metadata: Extra provider data. A ``can_enter`` key set to False
            blocks navigation into a folder.
    """

    id: str
    name: str
    is_folder: bool
    size: int | None = None
    mime_type: str | None = None
    parent_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class UserProfile:
    """Account profile shown next to a connected drive."""

    id: str
    name: str
    email: str
    picture_url: str | None = None
    needs_reauth: bool = False
