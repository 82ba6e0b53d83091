"""Application configuration loaded from environment variables."""

import os
from dataclasses import dataclass

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})

# Graph upload session ranges must be multiples of 320 KiB.
UPLOAD_CHUNK_MULTIPLE = 327_680


@dataclass(frozen=True)
class AppConfig:
    """Centralized application configuration.

    Required fields have no defaults and will cause a KeyError at startup
    if the corresponding environment variable is missing. Navigation and
    upload tuning has sensible defaults but can be overridden via environment
    variables.
    """

    # Required: no defaults, fail at startup if missing
    client_id: str
    client_secret: str
    tenant_id: str
    drive_user: str

    # Navigation
    root_folder_name: str = "Home"
    max_history_size: int = 100
    breadcrumb_max_items: int = 5

    # Uploads
    upload_chunk_size: int = 3_276_800
    max_concurrent_uploads: int = 3
    slow_upload: bool = False
    debug_chunk_size: int = 4096
    debug_chunk_delay: float = 0.05


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


def load_config() -> AppConfig:
    """Construct an AppConfig from environment variables.

    Required environment variables:
        FC_CLIENT_ID: Azure AD application (client) ID.
        FC_CLIENT_SECRET: Azure AD application client secret.
        FC_TENANT_ID: Azure AD tenant ID.
        FC_DRIVE_USER: UPN or object ID of the OneDrive user to browse.

    Optional environment variables (with defaults):
        FC_ROOT_FOLDER_NAME: Display label for the root folder (default: Home).
        FC_MAX_HISTORY_SIZE: Navigation entries kept before trimming (default: 100).
        FC_BREADCRUMB_MAX_ITEMS: Breadcrumb items before collapsing (default: 5).
        FC_UPLOAD_CHUNK_SIZE: Bytes per upload session range, a positive multiple
            of 327680 (default: 3276800).
        FC_MAX_CONCURRENT_UPLOADS: Transfers run at once by the upload queue
            (default: 3).
        FC_SLOW_UPLOAD: Enable the slow chunked debug transfer mode (default: false).
        FC_DEBUG_CHUNK_SIZE: Chunk size in slow mode (default: 4096).
        FC_DEBUG_CHUNK_DELAY: Seconds between chunks in slow mode (default: 0.05).

    Returns:
        Configured AppConfig instance.

    Raises:
        KeyError: A required variable is missing.
        ValueError: A numeric variable is malformed or FC_UPLOAD_CHUNK_SIZE is
            not a positive multiple of 327680.
    """
    upload_chunk_size = int(os.environ.get("FC_UPLOAD_CHUNK_SIZE", "3276800"))
    if upload_chunk_size <= 0 or upload_chunk_size % UPLOAD_CHUNK_MULTIPLE:
        raise ValueError(
            f"FC_UPLOAD_CHUNK_SIZE must be a positive multiple of {UPLOAD_CHUNK_MULTIPLE}, "
            f"got {upload_chunk_size}"
        )
    return AppConfig(
        client_id=os.environ["FC_CLIENT_ID"],
        client_secret=os.environ["FC_CLIENT_SECRET"],
        tenant_id=os.environ["FC_TENANT_ID"],
        drive_user=os.environ["FC_DRIVE_USER"],
        root_folder_name=os.environ.get("FC_ROOT_FOLDER_NAME", "Home"),
        max_history_size=int(os.environ.get("FC_MAX_HISTORY_SIZE", "100")),
        breadcrumb_max_items=int(os.environ.get("FC_BREADCRUMB_MAX_ITEMS", "5")),
        upload_chunk_size=upload_chunk_size,
        max_concurrent_uploads=int(os.environ.get("FC_MAX_CONCURRENT_UPLOADS", "3")),
        slow_upload=_env_bool("FC_SLOW_UPLOAD", False),
        debug_chunk_size=int(os.environ.get("FC_DEBUG_CHUNK_SIZE", "4096")),
        debug_chunk_delay=float(os.environ.get("FC_DEBUG_CHUNK_DELAY", "0.05")),
    )
