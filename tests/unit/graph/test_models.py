"""Unit tests for graph/models.py — data model instantiation and field access."""

from dataclasses import FrozenInstanceError, replace

import pytest

from file_cloud.graph.models import FileEntry, UserProfile


class TestFileEntry:
    def test_instantiation_with_all_fields(self) -> None:
        entry = FileEntry(
            id="item-001",
            name="report.docx",
            is_folder=False,
            size=2048,
            mime_type="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            parent_id="parent-001",
        )
        assert entry.id == "item-001"
        assert entry.name == "report.docx"
        assert entry.is_folder is False
        assert entry.size == 2048
        assert entry.parent_id == "parent-001"
        assert entry.metadata == {}

    def test_folder_defaults(self) -> None:
        entry = FileEntry(id="folder-001", name="Projects", is_folder=True)
        assert entry.size is None
        assert entry.mime_type is None
        assert entry.parent_id is None

    def test_equality(self) -> None:
        a = FileEntry("1", "a.txt", False, 10)
        b = FileEntry("1", "a.txt", False, 10)
        assert a == b

    def test_metadata_not_shared_between_instances(self) -> None:
        a = FileEntry("1", "a", True)
        b = FileEntry("2", "b", True)
        assert a.metadata is not b.metadata

    def test_is_frozen(self) -> None:
        entry = FileEntry("1", "a.txt", False)
        with pytest.raises(FrozenInstanceError):
            entry.name = "b.txt"  # type: ignore[misc]


class TestUserProfile:
    def test_defaults(self) -> None:
        profile = UserProfile(id="u1", name="Alice", email="alice@example.com")
        assert profile.picture_url is None
        assert profile.needs_reauth is False

    def test_replace_flags_reauth(self) -> None:
        profile = UserProfile(id="u1", name="Alice", email="alice@example.com")
        flagged = replace(profile, needs_reauth=True)
        assert flagged.needs_reauth is True
        assert profile.needs_reauth is False

    def test_repr_contains_name(self) -> None:
        assert "Alice" in repr(UserProfile("u1", "Alice", "alice@example.com"))
