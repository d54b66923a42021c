"""Tests for FileVault."""

import asyncio

import pytest
import yaml

from jotbird_publisher.core.models import VaultFile
from jotbird_publisher.core.vault import FileVault
from jotbird_publisher.transforms.frontmatter import clear_publish_fields, publish_fields


class TestFileVault:
    """Tests for the directory-backed document store."""

    @pytest.fixture
    def temp_vault(self, tmp_path):
        """Create a temporary vault with test notes."""
        vault_path = tmp_path / "vault"
        vault_path.mkdir()

        (vault_path / "note1.md").write_text("""---
title: Test Note One
tags:
  - evergreen
---

# Test Note One

This is test content.
""")
        (vault_path / "plain.md").write_text("# No Frontmatter\n\nJust plain content.\n")
        (vault_path / "folder").mkdir()
        (vault_path / "folder" / "nested.md").write_text("Nested")
        (vault_path / "folder" / "image.PNG").write_bytes(b"img")
        (vault_path / ".obsidian").mkdir()
        (vault_path / ".obsidian" / "workspace.md").write_text("hidden")

        return vault_path

    def test_list_files_skips_hidden(self, temp_vault):
        files = asyncio.run(FileVault(temp_vault).list_files())
        paths = [f.path for f in files]
        assert "folder/nested.md" in paths
        assert "folder/image.PNG" in paths
        assert not any(p.startswith(".obsidian") for p in paths)

    def test_list_files_by_extension(self, temp_vault):
        files = asyncio.run(FileVault(temp_vault).list_files("md"))
        assert sorted(f.path for f in files) == ["folder/nested.md", "note1.md", "plain.md"]

    def test_list_files_extension_case_insensitive(self, temp_vault):
        files = asyncio.run(FileVault(temp_vault).list_files("png"))
        assert [f.path for f in files] == ["folder/image.PNG"]

    def test_list_files_missing_vault(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            asyncio.run(FileVault(tmp_path / "missing").list_files())

    def test_get_file(self, temp_vault):
        vault = FileVault(temp_vault)
        assert asyncio.run(vault.get_file("folder/nested.md")) == VaultFile("folder/nested.md")
        assert asyncio.run(vault.get_file("nope.md")) is None

    def test_read_and_read_binary(self, temp_vault):
        vault = FileVault(temp_vault)
        assert asyncio.run(vault.read(VaultFile("folder/nested.md"))) == "Nested"
        assert asyncio.run(vault.read_binary(VaultFile("folder/image.PNG"))) == b"img"

    def test_read_missing_raises(self, temp_vault):
        with pytest.raises(FileNotFoundError):
            asyncio.run(FileVault(temp_vault).read(VaultFile("missing.md")))

    def test_get_metadata(self, temp_vault):
        fm = asyncio.run(FileVault(temp_vault).get_metadata(VaultFile("note1.md")))
        assert fm == {"title": "Test Note One", "tags": ["evergreen"]}

    def test_get_metadata_without_header(self, temp_vault):
        assert asyncio.run(FileVault(temp_vault).get_metadata(VaultFile("plain.md"))) == {}

    def test_get_metadata_invalid_yaml(self, temp_vault):
        (temp_vault / "broken.md").write_text("---\ntitle: [unclosed\n---\nBody")
        assert asyncio.run(FileVault(temp_vault).get_metadata(VaultFile("broken.md"))) == {}

    def test_process_metadata_keeps_body_and_order(self, temp_vault):
        vault = FileVault(temp_vault)
        file = VaultFile("note1.md")

        asyncio.run(vault.process_metadata(file, publish_fields("https://share.jotbird.com/abc", "never")))

        content = (temp_vault / "note1.md").read_text()
        assert content.endswith("\n# Test Note One\n\nThis is test content.\n")
        fm = asyncio.run(vault.get_metadata(file))
        assert list(fm) == ["title", "tags", "jotbird_link", "jotbird_expires"]
        assert fm["jotbird_link"] == "https://share.jotbird.com/abc"

    def test_process_metadata_adds_header(self, temp_vault):
        vault = FileVault(temp_vault)

        asyncio.run(vault.process_metadata(VaultFile("plain.md"), publish_fields("https://x/y", "2026-11-17")))

        content = (temp_vault / "plain.md").read_text()
        assert content.startswith("---\n")
        assert content.endswith("---\n# No Frontmatter\n\nJust plain content.\n")
        fm = asyncio.run(vault.get_metadata(VaultFile("plain.md")))
        assert fm == {"jotbird_link": "https://x/y", "jotbird_expires": "2026-11-17"}

    def test_process_metadata_removes_empty_header(self, temp_vault):
        vault = FileVault(temp_vault)
        (temp_vault / "only.md").write_text("---\njotbird_link: https://x/y\n---\nBody")

        asyncio.run(vault.process_metadata(VaultFile("only.md"), clear_publish_fields()))

        assert (temp_vault / "only.md").read_text() == "Body"

    def test_process_metadata_invalid_yaml_raises(self, temp_vault):
        (temp_vault / "broken.md").write_text("---\ntitle: [unclosed\n---\nBody")
        with pytest.raises(yaml.YAMLError):
            asyncio.run(FileVault(temp_vault).process_metadata(VaultFile("broken.md"), clear_publish_fields()))

    def test_rename_notifies_handlers(self, temp_vault):
        vault = FileVault(temp_vault)
        events = []
        vault.on_rename(lambda old, new: events.append((old, new)))

        vault.rename("plain.md", "moved/plain.md")

        assert events == [("plain.md", "moved/plain.md")]
        assert (temp_vault / "moved" / "plain.md").exists()

    def test_delete_notifies_handlers(self, temp_vault):
        vault = FileVault(temp_vault)
        events = []
        vault.on_delete(events.append)

        vault.delete("plain.md")

        assert events == ["plain.md"]
        assert not (temp_vault / "plain.md").exists()


class TestVaultFile:
    """Tests for VaultFile name helpers."""

    def test_name_parts(self):
        file = VaultFile("folder/My Note.MD")
        assert file.name == "My Note.MD"
        assert file.basename == "My Note"
        assert file.extension == "md"
