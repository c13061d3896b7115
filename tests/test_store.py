"""Tests for the local vault store."""

from pathlib import Path

import pytest

from attachkeeper.core.errors import VaultConflictError, VaultError
from attachkeeper.sources.vault.store import VaultFile, VaultFolder, VaultStore

from conftest import write_file


@pytest.fixture
def store(vault_root: Path) -> VaultStore:
    return VaultStore(vault_root)


def test_vault_file_properties():
    file = VaultFile("Notes/Design.Final.PNG")
    assert file.name == "Design.Final.PNG"
    assert file.basename == "Design.Final"
    assert file.extension == "png"
    assert file.parent == "Notes"
    assert VaultFile("README").extension == ""


def test_absolute_refuses_paths_outside_root(store: VaultStore):
    with pytest.raises(VaultError):
        store.absolute("../outside.md")


async def test_read_and_write(store: VaultStore, vault_root: Path):
    written = await store.write("Notes/a.md", "hello")
    assert written == VaultFile("Notes/a.md")
    assert (vault_root / "Notes" / "a.md").read_text(encoding="utf-8") == "hello"
    assert await store.read("Notes/a.md") == "hello"


async def test_read_missing_file_raises(store: VaultStore):
    with pytest.raises(VaultError):
        await store.read("nope.md")


async def test_get_file_and_folder(store: VaultStore, vault_root: Path):
    write_file(vault_root, "Notes/a.md", "x")
    assert await store.get_file("Notes/a.md") == VaultFile("Notes/a.md")
    assert await store.get_file("Notes") is None
    assert await store.get_folder("Notes") == VaultFolder("Notes")
    assert await store.get_folder("Notes/a.md") is None


async def test_create_folder_conflicts_with_existing_entry(store: VaultStore, vault_root: Path):
    await store.create_folder("Design_Attachments")
    with pytest.raises(VaultConflictError):
        await store.create_folder("Design_Attachments")
    # ensure_folder is a no-op for existing folders
    assert await store.ensure_folder("Design_Attachments") == VaultFolder("Design_Attachments")


async def test_rename_moves_and_refuses_to_overwrite(store: VaultStore, vault_root: Path):
    write_file(vault_root, "a.png", b"a")
    write_file(vault_root, "b.png", b"b")

    moved = await store.rename("a.png", "Folder/c.png")
    assert moved == VaultFile("Folder/c.png")
    assert (vault_root / "Folder" / "c.png").read_bytes() == b"a"

    with pytest.raises(VaultConflictError):
        await store.rename("b.png", "Folder/c.png")
    with pytest.raises(VaultError):
        await store.rename("missing.png", "other.png")


async def test_list_children_skips_hidden_entries(store: VaultStore, vault_root: Path):
    write_file(vault_root, "b.md")
    write_file(vault_root, "a/x.png")
    write_file(vault_root, ".obsidian/app.json")
    write_file(vault_root, ".hidden.md")

    children = await store.list_children("")
    assert children == [VaultFolder("a"), VaultFile("b.md")]


async def test_walk_listings(store: VaultStore, vault_root: Path):
    write_file(vault_root, "Design.md")
    write_file(vault_root, "Board.canvas", "{}")
    write_file(vault_root, "Design_Attachments/a.png")
    write_file(vault_root, "Sub/Design_Attachments/a.png")

    documents = await store.list_documents(frozenset({"md", "canvas"}))
    assert [doc.path for doc in documents] == ["Board.canvas", "Design.md"]

    matches = await store.find_files_by_name("a.png")
    assert sorted(file.path for file in matches) == [
        "Design_Attachments/a.png",
        "Sub/Design_Attachments/a.png",
    ]

    under = await store.list_files_under("Sub")
    assert under == [VaultFile("Sub/Design_Attachments/a.png")]


async def test_delete_file_and_folder(store: VaultStore, vault_root: Path):
    write_file(vault_root, "Old_Attachments/a.png")
    write_file(vault_root, "note.md")

    await store.delete("note.md")
    await store.delete("Old_Attachments")

    assert not (vault_root / "note.md").exists()
    assert not (vault_root / "Old_Attachments").exists()


async def test_free_path_numbers_taken_names(store: VaultStore, vault_root: Path):
    assert await store.free_path("A_Attachments", "pic", "png") == "A_Attachments/pic.png"

    write_file(vault_root, "A_Attachments/pic.png", b"x")
    write_file(vault_root, "A_Attachments/pic_1.png", b"x")

    assert await store.free_path("A_Attachments", "pic", "png") == "A_Attachments/pic_2.png"
    assert await store.free_path(".", "notes", "") == "notes"
