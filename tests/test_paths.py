"""Tests for store path helpers and canonical attachment folders."""

import pytest

from attachkeeper.core.config import AttachmentsConfig
from attachkeeper.sources.vault.store import VaultFile
from attachkeeper.utils.paths import (
    PathResolver,
    basename,
    dirname,
    folder_owner_stem,
    is_within,
    join,
    normalize_path,
    relative_path,
    resolve_relative,
)
from attachkeeper.utils.sanitize import sanitize_name


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Notes/Design.md", "Notes/Design.md"),
        ("./Notes//Design.md", "Notes/Design.md"),
        ("Notes\\Sub\\a.png", "Notes/Sub/a.png"),
        ("/leading/", "leading"),
        ("", ""),
    ],
)
def test_normalize_path(raw, expected):
    assert normalize_path(raw) == expected


def test_resolve_relative():
    assert resolve_relative("Notes/Sub", "../img/a.png") == "Notes/img/a.png"
    assert resolve_relative(".", "a.png") == "a.png"
    assert resolve_relative("Notes", "./a.png") == "Notes/a.png"


def test_resolve_relative_refuses_to_escape_root():
    assert resolve_relative("Notes", "../../outside.png") is None


def test_dirname_and_basename():
    assert dirname("Design.md") == "."
    assert dirname("Notes/Design.md") == "Notes"
    assert basename("Notes/Design.md") == "Design.md"


def test_join_and_is_within():
    assert join("Notes", "Design_Attachments", "a.png") == "Notes/Design_Attachments/a.png"
    assert join(".", "a.png") == "a.png"
    assert is_within("Notes/Design_Attachments/a.png", "Notes/Design_Attachments")
    assert not is_within("Notes/Design_Attachments2/a.png", "Notes/Design_Attachments")


def test_relative_path():
    assert relative_path("assets/x.png", "notes") == "../assets/x.png"
    assert relative_path("notes/x.png", "notes") == "x.png"
    assert relative_path("x.png", ".") == "x.png"


def test_folder_owner_stem():
    assert folder_owner_stem("Design_Attachments", "_Attachments") == "Design"
    assert folder_owner_stem("Design", "_Attachments") is None
    assert folder_owner_stem("_Attachments", "_Attachments") is None


@pytest.mark.parametrize(
    "note_path,suffix",
    [
        ("Design.md", "_Attachments"),
        ("Projects/Design.md", "_Attachments"),
        ("Projects/Topic #1.md", "_Attachments"),
        ("Deep/er/Board.canvas", " files"),
        ("Notes/odd name?.md", "#assets"),
    ],
)
def test_attachment_folder_invariant(note_path, suffix):
    resolver = PathResolver(AttachmentsConfig(folder_suffix=suffix))
    note = VaultFile(note_path)

    expected_name = sanitize_name(note.basename) + sanitize_name(suffix)
    parent = dirname(note_path)
    expected = expected_name if parent == "." else f"{parent}/{expected_name}"

    assert resolver.attachment_folder_for(note) == expected
    # Repeated calls and the path-only variant agree
    assert resolver.attachment_folder_for(note) == expected
    assert resolver.attachment_folder_for_path(note_path) == expected


def test_resolver_reads_settings_on_every_call():
    settings = AttachmentsConfig()
    resolver = PathResolver(settings)
    note = VaultFile("Design.md")
    assert resolver.attachment_folder_for(note) == "Design_Attachments"

    settings.folder_suffix = "_files"
    assert resolver.attachment_folder_for(note) == "Design_files"


def test_owns_folder():
    resolver = PathResolver(AttachmentsConfig())
    assert resolver.owns_folder("Design", "Design_Attachments")
    assert resolver.owns_folder("Topic #1", "Topic #1_Attachments")
    assert resolver.owns_folder("Plan", "Plan _Attachments")
    assert not resolver.owns_folder("Design", "Other_Attachments")
    assert not resolver.owns_folder("Design", "Design")
