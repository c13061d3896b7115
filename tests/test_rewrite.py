"""Tests for rewriting references after an attachment moves."""

import json
from pathlib import Path

import pytest

from attachkeeper.core.models import NoteDocument
from attachkeeper.core.references import ReferenceScanner
from attachkeeper.core.rewrite import ReferenceRewriter, apply_substitutions
from attachkeeper.sources.vault.links import LinkGenerator
from attachkeeper.sources.vault.store import VaultFile, VaultStore

from conftest import write_file


def make_rewriter(root: Path, **link_options) -> ReferenceRewriter:
    store = VaultStore(root)
    return ReferenceRewriter(store, ReferenceScanner(store), LinkGenerator(store, **link_options))


async def move(root: Path, rewriter: ReferenceRewriter, old: str, new: str):
    await rewriter.store.rename(old, new)
    return await rewriter.rewrite_references(old, VaultFile(new))


def test_apply_substitutions_uses_offsets():
    body = "a ![](x) b ![](x) c"
    assert apply_substitutions(body, [(11, 17, "Y"), (2, 8, "X")]) == "a X b Y c"
    assert apply_substitutions(body, []) == body


async def test_round_trip_preserves_alt_text(vault_root: Path):
    write_file(vault_root, "note.md", "before ![alt](old.png) after")
    write_file(vault_root, "old.png", b"x")
    rewriter = make_rewriter(vault_root)

    result = await move(vault_root, rewriter, "old.png", "folder/new.png")

    body = (vault_root / "note.md").read_text(encoding="utf-8")
    assert body == "before ![alt](new.png) after"
    assert result.references == 1
    assert result.documents == ["note.md"]

    document = NoteDocument.from_content(VaultFile("note.md"), body)
    refs = await rewriter.scanner.scan(document)
    assert [(ref.resolved_path, ref.display_text) for ref in refs] == [("folder/new.png", "alt")]
    assert "old.png" not in body


async def test_absolute_path_style(vault_root: Path):
    write_file(vault_root, "note.md", "![alt](old.png)")
    write_file(vault_root, "old.png", b"x")
    rewriter = make_rewriter(vault_root, path_style="absolute")

    await move(vault_root, rewriter, "old.png", "folder/new.png")

    assert (vault_root / "note.md").read_text(encoding="utf-8") == "![alt](folder/new.png)"


async def test_link_title_survives_the_rewrite(vault_root: Path):
    write_file(vault_root, "note.md", '![alt](<old pic.png> "Shot") `![alt](old pic.png)`')
    write_file(vault_root, "old pic.png", b"x")
    rewriter = make_rewriter(vault_root)

    result = await move(vault_root, rewriter, "old pic.png", "folder/new.png")

    assert result.references == 1
    assert (vault_root / "note.md").read_text(encoding="utf-8") == (
        '![alt](new.png "Shot") `![alt](old pic.png)`'
    )


async def test_wiki_links_keep_embed_alt_and_subpath(vault_root: Path):
    write_file(vault_root, "note.md", "![[old.png|caption]] and [[old.png]] and [[Other#Heading|see]]")
    write_file(vault_root, "old.png", b"x")
    write_file(vault_root, "Other.md", "# Heading")
    rewriter = make_rewriter(vault_root)

    await move(vault_root, rewriter, "old.png", "media/new.png")
    await move(vault_root, rewriter, "Other.md", "Sub/Renamed.md")

    assert (vault_root / "note.md").read_text(encoding="utf-8") == (
        "![[new.png|caption]] and [[new.png]] and [[Renamed#Heading|see]]"
    )


async def test_graph_file_nodes_are_rewritten(vault_root: Path):
    graph = {
        "nodes": [
            {"id": "1", "type": "file", "file": "old.png", "x": 0, "y": 0},
            {"id": "2", "type": "text", "text": "keep"},
        ],
        "edges": [],
    }
    write_file(vault_root, "Board.canvas", json.dumps(graph))
    write_file(vault_root, "old.png", b"x")
    rewriter = make_rewriter(vault_root)

    result = await move(vault_root, rewriter, "old.png", "Board_Attachments/new.png")

    saved = json.loads((vault_root / "Board.canvas").read_text(encoding="utf-8"))
    assert saved["nodes"][0]["file"] == "Board_Attachments/new.png"
    assert saved["nodes"][1] == {"id": "2", "type": "text", "text": "keep"}
    assert result.references == 1


async def test_untouched_documents_are_not_written(vault_root: Path):
    write_file(vault_root, "note.md", "![](old.png)")
    other = write_file(vault_root, "other.md", "![](unrelated.png)")
    broken = write_file(vault_root, "Broken.canvas", "{oops")
    write_file(vault_root, "old.png", b"x")
    before = (other.stat().st_mtime_ns, broken.stat().st_mtime_ns)
    rewriter = make_rewriter(vault_root)

    result = await move(vault_root, rewriter, "old.png", "new.png")

    assert result.documents == ["note.md"]
    assert result.failed == []
    assert (other.stat().st_mtime_ns, broken.stat().st_mtime_ns) == before
    assert broken.read_text(encoding="utf-8") == "{oops"


async def test_failing_document_does_not_stop_the_batch(vault_root: Path, monkeypatch: pytest.MonkeyPatch):
    write_file(vault_root, "a.md", "![](old.png)")
    write_file(vault_root, "b.md", "![](old.png)")
    write_file(vault_root, "old.png", b"x")
    rewriter = make_rewriter(vault_root)

    original_write = rewriter.store.write

    async def flaky_write(path: str, content: str):
        if path == "a.md":
            raise OSError("disk full")
        return await original_write(path, content)

    monkeypatch.setattr(rewriter.store, "write", flaky_write)

    result = await move(vault_root, rewriter, "old.png", "new.png")

    assert result.failed == ["a.md"]
    assert result.documents == ["b.md"]
    assert (vault_root / "b.md").read_text(encoding="utf-8") == "![](new.png)"
