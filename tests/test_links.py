"""Tests for link text generation."""

from pathlib import Path

from attachkeeper.sources.vault.links import LinkGenerator
from attachkeeper.sources.vault.store import VaultFile, VaultStore

from conftest import write_file


async def test_shortest_uses_bare_name_when_unique(vault_root: Path):
    write_file(vault_root, "Design_Attachments/shot.png")
    links = LinkGenerator(VaultStore(vault_root))

    text = await links.generate_link_text(VaultFile("Design_Attachments/shot.png"), "Design.md", display_text="alt")
    assert text == "[alt](shot.png)"


async def test_shortest_falls_back_to_full_path_for_duplicate_names(vault_root: Path):
    write_file(vault_root, "A_Attachments/shot.png")
    write_file(vault_root, "B_Attachments/shot.png")
    links = LinkGenerator(VaultStore(vault_root))

    text = await links.generate_link_text(VaultFile("A_Attachments/shot.png"), "A.md", display_text="")
    assert text == "[](A_Attachments/shot.png)"


async def test_relative_and_absolute_styles(vault_root: Path):
    target = VaultFile("assets/my shot.png")
    write_file(vault_root, target.path)

    relative = LinkGenerator(VaultStore(vault_root), path_style="relative")
    absolute = LinkGenerator(VaultStore(vault_root), path_style="absolute")

    assert await relative.generate_link_text(target, "notes/a.md", display_text="x") == "[x](../assets/my%20shot.png)"
    assert await absolute.generate_link_text(target, "notes/a.md", display_text="x") == "[x](assets/my%20shot.png)"


async def test_wiki_format(vault_root: Path):
    write_file(vault_root, "Sub/Other.md")
    write_file(vault_root, "Sub/pic.png")
    links = LinkGenerator(VaultStore(vault_root), link_format="wiki")

    assert await links.generate_link_text(VaultFile("Sub/Other.md"), "a.md", subpath="Heading") == "[[Other#Heading]]"
    assert await links.generate_link_text(VaultFile("Sub/pic.png"), "a.md", display_text="cap") == "[[pic.png|cap]]"


async def test_generated_links_are_never_embeds(vault_root: Path):
    write_file(vault_root, "pic.png")
    for link_format in ("markdown", "wiki"):
        links = LinkGenerator(VaultStore(vault_root), link_format=link_format)
        text = await links.generate_link_text(VaultFile("pic.png"), "a.md")
        assert not text.startswith("!")
