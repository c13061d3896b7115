"""Tests for the command-line interface."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from attachkeeper import __version__
from attachkeeper.cli.main import app
from attachkeeper.core.config import AppConfig

from conftest import write_file

runner = CliRunner()


@pytest.fixture
def config_path(tmp_path: Path, config: AppConfig) -> Path:
    path = tmp_path / "config.toml"
    config.save_to_file(path)
    return path


def invoke(config_path: Path, *args: str):
    return runner.invoke(app, ["--config", str(config_path), "--no-log-file", *args])


def test_version(config_path: Path):
    result = invoke(config_path, "version")
    assert result.exit_code == 0
    assert __version__ in result.output


def test_config_show(config_path: Path):
    result = invoke(config_path, "config", "--show")
    assert result.exit_code == 0
    assert "_Attachments" in result.output


def test_check_reports_issues(config_path: Path, vault_root: Path):
    write_file(vault_root, "a.md", "![](img.png)")
    write_file(vault_root, "img.png", b"x")

    result = invoke(config_path, "check")

    assert result.exit_code == 0
    assert "missing" in result.output
    assert (vault_root / "img.png").exists()


def test_check_fix_repairs_issues(config_path: Path, vault_root: Path):
    write_file(vault_root, "a.md", "![](img.png)")
    write_file(vault_root, "img.png", b"x")

    result = invoke(config_path, "check", "--fix")

    assert result.exit_code == 0
    assert "Fixed 1 issue" in result.output
    assert not (vault_root / "img.png").exists()
    assert len(list((vault_root / "a_Attachments").iterdir())) == 1


def test_check_on_consistent_vault(config_path: Path, vault_root: Path):
    write_file(vault_root, "a.md", "")
    (vault_root / "a_Attachments").mkdir()

    result = invoke(config_path, "check")

    assert result.exit_code == 0
    assert "consistent" in result.output


def test_rename_attachment_command(config_path: Path, vault_root: Path):
    write_file(vault_root, "a.md", "![](old.png)")
    write_file(vault_root, "a_Attachments/old.png", b"x")

    result = invoke(config_path, "rename-attachment", "a_Attachments/old.png", "cover")

    assert result.exit_code == 0
    assert (vault_root / "a_Attachments" / "cover.png").exists()
    assert (vault_root / "a.md").read_text(encoding="utf-8") == "![](cover.png)"


def test_rename_note_command(config_path: Path, vault_root: Path):
    write_file(vault_root, "Old.md", "")
    write_file(vault_root, "Old_Attachments/pic.png", b"x")

    result = invoke(config_path, "rename-note", "Old.md", "New.md")

    assert result.exit_code == 0
    assert (vault_root / "New_Attachments" / "pic.png").exists()


def test_missing_file_fails_cleanly(config_path: Path):
    result = invoke(config_path, "download", "nope.md")
    assert result.exit_code == 1
    assert "not found" in result.output


def test_adopt_command(config_path: Path, vault_root: Path):
    write_file(vault_root, "a.md", "![[Pasted image 1.png]]")
    write_file(vault_root, "Pasted image 1.png", b"x")

    result = invoke(config_path, "adopt", "Pasted image 1.png", "--note", "a.md")

    assert result.exit_code == 0
    assert not (vault_root / "Pasted image 1.png").exists()
    assert len(list((vault_root / "a_Attachments").iterdir())) == 1


def test_cleanup_lists_then_deletes(config_path: Path, vault_root: Path):
    (vault_root / "x_Attachments").mkdir()

    listed = invoke(config_path, "cleanup")
    assert listed.exit_code == 0
    assert "x_Attachments" in listed.output
    assert (vault_root / "x_Attachments").exists()

    deleted = invoke(config_path, "cleanup", "--delete")
    assert deleted.exit_code == 0
    assert not (vault_root / "x_Attachments").exists()


def test_commands_need_a_vault(tmp_path: Path):
    config = AppConfig()
    config.general.data_dir = tmp_path / "data"
    path = tmp_path / "empty.toml"
    config.save_to_file(path)

    result = invoke(path, "check")

    assert result.exit_code == 1
    assert "No vault configured" in result.output
