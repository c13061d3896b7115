"""Command-line interface for attachkeeper."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from attachkeeper.core.config import AppConfig, load_config
from attachkeeper.core.errors import AttachKeeperError
from attachkeeper.core.models import IssueKind, ValidationResult
from attachkeeper.core.service import AttachmentService
from attachkeeper.sources.vault.store import VaultFile
from attachkeeper.utils.logging import setup_logging
from attachkeeper.version import runtime_info

# Create Typer app
app = typer.Typer(
    name="attachkeeper",
    help="Keep note attachments in per-note folders and every reference to them intact",
    add_completion=False,
)

# Create console for rich output
console = Console()

logger = logging.getLogger(__name__)


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file",
        exists=True,
        dir_okay=False,
    ),
    vault: Optional[Path] = typer.Option(
        None,
        "--vault",
        "-v",
        help="Vault folder (overrides the configured one)",
        exists=True,
        file_okay=False,
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    ),
    log_file: bool = typer.Option(
        True,
        "--log-file/--no-log-file",
        help="Also write logs to the rotating log file in the data directory",
    ),
) -> None:
    """attachkeeper - attachment folder and reference maintenance."""
    ctx.ensure_object(dict)
    cfg = load_config(config_file)
    if vault is not None:
        cfg.vault.root = vault.expanduser().resolve()
    ctx.obj["config"] = cfg

    setup_logging(cfg, level_name=log_level, log_to_file=log_file)


def _require_vault(cfg: AppConfig) -> None:
    if cfg.vault.root is None:
        console.print("[red]No vault configured[/red]")
        console.print("[dim]Pass --vault or set ATTACHKEEPER_VAULT__ROOT[/dim]")
        raise typer.Exit(1)


async def _prompt_image_name(image: VaultFile, default: str) -> str | None:
    """Ask on the terminal for the name of an image about to be moved."""
    answer = await asyncio.to_thread(
        typer.prompt, f"New name for {image.path}", default=default
    )
    return answer.strip() or None


def _run(coro, failure: str):
    try:
        return asyncio.run(coro)
    except AttachKeeperError as e:
        console.print(f"[red]{failure}: {e}[/red]")
        raise typer.Exit(1) from e
    except Exception as e:
        console.print(f"[red]{failure}: {e}[/red]")
        logging.exception(failure)
        raise typer.Exit(1) from e


@app.command()
def version() -> None:
    """Show version information."""
    table = Table(title="attachkeeper Version Information")
    table.add_column("Property", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")

    for prop, value in runtime_info().items():
        table.add_row(prop, value)

    console.print(table)


@app.command()
def config(
    ctx: typer.Context,
    show: bool = typer.Option(False, "--show", "-s", help="Show current configuration"),
    init: bool = typer.Option(False, "--init", "-i", help="Create a default configuration file"),
) -> None:
    """Manage configuration."""
    cfg = ctx.obj["config"]

    if init:
        config_path = cfg.general.config_file or cfg.default_config_path

        if config_path.exists():
            console.print(f"[yellow]Config file already exists:[/yellow] {config_path}")
            overwrite = typer.confirm("Overwrite existing config?")
            if not overwrite:
                console.print("[dim]Config creation cancelled[/dim]")
                raise typer.Exit(0)

        cfg.save_to_file(config_path)
        console.print(f"[green]✓ Config file created:[/green] {config_path}")
        console.print("[yellow]Edit this file to configure attachkeeper.[/yellow]")
        return

    if show:
        table = Table(title="attachkeeper Configuration")
        table.add_column("Setting", style="cyan", no_wrap=True)
        table.add_column("Value", style="green")

        table.add_row("Data Directory", str(cfg.general.data_dir))
        table.add_row("Config File", str(cfg.general.config_file or "Not set"))
        table.add_row("Log Level", cfg.general.log_level)
        table.add_row("Vault", str(cfg.vault.root) if cfg.vault.root else "Not set")

        table.add_row("", "")  # Separator
        table.add_row("[bold]Attachments[/bold]", "")
        table.add_row("Folder Suffix", cfg.attachments.folder_suffix)
        table.add_row("Name Format", cfg.attachments.name_format)
        table.add_row("Date Format", cfg.attachments.date_format)
        table.add_row("Prompt Image Rename", "✓" if cfg.attachments.prompt_rename_image else "✗")
        table.add_row("Auto Rename Folder", "✓" if cfg.attachments.auto_rename_folder else "✗")
        table.add_row(
            "Validate Notes Without Images",
            "✓" if cfg.attachments.validate_notes_without_images else "✗",
        )

        table.add_row("", "")  # Separator
        table.add_row("[bold]Links[/bold]", "")
        table.add_row("Format", cfg.links.link_format)
        table.add_row("Path Style", cfg.links.path_style)

        console.print(table)
    else:
        console.print(f"[yellow]Configuration file:[/yellow] {cfg.general.config_file or 'Not set'}")
        console.print(f"[yellow]Data directory:[/yellow] {cfg.general.data_dir}")
        console.print("\n[dim]Use --show to display full configuration[/dim]")
        console.print("[dim]Use --init to create a default config file[/dim]")


def _print_validation(result: ValidationResult) -> None:
    if not result.issues:
        console.print(f"[green]✓ All {result.total_files} file(s) have consistent attachment folders[/green]")
        return

    table = Table(title="Attachment Folder Issues")
    table.add_column("Note", style="cyan")
    table.add_column("Issue", style="yellow", no_wrap=True)
    table.add_column("Expected Folder", style="green")
    table.add_column("Details", style="dim")

    for issue in result.issues:
        if issue.kind is IssueKind.NAME_MISMATCH:
            details = f"found {issue.actual_folder_path}"
        elif issue.kind is IssueKind.INVALID_CHARS:
            details = " ".join(repr(char) for char in issue.invalid_chars)
        else:
            details = f"{len(issue.image_references)} image reference(s)"
        table.add_row(issue.note.path, issue.kind.value, issue.expected_folder_path, details)

    console.print(table)

    summary = result.summary
    console.print(
        f"\n[dim]{result.total_files} file(s) checked: {summary.missing} missing, "
        f"{summary.name_mismatch} name mismatch, {summary.invalid_chars} invalid characters[/dim]"
    )


@app.command()
def check(
    ctx: typer.Context,
    fix: bool = typer.Option(False, "--fix", "-f", help="Repair missing and misnamed folders"),
    stats: bool = typer.Option(False, "--stats", help="Show reference and folder statistics"),
) -> None:
    """Validate attachment folders for every note and graph document."""
    cfg = ctx.obj["config"]
    _require_vault(cfg)

    async def run_check():
        prompt = _prompt_image_name if cfg.attachments.prompt_rename_image else None
        async with AttachmentService(cfg, rename_prompt=prompt) as service:
            result = await service.validate()
            _print_validation(result)

            if stats:
                table = Table(title="Statistics")
                table.add_column("Metric", style="cyan", no_wrap=True)
                table.add_column("Count", style="green", justify="right")
                s = result.statistics
                table.add_row("Files", str(s.files.total))
                table.add_row("Files With Images", str(s.files.with_image_references))
                table.add_row("Files With Attachment Folder", str(s.files.with_attachments))
                table.add_row("Image References", str(s.image_references.total))
                table.add_row("Unresolved References", str(s.image_references.unresolved))
                table.add_row("Folders Correctly Named", str(s.attachment_folders.correctly_named))
                table.add_row("Folders Incorrectly Named", str(s.attachment_folders.incorrectly_named))
                table.add_row("Folders Missing", str(s.attachment_folders.missing))
                console.print(table)

            if not fix or not result.issues:
                return

            console.print("\n[cyan]Fixing issues...[/cyan]")
            fix_result = await service.fix_all(result)
            console.print(
                f"[green]✓ Fixed {fix_result.fixed} issue(s), moved {fix_result.moved_images} image(s)[/green]"
            )
            if fix_result.skipped:
                console.print(f"[dim]Skipped {fix_result.skipped} issue(s) that need a manual rename[/dim]")
            for error in fix_result.errors:
                console.print(f"[red]✗ {error}[/red]")

    _run(run_check(), "Check failed")


@app.command()
def download(
    ctx: typer.Context,
    note: str = typer.Argument(..., help="Vault-relative path of the note or graph document"),
) -> None:
    """Download remote images referenced by a note into its attachment folder."""
    cfg = ctx.obj["config"]
    _require_vault(cfg)

    async def run_download():
        async with AttachmentService(cfg) as service:
            result = await service.download_remote_images(note)

        if result.skipped:
            console.print("[yellow]A download is already running for this note[/yellow]")
            return
        if result.attempted == 0:
            console.print("[dim]No remote images found[/dim]")
            return
        console.print(f"[green]✓ Downloaded {result.replaced_count} image(s)[/green]")
        for path in result.files:
            console.print(f"  - {path}", style="dim")
        if result.failed_count:
            console.print(f"[yellow]{result.failed_count} image(s) could not be downloaded[/yellow]")

    _run(run_download(), "Download failed")


@app.command("rename-note")
def rename_note(
    ctx: typer.Context,
    old: str = typer.Argument(..., help="Current vault-relative path"),
    new: str = typer.Argument(..., help="New vault-relative path"),
) -> None:
    """Rename a note and carry its attachment folder along."""
    cfg = ctx.obj["config"]
    _require_vault(cfg)

    async def run_rename():
        async with AttachmentService(cfg) as service:
            folder = await service.rename_note(old, new)
        console.print(f"[green]✓ Renamed {old} -> {new}[/green]")
        if folder:
            console.print(f"[green]✓ Attachment folder renamed to {folder}[/green]")

    _run(run_rename(), "Rename failed")


@app.command("rename-attachment")
def rename_attachment(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Vault-relative path of the attachment"),
    name: str = typer.Argument(..., help="New base name (extension is kept)"),
) -> None:
    """Rename an attachment and update every reference to it."""
    cfg = ctx.obj["config"]
    _require_vault(cfg)

    async def run_rename():
        async with AttachmentService(cfg) as service:
            renamed = await service.rename_attachment(path, name)
        console.print(f"[green]✓ Renamed to {renamed.path}[/green]")

    _run(run_rename(), "Rename failed")


@app.command()
def adopt(
    ctx: typer.Context,
    pasted: str = typer.Argument(..., help="Vault-relative path of the pasted image"),
    note: str = typer.Option(..., "--note", "-n", help="Note the image was pasted into"),
) -> None:
    """Move a freshly pasted image into its note's attachment folder."""
    cfg = ctx.obj["config"]
    _require_vault(cfg)

    async def run_adopt():
        async with AttachmentService(cfg) as service:
            moved = await service.attachment_created(pasted, note)
        if moved is None:
            console.print("[dim]Nothing to do[/dim]")
        else:
            console.print(f"[green]✓ Moved to {moved.path}[/green]")

    _run(run_adopt(), "Adopt failed")


@app.command()
def cleanup(
    ctx: typer.Context,
    delete: bool = typer.Option(False, "--delete", "-d", help="Delete the empty folders found"),
) -> None:
    """List (and optionally delete) empty attachment folders."""
    cfg = ctx.obj["config"]
    _require_vault(cfg)

    async def run_cleanup():
        async with AttachmentService(cfg) as service:
            folders = await service.find_empty_attachment_folders()
            if not folders:
                console.print("[green]✓ No empty attachment folders[/green]")
                return
            for folder in folders:
                console.print(f"  - {folder.path}")
            if not delete:
                console.print(f"\n[dim]{len(folders)} empty folder(s). Use --delete to remove them[/dim]")
                return
            deleted = await service.delete_empty_attachment_folders()
            console.print(f"[green]✓ Deleted {deleted} folder(s)[/green]")

    _run(run_cleanup(), "Cleanup failed")


@app.command()
def serve(
    ctx: typer.Context,
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to listen on"),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    from attachkeeper.api.app import create_app

    cfg = ctx.obj["config"]
    _require_vault(cfg)
    console.print(f"[cyan]Serving {cfg.vault.root} on http://{host}:{port}[/cyan]")
    uvicorn.run(create_app(cfg), host=host, port=port, log_config=None)


def main_entry() -> None:
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        logging.exception("Unhandled exception")
        sys.exit(1)


if __name__ == "__main__":
    main_entry()
