"""
Main CLI entry point for ilogic-bridge.

Inspects how the bridge sees a project without a running host: which
configuration file governs a document, which rules it excludes, and where
its rule files live.
"""

import importlib.metadata
from pathlib import Path

import typer

from ilogic_bridge.config import get_settings
from ilogic_bridge.core.paths import map_document_folder
from ilogic_bridge.core.scope import resolve_scope, should_ignore
from ilogic_bridge.models import Document
from ilogic_bridge.utils.logging import configure_logging
from ilogic_bridge.utils.rich_console import get_console, print_panel, print_table

console = get_console()

app = typer.Typer(
    help="ilogic-bridge - keep host application rules in sync with plain rule files.",
    no_args_is_help=True,
)


@app.callback()
def main() -> None:
    configure_logging(get_settings())


def _scope_or_exit(path: Path):
    settings = get_settings()
    target = path if path.is_file() or path.suffix else path / "_"
    scope = resolve_scope(target, settings)
    if scope is None:
        console.print(f"No {settings.IGNORE_FILE} found above {path}; untracked.", style="yellow")
        raise typer.Exit(1)
    return scope


@app.command()
def scope(path: Path = typer.Argument(..., help="Document file or folder")):
    """Show the configuration governing a document or folder."""
    config = _scope_or_exit(path)
    rows = [
        ["Config file", str(config.config_path)],
        ["Transfer enabled", "yes" if config.transfer_enabled else "no"],
        ["Patterns", ", ".join(config.patterns) or "-"],
    ]
    if config.read_error:
        rows.append(["Read error", config.read_error])
    print_table(["Setting", "Value"], rows, title="Scope")


@app.command()
def check(
    path: Path = typer.Argument(..., help="Document file or folder"),
    rules: list[str] = typer.Argument(..., help="Rule names to test"),
):
    """Report whether each rule name is excluded by the governing patterns."""
    config = _scope_or_exit(path)
    rows = [[name, "ignored" if should_ignore(name, config.patterns) else "synced"] for name in rules]
    print_table(["Rule", "Status"], rows, title="Rules")


@app.command()
def folder(document: Path = typer.Argument(..., help="Document file")):
    """Print the folder a document's rule files are exported to."""
    settings = get_settings()
    config = _scope_or_exit(document)
    if not config.transfer_enabled:
        console.print(f"Transfer disabled in {config.config_path}", style="yellow")
        raise typer.Exit(1)
    target = map_document_folder(
        config.governing_folder,
        Document(doc_id=str(document), full_path=document),
        settings.RULES_FOLDER,
    )
    console.print(str(target), soft_wrap=True)


@app.command()
def version():
    """Show ilogic-bridge version."""
    try:
        installed = importlib.metadata.version("ilogic-bridge")
    except importlib.metadata.PackageNotFoundError:
        from ilogic_bridge import __version__ as installed
    print_panel(f"ilogic-bridge {installed}", title="Version")


if __name__ == "__main__":
    app()
