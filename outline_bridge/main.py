"""
Main CLI interface for the outline bridge.

This module provides the Typer-based command-line interface with commands for:
- Rendering chat markdown as sanitized HTML
- Converting chat markdown to the outliner's bullet format
- Converting outliner text back to chat markdown
"""

import os
import sys
from pathlib import Path
from typing import Callable, Dict, Optional

import pyperclip
import typer
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from .core.bridge import FormatBridge
from .core.config import ConfigError, load_project_env, validate_config
from .core.debug_log import get_debug_logger, is_debug_enabled
from .core.progress import reporter

app = typer.Typer(
    name="outline-bridge",
    help="Outline Bridge CLI - Convert chat markdown to sanitized HTML and outline text, and back",
    no_args_is_help=True,
)

console = Console()
status_console = Console(stderr=True)

CONVERSIONS: Dict[str, Callable[[FormatBridge, str], str]] = {
    "render": FormatBridge.render_to_html,
    "to-outline": FormatBridge.to_outline_format,
    "from-outline": FormatBridge.from_outline_format,
}

SYNTAX_LEXERS = {"render": "html", "to-outline": "markdown", "from-outline": "markdown"}


class InputError(Exception):
    """Raised when the command line input options are unusable."""

    pass


def _read_input(text: Optional[str], file: Optional[str]) -> str:
    if text and file:
        raise InputError("Cannot specify both --text and --file options")
    if text is None and not file:
        raise InputError("Must specify either --text or --file option")
    if text is not None:
        return text

    file_path = Path(file)
    if not file_path.exists():
        raise InputError(f"File not found: {file}")
    try:
        return file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise InputError(f"Failed to read file '{file}': {e}")


def _run(
    operation: str,
    text: Optional[str],
    file: Optional[str],
    output: Optional[str],
    output_format: str,
    copy: bool,
    project_root: Optional[str],
    debug: bool,
):
    if output_format not in ("rich", "plain"):
        console.print(f"[bold red]Error:[/bold red] Unknown format '{output_format}' (use rich or plain)")
        sys.exit(1)

    try:
        with reporter.initialize(status_console, "Reading input…"):
            source = _read_input(text, file)

            reporter.step("Loading configuration…")
            load_project_env(project_root)
            # CLI flag always overrides .env
            if debug:
                os.environ["OB_DEBUG"] = "1"
            options = validate_config()
            debug_logger = get_debug_logger(project_root or ".") if is_debug_enabled() else None

            reporter.step(f"Converting ({operation})…")
            result = CONVERSIONS[operation](FormatBridge(options, debug_logger=debug_logger), source)

            if output:
                reporter.step("Writing output…")
                Path(output).write_text(result, encoding="utf-8")
            reporter.complete_step()

        _display_result(result, source, operation, output_format, output)
        if copy:
            _copy_to_clipboard(result, output_format)

    except InputError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)
    except ConfigError as e:
        console.print(f"[bold red]Configuration Error:[/bold red] {e}")
        sys.exit(1)
    except OSError as e:
        console.print(f"[bold red]File Error:[/bold red] {e}")
        sys.exit(1)
    except Exception as e:
        console.print(f"[bold red]Unexpected Error:[/bold red] {e}")
        sys.exit(1)


@app.command()
def render(
    text: Optional[str] = typer.Option(None, "--text", "-t", help="Markdown text to render"),
    file: Optional[str] = typer.Option(None, "--file", help="Path to file containing markdown"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write the result to this file"),
    output_format: str = typer.Option("rich", "--format", "-f", help="Output format (rich, plain)"),
    copy: bool = typer.Option(False, "--copy", help="Copy the result to the clipboard"),
    project_root: Optional[str] = typer.Option(None, "--project-root", help="Project root for .outline_bridge/.env lookup"),
    debug: bool = typer.Option(False, "--debug", help="Write per-stage debug logs under .outline_bridge/debug"),
):
    """
    Render chat markdown as sanitized HTML.

    Examples:
        outline-bridge render --text "**bold** and [[Page]]"
        outline-bridge render --file message.md --format plain -o message.html
    """
    _run("render", text, file, output, output_format, copy, project_root, debug)


@app.command("to-outline")
def to_outline(
    text: Optional[str] = typer.Option(None, "--text", "-t", help="Markdown text to convert"),
    file: Optional[str] = typer.Option(None, "--file", help="Path to file containing markdown"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write the result to this file"),
    output_format: str = typer.Option("rich", "--format", "-f", help="Output format (rich, plain)"),
    copy: bool = typer.Option(False, "--copy", help="Copy the result to the clipboard"),
    project_root: Optional[str] = typer.Option(None, "--project-root", help="Project root for .outline_bridge/.env lookup"),
    debug: bool = typer.Option(False, "--debug", help="Write per-stage debug logs under .outline_bridge/debug"),
):
    """
    Convert chat markdown to the outliner's nested bullet format.

    Examples:
        outline-bridge to-outline --text "- item\\n  - child"
        outline-bridge to-outline --file answer.md --copy
    """
    _run("to-outline", text, file, output, output_format, copy, project_root, debug)


@app.command("from-outline")
def from_outline(
    text: Optional[str] = typer.Option(None, "--text", "-t", help="Outline text to convert"),
    file: Optional[str] = typer.Option(None, "--file", help="Path to file containing outline text"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write the result to this file"),
    output_format: str = typer.Option("rich", "--format", "-f", help="Output format (rich, plain)"),
    copy: bool = typer.Option(False, "--copy", help="Copy the result to the clipboard"),
    project_root: Optional[str] = typer.Option(None, "--project-root", help="Project root for .outline_bridge/.env lookup"),
    debug: bool = typer.Option(False, "--debug", help="Write per-stage debug logs under .outline_bridge/debug"),
):
    """
    Convert outliner text back to chat markdown.

    Examples:
        outline-bridge from-outline --file page.txt --format plain
    """
    _run("from-outline", text, file, output, output_format, copy, project_root, debug)


def _display_result(result: str, source: str, operation: str, output_format: str, output: Optional[str]):
    """Display the conversion result in the specified format."""
    if output_format == "plain":
        if not output:
            typer.echo(result)
        return

    if output:
        console.print(f"[bold green]✓[/bold green] Wrote {len(result)} characters to {output}")
        return

    console.print(f"\n[bold green]Result ({operation}):[/bold green]")
    syntax = Syntax(result, SYNTAX_LEXERS[operation], theme="monokai", line_numbers=False, word_wrap=True)
    console.print(Panel(syntax, border_style="green"))

    stats_table = Table(show_header=False, box=None)
    stats_table.add_column("Key", style="cyan")
    stats_table.add_column("Value", style="white")
    stats_table.add_row("Input characters", str(len(source)))
    stats_table.add_row("Output characters", str(len(result)))
    stats_table.add_row("Output lines", str(result.count("\n") + 1 if result else 0))
    console.print(stats_table)


def _copy_to_clipboard(result: str, output_format: str):
    try:
        pyperclip.copy(result)
    except pyperclip.PyperclipException as e:
        # Clipboard is optional; the result has already been shown or written
        console.print(f"[yellow]Warning:[/yellow] Could not copy to clipboard: {e}")
        return
    if output_format == "rich":
        console.print("[dim]Copied to clipboard.[/dim]")


if __name__ == "__main__":
    app()
