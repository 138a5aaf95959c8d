"""CLI entry point for blockdoc."""

import asyncio
import json
import sys
from collections import Counter
from pathlib import Path
from typing import Any, Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from blockdoc import __version__
from blockdoc.config.loader import load_config
from blockdoc.editor import Editor
from blockdoc.models.block import BlockRecord
from blockdoc.models.config import EditorConfig
from blockdoc.services.exceptions import ConfigError
from blockdoc.tools.conversion import export_data_as_string, is_convertible
from blockdoc.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)
console = Console()

PREVIEW_LENGTH = 60


def _load_editor_config(config_path: Optional[Path]) -> EditorConfig:
    try:
        return load_config(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e))


def _read_document(path: Path) -> Any:
    """
    Read a saved document from a JSON file.

    Raises:
        click.ClickException: If the file cannot be read or is not JSON
    """
    try:
        with path.open() as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        logger.error("document_parse_error", path=str(path), error=str(e))
        raise click.ClickException(f"Invalid JSON in {path}: {e}")
    except OSError as e:
        raise click.ClickException(f"Cannot read {path}: {e}")


def _render(document: Any, config: EditorConfig) -> Editor:
    editor = Editor.from_config(config)
    try:
        asyncio.run(editor.blocks.render(document))
    except ValidationError as e:
        raise click.ClickException(f"Invalid document:\n{e}")
    return editor


def _preview(editor: Editor, record: BlockRecord) -> str:
    """Short single-line text for a block."""
    spec = editor.registry.get(record.tool_name)
    if record.is_stub or spec is None or not is_convertible(spec, "export"):
        text = json.dumps(record.data.get("data", record.data) if record.is_stub else record.data)
    else:
        text = export_data_as_string(record.data, spec)
    text = " ".join(text.split())
    if len(text) > PREVIEW_LENGTH:
        text = text[: PREVIEW_LENGTH - 3] + "..."
    return text


def _label(editor: Editor, record: BlockRecord) -> str:
    if record.is_stub:
        original = record.data.get("type", "?")
        return f"[yellow]stub[/yellow] ({original}) {_preview(editor, record)}"
    return f"[bold]{record.tool_name}[/bold] {_preview(editor, record)}"


@click.group()
@click.version_option(version=__version__, prog_name="blockdoc")
def cli():
    """blockdoc: inspect and normalize block-structured documents."""
    # Configure logging on CLI startup
    configure_logging()


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path),
              help="Editor configuration file (defaults to ~/.config/blockdoc/config.yaml)")
@click.option("--strict", is_flag=True, help="Exit with status 1 when any block needed stub substitution")
def check(file: Path, config_path: Optional[Path], strict: bool):
    """Load a saved document and report on its blocks."""
    config = _load_editor_config(config_path)
    editor = _render(_read_document(file), config)

    records = editor.engine.blocks
    stubs = [record for record in records if record.is_stub]
    max_depth = max((editor.engine.hierarchy.depth(record) for record in records), default=0)
    histogram = Counter(
        record.data.get("type", "?") if record.is_stub else record.tool_name for record in records
    )

    table = Table(title=str(file))
    table.add_column("Tool")
    table.add_column("Blocks", justify="right")
    table.add_column("Registered")
    for tool_name, count in sorted(histogram.items()):
        registered = "yes" if tool_name in editor.registry else "[red]no[/red]"
        table.add_row(tool_name, str(count), registered)
    console.print(table)
    console.print(f"Blocks: {len(records)}  Stubs: {len(stubs)}  Max depth: {max_depth}")

    logger.info("document_checked", path=str(file), blocks=len(records), stubs=len(stubs))
    if strict and stubs:
        console.print(f"[red]{len(stubs)} block(s) use unregistered or failing tools[/red]")
        sys.exit(1)


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path),
              help="Editor configuration file")
def tree(file: Path, config_path: Optional[Path]):
    """Print the block outline of a saved document."""
    config = _load_editor_config(config_path)
    editor = _render(_read_document(file), config)

    root = Tree(f"[bold]{file.name}[/bold]")

    def add_children(node: Tree, parent_id: Optional[str]) -> None:
        for child in editor.engine.children_of(parent_id):
            add_children(node.add(_label(editor, child)), child.id)

    add_children(root, None)
    console.print(root)


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path),
              help="Write the normalized document here instead of stdout")
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path),
              help="Editor configuration file")
def normalize(file: Path, output: Optional[Path], config_path: Optional[Path]):
    """Load and re-save a document with its hierarchy repaired."""
    config = _load_editor_config(config_path)
    editor = _render(_read_document(file), config)
    saved = asyncio.run(editor.blocks.save())
    text = json.dumps(saved.to_dict(), indent=2, ensure_ascii=False)

    if output is None:
        click.echo(text)
    else:
        output.write_text(text + "\n")
        logger.info("document_normalized", path=str(file), output=str(output), blocks=len(saved.blocks))
        console.print(f"[green]Wrote {len(saved.blocks)} block(s) to {output}[/green]")


def main():
    """Main entry point for setuptools console script."""
    cli()


if __name__ == "__main__":
    main()
