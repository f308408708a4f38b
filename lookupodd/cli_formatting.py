"""Rich CLI formatting helpers for lookupodd commands."""

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table
from rich.text import Text

console = Console()
err_console = Console(stderr=True)


def setup_logging(verbose: bool = False):
    """Route package logs through rich; DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def print_build_header(config):
    """Print the layout about to be built: widths, leaf size and codecs."""
    widths = ",".join(str(w) for w in config.bit_widths)
    codecs = ", ".join(config.codecs) if config.codecs else "all registered"
    body = Text.assemble(
        ("Building lookup table\n", "bold cyan"),
        (f"bit widths {widths}  ", "bold"),
        (f"{config.layer_count} layers, {config.leaf_bytes:,}-byte leaves\n", "dim"),
        (f"codecs: {codecs}", "dim"),
    )
    console.print(Panel(body, border_style="dim", expand=False))


def print_build_results(reports, table_bytes: int, output: str):
    """Print the per-layer compression winners as a rich table."""
    table = Table(title="Build Results", border_style="cyan", padding=(0, 2))
    table.add_column("Layer", justify="right", style="dim")
    table.add_column("Bits", justify="right")
    table.add_column("Sections", justify="right")
    table.add_column("Winner", style="bold")
    table.add_column("Encoded", justify="right")
    table.add_column("Compressed", justify="right")
    table.add_column("Ratio", justify="right", style="green")

    for r in reports:
        table.add_row(
            str(r.layer),
            str(r.bit_width),
            f"{r.section_count:,}",
            r.codec,
            f"{r.encoded_size:,} bytes",
            f"{r.size:,} bytes",
            f"{r.encoded_size / max(r.size, 1):.1f}x",
        )

    console.print(table)
    console.print(f"\n  [dim]Wrote {table_bytes:,} bytes to {output}[/dim]")


def print_section_info(root, table_bytes: int, path: str):
    """Print the root section's header fields."""
    table = Table(title="Lookup Table", border_style="cyan", show_header=False, padding=(0, 2))
    table.add_column("Field", style="dim")
    table.add_column("Value", style="bold")
    table.add_row("File", path)
    table.add_row("File size", f"{table_bytes:,} bytes")
    table.add_row("Layers", str(root.layer))
    table.add_row("Subsections", f"{root.subsection_count:,}")
    table.add_row("Domain", "full 64-bit" if root.domain_count == 0 else f"{root.domain_count:,}")
    table.add_row("Codec", root.codec)
    table.add_row("Content", f"{len(root.content):,} bytes")
    console.print(table)


def make_progress():
    """Progress bars for layer encoding, one task per layer, drawn on stderr."""
    return Progress(
        TextColumn("[bold blue]{task.description:>8}"),
        BarColumn(bar_width=None),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=err_console,
    )
