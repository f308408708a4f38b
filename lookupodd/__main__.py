"""CLI entry point: python -m lookupodd <command>"""

import argparse
import sys

from .config import TableConfig
from .errors import LookupTableError


def _uint64(text: str) -> int:
    try:
        value = int(text, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {text!r}") from None
    if not 0 <= value < 1 << 64:
        raise argparse.ArgumentTypeError(f"not an unsigned 64-bit integer: {text}")
    return value


def _int_list(text: str) -> tuple:
    try:
        return tuple(int(part) for part in text.split(",") if part.strip())
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected comma-separated integers: {text!r}") from None


def _name_list(text: str) -> tuple:
    return tuple(part.strip() for part in text.split(",") if part.strip())


def build_parser() -> argparse.ArgumentParser:
    defaults = TableConfig()
    parser = argparse.ArgumentParser(
        prog="lookupodd",
        description="Parity of 64-bit integers from a compressed lookup table",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- query ---
    query_parser = subparsers.add_parser("query", help="Print odd/even for each number")
    query_parser.add_argument("numbers", type=_uint64, nargs="+",
                              help="Unsigned 64-bit integers (decimal or 0x hex)")
    query_parser.add_argument("-t", "--table", type=str, default=defaults.table_path)
    query_parser.add_argument("-v", "--verbose", action="store_true",
                              help="Log the node visited on every layer")

    # --- build ---
    build_cmd = subparsers.add_parser("build", help="Generate a lookup table")
    build_cmd.add_argument("-o", "--output", type=str, default=defaults.table_path)
    build_cmd.add_argument("--bit-widths", type=_int_list, default=defaults.bit_widths,
                           help="Comma-separated log2 widths, leaf first (must sum to 64)")
    build_cmd.add_argument("--codecs", type=_name_list, default=None,
                           help="Comma-separated codec names (default: all)")
    build_cmd.add_argument("--workdir", type=str, default=defaults.workdir,
                           help="Directory for per-layer candidate files")
    build_cmd.add_argument("--in-memory", action="store_true",
                           help="Keep candidates in memory instead of files")
    build_cmd.add_argument("--keep-layers", action="store_true",
                           help="Keep candidate files after each layer")
    build_cmd.add_argument("-v", "--verbose", action="store_true")

    # --- info ---
    info_parser = subparsers.add_parser("info", help="Show a table's root section")
    info_parser.add_argument("-t", "--table", type=str, default=defaults.table_path)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    from .cli_formatting import err_console, setup_logging
    setup_logging(getattr(args, "verbose", False))

    try:
        if args.command == "query":
            return _cmd_query(args)
        elif args.command == "build":
            return _cmd_build(args)
        elif args.command == "info":
            return _cmd_info(args)
    except (LookupTableError, OSError) as exc:
        err_console.print(f"[bold red]error:[/bold red] {exc}")
        return 1
    return 0


def _cmd_query(args) -> int:
    from .cli_formatting import console, err_console
    from .query import LookupTable

    table = LookupTable.load(args.table)
    for num in args.numbers:
        try:
            odd = table.lookup(num)
        except LookupTableError as exc:
            err_console.print(f"[bold red]error looking up {num}:[/bold red] {exc}")
            return 1
        console.print("odd" if odd else "even", highlight=False)
    return 0


def _cmd_build(args) -> int:
    from .builder import TableBuilder
    from .cli_formatting import make_progress, print_build_header, print_build_results
    from .storage.table_file import write_table

    config = TableConfig(
        bit_widths=args.bit_widths,
        codecs=args.codecs,
        table_path=args.output,
        workdir=None if args.in_memory else args.workdir,
        keep_layers=args.keep_layers,
    )

    config.validate()
    print_build_header(config)
    with make_progress() as progress:
        tasks = {}

        def on_progress(layer, done, total):
            if layer not in tasks:
                tasks[layer] = progress.add_task(f"layer {layer}", total=total)
            progress.update(tasks[layer], completed=done)

        builder = TableBuilder(config, on_progress=on_progress)
        root = builder.build()

    n_bytes = write_table(config.table_path, root)
    print_build_results(builder.reports, n_bytes, config.table_path)
    return 0


def _cmd_info(args) -> int:
    from pathlib import Path

    from .cli_formatting import print_section_info
    from .storage.table_file import read_table

    root = read_table(args.table)
    print_section_info(root, Path(args.table).stat().st_size, args.table)
    return 0


if __name__ == "__main__":
    sys.exit(main())
